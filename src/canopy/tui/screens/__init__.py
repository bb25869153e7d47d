"""TUI screens."""

from canopy.tui.screens.confirm_exit import ExitConfirmScreen
from canopy.tui.screens.policy_detail import PolicyDetailScreen

__all__ = [
    "ExitConfirmScreen",
    "PolicyDetailScreen",
]
