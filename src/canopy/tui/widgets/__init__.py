"""TUI widget components."""

from canopy.tui.widgets.status_bar import StatusBar

__all__ = ["StatusBar"]
