"""Bottom status line: request state, active profile, counts and backend."""

from __future__ import annotations

from rich.markup import escape
from textual.reactive import reactive
from textual.widgets import Static

from canopy.tui.theme import DIM, ERROR_RED

_STATE_COLORS = {"Ready": "#8ccf7e", "Error": ERROR_RED}


class StatusBar(Static):
    """Renders whatever ``CanopyApp`` last copied out of the session."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        dock: bottom;
        background: $surface;
        padding: 0 1;
    }
    """

    state: reactive[str] = reactive("Ready")
    profile_name: reactive[str] = reactive("")
    backend_url: reactive[str] = reactive("")
    compartment_count: reactive[int] = reactive(0)
    policy_count: reactive[int] = reactive(0)

    def render(self) -> str:
        color = _STATE_COLORS.get(self.state, "#e5c76b")
        segments = [f"[{color}]{escape(self.state)}[/]"]
        if self.profile_name:
            segments.append(f"[b]{escape(self.profile_name)}[/b]")
            segments.append(
                f"[{DIM}]{self.compartment_count} sub-compartments · "
                f"{self.policy_count} policies[/]"
            )
        else:
            segments.append(f"[{DIM}]no profile[/]")
        if self.backend_url:
            segments.append(f"[{DIM}]{escape(self.backend_url)}[/]")
        return f" [{DIM}]|[/] ".join(segments)
