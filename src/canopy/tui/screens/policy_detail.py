"""Read-only view of one policy and its statements."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static

from canopy.identity.models import Policy


class PolicyDetailScreen(ModalScreen[None]):
    """Policy name, description and ordered statements."""

    BINDINGS = [
        Binding("escape", "close", "Back"),
        Binding("backspace", "close", "Back", show=False),
        Binding("q", "close", "Back", show=False),
    ]

    CSS = """
    PolicyDetailScreen {
        align: center middle;
    }
    #policy-detail-dialog {
        width: 90%;
        height: 85%;
        border: solid $primary;
        padding: 1 2;
        background: $surface;
    }
    #policy-statements {
        height: 1fr;
        margin-top: 1;
    }
    .policy-statement {
        padding: 0 1;
        margin-bottom: 1;
        background: $panel;
    }
    """

    def __init__(self, policy: Policy) -> None:
        super().__init__()
        self._policy = policy

    def compose(self) -> ComposeResult:
        policy = self._policy
        with Vertical(id="policy-detail-dialog"):
            yield Button("Back", id="policy-detail-back")
            yield Label(f"[bold]{escape(policy.name)}[/bold]", id="policy-name")
            description = policy.description or "(No description)"
            yield Label(
                f"[b]Description:[/b] {escape(description)}",
                id="policy-description",
            )
            yield Label("[bold]Statements[/bold]")
            with VerticalScroll(id="policy-statements"):
                if policy.statements:
                    for statement in policy.statements:
                        yield Static(
                            escape(statement), classes="policy-statement",
                        )
                else:
                    yield Static("No statements found.", id="policy-no-statements")

    def action_close(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "policy-detail-back":
            event.stop()
            self.dismiss(None)
