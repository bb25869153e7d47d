"""Exit confirmation modal screen."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ExitConfirmScreen(ModalScreen[bool]):
    """Ask before closing the browser; shows where the user currently is."""

    # App-level ctrl+c would otherwise open a second modal on top of this one.
    _inherit_bindings = False

    BINDINGS = [
        Binding("y", "confirm", "Quit"),
        Binding("enter", "confirm", "Quit", show=False),
        Binding("ctrl+c", "confirm", "Quit", show=False),
        Binding("n", "cancel", "Stay"),
        Binding("escape", "cancel", "Stay", show=False),
    ]

    CSS = """
    ExitConfirmScreen {
        align: center middle;
    }
    #exit-confirm-dialog {
        width: 60;
        height: auto;
        border: solid $warning;
        padding: 1 2;
        background: $surface;
    }
    #exit-confirm-buttons {
        height: auto;
        margin-top: 1;
    }
    #exit-confirm-buttons Button {
        margin-right: 2;
    }
    """

    def __init__(self, location: str = "") -> None:
        super().__init__()
        self._location = location

    def compose(self) -> ComposeResult:
        with Vertical(id="exit-confirm-dialog"):
            yield Label("[bold #e5c76b]Quit Canopy?[/]")
            if self._location:
                yield Label(
                    f"Browsing: {escape(self._location)}", id="exit-confirm-location",
                )
            with Horizontal(id="exit-confirm-buttons"):
                yield Button("Quit (y)", variant="error", id="exit-confirm-yes")
                yield Button("Stay (n)", id="exit-confirm-no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "exit-confirm-yes")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
