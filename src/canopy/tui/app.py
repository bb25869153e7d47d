"""Canopy TUI: browse compartments and their policies.

Layout:
  +---------------------------------------------------+
  | Profile [dev                     v]                |
  | Current: Sales / EMEA                              |
  | Sub-Compartments                                   |
  |   Name            Description                      |
  | Policies for: EMEA                                 |
  |   Policy Name     Description                      |
  +---------------------------------------------------+
  | Ready | profile dev | 3 compartments, 2 policies   |
  | Bksp Back  R Refresh  ^P Commands  ^C Quit         |
  +---------------------------------------------------+

The app is a read-only consumer of the ``Session`` owned by the
``NavigationController``; every user action is forwarded to the
controller and the screen re-renders on its change notifications.
"""

from __future__ import annotations

import asyncio
import logging

from rich.markup import escape
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, Header, Label, Select, Static

from canopy.tui.api_client import CanopyAPIClient
from canopy.tui.commands import CanopyCommands
from canopy.tui.navigation import NavigationController, Session
from canopy.tui.screens import ExitConfirmScreen, PolicyDetailScreen
from canopy.tui.theme import CANOPY_DARK, DIM, ERROR_RED
from canopy.tui.widgets import StatusBar

logger = logging.getLogger(__name__)


class CanopyApp(App):
    """Compartment and policy browser."""

    TITLE = "Canopy"
    SUB_TITLE = "OCI Compartment and Policy Browser"
    COMMANDS = {CanopyCommands}

    CSS = """
    #profile-bar {
        height: auto;
        padding: 0 1;
    }
    #profile-label {
        padding: 1 1 0 0;
    }
    #profile-select {
        width: 48;
    }
    #breadcrumb {
        padding: 0 1;
        color: $text-muted;
    }
    #error-line {
        padding: 0 1;
        display: none;
    }
    #error-line.visible {
        display: block;
    }
    .section-title {
        padding: 1 1 0 1;
        text-style: bold;
    }
    .empty-note {
        padding: 0 2;
        color: $text-muted;
        display: none;
    }
    .empty-note.visible {
        display: block;
    }
    #compartments-table {
        height: 1fr;
    }
    #policies-table {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "request_quit", "Quit", show=True, priority=True),
        Binding("backspace", "back", "Back", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("ctrl+d", "deselect", "Deselect"),
    ]

    def __init__(
        self,
        api: CanopyAPIClient,
        *,
        controller: NavigationController | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._api = api
        self._controller = controller or NavigationController(api)
        self._confirm_exit_waiter: asyncio.Future[bool] | None = None
        self._known_profiles: list[str] = []
        # Lists last drawn into the tables; rebuilt only when replaced.
        self._shown_groupings: list | None = None
        self._shown_policies: list | None = None

    @property
    def controller(self) -> NavigationController:
        return self._controller

    @property
    def session(self) -> Session:
        return self._controller.session

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="profile-bar"):
            yield Label("Select OCI Profile:", id="profile-label")
            yield Select[str](
                [], prompt="-- Select --", id="profile-select", allow_blank=True,
            )
        yield Static("", id="breadcrumb")
        yield Static("", id="error-line")
        with Vertical(id="browser"):
            yield Label("Sub-Compartments", classes="section-title")
            yield DataTable(id="compartments-table", cursor_type="row")
            yield Static(
                "No sub-compartments found.",
                id="compartments-empty",
                classes="empty-note",
            )
            yield Label("Policies", id="policies-title", classes="section-title")
            yield DataTable(id="policies-table", cursor_type="row")
            yield Static(
                "No policies found.", id="policies-empty", classes="empty-note",
            )
        yield StatusBar(id="status-bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.register_theme(CANOPY_DARK)
        self.theme = "canopy-dark"

        self.query_one("#compartments-table", DataTable).add_columns(
            "Name", "Description",
        )
        self.query_one("#policies-table", DataTable).add_columns(
            "Policy Name", "Description",
        )
        self.query_one("#status-bar", StatusBar).backend_url = self._api.base_url
        self._controller.subscribe(self._on_session_changed)
        self._render_session(self.session)
        self.run_worker(self._controller.load_profiles(), group="profiles")

    async def on_unmount(self) -> None:
        self._controller.unsubscribe(self._on_session_changed)
        await self._api.close()

    # --- Rendering ---

    def _on_session_changed(self, session: Session) -> None:
        if not self.is_running:
            return
        self._render_session(session)

    def _render_session(self, session: Session) -> None:
        self._render_profiles(session)

        breadcrumb = self.query_one("#breadcrumb", Static)
        if session.has_profile:
            breadcrumb.update(f"[b]Current:[/b] {escape(session.breadcrumb)}")
        else:
            breadcrumb.update(f"[{DIM}]Select a profile to begin.[/]")

        error_line = self.query_one("#error-line", Static)
        error_line.update(f"[{ERROR_RED}]{escape(session.error)}[/]")
        error_line.set_class(bool(session.error), "visible")

        compartments = self.query_one("#compartments-table", DataTable)
        compartments.loading = session.loading_groupings
        if self._shown_groupings is not session.groupings:
            self._shown_groupings = session.groupings
            compartments.clear()
            for node in session.groupings:
                compartments.add_row(
                    escape(node.name), escape(node.description), key=node.id,
                )
        self.query_one("#compartments-empty", Static).set_class(
            session.has_profile
            and not session.loading_groupings
            and not session.groupings,
            "visible",
        )

        self.query_one("#policies-title", Label).update(
            f"Policies for: {escape(session.current_name)}"
        )
        policies = self.query_one("#policies-table", DataTable)
        policies.loading = session.loading_policies
        if self._shown_policies is not session.policies:
            self._shown_policies = session.policies
            policies.clear()
            for policy in session.policies:
                policies.add_row(
                    escape(policy.name), escape(policy.description), key=policy.id,
                )
        self.query_one("#policies-empty", Static).set_class(
            session.has_profile
            and not session.loading_policies
            and not session.policies,
            "visible",
        )

        status = self.query_one("#status-bar", StatusBar)
        status.state = _status_text(session)
        status.profile_name = session.selected_profile
        status.compartment_count = len(session.groupings)
        status.policy_count = len(session.policies)

    def _render_profiles(self, session: Session) -> None:
        if session.profiles == self._known_profiles:
            return
        self._known_profiles = list(session.profiles)
        select = self.query_one("#profile-select", Select)
        with select.prevent(Select.Changed):
            select.set_options((name, name) for name in session.profiles)
            if session.selected_profile in session.profiles:
                select.value = session.selected_profile

    # --- Events ---

    @on(Select.Changed, "#profile-select")
    def _on_profile_changed(self, event: Select.Changed) -> None:
        value = event.value if isinstance(event.value, str) else ""
        if value == self.session.selected_profile:
            return
        self.run_worker(self._controller.select_profile(value), group="navigation")

    @on(DataTable.RowSelected, "#compartments-table")
    def _on_compartment_selected(self, event: DataTable.RowSelected) -> None:
        node_id = event.row_key.value
        node = next((n for n in self.session.groupings if n.id == node_id), None)
        if node is None:
            return
        self.run_worker(self._controller.drill_down(node), group="navigation")

    @on(DataTable.RowSelected, "#policies-table")
    def _on_policy_selected(self, event: DataTable.RowSelected) -> None:
        policy_id = event.row_key.value
        policy = next((p for p in self.session.policies if p.id == policy_id), None)
        if policy is not None:
            self.push_screen(PolicyDetailScreen(policy))

    # --- Actions ---

    def action_back(self) -> None:
        self.run_worker(self._controller.back(), group="navigation")

    def action_refresh(self) -> None:
        self.run_worker(self._controller.refresh(), group="navigation")

    def action_reload_profiles(self) -> None:
        self.run_worker(self._controller.load_profiles(), group="profiles")

    def action_deselect(self) -> None:
        self.query_one("#profile-select", Select).clear()

    def action_open_compartment(self, node_id: str) -> None:
        node = next((n for n in self.session.groupings if n.id == node_id), None)
        if node is not None:
            self.run_worker(self._controller.drill_down(node), group="navigation")

    def action_use_profile(self, name: str) -> None:
        if name in self.session.profiles:
            self.query_one("#profile-select", Select).value = name

    def action_request_quit(self) -> None:
        """Start the exit flow without blocking key/event dispatch."""
        self.run_worker(
            self._request_exit(),
            group="exit-flow",
            exclusive=True,
        )

    async def _confirm_exit(self) -> bool:
        """Show exit confirmation modal and return True when confirmed."""
        if self._confirm_exit_waiter is not None:
            return await self._confirm_exit_waiter

        result_waiter: asyncio.Future[bool] = asyncio.Future()
        self._confirm_exit_waiter = result_waiter

        def handle_result(confirmed: bool | None) -> None:
            if not result_waiter.done():
                result_waiter.set_result(bool(confirmed))

        location = ""
        if self.session.has_profile:
            location = f"{self.session.selected_profile}: {self.session.breadcrumb}"
        self.push_screen(ExitConfirmScreen(location), callback=handle_result)
        try:
            return await result_waiter
        finally:
            self._confirm_exit_waiter = None

    async def _request_exit(self) -> None:
        if await self._confirm_exit():
            self.exit()

    async def action_canopy_command(self, command: str) -> None:
        """Dispatch command palette actions."""
        if command == "quit":
            self.action_request_quit()
        elif command == "back":
            self.action_back()
        elif command == "refresh":
            self.action_refresh()
        elif command == "reload_profiles":
            self.action_reload_profiles()
        elif command == "deselect":
            self.action_deselect()
        else:
            logger.debug("Unknown palette command %r", command)


def _status_text(session: Session) -> str:
    if session.loading_profiles:
        return "Loading OCI profiles…"
    if session.loading_groupings:
        return "Loading compartments…"
    if session.loading_policies:
        return "Loading policies…"
    if session.error:
        return "Error"
    return "Ready"
