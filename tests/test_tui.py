"""Tests for the TUI app and its components."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from textual.widgets import DataTable, Select

from canopy.exceptions import NetworkFailureError
from canopy.identity.models import Policy
from canopy.tui.api_client import CanopyAPIClient
from canopy.tui.app import CanopyApp, _status_text
from canopy.tui.navigation import Session
from canopy.tui.screens import ExitConfirmScreen, PolicyDetailScreen

from conftest import SALES_ID, TENANCY_ID


def _mock_get(api, response):
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=response)
    api._client = mock_client
    return mock_client


# --- CanopyAPIClient tests ---


class TestCanopyAPIClient:
    def test_init_default_url(self):
        client = CanopyAPIClient()
        assert client._base_url == "http://localhost:3001"

    def test_init_custom_url(self):
        client = CanopyAPIClient("http://myhost:8080/")
        assert client.base_url == "http://myhost:8080"

    async def test_close_when_no_client(self):
        api = CanopyAPIClient()
        await api.close()  # Should not raise
        assert api._client is None

    async def test_list_profiles(self):
        api = CanopyAPIClient()
        mock_client = _mock_get(
            api, httpx.Response(200, json={"profiles": ["DEFAULT", "dev"]}),
        )
        assert await api.list_profiles() == ["DEFAULT", "dev"]
        mock_client.get.assert_called_once_with("/api/profiles", params={})

    async def test_list_profiles_bad_shape(self):
        api = CanopyAPIClient()
        _mock_get(api, httpx.Response(200, json={"profiles": "dev"}))
        assert await api.list_profiles() == []

    async def test_list_compartments_root_omits_parent(self):
        api = CanopyAPIClient()
        mock_client = _mock_get(
            api, httpx.Response(200, json=[{"id": SALES_ID, "name": "Sales"}]),
        )
        items = await api.list_compartments("dev")
        assert items == [{"id": SALES_ID, "name": "Sales"}]
        mock_client.get.assert_called_once_with(
            "/api/compartments", params={"profile": "dev"},
        )

    async def test_list_compartments_with_parent(self):
        api = CanopyAPIClient()
        mock_client = _mock_get(api, httpx.Response(200, json=[]))
        await api.list_compartments("dev", SALES_ID)
        mock_client.get.assert_called_once_with(
            "/api/compartments", params={"profile": "dev", "parent": SALES_ID},
        )

    async def test_list_policies(self):
        api = CanopyAPIClient()
        mock_client = _mock_get(api, httpx.Response(200, json=[]))
        await api.list_policies("dev", TENANCY_ID)
        mock_client.get.assert_called_once_with(
            "/api/policies",
            params={"profile": "dev", "compartmentId": TENANCY_ID},
        )

    async def test_server_error_message_is_surfaced(self):
        api = CanopyAPIClient()
        _mock_get(api, httpx.Response(404, json={"error": "Profile not found"}))
        with pytest.raises(NetworkFailureError, match="Profile not found"):
            await api.list_compartments("ghost")

    async def test_error_without_body_uses_fallback(self):
        api = CanopyAPIClient()
        _mock_get(api, httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(NetworkFailureError, match="Failed to load policies."):
            await api.list_policies("dev", TENANCY_ID)

    async def test_transport_error(self):
        api = CanopyAPIClient()
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        api._client = mock_client
        with pytest.raises(NetworkFailureError, match="Could not load profiles."):
            await api.list_profiles()

    async def test_non_list_body(self):
        api = CanopyAPIClient()
        _mock_get(api, httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(NetworkFailureError, match="Unexpected response"):
            await api.list_compartments("dev")

    async def test_invalid_json(self):
        api = CanopyAPIClient()
        _mock_get(api, httpx.Response(200, text="not json"))
        with pytest.raises(NetworkFailureError, match="Unexpected response"):
            await api.list_policies("dev", TENANCY_ID)

    async def test_non_object_items_are_rejected(self):
        def handler(request):
            return httpx.Response(
                200, json=[{"id": "c1", "name": "A"}, "garbage", 42],
            )

        api = CanopyAPIClient("http://canopy.test")
        api._client = httpx.AsyncClient(
            base_url=api.base_url, transport=httpx.MockTransport(handler),
        )
        try:
            with pytest.raises(NetworkFailureError, match="Unexpected response"):
                await api.list_compartments("dev")
        finally:
            await api.close()

    async def test_over_mock_transport(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": "p1", "name": "n"}])

        api = CanopyAPIClient("http://canopy.test")
        api._client = httpx.AsyncClient(
            base_url=api.base_url, transport=httpx.MockTransport(handler),
        )
        try:
            items = await api.list_policies("dev", TENANCY_ID)
        finally:
            await api.close()
        assert items == [{"id": "p1", "name": "n"}]
        assert seen[0].url.params["compartmentId"] == TENANCY_ID


# --- Status text ---


class TestStatusText:
    def test_ready(self):
        assert _status_text(Session()) == "Ready"

    def test_loading_order(self):
        s = Session(loading_profiles=True, loading_groupings=True)
        assert _status_text(s) == "Loading OCI profiles…"
        s.loading_profiles = False
        assert _status_text(s) == "Loading compartments…"
        s.loading_groupings = False
        s.loading_policies = True
        assert _status_text(s) == "Loading policies…"

    def test_error(self):
        assert _status_text(Session(error="boom")) == "Error"


# --- App ---


async def _settle(app, pilot):
    await pilot.pause()
    await app.workers.wait_for_complete()
    await pilot.pause()


class TestCanopyApp:
    async def test_profiles_loaded_on_mount(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            assert app.session.profiles == ["dev"]
            assert ("profiles", "") in fake_api.calls

    async def test_selecting_profile_fills_tables(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            app.query_one("#profile-select", Select).value = "dev"
            await _settle(app, pilot)

            assert app.session.selected_profile == "dev"
            assert app.query_one("#compartments-table", DataTable).row_count == 2
            assert app.query_one("#policies-table", DataTable).row_count == 1

    async def test_enter_drills_and_backspace_returns(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            await pilot.pause()

            table = app.query_one("#compartments-table", DataTable)
            table.focus()
            await pilot.press("enter")
            await _settle(app, pilot)
            assert [e.id for e in app.session.stack] == [SALES_ID]
            assert table.row_count == 1

            await pilot.press("backspace")
            await _settle(app, pilot)
            assert app.session.stack == []
            assert table.row_count == 2

    async def test_policy_row_opens_detail(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            await app.controller.drill_down(app.session.groupings[0])
            await pilot.pause()

            app.query_one("#policies-table", DataTable).focus()
            await pilot.press("enter")
            await pilot.pause()
            assert isinstance(app.screen, PolicyDetailScreen)
            assert len(app.screen.query(".policy-statement")) == 2

            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, PolicyDetailScreen)

    async def test_detail_without_statements(self, fake_api):
        app = CanopyApp(api=fake_api)
        policy = Policy(id="p1", name="empty-policy", statements=[])
        async with app.run_test() as pilot:
            app.push_screen(PolicyDetailScreen(policy))
            await pilot.pause()
            assert app.screen.query_one("#policy-no-statements") is not None
            assert len(app.screen.query(".policy-statement")) == 0

    async def test_deselect_clears_session(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            app.query_one("#profile-select", Select).value = "dev"
            await _settle(app, pilot)
            assert app.session.has_profile

            app.action_deselect()
            await _settle(app, pilot)
            assert not app.session.has_profile
            assert app.query_one("#compartments-table", DataTable).row_count == 0

    async def test_backend_failure_shows_error(self, fake_api):
        fake_api.fail[("compartments", "")] = "Profile not found"
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            await pilot.pause()
            assert app.session.error == "Profile not found"
            assert app.query_one("#error-line").has_class("visible")

    async def test_ctrl_c_modal_accepts_y_and_exits(self, fake_api):
        app = CanopyApp(api=fake_api)
        app.exit = MagicMock()
        async with app.run_test() as pilot:
            await pilot.press("ctrl+c")
            await pilot.pause()
            assert isinstance(app.screen_stack[-1], ExitConfirmScreen)

            await pilot.press("y")
            await pilot.pause()
            assert app.exit.called

    async def test_ctrl_c_modal_n_stays(self, fake_api):
        app = CanopyApp(api=fake_api)
        app.exit = MagicMock()
        async with app.run_test() as pilot:
            await pilot.press("ctrl+c")
            await pilot.pause()
            await pilot.press("n")
            await pilot.pause()
            assert not isinstance(app.screen_stack[-1], ExitConfirmScreen)
            assert not app.exit.called

    async def test_confirm_exit_reentrant_uses_single_modal(self, fake_api):
        app = CanopyApp(api=fake_api)

        callbacks = []
        app.push_screen = lambda _screen, callback: callbacks.append(callback)

        first = asyncio.create_task(app._confirm_exit())
        await asyncio.sleep(0)
        second = asyncio.create_task(app._confirm_exit())
        await asyncio.sleep(0)

        assert len(callbacks) == 1
        callbacks[0](True)

        assert await first is True
        assert await second is True

    async def test_open_compartment_action(self, fake_api):
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            await app.run_action(f"open_compartment('{SALES_ID}')")
            await _settle(app, pilot)
            assert [e.name for e in app.session.stack] == ["Sales"]

            await app.run_action("open_compartment('ocid1.compartment.gone')")
            await _settle(app, pilot)
            assert [e.name for e in app.session.stack] == ["Sales"]

    async def test_palette_lists_compartments_and_profiles(self, fake_api):
        from canopy.tui.commands import CanopyCommands

        fake_api.profiles = ["DEFAULT", "dev"]
        app = CanopyApp(api=fake_api)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            labels = [label for label, _, _ in CanopyCommands(app.screen)._entries()]
            assert "Open Sales" in labels
            assert "Open Ops" in labels
            assert "Use profile DEFAULT" in labels
            assert "Use profile dev" not in labels

    async def test_exit_modal_shows_location(self, fake_api):
        app = CanopyApp(api=fake_api)
        app.exit = MagicMock()
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await app.controller.select_profile("dev")
            await pilot.press("ctrl+c")
            await pilot.pause()
            screen = app.screen_stack[-1]
            assert isinstance(screen, ExitConfirmScreen)
            assert screen.query_one("#exit-confirm-location") is not None

            await pilot.press("n")
            await pilot.pause()
            assert not app.exit.called

    async def test_palette_command_dispatch(self, fake_api):
        app = CanopyApp(api=fake_api)
        app.action_refresh = MagicMock()
        app.action_back = MagicMock()
        await app.action_canopy_command("refresh")
        await app.action_canopy_command("back")
        await app.action_canopy_command("nonsense")
        app.action_refresh.assert_called_once()
        app.action_back.assert_called_once()
