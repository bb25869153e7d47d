"""Compartment navigation state machine for the client.

``NavigationController`` owns the one ``Session`` value. Widgets read the
session and subscribe to change notifications; only the controller mutates
it. Each navigation event takes a new request token, and responses that
arrive for an older token are dropped, so a slow earlier fetch can never
overwrite the result of a newer navigation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from canopy.exceptions import NetworkFailureError
from canopy.identity.models import GroupingNode, Policy

logger = logging.getLogger(__name__)

ROOT_LABEL = "(Tenancy Root)"
UNEXPECTED_RESPONSE = "Unexpected response"


class CompartmentAPI(Protocol):
    async def list_profiles(self) -> list[str]: ...

    async def list_compartments(
        self, profile: str, parent: str | None = None,
    ) -> list[dict]: ...

    async def list_policies(self, profile: str, compartment_id: str) -> list[dict]: ...


@dataclass(frozen=True)
class StackEntry:
    id: str
    name: str


@dataclass
class Session:
    """Client session: active profile, root id, path and loaded lists."""

    selected_profile: str = ""
    resolved_root_id: str = ""
    stack: list[StackEntry] = field(default_factory=list)

    profiles: list[str] = field(default_factory=list)
    groupings: list[GroupingNode] = field(default_factory=list)
    policies: list[Policy] = field(default_factory=list)

    loading_profiles: bool = False
    loading_groupings: bool = False
    loading_policies: bool = False
    error: str = ""

    @property
    def has_profile(self) -> bool:
        return bool(self.selected_profile)

    @property
    def at_root(self) -> bool:
        return not self.stack

    @property
    def current_id(self) -> str:
        """Top of the stack, or the resolved root when the stack is empty."""
        if self.stack:
            return self.stack[-1].id
        return self.resolved_root_id

    @property
    def current_name(self) -> str:
        if self.stack:
            return self.stack[-1].name
        return ROOT_LABEL

    @property
    def breadcrumb(self) -> str:
        if not self.stack:
            return ROOT_LABEL
        return " / ".join(entry.name for entry in self.stack)

    def clear_navigation(self) -> None:
        self.stack.clear()
        self.resolved_root_id = ""
        self.groupings = []
        self.policies = []
        self.loading_groupings = False
        self.loading_policies = False
        self.error = ""


Listener = Callable[[Session], None]


class NavigationController:
    """Drives profile selection, drill-down and back over the API."""

    def __init__(self, api: CompartmentAPI, session: Session | None = None) -> None:
        self._api = api
        self.session = session or Session()
        self._token = 0
        self._listeners: list[Listener] = []

    # --- Observers ---

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.session)

    # --- Request tokens ---

    @property
    def token(self) -> int:
        return self._token

    def _next_token(self) -> int:
        self._token += 1
        return self._token

    def _is_stale(self, token: int) -> bool:
        return token != self._token

    # --- Navigation events ---

    async def load_profiles(self) -> None:
        s = self.session
        s.loading_profiles = True
        self._notify()
        try:
            s.profiles = await self._api.list_profiles()
        except NetworkFailureError as e:
            logger.warning("Profile listing failed: %s", e)
            s.profiles = []
            s.error = "Could not load profiles."
        s.loading_profiles = False
        self._notify()

    async def select_profile(self, name: str | None) -> None:
        """Switch profile and load the root compartment."""
        profile = str(name or "").strip()
        if not profile:
            self.deselect_profile()
            return
        token = self._next_token()
        s = self.session
        s.selected_profile = profile
        s.clear_navigation()
        self._notify()
        await self._load(token, "")

    def deselect_profile(self) -> None:
        self._next_token()
        self.session.selected_profile = ""
        self.session.clear_navigation()
        self._notify()

    async def drill_down(self, node: GroupingNode | StackEntry) -> None:
        """Push ``node`` and load its children and policies."""
        s = self.session
        if not s.has_profile:
            return
        token = self._next_token()
        s.stack.append(StackEntry(id=node.id, name=node.name))
        s.error = ""
        self._notify()
        await self._load(token, node.id)

    async def back(self) -> None:
        """Pop one level and reload the new current compartment."""
        s = self.session
        if not s.has_profile or not s.stack:
            return
        token = self._next_token()
        s.stack.pop()
        s.error = ""
        self._notify()
        await self._load(token, s.current_id)

    async def refresh(self) -> None:
        s = self.session
        if not s.has_profile:
            return
        token = self._next_token()
        s.error = ""
        self._notify()
        await self._load(token, s.current_id)

    # --- Fetches ---

    async def _load(self, token: int, grouping_id: str) -> None:
        target = await self._fetch_children(token, grouping_id)
        if target is None:
            return
        await self._fetch_policies(token, target)

    async def _fetch_children(self, token: int, grouping_id: str) -> str | None:
        """Load children; return the id to load policies for, None if superseded."""
        s = self.session
        profile = s.selected_profile
        learn_root = not grouping_id and not s.resolved_root_id
        s.loading_groupings = True
        self._notify()
        try:
            raw = await self._api.list_compartments(profile, grouping_id or None)
            nodes = [GroupingNode.model_validate(item) for item in raw]
        except (NetworkFailureError, ValidationError) as e:
            if self._is_stale(token):
                return None
            logger.warning("Compartment fetch failed for %r: %s", grouping_id, e)
            s.error = _display_message(e)
            s.groupings = []
            s.loading_groupings = False
            self._notify()
            return grouping_id

        if self._is_stale(token):
            logger.debug("Dropped stale compartment response (token %d)", token)
            return None
        s.groupings = nodes
        target = grouping_id
        if learn_root and nodes and nodes[0].compartment_id:
            s.resolved_root_id = nodes[0].compartment_id
            target = s.resolved_root_id
        s.loading_groupings = False
        self._notify()
        return target

    async def _fetch_policies(self, token: int, grouping_id: str) -> None:
        s = self.session
        if not grouping_id:
            s.policies = []
            self._notify()
            return
        s.loading_policies = True
        self._notify()
        try:
            raw = await self._api.list_policies(s.selected_profile, grouping_id)
            policies = [Policy.model_validate(item) for item in raw]
        except (NetworkFailureError, ValidationError) as e:
            if self._is_stale(token):
                return
            logger.warning("Policy fetch failed for %r: %s", grouping_id, e)
            s.error = _display_message(e)
            s.policies = []
        else:
            if self._is_stale(token):
                logger.debug("Dropped stale policy response (token %d)", token)
                return
            s.policies = policies
        s.loading_policies = False
        self._notify()


def _display_message(error: Exception) -> str:
    if isinstance(error, NetworkFailureError):
        return error.message
    return UNEXPECTED_RESPONSE
