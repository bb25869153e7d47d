"""Command palette provider for the Canopy TUI.

Besides the fixed navigation actions, the palette offers one "Open" entry
per sub-compartment currently listed and one "Use profile" entry per
known profile.
"""

from __future__ import annotations

from functools import partial

from textual.command import DiscoveryHit, Hit, Hits, Provider

_ACTIONS = [
    ("Go back one level", "back", "Return to the parent compartment"),
    ("Refresh", "refresh", "Reload compartments and policies"),
    ("Reload profiles", "reload_profiles", "Fetch the profile list again"),
    ("Deselect profile", "deselect", "Clear the active profile"),
    ("Quit", "quit", "Exit Canopy"),
]


def _quoted(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class CanopyCommands(Provider):
    """Navigation commands for the Ctrl+P command palette."""

    def _entries(self) -> list[tuple[str, str, str]]:
        session = self.app.session
        entries = [
            (label, f"canopy_command('{action}')", help_text)
            for label, action, help_text in _ACTIONS
        ]
        for node in session.groupings:
            entries.append((
                f"Open {node.name}",
                f"open_compartment('{_quoted(node.id)}')",
                node.description or node.id,
            ))
        for name in session.profiles:
            if name != session.selected_profile:
                entries.append((
                    f"Use profile {name}",
                    f"use_profile('{_quoted(name)}')",
                    "Switch profile and return to the root",
                ))
        return entries

    async def discover(self) -> Hits:
        for label, action, help_text in self._entries():
            yield DiscoveryHit(
                label, partial(self.app.run_action, action), help=help_text,
            )

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for label, action, help_text in self._entries():
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score,
                    matcher.highlight(label),
                    partial(self.app.run_action, action),
                    help=help_text,
                )
