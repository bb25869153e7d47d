"""Canopy Dark theme: a muted forest palette for the TUI."""

from __future__ import annotations

from textual.theme import Theme

CANOPY_DARK = Theme(
    name="canopy-dark",
    primary="#8ccf7e",
    secondary="#6cbfbf",
    accent="#e5c76b",
    warning="#e5c76b",
    error="#e57474",
    success="#8ccf7e",
    foreground="#dadada",
    background="#141b1e",
    surface="#1e2528",
    panel="#232a2d",
    dark=True,
)

# Semantic color constants for Rich markup in widgets.
ERROR_RED = "#e57474"
DIM = "#5c6a72"
