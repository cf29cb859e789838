"""Pulumi Dark theme: violet-accented palette for the TUI."""

from __future__ import annotations

from textual.theme import Theme

PULUMI_DARK = Theme(
    name="pulumi-dark",
    primary="#bb9af7",
    secondary="#7dcfff",
    accent="#ff9e64",
    warning="#e0af68",
    error="#f7768e",
    success="#9ece6a",
    foreground="#c0caf5",
    background="#1a1b26",
    surface="#1e2030",
    panel="#24283b",
    dark=True,
)

# Semantic color constants for Rich styles in renderers.
USER_MSG = "#73daca"
ASSISTANT_MSG = "#bb9af7"
TOOL_OK = "#9ece6a"
TOOL_ERR = "#f7768e"
DIM = "#565f89"
TEXT = "#c0caf5"
ACCENT_CYAN = "#7dcfff"
ACCENT_LAVENDER = "#bb9af7"
ACCENT_AMBER = "#e0af68"
SELECTED_BG = "#364a82"

BORDER = DIM
BORDER_FOCUSED = ACCENT_LAVENDER
