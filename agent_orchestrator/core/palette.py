"""Session color palette and style group names."""

from __future__ import annotations

from typing import Sequence

from agent_orchestrator.config.schema import ColorDef

COLOR_WHITE = "#C2C2C2"
COLOR_BLACK = "#1A1A1A"
COLOR_YELLOW = "#FDD886"

# Inactive sessions render at 55% brightness.
DIM_FACTOR = 0.55

GROUP_PREFIX = "OrchestratorSession"
STATUS_BAR_GROUP = "OrchestratorStatusBar"
STATUS_BAR_BG_GROUP = "OrchestratorStatusBarBg"


def dim_color(hex_color: str, factor: float = DIM_FACTOR) -> str:
    """Scale each RGB channel of ``#RRGGBB`` by ``factor``."""
    r = int(hex_color[1:3], 16)
    g = int(hex_color[3:5], 16)
    b = int(hex_color[5:7], 16)
    return "#{:02X}{:02X}{:02X}".format(int(r * factor), int(g * factor), int(b * factor))


def session_group(color_index: int) -> str:
    return f"{GROUP_PREFIX}{color_index}"


def active_group(color_index: int) -> str:
    return f"{GROUP_PREFIX}{color_index}Active"


def dim_group(color_index: int) -> str:
    return f"{GROUP_PREFIX}{color_index}Dim"


def cap_group(color_index: int, side: str, dim: bool = False) -> str:
    suffix = "Left" if side == "left" else "Right"
    return f"{GROUP_PREFIX}{color_index}Chevron{suffix}{'Dim' if dim else ''}"


def color_name(color_index: int, palette: Sequence[ColorDef]) -> str:
    """Human name of a 1-based color index, ``Unknown`` when out of range."""
    if 1 <= color_index <= len(palette):
        return palette[color_index - 1].name
    return "Unknown"


def highlight_definitions(palette: Sequence[ColorDef]) -> dict[str, dict[str, object]]:
    """Style definitions for every group the status bar emits.

    Inactive tokens are colored text on a transparent background; the active
    bubble is dark text on the session color; dimmed variants reuse the same
    shapes at reduced brightness.
    """
    groups: dict[str, dict[str, object]] = {}
    for index, color in enumerate(palette, start=1):
        dimmed = dim_color(color.fg)
        groups[session_group(index)] = {"fg": color.fg, "bg": None, "bold": True}
        groups[active_group(index)] = {"fg": COLOR_BLACK, "bg": color.fg, "bold": True}
        groups[cap_group(index, "left")] = {"fg": color.fg, "bg": None}
        groups[cap_group(index, "right")] = {"fg": color.fg, "bg": None}
        groups[dim_group(index)] = {"fg": COLOR_BLACK, "bg": dimmed, "bold": True}
        groups[cap_group(index, "left", dim=True)] = {"fg": dimmed, "bg": None}
        groups[cap_group(index, "right", dim=True)] = {"fg": dimmed, "bg": None}
    groups[STATUS_BAR_GROUP] = {"fg": COLOR_WHITE, "bg": None}
    groups[STATUS_BAR_BG_GROUP] = {"bg": None}
    return groups
