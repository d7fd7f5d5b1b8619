"""Floating status bar summarising every tracked session.

:func:`render` is a pure function of a registry snapshot and focus state.
:class:`StatusBar` owns the surface that displays the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from loguru import logger
from rich.cells import cell_len

from agent_orchestrator.config.schema import StatusBarConfig
from agent_orchestrator.core import palette
from agent_orchestrator.core.registry import InstanceRegistry
from agent_orchestrator.core.state import SessionView, StateStore
from agent_orchestrator.host.ports import BufferOptions, HostPort, StyleRegion, SurfaceConfig

STATUS_BAR_BUFFER_NAME = "orchestrator-status-bar"


@dataclass(frozen=True)
class FocusContext:
    """What the user is looking at right now."""

    current_surface: int | None
    editor_surface: int | None = None
    last_focused: int | None = None

    def is_active(self, view: SessionView) -> bool:
        if view.surface is not None and view.surface == self.current_surface:
            return True
        # Composing a prompt steals focus; fall back to the session focused before.
        if self.editor_surface is not None and self.current_surface == self.editor_surface:
            return self.last_focused is not None and view.channel == self.last_focused
        return False


@dataclass(frozen=True)
class Token:
    """One session's fixed-shape fragment, regions relative to ``text``."""

    text: str
    regions: tuple[StyleRegion, ...]
    # Extra columns the terminal draws beyond what the glyphs measure.
    slack: int = 0

    @property
    def width(self) -> int:
        return cell_len(self.text) + self.slack


@dataclass(frozen=True)
class Rendered:
    text: str
    regions: tuple[StyleRegion, ...]
    width: int
    truncated: bool = False


def build_token(view: SessionView, active: bool, config: StatusBarConfig) -> Token:
    """Token for one session in the configured style."""
    idx = view.color_index
    slack = indicator_slack(config) if active else 0
    if not config.emphasis:
        text = f"[{view.number}{config.active_indicator if active else ''}]"
        return Token(text, (StyleRegion(0, len(text), palette.session_group(idx)),), slack)

    if active:
        body = f" {view.number}{config.active_indicator} "
        body_group = palette.active_group(idx)
    else:
        body = f"{view.number}"
        body_group = palette.dim_group(idx)
    dim = not active

    parts = (
        (config.cap_left, palette.cap_group(idx, "left", dim=dim)),
        (body, body_group),
        (config.cap_right, palette.cap_group(idx, "right", dim=dim)),
    )
    regions: list[StyleRegion] = []
    offset = 0
    for part, group in parts:
        if part:
            regions.append(StyleRegion(offset, offset + len(part), group))
            offset += len(part)
    return Token("".join(part for part, _ in parts), tuple(regions), slack)


def indicator_slack(config: StatusBarConfig) -> int:
    if config.active_indicator_width is None or not config.active_indicator:
        return 0
    return max(0, config.active_indicator_width - cell_len(config.active_indicator))


def content_width(tokens: Sequence[Token]) -> int:
    """Display cells of all tokens joined by single spaces."""
    if not tokens:
        return 0
    return sum(token.width for token in tokens) + len(tokens) - 1


def surface_width(content: int, columns: int, config: StatusBarConfig) -> int:
    max_width = int(columns * config.max_width_ratio)
    return max(config.min_width, min(content + config.padding, max_width))


def render(
    views: Sequence[SessionView],
    focus: FocusContext,
    columns: int,
    config: StatusBarConfig,
) -> Rendered:
    """Lay out every session token, centered within the computed width."""
    if not views:
        return Rendered("", (), config.min_width)

    tokens = [build_token(view, focus.is_active(view), config) for view in views]
    width = surface_width(content_width(tokens), columns, config)

    shown = tokens
    truncated = False
    if not config.emphasis:
        shown, truncated = _fit(tokens, width - config.padding, config.truncation_marker)

    line_parts: list[str] = []
    regions: list[StyleRegion] = []
    offset = 0
    for index, token in enumerate(shown):
        if index:
            line_parts.append(" ")
            offset += 1
        line_parts.append(token.text)
        regions.extend(StyleRegion(r.start + offset, r.end + offset, r.group) for r in token.regions)
        offset += len(token.text)
    if truncated:
        lead = " " if shown else ""
        line_parts.append(lead + config.truncation_marker)
        start = offset + len(lead)
        regions.append(StyleRegion(start, start + len(config.truncation_marker), palette.STATUS_BAR_GROUP))

    line = "".join(line_parts)
    line_width = cell_len(line) + sum(token.slack for token in shown)
    left = max(0, (width - line_width) // 2)
    right = max(0, width - line_width - left)
    regions = [StyleRegion(r.start + left, r.end + left, r.group) for r in regions]
    return Rendered(" " * left + line + " " * right, tuple(regions), width, truncated)


def _fit(tokens: Sequence[Token], available: int, marker: str) -> tuple[list[Token], bool]:
    """Whole tokens that fit in ``available`` cells, reserving room for the marker."""
    needs_truncation = content_width(tokens) > available
    limit = available - (cell_len(marker) + 1) if needs_truncation else available

    shown: list[Token] = []
    used = 0
    for token in tokens:
        needed = used + (1 if shown else 0) + token.width
        if needed > limit:
            return shown, True
        shown.append(token)
        used = needed
    return shown, False


class StatusBar:
    """Shows, hides and repositions the status surface."""

    def __init__(
        self,
        host: HostPort,
        state: StateStore,
        registry: InstanceRegistry,
        config: StatusBarConfig,
    ) -> None:
        self._host = host
        self._state = state
        self._registry = registry
        self._config = config

    def focus_context(self) -> FocusContext:
        editor_surface = self._state.editor.surface
        if not self._host.surface_is_valid(editor_surface):
            editor_surface = None
        return FocusContext(
            current_surface=self._host.current_surface(),
            editor_surface=editor_surface,
            last_focused=self._state.last_focused,
        )

    def compute(self) -> Rendered:
        return render(self._registry.query_all(), self.focus_context(), self._host.columns(), self._config)

    def is_shown(self) -> bool:
        return self._host.surface_is_valid(self._state.status_bar.surface)

    def show(self) -> None:
        if self._registry.count_all() == 0 or not self._state.status_bar.visible:
            return

        rendered = self.compute()
        buffer = self._get_or_create_buffer()
        geometry = self._position(rendered.width)

        bar = self._state.status_bar
        if self._host.surface_is_valid(bar.surface):
            self._host.set_surface_config(bar.surface, geometry)
        else:
            bar.surface = self._host.open_surface(buffer, geometry, enter=False)
            logger.debug(f"[status] opened surface {bar.surface}")
        self._paint(buffer, rendered)

    def hide(self) -> None:
        bar = self._state.status_bar
        if self._host.surface_is_valid(bar.surface):
            self._host.close_surface(bar.surface)
            logger.debug(f"[status] closed surface {bar.surface}")
        bar.surface = None

    def update(self) -> None:
        """Re-render and resize after the session list changed."""
        if self._registry.count_all() == 0:
            self.hide()
            return
        if self._state.status_bar.visible:
            self.show()

    def toggle(self) -> None:
        bar = self._state.status_bar
        bar.visible = not bar.visible
        if bar.visible:
            self.show()
        else:
            self.hide()

    def reposition(self) -> None:
        """Follow an editor resize."""
        if self.is_shown():
            self.show()

    def _position(self, width: int) -> SurfaceConfig:
        columns = self._host.columns()
        return SurfaceConfig(
            width=width,
            height=1,
            row=self._host.lines() - self._config.bottom_offset,
            col=(columns - width) // 2,
            style="minimal",
            border="none",
            focusable=False,
            zindex=self._config.zindex,
        )

    def _get_or_create_buffer(self) -> int:
        bar = self._state.status_bar
        if self._host.buffer_is_valid(bar.buffer):
            return bar.buffer
        bar.buffer = self._host.create_buffer(
            listed=False,
            scratch=True,
            name=STATUS_BAR_BUFFER_NAME,
            options=BufferOptions(buftype="nofile", bufhidden="wipe"),
        )
        return bar.buffer

    def _paint(self, buffer: int, rendered: Rendered) -> None:
        self._host.set_lines(buffer, [rendered.text])
        self._host.set_regions(buffer, rendered.regions)
