"""Tests for status bar rendering and its surface."""

import pytest
from rich.cells import cell_len

from agent_orchestrator.config.schema import StatusBarConfig
from agent_orchestrator.core import palette
from agent_orchestrator.core.state import Session, SessionView
from agent_orchestrator.core.status_bar import FocusContext, build_token, render, surface_width


def make_view(number, channel=None, color=None, surface=None):
    session = Session(
        channel=channel if channel is not None else 10 + number,
        buffer=100 + number,
        color_index=color if color is not None else number,
        cwd="/a",
        variant="fresh",
        created_at=0.0,
    )
    return SessionView(session=session, number=number, surface=surface)


@pytest.fixture
def plain():
    return StatusBarConfig(emphasis=False)


@pytest.fixture
def bubbles():
    return StatusBarConfig(cap_left="<", cap_right=">")


NO_FOCUS = FocusContext(current_surface=None)


class TestWidth:
    """Tests for surface width computation."""

    def test_content_plus_padding(self, plain):
        assert surface_width(11, 100, plain) == 15

    def test_minimum_width(self, plain):
        assert surface_width(0, 100, plain) == 10

    def test_capped_by_columns(self, plain):
        assert surface_width(200, 100, plain) == 80

    def test_empty_render(self, plain):
        rendered = render([], NO_FOCUS, 100, plain)
        assert rendered.text == ""
        assert rendered.width == plain.min_width


class TestPlainVariant:
    """Tests for the bracketed token style."""

    def test_tokens_are_centered(self, plain):
        views = [make_view(n) for n in (1, 2, 3)]
        rendered = render(views, NO_FOCUS, 100, plain)

        assert rendered.width == 15
        assert rendered.text == "  [1] [2] [3]  "
        assert rendered.truncated is False
        first = rendered.regions[0]
        assert (first.start, first.end) == (2, 5)
        assert first.group == palette.session_group(1)

    def test_active_token_has_indicator(self, plain):
        views = [make_view(1, surface=500), make_view(2, surface=501)]
        rendered = render(views, FocusContext(current_surface=500), 100, plain)
        assert "[1●]" in rendered.text
        assert "[2]" in rendered.text

    def test_truncation_never_emits_partial_token(self, plain):
        views = [make_view(n) for n in range(1, 6)]
        rendered = render(views, NO_FOCUS, 20, plain)

        assert rendered.truncated is True
        assert rendered.width == 16
        assert rendered.text == "  [1] [2] ...   "
        assert "[3" not in rendered.text
        marker = rendered.regions[-1]
        assert rendered.text[marker.start:marker.end] == "..."
        assert marker.group == palette.STATUS_BAR_GROUP

    def test_region_offsets_match_tokens(self, plain):
        views = [make_view(n) for n in (1, 2)]
        rendered = render(views, NO_FOCUS, 100, plain)
        assert [rendered.text[r.start:r.end] for r in rendered.regions] == ["[1]", "[2]"]

    def test_widths_are_display_cells(self):
        config = StatusBarConfig(emphasis=False, active_indicator="界")
        token = build_token(make_view(1), True, config)
        assert token.text == "[1界]"
        assert token.width == 5
        assert len(token.text) == 4

    def test_indicator_reserves_two_columns(self, plain):
        token = build_token(make_view(1), True, plain)
        assert token.text == "[1●]"
        assert token.width == 5

        views = [make_view(1, surface=500), make_view(2)]
        rendered = render(views, FocusContext(current_surface=500), 100, plain)
        # "[1●] [2]" is 9 columns wide, centered in 13.
        assert rendered.width == 13
        assert rendered.text == "  [1●] [2]  "

    def test_indicator_width_can_be_measured(self):
        config = StatusBarConfig(emphasis=False, active_indicator_width=None)
        assert build_token(make_view(1), True, config).width == 4


class TestEmphasisVariant:
    """Tests for the bubble token style."""

    def test_active_and_inactive_tokens(self, bubbles):
        active = build_token(make_view(1), True, bubbles)
        inactive = build_token(make_view(2), False, bubbles)

        assert active.text == "< 1● >"
        assert [r.group for r in active.regions] == [
            palette.cap_group(1, "left"),
            palette.active_group(1),
            palette.cap_group(1, "right"),
        ]
        assert inactive.text == "<2>"
        assert [r.group for r in inactive.regions] == [
            palette.cap_group(2, "left", dim=True),
            palette.dim_group(2),
            palette.cap_group(2, "right", dim=True),
        ]

    def test_editor_focus_falls_back_to_last_focused(self, bubbles):
        views = [make_view(1, channel=10), make_view(2, channel=11)]
        focus = FocusContext(current_surface=700, editor_surface=700, last_focused=11)

        rendered = render(views, focus, 100, bubbles)
        assert "<1> < 2● >" in rendered.text

    def test_no_truncation_when_too_wide(self, bubbles):
        views = [make_view(n, color=1) for n in range(1, 30)]
        rendered = render(views, NO_FOCUS, 40, bubbles)

        assert rendered.truncated is False
        assert rendered.width == 32
        assert cell_len(rendered.text) > rendered.width
        assert rendered.text.startswith("<1>")


class TestStatusBarSurface:
    """Tests for the status bar controller over the host."""

    def test_shown_while_sessions_exist(self, orchestrator, host, backends):
        orchestrator.controller.spawn()
        bar = orchestrator.status_bar
        assert bar.is_shown()

        geometry = host.get_surface_config(orchestrator.state.status_bar.surface)
        assert geometry.height == 1
        assert geometry.row == host.lines() - 3
        assert geometry.focusable is False
        assert geometry.zindex == 45
        assert geometry.col == (host.columns() - geometry.width) // 2

        backends.last.finish(0)
        host.process_events()
        assert not bar.is_shown()

    def test_toggle_keeps_bar_hidden(self, orchestrator):
        orchestrator.toggle_status_bar()
        orchestrator.controller.spawn()
        assert not orchestrator.status_bar.is_shown()

        orchestrator.toggle_status_bar()
        assert orchestrator.status_bar.is_shown()

    def test_painted_line_marks_active_session(self, orchestrator, host):
        orchestrator.controller.spawn()
        orchestrator.controller.spawn()
        line = host.get_lines(orchestrator.state.status_bar.buffer)[0]
        assert "2●" in line
        assert "1●" not in line

    def test_reposition_on_resize(self, orchestrator, host):
        orchestrator.controller.spawn()
        host.resize(60, 20)
        geometry = host.get_surface_config(orchestrator.state.status_bar.surface)
        assert geometry.row == 17
        assert geometry.col == (60 - geometry.width) // 2
