"""Tests for the unified picker."""

import pytest

from agent_orchestrator.core.picker import format_time_ago, promote_last_focused
from agent_orchestrator.core.state import Session, SessionView

SPAWN_LABELS = ["+ New Claude", "+ Resume Claude", "+ Continue Claude"]


def collect():
    handles = []
    return handles, handles.append


class TestTimeAgo:
    """Tests for relative age formatting."""

    @pytest.mark.parametrize(
        "age,expected",
        [
            (0, "just now"),
            (59, "just now"),
            (60, "1m ago"),
            (3599, "59m ago"),
            (3600, "1h ago"),
            (86399, "23h ago"),
            (86400, "1d ago"),
            (3 * 86400 + 5, "3d ago"),
        ],
    )
    def test_buckets(self, age, expected):
        assert format_time_ago(1000.0, now=1000.0 + age) == expected

    def test_missing_timestamp(self):
        assert format_time_ago(None) == ""


class TestOrdering:
    """Tests for item order and labels."""

    def test_last_focused_promoted_before_spawn_options(self, orchestrator, host, chooser):
        first = orchestrator.controller.spawn()
        second = orchestrator.controller.spawn()
        orchestrator.state.last_focused = second.channel

        orchestrator.picker.select(lambda handle: None)

        assert host.last_prompt == "Claude Terminal:"
        assert host.last_labels == [
            "[2] Claude (Blue) - just now",
            "[1] Claude (Red) - just now",
            *SPAWN_LABELS,
        ]
        items = orchestrator.picker.items()
        assert [item.view.channel for item in items[:2]] == [second.channel, first.channel]
        assert [item.variant for item in items[2:]] == ["fresh", "resume", "continue"]

    def test_promotion_is_a_single_move(self):
        views = [
            SessionView(Session(channel=ch, buffer=None, color_index=1, cwd="/a", variant="fresh", created_at=0.0), n, None)
            for n, ch in enumerate((10, 11, 12), start=1)
        ]
        assert [v.channel for v in promote_last_focused(views, 12)] == [12, 10, 11]
        assert [v.channel for v in promote_last_focused(views, 10)] == [10, 11, 12]
        assert [v.channel for v in promote_last_focused(views, 99)] == [10, 11, 12]

    def test_labels_show_variant_and_age(self, orchestrator, host, clock):
        orchestrator.controller.spawn("resume")
        clock.advance(150)

        orchestrator.picker.select(lambda handle: None)
        assert host.last_labels[0] == "[1] Claude (Red) [resumed] - 2m ago"

    def test_only_current_directory_sessions(self, orchestrator, host):
        orchestrator.controller.spawn()
        host.chdir("/work/beta")

        orchestrator.picker.select(lambda handle: None)
        assert host.last_labels == SPAWN_LABELS


class TestSelection:
    """Tests for dispatching the choice."""

    def test_cancel_has_no_effect(self, orchestrator, host, chooser, backends):
        handles, callback = collect()
        chooser.answer = None

        orchestrator.picker.select(callback)

        assert chooser.calls == 1
        assert handles == []
        assert backends.backends == []
        assert host.notifications == []

    def test_spawn_option_spawns_and_returns_new_handle(self, orchestrator, chooser):
        handles, callback = collect()
        chooser.answer = "+ Continue"

        orchestrator.picker.select(callback)

        assert len(handles) == 1
        handle = handles[0]
        assert handle.is_new is True
        assert handle.surface is None
        assert orchestrator.registry.find_by_channel(handle.channel).variant == "continue"

    def test_spawn_failure_is_reported_without_callback(self, orchestrator, host, chooser, installed):
        handles, callback = collect()
        installed.clear()
        chooser.answer = "+ New"

        orchestrator.picker.select(callback)

        assert handles == []
        assert host.notifications == [("error", "Command 'claude' not found. Is Claude CLI installed?")]

    def test_existing_session_handle(self, orchestrator, host, chooser):
        session = orchestrator.controller.spawn()
        handles, callback = collect()
        chooser.answer = "[1]"

        orchestrator.picker.select(callback)

        assert handles[0].is_new is False
        assert handles[0].channel == session.channel
        assert handles[0].surface == host.current_surface()

    def test_select_existing_without_sessions(self, orchestrator, host, chooser):
        handles, callback = collect()
        orchestrator.picker.select_existing(callback)

        assert chooser.calls == 0
        assert host.notifications == [("warn", "No Claude terminals found in current project")]

    def test_select_existing_omits_spawn_options(self, orchestrator, host, chooser):
        orchestrator.controller.spawn("resume")
        handles, callback = collect()
        chooser.answer = 0

        orchestrator.picker.select_existing(callback)

        assert host.last_prompt == "Select Claude Terminal:"
        assert host.last_labels == ["[1] Claude (Red) - just now"]
        assert len(handles) == 1

    def test_select_and_execute_revalidates_buffer(self, orchestrator, host, chooser):
        session = orchestrator.controller.spawn()
        errors = []
        actions = []

        def choose_then_wipe(items, labels):
            host.delete_buffer(session.buffer, force=True)
            return items[0]

        host.chooser = choose_then_wipe
        orchestrator.picker.select_and_execute(actions.append, on_error=errors.append)

        assert actions == []
        assert errors == ["Selected terminal is no longer valid"]

    def test_select_requires_controller(self, host, config, clock):
        from agent_orchestrator.core.orchestrator import Orchestrator

        unwired = Orchestrator(host, config, clock=clock)
        with pytest.raises(RuntimeError, match="not initialized"):
            unwired.picker.select(lambda handle: None)
