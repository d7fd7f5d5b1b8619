"""Tests for the instance registry."""

import pytest

from agent_orchestrator.core.registry import InstanceRegistry
from agent_orchestrator.core.state import COLOR_COUNT, StateStore


@pytest.fixture
def state():
    return StateStore()


@pytest.fixture
def registry(state, host, clock):
    return InstanceRegistry(state, host, clock=clock)


class TestRegistration:
    """Tests for register/unregister bookkeeping."""

    def test_counts_follow_register_and_unregister(self, registry):
        registry.register(10, "/a", "fresh")
        registry.register(11, "/a", "fresh")
        registry.register(12, "/b", "resume")

        assert registry.count_all() == 3
        assert registry.count_scoped("/a") == 2
        assert registry.count_scoped("/b") == 1

        assert registry.unregister(11) is True
        assert registry.count_all() == 2
        assert registry.count_scoped("/a") == 1

    def test_register_is_idempotent_per_channel(self, registry, state):
        first = registry.register(10, "/a", "fresh")
        again = registry.register(10, "/elsewhere", "resume")

        assert again is first
        assert registry.count_all() == 1
        # No color consumed by the duplicate.
        assert state.next_color_index == 2

    def test_unregister_unknown_channel_is_noop(self, registry):
        registry.register(10, "/a", "fresh")
        assert registry.unregister(99) is False
        assert registry.unregister(10) is True
        assert registry.unregister(10) is False
        assert registry.count_all() == 0

    def test_unregister_clears_last_focused(self, registry, state):
        registry.register(10, "/a", "fresh")
        state.last_focused = 10
        registry.unregister(10)
        assert state.last_focused is None

    def test_created_at_uses_clock(self, registry, clock):
        session = registry.register(10, "/a", "fresh")
        assert session.created_at == clock.now

    def test_find_by_buffer(self, registry):
        registry.register(10, "/a", "fresh", buffer=42)
        assert registry.find_by_buffer(42).channel == 10
        assert registry.find_by_buffer(43) is None


class TestColors:
    """Tests for color assignment."""

    def test_colors_are_sequential(self, registry):
        colors = [registry.register(ch, "/a", "fresh").color_index for ch in range(10, 14)]
        assert colors == [1, 2, 3, 4]

    def test_ninth_session_reuses_first_color(self, registry):
        sessions = [registry.register(ch, "/a", "fresh") for ch in range(10, 10 + COLOR_COUNT + 1)]
        assert sessions[8].color_index == sessions[0].color_index == 1

    def test_colors_are_not_reused_after_unregister(self, registry):
        registry.register(10, "/a", "fresh")
        registry.unregister(10)
        assert registry.register(11, "/a", "fresh").color_index == 2

    def test_reset_restarts_colors(self, registry, state):
        registry.register(10, "/a", "fresh")
        state.reset()
        assert registry.register(11, "/a", "fresh").color_index == 1


class TestQueries:
    """Tests for numbering and cwd scoping."""

    def test_scoped_numbers_are_contiguous(self, registry):
        registry.register(10, "/a", "fresh")
        registry.register(11, "/b", "fresh")
        registry.register(12, "/a", "fresh")
        registry.register(13, "/a", "fresh")
        registry.unregister(12)

        scoped = registry.query_scoped("/a")
        assert [view.number for view in scoped] == [1, 2]
        assert [view.channel for view in scoped] == [10, 13]

    def test_all_numbers_follow_full_list(self, registry):
        registry.register(10, "/a", "fresh")
        registry.register(11, "/b", "fresh")
        assert [(v.number, v.channel) for v in registry.query_all()] == [(1, 10), (2, 11)]

    def test_scoping_excludes_other_directories(self, registry):
        registry.register(10, "/a", "fresh")
        registry.register(11, "/b", "fresh")
        assert [view.channel for view in registry.query_scoped("/b")] == [11]
        assert registry.query_scoped("/c") == []

    def test_surface_resolved_from_host(self, registry, host):
        registry.register(10, "/a", "fresh", buffer=1)
        registry.register(11, "/a", "fresh", buffer=None)

        views = registry.query_all()
        assert views[0].surface == host.current_surface()
        assert views[1].surface is None
        assert registry.surface_for(views[0].session) == host.current_surface()

    def test_register_in_focused_surface_sets_last_focused(self, registry, state, host):
        registry.register(10, "/a", "fresh", buffer=host.current_buffer())
        assert state.last_focused == 10
