"""Tests for the in-memory host and channel pool."""

import pytest

from agent_orchestrator.host.events import BUFFER_REMOVED, FOCUS_CHANGED
from agent_orchestrator.host.ports import SurfaceConfig

FLOAT = SurfaceConfig(width=10, height=2, row=1, col=1)


class TestSurfaces:
    """Tests for surface bookkeeping."""

    def test_last_normal_surface_cannot_close(self, host):
        with pytest.raises(ValueError, match="Cannot close last window"):
            host.close_surface(host.current_surface())

    def test_closing_focused_float_returns_to_root(self, host):
        root = host.current_surface()
        buffer = host.create_buffer(listed=False, scratch=True)
        surface = host.open_surface(buffer, FLOAT, enter=True)
        assert host.current_surface() == surface

        host.close_surface(surface)
        assert host.current_surface() == root
        assert not host.surface_is_valid(surface)

    def test_focus_events(self, host):
        seen = []
        host.events.subscribe(FOCUS_CHANGED, seen.append)
        buffer = host.create_buffer(listed=True, scratch=False)
        old = host.current_buffer()

        host.show_buffer(buffer)

        assert len(seen) == 1
        assert (seen[0].old_buffer, seen[0].new_buffer) == (old, buffer)
        assert host.alternate_buffer() == old

    def test_cursor_is_clamped(self, host):
        surface = host.current_surface()
        host.set_lines(host.current_buffer(), ["abc"])
        host.set_cursor(surface, (9, 9))
        assert host.get_cursor(surface) == (1, 3)


class TestBuffers:
    """Tests for buffer deletion."""

    def test_deleting_shown_buffer_falls_back_to_alternate(self, host):
        first = host.current_buffer()
        second = host.create_buffer(listed=True, scratch=False)
        host.show_buffer(second)

        host.delete_buffer(second)
        assert host.current_buffer() == first

    def test_deleting_float_buffer_closes_float(self, host):
        buffer = host.create_buffer(listed=False, scratch=True)
        surface = host.open_surface(buffer, FLOAT, enter=False)
        removed = []
        host.events.subscribe(BUFFER_REMOVED, removed.append)

        host.delete_buffer(buffer)

        assert not host.surface_is_valid(surface)
        assert [event.buffer for event in removed] == [buffer]

    def test_running_job_needs_force(self, host, backends):
        buffer = host.create_buffer(listed=True, scratch=False)
        host.open_terminal(buffer, "claude", host.getcwd())

        with pytest.raises(ValueError, match="running job"):
            host.delete_buffer(buffer)
        host.delete_buffer(buffer, force=True)
        assert backends.last.closed

    def test_invalid_buffer(self, host):
        with pytest.raises(ValueError, match="Invalid buffer id"):
            host.get_lines(12345)


class TestChannels:
    """Tests for channel lifecycle through the host."""

    def test_open_failure_returns_zero(self, host, backends):
        backends.fail = True
        buffer = host.create_buffer(listed=True, scratch=False)
        assert host.open_terminal(buffer, "claude", host.getcwd()) == 0

    def test_exit_callback_runs_on_next_tick(self, host, backends):
        calls = []
        buffer = host.create_buffer(listed=True, scratch=False)
        channel = host.open_terminal(buffer, "claude", host.getcwd(), on_exit=lambda ch, code: calls.append((ch, code)))

        backends.last.finish(3)
        host.process_events()

        assert calls == [(channel, 3)]
        assert host.channel_is_running(channel) is False

    def test_send_to_stopped_channel_raises(self, host, backends):
        buffer = host.create_buffer(listed=True, scratch=False)
        channel = host.open_terminal(buffer, "claude", host.getcwd())
        backends.last.finish(0)
        host.process_events()

        with pytest.raises(RuntimeError, match="Invalid channel id"):
            host.channel_send(channel, "x")

    def test_scheduled_callbacks_wait_for_tick(self, host):
        order = []

        def outer():
            order.append("outer")
            host.schedule(lambda: order.append("inner"))

        host.schedule(outer)
        assert order == []
        host.process_events()
        assert order == ["outer"]
        host.process_events()
        assert order == ["outer", "inner"]

    def test_exited_channels_are_released(self, host, backends):
        for _ in range(5):
            buffer = host.create_buffer(listed=True, scratch=False)
            host.open_terminal(buffer, "claude", host.getcwd())
            backends.last.output.append("bye\r\n")
            backends.last.finish(0)
            host.process_events()

            assert host.get_lines(buffer) == ["bye", "[Process exited 0]"]

        assert len(host.channels) == 0
        assert all(backend.closed for backend in backends.backends)

    def test_killed_channel_is_released(self, orchestrator, host):
        orchestrator.spawn()
        orchestrator.kill(1)
        host.process_events()

        assert len(host.channels) == 0
