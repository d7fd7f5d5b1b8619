"""Instance registry: session tracking, color identity, cwd scoping."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable

from loguru import logger

from agent_orchestrator.core.state import Session, SessionView, StateStore
from agent_orchestrator.host.ports import SurfacePort

if TYPE_CHECKING:
    from agent_orchestrator.core.status_bar import StatusBar


class InstanceRegistry:
    """Registers and queries sessions held in the state store.

    Display numbers are positional: they are assigned fresh on every query, so
    removing a session never leaves a gap.
    """

    def __init__(
        self,
        state: StateStore,
        surfaces: SurfacePort,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._surfaces = surfaces
        self._clock = clock
        self._status_bar: StatusBar | None = None

    def set_status_bar(self, status_bar: StatusBar) -> None:
        self._status_bar = status_bar

    def register(
        self,
        channel: int,
        cwd: str,
        variant: str,
        buffer: int | None = None,
    ) -> Session:
        """Track a spawned session; re-registering a channel is a no-op."""
        existing = self.find_by_channel(channel)
        if existing is not None:
            return existing

        session = Session(
            channel=channel,
            buffer=buffer,
            color_index=self._state.take_color_index(),
            cwd=cwd,
            variant=variant,
            created_at=self._clock(),
        )
        self._state.sessions.append(session)
        if buffer is not None and self._surfaces.surface_buffer(self._surfaces.current_surface()) == buffer:
            # Spawned into the focused surface before it was tracked.
            self._state.last_focused = channel
        logger.debug(
            f"[registry] registered channel={channel} buffer={buffer} color={session.color_index} cwd={cwd}"
        )

        if self._status_bar is not None:
            self._status_bar.show()
            self._status_bar.update()
        return session

    def unregister(self, channel: int) -> bool:
        """Remove the session for ``channel``; returns whether one existed."""
        sessions = self._state.sessions
        for index, session in enumerate(sessions):
            if session.channel != channel:
                continue
            del sessions[index]
            if self._state.last_focused == channel:
                self._state.last_focused = None
            logger.debug(f"[registry] unregistered channel={channel}, {len(sessions)} left")

            if self._status_bar is not None:
                if not sessions:
                    self._status_bar.hide()
                else:
                    self._status_bar.update()
            return True
        return False

    def find_by_channel(self, channel: int) -> Session | None:
        for session in self._state.sessions:
            if session.channel == channel:
                return session
        return None

    def find_by_buffer(self, buffer: int) -> Session | None:
        for session in self._state.sessions:
            if session.buffer is not None and session.buffer == buffer:
                return session
        return None

    def query_all(self) -> list[SessionView]:
        """Every session, numbered by position in the full list."""
        buffer_to_surface = self._surface_lookup()
        return [
            SessionView(session=session, number=number, surface=buffer_to_surface.get(session.buffer))
            for number, session in enumerate(self._state.sessions, start=1)
        ]

    def query_scoped(self, cwd: str) -> list[SessionView]:
        """Sessions spawned in ``cwd``, renumbered 1..k."""
        buffer_to_surface = self._surface_lookup()
        scoped = [session for session in self._state.sessions if session.cwd == cwd]
        return [
            SessionView(session=session, number=number, surface=buffer_to_surface.get(session.buffer))
            for number, session in enumerate(scoped, start=1)
        ]

    def count_all(self) -> int:
        return len(self._state.sessions)

    def count_scoped(self, cwd: str) -> int:
        return sum(1 for session in self._state.sessions if session.cwd == cwd)

    def surface_for(self, session: Session | SessionView) -> int | None:
        """Surface currently showing the session's buffer, if any."""
        if session.buffer is None:
            return None
        for surface in self._surfaces.list_surfaces():
            if not self._surfaces.surface_is_valid(surface):
                continue
            try:
                if self._surfaces.surface_buffer(surface) == session.buffer:
                    return surface
            except ValueError:
                continue
        return None

    def _surface_lookup(self) -> dict[int | None, int]:
        # One pass over surfaces per query; enumerating surfaces is the costly call.
        lookup: dict[int | None, int] = {}
        for surface in self._surfaces.list_surfaces():
            if not self._surfaces.surface_is_valid(surface):
                continue
            try:
                lookup.setdefault(self._surfaces.surface_buffer(surface), surface)
            except ValueError:
                continue
        return lookup
