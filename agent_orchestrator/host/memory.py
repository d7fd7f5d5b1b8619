"""In-process host: surfaces and buffers in memory, real PTY channels."""

from __future__ import annotations

import itertools
import os
import shutil
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from loguru import logger

from agent_orchestrator.host.channels import ChannelPool
from agent_orchestrator.host.events import (
    BUFFER_REMOVED,
    FOCUS_CHANGED,
    GEOMETRY_CHANGED,
    PROCESS_TERMINATED,
    BufferRemoved,
    EventHub,
    FocusChanged,
    GeometryChanged,
    ProcessTerminated,
)
from agent_orchestrator.host.ports import (
    INFO,
    BufferOptions,
    ExitCallback,
    StyleRegion,
    SurfaceConfig,
)

Chooser = Callable[[Sequence[Any], list[str]], Any]


@dataclass
class Buffer:
    handle: int
    name: str
    listed: bool
    scratch: bool
    options: BufferOptions
    lines: list[str] = field(default_factory=lambda: [""])
    marks: dict[str, tuple[int, int]] = field(default_factory=dict)
    flags: dict[str, Any] = field(default_factory=dict)
    regions: list[StyleRegion] = field(default_factory=list)
    channel: int = 0


@dataclass
class Surface:
    handle: int
    buffer: int
    config: SurfaceConfig | None = None
    cursor: tuple[int, int] = (1, 0)
    alternate: int | None = None

    @property
    def floating(self) -> bool:
        return self.config is not None


class InMemoryHost:
    """Host port implementation that keeps the whole UI model in memory.

    Selection is delegated to ``chooser``: it receives the items and their
    formatted labels and returns the chosen item, or ``None`` to cancel.
    """

    def __init__(
        self,
        cwd: str | None = None,
        columns: int = 120,
        lines: int = 40,
        channels: ChannelPool | None = None,
        which: Callable[[str], str | None] = shutil.which,
        chooser: Chooser | None = None,
    ) -> None:
        self.events = EventHub()
        self.channels = channels or ChannelPool()
        self.chooser = chooser
        self.notifications: list[tuple[str, str]] = []
        self.last_prompt: str = ""
        self.last_labels: list[str] = []
        self._which = which
        self._cwd = cwd or os.getcwd()
        self._columns = columns
        self._lines = lines
        self._mode = "normal"
        self._pending: deque[Callable[[], None]] = deque()
        self._buffers: dict[int, Buffer] = {}
        self._surfaces: dict[int, Surface] = {}
        self._buffer_ids = itertools.count(1)
        self._surface_ids = itertools.count(1000)

        first = self.create_buffer(listed=True, scratch=False)
        root = Surface(handle=next(self._surface_ids), buffer=first)
        self._surfaces[root.handle] = root
        self._current = root.handle

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def schedule(self, callback: Callable[[], None]) -> None:
        self._pending.append(callback)

    def process_events(self) -> int:
        """Run one tick: reap channels, then callbacks queued before this tick."""
        updated, exited = self.channels.pump()
        for channel in updated:
            self._refresh_terminal(channel.buffer, channel.handle)
        for channel in exited:
            self._refresh_terminal(channel.buffer, channel.handle)
            buf = self._buffers.get(channel.buffer)
            if buf is not None:
                buf.lines.append(f"[Process exited {channel.exit_code}]")
            self.channels.release(channel.handle)
            if channel.on_exit is not None:
                self.schedule(
                    lambda cb=channel.on_exit, handle=channel.handle, code=channel.exit_code or 0: cb(handle, code)
                )
            self.events.publish(
                PROCESS_TERMINATED,
                ProcessTerminated(channel=channel.handle, buffer=channel.buffer, exit_code=channel.exit_code or 0),
            )

        ran = 0
        for _ in range(len(self._pending)):
            callback = self._pending.popleft()
            callback()
            ran += 1
        return ran

    def resize(self, columns: int, lines: int) -> None:
        self._columns = columns
        self._lines = lines
        self.events.publish(GEOMETRY_CHANGED, GeometryChanged(columns=columns, lines=lines))

    def _refresh_terminal(self, buffer: int, handle: int) -> None:
        buf = self._buffers.get(buffer)
        if buf is not None:
            buf.lines = self.channels.snapshot(handle) or [""]

    # ------------------------------------------------------------------
    # Notifications and selection
    # ------------------------------------------------------------------

    def notify(self, message: str, level: str = INFO) -> None:
        logger.debug(f"[notify:{level}] {message}")
        self.notifications.append((level, message))

    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Any | None], None],
    ) -> None:
        self.last_prompt = prompt
        self.last_labels = [format_item(item) for item in items]
        choice = self.chooser(items, self.last_labels) if self.chooser else None
        on_choice(choice)

    # ------------------------------------------------------------------
    # Buffers
    # ------------------------------------------------------------------

    def create_buffer(
        self,
        listed: bool,
        scratch: bool,
        name: str | None = None,
        options: BufferOptions | None = None,
    ) -> int:
        handle = next(self._buffer_ids)
        self._buffers[handle] = Buffer(
            handle=handle,
            name=name or "",
            listed=listed,
            scratch=scratch,
            options=options or BufferOptions(),
        )
        return handle

    def buffer_is_valid(self, buffer: int | None) -> bool:
        return buffer is not None and buffer in self._buffers

    def buffer(self, buffer: int) -> Buffer:
        try:
            return self._buffers[buffer]
        except KeyError:
            raise ValueError(f"Invalid buffer id: {buffer}") from None

    def list_buffers(self) -> list[int]:
        return list(self._buffers)

    def get_lines(self, buffer: int) -> list[str]:
        return list(self.buffer(buffer).lines)

    def set_lines(self, buffer: int, lines: Sequence[str]) -> None:
        self.buffer(buffer).lines = list(lines) or [""]

    def get_mark(self, buffer: int, name: str) -> tuple[int, int] | None:
        return self.buffer(buffer).marks.get(name)

    def set_mark(self, buffer: int, name: str, line: int, col: int) -> None:
        self.buffer(buffer).marks[name] = (line, col)

    def del_mark(self, buffer: int, name: str) -> None:
        self.buffer(buffer).marks.pop(name, None)

    def get_flag(self, buffer: int, name: str) -> Any:
        return self.buffer(buffer).flags.get(name)

    def set_flag(self, buffer: int, name: str, value: Any) -> None:
        self.buffer(buffer).flags[name] = value

    def set_regions(self, buffer: int, regions: Sequence[StyleRegion]) -> None:
        self.buffer(buffer).regions = list(regions)

    def delete_buffer(self, buffer: int, force: bool = False) -> None:
        buf = self.buffer(buffer)
        if buf.channel and self.channels.is_running(buf.channel):
            if not force:
                raise ValueError(f"Buffer {buffer} has a running job")
            self.channels.stop(buf.channel)

        for surface in list(self._surfaces.values()):
            if surface.buffer != buffer:
                continue
            if surface.floating:
                self.close_surface(surface.handle)
            else:
                replacement = surface.alternate
                if not self.buffer_is_valid(replacement) or replacement == buffer:
                    replacement = self.create_buffer(listed=True, scratch=False)
                self._switch(surface, replacement)

        del self._buffers[buffer]
        self.events.publish(BUFFER_REMOVED, BufferRemoved(buffer=buffer))

    # ------------------------------------------------------------------
    # Surfaces
    # ------------------------------------------------------------------

    def open_surface(self, buffer: int, config: SurfaceConfig, enter: bool) -> int:
        self.buffer(buffer)
        surface = Surface(handle=next(self._surface_ids), buffer=buffer, config=config)
        self._surfaces[surface.handle] = surface
        if enter:
            self.set_current_surface(surface.handle)
        return surface.handle

    def close_surface(self, surface: int) -> None:
        target = self._surface(surface)
        if not target.floating and sum(1 for s in self._surfaces.values() if not s.floating) == 1:
            raise ValueError("Cannot close last window")
        del self._surfaces[surface]
        if self._current == surface:
            fallback = next(s for s in self._surfaces.values() if not s.floating)
            self._mode = "normal"
            self._focus(surface, target.buffer, fallback.handle)

    def surface_is_valid(self, surface: int | None) -> bool:
        return surface is not None and surface in self._surfaces

    def get_surface_config(self, surface: int) -> SurfaceConfig | None:
        return self._surface(surface).config

    def set_surface_config(self, surface: int, config: SurfaceConfig) -> None:
        self._surface(surface).config = config

    def list_surfaces(self) -> list[int]:
        return list(self._surfaces)

    def surface_buffer(self, surface: int) -> int:
        return self._surface(surface).buffer

    def current_surface(self) -> int:
        return self._current

    def current_buffer(self) -> int:
        return self._surface(self._current).buffer

    def set_current_surface(self, surface: int) -> None:
        target = self._surface(surface)
        if surface == self._current:
            return
        old = self._current
        old_buffer = self._surfaces[old].buffer if old in self._surfaces else None
        self._mode = "normal"
        self._focus(old, old_buffer, target.handle)

    def set_surface_buffer(self, surface: int, buffer: int) -> None:
        self.buffer(buffer)
        self._switch(self._surface(surface), buffer)

    def show_buffer(self, buffer: int) -> None:
        self.buffer(buffer)
        self._switch(self._surface(self._current), buffer)

    def alternate_buffer(self) -> int | None:
        alternate = self._surface(self._current).alternate
        return alternate if self.buffer_is_valid(alternate) else None

    def get_cursor(self, surface: int) -> tuple[int, int]:
        return self._surface(surface).cursor

    def set_cursor(self, surface: int, position: tuple[int, int]) -> None:
        target = self._surface(surface)
        lines = self._buffers[target.buffer].lines
        line = min(max(position[0], 1), len(lines))
        col = min(max(position[1], 0), len(lines[line - 1]))
        target.cursor = (line, col)

    def columns(self) -> int:
        return self._columns

    def lines(self) -> int:
        return self._lines

    def mode(self) -> str:
        return self._mode

    def start_insert(self, append: bool = False) -> None:
        buf = self._buffers[self.current_buffer()]
        if buf.options.buftype == "terminal":
            self._mode = "terminal"
            return
        self._mode = "insert"
        if append:
            surface = self._surface(self._current)
            line, _ = surface.cursor
            surface.cursor = (line, len(buf.lines[line - 1]))

    def stop_insert(self) -> None:
        self._mode = "normal"

    def getcwd(self) -> str:
        return self._cwd

    def chdir(self, cwd: str) -> None:
        self._cwd = cwd

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def open_terminal(
        self,
        buffer: int,
        command: str,
        cwd: str,
        on_exit: ExitCallback | None = None,
    ) -> int:
        buf = self.buffer(buffer)
        handle = self.channels.open(buffer, command, cwd, on_exit)
        if handle <= 0:
            return handle
        buf.channel = handle
        buf.options = BufferOptions(buftype="terminal")
        buf.flags["terminal_job_id"] = handle
        return handle

    def channel_send(self, channel: int, data: str) -> None:
        self.channels.send(channel, data)

    def channel_is_running(self, channel: int) -> bool:
        return self.channels.is_running(channel)

    def channel_stop(self, channel: int) -> None:
        self.channels.stop(channel)

    def executable(self, name: str) -> bool:
        return self._which(name) is not None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _surface(self, surface: int) -> Surface:
        try:
            return self._surfaces[surface]
        except KeyError:
            raise ValueError(f"Invalid window id: {surface}") from None

    def _switch(self, surface: Surface, buffer: int) -> None:
        if surface.buffer == buffer:
            return
        old_buffer = surface.buffer
        surface.alternate = old_buffer
        surface.buffer = buffer
        surface.cursor = (1, 0)
        if surface.handle == self._current:
            self._mode = "normal"
            self.events.publish(
                FOCUS_CHANGED,
                FocusChanged(
                    old_surface=surface.handle,
                    new_surface=surface.handle,
                    old_buffer=old_buffer,
                    new_buffer=buffer,
                ),
            )

    def _focus(self, old_surface: int | None, old_buffer: int | None, new_surface: int) -> None:
        self._current = new_surface
        self.events.publish(
            FOCUS_CHANGED,
            FocusChanged(
                old_surface=old_surface,
                new_surface=new_surface,
                old_buffer=old_buffer,
                new_buffer=self._surfaces[new_surface].buffer,
            ),
        )
