"""Host lifecycle signals and a lightweight signal bus."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable

EventHandler = Callable[[object], None]

PROCESS_TERMINATED = "process_terminated"
BUFFER_REMOVED = "buffer_removed"
GEOMETRY_CHANGED = "geometry_changed"
FOCUS_CHANGED = "focus_changed"


@dataclass(frozen=True)
class ProcessTerminated:
    """A terminal channel's process has exited."""

    channel: int
    buffer: int
    exit_code: int


@dataclass(frozen=True)
class BufferRemoved:
    """A buffer was deleted."""

    buffer: int


@dataclass(frozen=True)
class GeometryChanged:
    """Editor grid was resized."""

    columns: int
    lines: int


@dataclass(frozen=True)
class FocusChanged:
    """Focus moved between surfaces or buffers."""

    old_surface: int | None
    new_surface: int
    old_buffer: int | None
    new_buffer: int


class EventHub:
    """Simple in-process pub/sub for host signals."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event_name: str, payload: object) -> None:
        for handler in list(self._handlers.get(event_name, [])):
            handler(payload)
