"""Host port contracts.

Components talk to the editing environment only through these protocols.
Handles (buffers, surfaces, channels) are opaque integers; ``0`` or a
negative value never names a live object.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Protocol, Sequence

INFO = "info"
WARN = "warn"
ERROR = "error"

ExitCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SurfaceConfig:
    """Geometry and style of a floating display surface."""

    width: int
    height: int
    row: int
    col: int
    relative: str = "editor"
    style: str = "minimal"
    border: str = "none"
    title: str = ""
    title_pos: str = "center"
    focusable: bool = True
    zindex: int = 50

    def with_title(self, title: str) -> "SurfaceConfig":
        return replace(self, title=title)


@dataclass(frozen=True)
class StyleRegion:
    """Style group applied to ``text[start:end]`` of a rendered line."""

    start: int
    end: int
    group: str


@dataclass(frozen=True)
class BufferOptions:
    """Per-buffer options passed at creation time."""

    buftype: str = ""
    bufhidden: str = ""
    filetype: str = ""
    swapfile: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


class NotifyPort(Protocol):
    def notify(self, message: str, level: str = INFO) -> None:
        """Emit a user-visible message at ``info``, ``warn`` or ``error``."""


class BufferPort(Protocol):
    def create_buffer(
        self,
        listed: bool,
        scratch: bool,
        name: str | None = None,
        options: BufferOptions | None = None,
    ) -> int: ...

    def buffer_is_valid(self, buffer: int | None) -> bool: ...

    def get_lines(self, buffer: int) -> list[str]: ...

    def set_lines(self, buffer: int, lines: Sequence[str]) -> None: ...

    def get_mark(self, buffer: int, name: str) -> tuple[int, int] | None: ...

    def set_mark(self, buffer: int, name: str, line: int, col: int) -> None: ...

    def del_mark(self, buffer: int, name: str) -> None: ...

    def get_flag(self, buffer: int, name: str) -> Any: ...

    def set_flag(self, buffer: int, name: str, value: Any) -> None: ...

    def delete_buffer(self, buffer: int, force: bool = False) -> None: ...

    def set_regions(self, buffer: int, regions: Sequence[StyleRegion]) -> None: ...


class SurfacePort(Protocol):
    def open_surface(self, buffer: int, config: SurfaceConfig, enter: bool) -> int: ...

    def close_surface(self, surface: int) -> None: ...

    def surface_is_valid(self, surface: int | None) -> bool: ...

    def get_surface_config(self, surface: int) -> SurfaceConfig | None: ...

    def set_surface_config(self, surface: int, config: SurfaceConfig) -> None: ...

    def list_surfaces(self) -> list[int]: ...

    def surface_buffer(self, surface: int) -> int: ...

    def current_surface(self) -> int: ...

    def set_current_surface(self, surface: int) -> None: ...

    def set_surface_buffer(self, surface: int, buffer: int) -> None: ...

    def show_buffer(self, buffer: int) -> None:
        """Display ``buffer`` in the current surface."""

    def alternate_buffer(self) -> int | None:
        """Buffer shown in the current surface before the last switch."""

    def get_cursor(self, surface: int) -> tuple[int, int]: ...

    def set_cursor(self, surface: int, position: tuple[int, int]) -> None: ...

    def columns(self) -> int: ...

    def lines(self) -> int: ...

    def mode(self) -> str: ...

    def start_insert(self, append: bool = False) -> None: ...

    def stop_insert(self) -> None: ...

    def getcwd(self) -> str: ...


class ChannelPort(Protocol):
    def open_terminal(
        self,
        buffer: int,
        command: str,
        cwd: str,
        on_exit: ExitCallback | None = None,
    ) -> int:
        """Attach a PTY subprocess to ``buffer``; returns a handle, ``<= 0`` on failure."""

    def channel_send(self, channel: int, data: str) -> None: ...

    def channel_is_running(self, channel: int) -> bool: ...

    def channel_stop(self, channel: int) -> None: ...

    def executable(self, name: str) -> bool: ...


class SelectionPort(Protocol):
    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Any | None], None],
    ) -> None:
        """Present ``items``; ``on_choice(None)`` on cancellation."""


class HostPort(NotifyPort, BufferPort, SurfacePort, ChannelPort, SelectionPort, Protocol):
    """Everything the orchestrator consumes from its host."""

    events: Any

    def schedule(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on the next tick of the host loop."""
