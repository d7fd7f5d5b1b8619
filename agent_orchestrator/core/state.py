"""Shared mutable state for all orchestrator components.

Every component holds a reference to one :class:`StateStore` and re-reads it
on each operation; nothing caches session lists across calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field

COLOR_COUNT = 8


@dataclass(frozen=True)
class Session:
    """One spawned agent process bound to a terminal buffer."""

    channel: int
    buffer: int | None
    color_index: int
    cwd: str
    variant: str
    created_at: float


@dataclass(frozen=True)
class SessionView:
    """Query-time snapshot: session plus display number and surface."""

    session: Session
    number: int
    surface: int | None

    @property
    def channel(self) -> int:
        return self.session.channel

    @property
    def buffer(self) -> int | None:
        return self.session.buffer

    @property
    def color_index(self) -> int:
        return self.session.color_index

    @property
    def cwd(self) -> str:
        return self.session.cwd

    @property
    def variant(self) -> str:
        return self.session.variant

    @property
    def created_at(self) -> float:
        return self.session.created_at


@dataclass
class PromptTab:
    """A draft composition buffer."""

    buffer: int
    name: str


@dataclass
class EditorState:
    surface: int | None = None
    tabs: list[PromptTab] = field(default_factory=list)
    current: int = 0


@dataclass
class StatusBarState:
    surface: int | None = None
    buffer: int | None = None
    visible: bool = True


@dataclass
class StateStore:
    """Single source of truth for sessions, editor and status bar."""

    sessions: list[Session] = field(default_factory=list)
    next_color_index: int = 1
    last_focused: int | None = None
    editor: EditorState = field(default_factory=EditorState)
    status_bar: StatusBarState = field(default_factory=StatusBarState)

    def take_color_index(self) -> int:
        """Return the next color index and advance it, wrapping 8 -> 1."""
        index = self.next_color_index
        self.next_color_index = (self.next_color_index % COLOR_COUNT) + 1
        return index

    def reset(self, status_bar_visible: bool = True) -> None:
        """Drop everything back to initial values (teardown)."""
        self.sessions = []
        self.next_color_index = 1
        self.last_focused = None
        self.editor = EditorState()
        self.status_bar = StatusBarState(visible=status_bar_visible)
