"""Unified picker: select an existing session or spawn a new one."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

from agent_orchestrator.config.schema import ColorDef
from agent_orchestrator.core import palette
from agent_orchestrator.core.registry import InstanceRegistry
from agent_orchestrator.core.state import SessionView, StateStore
from agent_orchestrator.core.variants import SPAWN_ORDER, SPAWN_VARIANTS
from agent_orchestrator.errors import NoSessionsInScope, OrchestratorError, TerminalGone, report
from agent_orchestrator.host.ports import HostPort

if TYPE_CHECKING:
    from agent_orchestrator.core.lifecycle import TerminalController

PICK_PROMPT = "{name} Terminal:"
SELECT_PROMPT = "Select {name} Terminal:"


@dataclass(frozen=True)
class TerminalHandle:
    """What the picker hands to its callback.

    ``is_new`` handles were just spawned into the current surface and have no
    surface of their own yet; callers must not try to focus them.
    """

    channel: int
    buffer: int | None
    surface: int | None
    is_new: bool


@dataclass(frozen=True)
class PickerItem:
    kind: str  # "existing" | "spawn"
    display: str
    view: SessionView | None = None
    variant: str = ""
    description: str = ""


def format_time_ago(timestamp: float | None, now: float | None = None) -> str:
    """Relative age: ``just now``, ``5m ago``, ``2h ago``, ``3d ago``."""
    if timestamp is None:
        return ""
    diff = int((time.time() if now is None else now) - timestamp)
    if diff < 60:
        return "just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    return f"{diff // 86400}d ago"


def promote_last_focused(views: Sequence[SessionView], last_focused: int | None) -> list[SessionView]:
    """Move the last focused session to the front; a single reorder, not a sort."""
    ordered = list(views)
    if last_focused is None:
        return ordered
    for index, view in enumerate(ordered):
        if view.channel == last_focused:
            if index > 0:
                ordered.insert(0, ordered.pop(index))
            break
    return ordered


class UnifiedPicker:
    """Builds the ranked choice list and dispatches the selection."""

    def __init__(
        self,
        host: HostPort,
        state: StateStore,
        registry: InstanceRegistry,
        colors: Sequence[ColorDef],
        agent_name: str = "Claude",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._host = host
        self._state = state
        self._registry = registry
        self._colors = colors
        self._agent_name = agent_name
        self._clock = clock
        self._controller: TerminalController | None = None

    def set_controller(self, controller: TerminalController) -> None:
        self._controller = controller

    def items(self) -> list[PickerItem]:
        """Scoped sessions (last focused first), then spawn options in fixed order."""
        views = promote_last_focused(
            self._registry.query_scoped(self._host.getcwd()),
            self._state.last_focused,
        )
        items = [
            PickerItem(kind="existing", display=self._existing_label(view), view=view)
            for view in views
        ]
        for key in SPAWN_ORDER:
            variant = SPAWN_VARIANTS[key]
            items.append(
                PickerItem(
                    kind="spawn",
                    display=f"+ {variant.label.format(name=self._agent_name)}",
                    variant=key,
                    description=variant.description,
                )
            )
        return items

    def select(self, callback: Callable[[TerminalHandle], None]) -> None:
        if self._controller is None:
            raise RuntimeError("Terminal controller not initialized. Call set_controller() in setup.")

        def on_choice(choice: PickerItem | None) -> None:
            if choice is None:
                return
            if choice.kind == "spawn":
                try:
                    session = self._controller.spawn(choice.variant)
                except OrchestratorError as exc:
                    report(self._host, exc)
                    return
                callback(TerminalHandle(channel=session.channel, buffer=session.buffer, surface=None, is_new=True))
                return
            view = choice.view
            callback(TerminalHandle(channel=view.channel, buffer=view.buffer, surface=view.surface, is_new=False))

        self._host.select(
            self.items(),
            PICK_PROMPT.format(name=self._agent_name),
            lambda item: item.display,
            on_choice,
        )

    def select_existing(self, callback: Callable[[TerminalHandle], None]) -> None:
        """Pick among existing scoped sessions only."""
        views = self._registry.query_scoped(self._host.getcwd())
        if not views:
            report(self._host, NoSessionsInScope(f"No {self._agent_name} terminals found in current project"))
            return

        items = [
            PickerItem(
                kind="existing",
                display=self._existing_label(view, with_variant=False),
                view=view,
            )
            for view in views
        ]

        def on_choice(choice: PickerItem | None) -> None:
            if choice is None:
                return
            view = choice.view
            callback(TerminalHandle(channel=view.channel, buffer=view.buffer, surface=view.surface, is_new=False))

        self._host.select(
            items,
            SELECT_PROMPT.format(name=self._agent_name),
            lambda item: item.display,
            on_choice,
        )

    def select_and_execute(
        self,
        action: Callable[[TerminalHandle], None],
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        """Pick an existing session and run ``action`` if it is still valid."""

        def guarded(handle: TerminalHandle) -> None:
            if not self._host.buffer_is_valid(handle.buffer):
                message = "Selected terminal is no longer valid"
                if on_error is not None:
                    on_error(message)
                else:
                    report(self._host, TerminalGone(message))
                return
            action(handle)

        self.select_existing(guarded)

    def _existing_label(self, view: SessionView, with_variant: bool = True) -> str:
        annotation = ""
        if with_variant and view.variant in SPAWN_VARIANTS:
            annotation = SPAWN_VARIANTS[view.variant].annotation
        return "[{number}] {name} ({color}){annotation} - {age}".format(
            number=view.number,
            name=self._agent_name,
            color=palette.color_name(view.color_index, self._colors),
            annotation=annotation,
            age=format_time_ago(view.created_at, self._clock()),
        )
