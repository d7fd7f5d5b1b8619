"""Orchestrator facade: wires components to a host and exposes user commands."""

from __future__ import annotations

import time
from typing import Any, Callable

from loguru import logger

from agent_orchestrator.config.schema import Config
from agent_orchestrator.core.lifecycle import TerminalController
from agent_orchestrator.core.picker import TerminalHandle, UnifiedPicker
from agent_orchestrator.core.prompt_editor import PromptEditor
from agent_orchestrator.core.registry import InstanceRegistry
from agent_orchestrator.core.state import Session, StateStore
from agent_orchestrator.core.status_bar import StatusBar
from agent_orchestrator.errors import (
    EmptyComposition,
    InvalidSelector,
    NoSessionsInScope,
    OrchestratorError,
    TerminalGone,
    report,
)
from agent_orchestrator.host.events import (
    BUFFER_REMOVED,
    FOCUS_CHANGED,
    GEOMETRY_CHANGED,
    PROCESS_TERMINATED,
    BufferRemoved,
    FocusChanged,
    GeometryChanged,
    ProcessTerminated,
)
from agent_orchestrator.host.ports import ERROR, INFO, HostPort


class Orchestrator:
    """Owns every component for one host.

    Call :meth:`setup` once before use and :meth:`teardown` to release the
    surfaces, buffers and event subscriptions it created.
    """

    def __init__(
        self,
        host: HostPort,
        config: Config | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.host = host
        self.config = config or Config()
        self.state = StateStore()
        self.state.status_bar.visible = self.config.status_bar.visible

        self.registry = InstanceRegistry(self.state, host, clock=clock)
        self.status_bar = StatusBar(host, self.state, self.registry, self.config.status_bar)
        self.controller = TerminalController(host, self.registry, self.config.agent)
        self.picker = UnifiedPicker(
            host,
            self.state,
            self.registry,
            self.config.palette,
            agent_name=self.config.agent.name,
            clock=clock,
        )
        self.editor = PromptEditor(host, self.state, self.config.editor)
        self._subscriptions: list[tuple[str, Callable[[Any], None]]] = []

    @property
    def agent_name(self) -> str:
        return self.config.agent.name

    # ------------------------------------------------------------------
    # Setup / teardown
    # ------------------------------------------------------------------

    def setup(self) -> None:
        # Late binding breaks the registry/status bar and picker/controller cycles.
        self.registry.set_status_bar(self.status_bar)
        self.picker.set_controller(self.controller)
        self.editor.set_send_function(self.send_to_terminal)

        self._subscribe(PROCESS_TERMINATED, self._on_process_terminated)
        self._subscribe(BUFFER_REMOVED, self._on_buffer_removed)
        self._subscribe(GEOMETRY_CHANGED, self._on_geometry_changed)
        self._subscribe(FOCUS_CHANGED, self._on_focus_changed)
        logger.debug("[setup] orchestrator ready")

    def teardown(self) -> None:
        for event_name, handler in self._subscriptions:
            self.host.events.unsubscribe(event_name, handler)
        self._subscriptions.clear()

        if self.editor.is_open():
            self.editor.close()
        for tab in list(self.state.editor.tabs):
            if self.host.buffer_is_valid(tab.buffer):
                self.host.delete_buffer(tab.buffer, force=True)

        self.status_bar.hide()
        if self.host.buffer_is_valid(self.state.status_bar.buffer):
            self.host.delete_buffer(self.state.status_bar.buffer, force=True)

        self.state.reset(status_bar_visible=self.config.status_bar.visible)
        logger.debug("[teardown] state reset")

    def _subscribe(self, event_name: str, handler: Callable[[Any], None]) -> None:
        self.host.events.subscribe(event_name, handler)
        self._subscriptions.append((event_name, handler))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def spawn(self, variant: str = "fresh") -> Session | None:
        try:
            return self.controller.spawn(variant)
        except OrchestratorError as exc:
            report(self.host, exc)
            return None

    def pick(self) -> None:
        """Choose a session (or spawn one) and focus it."""

        def on_pick(handle: TerminalHandle) -> None:
            if not handle.is_new:
                self._focus(handle)

        self.picker.select(on_pick)

    def kill(self, number: int | None = None) -> bool:
        """Kill a session by its display number within the current directory."""
        views = self.registry.query_scoped(self.host.getcwd())
        try:
            if not views:
                raise NoSessionsInScope(f"No {self.agent_name} instances in current project")
            if number is None:
                raise InvalidSelector(f"Usage: kill <number> (1-{len(views)})")
            if number < 1 or number > len(views):
                raise InvalidSelector(f"Invalid instance number {number}. Valid range: 1-{len(views)}")
        except OrchestratorError as exc:
            report(self.host, exc)
            return False

        self.controller.kill(views[number - 1])
        self.host.notify(f"Killed {self.agent_name} instance {number}", INFO)
        return True

    def send_to_terminal(self) -> None:
        """Send the current draft to a picked session."""
        content = self.editor.get_content()
        if content is None:
            self.host.notify("Prompt buffer not found", ERROR)
            return
        if not content.strip():
            report(self.host, EmptyComposition("Prompt is empty"))
            return

        def deliver(handle: TerminalHandle) -> None:
            session = self.registry.find_by_channel(handle.channel)
            if session is None or not self.controller.is_alive(session):
                self.registry.unregister(handle.channel)
                report(
                    self.host,
                    TerminalGone(f"{self.agent_name} terminal has exited. Please spawn a new one."),
                )
                return
            try:
                self.controller.send(session, content)
            except TerminalGone as exc:
                self.registry.unregister(handle.channel)
                report(self.host, exc)
                return
            except Exception as exc:
                self.host.notify(f"Failed to send to terminal: {exc}", ERROR)
                return

            self.editor.close()
            # A session spawned from inside the editor lost its surface with it.
            if not handle.is_new or self.registry.surface_for(session) is None:
                self._focus(handle)
            self.host.notify(f"Prompt sent to {self.agent_name}", INFO)

        self.picker.select(deliver)

    def _focus(self, handle: TerminalHandle) -> None:
        session = self.registry.find_by_channel(handle.channel)
        if session is None:
            report(self.host, TerminalGone("Terminal buffer no longer valid"))
            return
        try:
            self.controller.focus(session)
        except OrchestratorError as exc:
            report(self.host, exc)

    # ------------------------------------------------------------------
    # Editor
    # ------------------------------------------------------------------

    def open(self) -> None:
        self.editor.open()

    def close(self) -> None:
        self.editor.close()

    def toggle(self) -> None:
        self.editor.toggle()

    def new_tab(self) -> None:
        self.editor.new_tab()

    def next_tab(self) -> None:
        self.editor.next_tab()

    def prev_tab(self) -> None:
        self.editor.prev_tab()

    def delete_tab(self) -> None:
        self.editor.delete_tab()

    # ------------------------------------------------------------------
    # Status bar
    # ------------------------------------------------------------------

    def show_status_bar(self) -> None:
        self.state.status_bar.visible = True
        self.status_bar.show()

    def hide_status_bar(self) -> None:
        self.status_bar.hide()

    def toggle_status_bar(self) -> None:
        self.status_bar.toggle()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def debug_dump(self) -> str:
        cwd = self.host.getcwd()
        bar = self.state.status_bar
        lines = [
            "=== Orchestrator Debug ===",
            f"Total instances: {self.registry.count_all()}",
            f"Project instances: {self.registry.count_scoped(cwd)}",
            f"Current cwd: {cwd}",
        ]
        for view in self.registry.query_all():
            lines.append(
                f"  [{view.number}] buf={view.buffer}, channel={view.channel}, "
                f"color={view.color_index}, cwd={view.cwd}, type={view.variant}"
            )
        lines.append(f"Last focused: {self.state.last_focused}")
        lines.append(f"Prompt tabs: {', '.join(self.editor.tab_names()) or '-'}")
        lines.append(f"Status bar visible: {bar.visible}")
        lines.append(f"Status bar surface: {bar.surface}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Host signals
    # ------------------------------------------------------------------

    def _on_process_terminated(self, event: ProcessTerminated) -> None:
        if self.registry.find_by_channel(event.channel) is not None:
            self.registry.unregister(event.channel)

    def _on_buffer_removed(self, event: BufferRemoved) -> None:
        buffer = event.buffer

        def cleanup() -> None:
            session = self.registry.find_by_buffer(buffer)
            if session is not None:
                self.registry.unregister(session.channel)

        # Let the process-terminated path win when both fire.
        self.host.schedule(cleanup)

    def _on_geometry_changed(self, event: GeometryChanged) -> None:
        logger.debug(f"[resize] {event.columns}x{event.lines}")
        self.status_bar.reposition()
        self.editor.reposition()

    def _on_focus_changed(self, event: FocusChanged) -> None:
        if self.registry.count_all() == 0:
            return

        entered = self.registry.find_by_buffer(event.new_buffer)
        left = self.registry.find_by_buffer(event.old_buffer) if event.old_buffer is not None else None
        if entered is not None:
            self.state.last_focused = entered.channel

        editor_surface = self.state.editor.surface
        touches_editor = editor_surface is not None and editor_surface in (event.old_surface, event.new_surface)
        if entered is not None or left is not None or touches_editor:
            self.status_bar.update()
