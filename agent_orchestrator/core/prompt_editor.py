"""Floating multi-tab prompt editor.

Each tab owns one scratch buffer. Leaving a tab stores the cursor in the
buffer mark ``p`` and the insert state in the buffer flag
``prompt_was_insert``; entering a tab restores both.
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from agent_orchestrator.config.schema import EditorConfig
from agent_orchestrator.core.state import PromptTab, StateStore
from agent_orchestrator.host.ports import BufferOptions, HostPort, SurfaceConfig

PROMPT_MARK = "p"
INSERT_FLAG = "prompt_was_insert"
TAB_PREFIX = "prompt-"


class PromptEditor:
    """Composition surface with gap-filling tab names."""

    def __init__(self, host: HostPort, state: StateStore, config: EditorConfig) -> None:
        self._host = host
        self._state = state
        self._config = config
        self._send: Callable[[], None] | None = None

    def set_send_function(self, send: Callable[[], None]) -> None:
        self._send = send

    # ------------------------------------------------------------------
    # Surface
    # ------------------------------------------------------------------

    def is_open(self) -> bool:
        return self._host.surface_is_valid(self._state.editor.surface)

    def open(self) -> int:
        """Show the editor on the current tab, restoring cursor and mode."""
        if self.is_open():
            self._host.set_current_surface(self._state.editor.surface)
            return self._state.editor.surface

        tab = self._ensure_tab()
        surface = self._host.open_surface(tab.buffer, self._position(), enter=False)
        # _enter moves focus once the surface is recorded.
        self._state.editor.surface = surface
        self._enter(tab)
        return surface

    def close(self) -> None:
        if not self.is_open():
            self._state.editor.surface = None
            return
        tab = self.current_tab()
        if tab is not None:
            self._save(tab)
        self._host.close_surface(self._state.editor.surface)
        self._state.editor.surface = None

    def toggle(self) -> None:
        if self.is_open():
            self.close()
        else:
            self.open()

    def reposition(self) -> None:
        """Re-anchor after a resize or a status bar change."""
        if self.is_open():
            self._host.set_surface_config(self._state.editor.surface, self._position())

    def submit(self) -> None:
        """Leave insert mode and hand the draft to the send function."""
        self._host.stop_insert()
        if self._send is not None:
            self._send()

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def tab_names(self) -> list[str]:
        return [tab.name for tab in self._live_tabs()]

    def current_tab(self) -> PromptTab | None:
        tabs = self._live_tabs()
        if not tabs:
            return None
        editor = self._state.editor
        editor.current = min(max(editor.current, 0), len(tabs) - 1)
        return tabs[editor.current]

    def new_tab(self) -> PromptTab:
        current = self.current_tab()
        if current is not None and self.is_open():
            self._save(current)
        tab = self._create_tab()
        self._state.editor.current = len(self._state.editor.tabs) - 1
        if self.is_open():
            self._display(tab)
        return tab

    def next_tab(self) -> PromptTab | None:
        return self._step(1)

    def prev_tab(self) -> PromptTab | None:
        return self._step(-1)

    def delete_tab(self) -> PromptTab:
        """Drop the current tab; the last tab is replaced by a fresh one."""
        editor = self._state.editor
        doomed = self.current_tab()
        if doomed is None:
            return self._ensure_tab()

        editor.tabs.remove(doomed)
        if not editor.tabs:
            replacement = self._create_tab()
            editor.current = 0
        else:
            editor.current = min(editor.current, len(editor.tabs) - 1)
            replacement = editor.tabs[editor.current]

        # Swap the surface off the buffer first so deleting it doesn't close the editor.
        if self.is_open():
            self._host.set_surface_buffer(editor.surface, replacement.buffer)
        if self._host.buffer_is_valid(doomed.buffer):
            self._host.delete_buffer(doomed.buffer, force=True)
        logger.debug(f"[editor] deleted {doomed.name}, now on {replacement.name}")

        if self.is_open():
            self._enter(replacement)
        return replacement

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_content(self) -> str | None:
        """Text of the current tab, ``None`` when there is no prompt buffer."""
        tab = self.current_tab()
        if tab is None:
            return None
        return "\n".join(self._host.get_lines(tab.buffer))

    def clear(self) -> None:
        tab = self.current_tab()
        if tab is None:
            return
        self._host.set_lines(tab.buffer, [""])
        self._host.del_mark(tab.buffer, PROMPT_MARK)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_tabs(self) -> list[PromptTab]:
        editor = self._state.editor
        editor.tabs = [tab for tab in editor.tabs if self._host.buffer_is_valid(tab.buffer)]
        return editor.tabs

    def _ensure_tab(self) -> PromptTab:
        tab = self.current_tab()
        if tab is None:
            tab = self._create_tab()
            self._state.editor.current = 0
        return tab

    def _next_name(self) -> str:
        used: set[int] = set()
        for tab in self._state.editor.tabs:
            suffix = tab.name[len(TAB_PREFIX):]
            if tab.name.startswith(TAB_PREFIX) and suffix.isdigit():
                used.add(int(suffix))
        number = 1
        while number in used:
            number += 1
        return f"{TAB_PREFIX}{number}"

    def _create_tab(self) -> PromptTab:
        self._live_tabs()
        name = self._next_name()
        buffer = self._host.create_buffer(
            listed=False,
            scratch=False,
            name=name,
            options=BufferOptions(buftype="nofile", bufhidden="hide", filetype=self._config.filetype),
        )
        tab = PromptTab(buffer=buffer, name=name)
        self._state.editor.tabs.append(tab)
        return tab

    def _step(self, delta: int) -> PromptTab | None:
        current = self.current_tab()
        if current is None:
            return None
        tabs = self._state.editor.tabs
        if len(tabs) == 1:
            return current
        if self.is_open():
            self._save(current)
        self._state.editor.current = (self._state.editor.current + delta) % len(tabs)
        tab = tabs[self._state.editor.current]
        if self.is_open():
            self._display(tab)
        return tab

    def _display(self, tab: PromptTab) -> None:
        self._host.set_surface_buffer(self._state.editor.surface, tab.buffer)
        self._enter(tab)

    def _save(self, tab: PromptTab) -> None:
        surface = self._state.editor.surface
        if not self._host.surface_is_valid(surface) or self._host.surface_buffer(surface) != tab.buffer:
            return
        line, col = self._host.get_cursor(surface)
        self._host.set_mark(tab.buffer, PROMPT_MARK, line, col)
        focused = self._host.current_surface() == surface
        self._host.set_flag(tab.buffer, INSERT_FLAG, focused and self._host.mode() == "insert")

    def _enter(self, tab: PromptTab) -> None:
        surface = self._state.editor.surface
        config = self._host.get_surface_config(surface)
        if config is not None:
            self._host.set_surface_config(surface, config.with_title(self._title()))
        if self._host.current_surface() != surface:
            self._host.set_current_surface(surface)

        lines = self._host.get_lines(tab.buffer)
        if not lines or lines == [""]:
            # Never restore a stale position into empty content.
            self._host.del_mark(tab.buffer, PROMPT_MARK)
            self._host.set_cursor(surface, (1, 0))
            self._host.start_insert()
            return

        mark = self._host.get_mark(tab.buffer, PROMPT_MARK)
        if mark is not None and mark[0] > 0:
            self._host.set_cursor(surface, mark)
        else:
            self._host.set_cursor(surface, (len(lines), len(lines[-1])))

        if self._host.get_flag(tab.buffer, INSERT_FLAG):
            self._host.start_insert(append=True)
        else:
            self._host.stop_insert()

    def _title(self) -> str:
        current = self.current_tab()
        names = [
            f"[{tab.name}]" if tab is current else tab.name
            for tab in self._state.editor.tabs
        ]
        return f"{self._config.title.rstrip()} | {' '.join(names)} "

    def _position(self) -> SurfaceConfig:
        columns = self._host.columns()
        lines = self._host.lines()
        width = int(columns * self._config.width_ratio)
        height = int(lines * self._config.height_ratio)

        bar = self._state.status_bar
        bar_shown = bar.visible and self._host.surface_is_valid(bar.surface)
        margin = self._config.status_bar_margin if bar_shown else self._config.bottom_margin

        return SurfaceConfig(
            width=width,
            height=height,
            row=lines - height - margin,
            col=(columns - width) // 2,
            style="minimal",
            border=self._config.border,
            title=self._title(),
            title_pos="center",
            zindex=self._config.zindex,
        )
