"""Terminal channel table: PTY processes bound to terminal buffers."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable

import pyte
from loguru import logger

from agent_orchestrator.host.backends import PTYBackend, build_backend
from agent_orchestrator.host.ports import ExitCallback

BackendFactory = Callable[..., PTYBackend]


@dataclass
class Channel:
    """One PTY subprocess attached to a terminal buffer."""

    handle: int
    buffer: int
    command: str
    cwd: str
    backend: PTYBackend
    screen: pyte.HistoryScreen
    stream: pyte.Stream
    on_exit: ExitCallback | None = None
    running: bool = True
    exit_code: int | None = None


class ChannelPool:
    """Opens, feeds and reaps PTY channels.

    Nothing here runs in the background: output is drained and exits are
    detected only when :meth:`pump` is called by the host loop.
    """

    def __init__(
        self,
        backend_factory: BackendFactory = build_backend,
        cols: int = 120,
        rows: int = 36,
        history: int = 5000,
    ) -> None:
        self._backend_factory = backend_factory
        self._cols = cols
        self._rows = rows
        self._history = history
        self._channels: dict[int, Channel] = {}
        self._handles = itertools.count(3)

    def open(
        self,
        buffer: int,
        command: str,
        cwd: str,
        on_exit: ExitCallback | None = None,
    ) -> int:
        """Start ``command`` in ``cwd``; returns the handle or ``0`` on failure."""
        try:
            backend = self._backend_factory(command, cols=self._cols, rows=self._rows, cwd=cwd)
        except Exception as exc:
            logger.warning(f"[pty] failed to start '{command}' in {cwd}: {exc}")
            return 0

        screen = pyte.HistoryScreen(self._cols, self._rows, history=self._history)
        screen.set_mode(pyte.modes.LNM)
        handle = next(self._handles)
        self._channels[handle] = Channel(
            handle=handle,
            buffer=buffer,
            command=command,
            cwd=cwd,
            backend=backend,
            screen=screen,
            stream=pyte.Stream(screen),
            on_exit=on_exit,
        )
        logger.debug(f"[pty] channel {handle} -> buffer {buffer}: {command}")
        return handle

    def __len__(self) -> int:
        return len(self._channels)

    def get(self, handle: int) -> Channel | None:
        return self._channels.get(handle)

    def send(self, handle: int, data: str) -> None:
        channel = self._channels.get(handle)
        if channel is None or not channel.running:
            raise RuntimeError(f"Invalid channel id: {handle}")
        channel.backend.write(data)

    def is_running(self, handle: int) -> bool:
        channel = self._channels.get(handle)
        if channel is None or not channel.running:
            return False
        return channel.backend.is_alive()

    def stop(self, handle: int) -> None:
        channel = self._channels.get(handle)
        if channel is None:
            raise RuntimeError(f"Invalid channel id: {handle}")
        channel.backend.close()

    def resize(self, cols: int, rows: int) -> None:
        self._cols, self._rows = cols, rows
        for channel in self._channels.values():
            if not channel.running:
                continue
            channel.screen.resize(rows, cols)
            try:
                channel.backend.resize(cols, rows)
            except Exception as exc:
                logger.debug(f"[pty] resize failed for channel {channel.handle}: {exc}")

    def pump(self) -> tuple[list[Channel], list[Channel]]:
        """Drain output and reap exits.

        Returns ``(updated, exited)``: channels whose screen changed and
        channels that exited since the previous pump.
        """
        updated: list[Channel] = []
        exited: list[Channel] = []
        for channel in list(self._channels.values()):
            if not channel.running:
                continue
            data = channel.backend.read()
            if data:
                try:
                    channel.stream.feed(data)
                except Exception:
                    # Keep the screen usable on malformed control sequences.
                    pass
                updated.append(channel)
            if not channel.backend.is_alive():
                channel.running = False
                code = channel.backend.exit_code()
                channel.exit_code = code if code is not None else 0
                logger.info(f"[pty] channel {channel.handle} exited with code {channel.exit_code}")
                exited.append(channel)
        return updated, exited

    def release(self, handle: int) -> None:
        """Forget an exited channel once its final screen has been read."""
        channel = self._channels.pop(handle, None)
        if channel is None:
            return
        try:
            channel.backend.close()
        except Exception as exc:
            logger.debug(f"[pty] close failed for channel {handle}: {exc}")

    def snapshot(self, handle: int) -> list[str]:
        channel = self._channels.get(handle)
        if channel is None:
            return []
        return snapshot_screen(channel.screen)

    def close_all(self) -> None:
        for channel in self._channels.values():
            if channel.running:
                try:
                    channel.backend.close()
                except Exception as exc:
                    logger.debug(f"[pty] close failed for channel {channel.handle}: {exc}")
        self._channels.clear()


def snapshot_screen(screen: pyte.HistoryScreen) -> list[str]:
    """Scrollback plus visible display, trailing blank lines removed."""
    history_lines: list[str] = []
    for line in screen.history.top:
        if isinstance(line, dict):
            cols = screen.columns
            history_lines.append(
                "".join(line[x].data if x in line else " " for x in range(cols)).rstrip()
            )
        else:
            history_lines.append(str(line).rstrip())
    lines = history_lines + [line.rstrip() for line in screen.display]
    while lines and not lines[-1]:
        lines.pop()
    return lines
