"""PTY backends for running interactive CLI agents."""

from __future__ import annotations

import os
import queue
import subprocess
import threading
from typing import Optional, Protocol


class PTYBackend(Protocol):
    """Minimal PTY backend contract."""

    def read(self) -> str:
        """Return buffered output without blocking."""

    def write(self, data: str) -> None:
        """Write input data."""

    def resize(self, cols: int, rows: int) -> None:
        """Apply terminal resize."""

    def is_alive(self) -> bool:
        """Non-blocking liveness query."""

    def exit_code(self) -> int | None:
        """Exit status once the process is gone."""

    def close(self) -> None:
        """Stop the process and release resources."""


class UnixPexpectBackend:
    """PTY backend for Unix-like systems via pexpect."""

    def __init__(
        self,
        command: str,
        cols: int = 80,
        rows: int = 24,
        cwd: str | None = None,
    ) -> None:
        import pexpect

        self._pexpect = pexpect
        env = dict(os.environ)
        env.setdefault("TERM", "xterm-256color")
        self._proc = pexpect.spawn(
            command,
            encoding="utf-8",
            codec_errors="ignore",
            echo=False,
            dimensions=(rows, cols),
            cwd=cwd,
            env=env,
        )

    def read(self) -> str:
        try:
            return self._proc.read_nonblocking(size=4096, timeout=0)
        except self._pexpect.TIMEOUT:
            return ""
        except self._pexpect.EOF:
            return ""

    def write(self, data: str) -> None:
        self._proc.send(data)

    def resize(self, cols: int, rows: int) -> None:
        self._proc.setwinsize(rows, cols)

    def is_alive(self) -> bool:
        return self._proc.isalive()

    def exit_code(self) -> int | None:
        if self._proc.isalive():
            return None
        if self._proc.exitstatus is not None:
            return self._proc.exitstatus
        if self._proc.signalstatus is not None:
            return 128 + self._proc.signalstatus
        return None

    def close(self) -> None:
        if self._proc.isalive():
            self._proc.close(force=True)


class _ThreadedReader:
    """Drains a blocking read callable into a queue."""

    def __init__(self, read_chunk) -> None:
        self._read_chunk = read_chunk
        self._queue: queue.Queue[str] = queue.Queue()
        self._running = True
        self._thread = threading.Thread(target=self._read_loop, daemon=True)
        self._thread.start()

    def _read_loop(self) -> None:
        while self._running:
            try:
                data = self._read_chunk()
            except Exception:
                break
            if not data:
                break
            self._queue.put(data)

    def drain(self) -> str:
        chunks: list[str] = []
        while True:
            try:
                chunks.append(self._queue.get_nowait())
            except queue.Empty:
                return "".join(chunks)

    def stop(self) -> None:
        self._running = False


class WinptyBackend:
    """PTY backend for Windows via pywinpty."""

    def __init__(
        self,
        command: str,
        cols: int = 80,
        rows: int = 24,
        cwd: str | None = None,
    ) -> None:
        from winpty import Backend, PtyProcess

        env = dict(os.environ)
        env.setdefault("TERM", "xterm-256color")
        env.setdefault("COLORTERM", "truecolor")

        launch_attempts = (
            {"backend": Backend.ConPTY},
            {"backend": Backend.WinPTY},
            {},
        )

        self._proc = None
        last_error: Optional[Exception] = None
        for extra in launch_attempts:
            try:
                self._proc = PtyProcess.spawn(
                    command,
                    dimensions=(rows, cols),
                    env=env,
                    cwd=cwd,
                    **extra,
                )
                break
            except Exception as exc:  # pragma: no cover - platform specific
                last_error = exc

        if self._proc is None:
            raise RuntimeError("Failed to start PTY backend") from last_error
        self._reader = _ThreadedReader(lambda: self._proc.read(4096))

    def read(self) -> str:
        return self._reader.drain()

    def write(self, data: str) -> None:
        self._proc.write(data)

    def resize(self, cols: int, rows: int) -> None:
        try:
            self._proc.setwinsize(rows, cols)
        except Exception:
            pass

    def is_alive(self) -> bool:
        return bool(self._proc.isalive())

    def exit_code(self) -> int | None:
        if self._proc.isalive():
            return None
        return getattr(self._proc, "exitstatus", None)

    def close(self) -> None:
        self._reader.stop()
        pid: int | None = None
        try:
            pid = getattr(self._proc, "pid", None)
            self._proc.close()
        except Exception:
            pass
        # Kill the entire process tree so child processes don't linger.
        if pid is not None:
            try:
                subprocess.run(
                    ["taskkill", "/F", "/T", "/PID", str(pid)],
                    capture_output=True,
                    timeout=3,
                )
            except Exception:
                pass


class SubprocessFallbackBackend:
    """Fallback backend when PTY is unavailable."""

    def __init__(
        self,
        command: str,
        cols: int = 80,
        rows: int = 24,
        cwd: str | None = None,
    ) -> None:
        del cols, rows
        self._proc = subprocess.Popen(
            command,
            shell=True,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="ignore",
            bufsize=1,
            cwd=cwd,
        )
        stdout = self._proc.stdout
        self._reader = _ThreadedReader(lambda: stdout.read(1) if stdout else "")

    def read(self) -> str:
        return self._reader.drain()

    def write(self, data: str) -> None:
        if self._proc.stdin:
            self._proc.stdin.write(data)
            self._proc.stdin.flush()

    def resize(self, cols: int, rows: int) -> None:
        del cols, rows

    def is_alive(self) -> bool:
        return self._proc.poll() is None

    def exit_code(self) -> int | None:
        return self._proc.poll()

    def close(self) -> None:
        self._reader.stop()
        pid: int | None = getattr(self._proc, "pid", None)
        try:
            if self._proc.poll() is None:
                self._proc.terminate()
        except Exception:
            pass
        if os.name == "nt" and pid is not None:
            try:
                subprocess.run(
                    ["taskkill", "/F", "/T", "/PID", str(pid)],
                    capture_output=True,
                    timeout=3,
                )
            except Exception:
                pass


def build_backend(
    command: str,
    cols: int = 80,
    rows: int = 24,
    cwd: str | None = None,
) -> PTYBackend:
    """Build the best available backend for the current platform."""
    from loguru import logger

    if os.name == "nt":
        try:
            backend = WinptyBackend(command, cols=cols, rows=rows, cwd=cwd)
            logger.info(f"[pty] Using WinptyBackend for: {command[:60]}")
            return backend
        except Exception as exc:
            logger.warning(f"[pty] WinptyBackend failed ({exc}), falling back to SubprocessFallbackBackend")
            return SubprocessFallbackBackend(command, cols=cols, rows=rows, cwd=cwd)
    backend = UnixPexpectBackend(command, cols=cols, rows=rows, cwd=cwd)
    logger.info(f"[pty] Using UnixPexpectBackend for: {command[:60]}")
    return backend
