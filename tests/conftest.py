"""Shared fixtures: an in-memory host over fake PTY backends."""

from __future__ import annotations

from collections import deque

import pytest

from agent_orchestrator.config.schema import Config
from agent_orchestrator.core.orchestrator import Orchestrator
from agent_orchestrator.host.channels import ChannelPool
from agent_orchestrator.host.memory import InMemoryHost

WORK_DIR = "/work/alpha"
OTHER_DIR = "/work/beta"


class FakeBackend:
    """PTY backend that never touches the OS."""

    def __init__(self, command: str, cwd: str | None = None) -> None:
        self.command = command
        self.cwd = cwd
        self.written: list[str] = []
        self.output: deque[str] = deque()
        self.alive = True
        self.code: int | None = None
        self.closed = False

    def read(self) -> str:
        return self.output.popleft() if self.output else ""

    def write(self, data: str) -> None:
        self.written.append(data)

    def resize(self, cols: int, rows: int) -> None:
        pass

    def is_alive(self) -> bool:
        return self.alive

    def exit_code(self) -> int | None:
        return self.code

    def close(self) -> None:
        self.closed = True
        self.alive = False
        self.code = 143

    def finish(self, code: int = 0) -> None:
        """Simulate the agent process exiting on its own."""
        self.alive = False
        self.code = code


class FakeBackendFactory:
    """Records every backend it builds; ``fail`` makes the next opens raise."""

    def __init__(self) -> None:
        self.backends: list[FakeBackend] = []
        self.fail = False

    def __call__(self, command: str, cols: int = 120, rows: int = 36, cwd: str | None = None) -> FakeBackend:
        if self.fail:
            raise OSError("pty unavailable")
        backend = FakeBackend(command, cwd)
        self.backends.append(backend)
        return backend

    @property
    def last(self) -> FakeBackend:
        return self.backends[-1]


class FrozenClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Chooser:
    """Scripted selection: pick by label prefix, by index, or cancel."""

    def __init__(self) -> None:
        self.answer: str | int | None = None
        self.calls = 0

    def __call__(self, items, labels):
        self.calls += 1
        if self.answer is None:
            return None
        if isinstance(self.answer, int):
            return items[self.answer]
        for item, label in zip(items, labels):
            if label.startswith(self.answer):
                return item
        return None


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("AGENT_ORCHESTRATOR_CMD", raising=False)


@pytest.fixture
def backends() -> FakeBackendFactory:
    return FakeBackendFactory()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def chooser() -> Chooser:
    return Chooser()


@pytest.fixture
def installed() -> set[str]:
    """Executables the fake PATH resolves."""
    return {"claude"}


@pytest.fixture
def host(backends, chooser, installed) -> InMemoryHost:
    return InMemoryHost(
        cwd=WORK_DIR,
        columns=100,
        lines=40,
        channels=ChannelPool(backend_factory=backends),
        which=lambda name: f"/usr/bin/{name}" if name in installed else None,
        chooser=chooser,
    )


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def orchestrator(host, config, clock):
    orch = Orchestrator(host, config, clock=clock)
    orch.setup()
    yield orch
    orch.teardown()
