"""User-facing error taxonomy.

Components raise these; command boundaries (the orchestrator facade and the
picker) catch them and hand them to :func:`report`, which is the single place
they reach the notification sink.
"""

from __future__ import annotations

from loguru import logger

from agent_orchestrator.host.ports import ERROR, WARN, NotifyPort


class OrchestratorError(Exception):
    """Base class for failures that are reported to the user."""

    level: str = ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidVariant(OrchestratorError):
    """Spawn variant is not one of the declared variants."""


class ExecutableNotFound(OrchestratorError):
    """Agent executable is not resolvable on PATH."""


class SpawnFailed(OrchestratorError):
    """PTY channel could not be opened."""


class TerminalGone(OrchestratorError):
    """Backing terminal buffer or process vanished."""


class EmptyComposition(OrchestratorError):
    """Send attempted with a blank draft."""

    level = WARN


class NoSessionsInScope(OrchestratorError):
    """Nothing to act on in the current working directory."""

    level = WARN


class InvalidSelector(OrchestratorError):
    """Display number out of range or missing."""

    level = WARN


def report(notifier: NotifyPort, exc: OrchestratorError) -> None:
    """Surface an error through the notification sink and the log."""
    logger.debug(f"[error] {type(exc).__name__}: {exc.message}")
    notifier.notify(exc.message, exc.level)
