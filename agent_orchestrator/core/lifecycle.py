"""Terminal lifecycle: spawn, focus, send to and kill agent sessions."""

from __future__ import annotations

from loguru import logger

from agent_orchestrator.config.schema import AgentConfig
from agent_orchestrator.core.registry import InstanceRegistry
from agent_orchestrator.core.state import Session, SessionView
from agent_orchestrator.core.variants import executable_name, get_variant
from agent_orchestrator.errors import ExecutableNotFound, SpawnFailed, TerminalGone
from agent_orchestrator.host.ports import WARN, HostPort


class TerminalController:
    """Owns the subprocess side of every session.

    Unregistration is never done here for live buffers: both organic exits
    and :meth:`kill` end in the host's process-terminated and buffer-removed
    signals, which the orchestrator routes to ``registry.unregister``.
    """

    def __init__(self, host: HostPort, registry: InstanceRegistry, agent: AgentConfig) -> None:
        self._host = host
        self._registry = registry
        self._agent = agent
        self._killed: set[int] = set()

    @property
    def agent_name(self) -> str:
        return self._agent.name

    def spawn(self, variant: str = "fresh") -> Session:
        """Open a new agent terminal in the current surface and register it."""
        spawn_variant = get_variant(variant)
        command = spawn_variant.command(self._agent)

        binary = executable_name(command)
        if not binary or not self._host.executable(binary):
            raise ExecutableNotFound(f"Command '{binary}' not found. Is {self._agent.name} CLI installed?")

        cwd = self._host.getcwd()
        buffer = self._host.create_buffer(listed=True, scratch=False)
        self._host.show_buffer(buffer)

        try:
            channel = self._host.open_terminal(buffer, command, cwd, on_exit=self._on_exit)
        except Exception as exc:
            logger.warning(f"[spawn] open_terminal raised: {exc}")
            channel = 0

        if channel <= 0:
            self._revert_spawn(buffer)
            raise SpawnFailed(f"Failed to spawn {self._agent.name} terminal")

        self._host.start_insert()
        logger.info(f"[spawn] {variant} channel={channel} buffer={buffer} cwd={cwd}")
        return self._registry.register(channel, cwd, variant, buffer=buffer)

    def focus(self, session: Session | SessionView) -> None:
        """Show the session's terminal and leave it ready for typing."""
        buffer = session.buffer
        if not self._host.buffer_is_valid(buffer):
            raise TerminalGone("Terminal buffer no longer valid")

        target = self._registry.surface_for(session)
        if target is not None:
            self._host.set_current_surface(target)
        else:
            self._host.show_buffer(buffer)
        self._host.start_insert()

    def kill(self, session: Session | SessionView) -> None:
        """Stop the process and wipe its buffer."""
        if not self._host.buffer_is_valid(session.buffer):
            self._registry.unregister(session.channel)
            return

        self._killed.add(session.channel)
        if session.channel > 0:
            try:
                self._host.channel_stop(session.channel)
            except Exception as exc:
                # Already exited; the end state is the same.
                logger.debug(f"[kill] stop channel={session.channel} failed: {exc}")

        try:
            self._host.delete_buffer(session.buffer, force=True)
        except Exception as exc:
            logger.debug(f"[kill] delete buffer={session.buffer} failed: {exc}")

    def is_alive(self, session: Session | SessionView) -> bool:
        """Synchronous, non-blocking liveness check."""
        try:
            return self._host.channel_is_running(session.channel)
        except Exception:
            return False

    def send(self, session: Session | SessionView, text: str) -> None:
        """Write ``text`` plus a newline to the session's channel."""
        if not self.is_alive(session):
            raise TerminalGone(f"{self._agent.name} terminal has exited. Please spawn a new one.")
        self._host.channel_send(session.channel, text + "\n")

    def _on_exit(self, channel: int, exit_code: int) -> None:
        if channel in self._killed:
            self._killed.discard(channel)
            return
        if exit_code != 0:
            self._host.notify(f"{self._agent.name} exited with code {exit_code}", WARN)

    def _revert_spawn(self, buffer: int) -> None:
        alternate = self._host.alternate_buffer()
        if alternate is not None and alternate != buffer:
            try:
                self._host.show_buffer(alternate)
            except Exception as exc:
                logger.debug(f"[spawn] could not restore previous buffer: {exc}")
        try:
            self._host.delete_buffer(buffer, force=True)
        except Exception as exc:
            logger.debug(f"[spawn] could not delete buffer={buffer}: {exc}")
