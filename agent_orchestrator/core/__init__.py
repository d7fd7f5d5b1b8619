"""Session registry, lifecycle, rendering, picker and prompt editor."""

from agent_orchestrator.core.orchestrator import Orchestrator
from agent_orchestrator.core.state import Session, SessionView, StateStore

__all__ = ["Orchestrator", "Session", "SessionView", "StateStore"]
