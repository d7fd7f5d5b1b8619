"""Host ports and the in-process host implementation."""

from agent_orchestrator.host.events import EventHub
from agent_orchestrator.host.memory import InMemoryHost
from agent_orchestrator.host.ports import ERROR, INFO, WARN, HostPort, StyleRegion, SurfaceConfig

__all__ = [
    "ERROR",
    "INFO",
    "WARN",
    "EventHub",
    "HostPort",
    "InMemoryHost",
    "StyleRegion",
    "SurfaceConfig",
]
