"""Spawn variants for agent sessions."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass

from agent_orchestrator.config.schema import AgentConfig
from agent_orchestrator.errors import InvalidVariant

ENV_COMMAND_OVERRIDE = "AGENT_ORCHESTRATOR_CMD"


@dataclass(frozen=True)
class SpawnVariant:
    """How a new session starts."""

    key: str
    label: str
    description: str
    annotation: str

    def command(self, agent: AgentConfig) -> str:
        """Full command line for this variant.

        ``AGENT_ORCHESTRATOR_CMD`` replaces the configured executable.
        """
        executable = os.getenv(ENV_COMMAND_OVERRIDE, "").strip() or agent.executable
        args = getattr(agent.args, "continue_" if self.key == "continue" else self.key, "")
        return f"{executable} {args}".strip()


SPAWN_VARIANTS: dict[str, SpawnVariant] = {
    "fresh": SpawnVariant(
        key="fresh",
        label="New {name}",
        description="Start fresh conversation",
        annotation="",
    ),
    "resume": SpawnVariant(
        key="resume",
        label="Resume {name}",
        description="Resume last conversation",
        annotation=" [resumed]",
    ),
    "continue": SpawnVariant(
        key="continue",
        label="Continue {name}",
        description="Continue conversation",
        annotation=" [continued]",
    ),
}

# Picker order; intentionally not alphabetical.
SPAWN_ORDER: tuple[str, ...] = ("fresh", "resume", "continue")


def is_valid_variant(key: str) -> bool:
    return key in SPAWN_VARIANTS


def get_variant(key: str) -> SpawnVariant:
    """Get a spawn variant by key."""
    if key not in SPAWN_VARIANTS:
        raise InvalidVariant(f"Unknown spawn type: {key}")
    return SPAWN_VARIANTS[key]


def executable_name(command: str) -> str:
    """First word of a command line."""
    parts = shlex.split(command)
    return parts[0] if parts else ""
