"""Configuration loading utilities."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from agent_orchestrator.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".agent-orchestrator" / "config.json"


def get_data_dir() -> Path:
    """Directory holding config and logs."""
    return Path.home() / ".agent-orchestrator"


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file or create default.

    Keys may be written in camelCase. Environment variables prefixed with
    ``AGENT_ORCHESTRATOR_`` fill in whatever the file leaves unset.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            # Sections validate their own camelCase aliases; only the top level is renamed.
            return Config(**{to_snake(key): value for key, value in data.items()})
        except (json.JSONDecodeError, AttributeError, TypeError, ValidationError) as exc:
            logger.warning(f"Failed to load config from {path}: {exc}")
            logger.warning("Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file with camelCase keys."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", by_alias=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
