"""Configuration module for agent-orchestrator."""

from agent_orchestrator.config.loader import get_config_path, load_config, save_config
from agent_orchestrator.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
