"""agent-orchestrator - drive several interactive CLI agent sessions side by side."""

__version__ = "0.3.0"
