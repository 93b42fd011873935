"""Conversational matchmaking orchestrator."""

__version__ = "0.1.0"
