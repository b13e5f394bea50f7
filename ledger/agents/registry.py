"""Agent registry for managing extraction agent types.

This module provides a registry for agent classes, allowing dynamic registration and retrieval of agent
implementations by name. The ``extraction_agent`` setting picks the agent used by the import pipeline.
"""

from typing import ClassVar

from ledger.agents.base import BaseAgent


class AgentRegistry:
    """Registry for agent classes."""

    _registry: ClassVar[dict[str, type[BaseAgent]]] = {}

    @classmethod
    def register(cls, name: str, agent_cls: type[BaseAgent]) -> None:
        """Register an agent class with a given name."""
        cls._registry[name] = agent_cls

    @classmethod
    def get(cls, name: str) -> type[BaseAgent]:
        """Retrieve an agent class by name."""
        try:
            return cls._registry[name]
        except KeyError:
            msg = f"Unknown extraction agent '{name}'. Available: {', '.join(cls.available())}"
            raise KeyError(msg) from None

    @classmethod
    def available(cls) -> list[str]:
        """List all available agent names."""
        return list(cls._registry.keys())
