"""Agents package: provides agent registry, base class, and agent implementations for statement extraction."""

from .base import BaseAgent, StatementImage  # noqa: F401
from .csv_agent import CsvAgent  # noqa: F401
from .registry import AgentRegistry  # noqa: F401
from .statement_agent import StatementAgent  # noqa: F401
