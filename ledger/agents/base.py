"""Base agent abstraction for statement extraction agents.

This module defines the abstract base class for all statement extraction agents, enforcing a standard interface
for turning statement text or page images into raw transaction rows. Rows are plain dicts with ``date``,
``description``, ``amount`` and ``category`` keys; validation happens downstream.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ledger.core.settings import Settings


@dataclass(frozen=True)
class StatementImage:
    """A base64-encoded statement page image."""

    base64: str
    mime_type: str

    @property
    def data_url(self) -> str:
        """Return the image as a data URL."""
        return f"data:{self.mime_type};base64,{self.base64}"


class BaseAgent(ABC):
    """Abstract base class for all agents."""

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings) -> "BaseAgent":
        """Build the agent and whatever client it needs from the application settings."""

    @abstractmethod
    def extract_text(self, content: str, file_type: str) -> list[dict]:
        """Extract raw transaction rows from tabular or plain statement text."""

    @abstractmethod
    def extract_images(self, images: list[StatementImage]) -> list[dict]:
        """Extract raw transaction rows from statement page images."""
