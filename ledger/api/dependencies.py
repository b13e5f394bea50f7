"""FastAPI dependencies for DI (settings, DB, agent, file storage).

This module provides dependency injection helpers for settings, database sessions, extraction agents and
statement storage, enabling modular and testable API endpoints.
"""

from collections.abc import Iterator
from functools import lru_cache

from ledger.agents import AgentRegistry, BaseAgent
from ledger.core.db import DBHelper
from ledger.core.db import get_db as _open_db
from ledger.core.settings import Settings
from ledger.core.settings import get_settings as _load_settings
from ledger.services.file_service import FileService
from ledger.services.s3_file_service import S3FileService


def get_settings() -> Settings:
    """Provide the application settings."""
    return _load_settings()


def get_db() -> Iterator[DBHelper]:
    """Provide a DBHelper for the duration of a request."""
    db = _open_db()
    try:
        yield db
    finally:
        db.close()


def get_agent() -> BaseAgent:
    """Provide the extraction agent selected by the ``extraction_agent`` setting."""
    settings = get_settings()
    return AgentRegistry.get(settings.extraction_agent).from_settings(settings)


@lru_cache
def get_file_service() -> FileService:
    """Provide the S3-backed statement storage."""
    return FileService(S3FileService(get_settings()))
