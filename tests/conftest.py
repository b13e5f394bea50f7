"""Shared test fixtures: a temporary SQLite store and in-memory fakes for extraction and file storage."""

import os
import tempfile
from collections.abc import Iterator
from decimal import Decimal
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="ledger-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'api.db'}"
os.environ["LOG_FILE"] = str(_TEST_DIR / "ledger.log")
os.environ["EXTRACTION_AGENT"] = "csv"

import pytest  # noqa: E402
from fakes import FakeAgent, MemoryStore  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from ledger.api.dependencies import get_file_service  # noqa: E402
from ledger.core.db import DBHelper, init_db  # noqa: E402
from ledger.core.settings import Settings  # noqa: E402
from ledger.services.file_service import FileService  # noqa: E402
from main import app  # noqa: E402

MEMORY_FILE_SERVICE = FileService(MemoryStore())

init_db()
app.dependency_overrides[get_file_service] = lambda: MEMORY_FILE_SERVICE


@pytest.fixture
def db(tmp_path: Path) -> Iterator[DBHelper]:
    """Provide a DBHelper on a fresh SQLite database with the default categories."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    helper = DBHelper(Session(engine))
    yield helper
    helper.close()
    engine.dispose()


@pytest.fixture
def account_id(db: DBHelper) -> int:
    """Create an account with a zero balance."""
    account = db.create_account("Checking", Decimal(0))
    db.commit()
    return account.id


@pytest.fixture
def settings() -> Settings:
    """Settings with test-friendly retry timing."""
    return Settings(groq_api_key="test-key", llm_retry_delay_seconds=0)


@pytest.fixture
def fake_agent() -> FakeAgent:
    """Extraction agent with no rows; tests set ``rows`` and ``fail_marker``."""
    return FakeAgent()
