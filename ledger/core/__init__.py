"""Core package: provides models, database helpers, settings, errors, and shared utilities."""

from .db import DBHelper, get_db, init_db  # noqa: F401
from .errors import ConfigurationError, ExtractionError, LedgerError, NotFoundError  # noqa: F401
from .models import JobStatus, RecurringDefinition  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401
from .utils import get_logger  # noqa: F401
