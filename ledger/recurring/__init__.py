"""Recurring package: schedule arithmetic, the recurring engine, and recurrence-pattern detection."""

from .engine import process_due  # noqa: F401
from .patterns import analyze_transactions  # noqa: F401
from .schedule import add_interval, advance  # noqa: F401
