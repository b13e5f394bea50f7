"""Tests for recurring schedule arithmetic."""

from datetime import date
from decimal import Decimal

import pytest

from ledger.core.errors import ConfigurationError
from ledger.core.models import RecurringDefinition
from ledger.recurring.schedule import add_interval, advance


@pytest.mark.parametrize(
    ("current", "interval", "expected"),
    [
        (date(2024, 1, 15), "daily", date(2024, 1, 16)),
        (date(2024, 12, 31), "daily", date(2025, 1, 1)),
        (date(2024, 1, 15), "weekly", date(2024, 1, 22)),
        (date(2024, 1, 15), "monthly", date(2024, 2, 15)),
        (date(2024, 12, 15), "monthly", date(2025, 1, 15)),
        (date(2024, 1, 15), "yearly", date(2025, 1, 15)),
    ],
)
def test_add_interval(current: date, interval: str, expected: date) -> None:
    """Each interval adds exactly one unit."""
    result = add_interval(current, interval)
    if result != expected:
        msg = f"{current} + {interval}: expected {expected}, got {result}"
        raise AssertionError(msg)


@pytest.mark.parametrize(
    ("current", "interval", "expected"),
    [
        (date(2024, 1, 31), "monthly", date(2024, 2, 29)),
        (date(2023, 1, 31), "monthly", date(2023, 2, 28)),
        (date(2024, 3, 31), "monthly", date(2024, 4, 30)),
        (date(2024, 2, 29), "yearly", date(2025, 2, 28)),
    ],
)
def test_add_interval_clamps_to_month_end(current: date, interval: str, expected: date) -> None:
    """Month and year steps clamp to the last day of a shorter target month."""
    result = add_interval(current, interval)
    if result != expected:
        msg = f"{current} + {interval}: expected {expected}, got {result}"
        raise AssertionError(msg)


def test_day_of_month_anchor_recovers_after_short_month() -> None:
    """A schedule anchored on the 31st returns to the 31st after February."""
    february = add_interval(date(2024, 1, 31), "monthly", day_of_month=31)
    march = add_interval(february, "monthly", day_of_month=31)
    if (february, march) != (date(2024, 2, 29), date(2024, 3, 31)):
        msg = f"Expected 2024-02-29 then 2024-03-31, got {february} then {march}"
        raise AssertionError(msg)


def test_unknown_interval_is_a_configuration_error() -> None:
    """Intervals outside daily/weekly/monthly/yearly are rejected."""
    with pytest.raises(ConfigurationError):
        add_interval(date(2024, 1, 1), "fortnightly")


def test_advance_records_last_run_and_keeps_original() -> None:
    """advance returns a moved copy and leaves the input untouched."""
    definition = RecurringDefinition(
        id=1,
        description="Rent",
        amount=Decimal("-1200.00"),
        interval="monthly",
        next_run_date=date(2024, 3, 1),
    )
    moved = advance(definition, definition.next_run_date)
    if moved.next_run_date != date(2024, 4, 1) or moved.last_run_date != date(2024, 3, 1):
        msg = f"Unexpected schedule after advance: {moved.next_run_date}, {moved.last_run_date}"
        raise AssertionError(msg)
    if definition.next_run_date != date(2024, 3, 1) or definition.last_run_date is not None:
        msg = "advance must not mutate its input"
        raise AssertionError(msg)
