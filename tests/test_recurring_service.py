"""Tests for the store-backed recurring service against a temporary SQLite store."""

from datetime import date
from decimal import Decimal

import pytest

from ledger.core.db import DBHelper
from ledger.core.errors import NotFoundError
from ledger.core.models import MaterializedTransaction, RecurringCreate, RecurringUpdate
from ledger.core.settings import Settings
from ledger.services.recurring_service import RecurringService

NOW = "2024-01-01T00:00:00+00:00"


def _create(service: RecurringService, account_id: int | None, **overrides: object) -> int:
    values = {
        "description": "Streaming",
        "amount": Decimal("-9.99"),
        "interval": "monthly",
        "next_run_date": date(2024, 1, 15),
        "account_id": account_id,
    }
    values.update(overrides)
    return service.create(RecurringCreate(**values)).id


def _all_transactions(db: DBHelper) -> list:
    return db.transactions_since(date(2000, 1, 1))


def test_process_due_books_transaction_and_advances(db: DBHelper, account_id: int) -> None:
    """The due definition is booked, applied to the balance and moved one month forward."""
    service = RecurringService(db)
    recurring_id = _create(service, account_id)

    report = service.process_due(date(2024, 3, 1))

    if report.processed != 1 or report.failures:
        msg = f"Unexpected report: {report}"
        raise AssertionError(msg)
    transactions = _all_transactions(db)
    expected = [(date(2024, 1, 15), Decimal("-9.99"), "Streaming")]
    if [(t.date, t.amount, t.description) for t in transactions] != expected:
        msg = f"Unexpected transactions: {transactions}"
        raise AssertionError(msg)
    definition = service.get(recurring_id)
    if definition.next_run_date != date(2024, 2, 15) or definition.last_run_date != date(2024, 1, 15):
        msg = f"Unexpected schedule: {definition}"
        raise AssertionError(msg)
    if db.get_account(account_id).balance != Decimal("-9.99"):
        msg = f"Expected balance -9.99, got {db.get_account(account_id).balance}"
        raise AssertionError(msg)
    if not db.recurring_already_fired(recurring_id, date(2024, 1, 15)):
        msg = "The booked transaction should carry its recurring id"
        raise AssertionError(msg)


def test_second_run_same_day_fires_nothing(db: DBHelper, account_id: int) -> None:
    """Once caught up, running again on the same day books nothing."""
    service = RecurringService(db)
    _create(service, account_id)
    first = service.process_due(date(2024, 1, 15))
    second = service.process_due(date(2024, 1, 15))
    if (first.processed, second.processed) != (1, 0) or len(_all_transactions(db)) != 1:
        msg = f"Expected one booking in total, got {first}, {second}"
        raise AssertionError(msg)


def test_reverted_schedule_does_not_duplicate(db: DBHelper, account_id: int) -> None:
    """A schedule that points at an already booked date only advances."""
    service = RecurringService(db)
    recurring_id = _create(service, account_id)
    service.process_due(date(2024, 1, 15))
    service.update(recurring_id, RecurringUpdate(next_run_date=date(2024, 1, 15)))

    report = service.process_due(date(2024, 1, 15))

    if report.processed != 0 or report.failures or len(_all_transactions(db)) != 1:
        msg = f"Expected no new booking, got {report} and {_all_transactions(db)}"
        raise AssertionError(msg)
    if service.get(recurring_id).next_run_date != date(2024, 2, 15):
        msg = "The schedule should still advance"
        raise AssertionError(msg)
    if db.get_account(account_id).balance != Decimal("-9.99"):
        msg = "The balance must only be charged once"
        raise AssertionError(msg)


def test_malformed_definition_is_reported_and_others_fire(db: DBHelper, account_id: int) -> None:
    """A stored definition with an unknown interval fails alone."""
    service = RecurringService(db)
    broken = db.insert_recurring(
        {
            "description": "Broken",
            "amount": Decimal("-1.00"),
            "interval": "fortnightly",
            "next_run_date": date(2024, 1, 1),
            "account_id": account_id,
        },
        NOW,
    )
    db.commit()
    good_id = _create(service, account_id)

    report = service.process_due(date(2024, 3, 1))

    if report.processed != 1 or [f.definition_id for f in report.failures] != [broken.id]:
        msg = f"Unexpected report: {report}"
        raise AssertionError(msg)
    if service.get(good_id).next_run_date != date(2024, 2, 15):
        msg = "The valid definition should have advanced"
        raise AssertionError(msg)
    if service.get(broken.id).next_run_date != date(2024, 1, 1):
        msg = "The broken definition must be left untouched"
        raise AssertionError(msg)


def test_schedule_conflict_rolls_back_that_definition(
    db: DBHelper, account_id: int, monkeypatch: pytest.MonkeyPatch
) -> None:
    """When another run moved the schedule first, the booking is rolled back and reported."""
    service = RecurringService(db)
    recurring_id = _create(service, account_id)
    monkeypatch.setattr(db, "advance_schedule", lambda definition, expected, now: False)

    report = service.process_due(date(2024, 3, 1))

    if report.processed != 0 or [f.definition_id for f in report.failures] != [recurring_id]:
        msg = f"Unexpected report: {report}"
        raise AssertionError(msg)
    if _all_transactions(db) or db.get_account(account_id).balance != Decimal(0):
        msg = "The rolled back booking must leave no trace"
        raise AssertionError(msg)


def test_definition_without_account_leaves_balances_alone(db: DBHelper, account_id: int) -> None:
    """Definitions with no account are booked without touching any balance."""
    service = RecurringService(db)
    _create(service, None)
    report = service.process_due(date(2024, 1, 15))
    if report.processed != 1 or db.get_account(account_id).balance != Decimal(0):
        msg = f"Unexpected outcome: {report}, balance {db.get_account(account_id).balance}"
        raise AssertionError(msg)


def test_paused_definition_does_not_fire(db: DBHelper, account_id: int) -> None:
    """Toggling pauses a definition; toggling again resumes it."""
    service = RecurringService(db)
    recurring_id = _create(service, account_id)
    if service.toggle(recurring_id).active:
        msg = "Toggle should pause an active definition"
        raise AssertionError(msg)
    if service.process_due(date(2024, 3, 1)).processed != 0:
        msg = "Paused definitions must not fire"
        raise AssertionError(msg)
    if not service.toggle(recurring_id).active:
        msg = "Toggle should resume a paused definition"
        raise AssertionError(msg)


def test_update_and_delete(db: DBHelper, account_id: int) -> None:
    """Updates change only the given fields; deleting keeps booked transactions."""
    service = RecurringService(db)
    recurring_id = _create(service, account_id, day_of_month=15)
    updated = service.update(recurring_id, RecurringUpdate(amount=Decimal("-12.99"), day_of_month=None))
    if updated.amount != Decimal("-12.99") or updated.day_of_month is not None or updated.description != "Streaming":
        msg = f"Unexpected update result: {updated}"
        raise AssertionError(msg)

    service.process_due(date(2024, 1, 15))
    service.delete(recurring_id)
    if service.list_all() or len(_all_transactions(db)) != 1:
        msg = "Delete should remove the definition and keep its transactions"
        raise AssertionError(msg)
    with pytest.raises(NotFoundError):
        service.delete(recurring_id)
    with pytest.raises(NotFoundError):
        service.update(recurring_id, RecurringUpdate(active=False))


def test_suggestions_use_recent_history(db: DBHelper, account_id: int) -> None:
    """Recent repeated payments are suggested; old ones fall outside the lookback."""
    for day in (date(2024, 1, 5), date(2024, 2, 5), date(2024, 3, 5), date(2023, 1, 5), date(2023, 2, 5)):
        description = "Netflix" if day.year == 2024 else "Old gym"  # noqa: PLR2004
        amount = Decimal("-15.99") if day.year == 2024 else Decimal("-30.00")  # noqa: PLR2004
        db.insert_transaction(
            MaterializedTransaction(date=day, description=description, amount=amount, account_id=account_id), NOW
        )
    db.commit()

    suggestions = RecurringService(db).suggestions(date(2024, 3, 10), Settings())

    if [(s.description, s.interval, s.occurrence_count) for s in suggestions] != [("Netflix", "monthly", 3)]:
        msg = f"Unexpected suggestions: {suggestions}"
        raise AssertionError(msg)
