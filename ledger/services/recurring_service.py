"""RecurringService: runs the recurring engine against the store and manages definitions."""

from datetime import date

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import SQLAlchemyError

from ledger.core.db import DBHelper
from ledger.core.errors import NotFoundError, ScheduleConflictError
from ledger.core.models import (
    MaterializedTransaction,
    ProcessFailure,
    RecurringCreate,
    RecurringDefinition,
    RecurringRunReport,
    RecurringSuggestion,
    RecurringUpdate,
)
from ledger.core.settings import Settings
from ledger.core.utils import get_logger, utcnow_iso
from ledger.recurring import analyze_transactions, process_due

logger = get_logger("ledger.recurring")

CLEARABLE_FIELDS = ("account_id", "category_id", "day_of_month", "day_of_week")


class RecurringService:
    """Store-backed operations on recurring definitions."""

    def __init__(self, db: DBHelper) -> None:
        """Initialize the service with a DBHelper."""
        self.db = db

    def process_due(self, today: date) -> RecurringRunReport:
        """Fire every due definition and persist each one in its own unit of work."""
        definitions = self.db.get_due_recurring(today)
        result = process_due(definitions, today)
        report = RecurringRunReport(failures=list(result.failures))
        for txn, updated in zip(result.fired, result.updated, strict=True):
            try:
                if self._persist(txn, updated):
                    report.processed += 1
            except (SQLAlchemyError, ScheduleConflictError) as exc:
                self.db.rollback()
                logger.exception(f"Recurring definition {updated.id} failed to persist")
                report.failures.append(ProcessFailure(definition_id=updated.id, reason=str(exc)))
        logger.info(f"Recurring run for {today}: {report.processed} fired, {len(report.failures)} failed")
        return report

    def _persist(self, txn: MaterializedTransaction, updated: RecurringDefinition) -> bool:
        """Insert the fired transaction and advance the schedule; True when a new transaction was booked."""
        now = utcnow_iso()
        # the fired transaction is dated with the pre-fire next_run_date
        expected_next_run = txn.date
        inserted = False
        if self.db.recurring_already_fired(updated.id, txn.date):
            logger.warning(f"Recurring definition {updated.id} already fired on {txn.date}; only advancing")
        else:
            self.db.insert_transaction(txn, now)
            if txn.account_id is not None:
                self.db.apply_to_balance(txn.account_id, txn.amount)
            inserted = True

        if not self.db.advance_schedule(updated, expected_next_run, now):
            msg = f"Schedule of recurring definition {updated.id} changed during the run"
            raise ScheduleConflictError(msg)
        self.db.commit()
        logger.info(f"Recurring definition {updated.id} fired for {txn.date}, next run {updated.next_run_date}")
        return inserted

    def suggestions(self, today: date, settings: Settings) -> list[RecurringSuggestion]:
        """Suggest new recurring definitions from recent transaction history."""
        since = today - relativedelta(months=settings.suggestion_lookback_months)
        history = self.db.transactions_since(since)
        return analyze_transactions(history, self.db.list_recurring(), limit=settings.max_suggestions)

    def list_all(self) -> list[RecurringDefinition]:
        """List every recurring definition."""
        return self.db.list_recurring()

    def get(self, recurring_id: int) -> RecurringDefinition:
        """Fetch a definition or raise NotFoundError."""
        definition = self.db.get_recurring(recurring_id)
        if definition is None:
            msg = f"Recurring transaction {recurring_id} not found"
            raise NotFoundError(msg)
        return definition

    def create(self, payload: RecurringCreate) -> RecurringDefinition:
        """Create an active definition."""
        definition = self.db.insert_recurring(payload.model_dump(), utcnow_iso())
        self.db.commit()
        logger.info(f"Created recurring definition {definition.id}: {definition.description}")
        return definition

    def update(self, recurring_id: int, payload: RecurringUpdate) -> RecurringDefinition:
        """Apply the fields set in ``payload`` to a definition."""
        values = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        definition = self.db.update_recurring(recurring_id, values, utcnow_iso())
        if definition is None:
            msg = f"Recurring transaction {recurring_id} not found"
            raise NotFoundError(msg)
        self.db.commit()
        return definition

    def delete(self, recurring_id: int) -> None:
        """Delete a definition; transactions it booked are kept."""
        if not self.db.delete_recurring(recurring_id):
            msg = f"Recurring transaction {recurring_id} not found"
            raise NotFoundError(msg)
        self.db.commit()

    def toggle(self, recurring_id: int) -> RecurringDefinition:
        """Flip a definition between active and paused."""
        current = self.get(recurring_id)
        return self.update(recurring_id, RecurringUpdate(active=not current.active))
