"""Recurring engine: turn due definitions into transactions and advance their schedules.

The engine is pure. It reads nothing from storage and writes nothing back; ``RecurringService`` owns the
read-compute-write cycle around it.
"""

from collections.abc import Iterable
from datetime import date

from ledger.core.errors import ConfigurationError
from ledger.core.models import (
    MaterializedTransaction,
    ProcessFailure,
    ProcessResult,
    RecurringDefinition,
)
from ledger.core.utils import get_logger
from ledger.recurring.schedule import advance

logger = get_logger("ledger.recurring")


def is_due(definition: RecurringDefinition, today: date) -> bool:
    """A definition is due when it is active and its next run date has arrived."""
    return definition.active and definition.next_run_date <= today


def materialize(definition: RecurringDefinition) -> MaterializedTransaction:
    """Build the transaction for the definition's current due date."""
    if not definition.description:
        msg = f"Recurring definition {definition.id} has no description"
        raise ConfigurationError(msg)
    return MaterializedTransaction(
        date=definition.next_run_date,
        description=definition.description,
        amount=definition.amount,
        account_id=definition.account_id,
        category_id=definition.category_id,
        is_recurring=True,
        recurring_id=definition.id,
    )


def process_due(definitions: Iterable[RecurringDefinition], today: date) -> ProcessResult:
    """Fire every due definition once and advance it by one interval.

    A definition overdue by several cycles still fires and advances only once per call. A malformed
    definition is reported in ``failures`` and does not stop the rest of the batch.
    """
    result = ProcessResult()
    for definition in definitions:
        if not is_due(definition, today):
            continue
        try:
            txn = materialize(definition)
            updated = advance(definition, definition.next_run_date)
        except ConfigurationError as exc:
            logger.warning(f"Skipping recurring definition {definition.id}: {exc}")
            result.failures.append(ProcessFailure(definition_id=definition.id, reason=str(exc)))
            continue
        result.fired.append(txn)
        result.updated.append(updated)
    return result
