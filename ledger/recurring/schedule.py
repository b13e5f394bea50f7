"""Calendar arithmetic for recurring schedules.

Monthly and yearly steps use ``dateutil.relativedelta``, which clamps to the last day of the target month:
Jan 31 + 1 month is Feb 29 in a leap year (Feb 28 otherwise), Feb 29 + 1 year is Feb 28. A schedule with a
``day_of_month`` anchor lands on that day in the next month, clamped the same way, so a rent due on the 31st
goes Jan 31 -> Feb 29 -> Mar 31 instead of drifting to the 29th.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from ledger.core.errors import ConfigurationError
from ledger.core.models import INTERVALS, RecurringDefinition


def add_interval(current: date, interval: str, day_of_month: int | None = None) -> date:
    """Add exactly one interval unit to ``current``."""
    if interval == "daily":
        return current + timedelta(days=1)
    if interval == "weekly":
        return current + timedelta(days=7)
    if interval == "monthly":
        if day_of_month:
            return current + relativedelta(months=1, day=day_of_month)
        return current + relativedelta(months=1)
    if interval == "yearly":
        return current + relativedelta(years=1)
    msg = f"Unknown interval {interval!r}; expected one of {', '.join(INTERVALS)}"
    raise ConfigurationError(msg)


def advance(definition: RecurringDefinition, fired_date: date) -> RecurringDefinition:
    """Return a copy of ``definition`` moved one interval past ``fired_date``."""
    next_run = add_interval(fired_date, definition.interval, definition.day_of_month)
    return definition.model_copy(update={"next_run_date": next_run, "last_run_date": fired_date})
