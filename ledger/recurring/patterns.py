"""Detect recurring payments in transaction history and suggest definitions for them."""

import re
from collections.abc import Iterable, Sequence

from ledger.core.models import RecurringDefinition, RecurringSuggestion, TransactionRecord

AMOUNT_VARIANCE = 0.1
ALREADY_RECURRING_AMOUNT_DELTA = 1
BASE_CONFIDENCE = 0.8
CONFIDENCE_PER_OCCURRENCE = 0.05

# (interval, expected gap in days, tolerance in days), checked in this order
INTERVAL_GAPS = (
    ("monthly", 30, 5),
    ("weekly", 7, 2),
    ("yearly", 365, 10),
)

_DIGITS = re.compile(r"\d+")


def normalize_description(description: str) -> str:
    """Grouping key: lowercase, digits removed, trimmed ("Netflix 12/24" -> "netflix /")."""
    return _DIGITS.sub("", description.lower()).strip()


def _amounts_consistent(amounts: Sequence[float]) -> bool:
    mean = sum(amounts) / len(amounts)
    if mean == 0:
        return False
    return all(abs(a - mean) / mean < AMOUNT_VARIANCE for a in amounts)


def classify_gap(average_days: float) -> str | None:
    """Name the interval an average gap between occurrences corresponds to."""
    for interval, expected, tolerance in INTERVAL_GAPS:
        if abs(average_days - expected) < tolerance:
            return interval
    return None


def _already_recurring(key: str, mean_amount: float, existing: Iterable[RecurringDefinition]) -> bool:
    return any(
        key in e.description.lower() and abs(abs(float(e.amount)) - mean_amount) < ALREADY_RECURRING_AMOUNT_DELTA
        for e in existing
    )


def analyze_transactions(
    transactions: Iterable[TransactionRecord],
    existing: Iterable[RecurringDefinition],
    limit: int = 5,
) -> list[RecurringSuggestion]:
    """Suggest recurring definitions for repeated, evenly spaced, similar-amount transactions."""
    existing = list(existing)
    groups: dict[str, list[TransactionRecord]] = {}
    for txn in transactions:
        groups.setdefault(normalize_description(txn.description), []).append(txn)

    suggestions: list[RecurringSuggestion] = []
    for key, group in groups.items():
        if len(group) < 2:  # noqa: PLR2004
            continue

        amounts = [abs(float(t.amount)) for t in group]
        if not _amounts_consistent(amounts):
            continue
        mean_amount = sum(amounts) / len(amounts)

        newest_first = sorted(group, key=lambda t: t.date, reverse=True)
        gaps = [(a.date - b.date).days for a, b in zip(newest_first, newest_first[1:], strict=False)]
        interval = classify_gap(sum(gaps) / len(gaps))
        if interval is None:
            continue

        if _already_recurring(key, mean_amount, existing):
            continue

        latest = newest_first[0]
        suggestions.append(
            RecurringSuggestion(
                description=latest.description,
                amount=latest.amount,
                interval=interval,
                confidence=round(BASE_CONFIDENCE + CONFIDENCE_PER_OCCURRENCE * len(group), 2),
                occurrence_count=len(group),
            )
        )

    suggestions.sort(key=lambda s: s.occurrence_count, reverse=True)
    return suggestions[:limit]
