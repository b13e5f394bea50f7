"""Statement/transaction deduplication.

A candidate duplicates an existing transaction when the amounts differ by strictly less than the tolerance
(one cent by default) and the dates are at most ``window_days`` apart (three by default). Descriptions are
ignored because statement descriptions rarely match what was typed by hand. Matching is greedy and
non-consuming: one existing transaction can absorb any number of candidates.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from ledger.core.models import CandidateTransaction, FilterResult, TransactionRecord

DEFAULT_AMOUNT_TOLERANCE = Decimal("0.01")
DEFAULT_WINDOW_DAYS = 3


def matches(
    candidate: CandidateTransaction | TransactionRecord,
    existing: TransactionRecord,
    amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> bool:
    """Pairwise duplicate predicate."""
    return (
        abs(existing.amount - candidate.amount) < amount_tolerance
        and abs((existing.date - candidate.date).days) <= window_days
    )


def is_duplicate(
    candidate: CandidateTransaction | TransactionRecord,
    existing: Iterable[TransactionRecord],
    amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> bool:
    """True when any existing transaction matches the candidate."""
    return any(matches(candidate, e, amount_tolerance, window_days) for e in existing)


def filter_new(
    candidates: Iterable[CandidateTransaction],
    existing: Sequence[TransactionRecord],
    amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> FilterResult:
    """Split candidates into genuinely new ones and a count of duplicates."""
    candidates = list(candidates)
    accepted = [c for c in candidates if not is_duplicate(c, existing, amount_tolerance, window_days)]
    return FilterResult(accepted=accepted, duplicate_count=len(candidates) - len(accepted))
