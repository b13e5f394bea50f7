"""Tests for recurrence-pattern detection."""

from datetime import date, timedelta
from decimal import Decimal

from ledger.core.models import RecurringDefinition, TransactionRecord
from ledger.recurring.patterns import analyze_transactions, classify_gap, normalize_description


def _txn(day: date, amount: str, description: str) -> TransactionRecord:
    return TransactionRecord(date=day, amount=Decimal(amount), description=description)


NETFLIX = [
    _txn(date(2024, 1, 5), "-15.99", "Netflix"),
    _txn(date(2024, 2, 5), "-15.99", "Netflix"),
    _txn(date(2024, 3, 5), "-15.99", "Netflix"),
]


def test_monthly_subscription_is_suggested() -> None:
    """Three monthly Netflix charges give one monthly suggestion with confidence 0.95."""
    suggestions = analyze_transactions(NETFLIX, [])
    if len(suggestions) != 1:
        msg = f"Expected 1 suggestion, got {suggestions}"
        raise AssertionError(msg)
    suggestion = suggestions[0]
    expected = ("Netflix", Decimal("-15.99"), "monthly", 3, 0.95)
    actual = (
        suggestion.description,
        suggestion.amount,
        suggestion.interval,
        suggestion.occurrence_count,
        suggestion.confidence,
    )
    if actual != expected:
        msg = f"Expected {expected}, got {actual}"
        raise AssertionError(msg)


def test_input_order_does_not_matter() -> None:
    """Gaps are computed on date-sorted occurrences."""
    suggestions = analyze_transactions(list(reversed(NETFLIX)), [])
    if [s.interval for s in suggestions] != ["monthly"]:
        msg = f"Expected a monthly suggestion, got {suggestions}"
        raise AssertionError(msg)


def test_already_tracked_payment_is_not_suggested() -> None:
    """An existing definition with the same name and amount suppresses the suggestion."""
    existing = [
        RecurringDefinition(
            id=1,
            description="Netflix subscription",
            amount=Decimal("-15.99"),
            interval="monthly",
            next_run_date=date(2024, 4, 5),
        )
    ]
    if analyze_transactions(NETFLIX, existing):
        msg = "Tracked subscription must not be suggested again"
        raise AssertionError(msg)


def test_different_amount_definition_does_not_suppress() -> None:
    """A same-named definition with a very different amount is another payment."""
    existing = [
        RecurringDefinition(
            id=1, description="Netflix", amount=Decimal("-45.00"), interval="monthly", next_run_date=date(2024, 4, 5)
        )
    ]
    if len(analyze_transactions(NETFLIX, existing)) != 1:
        msg = "Definition with a different amount must not suppress the suggestion"
        raise AssertionError(msg)


def test_inconsistent_amounts_are_rejected() -> None:
    """Amounts must stay within 10% of their mean."""
    txns = [_txn(date(2024, 1, 1), "-10.00", "Shop"), _txn(date(2024, 1, 31), "-20.00", "Shop")]
    if analyze_transactions(txns, []):
        msg = "Inconsistent amounts must not be suggested"
        raise AssertionError(msg)


def test_zero_amounts_are_rejected() -> None:
    """A zero mean amount never forms a pattern."""
    txns = [_txn(date(2024, 1, 1), "0.00", "Fee"), _txn(date(2024, 1, 31), "0.00", "Fee")]
    if analyze_transactions(txns, []):
        msg = "Zero-amount group must not be suggested"
        raise AssertionError(msg)


def test_irregular_gaps_are_rejected() -> None:
    """An average gap that is not monthly, weekly or yearly gives nothing."""
    txns = [_txn(date(2024, 1, 1), "-8.00", "Cinema"), _txn(date(2024, 1, 15), "-8.00", "Cinema")]
    if analyze_transactions(txns, []):
        msg = "A 14 day gap must not be classified"
        raise AssertionError(msg)


def test_single_occurrence_is_ignored() -> None:
    """A pattern needs at least two occurrences."""
    if analyze_transactions([NETFLIX[0]], []):
        msg = "A single transaction must not be suggested"
        raise AssertionError(msg)


def test_weekly_and_digit_insensitive_grouping() -> None:
    """Descriptions differing only in digits are grouped, and 7 day gaps are weekly."""
    start = date(2024, 1, 1)
    txns = [_txn(start + timedelta(days=7 * i), "-20.00", f"Gym session {i + 1}") for i in range(4)]
    suggestions = analyze_transactions(txns, [])
    if len(suggestions) != 1 or suggestions[0].interval != "weekly" or suggestions[0].occurrence_count != 4:
        msg = f"Expected one weekly suggestion of 4 occurrences, got {suggestions}"
        raise AssertionError(msg)
    if suggestions[0].description != "Gym session 4":
        msg = f"Suggestion should use the latest description, got {suggestions[0].description}"
        raise AssertionError(msg)


def test_yearly_pattern() -> None:
    """A 365 day gap is yearly."""
    txns = [_txn(date(2022, 3, 1), "-99.00", "Insurance"), _txn(date(2023, 3, 1), "-99.00", "Insurance")]
    suggestions = analyze_transactions(txns, [])
    if [s.interval for s in suggestions] != ["yearly"]:
        msg = f"Expected a yearly suggestion, got {suggestions}"
        raise AssertionError(msg)


def test_results_sorted_by_count_and_limited() -> None:
    """The most frequent patterns come first and the list is capped at ``limit``."""
    start = date(2024, 1, 1)
    txns = []
    for offset, name in enumerate(["Alpha", "Bravo", "Charlie"]):
        count = offset + 2
        txns.extend(_txn(start + timedelta(days=7 * i), "-10.00", name) for i in range(count))
    suggestions = analyze_transactions(txns, [], limit=2)
    if [s.description for s in suggestions] != ["Charlie", "Bravo"]:
        msg = f"Expected Charlie then Bravo, got {[s.description for s in suggestions]}"
        raise AssertionError(msg)


def test_confidence_grows_with_occurrences() -> None:
    """Confidence is 0.8 + 0.05 per occurrence and is not capped."""
    start = date(2024, 1, 1)
    txns = [_txn(start + timedelta(days=7 * i), "-3.50", "Coffee club") for i in range(5)]
    suggestions = analyze_transactions(txns, [])
    if suggestions[0].confidence != 1.05:  # noqa: PLR2004
        msg = f"Expected confidence 1.05, got {suggestions[0].confidence}"
        raise AssertionError(msg)


def test_classify_gap_tolerances_are_strict() -> None:
    """Gaps exactly at the tolerance edge are not classified."""
    cases = {25: None, 26: "monthly", 35: None, 5: None, 6: "weekly", 355: None, 356: "yearly"}
    for gap, expected in cases.items():
        if classify_gap(gap) != expected:
            msg = f"Gap {gap}: expected {expected}, got {classify_gap(gap)}"
            raise AssertionError(msg)


def test_normalize_description() -> None:
    """Lowercase, digits removed, trimmed."""
    if normalize_description("  Netflix 12/24 ") != "netflix /":
        msg = f"Unexpected key: {normalize_description('  Netflix 12/24 ')!r}"
        raise AssertionError(msg)
