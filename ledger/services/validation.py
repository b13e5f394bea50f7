"""Validation and cleanup of raw rows returned by an extraction agent."""

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil import parser as date_parser

from ledger.core.db import DEFAULT_CATEGORIES
from ledger.core.models import CandidateTransaction
from ledger.core.utils import get_logger

logger = get_logger("ledger.import")

CENT = Decimal("0.01")
MIN_DESCRIPTION_LEN = 2
MAX_DESCRIPTION_LEN = 200
MAX_MONTH = 12

CATEGORY_SYNONYMS = {
    "food": "groceries",
    "supermarket": "groceries",
    "restaurant": "dining",
    "cafe": "dining",
    "coffee": "dining",
    "taxi": "transport",
    "uber": "transport",
    "lyft": "transport",
    "gas": "transport",
    "fuel": "transport",
    "electric": "utilities",
    "water": "utilities",
    "internet": "utilities",
    "phone": "utilities",
    "mobile": "utilities",
    "movies": "entertainment",
    "games": "entertainment",
    "music": "entertainment",
    "streaming": "subscriptions",
    "netflix": "subscriptions",
    "spotify": "subscriptions",
    "amazon": "shopping",
    "clothes": "shopping",
    "clothing": "shopping",
    "doctor": "healthcare",
    "pharmacy": "healthcare",
    "medical": "healthcare",
    "hospital": "healthcare",
    "salary": "income",
    "wages": "income",
    "transfer": "other",
    "atm": "other",
    "withdrawal": "other",
    "hotel": "travel",
    "flight": "travel",
    "airline": "travel",
    "school": "education",
    "university": "education",
    "course": "education",
    "gym": "personal",
    "beauty": "personal",
    "haircut": "personal",
}

_YEAR_FIRST_DATE = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})$")
_NUMERIC_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})$")
_LEADING_YEAR = re.compile(r"^\d{4}\D")
_CURRENCY = re.compile(r"[€$£]")
_NUMBER_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")
_TRAILING_SIGN = re.compile(r"^(\d[\d.,]*)([+-])$")
_COMMA_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\xA0-\xFF]")
_WHITESPACE = re.compile(r"\s+")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: object) -> date | None:
    """Normalize ISO, DD/MM/YYYY and unambiguous MM/DD/YYYY dates; anything unreadable is None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    match = _YEAR_FIRST_DATE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)
    match = _NUMERIC_DATE.match(text)
    if match:
        first, second, year = (int(g) for g in match.groups())
        parsed = _safe_date(year, second, first)
        if parsed:
            return parsed
        # Only read month-first when the day-first reading was impossible
        if first <= MAX_MONTH and second <= MAX_MONTH:
            return None
        return _safe_date(year, first, second)
    year_first = bool(_LEADING_YEAR.match(text))
    try:
        return date_parser.parse(text, dayfirst=not year_first, yearfirst=year_first).date()
    except (ValueError, OverflowError):
        return None


def parse_amount(value: object) -> Decimal | None:
    """Parse numbers and strings like "1.234,56 €" into a signed amount rounded to cents."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        try:
            return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None
    if not isinstance(value, str):
        return None

    normalized = _CURRENCY.sub("", _WHITESPACE.sub("", value)).strip()
    trailing = _TRAILING_SIGN.match(normalized)
    if trailing:
        normalized = trailing.group(2) + trailing.group(1)
    if re.search(r",\d{2}$", normalized):
        normalized = normalized.replace(".", "").replace(",", ".")
    elif re.search(r"\.\d{1,2}$", normalized) or _COMMA_THOUSANDS.match(normalized):
        normalized = normalized.replace(",", "")
    match = _NUMBER_PREFIX.match(normalized)
    if not match:
        return None
    return Decimal(match.group(0)).quantize(CENT, rounding=ROUND_HALF_UP)


def clean_description(value: object) -> str | None:
    """Collapse whitespace, drop control characters, reject near-empty text and cap the length."""
    if not value or not isinstance(value, str):
        return None
    cleaned = _NON_PRINTABLE.sub("", _WHITESPACE.sub(" ", value)).strip()
    if len(cleaned) < MIN_DESCRIPTION_LEN:
        return None
    return cleaned[:MAX_DESCRIPTION_LEN]


def normalize_category(value: object) -> str:
    """Map a free-text label onto the known category names, falling back to "other"."""
    if not value or not isinstance(value, str):
        return "other"
    label = value.lower().strip()
    if label in DEFAULT_CATEGORIES:
        return label
    return CATEGORY_SYNONYMS.get(label, "other")


def validate_transactions(rows: list[dict]) -> list[CandidateTransaction]:
    """Turn raw extracted rows into candidates, silently dropping rows that cannot be repaired."""
    candidates = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        parsed_date = parse_date(row.get("date"))
        amount = parse_amount(row.get("amount"))
        description = clean_description(row.get("description"))
        if parsed_date is None or amount is None or description is None:
            logger.debug(f"Dropping unusable extracted row: {row}")
            continue
        candidates.append(
            CandidateTransaction(
                date=parsed_date,
                description=description,
                amount=amount,
                category=normalize_category(row.get("category")),
            )
        )
    return candidates
