"""Pydantic models for the household ledger service.

This module defines the domain models that flow between the recurring engine, the deduplicator, the
extraction pipeline and the API: recurring definitions, materialized and candidate transactions, and the
result/summary models returned to callers.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer


def _to_decimal(value: object) -> object:
    """Convert floats through their repr so 9.99 stays 9.99."""
    if isinstance(value, float):
        return Decimal(str(value))
    return value


Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]

IntervalName = Literal["daily", "weekly", "monthly", "yearly"]
INTERVALS: tuple[str, ...] = ("daily", "weekly", "monthly", "yearly")
OptionalDate = date | None


class RecurringDefinition(BaseModel):
    """A recurring transaction definition (subscription, salary, rent...)."""

    id: int | None = None
    description: str
    amount: Money
    interval: str
    next_run_date: date
    last_run_date: date | None = None
    active: bool = True
    account_id: int | None = None
    category_id: int | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    day_of_week: int | None = Field(default=None, ge=0, le=6)


class MaterializedTransaction(BaseModel):
    """A concrete transaction produced by the recurring engine or a statement import."""

    date: date
    description: str
    amount: Money
    account_id: int | None = None
    category_id: int | None = None
    is_recurring: bool = False
    recurring_id: int | None = None
    notes: str | None = None


class CandidateTransaction(BaseModel):
    """An extracted, not yet persisted transaction awaiting the duplicate check."""

    date: date
    description: str
    amount: Money
    category: str = ""


class TransactionRecord(BaseModel):
    """An existing transaction as seen by the deduplicator and the pattern detector."""

    date: date
    amount: Money
    description: str = ""


class ProcessFailure(BaseModel):
    """A recurring definition that could not be processed."""

    definition_id: int | None
    reason: str


class ProcessResult(BaseModel):
    """Outcome of one recurring engine pass; fired[i] belongs to updated[i]."""

    fired: list[MaterializedTransaction] = []
    updated: list[RecurringDefinition] = []
    failures: list[ProcessFailure] = []


class RecurringRunReport(BaseModel):
    """What a store-backed recurring run reports back to its caller."""

    processed: int = 0
    failures: list[ProcessFailure] = []


class FilterResult(BaseModel):
    """Candidates that survived the duplicate check and how many did not."""

    accepted: list[CandidateTransaction] = []
    duplicate_count: int = 0


class RecurringSuggestion(BaseModel):
    """A recurring definition suggested from transaction history."""

    description: str
    amount: Money
    interval: IntervalName
    confidence: float
    occurrence_count: int


class PreviewRow(BaseModel):
    """One extracted statement row annotated for review."""

    date: date
    description: str
    amount: Money
    category: str
    category_id: int | None = None
    is_duplicate: bool = False


class StatementPreview(BaseModel):
    """Extracted statement rows plus the categories the reviewer can pick from."""

    preview: list[PreviewRow] = []
    available_categories: list[dict] = []


class ImportSummary(BaseModel):
    """Counts reported after a statement import."""

    total: int = 0
    new: int = 0
    duplicates: int = 0
    statement_id: int | None = None


class JobStatus(BaseModel):
    """Pydantic model representing the status of a statement import job."""

    status: str
    created_at: str
    completed_at: str | None = None
    error: str | None = None
    total: int | None = None
    new: int | None = None
    duplicates: int | None = None


class AccountIn(BaseModel):
    """Payload for creating an account."""

    name: str = Field(min_length=1)
    balance: Money = Decimal(0)


class RecurringCreate(BaseModel):
    """Payload for creating a recurring definition."""

    description: str = Field(min_length=1)
    amount: Money
    interval: IntervalName
    next_run_date: date
    account_id: int | None = None
    category_id: int | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    day_of_week: int | None = Field(default=None, ge=0, le=6)


class RecurringUpdate(BaseModel):
    """Payload for editing a recurring definition; unset fields are left alone."""

    description: str | None = None
    amount: Money | None = None
    interval: IntervalName | None = None
    next_run_date: date | None = None
    active: bool | None = None
    account_id: int | None = None
    category_id: int | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    day_of_week: int | None = Field(default=None, ge=0, le=6)


class ReviewedTransaction(BaseModel):
    """A statement row the user accepted in the review step."""

    date: date
    description: str
    amount: Money
    category_id: int | None = None


class StatementCommit(BaseModel):
    """Payload committing reviewed statement rows."""

    account_id: int
    file_name: str
    file_type: str = ""
    storage_key: str | None = None
    transactions: list[ReviewedTransaction]


class TransactionIn(BaseModel):
    """Payload creating a transaction by hand."""

    account_id: int
    date: date
    description: str = Field(min_length=1)
    amount: Money
    category_id: int | None = None
    notes: str | None = None


class TransactionUpdate(BaseModel):
    """Partial update of a transaction; unset fields are left unchanged."""

    account_id: int | None = None
    date: OptionalDate = None
    description: str | None = Field(default=None, min_length=1)
    amount: Money | None = None
    category_id: int | None = None
    notes: str | None = None


class TransactionOut(BaseModel):
    """A stored transaction as returned by the API."""

    id: int
    date: date
    description: str
    amount: Money
    account_id: int | None = None
    category_id: int | None = None
    recurring_id: int | None = None
    is_recurring: bool = False
    notes: str | None = None
    created_at: str


class TransactionPage(BaseModel):
    """One page of transactions plus the total number matching the filters."""

    transactions: list[TransactionOut] = []
    total: int = 0
    limit: int
    offset: int
