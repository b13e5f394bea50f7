"""DB models and helpers for the household ledger service."""

from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ledger.core.models import MaterializedTransaction, RecurringDefinition, TransactionRecord

Base = declarative_base()

DEFAULT_CATEGORIES = (
    "groceries",
    "dining",
    "transport",
    "utilities",
    "entertainment",
    "shopping",
    "healthcare",
    "income",
    "subscriptions",
    "travel",
    "education",
    "personal",
    "other",
)


class Account(Base):
    """An account transactions are booked against."""

    __tablename__ = "accounts"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    balance = Column(Numeric(12, 2), nullable=False, default=0)


class Category(Base):
    """A transaction category, looked up case-insensitively by name."""

    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, index=True, nullable=False)


class RecurringTransaction(Base):
    """A persisted recurring definition."""

    __tablename__ = "recurring_transactions"
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    interval = Column(String, nullable=False)
    day_of_month = Column(Integer, nullable=True)
    day_of_week = Column(Integer, nullable=True)
    next_run_date = Column(Date, nullable=False, index=True)
    last_run_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class Transaction(Base):
    """A booked transaction. (recurring_id, date) is the recurring idempotency key."""

    __tablename__ = "transactions"
    __table_args__ = (UniqueConstraint("recurring_id", "date", name="uq_transactions_recurring_date"),)
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    recurring_id = Column(Integer, ForeignKey("recurring_transactions.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False)


class Statement(Base):
    """Metadata for an imported bank statement."""

    __tablename__ = "statements"
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    storage_key = Column(String, nullable=True)
    transaction_count = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False)


class Job(Base):
    """A background statement import job."""

    __tablename__ = "jobs"
    id = Column(String, primary_key=True)
    status = Column(String, nullable=False)
    account_id = Column(Integer, nullable=False)
    file_name = Column(String, nullable=False)
    input_path = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    completed_at = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    total_count = Column(Integer, nullable=True)
    new_count = Column(Integer, nullable=True)
    duplicate_count = Column(Integer, nullable=True)


@lru_cache
def _engine_for(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def get_engine() -> Engine:
    """Create (or reuse) a SQLAlchemy engine for the configured database URL."""
    from ledger.core.settings import get_settings

    return _engine_for(get_settings().database_url)


def init_db(engine: Engine | None = None) -> None:
    """Create all tables and seed the default categories."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        existing = set(session.scalars(select(Category.name)))
        session.add_all(Category(name=name) for name in DEFAULT_CATEGORIES if name not in existing)
        session.commit()


def get_db() -> "DBHelper":
    """Get a DBHelper instance using a SQLAlchemy session."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return DBHelper(session_factory())


def _definition_from_row(row: RecurringTransaction) -> RecurringDefinition:
    return RecurringDefinition(
        id=row.id,
        description=row.description,
        amount=Decimal(row.amount),
        interval=row.interval,
        next_run_date=row.next_run_date,
        last_run_date=row.last_run_date,
        active=row.active,
        account_id=row.account_id,
        category_id=row.category_id,
        day_of_month=row.day_of_month,
        day_of_week=row.day_of_week,
    )


class DBHelper:
    """Helper class for database operations in the household ledger using SQLAlchemy.

    Methods that write do not commit; callers own the unit of work and call ``commit`` or ``rollback``.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the DBHelper with a SQLAlchemy session."""
        self.session = session

    # --- jobs ---

    def create_job(self, job_id: str, account_id: int, file_name: str, input_path: str, created_at: str) -> None:
        """Insert a pending import job."""
        self.session.add(
            Job(
                id=job_id,
                status="pending",
                account_id=account_id,
                file_name=file_name,
                input_path=input_path,
                created_at=created_at,
            )
        )

    def update_job(self, job_id: str, **values: Any) -> None:
        """Update columns of an import job."""
        self.session.execute(update(Job).where(Job.id == job_id).values(**values))

    def get_job_status(self, job_id: str) -> dict[str, Any] | None:
        """Retrieve the status and metadata for a job by its ID."""
        job = self.session.get(Job, job_id)
        if not job:
            return None
        return {
            "status": job.status,
            "created_at": job.created_at,
            "completed_at": job.completed_at,
            "error": job.error,
            "total": job.total_count,
            "new": job.new_count,
            "duplicates": job.duplicate_count,
        }

    # --- accounts and categories ---

    def create_account(self, name: str, balance: Decimal) -> Account:
        """Insert an account and return it with its id populated."""
        account = Account(name=name, balance=balance)
        self.session.add(account)
        self.session.flush()
        return account

    def list_accounts(self) -> list[Account]:
        """List all accounts ordered by name."""
        return list(self.session.scalars(select(Account).order_by(Account.name)))

    def get_account(self, account_id: int) -> Account | None:
        """Fetch an account by id."""
        return self.session.get(Account, account_id)

    def apply_to_balance(self, account_id: int, amount: Decimal) -> None:
        """Add a signed amount to an account balance."""
        self.session.execute(
            update(Account).where(Account.id == account_id).values(balance=Account.balance + amount)
        )

    def list_categories(self) -> list[Category]:
        """List all categories ordered by name."""
        return list(self.session.scalars(select(Category).order_by(Category.name)))

    def category_map(self) -> dict[str, int]:
        """Map lowercased category names to their ids."""
        return {c.name.lower(): c.id for c in self.list_categories()}

    # --- recurring definitions ---

    def list_recurring(self) -> list[RecurringDefinition]:
        """List every recurring definition ordered by next run date."""
        stmt = select(RecurringTransaction).order_by(RecurringTransaction.next_run_date, RecurringTransaction.id)
        return [_definition_from_row(r) for r in self.session.scalars(stmt)]

    def get_recurring(self, recurring_id: int) -> RecurringDefinition | None:
        """Fetch a single recurring definition."""
        row = self.session.get(RecurringTransaction, recurring_id)
        return _definition_from_row(row) if row else None

    def get_due_recurring(self, today: date) -> list[RecurringDefinition]:
        """Fetch definitions that are active and due on or before ``today``."""
        stmt = (
            select(RecurringTransaction)
            .where(RecurringTransaction.active.is_(True), RecurringTransaction.next_run_date <= today)
            .order_by(RecurringTransaction.next_run_date, RecurringTransaction.id)
        )
        return [_definition_from_row(r) for r in self.session.scalars(stmt)]

    def insert_recurring(self, values: dict[str, Any], now: str) -> RecurringDefinition:
        """Insert a recurring definition; it starts active."""
        row = RecurringTransaction(**values, active=True, created_at=now, updated_at=now)
        self.session.add(row)
        self.session.flush()
        return _definition_from_row(row)

    def update_recurring(self, recurring_id: int, values: dict[str, Any], now: str) -> RecurringDefinition | None:
        """Apply user edits to a recurring definition."""
        row = self.session.get(RecurringTransaction, recurring_id)
        if not row:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_at = now
        self.session.flush()
        return _definition_from_row(row)

    def delete_recurring(self, recurring_id: int) -> bool:
        """Delete a recurring definition; booked transactions keep their history."""
        row = self.session.get(RecurringTransaction, recurring_id)
        if not row:
            return False
        self.session.execute(
            update(Transaction).where(Transaction.recurring_id == recurring_id).values(recurring_id=None)
        )
        self.session.delete(row)
        return True

    def advance_schedule(self, definition: RecurringDefinition, expected_next_run: date, now: str) -> bool:
        """Write an advanced schedule if nobody moved it since it was read."""
        stmt = (
            update(RecurringTransaction)
            .where(
                RecurringTransaction.id == definition.id,
                RecurringTransaction.next_run_date == expected_next_run,
            )
            .values(
                next_run_date=definition.next_run_date,
                last_run_date=definition.last_run_date,
                updated_at=now,
            )
        )
        return self.session.execute(stmt).rowcount > 0

    # --- transactions ---

    def recurring_already_fired(self, recurring_id: int, fired_date: date) -> bool:
        """Check the (recurring_id, date) idempotency key."""
        stmt = select(func.count(Transaction.id)).where(
            Transaction.recurring_id == recurring_id, Transaction.date == fired_date
        )
        return self.session.scalar(stmt) > 0

    def insert_transaction(self, txn: MaterializedTransaction, now: str) -> Transaction:
        """Insert one transaction."""
        row = Transaction(
            account_id=txn.account_id,
            category_id=txn.category_id,
            recurring_id=txn.recurring_id,
            date=txn.date,
            description=txn.description,
            amount=txn.amount,
            notes=txn.notes,
            is_recurring=txn.is_recurring,
            created_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        """Fetch a transaction by id."""
        return self.session.get(Transaction, transaction_id)

    def list_transactions(
        self,
        account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """One page of transactions, newest first, and the number matching the filters."""
        filters = []
        if account_id is not None:
            filters.append(Transaction.account_id == account_id)
        if date_from is not None:
            filters.append(Transaction.date >= date_from)
        if date_to is not None:
            filters.append(Transaction.date <= date_to)
        total = self.session.scalar(select(func.count(Transaction.id)).where(*filters))
        stmt = (
            select(Transaction)
            .where(*filters)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt)), total

    def update_transaction(self, row: Transaction, values: dict[str, Any]) -> Transaction:
        """Apply user edits to a transaction."""
        for key, value in values.items():
            setattr(row, key, value)
        self.session.flush()
        return row

    def delete_transaction(self, row: Transaction) -> None:
        """Delete a transaction."""
        self.session.delete(row)
        self.session.flush()

    def account_history(self, account_id: int, limit: int) -> list[TransactionRecord]:
        """Most recent transactions of an account, newest first."""
        stmt = (
            select(Transaction)
            .where(Transaction.account_id == account_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return [
            TransactionRecord(date=t.date, amount=Decimal(t.amount), description=t.description)
            for t in self.session.scalars(stmt)
        ]

    def transactions_since(self, since: date) -> list[TransactionRecord]:
        """All transactions on or after ``since``, newest first."""
        stmt = select(Transaction).where(Transaction.date >= since).order_by(Transaction.date.desc())
        return [
            TransactionRecord(date=t.date, amount=Decimal(t.amount), description=t.description)
            for t in self.session.scalars(stmt)
        ]

    # --- statements ---

    def insert_statement(
        self, account_id: int, file_name: str, file_type: str, storage_key: str | None, count: int, now: str
    ) -> Statement:
        """Record an imported statement."""
        row = Statement(
            account_id=account_id,
            file_name=file_name,
            file_type=file_type,
            storage_key=storage_key,
            transaction_count=count,
            created_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def list_statements(self, account_id: int | None = None) -> list[Statement]:
        """List statements, newest first, optionally for one account."""
        stmt = select(Statement).order_by(Statement.id.desc())
        if account_id is not None:
            stmt = stmt.where(Statement.account_id == account_id)
        return list(self.session.scalars(stmt))

    # --- unit of work ---

    def commit(self) -> None:
        """Commit the current unit of work."""
        self.session.commit()

    def rollback(self) -> None:
        """Roll back the current unit of work."""
        self.session.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy session."""
        self.session.close()
