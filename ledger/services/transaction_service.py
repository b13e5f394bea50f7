"""TransactionService: hand-entered transactions and user edits, keeping account balances in step."""

from datetime import date
from decimal import Decimal

from ledger.core.db import DBHelper, Transaction
from ledger.core.errors import NotFoundError
from ledger.core.models import (
    MaterializedTransaction,
    TransactionIn,
    TransactionOut,
    TransactionPage,
    TransactionUpdate,
)
from ledger.core.utils import get_logger, utcnow_iso

logger = get_logger("ledger.api")

CLEARABLE_FIELDS = ("category_id", "notes")
BALANCE_FIELDS = ("account_id", "amount")


def _transaction_out(row: Transaction) -> TransactionOut:
    return TransactionOut(
        id=row.id,
        date=row.date,
        description=row.description,
        amount=Decimal(row.amount),
        account_id=row.account_id,
        category_id=row.category_id,
        recurring_id=row.recurring_id,
        is_recurring=row.is_recurring,
        notes=row.notes,
        created_at=row.created_at,
    )


class TransactionService:
    """Store-backed CRUD on transactions."""

    def __init__(self, db: DBHelper) -> None:
        """Initialize the service with a DBHelper."""
        self.db = db

    def _require_account(self, account_id: int) -> None:
        if self.db.get_account(account_id) is None:
            msg = f"Account {account_id} not found"
            raise NotFoundError(msg)

    def _row(self, transaction_id: int) -> Transaction:
        row = self.db.get_transaction(transaction_id)
        if row is None:
            msg = f"Transaction {transaction_id} not found"
            raise NotFoundError(msg)
        return row

    def list_page(
        self,
        account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> TransactionPage:
        """List transactions newest first with optional account and date filters."""
        rows, total = self.db.list_transactions(account_id, date_from, date_to, limit, offset)
        return TransactionPage(
            transactions=[_transaction_out(r) for r in rows], total=total, limit=limit, offset=offset
        )

    def get(self, transaction_id: int) -> TransactionOut:
        """Fetch a transaction or raise NotFoundError."""
        return _transaction_out(self._row(transaction_id))

    def create(self, payload: TransactionIn) -> TransactionOut:
        """Book a hand-entered transaction and add it to its account balance."""
        self._require_account(payload.account_id)
        txn = MaterializedTransaction(**payload.model_dump())
        try:
            row = self.db.insert_transaction(txn, utcnow_iso())
            self.db.apply_to_balance(payload.account_id, payload.amount)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Created transaction {row.id} on account {payload.account_id}: {payload.amount}")
        return _transaction_out(row)

    def update(self, transaction_id: int, payload: TransactionUpdate) -> TransactionOut:
        """Apply the fields set in ``payload``; a changed amount or account moves the balance with it."""
        row = self._row(transaction_id)
        values = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        if "account_id" in values:
            self._require_account(values["account_id"])
        old_account_id, old_amount = row.account_id, Decimal(row.amount)
        try:
            self.db.update_transaction(row, values)
            if any(key in values for key in BALANCE_FIELDS):
                if old_account_id is not None:
                    self.db.apply_to_balance(old_account_id, -old_amount)
                if row.account_id is not None:
                    self.db.apply_to_balance(row.account_id, Decimal(row.amount))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return _transaction_out(row)

    def delete(self, transaction_id: int) -> None:
        """Delete a transaction and take its amount back out of the account balance."""
        row = self._row(transaction_id)
        account_id, amount = row.account_id, Decimal(row.amount)
        try:
            self.db.delete_transaction(row)
            if account_id is not None:
                self.db.apply_to_balance(account_id, -amount)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted transaction {transaction_id}")
