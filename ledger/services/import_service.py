"""StatementImporter: extract, validate, deduplicate and book statement transactions."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePath

from ledger.agents.base import BaseAgent
from ledger.core.db import DBHelper
from ledger.core.errors import ExtractionError, LedgerError, NotFoundError
from ledger.core.models import (
    CandidateTransaction,
    ImportSummary,
    MaterializedTransaction,
    PreviewRow,
    StatementCommit,
    StatementPreview,
)
from ledger.core.settings import Settings
from ledger.core.utils import get_logger, utcnow_iso
from ledger.dedup import filter_new, is_duplicate
from ledger.services.statement_reader import StatementContent, chunk_lines, read_statement
from ledger.services.validation import validate_transactions

logger = get_logger("ledger.import")

FALLBACK_CATEGORY = "other"


def _extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower().lstrip(".")


class StatementImporter:
    """Runs a statement file through extraction, validation and the duplicate check for one account."""

    def __init__(self, db: DBHelper, agent: BaseAgent | None, settings: Settings) -> None:
        """Initialize the importer with a store, an extraction agent and settings.

        The agent may be None when only committing reviewed rows.
        """
        self.db = db
        self.agent = agent
        self.settings = settings

    def extract(self, file_name: str, data: bytes) -> list[CandidateTransaction]:
        """Read, extract and validate the transactions in a statement file."""
        content = read_statement(file_name, data)
        rows = self._extract_rows(content)
        candidates = validate_transactions(rows)
        logger.info(f"{file_name}: {len(rows)} rows extracted, {len(candidates)} valid")
        if not candidates:
            msg = f"No valid transactions found in {file_name}"
            raise ExtractionError(msg)
        return candidates

    def _extract_rows(self, content: StatementContent) -> list[dict]:
        if content.text is None:
            return self.agent.extract_images(content.images)

        chunks = chunk_lines(content.text, self.settings.extraction_chunk_lines)
        if len(chunks) <= 1:
            return self.agent.extract_text(content.text, content.file_type)

        logger.info(f"Extracting {len(chunks)} chunks with up to {self.settings.extraction_max_workers} workers")
        with ThreadPoolExecutor(max_workers=self.settings.extraction_max_workers) as pool:
            futures = [pool.submit(self.agent.extract_text, chunk, content.file_type) for chunk in chunks]
            # result() re-raises the first chunk failure; the batch is all or nothing
            results = [future.result() for future in futures]
        return [row for chunk_rows in results for row in chunk_rows]

    def _category_id(self, categories: dict[str, int], name: str) -> int | None:
        return categories.get(name.lower(), categories.get(FALLBACK_CATEGORY))

    def _require_account(self, account_id: int) -> None:
        if self.db.get_account(account_id) is None:
            msg = f"Account {account_id} not found"
            raise NotFoundError(msg)

    def preview(self, account_id: int, file_name: str, data: bytes) -> StatementPreview:
        """Extract a statement and flag likely duplicates without writing anything."""
        self._require_account(account_id)
        candidates = self.extract(file_name, data)
        existing = self.db.account_history(account_id, self.settings.existing_history_limit)
        categories = self.db.category_map()
        rows = [
            PreviewRow(
                date=c.date,
                description=c.description,
                amount=c.amount,
                category=c.category,
                category_id=self._category_id(categories, c.category),
                is_duplicate=is_duplicate(
                    c, existing, self.settings.duplicate_amount_tolerance, self.settings.duplicate_window_days
                ),
            )
            for c in candidates
        ]
        available = [{"id": c.id, "name": c.name} for c in self.db.list_categories()]
        return StatementPreview(preview=rows, available_categories=available)

    def import_statement(
        self, account_id: int, file_name: str, data: bytes, storage_key: str | None = None
    ) -> ImportSummary:
        """Extract a statement and book every transaction that is not already on the account."""
        self._require_account(account_id)
        candidates = self.extract(file_name, data)
        existing = self.db.account_history(account_id, self.settings.existing_history_limit)
        result = filter_new(
            candidates, existing, self.settings.duplicate_amount_tolerance, self.settings.duplicate_window_days
        )
        categories = self.db.category_map()
        transactions = [
            MaterializedTransaction(
                date=c.date,
                description=c.description,
                amount=c.amount,
                account_id=account_id,
                category_id=self._category_id(categories, c.category),
                notes=f"Imported from {file_name}",
            )
            for c in result.accepted
        ]
        statement_id = self._book(account_id, file_name, _extension(file_name), storage_key, transactions)
        summary = ImportSummary(
            total=len(candidates),
            new=len(transactions),
            duplicates=result.duplicate_count,
            statement_id=statement_id,
        )
        logger.info(f"{file_name}: imported {summary.new} of {summary.total}, {summary.duplicates} duplicates")
        return summary

    def commit(self, payload: StatementCommit) -> ImportSummary:
        """Book the rows a user kept after reviewing a preview."""
        if not payload.transactions:
            msg = "No transactions selected"
            raise LedgerError(msg)
        self._require_account(payload.account_id)
        categories = self.db.category_map()
        fallback = categories.get(FALLBACK_CATEGORY)
        transactions = [
            MaterializedTransaction(
                date=t.date,
                description=t.description,
                amount=t.amount,
                account_id=payload.account_id,
                category_id=t.category_id if t.category_id is not None else fallback,
                notes=f"Imported from {payload.file_name}",
            )
            for t in payload.transactions
        ]
        file_type = payload.file_type or _extension(payload.file_name)
        statement_id = self._book(payload.account_id, payload.file_name, file_type, payload.storage_key, transactions)
        return ImportSummary(total=len(transactions), new=len(transactions), statement_id=statement_id)

    def _book(
        self,
        account_id: int,
        file_name: str,
        file_type: str,
        storage_key: str | None,
        transactions: list[MaterializedTransaction],
    ) -> int | None:
        """Insert transactions, update the balance and record the statement in one unit of work."""
        if not transactions:
            return None
        now = utcnow_iso()
        try:
            for txn in transactions:
                self.db.insert_transaction(txn, now)
                self.db.apply_to_balance(account_id, txn.amount)
            statement = self.db.insert_statement(account_id, file_name, file_type, storage_key, len(transactions), now)
            statement_id = statement.id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return statement_id
