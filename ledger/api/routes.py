"""FastAPI endpoints for the household ledger API.

This module defines the API routes for accounts, categories and hand-entered transactions, recurring
transaction definitions and their scheduled processing, recurrence suggestions, and bank statement
preview/import/commit with background import jobs. Domain errors are translated to HTTP status codes here.
"""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Query, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ledger.agents import BaseAgent
from ledger.api.dependencies import get_agent, get_db, get_file_service, get_settings
from ledger.core.db import DBHelper
from ledger.core.errors import ExtractionError, LedgerError, NotFoundError
from ledger.core.models import (
    AccountIn,
    ImportSummary,
    JobStatus,
    RecurringCreate,
    RecurringDefinition,
    RecurringRunReport,
    RecurringUpdate,
    StatementCommit,
    StatementPreview,
    TransactionIn,
    TransactionOut,
    TransactionPage,
    TransactionUpdate,
)
from ledger.core.settings import Settings
from ledger.core.utils import get_logger, utc_today, utcnow_iso
from ledger.services.file_service import FileService
from ledger.services.import_service import StatementImporter
from ledger.services.recurring_service import RecurringService
from ledger.services.statement_reader import file_type_for
from ledger.services.transaction_service import TransactionService
from ledger.workers.job_runner import run_job

router = APIRouter()
logger = get_logger("ledger.api")

NOT_FOUND_RESPONSE = {
    "description": "Not found.",
    "content": {"application/json": {"example": {"detail": "Recurring transaction 42 not found"}}},
}


def _http_error(exc: LedgerError) -> HTTPException:
    """Translate a domain error into an HTTPException."""
    if isinstance(exc, NotFoundError):
        return HTTPException(404, str(exc))
    if isinstance(exc, ExtractionError):
        return HTTPException(502, str(exc))
    return HTTPException(400, str(exc))


def _account_out(account: object) -> dict:
    return {"id": account.id, "name": account.name, "balance": float(account.balance)}


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


# --- accounts and categories ---


@router.get("/accounts", summary="List accounts", description="List all accounts with their current balance.")
async def list_accounts(db: DBHelper = Depends(get_db)) -> list[dict]:
    """List accounts."""
    return [_account_out(a) for a in db.list_accounts()]


@router.post(
    "/accounts",
    status_code=201,
    summary="Create an account",
    description="Create an account transactions can be booked against. `balance` defaults to 0.",
    responses={201: {"content": {"application/json": {"example": {"id": 1, "name": "Checking", "balance": 0.0}}}}},
)
async def create_account(payload: AccountIn, db: DBHelper = Depends(get_db)) -> dict:
    """Create an account."""
    account = db.create_account(payload.name, payload.balance)
    db.commit()
    logger.info(f"Created account {account.id}: {account.name}")
    return _account_out(account)


@router.get("/categories", summary="List categories", description="List the categories transactions can carry.")
async def list_categories(db: DBHelper = Depends(get_db)) -> list[dict]:
    """List categories."""
    return [{"id": c.id, "name": c.name} for c in db.list_categories()]


# --- transactions ---


@router.get(
    "/transactions",
    response_model=TransactionPage,
    summary="List transactions",
    description=(
        "List transactions newest first. Filter with `account_id`, `date_from` and `date_to` (inclusive), and "
        "page with `limit` (default 50) and `offset`."
    ),
)
async def list_transactions(
    account_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: DBHelper = Depends(get_db),
) -> TransactionPage:
    """List transactions."""
    return TransactionService(db).list_page(account_id, date_from, date_to, limit, offset)


@router.post(
    "/transactions",
    status_code=201,
    response_model=TransactionOut,
    summary="Create a transaction",
    description="Book a transaction by hand. Its amount is added to the account balance.",
    responses={404: {"description": "Account not found."}},
)
async def create_transaction(payload: TransactionIn, db: DBHelper = Depends(get_db)) -> TransactionOut:
    """Create a transaction."""
    try:
        return TransactionService(db).create(payload)
    except LedgerError as exc:
        raise _http_error(exc) from exc


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionOut,
    summary="Get a transaction",
    responses={404: {"description": "Transaction not found."}},
)
async def get_transaction(transaction_id: int, db: DBHelper = Depends(get_db)) -> TransactionOut:
    """Get a transaction."""
    try:
        return TransactionService(db).get(transaction_id)
    except LedgerError as exc:
        raise _http_error(exc) from exc


@router.put(
    "/transactions/{transaction_id}",
    response_model=TransactionOut,
    summary="Update a transaction",
    description=(
        "Update the fields present in the body. Changing `amount` or `account_id` moves the amount between "
        "account balances."
    ),
    responses={404: {"description": "Transaction or account not found."}},
)
async def update_transaction(
    transaction_id: int, payload: TransactionUpdate, db: DBHelper = Depends(get_db)
) -> TransactionOut:
    """Update a transaction."""
    try:
        return TransactionService(db).update(transaction_id, payload)
    except LedgerError as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/transactions/{transaction_id}",
    status_code=204,
    summary="Delete a transaction",
    description="Delete a transaction and take its amount back out of the account balance.",
    responses={404: {"description": "Transaction not found."}},
)
async def delete_transaction(transaction_id: int, db: DBHelper = Depends(get_db)) -> Response:
    """Delete a transaction."""
    try:
        TransactionService(db).delete(transaction_id)
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


# --- recurring definitions ---


@router.get(
    "/recurring",
    response_model=list[RecurringDefinition],
    summary="List recurring transactions",
    description="List every recurring transaction definition, ordered by next run date.",
)
async def list_recurring(db: DBHelper = Depends(get_db)) -> list[RecurringDefinition]:
    """List recurring definitions."""
    return RecurringService(db).list_all()


@router.post(
    "/recurring",
    status_code=201,
    response_model=RecurringDefinition,
    summary="Create a recurring transaction",
    description=(
        "Create a recurring transaction definition. It starts active and first fires on `next_run_date`.\n\n"
        "**Body:** `description`, `amount` (signed), `interval` (daily, weekly, monthly or yearly), "
        "`next_run_date`, and optionally `account_id`, `category_id`, `day_of_month`, `day_of_week`."
    ),
    responses={422: {"description": "Invalid payload, e.g. an unknown interval."}},
)
async def create_recurring(payload: RecurringCreate, db: DBHelper = Depends(get_db)) -> RecurringDefinition:
    """Create a recurring definition."""
    return RecurringService(db).create(payload)


@router.post(
    "/recurring/process",
    response_model=RecurringRunReport,
    summary="Process due recurring transactions",
    description=(
        "Fire every active recurring definition whose next run date is on or before `today` (defaults to the "
        "current UTC date). Each definition fires once per call, even when it is several cycles overdue. "
        "Definitions that fail are reported in `failures` and do not stop the rest."
    ),
    responses={
        200: {
            "description": "Run report.",
            "content": {"application/json": {"example": {"processed": 2, "failures": []}}},
        }
    },
)
async def process_recurring(today: date | None = None, db: DBHelper = Depends(get_db)) -> RecurringRunReport:
    """Process due recurring definitions."""
    return RecurringService(db).process_due(today or utc_today())


@router.get(
    "/recurring/suggestions",
    summary="Suggest recurring transactions",
    description=(
        "Analyze the last months of transactions before `today` (defaults to the current UTC date) and suggest "
        "recurring definitions for repeated, evenly spaced payments of a similar amount that are not already "
        "tracked."
    ),
    responses={
        200: {
            "content": {
                "application/json": {
                    "example": {
                        "suggestions": [
                            {
                                "description": "Netflix",
                                "amount": -15.99,
                                "interval": "monthly",
                                "confidence": 0.95,
                                "occurrence_count": 3,
                            }
                        ]
                    }
                }
            }
        }
    },
)
async def recurring_suggestions(
    today: date | None = None, db: DBHelper = Depends(get_db), settings: Settings = Depends(get_settings)
) -> dict:
    """Suggest recurring definitions from transaction history."""
    suggestions = RecurringService(db).suggestions(today or utc_today(), settings)
    return {"suggestions": [s.model_dump(mode="json") for s in suggestions]}


@router.put(
    "/recurring/{recurring_id}",
    response_model=RecurringDefinition,
    summary="Update a recurring transaction",
    description="Update the fields present in the body; other fields are left unchanged.",
    responses={404: NOT_FOUND_RESPONSE},
)
async def update_recurring(
    recurring_id: int, payload: RecurringUpdate, db: DBHelper = Depends(get_db)
) -> RecurringDefinition:
    """Update a recurring definition."""
    try:
        return RecurringService(db).update(recurring_id, payload)
    except LedgerError as exc:
        raise _http_error(exc) from exc


@router.delete(
    "/recurring/{recurring_id}",
    status_code=204,
    summary="Delete a recurring transaction",
    description="Delete a recurring definition. Transactions it already booked are kept.",
    responses={404: NOT_FOUND_RESPONSE},
)
async def delete_recurring(recurring_id: int, db: DBHelper = Depends(get_db)) -> Response:
    """Delete a recurring definition."""
    try:
        RecurringService(db).delete(recurring_id)
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@router.post(
    "/recurring/{recurring_id}/toggle",
    response_model=RecurringDefinition,
    summary="Pause or resume a recurring transaction",
    description="Flip the definition between active and paused. Paused definitions never fire.",
    responses={404: NOT_FOUND_RESPONSE},
)
async def toggle_recurring(recurring_id: int, db: DBHelper = Depends(get_db)) -> RecurringDefinition:
    """Toggle a recurring definition."""
    try:
        return RecurringService(db).toggle(recurring_id)
    except LedgerError as exc:
        raise _http_error(exc) from exc


# --- statements ---


@router.post(
    "/statements/preview",
    response_model=StatementPreview,
    summary="Preview a bank statement",
    description=(
        "Extract the transactions of a statement (CSV, TSV, PDF, PNG or JPG) and flag the ones that look like "
        "duplicates of transactions already on the account. Nothing is written.\n\n"
        "**Request:** multipart/form-data with `file` and `account_id`."
    ),
    responses={
        400: {"description": "Unsupported file type."},
        404: {"description": "Account not found."},
        502: {"description": "Transaction extraction failed."},
    },
)
async def preview_statement(
    file: UploadFile,
    account_id: int = Form(...),
    db: DBHelper = Depends(get_db),
    agent: BaseAgent = Depends(get_agent),
    settings: Settings = Depends(get_settings),
) -> StatementPreview:
    """Preview the transactions in a statement."""
    logger.info(f"Received preview request: filename={file.filename}, account_id={account_id}")
    data = await file.read()
    importer = StatementImporter(db, agent, settings)
    try:
        return await run_in_threadpool(importer.preview, account_id, file.filename or "", data)
    except LedgerError as exc:
        logger.warning(f"Preview of {file.filename} failed: {exc}")
        raise _http_error(exc) from exc


@router.post(
    "/statements/import",
    status_code=202,
    summary="Import a bank statement in the background",
    description=(
        "Upload a statement and start a background job that extracts its transactions, skips duplicates of "
        "transactions already on the account, and books the rest. Returns a `job_id` for `/status/{job_id}`.\n\n"
        "**Request:** multipart/form-data with `file` and `account_id`."
    ),
    response_description="Job accepted. Returns job_id.",
    responses={
        202: {
            "description": "Job accepted. Returns job_id.",
            "content": {"application/json": {"example": {"job_id": "123e4567-e89b-12d3-a456-426614174000"}}},
        },
        400: {"description": "Unsupported file type."},
        404: {"description": "Account not found."},
    },
)
async def import_statement(
    background_tasks: BackgroundTasks,
    file: UploadFile,
    account_id: int = Form(...),
    db: DBHelper = Depends(get_db),
    agent: BaseAgent = Depends(get_agent),
    file_service: FileService = Depends(get_file_service),
) -> JSONResponse:
    """Upload a statement and start an import job."""
    logger.info(f"Received import request: filename={file.filename}, account_id={account_id}")
    file_name = file.filename or ""
    try:
        file_type_for(file_name)
        if db.get_account(account_id) is None:
            msg = f"Account {account_id} not found"
            raise NotFoundError(msg)
    except LedgerError as exc:
        logger.warning(f"Rejected import of {file_name}: {exc}")
        raise _http_error(exc) from exc

    data = await file.read()
    job_id, input_key = file_service.save_statement_upload(file_name, data)
    db.create_job(job_id, account_id, file_name, input_key, utcnow_iso())
    db.commit()
    background_tasks.add_task(run_job, job_id, input_key, account_id, file_name, agent, file_service)
    logger.info(f"Background job started: job_id={job_id}")
    return JSONResponse({"job_id": job_id}, status_code=202)


@router.get(
    "/status/{job_id}",
    response_model=JobStatus,
    summary="Get import job status",
    description=(
        "Check the status of a statement import job by job_id. Completed jobs report the total, new and "
        "duplicate transaction counts; failed jobs report the error."
    ),
    response_description="Job status and metadata.",
    responses={
        200: {
            "description": "Job found.",
            "content": {
                "application/json": {
                    "example": {
                        "status": "completed",
                        "created_at": "2025-05-18T10:30:49Z",
                        "completed_at": "2025-05-18T10:31:10Z",
                        "error": None,
                        "total": 12,
                        "new": 10,
                        "duplicates": 2,
                    }
                }
            },
        },
        404: {
            "description": "Job not found.",
            "content": {"application/json": {"example": {"detail": "Job not found"}}},
        },
    },
)
async def get_status(job_id: str, db: DBHelper = Depends(get_db)) -> dict:
    """Get the status of a job."""
    row = db.get_job_status(job_id)
    if not row:
        raise HTTPException(404, "Job not found")
    return row


@router.post(
    "/statements/commit",
    status_code=201,
    response_model=ImportSummary,
    summary="Commit reviewed statement transactions",
    description=(
        "Book the transactions a user kept after reviewing a preview. Rows are inserted as given, applied to the "
        "account balance, and recorded as one statement."
    ),
    responses={400: {"description": "No transactions selected."}, 404: {"description": "Account not found."}},
)
async def commit_statement(
    payload: StatementCommit, db: DBHelper = Depends(get_db), settings: Settings = Depends(get_settings)
) -> ImportSummary:
    """Commit reviewed statement rows."""
    try:
        return StatementImporter(db, None, settings).commit(payload)
    except LedgerError as exc:
        raise _http_error(exc) from exc


@router.get("/statements", summary="List imported statements", description="List imported statements, newest first.")
async def list_statements(account_id: int | None = None, db: DBHelper = Depends(get_db)) -> list[dict]:
    """List imported statements."""
    return [
        {
            "id": s.id,
            "account_id": s.account_id,
            "file_name": s.file_name,
            "file_type": s.file_type,
            "transaction_count": s.transaction_count,
            "created_at": s.created_at,
        }
        for s in db.list_statements(account_id)
    ]
