"""Main entrypoint and application factory for the household ledger API.

This module initializes the FastAPI application, configures logging, sets up the database, and exposes the Scalar
API reference endpoint for interactive OpenAPI documentation. It also includes the main entrypoint for running the
app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from ledger.api.routes import router
from ledger.core.db import init_db
from ledger.core.settings import get_settings
from ledger.core.utils import ensure_dir, get_logger


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to file and console for every ledger logger."""
    log_file = Path(get_settings().log_file)
    ensure_dir(log_file.parent)
    logger = get_logger("ledger")
    logger.setLevel(logging.INFO)
    # Add file handler for persistent logs (not colorized)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(file_handler)
    for name in ("ledger.api", "ledger.agent", "ledger.worker", "ledger.recurring", "ledger.import"):
        child = get_logger(name)
        child.setLevel(logging.INFO)
        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler not in child.handlers:
                child.addHandler(handler)


setup_logging()
logger = get_logger("ledger")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler to create the ledger tables and seed the categories (PostgreSQL compatible)."""
    _ = app  # Silence unused argument warning
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Failed to create the ledger tables")
        raise
    yield


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Household Ledger API",
    description="""
    The Household Ledger API books recurring transactions on schedule and imports bank statements without
    duplicating transactions that are already on the account.

    **Endpoints:**
    - `GET /accounts`, `POST /accounts`, `GET /categories`: Accounts and categories.
    - `GET /recurring`, `POST /recurring`, `PUT /recurring/{id}`, `DELETE /recurring/{id}`: Recurring definitions.
    - `POST /recurring/{id}/toggle`: Pause or resume a recurring definition.
    - `POST /recurring/process`: Fire every due recurring definition.
    - `GET /recurring/suggestions`: Suggest recurring definitions from transaction history.
    - `POST /statements/preview`: Extract a statement and flag duplicates without writing.
    - `POST /statements/import`: Import a statement in the background. Returns a `job_id`.
    - `GET /status/{job_id}`: Check the status of an import job.
    - `POST /statements/commit`: Book reviewed statement rows.
    - `GET /statements`: List imported statements.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
