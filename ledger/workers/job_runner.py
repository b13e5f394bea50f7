"""Background job orchestration for statement imports."""

from ledger.agents.base import BaseAgent
from ledger.core.db import DBHelper, get_db
from ledger.core.settings import Settings, get_settings
from ledger.core.utils import get_logger, utcnow_iso
from ledger.services.file_service import FileService
from ledger.services.import_service import StatementImporter

logger = get_logger("ledger.worker")


class JobRunner:
    """JobRunner executes statement import jobs against stored uploads."""

    def __init__(self, file_service: FileService, settings: Settings | None = None) -> None:
        """Initialize JobRunner with the file service holding the uploads."""
        self.file_service = file_service
        self.settings = settings or get_settings()

    def run_job(self, job_id: str, input_key: str, account_id: int, file_name: str, agent: BaseAgent) -> None:
        """Run a background job importing one stored statement into an account."""
        logger.info(f"Starting job: {job_id}, input: {input_key}, account: {account_id}")
        db = get_db()
        try:
            db.update_job(job_id, status="in_progress")
            db.commit()
            try:
                logger.info(f"Downloading statement: {input_key}")
                data = self.file_service.get_file(input_key)
                importer = StatementImporter(db, agent, self.settings)
                summary = importer.import_statement(account_id, file_name, data, storage_key=input_key)
                self._finish(
                    db,
                    job_id,
                    status="completed",
                    total_count=summary.total,
                    new_count=summary.new,
                    duplicate_count=summary.duplicates,
                )
                logger.info(f"Job {job_id} completed: {summary.new} new, {summary.duplicates} duplicates")
            except Exception as exc:
                logger.exception(f"Error processing job {job_id}")
                db.rollback()
                self._finish(db, job_id, status="error", error=str(exc))
        finally:
            db.close()

    @staticmethod
    def _finish(db: DBHelper, job_id: str, **values: object) -> None:
        db.update_job(job_id, completed_at=utcnow_iso(), **values)
        db.commit()


def run_job(
    job_id: str, input_key: str, account_id: int, file_name: str, agent: BaseAgent, file_service: FileService
) -> None:
    """Top-level function to run a job using JobRunner (for background tasks)."""
    runner = JobRunner(file_service)
    runner.run_job(job_id, input_key, account_id, file_name, agent)
