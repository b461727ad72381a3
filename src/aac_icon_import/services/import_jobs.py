"""In-memory tracking of background import jobs.

Jobs progress through states:
pending -> processing -> completed | failed | cancelled.

Finished jobs are kept for the configured TTL and then removed by a
background cleanup thread. Each job owns the cancellation token passed to
its pipeline run.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

from aac_icon_import.config import settings
from aac_icon_import.models import ImportJobResponse, ImportPhase, ImportSummary, JobStatus
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.import_pipeline import IconImportPipeline
from aac_icon_import.services.progress import CancellationToken, clamp_fraction
from aac_icon_import.services.spreadsheet_reader import SpreadsheetSource
from aac_icon_import.utils.exceptions import (
    AACError,
    ErrorCode,
    JobExpiredError,
    JobNotFoundError,
)
from aac_icon_import.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


@dataclass
class ImportJob:
    """Internal record of one import job."""

    job_id: str
    filename: str
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    phase: ImportPhase = ImportPhase.IDLE
    fraction_complete: float = 0.0
    status_text: str | None = None
    summary: ImportSummary | None = None
    error_message: str | None = None
    error_code: str | None = None
    expires_at: datetime | None = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_response(self) -> ImportJobResponse:
        return ImportJobResponse(
            job_id=self.job_id,
            status=self.status,
            filename=self.filename,
            created_at=self.created_at,
            updated_at=self.updated_at,
            phase=self.phase,
            fraction_complete=self.fraction_complete,
            status_text=self.status_text,
            summary=self.summary,
            summary_text=self.summary.summary_text() if self.summary else None,
            error_message=self.error_message,
            error_code=self.error_code,
        )


@dataclass
class ImportJobManagerConfig:
    """Configuration for the import job manager."""

    ttl_seconds: int = field(default_factory=lambda: settings.job_ttl_seconds)
    cleanup_interval_seconds: int = 300
    enable_auto_cleanup: bool = True


class ImportJobManager:
    """Thread-safe in-memory store of import jobs with TTL cleanup."""

    def __init__(self, config: ImportJobManagerConfig | None = None) -> None:
        self.config = config or ImportJobManagerConfig()
        self._jobs: dict[str, ImportJob] = {}
        self._lock = threading.RLock()
        self._cleanup_thread: threading.Thread | None = None
        self._stop_cleanup = threading.Event()

        if self.config.enable_auto_cleanup:
            self._start_cleanup_thread()

    def _start_cleanup_thread(self) -> None:
        self._stop_cleanup.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            daemon=True,
            name="ImportJobCleanup",
        )
        self._cleanup_thread.start()
        logger.debug("Import job cleanup thread started")

    def _cleanup_loop(self) -> None:
        while not self._stop_cleanup.wait(self.config.cleanup_interval_seconds):
            try:
                self.cleanup_expired_jobs()
            except Exception as e:
                logger.error(f"Error in import job cleanup: {e}")

    def stop_cleanup(self) -> None:
        """Stop the background cleanup thread."""
        self._stop_cleanup.set()
        if self._cleanup_thread and self._cleanup_thread.is_alive():
            self._cleanup_thread.join(timeout=5.0)
            logger.debug("Import job cleanup thread stopped")

    def _expiry(self) -> datetime:
        return datetime.fromtimestamp(time.time() + self.config.ttl_seconds, tz=UTC)

    def create_job(self, job_id: str, filename: str) -> ImportJob:
        now = datetime.now(UTC)
        job = ImportJob(
            job_id=job_id,
            filename=filename,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
            status_text="Import queued",
        )
        with self._lock:
            self._jobs[job_id] = job

        logger.info("Import job created", job_id=job_id, filename=filename)
        return job

    def get_job(self, job_id: str) -> ImportJob:
        """Get a job by ID.

        Raises:
            JobNotFoundError: If the job doesn't exist.
            JobExpiredError: If the job has expired.
        """
        with self._lock:
            job = self._jobs.get(job_id)

            if job is None:
                raise JobNotFoundError(job_id)

            if job.expires_at and datetime.now(UTC) > job.expires_at:
                del self._jobs[job_id]
                raise JobExpiredError(job_id, ttl_hours=settings.job_ttl_hours)

            return job

    def job_exists(self, job_id: str) -> bool:
        try:
            self.get_job(job_id)
            return True
        except (JobNotFoundError, JobExpiredError):
            return False

    def mark_processing(self, job_id: str) -> ImportJob:
        with self._lock:
            job = self.get_job(job_id)
            job.status = JobStatus.PROCESSING
            job.updated_at = datetime.now(UTC)
            return job

    def update_progress(
        self,
        job_id: str,
        fraction: float,
        status_text: str,
        phase: ImportPhase | None = None,
    ) -> ImportJob:
        """Record pipeline progress; the fraction never moves backwards."""
        with self._lock:
            job = self.get_job(job_id)
            job.fraction_complete = max(job.fraction_complete, clamp_fraction(fraction))
            job.status_text = status_text
            if phase is not None:
                job.phase = phase
            job.updated_at = datetime.now(UTC)
            return job

    def set_result(self, job_id: str, summary: ImportSummary) -> ImportJob:
        """Store the summary and finish the job as completed or cancelled."""
        with self._lock:
            job = self.get_job(job_id)
            job.summary = summary
            job.status = JobStatus.CANCELLED if summary.cancelled else JobStatus.COMPLETED
            job.phase = ImportPhase.DONE
            job.fraction_complete = 1.0
            job.status_text = summary.summary_text()
            job.updated_at = datetime.now(UTC)
            job.expires_at = self._expiry()

        logger.info(
            "Import job finished",
            job_id=job_id,
            status=job.status.value,
            created=summary.created_icon_count,
        )
        return job

    def set_failed(
        self,
        job_id: str,
        error_message: str,
        error_code: str | None = None,
    ) -> ImportJob:
        with self._lock:
            job = self.get_job(job_id)
            job.status = JobStatus.FAILED
            job.phase = ImportPhase.FAILED
            job.error_message = error_message
            job.error_code = error_code
            job.status_text = "Import failed"
            job.updated_at = datetime.now(UTC)
            job.expires_at = self._expiry()

        logger.error(
            f"Import job {job_id} failed: {error_message}", error_code=error_code
        )
        return job

    def request_cancel(self, job_id: str) -> ImportJob:
        """Ask a running job to stop. Finished jobs are left unchanged."""
        with self._lock:
            job = self.get_job(job_id)
            if not job.is_finished:
                job.cancel_token.cancel()
                job.status_text = "Cancelling..."
                job.updated_at = datetime.now(UTC)
                logger.info("Import job cancellation requested", job_id=job_id)
            return job

    def cleanup_expired_jobs(self) -> int:
        """Remove expired jobs from storage.

        Returns:
            Number of jobs cleaned up.
        """
        now = datetime.now(UTC)
        with self._lock:
            expired_ids = [
                job_id
                for job_id, job in self._jobs.items()
                if job.expires_at and now > job.expires_at
            ]
            for job_id in expired_ids:
                del self._jobs[job_id]

        if expired_ids:
            logger.info("Cleaned up expired import jobs", count=len(expired_ids))
        return len(expired_ids)

    def get_job_count(self) -> int:
        with self._lock:
            return len(self._jobs)

    def clear_all(self) -> None:
        """Clear all jobs from storage. Used primarily for testing."""
        with self._lock:
            self._jobs.clear()


class JobProgressReporter:
    """Forward pipeline progress, and the pipeline phase, into a tracked job."""

    def __init__(
        self,
        manager: ImportJobManager,
        job_id: str,
        pipeline: IconImportPipeline | None = None,
    ) -> None:
        self._manager = manager
        self._job_id = job_id
        self._pipeline = pipeline

    def report(self, fraction: float, status_text: str) -> None:
        phase = self._pipeline.phase if self._pipeline is not None else None
        self._manager.update_progress(self._job_id, fraction, status_text, phase)

    def finish(self, summary_text: str) -> None:
        self._manager.update_progress(self._job_id, 1.0, summary_text)


async def process_import_job(
    job_id: str,
    source: SpreadsheetSource,
    store: FolderStore,
    manager: ImportJobManager | None = None,
    pipeline: IconImportPipeline | None = None,
) -> None:
    """Run one import batch for a tracked job.

    Errors are recorded on the job rather than raised, since nothing awaits
    a background task.
    """
    manager = manager or get_job_manager()
    pipeline = pipeline or IconImportPipeline()
    job = manager.mark_processing(job_id)
    reporter = JobProgressReporter(manager, job_id, pipeline)

    with LogContext(job_id=job_id):
        try:
            summary = await pipeline.run(source, store, reporter, job.cancel_token)
        except AACError as e:
            manager.set_failed(job_id, e.message, e.error_code.value)
            return
        except Exception as e:
            logger.error(
                "Import job crashed",
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            manager.set_failed(
                job_id,
                "Unexpected error during import",
                ErrorCode.INTERNAL_ERROR.value,
            )
            return
        manager.set_result(job_id, summary)


# Global job manager instance
_job_manager: ImportJobManager | None = None


def get_job_manager() -> ImportJobManager:
    """Get the global import job manager, creating it on first call."""
    global _job_manager
    if _job_manager is None:
        _job_manager = ImportJobManager()
    return _job_manager


def reset_job_manager() -> None:
    """Reset the global job manager. Used primarily for testing."""
    global _job_manager
    if _job_manager is not None:
        _job_manager.stop_cleanup()
        _job_manager = None
