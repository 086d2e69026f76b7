import threading

from scraping_queue.config.settings import Settings
from scraping_queue.jobs.exceptions import (
    BackendUnavailableError,
    JobStalledError,
    TransientExtractionError,
)
from scraping_queue.jobs.models import ExtractionSummary, JobRecord, JobStatus
from scraping_queue.logging.logger import Log
from scraping_queue.notifications.publisher import ProgressPublisher
from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.models import ExtractionOutcome
from scraping_queue.queue.base import BaseWorkQueue
from scraping_queue.worker.execution import Execution
from scraping_queue.worker.retry_policy import RetryPolicy

STARTED_PROGRESS = 10


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic.

    Orchestrator failures never escape run(): they become a delayed retry or
    a terminal failure on the work queue.
    """

    def __init__(
        self,
        work_queue: BaseWorkQueue,
        orchestrator: BaseExtractionOrchestrator,
        publisher: ProgressPublisher,
        settings: Settings,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._queue = work_queue
        self._orchestrator = orchestrator
        self._publisher = publisher
        self._stall_interval = settings.stall_interval_seconds
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.max_job_attempts,
            base_delay_seconds=settings.backoff_base_delay_seconds,
        )
        self._active: dict[str, Execution] = {}
        self._lock = threading.Lock()
        self._shutdown = threading.Event()

    def run(self, job: JobRecord) -> JobStatus | None:
        """Execute a single claimed job.

        Returns the job's status afterwards (``PENDING`` when a retry was
        scheduled), or None when the outcome was discarded because the job
        was cancelled, the backend failed, or the runner was aborted.
        """
        Log.info(
            f"Running job {job.job_id} on {job.source_id} "
            f"(attempt {job.attempts_made}/{job.max_attempts})",
            job_id=job.job_id,
            source_id=job.source_id,
            attempt=job.attempts_made,
        )
        self._set_progress(job, STARTED_PROGRESS)
        self._publisher.publish(job, JobStatus.RUNNING, STARTED_PROGRESS, "Processing started")

        execution = self._start(job)
        try:
            outcome = self._await(job, execution)
        except Exception as exc:
            return self._handle_failure(job, exc)
        finally:
            with self._lock:
                self._active.pop(job.job_id, None)

        if outcome is None:
            Log.warning(
                f"Job {job.job_id} interrupted by shutdown; left active for recovery",
                job_id=job.job_id,
                source_id=job.source_id,
            )
            return None
        return self._handle_success(job, outcome)

    def cancel(self, job_id: str) -> bool:
        """Ask the orchestrator to stop a running job cooperatively."""
        with self._lock:
            execution = self._active.get(job_id)
        if execution is None:
            return False
        execution.context.cancel()
        Log.info(f"Cancellation requested for running job {job_id}", job_id=job_id)
        return True

    def abort_all(self) -> None:
        """Stop waiting on in-flight jobs; used when shutdown runs out of time."""
        self._shutdown.set()
        with self._lock:
            executions = list(self._active.values())
        for execution in executions:
            execution.context.cancel()

    def _start(self, job: JobRecord) -> Execution:
        def on_progress(progress: int, message: str | None) -> None:
            if context.cancelled:
                return
            value = max(STARTED_PROGRESS, min(int(progress), 99))
            self._set_progress(job, value)
            self._publisher.publish(
                job, JobStatus.RUNNING, value, message or f"Processing... {value}%"
            )

        context = ExecutionContext(
            job.job_id, job.source_id, job.attempts_made, on_progress=on_progress
        )
        execution = Execution(
            context,
            lambda ctx: self._orchestrator.extract_documents(
                job.source_id, job.parameters, job.user_id, context=ctx
            ),
        )
        with self._lock:
            self._active[job.job_id] = execution
        execution.start()
        return execution

    def _await(self, job: JobRecord, execution: Execution) -> ExtractionOutcome | None:
        """Wait for the call, abandoning it when it stops reporting activity."""
        check_every = min(self._stall_interval, 1.0)
        while not execution.wait(check_every):
            if self._shutdown.is_set():
                return None
            if not self._orchestrator.reports_activity:
                # Call still in flight; the transport timeout bounds it.
                execution.context.heartbeat()
                continue
            idle = execution.context.idle_seconds()
            if idle >= self._stall_interval:
                execution.context.cancel()
                Log.warning(
                    f"Job {job.job_id} on {job.source_id} stalled "
                    f"after {idle:.1f}s without activity",
                    job_id=job.job_id,
                    source_id=job.source_id,
                    attempt=job.attempts_made,
                )
                raise JobStalledError(job.job_id, idle)
        return execution.outcome()

    def _handle_success(self, job: JobRecord, outcome: ExtractionOutcome) -> JobStatus | None:
        summary = ExtractionSummary(
            documents_found=outcome.documents_found,
            documents_processed=outcome.documents_processed,
            extraction_time=outcome.extraction_time,
            orchestrator_job_id=outcome.job_id,
        )
        try:
            stored = self._queue.mark_completed(job.job_id, summary)
        except BackendUnavailableError as exc:
            Log.error(f"Could not store result of job {job.job_id}: {exc}", job_id=job.job_id)
            return None
        if not stored:
            Log.info(
                f"Job {job.job_id} was cancelled while running; result discarded",
                job_id=job.job_id,
                source_id=job.source_id,
            )
            return None

        self._publisher.publish(
            job,
            JobStatus.COMPLETED,
            100,
            f"Completed - {summary.documents_processed} documents",
            documentsFound=summary.documents_found,
            documentsProcessed=summary.documents_processed,
        )
        Log.info(
            f"Job {job.job_id} completed: {summary.documents_processed} documents",
            job_id=job.job_id,
            source_id=job.source_id,
            attempt=job.attempts_made,
        )
        return JobStatus.COMPLETED

    def _handle_failure(self, job: JobRecord, exc: Exception) -> JobStatus | None:
        """Retry with backoff while attempts remain, otherwise fail for good."""
        error = self._retry_policy.classify(job, exc)
        try:
            if isinstance(error, TransientExtractionError):
                Log.warning(
                    f"Job {job.job_id} on {job.source_id} failed "
                    f"(attempt {error.attempt}/{job.max_attempts}), "
                    f"retrying in {error.delay_seconds:.1f}s: {error.message}",
                    job_id=job.job_id,
                    source_id=job.source_id,
                    attempt=error.attempt,
                )
                stored = self._queue.retry_later(job.job_id, error.message, error.delay_seconds)
                status = JobStatus.PENDING
                message = f"Attempt {error.attempt} failed, retrying: {error.message}"
            else:
                Log.error(
                    f"Job {job.job_id} on {job.source_id} permanently failed "
                    f"after {error.attempt} attempts: {error.message}",
                    exc_info=not isinstance(exc, JobStalledError),
                    job_id=job.job_id,
                    source_id=job.source_id,
                    attempt=error.attempt,
                )
                stored = self._queue.mark_failed(job.job_id, error.message)
                status = JobStatus.FAILED
                message = f"Error: {error.message}"
        except BackendUnavailableError as backend_exc:
            Log.error(
                f"Could not record failure of job {job.job_id}: {backend_exc}",
                job_id=job.job_id,
            )
            return None

        if not stored:
            Log.info(
                f"Job {job.job_id} was cancelled while running; failure discarded",
                job_id=job.job_id,
                source_id=job.source_id,
            )
            return None
        self._publisher.publish(job, status, 0, message)
        return status

    def _set_progress(self, job: JobRecord, progress: int) -> None:
        try:
            self._queue.update_progress(job.job_id, progress)
        except BackendUnavailableError as exc:
            Log.warning(f"Could not update progress of job {job.job_id}: {exc}", job_id=job.job_id)
