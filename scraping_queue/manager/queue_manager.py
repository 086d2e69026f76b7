import threading
from collections.abc import Callable, Iterable
from typing import Any

from scraping_queue.config.settings import Settings
from scraping_queue.database.connection import Database
from scraping_queue.database.schema import ensure_schema
from scraping_queue.jobs.exceptions import (
    BackendUnavailableError,
    QueueNotInitializedError,
    UnknownSourceError,
)
from scraping_queue.jobs.models import JobRecord, JobStatus, JobStatusView, generate_job_id
from scraping_queue.logging.logger import Log
from scraping_queue.manager.registry import SourceQueue, SourceRegistry
from scraping_queue.notifications.base import BaseProgressNotifier
from scraping_queue.notifications.factory import NotifierFactory
from scraping_queue.notifications.publisher import ProgressPublisher
from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.factory import OrchestratorFactory
from scraping_queue.queue.factory import WorkQueueFactory
from scraping_queue.worker.job_runner import JobRunner
from scraping_queue.worker.retry_policy import RetryPolicy
from scraping_queue.worker.worker import SourceWorker


class QueueManager:
    """Owns one work queue, runner and worker per source.

    Single entry point for submitting, inspecting and cancelling scraping
    jobs. If the queue backend is unreachable at startup the manager still
    initializes, in degraded mode, and submissions fail with
    BackendUnavailableError instead of blocking the host application.
    """

    def __init__(
        self,
        settings: Settings,
        orchestrator: BaseExtractionOrchestrator,
        notifier: BaseProgressNotifier,
        database: Database | None = None,
    ) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._publisher = ProgressPublisher(notifier, settings.progress_event_type)
        self._database = database
        self._retry_policy = RetryPolicy(
            max_attempts=settings.max_job_attempts,
            base_delay_seconds=settings.backoff_base_delay_seconds,
        )
        self._registry = SourceRegistry()
        self._configured_sources: frozenset[str] = frozenset()
        self._lock = threading.Lock()
        self._initialized = False
        self._degraded = False
        self._accepting = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_degraded(self) -> bool:
        return self._degraded

    @property
    def sources(self) -> list[str]:
        return self._registry.source_ids

    def get_source(self, source_id: str) -> SourceQueue:
        return self._registry.get(source_id)

    def initialize(
        self,
        source_ids: Iterable[str] | None = None,
        *,
        start_workers: bool = True,
    ) -> None:
        """Create a queue, runner and worker for every source. Idempotent."""
        with self._lock:
            if self._initialized:
                Log.warning("QueueManager is already initialized")
                return

            sources = list(
                dict.fromkeys(source_ids if source_ids is not None else self._settings.sources)
            )
            self._configured_sources = frozenset(sources)
            try:
                self._open_backend()
                self._registry = SourceRegistry(
                    {source_id: self._create_source_queue(source_id) for source_id in sources}
                )
                self._recover_orphans()
            except BackendUnavailableError as exc:
                Log.error(f"Queue backend unavailable, queue system disabled: {exc}")
                self._registry = SourceRegistry()
                self._degraded = True

            self._initialized = True
            self._accepting = not self._degraded

        if start_workers:
            for entry in self._registry:
                entry.worker.start()
        Log.info(f"QueueManager initialized with {len(self._registry)} sources")

    def add_job(
        self,
        source_id: str,
        parameters: dict[str, Any] | None = None,
        user_id: str | None = None,
        priority: int | None = None,
    ) -> str:
        """Queue an extraction and return its job id; the extraction runs asynchronously."""
        if not self._initialized:
            raise QueueNotInitializedError("QueueManager.initialize() has not been called")
        if source_id not in self._configured_sources:
            raise UnknownSourceError(source_id)
        if self._degraded:
            raise BackendUnavailableError("Queue backend unavailable; job submissions are disabled")
        if not self._accepting:
            raise QueueNotInitializedError("QueueManager is shutting down")

        entry = self._registry.get(source_id)
        job = JobRecord(
            job_id=generate_job_id(source_id),
            source_id=source_id,
            parameters=dict(parameters or {}),
            user_id=user_id,
            priority=priority or 0,
            max_attempts=self._retry_policy.max_attempts,
        )
        try:
            entry.work_queue.enqueue(job)
        except BackendUnavailableError as exc:
            Log.error(f"Could not add job to queue {source_id}: {exc}", source_id=source_id)
            raise

        Log.info(
            f"Job {job.job_id} added to queue {source_id}",
            job_id=job.job_id,
            source_id=source_id,
        )
        entry.worker.wake()
        self._publisher.publish(job, JobStatus.PENDING, 0, "Job added to queue")
        return job.job_id

    def get_job_status(self, job_id: str) -> JobStatusView | None:
        for entry in self._registry:
            try:
                record = entry.work_queue.get_job(job_id)
            except BackendUnavailableError as exc:
                Log.warning(f"Could not look up job {job_id} on {entry.source_id}: {exc}")
                continue
            if record is not None:
                return JobStatusView.from_record(record)
        return None

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a waiting or running job. Completed and failed jobs stay as history."""
        for entry in self._registry:
            try:
                record = entry.work_queue.get_job(job_id)
                if record is None:
                    continue
                if record.status.is_terminal:
                    Log.info(f"Job {job_id} already {record.status.value}; not cancelled")
                    return False
                removed = entry.work_queue.remove(job_id)
            except BackendUnavailableError as exc:
                Log.warning(f"Could not cancel job {job_id} on {entry.source_id}: {exc}")
                continue
            if removed:
                entry.runner.cancel(job_id)
                Log.info(
                    f"Job {job_id} cancelled on {entry.source_id}",
                    job_id=job_id,
                    source_id=entry.source_id,
                )
            return removed
        return False

    def get_queue_stats(self) -> dict[str, dict[str, Any]]:
        stats: dict[str, dict[str, Any]] = {}
        for entry in self._registry:
            try:
                stats[entry.source_id] = entry.work_queue.stats().to_dict()
            except BackendUnavailableError as exc:
                stats[entry.source_id] = {"error": str(exc)}
        return stats

    def cleanup(self) -> None:
        """Stop workers, close queues and the backend. Call before process exit."""
        Log.info("Cleaning up QueueManager...")
        self._accepting = False

        for entry in self._registry:
            entry.worker.request_stop()
        for entry in self._registry:
            if entry.worker.stop(timeout=self._settings.shutdown_timeout_seconds):
                Log.info(f"Worker closed: {entry.source_id}")
            else:
                Log.error(f"Worker for {entry.source_id} still busy after shutdown")

        for entry in self._registry:
            self._close_quietly(f"queue {entry.source_id}", entry.work_queue.close)

        self._close_quietly("progress notifier", self._publisher.close)
        self._close_quietly("orchestrator", self._orchestrator.close)
        if self._database is not None:
            self._close_quietly("queue backend", self._database.close)
        self._initialized = False

    # API used by the HTTP handlers.

    def submit(
        self,
        source_id: str,
        parameters: dict[str, Any] | None = None,
        user_id: str | None = None,
        priority: int | None = None,
    ) -> str:
        return self.add_job(source_id, parameters, user_id, priority)

    def status(self, job_id: str) -> JobStatusView | None:
        return self.get_job_status(job_id)

    def cancel(self, job_id: str) -> bool:
        return self.cancel_job(job_id)

    def stats(self) -> dict[str, dict[str, Any]]:
        return self.get_queue_stats()

    @staticmethod
    def _close_quietly(name: str, close: Callable[[], None]) -> None:
        try:
            close()
        except Exception as exc:
            Log.error(f"Error closing {name}: {exc}")
            return
        Log.info(f"Closed {name}")

    def _open_backend(self) -> None:
        if not WorkQueueFactory.requires_database(self._settings):
            return
        if self._database is None:
            self._database = Database(self._settings)
        self._database.open()
        ensure_schema(self._database)

    def _create_source_queue(self, source_id: str) -> SourceQueue:
        work_queue = WorkQueueFactory.create(self._settings, source_id, self._database)
        runner = JobRunner(
            work_queue,
            self._orchestrator,
            self._publisher,
            self._settings,
            retry_policy=self._retry_policy,
        )
        worker = SourceWorker(work_queue, runner, self._settings)
        Log.info(f"Queue created for {source_id}: scraping:{source_id}", source_id=source_id)
        return SourceQueue(source_id, work_queue, runner, worker)

    def _recover_orphans(self) -> None:
        if not self._settings.requeue_orphaned_jobs:
            return
        for entry in self._registry:
            recovered = entry.work_queue.recover_orphans()
            if recovered:
                Log.warning(
                    f"Recovered {len(recovered)} interrupted jobs on {entry.source_id}: "
                    f"{', '.join(recovered)}",
                    source_id=entry.source_id,
                )


def build_queue_manager(settings: Settings) -> QueueManager:
    """Wire orchestrator, notifier and backend from settings."""
    orchestrator = OrchestratorFactory.create(settings)
    notifier = NotifierFactory.create(settings)
    database = Database(settings) if WorkQueueFactory.requires_database(settings) else None
    return QueueManager(settings, orchestrator, notifier, database)
