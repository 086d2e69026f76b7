from abc import ABC, abstractmethod

from scraping_queue.jobs.models import ExtractionSummary, JobRecord, PartitionCounts

ORPHAN_FAILURE_REASON = "Job was interrupted after its final attempt"


class BaseWorkQueue(ABC):
    """Contract for the ordered job store of a single source.

    Partitions: waiting (priority desc, FIFO within a priority), active
    (at most ``concurrency`` jobs), completed and failed (bounded retention,
    oldest evicted first). No operation blocks waiting for work.
    """

    def __init__(
        self,
        source_id: str,
        *,
        concurrency: int = 1,
        completed_retention: int = 50,
        failed_retention: int = 100,
    ) -> None:
        self.source_id = source_id
        self.concurrency = concurrency
        self.completed_retention = completed_retention
        self.failed_retention = failed_retention

    @abstractmethod
    def enqueue(self, job: JobRecord) -> bool:
        """Insert a new waiting job; visible to dequeue_next() immediately."""

    @abstractmethod
    def dequeue_next(self) -> JobRecord | None:
        """Claim the next eligible waiting job.

        Returns None when the active partition is saturated or no waiting job
        is eligible (empty, or every job still in its backoff delay). The
        claimed job is running, has ``attempts_made`` incremented and progress 0.
        """

    @abstractmethod
    def update_progress(self, job_id: str, progress: int) -> bool:
        """Raise the progress of an active job, clamped to [0, 99]."""

    @abstractmethod
    def mark_completed(self, job_id: str, result: ExtractionSummary) -> bool:
        """Move an active job to completed. False if it is no longer active."""

    @abstractmethod
    def mark_failed(self, job_id: str, reason: str) -> bool:
        """Move an active job to failed. False if it is no longer active."""

    @abstractmethod
    def retry_later(self, job_id: str, error: str, delay_seconds: float) -> bool:
        """Return an active job to waiting, eligible after ``delay_seconds``."""

    @abstractmethod
    def get_job(self, job_id: str) -> JobRecord | None:
        """Look a job up across all partitions."""

    @abstractmethod
    def remove(self, job_id: str) -> bool:
        """Cancel a waiting or active job. Terminal jobs are not removable."""

    @abstractmethod
    def stats(self) -> PartitionCounts:
        """Count jobs per partition."""

    @abstractmethod
    def recover_orphans(self) -> list[str]:
        """Requeue jobs left active by a previous process.

        Jobs with attempts remaining go back to waiting; the rest are failed.
        Returns the affected job ids.
        """

    def close(self) -> None:
        """Release queue resources. The shared backend is closed by its owner."""

    @staticmethod
    def clamp_progress(progress: int) -> int:
        return max(0, min(int(progress), 99))
