import itertools
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from scraping_queue.jobs.models import (
    ExtractionSummary,
    JobRecord,
    JobStatus,
    PartitionCounts,
    utcnow,
)
from scraping_queue.queue.base import ORPHAN_FAILURE_REASON, BaseWorkQueue


@dataclass(slots=True)
class _WaitingEntry:
    job_id: str
    priority: int
    seq: int
    available_at: datetime


class InMemoryWorkQueue(BaseWorkQueue):
    """Process-local work queue guarded by a single lock.

    Not durable: everything is lost when the process exits. Used for local
    development and tests.
    """

    def __init__(
        self,
        source_id: str,
        *,
        concurrency: int = 1,
        completed_retention: int = 50,
        failed_retention: int = 100,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(
            source_id,
            concurrency=concurrency,
            completed_retention=completed_retention,
            failed_retention=failed_retention,
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._jobs: dict[str, JobRecord] = {}
        self._waiting: list[_WaitingEntry] = []
        self._active: set[str] = set()
        self._completed: deque[str] = deque()
        self._failed: deque[str] = deque()

    def enqueue(self, job: JobRecord) -> bool:
        with self._lock:
            now = self._clock()
            record = replace(
                job,
                source_id=self.source_id,
                status=JobStatus.PENDING,
                progress=0,
                available_at=job.available_at or now,
            )
            self._jobs[record.job_id] = record
            self._push_waiting(record)
        return True

    def dequeue_next(self) -> JobRecord | None:
        with self._lock:
            if len(self._active) >= self.concurrency:
                return None
            now = self._clock()
            eligible = [e for e in self._waiting if e.available_at <= now]
            if not eligible:
                return None
            entry = min(eligible, key=lambda e: (-e.priority, e.seq))
            self._waiting.remove(entry)

            record = self._jobs[entry.job_id]
            record.status = JobStatus.RUNNING
            record.attempts_made += 1
            record.progress = 0
            if record.processed_on is None:
                record.processed_on = now
            self._active.add(record.job_id)
            return replace(record)

    def update_progress(self, job_id: str, progress: int) -> bool:
        with self._lock:
            if job_id not in self._active:
                return False
            record = self._jobs[job_id]
            record.progress = max(record.progress, self.clamp_progress(progress))
            return True

    def mark_completed(self, job_id: str, result: ExtractionSummary) -> bool:
        with self._lock:
            if job_id not in self._active:
                return False
            self._active.discard(job_id)
            record = self._jobs[job_id]
            record.status = JobStatus.COMPLETED
            record.progress = 100
            record.result = result
            record.finished_on = self._clock()
            self._completed.append(job_id)
            self._trim(self._completed, self.completed_retention)
            return True

    def mark_failed(self, job_id: str, reason: str) -> bool:
        with self._lock:
            if job_id not in self._active:
                return False
            self._active.discard(job_id)
            self._fail(self._jobs[job_id], reason)
            return True

    def retry_later(self, job_id: str, error: str, delay_seconds: float) -> bool:
        with self._lock:
            if job_id not in self._active:
                return False
            self._active.discard(job_id)
            record = self._jobs[job_id]
            record.status = JobStatus.PENDING
            record.progress = 0
            record.last_error = error
            record.available_at = self._clock() + timedelta(seconds=delay_seconds)
            self._push_waiting(record)
            return True

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            record = self._jobs.get(job_id)
            return replace(record) if record else None

    def remove(self, job_id: str) -> bool:
        with self._lock:
            if job_id in self._active:
                self._active.discard(job_id)
            else:
                entry = next((e for e in self._waiting if e.job_id == job_id), None)
                if entry is None:
                    return False
                self._waiting.remove(entry)
            del self._jobs[job_id]
            return True

    def stats(self) -> PartitionCounts:
        with self._lock:
            return PartitionCounts(
                waiting=len(self._waiting),
                active=len(self._active),
                completed=len(self._completed),
                failed=len(self._failed),
            )

    def recover_orphans(self) -> list[str]:
        with self._lock:
            recovered = sorted(self._active)
            now = self._clock()
            for job_id in recovered:
                self._active.discard(job_id)
                record = self._jobs[job_id]
                if record.attempts_made >= record.max_attempts:
                    self._fail(record, ORPHAN_FAILURE_REASON)
                    continue
                record.status = JobStatus.PENDING
                record.progress = 0
                record.available_at = now
                self._push_waiting(record)
            return recovered

    def _push_waiting(self, record: JobRecord) -> None:
        self._waiting.append(
            _WaitingEntry(
                job_id=record.job_id,
                priority=record.priority,
                seq=next(self._seq),
                available_at=record.available_at or self._clock(),
            )
        )

    def _fail(self, record: JobRecord, reason: str) -> None:
        record.status = JobStatus.FAILED
        record.progress = 0
        record.failure_reason = reason
        record.last_error = reason
        record.finished_on = self._clock()
        self._failed.append(record.job_id)
        self._trim(self._failed, self.failed_retention)

    def _trim(self, partition: deque[str], retention: int) -> None:
        while len(partition) > retention:
            evicted = partition.popleft()
            self._jobs.pop(evicted, None)
