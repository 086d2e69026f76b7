from datetime import datetime, timedelta, timezone

import pytest

from scraping_queue.jobs.models import ExtractionSummary, JobRecord, JobStatus
from scraping_queue.queue.base import ORPHAN_FAILURE_REASON
from scraping_queue.queue.memory import InMemoryWorkQueue


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def queue(clock: FakeClock) -> InMemoryWorkQueue:
    return InMemoryWorkQueue("courts-a", clock=clock)


def _job(job_id: str, priority: int = 0, max_attempts: int = 3) -> JobRecord:
    return JobRecord(
        job_id=job_id, source_id="courts-a", priority=priority, max_attempts=max_attempts
    )


def _run_to_completion(queue: InMemoryWorkQueue, job_id: str) -> None:
    queue.enqueue(_job(job_id))
    claimed = queue.dequeue_next()
    assert claimed is not None and claimed.job_id == job_id
    queue.mark_completed(job_id, ExtractionSummary())


class TestEnqueue:
    def test_new_job_is_pending(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.PENDING
        assert record.progress == 0
        assert queue.stats().waiting == 1

    def test_get_job_returns_copy(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))

        record = queue.get_job("J1")
        assert record is not None
        record.progress = 77

        assert queue.get_job("J1").progress == 0  # type: ignore[union-attr]

    def test_get_unknown_job_returns_none(self, queue: InMemoryWorkQueue) -> None:
        assert queue.get_job("missing") is None


class TestDequeueOrder:
    def test_fifo_within_same_priority(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.enqueue(_job("J2"))

        first = queue.dequeue_next()
        assert first is not None and first.job_id == "J1"

    def test_higher_priority_first(self) -> None:
        queue = InMemoryWorkQueue("courts-a", concurrency=5)
        queue.enqueue(_job("J1", priority=0))
        queue.enqueue(_job("J2", priority=5))
        queue.enqueue(_job("J3", priority=1))

        order = [queue.dequeue_next().job_id for _ in range(3)]  # type: ignore[union-attr]

        assert order == ["J2", "J3", "J1"]

    def test_empty_queue_returns_none(self, queue: InMemoryWorkQueue) -> None:
        assert queue.dequeue_next() is None

    def test_dequeue_marks_running_and_counts_attempt(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))

        claimed = queue.dequeue_next()

        assert claimed is not None
        assert claimed.status == JobStatus.RUNNING
        assert claimed.attempts_made == 1
        assert claimed.processed_on is not None
        assert queue.stats().active == 1


class TestConcurrencyLimit:
    def test_respects_concurrency_one(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.enqueue(_job("J2"))

        assert queue.dequeue_next() is not None
        assert queue.dequeue_next() is None

    def test_slot_frees_after_completion(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.enqueue(_job("J2"))
        queue.dequeue_next()

        queue.mark_completed("J1", ExtractionSummary())

        claimed = queue.dequeue_next()
        assert claimed is not None and claimed.job_id == "J2"

    def test_concurrency_two(self) -> None:
        queue = InMemoryWorkQueue("courts-a", concurrency=2)
        for job_id in ("J1", "J2", "J3"):
            queue.enqueue(_job(job_id))

        assert queue.dequeue_next() is not None
        assert queue.dequeue_next() is not None
        assert queue.dequeue_next() is None


class TestRetryLater:
    def test_job_not_eligible_before_delay(
        self, queue: InMemoryWorkQueue, clock: FakeClock
    ) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        assert queue.retry_later("J1", "timeout", 5.0) is True

        assert queue.dequeue_next() is None
        clock.advance(4.9)
        assert queue.dequeue_next() is None
        clock.advance(0.1)
        claimed = queue.dequeue_next()
        assert claimed is not None
        assert claimed.attempts_made == 2

    def test_retry_records_last_error(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        queue.retry_later("J1", "timeout", 0.0)

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.PENDING
        assert record.last_error == "timeout"
        assert record.failure_reason is None

    def test_retried_job_goes_behind_later_arrivals(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()
        queue.enqueue(_job("J2"))

        queue.retry_later("J1", "boom", 0.0)

        claimed = queue.dequeue_next()
        assert claimed is not None and claimed.job_id == "J2"

    def test_retry_on_inactive_job_returns_false(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        assert queue.retry_later("J1", "boom", 0.0) is False


class TestProgress:
    def test_clamped_below_hundred(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        queue.update_progress("J1", 250)

        assert queue.get_job("J1").progress == 99  # type: ignore[union-attr]

    def test_never_decreases_while_running(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        queue.update_progress("J1", 60)
        queue.update_progress("J1", 30)

        assert queue.get_job("J1").progress == 60  # type: ignore[union-attr]

    def test_completion_sets_hundred(self, queue: InMemoryWorkQueue) -> None:
        _run_to_completion(queue, "J1")

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.COMPLETED
        assert record.progress == 100
        assert record.finished_on is not None

    def test_update_on_waiting_job_ignored(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        assert queue.update_progress("J1", 50) is False


class TestMarkFailed:
    def test_records_reason(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        assert queue.mark_failed("J1", "Source blocked") is True

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.FAILED
        assert record.failure_reason == "Source blocked"
        assert record.progress == 0
        assert queue.stats().failed == 1


class TestRetention:
    def test_completed_partition_evicts_oldest(self, clock: FakeClock) -> None:
        queue = InMemoryWorkQueue("courts-a", completed_retention=2, clock=clock)
        for job_id in ("J1", "J2", "J3"):
            _run_to_completion(queue, job_id)

        assert queue.stats().completed == 2
        assert queue.get_job("J1") is None
        assert queue.get_job("J3") is not None

    def test_failed_partition_evicts_oldest(self, clock: FakeClock) -> None:
        queue = InMemoryWorkQueue("courts-a", failed_retention=1, clock=clock)
        for job_id in ("J1", "J2"):
            queue.enqueue(_job(job_id))
            queue.dequeue_next()
            queue.mark_failed(job_id, "boom")

        assert queue.stats().failed == 1
        assert queue.get_job("J1") is None


class TestRemove:
    def test_remove_waiting_job(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))

        assert queue.remove("J1") is True
        assert queue.get_job("J1") is None
        assert queue.stats().waiting == 0

    def test_remove_active_job_discards_later_result(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        assert queue.remove("J1") is True
        assert queue.mark_completed("J1", ExtractionSummary()) is False
        assert queue.stats().total == 0

    def test_remove_completed_job_refused(self, queue: InMemoryWorkQueue) -> None:
        _run_to_completion(queue, "J1")
        assert queue.remove("J1") is False

    def test_remove_failed_job_refused(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()
        queue.mark_failed("J1", "Source blocked")

        assert queue.remove("J1") is False
        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.FAILED
        assert record.failure_reason == "Source blocked"

    def test_remove_unknown_job(self, queue: InMemoryWorkQueue) -> None:
        assert queue.remove("missing") is False


class TestStats:
    def test_mixed_partitions(self) -> None:
        queue = InMemoryWorkQueue("courts-a")
        _run_to_completion(queue, "J1")
        _run_to_completion(queue, "J2")
        queue.enqueue(_job("J3"))
        queue.dequeue_next()
        queue.mark_failed("J3", "boom")
        queue.enqueue(_job("J4"))

        assert queue.stats().to_dict() == {
            "waiting": 1,
            "active": 0,
            "completed": 2,
            "failed": 1,
            "total": 4,
        }


class TestRecoverOrphans:
    def test_requeues_job_with_attempts_left(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        queue.dequeue_next()

        assert queue.recover_orphans() == ["J1"]

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.PENDING
        assert queue.stats().waiting == 1

    def test_fails_job_without_attempts_left(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1", max_attempts=1))
        queue.dequeue_next()

        queue.recover_orphans()

        record = queue.get_job("J1")
        assert record is not None
        assert record.status == JobStatus.FAILED
        assert record.failure_reason == ORPHAN_FAILURE_REASON

    def test_nothing_to_recover(self, queue: InMemoryWorkQueue) -> None:
        queue.enqueue(_job("J1"))
        assert queue.recover_orphans() == []
