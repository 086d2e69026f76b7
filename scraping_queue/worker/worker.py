import threading

from scraping_queue.config.settings import Settings
from scraping_queue.jobs.models import JobRecord
from scraping_queue.logging.logger import Log
from scraping_queue.queue.base import BaseWorkQueue
from scraping_queue.worker.job_runner import JobRunner


class SourceWorker:
    """Poll loop for one source: wait -> claim -> dispatch.

    Jobs run one after another on the worker thread, so the source never has
    more active jobs than the queue's concurrency allows. The loop sleeps on
    a wake event; enqueue() callers set it, and the poll timeout picks up
    jobs whose backoff delay has expired.
    """

    def __init__(
        self,
        work_queue: BaseWorkQueue,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._work_queue = work_queue
        self._job_runner = job_runner
        self._settings = settings
        self._wake = threading.Event()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def source_id(self) -> str:
        return self._work_queue.source_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self.run,
            name=f"worker-{self.source_id}",
            daemon=True,
        )
        self._thread.start()

    def wake(self) -> None:
        self._wake.set()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until stop() is called or interrupted.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info(f"Worker for {self.source_id} started, polling for jobs", source_id=self.source_id)
        jobs_done = 0
        try:
            while not self._stopping.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                self._wake.clear()
                job = self._try_claim_job()
                if job:
                    Log.info(
                        f"Job {job.job_id} active on {self.source_id}",
                        job_id=job.job_id,
                        source_id=self.source_id,
                    )
                    self._dispatch(job)
                    jobs_done += 1
                else:
                    Log.debug(f"No jobs available for {self.source_id}, waiting")
                    self._wake.wait(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info(f"Worker for {self.source_id} shutting down gracefully")
        Log.info(f"Worker for {self.source_id} stopped", source_id=self.source_id)

    def request_stop(self) -> None:
        self._stopping.set()
        self._wake.set()

    def stop(self, timeout: float | None = None) -> bool:
        """Stop the loop, letting an in-flight job finish within ``timeout``.

        Returns True if the worker thread ended in time.
        """
        self.request_stop()
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        if thread.is_alive():
            Log.warning(
                f"Worker for {self.source_id} did not stop within {timeout}s, "
                "aborting in-flight job",
                source_id=self.source_id,
            )
            self._job_runner.abort_all()
            thread.join(1.0)
        stopped = not thread.is_alive()
        if stopped:
            self._thread = None
        return stopped

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next waiting job. Gracefully handle backend errors."""
        try:
            return self._work_queue.dequeue_next()
        except Exception as exc:
            Log.warning(f"Queue backend error on {self.source_id}, will retry: {exc}")
            return None

    def _dispatch(self, job: JobRecord) -> None:
        try:
            self._job_runner.run(job)
        except Exception as exc:
            Log.error(
                f"Unexpected error running job {job.job_id} on {self.source_id}: {exc}",
                exc_info=True,
                job_id=job.job_id,
                source_id=self.source_id,
            )
