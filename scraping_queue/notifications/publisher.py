from typing import Any

from scraping_queue.jobs.models import JobRecord, JobStatus
from scraping_queue.logging.logger import Log
from scraping_queue.notifications.base import BaseProgressNotifier


class ProgressPublisher:
    """Turns job lifecycle transitions into notifier events.

    Jobs without a user are skipped. Delivery failures are logged and never
    reach the caller, so a broken transport cannot affect job execution.
    """

    def __init__(self, notifier: BaseProgressNotifier, event_type: str = "scraping_progress") -> None:
        self._notifier = notifier
        self._event_type = event_type

    def publish(
        self,
        job: JobRecord,
        status: JobStatus,
        progress: int,
        message: str,
        **extra: Any,
    ) -> None:
        if not job.user_id:
            return
        payload: dict[str, Any] = {
            "jobId": job.job_id,
            "status": status.value,
            "progress": progress,
            "message": message,
            "sourceId": job.source_id,
            **extra,
        }
        try:
            self._notifier.send_event(job.user_id, self._event_type, payload)
        except Exception as exc:
            Log.warning(
                f"Could not notify user {job.user_id} about job {job.job_id}: {exc}",
                job_id=job.job_id,
                source_id=job.source_id,
            )

    def close(self) -> None:
        self._notifier.close()
