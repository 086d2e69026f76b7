from scraping_queue.jobs.exceptions import (
    ExtractionAttemptError,
    TerminalExtractionError,
    TransientExtractionError,
)
from scraping_queue.jobs.models import JobRecord


class RetryPolicy:
    """Exponential backoff: ``base_delay * 2 ** (attempts_made - 1)``."""

    def __init__(self, max_attempts: int = 3, base_delay_seconds: float = 5.0) -> None:
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds

    def backoff_delay(self, attempts_made: int) -> float:
        return self.base_delay_seconds * 2 ** max(attempts_made - 1, 0)

    def classify(self, job: JobRecord, exc: BaseException) -> ExtractionAttemptError:
        """Decide whether a failed attempt is retried or terminal.

        The job's own ``max_attempts`` (captured at submission) wins over the
        policy default.
        """
        message = str(exc) or exc.__class__.__name__
        if job.attempts_made < job.max_attempts:
            return TransientExtractionError(
                job.job_id,
                job.source_id,
                job.attempts_made,
                message,
                delay_seconds=self.backoff_delay(job.attempts_made),
            )
        return TerminalExtractionError(job.job_id, job.source_id, job.attempts_made, message)
