class QueueError(Exception):
    """Base exception for all job queue errors."""


class UnknownSourceError(QueueError):
    """Raised when a submission references a source with no configured queue."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"No queue configured for source '{source_id}'")
        self.source_id = source_id


class QueueNotInitializedError(QueueError):
    """Raised when the queue manager is used before initialize()."""


class BackendUnavailableError(QueueError):
    """Raised when the durable queue backend cannot be reached."""


class ExtractionAttemptError(QueueError):
    """A failed extraction attempt, classified by the retry policy."""

    def __init__(self, job_id: str, source_id: str, attempt: int, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.source_id = source_id
        self.attempt = attempt
        self.message = message


class TransientExtractionError(ExtractionAttemptError):
    """Attempt failed but retries remain; the job goes back to waiting."""

    def __init__(
        self,
        job_id: str,
        source_id: str,
        attempt: int,
        message: str,
        delay_seconds: float,
    ) -> None:
        super().__init__(job_id, source_id, attempt, message)
        self.delay_seconds = delay_seconds


class TerminalExtractionError(ExtractionAttemptError):
    """Attempt failed and the retry budget is exhausted."""


class JobStalledError(QueueError):
    """Raised when a running job stops reporting activity."""

    def __init__(self, job_id: str, idle_seconds: float) -> None:
        super().__init__(
            f"Job {job_id} stalled: no activity for {idle_seconds:.1f}s"
        )
        self.job_id = job_id
        self.idle_seconds = idle_seconds
