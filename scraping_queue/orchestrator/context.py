import threading
import time
from collections.abc import Callable

ProgressCallback = Callable[[int, str | None], None]


class ExecutionContext:
    """Per-attempt handle passed to the extraction orchestrator.

    The orchestrator reports progress (which doubles as a heartbeat for stall
    detection) and polls ``cancelled`` to stop cooperatively.
    """

    def __init__(
        self,
        job_id: str,
        source_id: str,
        attempt: int,
        on_progress: ProgressCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.job_id = job_id
        self.source_id = source_id
        self.attempt = attempt
        self._on_progress = on_progress
        self._clock = clock
        self._cancel_event = threading.Event()
        self._last_activity = clock()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def wait_cancelled(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True as soon as cancellation is requested."""
        return self._cancel_event.wait(timeout)

    def heartbeat(self) -> None:
        self._last_activity = self._clock()

    def report_progress(self, progress: int, message: str | None = None) -> None:
        self.heartbeat()
        if self._on_progress is not None:
            self._on_progress(progress, message)

    def idle_seconds(self) -> float:
        return self._clock() - self._last_activity
