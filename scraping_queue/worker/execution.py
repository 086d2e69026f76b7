import threading
from collections.abc import Callable

from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.exceptions import OrchestratorError
from scraping_queue.orchestrator.models import ExtractionOutcome


class Execution:
    """One orchestrator call running on its own daemon thread.

    The runner watches the handle instead of blocking on the call, so a hung
    extraction can be abandoned when it stops reporting activity.
    """

    def __init__(
        self,
        context: ExecutionContext,
        target: Callable[[ExecutionContext], ExtractionOutcome],
    ) -> None:
        self.context = context
        self._target = target
        self._done = threading.Event()
        self._outcome: ExtractionOutcome | None = None
        self._error: Exception | None = None
        self._thread = threading.Thread(
            target=self._run,
            name=f"extract-{context.job_id}",
            daemon=True,
        )

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def start(self) -> None:
        self._thread.start()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def outcome(self) -> ExtractionOutcome:
        """Return the call's result, re-raising its exception if it failed."""
        if not self._done.is_set():
            raise RuntimeError(f"Execution of {self.context.job_id} has not finished")
        if self._error is not None:
            raise self._error
        if self._outcome is None:
            raise OrchestratorError("Orchestrator returned no outcome")
        return self._outcome

    def _run(self) -> None:
        try:
            self._outcome = self._target(self.context)
        except Exception as exc:
            self._error = exc
        finally:
            self.context.heartbeat()
            self._done.set()
