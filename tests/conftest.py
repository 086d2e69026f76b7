import threading
from collections.abc import Callable
from typing import Any

import pytest

from scraping_queue.config.settings import Settings
from scraping_queue.notifications.base import BaseProgressNotifier
from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.models import ExtractionOutcome, ExtractionResult


def make_outcome(documents: int = 2, total_found: int | None = None) -> ExtractionOutcome:
    docs = [{"identifier": f"DOC-{i}"} for i in range(documents)]
    return ExtractionOutcome(
        job_id="orchestrator-job",
        result=ExtractionResult(
            documents=docs,
            total_found=documents if total_found is None else total_found,
            extraction_time=0.5,
        ),
    )


class ScriptedOrchestrator(BaseExtractionOrchestrator):
    """Plays back steps in order: exceptions are raised, callables are called
    with the execution context, anything else is returned. Succeeds once the
    script runs out."""

    def __init__(self, *steps: Any) -> None:
        self._steps = list(steps)
        self._lock = threading.Lock()
        self.calls: list[tuple[str, dict[str, Any], str | None]] = []
        self.closed = False

    def extract_documents(
        self,
        source_id: str,
        parameters: dict[str, Any],
        user_id: str | None = None,
        *,
        context: ExecutionContext | None = None,
    ) -> ExtractionOutcome:
        with self._lock:
            self.calls.append((source_id, parameters, user_id))
            step = self._steps.pop(0) if self._steps else make_outcome()
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(context)
        return step

    def close(self) -> None:
        self.closed = True


class RecordingNotifier(BaseProgressNotifier):
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False
        self._lock = threading.Lock()

    def send_event(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self.events.append((user_id, event_type, payload))

    def statuses(self, job_id: str) -> list[str]:
        with self._lock:
            return [p["status"] for _u, _t, p in self.events if p["jobId"] == job_id]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def make_settings() -> Callable[..., Settings]:
    """Memory-backed settings with timings short enough for tests."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "sources": ["courts-a", "courts-b"],
            "queue_backend": "memory",
            "max_job_attempts": 3,
            "backoff_base_delay_seconds": 0.0,
            "job_poll_interval_seconds": 0.01,
            "stall_interval_seconds": 5.0,
            "shutdown_timeout_seconds": 2.0,
            "orchestrator_provider": "example",
            "notifier_provider": "log",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def scripted_orchestrator() -> Callable[..., ScriptedOrchestrator]:
    return ScriptedOrchestrator


@pytest.fixture()
def outcome_factory() -> Callable[..., ExtractionOutcome]:
    return make_outcome
