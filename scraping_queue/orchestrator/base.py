from abc import ABC, abstractmethod
from typing import Any, ClassVar

from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.models import ExtractionOutcome


class BaseExtractionOrchestrator(ABC):
    """Contract for the component that fetches and parses documents from a source."""

    # False for adapters that never heartbeat through the ExecutionContext;
    # the runner then treats a live call as activity.
    reports_activity: ClassVar[bool] = True

    @abstractmethod
    def extract_documents(
        self,
        source_id: str,
        parameters: dict[str, Any],
        user_id: str | None = None,
        *,
        context: ExecutionContext | None = None,
    ) -> ExtractionOutcome:
        """Run one extraction against a legal source.

        Args:
            source_id: Source to extract from (e.g. a court's publication feed).
            parameters: Opaque extraction configuration (date ranges, filters).
            user_id: Optional user on whose behalf the extraction runs.
            context: Attempt handle for progress reports and cooperative
                     cancellation. Implementations that cannot cancel may
                     ignore it.

        Returns:
            ExtractionOutcome with the documents found.

        Raises:
            Exception: any failure, carrying a human-readable message.
        """

    def close(self) -> None:
        """Release client resources."""
