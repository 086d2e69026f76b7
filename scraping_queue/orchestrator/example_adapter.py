"""Example orchestrator adapter.

Use this module as a reference when wiring a real extraction backend.
Implement BaseExtractionOrchestrator and register the provider in
OrchestratorFactory.
"""

import time
from typing import Any, ClassVar

from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.models import ExtractionOutcome, ExtractionResult


class ExampleOrchestratorAdapter(BaseExtractionOrchestrator):
    """Returns a fixed set of court decisions without network calls.

    Useful for local development and tests.
    """

    DEFAULT_DOCUMENTS: ClassVar[list[dict[str, Any]]] = [
        {
            "identifier": "STS 1234/2024",
            "title": "Sentencia de ejemplo",
            "court": "Tribunal Supremo",
            "date": "2024-03-12",
        },
        {
            "identifier": "STS 1235/2024",
            "title": "Sentencia de ejemplo II",
            "court": "Tribunal Supremo",
            "date": "2024-03-13",
        },
    ]

    def extract_documents(
        self,
        source_id: str,
        parameters: dict[str, Any],
        user_id: str | None = None,
        *,
        context: ExecutionContext | None = None,
    ) -> ExtractionOutcome:
        _ = parameters, user_id
        started = time.monotonic()
        documents = [dict(doc, source=source_id) for doc in self.DEFAULT_DOCUMENTS]
        if context is not None:
            context.report_progress(50, f"Found {len(documents)} documents")
        return ExtractionOutcome(
            job_id=f"example_{source_id}",
            result=ExtractionResult(
                documents=documents,
                total_found=len(documents),
                extraction_time=time.monotonic() - started,
            ),
        )
