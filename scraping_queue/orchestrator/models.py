from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ExtractionResult:
    """Documents extracted from a source in one run."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    total_found: int = 0
    extraction_time: float = 0.0


@dataclass(frozen=True)
class ExtractionOutcome:
    """Return value of BaseExtractionOrchestrator.extract_documents."""

    job_id: str
    result: ExtractionResult | None = None

    @property
    def documents_processed(self) -> int:
        return len(self.result.documents) if self.result else 0

    @property
    def documents_found(self) -> int:
        return self.result.total_found if self.result else 0

    @property
    def extraction_time(self) -> float:
        return self.result.extraction_time if self.result else 0.0
