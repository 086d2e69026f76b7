import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase


class JobStatus(str, Enum):
    """Externally visible lifecycle state of a job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_job_id(source_id: str) -> str:
    """Build ``{source_id}_{epoch_millis}_{random}``; unique without coordination."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"{source_id}_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class ExtractionSummary:
    """Outcome stored on a completed job."""

    documents_found: int = 0
    documents_processed: int = 0
    extraction_time: float = 0.0
    orchestrator_job_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents_found": self.documents_found,
            "documents_processed": self.documents_processed,
            "extraction_time": self.extraction_time,
            "orchestrator_job_id": self.orchestrator_job_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionSummary":
        return cls(
            documents_found=int(data.get("documents_found", 0)),
            documents_processed=int(data.get("documents_processed", 0)),
            extraction_time=float(data.get("extraction_time", 0.0)),
            orchestrator_job_id=data.get("orchestrator_job_id"),
        )


@dataclass
class JobRecord:
    """State of a single extraction request (a row of scraping_jobs)."""

    job_id: str
    source_id: str
    parameters: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    priority: int = 0
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    attempts_made: int = 0
    max_attempts: int = 3
    result: ExtractionSummary | None = None
    failure_reason: str | None = None
    last_error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    processed_on: datetime | None = None
    finished_on: datetime | None = None
    available_at: datetime | None = None


@dataclass(frozen=True)
class PartitionCounts:
    """Number of jobs per partition of one source queue."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed

    def to_dict(self) -> dict[str, int]:
        return {
            "waiting": self.waiting,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
            "total": self.total,
        }


@dataclass(frozen=True)
class JobStatusView:
    """Normalized, read-only view of a job returned to API callers."""

    job_id: str
    source_id: str
    status: JobStatus
    progress: int
    attempts_made: int
    max_attempts: int
    parameters: dict[str, Any]
    user_id: str | None
    result: ExtractionSummary | None
    failure_reason: str | None
    created_at: datetime
    processed_on: datetime | None
    finished_on: datetime | None

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobStatusView":
        return cls(
            job_id=record.job_id,
            source_id=record.source_id,
            status=record.status,
            progress=record.progress,
            attempts_made=record.attempts_made,
            max_attempts=record.max_attempts,
            parameters=dict(record.parameters),
            user_id=record.user_id,
            result=record.result,
            failure_reason=record.failure_reason,
            created_at=record.created_at,
            processed_on=record.processed_on,
            finished_on=record.finished_on,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation for the HTTP layer."""
        return {
            "id": self.job_id,
            "sourceId": self.source_id,
            "status": self.status.value,
            "progress": self.progress,
            "data": self.parameters,
            "userId": self.user_id,
            "returnValue": self.result.to_dict() if self.result else None,
            "failedReason": self.failure_reason,
            "timestamp": self.created_at.isoformat(),
            "processedOn": self.processed_on.isoformat() if self.processed_on else None,
            "finishedOn": self.finished_on.isoformat() if self.finished_on else None,
            "attempts": self.attempts_made,
            "maxAttempts": self.max_attempts,
        }
