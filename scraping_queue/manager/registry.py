from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from scraping_queue.jobs.exceptions import UnknownSourceError
from scraping_queue.queue.base import BaseWorkQueue
from scraping_queue.worker.job_runner import JobRunner
from scraping_queue.worker.worker import SourceWorker


@dataclass(frozen=True)
class SourceQueue:
    """Work queue, runner and poll loop serving one source."""

    source_id: str
    work_queue: BaseWorkQueue
    runner: JobRunner
    worker: SourceWorker


class SourceRegistry:
    """Read-only mapping of source id to its SourceQueue.

    Built once at startup; sources cannot be added or removed afterwards.
    """

    def __init__(self, entries: Mapping[str, SourceQueue] | None = None) -> None:
        self._entries: Mapping[str, SourceQueue] = MappingProxyType(dict(entries or {}))

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._entries

    def __iter__(self) -> Iterator[SourceQueue]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def source_ids(self) -> list[str]:
        return list(self._entries)

    def get(self, source_id: str) -> SourceQueue:
        entry = self._entries.get(source_id)
        if entry is None:
            raise UnknownSourceError(source_id)
        return entry
