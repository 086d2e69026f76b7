from scraping_queue.config.settings import Settings
from scraping_queue.database.connection import Database
from scraping_queue.queue.base import BaseWorkQueue
from scraping_queue.queue.memory import InMemoryWorkQueue
from scraping_queue.queue.postgres import PostgresWorkQueue


class WorkQueueFactory:
    """Creates the configured work queue backend for one source."""

    BACKENDS: tuple[str, ...] = ("memory", "postgres")

    @classmethod
    def create(
        cls,
        settings: Settings,
        source_id: str,
        database: Database | None = None,
    ) -> BaseWorkQueue:
        backend = settings.queue_backend.lower()
        options = {
            "concurrency": settings.queue_concurrency,
            "completed_retention": settings.completed_retention,
            "failed_retention": settings.failed_retention,
        }
        if backend == "memory":
            return InMemoryWorkQueue(source_id, **options)
        if backend == "postgres":
            if database is None:
                raise ValueError("The postgres queue backend requires a Database")
            return PostgresWorkQueue(source_id, database, **options)
        raise ValueError(
            f"Unknown queue backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )

    @classmethod
    def requires_database(cls, settings: Settings) -> bool:
        return settings.queue_backend.lower() == "postgres"
