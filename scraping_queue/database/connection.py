from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from scraping_queue.config.settings import Settings
from scraping_queue.jobs.exceptions import BackendUnavailableError
from scraping_queue.logging.logger import Log


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Shared PostgreSQL connection pool for all source queues.

    Opened once by the queue manager at initialize() and closed once at
    cleanup(); queues only borrow connections from it.
    """

    def __init__(self, settings: Settings) -> None:
        self._conninfo = build_conninfo(settings)
        self._max_size = settings.db_pool_max_size
        self._connect_timeout = settings.db_connect_timeout_seconds
        self._pool: ConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> None:
        """Open the pool and wait until one connection is usable."""
        if self._pool is not None:
            return
        pool = ConnectionPool(
            self._conninfo,
            min_size=1,
            max_size=self._max_size,
            open=False,
        )
        try:
            pool.open(wait=True, timeout=self._connect_timeout)
        except (PoolTimeout, psycopg.Error) as exc:
            pool.close()
            raise BackendUnavailableError(f"PostgreSQL connection failed: {exc}") from exc
        self._pool = pool
        Log.info("Connected to PostgreSQL queue backend")

    def ping(self) -> None:
        with self.connection() as conn:
            conn.execute("SELECT 1")

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
            Log.info("PostgreSQL queue backend connection closed")

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection, translating driver errors.

        Caller manages commit/rollback.
        """
        if self._pool is None:
            raise BackendUnavailableError("Connection pool not initialized. Call open() first.")
        try:
            with self._pool.connection() as conn:
                yield conn
        except (PoolTimeout, psycopg.Error) as exc:
            raise BackendUnavailableError(f"Queue backend error: {exc}") from exc
