import os
import uuid
from collections.abc import Generator

import pytest

from scraping_queue.config.settings import Settings
from scraping_queue.database.connection import Database
from scraping_queue.database.schema import ensure_schema


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "scraping_test")
    return Settings(db_connect_timeout_seconds=2.0)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database(test_settings)
    try:
        db.open()
        ensure_schema(db)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def source_id(database: Database) -> Generator[str, None, None]:
    """A source name unique to the test; its rows are deleted afterwards."""
    name = f"it-{uuid.uuid4().hex[:12]}"
    yield name
    with database.connection() as conn:
        conn.execute("DELETE FROM scraping_jobs WHERE source_id = %s", (name,))
        conn.commit()
