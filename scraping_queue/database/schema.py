from scraping_queue.database.connection import Database

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS scraping_jobs (
        id TEXT PRIMARY KEY,
        seq BIGSERIAL NOT NULL,
        source_id TEXT NOT NULL,
        parameters JSONB NOT NULL DEFAULT '{}'::jsonb,
        user_id TEXT,
        priority INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'pending',
        progress INTEGER NOT NULL DEFAULT 0,
        attempts_made INTEGER NOT NULL DEFAULT 0,
        max_attempts INTEGER NOT NULL DEFAULT 3,
        result JSONB,
        failure_reason TEXT,
        last_error TEXT,
        available_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        processed_on TIMESTAMPTZ,
        finished_on TIMESTAMPTZ,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS scraping_jobs_waiting_idx
    ON scraping_jobs (source_id, status, priority DESC, seq)
    """,
    """
    CREATE INDEX IF NOT EXISTS scraping_jobs_finished_idx
    ON scraping_jobs (source_id, status, finished_on DESC)
    """,
)


def ensure_schema(database: Database) -> None:
    """Create the scraping_jobs table and its indexes if missing."""
    with database.connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
        conn.commit()
