from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from scraping_queue.database.connection import Database
from scraping_queue.jobs.models import (
    ExtractionSummary,
    JobRecord,
    JobStatus,
    PartitionCounts,
)
from scraping_queue.queue.base import ORPHAN_FAILURE_REASON, BaseWorkQueue

_COLUMNS = """
    id, source_id, parameters, user_id, priority, status, progress,
    attempts_made, max_attempts, result, failure_reason, last_error,
    available_at, created_at, processed_on, finished_on
"""


class PostgresWorkQueue(BaseWorkQueue):
    """Durable work queue for one source, stored in the scraping_jobs table.

    Every statement is scoped by ``source_id`` so queues sharing the table
    never touch each other's rows. Dequeue takes a per-source transaction
    advisory lock, then claims with FOR UPDATE SKIP LOCKED.
    """

    def __init__(
        self,
        source_id: str,
        database: Database,
        *,
        concurrency: int = 1,
        completed_retention: int = 50,
        failed_retention: int = 100,
    ) -> None:
        super().__init__(
            source_id,
            concurrency=concurrency,
            completed_retention=completed_retention,
            failed_retention=failed_retention,
        )
        self._database = database
        self._lock_key = f"scraping:{source_id}"

    def enqueue(self, job: JobRecord) -> bool:
        with self._database.connection() as conn:
            conn.execute(
                """
                INSERT INTO scraping_jobs
                    (id, source_id, parameters, user_id, priority, status,
                     progress, attempts_made, max_attempts, created_at, available_at)
                VALUES (%s, %s, %s, %s, %s, 'pending', 0, 0, %s, %s, COALESCE(%s, NOW()))
                """,
                (
                    job.job_id,
                    self.source_id,
                    Jsonb(job.parameters),
                    job.user_id,
                    job.priority,
                    job.max_attempts,
                    job.created_at,
                    job.available_at,
                ),
            )
            conn.commit()
        return True

    def dequeue_next(self) -> JobRecord | None:
        with self._database.connection() as conn:
            conn.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (self._lock_key,))
            count_row = conn.execute(
                """
                SELECT COUNT(*) FROM scraping_jobs
                WHERE source_id = %s AND status = 'running'
                """,
                (self.source_id,),
            ).fetchone()
            if count_row is not None and count_row[0] >= self.concurrency:
                conn.rollback()
                return None

            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE scraping_jobs
                    SET status = 'running',
                        attempts_made = attempts_made + 1,
                        progress = 0,
                        processed_on = COALESCE(processed_on, NOW()),
                        updated_at = NOW()
                    WHERE id = (
                        SELECT id FROM scraping_jobs
                        WHERE source_id = %s
                          AND status = 'pending'
                          AND available_at <= NOW()
                        ORDER BY priority DESC, seq
                        LIMIT 1
                        FOR UPDATE SKIP LOCKED
                    )
                    RETURNING {_COLUMNS}
                    """,
                    (self.source_id,),
                )
                row = cur.fetchone()
            conn.commit()

        return self._to_record(row) if row is not None else None

    def update_progress(self, job_id: str, progress: int) -> bool:
        with self._database.connection() as conn:
            cur = conn.execute(
                """
                UPDATE scraping_jobs
                SET progress = GREATEST(progress, %s), updated_at = NOW()
                WHERE id = %s AND source_id = %s AND status = 'running'
                """,
                (self.clamp_progress(progress), job_id, self.source_id),
            )
            conn.commit()
            return cur.rowcount > 0

    def mark_completed(self, job_id: str, result: ExtractionSummary) -> bool:
        with self._database.connection() as conn:
            cur = conn.execute(
                """
                UPDATE scraping_jobs
                SET status = 'completed', progress = 100, result = %s,
                    finished_on = NOW(), updated_at = NOW()
                WHERE id = %s AND source_id = %s AND status = 'running'
                """,
                (Jsonb(result.to_dict()), job_id, self.source_id),
            )
            updated = cur.rowcount > 0
            if updated:
                self._trim(conn, JobStatus.COMPLETED, self.completed_retention)
            conn.commit()
            return updated

    def mark_failed(self, job_id: str, reason: str) -> bool:
        with self._database.connection() as conn:
            cur = conn.execute(
                """
                UPDATE scraping_jobs
                SET status = 'failed', progress = 0, failure_reason = %s,
                    last_error = %s, finished_on = NOW(), updated_at = NOW()
                WHERE id = %s AND source_id = %s AND status = 'running'
                """,
                (reason, reason, job_id, self.source_id),
            )
            updated = cur.rowcount > 0
            if updated:
                self._trim(conn, JobStatus.FAILED, self.failed_retention)
            conn.commit()
            return updated

    def retry_later(self, job_id: str, error: str, delay_seconds: float) -> bool:
        with self._database.connection() as conn:
            cur = conn.execute(
                """
                UPDATE scraping_jobs
                SET status = 'pending', progress = 0, last_error = %s,
                    available_at = NOW() + %s * INTERVAL '1 second',
                    seq = nextval(pg_get_serial_sequence('scraping_jobs', 'seq')),
                    updated_at = NOW()
                WHERE id = %s AND source_id = %s AND status = 'running'
                """,
                (error, float(delay_seconds), job_id, self.source_id),
            )
            conn.commit()
            return cur.rowcount > 0

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM scraping_jobs WHERE id = %s AND source_id = %s",
                    (job_id, self.source_id),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def remove(self, job_id: str) -> bool:
        with self._database.connection() as conn:
            cur = conn.execute(
                """
                DELETE FROM scraping_jobs
                WHERE id = %s AND source_id = %s AND status IN ('pending', 'running')
                """,
                (job_id, self.source_id),
            )
            conn.commit()
            return cur.rowcount > 0

    def stats(self) -> PartitionCounts:
        with self._database.connection() as conn:
            rows = conn.execute(
                """
                SELECT status, COUNT(*) FROM scraping_jobs
                WHERE source_id = %s
                GROUP BY status
                """,
                (self.source_id,),
            ).fetchall()
        counts = {status: count for status, count in rows}
        return PartitionCounts(
            waiting=counts.get(JobStatus.PENDING.value, 0),
            active=counts.get(JobStatus.RUNNING.value, 0),
            completed=counts.get(JobStatus.COMPLETED.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
        )

    def recover_orphans(self) -> list[str]:
        with self._database.connection() as conn:
            failed = conn.execute(
                """
                UPDATE scraping_jobs
                SET status = 'failed', progress = 0, failure_reason = %s,
                    last_error = %s, finished_on = NOW(), updated_at = NOW()
                WHERE source_id = %s AND status = 'running'
                  AND attempts_made >= max_attempts
                RETURNING id
                """,
                (ORPHAN_FAILURE_REASON, ORPHAN_FAILURE_REASON, self.source_id),
            ).fetchall()
            requeued = conn.execute(
                """
                UPDATE scraping_jobs
                SET status = 'pending', progress = 0, available_at = NOW(),
                    updated_at = NOW()
                WHERE source_id = %s AND status = 'running'
                RETURNING id
                """,
                (self.source_id,),
            ).fetchall()
            if failed:
                self._trim(conn, JobStatus.FAILED, self.failed_retention)
            conn.commit()
        return sorted(row[0] for row in [*failed, *requeued])

    def _trim(self, conn: psycopg.Connection[Any], status: JobStatus, retention: int) -> None:
        """Evict the oldest terminal rows beyond the retention bound."""
        conn.execute(
            """
            DELETE FROM scraping_jobs
            WHERE source_id = %s AND status = %s
              AND id NOT IN (
                  SELECT id FROM scraping_jobs
                  WHERE source_id = %s AND status = %s
                  ORDER BY finished_on DESC, seq DESC
                  LIMIT %s
              )
            """,
            (self.source_id, status.value, self.source_id, status.value, retention),
        )

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            job_id=row["id"],
            source_id=row["source_id"],
            parameters=row["parameters"] or {},
            user_id=row["user_id"],
            priority=row["priority"],
            status=JobStatus(row["status"]),
            progress=row["progress"],
            attempts_made=row["attempts_made"],
            max_attempts=row["max_attempts"],
            result=ExtractionSummary.from_dict(row["result"]) if row["result"] else None,
            failure_reason=row["failure_reason"],
            last_error=row["last_error"],
            created_at=row["created_at"],
            processed_on=row["processed_on"],
            finished_on=row["finished_on"],
            available_at=row["available_at"],
        )
