"""Job record stores.

Two interchangeable implementations: an in-memory store for development and
tests, and a SQLite store that keeps each job as a JSON payload. Every call
completes synchronously, so no half-applied update is ever visible.
"""

import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from src.models.schemas import ConversionJob, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


class JobNotFoundError(Exception):
    """Raised when updating a job id that does not exist."""

    pass


def _merge(job: ConversionJob, updates: dict[str, Any]) -> ConversionJob:
    # Validate the merged record rather than trusting the partial update
    return ConversionJob.model_validate({**job.model_dump(), **updates})


class JobStore(ABC):
    """Key-value store of conversion job records."""

    def create(self, **fields: Any) -> ConversionJob:
        """Create a job with a fresh id and creation timestamp."""
        fields.pop("id", None)
        fields.pop("created_at", None)
        job = ConversionJob(id=str(uuid.uuid4()), **fields)
        self._insert(job)
        return job

    @abstractmethod
    def _insert(self, job: ConversionJob) -> None: ...

    @abstractmethod
    def get(self, job_id: str) -> ConversionJob | None: ...

    @abstractmethod
    def update(self, job_id: str, **updates: Any) -> ConversionJob:
        """Apply a partial update.

        Raises:
            JobNotFoundError: If the job does not exist.
        """

    @abstractmethod
    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ConversionJob]: ...

    @abstractmethod
    def clear_all(self) -> None: ...

    @abstractmethod
    def clear_failed(self) -> int:
        """Delete failed jobs and return how many were removed."""


class InMemoryJobStore(JobStore):
    """Dictionary-backed store guarded by a lock."""

    def __init__(self) -> None:
        self._jobs: dict[str, ConversionJob] = {}
        self._lock = threading.Lock()

    def _insert(self, job: ConversionJob) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def get(self, job_id: str) -> ConversionJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def update(self, job_id: str, **updates: Any) -> ConversionJob:
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is None:
                raise JobNotFoundError(f"Conversion not found: {job_id}")
            updated = _merge(existing, updates)
            self._jobs[job_id] = updated
            return updated

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ConversionJob]:
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda job: job.created_at, reverse=True)
        return jobs[:limit]

    def clear_all(self) -> None:
        with self._lock:
            self._jobs.clear()

    def clear_failed(self) -> int:
        with self._lock:
            failed = [job_id for job_id, job in self._jobs.items() if job.status == JobStatus.FAILED]
            for job_id in failed:
                del self._jobs[job_id]
        return len(failed)


_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS conversions (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_conversions_created_at ON conversions(created_at DESC);
"""


class SqliteJobStore(JobStore):
    """SQLite-backed store. Thread-safe via check_same_thread=False + explicit locking."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(_CREATE_TABLES)
        self.conn.commit()
        self._lock = threading.Lock()

    def close(self) -> None:
        self.conn.close()

    def _write(self, job: ConversionJob) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO conversions (id, status, created_at, payload) VALUES (?, ?, ?, ?)",
            (job.id, job.status.value, job.created_at.isoformat(), job.model_dump_json()),
        )
        self.conn.commit()

    def _read(self, job_id: str) -> ConversionJob | None:
        row = self.conn.execute("SELECT payload FROM conversions WHERE id = ?", (job_id,)).fetchone()
        return ConversionJob.model_validate_json(row["payload"]) if row else None

    def _insert(self, job: ConversionJob) -> None:
        with self._lock:
            self._write(job)

    def get(self, job_id: str) -> ConversionJob | None:
        with self._lock:
            return self._read(job_id)

    def update(self, job_id: str, **updates: Any) -> ConversionJob:
        with self._lock:
            existing = self._read(job_id)
            if existing is None:
                raise JobNotFoundError(f"Conversion not found: {job_id}")
            updated = _merge(existing, updates)
            self._write(updated)
            return updated

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[ConversionJob]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT payload FROM conversions ORDER BY created_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [ConversionJob.model_validate_json(row["payload"]) for row in rows]

    def clear_all(self) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM conversions")
            self.conn.commit()

    def clear_failed(self) -> int:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM conversions WHERE status = ?", (JobStatus.FAILED.value,))
            self.conn.commit()
        return cursor.rowcount


def build_job_store(database_path: Path | None) -> JobStore:
    """Use SQLite when a database path is configured, otherwise memory."""
    if database_path is not None:
        logger.info(f"Using SQLite job store at {database_path}")
        return SqliteJobStore(database_path)
    logger.info("Using in-memory job store")
    return InMemoryJobStore()
