"""Persistence for uploads, artifacts and job records."""

from src.storage.blob_store import LocalBlobStore, ObjectNotFoundError, normalize_locator
from src.storage.job_store import (
    InMemoryJobStore,
    JobNotFoundError,
    JobStore,
    SqliteJobStore,
    build_job_store,
)

__all__ = [
    "InMemoryJobStore",
    "JobNotFoundError",
    "JobStore",
    "LocalBlobStore",
    "ObjectNotFoundError",
    "SqliteJobStore",
    "build_job_store",
    "normalize_locator",
]
