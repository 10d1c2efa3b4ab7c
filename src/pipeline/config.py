"""Pipeline configuration with environment variable loading."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

_DATA_DIR = Path(__file__).parent.parent.parent / "data"


def _env_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    return Path(value) if value else None


class PipelineConfig(BaseModel):
    """Configuration for the conversion pipeline and its stores.

    Attributes:
        max_concurrent_jobs: Jobs allowed in active processing at once.
        queue_poll_interval: Seconds between capacity checks while queued.
        storage_dir: Root directory of the local blob store.
        database_path: SQLite job store file (None keeps jobs in memory).
        max_upload_bytes: Largest accepted upload.
        braille_translator_url: Online translator endpoint (None disables it).
        fetch_timeout: Seconds allowed for downloading URL sources.
    """

    max_concurrent_jobs: int = Field(
        default_factory=lambda: int(os.getenv("MAX_CONCURRENT_JOBS", "2")),
        ge=1,
    )
    queue_poll_interval: float = Field(default=2.0, gt=0)
    storage_dir: Path = Field(default_factory=lambda: _env_path("STORAGE_DIR") or _DATA_DIR / "objects")
    database_path: Path | None = Field(default_factory=lambda: _env_path("DATABASE_PATH"))
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    braille_translator_url: str | None = Field(
        default_factory=lambda: os.getenv("BRAILLE_TRANSLATOR_URL") or None,
    )
    fetch_timeout: float = Field(default=60.0, gt=0)


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig()
