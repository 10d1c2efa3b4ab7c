from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

ProgressCallback = Callable[[float], None]
Notifier = Callable[[str, str, str], None]


def utcnow() -> datetime:
    return datetime.now(UTC)


class JobStatus(str, Enum):
    """Lifecycle states of a conversion job."""

    PENDING = "pending"
    QUEUED = "queued"
    EXTRACTING = "extracting"
    AI_REVIEWING = "ai_reviewing"
    CONVERTING = "converting"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceType(str, Enum):
    """Where a job's document comes from."""

    FILE = "file"
    URL = "url"


class LineValidation(BaseModel):
    """Quality score for one line of cleaned text against its Braille line.

    Attributes:
        line_number: 1-based position of the line.
        original: Cleaned text line.
        braille: Braille line at the same position.
        accuracy: Score from 0 to 100.
        issues: Problems reported for the line, if any.
    """

    model_config = ConfigDict(frozen=True)

    line_number: int = Field(ge=1)
    original: str
    braille: str
    accuracy: int = Field(ge=0, le=100)
    issues: list[str] = Field(default_factory=list)


class ConversionJob(BaseModel):
    """Persisted state of one PDF or URL to Braille conversion."""

    id: str
    file_name: str
    file_size: int = Field(default=0, ge=0)
    source_type: SourceType
    source_locator: str | None = None
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    current_stage: str = "initializing"

    total_pages: int | None = None
    word_count: int | None = None
    braille_pages: int | None = None
    accuracy_score: int | None = Field(default=None, ge=0, le=100)
    ai_enhancements: list[str] | None = None
    line_validations: list[LineValidation] | None = None

    cleaned_text_path: str | None = None
    braille_file_path: str | None = None
    ai_report_path: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class LiveUpdate(BaseModel):
    """A status notification pushed to live subscribers of a job."""

    stage: str
    message: str
    detail: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class FileConversionRequest(BaseModel):
    """Request payload for converting an uploaded PDF.

    Attributes:
        file_name: Original name of the uploaded file.
        file_size: Size of the upload in bytes.
        upload_url: Locator the file was uploaded to.
    """

    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., gt=0)
    upload_url: str = Field(..., min_length=1)


class UrlConversionRequest(BaseModel):
    """Request payload for converting a document hosted at a URL."""

    url: HttpUrl


class ConversionCreated(BaseModel):
    conversion_id: str


class UploadLocator(BaseModel):
    upload_url: str


class TextContent(BaseModel):
    content: str


class MessageResponse(BaseModel):
    message: str
