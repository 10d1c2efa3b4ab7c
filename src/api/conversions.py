"""Conversion job endpoints.

Handles job intake from uploads or URLs, status polling, artifact retrieval
and bulk cleanup. Processing starts in the background as soon as a job is
created.
"""

import logging
import re
from enum import Enum
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_orchestrator
from src.models.schemas import (
    ConversionCreated,
    ConversionJob,
    FileConversionRequest,
    MessageResponse,
    SourceType,
    TextContent,
    UrlConversionRequest,
)
from src.pipeline.orchestrator import ConversionOrchestrator
from src.storage.blob_store import ObjectNotFoundError, normalize_locator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversions", tags=["conversions"])

DEFAULT_URL_FILE_NAME = "document.pdf"


class TextKind(str, Enum):
    CLEANED = "cleaned"
    BRAILLE = "braille"
    REPORT = "report"


class DownloadKind(str, Enum):
    BRAILLE = "braille"
    TEXT = "text"
    REPORT = "report"


def _get_job(orchestrator: ConversionOrchestrator, conversion_id: str) -> ConversionJob:
    job = orchestrator.job_store.get(conversion_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversion not found")
    return job


def _file_stem(file_name: str) -> str:
    return re.sub(r"\.pdf$", "", file_name, flags=re.IGNORECASE)


def _download_target(job: ConversionJob, kind: DownloadKind) -> tuple[str | None, str]:
    stem = _file_stem(job.file_name)
    if kind == DownloadKind.BRAILLE:
        return job.braille_file_path, f"{stem}.brl"
    if kind == DownloadKind.TEXT:
        return job.cleaned_text_path, f"{stem}_cleaned.txt"
    return job.ai_report_path, f"{stem}_ai_report.txt"


@router.post("/upload", response_model=ConversionCreated)
async def create_file_conversion(
    payload: FileConversionRequest,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> ConversionCreated:
    """Create a conversion job for a previously uploaded PDF.

    Raises:
        413: Declared file size exceeds the upload limit.
    """
    if payload.file_size > orchestrator.config.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail="File size exceeds maximum allowed",
        )

    job = orchestrator.job_store.create(
        file_name=payload.file_name,
        file_size=payload.file_size,
        source_type=SourceType.FILE,
        source_locator=normalize_locator(payload.upload_url),
    )
    logger.info(f"Created file conversion {job.id} for {payload.file_name}")
    orchestrator.submit(job.id)
    return ConversionCreated(conversion_id=job.id)


@router.post("/url", response_model=ConversionCreated)
async def create_url_conversion(
    payload: UrlConversionRequest,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> ConversionCreated:
    """Create a conversion job for a document hosted at a URL."""
    url = str(payload.url)
    file_name = urlparse(url).path.rstrip("/").rsplit("/", 1)[-1] or DEFAULT_URL_FILE_NAME

    job = orchestrator.job_store.create(
        file_name=file_name,
        file_size=0,
        source_type=SourceType.URL,
        source_locator=url,
    )
    logger.info(f"Created URL conversion {job.id} for {url}")
    orchestrator.submit(job.id)
    return ConversionCreated(conversion_id=job.id)


@router.get("", response_model=list[ConversionJob])
async def list_conversions(
    limit: int = Query(default=10, ge=1, le=100),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> list[ConversionJob]:
    """List the most recent conversions, newest first."""
    return orchestrator.job_store.list_recent(limit)


@router.delete("/failed", response_model=MessageResponse)
async def clear_failed_conversions(
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> MessageResponse:
    removed = orchestrator.job_store.clear_failed()
    logger.info(f"Cleared {removed} failed conversions")
    return MessageResponse(message=f"Cleared {removed} failed conversions")


@router.delete("/all", response_model=MessageResponse)
async def clear_all_conversions(
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> MessageResponse:
    orchestrator.job_store.clear_all()
    logger.info("Cleared all conversions")
    return MessageResponse(message="All conversions cleared successfully")


@router.get("/{conversion_id}", response_model=ConversionJob)
async def get_conversion(
    conversion_id: str,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> ConversionJob:
    """Get a conversion's current status, progress and results."""
    return _get_job(orchestrator, conversion_id)


@router.get("/{conversion_id}/text/{kind}", response_model=TextContent)
async def get_conversion_text(
    conversion_id: str,
    kind: TextKind,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> TextContent:
    """Return an artifact's text for in-page comparison."""
    job = _get_job(orchestrator, conversion_id)
    locator = {
        TextKind.CLEANED: job.cleaned_text_path,
        TextKind.BRAILLE: job.braille_file_path,
        TextKind.REPORT: job.ai_report_path,
    }[kind]
    if not locator:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Text not available")

    try:
        content = await orchestrator.blob_store.fetch(locator)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Text not found") from e
    return TextContent(content=content.decode("utf-8"))


@router.get("/{conversion_id}/download/{kind}")
async def download_conversion_file(
    conversion_id: str,
    kind: DownloadKind,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream a conversion artifact as an attachment."""
    job = _get_job(orchestrator, conversion_id)
    locator, filename = _download_target(job, kind)
    if not locator:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not available")

    try:
        chunks = await orchestrator.blob_store.stream(locator)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from e

    return StreamingResponse(
        chunks,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
