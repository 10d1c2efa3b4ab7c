"""Object storage endpoints: upload URL allocation, upload and download.

Clients ask for an upload URL, PUT the PDF bytes to it, then create a
conversion pointing at that URL.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_orchestrator
from src.models.schemas import MessageResponse, UploadLocator
from src.pipeline.orchestrator import ConversionOrchestrator
from src.storage.blob_store import LOCATOR_PREFIX, ObjectNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["objects"])


@router.post("/api/objects/upload", response_model=UploadLocator)
async def get_upload_url(
    request: Request,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> UploadLocator:
    """Allocate a URL the client can PUT a file to."""
    locator = orchestrator.blob_store.get_upload_locator()
    return UploadLocator(upload_url=f"{str(request.base_url).rstrip('/')}{locator}")


@router.put("/objects/{object_path:path}", response_model=MessageResponse)
async def upload_object(
    object_path: str,
    request: Request,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> MessageResponse:
    """Store the raw request body at the given object path.

    Raises:
        400: Empty body or invalid object path.
        413: Body exceeds the upload limit.
    """
    content = await request.body()

    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file provided")

    limit = orchestrator.config.max_upload_bytes
    if len(content) > limit:
        size_mb = len(content) / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File size ({size_mb:.1f}MB) exceeds maximum allowed ({limit // (1024 * 1024)}MB)",
        )

    locator = f"{LOCATOR_PREFIX}{object_path}"
    try:
        await orchestrator.blob_store.put(locator, content)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    logger.info(f"Stored upload at {locator} ({len(content)} bytes)")
    return MessageResponse(message="Upload stored")


@router.get("/objects/{object_path:path}")
async def download_object(
    object_path: str,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream a stored object back to the client."""
    try:
        chunks = await orchestrator.blob_store.stream(f"{LOCATOR_PREFIX}{object_path}")
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from e
    return StreamingResponse(chunks, media_type="application/octet-stream")
