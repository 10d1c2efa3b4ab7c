"""Live processing updates over Server-Sent Events and WebSocket.

Both transports read from the same per-job hub. SSE streams end once the job
completes or fails; WebSocket clients may subscribe to several jobs.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_orchestrator, get_socket_orchestrator
from src.models.schemas import ConversionJob, JobStatus, LiveUpdate
from src.pipeline.live_updates import LiveUpdateHub
from src.pipeline.orchestrator import ConversionOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])

TERMINAL_STAGES = {"complete", "failed"}


def _format_sse(update: LiveUpdate) -> str:
    return f"data: {update.model_dump_json()}\n\n"


def _terminal_update(job: ConversionJob) -> LiveUpdate | None:
    if job.status == JobStatus.COMPLETED:
        return LiveUpdate(stage="complete", message="Conversion complete", detail=f"Accuracy {job.accuracy_score}%")
    if job.status == JobStatus.FAILED:
        return LiveUpdate(stage="failed", message="Conversion failed")
    return None


async def _stream_updates(
    hub: LiveUpdateHub,
    conversion_id: str,
    queue: asyncio.Queue[LiveUpdate],
) -> AsyncGenerator[str]:
    try:
        while True:
            update = await queue.get()
            yield _format_sse(update)
            if update.stage in TERMINAL_STAGES:
                break
    finally:
        hub.unsubscribe(conversion_id, queue)


@router.get("/api/conversions/{conversion_id}/events")
async def stream_conversion_events(
    conversion_id: str,
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream live updates for a conversion as Server-Sent Events.

    Each event is a ``data:`` line holding a LiveUpdate JSON object.
    """
    hub = orchestrator.live_updates
    # Subscribed before the status read so a later terminal update is still queued
    queue = hub.subscribe(conversion_id)
    job = orchestrator.job_store.get(conversion_id)
    if job is None:
        hub.unsubscribe(conversion_id, queue)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversion not found")

    terminal = _terminal_update(job)
    if terminal is not None:
        hub.unsubscribe(conversion_id, queue)

        async def single() -> AsyncGenerator[str]:
            yield _format_sse(terminal)

        body = single()
    else:
        body = _stream_updates(hub, conversion_id, queue)

    return StreamingResponse(
        body,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _forward(websocket: WebSocket, hub: LiveUpdateHub, conversion_id: str) -> None:
    queue = hub.subscribe(conversion_id)
    try:
        while True:
            update = await queue.get()
            payload = {"type": "live_update", "conversion_id": conversion_id, **update.model_dump(mode="json")}
            await websocket.send_json(payload)
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"Stopped forwarding updates for {conversion_id}: {e}")
    finally:
        hub.unsubscribe(conversion_id, queue)


@router.websocket("/ws")
async def live_updates_socket(
    websocket: WebSocket,
    orchestrator: ConversionOrchestrator = Depends(get_socket_orchestrator),
) -> None:
    """Accept ``{"type": "subscribe", "conversion_id": ...}`` messages and push updates."""
    await websocket.accept()
    logger.info("WebSocket client connected for live processing")
    forwarders: dict[str, asyncio.Task[None]] = {}

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError as e:
                logger.warning(f"Invalid WebSocket message: {e}")
                continue

            if not isinstance(message, dict):
                logger.warning(f"Ignoring WebSocket message: {message}")
                continue
            conversion_id = message.get("conversion_id")
            if message.get("type") != "subscribe" or not conversion_id:
                logger.warning(f"Ignoring WebSocket message: {message}")
                continue
            if conversion_id not in forwarders:
                forwarders[conversion_id] = asyncio.create_task(
                    _forward(websocket, orchestrator.live_updates, conversion_id)
                )
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    finally:
        for task in forwarders.values():
            task.cancel()
