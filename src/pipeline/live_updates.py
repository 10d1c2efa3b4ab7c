"""Fan-out of live status updates to subscribers of a job.

Delivery is best-effort: a subscriber whose queue is full misses the update,
and nothing a subscriber does can stall the pipeline.
"""

import asyncio
import logging
from collections import defaultdict

from src.models.schemas import LiveUpdate, Notifier

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100


class LiveUpdateHub:
    """Per-job publish/subscribe channel for LiveUpdate events."""

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[LiveUpdate]]] = defaultdict(set)
        self._queue_size = queue_size

    def subscribe(self, job_id: str) -> asyncio.Queue[LiveUpdate]:
        queue: asyncio.Queue[LiveUpdate] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[job_id].add(queue)
        logger.info(f"Client subscribed to conversion: {job_id}")
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue[LiveUpdate]) -> None:
        subscribers = self._subscribers.get(job_id)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[job_id]

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, ()))

    def publish(self, job_id: str, update: LiveUpdate) -> None:
        """Deliver an update to every subscriber of the job without waiting."""
        for queue in list(self._subscribers.get(job_id, ())):
            try:
                queue.put_nowait(update)
            except asyncio.QueueFull:
                logger.warning(f"Dropping live update for slow subscriber of {job_id}")

    def notifier(self, job_id: str) -> Notifier:
        """Bind a (stage, message, detail) callable to one job."""

        def notify(stage: str, message: str, detail: str = "") -> None:
            self.publish(job_id, LiveUpdate(stage=stage, message=message, detail=detail))

        return notify
