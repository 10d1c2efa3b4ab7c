"""Conversion pipeline for one job at a time, with bounded concurrency.

Stages run strictly in order and each writes its status, label and progress
before doing work, so status polling always sees forward motion:

    pending -> extracting -> ai_reviewing -> converting -> completed

Quality validation runs inside ``converting`` under its own stage label. Any
unhandled error turns the job ``failed`` with progress reset to 0. Artifacts
are stored as soon as they exist and their locators recorded right away, so a
failed job keeps whatever it produced.
"""

import asyncio
import logging
from typing import Any

from src.agent.cleanup import TextCleanupService
from src.agent.validator import QualityValidator
from src.braille.online import BrailleService
from src.models.schemas import ConversionJob, JobStatus, LiveUpdate, ProgressCallback, SourceType, utcnow
from src.parsing.extractor import TextExtractor
from src.parsing.pdf_parser import ExtractionResult
from src.pipeline.config import PipelineConfig
from src.pipeline.live_updates import LiveUpdateHub
from src.storage.blob_store import LocalBlobStore
from src.storage.job_store import JobNotFoundError, JobStore

logger = logging.getLogger(__name__)

# Progress bands per stage
QUEUED_PROGRESS = 5
EXTRACT_START, EXTRACT_END = 10, 25
CLEANUP_START, CLEANUP_END = 30, 70
BRAILLE_START, BRAILLE_END = 75, 90
VALIDATE_PROGRESS = 95
COMPLETE_PROGRESS = 100


class ConversionError(Exception):
    """Raised when a job cannot proceed, e.g. its source is missing."""

    pass


class ActiveJobGuard:
    """Counting guard that caps how many jobs process at once.

    Acquisition is a check-and-add with no await in between, so it is atomic
    on the event loop.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._active: set[str] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active_count(self) -> int:
        return len(self._active)

    def try_acquire(self, job_id: str) -> bool:
        if len(self._active) >= self._capacity:
            return False
        self._active.add(job_id)
        return True

    def release(self, job_id: str) -> None:
        self._active.discard(job_id)


class _ProgressWriter:
    """Monotonic progress persistence for one job.

    ``write`` carries stage transitions and results and propagates store
    errors. ``advance`` is advisory: failures are logged and broadcast only.
    """

    def __init__(self, orchestrator: "ConversionOrchestrator", job_id: str) -> None:
        self._orchestrator = orchestrator
        self._job_id = job_id
        self._last = 0

    def write(self, progress: int, **fields: Any) -> None:
        progress = max(progress, self._last)
        self._orchestrator.job_store.update(self._job_id, progress=progress, **fields)
        self._last = progress

    def advance(self, progress: int, **fields: Any) -> None:
        if progress <= self._last and not fields:
            return
        try:
            self.write(progress, **fields)
        except Exception as e:
            logger.error(f"Error updating progress for {self._job_id}: {e}")
            self._orchestrator.publish(self._job_id, "error", "Progress update failed", str(e))

    def band(self, start: int, end: int) -> ProgressCallback:
        """Map a component's 0-1 progress into the [start, end] band."""

        def report(fraction: float) -> None:
            fraction = min(max(fraction, 0.0), 1.0)
            self.advance(round(start + fraction * (end - start)))

        return report


class ConversionOrchestrator:
    """Runs conversion jobs through extraction, cleanup, Braille and validation."""

    def __init__(
        self,
        job_store: JobStore,
        blob_store: LocalBlobStore,
        extractor: TextExtractor,
        cleanup: TextCleanupService,
        braille: BrailleService,
        validator: QualityValidator,
        live_updates: LiveUpdateHub,
        config: PipelineConfig,
    ) -> None:
        self.job_store = job_store
        self.blob_store = blob_store
        self.live_updates = live_updates
        self.config = config
        self._extractor = extractor
        self._cleanup = cleanup
        self._braille = braille
        self._validator = validator
        self._guard = ActiveJobGuard(config.max_concurrent_jobs)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def guard(self) -> ActiveJobGuard:
        return self._guard

    def publish(self, job_id: str, stage: str, message: str, detail: str = "") -> None:
        try:
            self.live_updates.publish(job_id, LiveUpdate(stage=stage, message=message, detail=detail))
        except Exception as e:
            logger.warning(f"Error broadcasting live update for {job_id}: {e}")

    def submit(self, job_id: str) -> asyncio.Task[None]:
        """Schedule a job in the background and keep it referenced until done."""
        task = asyncio.create_task(self.process(job_id), name=f"conversion-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_all(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def process(self, job_id: str) -> None:
        """Run one job to completion or failure. Never raises."""
        progress = _ProgressWriter(self, job_id)

        if not self._guard.try_acquire(job_id):
            logger.warning(f"Too many active conversions ({self._guard.active_count}), queueing {job_id}")
            progress.advance(QUEUED_PROGRESS, status=JobStatus.QUEUED, current_stage="Waiting in queue")
            self.publish(job_id, "queued", "Waiting in queue", "Another conversion is in progress")
            while not self._guard.try_acquire(job_id):
                await asyncio.sleep(self.config.queue_poll_interval)

        logger.info(f"Starting conversion {job_id} ({self._guard.active_count} active)")
        try:
            await self._run(job_id, progress)
        except Exception as e:
            logger.exception(f"Error processing conversion {job_id}")
            self._mark_failed(job_id, e)
        finally:
            self._guard.release(job_id)
            logger.info(f"Finished conversion {job_id} ({self._guard.active_count} still active)")

    def _mark_failed(self, job_id: str, error: Exception) -> None:
        try:
            self.job_store.update(job_id, status=JobStatus.FAILED, current_stage="Error", progress=0)
        except Exception as update_error:
            logger.error(f"Failed to update conversion status for {job_id}: {update_error}")
        self.publish(job_id, "failed", "Conversion failed", str(error))

    async def _run(self, job_id: str, progress: _ProgressWriter) -> None:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Conversion not found: {job_id}")
        notify = self.live_updates.notifier(job_id)

        # Stage 1: text extraction
        progress.write(EXTRACT_START, status=JobStatus.EXTRACTING, current_stage="Text Extraction")
        self.publish(job_id, "extraction", "Extracting text", job.file_name)
        extraction = await self._extract(job)
        updates: dict[str, Any] = {"total_pages": extraction.page_count}
        if job.source_type == SourceType.URL:
            updates["file_size"] = extraction.byte_size
        progress.write(EXTRACT_END, **updates)
        self.publish(
            job_id,
            "extraction",
            "Text extraction complete",
            f"{extraction.page_count} pages via {extraction.method.value}",
        )

        # Stage 2: AI review and cleanup
        progress.write(CLEANUP_START, status=JobStatus.AI_REVIEWING, current_stage="AI Text Review & Cleanup")
        cleanup = await self._cleanup.clean(
            extraction.text,
            on_progress=progress.band(CLEANUP_START, CLEANUP_END),
            notify=notify,
        )
        cleaned_text_path = await self._save_artifact(cleanup.cleaned_text, f"{job_id}_cleaned.txt")
        progress.write(
            CLEANUP_END,
            cleaned_text_path=cleaned_text_path,
            word_count=cleanup.word_count,
            ai_enhancements=cleanup.enhancements,
        )

        # Stage 3: Braille conversion
        progress.write(BRAILLE_START, status=JobStatus.CONVERTING, current_stage="Braille Conversion")
        self.publish(job_id, "braille", "Converting to Braille", f"{cleanup.word_count} words")
        braille = await self._braille.convert(cleanup.cleaned_text, on_progress=progress.band(BRAILLE_START, BRAILLE_END))
        braille_file_path = await self._save_artifact(braille.braille_text, f"{job_id}.brl")
        progress.write(BRAILLE_END, braille_file_path=braille_file_path, braille_pages=braille.page_count)

        # Stage 4: quality validation
        progress.write(VALIDATE_PROGRESS, current_stage="AI Quality Validation")
        quality = await self._validator.validate(cleanup.cleaned_text, braille.braille_text, notify=notify)
        ai_report_path = await self._save_artifact(quality.report, f"{job_id}_report.txt")
        progress.write(VALIDATE_PROGRESS, ai_report_path=ai_report_path)

        progress.write(
            COMPLETE_PROGRESS,
            status=JobStatus.COMPLETED,
            current_stage="Complete",
            accuracy_score=quality.accuracy_score,
            line_validations=quality.line_validations,
            completed_at=utcnow(),
        )
        self.publish(job_id, "complete", "Conversion complete", f"Accuracy {quality.accuracy_score}%")

    async def _extract(self, job: ConversionJob) -> ExtractionResult:
        if not job.source_locator:
            raise ConversionError(f"No source locator for {job.source_type.value} conversion {job.id}")

        if job.source_type == SourceType.FILE:
            data = await self.blob_store.fetch(job.source_locator)
            return await self._extractor.extract_from_bytes(data)
        return await self._extractor.extract_from_url(job.source_locator)

    async def _save_artifact(self, content: str, name: str) -> str:
        locator = self.blob_store.get_upload_locator()
        await self.blob_store.put(locator, content.encode("utf-8"))
        logger.info(f"Saved {name} to {locator}")
        return locator
