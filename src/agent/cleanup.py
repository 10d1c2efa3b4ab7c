"""AI-assisted cleanup of extracted text before Braille conversion.

The document is split into chunks that end at natural boundaries and each
chunk is sent to the completion service to fix OCR noise. Cleanup never fails
a job: a chunk that cannot be cleaned is kept verbatim.
"""

import logging

from pydantic import BaseModel, Field

from src.agent.chunking import split_into_chunks
from src.agent.completion import CompletionError, CompletionService, RateLimitExceededError
from src.agent.config import AgentConfig
from src.models.schemas import Notifier, ProgressCallback

logger = logging.getLogger(__name__)

AI_DISABLED_NOTE = "AI processing disabled - using original text"
QUOTA_EXCEEDED_NOTE = "AI quota exceeded - AI cleanup skipped and original text used"
STAGE = "ai_cleanup"

CLEANUP_PROMPT = """You are an AI assistant specializing in text cleanup for Braille conversion.

Clean the following text extracted from a PDF:

1. Fix OCR errors and character recognition mistakes
2. Correct formatting issues and paragraph breaks
3. Preserve the original meaning and structure
4. Keep spacing and line breaks readable for Braille

Return only the cleaned text without any additional commentary.

Text to clean:
{text}"""

PROBE_PROMPT = "Reply with OK."


class CleanupResult(BaseModel):
    """Outcome of AI text cleanup.

    Attributes:
        cleaned_text: The cleaned document.
        word_count: Whitespace-delimited words in the cleaned document.
        enhancements: Human-readable notes about what happened.
    """

    cleaned_text: str
    word_count: int = Field(ge=0)
    enhancements: list[str] = Field(default_factory=list)


def count_words(text: str) -> int:
    return len(text.split())


class TextCleanupService:
    """Chunked OCR-error correction through a completion service."""

    def __init__(self, completion: CompletionService, config: AgentConfig) -> None:
        self._completion = completion
        self._config = config

    async def clean(
        self,
        text: str,
        on_progress: ProgressCallback | None = None,
        notify: Notifier | None = None,
    ) -> CleanupResult:
        """Clean extracted text chunk by chunk.

        Args:
            text: Raw extracted text.
            on_progress: Called with the fraction of chunks processed.
            notify: Live-update hook taking (stage, message, detail).

        Returns:
            CleanupResult with the cleaned text, word count and notes.
        """
        if not self._completion.enabled:
            return self._unchanged(text, AI_DISABLED_NOTE, on_progress)

        if self._config.probe_quota and await self._quota_exhausted():
            if notify:
                notify(STAGE, "AI quota exceeded", "Skipping AI cleanup and keeping the original text")
            return self._unchanged(text, QUOTA_EXCEEDED_NOTE, on_progress)

        chunks = split_into_chunks(text, self._config.chunk_size)
        total = len(chunks)
        midpoint = (total + 1) // 2
        cleaned_chunks: list[str] = []
        enhancements: list[str] = []
        rate_limited = False

        logger.info(f"Cleaning {total} chunks ({len(text)} characters)")

        for i, chunk in enumerate(chunks):
            original = chunk.text.strip()

            if rate_limited:
                cleaned_chunks.append(original)
            else:
                try:
                    response = await self._completion.complete(
                        CLEANUP_PROMPT.format(text=chunk.text),
                        max_tokens=self._config.max_tokens,
                        temperature=self._config.temperature,
                    )
                except RateLimitExceededError as e:
                    logger.warning(f"Rate limit reached at chunk {i + 1}/{total}: {e}")
                    rate_limited = True
                    cleaned_chunks.append(original)
                    enhancements.append(
                        f"AI rate limit reached at chunk {i + 1} of {total} - remaining text kept as original"
                    )
                except CompletionError as e:
                    logger.warning(f"Error processing chunk {i + 1}/{total}, keeping original: {e}")
                    cleaned_chunks.append(original)
                else:
                    cleaned = response.strip()
                    cleaned_chunks.append(cleaned)
                    if cleaned != original:
                        enhancements.append(f"Chunk {i + 1}: Text cleaned and optimized")

            if on_progress:
                on_progress((i + 1) / total)
            if notify and total > 1 and i + 1 == midpoint:
                notify(STAGE, "AI cleanup halfway done", f"{i + 1} of {total} chunks processed")

        cleaned_text = "\n\n".join(cleaned_chunks)

        if on_progress:
            on_progress(1.0)
        if notify:
            notify(STAGE, "AI cleanup complete", f"{len(enhancements)} enhancements across {total} chunks")

        return CleanupResult(
            cleaned_text=cleaned_text,
            word_count=count_words(cleaned_text),
            enhancements=enhancements,
        )

    async def _quota_exhausted(self) -> bool:
        try:
            await self._completion.complete(PROBE_PROMPT, max_tokens=1, temperature=0.0)
        except RateLimitExceededError as e:
            logger.warning(f"Quota probe hit a rate limit, skipping AI cleanup: {e}")
            return True
        except CompletionError as e:
            # Only quota exhaustion short-circuits; other failures surface per chunk
            logger.info(f"Quota probe failed: {e}")
        return False

    @staticmethod
    def _unchanged(text: str, note: str, on_progress: ProgressCallback | None) -> CleanupResult:
        if on_progress:
            on_progress(1.0)
        return CleanupResult(cleaned_text=text, word_count=count_words(text), enhancements=[note])
