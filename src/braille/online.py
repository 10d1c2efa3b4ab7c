"""Optional online Braille translator.

Posts text to a web translator and scrapes the Braille out of the returned
HTML. The local Grade 1 mapping stays the guaranteed path; this is only tried
when a translator URL is configured.
"""

import asyncio
import html
import logging
import re
from contextlib import AbstractAsyncContextManager, nullcontext

import httpx

from src.agent.chunking import split_into_chunks
from src.braille.transliterator import BrailleResult, paginate, transliterate, wrap_line
from src.models.schemas import ProgressCallback

logger = logging.getLogger(__name__)

MAX_CHUNK_SIZE = 3000
REQUEST_DELAY = 0.5  # seconds between chunk requests

_BRAILLE_CHAR = re.compile(r"[⠀-⣿]")
_RESULT_PATTERNS = [
    re.compile(r"<textarea[^>]*(?:name|id)=[\"']?output[\"']?[^>]*>([^<]+)</textarea>", re.IGNORECASE),
    re.compile(r"<div[^>]*(?:class|id)=\"[^\"]*result[^\"]*\"[^>]*>([^<]+)</div>", re.IGNORECASE),
    re.compile(r"<pre[^>]*>([^<]+)</pre>", re.IGNORECASE),
]
_BRAILLE_RUN = re.compile(r"[⠀-⣿][⠀-⣿\s]*")


class BrailleTranslatorError(Exception):
    """Raised when the online translator returns no usable Braille."""

    pass


def extract_braille_from_html(page: str) -> str | None:
    """Pull the Braille output out of a translator's HTML response."""
    for pattern in _RESULT_PATTERNS:
        match = pattern.search(page)
        if match:
            candidate = html.unescape(match.group(1)).replace("\xa0", " ").strip()
            if _BRAILLE_CHAR.search(candidate):
                return candidate

    runs = _BRAILLE_RUN.findall(page)
    if runs:
        return "\n".join(run.strip() for run in runs).strip()
    return None


class OnlineBrailleTranslator:
    """Client for a form-based web Braille translator (Grade 2, en-us)."""

    def __init__(self, url: str, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self._url = url
        self._http_client = http_client
        self._timeout = timeout

    async def translate(self, text: str) -> str:
        """Translate text chunk by chunk.

        Raises:
            BrailleTranslatorError: If a chunk yields no Braille.
            httpx.HTTPError: If a request fails.
        """
        chunks = [chunk.text.strip() for chunk in split_into_chunks(text, MAX_CHUNK_SIZE)]
        chunks = [chunk for chunk in chunks if chunk]
        braille_chunks: list[str] = []

        async with self._client() as client:
            for i, chunk in enumerate(chunks):
                response = await client.post(
                    self._url,
                    data={"text": chunk, "grade": "2", "lang": "en-us"},
                    headers={"Accept": "text/html,application/xhtml+xml"},
                )
                response.raise_for_status()

                braille = extract_braille_from_html(response.text)
                if not braille:
                    raise BrailleTranslatorError(f"No Braille found in translator response for chunk {i + 1}")
                braille_chunks.append(braille)

                if i < len(chunks) - 1:
                    await asyncio.sleep(REQUEST_DELAY)

        return "\n\n".join(braille_chunks)

    def _client(self) -> AbstractAsyncContextManager[httpx.AsyncClient]:
        # A shared client stays open for its owner
        if self._http_client is not None:
            return nullcontext(self._http_client)
        return httpx.AsyncClient(timeout=self._timeout)


class BrailleService:
    """Braille conversion with an optional online translator in front of the local mapping."""

    def __init__(self, online: OnlineBrailleTranslator | None = None) -> None:
        self._online = online

    async def convert(self, text: str, on_progress: ProgressCallback | None = None) -> BrailleResult:
        """Convert cleaned text to Braille.

        Online output is re-wrapped to the standard line width so both paths
        honor the same layout. Any online failure falls back to the local
        Grade 1 mapping.
        """
        if self._online is not None and text.strip():
            try:
                if on_progress:
                    on_progress(0.1)
                braille = await self._online.translate(text)
                lines = [wrapped for line in braille.split("\n") for wrapped in wrap_line(line)]
                if on_progress:
                    on_progress(1.0)
                logger.info("Online Braille translation succeeded")
                return paginate(lines)
            except (httpx.HTTPError, BrailleTranslatorError) as e:
                logger.warning(f"Online translator failed, falling back to local conversion: {e}")

        logger.info("Using local Grade 1 Braille conversion")
        return transliterate(text, on_progress)
