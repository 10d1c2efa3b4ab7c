"""Async entry points for text extraction from uploaded bytes or remote URLs."""

import asyncio
import logging
from urllib.parse import urlparse

import httpx

from src.parsing.pdf_parser import (
    ExtractionMethod,
    ExtractionResult,
    Strategy,
    extract_pdf_text,
    looks_like_pdf,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 60.0


class SourceFetchError(Exception):
    """Raised when a remote document cannot be downloaded."""

    pass


def is_pdf_response(content_type: str | None, url: str, body: bytes) -> bool:
    """Classify a fetched resource as PDF by header, suffix or magic bytes."""
    if content_type and "application/pdf" in content_type.lower():
        return True
    if urlparse(url).path.lower().endswith(".pdf"):
        return True
    return looks_like_pdf(body)


class TextExtractor:
    """Produces plain text and a page count from PDFs or URLs.

    Parsing and OCR are CPU bound, so the fallback chain runs in a worker
    thread to keep the event loop responsive for status polling.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        strategies: list[Strategy] | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self._http_client = http_client
        self._strategies = strategies
        self._fetch_timeout = fetch_timeout

    async def extract_from_bytes(self, file_content: bytes) -> ExtractionResult:
        """Extract text from an in-memory PDF."""
        return await asyncio.to_thread(extract_pdf_text, file_content, self._strategies)

    async def extract_from_url(self, url: str) -> ExtractionResult:
        """Download a document and extract its text.

        PDFs go through the full fallback chain; anything else is treated as
        plain text and returned as-is.

        Raises:
            SourceFetchError: If the download fails.
        """
        response = await self._fetch(url)
        body = response.content

        if is_pdf_response(response.headers.get("content-type"), url, body):
            logger.info(f"Fetched PDF from {url} ({len(body)} bytes)")
            return await self.extract_from_bytes(body)

        logger.info(f"Fetched non-PDF content from {url}; using body as plain text")
        return ExtractionResult(
            text=response.text,
            page_count=1,
            byte_size=len(body),
            method=ExtractionMethod.PLAIN_TEXT,
        )

    async def _fetch(self, url: str) -> httpx.Response:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self._fetch_timeout) as client:
                    response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Failed to download document from {url}: {e}") from e
        return response
