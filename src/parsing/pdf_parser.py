"""PDF text extraction with an ordered fallback chain.

Strategies run in order and the longest result so far is kept. The chain
stops as soon as one result clears the meaningful-text threshold:

    pypdf -> pdfminer -> OCR -> raw bytes -> diagnostic placeholder

Extraction never raises for "no text found"; the placeholder describes the
likely cause instead.
"""

import io
import logging
import re
from collections.abc import Callable
from enum import Enum

from pdfminer.high_level import extract_text as pdfminer_extract_text
from pydantic import BaseModel, Field
from pypdf import PdfReader

from src.parsing.ocr import ocr_pdf_bytes

logger = logging.getLogger(__name__)

# Constants
MEANINGFUL_TEXT_THRESHOLD = 100
PDF_MAGIC_BYTES = b"%PDF"

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\t]")
_WHITESPACE = re.compile(r"\s+")

# Literal strings in content streams and the operators that draw them
_LITERAL = r"\((?:\\.|[^\\()])*\)"
_SHOW_OPERATOR = re.compile(
    r"\((?P<single>(?:\\.|[^\\()])*)\)\s*(?:Tj|'|\")"
    rf"|\[(?P<array>(?:{_LITERAL}|[^\]\(])*)\]\s*TJ",
    re.DOTALL,
)
_ARRAY_LITERAL = re.compile(r"\(((?:\\.|[^\\()])*)\)", re.DOTALL)
_LITERAL_ESCAPE = re.compile(r"\\([0-7]{1,3}|.)", re.DOTALL)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "", "f": "", "\n": "", "\r": ""}


class ExtractionMethod(str, Enum):
    """Strategy that produced an extraction result."""

    PYPDF = "pypdf"
    PDFMINER = "pdfminer"
    OCR = "ocr"
    RAW_BYTES = "raw_bytes"
    PLAIN_TEXT = "plain_text"
    PLACEHOLDER = "placeholder"


class ExtractionResult(BaseModel):
    """Text extracted from a document.

    Attributes:
        text: Extracted plain text.
        page_count: Number of pages in the source (1 when unknown).
        byte_size: Size of the source in bytes.
        method: Strategy that produced the text.
    """

    text: str
    page_count: int = Field(ge=1)
    byte_size: int = Field(ge=0)
    method: ExtractionMethod


class StrategyOutput(BaseModel):
    """Raw output of a single extraction strategy."""

    method: ExtractionMethod
    text: str
    page_count: int | None = None


def meaningful_length(text: str) -> int:
    """Length of text after trimming and collapsing whitespace."""
    return len(_WHITESPACE.sub(" ", text).strip())


def is_meaningful(text: str) -> bool:
    """Check whether text clears the threshold that stops the fallback chain."""
    return meaningful_length(text) > MEANINGFUL_TEXT_THRESHOLD


def looks_like_pdf(file_content: bytes) -> bool:
    return file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES)


def _extract_with_pypdf(file_content: bytes) -> StrategyOutput:
    reader = PdfReader(io.BytesIO(file_content))
    if reader.is_encrypted:
        # Many "encrypted" PDFs only carry an owner password
        reader.decrypt("")

    text_parts: list[str] = []
    for i, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            continue

    return StrategyOutput(
        method=ExtractionMethod.PYPDF,
        text="\n".join(text_parts).strip(),
        page_count=len(reader.pages),
    )


def _extract_with_pdfminer(file_content: bytes) -> StrategyOutput:
    text = pdfminer_extract_text(io.BytesIO(file_content)) or ""
    # pdfminer terminates every page with a form feed
    page_count = text.count("\f") or None
    return StrategyOutput(
        method=ExtractionMethod.PDFMINER,
        text=text.replace("\f", "\n").strip(),
        page_count=page_count,
    )


def _extract_with_ocr(file_content: bytes) -> StrategyOutput:
    text, page_count = ocr_pdf_bytes(file_content)
    return StrategyOutput(method=ExtractionMethod.OCR, text=text, page_count=page_count)


def _unescape_literal(literal: str) -> str:
    def replace(match: re.Match[str]) -> str:
        escaped = match.group(1)
        if escaped.isdigit():
            return chr(int(escaped, 8) & 0xFF)
        return _ESCAPES.get(escaped, escaped)

    return _LITERAL_ESCAPE.sub(replace, literal)


def _shown_strings(decoded: str) -> str:
    """Collect the string literals drawn by ``Tj``, ``'``, ``"`` and ``TJ`` operators."""
    lines: list[str] = []
    for match in _SHOW_OPERATOR.finditer(decoded):
        if match.group("single") is not None:
            lines.append(_unescape_literal(match.group("single")))
        else:
            lines.append("".join(_unescape_literal(s) for s in _ARRAY_LITERAL.findall(match.group("array"))))
    return "\n".join(lines)


def _extract_raw_bytes(file_content: bytes) -> StrategyOutput:
    is_pdf = looks_like_pdf(file_content)
    decoded = file_content.decode("latin-1" if is_pdf else "utf-8", errors="ignore")
    if is_pdf:
        # Only text drawn from uncompressed content streams
        decoded = _shown_strings(decoded)
    printable = _NON_PRINTABLE.sub("", decoded)
    return StrategyOutput(
        method=ExtractionMethod.RAW_BYTES,
        text=_WHITESPACE.sub(" ", printable).strip(),
    )


Strategy = Callable[[bytes], StrategyOutput]

DEFAULT_STRATEGIES: list[Strategy] = [
    _extract_with_pypdf,
    _extract_with_pdfminer,
    _extract_with_ocr,
    _extract_raw_bytes,
]


def diagnostic_message(byte_size: int) -> str:
    """Build the placeholder text returned when no strategy finds usable text."""
    size_kb = byte_size / 1024
    return (
        f"Unable to extract readable text from this PDF ({size_kb:.1f} KB). "
        "The document may be a scanned image without a text layer, "
        "password-protected or encrypted, or corrupted. "
        "Try a PDF with selectable text, or run the document through OCR software first."
    )


def extract_pdf_text(
    file_content: bytes,
    strategies: list[Strategy] | None = None,
) -> ExtractionResult:
    """Extract text from PDF bytes using the fallback chain.

    Args:
        file_content: Raw bytes of the PDF file.
        strategies: Ordered strategies to try. Defaults to the full chain.

    Returns:
        ExtractionResult from the best strategy, or a diagnostic placeholder
        when none produced meaningful text.
    """
    byte_size = len(file_content)
    best: StrategyOutput | None = None

    for strategy in strategies if strategies is not None else DEFAULT_STRATEGIES:
        try:
            output = strategy(file_content)
        except Exception as e:
            logger.warning(f"Extraction strategy {strategy.__name__} failed: {e}")
            continue

        length = meaningful_length(output.text)
        logger.info(f"Extraction strategy {output.method.value} yielded {length} characters")

        if best is None or length > meaningful_length(best.text):
            best = output
        if is_meaningful(best.text):
            break

    if best is None or not is_meaningful(best.text):
        logger.warning(f"No extraction strategy produced meaningful text ({byte_size} bytes)")
        return ExtractionResult(
            text=diagnostic_message(byte_size),
            page_count=1,
            byte_size=byte_size,
            method=ExtractionMethod.PLACEHOLDER,
        )

    return ExtractionResult(
        text=best.text,
        page_count=best.page_count or 1,
        byte_size=byte_size,
        method=best.method,
    )
