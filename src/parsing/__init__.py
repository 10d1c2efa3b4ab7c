"""Document text extraction.

Turns uploaded PDFs or remote documents into plain text ready for cleanup.

Responsibilities:
    - PDF text-layer extraction with pypdf, then pdfminer
    - OCR of scanned pages with pypdfium2 and Tesseract
    - Raw-byte recovery and a diagnostic placeholder as last resorts
    - URL fetching with PDF / plain-text classification
"""

from src.parsing.extractor import SourceFetchError, TextExtractor
from src.parsing.pdf_parser import (
    MEANINGFUL_TEXT_THRESHOLD,
    ExtractionMethod,
    ExtractionResult,
    extract_pdf_text,
    is_meaningful,
    meaningful_length,
)

__all__ = [
    "MEANINGFUL_TEXT_THRESHOLD",
    "ExtractionMethod",
    "ExtractionResult",
    "SourceFetchError",
    "TextExtractor",
    "extract_pdf_text",
    "is_meaningful",
    "meaningful_length",
]
