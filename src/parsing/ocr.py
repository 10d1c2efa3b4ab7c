"""OCR fallback for scanned PDFs using pypdfium2 and Tesseract.

Pages are rasterized one at a time and released right after recognition so
peak memory stays at roughly one rendered page.
"""

import logging

import pypdfium2 as pdfium
import pytesseract

logger = logging.getLogger(__name__)

# Constants
MAX_OCR_PAGES = 10
OCR_RENDER_SCALE = 1.5  # ~108 DPI
OCR_PAGE_TIMEOUT = 30  # seconds
OCR_LANG = "eng"


def ocr_pdf_bytes(
    file_content: bytes,
    max_pages: int = MAX_OCR_PAGES,
    scale: float = OCR_RENDER_SCALE,
    page_timeout: int = OCR_PAGE_TIMEOUT,
) -> tuple[str, int]:
    """Run OCR over the first pages of a PDF.

    Args:
        file_content: Raw bytes of the PDF file.
        max_pages: Maximum number of pages to recognize.
        scale: Render scale (1.0 = 72 DPI).
        page_timeout: Seconds Tesseract may spend on a single page.

    Returns:
        Tuple of recognized text (pages separated by page markers) and the
        document's total page count.
    """
    pdf = pdfium.PdfDocument(file_content)
    try:
        page_count = len(pdf)
        texts: list[str] = []

        for i in range(min(page_count, max_pages)):
            page = pdf[i]
            bitmap = None
            image = None
            try:
                bitmap = page.render(scale=scale)
                image = bitmap.to_pil()
                page_text = pytesseract.image_to_string(image, lang=OCR_LANG, timeout=page_timeout)
            except pytesseract.TesseractError as e:
                logger.warning(f"Tesseract error on page {i + 1}: {e}")
                continue
            except RuntimeError as e:
                # pytesseract signals its timeout with a bare RuntimeError
                logger.warning(f"OCR timed out or failed on page {i + 1}: {e}")
                continue
            finally:
                if image is not None:
                    image.close()
                if bitmap is not None:
                    bitmap.close()
                page.close()

            if page_text.strip():
                texts.append(f"--- Page {i + 1} ---\n{page_text.strip()}")

        if page_count > max_pages:
            logger.info(f"OCR limited to first {max_pages} of {page_count} pages")

        out = "\n\n".join(texts)
        logger.info(f"ocr_pdf_bytes: pages={page_count} chars={len(out)}")
        return out, page_count
    finally:
        pdf.close()
