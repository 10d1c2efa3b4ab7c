"""Unit tests for the PDF extraction fallback chain."""

import pytest_check as check

from src.parsing import ocr, pdf_parser
from src.parsing.pdf_parser import (
    DEFAULT_STRATEGIES,
    MEANINGFUL_TEXT_THRESHOLD,
    ExtractionMethod,
    StrategyOutput,
    diagnostic_message,
    extract_pdf_text,
    is_meaningful,
    looks_like_pdf,
    meaningful_length,
)
from tests.helpers import SAMPLE_LINES, make_pdf

LONG_TEXT = "Readable sentence for the extraction chain. " * 5


def strategy(method: ExtractionMethod, text: str, page_count: int | None = None, calls: list[str] | None = None):
    """Build a fake strategy that records its invocation."""

    def run(file_content: bytes) -> StrategyOutput:
        if calls is not None:
            calls.append(method.value)
        return StrategyOutput(method=method, text=text, page_count=page_count)

    run.__name__ = f"fake_{method.value}"
    return run


def failing(file_content: bytes) -> StrategyOutput:
    raise RuntimeError("parser crashed")


class TestMeaningfulText:
    """Tests for the meaningful-text threshold."""

    def test_whitespace_is_collapsed_before_measuring(self) -> None:
        """Runs of whitespace count as one character."""
        check.equal(meaningful_length("  a \n\n\t b  "), 3)

    def test_threshold_is_exclusive(self) -> None:
        """Exactly the threshold is not enough."""
        check.is_false(is_meaningful("x" * MEANINGFUL_TEXT_THRESHOLD))
        check.is_true(is_meaningful("x" * (MEANINGFUL_TEXT_THRESHOLD + 1)))

    def test_diagnostic_message_is_meaningful(self) -> None:
        """The placeholder itself clears the threshold."""
        check.is_true(is_meaningful(diagnostic_message(2048)))
        check.is_in("2.0 KB", diagnostic_message(2048))

    def test_looks_like_pdf(self) -> None:
        """Magic bytes identify PDFs."""
        check.is_true(looks_like_pdf(b"%PDF-1.7\n..."))
        check.is_false(looks_like_pdf(b"Hello World"))


class TestExtractPdfText:
    """Tests for extraction from real PDF bytes."""

    def test_extracts_text_and_page_count(self, sample_pdf: bytes) -> None:
        """A text PDF is read by the first strategy with its page count."""
        result = extract_pdf_text(sample_pdf)

        check.equal(result.method, ExtractionMethod.PYPDF)
        check.equal(result.page_count, 3)
        check.is_in("Information security", result.text)
        check.equal(result.byte_size, len(sample_pdf))

    def test_short_pdf_falls_through_to_placeholder(self, monkeypatch) -> None:
        """A PDF with too little text anywhere yields the diagnostic placeholder."""
        monkeypatch.setattr(pdf_parser, "ocr_pdf_bytes", lambda file_content: ("", 1))
        tiny = make_pdf([["Hi"]])

        result = extract_pdf_text(tiny)

        check.equal(result.method, ExtractionMethod.PLACEHOLDER)
        check.equal(result.page_count, 1)
        check.equal(result.text, diagnostic_message(len(tiny)))

    def test_garbage_bytes_never_raise(self) -> None:
        """Unparsable input degrades to raw bytes or the placeholder."""
        result = extract_pdf_text(
            b"%PDF-1.4 broken",
            strategies=[
                failing,
                strategy(ExtractionMethod.RAW_BYTES, "%PDF-1.4 broken"),
            ],
        )

        check.equal(result.method, ExtractionMethod.PLACEHOLDER)
        check.greater(len(result.text), MEANINGFUL_TEXT_THRESHOLD)


class TestFallbackChain:
    """Tests for strategy ordering and selection."""

    def test_stops_at_first_meaningful_result(self) -> None:
        """Later strategies are skipped once one clears the threshold."""
        calls: list[str] = []

        result = extract_pdf_text(
            b"%PDF",
            strategies=[
                strategy(ExtractionMethod.PYPDF, "", 4, calls),
                strategy(ExtractionMethod.PDFMINER, LONG_TEXT, 4, calls),
                strategy(ExtractionMethod.OCR, LONG_TEXT * 2, 4, calls),
            ],
        )

        check.equal(calls, ["pypdf", "pdfminer"])
        check.equal(result.method, ExtractionMethod.PDFMINER)
        check.equal(result.page_count, 4)

    def test_continues_past_short_results(self) -> None:
        """Short results keep the chain going until one is meaningful."""
        calls: list[str] = []

        result = extract_pdf_text(
            b"%PDF",
            strategies=[
                strategy(ExtractionMethod.PYPDF, "x" * 80, 2, calls),
                strategy(ExtractionMethod.PDFMINER, "y" * 10, 2, calls),
                strategy(ExtractionMethod.OCR, "z" * 60 + " " + "z" * 60, 2, calls),
            ],
        )

        check.equal(calls, ["pypdf", "pdfminer", "ocr"])
        check.equal(result.method, ExtractionMethod.OCR)

    def test_failing_strategy_is_skipped(self) -> None:
        """An exception from one strategy moves the chain on."""
        result = extract_pdf_text(
            b"%PDF",
            strategies=[failing, strategy(ExtractionMethod.PDFMINER, LONG_TEXT, 1)],
        )

        assert result.method == ExtractionMethod.PDFMINER

    def test_missing_page_count_defaults_to_one(self) -> None:
        """Strategies without a page count report a single page."""
        result = extract_pdf_text(b"raw", strategies=[strategy(ExtractionMethod.RAW_BYTES, LONG_TEXT)])

        check.equal(result.method, ExtractionMethod.RAW_BYTES)
        check.equal(result.page_count, 1)

    def test_raw_bytes_strategy_strips_binary(self) -> None:
        """The raw-bytes fallback keeps printable text only."""
        body = b"\x00\x01" + " ".join(SAMPLE_LINES).encode() + b"\xff\xfe"

        result = extract_pdf_text(body, strategies=[failing, DEFAULT_STRATEGIES[-1]])

        check.equal(result.method, ExtractionMethod.RAW_BYTES)
        check.equal(result.text, " ".join(SAMPLE_LINES))

    def test_raw_bytes_strategy_skips_pdf_syntax(self, sample_pdf: bytes) -> None:
        """On PDF bytes only strings drawn by text operators are kept."""
        result = extract_pdf_text(sample_pdf, strategies=[failing, DEFAULT_STRATEGIES[-1]])

        check.equal(result.method, ExtractionMethod.RAW_BYTES)
        check.equal(result.text, " ".join(SAMPLE_LINES * 3))
        check.is_not_in("obj", result.text)

    def test_raw_bytes_strategy_reads_text_arrays(self) -> None:
        """Kerned arrays are joined and literal escapes decoded."""
        body = b"%PDF-1.4\n1 0 obj\n<< /Length 40 >>\nstream\nBT [(Hel) -20 (lo\\051)] TJ (a\\(b\\)) Tj ET\nendstream\nendobj"

        output = DEFAULT_STRATEGIES[-1](body)

        assert output.text == "Hello) a(b)"

    def test_default_chain_order(self) -> None:
        """The chain runs pypdf, pdfminer, OCR, then raw bytes."""
        names = [s.__name__ for s in DEFAULT_STRATEGIES]

        assert names == ["_extract_with_pypdf", "_extract_with_pdfminer", "_extract_with_ocr", "_extract_raw_bytes"]


class TestOcr:
    """Tests for the OCR strategy with Tesseract replaced."""

    def test_recognizes_each_page(self, monkeypatch, sample_pdf: bytes) -> None:
        """Rendered pages are recognized in order with page markers."""
        recognized = iter(["first page text", "  ", "third page text"])
        monkeypatch.setattr(ocr.pytesseract, "image_to_string", lambda image, **kwargs: next(recognized))

        text, page_count = ocr.ocr_pdf_bytes(sample_pdf)

        check.equal(page_count, 3)
        check.equal(text, "--- Page 1 ---\nfirst page text\n\n--- Page 3 ---\nthird page text")

    def test_failed_page_is_skipped(self, monkeypatch, sample_pdf: bytes) -> None:
        """A Tesseract failure on one page does not stop the others."""
        pages = iter([RuntimeError("Tesseract process timeout"), "second", "third"])

        def fake_ocr(image, **kwargs) -> str:
            result = next(pages)
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(ocr.pytesseract, "image_to_string", fake_ocr)

        text, _ = ocr.ocr_pdf_bytes(sample_pdf, max_pages=2)

        assert text == "--- Page 2 ---\nsecond"
