"""Test doubles and document builders shared across test modules."""

from collections.abc import Callable
from typing import Any

from src.models.schemas import ConversionJob
from src.storage.job_store import InMemoryJobStore

Handler = Callable[[str], str | Exception]


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages: list[list[str]]) -> bytes:
    """Build a minimal text PDF with one Helvetica text block per page.

    Args:
        pages: Lines of text for each page.

    Returns:
        PDF file bytes with a correct cross-reference table.
    """
    page_ids = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    for page_id, lines in zip(page_ids, pages):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
            ).encode()
        )
        operations = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
        operations.extend(f"({_escape(line)}) Tj T*" for line in lines)
        operations.append("ET")
        stream = "\n".join(operations).encode("latin-1")
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode()
    return bytes(out)


SAMPLE_LINES = [
    "Information security protects data from unauthorized access.",
    "Braille readers rely on clean and well structured text.",
    "This sample document has enough words to pass extraction checks.",
]


class FakeCompletionService:
    """In-process stand-in for the AI completion service.

    The handler maps each prompt to a reply, or to an exception to raise.
    By default every prompt is echoed back.
    """

    def __init__(self, handler: Handler | None = None, enabled: bool = True) -> None:
        self.enabled = enabled
        self.prompts: list[str] = []
        self.calls: list[dict[str, Any]] = []
        self._handler = handler or (lambda prompt: prompt)

    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})
        result = self._handler(prompt)
        if isinstance(result, Exception):
            raise result
        return result


class RecordingJobStore(InMemoryJobStore):
    """In-memory store that records every progress value written."""

    def __init__(self) -> None:
        super().__init__()
        self.progress_trace: list[int] = []
        self.status_trace: list[str] = []

    def update(self, job_id: str, **updates: Any) -> ConversionJob:
        job = super().update(job_id, **updates)
        self.progress_trace.append(job.progress)
        self.status_trace.append(job.status.value)
        return job
