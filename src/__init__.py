"""Braille Convert - PDF and web documents to Grade 1 Braille.

Combines FastAPI for HTTP and live updates, Agno for AI text cleanup and
validation, pypdf/pdfminer/Tesseract for extraction, and Pydantic for data
validation.

Components:
    - api: HTTP endpoints, SSE and WebSocket live updates
    - parsing: Text extraction with OCR and raw-byte fallbacks
    - agent: AI cleanup and quality validation
    - braille: Grade 1 transliteration and line wrapping
    - storage: Blob store and job record stores
    - pipeline: Staged, concurrency-capped conversion orchestrator
    - models: Job records and request/response schemas
"""

__version__ = "0.1.0"
