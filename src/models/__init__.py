"""Pydantic models shared across the conversion service.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - ConversionJob: Persisted job record with progress and artifact locators
    - LineValidation: Per-line quality score produced by the validator
    - LiveUpdate: Status notification pushed to live subscribers
    - FileConversionRequest / UrlConversionRequest: Job intake payloads
"""

from src.models.schemas import (
    ConversionCreated,
    ConversionJob,
    FileConversionRequest,
    JobStatus,
    LineValidation,
    LiveUpdate,
    MessageResponse,
    Notifier,
    ProgressCallback,
    SourceType,
    TextContent,
    UploadLocator,
    UrlConversionRequest,
)

__all__ = [
    "ConversionCreated",
    "ConversionJob",
    "FileConversionRequest",
    "JobStatus",
    "LineValidation",
    "LiveUpdate",
    "MessageResponse",
    "Notifier",
    "ProgressCallback",
    "SourceType",
    "TextContent",
    "UploadLocator",
    "UrlConversionRequest",
]
