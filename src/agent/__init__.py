"""AI services for text cleanup and quality validation.

Responsibilities:
    - Completion service wrapping an Agno agent on an OpenAI-compatible API
    - Chunked OCR-error cleanup with pass-through on failure
    - Line-level scoring of Braille output with graceful degradation

Rate-limit exhaustion is detected separately from other failures so a stage
can stop spending quota on a document that cannot finish.
"""

from src.agent.chunking import TextChunk, split_into_chunks
from src.agent.cleanup import AI_DISABLED_NOTE, CleanupResult, TextCleanupService
from src.agent.completion import (
    AgentService,
    CompletionError,
    CompletionService,
    RateLimitExceededError,
)
from src.agent.config import AgentConfig, get_agent_config
from src.agent.validator import QualityValidationResult, QualityValidator

__all__ = [
    "AI_DISABLED_NOTE",
    "AgentConfig",
    "AgentService",
    "CleanupResult",
    "CompletionError",
    "CompletionService",
    "QualityValidationResult",
    "QualityValidator",
    "RateLimitExceededError",
    "TextChunk",
    "TextCleanupService",
    "get_agent_config",
    "split_into_chunks",
]
