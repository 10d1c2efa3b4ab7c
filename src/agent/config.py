"""AI service configuration with environment variable loading.

Pydantic-based configuration for the text-completion service used by the
cleanup and validation stages. Targets Groq's OpenAI-compatible API by
default; any OpenAI-compatible endpoint works via LLM_BASE_URL.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"


def _env_api_key() -> str:
    for name in ("LLM_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY"):
        value = os.getenv(name, "")
        if value.strip():
            return value
    return ""


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class AgentConfig(BaseModel):
    """Configuration for the AI completion service.

    An empty API key is allowed and disables AI: cleanup passes text through
    and validation returns default scores.

    Attributes:
        api_key: API key for the provider (empty disables AI).
        base_url: OpenAI-compatible API base URL.
        model_name: Model identifier to use.
        temperature: Sampling temperature (kept low for faithful cleanup).
        max_tokens: Maximum tokens in a generated response.
        chunk_size: Target characters per cleanup chunk.
        validation_batch_size: Lines scored per validation request.
        max_validation_lines: Lines validated per document.
        probe_quota: Send a tiny request first to detect an exhausted quota.
    """

    api_key: str = Field(
        default_factory=_env_api_key,
        description="API key for LLM provider",
    )
    base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL") or DEFAULT_BASE_URL,
        description="OpenAI-compatible API base URL",
    )
    model_name: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "llama-3.3-70b-versatile"),
        description="Model to use",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for cleanup and validation",
    )
    max_tokens: int = Field(
        default=4096,
        ge=1,
        le=128000,
        description="Maximum tokens in generated response",
    )
    chunk_size: int = Field(
        default=4000,
        ge=500,
        description="Target characters per cleanup chunk",
    )
    validation_batch_size: int = Field(default=10, ge=1, le=50)
    max_validation_lines: int = Field(default=200, ge=1)
    probe_quota: bool = Field(default_factory=lambda: _env_flag("AI_QUOTA_PROBE", True))

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        """Strip whitespace so a blank key reads as disabled."""
        return v.strip()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


def get_agent_config() -> AgentConfig:
    """Create agent configuration from environment.

    Returns:
        Configured AgentConfig instance.
    """
    return AgentConfig()
