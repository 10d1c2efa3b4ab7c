"""Text-completion service backed by an Agno agent.

Wraps Agno's Agent behind a one-call ``complete`` interface so the cleanup and
validation stages only deal with text in, text out.

Rate limiting is reported as its own exception type because callers react to
it differently from other failures: a rate-limited stage stops calling the
service for the rest of the document instead of retrying every chunk.
"""

import logging
from typing import Protocol

from agno.agent import Agent
from agno.models.openai import OpenAIChat

from src.agent.config import AgentConfig, get_agent_config

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "quota", "too many requests")


class CompletionError(Exception):
    """Raised when the completion service fails."""

    pass


class RateLimitExceededError(CompletionError):
    """Raised when the provider reports an exhausted rate limit or quota."""

    pass


class CompletionService(Protocol):
    """Anything that can turn a prompt into completion text."""

    @property
    def enabled(self) -> bool: ...

    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str: ...


def is_rate_limit_error(error: Exception) -> bool:
    """Check whether a provider error signals rate or quota exhaustion."""
    status_code = getattr(error, "status_code", None)
    if status_code == 429:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


class AgentService:
    """Completion service using an Agno agent per request.

    A fresh agent is built per call since temperature and token budget vary
    between cleanup, validation and the quota probe.
    """

    def __init__(self, config: AgentConfig | None = None) -> None:
        """Initialize the agent service.

        Args:
            config: Optional agent configuration.
                    Loads from environment if not provided.
        """
        self._config = config or get_agent_config()
        if not self._config.enabled:
            logger.warning("No LLM API key set - AI features will be disabled")

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def _create_agent(self, max_tokens: int, temperature: float) -> Agent:
        model = OpenAIChat(
            id=self._config.model_name,
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return Agent(model=model, markdown=False)

    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        """Send a prompt and return the completion text.

        Raises:
            RateLimitExceededError: If the provider reports rate or quota exhaustion.
            CompletionError: For any other failure, including an empty reply.
        """
        if not self.enabled:
            raise CompletionError("AI completion service is not configured")

        try:
            response = await self._create_agent(max_tokens, temperature).arun(prompt)
        except Exception as e:
            if is_rate_limit_error(e):
                raise RateLimitExceededError(str(e)) from e
            raise CompletionError(f"Completion request failed: {e}") from e

        content = response.content if isinstance(response.content, str) else None

        # Agno can report provider failures on the run output instead of raising
        status = getattr(response, "status", None)
        if status is not None and str(getattr(status, "value", status)).lower() == "error":
            error = CompletionError(content or "Completion run ended in error")
            if is_rate_limit_error(error):
                raise RateLimitExceededError(str(error))
            raise error

        if not content:
            raise CompletionError("Completion service returned no content")
        return content
