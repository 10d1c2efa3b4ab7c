"""Unit tests for AgentService and AgentConfig.

Tests configuration loading, agent construction and error classification.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from src.agent.completion import (
    AgentService,
    CompletionError,
    RateLimitExceededError,
    is_rate_limit_error,
)
from src.agent.config import DEFAULT_BASE_URL, AgentConfig

KEY_VARS = ("LLM_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove AI settings from the environment."""
    for name in (*KEY_VARS, "LLM_BASE_URL", "LLM_MODEL", "AI_QUOTA_PROBE"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAgentConfig:
    """Tests for AgentConfig validation."""

    def test_defaults_without_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        """With nothing configured AI is disabled and Groq is the default endpoint."""
        config = AgentConfig()

        assert config.api_key == ""
        assert config.enabled is False
        assert config.base_url == DEFAULT_BASE_URL
        assert config.model_name == "llama-3.3-70b-versatile"
        assert config.temperature == 0.1
        assert config.probe_quota is True

    def test_key_lookup_order(self, clean_env: pytest.MonkeyPatch) -> None:
        """LLM_API_KEY wins over the provider-specific variables."""
        clean_env.setenv("OPENAI_API_KEY", "sk-openai")
        clean_env.setenv("GROQ_API_KEY", "gsk-groq")

        assert AgentConfig().api_key == "gsk-groq"

        clean_env.setenv("LLM_API_KEY", "generic")
        assert AgentConfig().api_key == "generic"

    def test_environment_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        """Endpoint, model and quota-check flag come from the environment."""
        clean_env.setenv("LLM_BASE_URL", "https://api.openai.com/v1")
        clean_env.setenv("LLM_MODEL", "gpt-4o-mini")
        clean_env.setenv("AI_QUOTA_PROBE", "false")

        config = AgentConfig()

        assert config.base_url == "https://api.openai.com/v1"
        assert config.model_name == "gpt-4o-mini"
        assert config.probe_quota is False

    def test_whitespace_key_is_disabled(self) -> None:
        """A whitespace-only key strips to empty and disables AI."""
        config = AgentConfig(api_key="   ")

        assert config.api_key == ""
        assert config.enabled is False

    def test_strips_api_key_whitespace(self) -> None:
        """Config strips leading/trailing whitespace from API key."""
        assert AgentConfig(api_key="  sk-test-key  ").api_key == "sk-test-key"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("temperature", -0.1),
            ("temperature", 2.5),
            ("max_tokens", 0),
            ("max_tokens", 128001),
            ("chunk_size", 100),
            ("validation_batch_size", 0),
        ],
    )
    def test_rejects_out_of_range_values(self, field: str, value: float) -> None:
        """Out-of-range settings fail validation naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            AgentConfig(api_key="sk-test", **{field: value})

        assert field in str(exc_info.value)

    def test_accepts_boundary_temperatures(self) -> None:
        """Config accepts temperature at boundaries (0.0 and 2.0)."""
        assert AgentConfig(api_key="sk-test", temperature=0.0).temperature == 0.0
        assert AgentConfig(api_key="sk-test", temperature=2.0).temperature == 2.0


class TestIsRateLimitError:
    """Tests for rate-limit classification."""

    def test_status_code_429(self) -> None:
        """Errors carrying HTTP 429 are rate limits."""
        error = Exception("slow down")
        error.status_code = 429

        assert is_rate_limit_error(error)

    @pytest.mark.parametrize(
        "message",
        ["Rate limit reached for model", "You exceeded your current quota", "429 Too Many Requests"],
    )
    def test_message_markers(self, message: str) -> None:
        """Provider messages about limits or quota are rate limits."""
        assert is_rate_limit_error(Exception(message))

    def test_other_errors(self) -> None:
        """Unrelated failures are not rate limits."""
        assert not is_rate_limit_error(Exception("connection reset"))


@patch("src.agent.completion.OpenAIChat")
@patch("src.agent.completion.Agent")
class TestAgentService:
    """Tests for AgentService with the Agno agent mocked out."""

    def _reply(self, mock_agent_class: MagicMock, result: object) -> AsyncMock:
        arun = AsyncMock(side_effect=result) if isinstance(result, Exception) else AsyncMock(return_value=result)
        mock_agent_class.return_value.arun = arun
        return arun

    async def test_passes_config_to_model(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """Each request builds a model from the config and call settings."""
        config = AgentConfig(api_key="sk-custom", base_url="https://llm.test/v1", model_name="test-model")
        self._reply(mock_agent_class, SimpleNamespace(content="cleaned", status=None))

        content = await AgentService(config).complete("prompt", max_tokens=256, temperature=0.2)

        assert content == "cleaned"
        mock_openai_chat.assert_called_once_with(
            id="test-model",
            api_key="sk-custom",
            base_url="https://llm.test/v1",
            temperature=0.2,
            max_tokens=256,
        )
        assert mock_agent_class.call_args.kwargs["markdown"] is False
        mock_agent_class.return_value.arun.assert_awaited_once_with("prompt")

    async def test_disabled_service_refuses(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """Without a key no request is attempted."""
        service = AgentService(AgentConfig(api_key=""))

        assert service.enabled is False
        with pytest.raises(CompletionError, match="not configured"):
            await service.complete("prompt", max_tokens=10, temperature=0.1)
        mock_agent_class.assert_not_called()

    async def test_rate_limit_exception(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """Provider rate limits surface as RateLimitExceededError."""
        self._reply(mock_agent_class, Exception("Error code: 429 - rate limit exceeded"))

        with pytest.raises(RateLimitExceededError):
            await AgentService(AgentConfig(api_key="sk-test")).complete("p", max_tokens=10, temperature=0.1)

    async def test_other_exception(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """Other provider failures surface as CompletionError."""
        self._reply(mock_agent_class, Exception("connection reset"))

        with pytest.raises(CompletionError) as exc_info:
            await AgentService(AgentConfig(api_key="sk-test")).complete("p", max_tokens=10, temperature=0.1)

        assert not isinstance(exc_info.value, RateLimitExceededError)

    async def test_error_status_on_run_output(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """A run reporting an error status is treated as a failure."""
        status = SimpleNamespace(value="ERROR")
        self._reply(mock_agent_class, SimpleNamespace(content="quota exceeded for today", status=status))

        with pytest.raises(RateLimitExceededError):
            await AgentService(AgentConfig(api_key="sk-test")).complete("p", max_tokens=10, temperature=0.1)

    async def test_empty_content(self, mock_agent_class: MagicMock, mock_openai_chat: MagicMock) -> None:
        """An empty reply is a failure, not an empty cleanup."""
        self._reply(mock_agent_class, SimpleNamespace(content="", status=None))

        with pytest.raises(CompletionError, match="no content"):
            await AgentService(AgentConfig(api_key="sk-test")).complete("p", max_tokens=10, temperature=0.1)
