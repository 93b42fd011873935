"""Tests for LLM client."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch, MagicMock

from matchmaker.core.exceptions import (
    ConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from matchmaker.llm.client import (
    AnthropicClient,
    LLMResponse,
    OpenAIClient,
    get_llm_client,
)


def _http_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


def _mock_http(MockClient, json_body=None, side_effect=None):
    mock_client = AsyncMock()
    mock_response_obj = MagicMock()
    mock_response_obj.json.return_value = json_body
    mock_response_obj.raise_for_status = MagicMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = mock_response_obj
    MockClient.return_value.__aenter__.return_value = mock_client
    return mock_client, mock_response_obj


class TestAnthropicClient:
    """Tests for AnthropicClient."""

    def test_init_with_api_key(self):
        """Client initializes with explicit API key."""
        client = AnthropicClient(
            model="claude-sonnet-4-5",
            temperature=0.7,
            max_tokens=1024,
            timeout=30.0,
            api_key="test-key",
        )
        assert client.api_key == "test-key"

    def test_init_without_api_key_raises(self):
        """Client raises if no API key available."""
        with patch("matchmaker.llm.client.settings") as mock_settings:
            mock_settings.anthropic_api_key = None
            with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
                AnthropicClient(
                    model="claude-sonnet-4-5",
                    temperature=0.7,
                    max_tokens=1024,
                    timeout=30.0,
                )

    @pytest.mark.asyncio
    async def test_complete_success(self):
        """complete() returns LLMResponse on success."""
        mock_response = {
            "content": [{"type": "text", "text": "Hello, world!"}],
            "model": "claude-sonnet-4-5",
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }

        with patch("httpx.AsyncClient") as MockClient:
            mock_client, _ = _mock_http(MockClient, mock_response)

            client = AnthropicClient(
                model="claude-sonnet-4-5",
                temperature=0.7,
                max_tokens=1024,
                timeout=30.0,
                api_key="test-key",
            )
            response = await client.complete("Say hello", system="You are helpful")

            assert isinstance(response, LLMResponse)
            assert response.content == "Hello, world!"
            assert response.usage == {"input_tokens": 10, "output_tokens": 5}

            payload = mock_client.post.call_args.kwargs["json"]
            assert payload["system"] == "You are helpful"
            assert payload["messages"] == [{"role": "user", "content": "Say hello"}]


class TestOpenAIClient:
    """Tests for OpenAIClient."""

    def test_init_without_api_key_raises(self):
        with patch("matchmaker.llm.client.settings") as mock_settings:
            mock_settings.openai_api_key = None
            with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
                OpenAIClient(model="gpt-4.1", temperature=0.7, max_tokens=512, timeout=30.0)

    @pytest.mark.asyncio
    async def test_complete_requests_json_object(self):
        """complete() asks for a JSON object and maps usage keys."""
        mock_response = {
            "choices": [{"message": {"content": '{"reply": "hi"}'}}],
            "model": "gpt-4.1",
            "usage": {"prompt_tokens": 30, "completion_tokens": 8},
        }

        with patch("httpx.AsyncClient") as MockClient:
            mock_client, _ = _mock_http(MockClient, mock_response)

            client = OpenAIClient(
                model="gpt-4.1", temperature=0.7, max_tokens=512, timeout=30.0, api_key="k"
            )
            response = await client.complete("Hi", system="Be brief", temperature=0.2)

            assert response.content == '{"reply": "hi"}'
            assert response.usage == {"input_tokens": 30, "output_tokens": 8}

            url = mock_client.post.call_args.args[0]
            payload = mock_client.post.call_args.kwargs["json"]
            assert url.endswith("/chat/completions")
            assert payload["response_format"] == {"type": "json_object"}
            assert payload["temperature"] == 0.2
            assert payload["messages"][0] == {"role": "system", "content": "Be brief"}


class TestRetryPolicy:
    """Retries live in the client and are off by default."""

    @pytest.mark.asyncio
    async def test_timeout_without_retries_raises_immediately(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_client, _ = _mock_http(
                MockClient, side_effect=httpx.TimeoutException("slow")
            )
            client = OpenAIClient(
                model="gpt-4.1", temperature=0.7, max_tokens=512, timeout=1.0, api_key="k"
            )

            with pytest.raises(LLMTimeoutError):
                await client.complete("Hi")

            assert mock_client.post.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_is_retried_when_enabled(self):
        ok = MagicMock()
        ok.raise_for_status = MagicMock()
        ok.json.return_value = {"choices": [{"message": {"content": "{}"}}]}

        with patch("httpx.AsyncClient") as MockClient, patch(
            "matchmaker.llm.client.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            mock_client, _ = _mock_http(
                MockClient, side_effect=[httpx.TimeoutException("slow"), ok]
            )
            client = OpenAIClient(
                model="gpt-4.1",
                temperature=0.7,
                max_tokens=512,
                timeout=1.0,
                api_key="k",
                max_retries=1,
            )

            response = await client.complete("Hi")

            assert response.content == "{}"
            assert mock_client.post.call_count == 2
            sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_rate_limit_raises_after_retries(self):
        limited = MagicMock()
        limited.raise_for_status.side_effect = _http_error(429)

        with patch("httpx.AsyncClient") as MockClient, patch(
            "matchmaker.llm.client.asyncio.sleep", new=AsyncMock()
        ):
            mock_client = AsyncMock()
            mock_client.post.return_value = limited
            MockClient.return_value.__aenter__.return_value = mock_client

            client = OpenAIClient(
                model="gpt-4.1",
                temperature=0.7,
                max_tokens=512,
                timeout=1.0,
                api_key="k",
                max_retries=2,
            )

            with pytest.raises(LLMRateLimitError):
                await client.complete("Hi")

            assert mock_client.post.call_count == 3

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self):
        failing = MagicMock()
        failing.raise_for_status.side_effect = _http_error(500)

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = AsyncMock()
            mock_client.post.return_value = failing
            MockClient.return_value.__aenter__.return_value = mock_client

            client = OpenAIClient(
                model="gpt-4.1",
                temperature=0.7,
                max_tokens=512,
                timeout=1.0,
                api_key="k",
                max_retries=3,
            )

            with pytest.raises(LLMError, match="status 500"):
                await client.complete("Hi")

            assert mock_client.post.call_count == 1


class TestGetLLMClient:
    """Tests for get_llm_client factory."""

    def _settings(self, mock_settings, provider=None):
        mock_settings.llm_provider = provider
        mock_settings.llm_model = None
        mock_settings.llm_timeout_seconds = 30.0
        mock_settings.llm_max_retries = 0
        mock_settings.openai_api_key = "openai-key"
        mock_settings.anthropic_api_key = "anthropic-key"

    def test_defaults_to_openai(self):
        with patch("matchmaker.llm.client.settings") as mock_settings:
            self._settings(mock_settings)

            client = get_llm_client()

            assert isinstance(client, OpenAIClient)
            assert client.model == "gpt-4.1"

    def test_returns_anthropic_client(self):
        """Factory returns AnthropicClient for anthropic provider."""
        with patch("matchmaker.llm.client.settings") as mock_settings:
            self._settings(mock_settings, provider="anthropic")

            client = get_llm_client()

            assert isinstance(client, AnthropicClient)

    def test_raises_for_unknown_provider(self):
        """Factory raises for unknown provider."""
        with patch("matchmaker.llm.client.settings") as mock_settings:
            self._settings(mock_settings, provider="unknown")

            with pytest.raises(ConfigurationError, match="Unknown LLM provider"):
                get_llm_client()


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_response_defaults(self):
        """LLMResponse has sensible defaults."""
        response = LLMResponse(content="Hi", model="test")

        assert response.usage == {}
        assert response.latency_ms == 0.0
        assert response.raw_response is None
