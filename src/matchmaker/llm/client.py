"""
LLM client abstraction for text-generation providers.

Provides async interface for LLM calls with:
- Structured logging of requests/responses
- Timeout handling
- Usage tracking (tokens)
- Optional retry policy (LLM_MAX_RETRIES, off by default)

Supported providers:
- openai: Chat Completions API (default)
- anthropic: Claude Messages API
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from matchmaker.core.config import settings
from matchmaker.core.exceptions import (
    ConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
)

log = structlog.get_logger(__name__)


# =============================================================================
# Default configuration per provider
# =============================================================================

PROVIDER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "openai": dict(model="gpt-4.1", temperature=0.7, max_tokens=1024),
    "anthropic": dict(model="claude-sonnet-4-5", temperature=0.7, max_tokens=1024),
}
DEFAULT_PROVIDER = "openai"


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers."""

    provider_name = "base"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        max_retries: int = 0,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User message/prompt
            system: Optional system prompt
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in response
            timeout: Optional timeout override in seconds

        Returns:
            LLMResponse with content and metadata
        """
        pass

    async def _post_json(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
        timeout: float,
    ) -> Dict[str, Any]:
        """POST with the client's retry policy.

        Retries only timeouts and 429s, and only when max_retries > 0.

        Raises:
            LLMTimeoutError: Timeout on the last attempt
            LLMRateLimitError: Rate limit on the last attempt
            LLMError: Any other transport or HTTP failure
        """
        base_delay = 1.0  # seconds

        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, headers=headers, json=payload)
                    response.raise_for_status()
                    return response.json()

            except httpx.TimeoutException as e:
                log.warning(
                    "llm_timeout",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    timeout_seconds=timeout,
                )
                if attempt >= self.max_retries:
                    raise LLMTimeoutError(
                        f"The language model did not answer within {timeout:g} seconds."
                    ) from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code != 429:
                    # Don't retry other 4xx/5xx errors
                    log.error(
                        "llm_http_error",
                        provider=self.provider_name,
                        status_code=status_code,
                    )
                    raise LLMError(
                        f"The language model request failed with status {status_code}."
                    ) from e
                log.warning(
                    "llm_rate_limit",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                )
                if attempt >= self.max_retries:
                    raise LLMRateLimitError(
                        "The language model is rate limited right now, please retry shortly."
                    ) from e

            except httpx.RequestError as e:
                log.error("llm_transport_error", provider=self.provider_name, error=str(e))
                raise LLMError("The language model could not be reached.") from e

            delay = base_delay * (2**attempt)
            log.info("llm_retry", delay_seconds=delay, next_attempt=attempt + 2)
            await asyncio.sleep(delay)

        # Unreachable: loop either returns or raises
        assert False, "unreachable"


# =============================================================================
# Anthropic Client
# =============================================================================


class AnthropicClient(LLMClient):
    """Anthropic Claude API client.

    Uses httpx for async HTTP calls to the Messages API.
    """

    provider_name = "anthropic"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: Optional[str] = None,
        max_retries: int = 0,
    ):
        """
        Raises:
            ConfigurationError: If API key is not configured
        """
        super().__init__(model, temperature, max_tokens, timeout, max_retries)
        self.api_key = api_key or settings.anthropic_api_key
        self.base_url = "https://api.anthropic.com/v1"

        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is required to talk to Anthropic.")

        log.info("anthropic_client_initialized", model=self.model, timeout=self.timeout)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Call the Anthropic Messages API."""
        headers = {
            "x-api-key": self.api_key,
            "content-type": "application/json",
            "anthropic-version": "2023-06-01",
        }

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature if temperature is not None else self.temperature,
        }
        if system:
            payload["system"] = system

        log.debug(
            "llm_call_start",
            provider=self.provider_name,
            model=self.model,
            prompt_length=len(prompt),
            system_length=len(system) if system else 0,
        )

        start = time.perf_counter()
        data = await self._post_json(
            f"{self.base_url}/messages",
            headers,
            payload,
            timeout if timeout is not None else self.timeout,
        )
        latency_ms = (time.perf_counter() - start) * 1000

        content = ""
        if data.get("content"):
            content = data["content"][0].get("text", "")

        usage = {
            "input_tokens": data.get("usage", {}).get("input_tokens", 0),
            "output_tokens": data.get("usage", {}).get("output_tokens", 0),
        }

        log.info(
            "llm_call_complete",
            provider=self.provider_name,
            model=self.model,
            latency_ms=round(latency_ms, 2),
            **usage,
        )

        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            usage=usage,
            latency_ms=latency_ms,
            raw_response=data,
        )


# =============================================================================
# OpenAI Client
# =============================================================================


class OpenAIClient(LLMClient):
    """OpenAI Chat Completions client.

    Requests JSON-object responses since every stage expects a JSON reply.
    """

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: Optional[str] = None,
        max_retries: int = 0,
        base_url: str = "https://api.openai.com/v1",
    ):
        """
        Raises:
            ConfigurationError: If API key is not configured
        """
        super().__init__(model, temperature, max_tokens, timeout, max_retries)
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url

        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY is required to run the matchmaker agents.")

        log.info("openai_client_initialized", model=self.model, timeout=self.timeout)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Call the Chat Completions API."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        log.debug(
            "llm_call_start",
            provider=self.provider_name,
            model=self.model,
            prompt_length=len(prompt),
            system_length=len(system) if system else 0,
        )

        start = time.perf_counter()
        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            headers,
            payload,
            timeout if timeout is not None else self.timeout,
        )
        latency_ms = (time.perf_counter() - start) * 1000

        content = ""
        if data.get("choices"):
            content = data["choices"][0].get("message", {}).get("content") or ""

        usage = {
            "input_tokens": data.get("usage", {}).get("prompt_tokens", 0),
            "output_tokens": data.get("usage", {}).get("completion_tokens", 0),
        }

        log.info(
            "llm_call_complete",
            provider=self.provider_name,
            model=self.model,
            latency_ms=round(latency_ms, 2),
            **usage,
        )

        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            usage=usage,
            latency_ms=latency_ms,
            raw_response=data,
        )


# =============================================================================
# Client Factory
# =============================================================================


def get_llm_client(provider: Optional[str] = None) -> LLMClient:
    """
    Factory for the generation client.

    Uses PROVIDER_DEFAULTS with optional environment overrides
    (LLM_PROVIDER, LLM_MODEL, LLM_TIMEOUT_SECONDS, LLM_MAX_RETRIES).

    Raises:
        ConfigurationError: If the provider is unknown or its API key missing
    """
    provider = provider or settings.llm_provider or DEFAULT_PROVIDER
    if provider not in PROVIDER_DEFAULTS:
        raise ConfigurationError(
            f"Unknown LLM provider '{provider}', supported providers are "
            f"{', '.join(PROVIDER_DEFAULTS)}."
        )

    defaults = PROVIDER_DEFAULTS[provider]
    kwargs = dict(
        model=settings.llm_model or defaults["model"],
        temperature=defaults["temperature"],
        max_tokens=defaults["max_tokens"],
        timeout=settings.llm_timeout_seconds,
        max_retries=settings.llm_max_retries,
    )

    if provider == "anthropic":
        return AnthropicClient(**kwargs)
    return OpenAIClient(**kwargs)
