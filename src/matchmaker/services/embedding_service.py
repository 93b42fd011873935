"""
Text embedding clients.

The matching step only needs one operation: text in, dense vector out.
Two implementations are shipped:

- OpenAIEmbeddingClient: the Embeddings API over httpx (default,
  text-embedding-3-large).
- SentenceTransformerEmbeddingClient: a local sentence-transformers model,
  lazily loaded on first use. Useful for offline development against a
  collection indexed with the same model.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
import structlog

from matchmaker.core.config import settings
from matchmaker.core.exceptions import ConfigurationError, StageError

logger = structlog.get_logger(__name__)

EMBEDDING_STAGE = "embedding"
DEFAULT_LOCAL_MODEL = "all-MiniLM-L6-v2"


class EmbeddingClient(ABC):
    """Abstract embedding provider."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Encode text to an embedding vector.

        Raises:
            StageError: The provider failed or timed out
        """
        pass


class OpenAIEmbeddingClient(EmbeddingClient):
    """OpenAI Embeddings API client."""

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
    ):
        """
        Raises:
            ConfigurationError: If API key is not configured
        """
        self.model = model or settings.embedding_model
        self.timeout = timeout if timeout is not None else settings.embedding_timeout_seconds
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url

        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY is required to embed search prompts.")

    async def embed(self, text: str) -> List[float]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {"model": self.model, "input": text}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/embeddings", headers=headers, json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("embedding_timeout", model=self.model, timeout_seconds=self.timeout)
            raise StageError(
                EMBEDDING_STAGE,
                f"The embedding service did not answer within {self.timeout:g} seconds.",
                timed_out=True,
            ) from e
        except httpx.HTTPStatusError as e:
            logger.error("embedding_http_error", status_code=e.response.status_code)
            raise StageError(
                EMBEDDING_STAGE,
                f"The embedding request failed with status {e.response.status_code}.",
            ) from e
        except httpx.RequestError as e:
            logger.error("embedding_transport_error", error=str(e))
            raise StageError(EMBEDDING_STAGE, "The embedding service could not be reached.") from e
        except ValueError as e:
            logger.error("embedding_invalid_body", error=str(e))
            raise StageError(EMBEDDING_STAGE, "The embedding service returned invalid JSON.") from e

        vector = _extract_vector(data)

        logger.debug("embedding_computed", text_length=len(text), dimensions=len(vector))
        return vector


def _extract_vector(data: Any) -> List[float]:
    """Pull the first embedding out of an Embeddings API body.

    An empty ``data`` list yields an empty vector.

    Raises:
        StageError: The body does not have the Embeddings API shape
    """
    items = data.get("data") if isinstance(data, dict) else None
    if items is None or not isinstance(items, list):
        raise StageError(EMBEDDING_STAGE, "The embedding response had an unexpected shape.")
    if not items:
        return []

    first = items[0]
    vector = first.get("embedding") if isinstance(first, dict) else None
    if not isinstance(vector, list):
        raise StageError(EMBEDDING_STAGE, "The embedding response had an unexpected shape.")
    try:
        return [float(v) for v in vector]
    except (TypeError, ValueError) as e:
        raise StageError(
            EMBEDDING_STAGE, "The embedding response contained non-numeric values."
        ) from e


class SentenceTransformerEmbeddingClient(EmbeddingClient):
    """
    Local sentence-transformers embeddings.

    Lazy Loading:
        The model is loaded on first embed() call, avoiding a startup
        penalty for processes that never reach the matching step.

    Cache:
        In-memory dict keyed by text. Re-matching the same summary reuses
        the vector instead of re-encoding it.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        model: Optional[Any] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            model_name: sentence-transformers model id
            model: Optional preloaded SentenceTransformer instance
            timeout: Seconds before encoding is abandoned
        """
        self.model_name = model_name or DEFAULT_LOCAL_MODEL
        self.timeout = timeout if timeout is not None else settings.embedding_timeout_seconds
        self._model: Optional[Any] = model
        self._cache: Dict[str, List[float]] = {}

    @property
    def model(self) -> Any:
        """Lazy-load the sentence-transformers model on first access."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("loading_embedding_model", model=self.model_name)
            self._model = SentenceTransformer(self.model_name)
            logger.info("embedding_model_loaded", model=self.model_name)
        return self._model

    async def embed(self, text: str) -> List[float]:
        if text in self._cache:
            logger.debug("embedding_cache_hit", text_length=len(text))
            return self._cache[text]

        try:
            # encode() is CPU bound
            embedding = await asyncio.wait_for(
                asyncio.to_thread(self.model.encode, text), timeout=self.timeout
            )
            vector = [float(v) for v in embedding]
        except asyncio.TimeoutError as e:
            logger.warning("embedding_timeout", model=self.model_name, timeout_seconds=self.timeout)
            raise StageError(
                EMBEDDING_STAGE,
                f"Local embedding did not finish within {self.timeout:g} seconds.",
                timed_out=True,
            ) from e
        except Exception as e:
            logger.error("embedding_failed", model=self.model_name, error=str(e))
            raise StageError(EMBEDDING_STAGE, "The local embedding model failed.") from e
        self._cache[text] = vector

        logger.debug("embedding_computed", text_length=len(text), dimensions=len(vector))
        return vector

    def clear_cache(self) -> None:
        cleared_count = len(self._cache)
        self._cache.clear()
        logger.info("embedding_cache_cleared", count=cleared_count)


def get_embedding_client(backend: Optional[str] = None) -> EmbeddingClient:
    """
    Factory for the configured embedding backend (EMBEDDING_BACKEND).

    Raises:
        ConfigurationError: If the backend is unknown or its API key missing
    """
    backend = backend or settings.embedding_backend
    if backend == "openai":
        return OpenAIEmbeddingClient()
    if backend == "sentence_transformers":
        model_name = settings.embedding_model
        if model_name == "text-embedding-3-large":
            model_name = DEFAULT_LOCAL_MODEL
        return SentenceTransformerEmbeddingClient(model_name=model_name)
    raise ConfigurationError(
        f"Unknown embedding backend '{backend}', use openai or sentence_transformers."
    )
