"""
Audio transcription for voice turns.

Bytes in, text out. The transcript becomes the user's message and is echoed
back in the snapshot so the UI can show what was heard.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog

from matchmaker.core.config import settings
from matchmaker.core.exceptions import ConfigurationError, StageError

logger = structlog.get_logger(__name__)

TRANSCRIPTION_STAGE = "transcription"


class TranscriptionClient(ABC):
    """Abstract speech-to-text provider."""

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        content_type: Optional[str] = None,
    ) -> str:
        """
        Transcribe an audio clip.

        Raises:
            StageError: The provider failed, timed out or returned no text
        """
        pass


class OpenAITranscriptionClient(TranscriptionClient):
    """OpenAI audio transcription endpoint over httpx multipart."""

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
        self.model = model or settings.transcription_model
        self.timeout = (
            timeout if timeout is not None else settings.transcription_timeout_seconds
        )
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url

        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY is required to transcribe audio.")

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        content_type: Optional[str] = None,
    ) -> str:
        files = {"file": (filename, audio, content_type or "application/octet-stream")}
        data = {"model": self.model}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug("transcription_started", model=self.model, audio_bytes=len(audio))

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/audio/transcriptions",
                    headers=headers,
                    data=data,
                    files=files,
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning("transcription_timeout", timeout_seconds=self.timeout)
            raise StageError(
                TRANSCRIPTION_STAGE,
                f"Transcription did not finish within {self.timeout:g} seconds.",
                timed_out=True,
            ) from e
        except httpx.HTTPStatusError as e:
            logger.error("transcription_http_error", status_code=e.response.status_code)
            raise StageError(
                TRANSCRIPTION_STAGE,
                f"Transcription failed with status {e.response.status_code}.",
            ) from e
        except httpx.RequestError as e:
            logger.error("transcription_transport_error", error=str(e))
            raise StageError(
                TRANSCRIPTION_STAGE, "The transcription service could not be reached."
            ) from e
        except ValueError as e:
            logger.error("transcription_invalid_body", error=str(e))
            raise StageError(
                TRANSCRIPTION_STAGE, "The transcription service returned invalid JSON."
            ) from e

        raw_text = payload.get("text") if isinstance(payload, dict) else None
        if raw_text is not None and not isinstance(raw_text, str):
            raise StageError(
                TRANSCRIPTION_STAGE, "The transcription response had an unexpected shape."
            )
        text = (raw_text or "").strip()
        if not text:
            raise StageError(TRANSCRIPTION_STAGE, "Transcription returned no text.")

        logger.info("transcription_completed", model=self.model, text_length=len(text))
        return text


def get_transcription_client() -> TranscriptionClient:
    """Factory for the configured transcription client."""
    return OpenAITranscriptionClient()
