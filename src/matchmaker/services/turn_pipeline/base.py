"""
Base stage class for the generation pipeline.

All generation stages inherit from GenerationStage. A stage renders its
prompts, makes exactly one call to the text-generation client, and decodes
the reply against its pydantic contract. The decode step is the only way
model output leaves a stage: it either yields a validated contract or raises
StageOutputError carrying the stage name, expected shape and raw output.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Generic, Optional, Tuple, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from matchmaker.core.config import settings
from matchmaker.core.exceptions import (
    LLMError,
    LLMTimeoutError,
    StageError,
    StageOutputError,
)
from matchmaker.domain.models.session import StageMetadata
from matchmaker.llm.client import LLMClient
from matchmaker.llm.prompts.parsing import parse_json_object

from .result import StageResult

log = structlog.get_logger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT", bound=BaseModel)


class GenerationStage(ABC, Generic[InputT, OutputT]):
    """
    Abstract base class for one-shot generation stages.

    Subclasses set ``name``, ``output_model`` and ``expected_shape`` and
    implement build_prompts().
    """

    name: str = "stage"
    output_model: Type[OutputT]
    expected_shape: str = ""
    temperature: float = 0.7
    max_tokens: int = 1024

    def __init__(self, llm_client: LLMClient, timeout: Optional[float] = None):
        """
        Args:
            llm_client: Text-generation client
            timeout: Upper bound in seconds for the whole call (defaults to
                STAGE_TIMEOUT_SECONDS)
        """
        self.llm = llm_client
        self.timeout = timeout if timeout is not None else settings.stage_timeout_seconds

    @property
    def stage_name(self) -> str:
        """Return the stage name for logging and error reporting."""
        return self.name

    @abstractmethod
    def build_prompts(self, inputs: InputT) -> Tuple[str, str]:
        """Return (system prompt, user prompt) for these inputs."""
        pass

    async def process(self, inputs: InputT) -> StageResult[OutputT]:
        """
        Run the stage once.

        Raises:
            StageError: The generation call failed or timed out
            StageOutputError: The reply failed structural validation
            ConfigurationError: The client is not configured
        """
        system, prompt = self.build_prompts(inputs)

        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    prompt=prompt,
                    system=system,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StageError(
                self.stage_name,
                f"The {self.stage_name} step timed out after {self.timeout:g} seconds.",
                timed_out=True,
            ) from e
        except LLMTimeoutError as e:
            raise StageError(self.stage_name, e.message, timed_out=True) from e
        except LLMError as e:
            raise StageError(self.stage_name, e.message) from e

        output = self.decode(response.content)

        metadata = StageMetadata(
            stage=self.stage_name,
            model=response.model,
            latency_ms=round(response.latency_ms, 2),
            input_tokens=response.usage.get("input_tokens", 0),
            output_tokens=response.usage.get("output_tokens", 0),
        )
        return StageResult(output=output, metadata=metadata)

    def decode(self, raw_output: str) -> OutputT:
        """Validate raw model text against the stage contract."""
        try:
            data = parse_json_object(raw_output)
            return self.output_model.model_validate(data)
        except (ValueError, ValidationError) as e:
            log.warning(
                "stage_output_invalid",
                stage=self.stage_name,
                error=str(e),
                raw_length=len(raw_output),
            )
            raise StageOutputError(
                self.stage_name,
                expected=self.expected_shape,
                raw_output=raw_output,
                reason=str(e),
            ) from e
