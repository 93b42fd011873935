"""
Result object for pipeline stages.

Every stage returns its validated output together with the execution
metadata of the call that produced it.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from matchmaker.domain.models.session import StageMetadata

OutputT = TypeVar("OutputT")


@dataclass
class StageResult(Generic[OutputT]):
    """Validated stage output plus execution metadata."""

    output: OutputT
    metadata: StageMetadata
