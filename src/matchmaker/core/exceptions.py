"""
Custom exception hierarchy for the matchmaker.

All application exceptions inherit from MatchmakerError. Every message is a
single human-readable sentence because it is surfaced to the end user.
"""

from typing import Optional


class MatchmakerError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(MatchmakerError):
    """Required external credential or service is not configured."""

    pass


# =============================================================================
# Request Errors
# =============================================================================


class UnsupportedActionError(MatchmakerError):
    """Action name is not one the adapter knows."""

    pass


class IllegalActionError(MatchmakerError):
    """Action not valid for the current phase, or a precondition is missing."""

    def __init__(self, message: str, action: Optional[str] = None, phase: Optional[str] = None):
        super().__init__(message)
        self.action = action
        self.phase = phase


class MissingInputError(MatchmakerError):
    """Required user input (message, audio or feedback) is empty."""

    pass


class InvalidRequestError(MatchmakerError):
    """Request body could not be decoded into an action."""

    pass


# =============================================================================
# LLM Errors (raised by text-generation clients)
# =============================================================================


class LLMError(MatchmakerError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class StageError(MatchmakerError):
    """An external call made on behalf of a pipeline stage failed.

    Covers generation stages as well as embedding, similarity search and
    transcription calls. Timeouts land here too.
    """

    def __init__(self, stage: str, message: str, timed_out: bool = False):
        super().__init__(message)
        self.stage = stage
        self.timed_out = timed_out


class StageOutputError(StageError):
    """A generation stage returned output that failed structural validation."""

    def __init__(self, stage: str, expected: str, raw_output: str, reason: str = ""):
        super().__init__(
            stage,
            f"The {stage} step returned a reply that did not match the expected format.",
        )
        self.expected = expected
        self.raw_output = raw_output
        self.reason = reason
