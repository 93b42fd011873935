"""
Global exception handlers for FastAPI.

Every error leaves the API as ``{"error": {"type", "message"}}`` where the
message is a single sentence meant for the end user.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import structlog

from matchmaker.core.exceptions import (
    ConfigurationError,
    IllegalActionError,
    InvalidRequestError,
    MatchmakerError,
    MissingInputError,
    StageError,
    StageOutputError,
    UnsupportedActionError,
)

log = structlog.get_logger(__name__)


def _error_response(status_code: int, error_type: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"type": error_type, "message": message}},
    )


def status_for(exc: MatchmakerError) -> int:
    """Map an application error to its HTTP status code."""
    if isinstance(exc, (UnsupportedActionError, MissingInputError, InvalidRequestError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, IllegalActionError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ConfigurationError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, StageError):
        if exc.timed_out:
            return status.HTTP_504_GATEWAY_TIMEOUT
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI):
    """Register custom exception handlers with the FastAPI application."""

    @app.exception_handler(MatchmakerError)
    async def matchmaker_error_handler(
        request: Request,
        exc: MatchmakerError,
    ) -> JSONResponse:
        status_code = status_for(exc)
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            status_code=status_code,
        )

        if isinstance(exc, StageOutputError):
            log_ctx.error(
                "stage_output_rejected",
                stage=exc.stage,
                expected=exc.expected,
                reason=exc.reason,
                raw_output=exc.raw_output[:2000],
            )
        elif isinstance(exc, StageError):
            log_ctx.error("stage_error", stage=exc.stage, message=exc.message)
        elif isinstance(exc, ConfigurationError):
            log_ctx.error("configuration_error", message=exc.message)
        else:
            log_ctx.warning("request_error", message=exc.message)

        return _error_response(status_code, type(exc).__name__, exc.message)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle all unhandled exceptions with HTTP 500 status."""
        log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=exc,
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "InternalServerError",
            str(exc) or "Unexpected error.",
        )
