"""
FastAPI application entry point.

Run with: uvicorn matchmaker.main:app --reload
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from matchmaker import __version__
from matchmaker.core.config import matchmaker_config, settings
from matchmaker.core.logging import configure_logging, get_logger, bind_context, clear_context
from matchmaker.llm.client import DEFAULT_PROVIDER
from matchmaker.api.routes import generate, health
from matchmaker.api.exception_handlers import setup_exception_handlers

# Configure logging before anything else
configure_logging(log_dir=settings.log_dir)
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a correlation ID to each request.

    Reuses an incoming X-Request-ID header when present, binds it to the
    structlog context for every log line of the request, and echoes it in
    the response headers.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Missing credentials are logged, not fatal: the interview can run
    without a search index and /health/ready reports what is absent.
    """
    log.info(
        "application_starting",
        debug=settings.debug,
        llm_provider=settings.llm_provider or DEFAULT_PROVIDER,
        embedding_backend=settings.embedding_backend,
        soft_cap_turns=matchmaker_config.session.soft_cap_turns,
    )

    problems = health.missing_configuration()
    if problems:
        log.warning("configuration_incomplete", problems=problems)

    log.info("application_started")

    yield

    log.info("application_shutting_down")


app = FastAPI(
    title="Matchmaker",
    description="Conversational matchmaking: interview, summarize, match, reflect",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["system"])
app.include_router(generate.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Matchmaker", "version": __version__, "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "matchmaker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
