"""
Health check endpoints.

Report which external providers are configured. Nothing is called; a
missing credential only surfaces as 503 on /health/ready.
"""

from typing import Dict, List

from fastapi import APIRouter, HTTPException
import structlog

from matchmaker import __version__
from matchmaker.core.config import settings
from matchmaker.llm.client import DEFAULT_PROVIDER

log = structlog.get_logger(__name__)

router = APIRouter()

_PROVIDER_KEYS = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
}


def provider_status() -> Dict[str, Dict[str, object]]:
    """Configured provider per external concern."""
    llm_provider = settings.llm_provider or DEFAULT_PROVIDER
    key_attr = _PROVIDER_KEYS.get(llm_provider, (None, None))[0]
    return {
        "llm": {
            "provider": llm_provider,
            "configured": bool(key_attr and getattr(settings, key_attr, None)),
        },
        "embedding": {
            "provider": settings.embedding_backend,
            "model": settings.embedding_model,
            "configured": settings.embedding_backend != "openai"
            or bool(settings.openai_api_key),
        },
        "search": {
            "provider": "milvus",
            "collection": settings.milvus_collection,
            "configured": bool(settings.milvus_uri and settings.milvus_collection),
        },
        "transcription": {
            "provider": "openai",
            "model": settings.transcription_model,
            "configured": bool(settings.openai_api_key),
        },
    }


def missing_configuration() -> List[str]:
    """Human-readable list of missing settings, empty when fully configured."""
    problems = []
    llm_provider = settings.llm_provider or DEFAULT_PROVIDER
    if llm_provider not in _PROVIDER_KEYS:
        problems.append(f"Unknown LLM provider '{llm_provider}'.")
    else:
        attr_name, env_var = _PROVIDER_KEYS[llm_provider]
        if not getattr(settings, attr_name, None):
            problems.append(f"{env_var} is required for the {llm_provider} provider.")
    if settings.embedding_backend == "openai" and not settings.openai_api_key:
        problems.append("OPENAI_API_KEY is required for OpenAI embeddings.")
    if not settings.milvus_uri:
        problems.append("MILVUS_URI is required for matching.")
    if not settings.milvus_collection:
        problems.append("MILVUS_COLLECTION is required for matching.")
    return problems


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Overall status plus per-provider configuration.
    """
    problems = missing_configuration()
    return {
        "status": "healthy" if not problems else "degraded",
        "version": __version__,
        "debug": settings.debug,
        "components": provider_status(),
        "problems": problems,
    }


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 while the process runs."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness():
    """
    Readiness probe.

    Returns 200 once every external provider is configured.
    """
    problems = missing_configuration()
    if problems:
        log.warning("not_ready", problems=problems)
        raise HTTPException(status_code=503, detail=" ".join(problems))
    return {"status": "ready"}
