"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from matchmaker.services.registry import MatchmakerServices
from matchmaker.services.session_store import SessionStore


@lru_cache(maxsize=1)
def get_services() -> MatchmakerServices:
    """Process-wide client registry.

    Clients inside are built lazily on first use and then reused.
    """
    return MatchmakerServices()


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Process-wide session registry.

    Sessions live for the process lifetime, so the store is created once.
    """
    return SessionStore(get_services())


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
