"""
Process-wide session registry.

Maps session id to its state machine. Sessions are created on first
reference and live for the process lifetime. Each session has its own
asyncio.Lock; there is no lock around actions on different sessions.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional
from uuid import uuid4

import structlog

from matchmaker.core.config import MatchmakerConfig
from matchmaker.domain.models.session import Session
from matchmaker.services.registry import MatchmakerServices
from matchmaker.services.session_machine import SessionStateMachine

log = structlog.get_logger(__name__)


class SessionStore:
    """In-memory id -> SessionStateMachine registry with per-session locks."""

    def __init__(
        self,
        services: MatchmakerServices,
        config: Optional[MatchmakerConfig] = None,
    ):
        self.services = services
        self.config = config or services.config
        self._machines: Dict[str, SessionStateMachine] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # Guards only the two dicts above, never held across an action
        self._registry_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._machines

    async def get_or_create(self, session_id: Optional[str] = None) -> SessionStateMachine:
        """
        Fetch the session's machine, creating it on first reference.

        New sessions get a uuid4 id when none is supplied and start with
        the configured default filters. Request filters are merged later by
        the state machine, once the action has been validated.
        """
        session_id = session_id or str(uuid4())
        async with self._registry_lock:
            machine = self._machines.get(session_id)
            if machine is None:
                session = Session(id=session_id, filters=dict(self.config.default_filters))
                machine = SessionStateMachine(session, self.services, self.config)
                self._machines[session_id] = machine
                self._locks[session_id] = asyncio.Lock()
                log.info("session_created", session_id=session_id)
        return machine

    async def _lock_for(self, session_id: str) -> asyncio.Lock:
        async with self._registry_lock:
            return self._locks.setdefault(session_id, asyncio.Lock())

    @asynccontextmanager
    async def acquire(
        self, session_id: Optional[str] = None
    ) -> AsyncIterator[SessionStateMachine]:
        """
        Fetch-or-create the session and hold its lock for one action.

        Usage:
            async with store.acquire(session_id) as machine:
                snapshot = await machine.handle(command)
        """
        machine = await self.get_or_create(session_id)
        lock = await self._lock_for(machine.session.id)
        async with lock:
            yield machine
