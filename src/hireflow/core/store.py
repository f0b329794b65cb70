from __future__ import annotations

import asyncio
from collections import OrderedDict

from hireflow.core.session import ApplicationSession

MAX_RETIRED = 10_000


class SessionStore:
    """Live sessions by id and approval token.

    Sessions leave the store when they are released; their final status stays
    in a bounded ledger so a reused token or id can be answered precisely.
    """

    def __init__(self, max_retired: int = MAX_RETIRED) -> None:
        self._sessions: dict[str, ApplicationSession] = {}
        self._tokens: dict[str, str] = {}
        self._retired_tokens: OrderedDict[str, str] = OrderedDict()
        self._retired_ids: OrderedDict[str, str] = OrderedDict()
        self._max_retired = max_retired
        self._lock = asyncio.Lock()

    async def add(self, session: ApplicationSession) -> None:
        async with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"session {session.id} already registered")
            self._sessions[session.id] = session
            self._tokens[session.approval_token] = session.id

    async def get(self, session_id: str) -> ApplicationSession | None:
        async with self._lock:
            return self._sessions.get(session_id)

    async def get_by_token(self, token: str) -> ApplicationSession | None:
        async with self._lock:
            session_id = self._tokens.get(token)
            return self._sessions.get(session_id) if session_id else None

    async def retire(self, session: ApplicationSession) -> bool:
        async with self._lock:
            if self._sessions.pop(session.id, None) is None:
                return False
            self._tokens.pop(session.approval_token, None)
            self._remember(self._retired_tokens, session.approval_token, session.status)
            self._remember(self._retired_ids, session.id, session.status)
            return True

    async def retired_status(self, token: str) -> str | None:
        async with self._lock:
            return self._retired_tokens.get(token)

    async def retired_status_for(self, session_id: str) -> str | None:
        async with self._lock:
            return self._retired_ids.get(session_id)

    async def list_sessions(self) -> list[ApplicationSession]:
        async with self._lock:
            return list(self._sessions.values())

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    def _remember(self, ledger: OrderedDict[str, str], key: str, status: str) -> None:
        ledger[key] = status
        ledger.move_to_end(key)
        while len(ledger) > self._max_retired:
            ledger.popitem(last=False)
