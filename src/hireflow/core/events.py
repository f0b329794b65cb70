from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

ALL_SESSIONS = "*"


class EventBus:
    """Per-session status events; subscribers to ``ALL_SESSIONS`` see every session."""

    def __init__(self) -> None:
        self._queues: dict[str, list[asyncio.Queue[dict[str, Any]]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def publish(self, session_id: str, event: dict[str, Any]) -> None:
        async with self._lock:
            targets = list(self._queues.get(session_id, [])) + list(self._queues.get(ALL_SESSIONS, []))
            for queue in targets:
                await queue.put(event)

    async def subscribe(self, session_id: str = ALL_SESSIONS) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        async with self._lock:
            self._queues[session_id].append(queue)

        try:
            while True:
                yield await queue.get()
        finally:
            async with self._lock:
                if queue in self._queues.get(session_id, []):
                    self._queues[session_id].remove(queue)
