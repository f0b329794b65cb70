from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


async def _cancel_and_wait(task: asyncio.Task[None] | None) -> None:
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    await asyncio.wait({task})


class ApprovalTimer:
    """Fires ``on_fire`` once after ``delay_sec`` unless stopped first."""

    def __init__(self, delay_sec: float, on_fire: Callback, *, name: str = "approval-timer"):
        self.delay_sec = delay_sec
        self.name = name
        self.fired = False
        self._on_fire = on_fire
        self._stopped = False
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        if self._task is not None or self._stopped:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay_sec)
        if self._stopped:
            return
        self.fired = True
        try:
            await self._on_fire()
        except Exception:
            logger.exception("Approval timer callback failed timer=%s", self.name)

    async def stop(self) -> None:
        """Cancel the countdown and wait for it to unwind. Safe to call repeatedly."""
        self._stopped = True
        await _cancel_and_wait(self._task)


class LoginPoller:
    """Bounded background loop waiting for a manual login to complete.

    Every tick sleeps first, then asks ``is_waiting`` whether the session still
    expects a login and ``probe`` whether it has happened.
    """

    def __init__(
        self,
        *,
        interval_sec: float,
        max_attempts: int,
        probe: Callable[[], Awaitable[bool]],
        is_waiting: Callable[[], bool],
        on_authenticated: Callback,
        on_exhausted: Callback,
        name: str = "login-poller",
    ):
        self.interval_sec = interval_sec
        self.max_attempts = max_attempts
        self.name = name
        self.attempts = 0
        self.satisfied = False
        self._probe = probe
        self._is_waiting = is_waiting
        self._on_authenticated = on_authenticated
        self._on_exhausted = on_exhausted
        self._stopped = False
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        if self._task is not None or self._stopped or self.satisfied:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)

    def mark_satisfied(self) -> None:
        self.satisfied = True

    async def _run(self) -> None:
        try:
            while self.attempts < self.max_attempts:
                await asyncio.sleep(self.interval_sec)
                if self._stopped or self.satisfied or not self._is_waiting():
                    return
                self.attempts += 1
                try:
                    authenticated = await self._probe()
                except Exception as exc:
                    logger.warning("Login probe failed poller=%s attempt=%s: %s", self.name, self.attempts, exc)
                    authenticated = False
                if authenticated:
                    self.satisfied = True
                    logger.info("Login detected poller=%s attempt=%s", self.name, self.attempts)
                    await self._on_authenticated()
                    return

            if not self._stopped and not self.satisfied and self._is_waiting():
                logger.info("Login poller exhausted poller=%s attempts=%s", self.name, self.attempts)
                await self._on_exhausted()
        except Exception:
            logger.exception("Login poller failed poller=%s", self.name)

    async def stop(self) -> None:
        self._stopped = True
        await _cancel_and_wait(self._task)
