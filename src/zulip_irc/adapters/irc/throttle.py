"""IRC flood control: at most N messages per W-second window."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from loguru import logger

from zulip_irc.core import constants


class MessageSender(Protocol):
    """Anything that can put a PRIVMSG on the wire."""

    async def message(self, target: str, text: str) -> None: ...


class WindowThrottle:
    """Rate-limits outbound IRC messages.

    All callers (inbound relay, command replies, admin alerts) share one
    window. The lock is FIFO, so messages leave in the order send() was called;
    the caller holding it waits in a poll loop until the window has room.
    """

    def __init__(
        self,
        sender: MessageSender,
        limit: int = constants.THROTTLE_LIMIT,
        window: float = constants.THROTTLE_WINDOW,
        *,
        poll_interval: float = constants.THROTTLE_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sender = sender
        self._limit = limit
        self._window = window
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.sent_in_window = 0
        self.window_start = clock()

    def _roll_window(self) -> None:
        now = self._clock()
        if now - self.window_start >= self._window:
            self.sent_in_window = 0
            self.window_start = now

    async def _admit(self) -> None:
        """Wait for a slot in the current window and take it. Caller holds the lock."""
        while True:
            self._roll_window()
            if self.sent_in_window < self._limit:
                self.sent_in_window += 1
                return
            await self._sleep(self._poll_interval)

    async def _deliver(self, target: str, text: str) -> bool:
        await self._admit()
        try:
            await self._sender.message(target, text)
        except Exception as exc:
            logger.warning("IRC send to {} failed: {}", target, exc)
            return False
        return True

    async def send(self, target: str, text: str) -> bool:
        """Send one line to target once the window allows. False if the transport refused it."""
        async with self._lock:
            return await self._deliver(target, text)

    async def send_lines(self, target: str, lines: list[str]) -> int:
        """Send lines in order without other callers' lines in between.

        Returns how many were delivered.
        """
        delivered = 0
        async with self._lock:
            for line in lines:
                if await self._deliver(target, line):
                    delivered += 1
        return delivered
