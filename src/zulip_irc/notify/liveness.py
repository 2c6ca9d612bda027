"""Periodic liveness ping to an external monitor (healthchecks.io style)."""

from __future__ import annotations

import asyncio
import contextlib

import httpx
from loguru import logger


class LivenessReporter:
    """Pings url every interval seconds. Failures are logged; the monitor notices missed pings."""

    def __init__(
        self,
        url: str,
        *,
        interval: float = 120.0,
        method: str = "GET",
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._interval = interval
        self._method = method
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._task: asyncio.Task | None = None

    async def ping(self) -> bool:
        """One ping. True on 2xx."""
        try:
            resp = await self._http.request(self._method, self._url)
        except httpx.HTTPError as exc:
            logger.warning("Liveness ping failed: {}", exc)
            return False
        if not resp.is_success:
            logger.warning("Liveness ping got HTTP {}", resp.status_code)
            return False
        logger.debug("Liveness ping ok")
        return True

    async def _run(self) -> None:
        while True:
            await self.ping()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())
        logger.info("Liveness reporter started: {} every {}s", self._method, self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._http.aclose()
