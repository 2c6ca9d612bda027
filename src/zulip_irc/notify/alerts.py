"""Admin alerts: external sink (ntfy) plus private messages to IRC admins."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from loguru import logger

if TYPE_CHECKING:
    from zulip_irc.adapters.irc.throttle import WindowThrottle


class AlertSink(Protocol):
    """Fire-and-forget destination for (category, text) or (category, structured data)."""

    async def notify(self, category: str, text: str) -> None: ...

    async def notify_json(self, category: str, data: Any) -> None: ...


class LogSink:
    """Sink used when no alert endpoint is configured."""

    async def notify(self, category: str, text: str) -> None:
        logger.warning("[alert:{}] {}", category, text)

    async def notify_json(self, category: str, data: Any) -> None:
        logger.warning("[alert:{}] {}", category, json.dumps(data, default=str))


class NtfySink:
    """Publishes alerts to an ntfy topic URL. Delivery failures are logged, not retried."""

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._http = http or httpx.AsyncClient(timeout=timeout)

    def _headers(self, category: str) -> dict[str, str]:
        h = {"Title": f"zulip-irc-bridge: {category}", "Tags": category}
        if self._token:
            h["Authorization"] = f"Bearer {self._token}"
        return h

    async def _post(self, category: str, body: str) -> None:
        try:
            resp = await self._http.post(self._url, content=body.encode("utf-8"), headers=self._headers(category))
        except httpx.HTTPError as exc:
            logger.warning("Alert delivery failed ({}): {}", category, exc)
            return
        if resp.is_error:
            logger.warning("Alert delivery rejected ({}): HTTP {}", category, resp.status_code)

    async def notify(self, category: str, text: str) -> None:
        await self._post(category, text)

    async def notify_json(self, category: str, data: Any) -> None:
        await self._post(category, json.dumps(data, indent=2, default=str))

    async def aclose(self) -> None:
        await self._http.aclose()


class AdminAlerter:
    """Sends each alert to the sink and, best-effort, to every IRC admin."""

    def __init__(self, sink: AlertSink, throttle: WindowThrottle | None, admins: list[str]) -> None:
        self._sink = sink
        self._throttle = throttle
        self._admins = list(admins)

    @property
    def sink(self) -> AlertSink:
        return self._sink

    async def _tell_admins(self, text: str) -> None:
        if not self._throttle:
            return
        for admin in self._admins:
            await self._throttle.send(admin, text)

    async def alert(self, category: str, text: str) -> None:
        logger.error("[{}] {}", category, text)
        await self._sink.notify(category, text)
        await self._tell_admins(f"[{category}] {text}")

    async def alert_json(self, category: str, summary: str, data: Any) -> None:
        """Alert with a short summary line and the structured payload."""
        logger.error("[{}] {}: {}", category, summary, data)
        await self._sink.notify_json(category, {"summary": summary, "data": data})
        await self._tell_admins(f"[{category}] {summary}")
        await self._tell_admins(json.dumps(data, default=str)[:400])
