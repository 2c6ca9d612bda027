"""Zulip REST client: subscriptions, event queue, message posting."""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zulip_irc.core.constants import EVENT_TYPES
from zulip_irc.core.errors import HubAPIError, HubTransportError

# Startup lookups only; the event loop has its own backoff policy.
STARTUP_RETRY = retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(HubTransportError),
    reraise=True,
)


class ZulipClient:
    """Async client for the Zulip v1 API. Authenticates with bot email + API key."""

    def __init__(
        self,
        site: str,
        email: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        poll_timeout: float = 90.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._poll_timeout = poll_timeout
        self._http = http or httpx.AsyncClient(
            base_url=f"{site.rstrip('/')}/api/v1",
            auth=(email, api_key),
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Network errors, timeouts and bodies that are not a JSON object raise
        HubTransportError. The HTTP status is not checked here: Zulip reports
        errors in the body as result=error with a code.
        """
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise HubTransportError(f"Zulip {path} timed out", code="timeout", original_error=exc) from exc
        except httpx.HTTPError as exc:
            raise HubTransportError(f"Zulip {path} failed: {exc}", code="transport", original_error=exc) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise HubTransportError(
                f"Zulip {path} returned non-JSON (HTTP {resp.status_code})",
                code="bad_json",
                details={"status": resp.status_code, "body": resp.text[:200]},
                original_error=exc,
            ) from exc
        if not isinstance(data, dict):
            raise HubTransportError(
                f"Zulip {path} returned unexpected JSON",
                code="bad_json",
                details={"status": resp.status_code},
            )
        return data

    @STARTUP_RETRY
    async def get_subscriptions(self) -> list[dict[str, Any]]:
        """Streams the bot is subscribed to."""
        data = await self._request("GET", "/users/me/subscriptions")
        if data.get("result") != "success":
            raise HubAPIError("Failed to list subscriptions", code=str(data.get("code")), details=data)
        subs = data.get("subscriptions")
        return subs if isinstance(subs, list) else []

    async def register(self, event_types: tuple[str, ...] = EVENT_TYPES) -> str:
        """Register an event queue; returns its queue_id."""
        data = await self._request(
            "POST",
            "/register",
            # content as raw Markdown, not rendered HTML
            data={"event_types": json.dumps(list(event_types)), "apply_markdown": "false"},
        )
        if data.get("result") != "success" or not data.get("queue_id"):
            raise HubAPIError("Failed to register event queue", code=str(data.get("code")), details=data)
        logger.debug("Zulip register response: last_event_id={}", data.get("last_event_id"))
        return str(data["queue_id"])

    async def get_events(self, queue_id: str, last_event_id: int) -> dict[str, Any]:
        """Long-poll for events after last_event_id. Returns the raw response body."""
        return await self._request(
            "GET",
            "/events",
            params={"queue_id": queue_id, "last_event_id": str(last_event_id)},
            timeout=self._poll_timeout,
        )

    async def post_message(self, stream: str, topic: str, content: str) -> dict[str, Any]:
        """Send a stream message. Returns the raw response body."""
        return await self._request(
            "POST",
            "/messages",
            data={"type": "stream", "to": stream, "topic": topic, "content": content},
        )
