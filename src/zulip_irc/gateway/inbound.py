"""Inbound relay: Zulip event queue -> IRC channels."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from loguru import logger

from zulip_irc.core import constants
from zulip_irc.core.errors import HubAPIError, HubError
from zulip_irc.formatting.zulip_to_irc import render_stream_message
from zulip_irc.gateway.cursor import EventCursor
from zulip_irc.gateway.spaces import SpaceMapper
from zulip_irc.identity import BridgeIdentity

if TYPE_CHECKING:
    from zulip_irc.adapters.irc.throttle import WindowThrottle
    from zulip_irc.notify.alerts import AdminAlerter


@dataclass
class HeartbeatState:
    """When Zulip last sent a heartbeat event. Written by the inbound relay only."""

    last_seen: datetime | None = None

    def mark(self, when: datetime | None = None) -> None:
        self.last_seen = when or datetime.now(timezone.utc)


class InboundRelay:
    """Polls the Zulip event queue and relays stream messages to IRC.

    Consecutive poll failures back off for poll_backoff seconds and alert
    admins each time, up to failure_threshold; from then on it cools down for
    failure_cooldown seconds with one aggregated alert for the whole run.
    """

    def __init__(
        self,
        cursor: EventCursor,
        spaces: SpaceMapper,
        throttle: WindowThrottle,
        identity: BridgeIdentity,
        heartbeat: HeartbeatState,
        alerter: AdminAlerter,
        *,
        poll_backoff: float = constants.POLL_BACKOFF,
        failure_cooldown: float = constants.FAILURE_COOLDOWN,
        failure_threshold: int = constants.FAILURE_THRESHOLD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cursor = cursor
        self._spaces = spaces
        self._throttle = throttle
        self._identity = identity
        self._heartbeat = heartbeat
        self._alerter = alerter
        self._poll_backoff = poll_backoff
        self._failure_cooldown = failure_cooldown
        self._failure_threshold = failure_threshold
        self._sleep = sleep
        self._running = False
        self.consecutive_failures = 0

    async def run(self) -> None:
        """Poll until stop() is called or the task is cancelled."""
        self._running = True
        logger.info("Starting Zulip event loop")
        while self._running:
            await self.run_once()

    def stop(self) -> None:
        self._running = False

    async def run_once(self) -> int:
        """One poll cycle. Returns the number of events consumed."""
        try:
            events = await self._cursor.poll()
        except HubError as exc:
            await self._on_failure(exc)
            return 0

        if self.consecutive_failures >= self._failure_threshold:
            await self._alerter.alert(
                "zulip",
                f"Zulip event polling recovered after {self.consecutive_failures} consecutive failures",
            )
        elif self.consecutive_failures:
            logger.info("Zulip event polling recovered after {} failure(s)", self.consecutive_failures)
        self.consecutive_failures = 0

        for evt in events:
            try:
                await self.handle_event(evt)
            except Exception as exc:
                logger.exception("Failed to relay Zulip event {}: {}", evt.get("id"), exc)
            event_id = evt.get("id")
            if isinstance(event_id, int):
                self._cursor.advance(event_id)
        if events:
            self._cursor.checkpoint()
        return len(events)

    async def _on_failure(self, exc: HubError) -> None:
        self.consecutive_failures += 1
        n = self.consecutive_failures
        logger.warning("Zulip event poll failed ({} in a row): {}", n, exc)

        if n < self._failure_threshold:
            if isinstance(exc, HubAPIError):
                await self._alerter.alert_json("zulip", f"Error fetching events from Zulip: {exc}", exc.response)
            else:
                await self._alerter.alert("zulip", f"Error fetching events from Zulip: {exc}")
            await self._sleep(self._poll_backoff)
            return

        if n == self._failure_threshold:
            await self._alerter.alert(
                "zulip",
                f"{n} consecutive failures fetching Zulip events (last: {exc}); "
                f"retrying every {self._failure_cooldown:.0f}s, further failures are not reported",
            )
        await self._sleep(self._failure_cooldown)

    async def handle_event(self, evt: dict[str, Any]) -> None:
        """Act on one Zulip event. Cursor advancement is the caller's job."""
        event_type = evt.get("type")
        if event_type == "heartbeat":
            self._heartbeat.mark()
            logger.debug("Zulip heartbeat (event {})", evt.get("id"))
            return
        if event_type != "message":
            logger.debug("Ignoring Zulip event type {}", event_type)
            return

        message = evt.get("message") or {}
        if self._identity.is_self_zulip(message.get("sender_email")):
            return
        if message.get("type") != "stream":
            logger.info(
                "Dropping non-stream Zulip message from {}: {}",
                message.get("sender_email"),
                message.get("content"),
            )
            return
        await self._relay_stream_message(message)

    async def _relay_stream_message(self, message: dict[str, Any]) -> None:
        sender = message.get("sender_full_name") or message.get("sender_email") or "unknown"
        topic = message.get("subject") or message.get("topic") or ""
        content = message.get("content") or ""
        stream = message.get("display_recipient")
        logger.info("[MESSAGE] <zulip> {}({})@{}: {}", sender, topic, stream, content)

        mapping = self._spaces.resolve_channel(message.get("stream_id"))
        if mapping is None:
            logger.info("No channel mapped for stream {} ({}); dropping message", stream, message.get("stream_id"))
            return

        lines = render_stream_message(sender, topic, content)
        delivered = await self._throttle.send_lines(mapping.channel, lines)
        if delivered < len(lines):
            logger.warning("Relayed {}/{} lines to {}", delivered, len(lines), mapping.channel)
