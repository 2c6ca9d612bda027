"""Outbound relay: IRC channel lines -> Zulip stream messages."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Protocol

from loguru import logger

from zulip_irc.core import constants
from zulip_irc.core.errors import HubError
from zulip_irc.events import ChannelMessage
from zulip_irc.formatting.irc_to_zulip import format_zulip_content, parse_topic_line
from zulip_irc.gateway.spaces import SpaceMapper
from zulip_irc.identity import BridgeIdentity


class MessagePoster(Protocol):
    async def post_message(self, stream: str, topic: str, content: str) -> dict[str, Any]: ...


class OutboundRelay:
    """Bus target for ChannelMessage. Posts are made one at a time so Zulip sees IRC order."""

    def __init__(
        self,
        poster: MessagePoster,
        spaces: SpaceMapper,
        identity: BridgeIdentity,
        *,
        default_topic: str = constants.DEFAULT_TOPIC,
    ) -> None:
        self._poster = poster
        self._spaces = spaces
        self._identity = identity
        self._default_topic = default_topic
        self._queue: asyncio.Queue[ChannelMessage] = asyncio.Queue()
        self._consumer_task: asyncio.Task | None = None

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, ChannelMessage)

    def push_event(self, source: str, evt: object) -> None:
        if not isinstance(evt, ChannelMessage):
            return
        if self._identity.is_self_irc(evt.nick):
            return
        self._queue.put_nowait(evt)

    def start(self) -> None:
        self._consumer_task = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        if self._consumer_task:
            self._consumer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer_task
            self._consumer_task = None

    async def _consume(self) -> None:
        while True:
            evt = await self._queue.get()
            try:
                await self.relay(evt)
            except Exception as exc:
                logger.exception("Relaying IRC line from {} failed: {}", evt.nick, exc)
            finally:
                self._queue.task_done()

    async def relay(self, evt: ChannelMessage) -> bool:
        """Post one IRC line to Zulip. True if Zulip accepted it; failures are not retried."""
        mapping = self._spaces.resolve_stream(evt.channel)
        if mapping is None:
            logger.info("No stream mapped for {}; dropping line from {}", evt.channel, evt.nick)
            return False

        parsed = parse_topic_line(evt.text, self._default_topic)
        content = format_zulip_content(evt.nick, parsed.body)
        try:
            resp = await self._poster.post_message(mapping.stream_name, parsed.topic, content)
        except HubError as exc:
            logger.warning("Posting to Zulip stream {} failed: {}", mapping.stream_name, exc)
            return False
        if resp.get("result") != "success":
            logger.warning("Zulip rejected message to {} / {}: {}", mapping.stream_name, parsed.topic, resp)
            return False
        logger.debug("Posted to Zulip {} / {} (id {})", mapping.stream_name, parsed.topic, resp.get("id"))
        return True
