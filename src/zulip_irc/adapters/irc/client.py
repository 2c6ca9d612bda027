"""pydle IRC client that publishes transport events on the bus."""

from __future__ import annotations

import asyncio
import random

import pydle
from loguru import logger

from zulip_irc.events import (
    channel_message,
    connected,
    direct_message,
    disconnected,
    protocol_error,
    protocol_notice,
)
from zulip_irc.gateway.bus import Bus
from zulip_irc.identity import BridgeIdentity

# Backoff: min 2s, max 300s, jitter; the bridge never gives up on IRC
_BACKOFF_MIN = 2
_BACKOFF_MAX = 300


def _backoff_delay(attempt: int) -> float:
    delay = min(_BACKOFF_MAX, _BACKOFF_MIN * (2 ** max(attempt - 1, 0)))
    return delay * random.uniform(0.5, 1.5)


async def _connect_with_backoff(
    client: pydle.Client,
    hostname: str,
    port: int,
    tls: bool,
    tls_verify: bool = True,
) -> None:
    """Connect with exponential backoff and jitter on failure; reconnect on disconnect. Runs until cancelled."""
    attempt = 0
    while True:
        try:
            await client.connect(
                hostname=hostname,
                port=port,
                tls=tls,
                tls_verify=tls_verify,
            )
            # pydle.connect() returns once handle_forever is spawned.
            # Wait for the actual disconnect before reconnecting.
            while client.connected:
                await asyncio.sleep(0.5)
            attempt = 0
            wait = _backoff_delay(1)
            logger.info("IRC disconnected, reconnecting in {:.1f}s", wait)
            await asyncio.sleep(wait)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            attempt += 1
            wait = _backoff_delay(attempt)
            logger.warning(
                "IRC connect failed (attempt {}): {}, retrying in {:.1f}s",
                attempt,
                exc,
                wait,
            )
            await asyncio.sleep(wait)


class IRCClient(pydle.Client):
    """Bridge connection. Joins every mapped channel on connect and reports what it sees."""

    def __init__(
        self,
        bus: Bus,
        identity: BridgeIdentity,
        server: str,
        channels: list[str],
        **kwargs,
    ):
        nick = identity.irc_nick
        kwargs.setdefault("fallback_nicknames", [f"{nick}_", f"{nick}__"])
        super().__init__(nick, **kwargs)
        self._bus = bus
        self._identity = identity
        self._server = server
        self._channels = channels

    async def on_connect(self):
        """After registration, record our nick and join channels."""
        await super().on_connect()
        self._identity.set_irc_nick(self.nickname)
        logger.info("IRC connected to {} as {}", self._server, self.nickname)
        for channel in self._channels:
            await self.join(channel)
        _, evt = connected(self._server, self.nickname)
        self._bus.publish("irc", evt)

    async def on_disconnect(self, expected: bool) -> None:
        await super().on_disconnect(expected)
        _, evt = disconnected(self._server, expected=expected)
        self._bus.publish("irc", evt)

    async def on_nick_change(self, old: str, new: str) -> None:
        """Keep the shared identity current when our own nick changes."""
        await super().on_nick_change(old, new)
        if self._identity.is_self_irc(old):
            self._identity.set_irc_nick(self.nickname)

    async def on_channel_message(self, target, by, message):
        """Channel PRIVMSG from someone other than us."""
        await super().on_channel_message(target, by, message)
        if self._identity.is_self_irc(by):
            return
        logger.info("[PRIVMSG] <irc> {}@{}: {}", by, target, message)
        _, evt = channel_message(target, by, message)
        self._bus.publish("irc", evt)

    async def on_private_message(self, target, by, message):
        """PRIVMSG addressed to us."""
        await super().on_private_message(target, by, message)
        if self._identity.is_self_irc(by):
            return
        logger.info("[PRIVMSG] <irc> {}: {}", by, message)
        _, evt = direct_message(by, message)
        self._bus.publish("irc", evt)

    async def on_notice(self, target, by, message):
        await super().on_notice(target, by, message)
        _, evt = protocol_notice(by or self._server, target, message)
        self._bus.publish("irc", evt)

    async def on_invite(self, channel, by):
        """Invites are logged only; joins are an admin decision."""
        await super().on_invite(channel, by)
        logger.info("[INVITE] {} invited us to {}", by, channel)

    async def on_raw_error(self, message):
        """Server ERROR line (usually right before it closes the link)."""
        text = " ".join(str(p) for p in getattr(message, "params", []))
        _, evt = protocol_error("ERROR", text)
        self._bus.publish("irc", evt)
        await super().on_raw_error(message)

    async def on_raw_465(self, message) -> None:
        """ERR_YOUREBANNEDCREEP."""
        self._publish_numeric_error("465", message)

    async def on_raw_904(self, message) -> None:
        """ERR_SASLFAIL: wrong credentials; the bridge keeps running unauthenticated."""
        self._publish_numeric_error("904", message)
        await super().on_raw_904(message)

    def _publish_numeric_error(self, command: str, message) -> None:
        params = [str(p) for p in getattr(message, "params", [])]
        _, evt = protocol_error(command, " ".join(params[1:]) or command, raw={"params": params})
        self._bus.publish("irc", evt)
