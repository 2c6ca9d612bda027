"""IRC adapter: owns the pydle connection and exposes send/join/part to the relay."""

from __future__ import annotations

import asyncio
import contextlib

from loguru import logger

from zulip_irc.adapters.base import AdapterBase
from zulip_irc.adapters.irc.client import IRCClient, _connect_with_backoff
from zulip_irc.core.errors import TransportUnavailable
from zulip_irc.gateway.bus import Bus
from zulip_irc.identity import BridgeIdentity


class IRCAdapter(AdapterBase):
    """IRC side of the bridge. Channel list comes from the space mapping."""

    def __init__(
        self,
        bus: Bus,
        identity: BridgeIdentity,
        *,
        server: str,
        port: int,
        channels: list[str],
        tls: bool = True,
        tls_verify: bool = True,
        sasl_username: str | None = None,
        sasl_password: str | None = None,
    ):
        self._bus = bus
        self._identity = identity
        self._server = server
        self._port = port
        self._channels = channels
        self._tls = tls
        self._tls_verify = tls_verify
        self._sasl_username = sasl_username
        self._sasl_password = sasl_password
        self._client: IRCClient | None = None
        self._task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return "irc"

    @property
    def connected(self) -> bool:
        return bool(self._client and self._client.connected)

    def _require_client(self) -> IRCClient:
        if not self._client or not self._client.connected:
            raise TransportUnavailable("IRC not connected", code="not_connected")
        return self._client

    async def message(self, target: str, text: str) -> None:
        """PRIVMSG target. Raises TransportUnavailable while disconnected."""
        await self._require_client().message(target, text)

    async def join(self, channel: str) -> None:
        await self._require_client().join(channel)
        logger.info("IRC: joined {}", channel)

    async def part(self, channel: str) -> None:
        await self._require_client().part(channel)
        logger.info("IRC: left {}", channel)

    async def start(self) -> None:
        """Create the client and start the connect/reconnect loop."""
        irc_kwargs: dict = {}
        if self._sasl_username and self._sasl_password:
            irc_kwargs["sasl_username"] = self._sasl_username
            irc_kwargs["sasl_password"] = self._sasl_password

        self._client = IRCClient(
            bus=self._bus,
            identity=self._identity,
            server=self._server,
            channels=self._channels,
            **irc_kwargs,
        )
        self._task = asyncio.create_task(
            _connect_with_backoff(
                self._client,
                hostname=self._server,
                port=self._port,
                tls=self._tls,
                tls_verify=self._tls_verify,
            )
        )
        logger.info(
            "IRC connection started: {}:{}, channels {}",
            self._server,
            self._port,
            self._channels,
        )

    async def stop(self) -> None:
        """Stop reconnecting, then disconnect."""
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        if self._client and self._client.connected:
            await self._client.disconnect(expected=True)
        self._client = None
        self._task = None
