"""Logs IRC connection lifecycle and escalates protocol errors to admins."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from zulip_irc.events import Connected, Disconnected, ProtocolError, ProtocolNotice

if TYPE_CHECKING:
    from zulip_irc.notify.alerts import AdminAlerter


class LifecycleMonitor:
    """Bus target for connection and protocol events."""

    def __init__(self, alerter: AdminAlerter) -> None:
        self._alerter = alerter
        self._tasks: set[asyncio.Task] = set()

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, (Connected, Disconnected, ProtocolNotice, ProtocolError))

    def push_event(self, source: str, evt: object) -> None:
        if isinstance(evt, Connected):
            logger.info("[CONNECTED] {} as {}", evt.server, evt.nick)
        elif isinstance(evt, Disconnected):
            if evt.expected:
                logger.info("[DISCONNECTED] {}", evt.server)
            else:
                logger.warning("[DISCONNECTED] {} (unexpected)", evt.server)
        elif isinstance(evt, ProtocolNotice):
            logger.info("[NOTICE] {} -> {}: {}", evt.source, evt.target, evt.text)
        elif isinstance(evt, ProtocolError):
            logger.error("[ERROR] <irc> {}: {}", evt.command, evt.text)
            task = asyncio.create_task(self._alerter.alert("irc", f"IRC error {evt.command}: {evt.text}"))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
