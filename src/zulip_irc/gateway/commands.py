"""Private-message commands for IRC users and admins."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from zulip_irc.events import DirectMessage
from zulip_irc.identity import irc_lower

if TYPE_CHECKING:
    from zulip_irc.adapters.irc.throttle import WindowThrottle
    from zulip_irc.gateway.inbound import HeartbeatState
    from zulip_irc.notify.alerts import AlertSink

PUBLIC_COMMANDS = ("heartbeat", "ping", "help", "version")
ADMIN_COMMANDS = ("msg", "join", "part", "ntfy")


class ChannelControl(Protocol):
    async def join(self, channel: str) -> None: ...

    async def part(self, channel: str) -> None: ...


def split_command(text: str) -> tuple[str, str]:
    """'cmd rest of line' -> ('cmd', 'rest of line'). Command is lowercased."""
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0].lower(), parts[1] if len(parts) > 1 else ""


class CommandInterpreter:
    """Bus target for DirectMessage.

    Admin-only commands from non-admins get no reply at all, so their
    existence is not revealed. Every other unknown command gets the help list.
    """

    def __init__(
        self,
        throttle: WindowThrottle,
        channels: ChannelControl,
        sink: AlertSink,
        heartbeat: HeartbeatState,
        admins: list[str],
        *,
        build_id: str,
    ) -> None:
        self._throttle = throttle
        self._channels = channels
        self._sink = sink
        self._heartbeat = heartbeat
        self._admins = frozenset(irc_lower(a) for a in admins)
        self._build_id = build_id
        self._tasks: set[asyncio.Task] = set()
        self._handlers: dict[str, Callable[[str, str], Awaitable[None]]] = {
            "heartbeat": self._cmd_heartbeat,
            "ping": self._cmd_ping,
            "help": self._cmd_help,
            "version": self._cmd_version,
            "msg": self._cmd_msg,
            "join": self._cmd_join,
            "part": self._cmd_part,
            "ntfy": self._cmd_ntfy,
        }

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, DirectMessage)

    def push_event(self, source: str, evt: object) -> None:
        if not isinstance(evt, DirectMessage):
            return
        task = asyncio.create_task(self.handle(evt.nick, evt.text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def is_admin(self, nick: str) -> bool:
        return irc_lower(nick) in self._admins

    def commands_for(self, nick: str) -> list[str]:
        if self.is_admin(nick):
            return [*PUBLIC_COMMANDS, *ADMIN_COMMANDS]
        return list(PUBLIC_COMMANDS)

    async def _reply(self, nick: str, text: str) -> None:
        await self._throttle.send(nick, text)

    async def handle(self, nick: str, text: str) -> None:
        """Run one command line from nick."""
        command, rest = split_command(text)
        if command in ADMIN_COMMANDS and not self.is_admin(nick):
            logger.info("Ignoring admin command {!r} from non-admin {}", command, nick)
            return
        handler = self._handlers.get(command)
        if handler is None:
            await self._reply(nick, f"Unknown command. Commands: {', '.join(self.commands_for(nick))}")
            return
        try:
            await handler(nick, rest)
        except Exception as exc:
            logger.exception("Command {!r} from {} failed: {}", command, nick, exc)

    async def _cmd_heartbeat(self, nick: str, rest: str) -> None:
        last = self._heartbeat.last_seen
        if last is None:
            await self._reply(nick, "No heartbeat received from Zulip yet")
        else:
            await self._reply(nick, f"Last Zulip heartbeat: {last.isoformat(timespec='seconds')}")

    async def _cmd_ping(self, nick: str, rest: str) -> None:
        await self._reply(nick, "pong")

    async def _cmd_help(self, nick: str, rest: str) -> None:
        await self._reply(nick, f"Commands: {', '.join(self.commands_for(nick))}")

    async def _cmd_version(self, nick: str, rest: str) -> None:
        await self._reply(nick, f"zulip-irc-bridge {self._build_id}")

    async def _cmd_msg(self, nick: str, rest: str) -> None:
        parts = rest.split(maxsplit=1)
        if len(parts) < 2:
            await self._reply(nick, "Usage: msg <target> <text>")
            return
        target, text = parts
        logger.info("Admin {} sent message to {}", nick, target)
        await self._throttle.send(target, text)

    async def _cmd_join(self, nick: str, rest: str) -> None:
        channel = rest.split()[0] if rest.split() else ""
        if not channel:
            await self._reply(nick, "Usage: join <channel>")
            return
        logger.info("Admin {} asked to join {}", nick, channel)
        await self._channels.join(channel)

    async def _cmd_part(self, nick: str, rest: str) -> None:
        channel = rest.split()[0] if rest.split() else ""
        if not channel:
            await self._reply(nick, "Usage: part <channel>")
            return
        logger.info("Admin {} asked to part {}", nick, channel)
        await self._channels.part(channel)

    async def _cmd_ntfy(self, nick: str, rest: str) -> None:
        if not rest:
            await self._reply(nick, "Usage: ntfy <text>")
            return
        await self._sink.notify("irc", f"{nick}: {rest}")
