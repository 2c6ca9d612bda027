"""IRC transport event variants and the event-target protocol.

The IRC client turns pydle callbacks into one of a closed set of events and
publishes them on the bus; relay components pick the ones they handle.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class Connected:
    """IRC connection registered with the server."""

    server: str
    nick: str


@dataclass
class Disconnected:
    """IRC connection lost (expected=True on our own disconnect)."""

    server: str
    expected: bool


@dataclass
class ChannelMessage:
    """PRIVMSG to a channel."""

    channel: str
    nick: str
    text: str


@dataclass
class DirectMessage:
    """PRIVMSG addressed to the bridge nick."""

    nick: str
    text: str


@dataclass
class ProtocolNotice:
    """NOTICE from the server or a user."""

    source: str
    target: str
    text: str


@dataclass
class ProtocolError:
    """ERROR line or error numeric from the server."""

    command: str
    text: str
    raw: dict[str, Any] = field(default_factory=dict)


IrcEvent = Connected | Disconnected | ChannelMessage | DirectMessage | ProtocolNotice | ProtocolError


class EventTarget(Protocol):
    """Bus target interface: accept_event + push_event."""

    def accept_event(self, source: str, evt: object) -> bool:
        """Return True if this target wants the event."""
        ...

    def push_event(self, source: str, evt: object) -> None:
        """Handle the event (may be async via queue)."""
        ...


def event(type_name: str):
    """Decorator to mark a factory as producing an event with a given type."""

    def decorator(f: Any) -> Any:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> tuple[str, object]:
            evt = f(*args, **kwargs)
            return (type_name, evt)

        wrapper.TYPE = type_name  # type: ignore[attr-defined]
        return wrapper

    return decorator


@event("connected")
def connected(server: str, nick: str) -> Connected:
    return Connected(server=server, nick=nick)


@event("disconnected")
def disconnected(server: str, *, expected: bool) -> Disconnected:
    return Disconnected(server=server, expected=expected)


@event("channel_message")
def channel_message(channel: str, nick: str, text: str) -> ChannelMessage:
    return ChannelMessage(channel=channel, nick=nick, text=text)


@event("direct_message")
def direct_message(nick: str, text: str) -> DirectMessage:
    return DirectMessage(nick=nick, text=text)


@event("protocol_notice")
def protocol_notice(source: str, target: str, text: str) -> ProtocolNotice:
    return ProtocolNotice(source=source, target=target, text=text)


@event("protocol_error")
def protocol_error(command: str, text: str, *, raw: dict[str, Any] | None = None) -> ProtocolError:
    return ProtocolError(command=command, text=text, raw=raw or {})
