"""Relay engine: mapping, event cursor, inbound/outbound relays, commands."""

from zulip_irc.gateway.bus import Bus
from zulip_irc.gateway.commands import CommandInterpreter
from zulip_irc.gateway.cursor import CursorStore, EventCursor, QueueState
from zulip_irc.gateway.inbound import HeartbeatState, InboundRelay
from zulip_irc.gateway.lifecycle import LifecycleMonitor
from zulip_irc.gateway.outbound import OutboundRelay
from zulip_irc.gateway.spaces import SpaceMapper, SpaceMapping

__all__ = [
    "Bus",
    "CommandInterpreter",
    "CursorStore",
    "EventCursor",
    "HeartbeatState",
    "InboundRelay",
    "LifecycleMonitor",
    "OutboundRelay",
    "QueueState",
    "SpaceMapper",
    "SpaceMapping",
]
