"""IRC adapter package."""

from zulip_irc.adapters.irc.adapter import IRCAdapter
from zulip_irc.adapters.irc.client import IRCClient, _connect_with_backoff
from zulip_irc.adapters.irc.throttle import MessageSender, WindowThrottle

__all__ = [
    "IRCAdapter",
    "IRCClient",
    "MessageSender",
    "WindowThrottle",
    "_connect_with_backoff",
]
