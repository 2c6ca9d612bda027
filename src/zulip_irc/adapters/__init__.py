"""Protocol adapters."""

from zulip_irc.adapters.base import AdapterBase
from zulip_irc.adapters.irc import IRCAdapter

__all__ = ["AdapterBase", "IRCAdapter"]
