"""Zulip API access."""

from zulip_irc.zulip.client import STARTUP_RETRY, ZulipClient

__all__ = ["STARTUP_RETRY", "ZulipClient"]
