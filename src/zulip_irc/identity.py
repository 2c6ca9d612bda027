"""The bridge's own identity on both sides, for echo suppression."""

from __future__ import annotations

from loguru import logger


def irc_lower(name: str) -> str:
    """RFC 1459 casefold: {}|~ are the lowercase forms of []\\^."""
    return name.lower().translate(str.maketrans("[]\\^", "{}|~"))


class BridgeIdentity:
    """Who the bridge is on Zulip and IRC.

    The IRC nick can change at runtime (collision fallback, services rename);
    the IRC client keeps it current so every handler compares against the same value.
    """

    def __init__(self, zulip_email: str, irc_nick: str) -> None:
        self._zulip_email = zulip_email
        self._irc_nick = irc_nick

    @property
    def zulip_email(self) -> str:
        return self._zulip_email

    @property
    def irc_nick(self) -> str:
        return self._irc_nick

    def set_irc_nick(self, nick: str) -> None:
        if nick and nick != self._irc_nick:
            logger.info("Bridge IRC nick is now {} (was {})", nick, self._irc_nick)
            self._irc_nick = nick

    def is_self_zulip(self, email: str | None) -> bool:
        return bool(email) and email.lower() == self._zulip_email.lower()

    def is_self_irc(self, nick: str | None) -> bool:
        return bool(nick) and irc_lower(nick) == irc_lower(self._irc_nick)
