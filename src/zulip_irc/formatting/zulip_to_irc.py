"""Zulip stream message -> IRC lines."""

from __future__ import annotations

import re

from zulip_irc.core.constants import IRC_MAX_LINE_BYTES
from zulip_irc.formatting.line_split import split_irc_line

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_body(content: str) -> list[str]:
    """Split a message body into lines.

    Only the body as a whole is trimmed; indentation and trailing spaces inside
    are kept. Always returns at least one line.
    """
    return _LINE_BREAK.split(content.strip())


def format_header(sender: str, topic: str) -> str:
    """Line that introduces a relayed message: who wrote it and in which topic."""
    return f"{sender} ({topic}):"


def render_stream_message(
    sender: str,
    topic: str,
    content: str,
    *,
    max_bytes: int = IRC_MAX_LINE_BYTES,
) -> list[str]:
    """Header line followed by one line per body line, in order.

    The topic is never on the same line as the body, so a body line starting
    with '!' or '/' reaches IRC as plain text. Blank lines become a single space
    because servers reject an empty PRIVMSG. Lines over max_bytes are wrapped.
    """
    lines = [format_header(sender, topic)]
    for line in split_body(content):
        lines.extend(split_irc_line(line or " ", max_bytes=max_bytes))
    return lines
