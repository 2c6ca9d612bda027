"""Wrap a single IRC line that is too long for one PRIVMSG."""

from __future__ import annotations

from zulip_irc.core.constants import IRC_MAX_LINE_BYTES


def _utf8_prefix(data: bytes, limit: int) -> bytes:
    """Longest prefix of data within limit bytes that does not cut a code point."""
    cut = min(limit, len(data))
    # Continuation bytes are 0b10xxxxxx; back up to a lead byte.
    while 0 < cut < len(data) and (data[cut] & 0xC0) == 0x80:
        cut -= 1
    return data[:cut]


def split_irc_line(line: str, max_bytes: int = IRC_MAX_LINE_BYTES) -> list[str]:
    """Split line into pieces of at most max_bytes UTF-8 bytes.

    A line that fits is returned unchanged as the only piece. Longer lines break
    at the last space in the second half of a piece, else hard at a code point.
    IRC caps a whole message at 512 bytes; max_bytes leaves room for
    "PRIVMSG #channel :" and the prefix the server adds.
    """
    data = line.encode("utf-8")
    if len(data) <= max_bytes:
        return [line]

    pieces: list[str] = []
    while len(data) > max_bytes:
        head = _utf8_prefix(data, max_bytes)
        space = head.rfind(b" ")
        if space > max_bytes // 2:
            head = data[: space + 1]
        if not head:
            # max_bytes smaller than one code point
            head = data[:1]
        pieces.append(head.decode("utf-8", errors="replace"))
        data = data[len(head) :]
    if data:
        pieces.append(data.decode("utf-8", errors="replace"))
    return pieces
