"""Stream <-> channel mapping, built once from the Zulip subscription list."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from zulip_irc.core.errors import SpaceMappingError
from zulip_irc.identity import irc_lower

# Characters IRC does not allow in channel names, plus whitespace
_SLUG_BREAKS = re.compile(r"[\s,\x00-\x1f\x7f]+")
_CHANNEL_PREFIXES = ("#", "&")


@dataclass(frozen=True)
class SpaceMapping:
    """One Zulip stream and the IRC channel it is bridged to."""

    stream_id: int
    stream_name: str
    channel: str


def slugify(stream_name: str, prefix: str = "#") -> str:
    """Derive a channel name: prefix + lowercased name with spaces/commas turned into '-'."""
    slug = _SLUG_BREAKS.sub("-", stream_name.strip()).strip("-").lower()
    return f"{prefix}{slug}"


def _valid_channel(name: str) -> bool:
    return len(name) > 1 and name.startswith(_CHANNEL_PREFIXES) and not _SLUG_BREAKS.search(name)


class SpaceMapper:
    """Immutable bijection between subscribed Zulip streams and IRC channels."""

    def __init__(self, mappings: Iterable[SpaceMapping]) -> None:
        by_stream: dict[int, SpaceMapping] = {}
        by_channel: dict[str, SpaceMapping] = {}
        for m in mappings:
            key = irc_lower(m.channel)
            other = by_channel.get(key)
            if other is not None:
                raise SpaceMappingError(
                    f"streams {other.stream_name!r} and {m.stream_name!r} both map to {m.channel}",
                    code="channel_collision",
                    details={"channel": m.channel, "streams": [other.stream_name, m.stream_name]},
                )
            if m.stream_id in by_stream:
                raise SpaceMappingError(
                    f"stream id {m.stream_id} listed twice",
                    code="duplicate_stream",
                    details={"stream_id": m.stream_id},
                )
            by_stream[m.stream_id] = m
            by_channel[key] = m
        if not by_stream:
            raise SpaceMappingError("no Zulip streams to bridge", code="empty_mapping")
        self._by_stream = by_stream
        self._by_channel = by_channel

    @classmethod
    def from_subscriptions(
        cls,
        subscriptions: Iterable[Mapping[str, Any]],
        overrides: Mapping[str, str] | None = None,
        channel_prefix: str = "#",
    ) -> SpaceMapper:
        """Build from a GET /users/me/subscriptions snapshot.

        overrides maps stream name to channel; other streams get slugify(name).
        """
        overrides = overrides or {}
        for stream_name, channel in overrides.items():
            if not _valid_channel(channel):
                raise SpaceMappingError(
                    f"override for stream {stream_name!r} is not a valid channel: {channel!r}",
                    code="invalid_override",
                    details={"stream": stream_name, "channel": channel},
                )

        mappings: list[SpaceMapping] = []
        for sub in subscriptions:
            try:
                stream_id = int(sub["stream_id"])
                name = str(sub["name"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed subscription entry: {}", sub)
                continue
            channel = overrides.get(name) or slugify(name, channel_prefix)
            mappings.append(SpaceMapping(stream_id=stream_id, stream_name=name, channel=channel))

        unused = set(overrides) - {m.stream_name for m in mappings}
        if unused:
            logger.warning("Channel overrides for unsubscribed streams ignored: {}", sorted(unused))

        mapper = cls(mappings)
        for m in mapper.all_mappings():
            logger.info("Space mapping: {} ({}) <-> {}", m.stream_name, m.stream_id, m.channel)
        return mapper

    def resolve_channel(self, stream_id: int) -> SpaceMapping | None:
        """Mapping for a Zulip stream id, or None when the stream is not bridged."""
        return self._by_stream.get(stream_id)

    def resolve_stream(self, channel: str) -> SpaceMapping | None:
        """Mapping for an IRC channel (case-insensitive), or None when not bridged."""
        return self._by_channel.get(irc_lower(channel))

    def channels(self) -> list[str]:
        """Channel names to join, in subscription order."""
        return [m.channel for m in self._by_stream.values()]

    def all_mappings(self) -> list[SpaceMapping]:
        return list(self._by_stream.values())

    def __len__(self) -> int:
        return len(self._by_stream)
