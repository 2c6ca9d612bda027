"""IRC channel line -> Zulip stream message."""

from __future__ import annotations

import re
from dataclasses import dataclass

from loguru import logger

# "#(topic) body", "#(topic): body", "# (topic):body"
_TOPIC_LINE = re.compile(r"^#\s*\(([^)]*)\)[ :]*(.*)$", re.DOTALL)


@dataclass(frozen=True)
class TopicLine:
    """Result of parsing an IRC line for a Zulip topic."""

    topic: str
    body: str
    addressed: bool  # line used the #(topic) form


def parse_topic_line(text: str, default_topic: str) -> TopicLine:
    """Pick the Zulip topic and body for an IRC line.

    Lines starting with '#' address a topic as '#(topic): body' (spaces
    allowed before the parenthesis). A '#' line that does not match loses the
    '#' and goes to the default topic.
    """
    if not text.startswith("#"):
        return TopicLine(topic=default_topic, body=text, addressed=False)

    match = _TOPIC_LINE.match(text)
    if not match:
        logger.warning("IRC line starts with '#' but has no (topic): {!r}", text)
        return TopicLine(topic=default_topic, body=text[1:], addressed=False)

    topic = match.group(1).strip()
    if not topic:
        topic = default_topic
    return TopicLine(topic=topic, body=match.group(2), addressed=True)


def format_zulip_content(nick: str, body: str) -> str:
    """Zulip message content for an IRC line: sender prefix + body."""
    return f"{nick}: {body}"
