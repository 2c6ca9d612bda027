"""Text translation between Zulip messages and IRC lines."""

from zulip_irc.formatting.irc_to_zulip import TopicLine, format_zulip_content, parse_topic_line
from zulip_irc.formatting.line_split import split_irc_line
from zulip_irc.formatting.zulip_to_irc import format_header, render_stream_message, split_body

__all__ = [
    "TopicLine",
    "format_header",
    "format_zulip_content",
    "parse_topic_line",
    "render_stream_message",
    "split_body",
    "split_irc_line",
]
