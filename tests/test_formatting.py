"""Tests for Zulip <-> IRC text translation."""

from __future__ import annotations

import pytest

from zulip_irc.formatting import (
    format_header,
    format_zulip_content,
    parse_topic_line,
    render_stream_message,
    split_body,
    split_irc_line,
)


class TestParseTopicLine:
    @pytest.mark.parametrize(
        ("text", "topic", "body"),
        [
            ("#(bugs): found one", "bugs", "found one"),
            ("#(bugs) found one", "bugs", "found one"),
            ("#(bugs):found one", "bugs", "found one"),
            ("#(release 1.2) :  shipped", "release 1.2", "shipped"),
            ("# (bugs) found one", "bugs", "found one"),
            ("#  (bugs): found one", "bugs", "found one"),
        ],
    )
    def test_addressed_forms(self, text, topic, body):
        parsed = parse_topic_line(text, "IRC")

        assert parsed.topic == topic
        assert parsed.body == body
        assert parsed.addressed is True

    def test_plain_line_uses_default_topic(self):
        parsed = parse_topic_line("hello there", "IRC")

        assert parsed.topic == "IRC"
        assert parsed.body == "hello there"
        assert parsed.addressed is False

    def test_hash_without_parens_keeps_default_topic(self):
        parsed = parse_topic_line("#janet is neat", "IRC")

        assert parsed.topic == "IRC"
        assert parsed.body == "janet is neat"
        assert parsed.addressed is False

    def test_text_before_parens_is_not_a_topic(self):
        parsed = parse_topic_line("#janet (x) y", "IRC")

        assert parsed.topic == "IRC"
        assert parsed.body == "janet (x) y"
        assert parsed.addressed is False

    def test_empty_topic_falls_back_to_default(self):
        parsed = parse_topic_line("#(): hi", "IRC")

        assert parsed.topic == "IRC"
        assert parsed.body == "hi"

    def test_parens_in_body_untouched(self):
        parsed = parse_topic_line("#(api) call f(x) twice", "IRC")

        assert parsed.topic == "api"
        assert parsed.body == "call f(x) twice"

    def test_not_at_start_is_plain(self):
        parsed = parse_topic_line("see #(bugs): later", "IRC")

        assert parsed.topic == "IRC"
        assert parsed.body == "see #(bugs): later"


class TestFormatZulipContent:
    def test_prefixes_nick(self):
        assert format_zulip_content("bob", "hi all") == "bob: hi all"


class TestSplitBody:
    def test_mixed_line_endings(self):
        assert split_body("a\r\nb\rc\nd") == ["a", "b", "c", "d"]

    def test_empty_body_is_one_empty_line(self):
        assert split_body("   ") == [""]

    def test_inner_blank_lines_kept(self):
        assert split_body("a\n\nb") == ["a", "", "b"]


class TestRenderStreamMessage:
    def test_header_then_lines(self):
        lines = render_stream_message("Alice", "release", "one\ntwo")

        assert lines == ["Alice (release):", "one", "two"]

    def test_blank_lines_become_space(self):
        lines = render_stream_message("Alice", "t", "a\n\nb")

        assert lines == ["Alice (t):", "a", " ", "b"]

    def test_command_like_body_stays_off_header(self):
        lines = render_stream_message("Alice", "t", "/quit")

        assert lines[0] == format_header("Alice", "t")
        assert lines[1] == "/quit"

    def test_long_line_is_wrapped(self):
        body = "word " * 40

        lines = render_stream_message("Alice", "t", body, max_bytes=50)

        assert len(lines) > 2
        assert all(len(line.encode()) <= 50 for line in lines[1:])
        assert "".join(lines[1:]) == body.strip()


class TestSplitIrcLine:
    def test_short_line_unchanged(self):
        assert split_irc_line("hello", max_bytes=10) == ["hello"]

    def test_breaks_at_space_in_second_half(self):
        pieces = split_irc_line("aaaa bbbb cccc", max_bytes=10)

        assert pieces == ["aaaa bbbb ", "cccc"]

    def test_hard_split_without_spaces(self):
        pieces = split_irc_line("x" * 25, max_bytes=10)

        assert pieces == ["x" * 10, "x" * 10, "x" * 5]

    def test_never_cuts_a_code_point(self):
        line = "é" * 20  # 2 bytes each

        pieces = split_irc_line(line, max_bytes=7)

        assert "".join(pieces) == line
        assert all(len(p.encode()) <= 7 for p in pieces)
