"""Tests for admin alert sinks and the alerter."""

from __future__ import annotations

import json

import httpx
import pytest
from loguru import logger

from tests.mocks import FakeClock, FakeSender, RecordingSink, make_throttle
from zulip_irc.notify import AdminAlerter, LogSink, NtfySink

NTFY = "https://ntfy.example/janet-bridge"


def _ntfy(handler, token: str | None = None) -> NtfySink:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NtfySink(NTFY, token=token, http=http)


class TestNtfySink:
    @pytest.mark.asyncio
    async def test_notify_posts_text_with_title(self):
        # Arrange
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = _ntfy(handler)

        # Act
        await sink.notify("zulip", "queue expired")

        # Assert
        req = seen[0]
        assert str(req.url) == NTFY
        assert req.content == b"queue expired"
        assert req.headers["Title"] == "zulip-irc-bridge: zulip"
        assert req.headers["Tags"] == "zulip"
        assert "Authorization" not in req.headers

    @pytest.mark.asyncio
    async def test_token_sent_as_bearer(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = _ntfy(handler, token="tk_secret")

        await sink.notify("irc", "hi")

        assert seen[0].headers["Authorization"] == "Bearer tk_secret"

    @pytest.mark.asyncio
    async def test_notify_json_posts_pretty_json(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = _ntfy(handler)

        await sink.notify_json("zulip", {"code": "X", "n": 1})

        body = seen[0].content.decode()
        assert json.loads(body) == {"code": "X", "n": 1}
        assert "\n" in body

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_raise(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        sink = _ntfy(handler)

        await sink.notify("zulip", "lost")

    @pytest.mark.asyncio
    async def test_rejected_delivery_does_not_raise(self):
        sink = _ntfy(lambda r: httpx.Response(403))

        await sink.notify("zulip", "forbidden")
        await sink.aclose()


class TestLogSink:
    @pytest.mark.asyncio
    async def test_logs_alerts(self):
        messages: list[str] = []
        handler_id = logger.add(messages.append, format="{message}")
        try:
            await LogSink().notify("irc", "banned")
            await LogSink().notify_json("zulip", {"code": "X"})
        finally:
            logger.remove(handler_id)

        assert messages[0].strip() == "[alert:irc] banned"
        assert '"code": "X"' in messages[1]


class TestAdminAlerter:
    @pytest.mark.asyncio
    async def test_alert_reaches_sink_and_every_admin(self):
        # Arrange
        clock = FakeClock()
        irc = FakeSender(clock)
        sink = RecordingSink()
        alerter = AdminAlerter(sink, make_throttle(irc, clock), ["tionis", "bakpakin"])

        # Act
        await alerter.alert("irc", "SASL failed")

        # Assert
        assert sink.texts == [("irc", "SASL failed")]
        assert irc.sent == [("tionis", "[irc] SASL failed"), ("bakpakin", "[irc] SASL failed")]

    @pytest.mark.asyncio
    async def test_alert_json_sends_summary_and_payload(self):
        clock = FakeClock()
        irc = FakeSender(clock)
        sink = RecordingSink()
        alerter = AdminAlerter(sink, make_throttle(irc, clock), ["tionis"])

        await alerter.alert_json("zulip", "poll failed", {"code": "RATE_LIMIT_HIT"})

        assert sink.json == [("zulip", {"summary": "poll failed", "data": {"code": "RATE_LIMIT_HIT"}})]
        assert irc.texts("tionis") == ["[zulip] poll failed", '{"code": "RATE_LIMIT_HIT"}']

    @pytest.mark.asyncio
    async def test_long_payload_truncated_for_irc(self):
        clock = FakeClock()
        irc = FakeSender(clock)
        alerter = AdminAlerter(RecordingSink(), make_throttle(irc, clock), ["tionis"])

        await alerter.alert_json("zulip", "big", {"msg": "x" * 1000})

        assert len(irc.texts("tionis")[1]) == 400

    @pytest.mark.asyncio
    async def test_without_throttle_only_sink(self):
        sink = RecordingSink()
        alerter = AdminAlerter(sink, None, ["tionis"])

        await alerter.alert("zulip", "down")

        assert sink.texts == [("zulip", "down")]
        assert alerter.sink is sink

    @pytest.mark.asyncio
    async def test_irc_down_does_not_stop_alert(self):
        clock = FakeClock()
        sink = RecordingSink()
        alerter = AdminAlerter(sink, make_throttle(FakeSender(clock, connected=False), clock), ["tionis"])

        await alerter.alert("irc", "disconnected")

        assert sink.texts == [("irc", "disconnected")]
