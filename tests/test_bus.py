"""Test event bus and event factories."""

from zulip_irc.events import (
    ChannelMessage,
    ProtocolError,
    channel_message,
    direct_message,
    protocol_error,
)
from zulip_irc.gateway.bus import Bus


class MockTarget:
    """Mock event target for testing."""

    def __init__(self, accept_filter=None):
        self.received_events = []
        self.accept_filter = accept_filter or (lambda s, e: True)

    def accept_event(self, source: str, evt: object) -> bool:
        return self.accept_filter(source, evt)

    def push_event(self, source: str, evt: object) -> None:
        self.received_events.append((source, evt))


class ExplodingTarget(MockTarget):
    def push_event(self, source: str, evt: object) -> None:
        raise RuntimeError("boom")


class TestBus:
    def test_register_and_unregister(self):
        bus = Bus()
        target = MockTarget()

        bus.register(target)
        bus.unregister(target)

        assert target not in bus._targets

    def test_unregister_nonexistent_target_is_safe(self):
        Bus().unregister(MockTarget())

    def test_publish_reaches_accepting_targets_only(self):
        # Arrange
        bus = Bus()
        channel_only = MockTarget(lambda s, e: isinstance(e, ChannelMessage))
        everything = MockTarget()
        bus.register(channel_only)
        bus.register(everything)
        _, chan = channel_message("#janet", "bob", "hi")
        _, dm = direct_message("bob", "help")

        # Act
        bus.publish("irc", chan)
        bus.publish("irc", dm)

        # Assert
        assert channel_only.received_events == [("irc", chan)]
        assert everything.received_events == [("irc", chan), ("irc", dm)]

    def test_failing_target_does_not_block_others(self):
        bus = Bus()
        later = MockTarget()
        bus.register(ExplodingTarget())
        bus.register(later)
        _, evt = channel_message("#janet", "bob", "hi")

        bus.publish("irc", evt)

        assert later.received_events == [("irc", evt)]


class TestEventFactories:
    def test_factory_returns_type_and_event(self):
        type_name, evt = channel_message("#janet", "bob", "hi")

        assert type_name == "channel_message"
        assert evt == ChannelMessage(channel="#janet", nick="bob", text="hi")
        assert channel_message.TYPE == "channel_message"

    def test_protocol_error_raw_defaults_empty(self):
        _, evt = protocol_error("465", "banned")

        assert evt == ProtocolError(command="465", text="banned", raw={})
