"""Out-of-band notifications: admin alerts and liveness pings."""

from zulip_irc.notify.alerts import AdminAlerter, AlertSink, LogSink, NtfySink
from zulip_irc.notify.liveness import LivenessReporter

__all__ = ["AdminAlerter", "AlertSink", "LivenessReporter", "LogSink", "NtfySink"]
