"""Protocol constants and defaults."""

from __future__ import annotations

from typing import Final

# Zulip
EXPIRED_QUEUE_CODE: Final = "BAD_EVENT_QUEUE_ID"
EVENT_TYPES: Final = ("message",)
INITIAL_EVENT_ID: Final = -1

# IRC
DEFAULT_TOPIC: Final = "IRC"
DEFAULT_NICK: Final = "zulip-bridge"
IRC_MAX_LINE_BYTES: Final = 450

# Outbound throttle: N sends per W seconds
THROTTLE_LIMIT: Final = 5
THROTTLE_WINDOW: Final = 5.0
THROTTLE_POLL_INTERVAL: Final = 0.1

# Inbound poll loop
POLL_BACKOFF: Final = 10.0
FAILURE_COOLDOWN: Final = 60.0
FAILURE_THRESHOLD: Final = 5
POLL_TIMEOUT: Final = 90.0

LIVENESS_INTERVAL: Final = 120.0
