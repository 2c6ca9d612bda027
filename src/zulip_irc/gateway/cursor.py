"""Zulip event queue handle and the cursor into its event stream."""

from __future__ import annotations

import enum
import json
import os
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from zulip_irc.core.constants import EVENT_TYPES, EXPIRED_QUEUE_CODE, INITIAL_EVENT_ID
from zulip_irc.core.errors import HubAPIError, HubTransportError


class EventQueueAPI(Protocol):
    """The slice of ZulipClient the cursor needs."""

    async def register(self, event_types: tuple[str, ...] = ...) -> str: ...

    async def get_events(self, queue_id: str, last_event_id: int) -> dict[str, Any]: ...


class QueueState(enum.Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    EXPIRED = "expired"


class CursorStore:
    """Persists (queue_id, last_event_id) as JSON so a restart can resume the same queue."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> tuple[str, int] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text())
            return str(data["queue_id"]), int(data["last_event_id"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable cursor file {}: {}", self._path, exc)
            return None

    def save(self, queue_id: str, last_event_id: int) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps({"queue_id": queue_id, "last_event_id": last_event_id}))
        os.replace(tmp, self._path)


class EventCursor:
    """Owns the queue handle and last_event_id. Only the inbound relay touches it.

    UNREGISTERED -> REGISTERED -> (EXPIRED -> REGISTERED)*
    """

    def __init__(
        self,
        api: EventQueueAPI,
        *,
        event_types: tuple[str, ...] = EVENT_TYPES,
        store: CursorStore | None = None,
    ) -> None:
        self._api = api
        self._event_types = event_types
        self._store = store
        self.queue_id: str | None = None
        self.last_event_id = INITIAL_EVENT_ID
        self.state = QueueState.UNREGISTERED
        self.registrations = 0

        saved = store.load() if store else None
        if saved:
            self.queue_id, self.last_event_id = saved
            self.state = QueueState.REGISTERED
            logger.info("Resuming Zulip queue {} at event {}", self.queue_id, self.last_event_id)

    async def register(self) -> None:
        """Register a new queue and start from its registration point."""
        queue_id = await self._api.register(self._event_types)
        self.queue_id = queue_id
        self.last_event_id = INITIAL_EVENT_ID
        self.state = QueueState.REGISTERED
        self.registrations += 1
        logger.info("Registered Zulip event queue {}", queue_id)
        self.checkpoint()

    async def poll(self) -> list[dict[str, Any]]:
        """Long-poll for the next batch.

        An expired queue is replaced and yields no events; the caller polls again
        straight away. Other Zulip errors raise HubAPIError, transport problems
        HubTransportError.
        """
        if self.state is not QueueState.REGISTERED or self.queue_id is None:
            await self.register()

        resp = await self._api.get_events(self.queue_id, self.last_event_id)
        if resp.get("result") == "success":
            events = resp.get("events")
            if not isinstance(events, list):
                raise HubTransportError("Zulip events response has no events list", code="bad_json", details=resp)
            malformed = [e for e in events if not isinstance(e, dict)]
            if malformed:
                logger.warning("Dropping {} malformed Zulip event(s): {!r}", len(malformed), malformed[:3])
            return [e for e in events if isinstance(e, dict)]

        code = resp.get("code")
        if code == EXPIRED_QUEUE_CODE:
            logger.info("Zulip event queue {} expired; registering a new one", self.queue_id)
            self.state = QueueState.EXPIRED
            await self.register()
            return []

        raise HubAPIError(f"Zulip events error: {resp.get('msg', code)}", code=str(code), details=resp)

    def advance(self, event_id: int) -> None:
        """Record that event_id was consumed. The cursor never moves backwards."""
        if event_id < self.last_event_id:
            logger.warning("Ignoring out-of-order event id {} (cursor at {})", event_id, self.last_event_id)
            return
        self.last_event_id = event_id

    def checkpoint(self) -> None:
        """Persist the cursor when a store is configured."""
        if not self._store or self.queue_id is None:
            return
        try:
            self._store.save(self.queue_id, self.last_event_id)
        except OSError as exc:
            logger.warning("Could not persist event cursor: {}", exc)
