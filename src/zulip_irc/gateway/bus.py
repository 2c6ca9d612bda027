"""Event bus: IRC events fan out to relay components."""

from __future__ import annotations

from loguru import logger

from zulip_irc.events import EventTarget

__all__ = ["Bus", "EventTarget"]


class Bus:
    """In-process dispatcher. Targets filter by type and receive events in publish order."""

    def __init__(self) -> None:
        self._targets: list[EventTarget] = []

    def register(self, target: EventTarget) -> None:
        """Register an event target."""
        self._targets.append(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister an event target."""
        if target in self._targets:
            self._targets.remove(target)

    def publish(self, source: str, evt: object) -> None:
        """Dispatch event to all targets that accept it. A failing target does not stop the others."""
        for target in self._targets:
            try:
                if target.accept_event(source, evt):
                    target.push_event(source, evt)
            except Exception as exc:
                logger.exception("Failed to pass event to target {}: {}", target, exc)
