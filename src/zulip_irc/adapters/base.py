"""Base adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AdapterBase(ABC):
    """Chat transport the relays send through. Sends fail fast while disconnected."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier (e.g. 'irc')."""
        ...

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    @abstractmethod
    async def message(self, target: str, text: str) -> None:
        """Deliver one line to a channel or nick. Raises TransportUnavailable when down."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Connect and keep reconnecting until stop()."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...
