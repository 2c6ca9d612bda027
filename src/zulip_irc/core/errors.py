"""Bridge domain exceptions."""

from __future__ import annotations


class BridgeError(Exception):
    """Base for bridge domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class BridgeConfigurationError(BridgeError):
    """Config validation or load failure. Fatal at startup."""


class SpaceMappingError(BridgeConfigurationError):
    """Stream <-> channel mapping cannot be built (empty or ambiguous)."""


class HubError(BridgeError):
    """Base for failures talking to Zulip."""


class HubTransportError(HubError):
    """Network error, timeout or unparseable response from Zulip. Retried with backoff."""


class HubAPIError(HubError):
    """Zulip answered with result=error and a code we do not handle."""

    @property
    def response(self) -> dict[str, object]:
        return self.details


class TransportUnavailable(BridgeError):
    """IRC connection is not up; the send was not attempted."""
