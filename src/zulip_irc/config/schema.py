"""Config schema and accessor."""

from __future__ import annotations

import os
from typing import Any

from loguru import logger

from zulip_irc import __version__
from zulip_irc.core import constants
from zulip_irc.core.errors import BridgeConfigurationError

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDES = {
    "BRIDGE_ZULIP_SITE": "zulip_site",
    "BRIDGE_ZULIP_EMAIL": "zulip_email",
    "BRIDGE_ZULIP_API_KEY": "zulip_api_key",
    "BRIDGE_IRC_SERVER": "irc_server",
    "BRIDGE_IRC_NICK": "irc_nick",
    "BRIDGE_IRC_PASSWORD": "irc_sasl_password",
    "BRIDGE_IRC_TLS_VERIFY": "irc_tls_verify",
    "BRIDGE_IRC_ADMINS": "irc_admins",
    "BRIDGE_NTFY_URL": "ntfy_url",
    "BRIDGE_NTFY_TOKEN": "ntfy_token",
    "BRIDGE_LIVENESS_URL": "liveness_url",
    "BRIDGE_CURSOR_FILE": "cursor_file",
}

# Settings read through int() or float()
_NUMERIC_SETTINGS = (
    "poll_timeout",
    "poll_backoff",
    "failure_cooldown",
    "failure_threshold",
    "irc_port",
    "irc_throttle_limit",
    "irc_throttle_window",
    "liveness_interval",
)


def _load_env_overrides() -> dict[str, str]:
    """Non-empty env overrides, keyed by config key."""
    out: dict[str, str] = {}
    for env_key, cfg_key in _ENV_OVERRIDES.items():
        val = os.environ.get(env_key, "").strip()
        if val:
            out[cfg_key] = val
    return out


def _parse_bool(val: Any, default: bool) -> bool:
    """Parse YAML bool or env string; default if unrecognized."""
    if isinstance(val, bool):
        return val
    if val is None:
        return default
    v = str(val).lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return default


class Config:
    """Config accessor with attribute-style access. Env values win over YAML."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data and re-read env overrides."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self.validate()
        logger.debug("Config loaded: {} stream overrides", len(self.stream_channel_overrides))

    def _value(self, key: str, default: Any = None) -> Any:
        if key in self._env:
            return self._env[key]
        val = self._data.get(key)
        return default if val is None else val

    def validate(self) -> None:
        """Raise BridgeConfigurationError when credentials are missing or values are malformed."""
        missing = [
            key
            for key, val in (
                ("zulip_site", self.zulip_site),
                ("zulip_email", self.zulip_email),
                ("zulip_api_key", self.zulip_api_key),
                ("irc_nick", self.irc_nick),
            )
            if not val
        ]
        if self.irc_use_sasl and not self.irc_sasl_password:
            missing.append("irc_sasl_password")
        if missing:
            raise BridgeConfigurationError(
                f"missing required settings: {', '.join(missing)}",
                code="missing_credentials",
                details={"missing": missing},
            )

        overrides = self._data.get("stream_channel_overrides")
        if overrides is not None and not isinstance(overrides, dict):
            raise BridgeConfigurationError(
                "stream_channel_overrides must be a mapping of stream name to channel",
                code="invalid_overrides",
                details={"type": type(overrides).__name__},
            )
        admins = self._value("irc_admins")
        if admins is not None and not isinstance(admins, (list, str)):
            raise BridgeConfigurationError(
                "irc_admins must be a list of nicks",
                code="invalid_admins",
                details={"type": type(admins).__name__},
            )
        for key in _NUMERIC_SETTINGS:
            try:
                getattr(self, key)
            except (TypeError, ValueError) as exc:
                raise BridgeConfigurationError(
                    f"{key} must be a number, got {self._value(key)!r}",
                    code="invalid_value",
                    details={key: self._value(key)},
                    original_error=exc,
                ) from exc
        if not 0 < self.irc_port < 65536:
            raise BridgeConfigurationError(
                f"irc_port out of range: {self.irc_port}",
                code="invalid_value",
                details={"irc_port": self.irc_port},
            )
        if self.irc_throttle_limit < 1 or self.irc_throttle_window <= 0:
            raise BridgeConfigurationError(
                "irc_throttle_limit must be >= 1 and irc_throttle_window > 0",
                code="invalid_throttle",
                details={"limit": self.irc_throttle_limit, "window": self.irc_throttle_window},
            )
        if self.liveness_method not in ("GET", "PUT"):
            raise BridgeConfigurationError(
                "liveness_method must be GET or PUT",
                code="invalid_liveness_method",
                details={"method": self.liveness_method},
            )

    @property
    def raw(self) -> dict[str, Any]:
        """Raw YAML dict."""
        return self._data

    # Zulip

    @property
    def zulip_site(self) -> str:
        """Zulip organisation URL, e.g. https://example.zulipchat.com."""
        return str(self._value("zulip_site", "")).rstrip("/")

    @property
    def zulip_email(self) -> str:
        """Bot email; also the identity used to drop our own Zulip messages."""
        return str(self._value("zulip_email", ""))

    @property
    def zulip_api_key(self) -> str:
        return str(self._value("zulip_api_key", ""))

    @property
    def poll_timeout(self) -> float:
        """Client-side timeout for the events long-poll. Zulip sends heartbeats well inside this."""
        return float(self._value("poll_timeout", constants.POLL_TIMEOUT))

    @property
    def poll_backoff(self) -> float:
        return float(self._value("poll_backoff", constants.POLL_BACKOFF))

    @property
    def failure_cooldown(self) -> float:
        return float(self._value("failure_cooldown", constants.FAILURE_COOLDOWN))

    @property
    def failure_threshold(self) -> int:
        return int(self._value("failure_threshold", constants.FAILURE_THRESHOLD))

    @property
    def cursor_file(self) -> str | None:
        """Where to persist the event cursor. Unset = no persistence."""
        val = self._value("cursor_file")
        return str(val) if val else None

    # Mapping

    @property
    def stream_channel_overrides(self) -> dict[str, str]:
        """Stream name -> IRC channel, bypassing the derived slug."""
        val = self._data.get("stream_channel_overrides")
        if isinstance(val, dict):
            return {str(k): str(v) for k, v in val.items()}
        return {}

    @property
    def channel_prefix(self) -> str:
        """Prefix for derived channel names, e.g. '#janet-'."""
        return str(self._value("channel_prefix", "#"))

    @property
    def default_topic(self) -> str:
        """Zulip topic for IRC lines without a #(topic) prefix."""
        return str(self._value("default_topic", constants.DEFAULT_TOPIC))

    # IRC

    @property
    def irc_server(self) -> str:
        return str(self._value("irc_server", "irc.libera.chat"))

    @property
    def irc_port(self) -> int:
        return int(self._value("irc_port", 6697))

    @property
    def irc_tls(self) -> bool:
        return _parse_bool(self._value("irc_tls"), True)

    @property
    def irc_tls_verify(self) -> bool:
        """Verify IRC TLS certificates. Set false for dev with self-signed certs."""
        return _parse_bool(self._value("irc_tls_verify"), True)

    @property
    def irc_nick(self) -> str:
        return str(self._value("irc_nick", constants.DEFAULT_NICK))

    @property
    def irc_use_sasl(self) -> bool:
        """Use SASL PLAIN for IRC authentication."""
        return _parse_bool(self._value("irc_use_sasl"), True)

    @property
    def irc_sasl_user(self) -> str:
        """SASL username; defaults to the nick."""
        return str(self._value("irc_sasl_user", "") or self.irc_nick)

    @property
    def irc_sasl_password(self) -> str:
        return str(self._value("irc_sasl_password", ""))

    @property
    def irc_admins(self) -> list[str]:
        """Nicks allowed to run privileged commands."""
        val = self._value("irc_admins")
        if isinstance(val, str):
            return [n.strip() for n in val.split(",") if n.strip()]
        if isinstance(val, list):
            return [str(n) for n in val]
        return []

    @property
    def irc_throttle_limit(self) -> int:
        """Messages admitted per throttle window."""
        return int(self._value("irc_throttle_limit", constants.THROTTLE_LIMIT))

    @property
    def irc_throttle_window(self) -> float:
        """Throttle window length in seconds."""
        return float(self._value("irc_throttle_window", constants.THROTTLE_WINDOW))

    # Alerts / liveness

    @property
    def ntfy_url(self) -> str | None:
        """ntfy topic URL for admin alerts. Unset = alerts are logged only."""
        val = self._value("ntfy_url")
        return str(val) if val else None

    @property
    def ntfy_token(self) -> str | None:
        val = self._value("ntfy_token")
        return str(val) if val else None

    @property
    def liveness_url(self) -> str | None:
        val = self._value("liveness_url")
        return str(val) if val else None

    @property
    def liveness_method(self) -> str:
        return str(self._value("liveness_method", "GET")).upper()

    @property
    def liveness_interval(self) -> float:
        return float(self._value("liveness_interval", constants.LIVENESS_INTERVAL))

    @property
    def build_id(self) -> str:
        """Running build identifier (BRIDGE_BUILD_ID, else package version)."""
        return os.environ.get("BRIDGE_BUILD_ID", "").strip() or __version__
