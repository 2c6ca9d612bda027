"""Test config loading, env overrides and validation."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import yaml

from zulip_irc import __version__
from zulip_irc.config import Config, load_config, load_config_with_env
from zulip_irc.core.errors import BridgeConfigurationError

VALID = {
    "zulip_site": "https://janet.zulipchat.com/",
    "zulip_email": "bridge-bot@janet.zulipchat.com",
    "zulip_api_key": "k3y",
    "irc_nick": "janet-zulip",
    "irc_sasl_password": "hunter2",
}


def _config(data: dict, env: dict[str, str] | None = None) -> Config:
    with patch.dict("os.environ", env or {}, clear=True):
        cfg = Config()
        cfg.reload(data)
    return cfg


class TestLoadConfig:
    def test_load_config_from_yaml(self, tmp_path):
        # Arrange
        path = tmp_path / "config.yaml"
        path.write_text("zulip_site: https://z.example\nstream_channel_overrides:\n  general: '#janet'\n")

        # Act
        data = load_config(path)

        # Assert
        assert data == {"zulip_site": "https://z.example", "stream_channel_overrides": {"general": "#janet"}}

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml") == {}

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path) == {}

    def test_non_mapping_is_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        assert load_config(path) == {}

    def test_invalid_yaml_is_configuration_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(BridgeConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.code == "invalid_yaml"
        assert isinstance(exc_info.value.original_error, yaml.YAMLError)

    def test_with_env_loads_dotenv(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("irc_nick: from-yaml\n")

        with patch("dotenv.load_dotenv") as mock_load:
            data = load_config_with_env(path)

        mock_load.assert_called_once()
        assert data == {"irc_nick": "from-yaml"}


class TestConfigValues:
    def test_site_trailing_slash_stripped(self):
        cfg = _config(VALID)

        assert cfg.zulip_site == "https://janet.zulipchat.com"

    def test_defaults(self):
        cfg = _config(VALID)

        assert cfg.irc_server == "irc.libera.chat"
        assert cfg.irc_port == 6697
        assert cfg.irc_tls is True
        assert cfg.default_topic == "IRC"
        assert cfg.channel_prefix == "#"
        assert cfg.irc_throttle_limit == 5
        assert cfg.irc_throttle_window == 5.0
        assert cfg.failure_threshold == 5
        assert cfg.cursor_file is None
        assert cfg.ntfy_url is None
        assert cfg.liveness_url is None

    def test_sasl_user_defaults_to_nick(self):
        cfg = _config(VALID)

        assert cfg.irc_sasl_user == "janet-zulip"

    def test_env_wins_over_yaml(self):
        cfg = _config(VALID, {"BRIDGE_IRC_NICK": "env-nick", "BRIDGE_ZULIP_API_KEY": "env-key"})

        assert cfg.irc_nick == "env-nick"
        assert cfg.zulip_api_key == "env-key"

    def test_blank_env_value_ignored(self):
        cfg = _config(VALID, {"BRIDGE_IRC_NICK": "   "})

        assert cfg.irc_nick == "janet-zulip"

    def test_admins_from_comma_string(self):
        cfg = _config(VALID, {"BRIDGE_IRC_ADMINS": "tionis, bakpakin ,"})

        assert cfg.irc_admins == ["tionis", "bakpakin"]

    def test_admins_from_yaml_list(self):
        cfg = _config({**VALID, "irc_admins": ["tionis"]})

        assert cfg.irc_admins == ["tionis"]

    @pytest.mark.parametrize(("raw", "expected"), [("false", False), ("0", False), ("yes", True), ("junk", True)])
    def test_tls_verify_env_parsing(self, raw, expected):
        cfg = _config(VALID, {"BRIDGE_IRC_TLS_VERIFY": raw})

        assert cfg.irc_tls_verify is expected

    def test_overrides_stringified(self):
        cfg = _config({**VALID, "stream_channel_overrides": {"general": "#janet", 42: "#answer"}})

        assert cfg.stream_channel_overrides == {"general": "#janet", "42": "#answer"}

    def test_build_id_from_env_or_version(self):
        with patch.dict("os.environ", {"BRIDGE_BUILD_ID": "abc123"}, clear=True):
            assert Config().build_id == "abc123"
        with patch.dict("os.environ", {}, clear=True):
            assert Config().build_id == __version__


class TestValidate:
    def test_valid_config_passes(self):
        _config(VALID)

    def test_missing_credentials_listed(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({"irc_nick": "x"})

        assert exc_info.value.code == "missing_credentials"
        assert exc_info.value.details["missing"] == [
            "zulip_site",
            "zulip_email",
            "zulip_api_key",
            "irc_sasl_password",
        ]

    def test_password_not_required_without_sasl(self):
        data = {k: v for k, v in VALID.items() if k != "irc_sasl_password"}

        cfg = _config({**data, "irc_use_sasl": False})

        assert cfg.irc_use_sasl is False

    def test_credentials_from_env_only(self):
        env = {
            "BRIDGE_ZULIP_SITE": "https://z.example",
            "BRIDGE_ZULIP_EMAIL": "bot@z.example",
            "BRIDGE_ZULIP_API_KEY": "k",
            "BRIDGE_IRC_PASSWORD": "p",
        }

        cfg = _config({}, env)

        assert cfg.zulip_email == "bot@z.example"

    def test_overrides_must_be_mapping(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, "stream_channel_overrides": ["general"]})

        assert exc_info.value.code == "invalid_overrides"

    def test_admins_must_be_list(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, "irc_admins": {"tionis": True}})

        assert exc_info.value.code == "invalid_admins"

    def test_throttle_must_admit_something(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, "irc_throttle_limit": 0})

        assert exc_info.value.code == "invalid_throttle"

    def test_liveness_method(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, "liveness_method": "post"})

        assert exc_info.value.code == "invalid_liveness_method"

    def test_reload_without_validation(self):
        with patch.dict("os.environ", {}, clear=True):
            cfg = Config()
            cfg.reload({}, validate=False)

        assert cfg.zulip_site == ""

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("irc_throttle_limit", "five"),
            ("irc_port", "ircs"),
            ("poll_timeout", [90]),
            ("failure_threshold", "2.5"),
            ("liveness_interval", "soon"),
        ],
    )
    def test_non_numeric_value_is_configuration_error(self, key, value):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, key: value})

        assert exc_info.value.code == "invalid_value"
        assert exc_info.value.details == {key: value}

    def test_irc_port_out_of_range(self):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            _config({**VALID, "irc_port": 70000})

        assert exc_info.value.code == "invalid_value"

    def test_numeric_strings_accepted(self):
        cfg = _config({**VALID, "irc_port": "6667", "poll_backoff": "2.5"})

        assert cfg.irc_port == 6667
        assert cfg.poll_backoff == 2.5
