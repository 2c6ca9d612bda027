"""Configuration: YAML + env overlay."""

from zulip_irc.config.loader import load_config, load_config_with_env
from zulip_irc.config.schema import Config

__all__ = ["Config", "load_config", "load_config_with_env"]
