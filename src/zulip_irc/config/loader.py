"""Config loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from zulip_irc.core.errors import BridgeConfigurationError


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict.

    A missing file is not an error: every setting can come from the environment.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}; using environment only", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Config file {} has invalid structure (expected dict)", path)
            return {}
        return data
    except yaml.YAMLError as exc:
        raise BridgeConfigurationError(
            f"cannot parse config file {path}: {exc}",
            code="invalid_yaml",
            details={"path": str(path)},
            original_error=exc,
        ) from exc


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML after loading .env into the process environment.

    Env overrides themselves are applied by Config.
    """
    from dotenv import load_dotenv

    load_dotenv()
    return load_config(path)
