"""Configuration resolution for querystring_sync.

Reads sync settings from CLI args, environment variables, .env files and
YAML config files.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    QS_SYNC_KEY: Parameter name in namespaced mode (default: state)
    QS_SYNC_MODE: namespaced or standalone (default: namespaced)
    QS_SYNC_PREFIX: Parameter prefix in standalone mode (default: empty)
    QS_SYNC_FORMAT: marked, plain or json (default: marked)
    QS_SYNC_NULL: Write null values (default: false)
    QS_SYNC_UNDEFINED: Write undefined values (default: false)
    QS_SYNC_URL: Request URL to restore from (optional)
"""

import logging
import os
from typing import Any

from .config_loader import load_hierarchical_config
from .config_schema import SyncConfig, UnifiedConfig, build_config

logger = logging.getLogger(__name__)

ENV_VARS: dict[str, str] = {
    "key": "QS_SYNC_KEY",
    "mode": "QS_SYNC_MODE",
    "prefix": "QS_SYNC_PREFIX",
    "format": "QS_SYNC_FORMAT",
    "sync_null": "QS_SYNC_NULL",
    "sync_undefined": "QS_SYNC_UNDEFINED",
    "url": "QS_SYNC_URL",
}

_BOOL_FIELDS = frozenset({"sync_null", "sync_undefined"})


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    raw_data: dict[str, Any] | None = None,
) -> UnifiedConfig:
    """Load configuration with unified precedence.

    Resolution order for each ``sync`` field (highest to lowest):
        CLI arg > env var / .env > YAML > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        cli_overrides: ``sync`` field values from the command line.
            ``None`` values mean "not given".
        raw_data: Already loaded YAML data.  Discovered from disk when
            ``None``.

    Returns:
        Validated ``UnifiedConfig``.

    Raises:
        pydantic.ValidationError: If the resolved values are invalid.
    """
    if raw_data is None:
        raw_data = load_hierarchical_config()
    unified = build_config(raw_data)

    resolved = unified.sync.model_dump()

    for field, env_name in ENV_VARS.items():
        if field in _BOOL_FIELDS:
            value = get_bool_env(env_name)
        else:
            value = os.getenv(env_name) or None
        if value is not None:
            logger.debug("Using %s from environment", env_name)
            resolved[field] = value

    for field, value in (cli_overrides or {}).items():
        if field not in resolved:
            raise ValueError(f"Unknown sync setting: '{field}'")
        if value is not None:
            resolved[field] = value

    return unified.model_copy(update={"sync": SyncConfig(**resolved)})
