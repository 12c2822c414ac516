"""Unified configuration schema for querystring_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the sync controller, each format's token table and logging.
Includes an adapter that turns the validated config into ``SyncOptions``.

Usage:
    from querystring_sync.config_schema import (
        UnifiedConfig, build_config, to_sync_options,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    options = to_sync_options(unified, select=lambda pathname: {"page": True})
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from .formats import MarkedFormatOptions, PlainFormatOptions, get_format
from .sync.models import SyncOptions
from .validators import validate_param_key, validate_prefix

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Sync controller settings.

    All fields have defaults so env vars and CLI args can supply them at
    runtime instead.
    """

    key: str = Field(
        default="state", description="Parameter name in namespaced mode"
    )
    mode: Literal["namespaced", "standalone"] = Field(
        default="namespaced",
        description="One parameter for the whole state, or one per field",
    )
    prefix: str = Field(
        default="", description="Parameter prefix in standalone mode"
    )
    format: Literal["marked", "plain", "json"] = Field(
        default="marked", description="Query string format"
    )
    sync_null: bool = Field(
        default=False, description="Write null values to the URL"
    )
    sync_undefined: bool = Field(
        default=False, description="Write undefined values to the URL"
    )
    url: str | None = Field(
        default=None,
        description="Request URL used when there is no live location",
    )

    model_config = {"frozen": True}

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        valid, message = validate_param_key(value)
        if not valid:
            raise ValueError(message)
        return value

    @field_validator("prefix")
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        valid, message = validate_prefix(value)
        if not valid:
            raise ValueError(message)
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: "text" or "json".
    """

    level: str = Field(default="WARNING", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log record format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    marked: MarkedFormatOptions = Field(default_factory=MarkedFormatOptions)
    plain: PlainFormatOptions = Field(default_factory=PlainFormatOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a section holds invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> SyncOptions
# ---------------------------------------------------------------------------


def to_sync_options(
    unified: UnifiedConfig,
    select: Callable[[str], Any] | None = None,
) -> SyncOptions:
    """Convert a ``UnifiedConfig`` into controller options.

    The selection is code, not configuration, so it is passed separately.
    """
    sync = unified.sync
    format_options = {"marked": unified.marked, "plain": unified.plain}
    fmt = get_format(sync.format, format_options.get(sync.format))

    logger.debug(
        "Sync options: mode=%s format=%s key=%s", sync.mode, sync.format, sync.key
    )
    return SyncOptions(
        key=sync.key,
        mode=sync.mode,
        prefix=sync.prefix,
        format=fmt,
        select=select,
        sync_null=sync.sync_null,
        sync_undefined=sync.sync_undefined,
        url=sync.url,
    )
