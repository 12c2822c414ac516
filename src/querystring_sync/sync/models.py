"""Pydantic models for the sync controller.

Defines the data contracts passed between the controller and its callers:

- ``SyncAction``: What to do with the owned URL parameters.
- ``QueryUpdate``: Result of encoding the current state.
- ``LoadResult``: Result of restoring state from the URL.
- ``SyncOptions``: Controller configuration.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..formats import MarkedFormat, QueryStringFormat
from ..validators import validate_param_key, validate_prefix


class SyncAction(str, Enum):
    """Possible outcomes of an encode pass."""

    SET = "set"
    REMOVE = "remove"


class QueryUpdate(BaseModel):
    """Owned parameters to write, or the instruction to remove them.

    Attributes:
        action: ``SET`` to write ``params``, ``REMOVE`` to drop every
            owned parameter.
        params: Ordered ``(name, value)`` pairs, empty for ``REMOVE``.
    """

    action: SyncAction
    params: list[tuple[str, str]] = []

    model_config = {"frozen": True}


class LoadResult(BaseModel):
    """State restored from the URL.

    Attributes:
        state: Baseline with the URL state merged in.
        clean: True if the owned parameters must be stripped from the URL
            because they could not be decoded.
        error: Description of the decoding failure, if any.
    """

    state: dict[str, Any]
    clean: bool = False
    error: str | None = None

    model_config = {"frozen": True}


class SyncOptions(BaseModel):
    """Configuration for ``QueryStringSync``.

    Attributes:
        key: Parameter name in namespaced mode.
        mode: ``namespaced`` (one parameter) or ``standalone`` (one
            parameter per top-level field).
        prefix: Shared parameter name prefix in standalone mode.
        format: Format instance used to encode and decode values.
        select: ``pathname -> selection``; ``None`` syncs everything.
        sync_null: Write ``None`` values that differ from the baseline.
        sync_undefined: Write ``UNDEFINED`` values that differ from the
            baseline.
        url: Request URL to restore from when there is no live location.
    """

    key: str = "state"
    mode: Literal["namespaced", "standalone"] = "namespaced"
    prefix: str = ""
    format: Any = Field(default_factory=MarkedFormat)
    select: Callable[[str], Any] | None = None
    sync_null: bool = False
    sync_undefined: bool = False
    url: str | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

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

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: Any) -> QueryStringFormat:
        required = (
            "stringify",
            "parse",
            "stringify_standalone",
            "parse_standalone",
            "top_level_key",
        )
        missing = [name for name in required if not callable(getattr(value, name, None))]
        if missing:
            raise ValueError(f"format is missing methods: {missing}")
        return value

    @model_validator(mode="after")
    def _check_mode(self) -> SyncOptions:
        if self.mode == "namespaced" and getattr(self.format, "standalone_only", False):
            raise ValueError(
                f"format {self.format.name!r} is configured for standalone "
                "parameters only; use mode='standalone'"
            )
        return self
