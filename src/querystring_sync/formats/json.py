"""JSON query string format.

The least compact format, but readable by any tool.  Dates travel as ISO
8601 strings and are revived only where the baseline holds a date at the
same path.  ``UNDEFINED`` entries are dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from ..errors import MalformedEncoding
from ..values import ValueKind, atomic_fields, kind_of
from .common import (
    ParseContext,
    QueryStringParams,
    date_to_iso,
    iso_to_date,
    match_naive,
)

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Convert a state value into plain JSON types.

    Returns ``None`` for functions and undefined values inside arrays so
    positions are preserved; object entries holding them are dropped.
    """
    match kind_of(value):
        case ValueKind.DATE:
            return date_to_iso(value)
        case ValueKind.ARRAY:
            return [to_jsonable(item) for item in value]
        case ValueKind.PLAIN_OBJECT:
            return {
                str(key): to_jsonable(item)
                for key, item in value.items()
                if kind_of(item)
                not in (ValueKind.FUNCTION, ValueKind.UNDEFINED)
            }
        case ValueKind.ATOMIC:
            fields = atomic_fields(value)
            return str(value) if fields is None else to_jsonable(fields)
        case ValueKind.FUNCTION | ValueKind.UNDEFINED:
            return None
        case _:
            return value


def revive_dates(value: Any, hint: Any) -> Any:
    """Turn ISO strings back into datetimes where *hint* holds a date."""
    match kind_of(hint):
        case ValueKind.DATE if isinstance(value, str):
            date = iso_to_date(value)
            return value if date is None else match_naive(date, hint)
        case ValueKind.PLAIN_OBJECT if isinstance(value, dict):
            return {
                key: revive_dates(item, hint.get(key))
                for key, item in value.items()
            }
        case ValueKind.ARRAY if isinstance(value, list) and hint:
            return [revive_dates(item, hint[0]) for item in value]
        case _:
            return value


class JsonFormat:
    """Compact JSON text, one document per parameter."""

    name = "json"

    def dumps(self, value: Any) -> str:
        return json.dumps(
            to_jsonable(value), separators=(",", ":"), ensure_ascii=False
        )

    def loads(self, text: str, hint: Any = None) -> Any:
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedEncoding(f"Invalid JSON: {e.msg}", e.pos) from e
        return revive_dates(value, hint)

    def stringify(self, state: Mapping[str, Any]) -> str:
        return self.dumps(state)

    def parse(
        self, value: str, ctx: ParseContext | None = None
    ) -> dict[str, Any]:
        ctx = ctx or ParseContext()
        result = self.loads(value, ctx.initial_state)
        if not isinstance(result, dict):
            raise MalformedEncoding(
                f"Expected a JSON object, got {type(result).__name__}"
            )
        return result

    def stringify_standalone(
        self, state: Mapping[str, Any]
    ) -> QueryStringParams:
        return {
            str(key): [self.dumps(item)]
            for key, item in state.items()
            if kind_of(item) not in (ValueKind.FUNCTION, ValueKind.UNDEFINED)
        }

    def parse_standalone(
        self, params: QueryStringParams, ctx: ParseContext
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, values in params.items():
            if not values:
                continue
            try:
                result[key] = self.loads(
                    values[0], ctx.initial_state.get(key)
                )
            except MalformedEncoding as e:
                logger.debug("Skipping invalid JSON parameter %r: %s", key, e)
        return result

    def top_level_key(self, param_key: str) -> str:
        return param_key


json_format = JsonFormat()
