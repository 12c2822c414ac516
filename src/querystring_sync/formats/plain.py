"""Plain (human readable) query string format.

Nested objects flatten to dot paths, arrays are joined or repeated::

    {"user": {"name": "Ann"}, "tags": ["a", "b"]}
        -> user.name=Ann,tags=a,b                      (namespaced)
        -> ?user.name=Ann&tags=a,b                     (standalone)

The wire text carries no type information.  Decoding coerces each value
to the type found at the same path in the baseline state and otherwise
auto-parses in the order boolean, date, number, string.  Each auto-parse
step can be switched off in ``PlainFormatOptions``.

Arrays of objects are indexed per element, ``items.0.id`` by default or
``items[0].id`` with ``array_index_style="bracket"``.  Indices must be
dense: an index past the end of the list decoded so far is rejected.

Escaping is run-length aware: a run of escape characters that precedes a
special character (or the end of the text) is doubled, so a literal
escape character survives a round trip next to separators.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from ..errors import MalformedEncoding
from ..values import UNDEFINED, ValueKind, atomic_fields, kind_of
from .common import (
    BooleanStyle,
    DateStyle,
    ParseContext,
    QueryStringParams,
    format_boolean,
    format_date,
    format_number,
    match_naive,
    parse_boolean,
    parse_date,
    parse_number,
)

logger = logging.getLogger(__name__)

REPEAT = "repeat"

_INDEX_RE = re.compile(r"^\d+$")
_BRACKETS_RE = re.compile(r"^(?:\[\d+\])+$")
_AUTO_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")


# =============================================================================
# Configuration
# =============================================================================


class PlainFormatOptions(BaseModel):
    """Separators and sentinel strings for the plain format."""

    entry_separator: str = Field(
        default=",", description="Separator between key=value entries"
    )
    nesting_separator: str = Field(
        default=".", description="Separator between nested key segments"
    )
    array_separator: str = Field(
        default=",",
        description="Joins array elements, or 'repeat' for repeated keys",
    )
    escape: str = Field(default="_", description="Escape character")
    null_string: str = Field(default="null")
    undefined_string: str = Field(default="undefined")
    empty_array_marker: str | None = Field(
        default="__empty_array__",
        description="Emitted for empty arrays; None emits an empty value",
    )
    date_style: DateStyle = Field(
        default="iso", description="Dates as ISO 8601 text or epoch milliseconds"
    )
    boolean_style: BooleanStyle = Field(
        default="string", description="Booleans as true/false or 1/0"
    )
    parse_numbers: bool = Field(
        default=True, description="Auto-detect numbers without a type hint"
    )
    parse_booleans: bool = Field(
        default=True, description="Auto-detect true/false without a type hint"
    )
    parse_dates: bool = Field(
        default=True, description="Auto-detect dates without a type hint"
    )
    array_index_style: Literal["dot", "bracket"] = Field(
        default="dot",
        description="Index arrays of objects as items.0 or items[0]",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_separators(self) -> PlainFormatOptions:
        singles = {
            "entry_separator": self.entry_separator,
            "nesting_separator": self.nesting_separator,
            "escape": self.escape,
        }
        if self.array_separator != REPEAT:
            singles["array_separator"] = self.array_separator

        for name, token in singles.items():
            if len(token) != 1:
                raise ValueError(
                    f"{name} must be a single character, got {token!r}"
                )
            if token == "=":
                raise ValueError(f"{name} cannot be '='")
            if self.array_index_style == "bracket" and token in "[]":
                raise ValueError(
                    f"{name} cannot be a bracket with array_index_style='bracket'"
                )

        if self.entry_separator == self.nesting_separator:
            raise ValueError(
                "entry_separator and nesting_separator cannot be the same: "
                f"{self.entry_separator!r}"
            )
        if self.escape in (self.entry_separator, self.nesting_separator):
            raise ValueError(
                f"escape cannot be the same as a separator: {self.escape!r}"
            )
        if self.array_separator != REPEAT and self.array_separator in (
            self.nesting_separator,
            self.escape,
        ):
            raise ValueError(
                "array_separator cannot be the same as nesting_separator "
                f"or escape: {self.array_separator!r}"
            )
        return self


# =============================================================================
# Escape-aware text helpers
# =============================================================================


def _run_end(text: str, start: int, esc: str) -> int:
    end = start
    while end < len(text) and text[end] == esc:
        end += 1
    return end


def escape_text(text: str, specials: frozenset[str], esc: str) -> str:
    """Escape every special character in *text*.

    Examples:
        >>> escape_text("a,b", frozenset(","), "_")
        'a_,b'
        >>> escape_text("a_", frozenset(","), "_")
        'a__'
    """
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == esc:
            end = _run_end(text, i, esc)
            run = end - i
            if end == len(text) or text[end] in specials:
                run *= 2
            out.append(esc * run)
            i = end
            continue
        if ch in specials:
            out.append(esc)
        out.append(ch)
        i += 1
    return "".join(out)


def unescape_text(text: str, specials: frozenset[str], esc: str) -> str:
    """Inverse of ``escape_text``."""
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != esc:
            out.append(ch)
            i += 1
            continue

        end = _run_end(text, i, esc)
        run = end - i
        if end == len(text) or text[end] in specials:
            out.append(esc * (run // 2))
            if run % 2:
                if end < len(text):
                    out.append(text[end])
                    end += 1
                else:
                    out.append(esc)
        else:
            out.append(esc * run)
        i = end
    return "".join(out)


def split_escaped(text: str, sep: str, esc: str) -> list[str]:
    """Split *text* on unescaped *sep*, keeping escape sequences intact."""
    parts: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == esc:
            end = _run_end(text, i, esc)
            current.append(text[i:end])
            if (end - i) % 2 and end < len(text) and text[end] == sep:
                current.append(sep)
                end += 1
            i = end
            continue
        if ch == sep:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    parts.append("".join(current))
    return parts


def find_unescaped(text: str, char: str, esc: str) -> int:
    """Return the index of the first unescaped *char*, or ``-1``."""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == esc:
            end = _run_end(text, i, esc)
            if (end - i) % 2 and end < len(text) and text[end] == char:
                end += 1
            i = end
            continue
        if ch == char:
            return i
        i += 1
    return -1


# =============================================================================
# Format
# =============================================================================


class PlainFormat:
    """Dot-notation format with baseline-driven type coercion.

    Args:
        options: Separators and sentinels.  Defaults to
            ``PlainFormatOptions()``.
    """

    name = "plain"

    def __init__(self, options: PlainFormatOptions | None = None) -> None:
        self.options = options or PlainFormatOptions()
        o = self.options
        self._repeat = o.array_separator == REPEAT
        self._bracket = o.array_index_style == "bracket"

        value_specials = {o.entry_separator, "="}
        if not self._repeat:
            value_specials.add(o.array_separator)
        self._value_specials = frozenset(value_specials)
        self._key_specials = self._value_specials | {o.nesting_separator}
        if self._bracket:
            self._key_specials |= {"[", "]"}

    # ------------------------------------------------------------------
    # Namespaced mode
    # ------------------------------------------------------------------

    def stringify(self, state: Mapping[str, Any]) -> str:
        o = self.options
        parts: list[str] = []
        for key, values in self._flatten(state).items():
            if self._repeat:
                parts.extend(f"{key}={value}" for value in values)
            else:
                parts.append(f"{key}={o.array_separator.join(values)}")
        return o.entry_separator.join(parts)

    def parse(
        self, value: str, ctx: ParseContext | None = None
    ) -> dict[str, Any]:
        """Decode a namespaced value.

        Segments without an unescaped ``=`` continue the previous entry's
        value, which is how joined arrays survive the entry split.
        """
        ctx = ctx or ParseContext()
        return self._unflatten(self._split_entries(value), ctx.initial_state)

    # ------------------------------------------------------------------
    # Standalone mode
    # ------------------------------------------------------------------

    def stringify_standalone(
        self, state: Mapping[str, Any]
    ) -> QueryStringParams:
        o = self.options
        result: QueryStringParams = {}
        for key, values in self._flatten(state).items():
            if self._repeat:
                result[key] = list(values)
            else:
                result[key] = [o.array_separator.join(values)]
        return result

    def parse_standalone(
        self, params: QueryStringParams, ctx: ParseContext
    ) -> dict[str, Any]:
        entries = {key: list(values) for key, values in params.items() if values}
        return self._unflatten(entries, ctx.initial_state)

    def top_level_key(self, param_key: str) -> str:
        o = self.options
        head = split_escaped(param_key, o.nesting_separator, o.escape)[0]
        if self._bracket:
            bracket = find_unescaped(head, "[", o.escape)
            if bracket != -1:
                head = head[:bracket]
        return unescape_text(head, self._key_specials, o.escape)

    # ------------------------------------------------------------------
    # Flattening
    # ------------------------------------------------------------------

    def _flatten(self, state: Mapping[str, Any]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for key, item in state.items():
            self._flatten_into(out, self._escape_key(str(key)), item)
        return out

    def _flatten_into(
        self, out: dict[str, list[str]], path: str, value: Any
    ) -> None:
        nest = self.options.nesting_separator
        match kind_of(value):
            case ValueKind.FUNCTION:
                return
            case ValueKind.PLAIN_OBJECT:
                for key, item in value.items():
                    self._flatten_into(
                        out, path + nest + self._escape_key(str(key)), item
                    )
            case ValueKind.ARRAY:
                if not value:
                    out[path] = [self.options.empty_array_marker or ""]
                elif any(self._is_structured(item) for item in value):
                    for index, item in enumerate(value):
                        item_path = (
                            f"{path}[{index}]"
                            if self._bracket
                            else f"{path}{nest}{index}"
                        )
                        written = len(out)
                        self._flatten_into(out, item_path, item)
                        if len(out) == written:
                            # Keep indices dense for empty objects.
                            out[item_path] = [self._scalar(None)]
                else:
                    out[path] = [self._scalar(item) for item in value]
            case ValueKind.ATOMIC:
                fields = atomic_fields(value)
                if fields is None:
                    out[path] = [self._scalar(str(value))]
                else:
                    self._flatten_into(out, path, fields)
            case _:
                out[path] = [self._scalar(value)]

    @staticmethod
    def _is_structured(value: Any) -> bool:
        kind = kind_of(value)
        if kind is ValueKind.ATOMIC:
            return atomic_fields(value) is not None
        return kind in (ValueKind.PLAIN_OBJECT, ValueKind.ARRAY)

    def _scalar(self, value: Any) -> str:
        o = self.options
        match kind_of(value):
            case ValueKind.NULL | ValueKind.FUNCTION:
                text = o.null_string
            case ValueKind.UNDEFINED:
                text = o.undefined_string
            case ValueKind.BOOLEAN:
                text = format_boolean(value, o.boolean_style)
            case ValueKind.NUMBER:
                text = format_number(value)
            case ValueKind.DATE:
                text = format_date(value, o.date_style)
            case _:
                text = str(value)
        return escape_text(text, self._value_specials, o.escape)

    def _escape_key(self, key: str) -> str:
        return escape_text(key, self._key_specials, self.options.escape)

    # ------------------------------------------------------------------
    # Unflattening
    # ------------------------------------------------------------------

    def _split_entries(self, text: str) -> dict[str, list[str]]:
        o = self.options
        entries: dict[str, list[str]] = {}
        if not text:
            return entries

        current_key: str | None = None
        current_parts: list[str] = []

        def flush() -> None:
            if current_key is not None:
                entries.setdefault(current_key, []).append(
                    o.entry_separator.join(current_parts)
                )

        for part in split_escaped(text, o.entry_separator, o.escape):
            eq = find_unescaped(part, "=", o.escape)
            if eq != -1:
                flush()
                current_key = part[:eq]
                current_parts = [part[eq + 1 :]]
            elif current_key is not None:
                current_parts.append(part)
            else:
                logger.debug("Ignoring segment without key: %r", part)
        flush()
        return entries

    def _key_path(self, key: str) -> list[str]:
        o = self.options
        path: list[str] = []
        for segment in split_escaped(key, o.nesting_separator, o.escape):
            indices: list[str] = []
            if self._bracket:
                bracket = find_unescaped(segment, "[", o.escape)
                if bracket != -1:
                    suffix = segment[bracket:]
                    if not _BRACKETS_RE.match(suffix):
                        raise MalformedEncoding(
                            f"Invalid array index in key {key!r}"
                        )
                    segment = segment[:bracket]
                    indices = re.findall(r"\d+", suffix)
            path.append(unescape_text(segment, self._key_specials, o.escape))
            path.extend(indices)
        return path

    def _unflatten(
        self, entries: Mapping[str, list[str]], initial_state: Any
    ) -> dict[str, Any]:
        o = self.options
        paths = {key: self._key_path(key) for key in entries}
        result: dict[str, Any] = {}

        for key in sorted(entries, key=lambda k: _path_order(paths[k])):
            path = paths[key]
            raw_values = entries[key]
            hint = _hint_at(initial_state, path)
            array_hint = kind_of(hint) is ValueKind.ARRAY

            if len(raw_values) == 1 and (
                (o.empty_array_marker and raw_values[0] == o.empty_array_marker)
                or (raw_values[0] == "" and array_hint)
            ):
                _set_at_path(result, path, [], initial_state)
                continue

            if not self._repeat and array_hint and len(raw_values) == 1:
                raw_values = split_escaped(
                    raw_values[0], o.array_separator, o.escape
                )

            values = [
                unescape_text(raw, self._value_specials, o.escape)
                for raw in raw_values
            ]

            if len(values) == 1 and not array_hint:
                _set_at_path(
                    result, path, self._parse_value(values[0], hint), initial_state
                )
                continue

            element_hint = hint[0] if array_hint and hint else None
            _set_at_path(
                result,
                path,
                [self._parse_value(value, element_hint) for value in values],
                initial_state,
            )

        return result

    def _parse_value(self, text: str, hint: Any) -> Any:
        o = self.options
        if text == o.null_string:
            return None
        if text == o.undefined_string:
            return UNDEFINED
        if text == "":
            return ""

        match kind_of(hint):
            case ValueKind.STRING:
                return text
            case ValueKind.NUMBER:
                number = parse_number(text)
                if number is not None:
                    return number
            case ValueKind.BOOLEAN:
                flag = parse_boolean(text, o.boolean_style)
                if flag is not None:
                    return flag
            case ValueKind.DATE:
                date = parse_date(text, o.date_style, strict=True)
                if date is not None:
                    return match_naive(date, hint)

        if o.parse_booleans:
            flag = parse_boolean(text, "string")
            if flag is not None:
                return flag
        if o.parse_dates:
            date = parse_date(text, o.date_style)
            if date is not None:
                return date
        if o.parse_numbers and _AUTO_NUMBER_RE.match(text):
            return parse_number(text)
        return text


# =============================================================================
# Path helpers
# =============================================================================


def _hint_at(state: Any, path: list[str]) -> Any:
    """Return the baseline value at *path*, or ``None`` when absent."""
    current = state
    for segment in path:
        match kind_of(current):
            case ValueKind.PLAIN_OBJECT:
                current = current.get(segment)
            case ValueKind.ARRAY:
                if not current:
                    return None
                index = int(segment) if _INDEX_RE.match(segment) else 0
                current = current[index] if index < len(current) else current[0]
            case _:
                return None
    return current


def _set_at_path(
    target: dict[str, Any],
    path: list[str],
    value: Any,
    initial_state: Any = None,
) -> None:
    """Assign *value* at *path*, creating missing containers.

    A missing container becomes a list when the baseline holds a list at
    the same path or when its first index is ``0``, and a dict otherwise.
    """
    current: Any = target
    for depth, (segment, next_segment) in enumerate(zip(path, path[1:])):
        child = _get_child(current, segment)
        if child is None:
            as_list = _INDEX_RE.match(next_segment) and (
                next_segment == "0"
                or kind_of(_hint_at(initial_state, path[: depth + 1]))
                is ValueKind.ARRAY
            )
            child = [] if as_list else {}
            _put_child(current, segment, child)
        elif not isinstance(child, (dict, list)):
            raise MalformedEncoding(
                f"Path {'.'.join(path)!r} conflicts with a scalar value"
            )
        current = child
    _put_child(current, path[-1], value)


def _get_child(container: Any, segment: str) -> Any:
    if isinstance(container, list):
        if not _INDEX_RE.match(segment):
            raise MalformedEncoding(
                f"Expected an array index, got {segment!r}"
            )
        index = int(segment)
        return container[index] if index < len(container) else None
    return container.get(segment)


def _put_child(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        if not _INDEX_RE.match(segment):
            raise MalformedEncoding(
                f"Expected an array index, got {segment!r}"
            )
        index = int(segment)
        if index > len(container):
            raise MalformedEncoding(
                f"Array index {index} skips past the end of a list of "
                f"{len(container)}"
            )
        if index == len(container):
            container.append(value)
        else:
            container[index] = value
    else:
        container[segment] = value


def _path_order(path: list[str]) -> tuple[tuple[int, int, str], ...]:
    """Sort key placing parents before children and indices in numeric order."""
    return tuple(
        (0, int(segment), "") if _INDEX_RE.match(segment) else (1, 0, segment)
        for segment in path
    )


# =============================================================================
# Default instance
# =============================================================================

plain = PlainFormat()
