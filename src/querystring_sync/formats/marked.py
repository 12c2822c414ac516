"""Marked (compact) query string format.

A terse, self-describing grammar in the spirit of URLON.  Every value is
prefixed with a one-character type marker, aggregates are closed by a
terminator, and structural characters inside text are escaped:

======================  =====================================================
Token (default)         Meaning
======================  =====================================================
``:``                   primitive (number, boolean, null, undefined) follows
``=``                   string follows; ``=D<millis>`` is a date
``@`` ... ``;``         array, elements joined by the separator
``$`` ... ``;``         object, ``key`` + value pairs joined by the separator
``&``                   separator between array elements / object entries
``;``                   terminator of the nearest array or object
``/``                   escape: the next character is literal
======================  =====================================================

Example::

    {"count": 5, "tags": ["x"]}  ->  $count:5&tags@=x;;

At the top level the leading object marker and all trailing terminators
are trimmed (``count:5&tags@=x``); the parser restores them.  A dangling
escape at the end of input stands for the trimmed terminator it used to
escape.

Two modes:

* **Namespaced** (``stringify`` / ``parse``): the whole state in one value.
* **Standalone** (``stringify_standalone`` / ``parse_standalone``): one
  value per top-level field; bare strings drop their marker.

Standalone values can go further and drop the primitive marker
(``page=3``) or the array marker and terminator (``tags=:1&:2``), see
``bare_primitives`` and ``bare_arrays``.  Unmarked values are then typed
from the baseline and auto-detection, like the plain format.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

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

_DATE_SHAPES: dict[str, re.Pattern[str]] = {
    "timestamp": re.compile(r"^-?\d+$"),
    "iso": re.compile(
        r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?$"
    ),
}


# =============================================================================
# Configuration
# =============================================================================


class MarkedFormatOptions(BaseModel):
    """Token table and value styles for the marked format.

    All tokens must be single characters and mutually distinct.
    ``bare_primitives`` and ``bare_arrays`` only apply to standalone
    parameters; a format using them rejects namespaced encoding.
    """

    type_object: str = Field(default="$", description="Object marker")
    type_array: str = Field(default="@", description="Array marker")
    type_string: str = Field(default="=", description="String marker")
    type_primitive: str = Field(
        default=":",
        description="Marker for numbers, booleans, null and undefined",
    )
    separator: str = Field(
        default="&", description="Separator between entries"
    )
    terminator: str = Field(
        default=";", description="Closes the nearest array or object"
    )
    escape: str = Field(default="/", description="Escape character")
    date_prefix: str | None = Field(
        default="D",
        description="Prefix of encoded dates; None writes dates unmarked",
    )
    date_style: DateStyle = Field(
        default="timestamp",
        description="Dates as epoch milliseconds or ISO 8601 text",
    )
    boolean_style: BooleanStyle = Field(
        default="string", description="Booleans as true/false or 1/0"
    )
    parse_numbers: bool = Field(
        default=True, description="Auto-detect numbers in unmarked values"
    )
    parse_booleans: bool = Field(
        default=True, description="Auto-detect true/false in unmarked values"
    )
    parse_dates: bool = Field(
        default=True, description="Auto-detect dates in unmarked values"
    )
    bare_primitives: bool = Field(
        default=False,
        description="Drop the primitive marker from standalone values",
    )
    bare_arrays: bool = Field(
        default=False,
        description="Drop the array marker and terminator from standalone values",
    )
    trim: bool = Field(
        default=True,
        description="Trim the top-level object marker and trailing terminators",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_tokens(self) -> MarkedFormatOptions:
        tokens = {
            "type_object": self.type_object,
            "type_array": self.type_array,
            "type_string": self.type_string,
            "type_primitive": self.type_primitive,
            "separator": self.separator,
            "terminator": self.terminator,
            "escape": self.escape,
        }
        seen: dict[str, str] = {}
        for name, token in tokens.items():
            if len(token) != 1:
                raise ValueError(
                    f"{name} must be a single character, got {token!r}"
                )
            if token in seen:
                raise ValueError(
                    f"Collision: '{name}' and '{seen[token]}' both use {token!r}"
                )
            seen[token] = name

        if self.date_prefix is None:
            return self
        if not self.date_prefix:
            raise ValueError("date_prefix must be non-empty, or None")
        for ch in self.date_prefix:
            if ch in seen:
                raise ValueError(
                    f"date_prefix {self.date_prefix!r} conflicts with '{seen[ch]}'"
                )
        return self


# =============================================================================
# Format
# =============================================================================


class MarkedFormat:
    """Encode and decode state trees with the marked grammar.

    Args:
        options: Token table.  Defaults to ``MarkedFormatOptions()``.
    """

    name = "marked"

    def __init__(self, options: MarkedFormatOptions | None = None) -> None:
        self.options = options or MarkedFormatOptions()
        o = self.options

        self.markers = frozenset(
            {o.type_object, o.type_array, o.type_string, o.type_primitive}
        )
        self.value_stops = frozenset({o.separator, o.terminator})
        self.key_stops = self.markers | self.value_stops
        self._value_specials = self.value_stops | {o.escape}
        self._key_specials = self.key_stops | {o.escape}
        self._date_shape = _DATE_SHAPES[o.date_style]

        self._date_start: re.Pattern[str] | None = None
        if o.date_prefix is not None:
            self._date_start = re.compile(rf"^{re.escape(o.date_prefix)}-?\d")

    @property
    def standalone_only(self) -> bool:
        """True when the options only make sense for standalone parameters."""
        return self.options.bare_primitives or self.options.bare_arrays

    # ------------------------------------------------------------------
    # Namespaced mode
    # ------------------------------------------------------------------

    def stringify(self, state: Any) -> str:
        """Encode *state* (usually a dict) as a single string."""
        self._check_namespaced()
        return self._clean(self._serialize(state) or "", standalone=False)

    def parse(self, value: str, ctx: ParseContext | None = None) -> Any:
        """Decode a string produced by ``stringify``.

        Raises:
            MalformedEncoding: On unexpected markers, missing values or
                trailing garbage.
        """
        self._check_namespaced()
        ctx = ctx or ParseContext()
        return self._apply_hints(
            self.loads(value, standalone=False), ctx.initial_state
        )

    def _check_namespaced(self) -> None:
        if self.standalone_only:
            raise ValueError(
                "bare_primitives and bare_arrays can only be used with "
                "standalone parameters"
            )

    # ------------------------------------------------------------------
    # Standalone mode
    # ------------------------------------------------------------------

    def stringify_standalone(
        self, state: Mapping[str, Any]
    ) -> QueryStringParams:
        """Encode each top-level field of *state* as its own parameter."""
        result: QueryStringParams = {}
        for key, item in state.items():
            encoded = self._serialize(item, standalone=True)
            if encoded is None:
                continue
            result[str(key)] = [self._clean(encoded, standalone=True)]
        return result

    def parse_standalone(
        self, params: QueryStringParams, ctx: ParseContext
    ) -> dict[str, Any]:
        """Decode parameters produced by ``stringify_standalone``."""
        ctx = ctx or ParseContext()
        result: dict[str, Any] = {}
        for key, values in params.items():
            if not values:
                continue
            hint = ctx.initial_state.get(key)
            if self.options.bare_arrays and kind_of(hint) is ValueKind.ARRAY:
                value = self._loads_bare_array(values[0], hint)
            else:
                value = self.loads(values[0], standalone=True, hint=hint)
            result[key] = self._apply_hints(value, hint)
        return result

    def top_level_key(self, param_key: str) -> str:
        return param_key

    # ------------------------------------------------------------------
    # Decoding entry points
    # ------------------------------------------------------------------

    def loads(self, text: str, standalone: bool = False, hint: Any = None) -> Any:
        """Decode *text*, restoring any trimmed top-level tokens."""
        if not text:
            return "" if standalone else {}

        if text[0] in self.markers:
            source = text
        elif standalone:
            return self._parse_bare(text, hint)
        else:
            source = self.options.type_object + text

        reader = _Reader(self, source)
        value = reader.parse_value()
        reader.skip_terminators()
        self._expect_end(reader)
        return value

    def _loads_bare_array(self, text: str, hint: list[Any]) -> list[Any]:
        if not text:
            return []
        element_hint = hint[0] if hint else None
        reader = _Reader(self, text)

        def read_unmarked() -> Any:
            if not self.options.bare_primitives:
                return reader.parse_string()
            raw, escaped_first = reader.read_until(self.value_stops)
            return self._bare_value(raw, escaped_first, element_hint)

        items = reader.parse_items(read_unmarked)
        self._expect_end(reader)
        return items

    @staticmethod
    def _expect_end(reader: _Reader) -> None:
        if not reader.at_end():
            raise MalformedEncoding(
                f"Unexpected trailing input at position {reader.pos}",
                reader.pos,
            )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _serialize(
        self, value: Any, standalone: bool = False, in_array: bool = False
    ) -> str | None:
        o = self.options
        primitive = "" if standalone and o.bare_primitives else o.type_primitive
        match kind_of(value):
            case ValueKind.FUNCTION:
                # Functions have no representation; keep array positions.
                return f"{primitive}null" if in_array else None
            case ValueKind.NULL:
                return f"{primitive}null"
            case ValueKind.UNDEFINED:
                return f"{primitive}undefined"
            case ValueKind.BOOLEAN:
                return primitive + format_boolean(value, o.boolean_style)
            case ValueKind.NUMBER:
                text = format_number(value)
                return primitive + self._escape(text, self._value_specials)
            case ValueKind.DATE:
                text = format_date(value, o.date_style)
                if o.date_prefix is not None:
                    return o.type_string + o.date_prefix + text
                return text if standalone and not in_array else o.type_string + text
            case ValueKind.STRING:
                return self._serialize_string(
                    value, bare=standalone and not in_array
                )
            case ValueKind.ARRAY:
                if standalone and not in_array and o.bare_arrays:
                    return o.separator.join(
                        self._serialize(item, standalone=True, in_array=True) or ""
                        for item in value
                    )
                items = [
                    self._serialize(item, in_array=True) or ""
                    for item in value
                ]
                return o.type_array + o.separator.join(items) + o.terminator
            case ValueKind.PLAIN_OBJECT:
                return self._serialize_object(value)
            case _:
                fields = atomic_fields(value)
                if fields is None:
                    return self._serialize(str(value), standalone, in_array)
                return self._serialize_object(fields)

    def _serialize_object(self, mapping: Mapping[Any, Any]) -> str:
        o = self.options
        entries: list[str] = []
        for key, item in mapping.items():
            encoded = self._serialize(item)
            if encoded is None:
                continue
            entries.append(
                self._escape(str(key), self._key_specials) + encoded
            )
        return o.type_object + o.separator.join(entries) + o.terminator

    def _serialize_string(self, text: str, bare: bool) -> str:
        o = self.options
        escaped = self._escape(text, self._value_specials)
        if not escaped.startswith(o.escape) and self._looks_typed(text, bare):
            escaped = o.escape + escaped
        return escaped if bare else o.type_string + escaped

    def _looks_typed(self, text: str, bare: bool) -> bool:
        """Tell whether *text* would decode as something other than itself."""
        o = self.options
        if self._date_start is not None:
            if self._date_start.match(text):
                return True
        elif o.parse_dates and parse_date(text, o.date_style) is not None:
            return True
        if not bare:
            return False
        if text[:1] in self.markers:
            return True
        return o.bare_primitives and not isinstance(
            self._bare_value(text, False), str
        )

    def _escape(self, text: str, specials: frozenset[str]) -> str:
        esc = self.options.escape
        return "".join(esc + ch if ch in specials else ch for ch in text)

    def _clean(self, text: str, standalone: bool) -> str:
        o = self.options
        if not o.trim:
            return text

        text = text.rstrip(o.terminator)

        if standalone:
            body = text[len(o.type_string) :]
            if text.startswith(o.type_string) and self._is_date_text(body):
                return body
            return text

        if text.startswith(o.type_object):
            rest = text[len(o.type_object) :]
            if not rest or rest[0] not in self.markers:
                return rest
        return text

    # ------------------------------------------------------------------
    # Dates and unmarked values
    # ------------------------------------------------------------------

    def _is_date_text(self, text: str) -> bool:
        prefix = self.options.date_prefix
        return (
            prefix is not None
            and text.startswith(prefix)
            and bool(self._date_shape.match(text[len(prefix) :]))
        )

    def _read_date(self, text: str, position: int) -> datetime | None:
        """Decode *text* as a date, or return ``None`` if it is not one.

        With a date prefix the prefix decides and a malformed body is an
        error.  Without one, dates are auto-detected when ``parse_dates``
        is on.
        """
        o = self.options
        if o.date_prefix is None:
            return parse_date(text, o.date_style) if o.parse_dates else None
        if not self._is_date_text(text):
            return None
        date = parse_date(text[len(o.date_prefix) :], o.date_style, strict=True)
        if date is None:
            raise MalformedEncoding(
                f"Invalid date at position {position}: {text!r}", position
            )
        return date

    def _parse_bare(self, text: str, hint: Any = None) -> Any:
        o = self.options
        chars: list[str] = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == o.escape:
                i += 1
                chars.append(text[i] if i < len(text) else o.terminator)
            else:
                chars.append(ch)
            i += 1
        return self._bare_value("".join(chars), text[:1] == o.escape, hint)

    def _bare_value(self, text: str, escaped_first: bool, hint: Any = None) -> Any:
        """Decode an unmarked standalone value."""
        o = self.options
        if escaped_first:
            return text
        if not o.bare_primitives:
            date = self._read_date(text, 0)
            return text if date is None else date
        if o.date_prefix is not None:
            date = self._read_date(text, 0)
            if date is not None:
                return date

        if text == "null":
            return None
        if text == "undefined":
            return UNDEFINED

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
                    return date

        if o.parse_booleans:
            flag = parse_boolean(text, "string")
            if flag is not None:
                return flag
        if o.date_prefix is None:
            date = self._read_date(text, 0)
            if date is not None:
                return date
        if o.parse_numbers:
            number = parse_number(text)
            if number is not None:
                return number
        return text

    def _apply_hints(self, value: Any, hint: Any) -> Any:
        """Adjust decoded values to the baseline at the same path.

        Dates become naive where the baseline date is naive, and ``1``/``0``
        become booleans where the baseline holds a boolean and booleans are
        written as numbers.
        """
        o = self.options
        match kind_of(value):
            case ValueKind.DATE:
                return match_naive(value, hint)
            case ValueKind.NUMBER if (
                o.boolean_style == "number"
                and isinstance(hint, bool)
                and value in (0, 1)
            ):
                return bool(value)
            case ValueKind.STRING if (
                o.date_prefix is None and isinstance(hint, datetime)
            ):
                date = parse_date(value, o.date_style, strict=True)
                return value if date is None else match_naive(date, hint)
            case ValueKind.PLAIN_OBJECT if isinstance(hint, dict):
                return {
                    key: self._apply_hints(item, hint.get(key))
                    for key, item in value.items()
                }
            case ValueKind.ARRAY if isinstance(hint, list) and hint:
                return [self._apply_hints(item, hint[0]) for item in value]
            case _:
                return value


# =============================================================================
# Recursive-descent reader
# =============================================================================


class _Reader:
    """Single-cursor recursive-descent parser over one source string."""

    def __init__(self, fmt: MarkedFormat, source: str) -> None:
        self.fmt = fmt
        self.opts = fmt.options
        self.source = source
        self.pos = 0
        self._readers: dict[str, Callable[[], Any]] = {
            self.opts.type_primitive: self.parse_primitive,
            self.opts.type_array: self.parse_array,
            self.opts.type_object: self.parse_object,
            self.opts.type_string: self.parse_string,
        }

    def at_end(self) -> bool:
        return self.pos >= len(self.source)

    def peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def skip_terminators(self) -> None:
        while not self.at_end() and self.peek() == self.opts.terminator:
            self.pos += 1

    def read_until(self, stops: frozenset[str]) -> tuple[str, bool]:
        """Read text up to an unescaped stop character.

        Returns:
            ``(text, escaped_first)`` where *escaped_first* tells whether
            the first character was escaped.
        """
        esc = self.opts.escape
        chars: list[str] = []
        escaped_first = False
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == esc:
                if not chars:
                    escaped_first = True
                self.pos += 1
                if self.pos < len(self.source):
                    chars.append(self.source[self.pos])
                    self.pos += 1
                else:
                    chars.append(self.opts.terminator)
                continue
            if ch in stops:
                break
            chars.append(ch)
            self.pos += 1
        return "".join(chars), escaped_first

    def parse_value(self) -> Any:
        if self.at_end():
            raise MalformedEncoding(
                f"Unexpected end of input at position {self.pos}", self.pos
            )
        tag = self.peek()
        reader = self._readers.get(tag)
        if reader is None:
            raise MalformedEncoding(
                f"Unexpected type marker {tag!r} at position {self.pos}",
                self.pos,
            )
        self.pos += 1
        return reader()

    def parse_primitive(self) -> Any:
        text, _ = self.read_until(self.fmt.value_stops)
        match text:
            case "null":
                return None
            case "undefined":
                return UNDEFINED
            case "true":
                return True
            case "false":
                return False
            case _:
                # Anything that is not a number decodes to null.
                return parse_number(text)

    def parse_string(self) -> Any:
        start = self.pos
        text, escaped_first = self.read_until(self.fmt.value_stops)
        if not escaped_first:
            date = self.fmt._read_date(text, start)
            if date is not None:
                return date
        return text

    def parse_array(self) -> list[Any]:
        return self.parse_items(self.parse_string)

    def parse_items(self, read_unmarked: Callable[[], Any]) -> list[Any]:
        """Read separated items up to and including the terminator."""
        sep, term = self.opts.separator, self.opts.terminator
        items: list[Any] = []
        trailing_separator = False

        while not self.at_end() and self.peek() != term:
            if self.peek() == sep:
                items.append("")
                self.pos += 1
                trailing_separator = True
                continue

            if self.peek() in self.fmt.markers:
                items.append(self.parse_value())
            else:
                items.append(read_unmarked())

            trailing_separator = False
            if not self.at_end() and self.peek() == sep:
                self.pos += 1
                trailing_separator = True

        if trailing_separator:
            items.append("")
        if not self.at_end():
            self.pos += 1
        return items

    def parse_object(self) -> dict[str, Any]:
        sep, term = self.opts.separator, self.opts.terminator
        result: dict[str, Any] = {}

        while not self.at_end() and self.peek() != term:
            key, _ = self.read_until(self.fmt.key_stops)
            if self.at_end() or self.peek() not in self.fmt.markers:
                raise MalformedEncoding(
                    f"Missing value for key {key!r} at position {self.pos}",
                    self.pos,
                )
            result[key] = self.parse_value()
            if not self.at_end() and self.peek() == sep:
                self.pos += 1

        if not self.at_end():
            self.pos += 1
        return result


# =============================================================================
# Default instance
# =============================================================================

marked = MarkedFormat()
