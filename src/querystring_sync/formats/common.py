"""Common types and helpers shared by the query string formats."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Protocol

# Parameter name -> list of raw (not percent-encoded) values.
QueryStringParams = dict[str, list[str]]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# =============================================================================
# Format protocol
# =============================================================================


@dataclass(frozen=True)
class ParseContext:
    """Extra information a format may use while decoding.

    Attributes:
        initial_state: The baseline state.  Formats that cannot carry type
            information on the wire (plain, json) use it as a type hint.
    """

    initial_state: dict[str, Any] = field(default_factory=dict)


class QueryStringFormat(Protocol):
    """Protocol that all query string formats must satisfy."""

    name: str

    def stringify(self, state: dict[str, Any]) -> str:
        """Encode a whole state tree as one parameter value."""
        ...  # pragma: no cover

    def parse(
        self, value: str, ctx: ParseContext | None = None
    ) -> dict[str, Any]:
        """Decode one parameter value back into a state tree.

        Raises:
            MalformedEncoding: If *value* is not valid for this format.
        """
        ...  # pragma: no cover

    def stringify_standalone(
        self, state: dict[str, Any]
    ) -> QueryStringParams:
        """Encode each top-level field as its own parameter."""
        ...  # pragma: no cover

    def parse_standalone(
        self, params: QueryStringParams, ctx: ParseContext
    ) -> dict[str, Any]:
        """Decode parameters produced by ``stringify_standalone``."""
        ...  # pragma: no cover

    def top_level_key(self, param_key: str) -> str:
        """Return the state field a standalone parameter belongs to."""
        ...  # pragma: no cover


# =============================================================================
# Number text
# =============================================================================

_NUMBER_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^-?\d+$")

_SENTINELS: dict[str, float] = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}


def format_number(number: int | float) -> str:
    """Return the canonical text form of *number*.

    Examples:
        >>> format_number(5.0)
        '5'
        >>> format_number(float("-inf"))
        '-Infinity'
        >>> format_number(-0.0)
        '-0'
    """
    if isinstance(number, int):
        return str(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "-0" if math.copysign(1.0, number) < 0 else "0"
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    return repr(number)


def parse_number(text: str) -> int | float | None:
    """Parse canonical number text; return ``None`` if it is not a number."""
    if text in _SENTINELS:
        return _SENTINELS[text]
    if not _NUMBER_RE.match(text):
        return None
    if text == "-0":
        return -0.0
    if _INTEGER_RE.match(text):
        return int(text)
    return float(text)


# =============================================================================
# Date text
# =============================================================================


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def date_to_millis(value: datetime) -> int:
    """Return *value* as whole milliseconds since the Unix epoch."""
    return (_as_utc(value) - EPOCH) // timedelta(milliseconds=1)


def millis_to_date(millis: int) -> datetime:
    """Inverse of ``date_to_millis`` (always timezone-aware UTC)."""
    return EPOCH + timedelta(milliseconds=millis)


_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")


def date_to_iso(value: datetime) -> str:
    """Format *value* like ``2024-01-31T12:00:00.000Z``."""
    text = _as_utc(value).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def iso_to_date(text: str) -> datetime | None:
    """Parse an ISO 8601 timestamp; return ``None`` if it is not one."""
    if not _ISO_DATE_RE.match(text):
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _as_utc(parsed)


def match_naive(value: datetime, hint: Any) -> datetime:
    """Drop the UTC offset of *value* when *hint* is a naive datetime."""
    if isinstance(hint, datetime) and hint.tzinfo is None:
        return value.replace(tzinfo=None)
    return value


# =============================================================================
# Configurable text styles
# =============================================================================

DateStyle = Literal["iso", "timestamp"]
BooleanStyle = Literal["string", "number"]

_TIMESTAMP_RE = re.compile(r"^-?\d+$")

# Auto-detected timestamps must fall between 1990-01-01 and 3000-01-01.
_MIN_PLAUSIBLE_MILLIS = 631152000000
_MAX_PLAUSIBLE_MILLIS = 32503680000000


def format_date(value: datetime, style: DateStyle) -> str:
    """Format *value* as epoch milliseconds or ISO 8601 text."""
    if style == "timestamp":
        return str(date_to_millis(value))
    return date_to_iso(value)


def parse_date(
    text: str, style: DateStyle, strict: bool = False
) -> datetime | None:
    """Parse text written by ``format_date``; return ``None`` otherwise.

    Args:
        text: Candidate date text.
        style: ``timestamp`` also accepts epoch milliseconds.  ISO text is
            accepted in both styles.
        strict: Accept any timestamp.  When ``False`` only timestamps
            between 1990 and 3000 count, so small integers stay numbers.
    """
    if style == "timestamp" and _TIMESTAMP_RE.match(text):
        millis = int(text)
        if not strict and not (
            _MIN_PLAUSIBLE_MILLIS <= millis <= _MAX_PLAUSIBLE_MILLIS
        ):
            return None
        try:
            return millis_to_date(millis)
        except OverflowError:
            return None
    return iso_to_date(text)


def format_boolean(value: bool, style: BooleanStyle) -> str:
    if style == "number":
        return "1" if value else "0"
    return "true" if value else "false"


def parse_boolean(text: str, style: BooleanStyle) -> bool | None:
    """Parse ``true``/``false``, plus ``1``/``0`` in the ``number`` style."""
    if text in ("true", "false"):
        return text == "true"
    if style == "number" and text in ("1", "0"):
        return text == "1"
    return None
