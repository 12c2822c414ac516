"""Value model shared by the codecs, the diff engine and the selector.

Every state value falls into exactly one ``ValueKind``.  ``kind_of()``
resolves the discriminant once so that consumers can ``match`` on it
instead of sprinkling ``isinstance`` checks around:

- ``None`` -> ``NULL``
- ``UNDEFINED`` -> ``UNDEFINED`` (explicit "no value" sentinel)
- ``bool`` -> ``BOOLEAN``
- ``int`` / ``float`` -> ``NUMBER``
- ``str`` -> ``STRING``
- ``datetime`` -> ``DATE``
- ``list`` / ``tuple`` -> ``ARRAY``
- ``dict`` -> ``PLAIN_OBJECT``
- other callables -> ``FUNCTION`` (never serialized)
- anything else -> ``ATOMIC`` (compared structurally, never recursed into)
"""

from __future__ import annotations

import copy
from datetime import datetime
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    """Discriminant of the value variant."""

    NULL = "null"
    UNDEFINED = "undefined"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    ARRAY = "array"
    PLAIN_OBJECT = "object"
    ATOMIC = "atomic"
    FUNCTION = "function"


class _Undefined:
    """Singleton type of ``UNDEFINED``."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Undefined:
        return self

    def __deepcopy__(self, memo: dict) -> _Undefined:
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def kind_of(value: Any) -> ValueKind:
    """Return the ``ValueKind`` of *value*."""
    match value:
        case None:
            return ValueKind.NULL
        case _Undefined():
            return ValueKind.UNDEFINED
        case bool():
            return ValueKind.BOOLEAN
        case int() | float():
            return ValueKind.NUMBER
        case str():
            return ValueKind.STRING
        case datetime():
            return ValueKind.DATE
        case list() | tuple():
            return ValueKind.ARRAY
        case dict():
            return ValueKind.PLAIN_OBJECT
    if callable(value):
        return ValueKind.FUNCTION
    return ValueKind.ATOMIC


def is_plain_object(value: Any) -> bool:
    """Return ``True`` if *value* is a literal key/value mapping."""
    return kind_of(value) is ValueKind.PLAIN_OBJECT


def atomic_fields(value: Any) -> dict[str, Any] | None:
    """Return the instance attributes of an atomic object.

    Returns ``None`` for objects that carry no ``__dict__`` (slotted
    classes, C types), which callers then treat as opaque scalars.
    """
    fields = getattr(value, "__dict__", None)
    if not isinstance(fields, dict):
        return None
    return dict(fields)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality over the value model.

    Numbers use float semantics, so ``NaN`` is never equal to itself.
    Atomic objects of the same type are compared attribute by attribute.
    """
    kind = kind_of(a)
    if kind is not kind_of(b):
        return False

    match kind:
        case ValueKind.NUMBER:
            return a == b
        case ValueKind.ARRAY:
            return len(a) == len(b) and all(
                deep_equal(x, y) for x, y in zip(a, b)
            )
        case ValueKind.PLAIN_OBJECT:
            if a.keys() != b.keys():
                return False
            return all(deep_equal(a[key], b[key]) for key in a)
        case ValueKind.ATOMIC:
            if type(a) is not type(b):
                return False
            fields_a, fields_b = atomic_fields(a), atomic_fields(b)
            if fields_a is None or fields_b is None:
                return a is b or a == b
            return deep_equal(fields_a, fields_b)
        case ValueKind.FUNCTION:
            return a is b
        case _:
            return a == b


def snapshot(value: Any) -> Any:
    """Return a structural copy of *value*.

    Plain objects and arrays are copied recursively, functions are kept
    by reference and atomic objects are deep-copied.  Strings, numbers and
    dates are immutable and returned as-is.
    """
    match kind_of(value):
        case ValueKind.PLAIN_OBJECT:
            return {key: snapshot(item) for key, item in value.items()}
        case ValueKind.ARRAY:
            items = [snapshot(item) for item in value]
            return tuple(items) if isinstance(value, tuple) else items
        case ValueKind.ATOMIC:
            return copy.deepcopy(value)
        case _:
            return value
