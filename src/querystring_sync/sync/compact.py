"""Diff engine: reduce a state tree to what differs from the baseline.

Only plain objects are recursed into.  Arrays, dates and atomic objects
are compared structurally and, when they differ, emitted whole, so the
URL never carries a partial array.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..values import UNDEFINED, ValueKind, deep_equal, kind_of


def compact(
    current: Mapping[str, Any],
    baseline: Any,
    sync_null: bool = False,
    sync_undefined: bool = False,
) -> dict[str, Any]:
    """Return the minimal delta between *current* and *baseline*.

    Keys missing from *current* never appear in the delta; removal is not
    representable.  Neither input is mutated, but included values are not
    copied either.

    Args:
        current: State tree (usually already projected by a selection).
        baseline: Reference tree.  Anything that is not a plain object is
            treated as an empty one.
        sync_null: Include keys whose value is ``None``.
        sync_undefined: Include keys whose value is ``UNDEFINED``.

    Returns:
        A new dict holding only the changed keys.

    Examples:
        >>> compact({"a": 1, "b": {"c": 2, "d": 3}}, {"a": 1, "b": {"c": 2}})
        {'b': {'d': 3}}
    """
    if kind_of(baseline) is not ValueKind.PLAIN_OBJECT:
        baseline = {}

    delta: dict[str, Any] = {}
    for key, value in current.items():
        kind = kind_of(value)
        if kind is ValueKind.FUNCTION:
            continue
        if kind is ValueKind.NULL and not sync_null:
            continue
        if kind is ValueKind.UNDEFINED and not sync_undefined:
            continue

        previous = baseline.get(key, UNDEFINED)
        if deep_equal(value, previous):
            continue

        if kind is ValueKind.PLAIN_OBJECT:
            nested = compact(value, previous, sync_null, sync_undefined)
            if nested:
                delta[key] = nested
        else:
            # Arrays, dates and atomic objects go in whole.
            delta[key] = value
    return delta
