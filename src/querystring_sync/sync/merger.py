"""Deep merge of decoded URL state onto the baseline.

Plain objects merge key by key.  Everything else from the incoming tree
(arrays, dates, atomic objects, primitives) replaces the base value
wholesale, so ``[1, 2, 3]`` merged with ``[9]`` gives ``[9]``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..values import ValueKind, kind_of, snapshot


def deep_merge(base: Any, incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *base* with *incoming* merged in.

    Neither argument is mutated.  ``UNDEFINED`` in *incoming* overwrites
    the base value like any other value.

    Args:
        base: The baseline tree.  A non-object base is treated as empty.
        incoming: The decoded, projected URL state.

    Returns:
        A new tree.
    """
    merged = snapshot(base) if kind_of(base) is ValueKind.PLAIN_OBJECT else {}
    for key, value in incoming.items():
        if kind_of(value) is ValueKind.PLAIN_OBJECT and (
            kind_of(merged.get(key)) is ValueKind.PLAIN_OBJECT
        ):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = snapshot(value)
    return merged
