"""Selector: choose which parts of the state tree sync to the URL.

A selection mirrors the state tree shape::

    {"user": {"name": True}, "filters": True}

``True`` takes the whole subtree, a nested mapping recurses, and
``False`` or an absent key excludes the field.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Union

from ..values import ValueKind, kind_of, snapshot

Selection = Mapping[str, Union[bool, "Selection"]]
SelectionSpec = Callable[[str], Selection]


def select(spec: SelectionSpec | None, pathname: str) -> Selection | None:
    """Resolve the selection for *pathname*.

    Returns ``None`` when there is no spec, meaning "sync everything".
    """
    if spec is None:
        return None
    return spec(pathname)


def project(selection: Selection, state: Any) -> dict[str, Any]:
    """Copy the fields of *state* named by *selection*.

    Fields the state lacks are skipped.  The result shares no mutable
    containers with *state*.

    Examples:
        >>> project({"user": {"name": True}}, {"user": {"name": "A", "age": 1}, "other": 2})
        {'user': {'name': 'A'}}
    """
    if kind_of(state) is not ValueKind.PLAIN_OBJECT:
        return {}

    result: dict[str, Any] = {}
    for key, choice in selection.items():
        if key not in state:
            continue
        if choice is True:
            result[key] = snapshot(state[key])
        elif isinstance(choice, Mapping):
            result[key] = project(choice, state[key])
    return result
