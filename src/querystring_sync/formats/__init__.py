"""Query string formats.

Every format turns a state tree into query string text and back, in two
modes: *namespaced* (whole state under one parameter) and *standalone*
(one parameter per top-level field).

- ``marked`` -- ``MarkedFormat``: compact typed grammar, lossless.
- ``plain``  -- ``PlainFormat``: dot-notation, types inferred from the
  baseline state.
- ``json``   -- ``JsonFormat``: compact JSON text.
"""

from __future__ import annotations

from pydantic import BaseModel

from ..errors import UnknownFormatError
from .common import ParseContext, QueryStringFormat, QueryStringParams
from .json import JsonFormat
from .marked import MarkedFormat, MarkedFormatOptions
from .plain import PlainFormat, PlainFormatOptions

__all__ = [
    "JsonFormat",
    "MarkedFormat",
    "MarkedFormatOptions",
    "ParseContext",
    "PlainFormat",
    "PlainFormatOptions",
    "QueryStringFormat",
    "QueryStringParams",
    "get_format",
]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_FORMAT_MAP: dict[str, type] = {
    "marked": MarkedFormat,
    "plain": PlainFormat,
    "json": JsonFormat,
}


def get_format(
    name: str, options: BaseModel | None = None
) -> QueryStringFormat:
    """Create a format instance by name.

    Args:
        name: One of ``"marked"``, ``"plain"``, ``"json"``.
        options: ``MarkedFormatOptions`` or ``PlainFormatOptions`` for the
            matching format.  Ignored by ``json``.

    Returns:
        A ``QueryStringFormat`` implementation instance.

    Raises:
        UnknownFormatError: If the name is not recognised.
    """
    cls = _FORMAT_MAP.get(name)
    if cls is None:
        raise UnknownFormatError(
            f"Unknown format: '{name}'. Valid formats: {sorted(_FORMAT_MAP.keys())}"
        )
    if cls is JsonFormat:
        return JsonFormat()
    return cls(options)  # type: ignore[return-value]
