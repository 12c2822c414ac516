"""URL query string boundary.

Encoded values keep the grammar characters readable in the address bar.
Only characters that would break the query itself (``&``, ``+``, ``#``),
whitespace and non-ASCII text are percent-encoded.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from urllib.parse import parse_qsl, quote

QueryPairs = list[tuple[str, str]]

VALUE_SAFE = "$@:=;/,.~!*'()"
KEY_SAFE = "$@:;/,.~!*'()"


def parse_query(search: str) -> QueryPairs:
    """Split ``?a=1&b=2`` into ordered, decoded ``(name, value)`` pairs."""
    return parse_qsl(search.lstrip("?"), keep_blank_values=True)


def build_query(pairs: Iterable[tuple[str, str]]) -> str:
    """Inverse of ``parse_query`` (without the leading ``?``)."""
    return "&".join(
        f"{quote(key, safe=KEY_SAFE)}={quote(value, safe=VALUE_SAFE)}"
        for key, value in pairs
    )


def replace_params(
    pairs: Iterable[tuple[str, str]],
    owned: Callable[[str], bool],
    new_params: Iterable[tuple[str, str]],
) -> QueryPairs:
    """Swap the owned parameters in *pairs* for *new_params*.

    Parameters that are not owned keep their relative order.  The new
    parameters go where the first owned one was, or at the end.
    """
    replacement = list(new_params)
    result: QueryPairs = []
    inserted = False
    for key, value in pairs:
        if owned(key):
            if not inserted:
                result.extend(replacement)
                inserted = True
            continue
        result.append((key, value))
    if not inserted:
        result.extend(replacement)
    return result
