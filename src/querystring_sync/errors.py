"""Error taxonomy for querystring_sync.

Only ``MalformedEncoding`` is raised during normal operation, by the
format parsers.  The sync controller catches it at its boundary and falls
back to the baseline state, so host applications never see it unless they
call a format directly.
"""

from __future__ import annotations

__all__ = [
    "MalformedEncoding",
    "QueryStringSyncError",
    "UnknownFormatError",
]


class QueryStringSyncError(Exception):
    """Base class for all errors raised by querystring_sync."""


class MalformedEncoding(QueryStringSyncError, ValueError):
    """An encoded parameter value could not be parsed.

    Attributes:
        position: Offset in the decoded input where parsing stopped, or
            ``None`` when the failure is not tied to a position.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class UnknownFormatError(QueryStringSyncError, ValueError):
    """A format name in configuration does not match a known format."""
