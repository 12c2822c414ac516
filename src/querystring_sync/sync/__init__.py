"""State <-> URL synchronisation.

Modules:

- ``controller``  -- ``QueryStringSync``: binds a store to a location.
- ``compact``     -- ``compact``: delta of a state tree against the baseline.
- ``selection``   -- ``select`` / ``project``: per-route field selection.
- ``merger``      -- ``deep_merge``: restore URL state onto the baseline.
- ``querystring`` -- parse, rebuild and splice URL query strings.
- ``models``      -- ``SyncOptions``, ``SyncAction``, ``QueryUpdate``,
  ``LoadResult``: data contracts.
"""

from .compact import compact
from .controller import QueryStringSync
from .merger import deep_merge
from .models import LoadResult, QueryUpdate, SyncAction, SyncOptions
from .querystring import build_query, parse_query, replace_params
from .selection import Selection, SelectionSpec, project, select

__all__ = [
    "LoadResult",
    "QueryStringSync",
    "QueryUpdate",
    "Selection",
    "SelectionSpec",
    "SyncAction",
    "SyncOptions",
    "build_query",
    "compact",
    "deep_merge",
    "parse_query",
    "project",
    "replace_params",
    "select",
]
