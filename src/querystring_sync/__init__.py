"""Keep application state in the URL query string.

Usage example
-------------
::

    from querystring_sync import MemoryLocation, QueryStringSync, Store, SyncOptions

    location = MemoryLocation("/search?state=query=lamp")
    sync = QueryStringSync(
        SyncOptions(select=lambda pathname: {"query": True, "page": True}),
        location,
        location.pathname_changed,
    )
    store = Store({"query": "", "page": 1, "results": []}, middleware=[sync.middleware])
    sync.bind(store)           # store state is now {"query": "lamp", ...}
    store.set_state({"page": 3})
    location.href              # '/search?state=query=lamp%26page:3'
"""

__version__ = "0.1.0"

from .errors import MalformedEncoding, QueryStringSyncError, UnknownFormatError
from .formats import (
    JsonFormat,
    MarkedFormat,
    MarkedFormatOptions,
    PlainFormat,
    PlainFormatOptions,
    get_format,
)
from .location import Location, MemoryLocation, PathnameSignal
from .store import HostStore, Store
from .sync import (
    LoadResult,
    QueryStringSync,
    QueryUpdate,
    SyncAction,
    SyncOptions,
    compact,
    project,
    select,
)
from .values import UNDEFINED, ValueKind, deep_equal, kind_of

__all__ = [
    "HostStore",
    "JsonFormat",
    "LoadResult",
    "Location",
    "MalformedEncoding",
    "MarkedFormat",
    "MarkedFormatOptions",
    "MemoryLocation",
    "PathnameSignal",
    "PlainFormat",
    "PlainFormatOptions",
    "QueryStringSync",
    "QueryStringSyncError",
    "QueryUpdate",
    "Store",
    "SyncAction",
    "SyncOptions",
    "UNDEFINED",
    "UnknownFormatError",
    "ValueKind",
    "__version__",
    "compact",
    "deep_equal",
    "get_format",
    "kind_of",
    "project",
    "select",
]
