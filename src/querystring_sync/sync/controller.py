"""Sync controller: keeps a store and the URL query string in step.

Lifecycle::

    location = MemoryLocation("/items?state=page:2")
    sync = QueryStringSync(SyncOptions(), location, location.pathname_changed)
    store = Store({"page": 1, "query": ""}, middleware=[sync.middleware])
    sync.bind(store)          # captures baseline, restores {"page": 2}
    store.set_state({"query": "lamp"})
    location.href             # '/items?state=page:2%26query=lamp'
    sync.close()

The controller is the only component allowed to touch the URL.  Decoding
failures never reach the host: the baseline is used instead and the bad
parameters are stripped on the next write.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any
from urllib.parse import urlsplit

from ..errors import MalformedEncoding
from ..formats import ParseContext, QueryStringParams
from ..location import Location, PathnameSignal
from ..store import HostStore, StateSetter, StateUpdate
from ..values import deep_equal, is_plain_object, kind_of, snapshot
from .compact import compact
from .merger import deep_merge
from .models import LoadResult, QueryUpdate, SyncAction, SyncOptions
from .querystring import build_query, parse_query, replace_params
from .selection import project, select

logger = logging.getLogger(__name__)


class QueryStringSync:
    """Bidirectional state <-> URL synchronisation.

    Args:
        options: Controller configuration.  Defaults to ``SyncOptions()``.
        location: Live address to read and write.  Without one the
            controller only restores from ``options.url`` and never writes.
        pathname_signal: Route change notifications.  Subscribed once here
            and released by ``close``.
    """

    def __init__(
        self,
        options: SyncOptions | None = None,
        location: Location | None = None,
        pathname_signal: PathnameSignal | None = None,
    ) -> None:
        self.options = options or SyncOptions()
        self.location = location

        self._lock = threading.RLock()
        self._store: HostStore | None = None
        self._baseline: dict[str, Any] = {}
        self._pathname = location.pathname if location is not None else None
        self._writes = 0

        self._unsubscribe: Callable[[], None] | None = None
        if pathname_signal is not None:
            self._unsubscribe = pathname_signal.subscribe(self._on_pathname)

    @property
    def baseline(self) -> dict[str, Any]:
        return self._baseline

    # ------------------------------------------------------------------
    # Pure operations
    # ------------------------------------------------------------------

    def load(
        self, query: str, baseline: dict[str, Any], pathname: str
    ) -> LoadResult:
        """Restore state from a query string.

        Args:
            query: Raw query string, with or without the leading ``?``.
            baseline: Initial state to merge onto.
            pathname: Current route, passed to the selection.

        Returns:
            ``LoadResult`` with the merged state.  If the owned parameters
            are absent the state equals *baseline*; if they cannot be
            decoded the state equals *baseline* and ``clean`` is set.
        """
        try:
            parsed = self._decode(parse_query(query), baseline)
            if parsed is None:
                return LoadResult(state=snapshot(baseline))

            selection = select(self.options.select, pathname)
            if selection is not None:
                parsed = project(selection, parsed)
            return LoadResult(state=deep_merge(baseline, parsed))
        except Exception as e:
            logger.warning("Ignoring undecodable URL state: %s", e)
            return LoadResult(state=snapshot(baseline), clean=True, error=str(e))

    def compute(
        self, state: dict[str, Any], baseline: dict[str, Any], pathname: str
    ) -> QueryUpdate:
        """Encode the part of *state* that differs from *baseline*.

        Calling this twice with the same arguments gives the same result.
        """
        selection = select(self.options.select, pathname)
        if selection is not None:
            current = project(selection, state)
        else:
            current = snapshot(state)

        delta = compact(
            current,
            baseline,
            sync_null=self.options.sync_null,
            sync_undefined=self.options.sync_undefined,
        )
        if self.options.mode == "standalone":
            # Only baseline fields are owned, so only they may be written.
            delta = {key: value for key, value in delta.items() if key in baseline}
        if not delta:
            return QueryUpdate(action=SyncAction.REMOVE)

        fmt = self.options.format
        if self.options.mode == "namespaced":
            value = fmt.stringify(delta)
            params = [(self.options.key, value)] if value else []
        else:
            params = [
                (self.options.prefix + name, value)
                for name, values in fmt.stringify_standalone(delta).items()
                for value in values
            ]

        if not params:
            return QueryUpdate(action=SyncAction.REMOVE)
        return QueryUpdate(action=SyncAction.SET, params=params)

    def apply(
        self, query: str, update: QueryUpdate, baseline: dict[str, Any]
    ) -> str:
        """Return *query* with the owned parameters replaced by *update*.

        The result has no leading ``?``.
        """
        new_params = update.params if update.action is SyncAction.SET else []
        written = {name for name, _ in new_params}
        return build_query(
            replace_params(
                parse_query(query),
                lambda name: name in written or self._owns(name, baseline),
                new_params,
            )
        )

    # ------------------------------------------------------------------
    # Store integration
    # ------------------------------------------------------------------

    def middleware(self, set_state: StateSetter) -> StateSetter:
        """Decorate a store setter so every mutation updates the URL."""

        def set_state_and_sync(update: StateUpdate, replace: bool = False) -> None:
            set_state(update, replace)
            self.on_change()

        return set_state_and_sync

    def bind(self, store: HostStore) -> dict[str, Any]:
        """Attach *store*, restore its state from the URL and return it.

        The baseline is captured from the store before anything from the
        URL is merged in.

        Raises:
            RuntimeError: If a store is already bound.
        """
        with self._lock:
            if self._store is not None:
                raise RuntimeError("QueryStringSync is already bound to a store")
            self._store = store
            self._baseline = snapshot(store.get_state())

            if self.location is not None:
                query, pathname = self.location.search, self.location.pathname
            elif self.options.url:
                parts = urlsplit(self.options.url)
                query, pathname = parts.query, parts.path or "/"
            else:
                return store.get_state()

            result = self.load(query, self._baseline, pathname)
            writes = self._writes
            if not deep_equal(result.state, store.get_state()):
                logger.debug("Restored state from URL: %s", sorted(result.state))
                store.set_state(result.state, replace=True)
            if self._writes == writes:
                # Store without our middleware, or nothing restored.
                self.on_change()
            return store.get_state()

    def on_change(self) -> None:
        """Recompute the owned parameters and write them to the location."""
        with self._lock:
            self._writes += 1
            if self._store is None or self.location is None:
                return

            pathname = self.location.pathname
            try:
                update = self.compute(
                    self._store.get_state(), self._baseline, pathname
                )
                query = self.apply(self.location.search, update, self._baseline)
            except Exception:
                logger.exception("Failed to write state to the URL")
                return

            url = f"{pathname}?{query}" if query else pathname
            self.location.replace(url)

    def close(self) -> None:
        """Stop listening for route changes.  Safe to call twice."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_pathname(self, pathname: str) -> None:
        with self._lock:
            if pathname == self._pathname:
                return
            self._pathname = pathname
            logger.debug("Route changed to %s", pathname)
            self.on_change()

    # ------------------------------------------------------------------
    # Parameter ownership
    # ------------------------------------------------------------------

    def _owns(self, name: str, baseline: dict[str, Any]) -> bool:
        if self.options.mode == "namespaced":
            return name == self.options.key
        prefix = self.options.prefix
        if not name.startswith(prefix):
            return False
        field = self.options.format.top_level_key(name[len(prefix) :])
        return field in baseline

    def _decode(
        self, pairs: list[tuple[str, str]], baseline: dict[str, Any]
    ) -> dict[str, Any] | None:
        fmt = self.options.format
        ctx = ParseContext(initial_state=baseline)

        if self.options.mode == "namespaced":
            value = next(
                (v for name, v in pairs if name == self.options.key), None
            )
            if not value:
                return None
            parsed = fmt.parse(value, ctx)
        else:
            params: QueryStringParams = {}
            for name, value in pairs:
                if self._owns(name, baseline):
                    params.setdefault(name[len(self.options.prefix) :], []).append(value)
            if not params:
                return None
            parsed = fmt.parse_standalone(params, ctx)

        if not is_plain_object(parsed):
            raise MalformedEncoding(
                f"Expected an object at the top level, got {kind_of(parsed).value}"
            )
        return parsed
