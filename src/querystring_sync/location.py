"""URL boundary: where the controller reads and writes the address.

``Location`` is the protocol the controller needs from the host (a
browser history adapter, a request object, a test double).
``MemoryLocation`` is an in-process implementation.  Route changes are
pushed through an explicit ``PathnameSignal`` instead of being polled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

PathnameListener = Callable[[str], None]


class Location(Protocol):
    """Read and replace the current address."""

    @property
    def pathname(self) -> str:
        """Path component, e.g. ``/search``."""
        ...  # pragma: no cover

    @property
    def search(self) -> str:
        """Query component including the leading ``?``, or ``""``."""
        ...  # pragma: no cover

    def replace(self, url: str) -> None:
        """Replace the current address without adding a history entry."""
        ...  # pragma: no cover


class PathnameSignal:
    """Notifies subscribers when the route changes."""

    def __init__(self) -> None:
        self._listeners: list[PathnameListener] = []

    def subscribe(self, listener: PathnameListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, pathname: str) -> None:
        for listener in list(self._listeners):
            listener(pathname)

    def __len__(self) -> int:
        return len(self._listeners)


class MemoryLocation:
    """In-memory ``Location`` that records every replacement.

    Args:
        url: Initial address, e.g. ``/items?page=2``.

    Attributes:
        replacements: Every URL passed to ``replace``, oldest first.
        pathname_changed: Emits the new pathname after ``navigate``.
    """

    def __init__(self, url: str = "/") -> None:
        self._pathname = "/"
        self._query = ""
        self._set(url)
        self.replacements: list[str] = []
        self.pathname_changed = PathnameSignal()

    @property
    def pathname(self) -> str:
        return self._pathname

    @property
    def search(self) -> str:
        return f"?{self._query}" if self._query else ""

    @property
    def href(self) -> str:
        return self._pathname + self.search

    def replace(self, url: str) -> None:
        logger.debug("replace %s", url)
        self._set(url)
        self.replacements.append(url)

    def navigate(self, url: str) -> None:
        """Go to *url* and notify route subscribers if the path changed."""
        previous = self._pathname
        self._set(url)
        if self._pathname != previous:
            self.pathname_changed.emit(self._pathname)

    def _set(self, url: str) -> None:
        parts = urlsplit(url)
        self._pathname = parts.path or "/"
        self._query = parts.query
