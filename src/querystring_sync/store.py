"""Host store boundary.

``HostStore`` is what the controller needs from the application's state
container.  ``Store`` is a small reference implementation whose
``set_state`` runs through an explicit middleware chain, which is how the
controller hears about mutations.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol, Union

logger = logging.getLogger(__name__)

StateUpdate = Union[Mapping[str, Any], Callable[[dict[str, Any]], Mapping[str, Any]]]
StateSetter = Callable[..., None]
Middleware = Callable[[StateSetter], StateSetter]
Listener = Callable[[dict[str, Any], dict[str, Any]], None]


class HostStore(Protocol):
    """Minimal store interface used by ``QueryStringSync.bind``."""

    def get_state(self) -> dict[str, Any]:
        ...  # pragma: no cover

    def set_state(self, update: StateUpdate, replace: bool = False) -> None:
        ...  # pragma: no cover


class Store:
    """Dict-backed state container.

    Args:
        initial_state: Starting state.  Copied shallowly.
        middleware: Setter decorators, outermost first.  Each receives the
            next setter and returns a new one.
    """

    def __init__(
        self,
        initial_state: Mapping[str, Any],
        middleware: Iterable[Middleware] = (),
    ) -> None:
        self._state: dict[str, Any] = dict(initial_state)
        self._listeners: list[Listener] = []

        setter: StateSetter = self._write
        for decorate in reversed(list(middleware)):
            setter = decorate(setter)
        self._setter = setter

    def get_state(self) -> dict[str, Any]:
        return self._state

    def set_state(self, update: StateUpdate, replace: bool = False) -> None:
        """Merge *update* into the state, or swap it in when *replace*.

        *update* may be a mapping or a function of the current state.
        """
        self._setter(update, replace)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _write(self, update: StateUpdate, replace: bool = False) -> None:
        if callable(update):
            update = update(self._state)
        previous = self._state
        if replace:
            self._state = dict(update)
        else:
            self._state = {**previous, **update}
        for listener in list(self._listeners):
            listener(self._state, previous)
