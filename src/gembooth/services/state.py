"""Single owner of the published booth state."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from gembooth.domain.state import BoothState

_logger = logging.getLogger(__name__)

Listener = Callable[[BoothState], None]


@dataclass
class StateStore:
    """Holds an immutable snapshot replaced only through ``update``.

    Reducers are plain functions, so a replacement never spans an await and
    two updates cannot interleave on the event loop.
    """

    _state: BoothState = field(default_factory=BoothState)
    _listeners: list[Listener] = field(default_factory=list)

    @property
    def state(self) -> BoothState:
        """Return the current snapshot."""
        return self._state

    def update(self, reducer: Callable[[BoothState], BoothState]) -> BoothState:
        """Apply a reducer, publish the new snapshot and return it."""
        new_state = reducer(self._state)
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                _logger.exception("State listener failed")
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
