"""
The single observable container for the application state.
"""

import logging
from collections.abc import Callable

from spotify_export.models.state import ExportState

log = logging.getLogger(__name__)

Listener = Callable[[ExportState], None]


class StateStore:
    """
    Holds the current `ExportState` snapshot.

    State is replaced as a whole; subscribers are notified with every new
    snapshot in registration order.
    """

    def __init__(self, initial: ExportState | None = None):
        self._state = initial or ExportState()
        self._listeners: list[Listener] = []

    def get(self) -> ExportState:
        return self._state

    def set(self, state: ExportState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                log.warning(f"State listener {listener!r} failed: {e}")

    def update(self, fn: Callable[[ExportState], ExportState]) -> ExportState:
        """Computes a new snapshot from the current one and installs it."""
        new_state = fn(self._state)
        self.set(new_state)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Registers a listener. Returns a callable that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
