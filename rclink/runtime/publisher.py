# rclink/runtime/publisher.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from rclink.runtime.state import SessionState

StateCallback = Callable[[SessionState], None]


class StatePublisher:
    """
    Holds the current SessionState and fans every transition out to
    subscribers, synchronously and in publish order.

    Publication and notification happen under one re-entrant lock, so two
    threads publishing concurrently can never deliver out of order. A
    subscriber may call back into the publisher from its callback.
    """

    def __init__(self, initial: Optional[SessionState] = None, *, logger: Optional[logging.Logger] = None):
        self._state = initial or SessionState()
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._subscribers: List[StateCallback] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def publish(self, state: SessionState) -> SessionState:
        with self._lock:
            self._state = state
            self._notify(state)
        return state

    def update(self, fn: Callable[[SessionState], SessionState]) -> SessionState:
        """Derive the next snapshot from the current one and publish it atomically."""
        with self._lock:
            return self.publish(fn(self._state))

    def subscribe(self, cb: StateCallback, *, replay: bool = True) -> Callable[[], None]:
        """
        Add a subscriber; with `replay` it first receives the current state.

        Replay runs under the publisher lock. Owners that publish while holding
        their own lock must subscribe under that lock too.
        """
        with self._lock:
            self._subscribers.append(cb)
            if replay:
                self._deliver(cb, self._state)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in self._subscribers:
                    self._subscribers.remove(cb)

        return _unsubscribe

    def _notify(self, state: SessionState) -> None:
        for cb in list(self._subscribers):
            self._deliver(cb, state)

    def _deliver(self, cb: StateCallback, state: SessionState) -> None:
        try:
            cb(state)
        except Exception:
            self._log.exception("STATE_SUBSCRIBER_ERROR")
