# rclink/runtime/attempt.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import TYPE_CHECKING, Callable, List, Optional

if TYPE_CHECKING:
    from rclink.runtime.link_controller import LinkController


class AttemptToken:
    """
    Generation marker for one connect() invocation.

    The controller bumps its generation on every new connect/disconnect and
    cancels the previous token; the attempt checks `cancelled` before every
    publish and sleeps via wait() so a backoff ends as soon as it is cancelled.
    """

    def __init__(self, generation: int, *, logger: Optional[logging.Logger] = None):
        self.generation = int(generation)
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._hooks: List[Callable[[], None]] = []
        self._log = logger or logging.getLogger(__name__)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            hooks, self._hooks = self._hooks, []
        for hook in hooks:
            try:
                hook()
            except Exception:
                self._log.debug("cancel hook failed", exc_info=True)

    def on_cancel(self, hook: Callable[[], None]) -> Callable[[], None]:
        """
        Register a hook run once on cancel (e.g. closing a handle blocked in open()).
        Runs immediately if already cancelled. Returns a remover.
        """
        with self._lock:
            if not self._event.is_set():
                self._hooks.append(hook)

                def _remove() -> None:
                    with self._lock:
                        if hook in self._hooks:
                            self._hooks.remove(hook)

                return _remove
        hook()
        return lambda: None

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"AttemptToken(generation={self.generation}, cancelled={self.cancelled})"


class ConnectAttempt(threading.Thread):
    """Thread running one connect() invocation; its future resolves to the final state."""

    def __init__(self, controller: "LinkController", token: AttemptToken):
        super().__init__(name=f"rclink-connect-{token.generation}", daemon=True)
        self.controller = controller
        self.token = token
        self.future: Future = Future()

    def run(self) -> None:
        try:
            state = self.controller._run_attempt(self.token)
        except BaseException as e:
            self.controller._log.exception("CONNECT_ATTEMPT_CRASHED generation=%d", self.token.generation)
            self.future.set_exception(e)
        else:
            self.future.set_result(state)
