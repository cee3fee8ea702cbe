# rclink/runtime/link_controller.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Union

from rclink.interfaces.command_sink import CommandEvent, CommandSink
from rclink.model.command import Command, as_byte
from rclink.model.device import DeviceInfo
from rclink.runtime.attempt import AttemptToken, ConnectAttempt
from rclink.runtime.publisher import StateCallback, StatePublisher
from rclink.runtime.state import HISTORY_LIMIT, ConnectionState, SessionState
from rclink.transport.base import TransportAdapter, TransportHandle
from rclink.transport.errors import TransportUnavailableError

DEVICE_NOT_BONDED = "device not bonded"
NOT_CONNECTED = "not connected"

# a blocked open() the adapter cannot interrupt is left to finish on its daemon thread
ATTEMPT_JOIN_TIMEOUT_S = 2.0


class LinkController:
    """
    Owns the link to the car: connection state machine, transport handle and
    command dispatch.

    Responsibilities:
      - discover the bonded target and connect with bounded, fixed-backoff retry
      - cancel superseded attempts so they never publish or leak a handle
      - run every handle write and close on one I/O worker, in call order
      - publish an immutable SessionState after every transition

    connect/send/disconnect never block the caller on I/O: each returns a
    Future resolving to the SessionState after the operation.
    """

    def __init__(
        self,
        adapter: TransportAdapter,
        *,
        target_name: str = "HC-05",
        max_attempts: int = 3,
        backoff_s: float = 5.0,
        history_limit: int = HISTORY_LIMIT,
        disconnect_on_send_error: bool = False,
        publisher: Optional[StatePublisher] = None,
        cmd_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._adapter = adapter
        self.target_name = target_name
        self.max_attempts = int(max_attempts)
        self.backoff_s = float(backoff_s)
        self.history_limit = int(history_limit)
        self.disconnect_on_send_error = bool(disconnect_on_send_error)

        self._log = logger or logging.getLogger(__name__)
        self._publisher = publisher or StatePublisher(logger=self._log)
        self._cmd_sink = cmd_sink

        # guards _handle, _token, _generation and every publish; never held across handle I/O
        self._lock = threading.RLock()
        self._handle: Optional[TransportHandle] = None
        self._generation = 0
        self._token: Optional[AttemptToken] = None
        self._attempt: Optional[ConnectAttempt] = None

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rclink-io")
        self._closed = False

    # ---------------- observable state ----------------
    @property
    def state(self) -> SessionState:
        return self._publisher.state

    @property
    def adapter(self) -> TransportAdapter:
        return self._adapter

    def subscribe(self, cb: StateCallback, *, replay: bool = True) -> Callable[[], None]:
        # replay may call back into the controller; keep the controller -> publisher lock order
        with self._lock:
            return self._publisher.subscribe(cb, replay=replay)

    def refresh_permission(self, granted: bool) -> SessionState:
        with self._lock:
            return self._publisher.update(lambda s: s.with_permission(granted))

    # ---------------- lifecycle ----------------
    def connect(self, *, force: bool = False) -> "Future[SessionState]":
        """
        Request a link. No-op while connected, and while connecting unless
        `force` is set, in which case the in-flight attempt is superseded.
        """
        with self._lock:
            self._ensure_not_closed()
            st = self._publisher.state
            if st.is_connected or (st.connection is ConnectionState.CONNECTING and not force):
                self._log.debug("CONNECT_IGNORED state=%s", st.connection.value)
                return _completed(st)

            token = self._next_token()
            attempt = ConnectAttempt(self, token)
            self._attempt = attempt
            self._log.info("CONNECT_REQUESTED generation=%d target=%s", token.generation, self.target_name)
            attempt.start()
            return attempt.future

    def disconnect(self) -> "Future[SessionState]":
        """
        Drop the link. The state becomes DISCONNECTED immediately; the handle
        is closed on the I/O worker and close failures are swallowed.
        """
        with self._lock:
            self._ensure_not_closed()
            handle = self._detach()
            return self._executor.submit(self._close_quietly, handle)

    def send(self, command: Union[int, Command]) -> "Future[SessionState]":
        """Queue one command byte; sends are written in call order."""
        value = as_byte(command)
        with self._lock:
            self._ensure_not_closed()
            return self._executor.submit(self._do_send, value)

    def emergency_stop(self, repeat: int = 3) -> List["Future[SessionState]"]:
        return [self.send(Command.STOP) for _ in range(max(1, int(repeat)))]

    def retry_last(self) -> "Future[SessionState]":
        """Resend the last command while connected, else force a reconnect."""
        st = self.state
        if st.is_connected and st.last_command is not None:
            return self.send(st.last_command)
        return self.connect(force=True)

    def shutdown(self, timeout: Optional[float] = None) -> SessionState:
        """
        End the session: cancel any attempt, send Stop (best effort), then
        disconnect and stop the worker. The car must not be left moving.
        """
        with self._lock:
            if self._closed:
                return self.state
            self._closed = True
            self._cancel_attempt()
            attempt = self._attempt
            self._log.info("SHUTDOWN")

        self._executor.submit(self._do_send, int(Command.STOP))
        done = self._executor.submit(self._shutdown_disconnect)
        try:
            done.result(timeout=timeout)
        finally:
            self._executor.shutdown(wait=timeout is None)

        if attempt is not None and attempt is not threading.current_thread():
            attempt.join(timeout=ATTEMPT_JOIN_TIMEOUT_S if timeout is None else timeout)
        return self.state

    def __enter__(self) -> "LinkController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ---------------- connect attempt (runs on ConnectAttempt thread) ----------------
    def _run_attempt(self, token: AttemptToken) -> SessionState:
        try:
            devices = self._adapter.list_bonded_devices()
        except TransportUnavailableError as e:
            self._log.warning("TRANSPORT_UNAVAILABLE err=%s", e)
            return self._fail(token, str(e) or "transport unavailable")
        except Exception as e:
            self._log.exception("DISCOVERY_FAILED")
            return self._fail(token, str(e) or type(e).__name__)

        device = self._select_candidate(devices)
        if device is None:
            self._log.warning(
                "DEVICE_NOT_BONDED target=%s bonded=%s",
                self.target_name,
                [d.name for d in devices],
            )
            return self._fail(token, DEVICE_NOT_BONDED)

        last_error: Optional[str] = None
        for n in range(1, self.max_attempts + 1):
            if self._publish_if_current(token, lambda s: s.connecting(device.name)) is None:
                return self._superseded(token)

            self._emit("CONNECT", "send", {"attempt": n, "device": device.id})
            self._log.info("CONNECT_ATTEMPT n=%d/%d device=%s id=%s", n, self.max_attempts, device.name, device.id)

            handle: Optional[TransportHandle] = None
            try:
                handle = self._adapter.create(device)
                remove_hook = token.on_cancel(handle.close)
                try:
                    handle.open()
                finally:
                    remove_hook()
            except Exception as e:
                self._close_quietly(handle)
                if token.cancelled:
                    return self._superseded(token)

                last_error = str(e) or type(e).__name__
                self._log.warning("CONNECT_ATTEMPT_FAILED n=%d/%d err=%s", n, self.max_attempts, last_error)
                self._emit("CONNECT", "error", {"attempt": n, "error": last_error})

                if isinstance(e, TransportUnavailableError):
                    break
                if n < self.max_attempts:
                    self._log.info("CONNECT_BACKOFF s=%.1f", self.backoff_s)
                    if token.wait(self.backoff_s):
                        return self._superseded(token)
                continue

            with self._lock:
                if not self._is_current(token):
                    self._close_quietly(handle)
                    return self._superseded(token)
                previous, self._handle = self._handle, handle
                state = self._publisher.update(lambda s: s.connected(device.name))
                if previous is not None:
                    self._executor.submit(self._close_quietly, previous)

            self._emit("CONNECT", "ok", {"attempt": n, "device": device.id})
            self._log.info("CONNECTED device=%s id=%s attempts=%d", device.name, device.id, n)
            return state

        return self._fail(token, last_error)

    def _select_candidate(self, devices: List[DeviceInfo]) -> Optional[DeviceInfo]:
        for d in devices:
            if d.matches(self.target_name):
                return d
        return None

    def _fail(self, token: AttemptToken, message: Optional[str]) -> SessionState:
        state = self._publish_if_current(token, lambda s: s.disconnected(error=message))
        if state is None:
            return self._superseded(token)
        self._log.warning("CONNECT_FAILED err=%s", message)
        return state

    def _superseded(self, token: AttemptToken) -> SessionState:
        self._log.info("CONNECT_SUPERSEDED generation=%d", token.generation)
        # whoever cancelled us publishes under the lock; read after it
        with self._lock:
            return self._publisher.state

    # ---------------- send / disconnect (run on the I/O worker) ----------------
    def _do_send(self, value: int) -> SessionState:
        name = chr(value)
        with self._lock:
            handle = self._handle
            st = self._publisher.state
            if handle is None or not st.is_connected or not handle.is_open():
                self._log.warning("SEND_REJECTED cmd=%r reason=not_connected", name)
                self._emit(name, "rejected", None)
                return self._publisher.update(lambda s: s.with_error(NOT_CONNECTED))

        # installed handles are only closed on this worker, so it stays open until we return
        self._emit(name, "send", None)
        try:
            handle.write(bytes([value]))
            handle.flush()
        except Exception as e:
            error = str(e) or type(e).__name__
            self._log.warning("SEND_FAILED cmd=%r err=%s", name, error)
            self._emit(name, "error", {"error": error})
            with self._lock:
                if not self.disconnect_on_send_error or self._handle is not handle:
                    return self._publisher.update(lambda s: s.with_error(error))
                self._detach(error=error)
            return self._close_quietly(handle)

        self._log.debug("SENT cmd=%r", name)
        self._emit(name, "ok", None)
        with self._lock:
            return self._publisher.update(lambda s: s.with_command(value, limit=self.history_limit))

    def _shutdown_disconnect(self) -> SessionState:
        with self._lock:
            handle = self._detach()
        return self._close_quietly(handle)

    def _detach(self, *, error: Optional[str] = None) -> Optional[TransportHandle]:
        """Cancel any attempt, take the handle away and publish DISCONNECTED. Caller holds _lock."""
        self._cancel_attempt()
        handle, self._handle = self._handle, None
        if error is None:
            self._publisher.update(lambda s: s.disconnected(keep_error=True))
        else:
            self._publisher.update(lambda s: s.disconnected(error=error))
        self._log.info("DISCONNECTED")
        return handle

    def _close_quietly(self, handle: Optional[TransportHandle]) -> SessionState:
        if handle is not None:
            try:
                handle.close()
            except Exception as e:
                self._log.debug("HANDLE_CLOSE_FAILED err=%s", e)
        return self.state

    # ---------------- generation tokens ----------------
    def _next_token(self) -> AttemptToken:
        self._cancel_attempt()
        self._token = AttemptToken(self._generation, logger=self._log)
        return self._token

    def _cancel_attempt(self) -> None:
        self._generation += 1
        token, self._token = self._token, None
        if token is not None:
            token.cancel()

    def _is_current(self, token: AttemptToken) -> bool:
        return token is self._token and not token.cancelled

    def _publish_if_current(
        self,
        token: AttemptToken,
        fn: Callable[[SessionState], SessionState],
    ) -> Optional[SessionState]:
        with self._lock:
            if not self._is_current(token):
                return None
            return self._publisher.update(fn)

    # ---------------- helpers ----------------
    def _emit(self, name: str, kind: str, payload: Optional[dict]) -> None:
        sink = self._cmd_sink
        if sink is None:
            return
        try:
            sink.on_command(CommandEvent(name=name, kind=kind, payload=payload))
        except Exception:
            self._log.exception("CMD_SINK_ERROR")

    def _ensure_not_closed(self) -> None:
        if self._closed:
            raise RuntimeError("LinkController is shut down")


def _completed(state: SessionState) -> "Future[SessionState]":
    fut: Future = Future()
    fut.set_result(state)
    return fut
