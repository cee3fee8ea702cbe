# rclink/cli/commands.py
from __future__ import annotations

import logging
import sys
import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Optional, TextIO

from rclink.app.config import load_config
from rclink.app.preferences import ONBOARDED
from rclink.app.runner import AppRun, start_run
from rclink.core.errors import (
    CommandSendError,
    DeviceConnectError,
    DeviceNotBondedError,
    NotConnectedError,
    PermissionMissingError,
)
from rclink.model.command import Command
from rclink.runtime.link_controller import DEVICE_NOT_BONDED, NOT_CONNECTED
from rclink.runtime.state import SessionState
from rclink.transport.errors import TransportError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

ONBOARDING_TEXT = """\
Pair your HC-05
  rclink auto-detects a bonded HC-05. If it is not found, pair it in your
  system Bluetooth settings (and bind it, e.g. `rfcomm bind 0 <address>`),
  then reconnect with 'c'.
"""

DRIVE_HELP = """\
keys: f=forward b=backward l=left r=right s=stop
      x=emergency stop  !=retry last  c=reconnect  d=disconnect
      h=history  ?=help  q=quit
"""

# ---------------- Logging ----------------

def configure_logging(*, verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Console handler on stderr plus an optional file handler (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.WARNING

    if not any(getattr(h, "_rclink_console", False) for h in root.handlers):
        ch = logging.StreamHandler(sys.stderr)
        ch._rclink_console = True  # type: ignore[attr-defined]
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(ch)
    for h in root.handlers:
        if getattr(h, "_rclink_console", False):
            h.setLevel(level)

    if log_file:
        configure_file_logging(Path(log_file))

    # handlers filter; the root passes INFO through for the file handler
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def configure_file_logging(app_log_path: Path) -> None:
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)

# ---------------- Status printing ----------------

def format_state(st: SessionState) -> str:
    device = st.device_name or "-"
    last = Command.label(st.last_command) if st.last_command is not None else "None"
    line = f"[{st.connection.value}] device={device} last={last}"
    if not st.permission_granted:
        line += " (no permission)"
    if st.last_error:
        line += f" err={st.last_error}"
    return line


def format_history(st: SessionState) -> str:
    if not st.command_history:
        return "History: (empty)"
    return "History: " + " ".join(chr(c) for c in st.command_history)


class StatusPrinter:
    """Prints one line per published state (skips exact repeats)."""

    def __init__(self, out: Optional[TextIO] = None):
        self._out = out
        self._last: Optional[str] = None
        self._lock = threading.Lock()

    def __call__(self, st: SessionState) -> None:
        line = format_state(st)
        with self._lock:
            if line == self._last:
                return
            self._last = line
            print(line, file=self._out or sys.stdout, flush=True)

# ---------------- Commands ----------------

def _start_app_run(args) -> AppRun:
    cfg = load_config(args.config)
    return start_run(cfg, trace_path=Path(args.trace) if args.trace else None)


def cmd_devices(args) -> int:
    run = _start_app_run(args)
    try:
        try:
            devices = run.adapter.list_bonded_devices()
        except TransportError as e:
            raise DeviceConnectError(
                "Could not list bonded devices.",
                hint=str(e),
                details={"driver": run.adapter.driver},
            ) from None

        target = run.config.target_name
        print(f"Bonded devices (driver={run.adapter.driver}, target='{target}'):")
        if not devices:
            print("  (none)")
        for d in devices:
            mark = "*" if d.matches(target) else " "
            print(f"  {mark} {d.name}  [{d.id}]")
        return 0
    finally:
        run.close()


def cmd_send(args) -> int:
    run = _start_app_run(args)
    controller = run.controller
    unsubscribe = controller.subscribe(StatusPrinter(), replay=False)
    try:
        granted = run.authorization.has_required_authorization()
        controller.refresh_permission(granted)
        if not granted:
            raise PermissionMissingError(
                "No permission to use the radio.",
                hint="Grant access to the serial port (e.g. join the 'dialout' group) or enable Bluetooth.",
                details={"driver": run.adapter.driver},
            )
        st = controller.connect().result()
        if not st.is_connected:
            if st.last_error == DEVICE_NOT_BONDED:
                raise DeviceNotBondedError(
                    f"No bonded device matches '{run.config.target_name}'.",
                    hint="Pair the module first (see: rclink devices).",
                )
            raise DeviceConnectError(
                "Could not connect to the car.",
                hint=st.last_error,
                details={"target": run.config.target_name},
            )

        for i, cmd in enumerate(args.commands):
            if i:
                time.sleep(max(0.0, float(args.interval)))
            st = controller.send(cmd).result()
            if st.last_error == NOT_CONNECTED:
                raise NotConnectedError(
                    f"Link lost before sending {Command.label(cmd)}.",
                    hint="Check the car is powered and in range, then retry.",
                )
            if st.last_error:
                raise CommandSendError(
                    f"Failed to send {Command.label(cmd)}.",
                    hint=st.last_error,
                )
            print(f"SENT {chr(cmd)} ({Command.label(cmd)})")
        return 0
    finally:
        run.close()
        unsubscribe()


def cmd_drive(args, *, stdin: Optional[TextIO] = None) -> int:
    run = _start_app_run(args)
    controller = run.controller
    stdin = stdin or sys.stdin

    if not run.preferences.get_flag(ONBOARDED):
        print(ONBOARDING_TEXT)
        run.preferences.set_flag(ONBOARDED, True)

    unsubscribe = controller.subscribe(StatusPrinter())
    try:
        def _on_authorization(granted: bool) -> None:
            controller.refresh_permission(granted)
            if granted:
                controller.connect()
            else:
                print("Permission missing: grant access to the serial port / Bluetooth and press 'c'.")

        run.authorization.request_authorization(_on_authorization)

        print(DRIVE_HELP)
        for line in stdin:
            key = line.strip().lower()
            if not key:
                continue
            if key == "q":
                break
            _handle_key(run, key)
        return 0
    except KeyboardInterrupt:
        return 0
    finally:
        run.close()
        unsubscribe()
        print(format_history(controller.state))


def _handle_key(run: AppRun, key: str) -> Optional[Future]:
    """Dispatch one shell key; returns the future of the queued operation, if any."""
    controller = run.controller
    if key == "x":
        return controller.emergency_stop()[-1]
    if key == "!":
        return controller.retry_last()
    if key == "c":
        return _on_reconnect(run)
    if key == "d":
        return controller.disconnect()
    if key == "h":
        print(format_history(controller.state))
        return None
    if key == "?":
        print(DRIVE_HELP)
        return None

    try:
        cmd = Command.parse(key)
    except ValueError as e:
        print(e)
        return None
    return controller.send(cmd)


def _on_reconnect(run: AppRun) -> Optional[Future]:
    granted = run.authorization.has_required_authorization()
    run.controller.refresh_permission(granted)
    if granted:
        return run.controller.connect(force=True)
    print("Permission missing: grant access to the serial port / Bluetooth and retry.")
    return None
