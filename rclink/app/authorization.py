# rclink/app/authorization.py
from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Protocol

from rclink.transport.base import TransportAdapter
from rclink.transport.errors import TransportError
from rclink.transport.rfcomm import ensure_bluetooth_support

AuthorizationCallback = Callable[[bool], None]


class Authorization(Protocol):
    def has_required_authorization(self) -> bool: ...
    def request_authorization(self, callback: AuthorizationCallback) -> None: ...


class StaticAuthorization:
    """Fixed answer; for tests and platforms without a permission model."""

    def __init__(self, granted: bool = True):
        self.granted = bool(granted)

    def has_required_authorization(self) -> bool:
        return self.granted

    def request_authorization(self, callback: AuthorizationCallback) -> None:
        callback(self.granted)


class PortAccessAuthorization:
    """
    Checks that the current user may talk to the radio.

    Serial adapters need read/write access to the device nodes of the matching
    ports (Linux: membership of the 'dialout' group); RFCOMM adapters need
    Bluetooth socket support. A desktop process cannot prompt for this, so
    request_authorization() re-checks and reports.
    """

    def __init__(self, adapter: TransportAdapter, target_name: str, *, logger: Optional[logging.Logger] = None):
        self.adapter = adapter
        self.target_name = target_name
        self._log = logger or logging.getLogger(__name__)

    def has_required_authorization(self) -> bool:
        if self.adapter.driver == "rfcomm":
            try:
                ensure_bluetooth_support()
            except TransportError as e:
                self._log.info("AUTHORIZATION_MISSING reason=%s", e)
                return False
            return True

        try:
            devices = self.adapter.list_bonded_devices()
        except TransportError as e:
            self._log.info("AUTHORIZATION_UNKNOWN reason=%s", e)
            return False

        paths = [d.id for d in devices if d.matches(self.target_name) and os.path.exists(d.id)]
        denied = [p for p in paths if not os.access(p, os.R_OK | os.W_OK)]
        if denied:
            self._log.info("AUTHORIZATION_MISSING denied=%s", denied)
        return not denied

    def request_authorization(self, callback: AuthorizationCallback) -> None:
        callback(self.has_required_authorization())
