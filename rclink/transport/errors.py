# rclink/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for transport-layer failures."""


class TransportUnavailableError(TransportError):
    """The radio/serial subsystem itself is missing or switched off."""


class TransportOpenError(TransportError):
    pass


class TransportIOError(TransportError):
    pass
