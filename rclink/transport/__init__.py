from .base import TransportAdapter, TransportHandle
from .errors import (
    TransportError,
    TransportIOError,
    TransportOpenError,
    TransportUnavailableError,
)
from .registry import AdapterRegistry

__all__ = [
    "TransportAdapter", "TransportHandle", "AdapterRegistry",
    "TransportError", "TransportIOError", "TransportOpenError", "TransportUnavailableError",
]
