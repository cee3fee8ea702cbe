# rclink/transport/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from rclink.model.device import DeviceInfo


class TransportHandle(ABC):
    """
    A bidirectional byte stream to one device (serial port, RFCOMM socket).

    Contract:
      - open()/close() manage the underlying connection.
      - close() may be called from another thread while open() is blocked,
        and must make open() fail promptly where the platform allows it.
      - close() is idempotent.
      - write(data) returns the number of bytes written.
      - flush() forces pending output to be transmitted.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @abstractmethod
    def flush(self) -> None: ...

    def __enter__(self) -> "TransportHandle":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()


class TransportAdapter(ABC):
    """
    Platform adapter: enumerates paired devices and creates handles to them.

    list_bonded_devices() may raise TransportUnavailableError when the radio
    is off or absent. create() does NOT open the handle.
    """

    #: Stable driver key used by the registry (e.g. "serial", "rfcomm").
    driver: str = "abstract"

    @abstractmethod
    def list_bonded_devices(self) -> List[DeviceInfo]: ...

    @abstractmethod
    def create(self, device: DeviceInfo) -> TransportHandle: ...

    def open(self, device: DeviceInfo) -> TransportHandle:
        """
        Create and open a handle; a partially opened handle is closed on failure.

        For one-shot use. The link controller calls create() and open() itself
        so it can close the handle from another thread while open() blocks.
        """
        handle = self.create(device)
        try:
            handle.open()
        except BaseException:
            try:
                handle.close()
            except Exception:
                pass
            raise
        return handle
