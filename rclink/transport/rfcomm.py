# rclink/transport/rfcomm.py
from __future__ import annotations

import re
import shutil
import socket
import subprocess
import threading
from typing import Any, List, Mapping, Optional, Sequence

from rclink.model.device import DeviceInfo

from .base import TransportAdapter, TransportHandle
from .errors import TransportIOError, TransportOpenError, TransportUnavailableError

# `bluetoothctl devices Paired` prints one "Device <addr> <name>" per line
_PAIRED_RE = re.compile(r"^Device\s+((?:[0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2})\s+(.*)$")


def ensure_bluetooth_support() -> None:
    if not hasattr(socket, "AF_BLUETOOTH") or not hasattr(socket, "BTPROTO_RFCOMM"):
        raise TransportUnavailableError(
            "Bluetooth unavailable (no RFCOMM socket support in this Python build)"
        )


class RfcommHandle(TransportHandle):
    """
    RFCOMM stream socket to a Serial Port Profile peer.

    close() from another thread aborts a blocking connect().
    """

    def __init__(self, address: str, channel: int = 1, connect_timeout: float = 10.0):
        if channel <= 0 or channel > 30:
            raise ValueError("RFCOMM channel must be between 1 and 30")
        self.address = address
        self.channel = int(channel)
        self.connect_timeout = float(connect_timeout)
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self._connected = False

    def open(self) -> None:
        ensure_bluetooth_support()
        try:
            sock = socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)
        except OSError as e:
            raise TransportUnavailableError(f"Bluetooth unavailable: {e}") from None

        with self._lock:
            self._sock = sock

        try:
            sock.settimeout(self.connect_timeout)
            sock.connect((self.address, self.channel))
        except OSError as e:
            self.close()
            raise TransportOpenError(f"RFCOMM connect to {self.address} failed: {e}") from None

        with self._lock:
            if self._sock is not sock:
                # closed by another thread while connecting
                raise TransportOpenError(f"RFCOMM connect to {self.address} cancelled")
            self._connected = True

    def close(self) -> None:
        with self._lock:
            sock, self._sock = self._sock, None
            self._connected = False
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()

    def is_open(self) -> bool:
        with self._lock:
            return self._sock is not None and self._connected

    def write(self, data: bytes) -> int:
        with self._lock:
            sock = self._sock if self._connected else None
        if sock is None:
            raise TransportIOError("write while transport not open")

        try:
            sock.sendall(data)
        except OSError as e:
            raise TransportIOError(f"RFCOMM write failed: {e}") from None
        return len(data)

    def flush(self) -> None:
        # sendall() hands the whole buffer to the kernel
        if not self.is_open():
            raise TransportIOError("flush while transport not open")

    def __repr__(self) -> str:
        return f"RfcommHandle(address={self.address!r}, channel={self.channel})"


class RfcommAdapter(TransportAdapter):
    """
    Adapter using native Bluetooth RFCOMM sockets (Linux/BlueZ).

    Bonded devices come from `devices` when configured, else from
    `bluetoothctl devices Paired`.
    """

    driver = "rfcomm"

    def __init__(
        self,
        channel: int = 1,
        connect_timeout: float = 10.0,
        devices: Optional[Sequence[Mapping[str, Any]]] = None,
        bluetoothctl: str = "bluetoothctl",
    ):
        self.channel = int(channel)
        self.connect_timeout = float(connect_timeout)
        self.devices: List[DeviceInfo] = [
            DeviceInfo(id=str(d["address"]), name=str(d.get("name", d["address"])))
            for d in (devices or [])
        ]
        self.bluetoothctl = bluetoothctl

    def list_bonded_devices(self) -> List[DeviceInfo]:
        ensure_bluetooth_support()
        if self.devices:
            return list(self.devices)
        return self._query_paired()

    def create(self, device: DeviceInfo) -> RfcommHandle:
        return RfcommHandle(device.id, channel=self.channel, connect_timeout=self.connect_timeout)

    def _query_paired(self) -> List[DeviceInfo]:
        exe = shutil.which(self.bluetoothctl)
        if exe is None:
            raise TransportUnavailableError(
                f"Bluetooth unavailable ('{self.bluetoothctl}' not found; configure adapter devices)"
            )

        try:
            out = subprocess.run(
                [exe, "devices", "Paired"],
                capture_output=True,
                text=True,
                timeout=5.0,
                check=True,
            ).stdout
        except (OSError, subprocess.SubprocessError) as e:
            raise TransportUnavailableError(f"Bluetooth unavailable: {e}") from None

        return parse_paired_devices(out)


def parse_paired_devices(text: str) -> List[DeviceInfo]:
    devices: List[DeviceInfo] = []
    for line in text.splitlines():
        m = _PAIRED_RE.match(line.strip())
        if m:
            devices.append(DeviceInfo(id=m.group(1).upper(), name=m.group(2).strip()))
    return devices
