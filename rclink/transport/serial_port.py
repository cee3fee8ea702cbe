# rclink/transport/serial_port.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import serial
from serial import SerialException
from serial.tools import list_ports

from rclink.model.device import DeviceInfo

from .base import TransportAdapter, TransportHandle
from .errors import TransportIOError, TransportOpenError

_log = logging.getLogger(__name__)


class SerialHandle(TransportHandle):
    """
    Serial port handle implemented via pyserial.

    Used for radio modules exposed as a serial port by the OS
    (/dev/rfcommN on Linux, "Standard Serial over Bluetooth link" COM ports
    on Windows) or wired directly over UART.
    """

    def __init__(self, port: str, baudrate: int = 9600, timeout: float = 1.0, write_timeout: float = 1.0):
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.write_timeout = write_timeout
        self.ser: Optional[serial.Serial] = None

    def open(self) -> None:
        try:
            self.ser = serial.Serial(
                self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
                write_timeout=self.write_timeout,
            )
            self.ser.reset_output_buffer()
        except SerialException as e:
            self._release()
            raise TransportOpenError(f"could not open serial port {self.port!r}: {e}") from None

    def _release(self) -> None:
        # the port may already be open when a later setup step fails
        ser, self.ser = self.ser, None
        if ser is None:
            return
        try:
            ser.close()
        except SerialException as e:
            _log.debug("SERIAL_CLOSE_FAILED port=%s err=%s", self.port, e)

    def close(self) -> None:
        if self.ser is not None:
            try:
                self.ser.close()
            finally:
                self.ser = None

    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def write(self, data: bytes) -> int:
        if self.ser is None:
            raise TransportIOError("write while transport not open")

        try:
            return self.ser.write(data)
        except SerialException as e:
            raise TransportIOError(f"serial write failed: {e}") from None

    def flush(self) -> None:
        if self.ser is None:
            raise TransportIOError("flush while transport not open")

        try:
            self.ser.flush()
        except SerialException as e:
            raise TransportIOError(f"serial flush failed: {e}") from None

    def __repr__(self) -> str:
        return f"SerialHandle(port={self.port!r}, baudrate={self.baudrate})"


class SerialPortAdapter(TransportAdapter):
    """
    Adapter over the system's serial ports.

    Paired radio modules show up as serial ports once bound by the OS, so
    "bonded devices" are the enumerated ports. Port descriptions rarely carry
    the module name; `aliases` maps a port path to a display name.
    """

    driver = "serial"

    def __init__(
        self,
        baudrate: int = 9600,
        timeout: float = 1.0,
        write_timeout: float = 1.0,
        aliases: Optional[Dict[str, str]] = None,
    ):
        self.baudrate = int(baudrate)
        self.timeout = float(timeout)
        self.write_timeout = float(write_timeout)
        self.aliases: Dict[str, str] = dict(aliases or {})

    def list_bonded_devices(self) -> List[DeviceInfo]:
        devices: List[DeviceInfo] = []
        for p in sorted(list_ports.comports(), key=lambda p: p.device):
            devices.append(DeviceInfo(id=p.device, name=self._display_name(p)))
        return devices

    def create(self, device: DeviceInfo) -> SerialHandle:
        return SerialHandle(
            device.id,
            baudrate=self.baudrate,
            timeout=self.timeout,
            write_timeout=self.write_timeout,
        )

    def _display_name(self, port) -> str:
        alias = self.aliases.get(port.device)
        if alias:
            return alias
        parts = [port.product, port.description, port.manufacturer]
        desc = " ".join(s for s in parts if s and s != "n/a")
        return desc or port.device
