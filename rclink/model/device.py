# rclink/model/device.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceInfo:
    """
    A bonded/paired peer as reported by a transport adapter.

    Attributes:
        id: Adapter-specific identifier (serial port path or radio address).
        name: Display name used for target matching.
    """
    id: str
    name: str

    def matches(self, target_name: str) -> bool:
        """Case-insensitive substring match against the device name."""
        return target_name.strip().lower() in (self.name or "").lower()
