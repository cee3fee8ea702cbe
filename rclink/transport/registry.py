# rclink/transport/registry.py
from __future__ import annotations

from typing import Dict, Type

from .base import TransportAdapter
from .errors import TransportError
from .rfcomm import RfcommAdapter
from .serial_port import SerialPortAdapter


class AdapterRegistry:
    """
    Maps driver keys -> concrete transport adapter classes.
    """

    def __init__(self, drivers: Dict[str, Type[TransportAdapter]]):
        # normalize keys to be case-insensitive
        self._drivers: Dict[str, Type[TransportAdapter]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "AdapterRegistry":
        return cls(
            drivers={
                SerialPortAdapter.driver: SerialPortAdapter,
                RfcommAdapter.driver: RfcommAdapter,
            }
        )

    def drivers(self) -> list[str]:
        return sorted(self._drivers.keys())

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def get_class(self, driver: str) -> Type[TransportAdapter]:
        key = driver.lower()
        if key not in self._drivers:
            raise TransportError(f"Transport driver '{driver}' not registered")
        return self._drivers[key]

    def create(self, driver: str, **params) -> TransportAdapter:
        """
        Instantiate an adapter by driver key.
        """
        adapter_cls = self.get_class(driver)
        return adapter_cls(**params)
