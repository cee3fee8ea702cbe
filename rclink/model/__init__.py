from .command import Command, as_byte
from .device import DeviceInfo

__all__ = ["Command",
           "DeviceInfo",
           "as_byte"]
