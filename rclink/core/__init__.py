from .errors import (
    RcLinkError,
    ConfigError,
    DeviceNotBondedError,
    DeviceConnectError,
    NotConnectedError,
    PermissionMissingError,
    CommandSendError,
)

__all__ = [
    "RcLinkError",
    "ConfigError",
    "DeviceNotBondedError",
    "DeviceConnectError",
    "NotConnectedError",
    "PermissionMissingError",
    "CommandSendError",
]
