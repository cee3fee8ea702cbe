# rclink/core/errors.py
from __future__ import annotations


class RcLinkError(Exception):
    """
    Base class for all expected operational errors in rclink.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no radio access yet)
# ---------------------------------------------------------------------------

class ConfigError(RcLinkError):
    """
    Configuration is invalid or inconsistent.

    Examples:
      - unknown adapter driver key
      - invalid / missing adapter parameters
      - malformed YAML config file
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Link lifecycle errors
# ---------------------------------------------------------------------------

class PermissionMissingError(RcLinkError):
    """
    The user may not access the radio (serial port permissions, Bluetooth
    support), so no connection is attempted.
    """
    code = "permission_missing"


class DeviceNotBondedError(RcLinkError):
    """
    No paired device matches the target name.
    """
    code = "device_not_bonded"


class DeviceConnectError(RcLinkError):
    """
    A bonded device was found but the link could not be established.

    Examples:
      - radio switched off
      - car powered down / module not listening
      - all connection attempts exhausted
    """
    code = "device_connect_error"


# ---------------------------------------------------------------------------
# Command errors
# ---------------------------------------------------------------------------

class NotConnectedError(RcLinkError):
    """
    A command was issued while no link is established.
    """
    code = "not_connected"


class CommandSendError(RcLinkError):
    """
    The command byte could not be written to the link.
    """
    code = "command_send_error"
