# rclink/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

HISTORY_LIMIT = 10


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class SessionState:
    """
    A snapshot of the link session, safe to share across threads.

    Invariant: device_name is None iff connection is DISCONNECTED.
    command_history is newest first.
    """
    connection: ConnectionState = ConnectionState.DISCONNECTED
    device_name: Optional[str] = None
    last_command: Optional[int] = None
    command_history: Tuple[int, ...] = ()
    permission_granted: bool = False
    last_error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.connection is ConnectionState.CONNECTED

    # --- transitions ---
    def connecting(self, device_name: str) -> "SessionState":
        return replace(self, connection=ConnectionState.CONNECTING, device_name=device_name)

    def connected(self, device_name: str) -> "SessionState":
        return replace(
            self,
            connection=ConnectionState.CONNECTED,
            device_name=device_name,
            last_error=None,
        )

    def disconnected(self, *, error: Optional[str] = None, keep_error: bool = False) -> "SessionState":
        return replace(
            self,
            connection=ConnectionState.DISCONNECTED,
            device_name=None,
            last_error=self.last_error if keep_error else error,
        )

    def with_command(self, command: int, *, limit: int = HISTORY_LIMIT) -> "SessionState":
        history = (int(command),) + self.command_history
        return replace(
            self,
            last_command=int(command),
            command_history=history[:limit],
            last_error=None,
        )

    def with_error(self, message: Optional[str]) -> "SessionState":
        return replace(self, last_error=message)

    def with_permission(self, granted: bool) -> "SessionState":
        return replace(self, permission_granted=bool(granted))
