# rclink/interfaces/command_sink.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


@dataclass(frozen=True, slots=True)
class CommandEvent:
    """
    Runtime command telemetry event (for tracing/debugging).
    Keep this small + stable; put details into payload.
    """
    name: str                   # e.g. "F", "CONNECT"
    kind: str                   # "send" | "ok" | "error" | "rejected"
    payload: Optional[Mapping[str, Any]] = None
    ts_utc: Optional[str] = None


class CommandSink(Protocol):
    def on_command(self, event: CommandEvent) -> None: ...
    def close(self) -> None: ...
