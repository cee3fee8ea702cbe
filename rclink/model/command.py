# rclink/model/command.py
from __future__ import annotations

from enum import IntEnum
from typing import Union


class Command(IntEnum):
    """
    Drive commands understood by the car firmware.

    Each command is a single ASCII byte on the wire.
    """

    FORWARD = ord("F")
    BACKWARD = ord("B")
    LEFT = ord("L")
    RIGHT = ord("R")
    STOP = ord("S")

    @classmethod
    def parse(cls, text: str) -> "Command":
        """Accept a command letter ("f") or name ("forward"), case-insensitive."""
        s = str(text).strip()
        if len(s) == 1:
            for cmd in cls:
                if cmd.value == ord(s.upper()):
                    return cmd
        else:
            try:
                return cls[s.upper()]
            except KeyError:
                pass

        valid = ", ".join(f"{chr(c.value)}/{c.name.lower()}" for c in cls)
        raise ValueError(f"Unknown command '{text}' (valid: {valid})")

    @staticmethod
    def label(value: Union[int, "Command"]) -> str:
        """Human label for a command byte; unknown bytes render as the character."""
        return _LABELS.get(int(value), chr(int(value)))


_LABELS = {
    Command.FORWARD.value: "↑ Forward",
    Command.BACKWARD.value: "↓ Backward",
    Command.LEFT.value: "← Left",
    Command.RIGHT.value: "→ Right",
    Command.STOP.value: "■ Stop",
}


def as_byte(command: Union[int, Command]) -> int:
    """Validate a command value as a single byte (0..255)."""
    if isinstance(command, bool) or not isinstance(command, int):
        raise TypeError(f"Expected int command byte, got {type(command).__name__}")
    value = int(command)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Command byte out of range: {value}")
    return value
