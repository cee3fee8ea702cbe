# rclink/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

from rclink.model.command import Command


def command_arg(value: str) -> Command:
    try:
        return Command.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rclink", description="Drive an HC-05 RC car over a serial radio link.")
    parser.add_argument("--config", default=None, help="YAML config file (default: ~/.config/rclink/config.yml).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on the console.")
    parser.add_argument("--log-file", default=None, help="Append application logs to this file.")
    parser.add_argument("--trace", default=None, help="Append a JSON line per command event to this file.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("devices", help="List bonded devices and mark the ones matching the target.")

    ps = sub.add_parser("send", help="Connect, send command(s), stop and disconnect.")
    ps.add_argument("commands", type=command_arg, nargs="+", help="f/b/l/r/s or forward/backward/left/right/stop")
    ps.add_argument("--interval", type=float, default=0.2, help="Seconds between commands.")

    sub.add_parser("drive", help="Interactive drive shell.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
