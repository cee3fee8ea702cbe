# rclink/cli/main.py
from __future__ import annotations

import sys
from typing import Optional

from rclink.core.errors import RcLinkError

from rclink.cli.args import parse_args
from rclink.cli.commands import (
    cmd_devices,
    cmd_drive,
    cmd_send,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(verbose=args.verbose, log_file=args.log_file)
    try:
        if args.cmd == "devices":
            return cmd_devices(args)
        if args.cmd == "send":
            return cmd_send(args)
        if args.cmd == "drive":
            return cmd_drive(args)

        return 2
    except RcLinkError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
