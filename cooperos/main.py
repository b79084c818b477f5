"""Command that boots the kernel, runs its self test and then runs it."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from cooperos.kernel import Kernel

BANNER = "cooperos: a simulated uniprocessor kernel"

_log = logging.getLogger("cooperos")


def _configure_debug(flags: str) -> None:
    enabled = "+" in flags or "t" in flags
    _log.setLevel(logging.DEBUG if enabled else logging.WARNING)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse flags, initialize the kernel, self-test it and run it."""
    args = list(sys.argv[1:] if argv is None else argv)

    debug_flags = ""
    remaining = iter(args)
    for arg in remaining:
        if arg == "-d":
            flags = next(remaining, None)
            if flags is None:
                raise ValueError("-d needs a string of debug flags")
            debug_flags = flags
        elif arg == "-u":
            print("Partial usage: cooperos [-z -d debugFlags]")
        elif arg == "-z":
            print(BANNER)
    _configure_debug(debug_flags)

    _log.debug("Entering main")

    kernel = Kernel(args)
    kernel.initialize()
    try:
        kernel.self_test()
        kernel.run()
    except KeyboardInterrupt:
        print("\nCleaning up after signal 2", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())