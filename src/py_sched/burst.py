"""Burst program — the worker process the scheduler spawns.

Usage::

    python -m py_sched.burst RUNTIME [--tick SECONDS]

It burns ``RUNTIME`` ticks of its *own* CPU time and exits 0.  CPU time
(``time.process_time()``) does not advance while the scheduler has the
process stopped, so a paused burst resumes exactly where it left off.
There is no scheduling logic in here.
"""

import argparse
import sys
from collections.abc import Sequence
from time import process_time

from py_sched.clock import DEFAULT_TICK_SECONDS


def burn(runtime: int, tick_seconds: float) -> float:
    """Spin until *runtime* ticks of CPU time are used; return seconds used."""
    start = process_time()
    budget = runtime * tick_seconds
    while process_time() - start < budget:
        pass
    return process_time() - start


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        msg = f"runtime must be >= 0, got {value}"
        raise argparse.ArgumentTypeError(msg)
    return value


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and burn the requested burst."""
    parser = argparse.ArgumentParser(prog="py_sched.burst", description="Simulated CPU burst")
    parser.add_argument("runtime", type=_non_negative_int, help="CPU ticks to consume")
    parser.add_argument(
        "--tick",
        type=float,
        default=DEFAULT_TICK_SECONDS,
        help="length of one tick in seconds",
    )
    args = parser.parse_args(argv)
    burn(args.runtime, args.tick)
    return 0


if __name__ == "__main__":
    sys.exit(main())
