"""Command-line entry point: ``py-sched ALGORITHM [QUANTUM]``.

Algorithms:
    1. Shortest Job First (non-preemptive)
    2. Preemptive Highest Priority First
    3. Round Robin (QUANTUM required)

A live run starts the generator as a child process, then enters the
classic control loop:

    1. **Tick** — drain completions, admit arrivals, schedule.
    2. **Sleep** — wait for the next tick boundary.
    3. **Loop** — until Ctrl+C or SIGTERM.

The admission stream never ends on its own, so a live run always stops
from outside; the controller's context manager then stops the workers
and writes the run log and the performance summary.  ``--simulate``
instead replays the workload on simulated time and exits when every
process is done.

Exit codes: 0 on a completed or interrupted run, 2 for bad arguments or
configuration, 1 when a file or the admission channel is unavailable.
"""

from __future__ import annotations

import argparse
import multiprocessing
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from py_sched.clock import WallClock
from py_sched.config import ConfigError, SchedulerConfig, load_config
from py_sched.controller import LifecycleController
from py_sched.generator import WorkloadError, parse_workload, run_generator
from py_sched.ipc import AdmissionChannel, ChannelError
from py_sched.logging import LogEntry, Logger, LogLevel
from py_sched.metrics import RunLog
from py_sched.process.policies import Algorithm, make_policy
from py_sched.process.worker import SubprocessWorkerFactory
from py_sched.simulation import run_simulation

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from py_sched.process.pcb import ProcessDescriptor

EXIT_OK = 0
EXIT_RESOURCE_ERROR = 1
GENERATOR_JOIN_SECONDS = 2.0


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``py-sched``."""
    parser = argparse.ArgumentParser(
        prog="py-sched",
        description="Single-CPU process scheduling simulator",
    )
    parser.add_argument(
        "algorithm",
        type=int,
        choices=[int(a) for a in Algorithm],
        help="1 = SJF, 2 = preemptive priority, 3 = Round Robin",
    )
    parser.add_argument("quantum", type=int, nargs="?", help="time quantum (Round Robin only)")
    parser.add_argument("--workload", type=Path, help="workload file (default: processes.txt)")
    parser.add_argument("--tick", type=float, dest="tick_seconds", help="seconds per tick")
    parser.add_argument("--log", type=Path, dest="log_path", help="run log file")
    parser.add_argument("--perf", type=Path, dest="perf_path", help="performance summary file")
    parser.add_argument("--config", type=Path, help="JSON file with default settings")
    parser.add_argument(
        "--simulate",
        action="store_true",
        default=None,
        help="replay the workload on simulated time instead of real workers",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=None,
        help="echo every diagnostic to stderr",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> SchedulerConfig:
    """Merge the config file and command-line arguments, then validate.

    Raises:
        ConfigError: If the result is not runnable.

    """
    base = load_config(args.config)
    return base.with_overrides(
        algorithm=Algorithm(args.algorithm),
        quantum=args.quantum,
        tick_seconds=args.tick_seconds,
        workload=args.workload,
        log_path=args.log_path,
        perf_path=args.perf_path,
        simulate=args.simulate,
        verbose=args.verbose,
    ).validate()


def _stderr_sink(verbose: bool) -> Callable[[LogEntry], None]:
    """Echo errors always, and everything else when verbose."""

    def sink(entry: LogEntry) -> None:
        if verbose or entry.level >= LogLevel.ERROR:
            print(entry, file=sys.stderr)  # noqa: T201

    return sink


def _raise_interrupt(_signum: int, _frame: FrameType | None) -> None:
    """Turn SIGTERM into the same shutdown path as Ctrl+C."""
    raise KeyboardInterrupt


def _generator_main(
    descriptors: list[ProcessDescriptor],
    channel: AdmissionChannel,
    clock: WallClock,
    verbose: bool,
) -> None:
    """Body of the generator child; the parent alone decides when it stops."""
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    run_generator(descriptors, channel, clock, logger=Logger(sink=_stderr_sink(verbose)))


def run_simulated(config: SchedulerConfig, descriptors: list[ProcessDescriptor], logger: Logger) -> int:
    """Replay the workload on simulated time and print the summary."""
    result = run_simulation(
        descriptors,
        make_policy(config.algorithm, config.quantum),
        log_path=config.log_path,
        perf_path=config.perf_path,
        logger=logger,
    )
    print(result.summary.format(), end="")  # noqa: T201
    return EXIT_OK


def run_live(config: SchedulerConfig, descriptors: list[ProcessDescriptor], logger: Logger) -> int:
    """Run the scheduler against real workers until interrupted."""
    clock = WallClock(tick_seconds=config.tick_seconds)
    channel = AdmissionChannel()
    controller = LifecycleController(
        policy=make_policy(config.algorithm, config.quantum),
        clock=clock,
        channel=channel,
        workers=SubprocessWorkerFactory(tick_seconds=config.tick_seconds),
        run_log=RunLog(config.log_path),
        logger=logger,
        perf_path=config.perf_path,
    )
    controller.start()

    generator = multiprocessing.Process(
        target=_generator_main,
        args=(descriptors, channel, clock, config.verbose),
        name="generator",
        daemon=True,
    )
    previous = signal.getsignal(signal.SIGTERM)
    try:
        with controller:
            generator.start()
            signal.signal(signal.SIGTERM, _raise_interrupt)
            while True:
                controller.tick()
                clock.sleep_until_next_tick()
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)  # noqa: T201
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)
        if generator.pid is not None:
            generator.terminate()
            generator.join(GENERATOR_JOIN_SECONDS)
        channel.close()

    summary = controller.summary
    if summary is not None:
        print(summary.format(), end="")  # noqa: T201
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, load the workload, and run the scheduler."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = resolve_config(args)
    except ConfigError as e:
        parser.error(str(e))

    logger = Logger(sink=_stderr_sink(config.verbose))
    try:
        descriptors = parse_workload(config.workload)
        if config.simulate:
            return run_simulated(config, descriptors, logger)
        return run_live(config, descriptors, logger)
    except (WorkloadError, ChannelError, OSError) as e:
        print(f"py-sched: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_RESOURCE_ERROR


if __name__ == "__main__":
    sys.exit(main())
