"""Deterministic simulation — a whole run on simulated time.

``run_simulation`` wires the real controller to a ``ManualClock``, a
``SimulatedWorkerPool``, and an in-memory admission channel, then ticks
until the workload is exhausted and every PCB is terminal.  Each tick
follows the order a live run would observe:

    1. workers burn the tick that just elapsed (exits are queued),
    2. the generator sends whatever has arrived,
    3. the controller ticks.

Same workload, same policy, same result — every time.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_sched.clock import ManualClock
from py_sched.controller import LifecycleController
from py_sched.generator import ProcessGenerator
from py_sched.ipc import AdmissionChannel
from py_sched.logging import Logger
from py_sched.metrics import RunLog
from py_sched.process.simulated import SimulatedWorkerPool

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from py_sched.metrics import PerformanceSummary, RunEvent
    from py_sched.process.pcb import Process, ProcessDescriptor
    from py_sched.process.policies import SchedulingPolicy

DEFAULT_MAX_TICKS = 100_000


@dataclass(frozen=True)
class SimulationResult:
    """Everything a finished simulation produced."""

    processes: list[Process]
    events: list[RunEvent]
    summary: PerformanceSummary
    end_time: int

    def process(self, pid: int) -> Process:
        """Return the PCB for *pid*.

        Raises:
            KeyError: If no such process was admitted.

        """
        for process in self.processes:
            if process.pid == pid:
                return process
        msg = f"Process {pid} was not admitted"
        raise KeyError(msg)


def run_simulation(
    descriptors: Iterable[ProcessDescriptor],
    policy: SchedulingPolicy,
    *,
    log_path: Path | None = None,
    perf_path: Path | None = None,
    logger: Logger | None = None,
    fail_pids: Iterable[int] = (),
    max_ticks: int = DEFAULT_MAX_TICKS,
) -> SimulationResult:
    """Run *descriptors* under *policy* to completion.

    Args:
        descriptors: The workload.
        policy: The scheduling policy to apply.
        log_path: Where to write the run log, if anywhere.
        perf_path: Where to write the summary, if anywhere.
        logger: Destination for diagnostics.
        fail_pids: Process ids whose workers refuse to start.
        max_ticks: Give up after this many ticks.

    Raises:
        RuntimeError: If the run has not finished within *max_ticks*.

    """
    logger = logger if logger is not None else Logger()
    clock = ManualClock()
    pool = SimulatedWorkerPool(clock, fail_pids=fail_pids)
    channel = AdmissionChannel(queue.Queue())
    generator = ProcessGenerator(descriptors, channel, logger=logger)
    controller = LifecycleController(
        policy=policy,
        clock=clock,
        channel=channel,
        workers=pool,
        run_log=RunLog(log_path),
        logger=logger,
        perf_path=perf_path,
    )

    with controller:
        while True:
            pool.advance()
            generator.emit_due(clock.now())
            controller.tick()
            if generator.exhausted and controller.all_terminal:
                break
            if clock.now() >= max_ticks:
                msg = f"Simulation did not finish within {max_ticks} ticks"
                raise RuntimeError(msg)
            clock.advance()

    summary = controller.summary
    assert summary is not None  # noqa: S101
    return SimulationResult(
        processes=controller.processes,
        events=controller.run_log.events,
        summary=summary,
        end_time=clock.now(),
    )
