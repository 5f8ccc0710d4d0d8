"""Run log and performance summary.

Every lifecycle transition the controller performs becomes one
``RunEvent``: a snapshot of the PCB at that tick.  The ``RunLog`` keeps
them in memory and, when given a path, appends each one to a text file
as it happens::

    #At time x process y state arr w total z remain y wait k
    At time 0 process 1 started arr 0 total 5 remain 5 wait 0
    At time 2 process 1 stopped arr 0 total 5 remain 3 wait 0
    At time 5 process 2 finished arr 2 total 3 remain 0 wait 0 TA 3 WTA 1.00

At shutdown ``compute_summary`` folds the finished PCBs into the
run-wide figures, which ``write_summary`` persists::

    CPU utilization = 100.00%
    Avg WTA = 1.50
    Avg Waiting = 1.50
    Std WTA = 0.50

Nothing here feeds back into scheduling decisions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from py_sched.process.pcb import Process

RUN_LOG_HEADER = "#At time x process y state arr w total z remain y wait k"


class EventKind(StrEnum):
    """Lifecycle events that appear in the run log."""

    ADMITTED = "admitted"
    STARTED = "started"
    RESUMED = "resumed"
    STOPPED = "stopped"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class RunEvent:
    """A snapshot of one PCB at one lifecycle transition."""

    time: int
    kind: EventKind
    pid: int
    arrival: int
    total: int
    remaining: int
    waiting: int
    turnaround: int | None = None
    weighted_turnaround: float | None = None

    @classmethod
    def snapshot(cls, time: int, kind: EventKind, process: Process) -> RunEvent:
        """Capture *process* as it stands at *time*."""
        return cls(
            time=time,
            kind=kind,
            pid=process.pid,
            arrival=process.arrival_time,
            total=process.runtime,
            remaining=process.remaining_time,
            waiting=process.waiting_at(time),
            turnaround=process.turnaround,
            weighted_turnaround=process.weighted_turnaround,
        )

    def __str__(self) -> str:
        """Format as one run-log line."""
        line = (
            f"At time {self.time} process {self.pid} {self.kind} "
            f"arr {self.arrival} total {self.total} "
            f"remain {self.remaining} wait {self.waiting}"
        )
        if self.turnaround is not None:
            wta = self.weighted_turnaround or 0.0
            line += f" TA {self.turnaround} WTA {wta:.2f}"
        return line


class RunLog:
    """Append-only record of lifecycle events.

    Without a path the log lives only in memory.  With one, ``open()``
    truncates the file and writes the header, and every ``record()``
    writes and flushes one line so an interrupted run loses nothing.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Create a run log, optionally backed by *path*."""
        self._path = path
        self._events: list[RunEvent] = []
        self._file: TextIO | None = None

    @property
    def path(self) -> Path | None:
        """Return the backing file path, if any."""
        return self._path

    @property
    def events(self) -> list[RunEvent]:
        """Return every recorded event in order."""
        return list(self._events)

    @property
    def is_open(self) -> bool:
        """Return True while the backing file is open."""
        return self._file is not None

    def open(self) -> None:
        """Open the backing file (no-op for in-memory logs).

        Raises:
            OSError: If the file cannot be created.

        """
        if self._path is None or self._file is not None:
            return
        self._file = self._path.open("w", encoding="utf-8")
        self._file.write(RUN_LOG_HEADER + "\n")
        self._file.flush()

    def record(self, event: RunEvent) -> None:
        """Append *event*."""
        self._events.append(event)
        if self._file is not None:
            self._file.write(f"{event}\n")
            self._file.flush()

    def filter(self, *, kind: EventKind | None = None, pid: int | None = None) -> list[RunEvent]:
        """Return events matching the given kind and/or pid."""
        return [
            e
            for e in self._events
            if (kind is None or e.kind is kind) and (pid is None or e.pid == pid)
        ]

    def close(self) -> None:
        """Close the backing file, if open."""
        if self._file is not None:
            self._file.close()
            self._file = None


@dataclass(frozen=True)
class PerformanceSummary:
    """Run-wide scheduling figures."""

    cpu_utilization: float
    avg_wta: float
    avg_waiting: float
    std_wta: float

    def format(self) -> str:
        """Render the summary as the ``.perf`` file body."""
        return (
            f"CPU utilization = {self.cpu_utilization:.2f}%\n"
            f"Avg WTA = {self.avg_wta:.2f}\n"
            f"Avg Waiting = {self.avg_waiting:.2f}\n"
            f"Std WTA = {self.std_wta:.2f}\n"
        )


def compute_summary(
    processes: Iterable[Process],
    *,
    cpu_busy_time: int,
    start: int,
    end: int,
    total_admitted: int,
) -> PerformanceSummary:
    """Fold per-process timings into a ``PerformanceSummary``.

    Averages divide by every admitted process; a process that never
    finished contributes nothing to the sums.  Zero elapsed time and
    zero admissions produce zeros instead of a division error.
    """
    elapsed = end - start
    utilization = cpu_busy_time / elapsed * 100 if elapsed > 0 else 0.0

    wtas: list[float] = []
    total_waiting = 0
    for process in processes:
        wta = process.weighted_turnaround
        if wta is None:
            continue
        wtas.append(wta)
        total_waiting += process.waiting_time

    if total_admitted <= 0:
        return PerformanceSummary(utilization, 0.0, 0.0, 0.0)

    avg_wta = sum(wtas) / total_admitted
    avg_waiting = total_waiting / total_admitted
    if wtas:
        mean = sum(wtas) / len(wtas)
        std_wta = math.sqrt(sum((w - mean) ** 2 for w in wtas) / len(wtas))
    else:
        std_wta = 0.0
    return PerformanceSummary(
        cpu_utilization=utilization,
        avg_wta=avg_wta,
        avg_waiting=avg_waiting,
        std_wta=std_wta,
    )


def write_summary(summary: PerformanceSummary, path: Path) -> None:
    """Persist *summary* to *path*, replacing any previous contents."""
    path.write_text(summary.format(), encoding="utf-8")
