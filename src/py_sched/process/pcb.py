"""Process descriptors and the Process Control Block (PCB).

A **descriptor** is what the generator knows about a process before it
arrives: its id, arrival time, CPU burst, and priority.  It never
changes.

The **PCB** is the scheduler's own record of an admitted process.  It
copies the descriptor's fields and adds everything that changes while
the process competes for the CPU: remaining time, waiting time, start
and end times, and the worker that stands in for its CPU burst.

PCBs follow a strict state machine — each transition method checks the
source state before moving, so an illegal move raises instead of
silently corrupting the schedule::

    ADMITTED → RUNNING ⇄ PAUSED
        ↓         ↓        ↓
      FAILED    FINISHED ←─┘

FINISHED and FAILED are terminal.  Scheduling never brings
``remaining_time`` to 0; only a finish does.  The one exception is a
zero-length burst, which is admitted with ``remaining_time`` already 0
and still runs until its worker exits.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_sched.process.worker import WorkerHandle

UNSET_TIME = -1


class ProcessState(StrEnum):
    """Lifecycle states of a PCB.

    - ADMITTED: in the ready queue, never dispatched.
    - RUNNING: owns the CPU (at most one PCB at a time).
    - PAUSED: preempted; its worker is stopped but alive.
    - FINISHED: its worker exited; kept only for metrics.
    - FAILED: its worker could not be started; never selected again.
    """

    ADMITTED = "admitted"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"
    FAILED = "failed"


TERMINAL_STATES: frozenset[ProcessState] = frozenset(
    {ProcessState.FINISHED, ProcessState.FAILED},
)


@dataclass(frozen=True)
class ProcessDescriptor:
    """An admission record produced by the generator.

    Attributes:
        pid: Workload-assigned process id (unique per run).
        arrival_time: Tick at which the process becomes known.
        runtime: Total CPU burst in ticks.
        priority: Scheduling priority (lower value = more important).

    """

    pid: int
    arrival_time: int
    runtime: int
    priority: int = 0

    def __post_init__(self) -> None:
        """Reject negative times."""
        if self.arrival_time < 0:
            msg = f"Process {self.pid}: arrival time must be >= 0, got {self.arrival_time}"
            raise ValueError(msg)
        if self.runtime < 0:
            msg = f"Process {self.pid}: runtime must be >= 0, got {self.runtime}"
            raise ValueError(msg)


class Process:
    """The Process Control Block for one admitted process.

    Timing fields are updated by the transition methods, which all take
    the current tick.  The lifecycle controller is the only caller.
    """

    def __init__(self, descriptor: ProcessDescriptor) -> None:
        """Create an ADMITTED PCB from its descriptor."""
        self._pid = descriptor.pid
        self._arrival_time = descriptor.arrival_time
        self._runtime = descriptor.runtime
        self._priority = descriptor.priority
        self._state = ProcessState.ADMITTED
        self._remaining_time = descriptor.runtime
        self._waiting_time = 0
        self._start_time = UNSET_TIME
        self._end_time = UNSET_TIME
        self._slice_start = UNSET_TIME
        self._worker: WorkerHandle | None = None

    @property
    def pid(self) -> int:
        """Return the process id."""
        return self._pid

    @property
    def arrival_time(self) -> int:
        """Return the arrival tick."""
        return self._arrival_time

    @property
    def runtime(self) -> int:
        """Return the total CPU burst."""
        return self._runtime

    @property
    def priority(self) -> int:
        """Return the (immutable) priority."""
        return self._priority

    @property
    def state(self) -> ProcessState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def remaining_time(self) -> int:
        """Return the CPU time still owed to this process."""
        return self._remaining_time

    @property
    def waiting_time(self) -> int:
        """Return the waiting time as of the last transition."""
        return self._waiting_time

    @property
    def start_time(self) -> int:
        """Return the first dispatch tick, or -1 if never dispatched."""
        return self._start_time

    @property
    def end_time(self) -> int:
        """Return the completion tick, or -1 if not finished."""
        return self._end_time

    @property
    def slice_start(self) -> int:
        """Return the tick at which the current CPU slice began."""
        return self._slice_start

    @property
    def worker(self) -> WorkerHandle | None:
        """Return the worker handle, or None before the first dispatch."""
        return self._worker

    @property
    def is_eligible(self) -> bool:
        """Return True if a policy may hand this PCB the CPU."""
        return self._state in (ProcessState.ADMITTED, ProcessState.PAUSED)

    @property
    def is_terminal(self) -> bool:
        """Return True once the PCB is FINISHED or FAILED."""
        return self._state in TERMINAL_STATES

    @property
    def turnaround(self) -> int | None:
        """Return ``end_time - arrival_time``, or None until finished."""
        if self._state is not ProcessState.FINISHED:
            return None
        return self._end_time - self._arrival_time

    @property
    def weighted_turnaround(self) -> float | None:
        """Return turnaround divided by runtime, or None until finished.

        A zero-length burst has no meaningful ratio; it reports 0.0.
        """
        turnaround = self.turnaround
        if turnaround is None:
            return None
        if self._runtime == 0:
            return 0.0
        return turnaround / self._runtime

    def waiting_at(self, now: int) -> int:
        """Return the time spent off the CPU since arrival, as of *now*."""
        executed = self._runtime - self._remaining_time
        if self._state is ProcessState.RUNNING:
            executed += now - self._slice_start
        return max(0, now - self._arrival_time - executed)

    def _transition(
        self,
        action: str,
        expected: tuple[ProcessState, ...],
        target: ProcessState,
    ) -> None:
        """Enforce a state transition.

        Raises:
            RuntimeError: If the PCB is not in one of the expected states.

        """
        if self._state not in expected:
            allowed = "/".join(expected)
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {allowed}"
            raise RuntimeError(msg)
        self._state = target

    def dispatch(self, now: int, worker: WorkerHandle) -> None:
        """Transition ADMITTED → RUNNING and attach the worker for good."""
        self._transition("dispatch", (ProcessState.ADMITTED,), ProcessState.RUNNING)
        self._worker = worker
        self._start_time = now
        self._slice_start = now
        self._waiting_time = self.waiting_at(now)

    def preempt(self, now: int) -> int:
        """Transition RUNNING → PAUSED and return the length of the slice.

        The slice is charged against ``remaining_time``, which stops at
        1: only a completion may bring it to 0.
        """
        self._transition("preempt", (ProcessState.RUNNING,), ProcessState.PAUSED)
        elapsed = now - self._slice_start
        self._remaining_time = max(1, self._remaining_time - elapsed)
        self._waiting_time = self.waiting_at(now)
        return elapsed

    def resume(self, now: int) -> None:
        """Transition PAUSED → RUNNING."""
        self._transition("resume", (ProcessState.PAUSED,), ProcessState.RUNNING)
        self._slice_start = now
        self._waiting_time = self.waiting_at(now)

    def finish(self, now: int) -> int:
        """Transition RUNNING/PAUSED → FINISHED and fix the final timings.

        Returns:
            The CPU time consumed by the closing slice (0 if the PCB
            was paused when its worker exited).

        """
        was_running = self._state is ProcessState.RUNNING
        self._transition(
            "finish",
            (ProcessState.RUNNING, ProcessState.PAUSED),
            ProcessState.FINISHED,
        )
        self._end_time = now
        self._remaining_time = 0
        self._waiting_time = max(0, now - self._arrival_time - self._runtime)
        return now - self._slice_start if was_running else 0

    def fail(self) -> None:
        """Transition ADMITTED → FAILED (the worker never started)."""
        self._transition("fail", (ProcessState.ADMITTED,), ProcessState.FAILED)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid}, state={self._state}, "
            f"remaining={self._remaining_time}, priority={self._priority})"
        )
