"""Scheduling policies — decide, once per tick, who should hold the CPU.

A policy looks at the ready queue and the running PCB and returns a
``Decision``.  It never touches a PCB or a worker itself: the lifecycle
controller carries the decision out.  Three policies ship:

- **SJFPolicy** (Shortest Job First, non-preemptive): when the CPU is
  idle, pick the eligible PCB with the least remaining time.  Once
  dispatched, a job runs until its worker exits — a shorter job that
  arrives later waits.
- **PriorityPolicy** (Preemptive Highest Priority First): every tick,
  find the eligible PCB with the lowest priority value.  It takes the
  CPU when the CPU is idle, or when it is *strictly* more important
  than the incumbent.  Equal priorities never preempt, so two peers
  cannot thrash.
- **RoundRobinPolicy**: the running PCB keeps the CPU for ``quantum``
  ticks, then goes to the tail of the queue and the new head runs.

Ties are always broken by queue order (first occurrence wins), so a
decision is fully determined by the queue and the clock.

Design: Strategy pattern
    The controller is the *context*; SchedulingPolicy is the *strategy*.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from py_sched.process.pcb import Process
    from py_sched.process.ready_queue import ReadyQueue


class DecisionKind(StrEnum):
    """What the controller must do this tick.

    - NOOP: leave the CPU as it is.
    - DISPATCH: the CPU is idle; give it to ``target``.
    - PREEMPT: pause the running PCB, then give the CPU to ``target``.
    - ROTATE: move the running PCB to the tail and let it carry on
      with a fresh slice (it is the only one left to run).
    """

    NOOP = "noop"
    DISPATCH = "dispatch"
    PREEMPT = "preempt"
    ROTATE = "rotate"


@dataclass(frozen=True)
class Decision:
    """A policy's verdict for one tick.

    Attributes:
        kind: The action to take.
        target: The PCB that should end up on the CPU (DISPATCH/PREEMPT).
        requeue: Whether the preempted PCB moves to the tail.

    """

    kind: DecisionKind
    target: Process | None = None
    requeue: bool = False


NOOP = Decision(DecisionKind.NOOP)


class Algorithm(IntEnum):
    """Command-line algorithm numbers."""

    SJF = 1
    PRIORITY = 2
    ROUND_ROBIN = 3


class SchedulingPolicy(Protocol):
    """Interface that every scheduling algorithm must satisfy.

    - decide: inspect the queue and return this tick's decision.
    - on_dispatch: learn that a PCB has just been given the CPU.
    """

    def decide(self, queue: ReadyQueue, running: Process | None, now: int) -> Decision:
        """Return the decision for tick *now*."""
        ...  # pragma: no cover

    def on_dispatch(self, process: Process, now: int) -> None:
        """Record that *process* got the CPU at *now*."""
        ...  # pragma: no cover


class SJFPolicy:
    """Shortest Job First — non-preemptive, least remaining time wins."""

    def decide(self, queue: ReadyQueue, running: Process | None, now: int) -> Decision:  # noqa: ARG002
        """Dispatch the shortest eligible job, but only onto an idle CPU."""
        if running is not None:
            return NOOP
        # min() keeps the first of equal keys, i.e. the lowest queue index.
        shortest = min(queue.eligible(), key=lambda p: p.remaining_time, default=None)
        if shortest is None:
            return NOOP
        return Decision(DecisionKind.DISPATCH, target=shortest)

    def on_dispatch(self, process: Process, now: int) -> None:  # noqa: ARG002
        """Nothing to track — SJF never looks at the clock."""


class PriorityPolicy:
    """Preemptive Highest Priority First — lower value wins.

    Tiebreaker: equal priorities resolve to queue order, and an equal
    challenger never displaces the incumbent.
    """

    def decide(self, queue: ReadyQueue, running: Process | None, now: int) -> Decision:  # noqa: ARG002
        """Dispatch or preempt in favour of the most important PCB."""
        candidates = [p for p in queue if p.is_eligible or p is running]
        best = min(candidates, key=lambda p: p.priority, default=None)
        if best is None or best is running:
            return NOOP
        if running is None:
            return Decision(DecisionKind.DISPATCH, target=best)
        if best.priority < running.priority:
            return Decision(DecisionKind.PREEMPT, target=best)
        return NOOP

    def on_dispatch(self, process: Process, now: int) -> None:  # noqa: ARG002
        """Nothing to track — priorities are static."""


class RoundRobinPolicy:
    """Round Robin — each PCB gets ``quantum`` ticks, then yields.

    The policy remembers when the current occupant was last given the
    CPU.  Rotation is physical: the expired PCB moves to the tail of
    the ready queue and the first eligible PCB after it runs next.
    Finished PCBs are skipped when choosing the new head.
    """

    def __init__(self, *, quantum: int) -> None:
        """Create a Round Robin policy.

        Args:
            quantum: Ticks a PCB may run before forced preemption.

        Raises:
            ValueError: If the quantum is not positive.

        """
        if quantum <= 0:
            msg = f"Round Robin quantum must be positive, got {quantum}"
            raise ValueError(msg)
        self._quantum = quantum
        self._last_dispatch: int | None = None

    @property
    def quantum(self) -> int:
        """Return the time quantum."""
        return self._quantum

    @property
    def last_dispatch(self) -> int | None:
        """Return the tick at which the current slice began."""
        return self._last_dispatch

    def decide(self, queue: ReadyQueue, running: Process | None, now: int) -> Decision:
        """Rotate on quantum expiry, otherwise fill an idle CPU."""
        if running is None:
            eligible = queue.eligible()
            if not eligible:
                return NOOP
            return Decision(DecisionKind.DISPATCH, target=eligible[0])

        last = now if self._last_dispatch is None else self._last_dispatch
        if now - last < self._quantum:
            return NOOP

        # Head of the queue as it will look once *running* is at the tail.
        for process in queue:
            if process is not running and process.is_eligible:
                return Decision(DecisionKind.PREEMPT, target=process, requeue=True)
        return Decision(DecisionKind.ROTATE, target=running)

    def on_dispatch(self, process: Process, now: int) -> None:  # noqa: ARG002
        """Start a new slice."""
        self._last_dispatch = now


def make_policy(algorithm: Algorithm | int, quantum: int | None = None) -> SchedulingPolicy:
    """Build the policy for a command-line algorithm number.

    Args:
        algorithm: 1 = SJF, 2 = preemptive priority, 3 = Round Robin.
        quantum: Time slice, required for Round Robin only.

    Raises:
        ValueError: If the algorithm is unknown or Round Robin lacks a
            positive quantum.

    """
    try:
        chosen = Algorithm(algorithm)
    except ValueError:
        msg = f"Unknown scheduling algorithm {algorithm}; expected 1, 2 or 3"
        raise ValueError(msg) from None
    match chosen:
        case Algorithm.SJF:
            return SJFPolicy()
        case Algorithm.PRIORITY:
            return PriorityPolicy()
        case Algorithm.ROUND_ROBIN:
            if quantum is None:
                msg = "Round Robin requires a time quantum"
                raise ValueError(msg)
            return RoundRobinPolicy(quantum=quantum)
