"""Simulated workers — deterministic, in-process stand-ins for bursts.

Real workers make a run depend on the OS scheduler and wall time.  For
reproducible runs and tests, ``SimulatedWorkerPool`` plays the same
role without any processes: each worker is a countdown that only
decreases while it is not paused.

The pool must be advanced once per tick, *before* the controller's
tick, exactly as a real worker would have burned CPU during the
previous tick.  When a countdown reaches zero the pool calls the
worker's ``on_exit`` callback, just as a watcher thread would.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.process.worker import CompletionEvent, WorkerSpawnError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from py_sched.clock import Clock

EXIT_TERMINATED = -15


class SimulatedWorker:
    """One countdown standing in for one CPU burst."""

    def __init__(
        self,
        pid: int,
        runtime: int,
        on_exit: Callable[[CompletionEvent], None],
        *,
        started_at: int,
    ) -> None:
        """Create a running worker that owes *runtime* ticks."""
        self._pid = pid
        self._remaining = runtime
        self._on_exit = on_exit
        self._paused = False
        self._alive = True
        self._last_update = started_at
        self.signals: list[str] = []

    @property
    def pid(self) -> int:
        """Return the simulated process id this worker serves."""
        return self._pid

    @property
    def remaining(self) -> int:
        """Return the ticks still to burn."""
        return self._remaining

    @property
    def paused(self) -> bool:
        """Return True while stopped."""
        return self._paused

    def advance(self, now: int) -> None:
        """Burn the ticks since the last update, exiting at zero."""
        if not self._alive:
            return
        if not self._paused:
            self._remaining -= now - self._last_update
        self._last_update = now
        if self._remaining <= 0:
            self._exit(0)

    def pause(self) -> None:
        """Stop the countdown."""
        self.signals.append("stop")
        self._paused = True

    def resume(self) -> None:
        """Restart the countdown."""
        self.signals.append("cont")
        self._paused = False

    def terminate(self) -> None:
        """Kill the worker; it reports a non-zero exit."""
        self.signals.append("term")
        if self._alive:
            self._exit(EXIT_TERMINATED)

    def is_alive(self) -> bool:
        """Return True until the countdown ends or the worker is killed."""
        return self._alive

    def _exit(self, exit_code: int) -> None:
        self._alive = False
        self._on_exit(CompletionEvent(pid=self._pid, exit_code=exit_code))


class SimulatedWorkerPool:
    """A ``WorkerFactory`` whose workers run on simulated time."""

    def __init__(self, clock: Clock, *, fail_pids: Iterable[int] = ()) -> None:
        """Create a pool.

        Args:
            clock: Source of the current tick.
            fail_pids: Process ids whose spawn should fail.

        """
        self._clock = clock
        self._fail_pids = frozenset(fail_pids)
        self._workers: dict[int, SimulatedWorker] = {}

    @property
    def workers(self) -> dict[int, SimulatedWorker]:
        """Return every worker ever spawned, keyed by process id."""
        return dict(self._workers)

    def spawn(
        self,
        pid: int,
        runtime: int,
        on_exit: Callable[[CompletionEvent], None],
    ) -> SimulatedWorker:
        """Start a countdown for *pid*.

        Raises:
            WorkerSpawnError: If *pid* was configured to fail.

        """
        if pid in self._fail_pids:
            msg = f"Cannot start worker for process {pid}: spawn refused"
            raise WorkerSpawnError(msg)
        worker = SimulatedWorker(pid, runtime, on_exit, started_at=self._clock.now())
        self._workers[pid] = worker
        return worker

    def advance(self) -> None:
        """Bring every live worker up to the clock's current tick."""
        now = self._clock.now()
        for worker in list(self._workers.values()):
            worker.advance(now)
