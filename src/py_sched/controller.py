"""The lifecycle controller — the scheduler's single writer.

The controller owns the ready queue, the running slot, and every PCB
state change.  It is driven by ``tick()``, called once per simulated
time unit by the control loop.  Each tick runs in a fixed order:

    1. Drain completions — worker exits reported since the last tick.
    2. Admit — poll the admission channel and queue new PCBs.
    3. Decide — ask the scheduling policy what the CPU should do.
    4. Execute — spawn, pause, resume, or rotate via worker handles.

Worker exits arrive on watcher threads (or from the simulated pool) at
any moment.  The callback handed to each worker does nothing but put a
``CompletionEvent`` on a ``queue.SimpleQueue``; only ``tick()`` takes
events off it.  So exactly one thread of control ever touches
scheduler state, and a CPU freed by a completion can be reassigned in
the same tick.

Lifecycle::

    (created) → start() → tick() … tick() → shutdown()

``shutdown()`` closes the books on every exit path: it terminates any
live workers, writes the performance summary, and closes the run log.
Use the controller as a context manager to get that for free.
"""

from __future__ import annotations

import queue
from typing import TYPE_CHECKING, Self

from py_sched.logging import Logger, LogLevel
from py_sched.metrics import (
    EventKind,
    PerformanceSummary,
    RunEvent,
    RunLog,
    compute_summary,
    write_summary,
)
from py_sched.process.pcb import Process, ProcessState
from py_sched.process.policies import DecisionKind
from py_sched.process.ready_queue import ReadyQueue
from py_sched.process.worker import CompletionEvent, WorkerSpawnError

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from py_sched.clock import Clock
    from py_sched.ipc import AdmissionChannel
    from py_sched.process.policies import Decision, SchedulingPolicy
    from py_sched.process.worker import WorkerFactory, WorkerHandle

_SOURCE = "controller"


class LifecycleController:
    """Apply a scheduling policy to admitted processes, tick by tick."""

    def __init__(
        self,
        *,
        policy: SchedulingPolicy,
        clock: Clock,
        channel: AdmissionChannel,
        workers: WorkerFactory,
        run_log: RunLog | None = None,
        logger: Logger | None = None,
        perf_path: Path | None = None,
    ) -> None:
        """Create a controller.

        Args:
            policy: The algorithm that decides who runs.
            clock: Source of the current tick.
            channel: Where admissions arrive from.
            workers: Factory for the processes that stand in for bursts.
            run_log: Destination for lifecycle events (in-memory if None).
            logger: Destination for diagnostics (a fresh one if None).
            perf_path: Where to write the summary at shutdown, if anywhere.

        """
        self._policy = policy
        self._clock = clock
        self._channel = channel
        self._workers = workers
        self._run_log = run_log if run_log is not None else RunLog()
        self._logger = logger if logger is not None else Logger()
        self._perf_path = perf_path

        self._queue = ReadyQueue()
        self._running_pid: int | None = None
        self._completions: queue.SimpleQueue[CompletionEvent] = queue.SimpleQueue()
        self._cpu_busy_time = 0
        self._total_admitted = 0
        self._simulation_start: int | None = None
        self._simulation_end: int | None = None
        self._summary: PerformanceSummary | None = None

    # -- Queries ---------------------------------------------------------------

    @property
    def policy(self) -> SchedulingPolicy:
        """Return the active scheduling policy."""
        return self._policy

    @property
    def ready_queue(self) -> ReadyQueue:
        """Return the ready queue (read it, don't mutate it)."""
        return self._queue

    @property
    def processes(self) -> list[Process]:
        """Return every admitted PCB in queue order."""
        return self._queue.processes

    @property
    def running(self) -> Process | None:
        """Return the PCB holding the CPU, or None."""
        if self._running_pid is None:
            return None
        return self._queue.get(self._running_pid)

    @property
    def cpu_busy_time(self) -> int:
        """Return the ticks the CPU has spent executing bursts so far."""
        return self._cpu_busy_time

    @property
    def total_admitted(self) -> int:
        """Return the number of PCBs admitted."""
        return self._total_admitted

    @property
    def all_terminal(self) -> bool:
        """Return True when every admitted PCB is FINISHED or FAILED."""
        return all(p.is_terminal for p in self._queue)

    @property
    def run_log(self) -> RunLog:
        """Return the run log."""
        return self._run_log

    @property
    def logger(self) -> Logger:
        """Return the diagnostic logger."""
        return self._logger

    @property
    def summary(self) -> PerformanceSummary | None:
        """Return the performance summary, available after shutdown."""
        return self._summary

    @property
    def started(self) -> bool:
        """Return True between start() and shutdown()."""
        return self._simulation_start is not None and self._summary is None

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Claim the output files and mark the start of the simulation.

        The summary file is created empty here and filled in at shutdown.

        Raises:
            OSError: If the summary file or the run log cannot be opened.

        """
        if self._simulation_start is not None:
            return
        if self._perf_path is not None:
            self._perf_path.write_text("", encoding="utf-8")
        self._run_log.open()
        self._simulation_start = self._clock.now()
        self._logger.log(
            LogLevel.INFO,
            f"Scheduler started with {type(self._policy).__name__}",
            source=_SOURCE,
            time=self._simulation_start,
        )

    def __enter__(self) -> Self:
        """Start the controller."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Shut down on every exit path."""
        self.shutdown()

    def shutdown(self) -> PerformanceSummary:
        """Stop every worker, persist the summary, and close the run log.

        Safe to call more than once; later calls return the same summary.
        """
        if self._summary is not None:
            return self._summary
        now = self._clock.now()
        if self._simulation_start is None:
            self._simulation_start = now
        self._simulation_end = now

        # Apply exits that already happened, then close the open slice.
        self._drain_completions(now)
        running = self.running
        if running is not None:
            self._cpu_busy_time += now - running.slice_start
        self._terminate_workers()

        self._summary = compute_summary(
            self._queue,
            cpu_busy_time=self._cpu_busy_time,
            start=self._simulation_start,
            end=self._simulation_end,
            total_admitted=self._total_admitted,
        )
        try:
            if self._perf_path is not None:
                write_summary(self._summary, self._perf_path)
        finally:
            self._run_log.close()
        self._logger.log(LogLevel.INFO, "Scheduler shut down", source=_SOURCE, time=now)
        return self._summary

    def _terminate_workers(self) -> None:
        for process in self._queue:
            worker = process.worker
            if worker is not None and worker.is_alive():
                worker.terminate()

    # -- The tick --------------------------------------------------------------

    def notify_exit(self, event: CompletionEvent) -> None:
        """Queue a worker exit; safe to call from any thread."""
        self._completions.put(event)

    def tick(self) -> None:
        """Run one scheduling round at the clock's current time."""
        if self._simulation_start is None:
            self.start()
        now = self._clock.now()
        self._drain_completions(now)
        self._admit(now)
        decision = self._policy.decide(self._queue, self.running, now)
        self._execute(decision, now)

    # -- Completions -----------------------------------------------------------

    def _drain_completions(self, now: int) -> None:
        while True:
            try:
                event = self._completions.get_nowait()
            except queue.Empty:
                return
            self._complete(event, now)

    def _complete(self, event: CompletionEvent, now: int) -> None:
        if event.pid not in self._queue:
            self._logger.log(
                LogLevel.WARNING,
                f"Completion for unknown process {event.pid} ignored",
                source=_SOURCE,
                time=now,
                pid=event.pid,
            )
            return
        process = self._queue.get(event.pid)
        if process.state not in (ProcessState.RUNNING, ProcessState.PAUSED):
            return  # already finished: replays are no-ops
        if event.exit_code not in (0, None):
            self._logger.log(
                LogLevel.WARNING,
                f"Worker for process {event.pid} exited with code {event.exit_code}",
                source=_SOURCE,
                time=now,
                pid=event.pid,
            )
        self._cpu_busy_time += process.finish(now)
        if self._running_pid == process.pid:
            self._running_pid = None
        self._record(now, EventKind.FINISHED, process)

    # -- Admissions ------------------------------------------------------------

    def _admit(self, now: int) -> None:
        for descriptor in self._channel.poll():
            process = Process(descriptor)
            try:
                self._queue.insert(process)
            except ValueError as e:
                self._logger.log(LogLevel.ERROR, str(e), source=_SOURCE, time=now, pid=descriptor.pid)
                continue
            self._total_admitted += 1
            self._record(now, EventKind.ADMITTED, process)

    # -- Decisions -------------------------------------------------------------

    def _execute(self, decision: Decision, now: int) -> None:
        running = self.running
        match decision.kind:
            case DecisionKind.NOOP:
                return
            case DecisionKind.DISPATCH:
                assert decision.target is not None  # noqa: S101
                self._give_cpu(decision.target, now)
            case DecisionKind.PREEMPT:
                assert decision.target is not None  # noqa: S101
                assert running is not None  # noqa: S101
                worker = None
                if decision.target.state is not ProcessState.PAUSED:
                    # A challenger that cannot start leaves the incumbent running.
                    worker = self._spawn(decision.target, now)
                    if worker is None:
                        return
                self._pause(running, now)
                if decision.requeue:
                    self._queue.move_to_tail(running.pid)
                self._give_cpu(decision.target, now, worker)
            case DecisionKind.ROTATE:
                assert running is not None  # noqa: S101
                self._queue.move_to_tail(running.pid)
                self._policy.on_dispatch(running, now)

    def _pause(self, process: Process, now: int) -> None:
        worker = process.worker
        assert worker is not None  # noqa: S101
        worker.pause()
        self._cpu_busy_time += process.preempt(now)
        self._running_pid = None
        self._record(now, EventKind.STOPPED, process)

    def _spawn(self, process: Process, now: int) -> WorkerHandle | None:
        """Start a worker for *process*, or fail the PCB and return None."""
        try:
            return self._workers.spawn(process.pid, process.remaining_time, self.notify_exit)
        except WorkerSpawnError as e:
            process.fail()
            self._logger.log(LogLevel.ERROR, str(e), source=_SOURCE, time=now, pid=process.pid)
            self._record(now, EventKind.FAILED, process)
            return None

    def _give_cpu(self, process: Process, now: int, worker: WorkerHandle | None = None) -> None:
        if process.state is ProcessState.PAUSED:
            paused = process.worker
            assert paused is not None  # noqa: S101
            paused.resume()
            process.resume(now)
            kind = EventKind.RESUMED
        else:
            if worker is None:
                worker = self._spawn(process, now)
                if worker is None:
                    return
            process.dispatch(now, worker)
            kind = EventKind.STARTED
        self._running_pid = process.pid
        self._policy.on_dispatch(process, now)
        self._record(now, kind, process)

    def _record(self, now: int, kind: EventKind, process: Process) -> None:
        self._run_log.record(RunEvent.snapshot(now, kind, process))
