"""Worker handles — real OS processes standing in for CPU bursts.

Each dispatched PCB gets one worker: an external process that burns
the requested amount of CPU time and exits.  The scheduler emulates
preemption by stopping and continuing that process, so a paused PCB's
worker keeps its progress.

The core never sees a PID.  It holds an opaque ``WorkerHandle`` with
four operations (pause, resume, terminate, is_alive) and learns about
completion through a callback that receives a ``CompletionEvent``.
The callback fires on a watcher thread, so the controller only ever
*queues* the event from it; all state changes happen later, on the
control loop.

Process control goes through ``psutil``: ``suspend()`` / ``resume()``
deliver SIGSTOP / SIGCONT, and ``psutil.Popen`` gives us both the
``subprocess`` API and those helpers on one object.
"""

from __future__ import annotations

import sys
import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import psutil

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

TERMINATE_GRACE_SECONDS = 1.0


class WorkerSpawnError(RuntimeError):
    """Raise when a worker process cannot be started."""


@dataclass(frozen=True)
class CompletionEvent:
    """Notification that the worker for process ``pid`` has exited."""

    pid: int
    exit_code: int | None = 0


class WorkerHandle(Protocol):
    """Capability to control one worker."""

    def pause(self) -> None:
        """Stop the worker without losing its progress."""
        ...  # pragma: no cover

    def resume(self) -> None:
        """Let a paused worker continue."""
        ...  # pragma: no cover

    def terminate(self) -> None:
        """End the worker (best effort)."""
        ...  # pragma: no cover

    def is_alive(self) -> bool:
        """Return True until the worker has exited."""
        ...  # pragma: no cover


class WorkerFactory(Protocol):
    """Something that can start workers."""

    def spawn(
        self,
        pid: int,
        runtime: int,
        on_exit: Callable[[CompletionEvent], None],
    ) -> WorkerHandle:
        """Start a worker for process *pid* that runs for *runtime* ticks.

        ``on_exit`` is called exactly once, possibly from another
        thread, when the worker terminates.

        Raises:
            WorkerSpawnError: If the worker cannot be started.

        """
        ...  # pragma: no cover


class SubprocessWorker:
    """A worker backed by an OS process."""

    def __init__(
        self,
        pid: int,
        proc: psutil.Popen,
        on_exit: Callable[[CompletionEvent], None],
    ) -> None:
        """Wrap a started process and begin watching for its exit."""
        self._pid = pid
        self._proc = proc
        self._on_exit = on_exit
        self._exited = threading.Event()
        self._watcher = threading.Thread(
            target=self._watch,
            name=f"worker-{pid}",
            daemon=True,
        )
        self._watcher.start()

    def _watch(self) -> None:
        """Block until the process exits, then report it once."""
        exit_code = self._proc.wait()
        self._exited.set()
        self._on_exit(CompletionEvent(pid=self._pid, exit_code=exit_code))

    def pause(self) -> None:
        """Send SIGSTOP."""
        with suppress(psutil.NoSuchProcess):
            self._proc.suspend()

    def resume(self) -> None:
        """Send SIGCONT."""
        with suppress(psutil.NoSuchProcess):
            self._proc.resume()

    def terminate(self) -> None:
        """Continue the process, ask it to stop, and kill it if it lingers."""
        if self._exited.is_set():
            return
        with suppress(psutil.NoSuchProcess):
            # A stopped process only acts on SIGTERM once continued.
            self._proc.resume()
            self._proc.terminate()
            try:
                self._proc.wait(timeout=TERMINATE_GRACE_SECONDS)
            except psutil.TimeoutExpired:
                self._proc.kill()

    def is_alive(self) -> bool:
        """Return True until the watcher has seen the process exit."""
        return not self._exited.is_set()

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"SubprocessWorker(pid={self._pid}, alive={self.is_alive()})"


class SubprocessWorkerFactory:
    """Start workers running the burst program."""

    def __init__(
        self,
        *,
        tick_seconds: float,
        command: Sequence[str] | None = None,
    ) -> None:
        """Create a factory.

        Args:
            tick_seconds: Length of one tick, passed to every worker.
            command: Program prefix to run; the runtime and tick flag
                are appended.  Defaults to ``python -m py_sched.burst``.

        """
        self._tick_seconds = tick_seconds
        self._command = (
            list(command) if command is not None else [sys.executable, "-m", "py_sched.burst"]
        )

    def argv(self, runtime: int) -> list[str]:
        """Return the full command line for a worker of *runtime* ticks."""
        return [*self._command, str(runtime), "--tick", str(self._tick_seconds)]

    def spawn(
        self,
        pid: int,
        runtime: int,
        on_exit: Callable[[CompletionEvent], None],
    ) -> SubprocessWorker:
        """Start the burst program for process *pid*.

        Raises:
            WorkerSpawnError: If the OS refuses to start the program.

        """
        try:
            # Own session: a terminal Ctrl+C reaches the scheduler, not the workers.
            proc = psutil.Popen(self.argv(runtime), start_new_session=True)
        except OSError as e:
            msg = f"Cannot start worker for process {pid}: {e}"
            raise WorkerSpawnError(msg) from e
        return SubprocessWorker(pid, proc, on_exit)
