"""Process generator — turns a workload file into timed admissions.

The workload is a plain text table, one process per line::

    #id  arrival  runtime  priority
    1    0        5        5
    2    2        3        1

Columns are separated by tabs or spaces.  Lines starting with ``#`` and
blank lines are ignored.

The generator holds the parsed records and, whenever it is asked,
sends every record whose arrival time has come over the admission
channel.  Each record is sent exactly once and in arrival order; a
record is never sent early.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from py_sched.logging import Logger, LogLevel
from py_sched.process.pcb import ProcessDescriptor

if TYPE_CHECKING:
    from collections.abc import Iterable

    from py_sched.clock import WallClock
    from py_sched.ipc import AdmissionChannel

_FIELDS = 4
_SOURCE = "generator"


class WorkloadError(ValueError):
    """Raise when a workload file is unreadable or malformed."""


def parse_workload_lines(lines: Iterable[str], *, source: str = "<workload>") -> list[ProcessDescriptor]:
    """Parse workload text into descriptors sorted by arrival.

    The sort is stable, so records with equal arrival keep file order.

    Raises:
        WorkloadError: On a malformed line, a negative time, or a
            duplicate process id.

    """
    descriptors: list[ProcessDescriptor] = []
    seen: set[int] = set()
    for number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != _FIELDS:
            msg = f"{source}:{number}: expected {_FIELDS} fields, got {len(parts)}"
            raise WorkloadError(msg)
        try:
            pid, arrival, runtime, priority = (int(p) for p in parts)
            descriptor = ProcessDescriptor(
                pid=pid,
                arrival_time=arrival,
                runtime=runtime,
                priority=priority,
            )
        except ValueError as e:
            msg = f"{source}:{number}: {e}"
            raise WorkloadError(msg) from e
        if pid in seen:
            msg = f"{source}:{number}: duplicate process id {pid}"
            raise WorkloadError(msg)
        seen.add(pid)
        descriptors.append(descriptor)
    return sorted(descriptors, key=lambda d: d.arrival_time)


def parse_workload(path: Path | str) -> list[ProcessDescriptor]:
    """Read and parse the workload file at *path*.

    Raises:
        WorkloadError: If the file cannot be read or is malformed.

    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read workload {path}: {e}"
        raise WorkloadError(msg) from e
    return parse_workload_lines(text.splitlines(), source=str(path))


class ProcessGenerator:
    """Release descriptors onto the admission channel as they arrive."""

    def __init__(
        self,
        descriptors: Iterable[ProcessDescriptor],
        channel: AdmissionChannel,
        *,
        logger: Logger | None = None,
    ) -> None:
        """Create a generator over *descriptors* (sorted by arrival)."""
        self._pending = sorted(descriptors, key=lambda d: d.arrival_time)
        self._next = 0
        self._channel = channel
        self._logger = logger if logger is not None else Logger()

    @property
    def exhausted(self) -> bool:
        """Return True once every descriptor has been sent."""
        return self._next >= len(self._pending)

    @property
    def sent(self) -> int:
        """Return how many descriptors have been sent."""
        return self._next

    def emit_due(self, now: int) -> int:
        """Send every unsent descriptor with ``arrival_time <= now``.

        Returns:
            The number of descriptors sent by this call.

        """
        sent = 0
        while not self.exhausted and self._pending[self._next].arrival_time <= now:
            descriptor = self._pending[self._next]
            self._channel.send(descriptor)
            self._logger.log(
                LogLevel.INFO,
                f"Sent process {descriptor.pid} to the scheduler",
                source=_SOURCE,
                time=now,
                pid=descriptor.pid,
            )
            self._next += 1
            sent += 1
        return sent


def run_generator(
    descriptors: list[ProcessDescriptor],
    channel: AdmissionChannel,
    clock: WallClock,
    *,
    logger: Logger | None = None,
) -> None:
    """Emit the workload in real time, then return.

    This is the body of the generator child process: it wakes once per
    tick, sends whatever has arrived, and stops after the last record.
    """
    generator = ProcessGenerator(descriptors, channel, logger=logger)
    while True:
        generator.emit_due(clock.now())
        if generator.exhausted:
            return
        clock.sleep_until_next_tick()
