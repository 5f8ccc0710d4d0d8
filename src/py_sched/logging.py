"""Diagnostic logging for the scheduler.

The run log (``py_sched.metrics``) says *what the schedule did*.  This
log says what went wrong, or was worth noting, while doing it: a worker
that would not start, a duplicate admission, a completion nobody asked
for, startup and shutdown.

Entries carry the simulated tick and, where one is involved, the
process id, so a diagnostic can be lined up against the run log.  A
``Logger`` keeps every entry in memory and can hand each one to a sink
as it is written; the CLI uses that to echo diagnostics to stderr.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

NO_TIME = -1


class LogLevel(IntEnum):
    """How serious an entry is; higher is worse."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One diagnostic.

    Attributes:
        level: Severity.
        message: What happened, in words.
        source: Component that noticed it (``"controller"``, ``"cli"``).
        time: Simulated tick, or ``NO_TIME``.
        pid: Process the entry is about, if any.

    """

    level: LogLevel
    message: str
    source: str
    time: int = NO_TIME
    pid: int | None = None

    def __str__(self) -> str:
        """Render as ``[LEVEL] t=T source: message``."""
        when = "" if self.time == NO_TIME else f" t={self.time}"
        return f"[{self.level.name}]{when} {self.source}: {self.message}"


class Logger:
    """In-memory diagnostic log with an optional live sink."""

    def __init__(self, *, sink: Callable[[LogEntry], None] | None = None) -> None:
        """Create an empty log that forwards new entries to *sink*."""
        self._entries: list[LogEntry] = []
        self._sink = sink

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return self._entries.copy()

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        time: int = NO_TIME,
        pid: int | None = None,
    ) -> LogEntry:
        """Record a diagnostic and pass it to the sink.

        Returns:
            The entry that was recorded.

        """
        entry = LogEntry(level=level, message=message, source=source, time=time, pid=pid)
        self._entries.append(entry)
        if self._sink is not None:
            self._sink(entry)
        return entry

    def filter(
        self,
        *,
        min_level: LogLevel = LogLevel.DEBUG,
        source: str | None = None,
        pid: int | None = None,
    ) -> list[LogEntry]:
        """Return the entries at or above *min_level* that match.

        Args:
            min_level: Lowest severity to include.
            source: Keep only entries from this component.
            pid: Keep only entries about this process.

        """
        return [
            e
            for e in self._entries
            if e.level >= min_level
            and (source is None or e.source == source)
            and (pid is None or e.pid == pid)
        ]

    def count(self, level: LogLevel) -> int:
        """Return how many entries have exactly *level*."""
        return sum(1 for e in self._entries if e.level is level)

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
