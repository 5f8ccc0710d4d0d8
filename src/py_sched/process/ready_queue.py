"""The ready queue — every admitted PCB, in the order the CPU sees them.

Admission appends to the tail.  Round Robin rotates by physically
moving a PCB to the tail; the other policies only scan.  PCBs are never
removed: a finished PCB stays in place so final metrics can read it,
and policies skip it by checking its state.

Lookups go through the process id, never through a stored index, so a
rotation cannot leave anyone holding a stale position.
"""

from collections.abc import Iterator

from py_sched.process.pcb import Process, ProcessState


class ReadyQueue:
    """An ordered, id-addressable sequence of PCBs."""

    def __init__(self) -> None:
        """Create an empty ready queue."""
        self._order: list[int] = []
        self._by_pid: dict[int, Process] = {}

    def __len__(self) -> int:
        """Return the number of PCBs (terminal ones included)."""
        return len(self._order)

    def __iter__(self) -> Iterator[Process]:
        """Iterate over PCBs in queue order."""
        return (self._by_pid[pid] for pid in list(self._order))

    def __contains__(self, pid: object) -> bool:
        """Return True if a PCB with *pid* is queued."""
        return pid in self._by_pid

    def insert(self, process: Process) -> None:
        """Append a PCB at the tail.

        Raises:
            ValueError: If a PCB with the same pid is already queued.

        """
        if process.pid in self._by_pid:
            msg = f"Process {process.pid} is already in the ready queue"
            raise ValueError(msg)
        self._order.append(process.pid)
        self._by_pid[process.pid] = process

    def get(self, pid: int) -> Process:
        """Return the PCB for *pid*.

        Raises:
            KeyError: If no such PCB is queued.

        """
        try:
            return self._by_pid[pid]
        except KeyError:
            msg = f"Process {pid} is not in the ready queue"
            raise KeyError(msg) from None

    def index_of(self, pid: int) -> int:
        """Return the current position of *pid* (0 = head).

        Raises:
            KeyError: If no such PCB is queued.

        """
        self.get(pid)
        return self._order.index(pid)

    def move_to_tail(self, pid: int) -> None:
        """Remove *pid* from its position and append it at the tail."""
        index = self.index_of(pid)
        self._order.append(self._order.pop(index))

    def eligible(self) -> list[Process]:
        """Return the PCBs a policy may dispatch, in queue order."""
        return [p for p in self if p.is_eligible]

    def running(self) -> Process | None:
        """Return the RUNNING PCB, or None if the CPU is idle."""
        for process in self:
            if process.state is ProcessState.RUNNING:
                return process
        return None

    def running_count(self) -> int:
        """Return how many PCBs are RUNNING (0 or 1 on a healthy queue)."""
        return sum(1 for p in self if p.state is ProcessState.RUNNING)

    @property
    def processes(self) -> list[Process]:
        """Return a snapshot of every PCB in queue order."""
        return list(self)
