"""End-to-end scheduling scenarios on simulated time.

Each scenario runs the real controller against simulated workers and
checks the exact timeline, per-process figures, and the summary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from py_sched.metrics import EventKind
from py_sched.process.pcb import ProcessDescriptor, ProcessState
from py_sched.process.policies import PriorityPolicy, RoundRobinPolicy, SJFPolicy
from py_sched.simulation import run_simulation

if TYPE_CHECKING:
    from pathlib import Path

    from py_sched.simulation import SimulationResult

_QUANTUM = 2
_FULL_UTILIZATION = 100.0

# pid 1 arrives first with a long, unimportant burst; pid 2 arrives at 2
# with a short, important one.
_MIXED = [
    ProcessDescriptor(pid=1, arrival_time=0, runtime=5, priority=5),
    ProcessDescriptor(pid=2, arrival_time=2, runtime=3, priority=1),
]
_TWINS = [
    ProcessDescriptor(pid=1, arrival_time=0, runtime=4),
    ProcessDescriptor(pid=2, arrival_time=0, runtime=4),
]


def _timeline(result: SimulationResult) -> list[tuple[int, EventKind, int]]:
    """Return (time, kind, pid) for every CPU transition."""
    return [(e.time, e.kind, e.pid) for e in result.events if e.kind is not EventKind.ADMITTED]


class TestPriorityScenario:
    """An important arrival preempts a running job."""

    def test_timeline(self) -> None:
        """P1 starts, stops at 2 for P2, and resumes when P2 finishes."""
        result = run_simulation(_MIXED, PriorityPolicy())
        assert _timeline(result) == [
            (0, EventKind.STARTED, 1),
            (2, EventKind.STOPPED, 1),
            (2, EventKind.STARTED, 2),
            (5, EventKind.FINISHED, 2),
            (5, EventKind.RESUMED, 1),
            (8, EventKind.FINISHED, 1),
        ]

    def test_per_process_figures(self) -> None:
        """Waiting time and turnaround follow from the timeline."""
        result = run_simulation(_MIXED, PriorityPolicy())
        first, second = result.process(1), result.process(2)
        assert first.waiting_time == 3
        assert first.turnaround == 8
        assert second.waiting_time == 0
        assert second.turnaround == 3

    def test_summary(self) -> None:
        """The CPU never idles; WTA averages (1.6 + 1.0) / 2."""
        summary = run_simulation(_MIXED, PriorityPolicy()).summary
        assert summary.cpu_utilization == pytest.approx(_FULL_UTILIZATION)
        assert summary.avg_wta == pytest.approx(1.3)
        assert summary.avg_waiting == pytest.approx(1.5)
        assert summary.std_wta == pytest.approx(0.3)


class TestSJFScenario:
    """A non-preemptive run of the same workload."""

    def test_timeline(self) -> None:
        """P1 runs to completion before the shorter P2 gets the CPU."""
        result = run_simulation(_MIXED, SJFPolicy())
        assert _timeline(result) == [
            (0, EventKind.STARTED, 1),
            (5, EventKind.FINISHED, 1),
            (5, EventKind.STARTED, 2),
            (8, EventKind.FINISHED, 2),
        ]
        assert result.process(2).waiting_time == 3
        assert result.end_time == 8


class TestRoundRobinScenario:
    """Two equal jobs share the CPU in quantum-sized slices."""

    def test_timeline(self) -> None:
        """Slices alternate every quantum until both finish."""
        result = run_simulation(_TWINS, RoundRobinPolicy(quantum=_QUANTUM))
        assert _timeline(result) == [
            (0, EventKind.STARTED, 1),
            (2, EventKind.STOPPED, 1),
            (2, EventKind.STARTED, 2),
            (4, EventKind.STOPPED, 2),
            (4, EventKind.RESUMED, 1),
            (6, EventKind.FINISHED, 1),
            (6, EventKind.RESUMED, 2),
            (8, EventKind.FINISHED, 2),
        ]

    def test_waiting_times(self) -> None:
        """P1 waits one quantum, P2 waits two."""
        result = run_simulation(_TWINS, RoundRobinPolicy(quantum=_QUANTUM))
        assert result.process(1).waiting_time == 2
        assert result.process(2).waiting_time == 4
        assert result.summary.cpu_utilization == pytest.approx(_FULL_UTILIZATION)

    def test_single_process_keeps_running(self) -> None:
        """With nobody to rotate to, the job runs straight through."""
        result = run_simulation(_TWINS[:1], RoundRobinPolicy(quantum=1))
        assert _timeline(result) == [(0, EventKind.STARTED, 1), (4, EventKind.FINISHED, 1)]


class TestSimulationEdges:
    """Idle gaps, failures, and limits."""

    def test_idle_gap_lowers_utilization(self) -> None:
        """A late arrival leaves the CPU idle in between."""
        workload = [
            ProcessDescriptor(pid=1, arrival_time=0, runtime=2),
            ProcessDescriptor(pid=2, arrival_time=4, runtime=2),
        ]
        result = run_simulation(workload, SJFPolicy())
        assert result.end_time == 6
        assert result.summary.cpu_utilization == pytest.approx(4 / 6 * 100)

    def test_spawn_failure_marks_process_failed(self) -> None:
        """A worker that cannot start fails its PCB and the run goes on."""
        result = run_simulation(_MIXED, SJFPolicy(), fail_pids=[1])
        assert result.process(1).state is ProcessState.FAILED
        assert result.process(2).state is ProcessState.FINISHED
        assert [e.pid for e in result.events if e.kind is EventKind.FAILED] == [1]

    def test_failed_challenger_leaves_incumbent_running(self) -> None:
        """A preempting process that cannot start does not stop the running one."""
        result = run_simulation(_MIXED, PriorityPolicy(), fail_pids=[2])
        assert _timeline(result) == [
            (0, EventKind.STARTED, 1),
            (2, EventKind.FAILED, 2),
            (5, EventKind.FINISHED, 1),
        ]
        assert result.process(1).waiting_time == 0
        assert result.summary.cpu_utilization == pytest.approx(_FULL_UTILIZATION)

    def test_zero_runtime_process_finishes(self) -> None:
        """A zero-length burst completes on the next tick with WTA 0."""
        result = run_simulation([ProcessDescriptor(pid=1, arrival_time=0, runtime=0)], SJFPolicy())
        process = result.process(1)
        assert process.state is ProcessState.FINISHED
        assert process.weighted_turnaround == 0.0

    def test_empty_workload(self) -> None:
        """Nothing to do finishes at time 0 with an all-zero summary."""
        result = run_simulation([], SJFPolicy())
        assert result.end_time == 0
        assert result.summary.cpu_utilization == 0.0
        assert result.processes == []

    def test_max_ticks_limit(self) -> None:
        """A run that cannot finish in time raises."""
        with pytest.raises(RuntimeError, match="did not finish"):
            run_simulation(_MIXED, SJFPolicy(), max_ticks=3)

    def test_unknown_pid_lookup_raises(self) -> None:
        """process() only knows admitted pids."""
        result = run_simulation(_MIXED, SJFPolicy())
        with pytest.raises(KeyError):
            result.process(99)

    def test_writes_log_and_perf(self, tmp_path: Path) -> None:
        """Both output files exist after a run."""
        log_path = tmp_path / "scheduler.log"
        perf_path = tmp_path / "scheduler.perf"
        run_simulation(_MIXED, PriorityPolicy(), log_path=log_path, perf_path=perf_path)
        log_lines = log_path.read_text(encoding="utf-8").splitlines()
        assert "At time 2 process 1 stopped arr 0 total 5 remain 3 wait 0" in log_lines
        assert "At time 8 process 1 finished arr 0 total 5 remain 0 wait 3 TA 8 WTA 1.60" in log_lines
        assert perf_path.read_text(encoding="utf-8").startswith("CPU utilization = 100.00%")
