"""Tests for the py-sched command line."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from py_sched.cli import EXIT_OK, EXIT_RESOURCE_ERROR, build_parser, main
from py_sched.controller import LifecycleController

if TYPE_CHECKING:
    from pathlib import Path

_WORKLOAD = "#id arrival runtime priority\n1\t0\t5\t5\n2\t2\t3\t1\n"
_LIVE_TICK = "0.05"
_LIVE_TICK_LIMIT = 400
_USAGE_ERROR = 2


@pytest.fixture
def workload(tmp_path: Path) -> Path:
    """Write the two-process workload and return its path."""
    path = tmp_path / "processes.txt"
    path.write_text(_WORKLOAD, encoding="utf-8")
    return path


def _outputs(tmp_path: Path) -> list[str]:
    """Return --log/--perf arguments pointing into *tmp_path*."""
    return ["--log", str(tmp_path / "scheduler.log"), "--perf", str(tmp_path / "scheduler.perf")]


class TestArguments:
    """Verify argument parsing."""

    def test_parser_accepts_algorithm_and_quantum(self) -> None:
        """Positional algorithm and optional quantum."""
        args = build_parser().parse_args(["3", "2"])
        assert args.algorithm == 3
        assert args.quantum == 2

    def test_unknown_algorithm_is_usage_error(self) -> None:
        """Only 1, 2 and 3 are accepted."""
        with pytest.raises(SystemExit) as exc_info:
            main(["4"])
        assert exc_info.value.code == _USAGE_ERROR

    def test_round_robin_without_quantum_is_usage_error(self, workload: Path) -> None:
        """Round Robin needs a quantum."""
        with pytest.raises(SystemExit) as exc_info:
            main(["3", "--simulate", "--workload", str(workload)])
        assert exc_info.value.code == _USAGE_ERROR

    def test_bad_config_is_usage_error(self, tmp_path: Path) -> None:
        """A broken config file is reported like a bad argument."""
        config = tmp_path / "sched.json"
        config.write_text("[]", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["1", "--config", str(config)])
        assert exc_info.value.code == _USAGE_ERROR


class TestSimulatedRun:
    """Verify --simulate end to end."""

    def test_prints_summary_and_writes_files(
        self,
        workload: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A simulated priority run prints and persists the summary."""
        code = main(["2", "--simulate", "--workload", str(workload), *_outputs(tmp_path)])
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "CPU utilization = 100.00%" in out
        assert "Avg WTA = 1.30" in out
        assert (tmp_path / "scheduler.perf").read_text(encoding="utf-8") == out
        assert (tmp_path / "scheduler.log").exists()

    def test_quantum_from_config(self, workload: Path, tmp_path: Path) -> None:
        """A config file can supply the Round Robin quantum."""
        config = tmp_path / "sched.json"
        config.write_text(json.dumps({"quantum": 2, "simulate": True}), encoding="utf-8")
        code = main(["3", "--config", str(config), "--workload", str(workload), *_outputs(tmp_path)])
        assert code == EXIT_OK

    def test_missing_workload_is_resource_error(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """An unreadable workload exits 1 with a message."""
        code = main(["1", "--simulate", "--workload", str(tmp_path / "missing.txt")])
        assert code == EXIT_RESOURCE_ERROR
        assert "Cannot read workload" in capsys.readouterr().err

    def test_unwritable_perf_fails_before_running(
        self,
        workload: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A summary path in a missing directory exits 1 before any tick."""
        log_path = tmp_path / "scheduler.log"
        perf_path = tmp_path / "missing" / "scheduler.perf"
        code = main(
            ["1", "--simulate", "--workload", str(workload), "--log", str(log_path), "--perf", str(perf_path)],
        )
        assert code == EXIT_RESOURCE_ERROR
        assert "py-sched:" in capsys.readouterr().err
        assert not log_path.exists()

    def test_verbose_echoes_diagnostics(
        self,
        workload: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """--verbose prints INFO entries to stderr."""
        main(["1", "--simulate", "--verbose", "--workload", str(workload), *_outputs(tmp_path)])
        assert "[INFO]" in capsys.readouterr().err

    def test_quiet_by_default(
        self,
        workload: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Without --verbose only errors reach stderr."""
        main(["1", "--simulate", "--workload", str(workload), *_outputs(tmp_path)])
        assert capsys.readouterr().err == ""


@pytest.mark.skipif(sys.platform == "win32", reason="needs SIGSTOP/SIGCONT")
class TestLiveRun:
    """Verify a short run with real workers."""

    def test_live_run_finishes_workload(self, tmp_path: Path) -> None:
        """Workers run, the loop is interrupted, and the books are closed."""
        path = tmp_path / "processes.txt"
        path.write_text("1\t0\t1\t1\n", encoding="utf-8")
        real_tick = LifecycleController.tick
        ticks = 0

        def tick_until_done(controller: LifecycleController) -> None:
            nonlocal ticks
            real_tick(controller)
            ticks += 1
            done = controller.total_admitted > 0 and controller.all_terminal
            if done or ticks >= _LIVE_TICK_LIMIT:
                raise KeyboardInterrupt

        with patch.object(LifecycleController, "tick", tick_until_done):
            code = main(["1", "--tick", _LIVE_TICK, "--workload", str(path), *_outputs(tmp_path)])

        assert code == EXIT_OK
        log_text = (tmp_path / "scheduler.log").read_text(encoding="utf-8")
        assert "process 1 started" in log_text
        assert "process 1 finished" in log_text
        assert (tmp_path / "scheduler.perf").exists()
