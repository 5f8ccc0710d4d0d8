"""Scheduler configuration.

A run is described by one immutable ``SchedulerConfig``.  Values come
from three layers, later ones winning:

    built-in defaults  →  optional JSON config file  →  command line

The JSON file uses the same field names, for example::

    {"tick_seconds": 0.5, "workload": "processes.txt", "log_path": "run.log"}

``validate()`` is the single place that decides whether a combination
of values is runnable.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from py_sched.clock import DEFAULT_TICK_SECONDS
from py_sched.process.policies import Algorithm

DEFAULT_WORKLOAD = Path("processes.txt")
DEFAULT_LOG_PATH = Path("scheduler.log")
DEFAULT_PERF_PATH = Path("scheduler.perf")

_PATH_FIELDS = frozenset({"workload", "log_path", "perf_path"})


class ConfigError(ValueError):
    """Raise when the configuration is missing, unreadable, or invalid."""


@dataclass(frozen=True)
class SchedulerConfig:
    """Everything needed to start one scheduler run."""

    algorithm: Algorithm = Algorithm.SJF
    quantum: int | None = None
    tick_seconds: float = DEFAULT_TICK_SECONDS
    workload: Path = DEFAULT_WORKLOAD
    log_path: Path = DEFAULT_LOG_PATH
    perf_path: Path = DEFAULT_PERF_PATH
    simulate: bool = False
    verbose: bool = False

    def validate(self) -> SchedulerConfig:
        """Return self if runnable.

        Raises:
            ConfigError: If Round Robin lacks a positive quantum or the
                tick length is not positive.

        """
        if self.algorithm is Algorithm.ROUND_ROBIN:
            if self.quantum is None:
                msg = "Round Robin (algorithm 3) requires a time quantum"
                raise ConfigError(msg)
            if self.quantum <= 0:
                msg = f"Time quantum must be positive, got {self.quantum}"
                raise ConfigError(msg)
        if self.tick_seconds <= 0:
            msg = f"Tick length must be positive, got {self.tick_seconds}"
            raise ConfigError(msg)
        return self

    def with_overrides(self, **overrides: Any) -> SchedulerConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(path: Path | None) -> SchedulerConfig:
    """Load defaults from a JSON file, or the built-ins if *path* is None.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object,
            or names an unknown field or algorithm.

    """
    if path is None:
        return SchedulerConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load config {path}: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config {path} must contain a JSON object"
        raise ConfigError(msg)

    known = {f.name for f in fields(SchedulerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"Unknown config field(s) in {path}: {', '.join(unknown)}"
        raise ConfigError(msg)

    values: dict[str, Any] = dict(data)
    for name in _PATH_FIELDS & values.keys():
        values[name] = Path(values[name])
    if "algorithm" in values:
        try:
            values["algorithm"] = Algorithm(values["algorithm"])
        except ValueError as e:
            msg = f"Config {path}: {e}"
            raise ConfigError(msg) from e
    return SchedulerConfig(**values)
