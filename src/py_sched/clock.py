"""Simulated clock — the single source of "current time".

Every component of the simulator agrees on one integer time line.  The
scheduler, the generator, and the metrics all read it, and nothing ever
moves it backwards.

Two clocks ship here:

- **WallClock** — real time, quantised into ticks of ``tick_seconds``.
  Its epoch is a plain ``monotonic()`` reading, so a child process that
  receives the same epoch sees exactly the same tick numbers.
- **ManualClock** — time only moves when someone calls ``advance()``.
  Used for deterministic simulation and in tests.
"""

from time import monotonic, sleep
from typing import Protocol

DEFAULT_TICK_SECONDS = 1.0


class Clock(Protocol):
    """Anything that can report the current simulated time."""

    def now(self) -> int:
        """Return the current time in ticks (never decreases)."""
        ...  # pragma: no cover


class WallClock:
    """A clock that turns elapsed wall time into whole ticks."""

    def __init__(
        self,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        epoch: float | None = None,
    ) -> None:
        """Create a wall clock.

        Args:
            tick_seconds: Length of one simulated time unit in seconds.
            epoch: ``monotonic()`` reading that counts as time 0.
                Captured now when omitted.

        Raises:
            ValueError: If the tick length is not positive.

        """
        if tick_seconds <= 0:
            msg = f"Tick length must be positive, got {tick_seconds}"
            raise ValueError(msg)
        self._tick_seconds = tick_seconds
        self._epoch = monotonic() if epoch is None else epoch

    @property
    def tick_seconds(self) -> float:
        """Return the length of one tick in seconds."""
        return self._tick_seconds

    @property
    def epoch(self) -> float:
        """Return the ``monotonic()`` reading that maps to time 0."""
        return self._epoch

    def now(self) -> int:
        """Return the number of whole ticks since the epoch."""
        return int((monotonic() - self._epoch) / self._tick_seconds)

    def sleep_until_next_tick(self) -> None:
        """Suspend the caller until the next tick boundary."""
        next_boundary = self._epoch + (self.now() + 1) * self._tick_seconds
        remaining = next_boundary - monotonic()
        if remaining > 0:
            sleep(remaining)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        """Create a manual clock reading *start*."""
        self._time = start

    def now(self) -> int:
        """Return the current time."""
        return self._time

    def advance(self, ticks: int = 1) -> int:
        """Move the clock forward and return the new time.

        Raises:
            ValueError: If *ticks* is negative.

        """
        if ticks < 0:
            msg = f"Cannot move the clock backwards by {-ticks} ticks"
            raise ValueError(msg)
        self._time += ticks
        return self._time

    def set(self, time: int) -> None:
        """Jump to *time*, which must not be in the past.

        Raises:
            ValueError: If *time* is earlier than the current time.

        """
        if time < self._time:
            msg = f"Cannot set clock to {time}: already at {self._time}"
            raise ValueError(msg)
        self._time = time
