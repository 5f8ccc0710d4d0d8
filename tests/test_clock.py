"""Tests for the simulated clocks.

ManualClock drives every deterministic test in the suite, so its
monotonicity matters.  WallClock is tested through ``monotonic`` patches
so no test depends on real elapsed time.
"""

from unittest.mock import patch

import pytest

from py_sched.clock import DEFAULT_TICK_SECONDS, ManualClock, WallClock

_START = 5
_TICK = 0.5
_EPOCH = 100.0


class TestManualClock:
    """Verify the manually advanced clock."""

    def test_starts_at_zero_by_default(self) -> None:
        """A new clock reads 0."""
        assert ManualClock().now() == 0

    def test_starts_at_given_time(self) -> None:
        """The start time is configurable."""
        assert ManualClock(_START).now() == _START

    def test_advance_moves_forward_by_one(self) -> None:
        """advance() with no argument moves one tick."""
        clock = ManualClock()
        assert clock.advance() == 1
        assert clock.now() == 1

    def test_advance_by_several_ticks(self) -> None:
        """advance(n) moves n ticks and returns the new time."""
        clock = ManualClock()
        assert clock.advance(_START) == _START

    def test_advance_negative_raises(self) -> None:
        """Time never moves backwards."""
        clock = ManualClock()
        with pytest.raises(ValueError, match="backwards"):
            clock.advance(-1)

    def test_set_jumps_forward(self) -> None:
        """set() can jump straight to a later time."""
        clock = ManualClock()
        clock.set(_START)
        assert clock.now() == _START

    def test_set_to_past_raises(self) -> None:
        """set() refuses to move into the past."""
        clock = ManualClock(_START)
        with pytest.raises(ValueError, match="already at"):
            clock.set(_START - 1)


class TestWallClock:
    """Verify tick quantisation of real time."""

    def test_default_tick_length(self) -> None:
        """One tick is one second unless configured otherwise."""
        assert WallClock().tick_seconds == DEFAULT_TICK_SECONDS

    def test_non_positive_tick_raises(self) -> None:
        """A zero-length tick makes no sense."""
        with pytest.raises(ValueError, match="positive"):
            WallClock(tick_seconds=0)

    def test_now_counts_whole_ticks_since_epoch(self) -> None:
        """Partial ticks are truncated."""
        clock = WallClock(tick_seconds=_TICK, epoch=_EPOCH)
        with patch("py_sched.clock.monotonic", return_value=_EPOCH + 1.3):
            assert clock.now() == 2

    def test_clocks_sharing_an_epoch_agree(self) -> None:
        """A child process given the same epoch sees the same tick."""
        first = WallClock(tick_seconds=_TICK, epoch=_EPOCH)
        second = WallClock(tick_seconds=_TICK, epoch=first.epoch)
        with patch("py_sched.clock.monotonic", return_value=_EPOCH + 7.9):
            assert first.now() == second.now()

    def test_sleep_until_next_tick_sleeps_to_boundary(self) -> None:
        """The sleep ends exactly on the next tick boundary."""
        clock = WallClock(tick_seconds=_TICK, epoch=_EPOCH)
        with (
            patch("py_sched.clock.monotonic", return_value=_EPOCH + 1.2),
            patch("py_sched.clock.sleep") as fake_sleep,
        ):
            clock.sleep_until_next_tick()
        fake_sleep.assert_called_once()
        assert fake_sleep.call_args.args[0] == pytest.approx(0.3)
