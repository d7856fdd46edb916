"""Tests for TimerService and the clocks."""

import pytest

from partyengine.engine.clock import ManualClock, SystemClock
from partyengine.engine.timer_service import TimerService
from partyengine.models.snapshots import TimerSnapshot


@pytest.fixture
def clock():
    return ManualClock(start=1000.0)


@pytest.fixture
def timers(clock):
    return TimerService(clock=clock)


class TestManualClock:
    """Tests for the controllable clock."""

    def test_advance_and_set(self):
        """Test the clock only moves when told to."""
        clock = ManualClock(start=5.0)
        assert clock.now() == 5.0
        clock.advance(2.5)
        assert clock.now() == 7.5
        clock.set(100.0)
        assert clock.now() == 100.0

    def test_system_clock_moves_forward(self):
        """Test SystemClock reports epoch seconds."""
        clock = SystemClock()
        first = clock.now()
        assert first > 1_600_000_000
        assert clock.now() >= first


class TestTimerCountdown:
    """Tests for start/remaining/is_expired."""

    def test_remaining_is_pure_function_of_clock(self, timers, clock):
        """Test remaining = duration - elapsed."""
        timers.start("turn_timer", 10)
        assert timers.remaining("turn_timer") == 10
        clock.advance(4)
        assert timers.remaining("turn_timer") == 6
        assert timers.elapsed("turn_timer") == 4
        assert timers.is_expired("turn_timer") is False

    def test_expires_after_duration(self, timers, clock):
        """Test 11 seconds into a 10 second timer it is expired and floors at 0."""
        timers.start("turn_timer", 10)
        clock.advance(11)
        assert timers.is_expired("turn_timer") is True
        assert timers.remaining("turn_timer") == 0

    def test_expired_exactly_at_limit(self, timers, clock):
        """Test remaining reaching zero counts as expired."""
        timers.start("turn_timer", 10)
        clock.advance(10)
        assert timers.is_expired("turn_timer") is True

    def test_start_overwrites_existing(self, timers, clock):
        """Test start() silently replaces a timer with the same name."""
        timers.start("turn_timer", 10)
        clock.advance(8)
        timers.start("turn_timer", 10)
        assert timers.remaining("turn_timer") == 10

    def test_restart_keeps_duration(self, timers, clock):
        """Test restart() without a duration reuses the old one."""
        timers.start("turn_timer", 10)
        clock.advance(9)
        timers.restart("turn_timer")
        assert timers.remaining("turn_timer") == 10
        timers.restart("turn_timer", 30)
        assert timers.remaining("turn_timer") == 30

    def test_unknown_timer_raises(self, timers):
        """Test reading a missing timer raises KeyError."""
        with pytest.raises(KeyError):
            timers.remaining("missing")


class TestTimerPause:
    """Tests for pause/resume."""

    def test_paused_timer_does_not_run(self, timers, clock):
        """Test remaining time is frozen while paused."""
        timers.start("t", 10)
        clock.advance(3)
        timers.pause("t")
        clock.advance(100)
        assert timers.is_paused("t") is True
        assert timers.remaining("t") == 7
        assert timers.is_expired("t") is False

    def test_resume_continues_from_pause(self, timers, clock):
        """Test the countdown picks up where it stopped."""
        timers.start("t", 10)
        clock.advance(3)
        timers.pause("t")
        clock.advance(50)
        timers.resume("t")
        assert timers.remaining("t") == 7
        clock.advance(7)
        assert timers.is_expired("t") is True

    def test_resume_running_timer_is_noop(self, timers, clock):
        """Test resume() on a running timer changes nothing."""
        timers.start("t", 10)
        clock.advance(2)
        timers.resume("t")
        assert timers.remaining("t") == 8

    def test_pause_all_and_resume_all(self, timers, clock):
        """Test every timer stops and restarts together."""
        timers.start("turn", 30)
        timers.start("phase:vote", 10)
        clock.advance(4)
        timers.pause_all()
        clock.advance(60)
        assert timers.remaining("turn") == 26
        assert timers.remaining("phase:vote") == 6
        timers.resume_all()
        clock.advance(6)
        assert timers.is_expired("phase:vote") is True
        assert timers.is_expired("turn") is False
        assert timers.names() == ["phase:vote", "turn"]


class TestTimerBookkeeping:
    """Tests for cancel/has/info and snapshots."""

    def test_cancel(self, timers):
        """Test cancel() reports whether the timer existed."""
        timers.start("t", 5)
        assert timers.has("t") is True
        assert timers.cancel("t") is True
        assert timers.has("t") is False
        assert timers.cancel("t") is False

    def test_cancel_all(self, timers):
        """Test cancel_all() removes every timer."""
        timers.start("a", 5)
        timers.start("b", 5)
        timers.cancel_all()
        assert timers.info() == {}

    def test_info(self, timers, clock):
        """Test info() summarizes each timer."""
        timers.start("a", 5)
        clock.advance(6)
        info = timers.info()
        assert info["a"]["remaining_seconds"] == 0
        assert info["a"]["is_expired"] is True
        assert info["a"]["is_paused"] is False

    def test_snapshot_round_trip(self, timers, clock):
        """Test a service rebuilt from a snapshot sees the same countdown."""
        timers.start("t", 10)
        clock.advance(4)
        rebuilt = TimerService.from_snapshot(timers.snapshot(), clock)
        assert rebuilt.remaining("t") == 6

    def test_from_snapshot_copies(self, clock):
        """Test the service never mutates the snapshot it was built from."""
        snapshot = TimerSnapshot()
        service = TimerService.from_snapshot(snapshot, clock)
        service.start("t", 5)
        assert snapshot.timers == {}
