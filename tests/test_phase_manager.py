"""Tests for PhaseManager."""

import pytest

from partyengine.engine.clock import ManualClock
from partyengine.engine.phase_manager import PhaseManager
from partyengine.engine.timer_service import TimerService
from partyengine.models.snapshots import PhaseDefinition, PhaseSnapshot


@pytest.fixture
def clock():
    return ManualClock(start=1000.0)


def make_manager(index: int = 0) -> PhaseManager:
    return PhaseManager(PhaseSnapshot(
        phases=[
            PhaseDefinition(name="draw", duration_seconds=30),
            PhaseDefinition(name="guess", duration_seconds=20),
            PhaseDefinition(name="reveal"),
        ],
        current_index=index,
    ))


class TestCursor:
    """Tests for moving through the phases of a turn."""

    def test_without_phases(self):
        """Test a match without phases has one unnamed step per turn."""
        phases = PhaseManager()
        assert phases.has_phases is False
        assert phases.current is None
        assert phases.current_name is None
        assert phases.is_last_phase() is True
        assert phases.next_phase() is True
        assert phases.current_index == 0

    def test_next_phase_walks_then_wraps(self):
        """Test leaving the last phase reports the turn over and rewinds."""
        phases = make_manager()
        assert phases.next_phase() is False
        assert phases.current_name == "guess"
        assert phases.next_phase() is False
        assert phases.is_last_phase() is True
        assert phases.next_phase() is True
        assert phases.current_name == "draw"

    def test_reset(self):
        phases = make_manager(index=2)
        phases.reset()
        assert phases.current_index == 0

    def test_from_snapshot_copies(self):
        """Test moving the cursor leaves the source snapshot alone."""
        source = make_manager().snapshot()
        phases = PhaseManager.from_snapshot(source)
        phases.next_phase()
        assert source.current_index == 0
        assert phases.snapshot().current_index == 1


class TestPhaseTimers:
    """Tests for per-phase countdowns."""

    def test_start_timer_replaces_previous_phase_timer(self, clock):
        """Test only the running phase has a countdown."""
        timers = TimerService(clock=clock)
        phases = make_manager()
        assert phases.start_timer(timers) == "phase:draw"

        phases.next_phase()
        assert phases.start_timer(timers) == "phase:guess"
        assert timers.names() == ["phase:guess"]
        assert timers.remaining("phase:guess") == 20

    def test_untimed_phase_clears_countdowns(self, clock):
        """Test a phase without a duration leaves no phase timer behind."""
        timers = TimerService(clock=clock)
        timers.start("turn", 60)
        phases = make_manager(index=1)
        phases.start_timer(timers)

        phases.next_phase()

        assert phases.start_timer(timers) is None
        assert timers.names() == ["turn"]

    def test_is_expired(self, clock):
        """Test expiry is read from the running phase's timer only."""
        timers = TimerService(clock=clock)
        phases = make_manager()
        assert phases.is_expired(timers) is False

        phases.start_timer(timers)
        clock.advance(29)
        assert phases.is_expired(timers) is False
        clock.advance(1)
        assert phases.is_expired(timers) is True

    def test_cancel_timers(self, clock):
        timers = TimerService(clock=clock)
        phases = make_manager()
        phases.start_timer(timers)
        phases.cancel_timers(timers)
        assert timers.names() == []

    def test_timer_name(self):
        assert PhaseManager.timer_name("vote") == "phase:vote"
