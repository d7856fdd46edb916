"""Tests for snapshot, config and match state models."""

import pytest
from pydantic import ValidationError

from partyengine.models import (
    ActionLockSnapshot,
    LockEntry,
    MatchConfig,
    MatchPhase,
    MatchState,
    PhaseDefinition,
    PhaseSnapshot,
    RoleSnapshot,
    RoundSnapshot,
    ScoreEntry,
    ScoreSnapshot,
    TimerEntry,
    TimerSnapshot,
    TurnMode,
    TurnSnapshot,
)
from partyengine.events import GameEnded, PlayerActed
from partyengine.models import RankingEntry


def make_state() -> MatchState:
    """A mid-game state with every snapshot field populated."""
    phases = [PhaseDefinition(name="draw", duration_seconds=30), PhaseDefinition(name="vote")]
    return MatchState(
        match_id="m1",
        game_type="quiz",
        settings=MatchConfig(game_type="quiz", total_rounds=3, roles=["drawer", "guesser"], phases=phases),
        phase=MatchPhase.PLAYING,
        players={"a", "b", "c"},
        round=RoundSnapshot(
            current_round=2,
            total_rounds=3,
            round_per_turn=True,
            permanently_eliminated={"c"},
            temporarily_eliminated={"b"},
        ),
        turn=TurnSnapshot(
            mode=TurnMode.SEQUENTIAL,
            turn_order=["a", "b", "c"],
            current_turn_index=1,
            pending_players={"a"},
            completed_players={"b"},
            round_complete=True,
            time_limit_seconds=30,
            turn_sequence=7,
            turn_started_at=1234.5,
            direction=-1,
            paused=True,
            paused_at=1250.0,
        ),
        roles=RoleSnapshot(
            player_roles={"a": "drawer", "b": "guesser", "c": "guesser"},
            available_roles=["drawer", "guesser"],
            allow_multiple_players_per_role=True,
        ),
        scores=ScoreSnapshot(
            scores={"a": 5, "b": -1, "c": 0, "gone": 3},
            track_history=True,
            history=[ScoreEntry(player_id="a", delta=5, round=1, reason="answer")],
        ),
        timers=TimerSnapshot(timers={
            "turn_timer": TimerEntry(duration_seconds=30, started_at=1234.5, paused_remaining=12.0),
        }),
        action_lock=ActionLockSnapshot(
            locked={"a": LockEntry(timestamp=1240.0)},
            acted={"a": [(6, 1), (7, 0)]},
        ),
        round_phases=PhaseSnapshot(phases=phases, current_index=1),
        game_data={"prompt": "volcano", "nested": {"hits": [1, 2]}},
        version=4,
    )


# ============================================================================
# Snapshots
# ============================================================================


class TestRoundSnapshot:
    """Tests for RoundSnapshot validation."""

    def test_defaults(self):
        """Test a fresh snapshot starts before round 1."""
        snap = RoundSnapshot(total_rounds=3)
        assert snap.current_round == 0
        assert snap.is_complete is False
        assert snap.permanently_eliminated == set()

    def test_current_round_cannot_exceed_total(self):
        """Test current_round <= total_rounds is enforced."""
        with pytest.raises(ValidationError):
            RoundSnapshot(current_round=4, total_rounds=3)

    def test_total_rounds_must_be_positive(self):
        """Test total_rounds > 0 is enforced."""
        with pytest.raises(ValidationError):
            RoundSnapshot(total_rounds=0)


class TestTurnSnapshot:
    """Tests for TurnSnapshot validation."""

    def test_defaults(self):
        """Test default mode and direction."""
        snap = TurnSnapshot()
        assert snap.mode == TurnMode.SIMULTANEOUS
        assert snap.direction == 1
        assert snap.turn_sequence == 0
        assert snap.turn_started_at is None

    def test_invalid_direction(self):
        """Test direction must be 1 or -1."""
        with pytest.raises(ValidationError):
            TurnSnapshot(direction=2)


class TestPhaseSnapshot:
    """Tests for PhaseSnapshot validation."""

    def test_index_must_point_into_phases(self):
        """Test current_index is bounded by the configured phases."""
        with pytest.raises(ValidationError):
            PhaseSnapshot(phases=[PhaseDefinition(name="vote")], current_index=1)

    def test_no_phases_is_valid(self):
        """Test the default snapshot has no phases."""
        assert PhaseSnapshot().phases == []

    def test_duration_must_be_positive(self):
        """Test a phase timer needs a positive duration."""
        with pytest.raises(ValidationError):
            PhaseDefinition(name="vote", duration_seconds=0)


# ============================================================================
# MatchState
# ============================================================================


class TestMatchStateRoundTrip:
    """Serializing then deserializing reproduces the state exactly."""

    def test_json_round_trip_is_identical(self):
        """Test every sub-snapshot survives to_json/from_json."""
        state = make_state()
        restored = MatchState.from_json(state.to_json())
        assert restored == state

    def test_round_trip_preserves_each_snapshot(self):
        """Test the five module snapshots individually."""
        state = make_state()
        restored = MatchState.from_json(state.to_json())
        assert restored.round == state.round
        assert restored.turn == state.turn
        assert restored.roles == state.roles
        assert restored.scores == state.scores
        assert restored.timers == state.timers
        assert restored.action_lock == state.action_lock
        assert restored.round_phases == state.round_phases
        assert restored.action_lock.acted["a"] == [(6, 1), (7, 0)]

    def test_round_trip_keeps_turn_order(self):
        """Test list order survives while sets stay sets."""
        restored = MatchState.from_json(make_state().to_json())
        assert restored.turn.turn_order == ["a", "b", "c"]
        assert isinstance(restored.players, set)

    def test_departed_player_score_kept(self):
        """Test scores may hold players no longer active."""
        restored = MatchState.from_json(make_state().to_json())
        assert restored.scores.scores["gone"] == 3
        assert "gone" not in restored.players


# ============================================================================
# Config
# ============================================================================


class TestMatchConfig:
    """Tests for MatchConfig validation."""

    def test_defaults(self):
        """Test the minimal config."""
        config = MatchConfig(game_type="quiz")
        assert config.turn_mode == TurnMode.SIMULTANEOUS
        assert config.total_rounds == 1
        assert config.roles == ["player"]
        assert config.time_limit_seconds is None

    def test_rejects_unknown_keys(self):
        """Test extra fields are forbidden."""
        with pytest.raises(ValidationError):
            MatchConfig(game_type="quiz", rounds=3)

    def test_rejects_empty_roles(self):
        """Test at least one role is required."""
        with pytest.raises(ValidationError):
            MatchConfig(game_type="quiz", roles=[])

    def test_rejects_duplicate_roles(self):
        """Test role names must be unique."""
        with pytest.raises(ValidationError):
            MatchConfig(game_type="quiz", roles=["drawer", "drawer"])

    def test_rejects_inverted_player_bounds(self):
        """Test max_players >= min_players."""
        with pytest.raises(ValidationError):
            MatchConfig(game_type="quiz", min_players=4, max_players=2)

    def test_rejects_non_positive_time_limit(self):
        """Test time_limit_seconds > 0."""
        with pytest.raises(ValidationError):
            MatchConfig(game_type="quiz", time_limit_seconds=0)


# ============================================================================
# Events
# ============================================================================


class TestMatchEvents:
    """Tests for domain event models."""

    def test_name_is_class_name(self):
        """Test event name used by the sink."""
        event = PlayerActed(match_id="m1", round=1, player_id="a", action="answer")
        assert event.name == "PlayerActed"

    def test_events_are_frozen(self):
        """Test events cannot be modified after creation."""
        event = PlayerActed(match_id="m1", round=1, player_id="a", action="answer")
        with pytest.raises(ValidationError):
            event.player_id = "b"

    def test_payload_is_json_compatible(self):
        """Test payload() dumps nested models to plain data."""
        event = GameEnded(
            match_id="m1",
            round=3,
            ranking=[RankingEntry(position=1, player_id="a", score=5)],
            winners=["a"],
        )
        payload = event.payload()
        assert payload["ranking"] == [{"position": 1, "player_id": "a", "score": 5}]
        assert payload["winners"] == ["a"]
        assert payload["match_id"] == "m1"
        assert isinstance(payload["timestamp"], str)
