"""Tests for match state validation and the validator hooks."""

import pytest

from partyengine.engine.validator import (
    CollectingValidator,
    NoOpValidator,
    StrictValidator,
    create_validator,
)
from partyengine.errors import InvariantViolationError
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
    ScoreSnapshot,
    TurnMode,
    TurnSnapshot,
)
from partyengine.validation import ValidationSeverity, validate_match_state


def valid_state(**overrides) -> MatchState:
    fields = dict(
        match_id="m1",
        game_type="quiz",
        settings=MatchConfig(game_type="quiz", total_rounds=2),
        phase=MatchPhase.PLAYING,
        players={"a", "b"},
        round=RoundSnapshot(current_round=1, total_rounds=2),
        turn=TurnSnapshot(
            mode=TurnMode.SIMULTANEOUS,
            turn_order=["a", "b"],
            pending_players={"b"},
            completed_players={"a"},
        ),
        roles=RoleSnapshot(player_roles={"a": "player", "b": "player"}),
        scores=ScoreSnapshot(scores={"a": 1, "b": 0}),
    )
    fields.update(overrides)
    return MatchState(**fields)


def rule_ids(state: MatchState) -> set[str]:
    return {v.rule_id for v in validate_match_state(state)}


class TestValidateMatchState:
    """Tests for the consistency rules."""

    def test_valid_state_has_no_violations(self):
        """Test the baseline is clean."""
        assert validate_match_state(valid_state()) == []

    def test_roles_must_cover_players(self):
        """Test S.1: a player without a role entry."""
        state = valid_state(roles=RoleSnapshot(player_roles={"a": "player"}))
        assert "S.1" in rule_ids(state)

    def test_turn_order_must_match_players(self):
        """Test S.2: a partial removal leaves the player in turn_order."""
        state = valid_state(
            players={"a"},
            roles=RoleSnapshot(player_roles={"a": "player"}),
            turn=TurnSnapshot(turn_order=["a", "b"]),
        )
        assert "S.2" in rule_ids(state)

    def test_turn_order_duplicates(self):
        """Test S.3."""
        state = valid_state(turn=TurnSnapshot(turn_order=["a", "b", "a"]))
        assert "S.3" in rule_ids(state)

    def test_missing_score(self):
        """Test S.4: every player needs a score entry."""
        state = valid_state(scores=ScoreSnapshot(scores={"a": 1}))
        assert "S.4" in rule_ids(state)

    def test_departed_scores_are_fine(self):
        """Test extra score entries do not violate anything."""
        state = valid_state(scores=ScoreSnapshot(scores={"a": 1, "b": 0, "gone": 7}))
        assert rule_ids(state) == set()

    def test_complete_before_last_round(self):
        """Test R.1."""
        state = valid_state(round=RoundSnapshot(current_round=1, total_rounds=2, is_complete=True))
        assert "R.1" in rule_ids(state)

    def test_eliminated_stranger(self):
        """Test R.2."""
        state = valid_state(round=RoundSnapshot(current_round=1, total_rounds=2, temporarily_eliminated={"z"}))
        assert "R.2" in rule_ids(state)

    def test_pending_and_completed_overlap(self):
        """Test T.1."""
        state = valid_state(turn=TurnSnapshot(
            turn_order=["a", "b"], pending_players={"a", "b"}, completed_players={"a"},
        ))
        assert "T.1" in rule_ids(state)

    def test_pending_stranger(self):
        """Test T.2."""
        state = valid_state(turn=TurnSnapshot(turn_order=["a", "b"], pending_players={"z"}))
        assert "T.2" in rule_ids(state)

    def test_sequential_index_out_of_range(self):
        """Test T.3."""
        state = valid_state(turn=TurnSnapshot(
            mode=TurnMode.SEQUENTIAL, turn_order=["a", "b"], current_turn_index=5,
        ))
        assert "T.3" in rule_ids(state)

    def test_unknown_role(self):
        """Test O.1."""
        state = valid_state(roles=RoleSnapshot(player_roles={"a": "player", "b": "judge"}))
        assert "O.1" in rule_ids(state)

    def test_lock_held_by_stranger_is_a_warning(self):
        """Test L.1 is reported as a warning."""
        state = valid_state(action_lock=ActionLockSnapshot(locked={"z": LockEntry(timestamp=1.0)}))
        violations = validate_match_state(state)
        assert [v.rule_id for v in violations] == ["L.1"]
        assert violations[0].severity == ValidationSeverity.WARNING

    def test_playing_before_round_one(self):
        """Test P.1."""
        state = valid_state(round=RoundSnapshot(current_round=0, total_rounds=2))
        assert "P.1" in rule_ids(state)

    def test_acted_history_of_stranger_is_a_warning(self):
        """Test L.1 also covers the acted history."""
        state = valid_state(action_lock=ActionLockSnapshot(acted={"z": [(1, 0)]}))
        assert rule_ids(state) == {"L.1"}

    def test_phases_must_match_config(self):
        """Test H.1: stored in-turn phases differ from the configured ones."""
        state = valid_state(round_phases=PhaseSnapshot(phases=[PhaseDefinition(name="vote")]))
        assert rule_ids(state) == {"H.1"}

    def test_configured_phases_are_valid(self):
        """Test H.1 passes when the stored phases mirror the config."""
        phases = [PhaseDefinition(name="draw", duration_seconds=30), PhaseDefinition(name="vote")]
        state = valid_state(
            settings=MatchConfig(game_type="quiz", total_rounds=2, phases=phases),
            round_phases=PhaseSnapshot(phases=phases, current_index=1),
        )
        assert validate_match_state(state) == []


class TestValidatorHooks:
    """Tests for NoOp/Collecting/Strict validators."""

    @pytest.mark.asyncio
    async def test_noop(self):
        """Test the no-op validator accepts anything."""
        await NoOpValidator().on_commit(valid_state(scores=ScoreSnapshot()))

    @pytest.mark.asyncio
    async def test_collecting(self):
        """Test violations accumulate until cleared."""
        validator = CollectingValidator()
        await validator.on_commit(valid_state())
        await validator.on_commit(valid_state(scores=ScoreSnapshot()))
        assert validator.checked == 2
        assert [v.rule_id for v in validator.get_violations()] == ["S.4"]
        validator.clear()
        assert validator.get_violations() == []

    @pytest.mark.asyncio
    async def test_strict_raises_on_error(self):
        """Test StrictValidator refuses a broken state."""
        with pytest.raises(InvariantViolationError) as exc_info:
            await StrictValidator().on_commit(valid_state(scores=ScoreSnapshot()))
        assert "S.4" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_strict_ignores_warnings(self):
        """Test warnings do not stop a save."""
        state = valid_state(action_lock=ActionLockSnapshot(locked={"z": LockEntry(timestamp=1.0)}))
        await StrictValidator().on_commit(state)

    def test_factory(self):
        """Test create_validator()."""
        assert isinstance(create_validator(), CollectingValidator)
        assert isinstance(create_validator(strict=True), StrictValidator)
