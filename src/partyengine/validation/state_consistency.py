"""Match state consistency checks.

Rules:
- S.1: players must equal the keys of roles.player_roles
- S.2: players must equal the members of turn.turn_order
- S.3: turn.turn_order must not repeat a player
- S.4: every player must have a score entry
- R.1: a complete match sits on its last round
- R.2: eliminated players must be players
- T.1: pending and completed players must be disjoint
- T.2: pending and completed players must come from turn_order
- T.3: the sequential turn index must point into turn_order
- O.1: every assigned role must be one of the available roles
- L.1: only players can hold an action lock or an acted history
- P.1: a match in play has started its first round
- H.1: the in-turn phases are the configured ones
"""

from partyengine.models.match_state import MatchState
from partyengine.models.snapshots import MatchPhase, TurnMode
from .types import ValidationViolation, ValidationSeverity


def validate_player_sets(state: MatchState) -> list[ValidationViolation]:
    """S.1-S.4: the three player views agree."""
    violations: list[ValidationViolation] = []
    players = state.players
    role_players = set(state.roles.player_roles)
    order = state.turn.turn_order

    if role_players != players:
        violations.append(ValidationViolation(
            rule_id="S.1",
            category="Player Sets",
            message="players must equal the keys of roles.player_roles",
            context={"missing": sorted(players - role_players), "extra": sorted(role_players - players)},
        ))

    if set(order) != players:
        violations.append(ValidationViolation(
            rule_id="S.2",
            category="Player Sets",
            message="players must equal the members of turn_order",
            context={"missing": sorted(players - set(order)), "extra": sorted(set(order) - players)},
        ))

    if len(order) != len(set(order)):
        duplicates = sorted({pid for pid in order if order.count(pid) > 1})
        violations.append(ValidationViolation(
            rule_id="S.3",
            category="Player Sets",
            message="turn_order must not repeat a player",
            context={"duplicates": duplicates},
        ))

    unscored = players - set(state.scores.scores)
    if unscored:
        violations.append(ValidationViolation(
            rule_id="S.4",
            category="Player Sets",
            message="every player must have a score entry",
            context={"unscored": sorted(unscored)},
        ))

    return violations


def validate_rounds(state: MatchState) -> list[ValidationViolation]:
    """R.1-R.2."""
    violations: list[ValidationViolation] = []
    rnd = state.round

    if rnd.is_complete and rnd.current_round != rnd.total_rounds:
        violations.append(ValidationViolation(
            rule_id="R.1",
            category="Rounds",
            message=f"Match complete on round {rnd.current_round} of {rnd.total_rounds}",
            context={"current_round": rnd.current_round, "total_rounds": rnd.total_rounds},
        ))

    strangers = (rnd.permanently_eliminated | rnd.temporarily_eliminated) - state.players
    if strangers:
        violations.append(ValidationViolation(
            rule_id="R.2",
            category="Rounds",
            message="eliminated players must be players",
            context={"unknown": sorted(strangers)},
        ))

    return violations


def validate_turns(state: MatchState) -> list[ValidationViolation]:
    """T.1-T.3."""
    violations: list[ValidationViolation] = []
    turn = state.turn

    overlap = turn.pending_players & turn.completed_players
    if overlap:
        violations.append(ValidationViolation(
            rule_id="T.1",
            category="Turns",
            message="pending and completed players must be disjoint",
            context={"overlap": sorted(overlap)},
        ))

    strangers = (turn.pending_players | turn.completed_players) - set(turn.turn_order)
    if strangers:
        violations.append(ValidationViolation(
            rule_id="T.2",
            category="Turns",
            message="pending and completed players must come from turn_order",
            context={"unknown": sorted(strangers)},
        ))

    if turn.mode == TurnMode.SEQUENTIAL and turn.turn_order:
        if not 0 <= turn.current_turn_index < len(turn.turn_order):
            violations.append(ValidationViolation(
                rule_id="T.3",
                category="Turns",
                message=f"Turn index {turn.current_turn_index} outside turn_order",
                context={"index": turn.current_turn_index, "size": len(turn.turn_order)},
            ))

    return violations


def validate_roles(state: MatchState) -> list[ValidationViolation]:
    """O.1."""
    available = set(state.roles.available_roles)
    unknown = {pid: role for pid, role in state.roles.player_roles.items() if role not in available}
    if not unknown:
        return []
    return [ValidationViolation(
        rule_id="O.1",
        category="Roles",
        message="every assigned role must be one of the available roles",
        context={"unknown": unknown},
    )]


def validate_locks(state: MatchState) -> list[ValidationViolation]:
    """L.1."""
    strangers = (set(state.action_lock.locked) | set(state.action_lock.acted)) - state.players
    if not strangers:
        return []
    return [ValidationViolation(
        rule_id="L.1",
        category="Locks",
        message="only players can hold an action lock",
        severity=ValidationSeverity.WARNING,
        context={"unknown": sorted(strangers)},
    )]


def validate_phase(state: MatchState) -> list[ValidationViolation]:
    """P.1."""
    if state.phase == MatchPhase.PLAYING and state.round.current_round < 1:
        return [ValidationViolation(
            rule_id="P.1",
            category="Phase",
            message="a match in play must have started its first round",
            context={"current_round": state.round.current_round},
        )]
    return []


def validate_round_phases(state: MatchState) -> list[ValidationViolation]:
    """H.1."""
    configured = [phase.name for phase in state.settings.phases]
    stored = [phase.name for phase in state.round_phases.phases]
    if configured == stored:
        return []
    return [ValidationViolation(
        rule_id="H.1",
        category="Phases",
        message="the in-turn phases are the configured ones",
        context={"configured": configured, "stored": stored},
    )]


def validate_match_state(state: MatchState) -> list[ValidationViolation]:
    """Run every consistency rule.

    Returns:
        List of validation violations (empty if valid)
    """
    violations: list[ValidationViolation] = []
    violations.extend(validate_player_sets(state))
    violations.extend(validate_rounds(state))
    violations.extend(validate_turns(state))
    violations.extend(validate_roles(state))
    violations.extend(validate_locks(state))
    violations.extend(validate_phase(state))
    violations.extend(validate_round_phases(state))
    return violations
