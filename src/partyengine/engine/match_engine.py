"""MatchEngine - stateless orchestrator over persisted match state.

Every public call follows the same shape:
    1. load the MatchState and rebuild the modules (MatchSession)
    2. validate and apply the request, collecting events
    3. run a turn/round transition if this request won the transition lock
    4. save with the loaded version (retry on a stale version)
    5. publish the collected events, only after the save succeeded

Phase machine:
    WAITING -> PLAYING -> (SCORING <-> PLAYING)* -> FINISHED

Inside PLAYING a turn may be split into configured phases; concluding a
phase opens the next one, concluding the last phase concludes the turn.
"""

import logging
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Sequence

from pydantic import BaseModel, Field

from partyengine.engine.clock import Clock, SystemClock
from partyengine.engine.locks import LockStore, RoundTransitionLock, Step
from partyengine.engine.repository import MatchRepository
from partyengine.engine.role_manager import RoleManager
from partyengine.engine.scoring import ScoringSystem
from partyengine.engine.session import MatchSession
from partyengine.engine.validator import StateValidator
from partyengine.errors import (
    ActionRejected,
    CommitConflictError,
    RejectionReason,
    StaleStateError,
    TransitionLost,
)
from partyengine.events import (
    EventSink,
    GameEnded,
    GameStarted,
    MatchPaused,
    MatchResumed,
    PhaseChanged,
    PlayerActed,
    PlayerEliminated,
    PlayerRemoved,
    PlayerScoreUpdated,
    PlayersUnlocked,
    RoundEnded,
    RoundStarted,
    TurnChanged,
    TurnOrderReversed,
    TurnTimedOut,
)
from partyengine.handlers.base import TIMEOUT_ACTION, GameHandler, HandlerResult, MatchView
from partyengine.handlers.registry import GameRegistry
from partyengine.models.config import EngineSettings, MatchConfig
from partyengine.models.match_state import MatchState
from partyengine.models.snapshots import (
    MatchPhase,
    PhaseSnapshot,
    RankingEntry,
    RoleSnapshot,
    RoundSnapshot,
    ScoreSnapshot,
    TurnSnapshot,
)

logger = logging.getLogger(__name__)


class ActionOutcome(BaseModel):
    """What a caller gets back from the engine.

    Rejections carry a reason and never change persisted state.
    transition_lost means another request ran (or is running) the
    transition this request asked for; the request itself still succeeded.
    """

    accepted: bool
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None
    round: int = 0
    phase: Optional[MatchPhase] = None
    transitioned: bool = False
    transition_lost: bool = False
    events: list[str] = Field(default_factory=list)

    @property
    def game_over(self) -> bool:
        return self.phase == MatchPhase.FINISHED

    @classmethod
    def rejected(
        cls,
        reason: RejectionReason,
        message: Optional[str] = None,
        round: int = 0,
        phase: Optional[MatchPhase] = None,
    ) -> "ActionOutcome":
        return cls(accepted=False, reason=reason, message=message or reason.value, round=round, phase=phase)


Operation = Callable[[MatchSession], Awaitable[ActionOutcome]]


class AppliedAction(NamedTuple):
    """What the latest attempt of one process_action call did, kept for its retries."""

    round: int
    step: Step
    result: HandlerResult
    concludes: bool
    whole_turn: bool


class MatchEngine:
    """Coordinates rounds, turns, phases, roles, scores, timers and locks for any game.

    The engine keeps no match state between calls. Concrete games plug in
    through the GameRegistry; the engine never branches on game identity.
    """

    def __init__(
        self,
        repository: MatchRepository,
        lock_store: LockStore,
        event_sink: EventSink,
        registry: GameRegistry,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
        validator: Optional[StateValidator] = None,
    ):
        """Initialize the MatchEngine.

        Args:
            repository: Persistence collaborator (load/save with versions).
            lock_store: Shared store backing the round-transition lock.
            event_sink: Receives events after each successful save.
            registry: Resolves game_type to a GameHandler.
            settings: Lock TTL, commit attempts, timer name.
            clock: Time source for timers and locks. Defaults to wall time.
            validator: Optional invariant hooks run before every save.
                       Pass None for production (zero overhead).
        """
        self._repository = repository
        self._sink = event_sink
        self._registry = registry
        self._settings = settings or EngineSettings()
        self._clock = clock or SystemClock()
        self._validator = validator
        self._transition_lock = RoundTransitionLock(
            lock_store, ttl_seconds=self._settings.transition_lock_ttl_seconds
        )

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # ========================================================================
    # Public API
    # ========================================================================

    async def initialize(self, match_id: str, players: Sequence[str], config: MatchConfig) -> MatchState:
        """Create all snapshots for a new match in the WAITING phase.

        Raises:
            ValueError: Duplicate player ids or a player count outside the config bounds.
            UnknownGameError: No handler registered for config.game_type.
            StaleStateError: A match with this id already exists.
        """
        order = list(players)
        if len(set(order)) != len(order):
            raise ValueError(f"Duplicate player ids in {order}")
        if len(order) < config.min_players:
            raise ValueError(f"Need at least {config.min_players} players, got {len(order)}")
        if config.max_players is not None and len(order) > config.max_players:
            raise ValueError(f"At most {config.max_players} players allowed, got {len(order)}")
        self._registry.get(config.game_type)

        roles = RoleManager(RoleSnapshot(
            available_roles=list(config.roles),
            allow_multiple_players_per_role=config.allow_multiple_players_per_role,
        ))
        roles.initialize(order)
        scoring = ScoringSystem(ScoreSnapshot(track_history=config.track_score_history))
        for player_id in order:
            scoring.add_player(player_id)

        state = MatchState(
            match_id=match_id,
            game_type=config.game_type,
            settings=config,
            players=set(order),
            round=RoundSnapshot(total_rounds=config.total_rounds, round_per_turn=config.round_per_turn),
            turn=TurnSnapshot(
                mode=config.turn_mode,
                turn_order=order,
                time_limit_seconds=config.time_limit_seconds,
            ),
            roles=roles.snapshot(),
            scores=scoring.snapshot(),
            round_phases=PhaseSnapshot(phases=list(config.phases)),
        )
        if self._validator:
            await self._validator.on_commit(state)
        saved = await self._repository.save(match_id, state, expected_version=0)
        logger.info("Initialized match %s (%s) with %d players", match_id, config.game_type, len(order))
        return saved

    async def start_game(self, match_id: str) -> ActionOutcome:
        """WAITING -> PLAYING: start round 1 and the first turn."""

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase != MatchPhase.WAITING:
                raise ActionRejected(
                    RejectionReason.INVALID_PHASE, f"Cannot start a match in phase {session.phase.value}"
                )
            if not session.players:
                raise ActionRejected(RejectionReason.PLAYER_NOT_ACTIVE, "No players left to start with")
            await self._acquire_transition(session)

            session.phase = MatchPhase.PLAYING
            session.action_lock.unlock_all()
            session.roles.initialize(session.turns.turn_order)
            session.collector.add(GameStarted(
                match_id=session.match_id,
                round=0,
                players=session.turns.turn_order,
                turn_mode=session.turns.mode,
                total_rounds=session.rounds.total_rounds,
            ))
            await self._begin_round(session)
            logger.info("Match %s started", session.match_id)
            return ActionOutcome(accepted=True, transitioned=True)

        return await self._run(match_id, operation)

    async def process_action(
        self,
        match_id: str,
        player_id: str,
        action: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> ActionOutcome:
        """Validate an action, hand it to the game, and advance phases/turns/rounds if it concludes.

        Validation order:
            1. phase must be PLAYING and not paused     -> INVALID_PHASE
            2. player must be active                    -> PLAYER_NOT_ACTIVE
            3. player must not hold an action lock      -> ALREADY_ACTED
            4. sequential mode: player holds the turn   -> NOT_YOUR_TURN
            5. the handler must accept                  -> HANDLER_REJECTED

        A "timeout" action skips 3 and 4. It is refused with TIMER_NOT_EXPIRED
        until the turn timer or the running phase's timer has expired. A
        payload carrying the reporter's "turn_sequence" (and optionally
        "phase_index") that no longer matches is an already handled timeout.

        An action whose commit lost the race to a concurrent transition is
        recorded against the new state: its score deltas and permanent
        eliminations still apply, the transition it asked for does not.
        """
        payload = dict(payload or {})
        last: Optional[AppliedAction] = None

        async def operation(session: MatchSession) -> ActionOutcome:
            nonlocal last
            if (
                last is not None
                and last.concludes
                and action != TIMEOUT_ACTION
                and session.phase == MatchPhase.PLAYING
                and not session.is_paused()
                and session.action_lock.has_acted(player_id, last.step)
            ):
                # A duplicate of this action was saved without the transition it asked for.
                return await self._try_conclude(session, ActionOutcome(accepted=True), whole_turn=last.whole_turn)

            result, concludes, whole_turn = await self._apply_action(session, player_id, action, payload)
            last = AppliedAction(session.current_round, session.step, result, concludes, whole_turn)
            outcome = ActionOutcome(accepted=True)
            if not concludes:
                return outcome
            return await self._try_conclude(session, outcome, whole_turn=whole_turn)

        async def replay(session: MatchSession) -> ActionOutcome:
            outcome = ActionOutcome(accepted=True, transition_lost=True)
            if last is None or action == TIMEOUT_ACTION:
                return outcome
            self._replay_action(session, player_id, action, last.round, last.step, last.result)
            if self._awaits_conclusion(session):
                await self._try_conclude(session, outcome)
            return outcome

        return await self._run(match_id, operation, overtaken=replay)

    async def start_next_round(self, match_id: str) -> ActionOutcome:
        """SCORING -> PLAYING when rounds pause in between."""

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase != MatchPhase.SCORING:
                raise ActionRejected(
                    RejectionReason.INVALID_PHASE, f"No round to start in phase {session.phase.value}"
                )
            await self._acquire_transition(session)
            session.phase = MatchPhase.PLAYING
            await self._begin_round(session)
            return ActionOutcome(accepted=True, transitioned=True)

        return await self._run(match_id, operation)

    async def pause_match(self, match_id: str) -> ActionOutcome:
        """Freeze a running match.

        The turn clock and every timer stop and actions are refused until
        resume_match(). Pausing a paused match is a no-op.
        """

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase != MatchPhase.PLAYING:
                raise ActionRejected(
                    RejectionReason.INVALID_PHASE, f"Cannot pause a match in phase {session.phase.value}"
                )
            if session.is_paused():
                return ActionOutcome(accepted=True)
            session.turns.pause()
            session.timers.pause_all()
            session.collector.add(MatchPaused(
                match_id=session.match_id,
                round=session.current_round,
                remaining_time=session.turns.remaining_time(),
            ))
            logger.info("Match %s paused", session.match_id)
            return ActionOutcome(accepted=True)

        return await self._run(match_id, operation)

    async def resume_match(self, match_id: str) -> ActionOutcome:
        """Unfreeze a paused match.

        Timers pick up where they stopped. A cycle completed by players
        leaving during the pause is concluded now.
        """

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase != MatchPhase.PLAYING:
                raise ActionRejected(
                    RejectionReason.INVALID_PHASE, f"Cannot resume a match in phase {session.phase.value}"
                )
            outcome = ActionOutcome(accepted=True)
            if not session.is_paused():
                return outcome
            session.turns.resume()
            session.timers.resume_all()
            session.collector.add(MatchResumed(
                match_id=session.match_id,
                round=session.current_round,
                remaining_time=session.turns.remaining_time(),
            ))
            logger.info("Match %s resumed", session.match_id)

            if session.turns.is_cycle_complete():
                if session.is_sequential:
                    return await self._try_conclude(session, outcome, wrapped=True)
                return await self._try_conclude(session, outcome)
            return outcome

        return await self._run(match_id, operation)

    async def remove_player(self, match_id: str, player_id: str) -> ActionOutcome:
        """Take a player out of every snapshot in one commit.

        Their score entry stays. Removing the last player finishes the match.
        Removing the sequential holder concludes their turn; when that wraps
        past the end of the turn order the round ends.
        """

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase == MatchPhase.FINISHED:
                raise ActionRejected(RejectionReason.INVALID_PHASE, "Match already finished")
            if player_id not in session.players:
                raise ActionRejected(RejectionReason.PLAYER_NOT_ACTIVE, f"Unknown player {player_id!r}")

            was_holder = session.is_sequential and session.turns.current_player == player_id
            session.players.discard(player_id)
            session.roles.remove_player(player_id)
            session.turns.remove_player(player_id)
            session.rounds.forget_player(player_id)
            session.action_lock.forget(player_id)
            session.collector.add(PlayerRemoved(
                match_id=session.match_id, round=session.current_round, player_id=player_id
            ))
            logger.info("Removed player %s from match %s", player_id, session.match_id)

            outcome = ActionOutcome(accepted=True)
            if session.phase == MatchPhase.WAITING:
                return outcome
            if not session.players:
                self._finish(session)
                return outcome
            if session.phase != MatchPhase.PLAYING or session.is_paused():
                return outcome

            if was_holder:
                return await self._try_conclude(session, outcome, wrapped=session.turns.is_cycle_complete())
            if self._awaits_conclusion(session):
                return await self._try_conclude(session, outcome)
            return outcome

        return await self._run(match_id, operation)

    async def finalize(self, match_id: str) -> list[RankingEntry]:
        """Finish the match now and return the ranking.

        Finalizing a finished match returns its stored ranking unchanged.
        """

        async def operation(session: MatchSession) -> ActionOutcome:
            if session.phase != MatchPhase.FINISHED:
                self._finish(session)
            return ActionOutcome(accepted=True)

        await self._run(match_id, operation)
        state = await self._repository.load(match_id)
        return list(state.ranking)

    async def get_state(self, match_id: str) -> MatchState:
        return await self._repository.load(match_id)

    async def view_for(self, match_id: str) -> MatchView:
        """Read-only projection, the same one handlers receive."""
        state = await self._repository.load(match_id)
        return MatchSession(state, self._clock).view()

    # ========================================================================
    # Commit loop
    # ========================================================================

    @staticmethod
    def _marker(state: MatchState) -> tuple:
        return (
            state.phase,
            state.round.current_round,
            state.turn.turn_sequence,
            state.round_phases.current_index,
        )

    async def _run(
        self,
        match_id: str,
        operation: Operation,
        overtaken: Optional[Operation] = None,
    ) -> ActionOutcome:
        """Load, apply, save; retry on a stale version.

        A retry runs operation again on the fresh state. When overtaken is
        given and the retry finds the match in a different phase, round,
        turn or in-turn phase than the first attempt saw, overtaken runs
        instead: the transition the request may have asked for already
        happened, but its own effects still have to be recorded.
        """
        attempts = self._settings.commit_attempts
        first_marker = None

        for attempt in range(1, attempts + 1):
            state = await self._repository.load(match_id)
            marker = self._marker(state)
            run = operation
            if first_marker is None:
                first_marker = marker
            elif overtaken is not None and marker != first_marker:
                logger.info(
                    "Match %s moved on while retrying (%s -> %s); recording against the new state",
                    match_id, first_marker, marker,
                )
                run = overtaken

            session = MatchSession(state, self._clock)
            committed = False
            try:
                try:
                    outcome = await run(session)
                except ActionRejected as exc:
                    logger.debug("Rejected on match %s: %s (%s)", match_id, exc.reason.value, exc.message)
                    return ActionOutcome.rejected(
                        exc.reason, exc.message, round=state.round.current_round, phase=state.phase
                    )
                except TransitionLost:
                    return ActionOutcome(
                        accepted=True,
                        transition_lost=True,
                        round=state.round.current_round,
                        phase=state.phase,
                    )

                outcome.round = session.current_round
                outcome.phase = session.phase
                new_state = session.to_state()
                if new_state == state and not session.collector:
                    return outcome

                if self._validator:
                    await self._validator.on_commit(new_state)
                await self._repository.save(match_id, new_state, expected_version=state.version)
                committed = True
            except StaleStateError as exc:
                logger.warning(
                    "Commit conflict on match %s (attempt %d/%d): %s", match_id, attempt, attempts, exc
                )
                continue
            finally:
                # A lease is kept after a successful commit and expires via TTL.
                if not committed and session.lease is not None:
                    await self._transition_lock.release(*session.lease)

            outcome.events = await session.collector.flush(self._sink)
            return outcome

        raise CommitConflictError(match_id, attempts)

    async def _acquire_transition(self, session: MatchSession) -> None:
        phase = session.phase
        if session.phases.has_phases and phase == MatchPhase.PLAYING:
            phase = f"{phase.value}.{session.phases.current_index}"
        key = (session.match_id, session.current_round, phase, session.turns.turn_sequence)
        if not await self._transition_lock.try_acquire(*key):
            raise TransitionLost(f"Transition for {key} already taken")
        session.lease = key

    @staticmethod
    def _awaits_conclusion(session: MatchSession) -> bool:
        """A running simultaneous cycle nobody is pending in any more."""
        return (
            session.phase == MatchPhase.PLAYING
            and not session.is_paused()
            and not session.is_sequential
            and session.turns.is_cycle_complete()
        )

    async def _try_conclude(
        self,
        session: MatchSession,
        outcome: ActionOutcome,
        whole_turn: bool = False,
        wrapped: Optional[bool] = None,
    ) -> ActionOutcome:
        """Conclude the running phase (or the whole turn) if this request wins the lock."""
        try:
            await self._acquire_transition(session)
        except TransitionLost:
            # Whatever this request changed is still saved by its own commit.
            outcome.transition_lost = True
            return outcome
        if whole_turn or wrapped is not None:
            await self._conclude_turn(session, wrapped=wrapped)
        else:
            await self._conclude_step(session)
        outcome.transitioned = True
        return outcome

    # ========================================================================
    # Actions
    # ========================================================================

    def _handler(self, session: MatchSession) -> GameHandler:
        return self._registry.get(session.game_type)

    async def _apply_action(
        self,
        session: MatchSession,
        player_id: str,
        action: str,
        payload: dict[str, Any],
    ) -> tuple[HandlerResult, bool, bool]:
        """Validate, run the handler and apply its result.

        Returns:
            (result, concludes, whole_turn): whether the running phase should
            conclude, and whether the rest of the turn goes with it.
        """
        if session.phase != MatchPhase.PLAYING:
            raise ActionRejected(
                RejectionReason.INVALID_PHASE, f"Actions are not accepted in phase {session.phase.value}"
            )
        if session.is_paused():
            raise ActionRejected(RejectionReason.INVALID_PHASE, "Match is paused")

        is_timeout = action == TIMEOUT_ACTION
        turn_expired = False
        if is_timeout:
            if player_id not in session.players:
                raise ActionRejected(RejectionReason.PLAYER_NOT_ACTIVE, f"Unknown player {player_id!r}")
            turn_expired = self._check_timeout(session, payload)
        else:
            if not session.is_active(player_id):
                raise ActionRejected(RejectionReason.PLAYER_NOT_ACTIVE, f"Player {player_id!r} is not active")
            if session.action_lock.is_locked(player_id):
                raise ActionRejected(RejectionReason.ALREADY_ACTED, f"Player {player_id!r} already acted")
            if session.is_sequential and not session.turns.is_player_turn(player_id):
                raise ActionRejected(
                    RejectionReason.NOT_YOUR_TURN,
                    f"It is {session.turns.current_player!r}'s turn, not {player_id!r}'s",
                )
            session.action_lock.try_lock(player_id, session.step)

        result = await self._handler(session).on_action(session.view(), player_id, action, payload)
        if not result.accepted:
            raise ActionRejected(RejectionReason.HANDLER_REJECTED, result.reason)
        self._check_result(session, result)

        round_no = session.current_round
        if is_timeout:
            session.collector.add(TurnTimedOut(
                match_id=session.match_id,
                round=round_no,
                reported_by=player_id,
                current_player=session.turns.current_player,
                phase_name=session.phases.current_name,
            ))
        else:
            session.collector.add(PlayerActed(
                match_id=session.match_id, round=round_no, player_id=player_id, action=action
            ))
        self._apply_result(session, result, reason=action)

        if not is_timeout and not session.is_sequential:
            session.turns.mark_action(player_id)

        if is_timeout:
            return result, True, turn_expired
        if result.concludes_turn:
            return result, True, False
        if session.is_sequential:
            holder = session.turns.current_player
            holder_out = holder is not None and session.rounds.is_eliminated(holder)
            return result, holder_out, holder_out
        return result, session.turns.is_cycle_complete(), False

    def _check_timeout(self, session: MatchSession, payload: dict[str, Any]) -> bool:
        """Decide whether a reported timeout is due.

        Returns:
            True if the whole turn timed out, False if only the running phase did.
        """
        seen_turn = payload.get("turn_sequence")
        if seen_turn is not None:
            seen = (seen_turn, payload.get("phase_index", session.phases.current_index))
            if seen != session.step:
                raise TransitionLost(f"Timeout for step {seen} already handled, now at {session.step}")

        timer = self._settings.turn_timer_name
        if session.timers.has(timer) and session.timers.is_expired(timer):
            return True
        if session.phases.is_expired(session.timers):
            return False
        raise ActionRejected(RejectionReason.TIMER_NOT_EXPIRED, "No turn or phase timer has expired")

    @staticmethod
    def _check_result(session: MatchSession, result: HandlerResult) -> None:
        known = set(session.scoring.scores())
        unknown_scores = set(result.score_deltas) - known
        if unknown_scores:
            raise ActionRejected(
                RejectionReason.HANDLER_REJECTED, f"Score deltas for unknown players: {sorted(unknown_scores)}"
            )
        unknown_players = (result.eliminate_temporarily | result.eliminate_permanently) - session.players
        if unknown_players:
            raise ActionRejected(
                RejectionReason.HANDLER_REJECTED, f"Cannot eliminate unknown players: {sorted(unknown_players)}"
            )

    def _replay_action(
        self,
        session: MatchSession,
        player_id: str,
        action: str,
        acted_round: int,
        step: Step,
        result: HandlerResult,
    ) -> None:
        """Record an action whose phase was concluded by a concurrent request."""
        if session.phase == MatchPhase.FINISHED:
            raise ActionRejected(RejectionReason.INVALID_PHASE, "Match finished before the action was recorded")
        if player_id not in session.players:
            raise ActionRejected(RejectionReason.PLAYER_NOT_ACTIVE, f"Player {player_id!r} left the match")
        if not session.action_lock.record(player_id, step):
            raise ActionRejected(RejectionReason.ALREADY_ACTED, f"Player {player_id!r} already acted")

        logger.info(
            "Match %s: recording %s by %s from round %d after a concurrent transition",
            session.match_id, action, player_id, acted_round,
        )
        session.collector.add(PlayerActed(
            match_id=session.match_id, round=acted_round, player_id=player_id, action=action
        ))
        self._apply_result(session, result, reason=action, acted_round=acted_round)

    def _apply_result(
        self,
        session: MatchSession,
        result: HandlerResult,
        reason: str,
        acted_round: Optional[int] = None,
    ) -> None:
        """Apply a handler result.

        With acted_round set the result is a late one: game_data and
        direction changes are dropped, temporary eliminations only hold
        within their own round, and the current sequential holder is never
        eliminated under their feet.
        """
        live = acted_round is None
        round_no = session.current_round if live else acted_round
        for player_id in sorted(result.score_deltas):
            delta = result.score_deltas[player_id]
            total = session.scoring.award(player_id, delta, round=round_no, reason=reason)
            session.collector.add(PlayerScoreUpdated(
                match_id=session.match_id, round=round_no, player_id=player_id, delta=delta, score=total
            ))

        if live and result.game_data is not None:
            session.game_data = dict(result.game_data)

        eliminations = [(pid, False) for pid in sorted(result.eliminate_temporarily)]
        eliminations += [(pid, True) for pid in sorted(result.eliminate_permanently)]
        for player_id, permanent in eliminations:
            if not live and (
                player_id not in session.players
                or (not permanent and acted_round != session.current_round)
                or (session.is_sequential and session.turns.current_player == player_id)
            ):
                logger.info("Match %s: dropping late elimination of %s", session.match_id, player_id)
                continue
            if permanent:
                session.rounds.eliminate_permanently(player_id)
            else:
                session.rounds.eliminate_temporarily(player_id)
            if not session.is_sequential:
                session.turns.drop_pending(player_id)
            session.collector.add(PlayerEliminated(
                match_id=session.match_id, round=session.current_round, player_id=player_id, permanent=permanent
            ))

        if live and result.reverse_direction:
            self._reverse(session)

    def _reverse(self, session: MatchSession) -> None:
        if not session.is_sequential:
            logger.debug("Match %s: direction change ignored in simultaneous mode", session.match_id)
            return
        session.turns.reverse()
        session.collector.add(TurnOrderReversed(
            match_id=session.match_id,
            round=session.current_round,
            direction=session.turns.direction,
            next_player=session.turns.peek_next(session.excluded()),
        ))

    # ========================================================================
    # Transitions (callers hold the transition lock)
    # ========================================================================

    async def _conclude_step(self, session: MatchSession) -> None:
        """Open the next in-turn phase, or conclude the turn after the last one."""
        if session.phases.has_phases and not session.phases.is_last_phase():
            self._next_phase(session)
        else:
            await self._conclude_turn(session)

    def _next_phase(self, session: MatchSession) -> None:
        session.phases.next_phase()
        session.turns.reset_cycle(session.excluded())
        self._unlock_all(session)
        session.phases.start_timer(session.timers)
        phase = session.phases.current
        session.collector.add(PhaseChanged(
            match_id=session.match_id,
            round=session.current_round,
            phase_name=phase.name,
            phase_index=session.phases.current_index,
            duration_seconds=phase.duration_seconds,
        ))
        logger.debug("Match %s: phase %s", session.match_id, phase.name)

    async def _conclude_turn(self, session: MatchSession, wrapped: Optional[bool] = None) -> None:
        """Advance the turn; end the round when a cycle completed (or every turn in round-per-turn mode).

        wrapped is given when the holder already moved on (the previous
        holder left) and says whether that move completed a cycle.
        """
        excluded = session.excluded()
        if wrapped is None:
            wrapped = session.turns.advance(excluded)
        elif not wrapped and session.is_sequential and session.turns.current_player in excluded:
            wrapped = session.turns.advance(excluded)
        cycle_complete = wrapped or session.rounds.round_per_turn

        session.phases.reset()
        anchor = session.turns.current_player if session.is_sequential else None
        session.roles.rotate(session.turns.turn_order, anchor=anchor)
        self._unlock_all(session)

        if cycle_complete:
            await self._end_round(session)
        else:
            self._start_turn(session)

    def _unlock_all(self, session: MatchSession) -> None:
        unlocked = session.action_lock.unlock_all()
        if unlocked:
            session.collector.add(PlayersUnlocked(
                match_id=session.match_id, round=session.current_round, player_ids=unlocked
            ))

    def _start_turn(self, session: MatchSession) -> None:
        session.turns.start_turn(session.excluded())
        self._start_turn_timers(session)
        index = session.turns.current_turn_index if session.is_sequential else 0
        session.collector.add(TurnChanged(
            match_id=session.match_id,
            round=session.current_round,
            current_player=session.turns.current_player,
            turn_index=index,
            turn_sequence=session.turns.turn_sequence,
            next_player=session.turns.peek_next(session.excluded()),
        ))

    def _start_turn_timers(self, session: MatchSession) -> None:
        limit = session.settings.time_limit_seconds
        if limit:
            session.timers.start(self._settings.turn_timer_name, limit)
        session.phases.reset()
        session.phases.start_timer(session.timers)

    async def _end_round(self, session: MatchSession) -> None:
        finished_round = session.current_round
        is_final = session.rounds.complete_round()
        session.collector.add(RoundEnded(
            match_id=session.match_id,
            round=finished_round,
            scores=session.scoring.scores(),
            is_final=is_final,
        ))
        logger.info("Match %s: round %d ended", session.match_id, finished_round)

        if is_final:
            self._finish(session)
        elif session.settings.pause_between_rounds:
            session.phase = MatchPhase.SCORING
            session.timers.cancel(self._settings.turn_timer_name)
            session.phases.cancel_timers(session.timers)
        else:
            await self._begin_round(session)

    async def _begin_round(self, session: MatchSession) -> None:
        session.rounds.start_round()
        session.turns.start_turn(session.excluded())
        self._start_turn_timers(session)

        game_data = await self._handler(session).on_round_start(session.view())
        if game_data is not None:
            session.game_data = dict(game_data)

        session.collector.add(RoundStarted(
            match_id=session.match_id,
            round=session.current_round,
            current_player=session.turns.current_player,
            roles=session.roles.roles(),
            time_limit_seconds=session.settings.time_limit_seconds,
            phase_name=session.phases.current_name,
        ))
        logger.info("Match %s: round %d started", session.match_id, session.current_round)

    def _finish(self, session: MatchSession) -> None:
        session.phase = MatchPhase.FINISHED
        session.timers.cancel_all()
        session.phases.reset()
        session.ranking = session.scoring.ranking()
        winners = session.scoring.winners()
        session.collector.add(GameEnded(
            match_id=session.match_id,
            round=session.current_round,
            ranking=session.ranking,
            winners=winners,
        ))
        logger.info("Match %s finished; winners: %s", session.match_id, winners)
