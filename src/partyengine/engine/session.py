"""MatchSession - the per-request working set rebuilt from a MatchState."""

import copy
from typing import Optional

from partyengine.engine.clock import Clock
from partyengine.engine.event_collector import EventCollector
from partyengine.engine.locks import PlayerActionLock, Step
from partyengine.engine.phase_manager import PhaseManager
from partyengine.engine.role_manager import RoleManager
from partyengine.engine.round_manager import RoundManager
from partyengine.engine.scoring import ScoringSystem
from partyengine.engine.timer_service import TimerService
from partyengine.engine.turn_manager import TurnManager, create_turn_manager
from partyengine.handlers.base import MatchView
from partyengine.models.config import MatchConfig
from partyengine.models.match_state import MatchState
from partyengine.models.snapshots import MatchPhase, RankingEntry, TurnMode


class MatchSession:
    """Module objects for one request, built fresh from the persisted state.

    Every manager works on its own deep copy, so a session that is thrown
    away (rejected action, lost commit) leaves no trace. to_state() merges
    the managers back into a new MatchState carrying the loaded version.
    """

    def __init__(self, state: MatchState, clock: Clock):
        self._loaded = state
        self.phase: MatchPhase = state.phase
        self.players: set[str] = set(state.players)
        self.game_data: dict = copy.deepcopy(state.game_data)
        self.ranking: list[RankingEntry] = list(state.ranking)

        self.rounds = RoundManager.from_snapshot(state.round)
        self.turns: TurnManager = create_turn_manager(state.turn, clock)
        self.roles = RoleManager.from_snapshot(state.roles)
        self.scoring = ScoringSystem.from_snapshot(state.scores)
        self.timers = TimerService.from_snapshot(state.timers, clock)
        self.action_lock = PlayerActionLock.from_snapshot(state.action_lock, clock)
        self.phases = PhaseManager.from_snapshot(state.round_phases)

        self.collector = EventCollector(state.match_id)
        # (match_id, round, phase, turn) of a transition lock held by this request
        self.lease: Optional[tuple] = None

    @property
    def match_id(self) -> str:
        return self._loaded.match_id

    @property
    def game_type(self) -> str:
        return self._loaded.game_type

    @property
    def settings(self) -> MatchConfig:
        return self._loaded.settings

    @property
    def version(self) -> int:
        return self._loaded.version

    @property
    def is_sequential(self) -> bool:
        return self.turns.mode == TurnMode.SEQUENTIAL

    @property
    def current_round(self) -> int:
        return self.rounds.current_round

    @property
    def step(self) -> Step:
        """(turn_sequence, phase_index) of the running turn step."""
        return (self.turns.turn_sequence, self.phases.current_index)

    def is_paused(self) -> bool:
        return self.turns.is_paused()

    def excluded(self) -> set[str]:
        """Players who must not be given a turn right now."""
        return self.rounds.eliminated()

    def is_active(self, player_id: str) -> bool:
        return player_id in self.players and not self.rounds.is_eliminated(player_id)

    def to_state(self) -> MatchState:
        return MatchState(
            match_id=self.match_id,
            game_type=self.game_type,
            settings=self.settings,
            phase=self.phase,
            players=set(self.players),
            round=self.rounds.snapshot(),
            turn=self.turns.snapshot(),
            roles=self.roles.snapshot(),
            scores=self.scoring.snapshot(),
            timers=self.timers.snapshot(),
            action_lock=self.action_lock.snapshot(),
            round_phases=self.phases.snapshot(),
            game_data=copy.deepcopy(self.game_data),
            ranking=list(self.ranking),
            version=self.version,
        )

    def view(self) -> MatchView:
        return MatchView(
            match_id=self.match_id,
            game_type=self.game_type,
            phase=self.phase,
            players=frozenset(self.players),
            round=self.rounds.snapshot(),
            turn=self.turns.snapshot(),
            roles=self.roles.snapshot(),
            scores=self.scoring.snapshot(),
            timers=self.timers.snapshot(),
            round_phases=self.phases.snapshot(),
            game_data=copy.deepcopy(self.game_data),
            current_player=self.turns.current_player,
            remaining_time=self.turns.remaining_time(),
            round_phase=self.phases.current_name,
            paused=self.is_paused(),
        )
