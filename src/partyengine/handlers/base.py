"""Shared types for concrete game handlers.

This module contains the contract every game plugs into the engine with:
- MatchView: read-only projection of the match handed to a handler
- HandlerResult: what the handler decided about one action
- GameHandler Protocol: the capability interface (on_action, on_round_start)
- BaseGameHandler: convenience base with a no-op round hook

Handlers never touch persisted state. Everything they want changed (score
deltas, eliminations, game_data) goes back through HandlerResult and the
engine applies it.
"""

from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from partyengine.models.snapshots import (
    MatchPhase,
    PhaseSnapshot,
    RoleSnapshot,
    RoundSnapshot,
    ScoreSnapshot,
    TimerSnapshot,
    TurnMode,
    TurnSnapshot,
)

# Reserved action name: a report that the turn timer ran out.
TIMEOUT_ACTION = "timeout"


# ============================================================================
# Read-only projection
# ============================================================================


class MatchView(BaseModel):
    """A frozen copy of the match as seen by a handler (or a client).

    The snapshots are deep copies, so nothing done to a view can reach
    the stored state.
    """

    model_config = ConfigDict(frozen=True)

    match_id: str
    game_type: str
    phase: MatchPhase
    players: frozenset[str]
    round: RoundSnapshot
    turn: TurnSnapshot
    roles: RoleSnapshot
    scores: ScoreSnapshot
    timers: TimerSnapshot
    round_phases: PhaseSnapshot = Field(default_factory=PhaseSnapshot)
    game_data: dict[str, Any] = Field(default_factory=dict)
    current_player: Optional[str] = None
    remaining_time: Optional[float] = None
    round_phase: Optional[str] = None  # name of the running in-turn phase
    paused: bool = False

    @property
    def current_round(self) -> int:
        return self.round.current_round

    @property
    def turn_mode(self) -> TurnMode:
        return self.turn.mode

    def role_of(self, player_id: str) -> Optional[str]:
        return self.roles.player_roles.get(player_id)

    def score_of(self, player_id: str) -> int:
        return self.scores.scores.get(player_id, 0)

    def is_eliminated(self, player_id: str) -> bool:
        return (
            player_id in self.round.permanently_eliminated
            or player_id in self.round.temporarily_eliminated
        )


# ============================================================================
# Handler result
# ============================================================================


class HandlerResult(BaseModel):
    """A handler's verdict on one action.

    - accepted: False rejects the action; nothing is persisted
    - concludes_turn: ask the engine to run the turn/round transition
    - score_deltas: player id -> signed delta, applied once by the engine
    - game_data: when set, replaces MatchState.game_data wholesale
    - eliminate_temporarily / eliminate_permanently: players to sit out
    - reverse_direction: flip a sequential turn order (ignored otherwise)
    """

    accepted: bool = True
    concludes_turn: bool = False
    score_deltas: dict[str, int] = Field(default_factory=dict)
    reason: Optional[str] = None
    game_data: Optional[dict[str, Any]] = None
    eliminate_temporarily: set[str] = Field(default_factory=set)
    eliminate_permanently: set[str] = Field(default_factory=set)
    reverse_direction: bool = False

    @classmethod
    def reject(cls, reason: str) -> "HandlerResult":
        return cls(accepted=False, reason=reason)


# ============================================================================
# GameHandler Protocol
# ============================================================================


class GameHandler(Protocol):
    """One implementation per game type, injected through a GameRegistry."""

    async def on_action(
        self,
        view: MatchView,
        player_id: str,
        action: str,
        payload: dict[str, Any],
    ) -> HandlerResult:
        """Judge an action.

        Args:
            view: Read-only match projection at the time of the action
            player_id: The acting player (already validated by the engine)
            action: Action name, e.g. "answer", "draw", "timeout"
            payload: Action arguments as sent by the client
        """
        ...

    async def on_round_start(self, view: MatchView) -> Optional[dict[str, Any]]:
        """Called when a round starts. Return new game_data or None to keep it."""
        ...


class BaseGameHandler:
    """Base class for handlers that do not care about round starts."""

    game_type: str = ""

    async def on_action(
        self,
        view: MatchView,
        player_id: str,
        action: str,
        payload: dict[str, Any],
    ) -> HandlerResult:
        raise NotImplementedError

    async def on_round_start(self, view: MatchView) -> Optional[dict[str, Any]]:
        return None
