"""Stub game handler for testing and simulations.

Accepts every action and scores it from a points table without any real
game logic. Useful for:
- Engine tests (full match flow without a concrete game)
- The party-sim command
- Trying out turn and round configurations

Payload keys understood by StubHandler:
- "points": score this action with exactly this many points
- "concludes": override whether the action ends the turn
- "reject": refuse the action, using the value as reason
- "eliminate" / "eliminate_permanently": player ids to sit out
- "reverse": flip the direction of a sequential turn order
"""

import random
from typing import Any, Optional

from partyengine.engine.scoring import ScoreCalculator, TableScoreCalculator
from partyengine.handlers.base import TIMEOUT_ACTION, BaseGameHandler, HandlerResult, MatchView

PROMPTS = [
    "lighthouse",
    "penguin",
    "volcano",
    "bicycle",
    "sandcastle",
    "telescope",
    "waterfall",
    "dragon",
]


class StubHandler(BaseGameHandler):
    """A stub handler that can play ANY turn configuration.

    Each accepted action bumps game_data["actions"]; each round start picks
    a random prompt into game_data["prompt"].
    """

    game_type = "stub"

    def __init__(
        self,
        calculator: Optional[ScoreCalculator] = None,
        concludes_turn: bool = True,
        seed: Optional[int] = None,
    ):
        """Initialize the stub handler.

        Args:
            calculator: Points per action name. Defaults to one point per "answer".
            concludes_turn: Whether an action ends the turn unless the payload says otherwise.
            seed: Seed for prompt selection.
        """
        self._calculator = calculator or TableScoreCalculator({"answer": 1})
        self._concludes_turn = concludes_turn
        self._random = random.Random(seed)
        # Call log for tests
        self.calls: list[tuple[str, str]] = []
        self.round_starts: list[int] = []

    async def on_action(
        self,
        view: MatchView,
        player_id: str,
        action: str,
        payload: dict[str, Any],
    ) -> HandlerResult:
        self.calls.append((player_id, action))

        if payload.get("reject"):
            return HandlerResult.reject(str(payload["reject"]))

        if action == TIMEOUT_ACTION:
            return HandlerResult(concludes_turn=True)

        deltas: dict[str, int] = {}
        if self._calculator.supports(action) or "points" in payload:
            points = self._calculator.calculate(action, payload)
            if points:
                deltas[player_id] = points

        game_data = dict(view.game_data)
        game_data["actions"] = game_data.get("actions", 0) + 1

        return HandlerResult(
            concludes_turn=bool(payload.get("concludes", self._concludes_turn)),
            score_deltas=deltas,
            game_data=game_data,
            eliminate_temporarily=set(payload.get("eliminate", [])),
            eliminate_permanently=set(payload.get("eliminate_permanently", [])),
            reverse_direction=bool(payload.get("reverse", False)),
        )

    async def on_round_start(self, view: MatchView) -> Optional[dict[str, Any]]:
        self.round_starts.append(view.current_round)
        game_data = dict(view.game_data)
        game_data["prompt"] = self._random.choice(PROMPTS)
        return game_data
