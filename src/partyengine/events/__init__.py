"""Events package."""

from partyengine.events.match_events import (
    MatchEvent,
    GameStarted,
    RoundStarted,
    RoundEnded,
    TurnChanged,
    GameEnded,
    PhaseChanged,
    MatchPaused,
    MatchResumed,
    TurnOrderReversed,
    PlayerActed,
    PlayerScoreUpdated,
    PlayersUnlocked,
    PlayerEliminated,
    PlayerRemoved,
    TurnTimedOut,
)
from partyengine.events.sink import (
    EventSink,
    InMemoryEventSink,
    LoggingEventSink,
)

__all__ = [
    "MatchEvent",
    "GameStarted",
    "RoundStarted",
    "RoundEnded",
    "TurnChanged",
    "GameEnded",
    "PhaseChanged",
    "MatchPaused",
    "MatchResumed",
    "TurnOrderReversed",
    "PlayerActed",
    "PlayerScoreUpdated",
    "PlayersUnlocked",
    "PlayerEliminated",
    "PlayerRemoved",
    "TurnTimedOut",
    "EventSink",
    "InMemoryEventSink",
    "LoggingEventSink",
]
