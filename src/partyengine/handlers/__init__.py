"""Game handler contract and reference handlers."""

from partyengine.handlers.base import (
    MatchView,
    HandlerResult,
    GameHandler,
    BaseGameHandler,
    TIMEOUT_ACTION,
)
from partyengine.handlers.registry import GameRegistry, UnknownGameError
from partyengine.handlers.stub_handler import StubHandler

__all__ = [
    "MatchView",
    "HandlerResult",
    "GameHandler",
    "BaseGameHandler",
    "GameRegistry",
    "UnknownGameError",
    "StubHandler",
    "TIMEOUT_ACTION",
]
