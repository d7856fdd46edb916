"""GameRegistry - maps game_type to the handler that implements it."""

import logging
from typing import Iterable, Optional

from partyengine.errors import EngineError
from partyengine.handlers.base import GameHandler

logger = logging.getLogger(__name__)


class UnknownGameError(EngineError):
    """No handler is registered for a game type."""

    def __init__(self, game_type: str, known: Iterable[str] = ()):
        self.game_type = game_type
        known = sorted(known)
        super().__init__(f"No handler registered for game type {game_type!r} (known: {known})")


class GameRegistry:
    """Lookup table the engine resolves handlers through.

    Usage:
        registry = GameRegistry()
        registry.register("quiz", QuizHandler())
        handler = registry.get("quiz")
    """

    def __init__(self, handlers: Optional[dict[str, GameHandler]] = None):
        self._handlers: dict[str, GameHandler] = dict(handlers or {})

    def register(self, game_type: str, handler: GameHandler, replace: bool = False) -> None:
        if game_type in self._handlers and not replace:
            raise ValueError(f"Game type {game_type!r} is already registered")
        self._handlers[game_type] = handler
        logger.debug("Registered handler %s for %s", type(handler).__name__, game_type)

    def unregister(self, game_type: str) -> bool:
        return self._handlers.pop(game_type, None) is not None

    def get(self, game_type: str) -> GameHandler:
        try:
            return self._handlers[game_type]
        except KeyError:
            raise UnknownGameError(game_type, self._handlers) from None

    def game_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, game_type: str) -> bool:
        return game_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
