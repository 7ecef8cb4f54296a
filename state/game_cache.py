"""In-memory index of library games shared by the request handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from helpers import _coerce_int
from state.response_cache import ResponseCache

logger = logging.getLogger(__name__)


@dataclass
class GameCache:
    """Track the loaded games and the response cache derived from them.

    ``load_all`` returns the full ``{id: game}`` map from disk and
    ``load_one`` a single game (or ``None``). Every mutation clears
    ``responses`` so listings never outlive the data they were built from.
    """

    load_all: Callable[[], dict[int, dict[str, Any]]]
    load_one: Callable[[int], dict[str, Any] | None]
    responses: ResponseCache = field(default_factory=ResponseCache)

    _games: dict[int, dict[str, Any]] = field(default_factory=dict)
    _loaded: bool = False

    def load(self) -> int:
        """Replace the cache with a fresh read of the library."""

        self._games = dict(self.load_all())
        self._loaded = True
        self.responses.clear()
        logger.info("Loaded %s games into the cache", len(self._games))
        return len(self._games)

    def ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    @staticmethod
    def _key(game_id: Any) -> int | None:
        return _coerce_int(game_id)

    def get(self, game_id: Any) -> dict[str, Any] | None:
        key = self._key(game_id)
        if key is None:
            return None
        return self._games.get(key)

    def __contains__(self, game_id: object) -> bool:
        return self.get(game_id) is not None

    def __len__(self) -> int:
        return len(self._games)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(list(self._games.values()))

    def values(self) -> list[dict[str, Any]]:
        return list(self._games.values())

    def put(self, game: dict[str, Any]) -> dict[str, Any]:
        key = self._key(game.get("id"))
        if key is None:
            raise ValueError(f"game id must be numeric: {game.get('id')!r}")
        self._games[key] = game
        self.responses.clear()
        return game

    def remove(self, game_id: Any) -> dict[str, Any] | None:
        key = self._key(game_id)
        removed = self._games.pop(key, None) if key is not None else None
        self.responses.clear()
        return removed

    def invalidate(self, game_id: Any = None) -> dict[str, Any] | None:
        """Re-read one game from disk, or the whole library when ``None``."""

        if game_id is None:
            self.load()
            return None
        key = self._key(game_id)
        if key is None:
            return None
        game = self.load_one(key)
        if game is None:
            self._games.pop(key, None)
        else:
            self._games[key] = game
        self.responses.clear()
        return game


__all__ = ["GameCache"]
