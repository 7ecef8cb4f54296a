"""Cross-reference cleanup run when a game leaves the library."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from catalog.collection_like import CollectionLikeRegistry
from catalog.recommended import RecommendedStore
from lookups.service import LookupServiceError, TagRegistry

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


class ReferenceIntegrity:
    """Remove a deleted game from every registry that pointed at it.

    Each step runs independently: a failure is logged and the remaining
    steps still run, so a partial cascade can simply be repeated.
    """

    def __init__(
        self,
        *,
        tags: Mapping[str, TagRegistry],
        collections: CollectionLikeRegistry,
        developers: CollectionLikeRegistry,
        publishers: CollectionLikeRegistry,
        recommended: RecommendedStore,
    ) -> None:
        self.tags = dict(tags)
        self.collections = collections
        self.developers = developers
        self.publishers = publishers
        self.recommended = recommended

    def capture_tag_values(self, game: Mapping[str, Any]) -> dict[str, list[Any]]:
        """Return the tag references of ``game``, keyed by game field."""

        return {
            field: _as_list(game.get(field))
            for field in self.tags
            if _as_list(game.get(field))
        }

    def _run(self, description: str, step: Callable[[], Any]) -> Any:
        try:
            return step()
        except (OSError, LookupServiceError):
            logger.exception("Cleanup step failed: %s", description)
            return None

    def game_deleted(
        self,
        game_id: Any,
        captured_tags: Mapping[str, list[Any]],
        remaining_games: Iterable[Mapping[str, Any]],
    ) -> dict[str, Any]:
        """Apply the cascade for ``game_id`` against the remaining games.

        ``captured_tags`` must be read before the game was removed and
        ``remaining_games`` must already exclude it.
        """

        remaining = list(remaining_games)
        deleted_tags: dict[str, list[Any]] = {}
        for field, values in captured_tags.items():
            registry = self.tags.get(field)
            if registry is None:
                continue
            for value in values:
                removed = self._run(
                    f"delete unused {registry.folder} entry {value!r}",
                    lambda registry=registry, value=value: registry.delete_if_unused(
                        value, remaining
                    ),
                )
                if removed:
                    deleted_tags.setdefault(field, []).append(value)

        summary = {
            "tags": deleted_tags,
            "collections": self._run(
                "remove from collections",
                lambda: self.collections.remove_game_from_all(game_id),
            ),
            "developers": self._run(
                "remove from developers",
                lambda: self.developers.remove_game_from_all(game_id),
            ),
            "publishers": self._run(
                "remove from publishers",
                lambda: self.publishers.remove_game_from_all(game_id),
            ),
            "recommended": self._run(
                "remove from recommended",
                lambda: self.recommended.remove_game(game_id),
            ),
        }
        logger.info("Cleaned up references for deleted game %s: %s", game_id, summary)
        return summary


__all__ = ["ReferenceIntegrity"]
