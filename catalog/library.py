"""Library store: one directory per game under ``content/games/{id}``."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO, Any, Iterable, Mapping

import pandas as pd

from catalog.collection_like import CollectionLikeRegistry, normalize_id
from catalog.errors import EntityConflictError, EntityNotFoundError
from catalog.executables import (
    delete_all_executables,
    resolve_executables,
    sanitize_name,
    sync_executables,
    write_executable,
)
from catalog.integrity import ReferenceIntegrity
from catalog.patches import GamePatch
from db.utils import (
    METADATA_FILENAME,
    content_dir,
    ensure_directory_exists,
    entity_dir,
    iter_entity_folders,
    read_json,
    remove_directory_if_empty,
    write_json,
)
from helpers import _coerce_int
from igdb.payload import CatalogImport
from lookups.service import Tag, TagRegistry
from media.files import MEDIA_FILENAMES, delete_media_file, save_webp_image
from state.game_cache import GameCache

logger = logging.getLogger(__name__)

GAMES_FOLDER = "games"
MEDIA_ROUTES = {"cover": "/covers", "background": "/backgrounds"}
EXTERNAL_MEDIA_KEYS = {"cover": "igdbCover", "background": "igdbBackground"}

# Fields echoed verbatim in game responses, after the tag fields.
PASSTHROUGH_FIELDS = (
    "websites",
    "ageRatings",
    "developers",
    "publishers",
    "franchise",
    "collection",
    "screenshots",
    "videos",
    "keywords",
    "alternativeNames",
    "similarGames",
)

SORT_ORDERS: dict[str, tuple[list[str], list[bool]]] = {
    "title": (["title_key", "id"], [True, True]),
    "year": (["year", "month", "day", "title_key"], [True, True, True, True]),
    "stars": (["stars", "title_key"], [False, True]),
    "criticratings": (["criticratings", "title_key"], [False, True]),
    "added": (["added", "id"], [False, False]),
}
DEFAULT_SORT = "title"
DERIVED_FIELDS = frozenset({"id", "executables"})


def _or_none(value: Any) -> Any:
    """Collapse empty scalars to ``None``; lists are returned as-is."""

    if value is None or value is False or value == "":
        return None
    if isinstance(value, (int, float)) and value == 0:
        return None
    return value


class LibraryStore:
    """Load, persist and mutate games and keep the game cache in step.

    Reads never write to disk. Every mutation saves ``metadata.json`` first
    and then refreshes the affected cache entry, which also drops the cached
    listings.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        tags: Mapping[str, TagRegistry],
        developers: CollectionLikeRegistry,
        publishers: CollectionLikeRegistry,
        integrity: ReferenceIntegrity,
    ) -> None:
        self.root = Path(root)
        self.tags = dict(tags)
        self.developers = developers
        self.publishers = publishers
        self.integrity = integrity
        self.cache = GameCache(load_all=self.load_all, load_one=self.load_game)

    # -- paths -----------------------------------------------------------

    def game_dir(self, game_id: Any) -> Path:
        return entity_dir(self.root, GAMES_FOLDER, game_id)

    def metadata_path(self, game_id: Any) -> Path:
        return self.game_dir(game_id) / METADATA_FILENAME

    def media_file(self, game_id: Any, kind: str) -> Path:
        return self.game_dir(game_id) / MEDIA_FILENAMES[kind]

    def ensure_folder(self) -> Path:
        return ensure_directory_exists(content_dir(self.root, GAMES_FOLDER))

    # -- reads -----------------------------------------------------------

    def read_metadata(self, game_id: Any) -> dict[str, Any] | None:
        data = read_json(self.metadata_path(game_id), None)
        return data if isinstance(data, dict) else None

    def load_game(self, game_id: Any) -> dict[str, Any] | None:
        """Return the stored game with ``id`` and recomputed ``executables``."""

        numeric = _coerce_int(game_id)
        if numeric is None:
            return None
        metadata = self.read_metadata(numeric)
        if metadata is None:
            return None
        game = dict(metadata)
        game["id"] = numeric
        executables = resolve_executables(self.game_dir(numeric), metadata.get("executables"))
        if executables:
            game["executables"] = executables
        else:
            game.pop("executables", None)
        return game

    def load_all(self) -> dict[int, dict[str, Any]]:
        games: dict[int, dict[str, Any]] = {}
        for name in iter_entity_folders(self.root, GAMES_FOLDER, numeric_only=True):
            game = self.load_game(name)
            if game is not None:
                games[game["id"]] = game
        return games

    def games(self) -> list[dict[str, Any]]:
        """Return the cached games, loading the library on first use."""

        self.cache.ensure_loaded()
        return self.cache.values()

    def require(self, game_id: Any) -> dict[str, Any]:
        """Return the cached game, failing when it is gone from disk."""

        self.cache.ensure_loaded()
        numeric = _coerce_int(game_id)
        game = self.cache.get(numeric) if numeric is not None else None
        if game is None and numeric is not None:
            game = self.load_game(numeric)
            if game is not None:
                self.cache.put(game)
        if game is None:
            raise EntityNotFoundError("Game not found")
        if not self.metadata_path(numeric).exists():
            self.cache.remove(numeric)
            raise EntityNotFoundError("Game not found")
        return game

    # -- writes ----------------------------------------------------------

    def save(self, game: Mapping[str, Any]) -> None:
        """Write ``metadata.json``; the id lives in the folder name only."""

        payload = {key: value for key, value in game.items() if key != "id"}
        write_json(self.metadata_path(game["id"]), payload)

    def _writable_copy(self, game: Mapping[str, Any]) -> dict[str, Any]:
        """Return the stored metadata for ``game``, or the cached copy if unreadable."""

        current = self.read_metadata(game["id"])
        if current is not None:
            return current
        logger.warning("Unreadable metadata for game %s, rebuilding from cache", game["id"])
        return {
            key: value for key, value in game.items() if key not in DERIVED_FIELDS
        }

    def _refresh(self, game_id: int) -> dict[str, Any]:
        game = self.cache.invalidate(game_id)
        if game is None:
            raise EntityNotFoundError("Game not found")
        return game

    def _sync_companies(
        self,
        registry: CollectionLikeRegistry,
        game_id: int,
        previous: Any,
        entries: list[dict[str, Any]] | None,
    ) -> list[dict[str, Any]] | None:
        old_ids = {
            normalize_id(ref.get("id"))
            for ref in previous or []
            if isinstance(ref, Mapping) and normalize_id(ref.get("id")) is not None
        }
        references = registry.ensure_batch(entries or [], game_id)
        new_ids = {ref["id"] for ref in references}
        for stale in old_ids - new_ids:
            registry.remove_game(stale, game_id)
        return references or None

    def update(self, game_id: Any, patch: GamePatch) -> dict[str, Any]:
        """Apply ``patch`` to the stored game and return the refreshed game."""

        game = self.require(game_id)
        numeric = game["id"]
        current = self._writable_copy(game)

        for field, values in patch.tags.items():
            registry = self.tags[field]
            current[field] = None if values is None else registry.normalize_field_to_ids(values)

        if patch.has("developers"):
            current["developers"] = self._sync_companies(
                self.developers, numeric, current.get("developers"), patch.developers
            )
        if patch.has("publishers"):
            current["publishers"] = self._sync_companies(
                self.publishers, numeric, current.get("publishers"), patch.publishers
            )

        if patch.has("executables"):
            if patch.executables is None:
                removed = delete_all_executables(self.game_dir(numeric))
                logger.info("Deleted %s executable(s) for game %s", removed, numeric)
                current.pop("executables", None)
            else:
                final = sync_executables(self.game_dir(numeric), patch.executables)
                if final:
                    current["executables"] = final
                else:
                    current.pop("executables", None)

        current.update(patch.scalar_updates())
        current["id"] = numeric
        self.save(current)
        return self._refresh(numeric)

    def add_executable(
        self, game_id: Any, filename: str, data: bytes, label: str | None = None
    ) -> tuple[str, dict[str, Any]]:
        game = self.require(game_id)
        numeric = game["id"]
        name = write_executable(self.game_dir(numeric), filename, data, label)
        stem = sanitize_name(name)
        declared = [
            entry
            for entry in game.get("executables") or []
            if sanitize_name(entry) != stem
        ]
        declared.append(name)
        current = self._writable_copy(game)
        current["executables"] = declared
        current["id"] = numeric
        self.save(current)
        return name, self._refresh(numeric)

    def save_media(self, game_id: Any, kind: str, source: IO[bytes]) -> dict[str, Any]:
        game = self.require(game_id)
        save_webp_image(source, self.media_file(game["id"], kind))
        return self._refresh(game["id"])

    def delete_media(self, game_id: Any, kind: str) -> dict[str, Any]:
        game = self.require(game_id)
        delete_media_file(self.game_dir(game["id"]), MEDIA_FILENAMES[kind])
        return self._refresh(game["id"])

    def import_game(self, request: CatalogImport) -> dict[str, Any]:
        """Persist a catalog import, refusing ids that already exist."""

        game_id = request.game_id
        if (
            self.cache.get(game_id) is not None
            or self.metadata_path(game_id).exists()
            or self.game_dir(game_id).exists()
        ):
            raise EntityConflictError("Game already exists", payload={"gameId": game_id})

        game = dict(request.game)
        for field, titles in request.tag_titles.items():
            game[field] = self.tags[field].normalize_field_to_ids(titles) if titles else None
        game["developers"] = self.developers.ensure_batch(request.developers, game_id) or None
        game["publishers"] = self.publishers.ensure_batch(request.publishers, game_id) or None

        self.save(game)
        logger.info("Imported game %s (%s)", game_id, game.get("title"))
        return self._refresh(game_id)

    def delete(self, game_id: Any) -> dict[str, Any]:
        """Remove a game's metadata and cascade reference cleanup."""

        game = self.require(game_id)
        numeric = game["id"]
        captured = self.integrity.capture_tag_values(game)

        self.metadata_path(numeric).unlink()
        remove_directory_if_empty(self.game_dir(numeric))
        self.cache.remove(numeric)
        logger.info("Deleted game %s", numeric)

        return self.integrity.game_deleted(numeric, captured, self.cache.values())

    def strip_company(self, field: str, company_id: Any) -> int:
        """Remove ``company_id`` from ``field`` on every game; return games changed."""

        self.cache.ensure_loaded()
        target = normalize_id(company_id)
        changed = 0
        for game in self.cache.values():
            refs = game.get(field)
            if not isinstance(refs, list):
                continue
            remaining = [
                ref
                for ref in refs
                if not (isinstance(ref, Mapping) and str(normalize_id(ref.get("id"))) == str(target))
            ]
            if len(remaining) == len(refs):
                continue
            current = self.read_metadata(game["id"])
            if current is None:
                continue
            current[field] = remaining or None
            current["id"] = game["id"]
            self.save(current)
            self.cache.invalidate(game["id"])
            changed += 1
        if changed:
            logger.info("Removed %s %s from %s game(s)", field, target, changed)
        return changed

    # -- responses -------------------------------------------------------

    def media_url(self, game: Mapping[str, Any], kind: str) -> str | None:
        if self.media_file(game["id"], kind).is_file():
            return f"{MEDIA_ROUTES[kind]}/{game['id']}"
        external = game.get(EXTERNAL_MEDIA_KEYS[kind])
        if isinstance(external, str) and external.strip():
            return external.strip()
        return None

    def tag_tables(self) -> dict[str, list[Tag]]:
        return {field: registry.load() for field, registry in self.tags.items()}

    def to_response(
        self,
        game: Mapping[str, Any],
        *,
        tag_tables: Mapping[str, list[Tag]] | None = None,
    ) -> dict[str, Any]:
        """Render ``game`` for clients with tag ids resolved to titles."""

        tables = tag_tables if tag_tables is not None else self.tag_tables()
        data: dict[str, Any] = {
            "id": game["id"],
            "title": game.get("title"),
            "summary": game.get("summary") or "",
            "cover": self.media_url(game, "cover"),
            "day": _or_none(game.get("day")),
            "month": _or_none(game.get("month")),
            "year": _or_none(game.get("year")),
            "stars": _or_none(game.get("stars")),
            "criticratings": _or_none(game.get("criticratings")),
            "userratings": _or_none(game.get("userratings")),
            "executables": game.get("executables") or None,
            "showTitle": game.get("showTitle") is not False,
        }
        for field, registry in self.tags.items():
            value = game.get(field)
            data[field] = (
                registry.resolve_titles(value, tags=tables.get(field))
                if value is not None
                else None
            )
        for field in PASSTHROUGH_FIELDS:
            data[field] = _or_none(game.get(field))
        background = self.media_url(game, "background")
        if background:
            data["background"] = background
        return data

    def render_games(self, games: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        tables = self.tag_tables()
        return [self.to_response(game, tag_tables=tables) for game in games]

    def _listing_frame(self, games: list[dict[str, Any]]) -> pd.DataFrame:
        rows = []
        for game in games:
            path = self.metadata_path(game["id"])
            try:
                added = path.stat().st_mtime
            except OSError:
                added = None
            rows.append(
                {
                    "id": game["id"],
                    "title_key": str(game.get("title") or "").casefold(),
                    "year": _coerce_int(game.get("year")),
                    "month": _coerce_int(game.get("month")),
                    "day": _coerce_int(game.get("day")),
                    "stars": game.get("stars"),
                    "criticratings": game.get("criticratings"),
                    "added": added,
                }
            )
        df = pd.DataFrame(
            rows,
            columns=[
                "id", "title_key", "year", "month", "day", "stars", "criticratings", "added",
            ],
        )
        for column in ("year", "month", "day", "stars", "criticratings", "added"):
            df[column] = pd.to_numeric(df[column], errors="coerce")
        return df

    def sorted_games(self, sort: str = DEFAULT_SORT) -> list[dict[str, Any]]:
        self.cache.ensure_loaded()
        games = self.cache.values()
        if not games:
            return []
        columns, ascending = SORT_ORDERS.get(sort, SORT_ORDERS[DEFAULT_SORT])
        df = self._listing_frame(games).sort_values(
            columns, ascending=ascending, na_position="last", kind="mergesort"
        )
        by_id = {game["id"]: game for game in games}
        return [by_id[int(game_id)] for game_id in df["id"].tolist()]

    def list_games(self, sort: str | None = None) -> list[dict[str, Any]]:
        """Return rendered games in ``sort`` order, cached until the next write."""

        key = sort if sort in SORT_ORDERS else DEFAULT_SORT
        return self.cache.responses.get_or_build(
            f"library:{key}", lambda: self.render_games(self.sorted_games(key))
        )


__all__ = [
    "DEFAULT_SORT",
    "GAMES_FOLDER",
    "LibraryStore",
    "SORT_ORDERS",
]
