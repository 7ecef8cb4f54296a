"""Id-keyed registries that own a list of member game ids.

Collections, developers and publishers share one storage shape::

    content/{folder}/{id}/metadata.json   {title, summary, games, showTitle, ...}

Collections receive a millisecond timestamp id on creation. Developers and
publishers reuse the id of the upstream catalog company and are only ever
materialized through :meth:`CollectionLikeRegistry.ensure_batch`.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from catalog.errors import EntityConflictError, EntityNotFoundError
from catalog.ordering import GameLookup, order_by_release
from db.utils import (
    METADATA_FILENAME,
    coerce_entity_id,
    content_dir,
    ensure_directory_exists,
    entity_dir,
    iter_entity_folders,
    read_json,
    remove_directory_if_empty,
    write_json,
)
from helpers import _coerce_int, _normalize_lookup_name
from media.files import MEDIA_FILENAMES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionLikeType:
    """Describe one collection-like registry and its HTTP surface."""

    content_folder: str
    human_name: str
    singular_key: str
    game_field: str | None
    cover_prefix: str
    background_prefix: str
    creatable: bool = False

    @property
    def list_key(self) -> str:
        return self.content_folder

    @property
    def endpoint_prefix(self) -> str:
        return self.content_folder.replace("-", "_")


COLLECTIONS = CollectionLikeType(
    content_folder="collections",
    human_name="Collection",
    singular_key="collection",
    game_field=None,
    cover_prefix="collection-covers",
    background_prefix="collection-backgrounds",
    creatable=True,
)
DEVELOPERS = CollectionLikeType(
    content_folder="developers",
    human_name="Developer",
    singular_key="developer",
    game_field="developers",
    cover_prefix="developer-covers",
    background_prefix="developer-backgrounds",
)
PUBLISHERS = CollectionLikeType(
    content_folder="publishers",
    human_name="Publisher",
    singular_key="publisher",
    game_field="publishers",
    cover_prefix="publisher-covers",
    background_prefix="publisher-backgrounds",
)

COLLECTION_LIKE_TYPES: tuple[CollectionLikeType, ...] = (COLLECTIONS, DEVELOPERS, PUBLISHERS)


def normalize_id(value: Any) -> int | str | None:
    """Return ``value`` as an int when numeric, else its trimmed text."""

    numeric = _coerce_int(value)
    if numeric is not None:
        return numeric
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text in {".", ".."} or "/" in text or "\\" in text:
            return None
        return text
    return None


def _same_id(left: Any, right: Any) -> bool:
    if isinstance(left, int) and isinstance(right, int):
        return left == right
    return str(left) == str(right)


def _game_ids(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [normalize_id(entry) for entry in value if normalize_id(entry) is not None]


class CollectionLikeRegistry:
    """Load, save and maintain membership for one collection-like folder."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        entity_type: CollectionLikeType,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.entity_type = entity_type
        self._clock = clock

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"CollectionLikeRegistry({self.folder!r}, root={self.root!s})"

    @property
    def folder(self) -> str:
        return self.entity_type.content_folder

    @property
    def label(self) -> str:
        return self.entity_type.human_name.lower()

    def item_dir(self, item_id: Any) -> Path:
        return entity_dir(self.root, self.folder, item_id)

    def media_file(self, item_id: Any, kind: str) -> Path:
        return self.item_dir(item_id) / MEDIA_FILENAMES[kind]

    def ensure_folder(self) -> Path:
        return ensure_directory_exists(content_dir(self.root, self.folder))

    def _read_item(self, folder_name: str) -> dict[str, Any] | None:
        metadata = read_json(
            content_dir(self.root, self.folder) / folder_name / METADATA_FILENAME, None
        )
        if not isinstance(metadata, dict):
            return None
        item = dict(metadata)
        item["id"] = coerce_entity_id(folder_name)
        item["title"] = _normalize_lookup_name(item.get("title"))
        item["summary"] = item.get("summary") or ""
        item["games"] = _game_ids(item.get("games"))
        item["showTitle"] = item.get("showTitle") is not False
        item.setdefault("igdbCover", None)
        return item

    def load(self) -> list[dict[str, Any]]:
        """Return every stored item sorted by title."""

        items = [
            item
            for item in (
                self._read_item(name) for name in iter_entity_folders(self.root, self.folder)
            )
            if item is not None
        ]
        items.sort(key=lambda item: (item["title"].casefold(), str(item["id"])))
        return items

    def find_by_id(
        self, item_id: Any, items: list[dict[str, Any]] | None = None
    ) -> dict[str, Any] | None:
        target = normalize_id(item_id)
        if target is None:
            return None
        if items is None:
            return self._read_item(str(target))
        index = self.find_index_by_id(items, target)
        return items[index] if index >= 0 else None

    @staticmethod
    def find_index_by_id(items: list[dict[str, Any]], item_id: Any) -> int:
        target = normalize_id(item_id)
        for index, item in enumerate(items):
            if _same_id(item.get("id"), target):
                return index
        return -1

    def find_by_title(
        self, title: str, items: list[dict[str, Any]] | None = None
    ) -> dict[str, Any] | None:
        key = title.strip().casefold()
        for item in items if items is not None else self.load():
            if item["title"].casefold() == key:
                return item
        return None

    def require(self, item_id: Any) -> dict[str, Any]:
        item = self.find_by_id(item_id)
        if item is None:
            raise EntityNotFoundError(f"{self.entity_type.human_name} not found")
        return item

    def save(self, item: Mapping[str, Any]) -> None:
        """Persist ``item``; the id lives in the folder name only."""

        item_id = item["id"]
        payload = {key: value for key, value in item.items() if key != "id"}
        write_json(self.item_dir(item_id) / METADATA_FILENAME, payload)

    def delete(self, item_id: Any) -> bool:
        """Remove the metadata file, and the folder when nothing else is left."""

        target = normalize_id(item_id)
        if target is None:
            return False
        directory = self.item_dir(target)
        metadata_path = directory / METADATA_FILENAME
        if not metadata_path.exists():
            return False
        metadata_path.unlink()
        remove_directory_if_empty(directory)
        logger.info("Deleted %s %s", self.label, target)
        return True

    def _next_timestamp_id(self) -> int:
        candidate = int(self._clock() * 1000)
        while self.item_dir(candidate).exists():
            candidate += 1
        return candidate

    def create(self, title: str, summary: str = "") -> dict[str, Any]:
        """Create a user-authored item with a timestamp id."""

        name = title.strip()
        existing = self.find_by_title(name)
        if existing is not None:
            raise EntityConflictError(
                f"{self.entity_type.human_name} already exists",
                payload={
                    self.entity_type.singular_key: {
                        "id": existing["id"],
                        "title": existing["title"],
                    }
                },
            )
        item = {
            "id": self._next_timestamp_id(),
            "title": name,
            "summary": summary or "",
            "games": [],
            "showTitle": True,
        }
        self.save(item)
        logger.info("Created %s %r (id %s)", self.label, name, item["id"])
        return item

    def update(
        self,
        item_id: Any,
        *,
        title: str | None = None,
        summary: str | None = None,
        show_title: bool | None = None,
    ) -> dict[str, Any]:
        item = self.require(item_id)
        if title is not None:
            name = title.strip()
            clash = self.find_by_title(name)
            if clash is not None and not _same_id(clash["id"], item["id"]):
                raise EntityConflictError(
                    f"{self.entity_type.human_name} already exists",
                    payload={
                        self.entity_type.singular_key: {
                            "id": clash["id"],
                            "title": clash["title"],
                        }
                    },
                )
            item["title"] = name
        if summary is not None:
            item["summary"] = summary
        if show_title is not None:
            item["showTitle"] = show_title
        self.save(item)
        return item

    def ensure_batch(
        self, entries: Iterable[Mapping[str, Any]], game_id: Any = None
    ) -> list[dict[str, Any]]:
        """Create missing items from catalog references and link ``game_id``.

        ``entries`` hold ``{id, name, logo?, description?}``. Returns the
        ``{id, name}`` references to store on the game.
        """

        member = normalize_id(game_id)
        references: list[dict[str, Any]] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            item_id = normalize_id(entry.get("id"))
            name = _normalize_lookup_name(entry.get("name"))
            if item_id is None or not name:
                continue
            item = self.find_by_id(item_id)
            changed = False
            if item is None:
                logo = entry.get("logo")
                item = {
                    "id": item_id,
                    "title": name,
                    "games": [],
                    "summary": entry.get("description") or "",
                    "igdbCover": logo if isinstance(logo, str) and logo.strip() else None,
                }
                changed = True
                logger.info("Created %s %r (id %s)", self.label, name, item_id)
            if member is not None and not any(_same_id(g, member) for g in item["games"]):
                item["games"].append(member)
                changed = True
            if changed:
                self.save(item)
            if not any(_same_id(ref["id"], item_id) for ref in references):
                references.append({"id": item_id, "name": item["title"] or name})
        return references

    def add_game(self, item_id: Any, game_id: Any) -> dict[str, Any]:
        item = self.require(item_id)
        member = normalize_id(game_id)
        if member is not None and not any(_same_id(g, member) for g in item["games"]):
            item["games"].append(member)
            self.save(item)
        return item

    def remove_game(self, item_id: Any, game_id: Any) -> bool:
        item = self.find_by_id(item_id)
        if item is None:
            return False
        remaining = [g for g in item["games"] if not _same_id(g, normalize_id(game_id))]
        if len(remaining) == len(item["games"]):
            return False
        item["games"] = remaining
        self.save(item)
        return True

    def remove_game_from_all(self, game_id: Any) -> int:
        """Drop ``game_id`` from every membership list; return items changed."""

        member = normalize_id(game_id)
        changed = 0
        for item in self.load():
            remaining = [g for g in item["games"] if not _same_id(g, member)]
            if len(remaining) == len(item["games"]):
                continue
            item["games"] = remaining
            self.save(item)
            changed += 1
        if changed:
            logger.info("Removed game %s from %s %s item(s)", member, changed, self.folder)
        return changed

    def reorder_games(
        self, item_id: Any, game_ids: Iterable[Any], lookup: GameLookup
    ) -> dict[str, Any]:
        item = self.require(item_id)
        item["games"] = order_by_release(item["games"], game_ids, lookup)
        self.save(item)
        return item


__all__ = [
    "COLLECTIONS",
    "COLLECTION_LIKE_TYPES",
    "CollectionLikeRegistry",
    "CollectionLikeType",
    "DEVELOPERS",
    "PUBLISHERS",
    "normalize_id",
]
