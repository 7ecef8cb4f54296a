"""Title-keyed tag registries persisted as one folder per tag."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping
from urllib.parse import quote

from db.utils import (
    METADATA_FILENAME,
    content_dir,
    ensure_directory_exists,
    entity_dir,
    is_numeric_name,
    iter_entity_folders,
    read_json,
    remove_directory_if_empty,
    write_json,
)
from helpers import _coerce_int, _normalize_lookup_name
from lookups.config import TagType
from lookups.hashing import title_id
from media.files import COVER_FILENAME

logger = logging.getLogger(__name__)

_URI_COMPONENT_SAFE = "!'()*"


class LookupServiceError(RuntimeError):
    """Base class for lookup service errors."""


class LookupValidationError(LookupServiceError):
    """Raised when a tag title is missing or blank."""


class LookupConflictError(LookupServiceError):
    """Raised when a tag already exists or is still referenced by games."""

    def __init__(self, message: str, tag: "Tag") -> None:
        super().__init__(message)
        self.tag = tag


class LookupNotFoundError(LookupServiceError):
    """Raised when a lookup entry cannot be located."""


@dataclass
class Tag:
    id: int
    title: str
    show_title: bool | None = None
    cover: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.cover:
            data["cover"] = self.cover
        if self.show_title is not None:
            data["showTitle"] = self.show_title
        return data


def _casefold(value: str) -> str:
    return value.strip().casefold()


class TagRegistry:
    """CRUD over one tag type stored under ``content/{folder}/{hash}``.

    Titles are unique case-insensitively and the folder name is
    :func:`lookups.hashing.title_id` of the title, so repeated creation with
    any casing lands on the same directory.
    """

    def __init__(self, root: str | os.PathLike[str], tag_type: TagType) -> None:
        self.root = Path(root)
        self.tag_type = tag_type

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"TagRegistry({self.tag_type.content_folder!r}, root={self.root!s})"

    @property
    def folder(self) -> str:
        return self.tag_type.content_folder

    @property
    def game_field(self) -> str:
        return self.tag_type.game_field

    def tag_dir(self, tag_id: int) -> Path:
        return entity_dir(self.root, self.folder, tag_id)

    def cover_file(self, tag_id: int) -> Path:
        return self.tag_dir(tag_id) / COVER_FILENAME

    def cover_url(self, title: str) -> str:
        return f"/{self.tag_type.cover_prefix}/{quote(title, safe=_URI_COMPONENT_SAFE)}"

    def ensure_folder(self) -> Path:
        return ensure_directory_exists(content_dir(self.root, self.folder))

    def _read_tag(self, folder_name: str) -> Tag | None:
        if not is_numeric_name(folder_name):
            return None
        metadata = read_json(
            content_dir(self.root, self.folder) / folder_name / METADATA_FILENAME, None
        )
        if not isinstance(metadata, Mapping):
            return None
        title = _normalize_lookup_name(metadata.get("title"))
        if not title:
            return None
        tag_id = int(folder_name)
        show_title = metadata.get("showTitle")
        cover = self.cover_url(title) if self.cover_file(tag_id).is_file() else None
        return Tag(
            id=tag_id,
            title=title,
            show_title=show_title if isinstance(show_title, bool) else None,
            cover=cover,
        )

    def load(self) -> list[Tag]:
        """Return every stored tag sorted by title.

        Folders with non-numeric names are legacy leftovers and are skipped.
        """

        tags = [
            tag
            for tag in (
                self._read_tag(name)
                for name in iter_entity_folders(self.root, self.folder, numeric_only=True)
            )
            if tag is not None
        ]
        tags.sort(key=lambda tag: (tag.title.casefold(), tag.id))
        return tags

    def find_by_id(self, tag_id: int) -> Tag | None:
        return self._read_tag(str(tag_id))

    def find(self, title: Any, *, tags: Iterable[Tag] | None = None) -> Tag | None:
        """Return the tag whose title matches ``title`` case-insensitively."""

        name = _normalize_lookup_name(title) if isinstance(title, str) else ""
        if not name:
            return None
        key = name.casefold()
        if tags is None:
            candidate = self.find_by_id(title_id(name))
            if candidate is not None and candidate.title.casefold() == key:
                return candidate
            tags = self.load()
        for tag in tags:
            if tag.title.casefold() == key:
                return tag
        return None

    def _write_new(self, title: str) -> Tag:
        tag_id = title_id(title)
        try:
            ensure_directory_exists(self.tag_dir(tag_id))
            write_json(self.tag_dir(tag_id) / METADATA_FILENAME, {"title": title, "showTitle": True})
        except OSError as exc:
            logger.error(
                "Failed to create %s %r in %s: %s",
                self.tag_type.human_name.lower(),
                title,
                self.tag_dir(tag_id),
                exc,
            )
            raise LookupServiceError(
                f"Failed to create {self.tag_type.human_name.lower()}"
            ) from exc
        logger.info("Created %s %r (id %s)", self.tag_type.human_name.lower(), title, tag_id)
        return Tag(id=tag_id, title=title, show_title=True)

    def ensure_exists(self, title: Any) -> str | None:
        """Return the stored title for ``title``, creating the tag when missing."""

        if not isinstance(title, str):
            return None
        name = title.strip()
        if not name:
            return None
        existing = self.find(name)
        if existing is not None:
            return existing.title
        return self._write_new(name).title

    def ensure_exists_batch(self, titles: Iterable[Any]) -> list[str]:
        """Ensure every title exists, scanning the registry only once."""

        tags = self.load()
        by_key = {tag.title.casefold(): tag for tag in tags}
        result: list[str] = []
        for raw in titles:
            if not isinstance(raw, str) or not raw.strip():
                continue
            name = raw.strip()
            key = name.casefold()
            tag = by_key.get(key)
            if tag is None:
                tag = self._write_new(name)
                by_key[key] = tag
            if tag.title not in result:
                result.append(tag.title)
        return result

    def create(self, title: Any) -> Tag:
        """Create a tag from an explicit request, refusing duplicates."""

        if not isinstance(title, str) or not title.strip():
            raise LookupValidationError("Title is required")
        name = title.strip()
        existing = self.find(name)
        if existing is not None:
            raise LookupConflictError(
                f"{self.tag_type.human_name} already exists", existing
            )
        return self._write_new(name)

    def update(self, title: str, *, show_title: bool) -> Tag:
        tag = self.find(title)
        if tag is None:
            raise LookupNotFoundError(f"{self.tag_type.human_name} not found")
        metadata_path = self.tag_dir(tag.id) / METADATA_FILENAME
        metadata = read_json(metadata_path, {})
        if not isinstance(metadata, dict):
            metadata = {}
        metadata["title"] = tag.title
        metadata["showTitle"] = show_title
        write_json(metadata_path, metadata)
        tag.show_title = show_title
        return tag

    def references(self, tag: Tag, value: Any) -> bool:
        """Return ``True`` when a game field ``value`` points at ``tag``.

        Integers match the tag id. Strings match the title case-insensitively,
        or the id when they are numeric.
        """

        if isinstance(value, (list, tuple)):
            return any(self.references(tag, element) for element in value)
        if isinstance(value, Mapping):
            return self.references(tag, value.get("id")) or self.references(
                tag, value.get("title") or value.get("name")
            )
        if isinstance(value, str):
            if _casefold(value) == tag.title.casefold():
                return True
            return _coerce_int(value) == tag.id
        numeric = _coerce_int(value)
        return numeric is not None and numeric == tag.id

    def is_in_use(self, tag: Tag, games: Iterable[Mapping[str, Any]]) -> bool:
        return any(self.references(tag, game.get(self.game_field)) for game in games)

    def _remove(self, tag: Tag) -> None:
        directory = self.tag_dir(tag.id)
        metadata_path = directory / METADATA_FILENAME
        if metadata_path.exists():
            metadata_path.unlink()
        remove_directory_if_empty(directory)
        logger.info("Deleted %s %r (id %s)", self.tag_type.human_name.lower(), tag.title, tag.id)

    def delete_if_unused(self, value: Any, games: Iterable[Mapping[str, Any]]) -> bool:
        """Delete the tag when no game in ``games`` still references it.

        ``value`` may be the tag title or its id. Unknown tags are a no-op.
        """

        tag = self.find_reference(value)
        if tag is None:
            return False
        if self.is_in_use(tag, games):
            return False
        self._remove(tag)
        return True

    def delete(self, title: str, games: Iterable[Mapping[str, Any]]) -> Tag:
        tag = self.find(title)
        if tag is None:
            raise LookupNotFoundError(f"{self.tag_type.human_name} not found")
        if self.is_in_use(tag, games):
            raise LookupConflictError(
                f"{self.tag_type.human_name} is still in use by one or more games", tag
            )
        self._remove(tag)
        return tag

    def find_reference(self, value: Any, *, tags: list[Tag] | None = None) -> Tag | None:
        """Resolve an id or a title to a stored tag."""

        if isinstance(value, Mapping):
            value = value.get("id", value.get("title"))
        if isinstance(value, str):
            tag = self.find(value, tags=tags)
            if tag is not None:
                return tag
        numeric = _coerce_int(value)
        if numeric is None:
            return None
        if tags is not None:
            return next((tag for tag in tags if tag.id == numeric), None)
        return self.find_by_id(numeric)

    def resolve_ids_to_objects(
        self, values: Any, *, tags: list[Tag] | None = None
    ) -> list[dict[str, Any]]:
        """Resolve ids or legacy titles to ``{"id", "title"}`` objects.

        Entries that do not resolve to a stored tag are dropped.
        """

        if values is None:
            return []
        if not isinstance(values, (list, tuple)):
            values = [values]
        if tags is None:
            tags = self.load()
        resolved: list[dict[str, Any]] = []
        seen: set[int] = set()
        for value in values:
            tag = self.find_reference(value, tags=tags)
            if tag is None or tag.id in seen:
                continue
            seen.add(tag.id)
            resolved.append({"id": tag.id, "title": tag.title})
        return resolved

    def resolve_titles(
        self, values: Any, *, tags: list[Tag] | None = None
    ) -> list[str] | None:
        titles = [
            entry["title"] for entry in self.resolve_ids_to_objects(values, tags=tags)
        ]
        return titles or None

    def normalize_field_to_ids(self, values: Any) -> list[int]:
        """Return ids for ``values``, creating tags for unknown titles.

        Integers that do not match a stored tag are dropped with a warning.
        """

        if values is None:
            return []
        if not isinstance(values, (list, tuple)):
            values = [values]
        tags = self.load()
        ids: list[int] = []
        for value in values:
            tag = self.find_reference(value, tags=tags)
            if tag is None and isinstance(value, str) and value.strip():
                tag = self._write_new(value.strip())
                tags.append(tag)
            if tag is None:
                if value is not None:
                    logger.warning(
                        "Ignoring unknown %s reference %r",
                        self.tag_type.human_name.lower(),
                        value,
                    )
                continue
            if tag.id not in ids:
                ids.append(tag.id)
        return ids


__all__ = [
    "LookupConflictError",
    "LookupNotFoundError",
    "LookupServiceError",
    "LookupValidationError",
    "Tag",
    "TagRegistry",
]
