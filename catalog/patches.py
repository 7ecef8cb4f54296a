"""Typed patch objects built from request bodies.

Each ``from_payload`` constructor ignores keys outside the entity's
allow-list, validates the types of the keys it keeps and raises
:class:`catalog.errors.PatchValidationError` on the first bad value.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from catalog.errors import PatchValidationError
from lookups.config import TAG_GAME_FIELDS

NO_VALID_FIELDS = "No valid fields to update"

_UNSET: Any = object()

_STORED_KEYS = {"show_title": "showTitle"}


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise PatchValidationError("Request body must be a JSON object")
    return payload


def _optional_text(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload:
        return _UNSET
    value = payload[key]
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PatchValidationError(f"{key} must be a string")
    return value


def _optional_number(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload:
        return _UNSET
    value = payload[key]
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise PatchValidationError(f"{key} must be a number or null")
    return value


def _optional_bool(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload:
        return _UNSET
    value = payload[key]
    if not isinstance(value, bool):
        raise PatchValidationError(f"{key} must be a boolean")
    return value


def _optional_reference_list(payload: Mapping[str, Any], key: str) -> Any:
    """Accept a list of ids/titles, a single value, or ``None`` to clear."""

    if key not in payload:
        return _UNSET
    value = payload[key]
    if value is None:
        return None
    if isinstance(value, (str, numbers.Real)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, list):
        raise PatchValidationError(f"{key} must be a list")
    cleaned: list[Any] = []
    for entry in value:
        if isinstance(entry, bool):
            raise PatchValidationError(f"{key} contains an invalid entry")
        if isinstance(entry, str):
            if entry.strip():
                cleaned.append(entry.strip())
        elif isinstance(entry, (numbers.Integral, Mapping)):
            cleaned.append(entry)
        elif entry is not None:
            raise PatchValidationError(f"{key} contains an invalid entry")
    return cleaned


def _optional_company_list(payload: Mapping[str, Any], key: str) -> Any:
    value = _optional_reference_list(payload, key)
    if value is _UNSET or value is None:
        return value
    companies: list[dict[str, Any]] = []
    for entry in value:
        if isinstance(entry, Mapping):
            if entry.get("id") is None or not str(entry.get("name") or "").strip():
                raise PatchValidationError(f"{key} entries need an id and a name")
            companies.append(dict(entry))
        else:
            raise PatchValidationError(f"{key} entries must be objects with id and name")
    return companies


def _optional_named_refs(payload: Mapping[str, Any], key: str) -> Any:
    """Series and franchise: ``{id, name}`` objects or bare strings."""

    value = _optional_reference_list(payload, key)
    if value is _UNSET or value is None:
        return value
    refs: list[Any] = []
    for entry in value:
        if isinstance(entry, Mapping):
            refs.append({"id": entry.get("id"), "name": entry.get("name")})
        elif isinstance(entry, str):
            refs.append(entry)
        else:
            raise PatchValidationError(f"{key} entries must be objects or strings")
    return refs or None


def _optional_executables(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload:
        return _UNSET
    value = payload[key]
    if value is None:
        return None
    if not isinstance(value, list):
        raise PatchValidationError("Executables must be an array of names (strings)")
    for entry in value:
        if not isinstance(entry, str) or not entry.strip():
            raise PatchValidationError("All executables must be non-empty strings")
    return [entry.strip() for entry in value]


@dataclass
class GamePatch:
    """Writable game fields; the ``_UNSET`` sentinel marks an absent key."""

    title: Any = _UNSET
    summary: Any = _UNSET
    year: Any = _UNSET
    month: Any = _UNSET
    day: Any = _UNSET
    stars: Any = _UNSET
    criticratings: Any = _UNSET
    userratings: Any = _UNSET
    show_title: Any = _UNSET
    developers: Any = _UNSET
    publishers: Any = _UNSET
    franchise: Any = _UNSET
    collection: Any = _UNSET
    executables: Any = _UNSET
    tags: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "GamePatch":
        data = _require_mapping(payload)
        title = _optional_text(data, "title")
        if title is not _UNSET and not title.strip():
            raise PatchValidationError("title must not be empty")
        patch = cls(
            title=title if title is _UNSET else title.strip(),
            summary=_optional_text(data, "summary"),
            year=_optional_number(data, "year"),
            month=_optional_number(data, "month"),
            day=_optional_number(data, "day"),
            stars=_optional_number(data, "stars"),
            criticratings=_optional_number(data, "criticratings"),
            userratings=_optional_number(data, "userratings"),
            show_title=_optional_bool(data, "showTitle"),
            developers=_optional_company_list(data, "developers"),
            publishers=_optional_company_list(data, "publishers"),
            franchise=_optional_named_refs(data, "franchise"),
            collection=_optional_named_refs(data, "collection"),
            executables=_optional_executables(data, "executables"),
        )
        for tag_field in TAG_GAME_FIELDS:
            value = _optional_reference_list(data, tag_field)
            if value is not _UNSET:
                patch.tags[tag_field] = value
        if patch.is_empty():
            raise PatchValidationError(NO_VALID_FIELDS)
        return patch

    def scalar_updates(self) -> dict[str, Any]:
        """Return the plain fields to merge, excluding tags and relations."""

        skipped = {"tags", "developers", "publishers", "executables"}
        return {
            _STORED_KEYS.get(item.name, item.name): getattr(self, item.name)
            for item in fields(self)
            if item.name not in skipped and getattr(self, item.name) is not _UNSET
        }

    def has(self, name: str) -> bool:
        return getattr(self, name) is not _UNSET

    def is_empty(self) -> bool:
        return not self.tags and all(
            getattr(self, item.name) is _UNSET for item in fields(self) if item.name != "tags"
        )


@dataclass
class TagPatch:
    show_title: bool

    @classmethod
    def from_payload(cls, payload: Any) -> "TagPatch":
        data = _require_mapping(payload)
        value = data.get("showTitle")
        if not isinstance(value, bool):
            raise PatchValidationError(NO_VALID_FIELDS)
        return cls(show_title=value)


@dataclass
class CollectionLikePatch:
    """Title, summary and ``showTitle`` edits for collection-like items."""

    title: str | None = None
    summary: str | None = None
    show_title: bool | None = None

    @classmethod
    def from_payload(
        cls, payload: Any, *, allow_show_title: bool = True
    ) -> "CollectionLikePatch":
        data = _require_mapping(payload)
        title = _optional_text(data, "title")
        summary = _optional_text(data, "summary")
        show_title = _optional_bool(data, "showTitle") if allow_show_title else _UNSET
        if title is not _UNSET and not title.strip():
            raise PatchValidationError("Title is required")
        patch = cls(
            title=None if title is _UNSET else title.strip(),
            summary=None if summary is _UNSET else summary,
            show_title=None if show_title is _UNSET else show_title,
        )
        if patch.title is None and patch.summary is None and patch.show_title is None:
            raise PatchValidationError(NO_VALID_FIELDS)
        return patch


__all__ = [
    "CollectionLikePatch",
    "GamePatch",
    "NO_VALID_FIELDS",
    "TagPatch",
]
