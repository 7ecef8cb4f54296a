"""Normalization of game payloads imported from the IGDB catalog."""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Mapping

from catalog.errors import PatchValidationError
from helpers import create_release_date

logger = logging.getLogger(__name__)

IGDB_IMAGE_BASE = "https://images.igdb.com/igdb/image/upload/"

# request key -> stored game field
TAG_PAYLOAD_FIELDS: dict[str, str] = {
    "genres": "genre",
    "themes": "themes",
    "platforms": "platforms",
    "gameEngines": "gameEngines",
    "gameModes": "gameModes",
    "playerPerspectives": "playerPerspectives",
}
STRING_ARRAY_FIELDS = ("screenshots", "videos", "keywords", "alternativeNames")
OBJECT_ARRAY_FIELDS = ("websites", "ageRatings", "similarGames")


__all__ = [
    "CatalogImport",
    "coerce_igdb_id",
    "cover_url_from_cover",
    "parse_import_payload",
    "validate_object_array",
    "validate_string_array",
]


def coerce_igdb_id(value: Any) -> int | None:
    """Normalize potential IGDB identifiers to a positive integer."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(".0") and text[:-2].isdigit():
            text = text[:-2]
        if not text.isdigit():
            return None
        numeric = int(text)
    elif isinstance(value, numbers.Integral):
        numeric = int(value)
    elif isinstance(value, numbers.Real) and float(value).is_integer():
        numeric = int(value)
    else:
        return None
    return numeric if numeric > 0 else None


def cover_url_from_cover(value: Any, size: str = "t_cover_big") -> str | None:
    """Return an image URL from a URL string or an IGDB ``{image_id}`` payload."""

    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, Mapping):
        raw_id = value.get("image_id")
        image_id = str(raw_id).strip() if raw_id is not None else ""
        if image_id:
            return f"{IGDB_IMAGE_BASE}{size}/{image_id}.jpg"
    return None


def validate_string_array(value: Any) -> list[str] | None:
    """Return the non-blank strings of ``value``, or ``None`` when there are none."""

    if not isinstance(value, list) or not value:
        return None
    filtered = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return filtered or None


def validate_object_array(value: Any) -> list[dict[str, Any]] | None:
    if not isinstance(value, list) or not value:
        return None
    filtered = [dict(item) for item in value if isinstance(item, Mapping) and item]
    return filtered or None


def _company_entries(value: Any) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for item in validate_object_array(value) or []:
        company_id = coerce_igdb_id(item.get("id"))
        name = item.get("name")
        if company_id is None or not isinstance(name, str) or not name.strip():
            logger.debug("Skipping company entry without id or name: %r", item)
            continue
        entries.append(
            {
                "id": company_id,
                "name": name.strip(),
                "logo": cover_url_from_cover(item.get("logo")),
                "description": item.get("description") or "",
            }
        )
    return entries


def _named_refs(value: Any) -> list[Any] | None:
    """Normalize series/franchise input to ``{id, name}`` objects or strings."""

    if value is None:
        return None
    if not isinstance(value, list):
        value = [value]
    refs: list[Any] = []
    for item in value:
        if isinstance(item, Mapping):
            name = item.get("name")
            if isinstance(name, str) and name.strip():
                refs.append({"id": coerce_igdb_id(item.get("id")), "name": name.strip()})
        elif isinstance(item, str) and item.strip():
            refs.append(item.strip())
    return refs or None


def _rating(value: Any) -> float | None:
    """Scale a 0-100 IGDB rating down to 0-10."""

    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, numbers.Real):
        return None
    return float(value) / 10


@dataclass
class CatalogImport:
    """A validated ``add-from-igdb`` request."""

    game_id: int
    game: dict[str, Any]
    tag_titles: dict[str, list[str] | None] = field(default_factory=dict)
    developers: list[dict[str, Any]] = field(default_factory=list)
    publishers: list[dict[str, Any]] = field(default_factory=list)


def parse_import_payload(payload: Any) -> CatalogImport:
    """Validate and normalize an import request body.

    Raises :class:`PatchValidationError` when ``igdbId`` or ``name`` is
    missing. Every multi-valued field becomes a list or ``None``.
    """

    if not isinstance(payload, Mapping):
        raise PatchValidationError("Missing required fields: igdbId and name")
    game_id = coerce_igdb_id(payload.get("igdbId"))
    name = payload.get("name")
    if game_id is None or not isinstance(name, str) or not name.strip():
        raise PatchValidationError("Missing required fields: igdbId and name")

    release = create_release_date(payload.get("releaseDate")) or {}
    summary = payload.get("summary")

    game: dict[str, Any] = {
        "id": game_id,
        "title": name.strip(),
        "summary": summary if isinstance(summary, str) else "",
        "year": release.get("year"),
        "month": release.get("month"),
        "day": release.get("day"),
        "criticratings": _rating(payload.get("criticRating")),
        "userratings": _rating(payload.get("userRating")),
        "franchise": _named_refs(payload.get("franchise")),
        "collection": _named_refs(payload.get("collection")),
        "igdbCover": cover_url_from_cover(payload.get("cover")),
        "igdbBackground": cover_url_from_cover(payload.get("background"), "t_1080p"),
    }
    for key in STRING_ARRAY_FIELDS:
        game[key] = validate_string_array(payload.get(key))
    for key in OBJECT_ARRAY_FIELDS:
        game[key] = validate_object_array(payload.get(key))

    tag_titles = {
        game_field: validate_string_array(payload.get(request_key))
        for request_key, game_field in TAG_PAYLOAD_FIELDS.items()
    }

    return CatalogImport(
        game_id=game_id,
        game=game,
        tag_titles=tag_titles,
        developers=_company_entries(payload.get("developers")),
        publishers=_company_entries(payload.get("publishers")),
    )
