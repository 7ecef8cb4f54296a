"""Series and franchise listings derived from games, with a stored overlay.

The base list comes from the ``collection`` (series) and ``franchise``
fields of the games. ``content/{folder}/{id}`` only holds a ``showTitle``
flag and an optional cover for entries the user customized.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Iterable, Mapping

from catalog.errors import EntityNotFoundError
from db.utils import (
    METADATA_FILENAME,
    content_dir,
    ensure_directory_exists,
    entity_dir,
    read_json,
    write_json,
)
from helpers import _coerce_int
from media.files import COVER_FILENAME, save_webp_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlayKind:
    content_folder: str
    game_field: str
    response_key: str

    @property
    def route_base(self) -> str:
        return f"/{self.content_folder}"

    @property
    def list_key(self) -> str:
        return self.content_folder


SERIES = OverlayKind(content_folder="series", game_field="collection", response_key="series")
FRANCHISES = OverlayKind(
    content_folder="franchises", game_field="franchise", response_key="franchise"
)
OVERLAY_KINDS: tuple[OverlayKind, ...] = (SERIES, FRANCHISES)


def aggregate_from_games(
    games: Iterable[Mapping[str, Any]], game_field: str
) -> list[dict[str, Any]]:
    """Collect the distinct ``{id, name}`` references of ``game_field``.

    Bare strings carry no id and are left out.
    """

    by_id: dict[int, dict[str, Any]] = {}
    for game in games:
        raw = game.get(game_field)
        entries = raw if isinstance(raw, list) else [raw]
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            item_id = _coerce_int(entry.get("id"))
            if item_id is None or item_id in by_id:
                continue
            name = entry.get("name")
            title = str(name) if name is not None else str(item_id)
            by_id[item_id] = {"id": item_id, "title": title}
    return sorted(by_id.values(), key=lambda item: item["title"].casefold())


class SeriesOverlay:
    def __init__(self, root: str | os.PathLike[str], kind: OverlayKind) -> None:
        self.root = Path(root)
        self.kind = kind

    def item_dir(self, item_id: int) -> Path:
        return entity_dir(self.root, self.kind.content_folder, item_id)

    def cover_file(self, item_id: int) -> Path:
        return self.item_dir(item_id) / COVER_FILENAME

    def cover_url(self, item_id: int) -> str:
        return f"{self.kind.route_base}/{item_id}/cover.webp"

    def ensure_folder(self) -> Path:
        return ensure_directory_exists(content_dir(self.root, self.kind.content_folder))

    def _stored(self, item_id: int) -> dict[str, Any] | None:
        data = read_json(self.item_dir(item_id) / METADATA_FILENAME, None)
        return data if isinstance(data, dict) else None

    def _merge(self, item: Mapping[str, Any]) -> dict[str, Any]:
        result = dict(item)
        stored = self._stored(item["id"])
        if stored is not None and isinstance(stored.get("showTitle"), bool):
            result["showTitle"] = stored["showTitle"]
        if self.cover_file(item["id"]).is_file():
            result["cover"] = self.cover_url(item["id"])
        return result

    def list(self, games: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return [
            self._merge(item)
            for item in aggregate_from_games(games, self.kind.game_field)
        ]

    def require(self, item_id: Any, games: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
        numeric = _coerce_int(item_id)
        for item in aggregate_from_games(games, self.kind.game_field):
            if item["id"] == numeric:
                return item
        raise EntityNotFoundError("Not found")

    def _write_stored(self, item: Mapping[str, Any], show_title: bool | None = None) -> dict[str, Any]:
        stored = self._stored(item["id"]) or {"title": item["title"], "showTitle": True}
        if show_title is not None:
            stored["showTitle"] = show_title
        write_json(self.item_dir(item["id"]) / METADATA_FILENAME, stored)
        return stored

    def update(
        self, item_id: Any, games: Iterable[Mapping[str, Any]], *, show_title: bool | None
    ) -> dict[str, Any]:
        item = self.require(item_id, games)
        stored = self._write_stored(item, show_title)
        result = {"id": item["id"], "title": item["title"], "showTitle": stored.get("showTitle")}
        if self.cover_file(item["id"]).is_file():
            result["cover"] = self.cover_url(item["id"])
        return result

    def save_cover(
        self, item_id: Any, games: Iterable[Mapping[str, Any]], source: IO[bytes]
    ) -> dict[str, Any]:
        item = self.require(item_id, games)
        self._write_stored(item)
        save_webp_image(source, self.cover_file(item["id"]))
        logger.info("Saved %s cover for %s", self.kind.response_key, item["id"])
        return {"id": item["id"], "title": item["title"], "cover": self.cover_url(item["id"])}

    def delete_cover(self, item_id: Any, games: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
        item = self.require(item_id, games)
        cover = self.cover_file(item["id"])
        if cover.exists():
            cover.unlink()
        return {"id": item["id"], "title": item["title"]}


__all__ = [
    "FRANCHISES",
    "OVERLAY_KINDS",
    "OverlayKind",
    "SERIES",
    "SeriesOverlay",
    "aggregate_from_games",
]
