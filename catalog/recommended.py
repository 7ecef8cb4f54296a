"""Recommended sections derived from keyword co-occurrence across the library."""

from __future__ import annotations

import logging
import os
import random
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from db.utils import (
    METADATA_FILENAME,
    content_dir,
    ensure_directory_exists,
    entity_dir,
    iter_entity_folders,
    read_json,
    write_json,
)
from helpers import _coerce_int
from lookups.hashing import title_id

logger = logging.getLogger(__name__)

RECOMMENDED_FOLDER = "recommended"
DEFAULT_SECTION_TITLE = "Untitled Section"
KEYWORD_COLUMNS = ["game_id", "keyword", "rating", "position"]


def keyword_frame(games: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Return one row per (game, trimmed keyword) pair."""

    rows: list[dict[str, Any]] = []
    for position, game in enumerate(games):
        keywords = game.get("keywords")
        if not isinstance(keywords, list):
            continue
        for keyword in keywords:
            if not isinstance(keyword, str) or not keyword.strip():
                continue
            rows.append(
                {
                    "game_id": game.get("id"),
                    "keyword": keyword.strip(),
                    "rating": game.get("criticratings"),
                    "position": position,
                }
            )
    df = pd.DataFrame(rows, columns=KEYWORD_COLUMNS)
    df["rating"] = pd.to_numeric(df["rating"], errors="coerce")
    return df.drop_duplicates(subset=["game_id", "keyword"])


def shared_keywords(df: pd.DataFrame, *, minimum: int = 2) -> list[str]:
    """Return keywords carried by at least ``minimum`` distinct games."""

    if df.empty:
        return []
    counts = df.groupby("keyword", sort=False)["game_id"].nunique()
    return [str(keyword) for keyword, count in counts.items() if count >= minimum]


def top_games_for_keyword(df: pd.DataFrame, keyword: str, *, limit: int) -> list[Any]:
    """Return up to ``limit`` game ids tagged ``keyword``, best rated first."""

    if df.empty:
        return []
    mask = df["keyword"].str.casefold() == keyword.strip().casefold()
    matches = (
        df.loc[mask]
        .drop_duplicates(subset=["game_id"])
        .sort_values(
            ["rating", "position"],
            ascending=[False, True],
            na_position="last",
            kind="mergesort",
        )
    )
    return [
        _coerce_int(game_id) if _coerce_int(game_id) is not None else game_id
        for game_id in matches["game_id"].head(limit).tolist()
    ]


class RecommendedStore:
    """Persist recommended sections under ``content/recommended/{hash}``."""

    def __init__(self, root: str | os.PathLike[str], *, section_size: int = 10) -> None:
        self.root = Path(root)
        self.section_size = section_size

    @property
    def folder_path(self) -> Path:
        return content_dir(self.root, RECOMMENDED_FOLDER)

    @property
    def legacy_file(self) -> Path:
        return self.folder_path / METADATA_FILENAME

    def ensure_folder(self) -> Path:
        return ensure_directory_exists(self.folder_path)

    def load(self) -> list[dict[str, Any]]:
        sections: list[dict[str, Any]] = []
        for name in iter_entity_folders(self.root, RECOMMENDED_FOLDER, numeric_only=True):
            data = read_json(self.folder_path / name / METADATA_FILENAME, None)
            if not isinstance(data, dict):
                continue
            section = dict(data)
            section["id"] = int(name)
            section["title"] = section.get("title") or DEFAULT_SECTION_TITLE
            games = section.get("games")
            section["games"] = list(games) if isinstance(games, list) else []
            sections.append(section)
        return sections

    def save(self, section: Mapping[str, Any]) -> None:
        title = section.get("title")
        if not isinstance(title, str) or not title.strip():
            logger.warning("Skipping recommended section without title (id %s)", section.get("id"))
            return
        payload = {"title": title, "games": list(section.get("games") or [])}
        for key, value in section.items():
            if key not in {"id", "title", "games"}:
                payload[key] = value
        section_id = _coerce_int(section.get("id"))
        folder = section_id if section_id is not None else title_id(title)
        write_json(entity_dir(self.root, RECOMMENDED_FOLDER, folder) / METADATA_FILENAME, payload)

    def ensure_sections_complete(self, games: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Derive keyword sections and refresh every section's games.

        Keywords shared by at least two games become sections unless an
        existing section already uses that title (case-insensitively).
        """

        df = keyword_frame(list(games))
        existing = self.load()
        taken = {str(section["title"]).casefold() for section in existing}

        sections = list(existing)
        for keyword in shared_keywords(df):
            if keyword.casefold() in taken:
                continue
            taken.add(keyword.casefold())
            sections.append({"id": title_id(keyword), "title": keyword, "games": []})

        for section in sections:
            section["games"] = top_games_for_keyword(
                df, str(section["title"]), limit=self.section_size
            )
            self.save(section)

        logger.info("Ensured %s recommended sections are complete", len(sections))
        return sections

    def pick_sections(
        self, count: int, *, rng: random.Random | None = None
    ) -> list[dict[str, Any]]:
        """Return up to ``count`` sections chosen uniformly without replacement."""

        sections = self.load()
        return (rng or random).sample(sections, min(max(count, 0), len(sections)))

    def remove_game(self, game_id: Any) -> bool:
        """Remove ``game_id`` from every section, including the legacy file."""

        target = str(game_id)
        changed = False
        for section in self.load():
            remaining = [entry for entry in section["games"] if str(entry) != target]
            if len(remaining) != len(section["games"]):
                section["games"] = remaining
                self.save(section)
                changed = True
        if changed:
            return True
        return self._remove_from_legacy_file(target)

    def _remove_from_legacy_file(self, target: str) -> bool:
        data = read_json(self.legacy_file, None)
        if not isinstance(data, list):
            return False
        is_section_list = bool(data) and isinstance(data[0], Mapping) and "id" in data[0]
        if not is_section_list:
            remaining = [entry for entry in data if str(entry) != target]
            if len(remaining) == len(data):
                return False
            write_json(self.legacy_file, remaining)
            return True

        changed = False
        for section in data:
            if not isinstance(section, dict) or not isinstance(section.get("games"), list):
                continue
            remaining = [entry for entry in section["games"] if str(entry) != target]
            if len(remaining) != len(section["games"]):
                section["games"] = remaining
                changed = True
        if changed:
            write_json(self.legacy_file, data)
        return changed


__all__ = [
    "RECOMMENDED_FOLDER",
    "RecommendedStore",
    "keyword_frame",
    "shared_keywords",
    "top_games_for_keyword",
]
