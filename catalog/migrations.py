"""One-off rewrites of legacy on-disk formats.

These passes run outside the read path: loading a game or a collection never
changes a file. ``init.initialize_app`` runs them at startup when
``RUN_LEGACY_MIGRATIONS`` is enabled and the scripts under ``scripts/`` run
them by hand.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from db.utils import (
    METADATA_FILENAME,
    content_dir,
    ensure_directory_exists,
    is_numeric_name,
    iter_entity_folders,
    read_json,
    write_json,
)
from lookups.service import TagRegistry

logger = logging.getLogger(__name__)

GAMES_FOLDER = "games"
COLLECTIONS_FOLDER = "collections"


def is_legacy_tag_list(value: Any) -> bool:
    """Return ``True`` for a non-empty list whose entries are all strings."""

    return isinstance(value, list) and bool(value) and all(
        isinstance(entry, str) for entry in value
    )


@dataclass
class MigrationReport:
    examined: int = 0
    changed: list[Any] = field(default_factory=list)
    skipped: list[Any] = field(default_factory=list)

    @property
    def changed_count(self) -> int:
        return len(self.changed)


def migrate_legacy_tag_fields(
    root: str | os.PathLike[str],
    registries: Mapping[str, TagRegistry],
    *,
    dry_run: bool = False,
) -> MigrationReport:
    """Rewrite tag fields stored as title strings into tag ids.

    Only lists made entirely of strings are considered legacy; mixed lists
    and id lists are left alone. Missing tags are created while converting.
    """

    report = MigrationReport()
    for name in iter_entity_folders(root, GAMES_FOLDER, numeric_only=True):
        path = content_dir(root, GAMES_FOLDER) / name / METADATA_FILENAME
        metadata = read_json(path, None)
        if not isinstance(metadata, dict):
            continue
        report.examined += 1
        legacy_fields = [
            game_field
            for game_field in registries
            if is_legacy_tag_list(metadata.get(game_field))
        ]
        if not legacy_fields:
            continue
        if dry_run:
            report.changed.append(int(name))
            continue
        for game_field in legacy_fields:
            metadata[game_field] = registries[game_field].normalize_field_to_ids(
                metadata[game_field]
            )
        metadata.pop("id", None)
        write_json(path, metadata)
        report.changed.append(int(name))
        logger.info("Migrated tag fields %s of game %s to ids", legacy_fields, name)

    if report.changed:
        logger.info(
            "%s %s of %s game(s) with legacy tag fields",
            "Found" if dry_run else "Migrated",
            report.changed_count,
            report.examined,
        )
    return report


def migrate_collection_ids(
    root: str | os.PathLike[str],
    *,
    dry_run: bool = False,
    clock: Callable[[], float] = time.time,
) -> MigrationReport:
    """Move collections stored under text folder names to timestamp ids.

    Every file in the old folder is copied to the new one before the old
    folder is removed. A failed move cleans up the new folder and leaves the
    original in place.
    """

    report = MigrationReport()
    base = content_dir(root, COLLECTIONS_FOLDER)
    next_id = int(clock() * 1000)
    for name in iter_entity_folders(root, COLLECTIONS_FOLDER):
        report.examined += 1
        if is_numeric_name(name):
            continue
        old_dir = base / name
        metadata = read_json(old_dir / METADATA_FILENAME, None)
        if not isinstance(metadata, dict):
            logger.warning("Skipping collection %r without readable metadata", name)
            report.skipped.append(name)
            continue

        while (base / str(next_id)).exists():
            next_id += 1
        new_id = next_id
        next_id += 1
        if dry_run:
            report.changed.append((name, new_id))
            continue

        new_dir = base / str(new_id)
        try:
            ensure_directory_exists(new_dir)
            for entry in old_dir.iterdir():
                if entry.is_file() and entry.name != METADATA_FILENAME:
                    shutil.copy2(entry, new_dir / entry.name)
            metadata.pop("id", None)
            write_json(new_dir / METADATA_FILENAME, metadata)
            shutil.rmtree(old_dir)
        except OSError:
            logger.exception("Failed to migrate collection %r", name)
            shutil.rmtree(new_dir, ignore_errors=True)
            report.skipped.append(name)
            continue
        report.changed.append((name, new_id))
        logger.info(
            "Migrated collection %r (%s) to id %s", name, metadata.get("title"), new_id
        )
    return report


def run_legacy_migrations(
    root: str | os.PathLike[str], registries: Mapping[str, TagRegistry]
) -> dict[str, int]:
    tags = migrate_legacy_tag_fields(root, registries)
    collections = migrate_collection_ids(root)
    return {"games": tags.changed_count, "collections": collections.changed_count}


__all__ = [
    "MigrationReport",
    "is_legacy_tag_list",
    "migrate_collection_ids",
    "migrate_legacy_tag_fields",
    "run_legacy_migrations",
]
