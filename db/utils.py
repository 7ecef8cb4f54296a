"""Shared helpers for the directory-per-entity JSON metadata store.

Every entity lives at ``{root}/content/{folder}/{id}/metadata.json`` with
optional sibling media files. Reads are forgiving (missing or corrupt files
fall back to a default) while writes propagate their errors to the caller.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

CONTENT_DIRNAME = "content"
METADATA_FILENAME = "metadata.json"

PathLike = str | os.PathLike[str]


def ensure_directory_exists(path: PathLike) -> Path:
    """Create ``path`` and any missing parents, one level at a time."""

    target = Path(path)
    if target.is_dir():
        return target

    missing: list[Path] = []
    current = target
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent

    for directory in reversed(missing):
        try:
            directory.mkdir()
        except FileExistsError:
            if not directory.is_dir():
                raise
    return target


def read_json(path: PathLike, default: Any = None) -> Any:
    """Return the decoded JSON stored at ``path`` or ``default`` on any failure."""

    file_path = Path(path)
    try:
        with file_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read JSON from %s: %s", file_path, exc)
        return default


def write_json(path: PathLike, value: Any) -> None:
    """Write ``value`` to ``path`` as pretty-printed JSON."""

    file_path = Path(path)
    ensure_directory_exists(file_path.parent)
    payload = json.dumps(value, ensure_ascii=False, indent=2)
    with file_path.open("w", encoding="utf-8") as handle:
        handle.write(payload)


def remove_directory_if_empty(path: PathLike) -> bool:
    """Remove ``path`` when it exists and holds no entries."""

    directory = Path(path)
    try:
        if not directory.is_dir():
            return False
        if any(directory.iterdir()):
            return False
        directory.rmdir()
    except OSError as exc:
        logger.debug("Could not remove directory %s: %s", directory, exc)
        return False
    return True


def is_numeric_name(name: str) -> bool:
    return bool(name) and name.isascii() and name.isdigit()


def content_dir(root: PathLike, folder: str) -> Path:
    return Path(root) / CONTENT_DIRNAME / folder


def entity_dir(root: PathLike, folder: str, entity_id: Any) -> Path:
    return content_dir(root, folder) / str(entity_id)


def metadata_file(root: PathLike, folder: str, entity_id: Any) -> Path:
    return entity_dir(root, folder, entity_id) / METADATA_FILENAME


def iter_entity_folders(
    root: PathLike, folder: str, *, numeric_only: bool = False
) -> Iterator[str]:
    """Yield the names of the entity directories under ``content/{folder}``."""

    base = content_dir(root, folder)
    try:
        with os.scandir(base) as iterator:
            names = sorted(entry.name for entry in iterator if entry.is_dir())
    except (FileNotFoundError, NotADirectoryError):
        return
    for name in names:
        if numeric_only and not is_numeric_name(name):
            continue
        yield name


def coerce_entity_id(name: str) -> int | str:
    """Return ``name`` as an ``int`` when it is a numeric folder name."""

    return int(name) if is_numeric_name(name) else name


__all__ = [
    "CONTENT_DIRNAME",
    "METADATA_FILENAME",
    "coerce_entity_id",
    "content_dir",
    "ensure_directory_exists",
    "entity_dir",
    "is_numeric_name",
    "iter_entity_folders",
    "metadata_file",
    "read_json",
    "remove_directory_if_empty",
    "write_json",
]
