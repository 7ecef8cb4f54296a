"""Launch scripts (``.sh``/``.bat``) stored beside a game's metadata."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

EXECUTABLE_EXTENSIONS = (".sh", ".bat")
DEFAULT_SCRIPT_STEM = "script"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_name(name: str) -> str:
    """Return ``name`` reduced to filesystem-safe characters."""

    return _UNSAFE_CHARS.sub("_", name.strip())


def _executable_files(game_dir: Path) -> list[Path]:
    try:
        entries = list(game_dir.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        logger.warning("Failed to read game directory %s: %s", game_dir, exc)
        return []
    return [
        entry
        for entry in entries
        if entry.suffix.lower() in EXECUTABLE_EXTENSIONS and entry.is_file()
    ]


def _scan_order(path: Path) -> tuple[int, str]:
    return (0 if path.name.startswith(f"{DEFAULT_SCRIPT_STEM}.") else 1, path.name)


def scan_executable_names(game_dir: str | os.PathLike[str]) -> list[str]:
    """Return script names (no extension), ``script.*`` first then alphabetical."""

    files = sorted(_executable_files(Path(game_dir)), key=_scan_order)
    names: list[str] = []
    for path in files:
        if path.stem not in names:
            names.append(path.stem)
    return names


def _matches(declared: str, stem: str) -> bool:
    return declared == stem or sanitize_name(declared) == stem


def resolve_executables(
    game_dir: str | os.PathLike[str], declared: Iterable[str] | None
) -> list[str]:
    """Return the executables list to expose for a game.

    The declared order wins when every declared name still has a backing
    file; scripts nobody declared follow in scan order. When a declared name
    lost its file the plain directory scan order is used.
    """

    scanned = scan_executable_names(game_dir)
    if not scanned:
        return []
    declared_names = [name for name in declared or [] if isinstance(name, str) and name]
    if not declared_names:
        return scanned
    unmatched = list(scanned)
    for name in declared_names:
        stem = next((candidate for candidate in unmatched if _matches(name, candidate)), None)
        if stem is None:
            return scanned
        unmatched.remove(stem)
    return declared_names + unmatched


def delete_all_executables(game_dir: str | os.PathLike[str]) -> int:
    removed = 0
    for path in _executable_files(Path(game_dir)):
        try:
            path.unlink()
            removed += 1
        except OSError as exc:
            logger.error("Failed to delete executable %s: %s", path, exc)
    return removed


def sync_executables(game_dir: str | os.PathLike[str], requested: list[str]) -> list[str]:
    """Delete scripts not named in ``requested`` and return the kept names.

    The result keeps the requested order and only names that still have a
    file on disk.
    """

    wanted = {sanitize_name(name) for name in requested} | set(requested)
    for path in _executable_files(Path(game_dir)):
        if path.stem in wanted:
            continue
        try:
            path.unlink()
            logger.info("Deleted executable %s", path)
        except OSError as exc:
            logger.warning("Failed to delete executable file %s: %s", path, exc)

    remaining = scan_executable_names(game_dir)
    final: list[str] = []
    for name in requested:
        if any(_matches(name, stem) for stem in remaining) and name not in final:
            final.append(name)
    return final


def write_executable(
    game_dir: str | os.PathLike[str],
    original_filename: str,
    data: bytes,
    label: str | None = None,
) -> str:
    """Store an uploaded script and return the name exposed to clients.

    Raises :class:`ValueError` for anything other than ``.sh`` or ``.bat``.
    """

    extension = Path(original_filename or "").suffix.lower()
    if extension not in EXECUTABLE_EXTENSIONS:
        raise ValueError("Only .sh and .bat files are allowed")

    display_name = (label or "").strip()
    stem = sanitize_name(display_name) if display_name else DEFAULT_SCRIPT_STEM
    if not stem.strip("_"):
        stem = DEFAULT_SCRIPT_STEM
        display_name = ""

    directory = Path(game_dir)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / f"{stem}{extension}"
    for sibling_ext in EXECUTABLE_EXTENSIONS:
        sibling = directory / f"{stem}{sibling_ext}"
        if sibling != target and sibling.exists():
            sibling.unlink()
    target.write_bytes(data)
    if extension == ".sh":
        target.chmod(0o755)
    logger.info("Stored executable %s", target)
    return display_name or stem


__all__ = [
    "DEFAULT_SCRIPT_STEM",
    "EXECUTABLE_EXTENSIONS",
    "delete_all_executables",
    "resolve_executables",
    "sanitize_name",
    "scan_executable_names",
    "sync_executables",
    "write_executable",
]
