#!/usr/bin/env python3
"""Rewrite game tag fields stored as title strings into tag ids."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from catalog.migrations import migrate_legacy_tag_fields
from config import get_metadata_root
from lookups.config import TAG_TYPES
from lookups.service import TagRegistry


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--metadata-path",
        type=Path,
        default=None,
        help="metadata root (defaults to METADATA_PATH)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="report games that would change without writing",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    root = args.metadata_path or get_metadata_root()
    registries = {
        tag_type.game_field: TagRegistry(root, tag_type) for tag_type in TAG_TYPES
    }
    try:
        report = migrate_legacy_tag_fields(root, registries, dry_run=args.dry_run)
    except OSError as exc:
        print(f"Failed to migrate tag fields: {exc}")
        sys.exit(1)

    if not report.changed:
        print(f"No legacy tag fields found in {report.examined} game(s).")
        return
    verb = "Would migrate" if args.dry_run else "Migrated"
    print(f"{verb} {report.changed_count} of {report.examined} game(s):")
    for game_id in report.changed:
        print(f"  - {game_id}")
    if report.skipped:
        print(f"Skipped {len(report.skipped)} game(s).")


if __name__ == "__main__":
    main()
