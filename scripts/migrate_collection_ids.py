#!/usr/bin/env python3
"""Move collections stored under text folder names to numeric ids."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from catalog.migrations import migrate_collection_ids
from config import get_metadata_root


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--metadata-path", type=Path, default=None)
    parser.add_argument("--dry-run", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    root = args.metadata_path or get_metadata_root()
    report = migrate_collection_ids(root, dry_run=args.dry_run)

    if report.changed:
        print("Would move:" if args.dry_run else "Moved collections:")
        for old_name, new_id in report.changed:
            print(f"  - {old_name} -> {new_id}")
    else:
        print("No collections required new ids.")
    for name in report.skipped:
        print(f"Skipped {name}: see log for details.")
    print(f"Examined {report.examined} collection folder(s).")


if __name__ == "__main__":
    main()
