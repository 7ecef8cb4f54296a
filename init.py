"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from auth.tokens import TokenStore
from catalog.collection_like import (
    COLLECTION_LIKE_TYPES,
    COLLECTIONS,
    DEVELOPERS,
    PUBLISHERS,
    CollectionLikeRegistry,
)
from catalog.integrity import ReferenceIntegrity
from catalog.library import LibraryStore
from catalog.migrations import run_legacy_migrations
from catalog.recommended import RecommendedStore
from catalog.series import OVERLAY_KINDS, SeriesOverlay
from config import (
    RECOMMENDED_SECTION_SIZE,
    RECOMMENDED_SECTIONS_SHOWN,
    RUN_LEGACY_MIGRATIONS,
    get_api_token,
    get_frontend_url,
    get_metadata_root,
)
from db import utils as db_utils
from lookups.config import TAG_TYPES
from lookups.service import TagRegistry
from settings.service import SettingsStore

logger = logging.getLogger(__name__)


@dataclass
class LibraryContext:
    """Every store the HTTP layer needs, built once per metadata root."""

    root: Path
    library: LibraryStore
    tags: dict[str, TagRegistry]
    collection_like: dict[str, CollectionLikeRegistry]
    recommended: RecommendedStore
    series: dict[str, SeriesOverlay]
    settings: SettingsStore
    tokens: TokenStore
    migrations: dict[str, int] = field(default_factory=dict)

    def route_context(
        self,
        *,
        api_token: str | None = None,
        frontend_url: str | None = None,
        recommended_sections_shown: int = RECOMMENDED_SECTIONS_SHOWN,
    ) -> dict[str, Any]:
        return {
            "library": self.library,
            "tags": self.tags,
            "collection_like": self.collection_like,
            "recommended": self.recommended,
            "series": self.series,
            "settings": self.settings,
            "tokens": self.tokens,
            "api_token": get_api_token() if api_token is None else api_token,
            "frontend_url": get_frontend_url() if frontend_url is None else frontend_url,
            "recommended_sections_shown": recommended_sections_shown,
        }


def ensure_content_folders(root: str | os.PathLike[str]) -> list[Path]:
    """Create ``content/{folder}`` for every entity folder the server reads."""

    folders = ["games", "recommended"]
    folders.extend(tag_type.content_folder for tag_type in TAG_TYPES)
    folders.extend(entity_type.content_folder for entity_type in COLLECTION_LIKE_TYPES)
    folders.extend(kind.content_folder for kind in OVERLAY_KINDS)
    return [
        db_utils.ensure_directory_exists(db_utils.content_dir(root, folder))
        for folder in folders
    ]


def initialize_app(
    root: str | os.PathLike[str] | None = None,
    *,
    run_migrations: bool = RUN_LEGACY_MIGRATIONS,
    section_size: int = RECOMMENDED_SECTION_SIZE,
) -> LibraryContext:
    """Perform the core startup tasks required for the application.

    The initializer creates the content folders, seeds ``settings.json``,
    optionally rewrites legacy tag lists and timestamp collection ids, loads
    every game into the cache and refreshes the recommended sections.
    """

    metadata_root = Path(root) if root is not None else get_metadata_root()
    ensure_content_folders(metadata_root)

    settings = SettingsStore(metadata_root)
    settings.ensure_file()

    tags = {
        tag_type.game_field: TagRegistry(metadata_root, tag_type) for tag_type in TAG_TYPES
    }
    collection_like = {
        entity_type.content_folder: CollectionLikeRegistry(metadata_root, entity_type)
        for entity_type in COLLECTION_LIKE_TYPES
    }
    recommended = RecommendedStore(metadata_root, section_size=section_size)
    series = {kind.content_folder: SeriesOverlay(metadata_root, kind) for kind in OVERLAY_KINDS}

    migrations: dict[str, int] = {}
    if run_migrations:
        try:
            migrations = run_legacy_migrations(metadata_root, tags)
        except Exception:
            logger.exception("Failed to run legacy migrations during startup")
            raise

    integrity = ReferenceIntegrity(
        tags=tags,
        collections=collection_like[COLLECTIONS.content_folder],
        developers=collection_like[DEVELOPERS.content_folder],
        publishers=collection_like[PUBLISHERS.content_folder],
        recommended=recommended,
    )
    library = LibraryStore(
        metadata_root,
        tags=tags,
        developers=collection_like[DEVELOPERS.content_folder],
        publishers=collection_like[PUBLISHERS.content_folder],
        integrity=integrity,
    )

    count = library.cache.load()
    try:
        recommended.ensure_sections_complete(library.games())
    except OSError:
        logger.exception("Failed to refresh recommended sections during startup")

    logger.info("Loaded %s games from %s", count, metadata_root)
    return LibraryContext(
        root=metadata_root,
        library=library,
        tags=tags,
        collection_like=collection_like,
        recommended=recommended,
        series=series,
        settings=settings,
        tokens=TokenStore(metadata_root),
        migrations=migrations,
    )


__all__ = ["LibraryContext", "ensure_content_folders", "initialize_app"]
