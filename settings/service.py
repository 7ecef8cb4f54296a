"""User preferences stored in ``{METADATA_ROOT}/settings.json``."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

from db.utils import read_json, write_json

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
DEFAULT_SETTINGS: dict[str, Any] = {"language": "en"}


class SettingsStore:
    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    @property
    def path(self) -> Path:
        return self.root / SETTINGS_FILENAME

    def load(self) -> dict[str, Any]:
        """Return the stored settings over the defaults; never raises."""

        stored = read_json(self.path, None)
        settings = dict(DEFAULT_SETTINGS)
        if isinstance(stored, Mapping):
            settings.update(stored)
        elif stored is not None:
            logger.warning("Ignoring malformed settings file %s", self.path)
        return settings

    def save(self, settings: Mapping[str, Any]) -> None:
        write_json(self.path, dict(settings))

    def update(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        settings = self.load()
        settings.update(patch)
        self.save(settings)
        return settings

    def ensure_file(self) -> bool:
        """Write the defaults when no settings file exists yet."""

        if self.path.exists():
            return False
        self.save(self.load())
        logger.info("Created default settings at %s", self.path)
        return True


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_FILENAME", "SettingsStore"]
