"""Exceptions raised by the catalog stores."""

from __future__ import annotations

from typing import Any


class CatalogError(RuntimeError):
    """Base class for catalog store errors."""

    def __init__(self, message: str, *, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class EntityNotFoundError(CatalogError):
    """Raised when an entity id does not resolve."""


class EntityConflictError(CatalogError):
    """Raised on duplicate creation; ``payload`` echoes the existing entity."""


class PatchValidationError(CatalogError):
    """Raised when a request body does not describe a valid patch."""


__all__ = [
    "CatalogError",
    "EntityConflictError",
    "EntityNotFoundError",
    "PatchValidationError",
]
