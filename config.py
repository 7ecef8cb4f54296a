"""Environment-driven settings for the game library server.

Values are read from the process environment after ``.env`` next to this
module has been loaded. The metadata root, API token and frontend URL are
re-read on each call so tests can point one process at several libraries.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env(name: str, default: str = "") -> str:
    value = os.environ.get(name)
    return value.strip() if value is not None else default


def _env_path(name: str, default: Path) -> Path:
    raw = _env(name)
    path = (Path(raw) if raw else default).expanduser()
    if not path.is_absolute():
        return path
    try:
        return path.resolve()
    except (OSError, RuntimeError):  # pragma: no cover - unresolvable symlink loops
        return path


def _env_int(name: str, default: int) -> int:
    """Positive integer from ``name``; anything else yields ``default``."""

    raw = _env(name)
    try:
        number = int(float(raw)) if raw else default
    except ValueError:
        return default
    return number if number > 0 else default


def _env_flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


DEFAULT_METADATA_PATH: Final[Path] = (
    Path.home() / "Library" / "Application Support" / "MyHomeGames"
)


def get_metadata_root() -> Path:
    return _env_path("METADATA_PATH", DEFAULT_METADATA_PATH)


def get_api_token() -> str:
    """Static token accepted alongside the stored user tokens."""

    return _env("API_TOKEN")


def get_frontend_url() -> str:
    """``FRONTEND_URL`` with any trailing slash and ``/app`` segment removed."""

    url = _env("FRONTEND_URL").rstrip("/")
    return url[: -len("/app")] if url.endswith("/app") else url


LOG_FILE: Final[str] = os.fspath(
    _env_path("LOG_FILE", _env_path("LOG_DIR", BASE_DIR / "logs") / "app.log")
)
LOG_LEVEL: Final[str] = _env("LOG_LEVEL").upper() or "INFO"

HTTP_HOST: Final[str] = _env("HTTP_HOST") or "127.0.0.1"
HTTP_PORT: Final[int] = _env_int("HTTP_PORT", 4000)

MAX_UPLOAD_MB: Final[int] = _env_int("MAX_UPLOAD_MB", 50)

RECOMMENDED_SECTION_SIZE: Final[int] = _env_int("RECOMMENDED_SECTION_SIZE", 10)
RECOMMENDED_SECTIONS_SHOWN: Final[int] = _env_int("RECOMMENDED_SECTIONS_SHOWN", 9)

RUN_LEGACY_MIGRATIONS: Final[bool] = _env_flag("RUN_LEGACY_MIGRATIONS", True)


__all__ = [
    "BASE_DIR",
    "DEFAULT_METADATA_PATH",
    "HTTP_HOST",
    "HTTP_PORT",
    "LOG_FILE",
    "LOG_LEVEL",
    "MAX_UPLOAD_MB",
    "RECOMMENDED_SECTIONS_SHOWN",
    "RECOMMENDED_SECTION_SIZE",
    "RUN_LEGACY_MIGRATIONS",
    "get_api_token",
    "get_frontend_url",
    "get_metadata_root",
]
