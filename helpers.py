"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

import numbers
from datetime import datetime, timezone
from typing import Any, Mapping


__all__ = [
    "_coerce_int",
    "_normalize_lookup_name",
    "create_release_date",
    "release_sort_key",
]


def _normalize_lookup_name(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _coerce_int(value: Any) -> int | None:
    """Return ``value`` as an ``int`` when it holds an integral number."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return int(as_float) if as_float.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    return None


_SECONDS_THRESHOLD = 1_000_000_000
_YEAR_THRESHOLD = 10_000


def _date_parts(moment: datetime) -> dict[str, int]:
    return {"day": moment.day, "month": moment.month, "year": moment.year}


def _from_timestamp(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def create_release_date(value: Any) -> dict[str, int | None] | None:
    """Return ``{"day", "month", "year"}`` parsed from a numeric release date.

    Values above ``1e9`` are UNIX seconds and values in ``(0, 10000)`` are a
    bare year. Anything in between is read as seconds when that lands in
    1970-2100, otherwise as milliseconds. Dates are resolved in UTC.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _date_parts(value)
    if not isinstance(value, numbers.Real):
        return None

    numeric = float(value)
    if numeric != numeric:
        return None

    if numeric > _SECONDS_THRESHOLD:
        moment = _from_timestamp(numeric)
    elif 0 < numeric < _YEAR_THRESHOLD:
        return {"day": None, "month": None, "year": int(numeric)}
    elif _YEAR_THRESHOLD <= numeric <= _SECONDS_THRESHOLD:
        moment = _from_timestamp(numeric)
        if moment is None or not 1970 <= moment.year <= 2100:
            moment = _from_timestamp(numeric / 1000)
    else:
        moment = _from_timestamp(numeric / 1000)

    if moment is None:
        return None
    return _date_parts(moment)


def release_sort_key(game: Mapping[str, Any] | None) -> tuple[int, int, int, int]:
    """Return a key ordering games by year, month then day.

    Games without a year sort after every dated game; a missing month or day
    sorts after the known ones within the same year.
    """

    if not game:
        return (1, 0, 0, 0)
    year = _coerce_int(game.get("year"))
    if year is None:
        return (1, 0, 0, 0)
    month = _coerce_int(game.get("month"))
    day = _coerce_int(game.get("day"))
    return (0, year, month if month is not None else 13, day if day is not None else 32)
