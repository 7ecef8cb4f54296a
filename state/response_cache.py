"""Cache of serialized library listings keyed by sort order."""

from __future__ import annotations

from threading import Lock
from typing import Any, Callable


class ResponseCache:
    """Hold rendered responses until the owning game cache changes."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any) -> Any:
        with self._lock:
            self._entries[key] = value
        return value

    def get_or_build(self, key: str, builder: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        return self.set(key, builder())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["ResponseCache"]
