"""Stored user tokens and the request token predicate."""

from __future__ import annotations

import hmac
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from db.utils import read_json, write_json

logger = logging.getLogger(__name__)

TOKENS_FILENAME = "tokens.json"
TOKEN_HEADER = "X-Auth-Token"
TOKEN_QUERY_PARAM = "token"
BEARER_PREFIX = "Bearer "


class TokenStore:
    """Whole-file access to ``tokens.json``: ``{userId: {accessToken, ...}}``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    @property
    def path(self) -> Path:
        return self.root / TOKENS_FILENAME

    def load(self) -> dict[str, dict[str, Any]]:
        data = read_json(self.path, {})
        if not isinstance(data, Mapping):
            return {}
        return {
            str(user_id): dict(entry)
            for user_id, entry in data.items()
            if isinstance(entry, Mapping)
        }

    def save(self, tokens: Mapping[str, Mapping[str, Any]]) -> None:
        write_json(self.path, {str(key): dict(value) for key, value in tokens.items()})

    def set_user(self, user_id: Any, entry: Mapping[str, Any]) -> dict[str, Any]:
        tokens = self.load()
        record = dict(entry)
        record["userId"] = str(user_id)
        tokens[str(user_id)] = record
        self.save(tokens)
        return record

    def remove_user(self, user_id: Any) -> bool:
        tokens = self.load()
        if tokens.pop(str(user_id), None) is None:
            return False
        self.save(tokens)
        return True

    def find_by_access_token(self, token: str) -> dict[str, Any] | None:
        if not token:
            return None
        for entry in self.load().values():
            stored = entry.get("accessToken")
            if isinstance(stored, str) and hmac.compare_digest(stored.encode(), token.encode()):
                return entry
        return None


def extract_token(headers: Mapping[str, str], args: Mapping[str, str]) -> str | None:
    """Pick the token from the header, the query string or ``Authorization``."""

    token = headers.get(TOKEN_HEADER) or args.get(TOKEN_QUERY_PARAM)
    if not token:
        authorization = headers.get("Authorization") or ""
        if authorization.startswith(BEARER_PREFIX):
            authorization = authorization[len(BEARER_PREFIX):]
        token = authorization
    token = (token or "").strip()
    return token or None


def is_valid_token(token: str | None, *, api_token: str, store: TokenStore | None) -> bool:
    """Accept the configured API token or any stored access token."""

    if not token:
        return False
    if api_token and hmac.compare_digest(token.encode(), api_token.encode()):
        return True
    if store is not None and store.find_by_access_token(token) is not None:
        return True
    return False


__all__ = [
    "TOKENS_FILENAME",
    "TokenStore",
    "extract_token",
    "is_valid_token",
]
