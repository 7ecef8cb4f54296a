"""Settings and maintenance routes."""
from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, jsonify

from catalog.collection_like import COLLECTIONS
from lookups.config import CATEGORIES
from routes.api_utils import (
    APIError,
    context_value,
    handle_api_errors,
    json_body,
    require_token,
)

logger = logging.getLogger(__name__)

web_blueprint = Blueprint("web", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "web")


@web_blueprint.route("/settings")
@handle_api_errors
@require_token
def get_settings():
    return jsonify(_ctx("settings").load())


@web_blueprint.route("/settings", methods=["PUT"])
@handle_api_errors
@require_token
def update_settings():
    patch = json_body()
    try:
        settings = _ctx("settings").update(patch)
    except OSError as exc:
        logger.error("Failed to write settings: %s", exc)
        raise APIError("Failed to save settings") from exc
    return jsonify({"status": "success", "settings": settings})


@web_blueprint.route("/reload-games", methods=["POST"])
@handle_api_errors
@require_token
def reload_games():
    count = _ctx("library").cache.load()
    collections = _ctx("collection_like")[COLLECTIONS.content_folder].load()
    recommended = _ctx("recommended").load()
    categories = _ctx("tags")[CATEGORIES.game_field].load()
    return jsonify(
        {
            "status": "reloaded",
            "count": count,
            "collections": len(collections),
            "recommended": len(recommended),
            "categories": len(categories),
        }
    )


__all__ = ["web_blueprint"]
