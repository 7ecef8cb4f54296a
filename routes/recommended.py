"""Recommended sections API route."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from routes.api_utils import context_value, handle_api_errors, require_token

recommended_blueprint = Blueprint("recommended", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "recommended")


@recommended_blueprint.route("/recommended")
@handle_api_errors
@require_token
def list_recommended():
    library = _ctx("library")
    library.games()
    sections = _ctx("recommended").pick_sections(_ctx("recommended_sections_shown"))
    tables = library.tag_tables()
    payload = []
    for section in sections:
        members = [library.cache.get(game_id) for game_id in section["games"]]
        payload.append(
            {
                # The section title doubles as its public id.
                "id": section["title"],
                "title": section["title"],
                "games": [
                    library.to_response(game, tag_tables=tables) for game in members if game
                ],
            }
        )
    return jsonify({"sections": payload})


__all__ = ["recommended_blueprint"]
