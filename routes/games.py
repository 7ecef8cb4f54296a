"""Library game API routes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from flask import Blueprint, jsonify, request

from catalog.executables import EXECUTABLE_EXTENSIONS
from catalog.library import LibraryStore
from catalog.patches import GamePatch
from helpers import _coerce_int
from igdb.payload import parse_import_payload
from routes.api_utils import (
    BadRequestError,
    NotFoundError,
    context_value,
    empty_image_response,
    handle_api_errors,
    json_body,
    require_token,
    serve_image,
    uploaded_image,
)

logger = logging.getLogger(__name__)

games_blueprint = Blueprint("games", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "games")


def _library() -> LibraryStore:
    return _ctx("library")


def _game_id(raw: str) -> int:
    game_id = _coerce_int(raw)
    if game_id is None:
        raise NotFoundError("Game not found")
    return game_id


def _game_response(game: dict[str, Any], *, status: str = "success") -> Any:
    return jsonify({"status": status, "game": _library().to_response(game)})


@games_blueprint.route("/libraries/library/games")
@handle_api_errors
@require_token
def list_library_games():
    sort = request.args.get("sort")
    return jsonify({"games": _library().list_games(sort)})


@games_blueprint.route("/games/<game_id>")
@handle_api_errors
@require_token
def get_game(game_id: str):
    library = _library()
    return jsonify(library.to_response(library.require(_game_id(game_id))))


@games_blueprint.route("/games/<game_id>", methods=["PUT"])
@handle_api_errors
@require_token
def update_game(game_id: str):
    library = _library()
    numeric = _game_id(game_id)
    library.require(numeric)
    patch = GamePatch.from_payload(json_body())
    return _game_response(library.update(numeric, patch))


@games_blueprint.route("/games/<game_id>/reload", methods=["POST"])
@handle_api_errors
@require_token
def reload_game(game_id: str):
    library = _library()
    numeric = _game_id(game_id)
    library.require(numeric)
    game = library.cache.invalidate(numeric)
    if game is None:
        raise NotFoundError("Game not found")
    return _game_response(game, status="reloaded")


@games_blueprint.route("/games/<game_id>/upload-<any(cover, background):kind>", methods=["POST"])
@handle_api_errors
@require_token
def upload_game_media(game_id: str, kind: str):
    upload = uploaded_image()
    return _game_response(_library().save_media(_game_id(game_id), kind, upload.stream))


@games_blueprint.route(
    "/games/<game_id>/delete-<any(cover, background):kind>", methods=["DELETE"]
)
@handle_api_errors
@require_token
def delete_game_media(game_id: str, kind: str):
    return _game_response(_library().delete_media(_game_id(game_id), kind))


@games_blueprint.route("/games/<game_id>/upload-executable", methods=["POST"])
@handle_api_errors
@require_token
def upload_executable(game_id: str):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise BadRequestError("No file uploaded")
    if Path(upload.filename).suffix.lower() not in EXECUTABLE_EXTENSIONS:
        raise BadRequestError("Only .sh and .bat files are allowed")
    label = (request.form.get("label") or "").strip() or None
    try:
        name, game = _library().add_executable(
            _game_id(game_id), upload.filename, upload.read(), label
        )
    except ValueError as exc:
        raise BadRequestError(str(exc)) from exc
    logger.info("Uploaded executable %r for game %s", name, game["id"])
    return _game_response(game)


@games_blueprint.route("/games/add-from-igdb", methods=["POST"])
@handle_api_errors
@require_token
def add_from_igdb():
    request_data = parse_import_payload(request.get_json(silent=True))
    library = _library()
    game = library.import_game(request_data)
    return jsonify(
        {"status": "success", "game": library.to_response(game), "gameId": game["id"]}
    )


@games_blueprint.route("/games/<game_id>", methods=["DELETE"])
@handle_api_errors
@require_token
def delete_game(game_id: str):
    summary = _library().delete(_game_id(game_id))
    return jsonify({"status": "success", "cleanup": summary})


def _serve_game_media(game_id: str, kind: str):
    numeric = _coerce_int(game_id)
    if numeric is None:
        return empty_image_response()
    return serve_image(_library().media_file(numeric, kind))


@games_blueprint.route("/covers/<game_id>")
def serve_game_cover(game_id: str):
    return _serve_game_media(game_id, "cover")


@games_blueprint.route("/backgrounds/<game_id>")
def serve_game_background(game_id: str):
    return _serve_game_media(game_id, "background")


__all__ = ["games_blueprint"]
