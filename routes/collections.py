"""Collection, developer and publisher API routes."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote

from flask import Blueprint, jsonify

from catalog.collection_like import (
    COLLECTION_LIKE_TYPES,
    COLLECTIONS,
    CollectionLikeRegistry,
    CollectionLikeType,
    normalize_id,
)
from catalog.patches import CollectionLikePatch
from media.files import MEDIA_FILENAMES, delete_media_file, save_webp_image
from routes.api_utils import (
    BadRequestError,
    context_value,
    empty_image_response,
    handle_api_errors,
    json_body,
    require_token,
    serve_image,
    uploaded_image,
)

logger = logging.getLogger(__name__)

collections_blueprint = Blueprint("collections", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "collection")


def _registry(entity_type: CollectionLikeType) -> CollectionLikeRegistry:
    return _ctx("collection_like")[entity_type.content_folder]


def _media_prefix(entity_type: CollectionLikeType, kind: str) -> str:
    return entity_type.cover_prefix if kind == "cover" else entity_type.background_prefix


def _media_url(
    registry: CollectionLikeRegistry, item: Mapping[str, Any], kind: str
) -> str | None:
    if not registry.media_file(item["id"], kind).is_file():
        return None
    return f"/{_media_prefix(registry.entity_type, kind)}/{quote(str(item['id']), safe='')}"


def _game_count(item: Mapping[str, Any]) -> int:
    cache = _ctx("library").cache
    return sum(1 for game_id in item.get("games") or [] if game_id in cache)


def _item_data(
    registry: CollectionLikeRegistry, item: Mapping[str, Any], *, detail: bool = False
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": item["id"],
        "title": item["title"],
        "gameCount": _game_count(item),
        "showTitle": item.get("showTitle") is not False,
        "cover": _media_url(registry, item, "cover") or item.get("igdbCover") or None,
    }
    background = _media_url(registry, item, "background")
    if background:
        data["background"] = background
    if detail:
        data["summary"] = item.get("summary") or ""
    elif item.get("summary"):
        data["summary"] = item["summary"]
    return data


def _register_collection_like_routes(entity_type: CollectionLikeType) -> None:
    base = f"/{entity_type.content_folder}"
    prefix = entity_type.endpoint_prefix
    key = entity_type.singular_key

    @handle_api_errors
    @require_token
    def list_items():
        _ctx("library").games()
        registry = _registry(entity_type)
        return jsonify(
            {entity_type.list_key: [_item_data(registry, item) for item in registry.load()]}
        )

    @handle_api_errors
    @require_token
    def get_item(item_id: str):
        _ctx("library").games()
        registry = _registry(entity_type)
        return jsonify(_item_data(registry, registry.require(item_id), detail=True))

    @handle_api_errors
    @require_token
    def item_games(item_id: str):
        library = _ctx("library")
        library.games()
        item = _registry(entity_type).require(item_id)
        members = [library.cache.get(game_id) for game_id in item["games"]]
        return jsonify({"games": library.render_games(game for game in members if game)})

    @handle_api_errors
    @require_token
    def update_item(item_id: str):
        registry = _registry(entity_type)
        registry.require(item_id)
        patch = CollectionLikePatch.from_payload(
            json_body(), allow_show_title=not entity_type.creatable
        )
        item = registry.update(
            item_id, title=patch.title, summary=patch.summary, show_title=patch.show_title
        )
        return jsonify(
            {
                "status": "success",
                key: {
                    "id": item["id"],
                    "title": item["title"],
                    "summary": item.get("summary") or "",
                    "showTitle": item.get("showTitle") is not False,
                },
            }
        )

    @handle_api_errors
    @require_token
    def delete_item(item_id: str):
        registry = _registry(entity_type)
        item = registry.require(item_id)
        if entity_type.game_field:
            _ctx("library").strip_company(entity_type.game_field, item["id"])
        registry.delete(item["id"])
        return jsonify({"status": "success"})

    def _media_routes(kind: str) -> None:
        @handle_api_errors
        @require_token
        def upload_media(item_id: str):
            registry = _registry(entity_type)
            item = registry.require(item_id)
            upload = uploaded_image()
            save_webp_image(upload.stream, registry.media_file(item["id"], kind))
            logger.info("Saved %s for %s %s", kind, registry.label, item["id"])
            return jsonify({"status": "success", key: _item_data(registry, item)})

        @handle_api_errors
        @require_token
        def delete_media(item_id: str):
            registry = _registry(entity_type)
            item = registry.require(item_id)
            delete_media_file(registry.item_dir(item["id"]), MEDIA_FILENAMES[kind])
            return jsonify({"status": "success", key: _item_data(registry, item)})

        def serve_media(item_id: str):
            target = normalize_id(item_id)
            if target is None:
                return empty_image_response()
            return serve_image(_registry(entity_type).media_file(target, kind))

        collections_blueprint.add_url_rule(
            f"{base}/<item_id>/upload-{kind}",
            f"{prefix}_upload_{kind}",
            upload_media,
            methods=["POST"],
        )
        collections_blueprint.add_url_rule(
            f"{base}/<item_id>/delete-{kind}",
            f"{prefix}_delete_{kind}",
            delete_media,
            methods=["DELETE"],
        )
        collections_blueprint.add_url_rule(
            f"/{_media_prefix(entity_type, kind)}/<item_id>",
            f"{prefix}_{kind}",
            serve_media,
            methods=["GET"],
        )

    collections_blueprint.add_url_rule(base, f"{prefix}_list", list_items, methods=["GET"])
    collections_blueprint.add_url_rule(
        f"{base}/<item_id>", f"{prefix}_get", get_item, methods=["GET"]
    )
    collections_blueprint.add_url_rule(
        f"{base}/<item_id>/games", f"{prefix}_games", item_games, methods=["GET"]
    )
    collections_blueprint.add_url_rule(
        f"{base}/<item_id>", f"{prefix}_update", update_item, methods=["PUT"]
    )
    collections_blueprint.add_url_rule(
        f"{base}/<item_id>", f"{prefix}_delete", delete_item, methods=["DELETE"]
    )
    _media_routes("cover")
    _media_routes("background")


for _entity_type in COLLECTION_LIKE_TYPES:
    _register_collection_like_routes(_entity_type)


@collections_blueprint.route("/collections", methods=["POST"])
@handle_api_errors
@require_token
def create_collection():
    payload = json_body()
    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        raise BadRequestError("Title is required")
    summary = payload.get("summary")
    registry = _registry(COLLECTIONS)
    item = registry.create(title, summary.strip() if isinstance(summary, str) else "")
    return jsonify({"status": "success", "collection": _item_data(registry, item, detail=True)})


@collections_blueprint.route("/collections/<item_id>/games/order", methods=["PUT"])
@handle_api_errors
@require_token
def reorder_collection_games(item_id: str):
    payload = json_body()
    game_ids = payload.get("gameIds")
    if not isinstance(game_ids, list):
        raise BadRequestError("gameIds must be an array")
    library = _ctx("library")
    library.games()
    item = _registry(COLLECTIONS).reorder_games(item_id, game_ids, library.cache.get)
    return jsonify({"status": "success", "games": item["games"]})


@collections_blueprint.route("/collections/<item_id>/reload", methods=["POST"])
@handle_api_errors
@require_token
def reload_collection(item_id: str):
    _ctx("library").games()
    registry = _registry(COLLECTIONS)
    item = registry.require(item_id)
    return jsonify({"status": "reloaded", "collection": _item_data(registry, item, detail=True)})


__all__ = ["collections_blueprint"]
