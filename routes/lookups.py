"""Tag registry API routes, one rule set per tag type."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, jsonify, redirect

from catalog.patches import TagPatch
from lookups.config import TAG_TYPES, TagType
from lookups.service import LookupConflictError, TagRegistry
from media.files import COVER_FILENAME, delete_media_file, save_webp_image
from routes.api_utils import (
    ConflictError,
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

lookups_blueprint = Blueprint("lookups", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "lookup")


def _registry(tag_type: TagType) -> TagRegistry:
    return _ctx("tags")[tag_type.game_field]


def _games() -> list[dict[str, Any]]:
    return _ctx("library").games()


def _register_tag_routes(tag_type: TagType) -> None:
    base = tag_type.route_base
    prefix = tag_type.endpoint_prefix
    human = tag_type.human_name
    key = tag_type.response_key

    def _require_tag(title: str):
        tag = _registry(tag_type).find(title)
        if tag is None:
            raise NotFoundError(f"{human} not found")
        return tag

    @handle_api_errors
    @require_token
    def list_tags():
        tags = _registry(tag_type).load()
        return jsonify({tag_type.list_response_key: [tag.to_dict() for tag in tags]})

    @handle_api_errors
    @require_token
    def create_tag():
        payload = json_body()
        try:
            tag = _registry(tag_type).create(payload.get("title"))
        except LookupConflictError as exc:
            raise ConflictError(str(exc), payload={key: exc.tag.title}) from exc
        return jsonify({key: tag.title})

    @handle_api_errors
    @require_token
    def update_tag(title: str):
        registry = _registry(tag_type)
        _require_tag(title)
        patch = TagPatch.from_payload(json_body())
        tag = registry.update(title, show_title=patch.show_title)
        return jsonify({"status": "success", key: tag.to_dict()})

    @handle_api_errors
    @require_token
    def delete_tag(title: str):
        try:
            _registry(tag_type).delete(title, _games())
        except LookupConflictError as exc:
            raise ConflictError(str(exc), payload={key: title}) from exc
        return jsonify({"status": "success"})

    @handle_api_errors
    @require_token
    def upload_cover(title: str):
        registry = _registry(tag_type)
        tag = _require_tag(title)
        upload = uploaded_image()
        save_webp_image(upload.stream, registry.cover_file(tag.id))
        logger.info("Saved cover for %s %r", human.lower(), tag.title)
        return jsonify(
            {"status": "success", key: {"title": title, "cover": registry.cover_url(title)}}
        )

    @handle_api_errors
    @require_token
    def delete_cover(title: str):
        registry = _registry(tag_type)
        tag = _require_tag(title)
        delete_media_file(registry.tag_dir(tag.id), COVER_FILENAME)
        data: dict[str, Any] = {"title": title}
        if registry.cover_file(tag.id).is_file():
            data["cover"] = registry.cover_url(title)
        return jsonify({"status": "success", key: data})

    def serve_cover_by_title(title: str):
        registry = _registry(tag_type)
        tag = registry.find(title)
        if tag is None:
            return empty_image_response()
        return serve_image(registry.cover_file(tag.id))

    def serve_cover_by_id(tag_id: int):
        cover = _registry(tag_type).cover_file(tag_id)
        if cover.is_file():
            return serve_image(cover)
        frontend_url = _ctx("frontend_url")
        if frontend_url:
            return redirect(f"{frontend_url}{base}/{tag_id}/cover.webp")
        return empty_image_response()

    rules = (
        (base, f"{prefix}_list", list_tags, ["GET"]),
        (base, f"{prefix}_create", create_tag, ["POST"]),
        (f"{base}/<path:title>", f"{prefix}_update", update_tag, ["PUT"]),
        (f"{base}/<path:title>", f"{prefix}_delete", delete_tag, ["DELETE"]),
        (f"{base}/<path:title>/upload-cover", f"{prefix}_upload_cover", upload_cover, ["POST"]),
        (f"{base}/<path:title>/delete-cover", f"{prefix}_delete_cover", delete_cover, ["DELETE"]),
        (f"/{tag_type.cover_prefix}/<path:title>", f"{prefix}_cover", serve_cover_by_title, ["GET"]),
        (f"{base}/<int:tag_id>/cover.webp", f"{prefix}_cover_by_id", serve_cover_by_id, ["GET"]),
    )
    for rule, endpoint, view, methods in rules:
        lookups_blueprint.add_url_rule(rule, endpoint, view, methods=methods)


for _tag_type in TAG_TYPES:
    _register_tag_routes(_tag_type)


__all__ = ["lookups_blueprint"]
