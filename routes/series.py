"""Series and franchise overlay routes."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from catalog.series import OVERLAY_KINDS, OverlayKind, SeriesOverlay
from helpers import _coerce_int
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

series_blueprint = Blueprint("series", __name__)


def _ctx(key: str) -> Any:
    return context_value(key, "series")


def _overlay(kind: OverlayKind) -> SeriesOverlay:
    return _ctx("series")[kind.content_folder]


def _games() -> list[dict[str, Any]]:
    return _ctx("library").games()


def _item_id(raw: str) -> int:
    item_id = _coerce_int(raw)
    if item_id is None:
        raise BadRequestError("Invalid id")
    return item_id


def _register_overlay_routes(kind: OverlayKind) -> None:
    base = kind.route_base
    prefix = kind.content_folder

    @handle_api_errors
    @require_token
    def list_items():
        return jsonify({kind.list_key: _overlay(kind).list(_games())})

    @handle_api_errors
    @require_token
    def update_item(item_id: str):
        payload = json_body()
        show_title = payload.get("showTitle")
        item = _overlay(kind).update(
            _item_id(item_id),
            _games(),
            show_title=show_title if isinstance(show_title, bool) else None,
        )
        return jsonify({kind.response_key: item})

    @handle_api_errors
    @require_token
    def upload_cover(item_id: str):
        numeric = _item_id(item_id)
        overlay = _overlay(kind)
        overlay.require(numeric, _games())
        upload = uploaded_image()
        return jsonify({kind.response_key: overlay.save_cover(numeric, _games(), upload.stream)})

    @handle_api_errors
    @require_token
    def delete_cover(item_id: str):
        return jsonify({kind.response_key: _overlay(kind).delete_cover(_item_id(item_id), _games())})

    def serve_cover(item_id: str):
        numeric = _coerce_int(item_id)
        if numeric is None:
            return empty_image_response()
        return serve_image(_overlay(kind).cover_file(numeric))

    rules = (
        (base, f"{prefix}_list", list_items, ["GET"]),
        (f"{base}/<item_id>", f"{prefix}_update", update_item, ["PUT"]),
        (f"{base}/<item_id>/upload-cover", f"{prefix}_upload_cover", upload_cover, ["POST"]),
        (f"{base}/<item_id>/delete-cover", f"{prefix}_delete_cover", delete_cover, ["DELETE"]),
        (f"{base}/<item_id>/cover.webp", f"{prefix}_cover", serve_cover, ["GET"]),
    )
    for rule, endpoint, view, methods in rules:
        series_blueprint.add_url_rule(rule, endpoint, view, methods=methods)


for _kind in OVERLAY_KINDS:
    _register_overlay_routes(_kind)


__all__ = ["series_blueprint"]
