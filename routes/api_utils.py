"""Shared helpers for API routes (context, auth, error handling and logging)."""

from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Callable, Mapping, ParamSpec, TypeVar

from flask import Flask, Response, current_app, jsonify, request, send_file
from werkzeug.exceptions import HTTPException

from auth.tokens import extract_token, is_valid_token
from catalog.errors import (
    CatalogError,
    EntityConflictError,
    EntityNotFoundError,
    PatchValidationError,
)
from lookups.service import (
    LookupConflictError,
    LookupNotFoundError,
    LookupServiceError,
    LookupValidationError,
)
from media.files import WEBP_MIMETYPE, InvalidImageError, is_image_mimetype

P = ParamSpec("P")
R = TypeVar("R")

CONTEXT_EXTENSION = "game_library"
STORE_ERRORS = (CatalogError, LookupServiceError, InvalidImageError)


class APIError(Exception):
    """An error rendered as ``{"error": message, **extra}`` with ``status_code``."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.status_code = status_code or type(self).status_code
        self.extra = dict(payload or {})

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}

    def as_response(self):
        return jsonify(self.to_dict()), self.status_code


class BadRequestError(APIError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(APIError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(APIError):
    status_code = 404
    default_message = "Not found"


class ConflictError(APIError):
    status_code = 409
    default_message = "Already exists"


def configure_context(app: Flask, context: Mapping[str, Any]) -> None:
    """Attach the stores and settings the blueprints read through ``_ctx``."""

    app.extensions.setdefault(CONTEXT_EXTENSION, {}).update(context)


def context_value(key: str, owner: str) -> Any:
    context = current_app.extensions.get(CONTEXT_EXTENSION, {})
    if key not in context:
        raise RuntimeError(f"{owner} routes missing context value: {key}")
    return context[key]


def _caller() -> str:
    context = current_app.extensions.get(CONTEXT_EXTENSION, {})
    token = extract_token(request.headers, request.args)
    if not token:
        return "anonymous"
    if token == context.get("api_token"):
        return "api-token"
    store = context.get("tokens")
    entry = store.find_by_access_token(token) if store is not None else None
    if entry:
        return str(entry.get("userName") or entry.get("userId") or "user")
    return "unknown"


def _describe_request(status_code: int) -> str:
    details: dict[str, Any] = {
        "status": status_code,
        "method": request.method,
        "path": request.path,
        "endpoint": request.endpoint,
        "caller": _caller(),
    }
    if request.view_args:
        details["view_args"] = dict(request.view_args)
    query = {k: v for k, v in request.args.to_dict(flat=False).items() if k != "token"}
    if query:
        details["query"] = query
    if request.form:
        details["form"] = request.form.to_dict(flat=False)
    body = request.get_json(silent=True)
    if body is not None:
        details["body"] = body
    try:
        return json.dumps(details, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(details)


def _log_failure(exc: BaseException, status_code: int, *, unexpected: bool = False) -> None:
    summary = _describe_request(status_code)
    if unexpected:
        current_app.logger.exception("Request failed: %s | %s", exc, summary)
    elif status_code >= 500:
        current_app.logger.error("Request failed: %s | %s", exc, summary, exc_info=exc)
    else:
        current_app.logger.log(logging.WARNING, "Request rejected: %s | %s", exc, summary)


def translate_store_error(exc: Exception) -> APIError | None:
    """Map store-layer exceptions onto the HTTP error hierarchy."""

    if isinstance(exc, (PatchValidationError, LookupValidationError, InvalidImageError)):
        return BadRequestError(str(exc))
    if isinstance(exc, (EntityNotFoundError, LookupNotFoundError)):
        return NotFoundError(str(exc))
    if isinstance(exc, EntityConflictError):
        return ConflictError(exc.message, payload=exc.payload)
    if isinstance(exc, LookupConflictError):
        return ConflictError(str(exc))
    if isinstance(exc, STORE_ERRORS):
        return APIError(str(exc))
    return None


def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Turn raised errors into JSON error responses and log them once."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        try:
            return func(*args, **kwargs)
        except APIError as exc:
            error = exc
        except STORE_ERRORS as exc:
            error = translate_store_error(exc) or APIError(str(exc))
            _log_failure(exc, error.status_code)
            return error.as_response()
        except HTTPException as exc:
            error = APIError(exc.description or str(exc), status_code=exc.code or 500)
        except Exception as exc:  # pragma: no cover - last resort
            _log_failure(exc, 500, unexpected=True)
            return APIError().as_response()
        _log_failure(error, error.status_code)
        return error.as_response()

    return wrapper


def require_token(func: Callable[P, R]) -> Callable[P, R]:
    """Reject the request with 401 unless it carries an accepted token."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        context = current_app.extensions.get(CONTEXT_EXTENSION, {})
        token = extract_token(request.headers, request.args)
        if not is_valid_token(
            token, api_token=context.get("api_token") or "", store=context.get("tokens")
        ):
            raise UnauthorizedError()
        return func(*args, **kwargs)

    return wrapper


def json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequestError("Request body must be a JSON object")
    return payload


def uploaded_image():
    """Return the multipart ``file`` part, checking it declares an image type."""

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise BadRequestError("No file provided")
    if not is_image_mimetype(upload.mimetype):
        raise BadRequestError("File must be an image")
    return upload


def _cors(response: Response) -> Response:
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET"
    return response


def empty_image_response() -> Response:
    """404 with an image content type and no body, so browsers skip CORB."""

    response = Response(b"", status=404, mimetype=WEBP_MIMETYPE)
    return _cors(response)


def serve_image(path) -> Response:
    if not path.is_file():
        return empty_image_response()
    response = send_file(path, mimetype=WEBP_MIMETYPE, max_age=0)
    return _cors(response)


__all__ = [
    "APIError",
    "BadRequestError",
    "CONTEXT_EXTENSION",
    "ConflictError",
    "NotFoundError",
    "UnauthorizedError",
    "configure_context",
    "context_value",
    "empty_image_response",
    "handle_api_errors",
    "json_body",
    "require_token",
    "serve_image",
    "translate_store_error",
    "uploaded_image",
]
