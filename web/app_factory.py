"""Flask application factory and logging configuration."""
from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from config import LOG_FILE, LOG_LEVEL, MAX_UPLOAD_MB, RECOMMENDED_SECTIONS_SHOWN
from init import LibraryContext, initialize_app
from routes.api_utils import configure_context
from routes.collections import collections_blueprint
from routes.games import games_blueprint
from routes.lookups import lookups_blueprint
from routes.recommended import recommended_blueprint
from routes.series import series_blueprint
from routes.web import web_blueprint

logger = logging.getLogger(__name__)

BLUEPRINTS = (
    games_blueprint,
    lookups_blueprint,
    collections_blueprint,
    recommended_blueprint,
    series_blueprint,
    web_blueprint,
)


def _determine_log_level(flask_app: Flask) -> int:
    if flask_app.debug:
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    level = logging.getLevelName(LOG_LEVEL)
    return level if isinstance(level, int) else logging.INFO


def _configure_logging(flask_app: Flask) -> None:
    log_level = _determine_log_level(flask_app)
    log_path = Path(LOG_FILE)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    for handler in list(flask_app.logger.handlers):
        flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    flask_app.logger = logging.getLogger(flask_app.import_name)
    flask_app.logger.setLevel(log_level)


def _register_error_handlers(flask_app: Flask) -> None:
    @flask_app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        flask_app.logger.warning("File upload too large for path %s", request.path)
        return jsonify({'error': 'file too large'}), 413

    @flask_app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return e
        flask_app.logger.exception("Unhandled exception")
        return jsonify({'error': 'Internal server error'}), 500


def configure_blueprints(flask_app: Flask) -> None:
    for blueprint in BLUEPRINTS:
        if blueprint.name not in flask_app.blueprints:
            flask_app.register_blueprint(blueprint)


def create_app(
    metadata_root: str | os.PathLike[str] | None = None,
    *,
    api_token: str | None = None,
    frontend_url: str | None = None,
    configure_logging: bool = True,
    run_migrations: bool | None = None,
    recommended_sections_shown: int = RECOMMENDED_SECTIONS_SHOWN,
) -> Flask:
    """Return a Flask application serving the library under ``metadata_root``.

    ``metadata_root`` defaults to ``METADATA_PATH``; ``api_token`` and
    ``frontend_url`` default to their environment variables.
    """

    flask_app = Flask(__name__)
    flask_app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
    if configure_logging:
        _configure_logging(flask_app)

    init_kwargs = {} if run_migrations is None else {'run_migrations': run_migrations}
    context: LibraryContext = initialize_app(metadata_root, **init_kwargs)
    flask_app.config['METADATA_ROOT'] = os.fspath(context.root)

    configure_context(
        flask_app,
        context.route_context(
            api_token=api_token,
            frontend_url=frontend_url,
            recommended_sections_shown=recommended_sections_shown,
        ),
    )
    _register_error_handlers(flask_app)
    configure_blueprints(flask_app)
    logger.info("Serving metadata from %s", context.root)
    return flask_app


__all__ = ['BLUEPRINTS', 'configure_blueprints', 'create_app']
