"""Pytest fixtures shared across the test suite."""

import pytest

from tests.app_helpers import auth_headers, load_app, write_game


@pytest.fixture
def metadata_root(tmp_path):
    root = tmp_path / 'metadata'
    root.mkdir()
    return root


@pytest.fixture
def app(metadata_root):
    return load_app(metadata_root)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers():
    return auth_headers()


@pytest.fixture
def seed_game(metadata_root):
    """Write a game to disk; call before the app is created or reload after."""

    def _seed(game_id, **metadata):
        return write_game(metadata_root, game_id, **metadata)

    return _seed


@pytest.fixture(autouse=True)
def clear_metadata_env(monkeypatch):
    """Keep the developer's environment out of the stores under test."""

    for key in ('METADATA_PATH', 'API_TOKEN', 'FRONTEND_URL'):
        monkeypatch.delenv(key, raising=False)
    yield

