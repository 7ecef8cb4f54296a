import json

import pytest

from auth.tokens import TokenStore, extract_token, is_valid_token
from settings.service import SettingsStore
from tests.app_helpers import API_TOKEN, load_app, png_bytes


def test_settings_file_is_created_with_defaults(metadata_root):
    load_app(metadata_root)

    stored = json.loads((metadata_root / 'settings.json').read_text(encoding='utf-8'))
    assert stored == {'language': 'en'}


def test_settings_routes_merge_updates(client, headers, metadata_root):
    assert client.get('/settings', headers=headers).get_json() == {'language': 'en'}

    response = client.put('/settings', json={'theme': 'dark'}, headers=headers)

    assert response.get_json() == {
        'status': 'success',
        'settings': {'language': 'en', 'theme': 'dark'},
    }
    assert SettingsStore(metadata_root).load()['theme'] == 'dark'


def test_corrupt_settings_fall_back_to_defaults(tmp_path):
    (tmp_path / 'settings.json').write_text('not json', encoding='utf-8')

    assert SettingsStore(tmp_path).load() == {'language': 'en'}


def test_extract_token_sources():
    assert extract_token({'X-Auth-Token': ' abc '}, {}) == 'abc'
    assert extract_token({}, {'token': 'from-query'}) == 'from-query'
    assert extract_token({'Authorization': 'Bearer xyz'}, {}) == 'xyz'
    assert extract_token({}, {}) is None


def test_is_valid_token_accepts_api_token_and_stored_tokens(tmp_path):
    store = TokenStore(tmp_path)
    store.set_user('u1', {'accessToken': 'user-token', 'userName': 'sam'})

    assert is_valid_token('secret', api_token='secret', store=store)
    assert is_valid_token('user-token', api_token='', store=store)
    assert not is_valid_token('nope', api_token='secret', store=store)
    assert not is_valid_token(None, api_token='secret', store=store)
    assert not is_valid_token('', api_token='', store=None)


def test_token_store_remove_user(tmp_path):
    store = TokenStore(tmp_path)
    store.set_user(7, {'accessToken': 'abc'})

    assert store.load() == {'7': {'accessToken': 'abc', 'userId': '7'}}
    assert store.remove_user(7) is True
    assert store.remove_user(7) is False
    assert store.find_by_access_token('abc') is None


@pytest.mark.parametrize(
    'url', ['/libraries/library/games', '/categories', '/collections', '/series', '/settings']
)
def test_protected_routes_require_a_token(client, url):
    response = client.get(url)

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized'}
    assert client.get(url, headers={'X-Auth-Token': 'wrong'}).status_code == 401


def test_token_can_come_from_bearer_header_or_query(client):
    assert client.get(
        '/settings', headers={'Authorization': f'Bearer {API_TOKEN}'}
    ).status_code == 200
    assert client.get(f'/settings?token={API_TOKEN}').status_code == 200


def test_stored_user_tokens_are_accepted(metadata_root):
    TokenStore(metadata_root).set_user('u1', {'accessToken': 'twitch-token'})
    client = load_app(metadata_root, api_token='').test_client()

    assert client.get('/settings', headers={'X-Auth-Token': 'twitch-token'}).status_code == 200
    assert client.get('/settings').status_code == 401


def test_media_routes_are_public(client):
    assert client.get('/covers/1').status_code == 404
    assert client.get('/category-covers/Action').status_code == 404


def test_upload_limit_returns_json_413(metadata_root, headers):
    app = load_app(metadata_root)
    app.config['MAX_CONTENT_LENGTH'] = 16
    client = app.test_client()

    response = client.post(
        '/games/1/upload-cover',
        data={'file': (png_bytes((64, 64)), 'cover.png', 'image/png')},
        headers=headers,
        content_type='multipart/form-data',
    )

    assert response.status_code == 413
