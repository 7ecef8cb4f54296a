import pytest

from lookups.hashing import title_id
from tests.app_helpers import load_app, png_bytes


TAG_ROUTES = [
    ('categories', 'category', 'categories'),
    ('themes', 'theme', 'themes'),
    ('platforms', 'platform', 'platforms'),
    ('game-engines', 'gameEngine', 'gameEngines'),
    ('game-modes', 'gameMode', 'gameModes'),
    ('player-perspectives', 'playerPerspective', 'playerPerspectives'),
]


@pytest.mark.parametrize('base, key, list_key', TAG_ROUTES)
def test_create_then_duplicate_is_conflict(client, headers, base, key, list_key):
    response = client.post(f'/{base}', json={'title': 'Indie Gems'}, headers=headers)
    assert response.status_code == 200
    assert response.get_json() == {key: 'Indie Gems'}

    duplicate = client.post(f'/{base}', json={'title': 'indie gems'}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.get_json()[key] == 'Indie Gems'

    listing = client.get(f'/{base}', headers=headers).get_json()
    assert listing[list_key] == [
        {'id': title_id('Indie Gems'), 'title': 'Indie Gems', 'showTitle': True}
    ]


def test_create_requires_title(client, headers):
    response = client.post('/categories', json={}, headers=headers)

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Title is required'}


def test_update_show_title(client, headers):
    client.post('/themes', json={'title': 'Horror'}, headers=headers)

    response = client.put('/themes/horror', json={'showTitle': False}, headers=headers)

    assert response.status_code == 200
    assert response.get_json()['theme']['showTitle'] is False
    assert client.put('/themes/Comedy', json={'showTitle': True}, headers=headers).status_code == 404
    assert client.put('/themes/Horror', json={}, headers=headers).status_code == 400


def test_delete_in_use_tag_is_conflict(metadata_root, seed_game, headers):
    seed_game(1, title='Portal', genre=['Puzzle'])
    client = load_app(metadata_root).test_client()

    response = client.delete('/categories/Puzzle', headers=headers)
    assert response.status_code == 409
    assert response.get_json()['category'] == 'Puzzle'

    client.put('/games/1', json={'genre': None}, headers=headers)
    assert client.delete('/categories/puzzle', headers=headers).status_code == 200
    assert client.delete('/categories/puzzle', headers=headers).status_code == 404


def test_tag_cover_upload_and_serving(client, headers, metadata_root):
    client.post('/platforms', json={'title': 'Game Boy'}, headers=headers)
    tag_id = title_id('Game Boy')

    response = client.post(
        '/platforms/Game%20Boy/upload-cover',
        data={'file': (png_bytes(), 'gb.png', 'image/png')},
        headers=headers,
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    assert response.get_json()['platform']['cover'] == '/platform-covers/Game%20Boy'

    by_title = client.get('/platform-covers/Game%20Boy')
    assert by_title.status_code == 200
    assert by_title.mimetype == 'image/webp'
    assert client.get(f'/platforms/{tag_id}/cover.webp').status_code == 200

    client.delete('/platforms/Game%20Boy/delete-cover', headers=headers)
    missing = client.get('/platform-covers/Game%20Boy')
    assert missing.status_code == 404
    assert missing.mimetype == 'image/webp'
    assert missing.data == b''


def test_cover_by_id_redirects_to_frontend_when_missing(metadata_root, headers):
    client = load_app(metadata_root, frontend_url='https://games.example').test_client()

    response = client.get('/categories/12345/cover.webp')

    assert response.status_code == 302
    assert response.headers['Location'] == 'https://games.example/categories/12345/cover.webp'


def test_titles_containing_a_slash_reach_every_title_route(client, headers):
    title = "Hack and slash/Beat 'em up"
    quoted = "Hack%20and%20slash%2FBeat%20'em%20up"
    assert client.post('/categories', json={'title': title}, headers=headers).status_code == 200

    response = client.put(f'/categories/{quoted}', json={'showTitle': False}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['category']['title'] == title

    uploaded = client.post(
        f'/categories/{quoted}/upload-cover',
        data={'file': (png_bytes(), 'cover.png', 'image/png')},
        headers=headers,
        content_type='multipart/form-data',
    )
    assert uploaded.status_code == 200
    cover_url = uploaded.get_json()['category']['cover']
    assert cover_url == f'/category-covers/{quoted}'
    assert client.get(cover_url).mimetype == 'image/webp'

    assert client.delete(f'/categories/{quoted}/delete-cover', headers=headers).status_code == 200
    missing = client.get(cover_url)
    assert missing.status_code == 404
    assert missing.mimetype == 'image/webp'

    assert client.delete(f'/categories/{quoted}', headers=headers).status_code == 200
    assert client.get('/categories', headers=headers).get_json()['categories'] == []
