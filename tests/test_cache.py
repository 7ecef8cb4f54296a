import io

from catalog.library import LibraryStore
from state.game_cache import GameCache
from state.response_cache import ResponseCache
from tests.app_helpers import read_metadata


def test_response_cache_builds_once_until_cleared():
    cache = ResponseCache()
    calls = []

    def build():
        calls.append(1)
        return ['payload']

    assert cache.get_or_build('library:title', build) == ['payload']
    assert cache.get_or_build('library:title', build) == ['payload']
    assert len(calls) == 1

    cache.clear()
    cache.get_or_build('library:title', build)
    assert len(calls) == 2


def test_game_cache_invalidate_rereads_one_game():
    disk = {1: {'id': 1, 'title': 'Old'}}
    cache = GameCache(load_all=lambda: dict(disk), load_one=disk.get)
    cache.load()
    cache.responses.set('library:title', ['stale'])

    disk[1] = {'id': 1, 'title': 'New'}
    game = cache.invalidate(1)

    assert game['title'] == 'New'
    assert cache.get('1')['title'] == 'New'
    assert 'library:title' not in cache.responses

    del disk[1]
    assert cache.invalidate(1) is None
    assert 1 not in cache


def test_game_cache_loads_lazily():
    loads = []

    def load_all():
        loads.append(1)
        return {}

    cache = GameCache(load_all=load_all, load_one=lambda game_id: None)
    cache.ensure_loaded()
    cache.ensure_loaded()

    assert loads == [1]


def test_listing_reflects_every_write_path(client, headers, seed_game):
    seed_game(1, title='Braid')
    client.post('/reload-games', headers=headers)

    def listing():
        return client.get('/libraries/library/games', headers=headers).get_json()['games']

    assert listing()[0]['title'] == 'Braid'
    client.put('/games/1', json={'title': 'Braid (2008)'}, headers=headers)
    assert listing()[0]['title'] == 'Braid (2008)'

    client.post(
        '/games/1/upload-executable',
        data={'file': (io.BytesIO(b'#!/bin/sh\n'), 'play.sh')},
        headers=headers,
        content_type='multipart/form-data',
    )
    assert listing()[0]['executables'] == ['script']


def test_require_drops_games_removed_from_disk(app, headers, seed_game, metadata_root):
    seed_game(8, title='Limbo')
    client = app.test_client()
    client.post('/reload-games', headers=headers)
    (metadata_root / 'content' / 'games' / '8' / 'metadata.json').unlink()

    assert client.get('/games/8', headers=headers).status_code == 404
    library: LibraryStore = app.extensions['game_library']['library']
    assert 8 not in library.cache


def test_reload_game_picks_up_external_edits(client, headers, seed_game, metadata_root):
    path = seed_game(6, title='Inside')
    client.post('/reload-games', headers=headers)
    path.write_text('{"title": "INSIDE"}', encoding='utf-8')

    assert client.get('/games/6', headers=headers).get_json()['title'] == 'Inside'
    response = client.post('/games/6/reload', headers=headers)

    assert response.get_json() == {
        'status': 'reloaded',
        'game': client.get('/games/6', headers=headers).get_json(),
    }
    assert response.get_json()['game']['title'] == 'INSIDE'
    assert read_metadata(metadata_root, 'games', 6) == {'title': 'INSIDE'}
