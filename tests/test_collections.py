import pytest

from catalog.collection_like import COLLECTIONS, DEVELOPERS, CollectionLikeRegistry
from catalog.errors import EntityConflictError, EntityNotFoundError
from catalog.ordering import normalize_game_ids, order_by_release
from tests.app_helpers import load_app, png_bytes, read_metadata


RELEASES = {
    3: {'year': 2001, 'month': 5, 'day': 1},
    5: {'year': 2010, 'month': 1, 'day': 1},
    8: {'year': 2005},
    9: {},
}


def lookup(game_id):
    return RELEASES.get(game_id)


class FixedClock:
    def __init__(self, start):
        self.value = start

    def __call__(self):
        return self.value


def test_normalize_game_ids_dedupes_keeping_first_occurrence():
    assert normalize_game_ids([5, '3', 5, 3, None]) == [5, 3]


def test_single_addition_is_inserted_by_release_date():
    assert order_by_release([5], [5, 3], lookup) == [3, 5]
    assert order_by_release([3, 5], [3, 5, 8], lookup) == [3, 8, 5]


def test_undated_single_addition_goes_last():
    assert order_by_release([3, 5], [9, 3, 5], lookup) == [3, 5, 9]


def test_full_reorder_sorts_by_release_date():
    assert order_by_release([3], [9, 5, 8, 3, 5], lookup) == [3, 8, 5, 9]


def test_create_uses_millisecond_timestamp_ids(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, COLLECTIONS, clock=FixedClock(1700000000.5))

    first = registry.create('My Favorites')
    second = registry.create('Couch Co-op', 'Local multiplayer')

    assert first['id'] == 1700000000500
    assert second['id'] == 1700000000501
    assert read_metadata(tmp_path, 'collections', first['id']) == {
        'title': 'My Favorites',
        'summary': '',
        'games': [],
        'showTitle': True,
    }


def test_create_rejects_duplicate_titles(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, COLLECTIONS)
    existing = registry.create('My Favorites')

    with pytest.raises(EntityConflictError) as excinfo:
        registry.create('my favorites')

    assert excinfo.value.payload == {
        'collection': {'id': existing['id'], 'title': 'My Favorites'}
    }


def test_load_reads_legacy_text_ids(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, COLLECTIONS)
    registry.save({'id': 'retro', 'title': 'Retro', 'games': ['4', 2, 'x']})

    item = registry.require('retro')

    assert item['id'] == 'retro'
    assert item['games'] == [4, 2, 'x']
    assert item['showTitle'] is True


def test_ensure_batch_creates_companies_and_links_the_game(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, DEVELOPERS)

    refs = registry.ensure_batch(
        [{'id': 70, 'name': 'Nintendo', 'logo': 'https://img/logo.png'}, {'name': 'No id'}],
        12,
    )
    registry.ensure_batch([{'id': 70, 'name': 'Nintendo'}], 13)

    assert refs == [{'id': 70, 'name': 'Nintendo'}]
    item = registry.require(70)
    assert item['games'] == [12, 13]
    assert item['igdbCover'] == 'https://img/logo.png'


def test_remove_game_from_all(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, COLLECTIONS, clock=FixedClock(1.0))
    first = registry.create('A')
    second = registry.create('B')
    registry.add_game(first['id'], 4)
    registry.add_game(second['id'], 4)
    registry.add_game(second['id'], 5)

    assert registry.remove_game_from_all(4) == 2
    assert registry.require(first['id'])['games'] == []
    assert registry.require(second['id'])['games'] == [5]
    assert registry.remove_game_from_all(4) == 0


def test_require_unknown_id_raises(tmp_path):
    registry = CollectionLikeRegistry(tmp_path, COLLECTIONS)

    with pytest.raises(EntityNotFoundError):
        registry.require(404)


def test_collection_routes_create_and_order_games(metadata_root, seed_game, headers):
    seed_game(3, title='Early', year=2001, month=5, day=1)
    seed_game(5, title='Late', year=2010)
    client = load_app(metadata_root).test_client()

    response = client.post('/collections', json={'title': 'My Favorites'}, headers=headers)
    assert response.status_code == 200
    collection = response.get_json()['collection']
    assert collection['title'] == 'My Favorites'
    assert collection['gameCount'] == 0

    duplicate = client.post('/collections', json={'title': 'my favorites'}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.get_json()['collection']['id'] == collection['id']

    url = f"/collections/{collection['id']}/games/order"
    assert client.put(url, json={'gameIds': [5]}, headers=headers).status_code == 200
    response = client.put(url, json={'gameIds': [5, 3]}, headers=headers)
    assert response.get_json()['games'] == [3, 5]
    stored = read_metadata(metadata_root, 'collections', collection['id'])
    assert stored['games'] == [3, 5]

    games = client.get(f"/collections/{collection['id']}/games", headers=headers).get_json()
    assert [game['title'] for game in games['games']] == ['Early', 'Late']


def test_collection_routes_validate_input(client, headers):
    assert client.post('/collections', json={'title': ' '}, headers=headers).status_code == 400
    response = client.post('/collections', json={'title': 'Queue'}, headers=headers)
    item_id = response.get_json()['collection']['id']

    response = client.put(
        f'/collections/{item_id}/games/order', json={'gameIds': 'nope'}, headers=headers
    )
    assert response.status_code == 400
    assert response.get_json() == {'error': 'gameIds must be an array'}
    assert client.get('/collections/123', headers=headers).status_code == 404


def test_collection_update_and_media(client, headers, metadata_root):
    item = client.post('/collections', json={'title': 'Queue'}, headers=headers).get_json()
    item_id = item['collection']['id']

    response = client.put(
        f'/collections/{item_id}', json={'summary': 'Up next'}, headers=headers
    )
    assert response.get_json()['collection']['summary'] == 'Up next'

    response = client.post(
        f'/collections/{item_id}/upload-cover',
        data={'file': (png_bytes(), 'cover.png', 'image/png')},
        headers=headers,
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    assert response.get_json()['collection']['cover'] == f'/collection-covers/{item_id}'
    assert (metadata_root / 'content' / 'collections' / str(item_id) / 'cover.webp').is_file()

    served = client.get(f'/collection-covers/{item_id}')
    assert served.status_code == 200
    assert served.mimetype == 'image/webp'

    response = client.delete(f'/collections/{item_id}/delete-cover', headers=headers)
    assert response.get_json()['collection']['cover'] is None
    missing = client.get(f'/collection-covers/{item_id}')
    assert missing.status_code == 404
    assert missing.mimetype == 'image/webp'
    assert missing.data == b''


def test_developer_membership_follows_game_updates(client, headers, metadata_root, seed_game):
    seed_game(42, title='Metroid Prime')
    client.post('/reload-games', headers=headers)

    response = client.put(
        '/games/42',
        json={'developers': [{'id': 70, 'name': 'Retro Studios'}]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.get_json()['game']['developers'] == [{'id': 70, 'name': 'Retro Studios'}]
    assert read_metadata(metadata_root, 'developers', 70)['games'] == [42]

    developer = client.get('/developers/70', headers=headers).get_json()
    assert developer['gameCount'] == 1

    client.put('/games/42', json={'developers': []}, headers=headers)
    assert read_metadata(metadata_root, 'developers', 70)['games'] == []
    assert read_metadata(metadata_root, 'games', 42).get('developers') is None


def test_deleting_a_developer_strips_it_from_games(client, headers, metadata_root, seed_game):
    seed_game(42, title='Metroid Prime')
    client.post('/reload-games', headers=headers)
    client.put(
        '/games/42', json={'developers': [{'id': 70, 'name': 'Retro Studios'}]}, headers=headers
    )

    response = client.delete('/developers/70', headers=headers)

    assert response.status_code == 200
    assert not (metadata_root / 'content' / 'developers' / '70').exists()
    assert client.get('/games/42', headers=headers).get_json()['developers'] is None
