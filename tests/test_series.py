from catalog.series import SERIES, SeriesOverlay, aggregate_from_games
from tests.app_helpers import load_app, png_bytes, read_metadata


def test_aggregate_from_games_collects_distinct_references():
    games = [
        {'id': 1, 'collection': [{'id': 10, 'name': 'Zelda'}, 'Loose string']},
        {'id': 2, 'collection': [{'id': 10, 'name': 'Zelda'}, {'id': 11, 'name': 'Metroid'}]},
        {'id': 3, 'collection': {'id': '12', 'name': 'castlevania'}},
        {'id': 4},
    ]

    assert aggregate_from_games(games, 'collection') == [
        {'id': 12, 'title': 'castlevania'},
        {'id': 11, 'title': 'Metroid'},
        {'id': 10, 'title': 'Zelda'},
    ]


def test_overlay_merges_show_title_and_cover(tmp_path):
    overlay = SeriesOverlay(tmp_path, SERIES)
    games = [{'id': 1, 'collection': [{'id': 10, 'name': 'Zelda'}]}]

    overlay.update(10, games, show_title=False)

    assert overlay.list(games) == [{'id': 10, 'title': 'Zelda', 'showTitle': False}]
    assert read_metadata(tmp_path, 'series', 10) == {'title': 'Zelda', 'showTitle': False}


def test_series_routes(metadata_root, seed_game, headers):
    seed_game(1, title='Ocarina', collection=[{'id': 10, 'name': 'Zelda'}])
    seed_game(2, title='Super Metroid', franchise=[{'id': 20, 'name': 'Metroid'}])
    client = load_app(metadata_root).test_client()

    assert client.get('/series', headers=headers).get_json() == {
        'series': [{'id': 10, 'title': 'Zelda'}]
    }
    assert client.get('/franchises', headers=headers).get_json() == {
        'franchises': [{'id': 20, 'title': 'Metroid'}]
    }

    response = client.put('/series/10', json={'showTitle': False}, headers=headers)
    assert response.get_json()['series']['showTitle'] is False

    response = client.post(
        '/series/10/upload-cover',
        data={'file': (png_bytes(), 'zelda.png', 'image/png')},
        headers=headers,
        content_type='multipart/form-data',
    )
    assert response.get_json()['series']['cover'] == '/series/10/cover.webp'
    served = client.get('/series/10/cover.webp')
    assert served.status_code == 200
    assert served.mimetype == 'image/webp'

    client.delete('/series/10/delete-cover', headers=headers)
    assert client.get('/series/10/cover.webp').status_code == 404


def test_series_routes_reject_bad_ids(client, headers):
    assert client.put('/series/abc', json={}, headers=headers).status_code == 400
    assert client.put('/franchises/99', json={}, headers=headers).status_code == 404
    assert client.get('/franchises/abc/cover.webp').status_code == 404
