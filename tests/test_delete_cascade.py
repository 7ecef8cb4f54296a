from lookups.hashing import title_id
from tests.app_helpers import load_app, read_metadata, write_metadata


def test_delete_removes_orphaned_tags_and_memberships(metadata_root, seed_game, headers):
    seed_game(1, title='Pac-Man', genre=['RetroArcade', 'Classics'], themes=['Maze'])
    seed_game(2, title='Galaga', genre=['Classics'])
    write_metadata(
        metadata_root,
        'collections',
        1700000000000,
        {'title': 'Favorites', 'games': [1, 2]},
    )
    write_metadata(
        metadata_root, 'developers', 70, {'title': 'Namco', 'games': [1, 2]}
    )
    app = load_app(metadata_root)
    client = app.test_client()

    response = client.delete('/games/1', headers=headers)

    assert response.status_code == 200
    cleanup = response.get_json()['cleanup']
    assert cleanup['collections'] == 1
    assert cleanup['developers'] == 1
    assert sorted(cleanup['tags']) == ['genre', 'themes']

    categories = metadata_root / 'content' / 'categories'
    assert not (categories / str(title_id('RetroArcade'))).exists()
    assert (categories / str(title_id('Classics'))).is_dir()
    assert not (metadata_root / 'content' / 'themes' / str(title_id('Maze'))).exists()
    assert read_metadata(metadata_root, 'collections', 1700000000000)['games'] == [2]
    assert read_metadata(metadata_root, 'developers', 70)['games'] == [2]
    assert not (metadata_root / 'content' / 'games' / '1').exists()
    assert client.get('/games/1', headers=headers).status_code == 404


def test_delete_keeps_game_directory_with_leftover_media(metadata_root, seed_game, headers):
    seed_game(3, title='Tempest')
    (metadata_root / 'content' / 'games' / '3' / 'cover.webp').write_bytes(b'webp')
    client = load_app(metadata_root).test_client()

    response = client.delete('/games/3', headers=headers)

    assert response.status_code == 200
    game_dir = metadata_root / 'content' / 'games' / '3'
    assert game_dir.is_dir()
    assert not (game_dir / 'metadata.json').exists()
    listing = client.get('/libraries/library/games', headers=headers).get_json()
    assert listing['games'] == []


def test_delete_removes_game_from_recommended_sections(metadata_root, seed_game, headers):
    seed_game(1, title='Doom', keywords=['demons'], criticratings=9)
    seed_game(2, title='Quake', keywords=['demons'], criticratings=8)
    client = load_app(metadata_root).test_client()
    section_id = title_id('demons')
    assert read_metadata(metadata_root, 'recommended', section_id)['games'] == [1, 2]

    client.delete('/games/1', headers=headers)

    assert read_metadata(metadata_root, 'recommended', section_id)['games'] == [2]


def test_deleting_unknown_game_is_404(client, headers):
    assert client.delete('/games/404', headers=headers).status_code == 404
