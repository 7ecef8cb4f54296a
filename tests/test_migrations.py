from catalog.migrations import (
    is_legacy_tag_list,
    migrate_collection_ids,
    migrate_legacy_tag_fields,
    run_legacy_migrations,
)
from lookups.config import CATEGORIES, THEMES
from lookups.hashing import title_id
from lookups.service import TagRegistry
from tests.app_helpers import load_app, read_metadata, write_game, write_metadata


def registries(root):
    return {
        CATEGORIES.game_field: TagRegistry(root, CATEGORIES),
        THEMES.game_field: TagRegistry(root, THEMES),
    }


def test_is_legacy_tag_list():
    assert is_legacy_tag_list(['Action', 'RPG'])
    assert not is_legacy_tag_list([])
    assert not is_legacy_tag_list([1, 'Action'])
    assert not is_legacy_tag_list('Action')


def test_migrate_legacy_tag_fields_converts_titles_to_ids(tmp_path):
    write_game(tmp_path, 1, genre=['Action', 'action'], themes=[title_id('Horror')])
    write_game(tmp_path, 2, genre=[5])

    report = migrate_legacy_tag_fields(tmp_path, registries(tmp_path))

    assert report.examined == 2
    assert report.changed == [1]
    stored = read_metadata(tmp_path, 'games', 1)
    assert stored['genre'] == [title_id('Action')]
    assert stored['themes'] == [title_id('Horror')]
    assert read_metadata(tmp_path, 'games', 2)['genre'] == [5]
    assert TagRegistry(tmp_path, CATEGORIES).find('ACTION') is not None


def test_migrate_legacy_tag_fields_dry_run_writes_nothing(tmp_path):
    write_game(tmp_path, 1, genre=['Action'])

    report = migrate_legacy_tag_fields(tmp_path, registries(tmp_path), dry_run=True)

    assert report.changed_count == 1
    assert read_metadata(tmp_path, 'games', 1)['genre'] == ['Action']
    assert TagRegistry(tmp_path, CATEGORIES).load() == []


def test_migrate_collection_ids_moves_text_folders(tmp_path):
    old = write_metadata(
        tmp_path, 'collections', 'favorites', {'id': 'favorites', 'title': 'Favorites', 'games': [1]}
    ).parent
    (old / 'cover.webp').write_bytes(b'webp')
    write_metadata(tmp_path, 'collections', 1600000000000, {'title': 'Kept', 'games': []})

    report = migrate_collection_ids(tmp_path, clock=lambda: 1700000000.0)

    assert report.changed == [('favorites', 1700000000000)]
    assert not old.exists()
    new_dir = tmp_path / 'content' / 'collections' / '1700000000000'
    assert (new_dir / 'cover.webp').read_bytes() == b'webp'
    assert read_metadata(tmp_path, 'collections', 1700000000000) == {
        'title': 'Favorites',
        'games': [1],
    }
    assert read_metadata(tmp_path, 'collections', 1600000000000)['title'] == 'Kept'


def test_migrate_collection_ids_skips_unreadable_folders(tmp_path):
    (tmp_path / 'content' / 'collections' / 'broken').mkdir(parents=True)

    report = migrate_collection_ids(tmp_path)

    assert report.skipped == ['broken']
    assert (tmp_path / 'content' / 'collections' / 'broken').is_dir()


def test_run_legacy_migrations_summary(tmp_path):
    write_game(tmp_path, 1, genre=['Action'])
    write_metadata(tmp_path, 'collections', 'retro', {'title': 'Retro'})

    assert run_legacy_migrations(tmp_path, registries(tmp_path)) == {
        'games': 1,
        'collections': 1,
    }


def test_startup_can_skip_migrations(metadata_root, seed_game):
    seed_game(1, genre=['Action'])

    load_app(metadata_root, run_migrations=False)

    assert read_metadata(metadata_root, 'games', 1)['genre'] == ['Action']
