import json

from db import utils as db_utils


def test_read_json_returns_default_for_missing_and_corrupt_files(tmp_path):
    corrupt = tmp_path / 'broken.json'
    corrupt.write_text('{"title": ', encoding='utf-8')

    assert db_utils.read_json(tmp_path / 'missing.json', []) == []
    assert db_utils.read_json(corrupt, {'language': 'en'}) == {'language': 'en'}


def test_write_json_creates_parent_directories(tmp_path):
    target = db_utils.metadata_file(tmp_path, 'games', 7)

    db_utils.write_json(target, {'title': 'Outer Wilds'})

    assert target == tmp_path / 'content' / 'games' / '7' / 'metadata.json'
    assert json.loads(target.read_text(encoding='utf-8')) == {'title': 'Outer Wilds'}


def test_ensure_directory_exists_creates_nested_levels(tmp_path):
    target = tmp_path / 'a' / 'b' / 'c'

    assert db_utils.ensure_directory_exists(target) == target
    assert target.is_dir()
    assert db_utils.ensure_directory_exists(target) == target


def test_iter_entity_folders_can_skip_legacy_names(tmp_path):
    for name in ('20', '3', 'legacy-title'):
        (db_utils.content_dir(tmp_path, 'collections') / name).mkdir(parents=True)
    (db_utils.content_dir(tmp_path, 'collections') / 'stray.json').write_text('{}')

    assert list(db_utils.iter_entity_folders(tmp_path, 'collections')) == [
        '20',
        '3',
        'legacy-title',
    ]
    assert list(
        db_utils.iter_entity_folders(tmp_path, 'collections', numeric_only=True)
    ) == ['20', '3']
    assert list(db_utils.iter_entity_folders(tmp_path, 'missing')) == []


def test_remove_directory_if_empty_keeps_directories_with_files(tmp_path):
    occupied = tmp_path / 'occupied'
    occupied.mkdir()
    (occupied / 'cover.webp').write_bytes(b'data')
    empty = tmp_path / 'empty'
    empty.mkdir()

    assert db_utils.remove_directory_if_empty(occupied) is False
    assert occupied.is_dir()
    assert db_utils.remove_directory_if_empty(empty) is True
    assert not empty.exists()
    assert db_utils.remove_directory_if_empty(tmp_path / 'never-created') is False


def test_coerce_entity_id_keeps_text_names():
    assert db_utils.coerce_entity_id('42') == 42
    assert db_utils.coerce_entity_id('my-favorites') == 'my-favorites'
