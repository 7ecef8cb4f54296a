import pytest

from catalog.executables import (
    resolve_executables,
    sanitize_name,
    scan_executable_names,
    sync_executables,
    write_executable,
)


def touch(directory, *names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_text('echo\n')


def test_sanitize_name_replaces_unsafe_characters():
    assert sanitize_name(' Launch EU ') == 'Launch_EU'
    assert sanitize_name('mods/v1.2') == 'mods_v1_2'


def test_scan_lists_default_script_first(tmp_path):
    touch(tmp_path, 'beta.sh', 'script.bat', 'alpha.bat', 'notes.txt')

    assert scan_executable_names(tmp_path) == ['script', 'alpha', 'beta']


def test_resolve_prefers_declared_order_when_it_matches_disk(tmp_path):
    touch(tmp_path, 'script.sh', 'Launch_EU.sh')

    assert resolve_executables(tmp_path, ['Launch EU', 'script']) == ['Launch EU', 'script']
    assert resolve_executables(tmp_path / 'missing', ['script']) == []


def test_resolve_appends_undeclared_scripts_after_declared_names(tmp_path):
    touch(tmp_path, 'script.sh', 'Launch_EU.sh', 'alpha.bat')

    assert resolve_executables(tmp_path, ['Launch EU']) == ['Launch EU', 'script', 'alpha']


def test_resolve_falls_back_to_scan_order_when_a_declared_file_is_gone(tmp_path):
    touch(tmp_path, 'script.sh', 'Launch_EU.sh')

    assert resolve_executables(tmp_path, ['Launch EU', 'Ghost']) == ['script', 'Launch_EU']


def test_write_executable_replaces_sibling_extension(tmp_path):
    touch(tmp_path, 'script.bat')

    name = write_executable(tmp_path, 'run.SH', b'#!/bin/sh\n')

    assert name == 'script'
    assert (tmp_path / 'script.sh').read_bytes() == b'#!/bin/sh\n'
    assert not (tmp_path / 'script.bat').exists()


def test_write_executable_rejects_other_files(tmp_path):
    with pytest.raises(ValueError):
        write_executable(tmp_path, 'setup.exe', b'MZ')


def test_sync_keeps_requested_order_and_existing_files(tmp_path):
    touch(tmp_path, 'script.sh', 'Launch_EU.bat', 'old.sh')

    final = sync_executables(tmp_path, ['Launch EU', 'missing', 'script'])

    assert final == ['Launch EU', 'script']
    assert not (tmp_path / 'old.sh').exists()
