from lookups.hashing import title_id


def test_title_id_matches_string_hash_fold():
    assert title_id('a') == 97
    assert title_id('ab') == 97 * 31 + 98
    assert title_id('hello') == 99162322


def test_title_id_ignores_case_and_surrounding_whitespace():
    assert title_id('  Action ') == title_id('action')
    assert title_id('INDIE GEMS') == title_id('indie gems')


def test_title_id_of_empty_title_is_zero():
    assert title_id('') == 0
    assert title_id('   ') == 0


def test_title_id_folds_astral_characters_as_surrogate_pairs():
    assert title_id('\U0001F600') == 0xD83D * 31 + 0xDE00


def test_title_id_is_never_negative():
    titles = [
        'Role-playing (RPG)',
        'Hack and slash/Beat \'em up',
        'Turn-based strategy (TBS)',
        'A very long title that certainly overflows thirty two bits',
    ]

    for title in titles:
        assert title_id(title) >= 0
