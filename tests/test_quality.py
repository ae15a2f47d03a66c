from folio.core.quality import MIN_VALID_LETTER_COUNT, count_letters, is_meaningful


def test_count_letters_ignores_digits_and_punctuation():
    assert count_letters("abc 123, déjà-vu!") == 9


def test_threshold_boundary():
    assert MIN_VALID_LETTER_COUNT == 40
    assert is_meaningful("a" * 40)
    assert not is_meaningful("a" * 39)
    assert not is_meaningful("a" * 39 + " 1234567890" * 10)


def test_empty_and_whitespace():
    assert not is_meaningful(None)
    assert not is_meaningful("")
    assert not is_meaningful(" \n\t ")


def test_non_latin_letters_count():
    assert is_meaningful("привет " * 7)


def test_custom_threshold():
    assert is_meaningful("abc", min_letters=3)
    assert not is_meaningful("ab", min_letters=3)
