"""Tests for shared helpers."""

from datetime import UTC

from specialisttalk.utils import ALPHANUM_CHARSET, now, random_alphanum


class TestRandomAlphanum:
    """Tests for random_alphanum."""

    def test_length_and_charset(self):
        value = random_alphanum(40)
        assert len(value) == 40
        assert set(value) <= set(ALPHANUM_CHARSET)

    def test_values_differ(self):
        assert random_alphanum(40) != random_alphanum(40)


def test_now_is_timezone_aware():
    assert now().tzinfo is UTC
