"""Tests for the search engine."""

import pytest

from jpager.errors import InvalidPatternError
from jpager.parser import parse
from jpager.search import SearchEngine, SearchMatch, SearchScope

DOC = '{"Name":"alice","name":"Bob","list":["name", 5]}'


def nodes(engine):
    return [m.node for m in engine.matches]


def search(pattern, text=DOC, scope=SearchScope.ALL, **kwargs):
    engine = SearchEngine(scope)
    engine.set_pattern(pattern, **kwargs)
    engine.find_all(parse(text))
    return engine


class TestCase:
    """Tests for smart-case matching."""

    def test_lowercase_is_insensitive(self):
        """A lowercase pattern ignores case."""
        assert nodes(search("name")) == [1, 2, 4]

    def test_uppercase_is_sensitive(self):
        assert nodes(search("Name")) == [1]

    def test_suffix_overrides(self):
        """A case suffix on the pattern forces the case mode."""
        assert nodes(search(r"name\C")) == [2, 4]
        assert nodes(search(r"NAME\c")) == [1, 2, 4]

    def test_explicit_flag(self):
        assert nodes(search("name", case_sensitive=True)) == [2, 4]

    def test_pattern_keeps_suffix(self):
        assert search(r"name\C").pattern == r"name\C"


class TestInvalid:
    """Tests for rejected patterns."""

    def test_invalid_regex_keeps_previous_state(self):
        """A bad regex leaves the previous pattern and matches alone."""
        engine = search("name")
        with pytest.raises(InvalidPatternError) as excinfo:
            engine.set_pattern("(")
        assert str(excinfo.value).startswith("Invalid pattern: ")
        assert engine.pattern == "name"
        assert nodes(engine) == [1, 2, 4]

    def test_empty_pattern(self):
        engine = SearchEngine()
        with pytest.raises(InvalidPatternError):
            engine.set_pattern("")
        with pytest.raises(InvalidPatternError):
            engine.set_pattern(r"\c")
        assert engine.active is False


class TestScope:
    """Tests for which parts of a node are searched."""

    def test_keys_only(self):
        assert nodes(search("name", scope=SearchScope.KEYS)) == [1, 2]

    def test_values_only(self):
        assert nodes(search("name", scope=SearchScope.VALUES)) == [4]
        assert nodes(search("5", scope=SearchScope.VALUES)) == [5]

    def test_key_before_value(self):
        engine = search("ab", '{"ab":"ab"}')
        assert engine.matches == [
            SearchMatch(1, True, 0, 2),
            SearchMatch(1, False, 0, 2),
        ]

    def test_matches_raw_text(self):
        assert nodes(search(r"2\.50", "[2.50, 2.5]")) == [1]
        assert nodes(search(r"\\n", r'["a\nb"]')) == [1]

    def test_duplicate_keys_both_match(self):
        assert nodes(search("k", '{"k":1,"k":2}')) == [1, 2]

    def test_zero_width_matches_skipped(self):
        """Empty matches are never reported."""
        engine = search("x*", '["abc","xx"]')
        assert engine.matches == [SearchMatch(2, False, 0, 2)]

    def test_matches_ignore_collapse_state(self):
        tree = parse(DOC)
        tree.collapse_all(0)
        engine = SearchEngine()
        engine.set_pattern("name")
        assert engine.find_all(tree) == 3


class TestNavigation:
    """Tests for moving between matches."""

    def test_next_wraps(self):
        """n past the last match wraps to the first."""
        engine = search("name")
        assert [engine.next_match().node for _ in range(4)] == [1, 2, 4, 1]

    def test_prev_wraps(self):
        engine = search("name")
        assert [engine.prev_match().node for _ in range(4)] == [4, 2, 1, 4]

    def test_no_matches(self):
        engine = search("zzz")
        assert engine.next_match() is None
        assert engine.prev_match() is None
        assert engine.select_from(0, True) is None

    def test_select_from(self):
        engine = search("name")
        assert engine.select_from(2, True).node == 4
        assert engine.select_from(4, True).node == 1
        assert engine.select_from(2, False).node == 1
        assert engine.select_from(1, False).node == 4
        assert engine.select_from(0, True).node == 1

    def test_matches_for(self):
        engine = search("ab", '{"ab":"ab","c":1}')
        engine.next_match()
        assert engine.matches_for(1) == [
            (SearchMatch(1, True, 0, 2), True),
            (SearchMatch(1, False, 0, 2), False),
        ]
        assert engine.matches_for(2) == []
