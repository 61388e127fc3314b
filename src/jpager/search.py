"""Regex search over node keys and scalar values."""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from enum import Enum

from jpager.errors import InvalidPatternError
from jpager.tree import ValueTree


class SearchScope(Enum):
    KEYS = "keys"
    VALUES = "values"
    ALL = "all"


@dataclass(frozen=True)
class SearchMatch:
    node: int
    in_key: bool
    start: int  # offsets into the raw key or raw scalar text
    end: int


class SearchEngine:
    """Compiled pattern plus a circular list of matches in document order.

    Matches depend only on node content, never on collapse state, and are
    recomputed only when ``find_all`` is called again.
    """

    def __init__(self, scope: SearchScope = SearchScope.ALL) -> None:
        self.scope = scope
        self.pattern = ""
        self.regex: re.Pattern[str] | None = None
        self.forward = True
        self.matches: list[SearchMatch] = []
        self.current = -1
        self._match_nodes: list[int] = []
        self._by_node: dict[int, list[int]] = {}

    @property
    def active(self) -> bool:
        return self.regex is not None

    def set_pattern(self, pattern: str, case_sensitive: bool | None = None) -> None:
        """Compile ``pattern``; prior state is untouched when it is invalid.

        Without an explicit ``case_sensitive`` the pattern is matched
        case-insensitively unless it contains an uppercase letter.  A trailing
        ``\\c`` or ``\\C`` forces insensitive or sensitive matching.
        """
        source = pattern
        if source.endswith("\\c"):
            source = source[:-2]
            case_sensitive = False
        elif source.endswith("\\C"):
            source = source[:-2]
            case_sensitive = True
        if not source:
            raise InvalidPatternError(pattern, "empty pattern")
        if case_sensitive is None:
            case_sensitive = any(ch.isupper() for ch in source)
        try:
            regex = re.compile(source, 0 if case_sensitive else re.IGNORECASE)
        except re.error as e:
            raise InvalidPatternError(pattern, str(e)) from e
        self.pattern = pattern
        self.regex = regex
        self.clear_matches()

    def clear_matches(self) -> None:
        self.matches = []
        self.current = -1
        self._match_nodes = []
        self._by_node = {}

    def find_all(self, tree: ValueTree) -> int:
        """Scan every node in document order, key before value."""
        self.clear_matches()
        regex = self.regex
        if regex is None:
            return 0
        want_keys = self.scope is not SearchScope.VALUES
        want_values = self.scope is not SearchScope.KEYS
        matches = self.matches
        for node in tree.nodes:
            if want_keys and node.key_raw is not None:
                for m in regex.finditer(node.key_raw):
                    if m.end() > m.start():
                        matches.append(SearchMatch(node.index, True, m.start(), m.end()))
            if want_values and node.children is None:
                for m in regex.finditer(node.raw):
                    if m.end() > m.start():
                        matches.append(SearchMatch(node.index, False, m.start(), m.end()))
        for i, match in enumerate(matches):
            self._match_nodes.append(match.node)
            self._by_node.setdefault(match.node, []).append(i)
        return len(matches)

    # -- Navigation --------------------------------------------------------

    def next_match(self) -> SearchMatch | None:
        if not self.matches:
            return None
        self.current = (self.current + 1) % len(self.matches)
        return self.matches[self.current]

    def prev_match(self) -> SearchMatch | None:
        if not self.matches:
            return None
        if self.current < 0:
            self.current = len(self.matches) - 1
        else:
            self.current = (self.current - 1) % len(self.matches)
        return self.matches[self.current]

    def select_from(self, node: int, forward: bool) -> SearchMatch | None:
        """Select the first match strictly after (or before) ``node``, wrapping."""
        if not self.matches:
            return None
        if forward:
            i = bisect_right(self._match_nodes, node)
            self.current = i if i < len(self.matches) else 0
        else:
            i = bisect_left(self._match_nodes, node) - 1
            self.current = i if i >= 0 else len(self.matches) - 1
        return self.matches[self.current]

    def matches_for(self, node: int) -> list[tuple[SearchMatch, bool]]:
        """Matches on one node, each paired with whether it is the current one."""
        return [
            (self.matches[i], i == self.current) for i in self._by_node.get(node, ())
        ]
