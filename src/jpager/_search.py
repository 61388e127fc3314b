"""Search mixin for JsonPager."""

from __future__ import annotations

from jpager.errors import InvalidPatternError
from jpager.keymap import InputMode
from jpager.search import SearchMatch


class SearchMixin:
    """Search-related methods for JsonPager."""

    def _execute_search(self, pattern: str, forward: bool) -> None:
        """Run a pattern submitted from the ``/`` or ``?`` prompt."""
        search = self.search
        if not pattern:
            if not search.pattern:
                self.status_msg = "No previous search"
                return
            pattern = search.pattern

        try:
            search.set_pattern(pattern)
        except InvalidPatternError as e:
            # 이전 검색 상태는 그대로, 패턴을 다시 입력받는다
            self.status_msg = str(e)
            self.keys.open_prompt("/" if forward else "?", pattern)
            return

        search.forward = forward
        search.find_all(self.value_tree)
        if not search.matches:
            self.status_msg = f"Pattern not found: {pattern}"
            return

        cursor = self.controller.cursor
        reference = cursor.node
        if cursor.closing:
            # a closing row comes after everything inside its container
            last = self.value_tree.last_descendant(reference)
            reference = last if forward else last + 1
        match = search.select_from(reference, forward)
        self._goto_match(match)

    def _goto_match(self, match: SearchMatch | None) -> None:
        """Reveal the match's node and report its position in the list."""
        if match is None:
            return
        self.controller.focus_node(match.node)
        search = self.search
        prefix = "/" if search.forward else "?"
        self.status_msg = (
            f"{prefix}{search.pattern}  [{search.current + 1}/{len(search.matches)}]"
        )

    def _goto_next_match(self, reverse: bool = False) -> None:
        """``n`` repeats the last search direction, ``N`` reverses it."""
        search = self.search
        if not search.matches:
            if search.pattern:
                self.status_msg = f"Pattern not found: {search.pattern}"
            else:
                self.status_msg = "No previous search"
            return
        if search.forward != reverse:
            self._goto_match(search.next_match())
        else:
            self._goto_match(search.prev_match())

    def _refresh_search(self) -> None:
        """Re-scan after the document changed (end of a background load)."""
        search = self.search
        if not search.active:
            return
        count = search.find_all(self.value_tree)
        if count:
            self.status_msg = f"{search.pattern}: {count} matches"

    # -- Row highlights ----------------------------------------------------

    def _line_highlights(self, line, formatted) -> list[tuple[int, int, bool]]:
        """Match ranges for one rendered row, in row columns."""
        highlights = []
        for match, current in self.search.matches_for(line.node):
            span = formatted.key_span if match.in_key else formatted.value_span
            if span is None:
                continue
            start = span[0] + match.start
            highlights.append((start, span[0] + match.end, current))
        return highlights

    # -- History -----------------------------------------------------------

    def get_history(self) -> dict:
        """Get search and command history for persistence."""
        return {
            "search": self.keys.histories[InputMode.SEARCH][:],
            "command": self.keys.histories[InputMode.COMMAND][:],
        }

    def set_history(self, history: dict) -> None:
        """Restore search and command history."""
        limit = self.keys.history_size
        if "search" in history:
            self.keys.histories[InputMode.SEARCH] = history["search"][:limit]
        if "command" in history:
            self.keys.histories[InputMode.COMMAND] = history["command"][:limit]
