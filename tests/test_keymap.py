"""Tests for the keystroke grammar."""

import pytest

from jpager.keymap import (
    Action,
    Command,
    InputMode,
    InputStateMachine,
    build_transitions,
)


def feed(machine, *tokens):
    """Feed printable tokens; returns the last result."""
    result = None
    for token in tokens:
        result = machine.feed(token, token if len(token) == 1 else None)
    return result


class TestCounts:
    """Tests for numeric count prefixes."""

    def test_single_key(self):
        assert feed(InputStateMachine(), "j") == Command(Action.MOVE_DOWN)

    def test_count(self):
        assert feed(InputStateMachine(), "5", "j") == Command(Action.MOVE_DOWN, 5)
        assert feed(InputStateMachine(), "1", "2", "G") == Command(Action.MOVE_BOTTOM, 12)

    def test_zero_alone_scrolls_home(self):
        """A lone 0 is a command, not the start of a count."""
        assert feed(InputStateMachine(), "0") == Command(Action.SCROLL_HOME)

    def test_zero_inside_count(self):
        assert feed(InputStateMachine(), "1", "0", "j") == Command(Action.MOVE_DOWN, 10)

    def test_count_limit(self):
        m = InputStateMachine()
        assert feed(m, *"9999999") is None
        assert m.pending == ""

    def test_repeat_default(self):
        assert Command(Action.MOVE_DOWN).repeat() == 1
        assert Command(Action.COLLAPSE_ALL, 2).repeat(1) == 2


class TestChords:
    """Tests for multi-key chords."""

    def test_gg(self):
        m = InputStateMachine()
        assert feed(m, "g") is None
        assert m.pending == "g"
        assert feed(m, "g") == Command(Action.MOVE_TOP)
        assert m.pending == ""

    def test_z_chords(self):
        assert feed(InputStateMachine(), "z", "a") == Command(Action.TOGGLE)
        assert feed(InputStateMachine(), "z", "M") == Command(Action.COLLAPSE_ALL)
        assert feed(InputStateMachine(), "2", "z", "M") == Command(Action.COLLAPSE_ALL, 2)

    def test_yank_chords(self):
        assert feed(InputStateMachine(), "y", "p") == Command(Action.YANK_PATH)
        assert feed(InputStateMachine(), "y", "k") == Command(Action.YANK_KEY)

    def test_abandoned_prefix_discarded(self):
        """An unknown second key drops the pending chord silently."""
        m = InputStateMachine()
        assert feed(m, "g", "x") is None
        assert m.pending == ""
        assert feed(m, "j") == Command(Action.MOVE_DOWN)

    def test_abandoned_count_discarded(self):
        m = InputStateMachine()
        assert feed(m, "3", "x") is None
        assert feed(m, "j") == Command(Action.MOVE_DOWN)

    def test_escape_discards(self):
        m = InputStateMachine()
        feed(m, "2", "z")
        assert m.pending == "2z"
        assert m.feed("escape") is None
        assert m.pending == ""

    def test_key_names(self):
        m = InputStateMachine()
        assert m.feed("down") == Command(Action.MOVE_DOWN)
        assert m.feed("ctrl+d") == Command(Action.HALF_PAGE_DOWN)
        assert m.feed("space", " ") == Command(Action.TOGGLE)
        assert m.feed("enter", "\r") == Command(Action.TOGGLE)
        assert m.feed("pagedown") == Command(Action.PAGE_DOWN)


class TestTransitions:
    """Tests for the chord transition table."""

    def test_prefix_of_complete_command(self):
        with pytest.raises(ValueError):
            build_transitions({("g",): Action.MOVE_TOP, ("g", "g"): Action.MOVE_TOP})
        with pytest.raises(ValueError):
            build_transitions({("g", "g"): Action.MOVE_TOP, ("g",): Action.MOVE_TOP})

    def test_shared_prefix(self):
        table = build_transitions({("z", "a"): Action.TOGGLE, ("z", "o"): Action.EXPAND})
        assert table[((), "z")] == (None, ("z",))
        assert table[(("z",), "o")] == (Action.EXPAND, ())


class TestPrompt:
    """Tests for the search and command prompts."""

    def test_search_prompt_lifecycle(self):
        """Typing, editing and submitting a search pattern."""
        m = InputStateMachine()
        assert feed(m, "/") == Command(Action.START_SEARCH_FORWARD)
        assert m.mode is InputMode.SEARCH
        assert m.prompt == "/"
        feed(m, "a", "j")
        assert m.buffer == "aj"
        assert m.feed("backspace") is None
        assert m.buffer == "a"
        assert m.feed("enter", "\r") == Command(Action.SEARCH_FORWARD, argument="a")
        assert m.mode is InputMode.NORMAL
        assert m.histories[InputMode.SEARCH] == ["a"]

    def test_backward_search(self):
        m = InputStateMachine()
        feed(m, "?", "x")
        assert m.feed("enter") == Command(Action.SEARCH_BACKWARD, argument="x")

    def test_command_prompt(self):
        m = InputStateMachine()
        feed(m, ":", "q")
        assert m.mode is InputMode.COMMAND
        assert m.feed("enter") == Command(Action.EXECUTE, argument="q")
        assert m.histories[InputMode.COMMAND] == ["q"]
        assert m.histories[InputMode.SEARCH] == []

    def test_escape_cancels(self):
        """Escape leaves the prompt without running anything."""
        m = InputStateMachine()
        feed(m, "/", "a")
        assert m.feed("escape") == Command(Action.CANCEL_PROMPT)
        assert m.mode is InputMode.NORMAL
        assert m.buffer == ""

    def test_backspace_on_empty_cancels(self):
        m = InputStateMachine()
        feed(m, ":")
        assert m.feed("backspace") == Command(Action.CANCEL_PROMPT)

    def test_empty_submit_not_recorded(self):
        m = InputStateMachine()
        feed(m, "/")
        assert m.feed("enter") == Command(Action.SEARCH_FORWARD, argument="")
        assert m.histories[InputMode.SEARCH] == []

    def test_open_prompt_prefilled(self):
        m = InputStateMachine()
        m.open_prompt("/", "abc")
        assert (m.mode, m.buffer) == (InputMode.SEARCH, "abc")


class TestHistory:
    """Tests for prompt history."""

    def test_navigation(self):
        """Up and Down walk the history like a shell."""
        m = InputStateMachine()
        m.add_history(InputMode.SEARCH, "one")
        m.add_history(InputMode.SEARCH, "two")
        m.open_prompt("/")
        m.feed("up")
        assert m.buffer == "two"
        m.feed("up")
        assert m.buffer == "one"
        m.feed("up")
        assert m.buffer == "one"
        m.feed("down")
        assert m.buffer == "two"
        m.feed("down")
        assert m.buffer == ""

    def test_duplicates_move_to_front(self):
        m = InputStateMachine()
        for entry in ("a", "b", "a"):
            m.add_history(InputMode.SEARCH, entry)
        assert m.histories[InputMode.SEARCH] == ["a", "b"]

    def test_size_limit(self):
        m = InputStateMachine(history_size=2)
        for entry in ("a", "b", "c"):
            m.add_history(InputMode.COMMAND, entry)
        assert m.histories[InputMode.COMMAND] == ["c", "b"]
