"""Keystroke grammar: counts, chords and prompt input.

Normal-mode dispatch is a table keyed by ``(pending prefix, next key)``.  A
value of ``(None, prefix)`` extends the chord; ``(action, ())`` completes it.
Everything here is independent of the widget so it can be driven directly
from tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto

from jpager.errors import InvalidChordError

logger = logging.getLogger(__name__)


class InputMode(Enum):
    NORMAL = auto()
    SEARCH = auto()
    COMMAND = auto()


class Action(Enum):
    MOVE_DOWN = auto()
    MOVE_UP = auto()
    MOVE_TOP = auto()
    MOVE_BOTTOM = auto()
    NEXT_SIBLING = auto()
    PREV_SIBLING = auto()
    PARENT = auto()
    TOGGLE = auto()
    EXPAND = auto()
    COLLAPSE = auto()
    EXPAND_RECURSIVE = auto()
    COLLAPSE_RECURSIVE = auto()
    EXPAND_ALL = auto()
    COLLAPSE_ALL = auto()
    SCROLL_DOWN = auto()
    SCROLL_UP = auto()
    HALF_PAGE_DOWN = auto()
    HALF_PAGE_UP = auto()
    PAGE_DOWN = auto()
    PAGE_UP = auto()
    CURSOR_TO_TOP = auto()
    CURSOR_TO_CENTER = auto()
    CURSOR_TO_BOTTOM = auto()
    SCROLL_LEFT = auto()
    SCROLL_RIGHT = auto()
    SCROLL_HOME = auto()
    SEARCH_NEXT = auto()
    SEARCH_PREV = auto()
    YANK_VALUE = auto()
    YANK_PATH = auto()
    YANK_KEY = auto()
    TOGGLE_MODE = auto()
    SHOW_INFO = auto()
    QUIT = auto()
    # prompt lifecycle
    START_SEARCH_FORWARD = auto()
    START_SEARCH_BACKWARD = auto()
    START_COMMAND = auto()
    CANCEL_PROMPT = auto()
    SEARCH_FORWARD = auto()
    SEARCH_BACKWARD = auto()
    EXECUTE = auto()


@dataclass(frozen=True)
class Command:
    action: Action
    count: int | None = None
    argument: str = ""

    def repeat(self, default: int = 1) -> int:
        return self.count if self.count is not None else default


KEYMAP: dict[tuple[str, ...], Action] = {
    ("j",): Action.MOVE_DOWN,
    ("down",): Action.MOVE_DOWN,
    ("k",): Action.MOVE_UP,
    ("up",): Action.MOVE_UP,
    ("g", "g"): Action.MOVE_TOP,
    ("home",): Action.MOVE_TOP,
    ("G",): Action.MOVE_BOTTOM,
    ("end",): Action.MOVE_BOTTOM,
    ("J",): Action.NEXT_SIBLING,
    ("K",): Action.PREV_SIBLING,
    ("H",): Action.PARENT,
    ("enter",): Action.TOGGLE,
    (" ",): Action.TOGGLE,
    ("space",): Action.TOGGLE,
    ("z", "a"): Action.TOGGLE,
    ("z", "o"): Action.EXPAND,
    ("z", "c"): Action.COLLAPSE,
    ("z", "O"): Action.EXPAND_RECURSIVE,
    ("z", "C"): Action.COLLAPSE_RECURSIVE,
    ("z", "R"): Action.EXPAND_ALL,
    ("z", "M"): Action.COLLAPSE_ALL,
    ("z", "t"): Action.CURSOR_TO_TOP,
    ("z", "z"): Action.CURSOR_TO_CENTER,
    ("z", "b"): Action.CURSOR_TO_BOTTOM,
    ("z", "h"): Action.SCROLL_LEFT,
    ("z", "l"): Action.SCROLL_RIGHT,
    ("ctrl+e",): Action.SCROLL_DOWN,
    ("ctrl+y",): Action.SCROLL_UP,
    ("ctrl+d",): Action.HALF_PAGE_DOWN,
    ("ctrl+u",): Action.HALF_PAGE_UP,
    ("ctrl+f",): Action.PAGE_DOWN,
    ("pagedown",): Action.PAGE_DOWN,
    ("ctrl+b",): Action.PAGE_UP,
    ("pageup",): Action.PAGE_UP,
    ("h",): Action.SCROLL_LEFT,
    ("left",): Action.SCROLL_LEFT,
    ("l",): Action.SCROLL_RIGHT,
    ("right",): Action.SCROLL_RIGHT,
    ("0",): Action.SCROLL_HOME,
    ("n",): Action.SEARCH_NEXT,
    ("N",): Action.SEARCH_PREV,
    ("y", "y"): Action.YANK_VALUE,
    ("y", "p"): Action.YANK_PATH,
    ("y", "k"): Action.YANK_KEY,
    ("m",): Action.TOGGLE_MODE,
    ("ctrl+g",): Action.SHOW_INFO,
    ("q",): Action.QUIT,
    ("ctrl+c",): Action.QUIT,
    ("/",): Action.START_SEARCH_FORWARD,
    ("?",): Action.START_SEARCH_BACKWARD,
    (":",): Action.START_COMMAND,
}


def build_transitions(
    keymap: dict[tuple[str, ...], Action],
) -> dict[tuple[tuple[str, ...], str], tuple[Action | None, tuple[str, ...]]]:
    table: dict[tuple[tuple[str, ...], str], tuple[Action | None, tuple[str, ...]]] = {}
    for sequence, action in keymap.items():
        for i, key in enumerate(sequence[:-1]):
            prefix = sequence[:i]
            existing = table.get((prefix, key))
            if existing is not None and existing[0] is not None:
                raise ValueError(f"{sequence!r} extends a complete command")
            table[(prefix, key)] = (None, sequence[: i + 1])
        final = (sequence[:-1], sequence[-1])
        if final in table:
            raise ValueError(f"{sequence!r} conflicts with another chord")
        table[final] = (action, ())
    return table


TRANSITIONS = build_transitions(KEYMAP)

_DIGITS = frozenset("0123456789")
_PROMPTS = {
    Action.START_SEARCH_FORWARD: "/",
    Action.START_SEARCH_BACKWARD: "?",
    Action.START_COMMAND: ":",
}
_SUBMIT = {
    "/": Action.SEARCH_FORWARD,
    "?": Action.SEARCH_BACKWARD,
    ":": Action.EXECUTE,
}
COUNT_LIMIT = 999_999


class InputStateMachine:
    """Turns keystrokes into :class:`Command` objects.

    A count or chord prefix followed by a key that continues no chord is
    discarded as a whole; nothing runs.  Escape discards as well.
    """

    def __init__(self, history_size: int = 50) -> None:
        self.mode = InputMode.NORMAL
        self.count = ""
        self.prefix: tuple[str, ...] = ()
        self.prompt = ""  # "/", "?" or ":" while a prompt is open
        self.buffer = ""
        self.history_size = history_size
        self.histories: dict[InputMode, list[str]] = {
            InputMode.SEARCH: [],
            InputMode.COMMAND: [],
        }
        self._history_idx = -1  # -1 = editing a new entry

    @property
    def pending(self) -> str:
        return self.count + "".join(self.prefix)

    def reset(self) -> None:
        self.count = ""
        self.prefix = ()

    def feed(self, key: str, character: str | None = None) -> Command | None:
        if character and len(character) == 1 and character.isprintable():
            token = character
        else:
            token = key
        if self.mode is not InputMode.NORMAL:
            return self._feed_prompt(key, token)
        if key == "escape":
            self.reset()
            return None
        try:
            return self._feed_normal(token)
        except InvalidChordError as e:
            logger.debug("discarded chord: %s", e)
            self.reset()
            return None

    def _feed_normal(self, token: str) -> Command | None:
        if not self.prefix and token in _DIGITS and (token != "0" or self.count):
            if int(self.count + token) > COUNT_LIMIT:
                raise InvalidChordError(tuple(self.count + token))
            self.count += token
            return None
        entry = TRANSITIONS.get((self.prefix, token))
        if entry is None:
            raise InvalidChordError((*self.count, *self.prefix, token))
        action, prefix = entry
        if action is None:
            self.prefix = prefix
            return None
        count = int(self.count) if self.count else None
        self.reset()
        if action in _PROMPTS:
            self.open_prompt(_PROMPTS[action])
        return Command(action, count)

    # -- Prompt ------------------------------------------------------------

    def open_prompt(self, prompt: str, text: str = "") -> None:
        """Start reading a search pattern (``/``, ``?``) or command (``:``)."""
        self.reset()
        self.mode = InputMode.COMMAND if prompt == ":" else InputMode.SEARCH
        self.prompt = prompt
        self.buffer = text
        self._history_idx = -1

    def _feed_prompt(self, key: str, token: str) -> Command | None:
        if key == "escape":
            self._leave_prompt()
            return Command(Action.CANCEL_PROMPT)
        if key == "enter":
            text = self.buffer
            action = _SUBMIT[self.prompt]
            self.add_history(self.mode, text)
            self._leave_prompt()
            return Command(action, argument=text)
        if key == "backspace":
            if self.buffer:
                self.buffer = self.buffer[:-1]
                self._history_idx = -1
                return None
            self._leave_prompt()
            return Command(Action.CANCEL_PROMPT)
        if key == "up":
            self._history_prev()
            return None
        if key == "down":
            self._history_next()
            return None
        if len(token) == 1 and token.isprintable():
            self.buffer += token
            self._history_idx = -1
        return None

    def _leave_prompt(self) -> None:
        self.mode = InputMode.NORMAL
        self.prompt = ""
        self.buffer = ""
        self._history_idx = -1

    def add_history(self, mode: InputMode, entry: str) -> None:
        """Put ``entry`` at the front of a history, dropping older duplicates."""
        if not entry:
            return
        history = self.histories[mode]
        if entry in history:
            history.remove(entry)
        history.insert(0, entry)
        del history[self.history_size :]

    def _history_prev(self) -> None:
        history = self.histories[self.mode]
        if self._history_idx < len(history) - 1:
            self._history_idx += 1
            self.buffer = history[self._history_idx]

    def _history_next(self) -> None:
        history = self.histories[self.mode]
        if self._history_idx > 0:
            self._history_idx -= 1
            self.buffer = history[self._history_idx]
        elif self._history_idx == 0:
            self._history_idx = -1
            self.buffer = ""
