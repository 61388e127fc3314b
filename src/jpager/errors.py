"""Error types shared by the pager core."""

from __future__ import annotations


class JpagerError(Exception):
    """Base class for pager errors."""


class ParseError(JpagerError):
    """Malformed input document."""

    def __init__(self, line: int, column: int, message: str) -> None:
        super().__init__(f"{message} (line {line}, column {column})")
        self.line = line
        self.column = column
        self.message = message


class ParseCancelled(JpagerError):
    """Raised inside the parser when its cancel token fires."""


class InvalidPatternError(JpagerError):
    """Search pattern failed to compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid pattern: {reason}")
        self.pattern = pattern
        self.reason = reason


class InvalidChordError(JpagerError):
    """Keystroke sequence that continues no chord."""

    def __init__(self, sequence: tuple[str, ...]) -> None:
        super().__init__("unknown: " + "".join(sequence))
        self.sequence = sequence
