"""Row text and styling for flattened lines."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field

from rich.text import Text

from jpager.flatten import Line, LineRole
from jpager.tree import NodeKind, ValueTree, scalar_json

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

STYLES = {
    "key": "cyan",
    "string": "green",
    "number": "yellow",
    "keyword": "magenta",
    "bracket": "bold white",
    "punct": "white",
    "summary": "dim italic",
}
CURSOR_LINE_STYLE = "on grey23"
MATCH_STYLE = "black on dark_goldenrod"
CURRENT_MATCH_STYLE = "black on yellow"

_VALUE_CLASS = {
    NodeKind.STRING: "string",
    NodeKind.NUMBER: "number",
    NodeKind.BOOL: "keyword",
    NodeKind.NULL: "keyword",
}
_OPENERS = {NodeKind.OBJECT: "{", NodeKind.ARRAY: "["}
_CLOSERS = {NodeKind.OBJECT: "}", NodeKind.ARRAY: "]"}


@dataclass
class DisplayOptions:
    data_mode: bool = True
    indent: int = 2


@dataclass
class FormattedLine:
    """Plain row text with style classes over character ranges.

    ``key_span`` and ``value_span`` locate the node's raw key and raw scalar
    text inside ``text`` so search matches can be painted over them.
    """

    text: str = ""
    spans: list[tuple[int, int, str]] = field(default_factory=list)
    key_span: tuple[int, int] | None = None
    value_span: tuple[int, int] | None = None

    def add(self, chunk: str, cls: str | None = None) -> tuple[int, int]:
        start = len(self.text)
        self.text += chunk
        end = len(self.text)
        if cls is not None and chunk:
            self.spans.append((start, end, cls))
        return start, end


def _item_count(count: int) -> str:
    return f" ({count} item{'' if count == 1 else 's'})"


def format_line(tree: ValueTree, line: Line, options: DisplayOptions) -> FormattedLine:
    node = tree.nodes[line.node]
    out = FormattedLine()
    out.add(" " * (options.indent * max(line.depth, 0)))
    data_mode = options.data_mode
    role = line.role

    if line.keyed and role is not LineRole.CONTAINER_CLOSE:
        key_raw = node.key_raw
        if data_mode and _IDENTIFIER_RE.match(key_raw):
            out.key_span = out.add(key_raw, "key")
        else:
            start, end = out.add(f'"{key_raw}"', "key")
            out.key_span = (start + 1, end - 1)
        out.add(": ", "punct")

    if role is LineRole.CONTAINER_OPEN:
        out.add(_OPENERS[node.kind], "bracket")
        return out
    if role is LineRole.CONTAINER_CLOSE:
        out.add(_CLOSERS[node.kind], "bracket")
    elif role in (LineRole.KEYED_SCALAR, LineRole.BARE_SCALAR):
        start, end = out.add(scalar_json(node), _VALUE_CLASS[node.kind])
        if node.kind is NodeKind.STRING:
            out.value_span = (start + 1, end - 1)
        else:
            out.value_span = (start, end)
    else:
        opener, closer = _OPENERS[node.kind], _CLOSERS[node.kind]
        if node.children:
            out.add(opener, "bracket")
            out.add("...", "summary")
            out.add(closer, "bracket")
        else:
            out.add(opener + closer, "bracket")

    if not data_mode and not line.last:
        out.add(",", "punct")
    if data_mode and node.children and role is not LineRole.CONTAINER_CLOSE:
        # collapsed summary row
        out.add(_item_count(len(node.children)), "summary")
    return out


def char_width(ch: str) -> int:
    """Return display width of a character (2 for fullwidth/wide)."""
    if ch < "\u0100":
        return 1
    return 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1


def text_width(text: str) -> int:
    if text.isascii():
        return len(text)
    return sum(char_width(ch) for ch in text)


def _crop(text: str, left: int, width: int | None) -> tuple[int, int, int]:
    """Character range that fits in display columns ``[left, left + width)``.

    Returns ``(first, last, lead)`` where ``lead`` is the number of blank
    columns standing in for a wide character cut by the left edge.
    """
    if text.isascii():
        first = min(left, len(text))
        last = len(text) if width is None else min(left + width, len(text))
        return first, max(first, last), 0
    right = None if width is None else left + width
    first = None
    lead = 0
    col = 0
    stop = len(text)
    for i, ch in enumerate(text):
        cw = char_width(ch)
        if right is not None and col + cw > right:
            stop = i
            break
        if first is None and col >= left:
            first = i
            lead = col - left
        col += cw
    if first is None:
        return stop, stop, 0
    return first, stop, lead


def fit_width(text: str, width: int) -> str:
    """Longest prefix of ``text`` that fits in ``width`` display columns."""
    _, last, _ = _crop(text, 0, max(0, width))
    return text[:last]

def to_text(
    formatted: FormattedLine,
    *,
    left: int = 0,
    width: int | None = None,
    cursor: bool = False,
    highlights: list[tuple[int, int, bool]] | None = None,
) -> Text:
    """Styled row cropped to ``width`` display columns starting at column ``left``.

    ``highlights`` holds ``(start, end, is_current)`` character ranges.
    """
    first, last, lead = _crop(formatted.text, left, width)
    plain = " " * lead + formatted.text[first:last]
    result = Text(
        plain,
        style=CURSOR_LINE_STYLE if cursor else "",
        no_wrap=True,
        overflow="crop",
    )

    def paint(start: int, stop: int, style: str) -> None:
        start = max(start, first)
        stop = min(stop, last)
        if start < stop:
            result.stylize(style, start - first + lead, stop - first + lead)

    for start, stop, cls in formatted.spans:
        paint(start, stop, STYLES[cls])
    for start, stop, current in highlights or ():
        paint(start, stop, CURRENT_MATCH_STYLE if current else MATCH_STYLE)
    used = text_width(plain)
    if cursor and width is not None and used < width:
        result.append(" " * (width - used), style=CURSOR_LINE_STYLE)
    return result
