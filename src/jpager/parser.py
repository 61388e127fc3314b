"""JSON scanner that builds arena nodes and emits them as tree deltas.

The scanner keeps what a pager needs to show the document as written:
object keys keep their order and duplicates, numbers keep their source text,
and strings keep their escapes alongside the decoded value.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator

from jpager.errors import ParseCancelled, ParseError
from jpager.tree import Node, NodeKind, TreeDelta, ValueTree

_WS_RE = re.compile(r"[ \t\n\r]*")
_INLINE_WS_RE = re.compile(r"[ \t\r]*")
_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?")
_STRING_RE = re.compile(r'"([^"\\\x00-\x1f]*(?:\\.[^"\\\x00-\x1f]*)*)"', re.DOTALL)
_LITERALS = (
    ("true", NodeKind.BOOL),
    ("false", NodeKind.BOOL),
    ("null", NodeKind.NULL),
)

# cancel token polling interval, in nodes
CHECK_INTERVAL = 1024


class JsonParser:
    """Incremental producer of :class:`TreeDelta` objects.

    ``deltas()`` yields the root first.  When the root is a container its
    completed members follow one delta each, so a consumer can show the
    document while the rest is still being scanned.  In line-delimited mode
    a synthetic root array is yielded first and every record is a member.
    """

    def __init__(
        self,
        text: str,
        *,
        line_delimited: bool = False,
        cancel=None,
    ) -> None:
        self._text = text
        self._pos = 0
        self._next_index = 0
        self.line_delimited = line_delimited
        self._cancel = cancel

    @property
    def position(self) -> int:
        return self._pos

    @property
    def length(self) -> int:
        return len(self._text)

    # -- Entry points ------------------------------------------------------

    def deltas(self) -> Iterator[TreeDelta]:
        if self._text.startswith("\ufeff"):
            self._pos = 1
        if self.line_delimited:
            yield from self._records()
        else:
            yield from self._document()

    def _document(self) -> Iterator[TreeDelta]:
        self._skip_ws()
        if self._pos >= len(self._text):
            raise self._error("empty document")
        ch = self._text[self._pos]
        if ch not in "{[":
            nodes: list[Node] = []
            self._read_value(None, 0, None, nodes)
            self._expect_end()
            yield TreeDelta(nodes, None)
            return

        self._pos += 1
        kind = NodeKind.OBJECT if ch == "{" else NodeKind.ARRAY
        closer = "}" if ch == "{" else "]"
        root = Node(self._take_index(), kind)
        yield TreeDelta([root], None)
        self._skip_ws()
        if self._peek() == closer:
            self._pos += 1
            self._expect_end()
            return
        while True:
            self._check_cancel()
            key = self._read_key() if kind is NodeKind.OBJECT else None
            nodes = []
            self._read_value(root.index, 1, key, nodes)
            yield TreeDelta(nodes, root.index)
            self._skip_ws()
            ch = self._peek()
            if ch == ",":
                self._pos += 1
                continue
            if ch == closer:
                self._pos += 1
                break
            raise self._error(f"expected ',' or '{closer}'")
        self._expect_end()

    def _records(self) -> Iterator[TreeDelta]:
        root = Node(self._take_index(), NodeKind.ARRAY, depth=-1, synthetic=True)
        yield TreeDelta([root], None)
        text = self._text
        while True:
            self._check_cancel()
            self._skip_ws()
            if self._pos >= len(text):
                return
            nodes: list[Node] = []
            self._read_value(root.index, 0, None, nodes)
            yield TreeDelta(nodes, root.index)
            self._pos = _INLINE_WS_RE.match(text, self._pos).end()
            if self._pos < len(text) and text[self._pos] != "\n":
                raise self._error("expected newline after record")

    # -- Scanning ----------------------------------------------------------

    def _read_value(
        self,
        parent: int | None,
        depth: int,
        key: tuple[str, str] | None,
        out: list[Node],
    ) -> Node:
        """Scan one complete value into ``out`` without recursion."""
        stack: list[tuple[Node, str]] = []
        first: Node | None = None
        while True:
            node = self._read_atom(parent, depth, key)
            if stack:
                container = stack[-1][0]
                node.position = len(container.children)
                container.children.append(node.index)
            out.append(node)
            if first is None:
                first = node

            if node.children is not None:
                closer = "}" if node.kind is NodeKind.OBJECT else "]"
                self._skip_ws()
                if self._peek() == closer:
                    self._pos += 1
                else:
                    stack.append((node, closer))
                    parent, depth = node.index, node.depth + 1
                    key = self._read_key() if node.kind is NodeKind.OBJECT else None
                    continue

            # value finished: close containers until one wants another member
            while stack:
                container, closer = stack[-1]
                self._skip_ws()
                ch = self._peek()
                if ch == ",":
                    self._pos += 1
                    parent, depth = container.index, container.depth + 1
                    key = (
                        self._read_key()
                        if container.kind is NodeKind.OBJECT
                        else None
                    )
                    break
                if ch == closer:
                    self._pos += 1
                    stack.pop()
                    continue
                raise self._error(f"expected ',' or '{closer}'")
            else:
                return first

    def _read_atom(
        self, parent: int | None, depth: int, key: tuple[str, str] | None
    ) -> Node:
        """Scan a scalar or the opening bracket of a container."""
        if self._next_index % CHECK_INTERVAL == 0:
            self._check_cancel()
        self._skip_ws()
        text = self._text
        pos = self._pos
        key_raw, key_text = key if key is not None else (None, None)
        if pos >= len(text):
            raise self._error("unexpected end of input")
        ch = text[pos]
        common = dict(parent=parent, depth=depth, key=key_text, key_raw=key_raw)

        if ch == "{" or ch == "[":
            self._pos = pos + 1
            kind = NodeKind.OBJECT if ch == "{" else NodeKind.ARRAY
            return Node(self._take_index(), kind, **common)
        if ch == '"':
            raw, value = self._read_string()
            return Node(self._take_index(), NodeKind.STRING, raw=raw, text=value, **common)
        if ch == "-" or ch.isdigit():
            match = _NUMBER_RE.match(text, pos)
            if match is None:
                raise self._error("invalid number")
            self._pos = match.end()
            return Node(self._take_index(), NodeKind.NUMBER, raw=match.group(), **common)
        for literal, kind in _LITERALS:
            if text.startswith(literal, pos):
                self._pos = pos + len(literal)
                return Node(self._take_index(), kind, raw=literal, **common)
        raise self._error("expected value")

    def _read_string(self) -> tuple[str, str]:
        match = _STRING_RE.match(self._text, self._pos)
        if match is None:
            raise self._error("unterminated string or control character in string")
        raw = match.group(1)
        value = raw
        if "\\" in raw:
            try:
                value = json.loads(f'"{raw}"')
            except json.JSONDecodeError as e:
                self._pos += e.pos
                raise self._error("invalid string escape") from e
        self._pos = match.end()
        return raw, value

    def _read_key(self) -> tuple[str, str]:
        self._skip_ws()
        if self._peek() != '"':
            raise self._error("expected object key")
        key = self._read_string()
        self._skip_ws()
        if self._peek() != ":":
            raise self._error("expected ':' after object key")
        self._pos += 1
        return key

    def _skip_ws(self) -> None:
        self._pos = _WS_RE.match(self._text, self._pos).end()

    def _peek(self) -> str:
        return self._text[self._pos : self._pos + 1]

    def _expect_end(self) -> None:
        self._skip_ws()
        if self._pos < len(self._text):
            raise self._error("unexpected trailing characters")

    def _take_index(self) -> int:
        index = self._next_index
        self._next_index += 1
        return index

    def _check_cancel(self) -> None:
        if self._cancel is not None and self._cancel.cancelled:
            raise ParseCancelled()

    def _error(self, message: str) -> ParseError:
        line, column = line_column(self._text, self._pos)
        return ParseError(line, column, message)


def line_column(text: str, pos: int) -> tuple[int, int]:
    """1-based line and column of offset ``pos``."""
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column


def decode(data: bytes) -> str:
    """Decode document bytes as UTF-8, reporting bad bytes as parse errors."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        line = data.count(b"\n", 0, e.start) + 1
        column = e.start - (data.rfind(b"\n", 0, e.start) + 1) + 1
        raise ParseError(line, column, "invalid UTF-8") from e


def parse(
    text: str, *, line_delimited: bool = False, collapse_depth: int | None = None
) -> ValueTree:
    """Parse a whole document synchronously."""
    tree = ValueTree(line_delimited=line_delimited, collapse_depth=collapse_depth)
    for delta in JsonParser(text, line_delimited=line_delimited).deltas():
        tree.graft(delta)
    tree.finish()
    return tree


def parse_bytes(
    data: bytes, *, line_delimited: bool = False, collapse_depth: int | None = None
) -> ValueTree:
    return parse(
        decode(data), line_delimited=line_delimited, collapse_depth=collapse_depth
    )
