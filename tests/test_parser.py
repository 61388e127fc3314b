"""Tests for the JSON scanner."""

import pytest

from jpager.errors import ParseCancelled, ParseError
from jpager.loader import CancelToken
from jpager.parser import JsonParser, line_column, parse, parse_bytes
from jpager.tree import NodeKind


class TestValues:
    """Tests for scanning scalar and container values."""

    def test_numbers_keep_source_text(self):
        """Numbers are stored as their source text, never as floats."""
        tree = parse("[1.0, -0, 1e5, 12345678901234567890, 2.50E-3]")
        assert [n.raw for n in tree.nodes[1:]] == [
            "1.0",
            "-0",
            "1e5",
            "12345678901234567890",
            "2.50E-3",
        ]
        assert all(n.kind is NodeKind.NUMBER for n in tree.nodes[1:])

    def test_strings_keep_raw_and_decoded(self):
        tree = parse(r'["aé\n"]')
        node = tree.nodes[1]
        assert node.raw == r"aé\n"
        assert node.text == "aé\n"

    def test_literals(self):
        tree = parse("[true, false, null]")
        assert [n.kind for n in tree.nodes[1:]] == [
            NodeKind.BOOL,
            NodeKind.BOOL,
            NodeKind.NULL,
        ]

    def test_scalar_root(self):
        tree = parse('  "just text"  ')
        assert len(tree) == 1
        assert tree.nodes[0].text == "just text"
        assert tree.visible_line_count() == 1

    def test_key_order_and_escapes(self):
        tree = parse(r'{"z":1,"a\"b":2,"m":3}')
        assert [n.key for n in tree.nodes[1:]] == ["z", 'a"b', "m"]
        assert tree.nodes[2].key_raw == r"a\"b"

    def test_parents_and_depths(self):
        tree = parse('{"a":[{"b":1}]}')
        assert [(n.parent, n.depth) for n in tree.nodes] == [
            (None, 0),
            (0, 1),
            (1, 2),
            (2, 3),
        ]

    def test_deep_nesting_without_recursion(self):
        """Nesting far beyond the recursion limit still parses."""
        depth = 5000
        tree = parse("[" * depth + "]" * depth)
        assert len(tree) == depth
        assert tree.visible_line_count() == 2 * (depth - 1) + 1


class TestErrors:
    """Tests for parse errors and their locations."""

    def _error(self, text, **kwargs):
        with pytest.raises(ParseError) as excinfo:
            parse(text, **kwargs)
        return excinfo.value

    def test_trailing_comma(self):
        err = self._error('{"a":1,}')
        assert (err.line, err.column) == (1, 8)
        assert err.message == "expected object key"

    def test_location_on_later_line(self):
        """Line and column point at the offending character."""
        err = self._error('{\n  "a": tru\n}')
        assert (err.line, err.column) == (2, 8)
        assert "line 2, column 8" in str(err)

    def test_trailing_characters(self):
        assert self._error("{} x").message == "unexpected trailing characters"

    def test_empty_document(self):
        assert self._error("   ").message == "empty document"

    def test_unterminated_string(self):
        self._error('["abc')

    def test_raw_control_character(self):
        self._error('["a\tb"]')

    def test_invalid_escape(self):
        assert self._error(r'["\x"]').message == "invalid string escape"

    def test_missing_colon(self):
        assert self._error('{"a" 1}').message == "expected ':' after object key"

    def test_unclosed_container(self):
        assert self._error("[1, 2").message == "expected ',' or ']'"

    def test_invalid_utf8(self):
        with pytest.raises(ParseError) as excinfo:
            parse_bytes(b'{"a":"\xff"}')
        assert excinfo.value.message == "invalid UTF-8"
        assert excinfo.value.column == 7

    def test_line_column(self):
        assert line_column("ab\ncd", 4) == (2, 2)
        assert line_column("ab", 0) == (1, 1)


class TestBytes:
    """Tests for byte-level input handling."""

    def test_bom_is_skipped(self):
        tree = parse_bytes(b'\xef\xbb\xbf{"a":1}')
        assert tree.nodes[1].key == "a"

    def test_utf8_content(self):
        tree = parse_bytes('{"키":"값"}'.encode())
        assert tree.nodes[1].key == "키"
        assert tree.nodes[1].text == "값"


class TestLineDelimited:
    """Tests for newline-delimited records."""

    def test_records_become_root_blocks(self):
        """Each record hangs off the synthetic root at depth 0."""
        tree = parse('{"x":1}\n{"y":2}\n', line_delimited=True)
        root = tree.nodes[0]
        assert root.synthetic is True
        assert len(root.children) == 2
        assert [tree.nodes[i].depth for i in root.children] == [0, 0]
        assert tree.visible_line_count() == 6

    def test_blank_lines_skipped(self):
        tree = parse('{"x":1}\n\n   \n[2]\n"s"', line_delimited=True)
        assert len(tree.nodes[0].children) == 3

    def test_record_must_end_at_newline(self):
        with pytest.raises(ParseError) as excinfo:
            parse('{"x":1} {"y":2}', line_delimited=True)
        assert excinfo.value.message == "expected newline after record"

    def test_multiline_record(self):
        tree = parse('{\n"x": 1\n}\n{"y": 2}', line_delimited=True)
        assert len(tree.nodes[0].children) == 2


class TestDeltas:
    """Tests for the stream of tree deltas."""

    def test_root_first_then_members(self):
        """The root is yielded on its own before any member."""
        deltas = list(JsonParser('{"a":1,"b":[2]}').deltas())
        assert [d.parent for d in deltas] == [None, 0, 0]
        assert [len(d.nodes) for d in deltas] == [1, 1, 2]
        assert deltas[2].nodes[0].key == "b"

    def test_indices_follow_document_order(self):
        deltas = list(JsonParser('[[1,2],[3]]').deltas())
        indices = [n.index for d in deltas for n in d.nodes]
        assert indices == list(range(6))

    def test_cancel_stops_scanning(self):
        token = CancelToken()
        token.cancel()
        parser = JsonParser("[1,2,3]", cancel=token)
        with pytest.raises(ParseCancelled):
            list(parser.deltas())

    def test_progress_position(self):
        parser = JsonParser("[1, 2]")
        list(parser.deltas())
        assert parser.position == parser.length
