"""Tests for indexed row access."""

import pytest

from jpager.flatten import LineFlattener, LineRole
from jpager.parser import parse

SCENARIO = '{"a":1,"b":[1,2,3]}'
NESTED = '{"a":{"b":[1,2,{"c":null}],"d":{}},"e":[[],[true]],"f":"x"}'


class TestRoles:
    """Tests for the role of each flattened line."""

    def test_scenario_rows(self):
        flat = LineFlattener(parse(SCENARIO))
        lines = flat.lines_in(0, flat.total())
        assert [line.role for line in lines] == [
            LineRole.CONTAINER_OPEN,
            LineRole.KEYED_SCALAR,
            LineRole.CONTAINER_OPEN,
            LineRole.BARE_SCALAR,
            LineRole.BARE_SCALAR,
            LineRole.BARE_SCALAR,
            LineRole.CONTAINER_CLOSE,
            LineRole.CONTAINER_CLOSE,
        ]
        assert [line.node for line in lines] == [0, 1, 2, 3, 4, 5, 2, 0]
        assert [line.depth for line in lines] == [0, 1, 1, 2, 2, 2, 1, 0]

    def test_last_member_flags(self):
        flat = LineFlattener(parse(SCENARIO))
        lines = flat.lines_in(0, flat.total())
        assert [line.last for line in lines] == [
            True, False, True, False, False, True, True, True,
        ]

    def test_collapsed_container_is_one_row(self):
        tree = parse(SCENARIO)
        tree.set_collapsed(2, True)
        flat = LineFlattener(tree)
        assert flat.total() == 4
        line = flat.line_at(2)
        assert line.role is LineRole.KEYED_CONTAINER_COLLAPSED
        assert line.node == 2
        assert flat.line_at(3).closing

    def test_empty_container_uses_collapsed_role(self):
        """An empty container is a single row, like a collapsed one."""
        flat = LineFlattener(parse('[{}, []]'))
        assert [line.role for line in flat.lines_in(0, 4)] == [
            LineRole.CONTAINER_OPEN,
            LineRole.BARE_CONTAINER_COLLAPSED,
            LineRole.BARE_CONTAINER_COLLAPSED,
            LineRole.CONTAINER_CLOSE,
        ]

    def test_no_rows_inside_collapsed_containers(self):
        tree = parse(NESTED)
        tree.set_collapsed(1, True)
        flat = LineFlattener(tree)
        hidden = set(tree.iter_subtree(1)) - {1}
        assert not any(line.node in hidden for line in flat.lines_in(0, flat.total()))


class TestIndexedAccess:
    """Tests for random access into the flattened lines."""

    def test_lines_in_matches_line_at(self):
        """Sequential and random access agree on every line."""
        tree = parse(NESTED)
        tree.set_collapsed(10, True)
        flat = LineFlattener(tree)
        total = flat.total()
        assert flat.lines_in(0, total) == [flat.line_at(i) for i in range(total)]

    def test_lines_in_from_the_middle(self):
        flat = LineFlattener(parse(NESTED))
        assert flat.lines_in(5, 9) == [flat.line_at(i) for i in range(5, 9)]

    def test_out_of_range(self):
        flat = LineFlattener(parse(SCENARIO))
        with pytest.raises(IndexError):
            flat.line_at(8)
        with pytest.raises(IndexError):
            flat.line_at(-1)

    def test_lines_in_clamps(self):
        flat = LineFlattener(parse(SCENARIO))
        assert len(flat.lines_in(-5, 100)) == 8
        assert flat.lines_in(9, 12) == []

    def test_large_array_lookup(self):
        text = "[" + ",".join(str(i) for i in range(10000)) + "]"
        flat = LineFlattener(parse(text))
        assert flat.total() == 10002
        line = flat.line_at(5001)
        assert line.node == 5001
        assert line.role is LineRole.BARE_SCALAR
        assert flat.line_at(10001).closing


class TestLineRange:
    """Tests for the line span of a node."""

    def test_ranges(self):
        flat = LineFlattener(parse(SCENARIO))
        assert flat.line_range(0) == (0, 7)
        assert flat.line_range(2) == (2, 6)
        assert flat.line_range(4) == (4, 4)

    def test_collapsed_and_hidden(self):
        tree = parse(SCENARIO)
        tree.set_collapsed(2, True)
        flat = LineFlattener(tree)
        assert flat.line_range(2) == (2, 2)
        assert flat.line_range(3) is None


class TestLineDelimited:
    """Tests for flattening line-delimited documents."""

    def test_records_start_at_depth_zero(self):
        """Records sit at depth 0, each the last member of its own block."""
        tree = parse('{"x":1}\n[2]\n', line_delimited=True)
        flat = LineFlattener(tree)
        lines = flat.lines_in(0, flat.total())
        assert flat.total() == 6
        assert lines[0].node == 1
        assert lines[0].depth == 0
        assert lines[3].node == 3
        assert all(line.last for line in lines if line.node in (1, 3))

    def test_record_ranges(self):
        flat = LineFlattener(parse('{"x":1}\n[2]\n', line_delimited=True))
        assert flat.line_range(1) == (0, 2)
        assert flat.line_range(3) == (3, 5)

    def test_collapsed_record(self):
        tree = parse('{"x":1}\n[2]\n', line_delimited=True)
        tree.set_collapsed(1, True)
        flat = LineFlattener(tree)
        assert flat.total() == 4
        assert flat.line_at(1).node == 3
