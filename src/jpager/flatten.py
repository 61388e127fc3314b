"""Indexed access to the rows of a value tree under its current collapse state.

Nothing here materializes the document.  ``line_at`` descends from the root
using the per-container line counts, bisecting the cached prefix sums of each
container's children, so a lookup costs O(depth * log(branching)).
``lines_in`` does one such descent and then steps forward row by row.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum, auto

from jpager.tree import Node, ValueTree


class LineRole(Enum):
    CONTAINER_OPEN = auto()
    CONTAINER_CLOSE = auto()
    KEYED_SCALAR = auto()
    BARE_SCALAR = auto()
    KEYED_CONTAINER_COLLAPSED = auto()
    BARE_CONTAINER_COLLAPSED = auto()


@dataclass(frozen=True)
class Line:
    """One renderable row."""

    index: int
    node: int
    role: LineRole
    depth: int
    keyed: bool
    last: bool  # last member of its parent: no trailing comma

    @property
    def closing(self) -> bool:
        return self.role is LineRole.CONTAINER_CLOSE


def _is_open(node: Node) -> bool:
    """Whether the node's children currently get rows of their own."""
    return bool(node.children) and (node.synthetic or not node.collapsed)


class LineFlattener:
    def __init__(self, tree: ValueTree) -> None:
        self.tree = tree

    def total(self) -> int:
        return self.tree.visible_line_count()

    def line_at(self, index: int) -> Line:
        if not 0 <= index < self.total():
            raise IndexError(f"line {index} out of range")
        return self._make_line(index, self._descend(index))

    def lines_in(self, start: int, end: int) -> list[Line]:
        """Rows ``[start, end)``, clamped to the document."""
        start = max(0, start)
        end = min(end, self.total())
        if start >= end:
            return []
        stack = self._descend(start)
        lines = [self._make_line(start, stack)]
        for index in range(start + 1, end):
            self._advance(stack)
            lines.append(self._make_line(index, stack))
        return lines

    def line_range(self, index: int) -> tuple[int, int] | None:
        """First and last row occupied by a node, or None while it is hidden."""
        tree = self.tree
        if not tree.nodes or not tree.is_visible(index):
            return None
        nodes = tree.nodes
        first = 0
        node = nodes[index]
        while node.parent is not None:
            parent = nodes[node.parent]
            if not parent.synthetic:
                first += 1
            first += tree.child_offsets(parent.index)[node.position]
            node = parent
        return first, first + nodes[index].visible_line_count - 1

    # -- Traversal state ---------------------------------------------------
    #
    # A traversal is a stack of [node, pos] frames.  The top frame is the
    # current row: pos == -1 is the node's own (opening or only) row and
    # pos == len(children) its closing row.  Lower frames record which child
    # is being visited.

    def _descend(self, index: int) -> list[list[int]]:
        tree = self.tree
        nodes = tree.nodes
        node = nodes[0]
        remaining = index
        stack: list[list[int]] = []
        while True:
            if not _is_open(node):
                stack.append([node.index, -1])
                return stack
            if not node.synthetic:
                if remaining == 0:
                    stack.append([node.index, -1])
                    return stack
                remaining -= 1
            offsets = tree.child_offsets(node.index)
            if remaining < offsets[-1]:
                pos = bisect_right(offsets, remaining) - 1
                stack.append([node.index, pos])
                remaining -= offsets[pos]
                node = nodes[node.children[pos]]
                continue
            stack.append([node.index, len(node.children)])
            return stack

    def _advance(self, stack: list[list[int]]) -> bool:
        nodes = self.tree.nodes
        top = stack[-1]
        node = nodes[top[0]]
        if top[1] == -1 and _is_open(node):
            top[1] = 0
            stack.append([node.children[0], -1])
            return True
        stack.pop()
        while stack:
            frame = stack[-1]
            frame[1] += 1
            parent = nodes[frame[0]]
            if frame[1] < len(parent.children):
                stack.append([parent.children[frame[1]], -1])
                return True
            if not parent.synthetic:
                return True
            stack.pop()
        return False

    def _make_line(self, index: int, stack: list[list[int]]) -> Line:
        nodes = self.tree.nodes
        node_index, pos = stack[-1]
        node = nodes[node_index]
        keyed = node.key_raw is not None
        if node.parent is None:
            last = True
        else:
            parent = nodes[node.parent]
            last = parent.synthetic or node.position == len(parent.children) - 1

        if not _is_open(node):
            if node.children is None:
                role = LineRole.KEYED_SCALAR if keyed else LineRole.BARE_SCALAR
            elif keyed:
                role = LineRole.KEYED_CONTAINER_COLLAPSED
            else:
                role = LineRole.BARE_CONTAINER_COLLAPSED
        elif pos == -1:
            role = LineRole.CONTAINER_OPEN
        else:
            role = LineRole.CONTAINER_CLOSE
        return Line(index, node_index, role, node.depth, keyed, last)
