"""Arena-backed value tree with per-container collapse state.

Nodes live in a single list and refer to each other by index only.  Every
container carries two counts:

* ``inner_line_count`` -- rows its children would occupy if it were open,
  kept current even while the container is collapsed;
* ``visible_line_count`` -- rows the container occupies right now.

A collapse toggle changes one node's visible count and walks the parent
chain adding the difference, so it costs O(depth) no matter how large the
document is.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto


class NodeKind(Enum):
    NULL = auto()
    BOOL = auto()
    NUMBER = auto()
    STRING = auto()
    OBJECT = auto()
    ARRAY = auto()


CONTAINER_KINDS = frozenset({NodeKind.OBJECT, NodeKind.ARRAY})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class Node:
    """One arena entry.

    Scalars keep their source text in ``raw`` (numbers are never converted to
    floats, strings keep their escapes) and the decoded string in ``text``.
    """

    __slots__ = (
        "index",
        "kind",
        "parent",
        "depth",
        "position",
        "key",
        "key_raw",
        "raw",
        "text",
        "children",
        "collapsed",
        "synthetic",
        "inner_line_count",
        "visible_line_count",
        "offsets",
    )

    def __init__(
        self,
        index: int,
        kind: NodeKind,
        *,
        parent: int | None = None,
        depth: int = 0,
        key: str | None = None,
        key_raw: str | None = None,
        raw: str = "",
        text: str | None = None,
        synthetic: bool = False,
    ) -> None:
        self.index = index
        self.kind = kind
        self.parent = parent
        self.depth = depth
        self.position = 0  # index within parent's children
        self.key = key
        self.key_raw = key if key_raw is None else key_raw
        self.raw = raw
        self.text = raw if text is None else text
        self.children: list[int] | None = [] if kind in CONTAINER_KINDS else None
        self.collapsed = False
        self.synthetic = synthetic
        self.inner_line_count = 0
        self.visible_line_count = 0 if synthetic else 1
        self.offsets: list[int] | None = None

    @property
    def is_container(self) -> bool:
        return self.children is not None

    def __repr__(self) -> str:
        label = self.kind.name
        if self.key is not None:
            label = f"{self.key!r}: {label}"
        return f"<Node #{self.index} {label} depth={self.depth}>"


@dataclass(frozen=True)
class TreeDelta:
    """A complete subtree, in pre-order, to append under ``parent``.

    ``parent`` is ``None`` only for the delta that carries the root node.
    """

    nodes: list[Node]
    parent: int | None = None


def _own_count(node: Node) -> int:
    if node.children is None:
        return 1
    if node.synthetic:
        return node.inner_line_count
    if node.collapsed or not node.children:
        return 1
    return node.inner_line_count + 2


class ValueTree:
    """Parsed document plus collapse flags.

    Values never change after parsing.  Collapse flags and line counts are
    written only through the methods below.
    """

    def __init__(
        self, *, line_delimited: bool = False, collapse_depth: int | None = None
    ) -> None:
        self.nodes: list[Node] = []
        self.line_delimited = line_delimited
        self.collapse_depth = collapse_depth
        self.growing = True

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    @property
    def root(self) -> Node | None:
        return self.nodes[0] if self.nodes else None

    def has_content(self) -> bool:
        """True once at least one complete value is displayable."""
        root = self.root
        if root is None:
            return False
        if root.synthetic:
            return bool(root.children)
        return True

    def visible_line_count(self, index: int | None = None) -> int:
        if not self.nodes:
            return 0
        return self.nodes[0 if index is None else index].visible_line_count

    # -- Growth ------------------------------------------------------------

    def graft(self, delta: TreeDelta) -> None:
        """Append a parsed subtree and bubble its line count upward."""
        new_nodes = delta.nodes
        if not new_nodes:
            return
        first = new_nodes[0]
        if first.index != len(self.nodes):
            raise ValueError(
                f"delta starts at node {first.index}, expected {len(self.nodes)}"
            )
        if delta.parent is None and self.nodes:
            raise ValueError("document already has a root")
        self.nodes.extend(new_nodes)
        if self.collapse_depth is not None:
            # the root arrives before its members, so test for a container
            # rather than for children
            for node in new_nodes:
                if (
                    node.children is not None
                    and not node.synthetic
                    and node.depth >= self.collapse_depth
                ):
                    node.collapsed = True
        self._recount(new_nodes)
        if delta.parent is None:
            return
        parent = self.nodes[delta.parent]
        first.position = len(parent.children)
        parent.children.append(first.index)
        parent.offsets = None
        self._propagate(parent, first.visible_line_count)

    def finish(self) -> None:
        self.growing = False

    # -- Collapse state ----------------------------------------------------

    def is_collapsible(self, index: int) -> bool:
        node = self.nodes[index]
        return bool(node.children) and not node.synthetic

    def toggle_collapse(self, index: int) -> bool:
        """Flip a container's collapse flag.  Returns False when not applicable."""
        node = self.nodes[index]
        return self.set_collapsed(index, not node.collapsed)

    def set_collapsed(self, index: int, collapsed: bool) -> bool:
        if not self.is_collapsible(index):
            return False
        node = self.nodes[index]
        if node.collapsed == collapsed:
            return False
        before = node.visible_line_count
        node.collapsed = collapsed
        node.visible_line_count = _own_count(node)
        if node.parent is not None:
            self._propagate(self.nodes[node.parent], node.visible_line_count - before)
        return True

    def collapse_all(self, max_depth: int = 0) -> None:
        """Collapse every container at ``max_depth`` or deeper, open the rest."""
        for node in self.nodes:
            if node.children and not node.synthetic:
                node.collapsed = node.depth >= max_depth
        self._recount(self.nodes)

    def expand_all(self) -> None:
        for node in self.nodes:
            node.collapsed = False
        self._recount(self.nodes)

    def expand_recursive(self, index: int) -> bool:
        return self._set_subtree(index, False)

    def collapse_recursive(self, index: int) -> bool:
        return self._set_subtree(index, True)

    def expand_ancestors(self, index: int) -> bool:
        """Open every collapsed ancestor so ``index`` gets its own line."""
        changed = False
        for ancestor in list(self.ancestors(index)):
            if self.set_collapsed(ancestor, False):
                changed = True
        return changed

    def _set_subtree(self, index: int, collapsed: bool) -> bool:
        top = self.nodes[index]
        if top.children is None:
            return False
        subtree = [self.nodes[i] for i in self.iter_subtree(index)]
        changed = False
        for node in subtree:
            if node.children and not node.synthetic and node.collapsed != collapsed:
                node.collapsed = collapsed
                changed = True
        if not changed:
            return False
        before = top.visible_line_count
        self._recount(subtree)
        if top.parent is not None:
            self._propagate(self.nodes[top.parent], top.visible_line_count - before)
        return True

    # -- Count maintenance -------------------------------------------------

    def _recount(self, nodes: list[Node]) -> None:
        """Recompute counts bottom-up.  ``nodes`` must be closed under children."""
        arena = self.nodes
        for node in reversed(nodes):
            if node.children is not None:
                node.inner_line_count = sum(
                    arena[c].visible_line_count for c in node.children
                )
                node.offsets = None
            node.visible_line_count = _own_count(node)

    def _propagate(self, node: Node, delta: int) -> None:
        """Add ``delta`` rows below ``node`` and carry the change to its ancestors."""
        arena = self.nodes
        while delta:
            node.inner_line_count += delta
            node.offsets = None
            before = node.visible_line_count
            node.visible_line_count = _own_count(node)
            delta = node.visible_line_count - before
            if node.parent is None:
                break
            node = arena[node.parent]

    def child_offsets(self, index: int) -> list[int]:
        """Prefix sums of the children's visible counts (cached until changed)."""
        node = self.nodes[index]
        if node.offsets is None:
            arena = self.nodes
            total = 0
            offsets = [0]
            for child in node.children or ():
                total += arena[child].visible_line_count
                offsets.append(total)
            node.offsets = offsets
        return node.offsets

    # -- Navigation helpers ------------------------------------------------

    def ancestors(self, index: int) -> Iterator[int]:
        parent = self.nodes[index].parent
        while parent is not None:
            yield parent
            parent = self.nodes[parent].parent

    def is_visible(self, index: int) -> bool:
        return not any(self.nodes[a].collapsed for a in self.ancestors(index))

    def visible_ancestor(self, index: int) -> int:
        """The node whose line currently stands in for ``index``."""
        result = index
        for ancestor in self.ancestors(index):
            if self.nodes[ancestor].collapsed:
                result = ancestor
        return result

    def sibling(self, index: int, step: int) -> int | None:
        node = self.nodes[index]
        if node.parent is None:
            return None
        siblings = self.nodes[node.parent].children
        pos = node.position + step
        if 0 <= pos < len(siblings):
            return siblings[pos]
        return None

    def last_descendant(self, index: int) -> int:
        """Highest node index in the subtree of ``index``."""
        node = self.nodes[index]
        while node.children:
            node = self.nodes[node.children[-1]]
        return node.index

    def iter_subtree(self, index: int) -> Iterator[int]:
        """Yield ``index`` and all of its descendants in document order."""
        stack = [index]
        arena = self.nodes
        while stack:
            current = stack.pop()
            yield current
            children = arena[current].children
            if children:
                stack.extend(reversed(children))

    # -- Serialization -----------------------------------------------------

    def path_of(self, index: int) -> list[str | int]:
        path: list[str | int] = []
        node = self.nodes[index]
        while node.parent is not None:
            parent = self.nodes[node.parent]
            if parent.kind is NodeKind.OBJECT:
                path.append(node.key)
            else:
                path.append(node.position)
            node = parent
        path.reverse()
        return path

    def path_text(self, index: int) -> str:
        """jq-style path of a node, e.g. ``.items[2].name``."""
        parts = []
        for part in self.path_of(index):
            if isinstance(part, int):
                parts.append(f"[{part}]")
            elif _IDENTIFIER_RE.match(part):
                parts.append(f".{part}")
            else:
                parts.append(f"[{json.dumps(part, ensure_ascii=False)}]")
        text = "".join(parts)
        if not text.startswith("."):
            text = "." + text
        return text

    def value_text(self, index: int, indent: int | None = 2) -> str:
        """Serialize a subtree as JSON, keeping number text and string escapes."""
        out: list[str] = []
        arena = self.nodes
        base = arena[index].depth
        colon = ": " if indent is not None else ":"

        def newline(depth: int) -> str:
            if indent is None:
                return ""
            return "\n" + " " * (indent * (depth - base))

        stack: list[list] = [[arena[index], -1]]
        while stack:
            frame = stack[-1]
            node, pos = frame
            if pos == -1:
                if node.children is None:
                    out.append(scalar_json(node))
                    stack.pop()
                    continue
                is_object = node.kind is NodeKind.OBJECT
                if not node.children:
                    out.append("{}" if is_object else "[]")
                    stack.pop()
                    continue
                out.append("{" if is_object else "[")
            pos += 1
            frame[1] = pos
            if pos < len(node.children):
                if pos:
                    out.append(",")
                child = arena[node.children[pos]]
                out.append(newline(child.depth))
                if node.kind is NodeKind.OBJECT:
                    out.append(f'"{child.key_raw}"{colon}')
                stack.append([child, -1])
            else:
                out.append(newline(node.depth))
                out.append("}" if node.kind is NodeKind.OBJECT else "]")
                stack.pop()
        return "".join(out)


def scalar_json(node: Node) -> str:
    """JSON text of a scalar node as it appeared in the source."""
    if node.kind is NodeKind.STRING:
        return f'"{node.raw}"'
    return node.raw
