"""Cursor movement and collapse operations over a value tree.

The controller is the only writer of collapse flags during a session.  Every
operation that changes the visible line sequence ends in ``_reattach`` which
re-resolves the cursor from its node and scrolls it back into view.
"""

from __future__ import annotations

from dataclasses import dataclass

from jpager.flatten import Line, LineFlattener
from jpager.render import DisplayOptions, format_line, text_width
from jpager.tree import ValueTree
from jpager.viewport import Viewport


@dataclass
class Cursor:
    line: int = 0
    node: int = 0
    closing: bool = False  # on the closing delimiter row of ``node``


class DocumentController:
    def __init__(
        self,
        tree: ValueTree,
        viewport: Viewport | None = None,
        options: DisplayOptions | None = None,
    ) -> None:
        self.tree = tree
        self.viewport = viewport or Viewport()
        self.options = options or DisplayOptions()
        self.flattener = LineFlattener(tree)
        self.cursor = Cursor()
        if self.total():
            self._set_line(0)

    def total(self) -> int:
        return self.flattener.total()

    def visible_lines(self) -> list[Line]:
        start, end = self.viewport.visible_range(self.total())
        return self.flattener.lines_in(start, end)

    # -- Cursor bookkeeping ------------------------------------------------

    def _set_line(self, line: int) -> bool:
        total = self.total()
        if not total:
            self.cursor = Cursor()
            self.viewport.clamp(0)
            return False
        line = min(max(0, line), total - 1)
        resolved = self.flattener.line_at(line)
        before = self.cursor
        self.cursor = Cursor(line, resolved.node, resolved.closing)
        self.viewport.ensure_visible(line, total)
        return self.cursor != before

    def _reattach(self) -> None:
        """Put the cursor back on its node's row, or the row now hiding it."""
        if not self.total():
            self._set_line(0)
            return
        node = self.cursor.node
        target = self.tree.visible_ancestor(node)
        first, last = self.flattener.line_range(target)
        if (
            target == node
            and self.cursor.closing
            and not self.tree.nodes[node].collapsed
        ):
            self._set_line(last)
        else:
            self._set_line(first)

    def sync(self) -> None:
        """Re-resolve cursor and viewport after the tree grew."""
        self.viewport.clamp(self.total())
        self._reattach()

    # -- Movement ----------------------------------------------------------

    def move(self, delta: int) -> bool:
        return self._set_line(self.cursor.line + delta)

    def move_to_top(self) -> bool:
        return self._set_line(0)

    def move_to_bottom(self) -> bool:
        return self._set_line(self.total() - 1)

    def move_to_line(self, line: int) -> bool:
        return self._set_line(line)

    def move_to_sibling(self, step: int) -> bool:
        """Jump to the next (``step=1``) or previous (``-1``) value under the same parent."""
        if not self.total():
            return False
        sibling = self.tree.sibling(self.cursor.node, step)
        if sibling is None:
            return False
        return self._set_line(self.flattener.line_range(sibling)[0])

    def move_to_parent(self) -> bool:
        if not self.total():
            return False
        parent = self.tree.nodes[self.cursor.node].parent
        if parent is None or self.tree.nodes[parent].synthetic:
            return False
        return self._set_line(self.flattener.line_range(parent)[0])

    # -- Collapse ----------------------------------------------------------

    def _collapse_op(self, changed: bool) -> bool:
        if changed:
            self._reattach()
        return changed

    def toggle_focused_collapse(self) -> bool:
        if not self.total():
            return False
        return self._collapse_op(self.tree.toggle_collapse(self.cursor.node))

    def expand_focused(self) -> bool:
        if not self.total():
            return False
        return self._collapse_op(self.tree.set_collapsed(self.cursor.node, False))

    def collapse_focused(self) -> bool:
        """Collapse the focused container, or the one enclosing the cursor."""
        if not self.total():
            return False
        tree = self.tree
        target = self.cursor.node
        if not tree.is_collapsible(target) or tree.nodes[target].collapsed:
            target = tree.nodes[target].parent
            if target is None:
                return False
        return self._collapse_op(tree.set_collapsed(target, True))

    def expand_focused_recursive(self) -> bool:
        if not self.total():
            return False
        return self._collapse_op(self.tree.expand_recursive(self.cursor.node))

    def collapse_focused_recursive(self) -> bool:
        if not self.total():
            return False
        return self._collapse_op(self.tree.collapse_recursive(self.cursor.node))

    def expand_all(self) -> bool:
        if self.tree.growing or not self.total():
            return False
        self.tree.expand_all()
        self._reattach()
        return True

    def collapse_all(self, max_depth: int = 1) -> bool:
        if self.tree.growing or not self.total():
            return False
        self.tree.collapse_all(max_depth)
        self._reattach()
        return True

    # -- Viewport ----------------------------------------------------------

    def scroll_viewport(self, delta: int) -> bool:
        """Scroll the window; drag the cursor only if it would leave the band."""
        total = self.total()
        if not total:
            return False
        viewport = self.viewport
        before = viewport.top
        viewport.scroll_by(delta, total)
        margin = viewport.effective_scrolloff
        low = viewport.top + margin if viewport.top > 0 else 0
        if viewport.top < viewport.max_top(total):
            high = viewport.top + viewport.height - 1 - margin
        else:
            high = total - 1
        line = min(max(self.cursor.line, low), high)
        if line != self.cursor.line:
            self._set_line(line)
        return viewport.top != before

    def jump(self, delta: int) -> bool:
        """Move cursor and window together (half and full page keys)."""
        total = self.total()
        if not total:
            return False
        self.viewport.scroll_by(delta, total)
        return self._set_line(self.cursor.line + delta)

    def half_page(self) -> int:
        return max(1, self.viewport.height // 2)

    def full_page(self) -> int:
        return max(1, self.viewport.height - 2)

    def place_cursor(self, where: str) -> None:
        self.viewport.place(self.cursor.line, where, self.total())

    def widest_visible(self) -> int:
        tree, options = self.tree, self.options
        return max(
            (text_width(format_line(tree, line, options).text) for line in self.visible_lines()),
            default=0,
        )

    def scroll_horizontal(self, delta: int) -> None:
        self.viewport.scroll_horizontal(delta, self.widest_visible())

    def reset_horizontal(self) -> None:
        self.viewport.reset_horizontal()

    def resize(self, height: int, width: int) -> None:
        total = self.total()
        self.viewport.set_size(height, width, total, self.cursor.line if total else None)

    # -- Search support ----------------------------------------------------

    def focus_node(self, index: int) -> None:
        """Open the node's ancestors and put the cursor on its first row."""
        if self.tree.expand_ancestors(index):
            self._reattach()
        first, _ = self.flattener.line_range(index)
        on_screen = self.viewport.contains(first)
        self._set_line(first)
        if not on_screen:
            self.viewport.place(first, "center", self.total())

    # -- Clipboard text ----------------------------------------------------

    def focused_value_text(self) -> str | None:
        if not self.total():
            return None
        return self.tree.value_text(self.cursor.node, indent=self.options.indent)

    def focused_path_text(self) -> str | None:
        if not self.total():
            return None
        return self.tree.path_text(self.cursor.node)

    def focused_key_text(self) -> str | None:
        if not self.total():
            return None
        node = self.tree.nodes[self.cursor.node]
        if node.key is not None:
            return node.key
        parent = node.parent
        if parent is not None and not self.tree.nodes[parent].synthetic:
            return str(node.position)
        return None
