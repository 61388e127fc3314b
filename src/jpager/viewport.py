"""Scroll window over the flattened line sequence."""

from __future__ import annotations


class Viewport:
    """Vertical and horizontal scroll offsets plus window size.

    ``top`` always satisfies ``0 <= top <= max(0, total - height)`` after any
    operation that is given the current line total.
    """

    def __init__(self, height: int = 1, width: int = 80, scrolloff: int = 3) -> None:
        self.height = max(1, height)
        self.width = max(1, width)
        self.scrolloff = max(0, scrolloff)
        self.top = 0
        self.left = 0

    def __repr__(self) -> str:
        return (
            f"<Viewport top={self.top} left={self.left} "
            f"{self.width}x{self.height}>"
        )

    @property
    def effective_scrolloff(self) -> int:
        return min(self.scrolloff, (self.height - 1) // 2)

    def max_top(self, total: int) -> int:
        return max(0, total - self.height)

    def clamp(self, total: int) -> None:
        self.top = min(max(0, self.top), self.max_top(total))

    def scroll_to(self, line: int, total: int) -> None:
        self.top = line
        self.clamp(total)

    def scroll_by(self, delta: int, total: int) -> None:
        self.scroll_to(self.top + delta, total)

    def set_size(
        self, height: int, width: int, total: int, anchor: int | None = None
    ) -> None:
        """Resize, keeping ``anchor`` on the same screen row when possible."""
        row = None
        if anchor is not None and self.top <= anchor < self.top + self.height:
            row = anchor - self.top
        self.height = max(1, height)
        self.width = max(1, width)
        if row is not None:
            self.top = anchor - min(row, self.height - 1)
        self.clamp(total)
        if anchor is not None:
            self.ensure_visible(anchor, total)

    def ensure_visible(self, line: int, total: int) -> None:
        """Scroll the least amount that puts ``line`` inside the scrolloff band."""
        margin = self.effective_scrolloff
        if line - margin < self.top:
            self.top = line - margin
        elif line + margin >= self.top + self.height:
            self.top = line + margin - self.height + 1
        self.clamp(total)

    def place(self, line: int, where: str, total: int) -> None:
        if where == "top":
            self.top = line - self.effective_scrolloff
        elif where == "center":
            self.top = line - (self.height - 1) // 2
        elif where == "bottom":
            self.top = line - self.height + 1 + self.effective_scrolloff
        else:
            raise ValueError(f"unknown placement: {where}")
        self.clamp(total)

    def visible_range(self, total: int) -> tuple[int, int]:
        return self.top, min(total, self.top + self.height)

    def contains(self, line: int) -> bool:
        return self.top <= line < self.top + self.height

    def line_at_row(self, row: int, total: int) -> int | None:
        line = self.top + row
        if 0 <= row < self.height and line < total:
            return line
        return None

    # -- Horizontal --------------------------------------------------------

    def scroll_horizontal(self, delta: int, max_width: int) -> None:
        """Shift every row sideways, never past the widest row in view."""
        limit = max(0, max_width - self.width)
        self.left = min(max(0, self.left + delta), limit)

    def reset_horizontal(self) -> None:
        self.left = 0
