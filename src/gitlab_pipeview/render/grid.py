"""Character-cell grid with styled cells and clipped, scrolled viewports.

Every write is bounds checked. Overlay passes use :meth:`Grid.patch_style`,
which changes style only and never the symbol already written.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field

RGB = tuple[int, int, int]


def char_width(ch: str) -> int:
    """Monospace cell width of a single character (0, 1 or 2)."""
    if not ch or unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in ("W", "F"):
        return 2
    return 1


def text_width(text: str) -> int:
    return sum(char_width(ch) for ch in text)


def truncate(text: str, max_width: int) -> str:
    """Cut *text* to *max_width* cells, ending in an ellipsis when there is room for one."""
    if text_width(text) <= max_width:
        return text
    if max_width <= 0:
        return ""
    budget = max_width - 1 if max_width > 2 else max_width
    out: list[str] = []
    used = 0
    for ch in text:
        w = char_width(ch)
        if used + w > budget:
            break
        out.append(ch)
        used += w
    if max_width > 2:
        out.append("…")
    return "".join(out)


def pad(text: str, width: int) -> str:
    return text + " " * max(0, width - text_width(text))


@dataclass(frozen=True)
class Style:
    fg: RGB | None = None
    bg: RGB | None = None
    bold: bool = False

    def patch(self, other: Style) -> Style:
        """Overlay *other* on top of this style; unset fields keep their value."""
        return Style(
            fg=other.fg if other.fg is not None else self.fg,
            bg=other.bg if other.bg is not None else self.bg,
            bold=self.bold or other.bold,
        )


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def inner(self, margin: int = 1) -> Rect:
        return Rect(
            self.x + margin,
            self.y + margin,
            max(0, self.width - 2 * margin),
            max(0, self.height - 2 * margin),
        )

    def intersect(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))


@dataclass
class Cell:
    symbol: str = " "
    style: Style = field(default_factory=Style)


class Grid:
    """A width x height buffer of cells. Wide characters leave an empty continuation cell."""

    def __init__(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self._cells = [[Cell() for _ in range(self.width)] for _ in range(self.height)]

    @property
    def area(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, x: int, y: int) -> Cell | None:
        if not self.in_bounds(x, y):
            return None
        return self._cells[y][x]

    def put(self, x: int, y: int, ch: str, style: Style | None = None) -> int:
        """Write one character, returning its width. Out-of-bounds writes are dropped."""
        w = char_width(ch)
        if w == 0 or not self.in_bounds(x, y):
            return w
        if w == 2 and x + 1 >= self.width:
            return w
        self._cells[y][x] = Cell(ch, style or Style())
        if w == 2:
            self._cells[y][x + 1] = Cell("", style or Style())
        return w

    def put_str(
        self,
        x: int,
        y: int,
        text: str,
        style: Style | None = None,
        max_width: int | None = None,
    ) -> int:
        """Write *text* left to right; returns the x just past the last written cell."""
        limit = x + max_width if max_width is not None else self.width
        for ch in text:
            w = char_width(ch)
            if x + w > limit:
                break
            self.put(x, y, ch, style)
            x += w
        return x

    def patch_style(self, x: int, y: int, style: Style) -> None:
        if self.in_bounds(x, y):
            cell = self._cells[y][x]
            cell.style = cell.style.patch(style)

    def fill(self, rect: Rect, style: Style) -> None:
        for y in range(rect.y, rect.bottom):
            for x in range(rect.x, rect.right):
                if self.in_bounds(x, y):
                    self._cells[y][x] = Cell(" ", style)

    def row_text(self, y: int) -> str:
        if not 0 <= y < self.height:
            return ""
        return "".join(cell.symbol for cell in self._cells[y])

    def find(self, y: int, text: str, start: int = 0, end: int | None = None) -> int | None:
        """Column where *text* starts in row *y* within [start, end), or None."""
        if not 0 <= y < self.height or not text:
            return None
        end = self.width if end is None else min(end, self.width)
        for x in range(max(0, start), end - len(text) + 1):
            if all(self._cells[y][x + i].symbol == ch for i, ch in enumerate(text)):
                return x
        return None

    def lines(self) -> list[str]:
        return [self.row_text(y).rstrip() for y in range(self.height)]

    def runs(self, y: int) -> list[tuple[int, str, Style]]:
        """Row *y* as ``(x, text, style)`` runs of equal style, for painting backends."""
        result: list[tuple[int, str, Style]] = []
        row = self._cells[y]
        x = 0
        while x < self.width:
            style = row[x].style
            start = x
            chars: list[str] = []
            while x < self.width and row[x].style == style:
                chars.append(row[x].symbol)
                x += 1
            result.append((start, "".join(chars), style))
        return result


class Viewport:
    """Writes in content coordinates, translated by a scroll offset and clipped to *clip*."""

    def __init__(self, grid: Grid, clip: Rect, scroll_x: int = 0, scroll_y: int = 0) -> None:
        self.grid = grid
        self.clip = clip.intersect(grid.area)
        self.scroll_x = scroll_x
        self.scroll_y = scroll_y

    def to_screen(self, x: int, y: int) -> tuple[int, int]:
        return self.clip.x + x - self.scroll_x, self.clip.y + y - self.scroll_y

    def row_visible(self, y: int) -> bool:
        sy = self.clip.y + y - self.scroll_y
        return self.clip.y <= sy < self.clip.bottom

    def put(self, x: int, y: int, ch: str, style: Style | None = None) -> int:
        sx, sy = self.to_screen(x, y)
        w = char_width(ch)
        if self.clip.contains(sx, sy) and sx + w <= self.clip.right:
            self.grid.put(sx, sy, ch, style)
        return w

    def put_str(
        self,
        x: int,
        y: int,
        text: str,
        style: Style | None = None,
        max_width: int | None = None,
    ) -> int:
        limit = x + max_width if max_width is not None else None
        for ch in text:
            w = char_width(ch)
            if limit is not None and x + w > limit:
                break
            self.put(x, y, ch, style)
            x += w
        return x

    def patch_style(self, x: int, y: int, style: Style) -> None:
        sx, sy = self.to_screen(x, y)
        if self.clip.contains(sx, sy):
            self.grid.patch_style(sx, sy, style)

    def cell(self, x: int, y: int) -> Cell | None:
        sx, sy = self.to_screen(x, y)
        if not self.clip.contains(sx, sy):
            return None
        return self.grid.cell(sx, sy)
