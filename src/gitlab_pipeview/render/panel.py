"""Framed panels for the host application."""

from __future__ import annotations

from . import theme
from .grid import Grid, Rect, Style, truncate

ROUNDED = ("╭", "╮", "╰", "╯", "─", "│")
THICK = ("┏", "┓", "┗", "┛", "━", "┃")


def draw_panel(grid: Grid, rect: Rect, title: str = "", *, focused: bool = False) -> Rect:
    """Draw a border with an optional title; returns the inner area."""
    if rect.width < 2 or rect.height < 2:
        return Rect(rect.x, rect.y, 0, 0)
    tl, tr, bl, br, horizontal, vertical = THICK if focused else ROUNDED
    style = Style(fg=theme.ACCENT if focused else theme.BORDER)
    right = rect.right - 1
    bottom = rect.bottom - 1

    grid.put(rect.x, rect.y, tl, style)
    grid.put_str(rect.x + 1, rect.y, horizontal * (rect.width - 2), style)
    grid.put(right, rect.y, tr, style)
    grid.put(rect.x, bottom, bl, style)
    grid.put_str(rect.x + 1, bottom, horizontal * (rect.width - 2), style)
    grid.put(right, bottom, br, style)
    for y in range(rect.y + 1, bottom):
        grid.put(rect.x, y, vertical, style)
        grid.put(right, y, vertical, style)

    if title and rect.width > 4:
        label = truncate(f" {title} ", rect.width - 4)
        grid.put_str(rect.x + 2, rect.y, label, Style(fg=theme.TEXT, bold=focused))
    return rect.inner()
