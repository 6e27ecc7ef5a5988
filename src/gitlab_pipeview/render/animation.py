"""Time-driven colour effects: text sweep, perimeter glow and connector lights.

All effects are pure functions of the animation tick (a counter wrapping at
256) and are painted as style-only overlays.
"""

from __future__ import annotations

from collections.abc import Sequence

from .grid import RGB, Style, Viewport
from .theme import TEXT_BRIGHT

TICK_WRAP = 256
GLOW_CYCLE = 16
GLOW_TRAVEL = 12
LIGHT_TAIL = 3.0

Point = tuple[int, int]


def advance_tick(tick: int) -> int:
    return (tick + 1) % TICK_WRAP


def mix(base: RGB, target: RGB, t: float) -> RGB:
    t = min(1.0, max(0.0, t))
    return tuple(  # type: ignore[return-value]
        int(min(255.0, max(0.0, b + (c - b) * t))) for b, c in zip(base, target)
    )


def sweep_color(base: RGB, char_pos: int, total_chars: int, tick: int, speed: int = 1) -> RGB:
    """Colour of one character under a highlight oscillating back and forth over the text."""
    phase = (((tick * speed) % TICK_WRAP) / 255.0) * 2.0
    span = total_chars + 2.0
    if phase < 1.0:
        sweep_pos = phase * span - 1.0
    else:
        sweep_pos = (2.0 - phase) * span - 1.0
    dist = abs(char_pos - sweep_pos)
    glow = max(0.0, 1.0 - dist / 2.5)
    return mix(base, TEXT_BRIGHT, glow * glow)


def render_sweep_text(
    view: Viewport,
    x: int,
    y: int,
    text: str,
    base: RGB,
    tick: int,
    max_width: int,
    *,
    bold: bool = False,
) -> int:
    """Write *text* with a per-character sweep colour; returns the x past the text."""
    chars = list(text)[: max(0, max_width)]
    total = len(chars)
    for i, ch in enumerate(chars):
        x += view.put(x, y, ch, Style(fg=sweep_color(base, i, total, tick), bold=bold))
    return x


def glow_phase(tick: int) -> tuple[float, float]:
    """``(progress, fade)`` within the glow cycle.

    ``progress`` runs 0 → 1 over the travelling part of the cycle; ``fade``
    then runs 0 → 1 while the lights sit at their destination.
    """
    step = tick % GLOW_CYCLE
    if step < GLOW_TRAVEL:
        return step / GLOW_TRAVEL, 0.0
    return 1.0, (step - GLOW_TRAVEL + 1) / (GLOW_CYCLE - GLOW_TRAVEL)


def light_levels(length: int, tick: int) -> list[float]:
    """Intensity per cell of a light travelling from index 0 to ``length - 1``.

    Paths of different lengths reach their end on the same tick.
    """
    if length <= 0:
        return []
    progress, fade = glow_phase(tick)
    head = progress * (length - 1)
    levels = []
    for i in range(length):
        if i <= head:
            level = max(0.0, 1.0 - (head - i) / LIGHT_TAIL)
        else:
            level = max(0.0, 1.0 - (i - head))
        levels.append(level * level * (1.0 - fade))
    return levels


def apply_light(view: Viewport, path: Sequence[Point], levels: Sequence[float]) -> None:
    """Brighten the foreground of already-drawn cells along *path*."""
    for (x, y), level in zip(path, levels):
        if level <= 0.0:
            continue
        cell = view.cell(x, y)
        if cell is None or cell.style.fg is None:
            continue
        view.patch_style(x, y, Style(fg=mix(cell.style.fg, TEXT_BRIGHT, level)))


def perimeter(x: int, y: int, width: int, height: int) -> list[Point]:
    """Box border cells clockwise from the top-left corner."""
    if width < 2 or height < 2:
        return []
    right = x + width - 1
    bottom = y + height - 1
    cells = [(cx, y) for cx in range(x, right + 1)]
    cells += [(right, cy) for cy in range(y + 1, bottom + 1)]
    cells += [(cx, bottom) for cx in range(right - 1, x - 1, -1)]
    cells += [(x, cy) for cy in range(bottom - 1, y, -1)]
    return cells


def perimeter_paths(
    border: Sequence[Point], start: Point, end: Point
) -> tuple[list[Point], list[Point]]:
    """Clockwise and counter-clockwise routes from *start* to *end* along *border*."""
    if start not in border or end not in border:
        return [], []
    n = len(border)
    i = border.index(start)
    j = border.index(end)
    clockwise = [border[(i + k) % n] for k in range((j - i) % n + 1)]
    counter = [border[(i - k) % n] for k in range((i - j) % n + 1)]
    return clockwise, counter


def apply_border_glow(
    view: Viewport,
    x: int,
    y: int,
    width: int,
    height: int,
    start: Point,
    end: Point,
    tick: int,
) -> None:
    """Two lights leave *start* in opposite directions and meet at *end*."""
    clockwise, counter = perimeter_paths(perimeter(x, y, width, height), start, end)
    for path in (clockwise, counter):
        apply_light(view, path, light_levels(len(path), tick))
