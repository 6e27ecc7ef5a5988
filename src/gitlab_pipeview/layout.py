"""Stage box placement for an arbitrary viewport width.

Three strategies are tried in order:

1. a single centred row at ideal widths;
2. a single centred row with widths shrunk in proportion to their ideal
   widths, never below :data:`MIN_STAGE_WIDTH`;
3. greedy multi-row wrapping, each row shrunk the same way and centred on
   its own, rows after the first keeping :data:`WRAP_MARGIN` columns free on
   the left for the wrap connector.

Coordinates are relative to the layout origin passed in. Layout never fails;
zero stages give an empty layout.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .models.pipelines import Stage
from .render.grid import text_width

MIN_STAGE_WIDTH = 16
CONNECTOR_WIDTH = 5
WRAP_MARGIN = 3
# "╭─ " + icon + " " + name + " ─╮"
HEADER_CHROME = 8
# "│ " + icon + " " + name + "│"
JOB_CHROME = 5
# blank row above the first row of boxes
TOP_MARGIN = 1


@dataclass(frozen=True)
class StageBox:
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

    @property
    def mid_y(self) -> int:
        return self.y + self.height // 2


@dataclass(frozen=True)
class LayoutInfo:
    boxes: tuple[StageBox, ...]
    total_height: int
    wrapped: bool = False

    @property
    def total_width(self) -> int:
        return max((b.right for b in self.boxes), default=0)

    @property
    def row_count(self) -> int:
        return len({b.y for b in self.boxes})


def stage_ideal_width(stage: Stage) -> int:
    header = text_width(stage.name) + HEADER_CHROME
    widest_job = max((text_width(j.name) + JOB_CHROME for j in stage.jobs), default=0)
    return max(header, widest_job, MIN_STAGE_WIDTH)


def _connectors(count: int) -> int:
    return max(0, count - 1) * CONNECTOR_WIDTH


def _shrink(widths: Sequence[int], available: int) -> list[int]:
    total = sum(widths)
    if total <= 0:
        return list(widths)
    return [max(MIN_STAGE_WIDTH, w * available // total) for w in widths]


def _row_height(stages: Sequence[Stage]) -> int:
    return max((len(s.jobs) for s in stages), default=0) + 2


def _place_row(widths: Sequence[int], x: int, y: int, height: int) -> list[StageBox]:
    boxes = []
    for w in widths:
        boxes.append(StageBox(x, y, w, height))
        x += w + CONNECTOR_WIDTH
    return boxes


def _single_row(
    stages: Sequence[Stage], widths: Sequence[int], width: int, x: int, y: int
) -> LayoutInfo:
    total = sum(widths) + _connectors(len(widths))
    height = _row_height(stages)
    left_pad = max(0, width - total) // 2
    return LayoutInfo(tuple(_place_row(widths, x + left_pad, y, height)), height)


def calculate_layout(
    stages: Sequence[Stage], width: int, *, x: int = 0, y: int = 0
) -> LayoutInfo:
    count = len(stages)
    if count == 0:
        return LayoutInfo((), 0)

    ideal = [stage_ideal_width(s) for s in stages]
    connectors = _connectors(count)

    if sum(ideal) + connectors <= width:
        return _single_row(stages, ideal, width, x, y)

    avail = width - connectors
    if avail >= count * MIN_STAGE_WIDTH:
        shrunk = _shrink(ideal, avail)
        if sum(shrunk) + connectors <= width:
            return _single_row(stages, shrunk, width, x, y)

    return _wrap(stages, ideal, width, x, y)


def _wrap(
    stages: Sequence[Stage], ideal: Sequence[int], width: int, x: int, y: int
) -> LayoutInfo:
    boxes: list[StageBox] = []
    start = 0
    row_y = y
    row_index = 0
    count = len(stages)

    while start < count:
        margin = WRAP_MARGIN if row_index > 0 else 0
        row_avail = max(0, width - margin)

        end = start
        used = 0
        for i in range(start, count):
            w = max(MIN_STAGE_WIDTH, min(ideal[i], row_avail))
            conn = CONNECTOR_WIDTH if i > start else 0
            if i > start and used + conn + w > row_avail:
                break
            used += conn + w
            end = i + 1

        widths = [max(MIN_STAGE_WIDTH, min(w, row_avail)) for w in ideal[start:end]]
        conn_total = _connectors(len(widths))
        if sum(widths) + conn_total > row_avail:
            widths = _shrink(widths, max(0, row_avail - conn_total))

        actual = sum(widths) + conn_total
        left_pad = margin + max(0, row_avail - actual) // 2
        height = _row_height(stages[start:end])
        boxes.extend(_place_row(widths, x + left_pad, row_y, height))

        row_y += height
        if end < count:
            # gap row for the wrap connector
            row_y += 1
        start = end
        row_index += 1

    return LayoutInfo(tuple(boxes), row_y - y, wrapped=True)


def needs_multirow(stages: Sequence[Stage], width: int) -> bool:
    """True when neither ideal nor minimum widths fit on one row."""
    if not stages:
        return False
    connectors = _connectors(len(stages))
    ideal_total = sum(stage_ideal_width(s) for s in stages) + connectors
    shrink_min = len(stages) * MIN_STAGE_WIDTH + connectors
    return ideal_total > width and shrink_min > width


def fit_layout(stages: Sequence[Stage], width: int, height: int) -> tuple[LayoutInfo, int]:
    """Layout for a pipeline pane of *width* x *height*, plus its content height.

    When the content is taller than the pane one column is given up for the
    vertical scrollbar.
    """
    info = calculate_layout(stages, width, y=TOP_MARGIN)
    content_height = info.total_height + TOP_MARGIN
    if content_height > height and width > 1:
        info = calculate_layout(stages, width - 1, y=TOP_MARGIN)
        content_height = info.total_height + TOP_MARGIN
    return info, content_height
