"""Box-and-arrow rendering of a pipeline's stages.

Passes, in order: stage boxes (with swept headers and job lines), connectors
between stages, then the border glow of active stages. The last pass only
patches styles of cells the earlier passes wrote. Rendering reads
:class:`~gitlab_pipeview.state.PipelineViewState` and never modifies it.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..layout import LayoutInfo, StageBox, fit_layout
from ..models.pipelines import PipelineDetails, Stage
from ..state import PipelineViewState
from . import theme
from .animation import (
    Point,
    apply_border_glow,
    apply_light,
    light_levels,
    mix,
    render_sweep_text,
)
from .grid import RGB, Grid, Rect, Style, Viewport, pad, text_width, truncate

LOADING_MESSAGE = "Loading pipeline..."
NOT_FOUND_MESSAGE = "No pipeline for this commit"
NO_STAGES_MESSAGE = "Pipeline has no stages"
SCROLLBAR_THUMB = "█"
ARROW = "────→"


def pipeline_content_rect(area: Rect) -> Rect:
    """The part of the pane used by stage boxes; the last row is the status line."""
    return Rect(area.x, area.y, area.width, max(0, area.height - 1))


def render_message(grid: Grid, area: Rect, text: str, fg: RGB) -> None:
    text = truncate(text, area.width)
    x = area.x + max(0, area.width - text_width(text)) // 2
    y = area.y + area.height // 2
    grid.put_str(x, y, text, Style(fg=fg), max_width=area.width)


def render_pipeline(grid: Grid, area: Rect, state: PipelineViewState) -> None:
    if area.width < 1 or area.height < 1:
        return

    if state.loading and state.details is None:
        render_message(grid, area, LOADING_MESSAGE, theme.TEXT_DIM)
        return
    if state.error:
        render_message(grid, area, f"Error: {state.error}", theme.ERROR)
        return
    details = state.details
    if details is None:
        render_message(grid, area, NOT_FOUND_MESSAGE, theme.TEXT_DIM)
        return
    if not details.stages:
        render_message(grid, area, NO_STAGES_MESSAGE, theme.TEXT_DIM)
        return

    content = pipeline_content_rect(area)
    if content.height > 0:
        _render_diagram(grid, content, details, state)
    _render_status_line(grid, area, details, state)


def _render_diagram(
    grid: Grid, content: Rect, details: PipelineDetails, state: PipelineViewState
) -> None:
    stages = details.stages
    layout, content_height = fit_layout(stages, content.width, content.height)
    has_scrollbar = content_height > content.height
    view_width = content.width - 1 if has_scrollbar else content.width

    scroll_y = max(0, min(state.scroll_y, content_height - content.height))
    scroll_x = max(0, min(state.scroll_x, layout.total_width - view_width))
    view = Viewport(
        grid, Rect(content.x, content.y, view_width, content.height), scroll_x, scroll_y
    )
    tick = state.animation_tick

    for index, (stage, box) in enumerate(zip(stages, layout.boxes)):
        selected_job = state.selected_job if index == state.selected_stage else None
        render_stage(view, stage, box, selected_job, tick)

    render_connectors(view, stages, layout, state.selected_stage, tick)

    for index, (stage, box) in enumerate(zip(stages, layout.boxes)):
        if stage.status.is_active:
            start, end = glow_endpoints(stage, box, _next_box(layout, index), tick)
            apply_border_glow(view, box.x, box.y, box.width, box.height, start, end, tick)

    if has_scrollbar:
        render_scrollbar(
            grid,
            Rect(content.right - 1, content.y, 1, content.height),
            scroll_y,
            content_height,
        )


def _next_box(layout: LayoutInfo, index: int) -> StageBox | None:
    if index + 1 < len(layout.boxes):
        return layout.boxes[index + 1]
    return None


# ── stage boxes ───────────────────────────────────────────────────


def _header_text(stage: Stage, inner_width: int, tick: int) -> str:
    icon = stage.status.animated_symbol(tick)
    return truncate(f"{icon} {stage.name}", max(0, inner_width - 3))


def render_stage(
    view: Viewport, stage: Stage, box: StageBox, selected_job: int | None, tick: int
) -> None:
    x, y, width, height = box.x, box.y, box.width, box.height
    if width < 6 or height < 2:
        return

    status = stage.status
    color = theme.stage_rgb(stage)
    border = Style(fg=color if selected_job is not None else theme.BORDER)
    inner_w = width - 2
    bottom_y = y + height - 1

    # ╭─ icon name ───╮
    header = _header_text(stage, inner_w, tick)
    view.put_str(x, y, "╭─ ", border)
    header_x = x + 3
    if status.is_active:
        after = render_sweep_text(view, header_x, y, header, color, tick, text_width(header))
    else:
        after = view.put_str(header_x, y, header, Style(fg=color))
    view.put(after, y, " ", border)
    view.put_str(after + 1, y, "─" * max(0, inner_w - 3 - text_width(header)), border)
    view.put(x + width - 1, y, "╮", border)

    view.put(x, bottom_y, "╰", border)
    view.put_str(x + 1, bottom_y, "─" * inner_w, border)
    view.put(x + width - 1, bottom_y, "╯", border)

    for iy in range(y + 1, bottom_y):
        view.put(x, iy, "│", border)
        view.put(x + width - 1, iy, "│", border)

    interior = height - 2
    if len(stage.jobs) > interior > 0:
        visible, show_more = interior - 1, True
    else:
        visible, show_more = min(len(stage.jobs), interior), False

    for job_idx, job in enumerate(stage.jobs[:visible]):
        job_y = y + 1 + job_idx
        is_selected = selected_job == job_idx
        name = truncate(job.name, max(0, inner_w - 3))
        marker = "▸" if is_selected else job.status.animated_symbol(tick)
        line = pad(f" {marker} {name}", inner_w)
        job_rgb = theme.status_rgb(job.status)
        if job.status.is_active:
            render_sweep_text(view, x + 1, job_y, line, job_rgb, tick, inner_w, bold=is_selected)
        else:
            view.put_str(x + 1, job_y, line, Style(fg=job_rgb, bold=is_selected), inner_w)

    if show_more:
        more = pad(f" +{len(stage.jobs) - visible} more", inner_w)
        view.put_str(x + 1, y + 1 + visible, more, Style(fg=theme.TEXT_DIM), inner_w)


# ── connectors ────────────────────────────────────────────────────


def connector_rgb(src: Stage, highlighted: bool) -> RGB:
    """Upstream status colour; dimmed while it runs, brightened when an end is selected."""
    rgb = theme.stage_rgb(src)
    if src.status.is_active:
        rgb = mix(rgb, theme.BORDER, 0.5)
    if highlighted:
        rgb = mix(rgb, theme.TEXT_BRIGHT, 0.35)
    return rgb


def _border_style(stage: Stage, selected: bool) -> Style:
    return Style(fg=theme.stage_rgb(stage) if selected else theme.BORDER)


def wrap_tee(box: StageBox) -> Point:
    """Where a wrap connector leaves the bottom border of *box*."""
    return max(box.right - 5, box.x + 1), box.bottom - 1


def render_connectors(
    view: Viewport,
    stages: Sequence[Stage],
    layout: LayoutInfo,
    selected_stage: int,
    tick: int,
) -> None:
    boxes = layout.boxes
    for i in range(min(len(stages), len(boxes)) - 1):
        src, dst = stages[i], stages[i + 1]
        cur, nxt = boxes[i], boxes[i + 1]
        src_selected = i == selected_stage
        dst_selected = i + 1 == selected_stage
        style = Style(fg=connector_rgb(src, src_selected or dst_selected))
        src_border = _border_style(src, src_selected)
        dst_border = _border_style(dst, dst_selected)

        if nxt.y == cur.y:
            path = _same_row_connector(view, cur, nxt, style, src_border, dst_border)
        else:
            path = _wrap_connector(view, cur, nxt, style, dst_border)

        if src.status.is_active:
            apply_light(view, path, light_levels(len(path), tick))


def _same_row_connector(
    view: Viewport,
    cur: StageBox,
    nxt: StageBox,
    style: Style,
    src_border: Style,
    dst_border: Style,
) -> list[Point]:
    cy = cur.mid_y
    right_border = cur.right - 1
    view.put(right_border, cy, "├", src_border)
    view.put_str(cur.right, cy, ARROW, style)
    path = [(right_border, cy)] + [(cur.right + k, cy) for k in range(len(ARROW))]
    if nxt.y <= cy < nxt.bottom:
        view.put(nxt.x, cy, "┤", dst_border)
        path.append((nxt.x, cy))
    return path


def _wrap_connector(
    view: Viewport, cur: StageBox, nxt: StageBox, style: Style, dst_border: Style
) -> list[Point]:
    """┬ on the source's bottom border, left along the gap row, down, then → into the target."""
    tee_x, tee_y = wrap_tee(cur)
    turn_y = tee_y + 1
    left_x = max(nxt.x - 3, 0)
    target_y = nxt.mid_y
    arrow_x = nxt.x - 1

    path: list[Point] = []
    view.put(tee_x, tee_y, "┬", style)
    path.append((tee_x, tee_y))

    view.put(tee_x, turn_y, "╯", style)
    path.append((tee_x, turn_y))
    for hx in range(tee_x - 1, left_x, -1):
        view.put(hx, turn_y, "─", style)
        path.append((hx, turn_y))
    view.put(left_x, turn_y, "╭", style)
    path.append((left_x, turn_y))

    for vy in range(turn_y + 1, target_y):
        view.put(left_x, vy, "│", style)
        path.append((left_x, vy))

    view.put(left_x, target_y, "╰", style)
    path.append((left_x, target_y))
    for hx in range(left_x + 1, arrow_x):
        view.put(hx, target_y, "─", style)
        path.append((hx, target_y))
    if arrow_x > left_x:
        view.put(arrow_x, target_y, "→", style)
        path.append((arrow_x, target_y))
    view.put(nxt.x, target_y, "┤", dst_border)
    path.append((nxt.x, target_y))
    return path


# ── glow ──────────────────────────────────────────────────────────


def glow_endpoints(
    stage: Stage, box: StageBox, next_box: StageBox | None, tick: int
) -> tuple[Point, Point]:
    """Start at the middle of the header name, end where the outgoing connector leaves."""
    header = _header_text(stage, box.width - 2, tick)
    start = (box.x + 3 + text_width(header) // 2, box.y)
    if next_box is not None and next_box.y != box.y:
        end = wrap_tee(box)
    else:
        end = (box.right - 1, box.mid_y)
    return start, end


# ── chrome ────────────────────────────────────────────────────────


def render_scrollbar(grid: Grid, track: Rect, offset: int, total: int) -> None:
    height = track.height
    if total <= height or height <= 0:
        return
    start = track.y + min(math.ceil(height * offset / total), height - 1)
    size = max(1, min(height, math.floor(height * height / total)))
    for y in range(start, min(start + size, track.bottom)):
        grid.put(track.x, y, SCROLLBAR_THUMB, Style(fg=theme.TEXT_DIM))


def status_line_text(details: PipelineDetails, running: bool) -> str | None:
    if details.pipeline is None:
        return None
    indicator = " ⟳" if running else ""
    return f"Pipeline #{details.pipeline.id} - {details.pipeline.status}{indicator}"


def _render_status_line(
    grid: Grid, area: Rect, details: PipelineDetails, state: PipelineViewState
) -> None:
    text = status_line_text(details, state.is_running())
    if text is None:
        return
    text = truncate(text, area.width)
    y = area.bottom - 1
    status = details.pipeline.status
    rgb = theme.status_rgb(status)
    if status.is_active:
        view = Viewport(grid, Rect(area.x, y, area.width, 1))
        render_sweep_text(view, 0, 0, text, rgb, state.animation_tick, area.width)
    else:
        grid.put_str(area.x, y, text, Style(fg=rgb), max_width=area.width)
