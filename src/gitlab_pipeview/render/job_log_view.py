"""Scrollable job-log pane."""

from __future__ import annotations

from ..state import PipelineViewState
from . import theme
from .grid import Grid, Rect, Style, Viewport
from .pipeline_view import render_message, render_scrollbar

LOADING_MESSAGE = "Loading log..."
EMPTY_MESSAGE = "Log is empty"
NO_JOB_MESSAGE = "Select a job to see its log"


def render_job_log(grid: Grid, area: Rect, state: PipelineViewState) -> None:
    if area.width < 1 or area.height < 1:
        return
    if state.job_log_error:
        render_message(grid, area, f"Error: {state.job_log_error}", theme.ERROR)
        return
    if state.job_log_loading and not state.job_log:
        render_message(grid, area, LOADING_MESSAGE, theme.TEXT_DIM)
        return
    if state.job_log_job_id is None:
        render_message(grid, area, NO_JOB_MESSAGE, theme.TEXT_DIM)
        return
    if not state.job_log:
        render_message(grid, area, EMPTY_MESSAGE, theme.TEXT_DIM)
        return

    lines = state.job_log
    has_scrollbar = len(lines) > area.height
    width = area.width - 1 if has_scrollbar else area.width
    top = max(0, min(state.job_log_scroll, len(lines) - area.height))
    number_width = len(str(len(lines)))
    dim = Style(fg=theme.TEXT_DIM)

    for row, line in enumerate(lines[top : top + area.height]):
        view = Viewport(grid, Rect(area.x, area.y + row, width, 1))
        x = view.put_str(0, 0, f"{top + row + 1:>{number_width}} ", dim)
        x = view.put_str(x, 0, f"{line.timestamp or ' ' * 8}  ", dim)
        for text, style in line.styled:
            x = view.put_str(x, 0, text, Style(fg=theme.TEXT).patch(style))
        if line.duration:
            view.put_str(x + 1, 0, line.duration, Style(fg=theme.ACCENT))

    if has_scrollbar:
        render_scrollbar(grid, Rect(area.right - 1, area.y, 1, area.height), top, len(lines))
