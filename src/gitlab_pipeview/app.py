"""Interactive terminal application.

:class:`PipelineApp` holds everything that is not curses: the commit list, the
pipeline pane state, key handling, polling and frame composition into a
:class:`~gitlab_pipeview.render.grid.Grid`. :func:`run_curses` drives it from a
curses screen: one loop that reads keys, drains fetch results, advances the
animation tick and paints the grid.
"""

from __future__ import annotations

import curses
import logging
import sys
import time
import webbrowser
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .git import Commit
from .layout import fit_layout
from .models.pipelines import PipelineDetails, PipelineStatus
from .render import theme
from .render.graph_overlay import overlay_commit_hash
from .render.grid import RGB, Grid, Rect, Style
from .render.job_log_view import render_job_log
from .render.panel import draw_panel
from .render.pipeline_view import pipeline_content_rect, render_pipeline
from .state import PipelineViewState
from .worker import FetchEvent, PipelineFailed, PipelineLoaded

logger = logging.getLogger(__name__)

COMMIT_LIST_MAX_WIDTH = 60
COMMIT_LIST_MIN_SCREEN = 80
PIPELINE_HEIGHT_RATIO = 0.55
PAGE_SIZE = 10
SELECTED_ROW = Style(bg=theme.NORD2)


class Dispatcher(Protocol):
    def request_pipeline(self, sha: str) -> object: ...

    def request_job_log(self, job_id: int) -> object: ...

    def drain(self) -> list[FetchEvent]: ...


class PipelineApp:
    def __init__(
        self,
        commits: Sequence[Commit],
        worker: Dispatcher,
        *,
        cache_size: int = 100,
        poll_seconds: float = 10,
        log_dir: Path | None = None,
    ) -> None:
        self.commits = list(commits)
        self.worker = worker
        self.state = PipelineViewState(cache_size)
        self.poll_seconds = poll_seconds
        self.log_dir = log_dir or Path.cwd()
        self.selected_commit = 0
        self.commit_scroll = 0
        self.notice: str | None = None
        self.running = True
        self._last_poll = 0.0

    # ── fetch dispatch ────────────────────────────────────────────

    def start(self, now: float = 0.0) -> None:
        self._last_poll = now
        if self.commits:
            self.visit(self.commits[self.selected_commit].sha)

    def visit(self, sha: str) -> None:
        if self.state.visit_commit(sha):
            self.worker.request_pipeline(sha)
        else:
            self._sync_job_log()

    def _sync_job_log(self, *, force: bool = False) -> None:
        job_id = self.state.request_job_log(force=force)
        if job_id is not None:
            self.worker.request_job_log(job_id)

    def process_events(self) -> int:
        """Apply every queued fetch result; returns how many were current."""
        applied = 0
        for event in self.worker.drain():
            if not self.state.apply_event(event):
                continue
            applied += 1
            if isinstance(event, (PipelineLoaded, PipelineFailed)):
                self._sync_job_log()
        return applied

    def poll(self, now: float) -> None:
        """Refresh the current pipeline (and running job log) every ``poll_seconds``; 0 disables."""
        if self.poll_seconds <= 0 or now - self._last_poll < self.poll_seconds:
            return
        self._last_poll = now
        if self.state.is_running():
            logger.debug("Polling running pipeline %s", self.state.current_sha)
            if self.state.refresh():
                self.worker.request_pipeline(self.state.current_sha)
        if self.state.selected_job_is_running():
            self._sync_job_log(force=True)

    # ── keys ──────────────────────────────────────────────────────

    def handle_key(self, key: str) -> None:
        state = self.state
        self.notice = None
        if key == "q":
            self.running = False
        elif key == "tab":
            state.toggle_log_focus()
        elif key in ("left", "h"):
            state.select_prev_stage()
            self._sync_job_log()
        elif key in ("right", "l"):
            state.select_next_stage()
            self._sync_job_log()
        elif key in ("up", "k"):
            if state.job_log_focused:
                state.scroll_log(-1)
            else:
                state.select_prev_job()
                self._sync_job_log()
        elif key in ("down", "j"):
            if state.job_log_focused:
                state.scroll_log(1)
            else:
                state.select_next_job()
                self._sync_job_log()
        elif key == "pgup":
            state.scroll_log(-PAGE_SIZE)
        elif key == "pgdn":
            state.scroll_log(PAGE_SIZE)
        elif key == "g":
            state.job_log_scroll = 0
        elif key == "G":
            state.scroll_log_to_end()
        elif key == "[":
            self.select_commit(self.selected_commit - 1)
        elif key == "]":
            self.select_commit(self.selected_commit + 1)
        elif key == "r":
            if state.refresh():
                self.worker.request_pipeline(state.current_sha)
        elif key == "f":
            state.auto_focus()
            self._sync_job_log()
        elif key == "o":
            self.open_in_browser()
        elif key == "w":
            self.write_log()

    def select_commit(self, index: int) -> None:
        if not self.commits:
            return
        index = max(0, min(index, len(self.commits) - 1))
        if index == self.selected_commit and self.state.current_sha is not None:
            return
        self.selected_commit = index
        self.visit(self.commits[index].sha)

    def open_in_browser(self) -> None:
        job = self.state.selected_job_obj()
        if job is not None and job.web_url:
            url = job.web_url
        elif self.state.details and self.state.details.pipeline:
            url = self.state.details.pipeline.web_url
        else:
            self.notice = "Nothing to open"
            return
        webbrowser.open(url)

    def write_log(self) -> Path | None:
        job_id = self.state.job_log_job_id
        if job_id is None or not self.state.job_log:
            self.notice = "No log loaded"
            return None
        path = self.log_dir / f"job-{job_id}.log"
        try:
            path.write_text(self.state.job_log_as_text(), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)
            self.notice = f"Write failed: {e.strerror or e}"
            return None
        self.notice = f"Saved {path.name}"
        return path

    # ── frame ─────────────────────────────────────────────────────

    def tick(self) -> None:
        self.state.tick()

    def compose(self, width: int, height: int) -> Grid:
        grid = Grid(width, height)
        if width < 1 or height < 1:
            return grid

        right = Rect(0, 0, width, height)
        if width >= COMMIT_LIST_MIN_SCREEN and self.commits:
            list_width = min(COMMIT_LIST_MAX_WIDTH, width // 3)
            self._render_commits(grid, Rect(0, 0, list_width, height))
            right = Rect(list_width, 0, width - list_width, height)

        pipeline_height = max(3, int(right.height * PIPELINE_HEIGHT_RATIO))
        pipeline_rect = Rect(right.x, right.y, right.width, pipeline_height)
        log_rect = Rect(right.x, pipeline_rect.bottom, right.width, right.height - pipeline_height)
        self._render_pipeline(grid, pipeline_rect)
        self._render_log(grid, log_rect)
        return grid

    def _render_commits(self, grid: Grid, rect: Rect) -> None:
        inner = draw_panel(grid, rect, "Commits")
        if inner.height <= 0:
            return
        if self.selected_commit < self.commit_scroll:
            self.commit_scroll = self.selected_commit
        elif self.selected_commit >= self.commit_scroll + inner.height:
            self.commit_scroll = self.selected_commit - inner.height + 1

        visible = self.commits[self.commit_scroll : self.commit_scroll + inner.height]
        for row, commit in enumerate(visible):
            y = inner.y + row
            index = self.commit_scroll + row
            if index == self.selected_commit:
                grid.fill(Rect(inner.x, y, inner.width, 1), SELECTED_ROW)
            text = f"{commit.short_sha} {commit.subject}"
            grid.put_str(inner.x, y, text, Style(fg=theme.TEXT), max_width=inner.width)
            status = self._commit_status(commit.sha)
            if status is not None:
                overlay_commit_hash(
                    grid, y, commit.sha, status, self.state.animation_tick, inner.x, inner.right
                )

    def _commit_status(self, sha: str) -> PipelineStatus | None:
        if sha == self.state.current_sha and self.state.details is not None:
            return self.state.details.status
        return self.state.cached_status(sha)

    def _render_pipeline(self, grid: Grid, rect: Rect) -> None:
        title = "Pipeline"
        if self.state.current_sha:
            title = f"Pipeline {self.state.current_sha[:7]}"
        inner = draw_panel(grid, rect, title, focused=not self.state.job_log_focused)
        content = pipeline_content_rect(inner)
        self.state.ensure_selection_visible(content.width, content.height)
        render_pipeline(grid, inner, self.state)

    def _render_log(self, grid: Grid, rect: Rect) -> None:
        job = self.state.selected_job_obj()
        title = f"Log: {job.name}" if job is not None else "Log"
        if self.notice:
            title = f"{title} | {self.notice}"
        inner = draw_panel(grid, rect, title, focused=self.state.job_log_focused)
        self.state.job_log_visible_height = max(0, inner.height)
        self.state.job_log_scroll = min(self.state.job_log_scroll, self.state.max_log_scroll())
        render_job_log(grid, inner, self.state)


def render_snapshot(
    sha: str, details: PipelineDetails | None, width: int, height: int | None = None
) -> list[str]:
    """Plain-text lines of one pipeline frame, sized to fit all stages unless *height* is set."""
    state = PipelineViewState()
    state.set_pipeline(sha, details)
    if height is None:
        height = 1
        if details is not None and details.stages:
            _, content_height = fit_layout(details.stages, width, sys.maxsize)
            height = content_height + 1
    grid = Grid(width, height)
    content = pipeline_content_rect(grid.area)
    state.ensure_selection_visible(content.width, content.height)
    render_pipeline(grid, grid.area, state)
    return grid.lines()


# ── curses driver ─────────────────────────────────────────────────


def rgb_to_xterm(rgb: RGB) -> int:
    """Nearest entry of the xterm 256-colour palette (6x6x6 cube or grey ramp)."""
    r, g, b = rgb

    def cube(v: int) -> int:
        return 0 if v < 48 else 1 if v < 115 else (v - 35) // 40

    ci = 16 + 36 * cube(r) + 6 * cube(g) + cube(b)
    levels = (0, 95, 135, 175, 215, 255)
    cr, cg, cb = levels[cube(r)], levels[cube(g)], levels[cube(b)]

    grey_avg = (r + g + b) // 3
    grey_index = 23 if grey_avg > 238 else max(0, (grey_avg - 3) // 10)
    grey = 8 + 10 * grey_index

    def dist(x: int, y: int, z: int) -> int:
        return (x - r) ** 2 + (y - g) ** 2 + (z - b) ** 2

    if dist(grey, grey, grey) < dist(cr, cg, cb):
        return 232 + grey_index
    return ci


class CursesPalette:
    """Allocates curses colour pairs on demand for ``(fg, bg)`` RGB combinations."""

    def __init__(self) -> None:
        self.enabled = curses.has_colors()
        self._pairs: dict[tuple[int, int], int] = {}
        if self.enabled:
            curses.start_color()
            curses.use_default_colors()
            self.enabled = curses.COLORS >= 256

    def attr(self, style: Style) -> int:
        attr = curses.A_BOLD if style.bold else curses.A_NORMAL
        if not self.enabled or (style.fg is None and style.bg is None):
            return attr
        key = (
            rgb_to_xterm(style.fg) if style.fg else -1,
            rgb_to_xterm(style.bg) if style.bg else -1,
        )
        pair = self._pairs.get(key)
        if pair is None:
            if len(self._pairs) + 1 >= curses.COLOR_PAIRS:
                return attr
            pair = len(self._pairs) + 1
            curses.init_pair(pair, *key)
            self._pairs[key] = pair
        return attr | curses.color_pair(pair)


def _key_names() -> dict[int, str]:
    return {
        curses.KEY_LEFT: "left",
        curses.KEY_RIGHT: "right",
        curses.KEY_UP: "up",
        curses.KEY_DOWN: "down",
        curses.KEY_PPAGE: "pgup",
        curses.KEY_NPAGE: "pgdn",
        ord("\t"): "tab",
    }


def paint(stdscr: curses.window, grid: Grid, palette: CursesPalette) -> None:
    stdscr.erase()
    for y in range(grid.height):
        for x, text, style in grid.runs(y):
            try:
                stdscr.addstr(y, x, text, palette.attr(style))
            except curses.error:
                # writing the bottom-right cell moves the cursor off screen
                pass
    stdscr.refresh()


def run_curses(stdscr: curses.window, app: PipelineApp, tick_ms: int) -> None:
    curses.curs_set(0)
    stdscr.timeout(tick_ms)
    palette = CursesPalette()
    keys = _key_names()
    interval = tick_ms / 1000
    app.start(time.monotonic())
    last_tick = time.monotonic()

    while app.running:
        height, width = stdscr.getmaxyx()
        paint(stdscr, app.compose(width, height), palette)

        ch = stdscr.getch()
        if ch == curses.KEY_RESIZE:
            continue
        if ch != -1:
            name = keys.get(ch) or (chr(ch) if 0 <= ch < 0x110000 else "")
            app.handle_key(name)

        app.process_events()
        now = time.monotonic()
        app.poll(now)
        if now - last_tick > 10 * interval:
            last_tick = now - interval
        while now - last_tick >= interval:
            app.tick()
            last_tick += interval
