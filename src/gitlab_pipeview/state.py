"""Pipeline pane state: current pipeline, selection, scroll, caches and job log.

All mutation happens on the UI thread. Fetch results arrive as events from
:mod:`gitlab_pipeview.worker` and are applied with :meth:`PipelineViewState.apply_event`;
results for a commit or job that is no longer selected are dropped.
"""

from __future__ import annotations

import logging

from .cache import (
    DEFAULT_CAPACITY,
    BoundedCache,
    CachedPipeline,
    Error,
    Found,
    JobLogCache,
    NotFound,
    PipelineCache,
)
from .layout import TOP_MARGIN, fit_layout
from .log_parser import LogLine, job_log_as_text, parse_job_log
from .models.pipelines import Job, PipelineDetails, PipelineStatus
from .render.animation import advance_tick
from .worker import FetchEvent, LogFailed, LogLoaded, PipelineFailed, PipelineLoaded

logger = logging.getLogger(__name__)


class PipelineViewState:
    def __init__(self, cache_size: int = DEFAULT_CAPACITY) -> None:
        self.details: PipelineDetails | None = None
        self.current_sha: str | None = None
        self.selected_stage = 0
        self.selected_job = 0
        self.scroll_x = 0
        self.scroll_y = 0
        self.error: str | None = None
        self.loading = False
        self.animation_tick = 0
        self.cache: PipelineCache = BoundedCache(cache_size)
        self._pipelines_in_flight: set[str] = set()

        self.job_log: list[LogLine] = []
        self.job_log_job_id: int | None = None
        self.job_log_scroll = 0
        self.job_log_loading = False
        self.job_log_error: str | None = None
        self.job_log_focused = False
        self.job_log_visible_height = 0
        self.job_log_cache: JobLogCache = BoundedCache(cache_size)
        self._logs_in_flight: set[int] = set()

    def tick(self) -> None:
        self.animation_tick = advance_tick(self.animation_tick)

    # ── cache ─────────────────────────────────────────────────────

    def get_cached(self, sha: str) -> CachedPipeline | None:
        return self.cache.get(sha)

    def cache_result(self, sha: str, result: CachedPipeline) -> None:
        self.cache.insert(sha, result)

    def invalidate_cache(self, sha: str) -> None:
        self.cache.invalidate(sha)

    def cached_status(self, sha: str) -> PipelineStatus | None:
        """Pipeline status for *sha* if a found pipeline is cached, for the commit list."""
        cached = self.cache.get(sha)
        if isinstance(cached, Found):
            return cached.details.status
        return None

    # ── pipeline lifecycle ────────────────────────────────────────

    def _reset_selection(self) -> None:
        self.selected_stage = 0
        self.selected_job = 0
        self.scroll_x = 0
        self.scroll_y = 0

    def set_loading(self, sha: str) -> None:
        if self.current_sha != sha:
            self.details = None
            self._reset_selection()
            self.clear_job_log()
        self.current_sha = sha
        self.loading = True
        self.error = None

    def set_pipeline(self, sha: str, details: PipelineDetails | None) -> None:
        self.cache_result(sha, Found(details) if details is not None else NotFound())
        fresh = self.current_sha != sha or self.details is None
        if self.current_sha != sha:
            self._reset_selection()
            self.clear_job_log()
        self.current_sha = sha
        self.details = details
        self.error = None
        self.loading = False
        if fresh:
            self.auto_focus()
        self._clamp_selection()

    def set_error(self, sha: str, message: str) -> None:
        self.cache_result(sha, Error(message))
        self.current_sha = sha
        self.error = message
        self.loading = False

    def apply_cached(self, sha: str, cached: CachedPipeline) -> None:
        if self.current_sha != sha:
            self.clear_job_log()
        self.current_sha = sha
        self.loading = False
        if isinstance(cached, Found):
            self.details = cached.details
            self.error = None
        elif isinstance(cached, NotFound):
            self.details = None
            self.error = None
        else:
            self.details = None
            self.error = cached.message
        self._reset_selection()
        self.auto_focus()

    def visit_commit(self, sha: str) -> bool:
        """Show *sha*; returns True when the caller must dispatch a fetch for it."""
        cached = self.cache.get(sha)
        if cached is not None:
            self.apply_cached(sha, cached)
            return False
        self.set_loading(sha)
        if sha in self._pipelines_in_flight:
            return False
        self._pipelines_in_flight.add(sha)
        return True

    def refresh(self) -> bool:
        """Drop the cached outcome for the current commit and reload it in place."""
        if self.current_sha is None:
            return False
        self.invalidate_cache(self.current_sha)
        job = self.selected_job_obj()
        if job is not None:
            self.job_log_cache.invalidate(job.id)
        return self.visit_commit(self.current_sha)

    def is_running(self) -> bool:
        status = self.details.status if self.details else None
        return status in (
            PipelineStatus.RUNNING,
            PipelineStatus.PENDING,
            PipelineStatus.PREPARING,
        )

    # ── events ────────────────────────────────────────────────────

    def apply_event(self, event: FetchEvent) -> bool:
        """Apply one fetch result; returns False if it was stale and dropped."""
        if isinstance(event, (PipelineLoaded, PipelineFailed)):
            self._pipelines_in_flight.discard(event.sha)
            if event.sha != self.current_sha:
                logger.debug("Dropping stale pipeline result for %s", event.sha)
                return False
            if isinstance(event, PipelineLoaded):
                self.set_pipeline(event.sha, event.details)
            else:
                self.set_error(event.sha, event.message)
            return True

        self._logs_in_flight.discard(event.job_id)
        if event.job_id != self.get_selected_job_id():
            logger.debug("Dropping stale log result for job %d", event.job_id)
            return False
        if isinstance(event, LogLoaded):
            self.job_log_cache.insert(event.job_id, event.text)
            self.set_job_log(event.job_id, event.text)
        elif isinstance(event, LogFailed):
            self.job_log_job_id = event.job_id
            self.job_log_loading = False
            self.job_log_error = event.message
        return True

    # ── selection ─────────────────────────────────────────────────

    def _clamp_selection(self) -> None:
        stages = self.details.stages if self.details else ()
        self.selected_stage = max(0, min(self.selected_stage, len(stages) - 1))
        jobs = stages[self.selected_stage].jobs if stages else ()
        self.selected_job = max(0, min(self.selected_job, len(jobs) - 1))

    def select_next_stage(self) -> None:
        if self.details and self.selected_stage < len(self.details.stages) - 1:
            self.selected_stage += 1
            self.selected_job = 0

    def select_prev_stage(self) -> None:
        if self.selected_stage > 0:
            self.selected_stage -= 1
            self.selected_job = 0

    def select_next_job(self) -> None:
        if self.details and self.selected_stage < len(self.details.stages):
            jobs = self.details.stages[self.selected_stage].jobs
            if self.selected_job < len(jobs) - 1:
                self.selected_job += 1

    def select_prev_job(self) -> None:
        if self.selected_job > 0:
            self.selected_job -= 1

    def auto_focus(self) -> None:
        """Select the most recently started running job, else the first failed one."""
        if not self.details:
            return
        best: tuple[int, int, str] | None = None
        for si, stage in enumerate(self.details.stages):
            for ji, job in enumerate(stage.jobs):
                if job.status is PipelineStatus.RUNNING:
                    started = job.started_at or ""
                    if best is None or started > best[2]:
                        best = (si, ji, started)
        if best is not None:
            self.selected_stage, self.selected_job = best[0], best[1]
            return
        for si, stage in enumerate(self.details.stages):
            for ji, job in enumerate(stage.jobs):
                if job.status is PipelineStatus.FAILED:
                    self.selected_stage, self.selected_job = si, ji
                    return

    def selected_job_obj(self) -> Job | None:
        if not self.details:
            return None
        return self.details.job_at(self.selected_stage, self.selected_job)

    def get_selected_job_id(self) -> int | None:
        job = self.selected_job_obj()
        return job.id if job else None

    def selected_job_is_running(self) -> bool:
        job = self.selected_job_obj()
        return job is not None and job.status in (PipelineStatus.RUNNING, PipelineStatus.PENDING)

    # ── scrolling ─────────────────────────────────────────────────

    def ensure_selection_visible(self, width: int, height: int) -> None:
        """Shift the scroll offsets minimally so the selected stage box is in view."""
        if not self.details or not self.details.stages or width <= 0 or height <= 0:
            self.scroll_x = self.scroll_y = 0
            return
        layout, content_height = fit_layout(self.details.stages, width, height)
        view_width = width - 1 if content_height > height else width
        box = layout.boxes[min(self.selected_stage, len(layout.boxes) - 1)]

        top = 0 if box.y <= TOP_MARGIN else box.y
        if top < self.scroll_y:
            self.scroll_y = top
        elif box.bottom > self.scroll_y + height:
            self.scroll_y = min(top, box.bottom - height)
        self.scroll_y = max(0, min(self.scroll_y, content_height - height))

        if box.x < self.scroll_x:
            self.scroll_x = box.x
        elif box.right > self.scroll_x + view_width:
            self.scroll_x = min(box.x, box.right - view_width)
        self.scroll_x = max(0, min(self.scroll_x, layout.total_width - view_width))

    # ── job log ───────────────────────────────────────────────────

    def request_job_log(self, *, force: bool = False) -> int | None:
        """Point the log pane at the selected job; returns a job id to fetch, if any.

        Logs of finished jobs are served from the cache; active jobs are
        always fetched again.
        """
        job = self.selected_job_obj()
        if job is None:
            self.clear_job_log()
            return None
        if job.id == self.job_log_job_id and not force and not self.job_log_error:
            return None

        cached = self.job_log_cache.get(job.id)
        if cached is not None and not force and not job.status.is_active:
            self.set_job_log(job.id, cached)
            return None

        if job.id != self.job_log_job_id:
            self.job_log = []
            self.job_log_scroll = 0
        self.job_log_job_id = job.id
        self.job_log_loading = True
        self.job_log_error = None
        if job.id in self._logs_in_flight:
            return None
        self._logs_in_flight.add(job.id)
        return job.id

    def set_job_log(self, job_id: int, log_text: str) -> None:
        self.job_log = parse_job_log(log_text)
        self.job_log_job_id = job_id
        self.job_log_loading = False
        self.job_log_error = None
        if self.selected_job_is_running():
            self.job_log_scroll = max(0, len(self.job_log) - self.job_log_visible_height)
        else:
            self.job_log_scroll = 0

    def clear_job_log(self) -> None:
        self.job_log = []
        self.job_log_job_id = None
        self.job_log_scroll = 0
        self.job_log_loading = False
        self.job_log_error = None

    def max_log_scroll(self) -> int:
        return max(0, len(self.job_log) - self.job_log_visible_height)

    def scroll_log(self, delta: int) -> None:
        self.job_log_scroll = max(0, min(self.job_log_scroll + delta, self.max_log_scroll()))

    def scroll_log_to_end(self) -> None:
        self.job_log_scroll = self.max_log_scroll()

    def toggle_log_focus(self) -> None:
        self.job_log_focused = not self.job_log_focused

    def job_log_as_text(self) -> str:
        return job_log_as_text(self.job_log)
