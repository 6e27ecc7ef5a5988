"""Background fetching for the single-threaded render loop.

A daemon thread runs an asyncio event loop that owns the :class:`GitLabClient`.
Requests are submitted from the UI thread; each finished fetch is posted to a
:class:`queue.Queue` as one of the result events below. The queue is the only
object shared between threads.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Union

from .client import GitLabClient
from .exceptions import GitLabError, describe_error
from .models.pipelines import PipelineDetails

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineLoaded:
    """Fetch finished; ``details`` is None when the commit has no pipeline."""

    sha: str
    details: PipelineDetails | None


@dataclass(frozen=True)
class PipelineFailed:
    sha: str
    message: str


@dataclass(frozen=True)
class LogLoaded:
    job_id: int
    text: str


@dataclass(frozen=True)
class LogFailed:
    job_id: int
    message: str


FetchEvent = Union[PipelineLoaded, PipelineFailed, LogLoaded, LogFailed]


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Fetch crashed", exc_info=error)


class FetchWorker:
    def __init__(
        self,
        client_factory: Callable[[], GitLabClient],
        project_id: str | int,
        results: queue.Queue[FetchEvent] | None = None,
    ) -> None:
        self._client_factory = client_factory
        self.project_id = project_id
        self.results: queue.Queue[FetchEvent] = results if results is not None else queue.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._client: GitLabClient | None = None
        self._ready = threading.Event()
        self._startup_error: Exception | None = None

    # ── lifecycle ─────────────────────────────────────────────────

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="pipeline-fetch", daemon=True)
        self._thread.start()
        self._ready.wait()
        if self._startup_error is not None:
            self._thread.join()
            self._thread = None
            raise self._startup_error

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            self._client = self._client_factory()
        except Exception as e:
            # re-raised on the calling thread by start()
            self._startup_error = e
            loop.close()
            self._ready.set()
            return
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            loop.run_until_complete(self._client.close())
            loop.close()

    def stop(self, timeout: float = 2.0) -> None:
        if self._loop is None or self._thread is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        self._thread = None
        self._loop = None

    def __enter__(self) -> FetchWorker:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ── requests ──────────────────────────────────────────────────

    def _submit(self, coro) -> Future:
        if self._loop is None:
            coro.close()
            msg = "FetchWorker is not running"
            raise RuntimeError(msg)
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(_log_failure)
        return future

    def request_pipeline(self, sha: str) -> Future:
        logger.debug("Fetching pipeline for %s", sha)
        return self._submit(self._fetch_pipeline(sha))

    def request_job_log(self, job_id: int) -> Future:
        logger.debug("Fetching log for job %d", job_id)
        return self._submit(self._fetch_job_log(job_id))

    async def _fetch_pipeline(self, sha: str) -> None:
        try:
            details = await self._client.get_pipeline_details(self.project_id, sha)
        except GitLabError as e:
            logger.warning("Pipeline fetch for %s failed: %s", sha, e)
            self.results.put(PipelineFailed(sha, describe_error(e)))
        else:
            self.results.put(PipelineLoaded(sha, details))

    async def _fetch_job_log(self, job_id: int) -> None:
        try:
            text = await self._client.get_job_log(self.project_id, job_id)
        except GitLabError as e:
            logger.warning("Log fetch for job %d failed: %s", job_id, e)
            self.results.put(LogFailed(job_id, describe_error(e)))
        else:
            self.results.put(LogLoaded(job_id, text))

    def drain(self) -> list[FetchEvent]:
        """All results delivered so far, in completion order, without blocking."""
        events = []
        while True:
            try:
                events.append(self.results.get_nowait())
            except queue.Empty:
                return events
