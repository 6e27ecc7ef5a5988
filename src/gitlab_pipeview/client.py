"""GitLab CI API client using httpx."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from .config import GitLabConfig
from .exceptions import (
    GitLabApiError,
    GitLabAuthError,
    GitLabDecodeError,
    GitLabNotFoundError,
    GitLabTransportError,
)
from .models.pipelines import Job, Pipeline, PipelineDetails

logger = logging.getLogger(__name__)

JOBS_PAGE_SIZE = 100

_pipelines_adapter = TypeAdapter(list[Pipeline])
_jobs_adapter = TypeAdapter(list[Job])


class GitLabClient:
    """Async HTTP client for the read-only pipeline endpoints of GitLab REST API v4."""

    def __init__(self, config: GitLabConfig | None = None) -> None:
        self.config = config or GitLabConfig.from_env()
        self.config.validate()
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "PRIVATE-TOKEN": self.config.token,
                "Accept": "application/json",
            },
            timeout=self.config.timeout,
            verify=self.config.ssl_verify,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitLabClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── HTTP helpers ──────────────────────────────────────────────

    @staticmethod
    def _encode_id(project_id: str | int) -> str:
        """Encode a project ID. Numeric IDs pass through; paths are URL-encoded."""
        if isinstance(project_id, int):
            return str(project_id)
        try:
            return str(int(project_id))
        except ValueError:
            return quote(project_id, safe="")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        raw: bool = False,
        what: str = "response",
    ) -> Any:
        """Make an API request and return parsed JSON (or raw text if raw=True)."""
        try:
            resp = await self._client.request(method, path, params=params)
        except httpx.RequestError as e:
            raise GitLabTransportError(str(e) or type(e).__name__) from e

        if resp.status_code in (401, 403):
            raise GitLabAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise GitLabNotFoundError(resp.text)
        if not resp.is_success:
            raise GitLabApiError(resp.status_code, resp.reason_phrase or "", resp.text)

        if raw:
            return resp.text

        if resp.status_code == 204 or not resp.content:
            return None

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "unexpected HTML response, check URL and authentication"
            raise GitLabDecodeError(what, msg)

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GitLabDecodeError(what, str(e)) from e

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        raw: bool = False,
        what: str = "response",
    ) -> Any:
        return await self._request("GET", path, params=params, raw=raw, what=what)

    @staticmethod
    def _validate(adapter: TypeAdapter, data: Any, what: str) -> Any:
        try:
            return adapter.validate_python(data if data is not None else [])
        except ValidationError as e:
            raise GitLabDecodeError(what, f"{e.error_count()} validation error(s)") from e

    # ── Pipelines ─────────────────────────────────────────────────

    async def get_pipeline_for_commit(self, project_id: str | int, sha: str) -> Pipeline | None:
        """Return the most recent pipeline for *sha*, or None if there is none."""
        enc = self._encode_id(project_id)
        data = await self.get(f"/projects/{enc}/pipelines", {"sha": sha}, what="pipelines")
        pipelines = self._validate(_pipelines_adapter, data, "pipelines")
        return pipelines[0] if pipelines else None

    async def get_pipeline_jobs(self, project_id: str | int, pipeline_id: int) -> list[Job]:
        enc = self._encode_id(project_id)
        data = await self.get(
            f"/projects/{enc}/pipelines/{pipeline_id}/jobs",
            {"per_page": JOBS_PAGE_SIZE},
            what="jobs",
        )
        return self._validate(_jobs_adapter, data, "jobs")

    async def get_pipeline_details(
        self, project_id: str | int, sha: str
    ) -> PipelineDetails | None:
        """Find the pipeline for *sha* and assemble its stages.

        Returns None without requesting jobs when the commit has no pipeline.
        """
        pipeline = await self.get_pipeline_for_commit(project_id, sha)
        if pipeline is None:
            logger.debug("No pipeline for %s", sha)
            return None
        jobs = await self.get_pipeline_jobs(project_id, pipeline.id)
        logger.debug("Pipeline #%d for %s has %d jobs", pipeline.id, sha, len(jobs))
        return PipelineDetails.from_jobs(pipeline, jobs)

    # ── Jobs ──────────────────────────────────────────────────────

    async def get_job_log(self, project_id: str | int, job_id: int) -> str:
        enc = self._encode_id(project_id)
        text = await self.get(f"/projects/{enc}/jobs/{job_id}/trace", raw=True)
        return text or ""
