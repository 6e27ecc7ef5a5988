"""Tests for GitLab API client."""

from __future__ import annotations

import httpx
import pytest
import respx

from gitlab_pipeview.client import GitLabClient
from gitlab_pipeview.config import GitLabConfig
from gitlab_pipeview.exceptions import (
    GitLabApiError,
    GitLabAuthError,
    GitLabDecodeError,
    GitLabNotFoundError,
    GitLabTransportError,
)
from gitlab_pipeview.models.pipelines import PipelineStatus

BASE = "https://gitlab.example.com/api/v4"

PIPELINE = {
    "id": 42,
    "iid": 7,
    "status": "running",
    "sha": "abc123",
    "ref": "main",
    "web_url": "https://gitlab.example.com/g/p/-/pipelines/42",
    "source": "push",
}

JOBS = [
    {"id": 12, "name": "unit", "status": "pending", "stage": "test"},
    {"id": 11, "name": "compile", "status": "running", "stage": "build"},
    {"id": 13, "name": "lint", "status": "pending", "stage": "test", "allow_failure": True},
]


def _make_client() -> GitLabClient:
    return GitLabClient(
        GitLabConfig(url="https://gitlab.example.com", token="test-token", project_id="123")
    )


class TestEncodeId:
    def test_numeric_string(self):
        assert GitLabClient._encode_id("123") == "123"

    def test_integer(self):
        assert GitLabClient._encode_id(123) == "123"

    def test_path(self):
        assert GitLabClient._encode_id("my-group/my-project") == "my-group%2Fmy-project"


class TestClientSetup:
    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError, match="GITLAB_URL"):
            GitLabClient(GitLabConfig(url="", token="x", project_id="1"))

    @pytest.mark.asyncio
    async def test_sends_private_token(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(200, json=[])
            )
            async with _make_client() as client:
                await client.get_pipeline_for_commit(123, "abc123")
            assert route.calls.last.request.headers["PRIVATE-TOKEN"] == "test-token"


class TestRequest:
    @pytest.mark.asyncio
    async def test_auth_error_401(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(401, text="Unauthorized")
            )
            client = _make_client()
            with pytest.raises(GitLabAuthError) as exc_info:
                await client.get_pipeline_for_commit(123, "abc123")
            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_auth_error_403(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(return_value=httpx.Response(403))
            client = _make_client()
            with pytest.raises(GitLabAuthError, match="Forbidden"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_not_found_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/999/pipelines").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            client = _make_client()
            with pytest.raises(GitLabNotFoundError):
                await client.get_pipeline_for_commit(999, "abc123")

    @pytest.mark.asyncio
    async def test_server_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(500, text="Internal Server Error")
            )
            client = _make_client()
            with pytest.raises(GitLabApiError) as exc_info:
                await client.get_pipeline_for_commit(123, "abc123")
            assert exc_info.value.status_code == 500
            assert "500 Internal Server Error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_html_response_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(
                    200,
                    text="<html><body>Login</body></html>",
                    headers={"content-type": "text/html"},
                )
            )
            client = _make_client()
            with pytest.raises(GitLabDecodeError, match="HTML"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(
                    200, text="{not json", headers={"content-type": "application/json"}
                )
            )
            client = _make_client()
            with pytest.raises(GitLabDecodeError, match="Failed to parse pipelines"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_schema_mismatch(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(200, json=[{"status": "running"}])
            )
            client = _make_client()
            with pytest.raises(GitLabDecodeError, match="pipelines"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            client = _make_client()
            with pytest.raises(GitLabTransportError, match="Request failed"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_redirect_loop(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                side_effect=httpx.TooManyRedirects("loop")
            )
            client = _make_client()
            with pytest.raises(GitLabTransportError, match="Request failed: loop"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_non_utf8_body(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(
                    200, content=b"[\xff\xfe\xfa]", headers={"content-type": "application/json"}
                )
            )
            client = _make_client()
            with pytest.raises(GitLabDecodeError, match="Failed to parse pipelines"):
                await client.get_pipeline_for_commit(123, "abc123")

    @pytest.mark.asyncio
    async def test_path_encoding(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.get("/projects/my-group%2Fmy-project/pipelines").mock(
                return_value=httpx.Response(200, json=[])
            )
            client = _make_client()
            await client.get_pipeline_for_commit("my-group/my-project", "abc123")
            assert route.called


class TestPipelines:
    @pytest.mark.asyncio
    async def test_pipeline_for_commit_takes_first(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(200, json=[PIPELINE, {**PIPELINE, "id": 41}])
            )
            client = _make_client()
            pipeline = await client.get_pipeline_for_commit(123, "abc123")
            assert pipeline.id == 42
            assert pipeline.status is PipelineStatus.RUNNING
            assert route.calls.last.request.url.params["sha"] == "abc123"

    @pytest.mark.asyncio
    async def test_pipeline_for_commit_none(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(return_value=httpx.Response(200, json=[]))
            client = _make_client()
            assert await client.get_pipeline_for_commit(123, "abc123") is None

    @pytest.mark.asyncio
    async def test_pipeline_jobs_page_size(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.get("/projects/123/pipelines/42/jobs").mock(
                return_value=httpx.Response(200, json=JOBS)
            )
            client = _make_client()
            jobs = await client.get_pipeline_jobs(123, 42)
            assert [j.id for j in jobs] == [12, 11, 13]
            assert jobs[2].allow_failure is True
            assert route.calls.last.request.url.params["per_page"] == "100"

    @pytest.mark.asyncio
    async def test_pipeline_details_groups_stages(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/pipelines").mock(
                return_value=httpx.Response(200, json=[PIPELINE])
            )
            router.get("/projects/123/pipelines/42/jobs").mock(
                return_value=httpx.Response(200, json=JOBS)
            )
            client = _make_client()
            details = await client.get_pipeline_details(123, "abc123")
            assert [s.name for s in details.stages] == ["build", "test"]
            assert details.status is PipelineStatus.RUNNING
            assert [j.name for j in details.stages[1].jobs] == ["unit", "lint"]

    @pytest.mark.asyncio
    async def test_pipeline_details_without_pipeline_skips_jobs(self):
        async with respx.mock(base_url=BASE, assert_all_called=False) as router:
            router.get("/projects/123/pipelines").mock(return_value=httpx.Response(200, json=[]))
            jobs_route = router.get("/projects/123/pipelines/42/jobs")
            client = _make_client()
            assert await client.get_pipeline_details(123, "abc123") is None
            assert not jobs_route.called


class TestJobLog:
    @pytest.mark.asyncio
    async def test_get_job_log(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/jobs/456/trace").mock(
                return_value=httpx.Response(200, text="line1\nline2\nline3")
            )
            client = _make_client()
            result = await client.get_job_log(123, 456)
            assert result == "line1\nline2\nline3"

    @pytest.mark.asyncio
    async def test_empty_job_log(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/jobs/456/trace").mock(return_value=httpx.Response(200))
            client = _make_client()
            assert await client.get_job_log(123, 456) == ""

    @pytest.mark.asyncio
    async def test_job_log_not_found(self):
        async with respx.mock(base_url=BASE) as router:
            router.get("/projects/123/jobs/456/trace").mock(return_value=httpx.Response(404))
            client = _make_client()
            with pytest.raises(GitLabNotFoundError):
                await client.get_job_log(123, 456)
