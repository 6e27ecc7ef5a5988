"""Shared test fixtures for gitlab-pipeview."""

from __future__ import annotations

import pytest
import respx

from gitlab_pipeview.client import GitLabClient
from gitlab_pipeview.config import GitLabConfig
from gitlab_pipeview.models.pipelines import Job, Pipeline, PipelineDetails, PipelineStatus

TEST_URL = "https://gitlab.example.com"
TEST_TOKEN = "test-token"
TEST_PROJECT = "123"


def make_job(
    job_id: int,
    name: str,
    stage: str,
    status: str = "success",
    *,
    started_at: str | None = None,
    allow_failure: bool = False,
) -> Job:
    return Job(
        id=job_id,
        name=name,
        stage=stage,
        status=PipelineStatus(status),
        started_at=started_at,
        allow_failure=allow_failure,
        web_url=f"{TEST_URL}/group/project/-/jobs/{job_id}",
    )


def make_pipeline(pipeline_id: int = 42, status: str = "success", sha: str = "abc123") -> Pipeline:
    return Pipeline(
        id=pipeline_id,
        status=PipelineStatus(status),
        sha=sha,
        ref="main",
        web_url=f"{TEST_URL}/group/project/-/pipelines/{pipeline_id}",
    )


def make_details(
    jobs: list[Job], status: str = "success", pipeline_id: int = 42
) -> PipelineDetails:
    return PipelineDetails.from_jobs(make_pipeline(pipeline_id, status), jobs)


@pytest.fixture
def config() -> GitLabConfig:
    return GitLabConfig(url=TEST_URL, token=TEST_TOKEN, project_id=TEST_PROJECT)


@pytest.fixture
def client(config: GitLabConfig) -> GitLabClient:
    return GitLabClient(config)


@pytest.fixture
def mock_api() -> respx.MockRouter:
    with respx.mock(base_url="https://gitlab.example.com/api/v4") as router:
        yield router


@pytest.fixture
def running_details() -> PipelineDetails:
    """Pipeline 42: ``build`` with one running job, ``test`` with two pending jobs."""
    return make_details(
        [
            make_job(1, "compile", "build", "running", started_at="2024-01-01T12:00:00Z"),
            make_job(2, "unit", "test", "pending"),
            make_job(3, "lint", "test", "pending"),
        ],
        status="running",
    )
