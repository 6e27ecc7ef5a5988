"""Pipeline, job, and stage models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .base import GitLabModel

SPINNER_FRAMES = ("◜", "◠", "◝", "◞", "◡", "◟")


class PipelineStatus(str, Enum):
    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    CANCELING = "canceling"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"

    @property
    def is_pending_like(self) -> bool:
        return self in (
            PipelineStatus.PENDING,
            PipelineStatus.WAITING_FOR_RESOURCE,
            PipelineStatus.PREPARING,
        )

    @property
    def is_active(self) -> bool:
        """Running or pending-like: the states that get animated."""
        return self is PipelineStatus.RUNNING or self.is_pending_like

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    def animated_symbol(self, tick: int) -> str:
        if self is PipelineStatus.RUNNING:
            return SPINNER_FRAMES[(tick // 4) % len(SPINNER_FRAMES)]
        if self.is_pending_like:
            return SPINNER_FRAMES[(tick // 6) % len(SPINNER_FRAMES)]
        return self.symbol

    @property
    def label(self) -> str:
        if self is PipelineStatus.WAITING_FOR_RESOURCE:
            return "waiting"
        return self.value

    def __str__(self) -> str:
        return self.label


_SYMBOLS = {
    PipelineStatus.SUCCESS: "●",
    PipelineStatus.RUNNING: "◐",
    PipelineStatus.PENDING: "○",
    PipelineStatus.WAITING_FOR_RESOURCE: "○",
    PipelineStatus.PREPARING: "○",
    PipelineStatus.FAILED: "✕",
    PipelineStatus.CANCELED: "⊘",
    PipelineStatus.CANCELING: "⊘",
    PipelineStatus.SKIPPED: "⊘",
    PipelineStatus.MANUAL: "▶",
    PipelineStatus.CREATED: "◯",
    PipelineStatus.SCHEDULED: "◯",
}


class Pipeline(GitLabModel):
    id: int
    iid: int | None = None
    status: PipelineStatus
    sha: str = ""
    ref: str | None = None
    web_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Job(GitLabModel):
    id: int
    name: str = ""
    status: PipelineStatus
    stage: str = ""
    web_url: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    duration: float | None = None
    allow_failure: bool | None = None

    @property
    def is_true_failure(self) -> bool:
        return self.status is PipelineStatus.FAILED and not self.allow_failure


@dataclass(frozen=True)
class Stage:
    name: str
    jobs: tuple[Job, ...] = ()

    @property
    def status(self) -> PipelineStatus:
        if not self.jobs:
            return PipelineStatus.CREATED

        has_failed = has_running = has_pending = False
        for job in self.jobs:
            if job.is_true_failure:
                has_failed = True
            elif job.status is PipelineStatus.RUNNING:
                has_running = True
            elif job.status.is_pending_like:
                has_pending = True

        if has_failed:
            return PipelineStatus.FAILED
        if has_running:
            return PipelineStatus.RUNNING
        if has_pending:
            return PipelineStatus.PENDING
        if all(j.status is PipelineStatus.SUCCESS for j in self.jobs):
            return PipelineStatus.SUCCESS
        if all(j.status is PipelineStatus.SKIPPED for j in self.jobs):
            return PipelineStatus.SKIPPED
        return PipelineStatus.CREATED

    @property
    def has_mixed_failure(self) -> bool:
        """A true failure next to at least one job that did not truly fail."""
        has_real_failure = any(j.is_true_failure for j in self.jobs)
        has_non_failure = any(not j.is_true_failure for j in self.jobs)
        return has_real_failure and has_non_failure


@dataclass(frozen=True)
class PipelineDetails:
    pipeline: Pipeline | None = None
    stages: tuple[Stage, ...] = field(default_factory=tuple)

    @classmethod
    def from_jobs(cls, pipeline: Pipeline | None, jobs: list[Job]) -> PipelineDetails:
        """Group jobs by stage name, then order stages by their lowest job id.

        The API does not guarantee stage order; job ids increase in execution
        order, so the minimum id per stage is a stable proxy.
        """
        grouped: dict[str, list[Job]] = {}
        for job in jobs:
            grouped.setdefault(job.stage, []).append(job)

        stages = [Stage(name, tuple(stage_jobs)) for name, stage_jobs in grouped.items()]
        stages.sort(key=lambda s: min(j.id for j in s.jobs))
        return cls(pipeline=pipeline, stages=tuple(stages))

    @property
    def status(self) -> PipelineStatus | None:
        return self.pipeline.status if self.pipeline else None

    def job_at(self, stage_index: int, job_index: int) -> Job | None:
        if 0 <= stage_index < len(self.stages):
            jobs = self.stages[stage_index].jobs
            if 0 <= job_index < len(jobs):
                return jobs[job_index]
        return None

    def find_job(self, job_id: int) -> Job | None:
        for stage in self.stages:
            for job in stage.jobs:
                if job.id == job_id:
                    return job
        return None
