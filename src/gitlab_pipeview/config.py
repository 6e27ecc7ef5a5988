"""Pipeline viewer configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass
class GitLabConfig:
    """Configuration for the pipeline viewer, loaded from environment variables."""

    url: str = ""
    token: str = ""
    project_id: str = ""
    timeout: int = 30
    ssl_verify: bool = True
    tick_ms: int = 50
    poll_seconds: int = 10
    cache_size: int = 100

    @classmethod
    def from_env(cls) -> GitLabConfig:
        url = os.getenv("GITLAB_URL", "").rstrip("/")
        token = (
            os.getenv("GITLAB_TOKEN")
            or os.getenv("GITLAB_PAT")
            or os.getenv("GITLAB_PERSONAL_ACCESS_TOKEN")
            or os.getenv("GITLAB_API_TOKEN", "")
        )
        project_id = os.getenv("GITLAB_PROJECT", "")
        timeout = int(os.getenv("GITLAB_TIMEOUT", "30"))
        ssl_verify = os.getenv("GITLAB_SSL_VERIFY", "true").lower() not in (
            "false",
            "0",
            "no",
        )
        tick_ms = int(os.getenv("PIPEVIEW_TICK_MS", "50"))
        poll_seconds = int(os.getenv("PIPEVIEW_POLL_SECONDS", "10"))
        cache_size = int(os.getenv("PIPEVIEW_CACHE_SIZE", "100"))

        return cls(
            url=url,
            token=token,
            project_id=project_id,
            timeout=timeout,
            ssl_verify=ssl_verify,
            tick_ms=tick_ms,
            poll_seconds=poll_seconds,
            cache_size=cache_size,
        )

    @property
    def api_url(self) -> str:
        return f"{self.url}/api/v4"

    def validate(self) -> None:
        if not self.url:
            msg = "GITLAB_URL environment variable is required"
            raise ValueError(msg)
        if not self.token:
            msg = (
                "GitLab token is required. Set one of: GITLAB_TOKEN, GITLAB_PAT, "
                "GITLAB_PERSONAL_ACCESS_TOKEN, or GITLAB_API_TOKEN"
            )
            raise ValueError(msg)
        if not self.project_id:
            msg = "GITLAB_PROJECT is required (numeric id or group/project path)"
            raise ValueError(msg)
        if self.tick_ms <= 0:
            msg = "PIPEVIEW_TICK_MS must be positive"
            raise ValueError(msg)
        if self.cache_size < 1:
            msg = "PIPEVIEW_CACHE_SIZE must be at least 1"
            raise ValueError(msg)


@dataclass
class RemoteInfo:
    """GitLab host and project derived from a git remote URL."""

    host: str | None = None
    url: str | None = None
    project_id: str | None = None

    @classmethod
    def parse_remote_url(cls, remote: str) -> RemoteInfo:
        """Parse ``git@host:group/project.git`` or ``https://host/group/project.git``."""
        if remote.startswith("git@"):
            rest = remote[len("git@") :]
            host, sep, path = rest.partition(":")
            if sep:
                return cls(
                    host=host,
                    url=f"https://{host}",
                    project_id=path.removesuffix(".git"),
                )

        if remote.startswith(("https://", "http://")):
            parsed = urlparse(remote)
            host = parsed.hostname or ""
            path = parsed.path.lstrip("/").removesuffix(".git")
            if host and path:
                return cls(host=host, url=f"{parsed.scheme}://{host}", project_id=path)

        return cls()

    @classmethod
    def from_repository(cls, repo_path: str = ".") -> RemoteInfo:
        """Try the ``gitlab`` remote, then ``origin``."""
        from .git import remote_url

        for name in ("gitlab", "origin"):
            remote = remote_url(repo_path, name)
            if remote:
                info = cls.parse_remote_url(remote)
                if info.host:
                    return info
        return cls()

    def is_valid(self) -> bool:
        return bool(self.host and self.url and self.project_id)
