"""Read-only access to the local git repository via the ``git`` executable."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from .exceptions import RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200


@dataclass(frozen=True)
class Commit:
    sha: str
    subject: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def _git(repo_path: str, *args: str) -> subprocess.CompletedProcess[str]:
    cmd = ["git", "-C", repo_path, *args]
    try:
        return subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        msg = f"Failed to run git: {e}"
        raise RepositoryError(msg) from e


def list_commits(repo_path: str = ".", limit: int = DEFAULT_LIMIT) -> list[Commit]:
    """Most recent commits reachable from HEAD, newest first."""
    result = _git(repo_path, "log", "-n", str(limit), "--format=%H%x09%s")
    if result.returncode != 0:
        msg = f"git log failed: {result.stderr.strip() or result.returncode}"
        raise RepositoryError(msg)
    commits = []
    for line in result.stdout.splitlines():
        sha, _, subject = line.partition("\t")
        if sha:
            commits.append(Commit(sha=sha, subject=subject))
    return commits


def remote_url(repo_path: str, name: str) -> str | None:
    """URL of remote *name*, or None when it is not configured."""
    try:
        result = _git(repo_path, "remote", "get-url", name)
    except RepositoryError as e:
        logger.debug("Cannot read remote %s: %s", name, e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None
