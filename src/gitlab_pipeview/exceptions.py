"""GitLab API and repository exceptions."""

from __future__ import annotations


class GitLabError(Exception):
    """Base exception for GitLab operations."""


class GitLabTransportError(GitLabError):
    """Raised when the GitLab host cannot be reached (connect/timeout)."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Request failed: {detail}")


class GitLabApiError(GitLabError):
    """Raised when the GitLab API returns a non-success response."""

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"GitLab API error: {status_code} {status_text}")


class GitLabAuthError(GitLabApiError):
    """Raised on 401/403 authentication failures."""

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class GitLabNotFoundError(GitLabApiError):
    """Raised on 404 responses."""

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)


class GitLabDecodeError(GitLabError):
    """Raised when a response body cannot be decoded into the expected records."""

    def __init__(self, what: str, detail: str) -> None:
        self.what = what
        self.detail = detail
        super().__init__(f"Failed to parse {what}: {detail}")


class RepositoryError(Exception):
    """Raised when reading the local git repository fails."""


def describe_error(error: GitLabError) -> str:
    """Collapse a fetch failure into the one-line message shown in the pane."""
    message = str(error)
    return message.splitlines()[0] if message else type(error).__name__
