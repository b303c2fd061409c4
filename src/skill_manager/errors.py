"""Exceptions raised by the skill manager."""

from __future__ import annotations

from datetime import datetime


class SkillManagerError(Exception):
    """Base class for all skill manager errors."""


class GitHubAPIError(SkillManagerError):
    """A request to the remote repository API failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RateLimitExceededError(GitHubAPIError):
    """The API quota is exhausted until ``reset_at``."""

    def __init__(
        self,
        reset_at: datetime,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            f"GitHub API rate limit exceeded. Resets at {reset_at.strftime('%H:%M:%S %Z').strip()}",
            status_code=status_code,
            url=url,
        )
        self.reset_at = reset_at


class DownloadError(GitHubAPIError):
    """A raw file download failed."""


class SkillNotInstalledError(SkillManagerError):
    """The skill has no local installation directory."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Skill {name} is not installed")
        self.name = name
