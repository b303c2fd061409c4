"""Async client for the GitHub REST API and raw content downloads."""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any

import httpx

from skill_manager.config import ManagerConfig
from skill_manager.errors import DownloadError, GitHubAPIError, RateLimitExceededError
from skill_manager.logging import get_logger
from skill_manager.models import RateLimitInfo, RepositoryTree
from skill_manager.remote.cache import ResponseCache

logger = get_logger("remote.client")

API_VERSION = "2022-11-28"


class GitHubClient:
    """
    Fetches repository trees and file contents, caching both.

    Tree and content requests go through a ``ResponseCache``: unexpired
    entries are served without a request, expired ones are revalidated with
    ``If-None-Match``. Raw downloads bypass the cache entirely.

    Example:
        async with GitHubClient(ManagerConfig()) as client:
            tree = await client.fetch_tree("acme/demo")
            text = await client.fetch_file_content("acme/demo", "skills/a/SKILL.md")
    """

    def __init__(
        self,
        config: ManagerConfig | None = None,
        *,
        cache: ResponseCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or ManagerConfig()
        self.cache = (
            cache if cache is not None else ResponseCache(ttl=self.config.cache_ttl_seconds)
        )
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.request_timeout),
            follow_redirects=True,
        )
        self._token = self.config.resolve_token()
        self._rate_limit: RateLimitInfo | None = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this object created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def rate_limit(self) -> RateLimitInfo | None:
        """The most recent quota snapshot, if any response carried one."""
        return self._rate_limit

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _headers(self, etag: str | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": self.config.user_agent,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if etag:
            headers["If-None-Match"] = etag
        return headers

    def _update_rate_limit(self, headers: httpx.Headers) -> None:
        limit = headers.get("x-ratelimit-limit")
        remaining = headers.get("x-ratelimit-remaining")
        reset = headers.get("x-ratelimit-reset")
        if not (limit and remaining and reset):
            return
        try:
            self._rate_limit = RateLimitInfo(
                limit=int(limit),
                remaining=int(remaining),
                reset=datetime.fromtimestamp(int(reset), tz=timezone.utc),
            )
        except ValueError:
            logger.debug("Ignoring malformed rate limit headers: %s/%s/%s", limit, remaining, reset)

    async def _fetch_json(self, url: str, key: tuple[str, str, str]) -> Any:
        entry = self.cache.lookup(key)
        if entry is not None and not entry.is_expired(self.cache.now()):
            logger.debug("Cache hit: %s", key)
            return entry.data

        try:
            response = await self._http.get(
                url, headers=self._headers(entry.etag if entry else None)
            )
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GitHub API request failed: {exc}", url=url) from exc

        self._update_rate_limit(response.headers)

        if response.status_code == 304 and entry is not None:
            logger.debug("Not modified, extending cache entry: %s", key)
            self.cache.touch(key)
            return entry.data

        if not response.is_success:
            if self._rate_limit is not None and self._rate_limit.exhausted:
                logger.error("GitHub API rate limit exhausted until %s", self._rate_limit.reset)
                raise RateLimitExceededError(
                    self._rate_limit.reset, status_code=response.status_code, url=url
                )
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                f"GitHub API returned invalid JSON for {url}",
                status_code=response.status_code,
                url=url,
            ) from exc

        self.cache.store(key, data, etag=response.headers.get("etag"))
        return data

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_tree(self, repository: str) -> RepositoryTree:
        """Fetch the full recursive tree of *repository*."""
        url = (
            f"{self.config.api_base_url}/repos/{repository}/git/trees/"
            f"{self.config.branch}?recursive=1"
        )
        data = await self._fetch_json(url, ("tree", repository, ""))
        tree = RepositoryTree.from_api(repository, data)
        if tree.truncated:
            logger.warning(
                "Tree listing for %s was truncated by the API; some skills may be missing",
                repository,
            )
        return tree

    async def fetch_file_content(self, repository: str, path: str) -> str:
        """Fetch a single file through the contents API and decode it as text."""
        url = f"{self.config.api_base_url}/repos/{repository}/contents/{path}"
        data = await self._fetch_json(url, ("file", repository, path))
        if not isinstance(data, dict) or "content" not in data:
            raise GitHubAPIError(f"Not a file: {repository}/{path}", url=url)

        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8", errors="replace")
        return content

    async def download_file(self, repository: str, path: str) -> bytes:
        """Download raw bytes from the content delivery host. Never cached."""
        url = f"{self.config.raw_base_url}/{repository}/{self.config.branch}/{path}"
        try:
            response = await self._http.get(
                url,
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise DownloadError(f"Failed to download file: {path} ({exc})", url=url) from exc

        if not response.is_success:
            raise DownloadError(
                f"Failed to download file: {path} ({response.status_code})",
                status_code=response.status_code,
                url=url,
            )
        return response.content

    def clear_cache(self) -> None:
        """Discard every cached tree and file."""
        self.cache.clear()
