"""Shared pytest fixtures for skill-manager tests."""

from __future__ import annotations

import base64
import hashlib
import json
import re
from pathlib import Path
from textwrap import dedent

import httpx
import pytest

from skill_manager.config import ManagerConfig
from skill_manager.manager import SkillManager
from skill_manager.remote import GitHubClient, ResponseCache

_TREE_PATH = re.compile(r"^/repos/([^/]+/[^/]+)/git/trees/([^/]+)$")
_CONTENTS_PATH = re.compile(r"^/repos/([^/]+/[^/]+)/contents/(.+)$")


def render_skill_md(name: str, description: str = "A test skill", body: str = "Body text.") -> str:
    """Build a SKILL.md document with a header block."""
    return f"---\nname: {name}\ndescription: {description}\n---\n\n# {name}\n\n{body}\n"


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGitHub:
    """
    In-memory stand-in for the GitHub API and raw content host.

    Serves ``git/trees`` and ``contents`` with ETags and rate-limit headers,
    and raw files from ``raw.githubusercontent.com``.
    """

    def __init__(self) -> None:
        self.repos: dict[str, dict[str, bytes]] = {}
        self.requests: list[httpx.Request] = []
        self.failing_downloads: set[str] = set()
        self.failing_repos: set[str] = set()
        self.rate_limit = 5000
        self.remaining = 4999
        self.reset = 1_700_000_000
        self.truncated = False

    def add_repo(self, repository: str, files: dict[str, str | bytes]) -> None:
        self.repos[repository] = {
            path: content.encode() if isinstance(content, str) else content
            for path, content in files.items()
        }

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport(), follow_redirects=True)

    # ------------------------------------------------------------------
    # Request accounting
    # ------------------------------------------------------------------

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "api.github.com"]

    def raw_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "raw.githubusercontent.com"]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _rate_headers(self) -> dict[str, str]:
        return {
            "x-ratelimit-limit": str(self.rate_limit),
            "x-ratelimit-remaining": str(self.remaining),
            "x-ratelimit-reset": str(self.reset),
        }

    def _json(self, request: httpx.Request, payload: object) -> httpx.Response:
        body = json.dumps(payload).encode()
        etag = f'"{hashlib.sha1(body).hexdigest()}"'
        headers = self._rate_headers()
        headers["etag"] = etag
        if request.headers.get("if-none-match") == etag:
            return httpx.Response(304, headers=headers)
        return httpx.Response(200, content=body, headers=headers)

    def _tree(self, repository: str) -> dict:
        files = self.repos[repository]
        nodes: dict[str, dict] = {}
        for path, content in files.items():
            parts = path.split("/")
            for depth in range(1, len(parts)):
                directory = "/".join(parts[:depth])
                nodes[directory] = {"path": directory, "type": "tree", "sha": f"t-{directory}"}
            nodes[path] = {
                "path": path,
                "type": "blob",
                "sha": hashlib.sha1(content).hexdigest(),
                "size": len(content),
            }
        return {
            "sha": f"root-{repository}",
            "tree": [nodes[key] for key in sorted(nodes)],
            "truncated": self.truncated,
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "raw.githubusercontent.com":
            owner, name, _branch, file_path = path.lstrip("/").split("/", 3)
            repository = f"{owner}/{name}"
            if file_path in self.failing_downloads:
                return httpx.Response(500)
            content = self.repos.get(repository, {}).get(file_path)
            if content is None:
                return httpx.Response(404, text="404: Not Found")
            return httpx.Response(200, content=content)

        if self.remaining <= 0:
            return httpx.Response(403, headers=self._rate_headers(), json={"message": "rate limited"})

        match = _TREE_PATH.match(path)
        if match:
            repository = match.group(1)
            if repository in self.failing_repos or repository not in self.repos:
                return httpx.Response(404, headers=self._rate_headers(), json={"message": "Not Found"})
            return self._json(request, self._tree(repository))

        match = _CONTENTS_PATH.match(path)
        if match:
            repository, file_path = match.groups()
            content = self.repos.get(repository, {}).get(file_path)
            if content is None:
                return httpx.Response(404, headers=self._rate_headers(), json={"message": "Not Found"})
            return self._json(
                request,
                {
                    "name": file_path.rsplit("/", 1)[-1],
                    "path": file_path,
                    "sha": hashlib.sha1(content).hexdigest(),
                    "size": len(content),
                    "encoding": "base64",
                    "content": base64.encodebytes(content).decode(),
                },
            )

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture(autouse=True)
def _no_token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SKILL_MANAGER_GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def github() -> FakeGitHub:
    """A fake GitHub with the ``acme/demo`` repository."""
    fake = FakeGitHub()
    fake.add_repo(
        "acme/demo",
        {
            "README.md": "# Demo skills\n",
            "skills/a/SKILL.md": render_skill_md("Alpha Helper", "Helps with alpha things"),
            "skills/a/run.sh": "#!/bin/sh\necho alpha\n",
            "skills/a/scripts/build.py": "print('build')\n",
            "skills/a/scripts/lib/util.py": "VALUE = 1\n",
            "skills/b/SKILL.md": render_skill_md("Beta Docs", "Writes documentation"),
        },
    )
    return fake


@pytest.fixture
def skill_md():
    """Builder for SKILL.md documents: ``skill_md(name, description, body)``."""
    return render_skill_md


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    return tmp_path / "installed-skills"


@pytest.fixture
def config(install_root: Path) -> ManagerConfig:
    """Config pointing at ``acme/demo`` with no request pacing."""
    return ManagerConfig(
        repositories=["acme/demo"],
        install_path=install_root,
        install_delay_seconds=0,
    )


@pytest.fixture
def client(config: ManagerConfig, github: FakeGitHub, clock: FakeClock) -> GitHubClient:
    return GitHubClient(
        config,
        cache=ResponseCache(ttl=config.cache_ttl_seconds, clock=clock),
        http_client=github.http_client(),
    )


@pytest.fixture
def manager(config: ManagerConfig, github: FakeGitHub, clock: FakeClock) -> SkillManager:
    return SkillManager(
        config,
        http_client=github.http_client(),
        cache=ResponseCache(ttl=config.cache_ttl_seconds, clock=clock),
    )


@pytest.fixture
def installed_dir(install_root: Path) -> Path:
    """An install root holding two skills, one without a sidecar."""
    install_root.mkdir(parents=True)

    with_record = install_root / "alpha-helper"
    with_record.mkdir()
    (with_record / "SKILL.md").write_text(render_skill_md("Alpha Helper", "Helps with alpha things"))
    (with_record / ".skill-manager.json").write_text(
        json.dumps(
            {
                "id": "acme/demo/skills/a",
                "name": "Alpha Helper",
                "repository": "acme/demo",
                "path": "skills/a",
                "installedAt": "2025-01-02T03:04:05+00:00",
                "version": "1.2.0",
            }
        )
    )

    bare = install_root / "hand-made"
    bare.mkdir()
    (bare / "SKILL.md").write_text(
        dedent("""
        # Hand Made

        Copied in by hand.
    """).strip()
    )

    not_a_skill = install_root / "notes"
    not_a_skill.mkdir()
    (not_a_skill / "README.md").write_text("nothing here")

    (install_root / "stray-file.txt").write_text("ignored")
    return install_root
