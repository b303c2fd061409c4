"""
Configuration for the skill manager.

The host application supplies the repositories to scan, an optional
GitHub token, the cache lifetime and an optional install root. Settings
can be built programmatically or loaded from YAML.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_REPOSITORIES = [
    "rominirani/antigravity-skills",
    "sickn33/antigravity-awesome-skills",
]

DEFAULT_INSTALL_PATH = Path.home() / ".gemini" / "antigravity" / "skills"

TOKEN_ENV_VARS = ("SKILL_MANAGER_GITHUB_TOKEN", "GITHUB_TOKEN")


def get_github_token() -> str | None:
    """Get a GitHub token from the environment, if one is set."""
    for name in TOKEN_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


@dataclass
class ManagerConfig:
    """
    Main configuration for the skill manager.

    Example YAML:
        repositories:
          - rominirani/antigravity-skills
          - acme/team-skills
        github_token: "ghp_..."
        cache_ttl_seconds: 3600
        install_path: ~/.gemini/antigravity/skills
        install_concurrency: 2
    """

    # Sources
    repositories: list[str] = field(default_factory=lambda: list(DEFAULT_REPOSITORIES))
    github_token: str | None = None  # Falls back to the environment
    branch: str = "main"  # Default branch, never negotiated

    # Remote API
    api_base_url: str = "https://api.github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"
    user_agent: str = "Skill-Manager"
    request_timeout: float = 30.0
    cache_ttl_seconds: float = 3600.0

    # Local layout
    install_path: Path | None = None  # None = DEFAULT_INSTALL_PATH
    manifest_name: str = "SKILL.md"
    sidecar_name: str = ".skill-manager.json"

    # Request pacing
    enrich_batch_size: int = 10  # Manifests fetched concurrently per chunk
    install_concurrency: int = 1  # Batch install work queue width
    install_delay_seconds: float = 0.1  # Pause between batch installs

    # Roll back on any failed file download, not only a missing manifest
    strict_install: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManagerConfig:
        """Create config from a dictionary."""
        defaults = cls()
        install_path = data.get("install_path")
        return cls(
            repositories=list(data.get("repositories", defaults.repositories)),
            github_token=data.get("github_token"),
            branch=data.get("branch", defaults.branch),
            api_base_url=data.get("api_base_url", defaults.api_base_url),
            raw_base_url=data.get("raw_base_url", defaults.raw_base_url),
            user_agent=data.get("user_agent", defaults.user_agent),
            request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
            cache_ttl_seconds=float(data.get("cache_ttl_seconds", defaults.cache_ttl_seconds)),
            install_path=Path(install_path).expanduser() if install_path else None,
            manifest_name=data.get("manifest_name", defaults.manifest_name),
            sidecar_name=data.get("sidecar_name", defaults.sidecar_name),
            enrich_batch_size=int(data.get("enrich_batch_size", defaults.enrich_batch_size)),
            install_concurrency=int(
                data.get("install_concurrency", defaults.install_concurrency)
            ),
            install_delay_seconds=float(
                data.get("install_delay_seconds", defaults.install_delay_seconds)
            ),
            strict_install=bool(data.get("strict_install", defaults.strict_install)),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> ManagerConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> ManagerConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary. The token is masked."""
        return {
            "repositories": list(self.repositories),
            "github_token": "***" if self.github_token else None,
            "branch": self.branch,
            "api_base_url": self.api_base_url,
            "raw_base_url": self.raw_base_url,
            "user_agent": self.user_agent,
            "request_timeout": self.request_timeout,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "install_path": str(self.install_path) if self.install_path else None,
            "manifest_name": self.manifest_name,
            "sidecar_name": self.sidecar_name,
            "enrich_batch_size": self.enrich_batch_size,
            "install_concurrency": self.install_concurrency,
            "install_delay_seconds": self.install_delay_seconds,
            "strict_install": self.strict_install,
        }

    def resolve_token(self) -> str | None:
        """Configured token, or one from the environment."""
        return self.github_token or get_github_token()

    def resolve_install_path(self) -> Path:
        """Configured install root, or the default one."""
        if self.install_path:
            return Path(self.install_path).expanduser()
        return DEFAULT_INSTALL_PATH
