"""
Core data models for the skill manager.

These records describe remote repositories and their trees, the skills
discovered inside them, the metadata parsed from a skill's SKILL.md, and
the outcome of installing a skill locally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable

UNKNOWN_SKILL_NAME = "Unknown Skill"

_WHITESPACE_RUN = re.compile(r"\s+")
_PATH_SEPARATOR = re.compile(r"[\\/]")

# ---------------------------------------------------------------------------
# Remote repository
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepositoryRef:
    """An ``owner/name`` pair identifying a remote repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> RepositoryRef:
        """Parse ``"owner/name"`` into a reference."""
        parts = value.strip().strip("/").split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid repository reference: {value!r} (expected owner/name)")
        return cls(owner=parts[0], name=parts[1])

    def __str__(self) -> str:
        return self.full_name


class NodeKind(str, Enum):
    """Kind of entry in a repository tree."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class TreeNode:
    """A single file or directory in a repository tree."""

    path: str  # slash-separated, relative to repository root
    kind: NodeKind
    sha: str = ""  # content hash, changes whenever the content does
    size: int | None = None

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TreeNode:
        """Create from a git tree API entry (``type`` is ``blob`` or ``tree``)."""
        kind = NodeKind.DIRECTORY if data.get("type") == "tree" else NodeKind.FILE
        return cls(
            path=data.get("path", ""),
            kind=kind,
            sha=data.get("sha", ""),
            size=data.get("size"),
        )


@dataclass
class RepositoryTree:
    """Full listing of one repository at one point in time."""

    repository: str
    sha: str = ""
    nodes: list[TreeNode] = field(default_factory=list)
    truncated: bool = False  # listing was cut short by the API

    @classmethod
    def from_api(cls, repository: str, data: dict[str, Any]) -> RepositoryTree:
        return cls(
            repository=repository,
            sha=data.get("sha", ""),
            nodes=[TreeNode.from_api(entry) for entry in data.get("tree", [])],
            truncated=bool(data.get("truncated", False)),
        )


@dataclass(frozen=True)
class RateLimitInfo:
    """Snapshot of the API quota taken from response headers."""

    limit: int
    remaining: int
    reset: datetime

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


@dataclass
class SkillFile:
    """A direct child of a skill directory."""

    name: str
    path: str  # full path within the repository
    kind: NodeKind = NodeKind.FILE
    sha: str | None = None


@dataclass
class SkillMetadata:
    """Metadata declared in a SKILL.md header block."""

    name: str = UNKNOWN_SKILL_NAME
    description: str = ""
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    author: str | None = None
    version: str | None = None
    triggers: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    @property
    def has_name(self) -> bool:
        return bool(self.name) and self.name != UNKNOWN_SKILL_NAME


@dataclass
class ValidationResult:
    """Outcome of validating skill metadata. Warnings never affect validity."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class Skill:
    """
    A skill bundle found in a remote repository.

    Identity is ``repository + path``; an empty path is a skill at the
    repository root. Everything except the name may stay empty until the
    manifest has been fetched and parsed.
    """

    id: str
    name: str
    repository: str
    path: str = ""
    description: str = ""
    files: list[SkillFile] = field(default_factory=list)
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    author: str | None = None
    version: str | None = None
    is_installed: bool = False

    @classmethod
    def create(cls, repository: str, path: str, files: list[SkillFile] | None = None) -> Skill:
        """Build a bare skill entry, named after its directory."""
        name = path.rsplit("/", 1)[-1] if path else repository.rsplit("/", 1)[-1]
        return cls(
            id=f"{repository}/{path or 'root'}",
            name=name or "Unknown",
            repository=repository,
            path=path,
            files=list(files or []),
        )

    @property
    def install_dir_name(self) -> str:
        """
        Local directory name: the lower-cased display name with whitespace
        runs and path separators turned into hyphens.
        """
        name = _WHITESPACE_RUN.sub("-", self.name.lower())
        return _PATH_SEPARATOR.sub("-", name)

    def manifest_path(self, manifest_name: str = "SKILL.md") -> str:
        return f"{self.path}/{manifest_name}" if self.path else manifest_name

    def apply_metadata(
        self,
        metadata: SkillMetadata,
        infer_category: Callable[[str, str], str | None],
    ) -> None:
        """Merge parsed manifest metadata into this entry."""
        if metadata.has_name:
            self.name = metadata.name
        self.description = metadata.description or ""
        self.category = metadata.category or infer_category(self.name, self.path)
        self.tags = list(metadata.tags)
        self.author = metadata.author
        self.version = metadata.version


@dataclass
class InstalledSkill:
    """A skill present in the local install root."""

    skill: Skill
    local_path: Path
    installed_at: datetime
    source_version: str | None = None

    @property
    def name(self) -> str:
        return self.skill.name

    @property
    def directory_name(self) -> str:
        return self.local_path.name


@dataclass
class InstallRecord:
    """Provenance written next to an installed skill's files."""

    id: str
    name: str
    repository: str
    path: str
    installed_at: datetime
    version: str | None = None

    @classmethod
    def for_skill(cls, skill: Skill, installed_at: datetime | None = None) -> InstallRecord:
        return cls(
            id=skill.id,
            name=skill.name,
            repository=skill.repository,
            path=skill.path,
            installed_at=installed_at or datetime.now(timezone.utc),
            version=skill.version,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "repository": self.repository,
            "path": self.path,
            "installedAt": self.installed_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallRecord:
        """Create from sidecar JSON. Missing fields fall back to empty values."""
        installed_at = _parse_timestamp(data.get("installedAt") or data.get("installed_at"))
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            repository=str(data.get("repository") or ""),
            path=str(data.get("path") or ""),
            installed_at=installed_at or datetime.now(timezone.utc),
            version=data.get("version"),
        )


class InstallStatus(str, Enum):
    """Terminal state of a single install attempt."""

    INSTALLED = "installed"
    ALREADY_INSTALLED = "already-installed"
    FAILED = "failed"


@dataclass
class InstallResult:
    """Result of installing one skill."""

    skill: Skill
    status: InstallStatus
    local_path: Path | None = None
    error: str | None = None
    failed_files: list[str] = field(default_factory=list)  # repository paths

    @property
    def success(self) -> bool:
        return self.status == InstallStatus.INSTALLED


@dataclass
class RepositoryFailure:
    """A repository that could not be scanned."""

    repository: str
    error: str
    rate_limited: bool = False
    reset_at: datetime | None = None


@dataclass
class DiscoveryResult:
    """Skills found across all configured repositories, plus per-repo failures."""

    skills: list[Skill] = field(default_factory=list)
    failures: list[RepositoryFailure] = field(default_factory=list)

    @property
    def rate_limited(self) -> bool:
        return any(f.rate_limited for f in self.failures)


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        # Accept the trailing "Z" written by other tools
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
