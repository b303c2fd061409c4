"""
Skill discovery over repository trees.

A skill is any directory holding a manifest (``SKILL.md``); a manifest at
the repository root makes a root skill with an empty path. Discovery only
lists each skill's direct children; subdirectories appear as single
``directory`` entries and are mirrored at install time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Sequence

from skill_manager.config import ManagerConfig
from skill_manager.errors import GitHubAPIError, RateLimitExceededError
from skill_manager.loaders import SkillParser
from skill_manager.logging import get_logger
from skill_manager.models import (
    DiscoveryResult,
    NodeKind,
    RepositoryFailure,
    RepositoryTree,
    Skill,
    SkillFile,
    TreeNode,
)
from skill_manager.remote import GitHubClient

logger = get_logger("discovery")

# (current, total, repository)
DiscoveryProgress = Callable[[int, int, str], None]


def find_skill_directories(tree: RepositoryTree, manifest_name: str = "SKILL.md") -> list[str]:
    """Paths of every directory in *tree* containing a manifest, in tree order."""
    suffix = f"/{manifest_name}"
    directories: list[str] = []
    for node in tree.nodes:
        if node.kind != NodeKind.FILE:
            continue
        if node.path == manifest_name:
            directories.append("")
        elif node.path.endswith(suffix):
            directories.append(node.path[: -len(suffix)])
    return directories


def iter_children(tree: RepositoryTree, directory: str) -> Iterator[TreeNode]:
    """Yield nodes that are direct children of *directory* ("" is the root)."""
    prefix = f"{directory}/" if directory else ""
    for node in tree.nodes:
        if not node.path.startswith(prefix):
            continue
        relative = node.path[len(prefix) :]
        if not relative or "/" in relative:
            continue
        yield node


def get_skill_files(tree: RepositoryTree, skill_path: str) -> list[SkillFile]:
    """Direct-child entries of a skill directory."""
    prefix_length = len(skill_path) + 1 if skill_path else 0
    return [
        SkillFile(
            name=node.path[prefix_length:],
            path=node.path,
            kind=node.kind,
            sha=node.sha or None,
        )
        for node in iter_children(tree, skill_path)
    ]


def build_skills(tree: RepositoryTree, manifest_name: str = "SKILL.md") -> list[Skill]:
    """Bare skill entries for every skill directory in *tree*."""
    return [
        Skill.create(tree.repository, directory, get_skill_files(tree, directory))
        for directory in find_skill_directories(tree, manifest_name)
    ]


def chunked(items: Sequence[Skill], size: int) -> Iterator[Sequence[Skill]]:
    size = max(1, size)
    for start in range(0, len(items), size):
        yield items[start : start + size]


class SkillDiscovery:
    """Finds skills across the configured repositories and fills in their metadata."""

    def __init__(
        self,
        client: GitHubClient,
        parser: SkillParser | None = None,
        config: ManagerConfig | None = None,
    ) -> None:
        self.client = client
        self.parser = parser or SkillParser()
        self.config = config or client.config

    async def discover_repository(self, repository: str) -> list[Skill]:
        """Bare skill entries for one repository. Errors propagate."""
        tree = await self.client.fetch_tree(repository)
        skills = build_skills(tree, self.config.manifest_name)
        logger.debug("Found %d skills in %s", len(skills), repository)
        return skills

    async def fetch_all_skills(
        self,
        on_progress: DiscoveryProgress | None = None,
        repositories: Sequence[str] | None = None,
    ) -> DiscoveryResult:
        """
        Discover skills in every repository.

        A failing repository is recorded and skipped. Quota exhaustion stops
        the scan, since every further request would fail the same way.
        """
        repos = list(repositories if repositories is not None else self.config.repositories)
        result = DiscoveryResult()

        for index, repository in enumerate(repos):
            if on_progress:
                on_progress(index, len(repos), repository)
            try:
                result.skills.extend(await self.discover_repository(repository))
            except RateLimitExceededError as exc:
                logger.error("Rate limit exhausted while scanning %s", repository)
                result.failures.append(
                    RepositoryFailure(
                        repository=repository,
                        error=str(exc),
                        rate_limited=True,
                        reset_at=exc.reset_at,
                    )
                )
                break
            except GitHubAPIError as exc:
                logger.warning("Failed to fetch skills from %s: %s", repository, exc)
                result.failures.append(RepositoryFailure(repository=repository, error=str(exc)))

        if on_progress:
            on_progress(len(repos), len(repos), "Complete")
        return result

    async def enrich_skill(self, skill: Skill) -> Skill:
        """Fetch and parse one skill's manifest into its entry."""
        try:
            content = await self.client.fetch_file_content(
                skill.repository, skill.manifest_path(self.config.manifest_name)
            )
        except GitHubAPIError as exc:
            logger.debug("Keeping basic info for %s: %s", skill.id, exc)
            skill.category = self.parser.infer_category(skill.name, skill.path)
            return skill

        metadata = self.parser.parse(content)
        validation = self.parser.validate(metadata)
        for message in validation.errors + validation.warnings:
            logger.debug("%s: %s", skill.id, message)

        skill.apply_metadata(metadata, self.parser.infer_category)
        return skill

    async def enrich_skills(self, skills: Sequence[Skill]) -> list[Skill]:
        """Enrich skills in fixed-width chunks; each chunk runs concurrently."""
        for batch in chunked(skills, self.config.enrich_batch_size):
            await asyncio.gather(*(self.enrich_skill(skill) for skill in batch))
        return list(skills)
