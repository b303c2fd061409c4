"""
High-level API used by host applications.

``SkillManager`` owns the GitHub client (and with it the response cache)
and wires discovery, parsing and installation together.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import httpx

from skill_manager.config import ManagerConfig
from skill_manager.discovery import DiscoveryProgress, SkillDiscovery, get_skill_files
from skill_manager.installer import BatchProgress, InstallProgress, SkillInstaller
from skill_manager.loaders import SkillParser
from skill_manager.logging import get_logger
from skill_manager.models import (
    DiscoveryResult,
    InstalledSkill,
    InstallResult,
    RateLimitInfo,
    RepositoryRef,
    Skill,
    SkillMetadata,
    ValidationResult,
)
from skill_manager.remote import GitHubClient, ResponseCache

logger = get_logger("manager")


def parse_skill_reference(reference: str) -> tuple[str, str]:
    """
    Split ``owner/repo/path/to/skill`` into ``("owner/repo", "path/to/skill")``.

    Raises:
        ValueError: If fewer than three segments are given
    """
    parts = [part for part in reference.strip().strip("/").split("/") if part]
    if len(parts) < 3:
        raise ValueError(
            f"Invalid skill reference: {reference!r}. Use owner/repo/path/to/skill"
        )
    repository = RepositoryRef(owner=parts[0], name=parts[1])
    return repository.full_name, "/".join(parts[2:])


def select_installed(
    installed: Iterable[InstalledSkill], selector: str
) -> InstalledSkill | None:
    """Pick an installed skill by 1-based index, display name or directory name."""
    selector = selector.strip()
    if not selector:
        return None
    entries = list(installed)
    if selector.isdigit():
        index = int(selector)
        if 1 <= index <= len(entries):
            return entries[index - 1]
        return None
    selector_lower = selector.lower()
    for entry in entries:
        if entry.name.lower() == selector_lower or entry.directory_name.lower() == selector_lower:
            return entry
    return None


class SkillManager:
    """
    Discovers, installs and removes skills.

    Example:
        async with SkillManager(ManagerConfig(repositories=["acme/skills"])) as manager:
            result = await manager.fetch_all_skills()
            await manager.install_batch(result.skills)
            for installed in manager.list_installed():
                print(installed.name, installed.local_path)
    """

    def __init__(
        self,
        config: ManagerConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.config = config or ManagerConfig()
        self.parser = SkillParser()
        self.client = GitHubClient(self.config, cache=cache, http_client=http_client)
        self.discovery = SkillDiscovery(self.client, self.parser, self.config)
        self.installer = SkillInstaller(self.client, self.parser, self.config)

    async def __aenter__(self) -> SkillManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @property
    def install_path(self) -> Path:
        return self.installer.install_path

    @property
    def rate_limit(self) -> RateLimitInfo | None:
        return self.client.rate_limit

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def fetch_all_skills(
        self,
        on_progress: DiscoveryProgress | None = None,
        *,
        enrich: bool = True,
        repositories: Sequence[str] | None = None,
    ) -> DiscoveryResult:
        """
        Discover skills in every configured repository.

        Args:
            on_progress: Called with (current, total, repository)
            enrich: Fetch and parse each skill's manifest
            repositories: Override the configured repository list
        """
        result = await self.discovery.fetch_all_skills(on_progress, repositories)
        if enrich and result.skills:
            await self.discovery.enrich_skills(result.skills)
        for skill in result.skills:
            skill.is_installed = self.installer.is_installed(skill)
        return result

    async def fetch_file_text(self, repository: str, path: str) -> str:
        """Text content of one file, served from the cache when fresh."""
        return await self.client.fetch_file_content(repository, path)

    async def resolve_skill(self, reference: str, *, enrich: bool = False) -> Skill:
        """Build a skill entry from an ``owner/repo/path`` reference."""
        repository, path = parse_skill_reference(reference)
        tree = await self.client.fetch_tree(repository)
        skill = Skill.create(repository, path, get_skill_files(tree, path))
        if enrich:
            await self.discovery.enrich_skill(skill)
        skill.is_installed = self.installer.is_installed(skill)
        return skill

    async def inspect_skill(self, skill: Skill) -> tuple[SkillMetadata, ValidationResult]:
        """Parse and validate a remote skill's manifest."""
        content = await self.fetch_file_text(
            skill.repository, skill.manifest_path(self.config.manifest_name)
        )
        metadata = self.parser.parse(content)
        return metadata, self.parser.validate(metadata)

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    async def install(
        self, skill: Skill, on_progress: InstallProgress | None = None
    ) -> InstallResult:
        return await self.installer.install(skill, on_progress)

    async def install_batch(
        self,
        skills: Sequence[Skill],
        on_progress: BatchProgress | None = None,
        concurrency: int | None = None,
    ) -> list[InstallResult]:
        return await self.installer.install_batch(skills, on_progress, concurrency)

    async def uninstall(self, skill: Skill | InstalledSkill) -> Path:
        return await self.installer.uninstall(skill)

    def list_installed(self) -> list[InstalledSkill]:
        return self.installer.list_installed()

    def find_installed(self, selector: str) -> InstalledSkill | None:
        return select_installed(self.list_installed(), selector)

    def clear_cache(self) -> None:
        self.client.clear_cache()
        logger.debug("Cleared response cache")
