"""
Skill Manager - discover and install agent skills published on GitHub.

Skills are directories containing a ``SKILL.md`` manifest. The manager
scans configured repositories through the GitHub API (with an ETag-aware
cache), reads each manifest's metadata, and installs skills into a local
directory.

Example:
    from skill_manager import ManagerConfig, SkillManager

    config = ManagerConfig(repositories=["rominirani/antigravity-skills"])

    async with SkillManager(config) as manager:
        result = await manager.fetch_all_skills()
        for skill in result.skills:
            print(skill.name, skill.category)

        await manager.install(result.skills[0])
"""

from skill_manager.config import ManagerConfig
from skill_manager.discovery import (
    SkillDiscovery,
    build_skills,
    find_skill_directories,
    get_skill_files,
)
from skill_manager.errors import (
    DownloadError,
    GitHubAPIError,
    RateLimitExceededError,
    SkillManagerError,
    SkillNotInstalledError,
)
from skill_manager.installer import SkillInstaller
from skill_manager.loaders import SkillParser
from skill_manager.logging import get_logger, setup_logging
from skill_manager.manager import SkillManager, parse_skill_reference
from skill_manager.models import (
    DiscoveryResult,
    InstalledSkill,
    InstallRecord,
    InstallResult,
    InstallStatus,
    NodeKind,
    RateLimitInfo,
    RepositoryFailure,
    RepositoryRef,
    RepositoryTree,
    Skill,
    SkillFile,
    SkillMetadata,
    TreeNode,
    ValidationResult,
)
from skill_manager.remote import CacheEntry, GitHubClient, ResponseCache

__version__ = "0.1.0"

__all__ = [
    # Facade
    "SkillManager",
    "ManagerConfig",
    "parse_skill_reference",
    # Components
    "GitHubClient",
    "ResponseCache",
    "CacheEntry",
    "SkillDiscovery",
    "SkillParser",
    "SkillInstaller",
    "find_skill_directories",
    "get_skill_files",
    "build_skills",
    # Models
    "RepositoryRef",
    "RepositoryTree",
    "TreeNode",
    "NodeKind",
    "RateLimitInfo",
    "Skill",
    "SkillFile",
    "SkillMetadata",
    "ValidationResult",
    "InstalledSkill",
    "InstallRecord",
    "InstallResult",
    "InstallStatus",
    "DiscoveryResult",
    "RepositoryFailure",
    # Errors
    "SkillManagerError",
    "GitHubAPIError",
    "RateLimitExceededError",
    "DownloadError",
    "SkillNotInstalledError",
    # Logging
    "setup_logging",
    "get_logger",
]
