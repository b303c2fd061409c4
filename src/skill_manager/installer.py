"""
Installs skills from remote repositories into the local skills directory.

Each skill lands in ``<install root>/<sanitized name>/``. An install is
accepted only if the manifest made it to disk; otherwise the directory is
removed again. A provenance sidecar is written next to the skill's files.
"""

from __future__ import annotations

import asyncio
import json
import shutil
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from skill_manager.config import ManagerConfig
from skill_manager.discovery import iter_children
from skill_manager.errors import SkillNotInstalledError
from skill_manager.loaders import SkillParser
from skill_manager.logging import get_logger
from skill_manager.models import (
    InstalledSkill,
    InstallRecord,
    InstallResult,
    InstallStatus,
    NodeKind,
    RepositoryTree,
    Skill,
)
from skill_manager.remote import GitHubClient

logger = get_logger("installer")

# message
InstallProgress = Callable[[str], None]
# (current, total, skill, message)
BatchProgress = Callable[[int, int, Skill, str], None]


class SkillInstaller:
    """
    Installs, lists and removes skills under a local install root.

    Example:
        installer = SkillInstaller(client, config=config)
        result = await installer.install(skill)
        if result.status is InstallStatus.FAILED:
            print(result.error)
    """

    def __init__(
        self,
        client: GitHubClient,
        parser: SkillParser | None = None,
        config: ManagerConfig | None = None,
    ) -> None:
        self.client = client
        self.parser = parser or SkillParser()
        self.config = config or client.config

    @property
    def install_path(self) -> Path:
        return self.config.resolve_install_path()

    def get_local_path(self, skill: Skill) -> Path:
        return self.install_path / skill.install_dir_name

    def is_installed(self, skill: Skill) -> bool:
        local_path = self.get_local_path(skill)
        return self.is_within_install_path(local_path) and local_path.is_dir()

    def is_within_install_path(self, path: Path) -> bool:
        """True if *path* resolves to a location strictly below the install root."""
        return self.install_path.resolve() in path.resolve().parents

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    async def install(
        self,
        skill: Skill,
        on_progress: InstallProgress | None = None,
    ) -> InstallResult:
        """Install one skill. Never raises; failures are reported in the result."""
        report = on_progress or (lambda message: None)
        local_path = self.get_local_path(skill)

        if not self.is_within_install_path(local_path):
            logger.warning("Refusing to install %s to %s", skill.id, local_path)
            return InstallResult(
                skill=skill,
                status=InstallStatus.FAILED,
                error="Skill path is outside of the managed skills directory.",
            )

        if local_path.exists():
            return InstallResult(
                skill=skill,
                status=InstallStatus.ALREADY_INSTALLED,
                local_path=local_path,
            )

        failed_files: list[str] = []
        try:
            report(f"Creating directory for {skill.name}...")
            local_path.mkdir(parents=True, exist_ok=True)

            files = [f for f in skill.files if f.kind == NodeKind.FILE]
            for index, entry in enumerate(files, start=1):
                report(f"Downloading {entry.name} ({index}/{len(files)})...")
                if not await self._download_to(skill.repository, entry.path, local_path / entry.name):
                    failed_files.append(entry.path)

            subdirectories = [f for f in skill.files if f.kind == NodeKind.DIRECTORY]
            if subdirectories:
                tree = await self.client.fetch_tree(skill.repository)
                for entry in subdirectories:
                    await self._mirror_directory(
                        tree, entry.path, local_path / entry.name, report, failed_files
                    )

            manifest = local_path / self.config.manifest_name
            if not manifest.is_file():
                self._rollback(local_path)
                return InstallResult(
                    skill=skill,
                    status=InstallStatus.FAILED,
                    error=f"{self.config.manifest_name} not found in skill directory",
                    failed_files=failed_files,
                )

            if failed_files and self.config.strict_install:
                self._rollback(local_path)
                return InstallResult(
                    skill=skill,
                    status=InstallStatus.FAILED,
                    error=f"{len(failed_files)} file(s) failed to download",
                    failed_files=failed_files,
                )

            self._save_install_record(skill, local_path)
        except Exception as exc:
            logger.exception("Failed to install skill %s", skill.name)
            return InstallResult(
                skill=skill,
                status=InstallStatus.FAILED,
                error=str(exc),
                failed_files=failed_files,
            )

        skill.is_installed = True
        report(f"Successfully installed {skill.name}")
        logger.info("Installed skill '%s' to %s", skill.name, local_path)
        return InstallResult(
            skill=skill,
            status=InstallStatus.INSTALLED,
            local_path=local_path,
            failed_files=failed_files,
        )

    async def _download_to(self, repository: str, remote_path: str, target: Path) -> bool:
        """Download one file. A failed download is logged and reported as False."""
        try:
            content = await self.client.download_file(repository, remote_path)
        except Exception as exc:
            logger.warning("Failed to download %s: %s", remote_path, exc)
            return False
        target.write_bytes(content)
        return True

    async def _mirror_directory(
        self,
        tree: RepositoryTree,
        remote_path: str,
        local_path: Path,
        report: InstallProgress,
        failed_files: list[str],
    ) -> None:
        """Recreate a remote subtree locally, however deep it goes."""
        local_path.mkdir(parents=True, exist_ok=True)
        prefix_length = len(remote_path) + 1

        for node in iter_children(tree, remote_path):
            relative = node.path[prefix_length:]
            target = local_path / relative
            if node.kind == NodeKind.DIRECTORY:
                await self._mirror_directory(tree, node.path, target, report, failed_files)
            else:
                report(f"Downloading {relative}...")
                if not await self._download_to(tree.repository, node.path, target):
                    failed_files.append(node.path)

    def _rollback(self, local_path: Path) -> None:
        logger.warning("Rolling back incomplete install at %s", local_path)
        shutil.rmtree(local_path, ignore_errors=True)

    def _save_install_record(self, skill: Skill, local_path: Path) -> None:
        record = InstallRecord.for_skill(skill)
        sidecar = local_path / self.config.sidecar_name
        sidecar.write_text(json.dumps(record.to_dict(), indent=2), encoding="utf-8")

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def install_batch(
        self,
        skills: Sequence[Skill],
        on_progress: BatchProgress | None = None,
        concurrency: int | None = None,
    ) -> list[InstallResult]:
        """
        Install many skills through a bounded work queue.

        Results keep the input order. Each worker pauses between items to
        pace requests; a failed skill does not stop the batch.

        Args:
            skills: Skills to install, in order
            on_progress: Called with (current, total, skill, message)
            concurrency: Worker count (defaults to ``install_concurrency``)
        """
        total = len(skills)
        if total == 0:
            return []

        width = max(1, min(concurrency or self.config.install_concurrency, total))
        delay = self.config.install_delay_seconds
        results: list[InstallResult | None] = [None] * total
        queue: asyncio.Queue[tuple[int, Skill]] = asyncio.Queue()
        for item in enumerate(skills):
            queue.put_nowait(item)

        async def worker() -> None:
            while True:
                try:
                    index, skill = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                current = index + 1

                def report(message: str, _skill: Skill = skill, _current: int = current) -> None:
                    if on_progress:
                        on_progress(_current, total, _skill, message)

                report(f"Installing {skill.name}...")
                results[index] = await self.install(skill, report)

                if delay > 0 and not queue.empty():
                    await asyncio.sleep(delay)

        await asyncio.gather(*(worker() for _ in range(width)))
        return [result for result in results if result is not None]

    # ------------------------------------------------------------------
    # Uninstall and listing
    # ------------------------------------------------------------------

    async def uninstall(self, skill: Skill | InstalledSkill) -> Path:
        """Remove an installed skill's directory."""
        if isinstance(skill, InstalledSkill):
            local_path = skill.local_path
            skill = skill.skill
        else:
            local_path = self.get_local_path(skill)

        if not self.is_within_install_path(local_path):
            raise ValueError("Skill path is outside of the managed skills directory.")
        if not local_path.is_dir():
            raise SkillNotInstalledError(skill.name)

        shutil.rmtree(local_path)
        skill.is_installed = False
        logger.info("Removed skill directory: %s", local_path)
        return local_path

    def list_installed(self) -> list[InstalledSkill]:
        """
        Scan the install root for skills.

        A subdirectory counts only if its manifest can be read; the sidecar
        is optional and only fills in provenance.
        """
        root = self.install_path
        if not root.is_dir():
            return []

        installed: list[InstalledSkill] = []
        for entry in sorted(root.iterdir()):
            if not entry.is_dir():
                continue
            manifest = entry / self.config.manifest_name
            try:
                metadata = self.parser.parse(manifest.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError):
                continue

            record = self._load_install_record(entry)
            skill = Skill(
                id=record.id if record and record.id else entry.name,
                name=metadata.name,
                repository=record.repository if record and record.repository else "local",
                path=record.path if record else "",
                description=metadata.description,
                category=metadata.category,
                tags=list(metadata.tags),
                author=metadata.author,
                version=metadata.version,
                is_installed=True,
            )
            installed.append(
                InstalledSkill(
                    skill=skill,
                    local_path=entry,
                    installed_at=record.installed_at if record else datetime.now(timezone.utc),
                    source_version=record.version if record else None,
                )
            )

        return installed

    def _load_install_record(self, directory: Path) -> InstallRecord | None:
        sidecar = directory / self.config.sidecar_name
        try:
            data = json.loads(sidecar.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        return InstallRecord.from_dict(data)
