"""Tests for the SkillManager facade."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from skill_manager import SkillManager
from skill_manager.errors import GitHubAPIError
from skill_manager.manager import parse_skill_reference, select_installed
from skill_manager.models import InstalledSkill, InstallStatus, Skill
from skill_manager.remote import ResponseCache


class TestParseSkillReference:
    """Tests for owner/repo/path references."""

    def test_parse(self) -> None:
        """Should split repository and skill path."""
        assert parse_skill_reference("acme/demo/skills/a") == ("acme/demo", "skills/a")

    def test_surrounding_slashes(self) -> None:
        """Should ignore leading, trailing and doubled slashes."""
        assert parse_skill_reference("/acme//demo/skills/a/") == ("acme/demo", "skills/a")

    def test_too_short(self) -> None:
        """Should reject a bare repository."""
        with pytest.raises(ValueError, match="Invalid skill reference"):
            parse_skill_reference("acme/demo")


class TestSelectInstalled:
    """Tests for picking an installed skill."""

    @pytest.fixture
    def entries(self, tmp_path: Path) -> list[InstalledSkill]:
        now = datetime.now(timezone.utc)
        result = []
        for name in ("Alpha Helper", "Beta Docs"):
            skill = Skill.create("acme/demo", name.lower())
            skill.name = name
            result.append(
                InstalledSkill(skill=skill, local_path=tmp_path / skill.install_dir_name, installed_at=now)
            )
        return result

    def test_by_index(self, entries: list[InstalledSkill]) -> None:
        """Should use 1-based positions."""
        assert select_installed(entries, "2") is entries[1]
        assert select_installed(entries, "0") is None
        assert select_installed(entries, "3") is None

    def test_by_name(self, entries: list[InstalledSkill]) -> None:
        """Should match the display name case-insensitively."""
        assert select_installed(entries, "alpha helper") is entries[0]

    def test_by_directory(self, entries: list[InstalledSkill]) -> None:
        """Should match the directory name."""
        assert select_installed(entries, "beta-docs") is entries[1]

    def test_no_match(self, entries: list[InstalledSkill]) -> None:
        """Should return None for unknown or empty selectors."""
        assert select_installed(entries, "gamma") is None
        assert select_installed(entries, "  ") is None


class TestSkillManager:
    """End-to-end tests through the facade."""

    @pytest.mark.asyncio
    async def test_fetch_all_skills_enriches(self, manager: SkillManager) -> None:
        """Should return enriched skills with their install state."""
        result = await manager.fetch_all_skills()

        assert [(s.name, s.category) for s in result.skills] == [
            ("Alpha Helper", "utility"),
            ("Beta Docs", "documentation"),
        ]
        assert not any(s.is_installed for s in result.skills)
        assert manager.rate_limit is not None

    @pytest.mark.asyncio
    async def test_fetch_without_enrichment(
        self, manager: SkillManager, github
    ) -> None:
        """Should only fetch trees when enrichment is off."""
        result = await manager.fetch_all_skills(enrich=False)

        assert [s.name for s in result.skills] == ["a", "b"]
        assert len(github.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_install_marks_installed(self, manager: SkillManager) -> None:
        """Should mark installed skills on the next scan."""
        result = await manager.fetch_all_skills()
        await manager.install(result.skills[1])

        again = await manager.fetch_all_skills()

        assert [s.is_installed for s in again.skills] == [False, True]

    @pytest.mark.asyncio
    async def test_resolve_and_inspect(self, manager: SkillManager) -> None:
        """Should build a skill from a reference and validate its manifest."""
        skill = await manager.resolve_skill("acme/demo/skills/a")
        metadata, validation = await manager.inspect_skill(skill)

        assert skill.id == "acme/demo/skills/a"
        assert [f.name for f in skill.files] == ["SKILL.md", "run.sh", "scripts"]
        assert metadata.name == "Alpha Helper"
        assert validation.is_valid

    @pytest.mark.asyncio
    async def test_resolve_enriched(self, manager: SkillManager) -> None:
        """Should fill in metadata when asked to."""
        skill = await manager.resolve_skill("acme/demo/skills/b", enrich=True)

        assert skill.name == "Beta Docs"

    @pytest.mark.asyncio
    async def test_fetch_file_text(self, manager: SkillManager) -> None:
        """Should return decoded file text."""
        text = await manager.fetch_file_text("acme/demo", "README.md")

        assert text == "# Demo skills\n"

    @pytest.mark.asyncio
    async def test_fetch_missing_file(self, manager: SkillManager) -> None:
        """Should propagate API errors for single-file fetches."""
        with pytest.raises(GitHubAPIError):
            await manager.fetch_file_text("acme/demo", "nope.md")

    @pytest.mark.asyncio
    async def test_install_list_uninstall(self, manager: SkillManager) -> None:
        """Should list exactly the skills still installed."""
        result = await manager.fetch_all_skills()
        alpha, beta = result.skills

        results = await manager.install_batch([alpha, beta])
        assert [r.status for r in results] == [InstallStatus.INSTALLED] * 2

        await manager.uninstall(alpha)

        assert [e.name for e in manager.list_installed()] == ["Beta Docs"]
        assert manager.find_installed("beta-docs") is not None
        assert manager.find_installed("alpha-helper") is None

    @pytest.mark.asyncio
    async def test_clear_cache(self, manager: SkillManager, github) -> None:
        """Should refetch everything after the cache is cleared."""
        await manager.fetch_all_skills()
        first = len(github.api_requests())

        manager.clear_cache()
        await manager.fetch_all_skills()

        assert len(github.api_requests()) == first * 2

    def test_uses_given_cache(self, config, github) -> None:
        """Should hand an empty caller-owned cache through to the client."""
        cache = ResponseCache(ttl=30)

        manager = SkillManager(config, http_client=github.http_client(), cache=cache)

        assert manager.client.cache is cache

    def test_install_path(self, manager: SkillManager, install_root: Path) -> None:
        """Should expose the configured install root."""
        assert manager.install_path == install_root
