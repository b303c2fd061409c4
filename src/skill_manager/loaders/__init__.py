"""Manifest loaders."""

from skill_manager.loaders.markdown import CATEGORY_KEYWORDS, SkillParser

__all__ = ["CATEGORY_KEYWORDS", "SkillParser"]
