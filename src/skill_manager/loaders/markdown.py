"""
SKILL.md metadata parsing.

A manifest may start with a header block of simple ``key: value`` lines:

```markdown
---
name: Git Commit Formatter
description: "Formats commit messages"
tags:
  - git
  - formatting
---

# Git Commit Formatter

Instructions for the agent...
```

Only this flat subset is understood: scalars, and lists introduced by a
key with an empty value. Manifests without a header still yield a
description taken from the body.
"""

from __future__ import annotations

import re
from typing import Any

from skill_manager.models import UNKNOWN_SKILL_NAME, SkillMetadata, ValidationResult

# Header block: opening "---" line, body, closing "---" line
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)

MAX_DESCRIPTION_LINES = 3
MAX_DESCRIPTION_LENGTH = 300

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9\s-]+$")

# Checked in order; the first category with a matching keyword wins
CATEGORY_KEYWORDS: list[tuple[str, list[str]]] = [
    ("security", ["security", "audit", "vulnerability", "owasp", "penetration"]),
    ("engineering", ["code", "develop", "engineer", "debug", "refactor"]),
    ("testing", ["test", "spec", "jest", "mocha", "coverage"]),
    ("documentation", ["doc", "readme", "comment", "jsdoc"]),
    ("devops", ["deploy", "docker", "kubernetes", "ci", "cd", "pipeline"]),
    ("database", ["sql", "database", "mongo", "postgres", "redis"]),
    ("creative", ["design", "ui", "ux", "creative", "style"]),
    ("utility", ["util", "helper", "tool", "format", "validate"]),
]


class SkillParser:
    """
    Parses SKILL.md text into ``SkillMetadata``.

    ``parse`` is pure: the same text always gives the same metadata.
    """

    def parse(self, content: str) -> SkillMetadata:
        """Parse manifest text and extract metadata."""
        extracted = self.extract_frontmatter(content)
        if extracted is None:
            return SkillMetadata(
                name=UNKNOWN_SKILL_NAME,
                description=self.extract_description(content),
            )

        header, body = extracted
        values = self.parse_header(header)

        name = self._scalar(values.get("name")) or UNKNOWN_SKILL_NAME
        description = self._scalar(values.get("description")) or self.extract_description(body)

        return SkillMetadata(
            name=name,
            description=description,
            category=self._scalar(values.get("category")),
            tags=self._ensure_list(values.get("tags")),
            author=self._scalar(values.get("author")),
            version=self._scalar(values.get("version")),
            triggers=self._ensure_list(values.get("triggers")),
            dependencies=self._ensure_list(values.get("dependencies")),
        )

    @staticmethod
    def extract_frontmatter(content: str) -> tuple[str, str] | None:
        """Split *content* into ``(header, body)``, or None without a header block."""
        match = FRONTMATTER_PATTERN.match(content)
        if not match:
            return None
        return match.group(1), content[match.end() :]

    @staticmethod
    def parse_header(header: str) -> dict[str, str | list[str]]:
        """Parse the flat ``key: value`` / ``- item`` header syntax."""
        result: dict[str, str | list[str]] = {}
        current_key = ""
        current_list: list[str] | None = None

        for line in header.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            if stripped.startswith("- "):
                if current_list is not None:
                    current_list.append(_unquote(stripped[2:].strip()))
                continue

            colon = stripped.find(":")
            if colon <= 0:
                continue

            if current_list is not None and current_key:
                result[current_key] = current_list
            current_list = None

            current_key = stripped[:colon].strip()
            value = stripped[colon + 1 :].strip()
            if value == "":
                current_list = []
            else:
                result[current_key] = _unquote(value)

        if current_list is not None and current_key:
            result[current_key] = current_list

        return result

    @staticmethod
    def extract_description(body: str) -> str:
        """First paragraph of the body (up to three lines), headings skipped."""
        lines: list[str] = []
        in_fence = False

        for raw in body.strip().splitlines():
            line = raw.strip()

            if line.startswith("```"):
                if lines:
                    break
                in_fence = not in_fence
                continue
            if in_fence:
                continue
            if line.startswith("#"):
                continue
            if not line:
                if lines:
                    break
                continue

            lines.append(line)
            if len(lines) >= MAX_DESCRIPTION_LINES:
                break

        return " ".join(lines)[:MAX_DESCRIPTION_LENGTH]

    @staticmethod
    def validate(metadata: SkillMetadata) -> ValidationResult:
        """Check required fields. Only a missing name makes metadata invalid."""
        result = ValidationResult()

        if not metadata.has_name:
            result.errors.append("Skill name is required in SKILL.md frontmatter")

        if not metadata.description:
            result.warnings.append("Skill description is recommended")

        if metadata.name and not _NAME_PATTERN.match(metadata.name):
            result.warnings.append(
                "Skill name should only contain letters, numbers, spaces, and hyphens"
            )

        return result

    @staticmethod
    def infer_category(name: str, path: str) -> str | None:
        """Guess a category from keywords in the name and path."""
        text = f"{name} {path}".lower()
        for category, keywords in CATEGORY_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return category
        return None

    @staticmethod
    def _scalar(value: Any) -> str | None:
        """A header value usable as a single string."""
        if isinstance(value, str) and value:
            return value
        return None

    @staticmethod
    def _ensure_list(value: Any) -> list[str]:
        """Ensure value is a list of strings."""
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v) for v in value]
        return []


def _unquote(value: str) -> str:
    # One leading and one trailing quote, independently
    if value[:1] in ("'", '"'):
        value = value[1:]
    if value[-1:] in ("'", '"'):
        value = value[:-1]
    return value
