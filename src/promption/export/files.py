"""Write items to disk in the directory layouts different agent tools expect."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from promption.models import Item, ItemType

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

SKILL_FILE = "SKILL.md"


class SyncTarget(StrEnum):
    ANTIGRAVITY = "antigravity"
    CURSOR = "cursor"
    WINDSURF = "windsurf"
    OPENCODE = "opencode"
    CLINE = "cline"
    COPILOT = "copilot"


class ExportResult(BaseModel):
    base_path: str
    written: list[str] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.written)


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge hyphens."""
    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    return slug or "unnamed"


def _write(path: Path, content: str, result: ExportResult) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    result.written.append(str(path))
    logger.debug("Wrote %s", path)


def _skill_frontmatter(item: Item) -> str:
    return f"---\nname: {slugify(item.name)}\ndescription: {item.name}\n---\n\n{item.content}"


def export_items(items: Iterable[Item], base_dir: Path) -> ExportResult:
    """Export items under ``base_dir`` with content written verbatim.

    Layout: ``skills/<slug>/SKILL.md``, ``rules/<slug>.md``,
    ``workflows/<slug>.md``. Existing files are overwritten.
    """
    result = ExportResult(base_path=str(base_dir))
    skills_dir = base_dir / "skills"
    rules_dir = base_dir / "rules"
    workflows_dir = base_dir / "workflows"
    for directory in (skills_dir, rules_dir, workflows_dir):
        directory.mkdir(parents=True, exist_ok=True)

    for item in items:
        slug = slugify(item.name)
        if item.item_type == ItemType.SKILL:
            _write(skills_dir / slug / SKILL_FILE, item.content, result)
        elif item.item_type == ItemType.RULE:
            _write(rules_dir / f"{slug}.md", item.content, result)
        else:
            _write(workflows_dir / f"{slug}.md", item.content, result)

    logger.info("Exported %d items to %s", result.count, base_dir)
    return result


def _sync_skill_dirs(
    items: Iterable[Item], root: Path, skills_dir: Path, rules_dir: Path
) -> ExportResult:
    """Skills get frontmatter in their own dir; rules and workflows share ``rules_dir``."""
    result = ExportResult(base_path=str(root))
    for item in items:
        slug = slugify(item.name)
        if item.item_type == ItemType.SKILL:
            _write(skills_dir / slug / SKILL_FILE, _skill_frontmatter(item), result)
        else:
            _write(rules_dir / f"{slug}.md", item.content, result)
    return result


def _sync_cursor(items: Iterable[Item], root: Path) -> ExportResult:
    result = ExportResult(base_path=str(root))
    rules_dir = root / ".cursor" / "rules"
    for item in items:
        slug = slugify(item.name)
        if item.item_type == ItemType.RULE:
            content = f"---\ndescription: {item.name}\nglobs: *\n---\n\n{item.content}"
            _write(rules_dir / f"{slug}.mdc", content, result)
        else:
            _write(rules_dir / f"{slug}.md", item.content, result)
    return result


def _sync_copilot(items: Iterable[Item], root: Path) -> ExportResult:
    path = root / ".github" / "copilot-instructions.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    result = ExportResult(base_path=str(root))
    with open(path, "a", encoding="utf-8") as f:
        for item in items:
            f.write(f"\n\n# {item.name}\n{item.content}\n")
    result.written.append(str(path))
    return result


def sync_items(items: Iterable[Item], target: SyncTarget | str, root: Path) -> ExportResult:
    """Write items into a project root using the target tool's conventions."""
    target = SyncTarget(target)
    items = list(items)
    if target == SyncTarget.ANTIGRAVITY:
        return export_items(items, root / ".agent")
    if target == SyncTarget.CURSOR:
        return _sync_cursor(items, root)
    if target == SyncTarget.WINDSURF:
        return _sync_skill_dirs(
            items, root, root / ".windsurf" / "skills", root / ".windsurf" / "rules"
        )
    if target == SyncTarget.OPENCODE:
        return _sync_skill_dirs(
            items, root, root / ".opencode" / "skills", root / ".opencode" / "rules"
        )
    if target == SyncTarget.CLINE:
        return _sync_skill_dirs(items, root, root / ".cline" / "skills", root / ".clinerules")
    return _sync_copilot(items, root)
