"""Seed data: the fixed set of technology tags every database starts with."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from promption.models import Tag
from promption.store.database import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Technology:
    name: str
    color: str
    category: str  # language | framework | tool | platform
    icon_slug: str


TECHNOLOGIES: tuple[Technology, ...] = (
    Technology("TypeScript", "#3178C6", "language", "typescript"),
    Technology("JavaScript", "#F7DF1E", "language", "javascript"),
    Technology("Python", "#3776AB", "language", "python"),
    Technology("React", "#61DAFB", "framework", "react"),
    Technology("Next.js", "#000000", "framework", "nextdotjs"),
    Technology("Vue.js", "#4FC08D", "framework", "vuedotjs"),
    Technology("Node.js", "#5FA04E", "platform", "nodedotjs"),
    Technology("Express", "#000000", "framework", "express"),
    Technology("Tailwind CSS", "#06B6D4", "framework", "tailwindcss"),
    Technology("Docker", "#2496ED", "tool", "docker"),
    Technology("Git", "#F05032", "tool", "git"),
    Technology("PostgreSQL", "#4169E1", "tool", "postgresql"),
    Technology("MongoDB", "#47A248", "tool", "mongodb"),
    Technology("Redis", "#FF4438", "tool", "redis"),
    Technology("AWS", "#FF9900", "platform", "amazonaws"),
    Technology("GraphQL", "#E10098", "tool", "graphql"),
    Technology("Rust", "#000000", "language", "rust"),
    Technology("Go", "#00ADD8", "language", "go"),
    Technology("Java", "#000000", "language", "openjdk"),
    Technology("Kubernetes", "#326CE5", "tool", "kubernetes"),
)


def seed_system_tags(
    db: Database,
    technologies: tuple[Technology, ...] = TECHNOLOGIES,
) -> list[Tag]:
    """Create any missing technology tags as system tags.

    A technology is skipped when a tag with the same name (case-insensitive)
    already exists, so running this on every startup is safe.
    """
    existing = {t.name.lower() for t in db.list_tags()}
    created: list[Tag] = []
    for tech in technologies:
        if tech.name.lower() in existing:
            continue
        tag = db.create_tag(tech.name, tech.color, is_system=True, icon_slug=tech.icon_slug)
        existing.add(tech.name.lower())
        created.append(tag)
    if created:
        logger.info("Seeded %d system tags", len(created))
    return created
