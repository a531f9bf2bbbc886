"""Tests for system tag seeding."""

from promption.store.database import Database
from promption.store.seed import TECHNOLOGIES, Technology, seed_system_tags


def test_technology_table():
    assert len(TECHNOLOGIES) == 20
    names = [t.name.lower() for t in TECHNOLOGIES]
    assert len(set(names)) == len(names)
    assert all(t.color.startswith("#") and len(t.color) == 7 for t in TECHNOLOGIES)


def test_seed_creates_system_tags(db: Database):
    created = seed_system_tags(db)
    assert len(created) == len(TECHNOLOGIES)
    assert all(t.is_system for t in db.list_tags())
    python = db.find_tag_by_name("Python")
    assert python is not None
    assert python.icon_slug == "python"


def test_seed_is_idempotent(db: Database):
    seed_system_tags(db)
    assert seed_system_tags(db) == []
    assert len(db.list_tags()) == len(TECHNOLOGIES)


def test_seed_skips_existing_name_case_insensitively(db: Database):
    db.create_tag("python", "#000000")
    created = seed_system_tags(db, (Technology("Python", "#3776AB", "language", "python"),))
    assert created == []
    tag = db.find_tag_by_name("python")
    assert tag is not None
    assert not tag.is_system
