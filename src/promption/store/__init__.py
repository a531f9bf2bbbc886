"""Embedded SQLite store: schema migrations, CRUD facade, and seed data."""

from promption.store.database import Database
from promption.store.schema import run_migrations
from promption.store.seed import TECHNOLOGIES, Technology, seed_system_tags

__all__ = [
    "TECHNOLOGIES",
    "Database",
    "Technology",
    "run_migrations",
    "seed_system_tags",
]
