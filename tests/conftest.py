"""Shared fixtures for promption tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from starlette.testclient import TestClient

from promption.models import AgentForm, ItemForm, ItemType
from promption.server.app import create_app
from promption.state.app_store import AppStore
from promption.store.database import Database


class FakeClipboard:
    """Records copied text instead of touching the system clipboard."""

    def __init__(self) -> None:
        self.copied: list[str] = []

    def copy(self, text: str) -> None:
        self.copied.append(text)

    @property
    def last(self) -> str | None:
        return self.copied[-1] if self.copied else None


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def store(db: Database) -> AppStore:
    return AppStore(db)


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def make_item(db: Database):
    """Factory that inserts an item straight into the database."""

    def _make(
        name: str,
        content: str = "body",
        item_type: ItemType = ItemType.SKILL,
        tag_ids: list[str] | None = None,
    ):
        return db.create_item(
            ItemForm(name=name, content=content, item_type=item_type, tag_ids=tag_ids or [])
        )

    return _make


@pytest.fixture
def make_agent(db: Database):
    def _make(name: str, **fields):
        return db.create_agent(AgentForm(name=name, **fields))

    return _make



@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def client(tmp_path: Path, project_root: Path, clipboard: FakeClipboard, monkeypatch):
    """TestClient over an in-memory app with a recording clipboard."""
    monkeypatch.setenv("PROMPTION_DATA_DIR", str(tmp_path / "data"))
    app = create_app(db_path=":memory:", project_root=project_root, clipboard=clipboard)
    with TestClient(app) as c:
        yield c
