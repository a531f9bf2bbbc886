"""Tests for system routes and the app lifespan."""

from __future__ import annotations

from starlette.testclient import TestClient

from promption import __version__
from promption.state.app_store import AppStore
from promption.store.database import Database
from promption.store.seed import TECHNOLOGIES


class TestLifespan:
    def test_state_initialized(self, client: TestClient):
        state = client.app.state  # type: ignore[attr-defined]
        assert isinstance(state.db, Database)
        assert isinstance(state.store, AppStore)
        assert state.store.is_loading is False

    def test_system_tags_seeded_and_loaded(self, client: TestClient):
        store = client.app.state.store  # type: ignore[attr-defined]
        assert len(store.tags) == len(TECHNOLOGIES)
        assert all(t.is_system for t in store.tags)

    def test_export_dir_under_project_root(self, client: TestClient, project_root):
        assert client.app.state.export_dir == project_root / ".agent"  # type: ignore[attr-defined]


class TestSystemRoutes:
    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_version(self, client: TestClient):
        assert client.get("/api/version").json() == {"version": __version__}

    def test_stats(self, client: TestClient):
        data = client.get("/api/stats").json()
        assert data["total_items"] == 0
        assert data["total_tags"] == len(TECHNOLOGIES)

    def test_state(self, client: TestClient):
        data = client.get("/api/state").json()
        assert data["view_mode"] == "items"
        assert data["selected_items"] == []


class TestViewMode:
    def test_switch(self, client: TestClient):
        resp = client.post("/api/view", json={"mode": "agents"})
        assert resp.status_code == 200
        assert resp.json() == {"view_mode": "agents"}
        assert client.get("/api/state").json()["view_mode"] == "agents"

    def test_unknown_mode(self, client: TestClient):
        resp = client.post("/api/view", json={"mode": "grid"})
        assert resp.status_code == 400

    def test_invalid_json(self, client: TestClient):
        resp = client.post("/api/view", content=b"{nope")
        assert resp.status_code == 422


class TestShortcuts:
    def test_list(self, client: TestClient):
        data = client.get("/api/shortcuts").json()
        assert data["count"] == len(data["shortcuts"])
        actions = {s["action"] for s in data["shortcuts"]}
        assert {"select-all", "close-dialog", "create-rule"} <= actions

    def test_press_create_rule(self, client: TestClient):
        resp = client.post("/api/shortcuts/press", json={"key": "r", "mod": True, "shift": True})
        assert resp.json() == {"action": "create-rule", "handled": True}
        state = client.get("/api/state").json()
        assert state["is_creating"] is True
        assert state["create_type"] == "rule"

    def test_press_escape_closes_dialog(self, client: TestClient):
        client.post("/api/shortcuts/press", json={"key": "n", "mod": True})
        resp = client.post("/api/shortcuts/press", json={"key": "Escape"})
        assert resp.json()["action"] == "close-dialog"
        assert client.get("/api/state").json()["is_creating"] is False

    def test_press_in_input_ignored(self, client: TestClient):
        resp = client.post(
            "/api/shortcuts/press", json={"key": "a", "mod": True, "in_input": True}
        )
        assert resp.json() == {"action": None, "handled": False}

    def test_press_focus_search_left_to_client(self, client: TestClient):
        resp = client.post("/api/shortcuts/press", json={"key": "f", "mod": True})
        assert resp.json() == {"action": "focus-search", "handled": False}

    def test_press_copy_command(self, client: TestClient, clipboard):
        item = client.post("/api/items", json={"name": "a", "content": "b"}).json()
        client.post("/api/items/select", json={"id": item["id"]})
        resp = client.post("/api/shortcuts/press", json={"key": "c", "mod": True})
        assert resp.json() == {"action": "copy-command", "handled": True}
        assert clipboard.last == f"promption sync --ids={item['id']}"

    def test_press_requires_key(self, client: TestClient):
        assert client.post("/api/shortcuts/press", json={}).status_code == 422
