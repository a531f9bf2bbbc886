"""Tests for CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from promption.cli import main
from promption.models import AgentForm, ItemForm, ItemType, PermissionLevel
from promption.store.database import Database


@pytest.fixture(autouse=True)
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "data"
    monkeypatch.setenv("PROMPTION_DATA_DIR", str(path))
    return path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "cli.db"
    Database(str(path)).close()
    return path


@pytest.fixture
def file_db(db_path: Path):
    database = Database(str(db_path))
    yield database
    database.close()


def _run(*argv: str) -> None:
    with patch("sys.argv", ["promption", *argv]):
        main()


def _run_fails(*argv: str) -> None:
    with pytest.raises(SystemExit) as exc_info:
        _run(*argv)
    assert exc_info.value.code != 0


class TestGeneral:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]):
        _run_fails()
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self, capsys: pytest.CaptureFixture[str]):
        with pytest.raises(SystemExit) as exc_info:
            _run("-V")
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("promption ")

    def test_missing_database(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        _run_fails("--db", str(tmp_path / "absent.db"), "list")
        assert "database not found" in capsys.readouterr().err

    def test_init_creates_and_seeds(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        path = tmp_path / "new" / "p.db"
        _run("--db", str(path), "init")
        assert path.exists()
        assert "Seeded 20 system tag(s)" in capsys.readouterr().out
        _run("--db", str(path), "init")
        assert "Seeded 0 system tag(s)" in capsys.readouterr().out

    def test_init_uses_data_dir_by_default(self, data_dir: Path):
        _run("init")
        assert (data_dir / "promption.db").exists()


class TestItems:
    def test_list_empty(self, db_path: Path, capsys: pytest.CaptureFixture[str]):
        _run("--db", str(db_path), "list")
        assert "No items found." in capsys.readouterr().out

    def test_list_table(self, db_path: Path, file_db: Database, capsys):
        item = file_db.create_item(ItemForm(name="Deploy", content="x", item_type=ItemType.RULE))
        _run("--db", str(db_path), "list")
        out = capsys.readouterr().out
        assert "ID" in out and "TYPE" in out
        assert item.id in out
        assert "rule" in out

    def test_list_filters(self, db_path: Path, file_db: Database, capsys):
        tag = file_db.create_tag("api")
        file_db.create_item(ItemForm(name="Tagged", content="x", tag_ids=[tag.id]))
        file_db.create_item(ItemForm(name="Plain", content="x", item_type=ItemType.RULE))
        _run("--db", str(db_path), "list", "--tag", "API")
        out = capsys.readouterr().out
        assert "Tagged" in out and "Plain" not in out
        _run("--db", str(db_path), "list", "--type", "rule")
        out = capsys.readouterr().out
        assert "Plain" in out and "Tagged" not in out

    def test_list_unknown_tag(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "list", "--tag", "nope")
        assert "Tag 'nope' not found" in capsys.readouterr().err

    def test_sync_default_target(self, db_path: Path, file_db: Database, tmp_path: Path, capsys):
        item = file_db.create_item(ItemForm(name="Code Review", content="verbatim"))
        root = tmp_path / "proj"
        _run("--db", str(db_path), "sync", f"--ids={item.id}", "--dest", str(root))
        skill = root / ".agent" / "skills" / "code-review" / "SKILL.md"
        assert skill.read_text() == "verbatim"
        out = capsys.readouterr().out
        assert "+ .agent/skills/code-review/SKILL.md" in out
        assert "1 item(s) synced" in out

    def test_sync_target(self, db_path: Path, file_db: Database, tmp_path: Path):
        item = file_db.create_item(ItemForm(name="Style", content="x", item_type=ItemType.RULE))
        _run(
            "--db", str(db_path), "sync", "--ids", item.id, "--target", "windsurf",
            "--dest", str(tmp_path),
        )
        assert (tmp_path / ".windsurf" / "rules" / "style.md").exists()

    def test_sync_requires_ids(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "sync")
        assert "No item IDs provided" in capsys.readouterr().err

    def test_sync_unknown_ids(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "sync", "--ids", "a,b")
        assert "No items found" in capsys.readouterr().err

    def test_sync_partial_ids_warns(self, db_path: Path, file_db: Database, tmp_path, capsys):
        item = file_db.create_item(ItemForm(name="a", content="x"))
        _run("--db", str(db_path), "sync", "--ids", f"{item.id},missing", "--dest", str(tmp_path))
        assert "Only found 1 of 2" in capsys.readouterr().err

    def test_export(self, db_path: Path, file_db: Database, tmp_path: Path):
        item = file_db.create_item(ItemForm(name="Flow", content="x", item_type=ItemType.WORKFLOW))
        dest = tmp_path / "export"
        _run("--db", str(db_path), "export", "--ids", item.id, "--dest", str(dest))
        assert (dest / "workflows" / "flow.md").read_text() == "x"

    def test_tags(self, db_path: Path, file_db: Database, capsys):
        file_db.create_tag("Python", "#3776AB", is_system=True)
        file_db.create_tag("mine")
        _run("--db", str(db_path), "tags")
        lines = capsys.readouterr().out.splitlines()
        assert any(line.startswith("Python") and line.rstrip().endswith("yes") for line in lines)
        assert any(line.startswith("mine") and not line.rstrip().endswith("yes") for line in lines)


class TestAgents:
    def test_create_agent(self, db_path: Path, file_db: Database, capsys):
        _run(
            "--db", str(db_path), "create-agent", "--name", "reviewer", "--mode", "primary",
            "--model", "anthropic/claude", "--prompt", "Review", "--tools", "read,bash",
            "--permissions", "edit:deny,bash:ask",
        )
        out = capsys.readouterr().out
        assert "Agent created successfully!" in out
        assert "promption sync-agents --ids=" in out
        agent = file_db.find_agent("reviewer")
        assert agent is not None
        assert agent.tools_config == {"read": True, "bash": True}
        assert agent.permissions_config == {
            "edit": PermissionLevel.DENY,
            "bash": PermissionLevel.ASK,
        }

    def test_create_agent_json(self, db_path: Path, capsys):
        _run("--db", str(db_path), "create-agent", "--name", "a", "--format", "json")
        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "a"
        assert data["mode"] == "subagent"
        assert "model" not in data

    def test_create_agent_prompt_file(self, db_path: Path, file_db: Database, tmp_path: Path):
        prompt = tmp_path / "prompt.txt"
        prompt.write_text("from file")
        _run(
            "--db", str(db_path), "create-agent", "--name", "a", "--prompt", str(prompt),
            "--prompt-file",
        )
        agent = file_db.find_agent("a")
        assert agent is not None
        assert agent.prompt_content == "from file"

    def test_invalid_permissions_skipped(self, db_path: Path, file_db: Database, capsys):
        _run(
            "--db", str(db_path), "create-agent", "--name", "a",
            "--permissions", "edit:maybe,broken,bash:allow",
        )
        err = capsys.readouterr().err
        assert "Invalid permission value 'maybe'" in err
        assert "Invalid permission format 'broken'" in err
        agent = file_db.find_agent("a")
        assert agent is not None
        assert agent.permissions_config == {"bash": PermissionLevel.ALLOW}

    def test_create_agent_bad_name(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "create-agent", "--name", "My Agent")
        assert "kebab-case" in capsys.readouterr().err

    def test_create_agent_duplicate_name(self, db_path: Path, file_db: Database, capsys):
        file_db.create_agent(AgentForm(name="dup"))
        _run_fails("--db", str(db_path), "create-agent", "--name", "dup")
        assert "already exists" in capsys.readouterr().err

    def test_list_agents(self, db_path: Path, file_db: Database, capsys):
        agent = file_db.create_agent(AgentForm(name="lister"))
        _run("--db", str(db_path), "list-agents")
        out = capsys.readouterr().out
        assert agent.id in out and "subagent" in out

    def test_get_agent_by_name(self, db_path: Path, file_db: Database, capsys):
        file_db.create_agent(AgentForm(name="shown", model="m", tools_config={"bash": True}))
        _run("--db", str(db_path), "get-agent", "--id", "shown")
        out = capsys.readouterr().out
        assert "Agent: shown" in out
        assert "Model: m" in out
        assert '"bash": true' in out

    def test_get_agent_missing(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "get-agent", "--id", "ghost")
        assert "Agent 'ghost' not found" in capsys.readouterr().err

    def test_update_agent_clear(self, db_path: Path, file_db: Database):
        agent = file_db.create_agent(AgentForm(name="a", model="m", tools_config={"x": True}))
        _run(
            "--db", str(db_path), "update-agent", "--id", agent.id, "--clear-model",
            "--clear-tools", "--mode", "primary",
        )
        updated = file_db.get_agent(agent.id)
        assert updated is not None
        assert updated.model is None
        assert updated.tools_config is None
        assert updated.mode.value == "primary"

    def test_update_agent_rename_conflict(self, db_path: Path, file_db: Database, capsys):
        file_db.create_agent(AgentForm(name="taken"))
        file_db.create_agent(AgentForm(name="mine"))
        _run_fails("--db", str(db_path), "update-agent", "--id", "mine", "--name", "taken")
        assert "already exists" in capsys.readouterr().err

    def test_delete_agent(self, db_path: Path, file_db: Database, capsys):
        file_db.create_agent(AgentForm(name="gone"))
        _run("--db", str(db_path), "delete-agent", "--id", "gone")
        assert "deleted successfully" in capsys.readouterr().out
        assert file_db.find_agent("gone") is None

    def test_sync_agents(self, db_path: Path, file_db: Database, tmp_path: Path, capsys):
        agent = file_db.create_agent(AgentForm(name="writer", prompt_content="Write"))
        _run("--db", str(db_path), "sync-agents", "--ids", agent.id, "--dest", str(tmp_path))
        config = json.loads((tmp_path / "opencode.json").read_text())
        assert config["agent"]["writer"]["prompt"] == "{file:.opencode/prompts/writer.txt}"
        assert "1 agent(s) synced to opencode.json" in capsys.readouterr().out

    def test_sync_agents_requires_ids(self, db_path: Path, capsys):
        _run_fails("--db", str(db_path), "sync-agents")
        assert "No agent IDs provided" in capsys.readouterr().err


class TestServeAndStatus:
    def test_serve_passes_port(self, db_path: Path):
        with patch("promption.cli.run_server") as run_server:
            _run("serve", "--port", "9999")
        config = run_server.call_args[0][0]
        assert config.port == 9999

    def test_status_not_running(self, capsys):
        with patch("promption.cli.fetch_server_state", return_value=None):
            _run_fails("status")
        assert "not running" in capsys.readouterr().out

    def test_status_running(self, capsys):
        state = {
            "filtered_items": 1,
            "total_items": 2,
            "total_tags": 3,
            "total_agents": 4,
            "view_mode": "items",
        }
        with (
            patch("promption.cli.read_port_lock", return_value={"port": 5000, "pid": 42}),
            patch("promption.cli.fetch_server_state", return_value=state) as fetch,
        ):
            _run("status")
        fetch.assert_called_once_with(5000)
        out = capsys.readouterr().out
        assert "127.0.0.1:5000 (pid 42)" in out
        assert "Items: 1 shown of 2" in out
