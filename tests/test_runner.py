"""Tests for the server runner: port lock and state polling."""

from __future__ import annotations

import json
import os
from unittest.mock import MagicMock, patch

import httpx
import pytest

from promption.config import Config
from promption.server.runner import (
    fetch_server_state,
    get_port_lock_path,
    held_port_lock,
    read_port_lock,
    remove_port_lock,
    run_server,
    write_port_lock,
)


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PROMPTION_DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


class TestPortLock:
    def test_path_in_data_dir(self, data_dir):
        assert get_port_lock_path() == data_dir / "port.lock"

    def test_write_and_read(self):
        path = write_port_lock(5123)
        data = json.loads(path.read_text())
        assert data["port"] == 5123
        assert data["pid"] == os.getpid()
        assert "started_at" in data
        assert read_port_lock() == data

    def test_read_missing(self):
        assert read_port_lock() == {}

    def test_read_corrupt(self, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "port.lock").write_text("garbage")
        assert read_port_lock() == {}

    def test_read_non_object(self, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "port.lock").write_text("[5123]")
        assert read_port_lock() == {}

    def test_remove(self):
        path = write_port_lock(5123)
        remove_port_lock()
        assert not path.exists()
        remove_port_lock()

    def test_held_lock_removed_on_error(self):
        with pytest.raises(RuntimeError):
            with held_port_lock(5123) as path:
                assert path.exists()
                raise RuntimeError("boom")
        assert not path.exists()


class TestFetchServerState:
    def test_running(self):
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"view_mode": "items"}
        with patch("promption.server.runner.httpx.get", return_value=resp) as get:
            assert fetch_server_state(5000) == {"view_mode": "items"}
        get.assert_called_once_with("http://127.0.0.1:5000/api/state", timeout=0.5)

    def test_connection_refused(self):
        with patch(
            "promption.server.runner.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert fetch_server_state(5000) is None

    def test_non_200(self):
        with patch(
            "promption.server.runner.httpx.get", return_value=MagicMock(status_code=500)
        ):
            assert fetch_server_state(5000) is None


class TestRunServer:
    def test_runs_factory_and_cleans_lock(self, data_dir):
        config = Config(port=5555, log_level="INFO")
        seen: dict = {}

        def fake_run(*args, **kwargs):
            seen["lock"] = read_port_lock()

        with patch("uvicorn.run", side_effect=fake_run) as run:
            run_server(config)
        run.assert_called_once_with(
            "promption.server.app:create_app",
            factory=True,
            host="127.0.0.1",
            port=5555,
            log_level="info",
        )
        assert seen["lock"]["port"] == 5555
        assert not (data_dir / "port.lock").exists()
        assert data_dir.exists()
