"""Tests for the clipboard bridge and copy actions."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from promption.clipboard import (
    ClipboardError,
    SystemClipboard,
    copy_agent_config,
    copy_item_content,
    copy_sync_agents_command,
    copy_sync_command,
    sync_agents_command,
    sync_command,
)
from promption.models import Agent, Item, ItemType


def _item(item_id: str) -> Item:
    return Item(
        id=item_id,
        name=item_id,
        content=f"content of {item_id}",
        item_type=ItemType.SKILL,
        created_at="t",
        updated_at="t",
    )


def _agent(name: str) -> Agent:
    return Agent(id=f"id-{name}", name=name, created_at="t", updated_at="t")


class TestCommands:
    def test_sync_command(self):
        assert sync_command(["a", "b"]) == "promption sync --ids=a,b"

    def test_sync_agents_command(self):
        assert sync_agents_command(["x"]) == "promption sync-agents --ids=x"


class TestCopyActions:
    def test_copy_item_content(self, clipboard):
        copy_item_content(clipboard, _item("one"))
        assert clipboard.last == "content of one"

    def test_copy_sync_command(self, clipboard):
        command = copy_sync_command(clipboard, [_item("a"), _item("b")])
        assert command == "promption sync --ids=a,b"
        assert clipboard.last == command

    def test_copy_sync_command_empty_selection(self, clipboard):
        assert copy_sync_command(clipboard, []) is None
        assert clipboard.copied == []

    def test_copy_sync_agents_command(self, clipboard):
        assert copy_sync_agents_command(clipboard, [_agent("a")]) == (
            "promption sync-agents --ids=id-a"
        )

    def test_copy_agent_config(self, clipboard):
        copy_agent_config(clipboard, [_agent("helper")])
        assert json.loads(clipboard.last) == {"agent": {"helper": {"mode": "subagent"}}}

    def test_copy_agent_config_empty(self, clipboard):
        assert copy_agent_config(clipboard, []) is None


class TestSystemClipboard:
    def test_uses_first_available_binary(self):
        def which(name: str):
            return "/usr/bin/xclip" if name == "xclip" else None

        with (
            patch("promption.clipboard.sys.platform", "linux"),
            patch("promption.clipboard.shutil.which", side_effect=which),
            patch("promption.clipboard.subprocess.run") as run,
        ):
            run.return_value = MagicMock(returncode=0, stderr="")
            SystemClipboard().copy("hello")

        args, kwargs = run.call_args
        assert args[0] == ["xclip", "-selection", "clipboard"]
        assert kwargs["input"] == "hello"
        assert kwargs["text"] is True

    def test_explicit_command(self):
        with patch("promption.clipboard.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stderr="")
            SystemClipboard(["pbcopy"]).copy("x")
        assert run.call_args[0][0] == ["pbcopy"]

    def test_no_utility_found(self):
        with (
            patch("promption.clipboard.sys.platform", "linux"),
            patch("promption.clipboard.shutil.which", return_value=None),
        ):
            with pytest.raises(ClipboardError, match="No clipboard utility"):
                SystemClipboard().copy("x")

    def test_nonzero_exit(self):
        with patch("promption.clipboard.subprocess.run") as run:
            run.return_value = MagicMock(returncode=1, stderr="no display\n")
            with pytest.raises(ClipboardError, match="no display"):
                SystemClipboard(["xsel"]).copy("x")

    def test_timeout(self):
        with patch(
            "promption.clipboard.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="wl-copy", timeout=5),
        ):
            with pytest.raises(ClipboardError, match="timed out"):
                SystemClipboard(["wl-copy"]).copy("x")

    def test_binary_vanished(self):
        with patch("promption.clipboard.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ClipboardError, match="not found"):
                SystemClipboard(["pbcopy"]).copy("x")
