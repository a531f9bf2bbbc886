"""System clipboard bridge and the copy actions built on it.

All clipboard writes go through _run_copy(), which is the single mock
target in tests.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections.abc import Iterable
from typing import Protocol

from promption.errors import PromptionError
from promption.export.agents import render_agent_config
from promption.models import Agent, Item

logger = logging.getLogger(__name__)

# Tried in order; the first binary found on PATH wins.
_COPY_COMMANDS: list[list[str]] = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip"],
]


class ClipboardError(PromptionError):
    """Raised when text cannot be placed on the clipboard."""


class Clipboard(Protocol):
    def copy(self, text: str) -> None: ...


def _run_copy(command: list[str], text: str) -> None:
    try:
        proc = subprocess.run(
            command,
            input=text,
            text=True,
            capture_output=True,
            timeout=5,
        )
    except FileNotFoundError:
        raise ClipboardError(f"{command[0]} binary not found")
    except subprocess.TimeoutExpired:
        raise ClipboardError(f"{command[0]} timed out")
    if proc.returncode != 0:
        raise ClipboardError(f"{command[0]} failed: {proc.stderr.strip()}")


class SystemClipboard:
    """Clipboard backed by the platform's copy utility."""

    def __init__(self, command: list[str] | None = None) -> None:
        self._command = command

    def _resolve_command(self) -> list[str]:
        if self._command:
            return self._command
        candidates = _COPY_COMMANDS
        if sys.platform == "win32":
            candidates = [["clip"]]
        for cmd in candidates:
            if shutil.which(cmd[0]):
                self._command = cmd
                return cmd
        raise ClipboardError("No clipboard utility found (pbcopy, wl-copy, xclip, xsel, clip)")

    def copy(self, text: str) -> None:
        command = self._resolve_command()
        _run_copy(command, text)
        logger.debug("Copied %d characters with %s", len(text), command[0])


def sync_command(item_ids: Iterable[str]) -> str:
    return f"promption sync --ids={','.join(item_ids)}"


def sync_agents_command(agent_ids: Iterable[str]) -> str:
    return f"promption sync-agents --ids={','.join(agent_ids)}"


def copy_item_content(clipboard: Clipboard, item: Item) -> str:
    clipboard.copy(item.content)
    logger.info("Item content copied to clipboard: %s", item.id)
    return item.content


def copy_sync_command(clipboard: Clipboard, items: list[Item]) -> str | None:
    """Copy the CLI sync command for ``items``. Returns None when there is nothing to copy."""
    if not items:
        return None
    command = sync_command(i.id for i in items)
    clipboard.copy(command)
    logger.info("Sync command copied to clipboard (%d items)", len(items))
    return command


def copy_sync_agents_command(clipboard: Clipboard, agents: list[Agent]) -> str | None:
    if not agents:
        return None
    command = sync_agents_command(a.id for a in agents)
    clipboard.copy(command)
    logger.info("Agent sync command copied to clipboard (%d agents)", len(agents))
    return command


def copy_agent_config(clipboard: Clipboard, agents: list[Agent]) -> str | None:
    if not agents:
        return None
    text = render_agent_config(agents)
    clipboard.copy(text)
    logger.info("Agent config copied to clipboard (%d agents)", len(agents))
    return text
