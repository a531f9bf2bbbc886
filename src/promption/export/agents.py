"""OpenCode agent configuration: JSON rendering and opencode.json sync."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from promption.export.files import ExportResult
from promption.models import Agent

logger = logging.getLogger(__name__)

OPENCODE_SCHEMA = "https://opencode.ai/config.json"
OPENCODE_CONFIG = "opencode.json"
PROMPTS_DIR = ".opencode/prompts"


def prompt_file_path(agent: Agent) -> str:
    return f"{PROMPTS_DIR}/{agent.name}.txt"


def prompt_reference(agent: Agent) -> str:
    """The ``{file:...}`` token OpenCode resolves to the prompt file."""
    return f"{{file:{prompt_file_path(agent)}}}"


def agent_entry(agent: Agent) -> dict[str, Any]:
    entry: dict[str, Any] = {"mode": agent.mode.value}
    if agent.model:
        entry["model"] = agent.model
    if agent.prompt_content:
        entry["prompt"] = prompt_reference(agent)
    if agent.tools_config:
        entry["tools"] = dict(agent.tools_config)
    if agent.permissions_config:
        entry["permissions"] = {k: v.value for k, v in agent.permissions_config.items()}
    return entry


def build_agent_config(agents: Iterable[Agent]) -> dict[str, Any]:
    """Build ``{"agent": {name: entry}}``; later agents win on duplicate names."""
    return {"agent": {agent.name: agent_entry(agent) for agent in agents}}


def render_agent_config(agents: Iterable[Agent]) -> str:
    return json.dumps(build_agent_config(agents), indent=2)


def _atomic_write(path: Path, content: str) -> None:
    """Write content to path atomically using tempfile + os.replace."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _read_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {"$schema": OPENCODE_SCHEMA}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("%s contains invalid JSON, starting a fresh config", path)
        return {"$schema": OPENCODE_SCHEMA}
    if not isinstance(data, dict):
        return {"$schema": OPENCODE_SCHEMA}
    return data


def sync_agents_to_opencode(agents: Iterable[Agent], root: Path) -> ExportResult:
    """Merge agents into ``<root>/opencode.json`` and write their prompt files.

    Existing keys in opencode.json are preserved; each agent's entry under
    ``agent`` is replaced wholesale.
    """
    config_path = root / OPENCODE_CONFIG
    root.mkdir(parents=True, exist_ok=True)
    config = _read_config(config_path)
    section = config.get("agent")
    if not isinstance(section, dict):
        section = {}
    config["agent"] = section

    result = ExportResult(base_path=str(root))
    synced = 0
    for agent in agents:
        if agent.prompt_content:
            prompt_path = root / prompt_file_path(agent)
            prompt_path.parent.mkdir(parents=True, exist_ok=True)
            prompt_path.write_text(agent.prompt_content, encoding="utf-8")
            result.written.append(str(prompt_path))
        section[agent.name] = agent_entry(agent)
        synced += 1
        logger.debug("Added agent config: %s", agent.name)

    _atomic_write(config_path, json.dumps(config, indent=2))
    result.written.append(str(config_path))
    logger.info("Synced %d agents to %s", synced, config_path)
    return result
