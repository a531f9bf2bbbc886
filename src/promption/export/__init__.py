"""Export of items and agent configurations to the filesystem."""

from promption.export.agents import (
    build_agent_config,
    render_agent_config,
    sync_agents_to_opencode,
)
from promption.export.files import ExportResult, SyncTarget, export_items, slugify, sync_items

__all__ = [
    "ExportResult",
    "SyncTarget",
    "build_agent_config",
    "export_items",
    "render_agent_config",
    "slugify",
    "sync_agents_to_opencode",
    "sync_items",
]
