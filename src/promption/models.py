"""Pydantic models for items, tags and agents."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

ITEM_NAME_MAX = 255
ITEM_CONTENT_MAX = 1_000_000
TAG_NAME_MAX = 50
AGENT_NAME_MAX = 255
DEFAULT_TAG_COLOR = "#6366f1"

TAG_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")
AGENT_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class ItemType(StrEnum):
    SKILL = "skill"
    RULE = "rule"
    WORKFLOW = "workflow"


class AgentMode(StrEnum):
    PRIMARY = "primary"
    SUBAGENT = "subagent"


class PermissionLevel(StrEnum):
    ASK = "ask"
    ALLOW = "allow"
    DENY = "deny"


class ViewMode(StrEnum):
    ITEMS = "items"
    AGENTS = "agents"


def _not_blank(value: str, field: str) -> str:
    if not value.strip():
        raise ValueError(f"{field} must not be empty")
    return value


def _check_agent_name(value: str) -> str:
    if not AGENT_NAME_RE.match(value):
        raise ValueError(
            "Agent name must be in kebab-case format "
            "(lowercase letters, numbers, and hyphens only)"
        )
    return value


def _check_color(value: str) -> str:
    if not TAG_COLOR_RE.match(value):
        raise ValueError("Color must be a hex value like #RRGGBB or #RRGGBBAA")
    return value


# ------------------------------------------------------------------ #
# Tags
# ------------------------------------------------------------------ #


class Tag(BaseModel):
    id: str
    name: str
    color: str = DEFAULT_TAG_COLOR
    is_system: bool = False
    icon_slug: str | None = None


class TagForm(BaseModel):
    name: str = Field(max_length=TAG_NAME_MAX)
    color: str = DEFAULT_TAG_COLOR

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _not_blank(v, "name").strip()

    @field_validator("color")
    @classmethod
    def color_is_hex(cls, v: str) -> str:
        return _check_color(v)


# ------------------------------------------------------------------ #
# Items
# ------------------------------------------------------------------ #


class Item(BaseModel):
    id: str
    name: str
    content: str
    item_type: ItemType
    created_at: str
    updated_at: str
    tags: list[Tag] = Field(default_factory=list)

    def tag_ids(self) -> set[str]:
        return {t.id for t in self.tags}


class ItemForm(BaseModel):
    name: str = Field(max_length=ITEM_NAME_MAX)
    content: str = Field(max_length=ITEM_CONTENT_MAX)
    item_type: ItemType = ItemType.SKILL
    tag_ids: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _not_blank(v, "name").strip()

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _not_blank(v, "content")


class ItemUpdate(BaseModel):
    """Partial item update: ``None`` means "leave unchanged"."""

    name: str | None = Field(default=None, max_length=ITEM_NAME_MAX)
    content: str | None = Field(default=None, max_length=ITEM_CONTENT_MAX)
    item_type: ItemType | None = None
    tag_ids: list[str] | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _not_blank(v, "name").strip()

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _not_blank(v, "content")

    def has_field_changes(self) -> bool:
        return any(v is not None for v in (self.name, self.content, self.item_type))


# ------------------------------------------------------------------ #
# Agents
# ------------------------------------------------------------------ #


class Agent(BaseModel):
    id: str
    name: str
    mode: AgentMode = AgentMode.SUBAGENT
    model: str | None = None
    prompt_content: str | None = None
    tools_config: dict[str, bool | str] | None = None
    permissions_config: dict[str, PermissionLevel] | None = None
    created_at: str
    updated_at: str


class AgentForm(BaseModel):
    name: str = Field(max_length=AGENT_NAME_MAX)
    mode: AgentMode = AgentMode.SUBAGENT
    model: str | None = None
    prompt_content: str | None = None
    tools_config: dict[str, bool | str] | None = None
    permissions_config: dict[str, PermissionLevel] | None = None

    @field_validator("name")
    @classmethod
    def name_is_kebab(cls, v: str) -> str:
        return _check_agent_name(v)


class AgentUpdate(BaseModel):
    """Partial agent update.

    Optional columns are cleared with the ``clear_*`` flags; a ``clear_*``
    flag wins over a value supplied for the same column.
    """

    name: str | None = Field(default=None, max_length=AGENT_NAME_MAX)
    mode: AgentMode | None = None
    model: str | None = None
    prompt_content: str | None = None
    tools_config: dict[str, bool | str] | None = None
    permissions_config: dict[str, PermissionLevel] | None = None
    clear_model: bool = False
    clear_prompt: bool = False
    clear_tools: bool = False
    clear_permissions: bool = False

    @field_validator("name")
    @classmethod
    def name_is_kebab(cls, v: str | None) -> str | None:
        return None if v is None else _check_agent_name(v)
