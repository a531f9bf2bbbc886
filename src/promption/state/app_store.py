"""AppStore: in-memory mirror of items, tags and agents kept in step with the database.

Every mutating action awaits its database call first and only then touches
the mirror, so a failed call leaves the mirror in its last-known-good state.
Blocking database calls run in worker threads via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from pydantic import ValidationError

from promption.errors import ActionError, PromptionError, describe_error
from promption.models import (
    Agent,
    AgentForm,
    AgentUpdate,
    Item,
    ItemForm,
    ItemType,
    ItemUpdate,
    Tag,
    ViewMode,
)
from promption.state.filters import ItemFilter, filter_items
from promption.state.selection import Selection
from promption.store.database import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def _action(description: str) -> Iterator[None]:
    """Normalize validation and store failures into ActionError."""
    try:
        yield
    except (ValidationError, PromptionError) as e:
        message = describe_error(e)
        logger.error("Failed to %s: %s", description, message)
        raise ActionError(message, cause=e) from e


class AppStore:
    def __init__(self, db: Database) -> None:
        self._db = db

        # Data
        self.items: list[Item] = []
        self.tags: list[Tag] = []
        self.agents: list[Agent] = []
        self.filtered_items: list[Item] = []

        # Selection
        self.selected_items: Selection[str] = Selection()
        self.selected_agents: Selection[str] = Selection()

        # Filters
        self.search_query: str = ""
        self.type_filter: ItemType | None = None
        self.tag_filter: list[str] = []

        # UI state
        self.is_loading: bool = True
        self.editing_item: Item | None = None
        self.editing_agent: Agent | None = None
        self.is_creating: bool = False
        self.create_type: ItemType = ItemType.SKILL
        self.view_mode: ViewMode = ViewMode.ITEMS

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    @property
    def current_filter(self) -> ItemFilter:
        return ItemFilter(
            search=self.search_query,
            item_type=self.type_filter,
            tag_ids=frozenset(self.tag_filter),
        )

    def _refilter(self) -> None:
        self.filtered_items = filter_items(self.items, self.current_filter)

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    async def load(self) -> None:
        """Replace the whole mirror from the database.

        Errors are logged, never raised; ``is_loading`` is always cleared.
        """
        self.is_loading = True
        try:
            items, tags, agents = await asyncio.gather(
                self._call(self._db.list_items),
                self._call(self._db.list_tags),
                self._call(self._db.list_agents),
            )
        except PromptionError as e:
            logger.error("Failed to load data: %s", e)
        else:
            self.items = items
            self.tags = tags
            self.agents = agents
            self._refilter()
            logger.info(
                "Loaded %d items, %d tags, %d agents", len(items), len(tags), len(agents)
            )
        finally:
            self.is_loading = False

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #

    async def create_item(self, data: ItemForm | dict) -> Item:
        with _action("create item"):
            form = ItemForm.model_validate(data)
            item = await self._call(self._db.create_item, form)
        self.items = [item, *self.items]
        self._refilter()
        logger.info("Item created successfully: %s", item.id)
        return item

    async def update_item(self, item_id: str, data: ItemUpdate | dict) -> Item:
        with _action("update item"):
            update = ItemUpdate.model_validate(data)
            item = await self._call(self._db.update_item, item_id, update)
        self.items = [item if i.id == item_id else i for i in self.items]
        if self.editing_item is not None and self.editing_item.id == item_id:
            self.editing_item = item
        self._refilter()
        logger.info("Item updated successfully: %s", item.id)
        return item

    async def delete_item(self, item_id: str) -> None:
        with _action("delete item"):
            await self._call(self._db.delete_item, item_id)
        self.items = [i for i in self.items if i.id != item_id]
        self.selected_items.discard(item_id)
        if self.editing_item is not None and self.editing_item.id == item_id:
            self.editing_item = None
        self._refilter()
        logger.info("Item deleted successfully: %s", item_id)

    # ------------------------------------------------------------------ #
    # Tags
    # ------------------------------------------------------------------ #

    async def create_tag(self, name: str, color: str) -> Tag:
        with _action("create tag"):
            tag = await self._call(self._db.create_tag, name, color)
        self.tags = [*self.tags, tag]
        logger.info("Tag created successfully: %s", tag.id)
        return tag

    async def update_tag(self, tag_id: str, name: str, color: str) -> Tag:
        with _action("update tag"):
            tag = await self._call(self._db.update_tag, tag_id, name, color)
        self.tags = [tag if t.id == tag_id else t for t in self.tags]
        self.items = [self._replace_tag(i, tag) for i in self.items]
        self._refilter()
        logger.info("Tag updated successfully: %s", tag.id)
        return tag

    async def delete_tag(self, tag_id: str) -> None:
        with _action("delete tag"):
            await self._call(self._db.delete_tag, tag_id)
        self.tags = [t for t in self.tags if t.id != tag_id]
        self.tag_filter = [tid for tid in self.tag_filter if tid != tag_id]
        self.items = [self._drop_tag(i, tag_id) for i in self.items]
        self._refilter()
        logger.info("Tag deleted successfully: %s", tag_id)

    @staticmethod
    def _replace_tag(item: Item, tag: Tag) -> Item:
        if tag.id not in item.tag_ids():
            return item
        tags = [tag if t.id == tag.id else t for t in item.tags]
        return item.model_copy(update={"tags": tags})

    @staticmethod
    def _drop_tag(item: Item, tag_id: str) -> Item:
        if tag_id not in item.tag_ids():
            return item
        return item.model_copy(update={"tags": [t for t in item.tags if t.id != tag_id]})

    # ------------------------------------------------------------------ #
    # Agents
    # ------------------------------------------------------------------ #

    async def create_agent(self, data: AgentForm | dict) -> Agent:
        with _action("create agent"):
            form = AgentForm.model_validate(data)
            agent = await self._call(self._db.create_agent, form)
        self.agents = [agent, *self.agents]
        logger.info("Agent created successfully: %s", agent.id)
        return agent

    async def update_agent(self, agent_id: str, data: AgentUpdate | dict) -> Agent:
        with _action("update agent"):
            update = AgentUpdate.model_validate(data)
            agent = await self._call(self._db.update_agent, agent_id, update)
        self.agents = [agent if a.id == agent_id else a for a in self.agents]
        if self.editing_agent is not None and self.editing_agent.id == agent_id:
            self.editing_agent = agent
        logger.info("Agent updated successfully: %s", agent.id)
        return agent

    async def delete_agent(self, agent_id: str) -> None:
        with _action("delete agent"):
            await self._call(self._db.delete_agent, agent_id)
        self.agents = [a for a in self.agents if a.id != agent_id]
        self.selected_agents.discard(agent_id)
        if self.editing_agent is not None and self.editing_agent.id == agent_id:
            self.editing_agent = None
        logger.info("Agent deleted successfully: %s", agent_id)

    # ------------------------------------------------------------------ #
    # Selection
    # ------------------------------------------------------------------ #

    def toggle_select(self, item_id: str) -> None:
        self.selected_items.toggle(item_id)

    def select_all(self) -> None:
        """Select every item in the current filtered view."""
        self.selected_items.select_all(i.id for i in self.filtered_items)

    def deselect_all(self) -> None:
        self.selected_items.deselect_all()

    def toggle_select_agent(self, agent_id: str) -> None:
        self.selected_agents.toggle(agent_id)

    def select_all_agents(self) -> None:
        self.selected_agents.select_all(a.id for a in self.agents)

    def deselect_all_agents(self) -> None:
        self.selected_agents.deselect_all()

    def selected_items_data(self) -> list[Item]:
        return [i for i in self.items if i.id in self.selected_items]

    def selected_agents_data(self) -> list[Agent]:
        return [a for a in self.agents if a.id in self.selected_agents]

    # ------------------------------------------------------------------ #
    # Filters
    # ------------------------------------------------------------------ #

    def set_search(self, query: str) -> None:
        self.search_query = query
        self._refilter()

    def set_type_filter(self, item_type: ItemType | str | None) -> None:
        self.type_filter = ItemType(item_type) if item_type else None
        self._refilter()

    def set_tag_filter(self, tag_ids: list[str]) -> None:
        self.tag_filter = list(tag_ids)
        self._refilter()

    # ------------------------------------------------------------------ #
    # UI
    # ------------------------------------------------------------------ #

    def set_editing(self, item: Item | None) -> None:
        self.editing_item = item

    def set_editing_agent(self, agent: Agent | None) -> None:
        self.editing_agent = agent

    def set_creating(self, is_creating: bool, item_type: ItemType | None = None) -> None:
        self.is_creating = is_creating
        if item_type is not None:
            self.create_type = item_type

    def set_view_mode(self, mode: ViewMode | str) -> None:
        self.view_mode = ViewMode(mode)

    def snapshot(self) -> dict[str, Any]:
        """Summary of the UI-facing state (counts, filters, selection)."""
        return {
            "is_loading": self.is_loading,
            "view_mode": self.view_mode.value,
            "total_items": len(self.items),
            "filtered_items": len(self.filtered_items),
            "total_tags": len(self.tags),
            "total_agents": len(self.agents),
            "filters": {
                "search": self.search_query,
                "item_type": self.type_filter.value if self.type_filter else None,
                "tag_ids": list(self.tag_filter),
            },
            "selected_items": sorted(self.selected_items.ids),
            "selected_agents": sorted(self.selected_agents.ids),
            "editing_item": self.editing_item.id if self.editing_item else None,
            "editing_agent": self.editing_agent.id if self.editing_agent else None,
            "is_creating": self.is_creating,
            "create_type": self.create_type.value,
        }
