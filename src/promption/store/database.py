"""Database class for item, tag and agent CRUD."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from promption.errors import NotFoundError, StoreError, SystemTagError
from promption.models import (
    DEFAULT_TAG_COLOR,
    Agent,
    AgentForm,
    AgentUpdate,
    Item,
    ItemForm,
    ItemType,
    ItemUpdate,
    Tag,
    TagForm,
)
from promption.store.schema import run_migrations

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


def _dumps_optional(value: dict | None) -> str | None:
    return json.dumps(value) if value is not None else None


def _loads_optional(value: str | None) -> dict | None:
    if not value:
        return None
    try:
        data = json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed JSON config column: %r", value[:80])
        return None
    return data if isinstance(data, dict) else None


class Database:
    """Data-access facade over the embedded SQLite store.

    Every public method is a short parameterized statement sequence.
    Statements are serialized on an ``RLock`` so the instance can be driven
    from worker threads (``asyncio.to_thread``).
    """

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        run_migrations(self._conn)

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def _guard(self, action: str) -> Iterator[sqlite3.Connection]:
        """Serialize access and wrap sqlite failures as StoreError."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error("Failed to %s: %s", action, e)
                raise StoreError(f"Failed to {action}: {e}") from e

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #

    def list_items(self) -> list[Item]:
        with self._guard("list items") as conn:
            rows = conn.execute("SELECT * FROM items ORDER BY updated_at DESC, rowid DESC").fetchall()
            items = [self._row_to_item(r, self._tags_for(conn, r["id"])) for r in rows]
        logger.debug("Loaded %d items from database", len(items))
        return items

    def get_item(self, item_id: str) -> Item | None:
        with self._guard("get item") as conn:
            row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_item(row, self._tags_for(conn, item_id))

    def get_items(self, ids: list[str]) -> list[Item]:
        """Batch fetch items by ID, most recently updated first."""
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        with self._guard("get items") as conn:
            rows = conn.execute(
                f"SELECT * FROM items WHERE id IN ({placeholders})"
                " ORDER BY updated_at DESC, rowid DESC",
                ids,
            ).fetchall()
            return [self._row_to_item(r, self._tags_for(conn, r["id"])) for r in rows]

    def create_item(self, form: ItemForm) -> Item:
        item_id = _uuid()
        now = _now_iso()
        with self._guard("create item") as conn:
            conn.execute(
                """INSERT INTO items (id, name, content, item_type, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (item_id, form.name, form.content, form.item_type.value, now, now),
            )
            self._link_tags(conn, item_id, form.tag_ids)
            conn.commit()
        logger.debug("Item created: %s with %d tags", item_id, len(form.tag_ids))
        item = self.get_item(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def update_item(self, item_id: str, update: ItemUpdate) -> Item:
        with self._guard("update item") as conn:
            exists = conn.execute("SELECT 1 FROM items WHERE id = ?", (item_id,)).fetchone()
            if exists is None:
                raise NotFoundError("item", item_id)

            updates = ["updated_at = ?"]
            params: list = [_now_iso()]
            if update.name is not None:
                updates.append("name = ?")
                params.append(update.name)
            if update.content is not None:
                updates.append("content = ?")
                params.append(update.content)
            if update.item_type is not None:
                updates.append("item_type = ?")
                params.append(update.item_type.value)
            params.append(item_id)
            conn.execute(f"UPDATE items SET {', '.join(updates)} WHERE id = ?", params)

            if update.tag_ids is not None:
                conn.execute("DELETE FROM item_tags WHERE item_id = ?", (item_id,))
                self._link_tags(conn, item_id, update.tag_ids)
            conn.commit()
        item = self.get_item(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def delete_item(self, item_id: str) -> None:
        with self._guard("delete item") as conn:
            cursor = conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("item", item_id)
        logger.debug("Item deleted: %s", item_id)

    def search_items(
        self,
        query: str = "",
        item_type: ItemType | None = None,
        tag_ids: list[str] | None = None,
    ) -> list[Item]:
        """LIKE search over name and content, optionally narrowed by type and tags."""
        sql = "SELECT DISTINCT i.*, i.rowid AS _rowid FROM items i"
        params: list = []
        clauses: list[str] = []

        if tag_ids:
            sql += " INNER JOIN item_tags it ON i.id = it.item_id"
        if query:
            clauses.append("(i.name LIKE ? OR i.content LIKE ?)")
            params.extend([f"%{query}%", f"%{query}%"])
        if item_type:
            clauses.append("i.item_type = ?")
            params.append(ItemType(item_type).value)
        if tag_ids:
            placeholders = ",".join("?" for _ in tag_ids)
            clauses.append(f"it.tag_id IN ({placeholders})")
            params.extend(tag_ids)

        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY i.updated_at DESC, _rowid DESC"

        with self._guard("search items") as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_item(r, self._tags_for(conn, r["id"])) for r in rows]

    # ------------------------------------------------------------------ #
    # Tags
    # ------------------------------------------------------------------ #

    def list_tags(self) -> list[Tag]:
        with self._guard("list tags") as conn:
            rows = conn.execute("SELECT * FROM tags ORDER BY name").fetchall()
        logger.debug("Loaded %d tags from database", len(rows))
        return [self._row_to_tag(r) for r in rows]

    def get_tag(self, tag_id: str) -> Tag | None:
        with self._guard("get tag") as conn:
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
        return self._row_to_tag(row) if row else None

    def find_tag_by_name(self, name: str) -> Tag | None:
        """Case-insensitive lookup by tag name."""
        with self._guard("find tag") as conn:
            row = conn.execute(
                "SELECT * FROM tags WHERE lower(name) = lower(?)", (name,)
            ).fetchone()
        return self._row_to_tag(row) if row else None

    def get_item_tags(self, item_id: str) -> list[Tag]:
        with self._guard("get item tags") as conn:
            return self._tags_for(conn, item_id)

    def create_tag(
        self,
        name: str,
        color: str = DEFAULT_TAG_COLOR,
        *,
        is_system: bool = False,
        icon_slug: str | None = None,
    ) -> Tag:
        form = TagForm(name=name, color=color)
        tag_id = _uuid()
        try:
            with self._guard("create tag") as conn:
                conn.execute(
                    """INSERT INTO tags (id, name, color, is_system, icon_slug)
                       VALUES (?, ?, ?, ?, ?)""",
                    (tag_id, form.name, form.color, 1 if is_system else 0, icon_slug),
                )
                conn.commit()
        except StoreError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise StoreError(f"Tag '{form.name}' already exists") from e
            raise
        tag = self.get_tag(tag_id)
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    def update_tag(self, tag_id: str, name: str, color: str) -> Tag:
        """Rename and recolor a tag. System tags may only be recolored."""
        form = TagForm(name=name, color=color)
        try:
            with self._guard("update tag") as conn:
                row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
                if row is None:
                    raise NotFoundError("tag", tag_id)
                if row["is_system"] and form.name != row["name"]:
                    raise SystemTagError(row["name"], "renamed")
                conn.execute(
                    "UPDATE tags SET name = ?, color = ? WHERE id = ?",
                    (form.name, form.color, tag_id),
                )
                conn.commit()
        except StoreError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise StoreError(f"Tag '{form.name}' already exists") from e
            raise
        tag = self.get_tag(tag_id)
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    def delete_tag(self, tag_id: str) -> None:
        """Delete a user tag; item links go with it via ON DELETE CASCADE."""
        with self._guard("delete tag") as conn:
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
            if row is None:
                raise NotFoundError("tag", tag_id)
            if row["is_system"]:
                raise SystemTagError(row["name"])
            conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            conn.commit()
        logger.debug("Tag deleted: %s", tag_id)

    # ------------------------------------------------------------------ #
    # Agents
    # ------------------------------------------------------------------ #

    def list_agents(self) -> list[Agent]:
        with self._guard("list agents") as conn:
            rows = conn.execute(
                "SELECT * FROM agents ORDER BY updated_at DESC, rowid DESC"
            ).fetchall()
        logger.debug("Loaded %d agents from database", len(rows))
        return [self._row_to_agent(r) for r in rows]

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._guard("get agent") as conn:
            row = conn.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
        return self._row_to_agent(row) if row else None

    def get_agents(self, ids: list[str]) -> list[Agent]:
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        with self._guard("get agents") as conn:
            rows = conn.execute(
                f"SELECT * FROM agents WHERE id IN ({placeholders})"
                " ORDER BY updated_at DESC, rowid DESC",
                ids,
            ).fetchall()
        return [self._row_to_agent(r) for r in rows]

    def find_agent(self, id_or_name: str) -> Agent | None:
        """Look an agent up by ID first, then by exact name."""
        agent = self.get_agent(id_or_name)
        if agent is not None:
            return agent
        with self._guard("find agent") as conn:
            row = conn.execute(
                "SELECT * FROM agents WHERE name = ? ORDER BY rowid LIMIT 1", (id_or_name,)
            ).fetchone()
        return self._row_to_agent(row) if row else None

    def create_agent(self, form: AgentForm) -> Agent:
        agent_id = _uuid()
        now = _now_iso()
        with self._guard("create agent") as conn:
            conn.execute(
                """INSERT INTO agents
                   (id, name, mode, model, prompt_content, tools_config,
                    permissions_config, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    agent_id,
                    form.name,
                    form.mode.value,
                    form.model,
                    form.prompt_content,
                    _dumps_optional(form.tools_config),
                    _dumps_optional(form.permissions_config),
                    now,
                    now,
                ),
            )
            conn.commit()
        logger.debug("Agent created: %s (%s)", agent_id, form.name)
        agent = self.get_agent(agent_id)
        if agent is None:
            raise NotFoundError("agent", agent_id)
        return agent

    def update_agent(self, agent_id: str, update: AgentUpdate) -> Agent:
        updates = ["updated_at = ?"]
        params: list = [_now_iso()]
        if update.name is not None:
            updates.append("name = ?")
            params.append(update.name)
        if update.mode is not None:
            updates.append("mode = ?")
            params.append(update.mode.value)
        if update.clear_model:
            updates.append("model = NULL")
        elif update.model is not None:
            updates.append("model = ?")
            params.append(update.model)
        if update.clear_prompt:
            updates.append("prompt_content = NULL")
        elif update.prompt_content is not None:
            updates.append("prompt_content = ?")
            params.append(update.prompt_content)
        if update.clear_tools:
            updates.append("tools_config = NULL")
        elif update.tools_config is not None:
            updates.append("tools_config = ?")
            params.append(json.dumps(update.tools_config))
        if update.clear_permissions:
            updates.append("permissions_config = NULL")
        elif update.permissions_config is not None:
            updates.append("permissions_config = ?")
            params.append(json.dumps(update.permissions_config))
        params.append(agent_id)

        with self._guard("update agent") as conn:
            cursor = conn.execute(f"UPDATE agents SET {', '.join(updates)} WHERE id = ?", params)
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("agent", agent_id)
        agent = self.get_agent(agent_id)
        if agent is None:
            raise NotFoundError("agent", agent_id)
        return agent

    def delete_agent(self, agent_id: str) -> None:
        with self._guard("delete agent") as conn:
            cursor = conn.execute("DELETE FROM agents WHERE id = ?", (agent_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("agent", agent_id)
        logger.debug("Agent deleted: %s", agent_id)

    # ------------------------------------------------------------------ #
    # Stats
    # ------------------------------------------------------------------ #

    def get_stats(self) -> dict:
        with self._guard("read stats") as conn:
            total_items = conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
            type_rows = conn.execute(
                "SELECT item_type, COUNT(*) AS cnt FROM items GROUP BY item_type"
            ).fetchall()
            total_tags = conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0]
            total_agents = conn.execute("SELECT COUNT(*) FROM agents").fetchone()[0]
        return {
            "total_items": total_items,
            "items_by_type": {r["item_type"]: r["cnt"] for r in type_rows},
            "total_tags": total_tags,
            "total_agents": total_agents,
        }

    # ------------------------------------------------------------------ #
    # Row mapping
    # ------------------------------------------------------------------ #

    def _link_tags(self, conn: sqlite3.Connection, item_id: str, tag_ids: list[str]) -> None:
        for tag_id in tag_ids:
            cursor = conn.execute(
                """INSERT OR IGNORE INTO item_tags (item_id, tag_id)
                   SELECT ?, id FROM tags WHERE id = ?""",
                (item_id, tag_id),
            )
            if cursor.rowcount == 0:
                logger.warning("Tag %s not linked to item %s", tag_id, item_id)

    def _tags_for(self, conn: sqlite3.Connection, item_id: str) -> list[Tag]:
        rows = conn.execute(
            """SELECT t.* FROM tags t
               INNER JOIN item_tags it ON t.id = it.tag_id
               WHERE it.item_id = ?
               ORDER BY t.name""",
            (item_id,),
        ).fetchall()
        return [self._row_to_tag(r) for r in rows]

    def _row_to_item(self, row: sqlite3.Row, tags: list[Tag]) -> Item:
        return Item(
            id=row["id"],
            name=row["name"],
            content=row["content"],
            item_type=row["item_type"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            tags=tags,
        )

    def _row_to_tag(self, row: sqlite3.Row) -> Tag:
        return Tag(
            id=row["id"],
            name=row["name"],
            color=row["color"],
            is_system=bool(row["is_system"]),
            icon_slug=row["icon_slug"],
        )

    def _row_to_agent(self, row: sqlite3.Row) -> Agent:
        return Agent(
            id=row["id"],
            name=row["name"],
            mode=row["mode"],
            model=row["model"],
            prompt_content=row["prompt_content"],
            tools_config=_loads_optional(row["tools_config"]),
            permissions_config=_loads_optional(row["permissions_config"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
