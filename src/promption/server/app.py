"""Starlette app factory with lifespan for database and state management."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from starlette.applications import Starlette

from promption.clipboard import Clipboard, SystemClipboard
from promption.config import load_config
from promption.server.routes_agents import routes as agents_routes
from promption.server.routes_items import routes as items_routes
from promption.server.routes_system import routes as system_routes
from promption.server.routes_tags import routes as tags_routes
from promption.state.app_store import AppStore
from promption.store.database import Database
from promption.store.seed import seed_system_tags

logger = logging.getLogger(__name__)


def create_app(
    db_path: str | None = None,
    project_root: Path | None = None,
    clipboard: Clipboard | None = None,
) -> Starlette:
    """Create the app. ``db_path`` defaults to the configured database file."""
    config = load_config()
    resolved_db_path = db_path or str(config.db_path)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if resolved_db_path != ":memory:":
            Path(resolved_db_path).parent.mkdir(parents=True, exist_ok=True)
        root = project_root or Path.cwd()

        app.state.db = Database(resolved_db_path)
        seed_system_tags(app.state.db)
        app.state.store = AppStore(app.state.db)
        await app.state.store.load()
        app.state.clipboard = clipboard or SystemClipboard()
        app.state.project_root = root
        app.state.export_dir = root / config.export_dir
        logger.info("Serving %s", resolved_db_path)

        yield

        app.state.db.close()

    return Starlette(
        routes=system_routes + items_routes + tags_routes + agents_routes,
        lifespan=lifespan,
    )
