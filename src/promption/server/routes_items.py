"""Item routes: CRUD, filtering, selection, export and clipboard copy."""

from __future__ import annotations

import asyncio
from pathlib import Path

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from promption.clipboard import copy_item_content, copy_sync_command
from promption.errors import PromptionError
from promption.export.files import SyncTarget, export_items, sync_items
from promption.models import Item, ItemType
from promption.server._common import (
    BadRequest,
    error_response,
    invalid_json,
    not_found,
    read_json,
    str_list,
)
from promption.state.app_store import AppStore


def _dump(item: Item) -> dict:
    return item.model_dump(mode="json")


def _find(store: AppStore, item_id: str) -> Item | None:
    return next((i for i in store.items if i.id == item_id), None)


async def list_items(request: Request) -> JSONResponse:
    """GET /api/items: the filtered view plus totals."""
    store: AppStore = request.app.state.store
    return JSONResponse(
        {
            "items": [_dump(i) for i in store.filtered_items],
            "count": len(store.filtered_items),
            "total": len(store.items),
            "selected": sorted(store.selected_items.ids),
        }
    )


async def create_item(request: Request) -> JSONResponse:
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    try:
        item = await request.app.state.store.create_item(body)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(_dump(item), status_code=201)


async def get_item(request: Request) -> JSONResponse:
    item_id = request.path_params["item_id"]
    item = _find(request.app.state.store, item_id)
    if item is None:
        return not_found("item", item_id)
    return JSONResponse(_dump(item))


async def update_item(request: Request) -> JSONResponse:
    item_id = request.path_params["item_id"]
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    try:
        item = await request.app.state.store.update_item(item_id, body)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(_dump(item))


async def delete_item(request: Request) -> JSONResponse:
    item_id = request.path_params["item_id"]
    try:
        await request.app.state.store.delete_item(item_id)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse({"deleted": item_id})


# ---------------------------------------------------------------------------
# Selection and filters
# ---------------------------------------------------------------------------


async def toggle_select(request: Request) -> JSONResponse:
    """POST /api/items/select: toggle one item in the selection."""
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    item_id = body.get("id")
    if not item_id:
        return JSONResponse({"error": "id is required"}, status_code=422)
    store: AppStore = request.app.state.store
    store.toggle_select(item_id)
    return JSONResponse(
        {"id": item_id, "selected": item_id in store.selected_items, "count": len(store.selected_items)}
    )


async def select_all(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    store.select_all()
    return JSONResponse({"selected": sorted(store.selected_items.ids)})


async def deselect_all(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    store.deselect_all()
    return JSONResponse({"selected": []})


async def set_filters(request: Request) -> JSONResponse:
    """POST /api/items/filters: update any of search, item_type, tag_ids.

    Keys left out of the body keep their current value.
    """
    try:
        body = await read_json(request)
        tag_ids = str_list(body.get("tag_ids")) if "tag_ids" in body else None
    except BadRequest as e:
        return invalid_json(e)
    raw_type = body.get("item_type")
    try:
        item_type = ItemType(raw_type) if raw_type else None
    except ValueError:
        return JSONResponse({"error": f"unknown item type: {raw_type!r}"}, status_code=400)

    store: AppStore = request.app.state.store
    if "search" in body:
        store.set_search(str(body["search"] or ""))
    if "item_type" in body:
        store.set_type_filter(item_type)
    if tag_ids is not None:
        store.set_tag_filter(tag_ids)
    return JSONResponse(
        {
            "filters": store.snapshot()["filters"],
            "count": len(store.filtered_items),
        }
    )


# ---------------------------------------------------------------------------
# Export and clipboard
# ---------------------------------------------------------------------------


def _items_for(store: AppStore, ids: list[str]) -> list[Item]:
    if ids:
        wanted = set(ids)
        return [i for i in store.items if i.id in wanted]
    return store.selected_items_data()


async def export(request: Request) -> JSONResponse:
    """POST /api/items/export: write items to disk.

    Body (all optional): ``ids`` (defaults to the current selection),
    ``target`` (a sync target; omitted means a plain export), ``dest``.
    """
    try:
        body = await read_json(request, required=False)
        ids = str_list(body.get("ids"))
    except BadRequest as e:
        return invalid_json(e)

    store: AppStore = request.app.state.store
    items = _items_for(store, ids)
    if not items:
        return JSONResponse({"error": "No items selected"}, status_code=400)

    target = body.get("target")
    try:
        if target:
            root = Path(body.get("dest") or request.app.state.project_root)
            result = await asyncio.to_thread(sync_items, items, SyncTarget(target), root)
        else:
            dest = Path(body.get("dest") or request.app.state.export_dir)
            result = await asyncio.to_thread(export_items, items, dest)
    except ValueError:
        return JSONResponse({"error": f"unknown sync target: {target!r}"}, status_code=400)
    except OSError as e:
        return JSONResponse({"error": f"Export failed: {e}"}, status_code=500)
    return JSONResponse({**result.model_dump(), "count": result.count})


async def copy_command(request: Request) -> JSONResponse:
    """POST /api/items/copy-command: copy ``promption sync --ids=...`` for the selection."""
    store: AppStore = request.app.state.store
    try:
        command = copy_sync_command(request.app.state.clipboard, store.selected_items_data())
    except PromptionError as e:
        return error_response(e)
    if command is None:
        return JSONResponse({"error": "No items selected"}, status_code=400)
    return JSONResponse({"command": command})


async def copy_content(request: Request) -> JSONResponse:
    item_id = request.path_params["item_id"]
    item = _find(request.app.state.store, item_id)
    if item is None:
        return not_found("item", item_id)
    try:
        copy_item_content(request.app.state.clipboard, item)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse({"copied": item_id, "length": len(item.content)})


routes = [
    Route("/api/items", list_items),
    Route("/api/items", create_item, methods=["POST"]),
    Route("/api/items/select", toggle_select, methods=["POST"]),
    Route("/api/items/select-all", select_all, methods=["POST"]),
    Route("/api/items/deselect-all", deselect_all, methods=["POST"]),
    Route("/api/items/filters", set_filters, methods=["POST"]),
    Route("/api/items/export", export, methods=["POST"]),
    Route("/api/items/copy-command", copy_command, methods=["POST"]),
    Route("/api/items/{item_id}", get_item),
    Route("/api/items/{item_id}", update_item, methods=["PATCH"]),
    Route("/api/items/{item_id}", delete_item, methods=["DELETE"]),
    Route("/api/items/{item_id}/copy", copy_content, methods=["POST"]),
]
