"""System routes: health, version, stats, UI state and keyboard shortcuts."""

from __future__ import annotations

import asyncio

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from promption import __version__ as VERSION
from promption.errors import PromptionError
from promption.server._common import BadRequest, error_response, invalid_json, read_json
from promption.shortcuts import KeyChord, ShortcutContext, dispatch, resolve, shortcut_table


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def version(request: Request) -> JSONResponse:
    return JSONResponse({"version": VERSION})


async def stats(request: Request) -> JSONResponse:
    db = request.app.state.db
    return JSONResponse(await asyncio.to_thread(db.get_stats))


async def state(request: Request) -> JSONResponse:
    """GET /api/state: counts, filters, selection and dialog state."""
    return JSONResponse(request.app.state.store.snapshot())


async def set_view(request: Request) -> JSONResponse:
    """POST /api/view: switch between the items and agents views."""
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    store = request.app.state.store
    try:
        store.set_view_mode(body.get("mode", ""))
    except ValueError:
        return JSONResponse({"error": f"unknown view mode: {body.get('mode')!r}"}, status_code=400)
    return JSONResponse({"view_mode": store.view_mode.value})


async def list_shortcuts(request: Request) -> JSONResponse:
    rows = shortcut_table()
    return JSONResponse({"shortcuts": rows, "count": len(rows)})


async def press_shortcut(request: Request) -> JSONResponse:
    """POST /api/shortcuts/press: resolve a key chord and apply its action.

    Body: ``{"key": "a", "mod": true, "shift": false, "in_input": false}``.
    Actions the server cannot perform (focusing search) come back with
    ``handled: false`` for the client to act on.
    """
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    key = body.get("key")
    if not key or not isinstance(key, str):
        return JSONResponse({"error": "key is required"}, status_code=422)

    store = request.app.state.store
    chord = KeyChord(key, mod=bool(body.get("mod")), shift=bool(body.get("shift")))
    ctx = ShortcutContext.from_store(store, in_input=bool(body.get("in_input")))
    action = resolve(chord, ctx)
    if action is None:
        return JSONResponse({"action": None, "handled": False})
    try:
        handled = dispatch(store, action, request.app.state.clipboard)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse({"action": action.value, "handled": handled})


routes = [
    Route("/health", health),
    Route("/api/version", version),
    Route("/api/stats", stats),
    Route("/api/state", state),
    Route("/api/view", set_view, methods=["POST"]),
    Route("/api/shortcuts", list_shortcuts),
    Route("/api/shortcuts/press", press_shortcut, methods=["POST"]),
]
