"""Agent routes: CRUD, selection, OpenCode config preview, copy and sync."""

from __future__ import annotations

import asyncio
from pathlib import Path

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from promption.clipboard import copy_agent_config, copy_sync_agents_command
from promption.errors import PromptionError
from promption.export.agents import build_agent_config, sync_agents_to_opencode
from promption.models import Agent
from promption.server._common import (
    BadRequest,
    error_response,
    invalid_json,
    not_found,
    read_json,
    str_list,
)
from promption.state.app_store import AppStore


def _dump(agent: Agent) -> dict:
    return agent.model_dump(mode="json")


def _find(store: AppStore, agent_id: str) -> Agent | None:
    return next((a for a in store.agents if a.id == agent_id), None)


async def list_agents(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    return JSONResponse(
        {
            "agents": [_dump(a) for a in store.agents],
            "count": len(store.agents),
            "selected": sorted(store.selected_agents.ids),
        }
    )


async def create_agent(request: Request) -> JSONResponse:
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    try:
        agent = await request.app.state.store.create_agent(body)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(_dump(agent), status_code=201)


async def get_agent(request: Request) -> JSONResponse:
    agent_id = request.path_params["agent_id"]
    agent = _find(request.app.state.store, agent_id)
    if agent is None:
        return not_found("agent", agent_id)
    return JSONResponse(_dump(agent))


async def update_agent(request: Request) -> JSONResponse:
    agent_id = request.path_params["agent_id"]
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    try:
        agent = await request.app.state.store.update_agent(agent_id, body)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(_dump(agent))


async def delete_agent(request: Request) -> JSONResponse:
    agent_id = request.path_params["agent_id"]
    try:
        await request.app.state.store.delete_agent(agent_id)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse({"deleted": agent_id})


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


async def toggle_select(request: Request) -> JSONResponse:
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    agent_id = body.get("id")
    if not agent_id:
        return JSONResponse({"error": "id is required"}, status_code=422)
    store: AppStore = request.app.state.store
    store.toggle_select_agent(agent_id)
    return JSONResponse(
        {
            "id": agent_id,
            "selected": agent_id in store.selected_agents,
            "count": len(store.selected_agents),
        }
    )


async def select_all(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    store.select_all_agents()
    return JSONResponse({"selected": sorted(store.selected_agents.ids)})


async def deselect_all(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    store.deselect_all_agents()
    return JSONResponse({"selected": []})


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def agent_config(request: Request) -> JSONResponse:
    """GET /api/agents/config: OpenCode ``agent`` block for the selected agents."""
    store: AppStore = request.app.state.store
    return JSONResponse(build_agent_config(store.selected_agents_data()))


async def copy_config(request: Request) -> JSONResponse:
    store: AppStore = request.app.state.store
    try:
        text = copy_agent_config(request.app.state.clipboard, store.selected_agents_data())
    except PromptionError as e:
        return error_response(e)
    if text is None:
        return JSONResponse({"error": "No agents selected"}, status_code=400)
    return JSONResponse({"copied": len(store.selected_agents)})


async def copy_command(request: Request) -> JSONResponse:
    """POST /api/agents/copy-command: copy ``promption sync-agents --ids=...``."""
    store: AppStore = request.app.state.store
    try:
        command = copy_sync_agents_command(
            request.app.state.clipboard, store.selected_agents_data()
        )
    except PromptionError as e:
        return error_response(e)
    if command is None:
        return JSONResponse({"error": "No agents selected"}, status_code=400)
    return JSONResponse({"command": command})


async def sync(request: Request) -> JSONResponse:
    """POST /api/agents/sync: merge agents into ``opencode.json``.

    Body (optional): ``ids`` (defaults to the selection), ``dest``.
    """
    try:
        body = await read_json(request, required=False)
        ids = str_list(body.get("ids"))
    except BadRequest as e:
        return invalid_json(e)
    store: AppStore = request.app.state.store
    if ids:
        wanted = set(ids)
        agents = [a for a in store.agents if a.id in wanted]
    else:
        agents = store.selected_agents_data()
    if not agents:
        return JSONResponse({"error": "No agents selected"}, status_code=400)

    root = Path(body.get("dest") or request.app.state.project_root)
    try:
        result = await asyncio.to_thread(sync_agents_to_opencode, agents, root)
    except OSError as e:
        return JSONResponse({"error": f"Sync failed: {e}"}, status_code=500)
    return JSONResponse({**result.model_dump(), "count": len(agents)})


routes = [
    Route("/api/agents", list_agents),
    Route("/api/agents", create_agent, methods=["POST"]),
    Route("/api/agents/select", toggle_select, methods=["POST"]),
    Route("/api/agents/select-all", select_all, methods=["POST"]),
    Route("/api/agents/deselect-all", deselect_all, methods=["POST"]),
    Route("/api/agents/config", agent_config),
    Route("/api/agents/copy-config", copy_config, methods=["POST"]),
    Route("/api/agents/copy-command", copy_command, methods=["POST"]),
    Route("/api/agents/sync", sync, methods=["POST"]),
    Route("/api/agents/{agent_id}", get_agent),
    Route("/api/agents/{agent_id}", update_agent, methods=["PATCH"]),
    Route("/api/agents/{agent_id}", delete_agent, methods=["DELETE"]),
]
