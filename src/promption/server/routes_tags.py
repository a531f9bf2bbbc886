"""Tag routes."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from promption.errors import PromptionError
from promption.models import DEFAULT_TAG_COLOR
from promption.server._common import BadRequest, error_response, invalid_json, not_found, read_json


async def list_tags(request: Request) -> JSONResponse:
    tags = request.app.state.store.tags
    return JSONResponse({"tags": [t.model_dump() for t in tags], "count": len(tags)})


async def create_tag(request: Request) -> JSONResponse:
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    try:
        tag = await request.app.state.store.create_tag(
            body.get("name", ""), body.get("color") or DEFAULT_TAG_COLOR
        )
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(tag.model_dump(), status_code=201)


async def update_tag(request: Request) -> JSONResponse:
    """PATCH /api/tags/{tag_id}: rename and/or recolor; omitted fields are kept."""
    tag_id = request.path_params["tag_id"]
    try:
        body = await read_json(request)
    except BadRequest as e:
        return invalid_json(e)
    store = request.app.state.store
    current = next((t for t in store.tags if t.id == tag_id), None)
    if current is None:
        return not_found("tag", tag_id)
    try:
        tag = await store.update_tag(
            tag_id, body.get("name", current.name), body.get("color", current.color)
        )
    except PromptionError as e:
        return error_response(e)
    return JSONResponse(tag.model_dump())


async def delete_tag(request: Request) -> JSONResponse:
    tag_id = request.path_params["tag_id"]
    try:
        await request.app.state.store.delete_tag(tag_id)
    except PromptionError as e:
        return error_response(e)
    return JSONResponse({"deleted": tag_id})


routes = [
    Route("/api/tags", list_tags),
    Route("/api/tags", create_tag, methods=["POST"]),
    Route("/api/tags/{tag_id}", update_tag, methods=["PATCH"]),
    Route("/api/tags/{tag_id}", delete_tag, methods=["DELETE"]),
]
