"""Shared helpers for route handlers."""

from __future__ import annotations

import json
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from promption.clipboard import ClipboardError
from promption.errors import ActionError, NotFoundError, PromptionError, SystemTagError


class BadRequest(Exception):
    """Raised by read_json() when the request body is unusable."""


async def read_json(request: Request, *, required: bool = True) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    An empty body yields ``{}`` when ``required`` is false.
    """
    raw = await request.body()
    if not raw and not required:
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest("Invalid JSON")
    if not isinstance(body, dict):
        raise BadRequest("JSON body must be an object")
    return body


def invalid_json(exc: BadRequest) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=422)


def not_found(kind: str, key: str) -> JSONResponse:
    return JSONResponse({"error": str(NotFoundError(kind, key))}, status_code=404)


def error_response(exc: PromptionError) -> JSONResponse:
    """Map a failed action to a status code using its underlying cause."""
    cause = exc.cause if isinstance(exc, ActionError) else exc
    message = exc.message if isinstance(exc, ActionError) else str(exc)
    if isinstance(cause, NotFoundError):
        status = 404
    elif isinstance(cause, SystemTagError):
        status = 409
    elif isinstance(cause, ClipboardError):
        status = 503
    else:
        status = 400
    return JSONResponse({"error": message}, status_code=status)


def str_list(value: Any) -> list[str]:
    """Accept a list of ids or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list):
        return [str(v) for v in value]
    raise BadRequest("Expected a list of ids")
