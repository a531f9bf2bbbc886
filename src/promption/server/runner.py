"""Run the local API under uvicorn and advertise it through a port.lock file.

The lock lets ``promption status`` find a running server without knowing
which port it was started on.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx

from promption.config import Config, get_data_dir, load_config

logger = logging.getLogger(__name__)

HOST = "127.0.0.1"
LOCK_FILE_NAME = "port.lock"


def get_port_lock_path() -> Path:
    return get_data_dir() / LOCK_FILE_NAME


def write_port_lock(port: int) -> Path:
    """Record ``{port, pid, started_at}`` for the current process."""
    path = get_port_lock_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "port": port,
        "pid": os.getpid(),
        "started_at": datetime.now(UTC).isoformat(),
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def read_port_lock() -> dict[str, Any]:
    """Lock contents, or ``{}`` when the file is absent or not a JSON object."""
    try:
        data = json.loads(get_port_lock_path().read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def remove_port_lock() -> None:
    get_port_lock_path().unlink(missing_ok=True)


@contextmanager
def held_port_lock(port: int) -> Iterator[Path]:
    path = write_port_lock(port)
    try:
        yield path
    finally:
        remove_port_lock()
        logger.debug("Removed %s", path)


def fetch_server_state(port: int, timeout: float = 0.5) -> dict | None:
    """GET /api/state from a running server. Returns None when it is unreachable."""
    try:
        resp = httpx.get(f"http://{HOST}:{port}/api/state", timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug("Server on port %d unreachable: %s", port, e)
        return None
    if resp.status_code != 200:
        return None
    return resp.json()


def run_server(config: Config | None = None) -> None:
    """Serve the API until uvicorn shuts down on SIGINT or SIGTERM."""
    import uvicorn

    config = config or load_config()
    config.db_path.parent.mkdir(parents=True, exist_ok=True)

    with held_port_lock(config.port):
        logger.info("Starting server on %s:%d", HOST, config.port)
        uvicorn.run(
            "promption.server.app:create_app",
            factory=True,
            host=HOST,
            port=config.port,
            log_level=config.log_level.lower(),
        )
