"""Configuration constants, config file loading, and environment overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Server defaults
DEFAULT_PORT = 47315
DEFAULT_DB_NAME = "promption.db"
CONFIG_FILE_NAME = "promption.json"

# Export defaults
DEFAULT_EXPORT_DIR = ".agent"

# Logging
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def get_data_dir() -> Path:
    env = os.environ.get("PROMPTION_DATA_DIR")
    if env:
        return Path(env)
    return Path.home() / ".promption" / "data"


@dataclass
class Config:
    port: int = DEFAULT_PORT
    db_name: str = DEFAULT_DB_NAME
    export_dir: str = DEFAULT_EXPORT_DIR
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def db_path(self) -> Path:
        return get_data_dir() / self.db_name


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def _log_level(value: object, default: str) -> str:
    level = str(value).upper()
    if level in LOG_LEVELS:
        return level
    logger.warning(f"Unknown log level {value!r}, using {default}")
    return default


def load_config(path: Path | None = None) -> Config:
    """Load config from JSON file with env var overrides."""
    config = Config()
    if path is None:
        path = get_data_dir() / CONFIG_FILE_NAME

    if path.exists():
        try:
            data = json.loads(path.read_text())
            if "port" in data:
                config.port = int(data["port"])
            if "db_name" in data:
                config.db_name = data["db_name"]
            if "export_dir" in data:
                config.export_dir = data["export_dir"]
            if "log_level" in data:
                config.log_level = _log_level(data["log_level"], config.log_level)
        except (json.JSONDecodeError, OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    port_env = os.environ.get("PROMPTION_PORT")
    if port_env:
        config.port = _safe_int(port_env, config.port)
    level_env = os.environ.get("PROMPTION_LOG_LEVEL")
    if level_env:
        config.log_level = _log_level(level_env, config.log_level)

    return config
