"""
TechDoc Configuration — Load and validate techdoc.yaml at startup.

Usage:
    from techdoc.engine.config import load_config, get_config

Only ``storage.location`` is required to run the store; everything else has
a working default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from techdoc.engine.errors import TechDocConfigError

logger = logging.getLogger("techdoc.engine.config")

CONFIG_FILE_NAME = "techdoc.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Pydantic models for techdoc.yaml
# ---------------------------------------------------------------------------

class StorageConfig(BaseModel):
    location: str = "./documents"
    index_file: str = ".index.json"
    trash_folder: str = ".deleted"

    @field_validator("index_file", "trash_folder")
    @classmethod
    def validate_hidden_name(cls, v: str) -> str:
        if not v.startswith(".") or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"must be a single dot-prefixed name, got '{v}'")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".techdoc/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {'/'.join(_LOG_LEVELS)}, got '{v}'")
        return v


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class TechDocConfig(BaseModel):
    """Root model for techdoc.yaml."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def root_path(self, base: Optional[Path] = None) -> Path:
        """Resolve storage.location, relative paths against *base* (default CWD)."""
        location = Path(self.storage.location).expanduser()
        if not location.is_absolute():
            location = (base or Path.cwd()) / location
        return location.resolve()


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[TechDocConfig] = None


def _find_config_file() -> Optional[Path]:
    """Walk up from CWD looking for techdoc.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Optional[str] = None) -> TechDocConfig:
    """
    Load and validate techdoc.yaml.

    Args:
        config_path: Explicit path to the config file. If None, auto-discovers.

    Returns:
        Validated TechDocConfig. Defaults are used when no file exists.
    """
    global _config

    path = Path(config_path) if config_path else _find_config_file()
    if path is None or not path.exists():
        _config = TechDocConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TechDocConfigError(f"Cannot parse {path}: {e}", config_path=str(path)) from e

    if not isinstance(raw, dict):
        raise TechDocConfigError(f"{path} must contain a mapping", config_path=str(path))

    try:
        config = TechDocConfig(**raw)
    except ValidationError as e:
        raise TechDocConfigError(f"Invalid configuration in {path}: {e}", config_path=str(path)) from e

    # Relative storage locations are relative to the config file, not the CWD
    location = Path(config.storage.location).expanduser()
    if not location.is_absolute():
        config.storage.location = str((path.parent / location).resolve())

    logger.debug(f"Loaded config from {path}")
    _config = config
    return _config


def get_config() -> TechDocConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
