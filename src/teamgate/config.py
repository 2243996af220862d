"""Config file loading and auto-discovery for teamgate.

Searches for ``teamgate.yaml`` in the current directory and parent
directories, parses it, and resolves catalog paths against the config
file's location.

Example::

    tiers: ./catalogs/tiers.yaml
    roles: ./catalogs/roles.yaml
    log_level: INFO
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_FILENAME = "teamgate.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class TeamgateConfig:
    """Parsed teamgate project configuration."""

    config_path: Path | None = None
    tiers: str | None = None
    roles: str | None = None
    log_level: str = "WARNING"

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def find_config(start: Path | None = None) -> Path | None:
    """Walk from *start* (default ``cwd()``) up to the filesystem root.

    Returns the first ``teamgate.yaml`` found, or ``None``.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    path: str | Path | None = None,
    *,
    auto_discover: bool = True,
) -> TeamgateConfig:
    """Load a teamgate config file.

    Resolution order:

    1. Explicit *path* (error if it doesn't exist).
    2. Auto-discover by walking parent directories.
    3. Return an empty ``TeamgateConfig`` (built-in catalogs).
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).resolve()
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
    elif auto_discover:
        config_path = find_config()

    if config_path is None:
        return TeamgateConfig()

    return _parse_config(config_path)


def _parse_config(config_path: Path) -> TeamgateConfig:
    """Read and parse a YAML config file, resolving relative paths."""
    text = config_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}

    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {config_path}, got {type(data).__name__}"
        raise ValueError(msg)

    base = config_path.parent

    def _resolve(key: str) -> str | None:
        val = data.get(key)
        if val is None:
            return None
        return str((base / val).resolve())

    log_level = str(data.get("log_level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        msg = (
            f"Invalid log_level {log_level!r} in {config_path}; "
            f"expected one of {', '.join(_LOG_LEVELS)}"
        )
        raise ValueError(msg)

    return TeamgateConfig(
        config_path=config_path,
        tiers=_resolve("tiers"),
        roles=_resolve("roles"),
        log_level=log_level,
    )
