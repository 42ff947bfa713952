"""Load and validate .statetrim/config.yaml."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml


# Default config values
DEFAULTS: dict[str, Any] = {
    "compaction": {
        "recent_post_count": 60,
        "keep_current": True,
    },
    "snapshot": {
        "input": "state.json",
        "output": "state.compacted.json",
    },
    "logging": {
        "level": "INFO",
    },
}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(Exception):
    """Raised when config is invalid."""


def config_path(project_root: Path) -> Path:
    return Path(project_root) / ".statetrim" / "config.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate(config: dict) -> None:
    """Validate field types in config."""
    compaction = config.get("compaction")
    if not isinstance(compaction, dict):
        raise ConfigError("'compaction' must be a mapping")

    count = compaction.get("recent_post_count")
    if isinstance(count, bool) or not isinstance(count, int):
        raise ConfigError(
            f"'compaction.recent_post_count' must be an integer, got {count!r}"
        )
    if not isinstance(compaction.get("keep_current"), bool):
        raise ConfigError("'compaction.keep_current' must be true or false")

    snapshot = config.get("snapshot")
    if not isinstance(snapshot, dict):
        raise ConfigError("'snapshot' must be a mapping")
    for key in ("input", "output"):
        if not isinstance(snapshot.get(key), str) or not snapshot[key]:
            raise ConfigError(f"'snapshot.{key}' must be a non-empty path")

    level = config.get("logging", {}).get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        raise ConfigError(
            f"Unsupported log level '{level}'. Use one of {sorted(_LOG_LEVELS)}."
        )


def load_config(project_root: Path | None = None) -> dict:
    """Load config from .statetrim/config.yaml under project_root.

    Falls back to cwd if project_root is None. A missing file yields
    DEFAULTS; otherwise the file is merged over DEFAULTS so callers
    always get a full config dict.
    """
    root = Path(project_root) if project_root else Path.cwd()
    path = config_path(root)

    if not path.exists():
        return _deep_merge(DEFAULTS, {})

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__}")

    config = _deep_merge(DEFAULTS, raw)
    _validate(config)
    return config


def resolve_snapshot_paths(config: dict, project_root: Path) -> dict[str, Path]:
    """Resolve snapshot input/output paths relative to project_root.

    Absolute paths in config are returned unchanged.
    """
    return {
        key: Path(project_root) / config["snapshot"][key]
        for key in ("input", "output")
    }


def log_level(config: dict) -> int:
    """Return the numeric logging level named in config."""
    return getattr(logging, config["logging"]["level"].upper())
