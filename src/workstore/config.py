"""Convention-based discovery and project configuration.

Each workspace has a ``.workstore/`` directory containing ``config.json``
(default project, default resolver, transition enforcement) and a
``projects/`` tree holding one ``tasks.json`` per project.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from workstore.types.core import ProjectConfig

logger = logging.getLogger(__name__)

WORKSTORE_DIR_NAME = ".workstore"
CONFIG_FILENAME = "config.json"
PROJECTS_DIR_NAME = "projects"

VALID_ENFORCEMENT: frozenset[str] = frozenset({"soft", "hard"})


def default_config() -> ProjectConfig:
    return ProjectConfig(version=1, default_project="default", default_resolver="", enforcement="soft")


def find_workstore_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .workstore/ directory.

    Returns the .workstore/ directory path (not the workspace root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / WORKSTORE_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {WORKSTORE_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(workstore_dir: Path) -> ProjectConfig:
    """Read .workstore/config.json merged over defaults. Returns defaults if missing or corrupt."""
    config = default_config()
    config_path = workstore_dir / CONFIG_FILENAME
    if not config_path.exists():
        return config
    try:
        raw = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return config
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return config
    config.update(raw)  # type: ignore[typeddict-item]
    if config.get("enforcement") not in VALID_ENFORCEMENT:
        logger.warning("Unknown enforcement %r in config, falling back to 'soft'", config.get("enforcement"))
        config["enforcement"] = "soft"
    return config


def write_config(workstore_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .workstore/config.json."""
    write_atomic(workstore_dir / CONFIG_FILENAME, json.dumps(config, indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
