"""Persistence adapters.

The store talks to storage through ``PersistenceAdapter``: a project-scoped,
full-list model with a single-item upsert.  Records cross this boundary as
plain wire-format dicts (see ``WorkItem.to_dict``).

Any exception an adapter raises is treated by the store as a failure of that
one operation.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from workstore.config import PROJECTS_DIR_NAME, write_atomic
from workstore.models import now_iso

logger = logging.getLogger(__name__)

TASKS_FILENAME = "tasks.json"

# Project ids become directory names; keep them free of separators and dots-only names.
_PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


def is_valid_project_id(project_id: object) -> bool:
    return isinstance(project_id, str) and _PROJECT_ID_PATTERN.match(project_id) is not None


class PersistenceAdapter(Protocol):
    def load_items(self, project_id: str) -> list[dict[str, Any]]: ...

    def save_item(self, project_id: str, item: dict[str, Any]) -> None: ...

    def save_items(self, project_id: str, items: list[dict[str, Any]]) -> None: ...


def _upsert(items: list[dict[str, Any]], item: dict[str, Any]) -> list[dict[str, Any]]:
    for index, existing in enumerate(items):
        if existing.get("id") == item.get("id"):
            items[index] = item
            return items
    items.append(item)
    return items


class InMemoryAdapter:
    """Dict-backed adapter. Copies on the way in and out so callers cannot alias stored data."""

    def __init__(self, initial: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._projects: dict[str, list[dict[str, Any]]] = copy.deepcopy(initial) if initial else {}

    def load_items(self, project_id: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._projects.get(project_id, []))

    def save_item(self, project_id: str, item: dict[str, Any]) -> None:
        items = self._projects.setdefault(project_id, [])
        _upsert(items, copy.deepcopy(item))

    def save_items(self, project_id: str, items: list[dict[str, Any]]) -> None:
        self._projects[project_id] = copy.deepcopy(items)

    def project_ids(self) -> list[str]:
        return sorted(self._projects)


class JsonFileAdapter:
    """One JSON document per project at ``<root>/projects/<projectId>/tasks.json``.

    Document shape: ``{"projectId": ..., "tasks": [...], "savedAt": ...}``.
    Writes are atomic; a missing file loads as an empty project.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _project_dir(self, project_id: str) -> Path:
        if not is_valid_project_id(project_id):
            msg = f"Invalid project id {project_id!r}: must match {_PROJECT_ID_PATTERN.pattern}"
            raise ValueError(msg)
        return self.root / PROJECTS_DIR_NAME / project_id

    def tasks_file(self, project_id: str) -> Path:
        return self._project_dir(project_id) / TASKS_FILENAME

    def load_items(self, project_id: str) -> list[dict[str, Any]]:
        path = self.tasks_file(project_id)
        if not path.exists():
            logger.debug("No tasks file for project %s", project_id)
            return []
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            msg = f"Corrupt tasks file {path}: {exc}"
            raise ValueError(msg) from exc
        tasks = document.get("tasks") if isinstance(document, dict) else None
        if not isinstance(tasks, list):
            msg = f"Corrupt tasks file {path}: 'tasks' must be a list"
            raise ValueError(msg)
        logger.debug("Loaded %d records for project %s", len(tasks), project_id)
        return tasks

    def save_item(self, project_id: str, item: dict[str, Any]) -> None:
        self.save_items(project_id, _upsert(self.load_items(project_id), item))

    def save_items(self, project_id: str, items: list[dict[str, Any]]) -> None:
        path = self.tasks_file(project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {"projectId": project_id, "tasks": items, "savedAt": now_iso()}
        write_atomic(path, json.dumps(document, indent=2, default=str) + "\n")
        logger.debug("Saved %d records for project %s", len(items), project_id)

    def project_ids(self) -> list[str]:
        projects_dir = self.root / PROJECTS_DIR_NAME
        if not projects_dir.is_dir():
            return []
        return sorted(p.name for p in projects_dir.iterdir() if (p / TASKS_FILENAME).is_file())
