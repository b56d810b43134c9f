"""TypedDicts for aggregation.py return types."""

from __future__ import annotations

from typing import TypedDict


class TaskStats(TypedDict):
    """Counts over the non-bug items (task vocabulary)."""

    total: int
    by_status: dict[str, int]


class BugStats(TypedDict):
    """Counts over bug items only.

    ``open`` counts bugs not yet resolved or closed; ``resolved`` counts the rest,
    so ``open + resolved == total``.
    """

    total: int
    open: int
    resolved: int
    by_status: dict[str, int]
    by_severity: dict[str, int]
    by_category: dict[str, int]


class WorkItemStats(TypedDict):
    """Summary returned by ``aggregate()`` and ``WorkItemStore.stats()``."""

    total: int
    by_status: dict[str, int]
    by_kind: dict[str, int]
    by_priority: dict[str, int]
    tasks: TaskStats
    bugs: BugStats
