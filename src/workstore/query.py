"""Query engine -- filtering, sorting, and grouping over work items.

Pure functions of their inputs: nothing here touches the store or the
persistence adapter, so views can be recomputed on every read.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from workstore.models import (
    DEFAULT_PRIORITY,
    DEFAULT_SEVERITY,
    BugFields,
    WorkItem,
    parse_iso,
)

SORT_FIELDS: tuple[str, ...] = ("title", "priority", "severity", "createdAt", "updatedAt")
GROUP_FIELDS: tuple[str, ...] = ("status", "priority", "kind", "assignee", "tag")

PRIORITY_ORDER: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "urgent": 4}
SEVERITY_ORDER: dict[str, int] = {"trivial": 1, "minor": 2, "medium": 3, "major": 4, "critical": 5}

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class FilterCriteria:
    """Filter descriptor. Empty sets mean "no restriction"; sets are ANDed.

    ``tags`` matches an item carrying *any* of the given tags.  A non-empty
    ``severities`` excludes every non-bug item.
    """

    statuses: frozenset[str] = field(default_factory=frozenset)
    priorities: frozenset[str] = field(default_factory=frozenset)
    kinds: frozenset[str] = field(default_factory=frozenset)
    severities: frozenset[str] = field(default_factory=frozenset)
    tags: frozenset[str] = field(default_factory=frozenset)
    search: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FilterCriteria:
        """Build criteria from plain values (lists, tuples, or comma-separated strings)."""

        def as_set(key: str) -> frozenset[str]:
            value = data.get(key)
            if value is None:
                return frozenset()
            if isinstance(value, str):
                value = value.split(",")
            return frozenset(v.strip() for v in value if isinstance(v, str) and v.strip())

        search = data.get("search") or ""
        return cls(
            statuses=as_set("statuses"),
            priorities=as_set("priorities"),
            kinds=as_set("kinds"),
            severities=as_set("severities"),
            tags=as_set("tags"),
            search=search if isinstance(search, str) else "",
        )

    @property
    def is_empty(self) -> bool:
        return not (self.statuses or self.priorities or self.kinds or self.severities or self.tags or self.search.strip())


@dataclass(frozen=True)
class SortDirective:
    field: str = "updatedAt"
    direction: str = "desc"

    def __post_init__(self) -> None:
        if self.field not in SORT_FIELDS:
            msg = f"Unknown sort field '{self.field}'. Valid fields: {', '.join(SORT_FIELDS)}"
            raise ValueError(msg)
        if self.direction not in ("asc", "desc"):
            msg = f"Sort direction must be 'asc' or 'desc', got '{self.direction}'"
            raise ValueError(msg)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def _matches_search(item: WorkItem, needle: str) -> bool:
    if needle in item.title.casefold() or needle in item.content.casefold():
        return True
    return any(needle in tag.casefold() for tag in item.metadata.tags)


def matches(item: WorkItem, criteria: FilterCriteria) -> bool:
    """True when *item* satisfies every non-empty criterion."""
    if criteria.statuses and item.status not in criteria.statuses:
        return False
    if criteria.priorities and item.metadata.priority not in criteria.priorities:
        return False
    if criteria.kinds and item.kind not in criteria.kinds:
        return False
    if criteria.severities:
        if not isinstance(item.metadata, BugFields):
            return False
        if item.metadata.severity not in criteria.severities:
            return False
    if criteria.tags and not criteria.tags.intersection(item.metadata.tags):
        return False
    needle = criteria.search.strip().casefold()
    return not (needle and not _matches_search(item, needle))


def filter_items(items: Iterable[WorkItem], criteria: FilterCriteria | None = None) -> list[WorkItem]:
    if criteria is None or criteria.is_empty:
        return list(items)
    return [item for item in items if matches(item, criteria)]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def priority_rank(item: WorkItem) -> int:
    return PRIORITY_ORDER.get(item.metadata.priority, PRIORITY_ORDER[DEFAULT_PRIORITY])


def severity_rank(item: WorkItem) -> int:
    """Severity ordinal; non-bug items rank 0."""
    if not isinstance(item.metadata, BugFields):
        return 0
    return SEVERITY_ORDER.get(item.metadata.severity, SEVERITY_ORDER[DEFAULT_SEVERITY])


def _sort_key(sort_field: str) -> Any:
    if sort_field == "title":
        return lambda item: item.title.casefold()
    if sort_field == "priority":
        return priority_rank
    if sort_field == "severity":
        return severity_rank
    if sort_field == "createdAt":
        return lambda item: parse_iso(item.created_at) or _EPOCH
    return lambda item: parse_iso(item.updated_at) or _EPOCH


def sort_items(items: Iterable[WorkItem], sort: SortDirective | None = None) -> list[WorkItem]:
    """Stable sort: items with equal keys keep their input order in both directions."""
    sort = sort or SortDirective()
    # sorted(reverse=True) preserves the relative order of equal elements.
    return sorted(items, key=_sort_key(sort.field), reverse=sort.direction == "desc")


def query_items(
    items: Iterable[WorkItem],
    project_id: str,
    criteria: FilterCriteria | None = None,
    sort: SortDirective | None = None,
) -> list[WorkItem]:
    """Project-scoped, filtered, sorted view."""
    scoped = [item for item in items if item.project_id == project_id]
    return sort_items(filter_items(scoped, criteria), sort)


# ---------------------------------------------------------------------------
# Grouping and tag helpers
# ---------------------------------------------------------------------------


def group_items(items: Sequence[WorkItem], by: str) -> dict[str, list[WorkItem]]:
    """Group *items* for board views, preserving input order within each group.

    An item with several tags appears in every matching tag group.
    """
    if by not in GROUP_FIELDS:
        msg = f"Unknown group field '{by}'. Valid fields: {', '.join(GROUP_FIELDS)}"
        raise ValueError(msg)
    groups: dict[str, list[WorkItem]] = {}
    for item in items:
        if by == "status":
            keys = [item.status]
        elif by == "priority":
            keys = [item.metadata.priority]
        elif by == "kind":
            keys = [item.kind]
        elif by == "assignee":
            keys = [item.metadata.assignee or "unassigned"]
        else:
            keys = list(item.metadata.tags) or ["untagged"]
        for key in keys:
            groups.setdefault(key, []).append(item)
    return groups


def collect_tags(items: Iterable[WorkItem]) -> list[str]:
    """Sorted unique tags across *items*."""
    return sorted({tag for item in items for tag in item.metadata.tags})
