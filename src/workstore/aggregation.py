"""Summary statistics over a set of work items.

Read-only and side-effect free; typically fed the unfiltered, project-scoped
item list for dashboard headers.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from workstore.models import (
    BUG_STATUSES,
    DEFAULT_CATEGORY,
    KINDS,
    PRIORITIES,
    RESOLVED_STATUSES,
    SEVERITIES,
    TASK_STATUSES,
    BugFields,
    WorkItem,
)
from workstore.types.stats import BugStats, TaskStats, WorkItemStats

# Both vocabularies side by side; "in-progress" is shared.
ALL_STATUSES: tuple[str, ...] = tuple(dict.fromkeys((*BUG_STATUSES, *TASK_STATUSES)))


def _zero_filled(keys: Iterable[str], counts: Counter[str]) -> dict[str, int]:
    """Counts for *keys* (zero when absent) followed by any unexpected keys."""
    result = {key: counts.get(key, 0) for key in keys}
    for key, count in counts.items():
        if key not in result:
            result[key] = count
    return result


def aggregate(items: Iterable[WorkItem]) -> WorkItemStats:
    """Count items by status, kind, and priority, with bug and task breakdowns.

    Every ``by_*`` mapping sums to the total of its section.
    """
    items = list(items)
    by_status: Counter[str] = Counter()
    by_kind: Counter[str] = Counter()
    by_priority: Counter[str] = Counter()
    task_status: Counter[str] = Counter()
    bug_status: Counter[str] = Counter()
    bug_severity: Counter[str] = Counter()
    bug_category: Counter[str] = Counter()

    for item in items:
        by_status[item.status] += 1
        by_kind[item.kind] += 1
        by_priority[item.metadata.priority] += 1
        if isinstance(item.metadata, BugFields):
            bug_status[item.status] += 1
            bug_severity[item.metadata.severity] += 1
            bug_category[item.metadata.category or DEFAULT_CATEGORY] += 1
        else:
            task_status[item.status] += 1

    bugs_total = sum(bug_status.values())
    bugs_resolved = sum(bug_status[s] for s in RESOLVED_STATUSES)
    bugs: BugStats = {
        "total": bugs_total,
        "open": bugs_total - bugs_resolved,
        "resolved": bugs_resolved,
        "by_status": _zero_filled(BUG_STATUSES, bug_status),
        "by_severity": _zero_filled(SEVERITIES, bug_severity),
        "by_category": dict(sorted(bug_category.items())),
    }
    tasks: TaskStats = {
        "total": sum(task_status.values()),
        "by_status": _zero_filled(TASK_STATUSES, task_status),
    }
    return {
        "total": len(items),
        "by_status": _zero_filled(ALL_STATUSES, by_status),
        "by_kind": _zero_filled(KINDS, by_kind),
        "by_priority": _zero_filled(PRIORITIES, by_priority),
        "tasks": tasks,
        "bugs": bugs,
    }
