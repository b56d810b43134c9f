"""Work item entity model.

A work item is a tagged union of four variants (``Task``, ``Bug``, ``Feature``,
``Improvement``).  The variant fixes the status vocabulary and the metadata
shape: bugs carry ``BugFields``, every other kind carries ``ItemFields``.

Wire format (``to_dict()`` / ``item_from_dict()``) uses camelCase keys so the
stored JSON documents stay readable by other tools; attributes are snake_case.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar

from workstore.errors import ValidationError
from workstore.types.core import ISOTimestamp, WorkItemDict

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

KINDS: tuple[str, ...] = ("task", "bug", "feature", "improvement")
BUG_STATUSES: tuple[str, ...] = ("open", "in-progress", "testing", "resolved", "closed")
TASK_STATUSES: tuple[str, ...] = ("todo", "in-progress", "review", "done", "blocked")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")
SEVERITIES: tuple[str, ...] = ("critical", "major", "medium", "minor", "trivial")
BUG_CATEGORIES: tuple[str, ...] = (
    "general",
    "ui-ux",
    "backend",
    "frontend",
    "performance",
    "security",
    "documentation",
)
BUG_SOURCES: tuple[str, ...] = ("user-report", "qa-testing", "code-review", "automated", "internal")

RESOLVED_STATUSES: frozenset[str] = frozenset({"resolved", "closed"})

DEFAULT_PRIORITY = "medium"
DEFAULT_SEVERITY = "medium"
DEFAULT_CATEGORY = "general"
DEFAULT_SOURCE = "user-report"


def now_iso() -> ISOTimestamp:
    return ISOTimestamp(datetime.now(UTC).isoformat())


def parse_iso(ts: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC. Returns None if unparseable."""
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def status_vocabulary(kind: str) -> tuple[str, ...]:
    """Statuses valid for *kind*. Bugs and everything else use disjoint workflows."""
    return BUG_STATUSES if kind == "bug" else TASK_STATUSES


def initial_status(kind: str) -> str:
    return "open" if kind == "bug" else "todo"


def kind_label(kind: str) -> str:
    """Human label used in notifications."""
    return "Bug" if kind == "bug" else "Task"


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _parse_str(key: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        msg = f"{key} must be a string"
        raise ValidationError(msg)
    return value


def _parse_optional_str(key: str, value: Any) -> str | None:
    if value is None or value == "":
        return None
    return _parse_str(key, value)


def _parse_hours(key: str, value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{key} must be a number of hours"
        raise ValidationError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"{key} must be a non-negative number, got {value}"
        raise ValidationError(msg)
    return value


def _parse_str_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (set, frozenset, tuple)):
        value = list(value)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"{key} must be a list of strings"
        raise ValidationError(msg)
    # Order-preserving dedupe: tags and dependencies behave as sets.
    return list(dict.fromkeys(value))


def _choice(options: tuple[str, ...], default: str) -> Callable[[str, Any], str]:
    def parse(key: str, value: Any) -> str:
        if value is None or value == "":
            return default
        if value not in options:
            msg = f"Invalid {key} '{value}'. Valid values: {', '.join(options)}"
            raise ValidationError(msg)
        return str(value)

    return parse


def _parse_timestamp(key: str, value: Any) -> str:
    text = _parse_str(key, value)
    if text and parse_iso(text) is None:
        msg = f"{key} must be an ISO-8601 timestamp, got {text!r}"
        raise ValidationError(msg)
    return text


def _parse_optional_timestamp(key: str, value: Any) -> str | None:
    if value is None or value == "":
        return None
    return _parse_timestamp(key, value)


# ---------------------------------------------------------------------------
# Metadata variants
# ---------------------------------------------------------------------------

# wire key -> (attribute name, parser)
_FieldTable = dict[str, tuple[str, Callable[[str, Any], Any]]]


@dataclass
class ItemFields:
    """Metadata shared by every kind."""

    tags: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    estimated_time: float | None = None
    actual_time: float | None = None
    dependencies: list[str] = field(default_factory=list)
    assignee: str | None = None
    # Unknown keys from callers or older documents, kept verbatim.
    extra: dict[str, Any] = field(default_factory=dict)

    WIRE_FIELDS: ClassVar[_FieldTable] = {
        "tags": ("tags", _parse_str_list),
        "priority": ("priority", _choice(PRIORITIES, DEFAULT_PRIORITY)),
        "estimatedTime": ("estimated_time", _parse_hours),
        "actualTime": ("actual_time", _parse_hours),
        "dependencies": ("dependencies", _parse_str_list),
        "assignee": ("assignee", _parse_optional_str),
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ItemFields:
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            msg = "metadata must be an object"
            raise ValidationError(msg)
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            wire = cls.WIRE_FIELDS.get(key)
            if wire is None:
                extra[key] = copy.deepcopy(value)
                continue
            attr, parser = wire
            kwargs[attr] = parser(key, value)
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = copy.deepcopy(self.extra)
        for key, (attr, _parser) in self.WIRE_FIELDS.items():
            value = getattr(self, attr)
            result[key] = list(value) if isinstance(value, list) else value
        return result


@dataclass
class BugFields(ItemFields):
    """Metadata for bugs: the common fields plus triage and resolution data."""

    severity: str = DEFAULT_SEVERITY
    category: str = DEFAULT_CATEGORY
    source: str = DEFAULT_SOURCE
    reproduction: str = ""
    environment: str = ""
    reported_by: str = ""
    resolved_by: str = ""
    date_reported: str = ""
    date_resolved: str | None = None
    fix_commit: str = ""
    test_case: str = ""

    WIRE_FIELDS: ClassVar[_FieldTable] = {
        **ItemFields.WIRE_FIELDS,
        "severity": ("severity", _choice(SEVERITIES, DEFAULT_SEVERITY)),
        "category": ("category", lambda k, v: _parse_str(k, v) or DEFAULT_CATEGORY),
        "source": ("source", lambda k, v: _parse_str(k, v) or DEFAULT_SOURCE),
        "reproduction": ("reproduction", _parse_str),
        "environment": ("environment", _parse_str),
        "reportedBy": ("reported_by", _parse_str),
        "resolvedBy": ("resolved_by", _parse_str),
        "dateReported": ("date_reported", _parse_timestamp),
        "dateResolved": ("date_resolved", _parse_optional_timestamp),
        "fixCommit": ("fix_commit", _parse_str),
        "testCase": ("test_case", _parse_str),
    }


# ---------------------------------------------------------------------------
# Work item variants
# ---------------------------------------------------------------------------


@dataclass
class WorkItem:
    """Base work item. Use one of the concrete variants."""

    kind: ClassVar[str] = "task"
    fields_type: ClassVar[type[ItemFields]] = ItemFields

    id: str
    project_id: str
    title: str = ""
    content: str = ""
    status: str = ""
    created_at: str = ""
    updated_at: str = ""
    metadata: ItemFields = field(default_factory=ItemFields)
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.status:
            self.status = initial_status(self.kind)
        vocabulary = status_vocabulary(self.kind)
        if self.status not in vocabulary:
            msg = f"Invalid status '{self.status}' for kind '{self.kind}'. Valid statuses: {', '.join(vocabulary)}"
            raise ValidationError(msg)
        if not isinstance(self.metadata, self.fields_type):
            msg = f"{type(self).__name__} metadata must be {self.fields_type.__name__}"
            raise ValidationError(msg)

    @property
    def is_bug(self) -> bool:
        return self.kind == "bug"

    @property
    def label(self) -> str:
        return kind_label(self.kind)

    def to_dict(self) -> WorkItemDict:
        result: dict[str, Any] = copy.deepcopy(self.extra)
        result.update(
            {
                "id": self.id,
                "projectId": self.project_id,
                "title": self.title,
                "content": self.content,
                "kind": self.kind,
                "status": self.status,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "metadata": self.metadata.to_dict(),
            }
        )
        return result  # type: ignore[return-value]

    def copy(self) -> WorkItem:
        return copy.deepcopy(self)


@dataclass
class Task(WorkItem):
    kind: ClassVar[str] = "task"


@dataclass
class Feature(WorkItem):
    kind: ClassVar[str] = "feature"


@dataclass
class Improvement(WorkItem):
    kind: ClassVar[str] = "improvement"


@dataclass
class Bug(WorkItem):
    kind: ClassVar[str] = "bug"
    fields_type: ClassVar[type[ItemFields]] = BugFields

    metadata: BugFields = field(default_factory=BugFields)  # type: ignore[assignment]


VARIANTS: dict[str, type[WorkItem]] = {
    "task": Task,
    "bug": Bug,
    "feature": Feature,
    "improvement": Improvement,
}

_TOP_LEVEL_KEYS = frozenset({"id", "projectId", "title", "content", "kind", "type", "status", "createdAt", "updatedAt", "metadata"})


def resolve_kind(data: Mapping[str, Any]) -> str:
    """Read the discriminator; ``type`` is accepted as an alias of ``kind``."""
    kind = data.get("kind") or data.get("type") or "task"
    if not isinstance(kind, str) or kind not in VARIANTS:
        msg = f"Unknown kind '{kind}'. Valid kinds: {', '.join(KINDS)}"
        raise ValidationError(msg)
    return str(kind)


def item_from_dict(data: Mapping[str, Any]) -> WorkItem:
    """Parse a wire-format mapping into the matching variant.

    Raises ``ValidationError`` on any shape or vocabulary violation.
    """
    if not isinstance(data, Mapping):
        msg = "work item must be an object"
        raise ValidationError(msg)
    cls = VARIANTS[resolve_kind(data)]

    item_id = data.get("id")
    if not isinstance(item_id, str) or not item_id.strip():
        msg = "id is required"
        raise ValidationError(msg)
    project_id = data.get("projectId")
    if not isinstance(project_id, str) or not project_id.strip():
        msg = "projectId is required"
        raise ValidationError(msg)

    extra = {k: copy.deepcopy(v) for k, v in data.items() if k not in _TOP_LEVEL_KEYS}
    return cls(
        id=item_id,
        project_id=project_id,
        title=_parse_str("title", data.get("title")),
        content=_parse_str("content", data.get("content")),
        status=_parse_str("status", data.get("status")),
        created_at=_parse_timestamp("createdAt", data.get("createdAt")),
        updated_at=_parse_timestamp("updatedAt", data.get("updatedAt")),
        metadata=cls.fields_type.from_dict(data.get("metadata")),
        extra=extra,
    )
