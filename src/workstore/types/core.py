"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Any, NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .workstore/config.json."""

    version: int
    default_project: str
    default_resolver: str
    enforcement: str


class WorkItemDict(TypedDict):
    """Wire shape of a work item (persistence files, HTTP API).

    Keys are camelCase to stay compatible with the stored JSON documents.
    ``metadata`` carries the common fields plus, for bugs, the bug fields.
    """

    id: str
    projectId: str
    title: str
    content: str
    kind: str
    status: str
    createdAt: ISOTimestamp
    updatedAt: ISOTimestamp
    metadata: dict[str, Any]


class BatchError(TypedDict):
    """Per-item failure record returned by bulk operations."""

    id: str
    error: str
    code: str
