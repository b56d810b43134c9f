"""Workstore: a project-scoped store for tasks and bugs with a bug lifecycle."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("workstore")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from workstore.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    WorkStoreError,
)
from workstore.lifecycle import BugLifecycle
from workstore.models import Bug, Feature, Improvement, Task, WorkItem
from workstore.persistence import InMemoryAdapter, JsonFileAdapter
from workstore.query import FilterCriteria, SortDirective
from workstore.store import WorkItemStore

__all__ = [
    "Bug",
    "BugLifecycle",
    "Feature",
    "FilterCriteria",
    "Improvement",
    "InMemoryAdapter",
    "InvalidTransitionError",
    "JsonFileAdapter",
    "NotFoundError",
    "PersistenceError",
    "SortDirective",
    "Task",
    "ValidationError",
    "WorkItem",
    "WorkItemStore",
    "WorkStoreError",
    "__version__",
]
