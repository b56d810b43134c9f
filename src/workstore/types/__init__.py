# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# Leaf module: must not import from store.py, models.py or the engine modules.
"""Typed return-value contracts for the store, engines, and API layers."""

from __future__ import annotations

from workstore.types.core import (
    BatchError,
    ISOTimestamp,
    ProjectConfig,
    WorkItemDict,
)
from workstore.types.stats import (
    BugStats,
    TaskStats,
    WorkItemStats,
)

__all__ = [
    "BatchError",
    "BugStats",
    "ISOTimestamp",
    "ProjectConfig",
    "TaskStats",
    "WorkItemDict",
    "WorkItemStats",
]
