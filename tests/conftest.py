"""Shared pytest fixtures for workstore tests."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from tests._store_factory import PROJECT, FailingAdapter, make_bug, make_task
from workstore.lifecycle import BugLifecycle
from workstore.notifications import CollectingSink, SessionState
from workstore.store import WorkItemStore


@pytest.fixture
def adapter() -> FailingAdapter:
    return FailingAdapter()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def session() -> SessionState:
    return SessionState()


@pytest.fixture
def store(adapter: FailingAdapter, sink: CollectingSink, session: SessionState) -> WorkItemStore:
    """Fresh store over an in-memory adapter with project ``alpha`` loaded."""
    s = WorkItemStore(adapter, sink=sink, session=session, lifecycle=BugLifecycle())
    s.load(PROJECT)
    sink.clear()
    return s


@pytest.fixture
def hard_store(adapter: FailingAdapter, sink: CollectingSink) -> WorkItemStore:
    """Store enforcing the bug workflow graph strictly."""
    s = WorkItemStore(adapter, sink=sink, lifecycle=BugLifecycle(enforcement="hard"), default_resolver="qa-bot")
    s.load(PROJECT)
    sink.clear()
    return s


@pytest.fixture
def populated_store(store: WorkItemStore, sink: CollectingSink) -> WorkItemStore:
    """Store with a representative mix of items in project ``alpha``.

    Creates:
    - task "Write docs" (todo, low, tags docs)
    - task "Ship release" (in-progress, urgent, tags release+docs, assignee ana)
    - feature "Dark mode" (review, high, tags ui)
    - bug "Crash on save" (open, high, severity critical, category backend)
    - bug "Typo in footer" (resolved by sam, low, severity trivial, tags ui)
    """
    make_task(store, "Write docs", metadata={"priority": "low", "tags": ["docs"]})
    make_task(
        store,
        "Ship release",
        status="in-progress",
        metadata={"priority": "urgent", "tags": ["release", "docs"], "assignee": "ana"},
    )
    store.create({"projectId": PROJECT, "title": "Dark mode", "kind": "feature", "status": "review", "priority": "high", "tags": ["ui"]})
    make_bug(store, "Crash on save", metadata={"priority": "high", "severity": "critical", "category": "backend"})
    make_bug(
        store,
        "Typo in footer",
        status="resolved",
        resolvedBy="sam",
        metadata={"priority": "low", "severity": "trivial", "tags": ["ui"]},
    )
    sink.clear()
    return store


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
