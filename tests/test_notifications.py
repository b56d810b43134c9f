"""Tests for notification events, sinks, and session state."""

from __future__ import annotations

import logging

import pytest

from tests._store_factory import PROJECT, make_bug, make_task
from workstore.notifications import (
    CollectingSink,
    LoggingSink,
    Notification,
    SessionState,
    deliver,
)
from workstore.store import WorkItemStore


class TestNotification:
    def test_invalid_severity(self) -> None:
        with pytest.raises(ValueError, match="severity"):
            Notification(severity="warning", title="t", message="m")  # type: ignore[arg-type]

    def test_to_dict(self) -> None:
        n = Notification(severity="info", title="Hi", message="there")
        data = n.to_dict()
        assert data["title"] == "Hi"
        assert data["severity"] == "info"
        assert data["id"] == n.id
        assert data["createdAt"] == n.created_at


class TestCollectingSink:
    def test_dismiss_and_clear(self) -> None:
        sink = CollectingSink()
        a = Notification(severity="info", title="a", message="")
        b = Notification(severity="error", title="b", message="")
        sink.emit(a)
        sink.emit(b)
        sink.dismiss(a.id)
        assert sink.active() == [b]
        sink.clear()
        assert sink.notifications == []


class TestLoggingSink:
    def test_error_logs_at_error_level(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="workstore.notifications"):
            LoggingSink().emit(Notification(severity="error", title="Task Create Failed", message="boom"))
            LoggingSink().emit(Notification(severity="success", title="Task Created", message="ok"))
        levels = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert (logging.ERROR, "Task Create Failed: boom") in levels
        assert (logging.INFO, "Task Created: ok") in levels


class TestDeliver:
    def test_none_sink(self) -> None:
        deliver(None, Notification(severity="info", title="t", message="m"))

    def test_failing_sink_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        class Broken:
            def emit(self, notification: Notification) -> None:
                raise RuntimeError("nope")

        with caplog.at_level(logging.WARNING, logger="workstore.notifications"):
            deliver(Broken(), Notification(severity="info", title="t", message="m"))
        assert "sink failed" in caplog.text


class TestStoreEvents:
    def test_one_notification_per_mutation(self, store: WorkItemStore, sink: CollectingSink) -> None:
        item = make_task(store)
        store.update(item.id, {"title": "x"})
        store.duplicate(item.id)
        store.delete(item.id)
        assert [n.title for n in sink.notifications] == ["Task Created", "Task Updated", "Task Created", "Task Deleted"]

    def test_bug_labels(self, store: WorkItemStore, sink: CollectingSink) -> None:
        bug = make_bug(store, "Leak")
        store.resolve_bug(bug.id, "ana")
        assert [n.title for n in sink.notifications] == ["Bug Created", "Bug Updated"]
        assert 'Bug "Leak" has been updated.' in sink.notifications[-1].message

    def test_failure_emits_error(self, store: WorkItemStore, sink: CollectingSink) -> None:
        store.create({"projectId": PROJECT, "title": "ok"})
        with pytest.raises(ValueError):
            store.create({"title": "no project"})
        assert sink.notifications[-1].severity == "error"
        assert "projectId" in sink.notifications[-1].message

    def test_session_stamped_on_success(self, store: WorkItemStore, session: SessionState) -> None:
        assert session.last_saved is None
        make_task(store)
        first = session.last_saved
        assert first is not None
        assert session.mark_saved() >= first
