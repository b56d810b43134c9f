"""Notification events and session state emitted by the store.

Sinks are advisory: the store never awaits them, and a sink that raises is
logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from workstore.models import now_iso

logger = logging.getLogger(__name__)

NotificationSeverity = Literal["info", "success", "error"]
_VALID_SEVERITIES: frozenset[str] = frozenset({"info", "success", "error"})


@dataclass(frozen=True)
class Notification:
    severity: NotificationSeverity
    title: str
    message: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        if self.severity not in _VALID_SEVERITIES:
            msg = f"Invalid notification severity '{self.severity}'"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity,
            "title": self.title,
            "message": self.message,
            "createdAt": self.created_at,
        }


class NotificationSink(Protocol):
    def emit(self, notification: Notification) -> None: ...


class CollectingSink:
    """Keeps notifications in memory until dismissed, like a toast queue."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []
        self._dismissed: set[str] = set()

    def emit(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def dismiss(self, notification_id: str) -> None:
        self._dismissed.add(notification_id)

    def clear(self) -> None:
        self.notifications.clear()
        self._dismissed.clear()

    def active(self) -> list[Notification]:
        return [n for n in self.notifications if n.id not in self._dismissed]


class LoggingSink:
    """Routes notifications to a logger (``error`` severity logs at ERROR)."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logging.getLogger("workstore.notifications")

    def emit(self, notification: Notification) -> None:
        level = logging.ERROR if notification.severity == "error" else logging.INFO
        self._logger.log(level, "%s: %s", notification.title, notification.message)


@dataclass
class SessionState:
    """Shared session state updated by successful mutations."""

    last_saved: str | None = None

    def mark_saved(self) -> str:
        self.last_saved = now_iso()
        return self.last_saved


def deliver(sink: NotificationSink | None, notification: Notification) -> None:
    """Hand *notification* to *sink*; sink failures never reach the caller."""
    if sink is None:
        return
    try:
        sink.emit(notification)
    except Exception:
        logger.warning("Notification sink failed for %r", notification.title, exc_info=True)
