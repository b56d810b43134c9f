"""Status lifecycle -- transition validation and resolution bookkeeping.

Bugs follow a declared workflow graph (open -> in-progress -> testing ->
resolved -> closed, with reopen edges).  Enforcement is ``soft`` by default:
off-graph moves are allowed and reported as warnings.  With ``hard``
enforcement they raise ``InvalidTransitionError``.

Other kinds have no graph; any status of their own vocabulary is accepted.

The machine only runs when ``WorkItemStore.update`` changes a status.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from workstore.errors import InvalidTransitionError
from workstore.models import (
    BUG_STATUSES,
    RESOLVED_STATUSES,
    BugFields,
    status_vocabulary,
)

logger = logging.getLogger(__name__)

EnforcementLevel = Literal["hard", "soft"]
_VALID_ENFORCEMENT: frozenset[str] = frozenset({"hard", "soft"})

# Targets that count as reopening when leaving a resolved/closed state.
REOPEN_TARGETS: frozenset[str] = frozenset({"open", "in-progress", "testing"})


@dataclass(frozen=True)
class TransitionDefinition:
    """One edge of the bug workflow graph."""

    from_state: str
    to_state: str


def _default_bug_transitions() -> tuple[TransitionDefinition, ...]:
    edges = [
        ("open", "in-progress"),
        ("open", "closed"),
        ("in-progress", "open"),
        ("in-progress", "testing"),
        ("testing", "in-progress"),
        ("testing", "open"),
        ("resolved", "closed"),
        ("resolved", "open"),
        ("resolved", "in-progress"),
        ("closed", "open"),
    ]
    # Any state may move to resolved.
    edges.extend((state, "resolved") for state in BUG_STATUSES if state != "resolved")
    return tuple(TransitionDefinition(a, b) for a, b in edges)


BUG_TRANSITIONS: tuple[TransitionDefinition, ...] = _default_bug_transitions()


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of validating a status change."""

    allowed: bool
    enforcement: EnforcementLevel
    on_graph: bool
    resolves: bool
    reopens: bool
    warnings: tuple[str, ...] = ()


class BugLifecycle:
    """Validates bug status transitions and maintains resolution fields.

    ``dateResolved`` is non-null only while a bug sits in ``resolved`` or in a
    ``closed`` state reached through a resolve.  Reopening clears both
    ``dateResolved`` and ``resolvedBy`` in the same mutation.
    """

    def __init__(
        self,
        *,
        enforcement: EnforcementLevel = "soft",
        transitions: Iterable[TransitionDefinition] = BUG_TRANSITIONS,
    ) -> None:
        if enforcement not in _VALID_ENFORCEMENT:
            msg = f"Invalid enforcement '{enforcement}': must be one of {sorted(_VALID_ENFORCEMENT)}"
            raise ValueError(msg)
        self.enforcement: EnforcementLevel = enforcement
        self._edges: frozenset[tuple[str, str]] = frozenset((t.from_state, t.to_state) for t in transitions)

    def get_valid_transitions(self, from_status: str) -> list[str]:
        """Graph successors of *from_status*, in vocabulary order."""
        return [s for s in BUG_STATUSES if (from_status, s) in self._edges]

    def validate_transition(self, from_status: str, to_status: str, *, kind: str = "bug") -> TransitionResult:
        """Check a status change for *kind*.

        Raises ``InvalidTransitionError`` when *to_status* is outside the kind's
        vocabulary, or when it is off-graph under hard enforcement.
        """
        vocabulary = status_vocabulary(kind)
        if to_status not in vocabulary:
            msg = f"Status '{to_status}' is not valid for kind '{kind}'. Valid statuses: {', '.join(vocabulary)}"
            raise InvalidTransitionError(msg, from_status=from_status, to_status=to_status, kind=kind)

        if kind != "bug":
            return TransitionResult(
                allowed=True,
                enforcement=self.enforcement,
                on_graph=True,
                resolves=False,
                reopens=False,
            )

        resolves = to_status == "resolved" and from_status != "resolved"
        reopens = from_status in RESOLVED_STATUSES and to_status in REOPEN_TARGETS
        on_graph = from_status == to_status or (from_status, to_status) in self._edges
        warnings: tuple[str, ...] = ()
        if not on_graph:
            if self.enforcement == "hard":
                valid = ", ".join(self.get_valid_transitions(from_status)) or "none"
                msg = f"Transition '{from_status}' -> '{to_status}' is not allowed for bugs. Valid targets: {valid}"
                raise InvalidTransitionError(msg, from_status=from_status, to_status=to_status, kind=kind)
            warnings = (f"'{from_status}' -> '{to_status}' is outside the bug workflow",)
        return TransitionResult(
            allowed=True,
            enforcement=self.enforcement,
            on_graph=on_graph,
            resolves=resolves,
            reopens=reopens,
            warnings=warnings,
        )

    def apply(
        self,
        fields: BugFields,
        from_status: str,
        to_status: str,
        *,
        now: str,
        resolved_by: str | None = None,
    ) -> BugFields:
        """Return *fields* with resolution bookkeeping for the transition applied.

        *resolved_by* is required when entering ``resolved``; an empty value
        raises ``InvalidTransitionError`` rather than stamping a blank resolver.
        """
        result = self.validate_transition(from_status, to_status)
        for warning in result.warnings:
            logger.warning("Soft transition warning: %s", warning)

        if result.resolves:
            resolver = (resolved_by or "").strip()
            if not resolver:
                msg = f"Resolving a bug requires resolvedBy ('{from_status}' -> 'resolved')"
                raise InvalidTransitionError(msg, from_status=from_status, to_status=to_status, kind="bug")
            return dataclasses.replace(fields, resolved_by=resolver, date_resolved=now)
        if result.reopens:
            return dataclasses.replace(fields, resolved_by="", date_resolved=None)
        return fields
