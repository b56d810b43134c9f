"""Work item store -- the canonical in-memory collection and its mutation API.

Single source of truth for every work item in the session.  All writes go
through ``WorkItemStore``: validate, persist via the adapter, and only then
commit to the in-memory collection.  A failed adapter call leaves the
collection exactly as it was.

Every mutation emits one notification (success or error) and successful
mutations stamp ``SessionState.last_saved``.
"""

from __future__ import annotations

import contextlib
import copy
import dataclasses
import logging
import uuid
from collections.abc import Callable, Iterator, Mapping
from time import perf_counter
from typing import Any

from workstore.aggregation import aggregate
from workstore.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    WorkStoreError,
    error_code,
)
from workstore.lifecycle import BugLifecycle
from workstore.models import (
    RESOLVED_STATUSES,
    VARIANTS,
    Bug,
    BugFields,
    ItemFields,
    WorkItem,
    initial_status,
    item_from_dict,
    kind_label,
    now_iso,
    parse_iso,
    resolve_kind,
    status_vocabulary,
)
from workstore.notifications import Notification, NotificationSeverity, NotificationSink, SessionState, deliver
from workstore.persistence import PersistenceAdapter
from workstore.query import FilterCriteria, SortDirective, collect_tags, group_items, query_items
from workstore.types.core import BatchError
from workstore.types.stats import WorkItemStats
from workstore.validation import sanitize_actor

logger = logging.getLogger(__name__)

# Set by the store, never by callers.
_IMMUTABLE_KEYS = ("id", "projectId", "createdAt", "updatedAt")
_BUG_ONLY_KEYS = frozenset(BugFields.WIRE_FIELDS) - frozenset(ItemFields.WIRE_FIELDS)


def _deep_merge(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge *patch* into a copy of *base*; nested dicts merge, everything else replaces."""
    result = dict(base)
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _split_input(data: Mapping[str, Any], fields_type: type[ItemFields]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate top-level keys from metadata keys.

    Metadata fields may be given at the top level (``{"priority": "high"}``)
    or under ``metadata``; explicit ``metadata`` entries win.
    """
    explicit = data.get("metadata")
    if explicit is not None and not isinstance(explicit, Mapping):
        msg = "metadata must be an object"
        raise ValidationError(msg)
    top: dict[str, Any] = {}
    meta: dict[str, Any] = {}
    for key, value in data.items():
        if key == "metadata":
            continue
        if key in fields_type.WIRE_FIELDS:
            meta[key] = copy.deepcopy(value)
        else:
            top[key] = copy.deepcopy(value)
    if explicit:
        meta = _deep_merge(meta, explicit)
    return top, meta


def _next_timestamp(previous: str) -> str:
    """Current time, never earlier than *previous*."""
    now = now_iso()
    prev_dt = parse_iso(previous)
    now_dt = parse_iso(now)
    if prev_dt is not None and now_dt is not None and now_dt < prev_dt:
        return previous
    return now


class WorkItemStore:
    """Owns the canonical work-item collection across all projects in a session.

    Reads return copies; the only way to change an item is through the
    mutation methods.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        *,
        sink: NotificationSink | None = None,
        session: SessionState | None = None,
        lifecycle: BugLifecycle | None = None,
        default_resolver: str = "",
    ) -> None:
        self.adapter = adapter
        self.sink = sink
        self.session = session if session is not None else SessionState()
        self.lifecycle = lifecycle if lifecycle is not None else BugLifecycle()
        self.default_resolver = default_resolver
        self._items: dict[str, WorkItem] = {}
        self._loaded: set[str] = set()
        self._selected: list[str] = []

    # -- Internals -----------------------------------------------------------

    def _notify(self, severity: NotificationSeverity, title: str, message: str) -> None:
        deliver(self.sink, Notification(severity=severity, title=title, message=message))

    @contextlib.contextmanager
    def _reporting(self, action: str) -> Iterator[dict[str, str]]:
        """Mirror any store error as an error notification, then re-raise.

        Callers set ``label`` on the yielded dict once the item kind is known;
        the title reads "<label> <action> Failed".
        """
        report = {"label": "Task"}
        try:
            yield report
        except WorkStoreError as exc:
            self._notify("error", f"{report['label']} {action} Failed", str(exc))
            raise

    def _require(self, item_id: str) -> WorkItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(item_id)
        return item

    def _generate_id(self) -> str:
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in self._items:
                return candidate

    def _persist(self, op: str, project_id: str, call: Callable[[], None]) -> float:
        """Run an adapter call, converting any adapter failure into ``PersistenceError``.

        Returns the call duration in milliseconds.
        """
        started = perf_counter()
        try:
            call()
        except Exception as exc:
            msg = f"Failed to persist {op} for project '{project_id}': {exc}"
            logger.error(msg, extra={"op": op, "project_id": project_id, "error": str(exc)})
            raise PersistenceError(msg, project_id=project_id) from exc
        return round((perf_counter() - started) * 1000, 3)

    def _resolver(self, hint: Any) -> str:
        candidate = hint if isinstance(hint, str) and hint.strip() else self.default_resolver
        if not candidate:
            return ""
        cleaned, err = sanitize_actor(candidate, field="resolvedBy")
        if err:
            raise ValidationError(err)
        return cleaned

    def _transition(self, item: WorkItem, to_status: str, *, resolver_hint: Any, now: str) -> None:
        """Move *item* (not yet committed) to *to_status* through the lifecycle."""
        if isinstance(item, Bug):
            item.metadata = self.lifecycle.apply(
                item.metadata,
                item.status,
                to_status,
                now=now,
                resolved_by=self._resolver(resolver_hint),
            )
        else:
            self.lifecycle.validate_transition(item.status, to_status, kind=item.kind)
        item.status = to_status

    def _commit(self, item: WorkItem) -> None:
        self._items[item.id] = item
        self.session.mark_saved()

    # -- Reads ---------------------------------------------------------------

    def get(self, item_id: str) -> WorkItem:
        return self._require(item_id).copy()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def is_loaded(self, project_id: str) -> bool:
        return project_id in self._loaded

    def items(self, project_id: str) -> list[WorkItem]:
        """All items of a project in insertion order."""
        return [item.copy() for item in self._items.values() if item.project_id == project_id]

    def query(
        self,
        project_id: str,
        criteria: FilterCriteria | None = None,
        sort: SortDirective | None = None,
    ) -> list[WorkItem]:
        return [item.copy() for item in query_items(self._items.values(), project_id, criteria, sort)]

    def group(
        self,
        project_id: str,
        by: str,
        criteria: FilterCriteria | None = None,
        sort: SortDirective | None = None,
    ) -> dict[str, list[WorkItem]]:
        return group_items(self.query(project_id, criteria, sort), by)

    def stats(self, project_id: str) -> WorkItemStats:
        return aggregate(item for item in self._items.values() if item.project_id == project_id)

    def tags(self, project_id: str) -> list[str]:
        return collect_tags(item for item in self._items.values() if item.project_id == project_id)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of the canonical collection keyed by id."""
        return {item_id: dict(item.to_dict()) for item_id, item in self._items.items()}

    # -- Create --------------------------------------------------------------

    def create(self, data: Mapping[str, Any]) -> WorkItem:
        """Create a work item from wire-format input.

        Requires ``projectId``.  Assigns ``id`` and timestamps, defaults the
        status by kind, and fills kind defaults (bugs: ``severity=medium``,
        ``dateReported=now``).  Persists before committing.
        """
        with self._reporting("Create") as report:
            if not isinstance(data, Mapping):
                msg = "work item input must be an object"
                raise ValidationError(msg)
            project_id = data.get("projectId")
            if not isinstance(project_id, str) or not project_id.strip():
                msg = "projectId is required"
                raise ValidationError(msg)
            kind = resolve_kind(data)
            label = report["label"] = kind_label(kind)
            target_status = data.get("status") or initial_status(kind)
            if target_status not in status_vocabulary(kind):
                msg = (
                    f"Invalid status '{target_status}' for kind '{kind}'. "
                    f"Valid statuses: {', '.join(status_vocabulary(kind))}"
                )
                raise ValidationError(msg)

            fields_type = VARIANTS[kind].fields_type
            top, meta = _split_input(data, fields_type)
            now = now_iso()
            resolver_hint = meta.pop("resolvedBy", None)
            meta.pop("dateResolved", None)
            if kind == "bug" and not meta.get("dateReported"):
                meta["dateReported"] = now

            record = {k: v for k, v in top.items() if k not in ("type", "status", *_IMMUTABLE_KEYS)}
            record.update(
                {
                    "id": self._generate_id(),
                    "projectId": project_id,
                    "kind": kind,
                    "status": initial_status(kind),
                    "createdAt": now,
                    "updatedAt": now,
                    "metadata": meta,
                }
            )
            item = item_from_dict(record)
            if target_status != item.status:
                try:
                    self._transition(item, target_status, resolver_hint=resolver_hint, now=now)
                except InvalidTransitionError as exc:
                    raise ValidationError(str(exc)) from exc

            payload = dict(item.to_dict())
            elapsed = self._persist("create", project_id, lambda: self.adapter.save_item(project_id, payload))
            self._commit(item)

        logger.info(
            "Created %s %s",
            item.kind,
            item.id,
            extra={"op": "create", "item_id": item.id, "project_id": project_id, "duration_ms": elapsed},
        )
        self._notify("success", f"{label} Created", f'{label} "{item.title}" has been created.')
        return item.copy()

    # -- Update --------------------------------------------------------------

    def update(self, item_id: str, patch: Mapping[str, Any]) -> WorkItem:
        """Merge *patch* into an item and persist it.

        Top-level keys replace; ``metadata`` merges recursively.  A status
        change runs through the lifecycle first.  ``dateResolved`` and
        ``resolvedBy`` are owned by the lifecycle: a top-level or metadata
        ``resolvedBy`` is only used as the resolver when entering ``resolved``.
        """
        with self._reporting("Update") as report:
            current = self._require(item_id)
            report["label"] = current.label
            if not isinstance(patch, Mapping):
                msg = "patch must be an object"
                raise ValidationError(msg)
            current_dict = current.to_dict()
            for key in _IMMUTABLE_KEYS:
                if key in patch and patch[key] != current_dict[key]:
                    msg = f"{key} cannot be changed"
                    raise ValidationError(msg)

            new_kind = resolve_kind(patch) if ("kind" in patch or "type" in patch) else current.kind
            fields_type = VARIANTS[new_kind].fields_type
            top, meta_patch = _split_input(patch, fields_type)
            resolver_hint = meta_patch.pop("resolvedBy", None)
            meta_patch.pop("dateResolved", None)

            merged: dict[str, Any] = dict(current_dict)
            merged.update({k: v for k, v in top.items() if k not in ("type", *_IMMUTABLE_KEYS)})
            merged["kind"] = new_kind
            metadata = _deep_merge(merged["metadata"], meta_patch)

            now = _next_timestamp(current.updated_at)
            if new_kind == current.kind:
                from_status = current.status
            else:
                # Kind change: restart from the new kind's workflow.
                from_status = initial_status(new_kind)
                if new_kind != "bug":
                    for key in _BUG_ONLY_KEYS:
                        metadata.pop(key, None)
                elif not metadata.get("dateReported"):
                    metadata["dateReported"] = now
                if "status" not in top:
                    keep = current.status in status_vocabulary(new_kind)
                    merged["status"] = current.status if keep else from_status
            target_status = merged.get("status") or from_status
            self.lifecycle.validate_transition(from_status, target_status, kind=new_kind)

            if isinstance(current.metadata, BugFields) and new_kind == "bug":
                metadata["resolvedBy"] = current.metadata.resolved_by
                metadata["dateResolved"] = current.metadata.date_resolved
            merged["metadata"] = metadata
            merged["status"] = from_status
            merged["updatedAt"] = now

            candidate = item_from_dict(merged)
            if target_status != from_status:
                self._transition(candidate, target_status, resolver_hint=resolver_hint, now=now)

            payload = dict(candidate.to_dict())
            elapsed = self._persist(
                "update", candidate.project_id, lambda: self.adapter.save_item(candidate.project_id, payload)
            )
            self._commit(candidate)

        logger.info(
            "Updated %s %s",
            candidate.kind,
            item_id,
            extra={"op": "update", "item_id": item_id, "project_id": candidate.project_id, "duration_ms": elapsed},
        )
        self._notify("success", f"{candidate.label} Updated", f'{candidate.label} "{candidate.title}" has been updated.')
        return candidate.copy()

    def resolve_bug(self, item_id: str, resolved_by: str | None = None, *, fix_commit: str | None = None) -> WorkItem:
        """Move a bug to ``resolved``, stamping the resolver and resolution date."""
        patch: dict[str, Any] = {"status": "resolved"}
        if resolved_by:
            patch["resolvedBy"] = resolved_by
        if fix_commit:
            patch["metadata"] = {"fixCommit": fix_commit}
        return self.update(item_id, patch)

    def reopen_bug(self, item_id: str, *, status: str = "open") -> WorkItem:
        """Reopen a resolved or closed bug, clearing its resolution fields."""
        return self.update(item_id, {"status": status})

    # -- Delete / duplicate --------------------------------------------------

    def delete(self, item_id: str) -> None:
        """Remove an item by writing back its project's list without it."""
        with self._reporting("Delete") as report:
            current = self._require(item_id)
            report["label"] = current.label
            project_id = current.project_id
            if project_id in self._loaded:
                remaining = [
                    dict(item.to_dict()) for item in self._items.values() if item.project_id == project_id and item.id != item_id
                ]
            else:
                # Project never loaded: keep persisted records this session has not seen.
                try:
                    stored = self.adapter.load_items(project_id)
                except Exception as exc:
                    msg = f"Failed to read project '{project_id}' before delete: {exc}"
                    raise PersistenceError(msg, project_id=project_id) from exc
                known = {
                    item.id: dict(item.to_dict())
                    for item in self._items.values()
                    if item.project_id == project_id and item.id != item_id
                }
                remaining = [known.pop(r.get("id"), r) for r in stored if r.get("id") != item_id]
                remaining.extend(known.values())
            elapsed = self._persist("delete", project_id, lambda: self.adapter.save_items(project_id, remaining))
            del self._items[item_id]
            self._selected = [sid for sid in self._selected if sid != item_id]
            self.session.mark_saved()

        logger.info(
            "Deleted %s %s",
            current.kind,
            item_id,
            extra={"op": "delete", "item_id": item_id, "project_id": project_id, "duration_ms": elapsed},
        )
        self._notify("info", f"{current.label} Deleted", f'{current.label} "{current.title}" has been deleted.')

    def duplicate(self, item_id: str) -> WorkItem:
        """Create a copy titled "<title> (Copy)" with status, usage and resolution fields reset."""
        with self._reporting("Duplicate") as report:
            source = self._require(item_id)
            report["label"] = source.label
        data: dict[str, Any] = dict(source.to_dict())
        for key in ("id", "createdAt", "updatedAt", "status"):
            data.pop(key, None)
        data["title"] = f"{source.title} (Copy)"
        metadata = data["metadata"]
        metadata["actualTime"] = None
        if source.is_bug:
            metadata.update(resolvedBy="", dateResolved=None, fixCommit="", dateReported="")
        return self.create(data)

    # -- Bulk operations -----------------------------------------------------

    @staticmethod
    def _validate_ids(item_ids: object) -> list[str]:
        if not isinstance(item_ids, (list, tuple)) or not all(isinstance(i, str) for i in item_ids):
            msg = "item_ids must be a list of strings"
            raise ValidationError(msg)
        return list(item_ids)

    def bulk_update(self, item_ids: list[str], patch: Mapping[str, Any]) -> tuple[list[WorkItem], list[BatchError]]:
        """Apply ``update`` to each id in order. Best effort: earlier successes are kept.

        Returns (updated, errors).
        """
        results: list[WorkItem] = []
        errors: list[BatchError] = []
        for item_id in self._validate_ids(item_ids):
            try:
                results.append(self.update(item_id, patch))
            except WorkStoreError as exc:
                errors.append({"id": item_id, "error": str(exc), "code": error_code(exc)})
        return results, errors

    def bulk_delete(self, item_ids: list[str]) -> tuple[list[str], list[BatchError]]:
        """Apply ``delete`` to each id in order. Returns (deleted_ids, errors)."""
        deleted: list[str] = []
        errors: list[BatchError] = []
        for item_id in self._validate_ids(item_ids):
            try:
                self.delete(item_id)
                deleted.append(item_id)
            except WorkStoreError as exc:
                errors.append({"id": item_id, "error": str(exc), "code": error_code(exc)})
        return deleted, errors

    # -- Load ----------------------------------------------------------------

    def load(self, project_id: str) -> list[WorkItem]:
        """Replace this project's slice of the collection with the adapter's records.

        Records that fail validation, name another project, or reuse an id
        owned by another project are skipped.  Other projects are untouched.
        """
        with self._reporting("Load"):
            if not isinstance(project_id, str) or not project_id.strip():
                msg = "projectId is required"
                raise ValidationError(msg)
            try:
                records = self.adapter.load_items(project_id)
            except Exception as exc:
                msg = f"Failed to load tasks for project '{project_id}': {exc}"
                logger.error(msg, extra={"op": "load", "project_id": project_id, "error": str(exc)})
                raise PersistenceError(msg, project_id=project_id) from exc

        foreign_ids = {item_id for item_id, item in self._items.items() if item.project_id != project_id}
        loaded: dict[str, WorkItem] = {}
        skipped: list[str] = []
        for record in records:
            try:
                item = item_from_dict(record)
            except ValidationError as exc:
                skipped.append(f"{record.get('id', '?') if isinstance(record, Mapping) else '?'}: {exc}")
                continue
            if item.project_id != project_id:
                skipped.append(f"{item.id}: belongs to project '{item.project_id}'")
            elif item.id in foreign_ids or item.id in loaded:
                skipped.append(f"{item.id}: duplicate id")
            elif isinstance(item, Bug) and item.status == "resolved" and item.metadata.date_resolved is None:
                skipped.append(f"{item.id}: resolved without dateResolved")
            else:
                if isinstance(item, Bug) and item.status not in RESOLVED_STATUSES and item.metadata.date_resolved is not None:
                    # Unresolved bugs carry no resolution.
                    item.metadata = dataclasses.replace(item.metadata, resolved_by="", date_resolved=None)
                    logger.warning(
                        "Cleared stale resolution on %s", item.id, extra={"op": "load", "item_id": item.id, "project_id": project_id}
                    )
                loaded[item.id] = item

        items = {item_id: item for item_id, item in self._items.items() if item.project_id != project_id}
        items.update(loaded)
        self._items = items
        self._selected = [sid for sid in self._selected if sid in self._items]
        self._loaded.add(project_id)

        if skipped:
            logger.warning("Skipped %d invalid records: %s", len(skipped), "; ".join(skipped), extra={"op": "load", "project_id": project_id})
            self._notify(
                "info",
                "Some Tasks Skipped",
                f"{len(skipped)} tasks had validation errors and were skipped.",
            )
        logger.info("Loaded %d items", len(loaded), extra={"op": "load", "project_id": project_id})
        return [item.copy() for item in loaded.values()]

    # -- Selection -----------------------------------------------------------

    def select(self, item_id: str) -> None:
        self._require(item_id)
        if item_id not in self._selected:
            self._selected.append(item_id)

    def deselect(self, item_id: str) -> None:
        self._selected = [sid for sid in self._selected if sid != item_id]

    def toggle_selection(self, item_id: str) -> bool:
        """Flip selection of *item_id*; returns True if it is now selected."""
        if item_id in self._selected:
            self.deselect(item_id)
            return False
        self.select(item_id)
        return True

    def select_all(self, project_id: str) -> None:
        self._selected = [item.id for item in self._items.values() if item.project_id == project_id]

    def clear_selection(self) -> None:
        self._selected = []

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected)

    def selected_items(self) -> list[WorkItem]:
        return [self._items[sid].copy() for sid in self._selected if sid in self._items]
