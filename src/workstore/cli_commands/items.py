"""CLI commands for work item mutations: create, show, update, delete, duplicate, resolve, reopen, bulk."""

from __future__ import annotations

import json as json_mod
from typing import Any

import click

from workstore.cli_common import fail, open_store, parse_fields
from workstore.errors import WorkStoreError
from workstore.models import BUG_CATEGORIES, BUG_SOURCES, KINDS, PRIORITIES, SEVERITIES, WorkItem

_project_option = click.option("--project", "-P", default=None, help="Project id (default: config default_project)")
_json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON")


def _echo_item(item: WorkItem, as_json: bool) -> None:
    if as_json:
        click.echo(json_mod.dumps(item.to_dict(), indent=2, default=str))
        return
    meta = item.metadata
    click.echo(f"ID:       {item.id}")
    click.echo(f"Title:    {item.title}")
    click.echo(f"Kind:     {item.kind}")
    click.echo(f"Status:   {item.status}")
    click.echo(f"Priority: {meta.priority}")
    if item.is_bug:
        click.echo(f"Severity: {meta.severity}")  # type: ignore[attr-defined]
        click.echo(f"Category: {meta.category}")  # type: ignore[attr-defined]
        if meta.date_resolved:  # type: ignore[attr-defined]
            click.echo(f"Resolved: {meta.date_resolved} by {meta.resolved_by}")  # type: ignore[attr-defined]
    if meta.assignee:
        click.echo(f"Assignee: {meta.assignee}")
    if meta.tags:
        click.echo(f"Tags:     {', '.join(meta.tags)}")
    click.echo(f"Created:  {item.created_at}")
    click.echo(f"Updated:  {item.updated_at}")
    if item.content:
        click.echo(f"\n{item.content}")


def _build_patch(
    *,
    title: str | None = None,
    content: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    severity: str | None = None,
    assignee: str | None = None,
    tags: tuple[str, ...] = (),
    fields: dict[str, Any] | None = None,
) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    metadata: dict[str, Any] = dict(fields or {})
    if title is not None:
        patch["title"] = title
    if content is not None:
        patch["content"] = content
    if status is not None:
        patch["status"] = status
    if priority is not None:
        metadata["priority"] = priority
    if severity is not None:
        metadata["severity"] = severity
    if assignee is not None:
        metadata["assignee"] = assignee
    if tags:
        metadata["tags"] = list(tags)
    if metadata:
        patch["metadata"] = metadata
    return patch


@click.command()
@click.argument("title")
@click.option("--kind", "-k", type=click.Choice(KINDS), default="task", help="Work item kind")
@click.option("--content", "-c", default="", help="Body text")
@click.option("--status", default=None, help="Initial status (default by kind)")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="Priority")
@click.option("--severity", type=click.Choice(SEVERITIES), default=None, help="Bug severity")
@click.option("--category", type=click.Choice(BUG_CATEGORIES), default=None, help="Bug category")
@click.option("--source", type=click.Choice(BUG_SOURCES), default=None, help="Bug source")
@click.option("--assignee", default=None, help="Assignee")
@click.option("--tag", "-t", multiple=True, help="Tags (repeatable)")
@click.option("--field", "-f", multiple=True, help="Metadata field as key=value (repeatable)")
@_project_option
@_json_option
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    kind: str,
    content: str,
    status: str | None,
    priority: str | None,
    severity: str | None,
    category: str | None,
    source: str | None,
    assignee: str | None,
    tag: tuple[str, ...],
    field: tuple[str, ...],
    project: str | None,
    as_json: bool,
) -> None:
    """Create a new work item."""
    fields = parse_fields(field, as_json=as_json)
    if category:
        fields["category"] = category
    if source:
        fields["source"] = source
    store, project_id = open_store(ctx, project, as_json=as_json)
    data = _build_patch(
        title=title,
        content=content,
        status=status,
        priority=priority,
        severity=severity,
        assignee=assignee,
        tags=tag,
        fields=fields,
    )
    data.update(projectId=project_id, kind=kind)
    try:
        item = store.create(data)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        _echo_item(item, as_json=True)
    else:
        click.echo(f"Created {item.id}: {item.title}")


@click.command()
@click.argument("item_id")
@_project_option
@_json_option
@click.pass_context
def show(ctx: click.Context, item_id: str, project: str | None, as_json: bool) -> None:
    """Show work item details."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    try:
        item = store.get(item_id)
    except KeyError:
        fail(f"Not found: {item_id}", as_json=as_json)
    _echo_item(item, as_json)


@click.command()
@click.argument("item_id")
@click.option("--title", default=None, help="New title")
@click.option("--content", "-c", default=None, help="New body text")
@click.option("--status", "-s", default=None, help="New status")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="New priority")
@click.option("--severity", type=click.Choice(SEVERITIES), default=None, help="New bug severity")
@click.option("--assignee", default=None, help="New assignee")
@click.option("--resolved-by", default=None, help="Resolver when moving a bug to resolved")
@click.option("--field", "-f", multiple=True, help="Metadata field as key=value (repeatable)")
@_project_option
@_json_option
@click.pass_context
def update(
    ctx: click.Context,
    item_id: str,
    title: str | None,
    content: str | None,
    status: str | None,
    priority: str | None,
    severity: str | None,
    assignee: str | None,
    resolved_by: str | None,
    field: tuple[str, ...],
    project: str | None,
    as_json: bool,
) -> None:
    """Update a work item."""
    fields = parse_fields(field, as_json=as_json)
    store, _project_id = open_store(ctx, project, as_json=as_json)
    patch = _build_patch(
        title=title,
        content=content,
        status=status,
        priority=priority,
        severity=severity,
        assignee=assignee,
        fields=fields,
    )
    if resolved_by:
        patch["resolvedBy"] = resolved_by
    try:
        item = store.update(item_id, patch)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        _echo_item(item, as_json=True)
    else:
        click.echo(f"Updated {item.id}: {item.status}")


@click.command()
@click.argument("item_id")
@_project_option
@_json_option
@click.pass_context
def delete(ctx: click.Context, item_id: str, project: str | None, as_json: bool) -> None:
    """Delete a work item."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    try:
        store.delete(item_id)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps({"deleted": item_id}))
    else:
        click.echo(f"Deleted {item_id}")


@click.command()
@click.argument("item_id")
@_project_option
@_json_option
@click.pass_context
def duplicate(ctx: click.Context, item_id: str, project: str | None, as_json: bool) -> None:
    """Duplicate a work item as "<title> (Copy)"."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    try:
        item = store.duplicate(item_id)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        _echo_item(item, as_json=True)
    else:
        click.echo(f"Created {item.id}: {item.title}")


@click.command()
@click.argument("item_id")
@click.option("--by", "resolved_by", default=None, help="Resolver (default: config default_resolver or --actor)")
@click.option("--commit", "fix_commit", default=None, help="Fixing commit")
@_project_option
@_json_option
@click.pass_context
def resolve(
    ctx: click.Context,
    item_id: str,
    resolved_by: str | None,
    fix_commit: str | None,
    project: str | None,
    as_json: bool,
) -> None:
    """Mark a bug as resolved."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    try:
        item = store.resolve_bug(item_id, resolved_by, fix_commit=fix_commit)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        _echo_item(item, as_json=True)
    else:
        click.echo(f"Resolved {item.id} by {item.metadata.resolved_by}")  # type: ignore[attr-defined]


@click.command()
@click.argument("item_id")
@click.option("--status", default="open", type=click.Choice(["open", "in-progress", "testing"]), help="Reopen target")
@_project_option
@_json_option
@click.pass_context
def reopen(ctx: click.Context, item_id: str, status: str, project: str | None, as_json: bool) -> None:
    """Reopen a resolved or closed bug."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    try:
        item = store.reopen_bug(item_id, status=status)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    if as_json:
        _echo_item(item, as_json=True)
    else:
        click.echo(f"Reopened {item.id}: {item.status}")


def _echo_batch(results: list[str], errors: list[Any], verb: str, as_json: bool) -> None:
    if as_json:
        click.echo(json_mod.dumps({verb: results, "errors": errors}, indent=2))
    else:
        for item_id in results:
            click.echo(f"{verb.capitalize()} {item_id}")
        for err in errors:
            click.echo(f"Error {err['id']}: {err['error']}", err=True)
    if errors:
        raise SystemExit(1)


@click.command("bulk-update")
@click.argument("item_ids", nargs=-1, required=True)
@click.option("--status", "-s", default=None, help="New status")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="New priority")
@click.option("--assignee", default=None, help="New assignee")
@click.option("--field", "-f", multiple=True, help="Metadata field as key=value (repeatable)")
@_project_option
@_json_option
@click.pass_context
def bulk_update(
    ctx: click.Context,
    item_ids: tuple[str, ...],
    status: str | None,
    priority: str | None,
    assignee: str | None,
    field: tuple[str, ...],
    project: str | None,
    as_json: bool,
) -> None:
    """Apply the same change to several items (best effort)."""
    fields = parse_fields(field, as_json=as_json)
    store, _project_id = open_store(ctx, project, as_json=as_json)
    patch = _build_patch(status=status, priority=priority, assignee=assignee, fields=fields)
    updated, errors = store.bulk_update(list(item_ids), patch)
    _echo_batch([i.id for i in updated], list(errors), "updated", as_json)


@click.command("bulk-delete")
@click.argument("item_ids", nargs=-1, required=True)
@_project_option
@_json_option
@click.pass_context
def bulk_delete(ctx: click.Context, item_ids: tuple[str, ...], project: str | None, as_json: bool) -> None:
    """Delete several items (best effort)."""
    store, _project_id = open_store(ctx, project, as_json=as_json)
    deleted, errors = store.bulk_delete(list(item_ids))
    _echo_batch(deleted, list(errors), "deleted", as_json)
