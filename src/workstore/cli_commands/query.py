"""CLI commands for read-only views: list, stats, tags."""

from __future__ import annotations

import json as json_mod

import click

from workstore.cli_common import open_store
from workstore.models import KINDS, PRIORITIES, SEVERITIES, WorkItem
from workstore.query import GROUP_FIELDS, SORT_FIELDS, FilterCriteria, SortDirective


def _line(item: WorkItem) -> str:
    severity = f" {item.metadata.severity}" if item.is_bug else ""  # type: ignore[attr-defined]
    return f"{item.id}  [{item.kind}] {item.status:<12} {item.metadata.priority}{severity}  {item.title}"


@click.command("list")
@click.option("--status", "-s", multiple=True, help="Filter by status (repeatable)")
@click.option("--priority", "-p", multiple=True, type=click.Choice(PRIORITIES), help="Filter by priority (repeatable)")
@click.option("--kind", "-k", multiple=True, type=click.Choice(KINDS), help="Filter by kind (repeatable)")
@click.option("--severity", multiple=True, type=click.Choice(SEVERITIES), help="Filter by bug severity (repeatable)")
@click.option("--tag", "-t", multiple=True, help="Filter by tag, any match (repeatable)")
@click.option("--search", "-q", default="", help="Case-insensitive text search")
@click.option("--sort", "sort_field", type=click.Choice(SORT_FIELDS), default="updatedAt", help="Sort field")
@click.option("--desc/--asc", "descending", default=True, help="Sort direction (default: descending)")
@click.option("--group-by", type=click.Choice(GROUP_FIELDS), default=None, help="Group output")
@click.option("--project", "-P", default=None, help="Project id (default: config default_project)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_items(
    ctx: click.Context,
    status: tuple[str, ...],
    priority: tuple[str, ...],
    kind: tuple[str, ...],
    severity: tuple[str, ...],
    tag: tuple[str, ...],
    search: str,
    sort_field: str,
    descending: bool,
    group_by: str | None,
    project: str | None,
    as_json: bool,
) -> None:
    """List work items with optional filters."""
    store, project_id = open_store(ctx, project, as_json=as_json)
    criteria = FilterCriteria(
        statuses=frozenset(status),
        priorities=frozenset(priority),
        kinds=frozenset(kind),
        severities=frozenset(severity),
        tags=frozenset(tag),
        search=search,
    )
    sort = SortDirective(field=sort_field, direction="desc" if descending else "asc")

    if group_by:
        groups = store.group(project_id, group_by, criteria, sort)
        if as_json:
            payload = {key: [i.to_dict() for i in items] for key, items in groups.items()}
            click.echo(json_mod.dumps(payload, indent=2, default=str))
            return
        for key, items in groups.items():
            click.echo(f"{key} ({len(items)})")
            for item in items:
                click.echo(f"  {_line(item)}")
        return

    items = store.query(project_id, criteria, sort)
    if as_json:
        click.echo(json_mod.dumps([i.to_dict() for i in items], indent=2, default=str))
        return
    if not items:
        click.echo("No work items found.")
        return
    for item in items:
        click.echo(_line(item))
    click.echo(f"\n{len(items)} items")


@click.command()
@click.option("--project", "-P", default=None, help="Project id (default: config default_project)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, project: str | None, as_json: bool) -> None:
    """Show project statistics."""
    store, project_id = open_store(ctx, project, as_json=as_json)
    s = store.stats(project_id)
    if as_json:
        click.echo(json_mod.dumps(s, indent=2, default=str))
        return
    click.echo(f"Project: {project_id}")
    click.echo(f"Total:   {s['total']}")
    click.echo("By status:")
    for key, count in s["by_status"].items():
        if count:
            click.echo(f"  {key}: {count}")
    click.echo("By kind:")
    for key, count in s["by_kind"].items():
        click.echo(f"  {key}: {count}")
    click.echo(f"Bugs:    {s['bugs']['total']} ({s['bugs']['open']} open, {s['bugs']['resolved']} resolved)")


@click.command()
@click.option("--project", "-P", default=None, help="Project id (default: config default_project)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tags(ctx: click.Context, project: str | None, as_json: bool) -> None:
    """List all tags used in a project."""
    store, project_id = open_store(ctx, project, as_json=as_json)
    all_tags = store.tags(project_id)
    if as_json:
        click.echo(json_mod.dumps(all_tags))
        return
    for tag in all_tags:
        click.echo(tag)
