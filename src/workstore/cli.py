"""CLI for the workstore work-item tracker.

Convention-based: discovers .workstore/ by walking up from cwd.

Usage:
    workstore init                                  # Initialize .workstore/ in cwd
    workstore create "Crash on save" --kind=bug     # Create a work item
    workstore show <id>                             # Show item details
    workstore list --status=open --sort=priority    # List items
    workstore update <id> --status=in-progress      # Update an item
    workstore resolve <id> --by=alice               # Resolve a bug
    workstore reopen <id>                           # Reopen a bug
    workstore duplicate <id>                        # Copy an item
    workstore bulk-update <id> <id> --priority=high # Batch update
    workstore stats                                 # Project statistics
    workstore serve                                 # HTTP API on localhost
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from workstore import __version__
from workstore.cli_commands import items as items_commands
from workstore.cli_commands import query as query_commands
from workstore.config import (
    PROJECTS_DIR_NAME,
    WORKSTORE_DIR_NAME,
    default_config,
    read_config,
    write_config,
)
from workstore.validation import sanitize_actor


@click.group()
@click.version_option(version=__version__, prog_name="workstore")
@click.option("--actor", default="cli", help="Actor identity used as the default resolver (default: cli)")
@click.pass_context
def cli(ctx: click.Context, actor: str) -> None:
    """Workstore: tasks and bugs, stored per project."""
    ctx.ensure_object(dict)
    cleaned, err = sanitize_actor(actor, field="--actor")
    if err:
        click.echo(f"Error: {err}", err=True)
        sys.exit(1)
    ctx.obj["actor"] = cleaned


@cli.command()
@click.option("--project", default=None, help="Default project id (default: 'default')")
@click.option("--resolver", default="", help="Default resolver name for bug resolution")
@click.option("--enforcement", type=click.Choice(["soft", "hard"]), default="soft", help="Bug workflow enforcement")
def init(project: str | None, resolver: str, enforcement: str) -> None:
    """Initialize .workstore/ in the current directory."""
    cwd = Path.cwd()
    workstore_dir = cwd / WORKSTORE_DIR_NAME

    if workstore_dir.exists():
        config = read_config(workstore_dir)
        click.echo(f"{WORKSTORE_DIR_NAME}/ already exists in {cwd}")
        click.echo(f"  Default project: {config.get('default_project')}")
        return

    workstore_dir.mkdir()
    (workstore_dir / PROJECTS_DIR_NAME).mkdir()
    config = default_config()
    if project:
        config["default_project"] = project
    config["default_resolver"] = resolver
    config["enforcement"] = enforcement
    write_config(workstore_dir, config)

    click.echo(f"Initialized {WORKSTORE_DIR_NAME}/ in {cwd}")
    click.echo(f"  Default project: {config['default_project']}")
    click.echo(f"  Enforcement: {enforcement}")


@cli.command()
@click.option("--port", default=8377, type=int, help="Port (default: 8377)")
def serve(port: int) -> None:
    """Serve the JSON API on localhost."""
    from workstore.dashboard import main

    main(port=port)


for _command in (
    items_commands.create,
    items_commands.show,
    items_commands.update,
    items_commands.delete,
    items_commands.duplicate,
    items_commands.resolve,
    items_commands.reopen,
    items_commands.bulk_update,
    items_commands.bulk_delete,
    query_commands.list_items,
    query_commands.stats,
    query_commands.tags,
):
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
