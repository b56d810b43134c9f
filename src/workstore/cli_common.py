"""Shared CLI helpers.

Provides ``open_store()`` and ``fail()`` so that ``cli.py`` and the
``cli_commands/*.py`` modules can share them without circular imports.
"""

from __future__ import annotations

import json as json_mod
import sys
from typing import Any, NoReturn

import click

from workstore.config import WORKSTORE_DIR_NAME, find_workstore_root, read_config
from workstore.errors import WorkStoreError
from workstore.lifecycle import BugLifecycle
from workstore.logging import setup_logging
from workstore.notifications import LoggingSink
from workstore.persistence import JsonFileAdapter
from workstore.store import WorkItemStore


def fail(message: str, *, as_json: bool = False) -> NoReturn:
    """Report an error in the requested format and exit 1."""
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def open_store(ctx: click.Context, project: str | None, *, as_json: bool = False) -> tuple[WorkItemStore, str]:
    """Discover .workstore/, build a file-backed store, and load *project*.

    Falls back to the configured ``default_project`` when *project* is None.
    A project that cannot be loaded is reported through ``fail()``.
    """
    try:
        workstore_dir = find_workstore_root()
    except FileNotFoundError:
        click.echo(f"No {WORKSTORE_DIR_NAME}/ found. Run 'workstore init' first.", err=True)
        sys.exit(1)
    setup_logging(workstore_dir)
    config = read_config(workstore_dir)
    project_id = project or config.get("default_project", "default")
    actor = ctx.obj.get("actor", "") if ctx.obj else ""
    store = WorkItemStore(
        JsonFileAdapter(workstore_dir),
        sink=LoggingSink(),
        lifecycle=BugLifecycle(enforcement=config.get("enforcement", "soft")),  # type: ignore[arg-type]
        default_resolver=config.get("default_resolver") or actor,
    )
    try:
        store.load(project_id)
    except WorkStoreError as e:
        fail(str(e), as_json=as_json)
    return store, project_id


def parse_fields(pairs: tuple[str, ...], *, as_json: bool = False) -> dict[str, Any]:
    """Turn ``key=value`` options into a metadata dict."""
    fields: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            fail(f"Invalid field format: {pair} (expected key=value)", as_json=as_json)
        key, value = pair.split("=", 1)
        fields[key] = value
    return fields
