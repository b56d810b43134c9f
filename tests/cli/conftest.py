"""Fixtures for CLI interface tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from workstore.cli import cli


@pytest.fixture
def cli_in_project(tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> tuple[CliRunner, Path]:
    """Initialize a workstore in tmp_path and return (runner, workspace_root)."""
    monkeypatch.chdir(tmp_path)
    result = cli_runner.invoke(cli, ["init", "--project", "web"])
    assert result.exit_code == 0, result.output
    return cli_runner, tmp_path


def _extract_id(create_output: str) -> str:
    """Extract the item id from 'Created <id>: Title' output."""
    return create_output.split(":")[0].replace("Created ", "").strip()
