"""CLI tests for init and work item commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.cli.conftest import _extract_id
from workstore.cli import cli
from workstore.config import WORKSTORE_DIR_NAME, read_config


def _create(runner: CliRunner, *args: str) -> str:
    result = runner.invoke(cli, ["create", *args])
    assert result.exit_code == 0, result.output
    return _extract_id(result.output)


def _show_json(runner: CliRunner, item_id: str) -> dict:
    result = runner.invoke(cli, ["show", item_id, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestInit:
    def test_init_creates_workstore_dir(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init", "--project", "web", "--resolver", "qa", "--enforcement", "hard"])
        assert result.exit_code == 0
        config = read_config(tmp_path / WORKSTORE_DIR_NAME)
        assert config["default_project"] == "web"
        assert config["default_resolver"] == "qa"
        assert config["enforcement"] == "hard"
        assert (tmp_path / WORKSTORE_DIR_NAME / "projects").is_dir()

    def test_init_already_exists(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_command_outside_workspace_fails(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["list"])
        assert result.exit_code == 1
        assert "workstore init" in result.output

    def test_invalid_actor_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["--actor", "  ", "list"])
        assert result.exit_code == 1
        assert "--actor must not be empty" in result.output

    def test_invalid_project_reported(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["list", "--project", "../evil"])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error:" in result.output
        assert "Invalid project id" in result.output

    def test_invalid_project_reported_as_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["list", "--project", "../evil", "--json"])
        assert result.exit_code == 1
        assert "Invalid project id" in json.loads(result.output)["error"]

    def test_corrupt_project_file_reported(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        project_dir = root / WORKSTORE_DIR_NAME / "projects" / "web"
        project_dir.mkdir(parents=True, exist_ok=True)
        (project_dir / "tasks.json").write_text("{not json")
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Failed to load tasks for project 'web'" in result.output
        result = runner.invoke(cli, ["stats", "--json"])
        assert result.exit_code == 1
        assert "Failed to load tasks" in json.loads(result.output)["error"]

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "workstore" in result.output


class TestCreateAndShow:
    def test_create_writes_project_file(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        item_id = _create(runner, "Write docs", "--tag", "docs", "--priority", "high")
        document = json.loads((root / WORKSTORE_DIR_NAME / "projects" / "web" / "tasks.json").read_text())
        assert [t["id"] for t in document["tasks"]] == [item_id]
        assert document["tasks"][0]["metadata"]["tags"] == ["docs"]

    def test_create_bug_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Crash", "--kind", "bug", "--severity", "critical", "--category", "backend", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["kind"] == "bug"
        assert data["status"] == "open"
        assert data["metadata"]["severity"] == "critical"
        assert data["metadata"]["category"] == "backend"

    def test_create_with_custom_field(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Env bug", "--kind", "bug", "-f", "environment=staging")
        assert _show_json(runner, item_id)["metadata"]["environment"] == "staging"

    def test_bad_field_format(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "x", "-f", "novalue", "--json"])
        assert result.exit_code == 1
        assert "key=value" in json.loads(result.output)["error"]

    def test_invalid_status_fails(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "x", "--status", "closed"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_show_text(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Readable", "--content", "Body text")
        result = runner.invoke(cli, ["show", item_id])
        assert result.exit_code == 0
        assert "Readable" in result.output
        assert "Body text" in result.output

    def test_show_missing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", "nope"])
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_project_option(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        item_id = _create(runner, "Mobile only", "--project", "mobile")
        assert runner.invoke(cli, ["show", item_id]).exit_code == 1
        assert runner.invoke(cli, ["show", item_id, "--project", "mobile"]).exit_code == 0
        assert (root / WORKSTORE_DIR_NAME / "projects" / "mobile" / "tasks.json").exists()


class TestUpdateResolve:
    def test_update_status(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Task")
        result = runner.invoke(cli, ["update", item_id, "--status", "done", "--assignee", "ana"])
        assert result.exit_code == 0
        data = _show_json(runner, item_id)
        assert data["status"] == "done"
        assert data["metadata"]["assignee"] == "ana"

    def test_update_wrong_vocabulary(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Task")
        result = runner.invoke(cli, ["update", item_id, "--status", "testing"])
        assert result.exit_code == 1
        assert "not valid for kind" in result.output

    def test_resolve_uses_actor_as_default_resolver(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        bug_id = _create(runner, "Bug", "--kind", "bug")
        result = runner.invoke(cli, ["--actor", "ana", "resolve", bug_id, "--commit", "abc123"])
        assert result.exit_code == 0, result.output
        data = _show_json(runner, bug_id)
        assert data["status"] == "resolved"
        assert data["metadata"]["resolvedBy"] == "ana"
        assert data["metadata"]["fixCommit"] == "abc123"
        assert data["metadata"]["dateResolved"]

    def test_resolve_with_explicit_resolver(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        bug_id = _create(runner, "Bug", "--kind", "bug")
        result = runner.invoke(cli, ["resolve", bug_id, "--by", "sam"])
        assert result.exit_code == 0
        assert "sam" in result.output

    def test_reopen_clears_resolution(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        bug_id = _create(runner, "Bug", "--kind", "bug")
        runner.invoke(cli, ["resolve", bug_id, "--by", "sam"])
        result = runner.invoke(cli, ["reopen", bug_id, "--status", "in-progress"])
        assert result.exit_code == 0
        data = _show_json(runner, bug_id)
        assert data["status"] == "in-progress"
        assert data["metadata"]["dateResolved"] is None
        assert data["metadata"]["resolvedBy"] == ""


class TestDeleteDuplicate:
    def test_delete(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Gone")
        result = runner.invoke(cli, ["delete", item_id])
        assert result.exit_code == 0
        assert runner.invoke(cli, ["show", item_id]).exit_code == 1

    def test_delete_missing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["delete", "nope", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == "Work item not found: nope"

    def test_duplicate(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        item_id = _create(runner, "Original")
        result = runner.invoke(cli, ["duplicate", item_id])
        assert result.exit_code == 0
        assert "Original (Copy)" in result.output


class TestBulk:
    def test_bulk_update_partial(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        a = _create(runner, "A")
        b = _create(runner, "B")
        result = runner.invoke(cli, ["bulk-update", a, "missing", b, "--priority", "urgent", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["updated"] == [a, b]
        assert data["errors"][0]["code"] == "not_found"
        assert _show_json(runner, b)["metadata"]["priority"] == "urgent"

    def test_bulk_delete(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        a = _create(runner, "A")
        b = _create(runner, "B")
        result = runner.invoke(cli, ["bulk-delete", a, b])
        assert result.exit_code == 0
        assert f"Deleted {a}" in result.output
        assert "No work items found." in runner.invoke(cli, ["list"]).output
