"""CLI tests for list, stats, and tags."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.cli.conftest import _extract_id
from workstore.cli import cli


@pytest.fixture
def seeded(cli_in_project: tuple[CliRunner, Path]) -> tuple[CliRunner, dict[str, str]]:
    runner, _ = cli_in_project
    ids: dict[str, str] = {}
    for key, args in {
        "docs": ["Write docs", "-p", "low", "-t", "docs"],
        "release": ["Ship release", "-p", "urgent", "-t", "release", "-t", "docs", "--assignee", "ana"],
        "crash": ["Crash on save", "--kind", "bug", "-p", "high", "--severity", "critical"],
        "typo": ["Typo", "--kind", "bug", "-p", "medium", "--severity", "trivial", "-t", "ui"],
    }.items():
        result = runner.invoke(cli, ["create", *args])
        assert result.exit_code == 0, result.output
        ids[key] = _extract_id(result.output)
    return runner, ids


class TestList:
    def test_list_all(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = seeded
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "4 items" in result.output
        for item_id in ids.values():
            assert item_id in result.output

    def test_filter_by_kind_and_severity(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = seeded
        result = runner.invoke(cli, ["list", "--severity", "critical", "--json"])
        assert [i["id"] for i in json.loads(result.output)] == [ids["crash"]]
        result = runner.invoke(cli, ["list", "--kind", "task", "--json"])
        assert {i["id"] for i in json.loads(result.output)} == {ids["docs"], ids["release"]}

    def test_tag_filter_matches_any(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = seeded
        result = runner.invoke(cli, ["list", "-t", "ui", "-t", "release", "--json"])
        assert {i["id"] for i in json.loads(result.output)} == {ids["release"], ids["typo"]}

    def test_search(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = seeded
        result = runner.invoke(cli, ["list", "-q", "CRASH", "--json"])
        assert [i["id"] for i in json.loads(result.output)] == [ids["crash"]]

    def test_sort_by_priority(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, _ = seeded
        result = runner.invoke(cli, ["list", "--sort", "priority", "--desc", "--json"])
        assert [i["metadata"]["priority"] for i in json.loads(result.output)] == ["urgent", "high", "medium", "low"]
        result = runner.invoke(cli, ["list", "--sort", "priority", "--asc", "--json"])
        assert [i["metadata"]["priority"] for i in json.loads(result.output)] == ["low", "medium", "high", "urgent"]

    def test_group_by_kind(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, _ = seeded
        result = runner.invoke(cli, ["list", "--group-by", "kind", "--json"])
        groups = json.loads(result.output)
        assert set(groups) == {"task", "bug"}
        assert len(groups["bug"]) == 2

    def test_group_by_assignee_text(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, _ = seeded
        result = runner.invoke(cli, ["list", "--group-by", "assignee"])
        assert "ana (1)" in result.output
        assert "unassigned (3)" in result.output

    def test_empty(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert "No work items found." in runner.invoke(cli, ["list"]).output


class TestStatsAndTags:
    def test_stats_json(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, ids = seeded
        runner.invoke(cli, ["resolve", ids["typo"], "--by", "sam"])
        result = runner.invoke(cli, ["stats", "--json"])
        stats = json.loads(result.output)
        assert stats["total"] == 4
        assert stats["by_kind"]["task"] == 2
        assert stats["bugs"]["resolved"] == 1
        assert stats["bugs"]["by_severity"]["critical"] == 1

    def test_stats_text(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, _ = seeded
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0
        assert "Total:   4" in result.output

    def test_tags(self, seeded: tuple[CliRunner, dict[str, str]]) -> None:
        runner, _ = seeded
        result = runner.invoke(cli, ["tags", "--json"])
        assert json.loads(result.output) == ["docs", "release", "ui"]
