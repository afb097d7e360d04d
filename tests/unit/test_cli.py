#!/usr/bin/env python3
"""
CLI Tests
=========

for-file, watch and config commands driven through click's CliRunner.
Run with: pytest tests/unit/test_cli.py -v
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import write_tool
from code_ownership import __version__
from code_ownership.cli import cli
from code_ownership.ownership.protocol import WorkspaceRoot


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.setenv("CODE_OWNERSHIP_MIN_VISIBLE_LATENCY", "0")
    return CliRunner()


def _user_rb(workspace: WorkspaceRoot) -> str:
    return str(workspace.path / "app" / "models" / "user.rb")


class TestForFile:
    def test_owned(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        result = runner.invoke(cli, ["for-file", "-w", str(workspace.path), _user_rb(workspace)])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "Owner: Payments"
        assert lines[1] == "user.rb is owned by Payments"
        assert lines[2] == "  Slack: #payments-eng: https://slack.com/app_redirect?channel=payments-eng"
        assert lines[3].startswith("  View team config: file://")

    def test_json(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        result = runner.invoke(cli, ["for-file", "--workspace", str(workspace.path), "--json", _user_rb(workspace)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["label"] == "Owner: Payments"
        assert data["message"] == "user.rb is owned by Payments"
        assert data["status"]["phase"] == "idle"
        assert data["status"]["record"]["team_name"] == "Payments"

    def test_unowned(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        write_tool(workspace.path, stdout=json.dumps({"team_name": "Unowned", "team_yml": ""}))

        result = runner.invoke(cli, ["for-file", "-w", str(workspace.path), _user_rb(workspace)])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "Owner: none"

    def test_tool_failure_exits_1(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        write_tool(workspace.path, stderr="no such file in ownership map", exit_code=1)

        result = runner.invoke(cli, ["for-file", "-w", str(workspace.path), _user_rb(workspace)])

        assert result.exit_code == 1
        assert "Owner: error checking ownership!" in result.output
        assert "Error: process_failure" in result.output

    def test_not_configured(self, runner: CliRunner, bare_workspace: WorkspaceRoot) -> None:
        target = bare_workspace.path / "src" / "main.py"

        result = runner.invoke(cli, ["for-file", "-w", str(bare_workspace.path), str(target)])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "Owner: not configured"

    def test_outside_workspace_exits_2(self, runner: CliRunner, workspace: WorkspaceRoot, tmp_path: Path) -> None:
        outside = tmp_path / "elsewhere" / "notes.txt"

        result = runner.invoke(cli, ["for-file", "-w", str(workspace.path), str(outside)])

        assert result.exit_code == 2
        assert f"{outside} is not inside any workspace" in result.output


class TestWatch:
    def test_follows_stdin(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        result = runner.invoke(cli, ["watch", "-w", str(workspace.path)], input=f"{_user_rb(workspace)}\n")

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert "Owner: running..." in lines
        assert lines[-1] == "Owner: Payments"

    def test_blank_line_hides(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        result = runner.invoke(cli, ["watch", "-w", str(workspace.path)], input="\n")

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == []

    def test_info_without_owner(self, runner: CliRunner, workspace: WorkspaceRoot) -> None:
        result = runner.invoke(cli, ["watch", "-w", str(workspace.path)], input="info\n")

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "No owner"


class TestConfigCommand:
    def test_dump(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0, result.output
        assert "Code Ownership Configuration" in result.output
        assert "min_visible_latency: 0.0" in result.output

    def test_json(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODE_OWNERSHIP_ORACLE", "codeowners")

        result = runner.invoke(cli, ["config", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["oracle"] == "codeowners"

    def test_invalid(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODE_OWNERSHIP_TOOL_PATH", "/abs/tool")

        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert __version__ in result.output
