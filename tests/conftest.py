"""
Pytest Configuration and Fixtures
==================================

Shared fixtures for all test modules.
"""

import asyncio
import json
import os
import stat
from pathlib import Path

import pytest

from code_ownership.config import AppConfig, reset_config
from code_ownership.ownership.protocol import OraclePayload, OracleResult, WorkspaceRoot
from code_ownership.ownership.status import StatusStateMachine

os.environ.setdefault("TESTING", "1")


def payload(team_name: str | None = "Payments", team_yml: str | None = "teams/payments.yml") -> OraclePayload:
    """Oracle payload as the ownership tool would print it."""
    data = {}
    if team_name is not None:
        data["team_name"] = team_name
    if team_yml is not None:
        data["team_yml"] = team_yml
    return OraclePayload(raw=json.dumps(data), command="test")


def write_tool(root: Path, stdout: str = "", stderr: str = "", exit_code: int = 0, sleep: float = 0) -> Path:
    """Install an executable ``bin/codeownership`` shell script under ``root``.

    The script also records its arguments in ``bin/args.txt``.
    """
    tool = root / "bin" / "codeownership"
    tool.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        "#!/bin/sh",
        'printf "%s\\n" "$@" > "$(dirname "$0")/args.txt"',
    ]
    if sleep:
        lines.append(f"sleep {sleep}")
    if stdout:
        lines.append(f"cat <<'__OUT__'\n{stdout}\n__OUT__")
    if stderr:
        lines.append(f"cat >&2 <<'__ERR__'\n{stderr}\n__ERR__")
    lines.append(f"exit {exit_code}")
    tool.write_text("\n".join(lines) + "\n", encoding="utf-8")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return tool


class ScriptedOracle:
    """In-memory oracle with per-path answers and optional gates.

    A gated path blocks inside ``query`` until its event is set, which lets
    tests hold a resolution in flight.
    """

    def __init__(self, results: dict[str, OracleResult] | None = None, default: OracleResult | None = None) -> None:
        self.results = results or {}
        self.default = default if default is not None else payload()
        self.calls: list[tuple[Path, str]] = []
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, relative_path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[relative_path] = event
        return event

    async def query(self, root: Path, relative_path: str) -> OracleResult:
        self.calls.append((root, relative_path))
        gate = self.gates.get(relative_path)
        if gate is not None:
            await gate.wait()
        return self.results.get(relative_path, self.default)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Keep CODE_OWNERSHIP_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("CODE_OWNERSHIP_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with no artificial latency and no .env file."""
    return AppConfig(_env_file=None, min_visible_latency=0.0)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceRoot:
    """A configured workspace: has bin/codeownership and a Payments team config."""
    root = tmp_path / "monolith"
    (root / "app" / "models").mkdir(parents=True)
    (root / "app" / "models" / "user.rb").write_text("class User; end\n", encoding="utf-8")
    (root / "teams").mkdir()
    (root / "teams" / "payments.yml").write_text(
        "name: Payments\nslack:\n  room_for_humans: \"#payments-eng\"\n",
        encoding="utf-8",
    )
    write_tool(root, stdout=json.dumps({"team_name": "Payments", "team_yml": "teams/payments.yml"}))
    return WorkspaceRoot(name="monolith", path=root)


@pytest.fixture
def bare_workspace(tmp_path: Path) -> WorkspaceRoot:
    """A workspace without ownership tooling."""
    root = tmp_path / "scratch"
    (root / "src").mkdir(parents=True)
    return WorkspaceRoot(name="scratch", path=root)


@pytest.fixture
def status() -> StatusStateMachine:
    return StatusStateMachine()


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()
