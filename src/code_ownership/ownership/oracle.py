"""Ownership oracles: the things that answer "who owns this file".

Every oracle implements :class:`Oracle` and returns an ``OracleResult``
instead of raising, so the resolver decides how a failure is presented.

Available oracles (selected with ``CODE_OWNERSHIP_ORACLE``):

- ``tool``        runs ``bin/codeownership for_file <path> --json``
- ``codeowners``  matches the path against ``.github/CODEOWNERS``
- ``mock``        random answers with random latency, for demos
"""

from __future__ import annotations

import asyncio
import json
import logging
import posixpath
import random
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import pathspec

from code_ownership.ownership.protocol import (
    UNOWNED_SENTINEL,
    FailureKind,
    OracleFailure,
    OraclePayload,
    OracleResult,
    UnknownOracleError,
)

if TYPE_CHECKING:
    from code_ownership.config import AppConfig

logger = logging.getLogger("code_ownership.ownership.oracle")

DEFAULT_TOOL_PATH = "bin/codeownership"
DEFAULT_CODEOWNERS_PATH = ".github/CODEOWNERS"


class Oracle(Protocol):
    """Capability shared by all ownership oracles."""

    async def query(self, root: Path, relative_path: str) -> OracleResult:
        ...


# ---------------------------------------------------------------------------
# External tool
# ---------------------------------------------------------------------------

class ToolOracle:
    """Invokes the workspace's ownership tool as a subprocess."""

    def __init__(self, tool_path: str = DEFAULT_TOOL_PATH, timeout: float | None = None) -> None:
        self.tool_path = tool_path
        self.timeout = timeout

    def command(self, root: Path, relative_path: str) -> list[str]:
        return [str(root / self.tool_path), "for_file", relative_path, "--json"]

    async def query(self, root: Path, relative_path: str) -> OracleResult:
        cmd = self.command(root, relative_path)
        cmdline = shlex.join([self.tool_path, *cmd[1:]])
        logger.info("command: %s", cmdline)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(root),
            )
        except OSError as exc:
            logger.error("Failed to launch %s: %s", cmdline, exc)
            return OracleFailure(FailureKind.PROCESS_FAILURE, f"failed to launch: {exc}", command=cmdline)

        try:
            stdout_b, stderr_b = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Command timed out after %.1fs: %s", self.timeout, cmdline)
            try:
                process.kill()
            except ProcessLookupError:
                pass  # Already exited
            await process.wait()
            return OracleFailure(
                FailureKind.TIMEOUT,
                f"timed out after {self.timeout}s",
                command=cmdline,
            )

        stdout = stdout_b.decode("utf-8", errors="replace").strip()
        stderr = stderr_b.decode("utf-8", errors="replace").strip()
        logger.info("stdout: %s", stdout)
        if stderr:
            logger.info("stderr: %s", stderr)

        if process.returncode != 0:
            logger.error("Command exited with code %s: %s", process.returncode, cmdline)
            return OracleFailure(
                FailureKind.PROCESS_FAILURE,
                f"exited with code {process.returncode}",
                command=cmdline,
                stderr=stderr,
                exit_code=process.returncode,
            )
        if stderr:
            logger.error("Command wrote to stderr: %s", cmdline)
            return OracleFailure(
                FailureKind.PROCESS_FAILURE,
                "wrote to stderr",
                command=cmdline,
                stderr=stderr,
                exit_code=process.returncode,
            )
        if not stdout:
            return OracleFailure(FailureKind.EMPTY_OUTPUT, "no output", command=cmdline, exit_code=0)

        return OraclePayload(raw=stdout, command=cmdline)


# ---------------------------------------------------------------------------
# CODEOWNERS file
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CodeownersRule:
    """One CODEOWNERS line: a gitignore-style pattern and its owners."""
    pattern: str
    owners: tuple[str, ...]
    spec: pathspec.PathSpec = field(repr=False, compare=False)

    @classmethod
    def compile(cls, pattern: str, owners: tuple[str, ...] = ()) -> "CodeownersRule":
        return cls(pattern, owners, pathspec.PathSpec.from_lines("gitwildmatch", [pattern]))

    def matches(self, relative_path: str) -> bool:
        path = relative_path.lstrip("/")
        if not self.spec.match_file(path):
            return False
        if self.pattern.endswith("/*"):
            # "dir/*" owns the files directly inside dir, not nested ones.
            parent = posixpath.dirname(path)
            return not (parent and self.spec.match_file(parent))
        return True


def parse_codeowners(text: str) -> list[CodeownersRule]:
    """Parse CODEOWNERS text into rules in file order; bad patterns are skipped."""
    rules: list[CodeownersRule] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        pattern, *owners = line.split()
        try:
            rules.append(CodeownersRule.compile(pattern, tuple(owners)))
        except ValueError as exc:
            logger.warning("Skipping CODEOWNERS line %d (%s): %s", lineno, pattern, exc)
    return rules


def codeowners_match(pattern: str, relative_path: str) -> bool:
    """Match a workspace-relative POSIX path against a single CODEOWNERS pattern."""
    return CodeownersRule.compile(pattern).matches(relative_path)


class CodeownersOracle:
    """Answers from a GitHub-style CODEOWNERS file; the last matching rule wins."""

    def __init__(self, codeowners_path: str = DEFAULT_CODEOWNERS_PATH) -> None:
        self.codeowners_path = codeowners_path

    async def query(self, root: Path, relative_path: str) -> OracleResult:
        source = root / self.codeowners_path
        logger.info("codeowners: %s for %s", source, relative_path)
        try:
            text = await asyncio.to_thread(source.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read %s: %s", source, exc)
            return OracleFailure(FailureKind.PROCESS_FAILURE, f"cannot read {self.codeowners_path}: {exc}")

        team_name = UNOWNED_SENTINEL
        for rule in parse_codeowners(text):
            if rule.matches(relative_path):
                team_name = rule.owners[0] if rule.owners else UNOWNED_SENTINEL

        payload = json.dumps({"team_name": team_name, "team_yml": self.codeowners_path})
        logger.info("stdout: %s", payload)
        return OraclePayload(raw=payload, command=f"codeowners {relative_path}")


# ---------------------------------------------------------------------------
# Mock
# ---------------------------------------------------------------------------

class MockOracle:
    """Random ownership data, useful for exercising the presentation layer."""

    def __init__(
        self,
        seed: int | None = None,
        max_latency: float = 1.0,
        unowned_rate: float = 0.5,
        failure_rate: float = 0.01,
    ) -> None:
        self._rng = random.Random(seed)
        self.max_latency = max_latency
        self.unowned_rate = unowned_rate
        self.failure_rate = failure_rate

    async def query(self, root: Path, relative_path: str) -> OracleResult:
        await asyncio.sleep(self._rng.random() * self.max_latency)
        roll = self._rng.random()
        if roll < self.failure_rate:
            return OracleFailure(FailureKind.PROCESS_FAILURE, "mock failure", command="mock")
        team = UNOWNED_SENTINEL if roll < self.failure_rate + self.unowned_rate else "Some Team"
        return OraclePayload(
            raw=json.dumps({"team_name": team, "team_yml": relative_path}),
            command="mock",
        )


def create_oracle(config: AppConfig) -> Oracle:
    """Build the oracle named by ``config.oracle``."""
    kind = config.oracle
    if kind == "tool":
        return ToolOracle(config.tool_path, timeout=config.oracle_timeout)
    if kind == "codeowners":
        return CodeownersOracle(config.codeowners_path)
    if kind == "mock":
        return MockOracle(seed=config.mock_seed)
    raise UnknownOracleError(f"Unknown oracle {kind!r}")
