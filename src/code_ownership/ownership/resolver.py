"""Per-workspace ownership resolver.

A resolver owns one workspace's state.  It probes once whether the ownership
tool is installed, then resolves files on request::

    oracle.query -> parser.parse -> enricher.enrich -> status

Every ``resolve`` call takes a new request id.  A resolution only touches the
shared status if its id is still the latest one when it finishes; otherwise
its result is logged and dropped.  Nothing is locked: ordering is enforced by
the counter alone.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from urllib.parse import quote

from code_ownership.ownership.enricher import ConfigEnricher
from code_ownership.ownership.oracle import DEFAULT_TOOL_PATH, Oracle
from code_ownership.ownership.parser import NoOwner, ValidationFailure, parse
from code_ownership.ownership.protocol import (
    Action,
    OracleFailure,
    OracleResult,
    Outcome,
    OwnershipRecord,
    Phase,
    Resolution,
    ResolverDisposedError,
    WorkspaceRoot,
    WorkspaceState,
)
from code_ownership.ownership.status import StatusStateMachine

logger = logging.getLogger("code_ownership.ownership.resolver")

DEFAULT_MIN_VISIBLE_LATENCY = 0.05  # seconds
VIEW_TEAM_CONFIG = "View team config"


def normalize_path(path: str | Path) -> Path:
    """Absolute, normalized form of ``path`` (no symlink resolution)."""
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))


def build_actions(team_config_path: Path, channel: str | None) -> tuple[Action, ...]:
    """Actions for a record: optional Slack channel, then the team config."""
    actions: list[Action] = []
    if channel:
        actions.append(Action(
            title=f"Slack: #{channel}",
            target=f"https://slack.com/app_redirect?channel={quote(channel)}",
        ))
    actions.append(Action(title=VIEW_TEAM_CONFIG, target=team_config_path.as_uri()))
    return tuple(actions)


class WorkspaceResolver:
    """Resolves ownership for files inside one workspace root."""

    def __init__(
        self,
        root: WorkspaceRoot,
        oracle: Oracle,
        status: StatusStateMachine,
        enricher: ConfigEnricher | None = None,
        *,
        probe_path: str | None = DEFAULT_TOOL_PATH,
        min_visible_latency: float = DEFAULT_MIN_VISIBLE_LATENCY,
    ) -> None:
        self.root = root
        self.root_path = normalize_path(root.path)
        self.oracle = oracle
        self.status = status
        self.enricher = enricher
        self.probe_path = probe_path
        self.min_visible_latency = min_visible_latency
        self.state = WorkspaceState(root=root)
        self._probe_task: asyncio.Task[bool] | None = None
        self._disposed = False

    @property
    def configured(self) -> bool | None:
        return self.state.configured

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Configuration probe
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[bool]:
        """Schedule the configuration probe (at most once) and return its task."""
        if self._disposed:
            raise ResolverDisposedError(f"Resolver for {self.root.name!r} was disposed")
        if self._probe_task is None:
            self._probe_task = asyncio.create_task(
                self._probe(),
                name=f"probe-{self.root.name}",
            )
        return self._probe_task

    async def _probe(self) -> bool:
        if self.probe_path is None:
            self.state.configured = True
            return True

        tool = self.root_path / self.probe_path
        try:
            exists = await asyncio.to_thread(tool.exists)
        except OSError as exc:
            logger.warning("Cannot check %s: %s", tool, exc)
            exists = False
        self.state.configured = exists
        if exists:
            logger.info("Workspace %s: ownership tool found at %s", self.root.name, tool)
        else:
            logger.info("Workspace %s: %s not found, ownership not configured", self.root.name, tool)
        return exists

    async def ensure_configured(self) -> bool:
        """Wait for the probe; a probe cancelled by ``dispose`` counts as unconfigured."""
        if self.state.configured is not None:
            return self.state.configured
        probe = self.start()
        # Cancelling this caller must not cancel the shared probe.
        await asyncio.wait({probe})
        if probe.cancelled():
            return False
        return probe.result()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        """Supersede any in-flight resolution without starting a new one."""
        self.state.request_id += 1

    def dispose(self) -> None:
        """Stop applying results; in-flight resolutions become stale.

        A probe that has not finished yet is cancelled.
        """
        self._disposed = True
        self.invalidate()
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
        logger.debug("Workspace %s: resolver disposed", self.root.name)

    def _is_current(self, request_id: int) -> bool:
        return not self._disposed and request_id == self.state.request_id

    async def resolve(self, file_path: str | Path) -> Resolution | None:
        """Resolve ownership of ``file_path`` and publish it to the status.

        Returns:
            The applied Resolution, or None when the result was superseded
            by a newer request or the resolver was disposed.

        Raises:
            ValueError: if ``file_path`` is outside this workspace.
        """
        if self._disposed:
            logger.debug("Workspace %s: ignoring request on disposed resolver", self.root.name)
            return None

        path = normalize_path(file_path)
        relative = path.relative_to(self.root_path).as_posix()

        self.state.request_id += 1
        request_id = self.state.request_id

        configured = await self.ensure_configured()
        if not self._is_current(request_id):
            return self._discard(request_id, path)

        if not configured:
            self.state.last_record = None
            self.status.apply(Phase.IDLE, None, False)
            return Resolution(Outcome.NO_OWNER, str(path), detail="not configured")

        self.status.apply(Phase.WORKING, None, True)
        await asyncio.sleep(self.min_visible_latency)
        if not self._is_current(request_id):
            return self._discard(request_id, path)

        try:
            result = await self.oracle.query(self.root_path, relative)
            resolution = await self._evaluate(result, path)
        except Exception as exc:
            logger.exception("Workspace %s: resolution of %s crashed", self.root.name, relative)
            resolution = Resolution(Outcome.ERROR, str(path), detail=f"unexpected error: {exc}")

        if not self._is_current(request_id):
            return self._discard(request_id, path)
        self._apply(resolution)
        return resolution

    async def _evaluate(self, result: OracleResult, path: Path) -> Resolution:
        if isinstance(result, OracleFailure):
            logger.error(
                "Ownership check failed (%s): %s; command: %s; stderr: %s",
                result.kind.value, result.detail, result.command, result.stderr,
            )
            return Resolution(Outcome.ERROR, str(path), detail=f"{result.kind.value}: {result.detail}")

        parsed = parse(result.raw)
        if isinstance(parsed, ValidationFailure):
            logger.error("Malformed ownership output from %s: %r", result.command, result.raw)
            return Resolution(Outcome.ERROR, str(path), detail=f"{parsed.error.value}: {parsed.detail}")
        if isinstance(parsed, NoOwner):
            return Resolution(Outcome.NO_OWNER, str(path), detail=parsed.reason.value)

        team_config = normalize_path(self.root_path / parsed.team_config_ref)
        channel = await self.enricher.enrich(team_config) if self.enricher else None
        record = OwnershipRecord(
            file_path=str(path),
            team_name=parsed.team_name,
            team_config_path=str(team_config),
            actions=build_actions(team_config, channel),
        )
        return Resolution(Outcome.OWNED, str(path), record=record)

    def _apply(self, resolution: Resolution) -> None:
        self.state.resolutions += 1
        self.state.last_record = resolution.record
        if resolution.outcome == Outcome.ERROR:
            self.state.failures += 1
            self.status.apply(Phase.ERROR, None, True, error=resolution.detail)
        else:
            self.status.apply(Phase.IDLE, resolution.record, True)
        logger.info(
            "Workspace %s: %s -> %s%s",
            self.root.name,
            resolution.file_path,
            resolution.outcome.value,
            f" ({resolution.record.team_name})" if resolution.record else "",
        )

    def _discard(self, request_id: int, path: Path) -> None:
        logger.debug(
            "Workspace %s: discarding stale result for %s (request %d, latest %d)",
            self.root.name, path, request_id, self.state.request_id,
        )
        return None
