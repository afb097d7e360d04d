"""Process-wide ownership context.

Owns the status state machine, the oracle and the router, and exposes the
callbacks an editor integration drives:

- ``on_active_file_changed(path | None)``
- ``on_workspaces_changed(added, removed)``
- ``request_rerun(path | None)``

Usage:
    async with OwnershipContext.from_config(get_config()) as ctx:
        await ctx.start([WorkspaceRoot("repo", Path("/src/repo"))])
        await ctx.on_active_file_changed("/src/repo/app/models/user.rb")
        print(ctx.status.label())
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Coroutine, Iterable

from code_ownership.config import AppConfig, get_config
from code_ownership.monitoring.output import OutputChannelHandler, setup_logging, teardown_logging
from code_ownership.ownership.enricher import ConfigEnricher
from code_ownership.ownership.oracle import Oracle, create_oracle
from code_ownership.ownership.protocol import Action, Resolution, WorkspaceRoot
from code_ownership.ownership.resolver import WorkspaceResolver, normalize_path
from code_ownership.ownership.router import Router
from code_ownership.ownership.status import StatusStateMachine

logger = logging.getLogger("code_ownership.ownership.context")


@dataclass(frozen=True)
class OwnershipInfo:
    """What the "show ownership info" command displays."""
    message: str
    actions: tuple[Action, ...]


class OwnershipContext:
    """Constructs and owns every long-lived piece of the engine."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        oracle: Oracle | None = None,
        enricher: ConfigEnricher | None = None,
        status: StatusStateMachine | None = None,
        channel: OutputChannelHandler | None = None,
    ) -> None:
        self.config = config or get_config()
        self.oracle = oracle or create_oracle(self.config)
        self.enricher = enricher or ConfigEnricher()
        self.status = status or StatusStateMachine()
        self.channel = channel
        self.router = Router(self._create_resolver)
        self.active_file: Path | None = None
        self._tasks: set[asyncio.Task[Resolution | None]] = set()
        self._owns_channel = False
        self._closed = False

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> "OwnershipContext":
        """Build a context with its own output channel attached to logging."""
        channel = setup_logging(config.log_level.value, config.log_file)
        ctx = cls(config, channel=channel, **kwargs)
        ctx._owns_channel = True
        return ctx

    def _create_resolver(self, root: WorkspaceRoot) -> WorkspaceResolver:
        return WorkspaceResolver(
            root,
            self.oracle,
            self.status,
            self.enricher,
            probe_path=self.config.probe_path,
            min_visible_latency=self.config.min_visible_latency,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        workspaces: Iterable[WorkspaceRoot] = (),
        active_file: str | Path | None = None,
    ) -> Resolution | None:
        """Track the initial workspaces and resolve the initial active file."""
        self.router.update(workspaces, ())
        logger.info("Extension activated (oracle=%s)", self.config.oracle.value)
        task = self.on_active_file_changed(active_file)
        return await task if task else None

    async def shutdown(self) -> None:
        """Dispose every resolver and drop pending resolutions."""
        if self._closed:
            return
        self._closed = True
        self.router.dispose_all()
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Extension deactivated")
        if self._owns_channel and self.channel is not None:
            teardown_logging(self.channel)

    async def __aenter__(self) -> "OwnershipContext":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Presentation callbacks
    # ------------------------------------------------------------------

    def on_active_file_changed(self, path: str | Path | None) -> asyncio.Task[Resolution | None] | None:
        """Focus moved to ``path`` (None: no active file).

        Returns the spawned resolution task, or None when nothing was started.
        """
        if self._closed:
            return None
        if path is None:
            self.active_file = None
            self.router.blur()
            self.status.set_visible(False)
            return None

        self.active_file = normalize_path(path)
        if self.router.match(self.active_file) is None:
            self.router.blur()
            self.status.set_visible(False)
            return None

        self.status.set_visible(True)
        return self._spawn(self.router.route_and_run(self.active_file))

    def on_workspaces_changed(
        self,
        added: Iterable[WorkspaceRoot] = (),
        removed: Iterable[WorkspaceRoot] = (),
    ) -> asyncio.Task[Resolution | None] | None:
        """Workspace folders were added or removed.

        Re-resolves the active file when it now belongs to a different resolver.
        """
        if self._closed:
            return None
        self.router.update(added, removed)
        if self.active_file is None:
            return None
        resolver = self.router.match(self.active_file)
        if resolver is None:
            self.status.set_visible(False)
            return None
        if resolver is self.router.focused:
            return None
        return self.on_active_file_changed(self.active_file)

    def request_rerun(self, path: str | Path | None = None) -> asyncio.Task[Resolution | None] | None:
        """Resolve ``path`` again, defaulting to the active file."""
        target = path if path is not None else self.active_file
        if target is None:
            return None
        return self.on_active_file_changed(target)

    def ownership_info(self) -> OwnershipInfo | None:
        """Message and actions for the current owner, if any."""
        record = self.status.snapshot.record
        if record is None:
            return None
        filename = Path(record.file_path).name
        return OwnershipInfo(
            message=f"{filename} is owned by {record.team_name}",
            actions=record.actions,
        )

    async def wait_idle(self) -> None:
        """Wait for every spawned resolution to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _spawn(
        self, coro: Coroutine[Any, Any, Resolution | None]
    ) -> asyncio.Task[Resolution | None]:
        task = asyncio.create_task(coro, name="ownership-resolution")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
