"""Routes files to the resolver of the workspace that contains them."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

from code_ownership.ownership.protocol import Resolution, WorkspaceRoot
from code_ownership.ownership.resolver import WorkspaceResolver, normalize_path

logger = logging.getLogger("code_ownership.ownership.router")

ResolverFactory = Callable[[WorkspaceRoot], WorkspaceResolver]


class Router:
    """Tracks one resolver per workspace name.

    When roots are nested, the longest containing root wins.  When focus
    moves to a file in another workspace, the previously focused resolver is
    invalidated so a late result there cannot overwrite the new status.
    """

    def __init__(self, factory: ResolverFactory) -> None:
        self._factory = factory
        self._resolvers: dict[str, WorkspaceResolver] = {}
        self._focused: WorkspaceResolver | None = None

    @property
    def resolvers(self) -> dict[str, WorkspaceResolver]:
        return dict(self._resolvers)

    @property
    def focused(self) -> WorkspaceResolver | None:
        return self._focused

    def add(self, root: WorkspaceRoot) -> WorkspaceResolver:
        """Start a fresh resolver for ``root``, replacing one of the same name."""
        self.remove(root.name)
        resolver = self._factory(root)
        resolver.start()
        self._resolvers[root.name] = resolver
        logger.info("Tracking workspace %s at %s", root.name, resolver.root_path)
        return resolver

    def remove(self, name: str) -> bool:
        """Dispose the resolver for workspace ``name``; False if unknown."""
        resolver = self._resolvers.pop(name, None)
        if resolver is None:
            return False
        resolver.dispose()
        if self._focused is resolver:
            self._focused = None
        logger.info("Stopped tracking workspace %s", name)
        return True

    def update(self, added: Iterable[WorkspaceRoot], removed: Iterable[WorkspaceRoot]) -> None:
        for root in removed:
            self.remove(root.name)
        for root in added:
            self.add(root)

    def match(self, file_path: str | Path) -> WorkspaceResolver | None:
        """The resolver whose root is the longest prefix of ``file_path``."""
        path = normalize_path(file_path)
        best: WorkspaceResolver | None = None
        for resolver in self._resolvers.values():
            root = resolver.root_path
            if path != root and not path.is_relative_to(root):
                continue
            if best is None or len(root.parts) > len(best.root_path.parts):
                best = resolver
        return best

    def blur(self) -> None:
        """Drop focus; any in-flight resolution for it becomes stale."""
        if self._focused is not None:
            self._focused.invalidate()
            self._focused = None

    async def route_and_run(self, file_path: str | Path) -> Resolution | None:
        """Resolve ``file_path`` with its workspace's resolver; no-op if none."""
        resolver = self.match(file_path)
        if resolver is None:
            logger.debug("No workspace contains %s", file_path)
            self.blur()
            return None
        if self._focused is not None and self._focused is not resolver:
            self._focused.invalidate()
        self._focused = resolver
        return await resolver.resolve(file_path)

    def dispose_all(self) -> None:
        for name in list(self._resolvers):
            self.remove(name)
        self._focused = None
