"""
CLI interface for code-ownership.

Usage:
    code-ownership for-file app/models/user.rb
    code-ownership for-file --workspace ~/src/monolith --json app/models/user.rb
    code-ownership watch --workspace ~/src/monolith < paths.txt
    code-ownership config --json
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import click
from dotenv import load_dotenv

from code_ownership import __version__

# ---------------------------------------------------------------------------
# Load .env early so all config reads pick up the values
# ---------------------------------------------------------------------------
load_dotenv()

RERUN_COMMAND = "rerun"
INFO_COMMAND = "info"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _workspace_roots(directories: tuple[str, ...]) -> list:
    """Turn ``--workspace`` options into WorkspaceRoot objects (default: cwd)."""
    from code_ownership.ownership.protocol import WorkspaceRoot
    from code_ownership.ownership.resolver import normalize_path

    paths = [normalize_path(d) for d in directories] or [normalize_path(Path.cwd())]
    roots: list[WorkspaceRoot] = []
    seen: set[str] = set()
    for path in paths:
        name = path.name or str(path)
        if name in seen:
            name = str(path)
        seen.add(name)
        roots.append(WorkspaceRoot(name=name, path=path))
    return roots


def _snapshot_dict(snapshot) -> dict:
    data = asdict(snapshot)
    data["phase"] = snapshot.phase.value
    return data


def _configure_stderr_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
            stream=sys.stderr,
        )


# ---------------------------------------------------------------------------
# Click group
# ---------------------------------------------------------------------------

@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(__version__, "-V", "--version", prog_name="code-ownership")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log to stderr.")
def cli(verbose: bool) -> None:
    """Code Ownership -- which team owns this file?"""
    _configure_stderr_logging(verbose)


# ---------------------------------------------------------------------------
# code-ownership for-file
# ---------------------------------------------------------------------------

@cli.command("for-file")
@click.argument("path", type=click.Path())
@click.option(
    "-w",
    "--workspace",
    "workspaces",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Workspace root (repeatable). [default: current directory]",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
def for_file(path: str, workspaces: tuple[str, ...], as_json: bool) -> None:
    """Resolve the owner of a single file."""
    from code_ownership.config import get_config
    from code_ownership.ownership.context import OwnershipContext
    from code_ownership.ownership.protocol import Phase
    from code_ownership.ownership.status import label_for

    roots = _workspace_roots(workspaces)

    async def _run():
        async with OwnershipContext.from_config(get_config()) as ctx:
            resolution = await ctx.start(roots, active_file=path)
            return resolution, ctx.status.snapshot, ctx.ownership_info()

    resolution, snapshot, info = asyncio.run(_run())

    if as_json:
        data = {
            "file": path,
            "status": _snapshot_dict(snapshot),
            "label": label_for(snapshot).text,
            "message": info.message if info else None,
        }
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        click.echo(label_for(snapshot).text)
        if info:
            click.echo(info.message)
            for action in info.actions:
                click.echo(f"  {action.title}: {action.target}")

    if resolution is None and not snapshot.visible:
        click.echo(f"{path} is not inside any workspace", err=True)
        raise SystemExit(2)
    if snapshot.phase == Phase.ERROR:
        click.echo(f"Error: {snapshot.error}", err=True)
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# code-ownership watch
# ---------------------------------------------------------------------------

@cli.command()
@click.option(
    "-w",
    "--workspace",
    "workspaces",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Workspace root (repeatable). [default: current directory]",
)
def watch(workspaces: tuple[str, ...]) -> None:
    """Follow active-file changes read from stdin, one path per line.

    A blank line means "no active file", ``rerun`` re-checks the current
    file and ``info`` prints who owns it.
    """
    try:
        asyncio.run(_watch(_workspace_roots(workspaces)))
    except KeyboardInterrupt:
        click.echo("\nStopped.")
        raise SystemExit(130)


async def _watch(roots: list) -> None:
    from code_ownership.config import get_config
    from code_ownership.ownership.context import OwnershipContext
    from code_ownership.ownership.status import label_for

    async with OwnershipContext.from_config(get_config()) as ctx:
        ctx.status.subscribe(
            lambda snapshot: click.echo(label_for(snapshot).text if snapshot.visible else "(hidden)")
        )
        await ctx.start(roots)

        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            entry = line.strip()
            if entry == RERUN_COMMAND:
                ctx.request_rerun()
            elif entry == INFO_COMMAND:
                info = ctx.ownership_info()
                click.echo(info.message if info else "No owner")
            elif entry:
                ctx.on_active_file_changed(entry)
            else:
                ctx.on_active_file_changed(None)

        await ctx.wait_idle()


# ---------------------------------------------------------------------------
# code-ownership config
# ---------------------------------------------------------------------------

@cli.command("config")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
def config_cmd(as_json: bool) -> None:
    """Dump current configuration."""
    from pydantic import ValidationError

    from code_ownership.config import get_config

    try:
        cfg = get_config()
    except ValidationError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        raise SystemExit(1)

    click.echo(cfg.dump_json() if as_json else cfg.dump())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Package entry point (``code-ownership`` console script and ``__main__``)."""
    cli()
