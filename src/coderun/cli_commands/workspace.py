"""``coderun workspace`` — manage workspace files."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from rich.markup import escape

from coderun.cli_commands._output import console
from coderun.config import CONFIG_ENV_VAR, load_settings
from coderun.engine.errors import CodeRunError
from coderun.workspace.store import FileWorkspaceStore


@click.group()
@click.option("--config", "config_path", envvar=CONFIG_ENV_VAR, default=None, help="Settings YAML file.")
@click.pass_context
def workspace(ctx: click.Context, config_path: str | None) -> None:
    """Create workspaces and manage their files."""
    try:
        settings = load_settings(config_path)
    except CodeRunError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)
    ctx.obj = FileWorkspaceStore(settings.workspace_root)


@workspace.command("create")
@click.pass_obj
def create_cmd(store: FileWorkspaceStore) -> None:
    """Create a workspace seeded with hello-world sources."""
    click.echo(store.create())


@workspace.command("ls")
@click.argument("workspace_id")
@click.pass_obj
def ls_cmd(store: FileWorkspaceStore, workspace_id: str) -> None:
    """List the files of WORKSPACE_ID."""
    with _store_errors():
        for name in store.list(workspace_id):
            click.echo(name)


@workspace.command("cat")
@click.argument("workspace_id")
@click.argument("filename")
@click.pass_obj
def cat_cmd(store: FileWorkspaceStore, workspace_id: str, filename: str) -> None:
    """Print FILENAME from WORKSPACE_ID."""
    with _store_errors():
        click.echo(store.read(workspace_id, filename), nl=False)


@workspace.command("put")
@click.argument("workspace_id")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", default=None, help="Target filename (defaults to SOURCE's name).")
@click.pass_obj
def put_cmd(store: FileWorkspaceStore, workspace_id: str, source: str, name: str | None) -> None:
    """Save SOURCE into WORKSPACE_ID."""
    path = Path(source)
    with _store_errors():
        store.write(workspace_id, name or path.name, path.read_text(encoding="utf-8"))


@workspace.command("rm")
@click.argument("workspace_id")
@click.argument("filename")
@click.pass_obj
def rm_cmd(store: FileWorkspaceStore, workspace_id: str, filename: str) -> None:
    """Delete FILENAME from WORKSPACE_ID."""
    with _store_errors():
        store.delete(workspace_id, filename)


@contextmanager
def _store_errors() -> Iterator[None]:
    """Turn store failures into a red message and exit status 1."""
    try:
        yield
    except (CodeRunError, OSError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)
