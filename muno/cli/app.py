from __future__ import annotations

import os
from pathlib import Path

import typer

from muno import __version__
from muno.cli.commands.edit import add, remove
from muno.cli.commands.git_ops import clone, commit, pull, push, status
from muno.cli.commands.init_cmd import init
from muno.cli.commands.navigate import current, path, use
from muno.cli.commands.view import list_nodes, tree
from muno.core.errors import ErrorCode
from muno.core.workspace import WORKSPACE_ENV_VAR


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Workspace
app.command()(init)
app.command()(add)
app.command()(remove)

# Navigation
app.command()(use)
app.command()(current)
app.command()(path)
app.command()(tree)
app.command("list")(list_nodes)

# Git
app.command()(clone)
app.command()(pull)
app.command()(push)
app.command()(status)
app.command()(commit)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        help="Workspace root (overrides auto detection)",
    ),
) -> None:
    if workspace is not None:
        try:
            root = workspace.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --workspace: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --workspace '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.WORKSPACE_ERROR))

        os.environ[WORKSPACE_ENV_VAR] = str(root)


def main() -> None:
    app()
