"""Navigation commands: path, use, current.

`path` and `use` print a single directory on stdout so that shell functions
can `cd "$(muno use backend)"`; everything else goes to stderr.
"""

from __future__ import annotations

from pathlib import Path

import typer

from muno.cli.commands._helpers import unwrap_or_exit
from muno.cli.context import build_context
from muno.core.result import Err
from muno.output.console import Style
from muno.output.errors import describe_tree_error


def path(
    target: str = typer.Argument(".", help="Tree path (absolute, relative, or ~)"),
    ensure: bool = typer.Option(False, "--ensure", help="Clone the node if it is not on disk"),
    relative: bool = typer.Option(False, "--relative", help="Print the logical tree path"),
) -> None:
    """Print the directory of a tree node."""
    ctx = build_context(stderr=True)
    if relative:
        node = unwrap_or_exit(ctx.manager.locate(target, ensure=ensure, cwd=Path.cwd()), ctx)
        typer.echo(node.path)
        return

    resolved = unwrap_or_exit(ctx.manager.resolve(target, ensure=ensure, cwd=Path.cwd()), ctx)
    typer.echo(str(resolved.path))


def use(
    target: str = typer.Argument(..., help="Tree path to move to, or - for the previous one"),
    ensure: bool = typer.Option(
        True,
        "--ensure/--no-ensure",
        help="Clone the node if it is not on disk",
    ),
) -> None:
    """Move to a tree node and print its directory."""
    ctx = build_context(stderr=True)
    resolved = unwrap_or_exit(ctx.manager.use(target, ensure=ensure, cwd=Path.cwd()), ctx)
    ctx.console.success(f"now at {resolved.node.path}")
    typer.echo(str(resolved.path))


def current() -> None:
    """Print the current tree path, with branch and origin when it is a repository."""
    ctx = build_context(stderr=True)
    position = unwrap_or_exit(ctx.manager.position(Path.cwd()), ctx)
    typer.echo(position)

    details = ctx.manager.describe(position)
    if isinstance(details, Err):
        ctx.console.warning(describe_tree_error(details.error))
    elif details.value is not None:
        ctx.console.print(f"branch: {details.value.branch}", Style.DIM)
        origin = details.value.remotes.get("origin")
        if origin:
            ctx.console.print(f"origin: {origin}", Style.DIM)
