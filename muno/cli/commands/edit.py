from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer

from muno.cli.commands._helpers import unwrap_or_exit
from muno.cli.context import build_context
from muno.core.errors import ErrorCode
from muno.core.settings import FetchMode
from muno.output.console import Style


class FetchOption(str, Enum):
    eager = "eager"
    lazy = "lazy"
    auto = "auto"


def add(
    url: str = typer.Argument(..., help="Repository URL"),
    name: str | None = typer.Option(None, "--name", help="Node name (default: from the URL)"),
    lazy: bool = typer.Option(False, "--lazy", help="Shorthand for --fetch lazy"),
    fetch: FetchOption | None = typer.Option(None, "--fetch", help="eager | lazy | auto"),
    to: str = typer.Option(".", "--to", help="Parent tree path (default: current node)"),
) -> None:
    """Add a repository to the tree."""
    ctx = build_context()
    if lazy and fetch not in (None, FetchOption.lazy):
        ctx.console.error("--lazy conflicts with --fetch " + fetch.value)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    mode: FetchMode | None = "lazy" if lazy else (fetch.value if fetch else None)
    node = unwrap_or_exit(
        ctx.manager.add(url, name=name, fetch=mode, parent=to, cwd=Path.cwd()), ctx
    )
    if node.is_cloned:
        ctx.console.success(f"added {node.path} (cloned)")
    else:
        ctx.console.success(f"added {node.path} (lazy)")
        ctx.console.print(f"clone it with: muno clone {node.path}", Style.DIM)


def remove(
    name: str = typer.Argument(..., help="Child of the current node to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    keep_files: bool = typer.Option(False, "--keep-files", help="Leave the directory on disk"),
) -> None:
    """Remove a node, its directory and its config entry."""
    ctx = build_context()
    if not yes:
        what = "from the tree" if keep_files else "and delete its files"
        typer.confirm(f"Remove '{name}' {what}?", abort=True)

    node = unwrap_or_exit(
        ctx.manager.remove(name, delete_files=not keep_files, cwd=Path.cwd()), ctx
    )
    ctx.console.success(f"removed {node.path}")
