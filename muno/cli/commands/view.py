from __future__ import annotations

from pathlib import Path

import typer

from muno.cli.commands._helpers import unwrap_or_exit
from muno.cli.context import build_context
from muno.tree.listing import render_children, render_tree


def tree(
    target: str = typer.Argument(".", help="Subtree to draw"),
    depth: int = typer.Option(0, "--depth", min=0, help="Levels to draw (0: all)"),
) -> None:
    """Draw the workspace tree."""
    ctx = build_context()
    view = unwrap_or_exit(ctx.manager.view(target, cwd=Path.cwd()), ctx)
    for line in render_tree(view, max_depth=depth):
        ctx.console.print(line)


def list_nodes(
    target: str = typer.Argument(".", help="Node whose children to list"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="List the whole subtree"),
) -> None:
    """List the children of a node."""
    ctx = build_context()
    view = unwrap_or_exit(ctx.manager.view(target, recursive=recursive, cwd=Path.cwd()), ctx)
    lines = render_tree(view) if recursive else render_children(view)
    for line in lines:
        ctx.console.print(line)
