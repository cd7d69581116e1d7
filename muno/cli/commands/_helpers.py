"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from muno.core.result import Err, Result
from muno.output.errors import print_tree_error, tree_error_exit_code
from muno.tree.errors import TreeError

if TYPE_CHECKING:
    from muno.cli.context import CLIContext


def unwrap_or_exit[T](result: Result[T, TreeError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its code.

    Replaces the common pattern:
        if isinstance(result, Err):
            print_tree_error(result.error, ctx.console)
            raise typer.Exit(code=tree_error_exit_code(result.error))
    """
    if isinstance(result, Err):
        print_tree_error(result.error, ctx.console)
        raise typer.Exit(code=tree_error_exit_code(result.error))
    return result.value
