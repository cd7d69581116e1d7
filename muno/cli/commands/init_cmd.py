from __future__ import annotations

import os
from pathlib import Path

import typer

from muno.core.errors import ErrorCode
from muno.core.result import Err, Ok
from muno.core.settings import load_settings_or_default
from muno.core.workspace import WORKSPACE_ENV_VAR
from muno.output.console import RichConsole, Style
from muno.output.errors import describe_tree_error, tree_error_exit_code
from muno.services.manager import init_workspace


def init(
    name: str | None = typer.Argument(None, help="Workspace name (default: directory name)"),
    path: Path | None = typer.Option(
        None,
        "--path",
        help="Directory to initialize (default: --workspace, or the current dir)",
    ),
) -> None:
    """Create a new workspace."""
    console = RichConsole()
    start = path or Path(os.environ.get(WORKSPACE_ENV_VAR) or ".")
    try:
        root = start.expanduser().resolve()
    except OSError as e:
        console.error(f"invalid path: {e}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR)) from e

    if not root.is_dir():
        console.error(f"not a directory: {root}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    settings = load_settings_or_default(root / ".muno" / "config.toml")
    match init_workspace(root, name=name, settings=settings):
        case Err(e):
            console.error(describe_tree_error(e))
            raise typer.Exit(code=tree_error_exit_code(e))
        case Ok(config_file):
            console.success(f"initialized workspace '{name or root.name}' at {root}")
            console.print(f"config: {config_file}", Style.DIM)
            console.print("next: muno add <repo-url>", Style.DIM)
