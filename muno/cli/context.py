from __future__ import annotations

from dataclasses import dataclass

import typer

from muno.core.errors import ErrorCode
from muno.core.result import Err
from muno.core.settings import Settings, load_settings
from muno.core.workspace import Workspace, detect_workspace
from muno.output.console import ConsoleProtocol, RichConsole, Style
from muno.output.errors import print_tree_error, tree_error_exit_code
from muno.services.manager import WorkspaceManager


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    settings: Settings
    console: ConsoleProtocol
    manager: WorkspaceManager


def build_context(*, stderr: bool = False) -> CLIContext:
    """Detect the workspace, read its settings and load its tree.

    Commands whose stdout is consumed by the shell (`path`, `use`) pass
    ``stderr=True`` so that diagnostics stay out of it.
    """
    console = RichConsole(stderr=stderr)
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        console.error(workspace_result.error.message)
        if workspace_result.error.hint:
            console.print(f"hint: {workspace_result.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.WORKSPACE_ERROR))

    workspace = workspace_result.value

    settings = Settings()
    if workspace.settings_path.exists():
        settings_result = load_settings(workspace.settings_path)
        if isinstance(settings_result, Err):
            console.warning(f"{settings_result.error.message} (using defaults)")
        else:
            settings = settings_result.value

    manager = WorkspaceManager(workspace, console=console, settings=settings)
    loaded = manager.load()
    if isinstance(loaded, Err):
        print_tree_error(loaded.error, console)
        raise typer.Exit(code=tree_error_exit_code(loaded.error))

    return CLIContext(workspace=workspace, settings=settings, console=console, manager=manager)
