"""Error presentation utilities.

Centralized wording and exit code mapping for tree errors, so that the CLI,
the executor's inline reports and the resolver's warnings all read the same.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from muno.core.errors import ErrorCode
from muno.output.console import Style
from muno.tree.errors import (
    CloneFailed,
    ConfigCycle,
    ConfigInvalid,
    GitActionFailed,
    NodeConflict,
    NotInitialized,
    PathNotFound,
    PersistFailed,
    PhysicalMissing,
    TreeError,
)

if TYPE_CHECKING:
    from muno.output.console import ConsoleProtocol

__all__ = ["describe_tree_error", "print_tree_error", "tree_error_exit_code", "tree_error_hint"]


def describe_tree_error(error: TreeError) -> str:
    """One-line message for a tree error."""
    match error:
        case NotInitialized(workspace=workspace):
            where = f" at {workspace}" if workspace else ""
            return f"workspace not initialized{where}"
        case PathNotFound(path=path, segment=segment, parent=parent):
            return f"path does not exist: {path} (no node '{segment}' under {parent})"
        case PhysicalMissing(path=path, physical=physical):
            return f"path does not exist on disk: {path} ({physical})"
        case ConfigCycle(chain=chain):
            return "config reference cycle: " + " -> ".join(str(p) for p in chain)
        case ConfigInvalid(path=path, reason=reason):
            return f"invalid tree config {path}: {reason}"
        case CloneFailed(path=path, url=url, message=message):
            return f"clone failed for {path} ({url}): {message}"
        case GitActionFailed(path=path, action=action, message=message):
            return f"{action} failed at {path}: {message}"
        case PersistFailed(path=path, message=message):
            return f"could not save {path}: {message}"
        case NodeConflict(path=path, reason=reason):
            return f"{path}: {reason}"


def tree_error_hint(error: TreeError) -> str | None:
    match error:
        case NotInitialized():
            return "run `muno init` first"
        case PhysicalMissing(lazy=True):
            return "the node is lazy; pass --ensure to clone it"
        case PhysicalMissing():
            return "run `muno clone` to materialize it"
        case PathNotFound(parent=parent):
            return f"run `muno list {parent}` to see available nodes"
        case _:
            return None


def print_tree_error(error: TreeError, console: ConsoleProtocol) -> None:
    """Print a fatal tree error with its hint, if any."""
    console.error(describe_tree_error(error))
    hint = tree_error_hint(error)
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def tree_error_exit_code(error: TreeError) -> int:
    match error:
        case NotInitialized():
            return int(ErrorCode.WORKSPACE_ERROR)
        case PathNotFound() | NodeConflict():
            return int(ErrorCode.USER_ERROR)
        case ConfigCycle() | ConfigInvalid():
            return int(ErrorCode.CONFIG_ERROR)
        case CloneFailed() | GitActionFailed():
            return int(ErrorCode.GIT_ERROR)
        case PhysicalMissing() | PersistFailed():
            return int(ErrorCode.IO_ERROR)
