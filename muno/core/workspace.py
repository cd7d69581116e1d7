"""Workspace detection and paths.

A workspace is a directory holding a root tree config (``muno.yaml`` or one
of its alternative names). Cloned repositories may carry their own tree
config, so the workspace root is the *highest* directory with one, not the
nearest.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result

__all__ = [
    "CONFIG_FILE_NAMES",
    "WORKSPACE_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "WorkspaceInfo",
    "WorkspaceSource",
    "detect_workspace",
    "detect_workspace_info",
    "find_config_file",
    "find_workspace_upward",
    "is_workspace_root",
]

CONFIG_FILE_NAMES: tuple[str, ...] = ("muno.yaml", ".muno.yaml", "muno.yml", ".muno.yml")
WORKSPACE_ENV_VAR = "MUNO_WORKSPACE"


@dataclass(frozen=True)
class WorkspaceError:
    """Error when the workspace cannot be detected."""

    message: str
    searched_from: Path | None = None
    hint: str | None = "run `muno init` to create a workspace, or pass --workspace"


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected muno workspace.

    The workspace root contains:
    - the root tree config (muno.yaml)
    - .muno/ with state.json and the optional config.toml (gitignored)
    - the repos directory holding materialized nodes
    """

    root: Path
    config_path: Path

    @property
    def state_dir(self) -> Path:
        """Path to workspace state directory (.muno/)."""
        return self.root / ".muno"

    @property
    def state_path(self) -> Path:
        """Path to navigation state (.muno/state.json)."""
        return self.state_dir / "state.json"

    @property
    def settings_path(self) -> Path:
        """Path to optional tool settings (.muno/config.toml)."""
        return self.state_dir / "config.toml"

    def exists(self) -> bool:
        return self.root.is_dir() and self.config_path.is_file()

    def __str__(self) -> str:
        return str(self.root)


WorkspaceSource = Literal["env", "cwd"]


@dataclass(frozen=True, slots=True)
class WorkspaceInfo:
    workspace: Workspace
    source: WorkspaceSource


def find_config_file(directory: Path) -> Path | None:
    """Return the tree config inside ``directory``, trying each accepted name."""
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def is_workspace_root(path: Path) -> bool:
    return find_config_file(path) is not None


def find_workspace_upward(start: Path) -> Path | None:
    """Return the highest directory at or above ``start`` holding a tree config."""
    found: Path | None = None
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            found = parent
    return found


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    info = detect_workspace_info(start_dir=start_dir, env_var=env_var)
    if isinstance(info, Err):
        return info
    return Ok(info.value.workspace)


def detect_workspace_info(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[WorkspaceInfo, WorkspaceError]:
    """Detect the workspace root directory, with source metadata.

    Detection order:
    1. MUNO_WORKSPACE environment variable (if set, it must be valid)
    2. Search upward from start_dir (or cwd) for the highest tree config
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        config = find_config_file(env_path) if env_path.is_dir() else None
        if config is not None:
            return Ok(WorkspaceInfo(Workspace(root=env_path, config_path=config), source="env"))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a muno workspace",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    root = find_workspace_upward(search_start)
    if root is None:
        return Err(
            WorkspaceError(
                message="Could not find a muno workspace (no muno.yaml found)",
                searched_from=search_start,
            )
        )

    config = find_config_file(root)
    assert config is not None
    return Ok(WorkspaceInfo(Workspace(root=root, config_path=config), source="cwd"))
