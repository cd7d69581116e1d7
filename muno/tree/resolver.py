"""Path resolution: logical addresses to physical directories.

Addresses look like filesystem paths over the tree:

    /backend/api     absolute, from the workspace root
    api, ./api       relative to the current position
    ../frontend      parent navigation, clamped at the root
    ~, ~/backend     the root is "home"

The current position is an explicit logical path (``current=`` argument,
or the store's persisted ``current_path``). Mapping the process working
directory onto the tree is a separate step, :meth:`PathResolver.logical_path_for`,
which callers run before resolving; the resolution algorithm itself never
looks at the cwd.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from muno.core.result import Err, Ok, Result
from muno.output.console import ConsoleProtocol
from muno.output.errors import describe_tree_error

from .errors import (
    CloneFailed,
    NotInitialized,
    PathNotFound,
    PersistFailed,
    PhysicalMissing,
    TreeError,
)
from .layout import physical_path
from .loader import ConfigReferenceLoader
from .models import ROOT_PATH, NodeInfo, join_path, parent_path
from .store import TreeStore

if TYPE_CHECKING:
    from muno.git.provider import GitProvider

__all__ = ["PathResolver", "Resolved", "normalize_target"]


@dataclass(frozen=True, slots=True)
class Resolved:
    """A node together with its canonical directory on disk."""

    node: NodeInfo
    path: Path


def normalize_target(target: str) -> tuple[bool, list[str]]:
    """Split an address into (is_absolute, segments).

    Empty segments and "." are dropped; ".." is kept as a navigation step.
    """
    text = target.strip()
    if text == "~":
        return True, []
    absolute = text.startswith("/")
    if text.startswith("~/"):
        absolute = True
        text = text[1:]
    segments = [s for s in text.split("/") if s and s != "."]
    return absolute, segments


class PathResolver:
    """Resolves addresses against a TreeStore and materializes nodes on demand.

    Args:
        store: The loaded tree.
        loader: Supplies config-referenced children while descending.
        git: Used to clone lazy repositories when ``ensure`` is requested.
        root_dir: Workspace root directory.
        console: Receives warnings for best-effort persistence failures.
    """

    def __init__(
        self,
        store: TreeStore,
        loader: ConfigReferenceLoader,
        git: GitProvider,
        root_dir: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._loader = loader
        self._git = git
        self._root_dir = root_dir
        self._console = console

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def resolve(
        self,
        target: str,
        *,
        ensure: bool = False,
        current: str | None = None,
    ) -> Result[Resolved, TreeError]:
        """Map ``target`` to a node and its existing directory.

        Args:
            target: Address to resolve.
            ensure: Clone a repository (or create a holding directory) that
                is declared but missing on disk, instead of failing.
            current: Logical position for relative addresses; defaults to
                the store's current path.

        Returns:
            Ok(Resolved) with a symlink-resolved path, or Err with
            NotInitialized, PathNotFound, PhysicalMissing, CloneFailed,
            ConfigCycle or ConfigInvalid.
        """
        walked = self.locate(target, ensure=ensure, current=current)
        if isinstance(walked, Err):
            return walked
        node = walked.value

        located = physical_path(self._store, self._root_dir, node.path)
        if isinstance(located, Err):
            return located
        directory = located.value

        if not directory.is_dir():
            if not ensure:
                return Err(PhysicalMissing(node.path, directory, lazy=node.is_lazy))
            materialized = self.materialize(node.path)
            if isinstance(materialized, Err):
                return materialized
            node = materialized.value

        return Ok(Resolved(node=node, path=directory.resolve()))

    def locate(
        self,
        target: str,
        *,
        ensure: bool = False,
        current: str | None = None,
    ) -> Result[NodeInfo, TreeError]:
        """Walk ``target`` to a node without checking the disk for the node itself."""
        if not self._store.is_loaded:
            return Err(NotInitialized(self._root_dir))

        absolute, segments = normalize_target(target)
        path = ROOT_PATH if absolute else self._start(current)

        for segment in segments:
            if segment == "..":
                path = parent_path(path)
                continue

            child = join_path(path, segment)
            if isinstance(self._store.get_node(child), Ok):
                path = child
                continue

            expanded = self._expand(path, ensure=ensure)
            if isinstance(expanded, Err):
                return expanded
            if segment not in expanded.value.children:
                return Err(PathNotFound(child, segment, path))
            path = child

        return self._store.get_node(path)

    def _start(self, current: str | None) -> str:
        path = current if current is not None else self._store.get_path()
        if isinstance(self._store.get_node(path), Err):
            return ROOT_PATH
        return path

    def _expand(self, path: str, *, ensure: bool) -> Result[NodeInfo, TreeError]:
        """Make the children of ``path`` known, cloning it first if allowed."""
        found = self._store.get_node(path)
        if isinstance(found, Err):
            return found
        node = found.value
        if node.children_loaded:
            return Ok(node)
        if node.needs_clone and ensure:
            return self.materialize(path)
        return self._loader.ensure_children(path)

    # -------------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------------

    def materialize(self, path: str) -> Result[NodeInfo, TreeError]:
        """Bring the node at ``path`` onto disk.

        Repositories are cloned; groups and config references get their
        holding directory. After a clone the node is marked cloned (its lazy
        flag is kept), its own tree config is discovered, and the config that
        declares it is saved. A failed save is reported as a warning only:
        the clone itself has already succeeded.
        """
        found = self._store.get_node(path)
        if isinstance(found, Err):
            return found
        node = found.value

        located = physical_path(self._store, self._root_dir, path)
        if isinstance(located, Err):
            return located
        directory = located.value

        if not node.is_repository:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return Err(PersistFailed(directory, f"cannot create directory: {e}"))
            self._store.update_node(path, is_cloned=True)
            return self._loader.ensure_children(path)

        if not node.is_cloned or not directory.is_dir():
            cloned = self._git.clone(node.repository, directory)
            if isinstance(cloned, Err):
                return Err(CloneFailed(path, node.repository, cloned.error.message))

        updated = self._store.update_node(path, is_cloned=True)
        if isinstance(updated, Err):
            return updated

        saved = self._loader.save_owning_config(path)
        if isinstance(saved, Err):
            self._console.warning(describe_tree_error(saved.error))

        return self._loader.ensure_children(path)

    # -------------------------------------------------------------------------
    # Working directory -> logical position
    # -------------------------------------------------------------------------

    def logical_path_for(self, directory: Path) -> Result[str, TreeError]:
        """Logical position of a filesystem directory.

        Descends from the root, at each level picking the child whose
        directory contains ``directory``. Referenced configs are loaded on
        the way so positions inside not-yet-loaded subtrees still map.

        The workspace root, the root's repos directory itself and anything
        outside the workspace all map to "/". The repos-directory rule is a
        workspace convention: standing in the holding directory selects no
        node, so the position is the node that owns it.
        """
        if not self._store.is_loaded:
            return Err(NotInitialized(self._root_dir))

        target = _canonical(directory)
        root = _canonical(self._root_dir)
        if not target.is_relative_to(root):
            return Ok(ROOT_PATH)

        path = ROOT_PATH
        base = root
        while True:
            expanded = self._loader.ensure_children(path)
            if isinstance(expanded, Err):
                return Ok(path)
            node = expanded.value
            holding = base / node.repos_dir
            if not target.is_relative_to(holding) or target == holding:
                return Ok(path)

            relative = target.relative_to(holding)
            name = relative.parts[0]
            if name not in node.children:
                return Ok(path)
            path = join_path(path, name)
            base = holding / name


def _canonical(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path.absolute()
