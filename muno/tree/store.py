"""In-memory workspace tree.

The store is an arena: one ``NodeInfo`` per logical path in a dict, with
each record listing its children by name. Nothing outside the store holds
a live record; reads hand out copies and writes go through
``update_node``, all under one re-entrant lock. That lets the executor run
sibling subtrees on worker threads without the tree changing shape under
them.

Every operation returns ``Err(NotInitialized)`` until :meth:`TreeStore.load`
has installed a root config.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, replace
from pathlib import Path

from muno.core.result import Err, Ok, Result
from muno.platform.files import atomic_write_text

from .errors import NodeConflict, NotInitialized, PathNotFound, PersistFailed
from .models import (
    ROOT_PATH,
    NodeDefinition,
    NodeInfo,
    NodeKind,
    TreeState,
    TreeView,
    WorkspaceTree,
    join_path,
    parent_path,
    split_path,
)

__all__ = ["TreeStore", "node_from_definition"]

_FROZEN_FIELDS = frozenset({"name", "path", "children"})

type StoreError = NotInitialized | PathNotFound
type MutationError = NotInitialized | PathNotFound | NodeConflict


def node_from_definition(
    definition: NodeDefinition,
    *,
    parent: str,
    declared_in: Path,
    repos_dir: str,
) -> NodeInfo:
    """Runtime record for a declared node.

    ``repos_dir`` is inherited from the declaring config; a config reference
    replaces it once its own file is loaded.
    """
    config_file = None
    if definition.kind is NodeKind.CONFIG_REF and definition.file:
        config_file = declared_in.parent / definition.file
    return NodeInfo(
        name=definition.name,
        path=join_path(parent, definition.name),
        kind=definition.kind,
        repository=definition.url or "",
        is_lazy=definition.is_lazy,
        config_file=config_file,
        repos_dir=repos_dir,
        declared_in=declared_in,
    )


class TreeStore:
    """Owner of every NodeInfo in the workspace.

    Args:
        state_path: JSON file used by load_state/save_state; None keeps
            navigation state in memory only.
    """

    def __init__(self, state_path: Path | None = None) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[str, NodeInfo] = {}
        self._configs: dict[Path, WorkspaceTree] = {}
        self._state = TreeState()
        self._state_path = state_path
        self._loaded = False

    @property
    def lock(self) -> threading.RLock:
        """The store lock, for callers that need several operations to be atomic."""
        return self._lock

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self, tree: WorkspaceTree, config_file: Path) -> None:
        """Replace the whole tree with the root config ``tree``."""
        with self._lock:
            self._nodes.clear()
            self._configs.clear()
            self._nodes[ROOT_PATH] = NodeInfo(
                name="",
                path=ROOT_PATH,
                kind=NodeKind.GROUP,
                is_cloned=True,
                config_file=config_file,
                repos_dir=tree.repos_dir,
            )
            self._loaded = True
            self._splice(ROOT_PATH, tree, config_file)

    def load_children(
        self, path: str, tree: WorkspaceTree, config_file: Path
    ) -> Result[NodeInfo, StoreError]:
        """Merge the nodes of ``tree`` in as children of ``path``.

        The node adopts ``tree.repos_dir`` for its children. Names already
        present under the node are left as they are.
        """
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            self._splice(path, tree, config_file)
            return Ok(self._nodes[path].copy())

    def _splice(self, path: str, tree: WorkspaceTree, config_file: Path) -> None:
        node = self._nodes[path]
        node.config_file = config_file
        node.repos_dir = tree.repos_dir
        node.children_loaded = True
        self._configs[config_file] = tree
        for definition in tree.nodes:
            if definition.name in node.children:
                continue
            child = node_from_definition(
                definition, parent=path, declared_in=config_file, repos_dir=tree.repos_dir
            )
            self._nodes[child.path] = child
            node.children.append(child.name)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _get(self, path: str) -> Result[NodeInfo, StoreError]:
        if not self._loaded:
            return Err(NotInitialized())
        node = self._nodes.get(path)
        if node is None:
            parts = split_path(path)
            return Err(PathNotFound(path, parts[-1] if parts else "", parent_path(path)))
        return Ok(node)

    def get_node(self, path: str) -> Result[NodeInfo, StoreError]:
        """Snapshot of the node at exactly ``path``."""
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            return Ok(found.value.copy())

    def list_children(self, path: str) -> Result[list[NodeInfo], StoreError]:
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            node = found.value
            return Ok([self._nodes[join_path(path, name)].copy() for name in node.children])

    def get_tree(self, path: str = ROOT_PATH) -> Result[TreeView, StoreError]:
        """Immutable view of the subtree rooted at ``path``."""
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            return Ok(self._view(found.value))

    def _view(self, node: NodeInfo) -> TreeView:
        children = tuple(self._view(self._nodes[join_path(node.path, n)]) for n in node.children)
        return TreeView(node=node.copy(), children=children)

    def config_document(self, config_file: Path) -> WorkspaceTree | None:
        """The loaded contents of ``config_file``, as last spliced or updated."""
        with self._lock:
            return self._configs.get(config_file)

    def set_config_document(self, config_file: Path, tree: WorkspaceTree) -> None:
        with self._lock:
            self._configs[config_file] = tree

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_node(self, parent: str, node: NodeInfo) -> Result[NodeInfo, MutationError]:
        """Attach ``node`` as the last child of ``parent``.

        The node's path is derived from the parent; whatever ``node.path``
        held is ignored.
        """
        with self._lock:
            found = self._get(parent)
            if isinstance(found, Err):
                return found
            parent_node = found.value
            if node.name in parent_node.children:
                return Err(NodeConflict(join_path(parent, node.name), "a node with this name exists"))

            record = replace(node, path=join_path(parent, node.name), children=[])
            self._nodes[record.path] = record
            parent_node.children.append(record.name)
            return Ok(record.copy())

    def update_node(self, path: str, **changes: object) -> Result[NodeInfo, MutationError]:
        """Set fields on the node at ``path``, e.g. ``update_node(p, is_cloned=True)``.

        ``name``, ``path`` and ``children`` are structural and cannot be
        changed here; use add_node/remove_node.
        """
        frozen = _FROZEN_FIELDS.intersection(changes)
        if frozen:
            return Err(NodeConflict(path, f"cannot update {', '.join(sorted(frozen))}"))
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            node = found.value
            for key, value in changes.items():
                if not hasattr(node, key):
                    return Err(NodeConflict(path, f"unknown node field '{key}'"))
                setattr(node, key, value)
            return Ok(node.copy())

    def remove_node(self, path: str) -> Result[NodeInfo, MutationError]:
        """Detach ``path`` from its parent and drop its whole subtree.

        Current or previous positions inside the subtree move to the parent.
        """
        if path == ROOT_PATH:
            return Err(NodeConflict(path, "the root cannot be removed"))
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            removed = found.value

            parent = self._nodes[parent_path(path)]
            parent.children.remove(removed.name)
            prefix = path + "/"
            for key in [k for k in self._nodes if k == path or k.startswith(prefix)]:
                del self._nodes[key]

            state = self._state
            if state.current_path == path or state.current_path.startswith(prefix):
                state = replace(state, current_path=parent.path)
            previous = state.previous_path
            if previous is not None and (previous == path or previous.startswith(prefix)):
                state = replace(state, previous_path=parent.path)
            self._state = state
            return Ok(removed)

    # -------------------------------------------------------------------------
    # Navigation state
    # -------------------------------------------------------------------------

    def navigate(self, path: str) -> Result[NodeInfo, StoreError]:
        """Make ``path`` the current position, remembering the previous one."""
        with self._lock:
            found = self._get(path)
            if isinstance(found, Err):
                return found
            if path != self._state.current_path:
                self._state = TreeState(current_path=path, previous_path=self._state.current_path)
            return Ok(found.value.copy())

    def get_current(self) -> Result[NodeInfo, StoreError]:
        """Node at the current position, or the root if that node is gone."""
        with self._lock:
            found = self._get(self._state.current_path)
            if isinstance(found, Err) and isinstance(found.error, PathNotFound):
                found = self._get(ROOT_PATH)
            if isinstance(found, Err):
                return found
            return Ok(found.value.copy())

    def get_path(self) -> str:
        with self._lock:
            return self._state.current_path

    def set_path(self, path: str) -> None:
        with self._lock:
            self._state = replace(self._state, current_path=path)

    def get_state(self) -> TreeState:
        with self._lock:
            return self._state

    def set_state(self, state: TreeState) -> None:
        with self._lock:
            self._state = state

    def load_state(self) -> TreeState:
        """Read navigation state from disk; a missing or corrupt file resets it."""
        state = TreeState()
        if self._state_path is not None and self._state_path.exists():
            try:
                data = json.loads(self._state_path.read_text(encoding="utf-8"))
                state = TreeState(**data)
            except (OSError, json.JSONDecodeError, TypeError):
                state = TreeState()
        self.set_state(state)
        return state

    def save_state(self) -> Result[None, PersistFailed]:
        if self._state_path is None:
            return Ok(None)
        payload = json.dumps(asdict(self.get_state()), indent=2) + "\n"
        try:
            atomic_write_text(self._state_path, payload)
        except OSError as e:
            return Err(PersistFailed(self._state_path, str(e)))
        return Ok(None)
