"""Tree data model.

Two layers describe the workspace:

- ``WorkspaceTree`` / ``NodeDefinition`` are what authors write in a tree
  config file. They are immutable values.
- ``NodeInfo`` is the runtime record the ``TreeStore`` keeps for every
  materialized node, keyed by its logical path (``/backend/api``).

Logical paths always start at ``/`` (the workspace root) and join names
with ``/``. Physical locations are derived separately by the resolver.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from muno.core.settings import DEFAULT_REPOS_DIR, FetchMode

__all__ = [
    "META_REPO_SUFFIXES",
    "ROOT_PATH",
    "NodeDefinition",
    "NodeInfo",
    "NodeKind",
    "TreeState",
    "TreeView",
    "WorkspaceTree",
    "is_meta_repo_name",
    "join_path",
    "parent_path",
    "repo_name_from_url",
    "split_path",
    "validate_node_name",
]

ROOT_PATH = "/"

# Repositories named like these hold further trees; "auto" fetches them eagerly.
META_REPO_SUFFIXES: tuple[str, ...] = (
    "-monorepo",
    "-munorepo",
    "-muno",
    "-metarepo",
    "-platform",
    "-workspace",
    "-root-repo",
)


class NodeKind(Enum):
    """What a node is, which decides where its children come from."""

    GROUP = "group"
    REPO = "repo"
    CONFIG_REF = "config"

    def __str__(self) -> str:
        return self.value


def is_meta_repo_name(name: str) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(suffix) for suffix in META_REPO_SUFFIXES)


@dataclass(frozen=True, slots=True)
class NodeDefinition:
    """A node as declared in a tree config.

    At most one of ``url`` and ``file`` is set: a url makes a repository,
    a file makes a config reference, neither makes a group.
    """

    name: str
    url: str | None = None
    file: str | None = None
    fetch: FetchMode = "eager"

    @property
    def kind(self) -> NodeKind:
        if self.url:
            return NodeKind.REPO
        if self.file:
            return NodeKind.CONFIG_REF
        return NodeKind.GROUP

    @property
    def is_lazy(self) -> bool:
        """Whether the repository waits to be cloned until it is needed."""
        if self.kind is not NodeKind.REPO:
            return False
        if self.fetch == "auto":
            return not is_meta_repo_name(self.name)
        return self.fetch == "lazy"


@dataclass(frozen=True, slots=True)
class WorkspaceTree:
    """Contents of one tree config file."""

    name: str
    repos_dir: str = DEFAULT_REPOS_DIR
    nodes: tuple[NodeDefinition, ...] = ()
    root_repo: str | None = None

    def find(self, name: str) -> NodeDefinition | None:
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def with_node(self, node: NodeDefinition) -> WorkspaceTree:
        """Copy with ``node`` appended (or replacing a node of the same name)."""
        if self.find(node.name) is None:
            return replace(self, nodes=(*self.nodes, node))
        return replace(self, nodes=tuple(node if n.name == node.name else n for n in self.nodes))

    def without_node(self, name: str) -> WorkspaceTree:
        return replace(self, nodes=tuple(n for n in self.nodes if n.name != name))


def _no_children() -> list[str]:
    return []


@dataclass(slots=True)
class NodeInfo:
    """Runtime record of a node.

    Attributes:
        name: Node name, unique among its siblings ("" for the root)
        path: Canonical logical path, e.g. "/backend/api"
        kind: Group, repository or config reference
        repository: Clone URL ("" for groups and config references)
        is_lazy: Declared lazy; cloned only on demand
        is_cloned: Working copy (or holding directory) exists on disk
        has_changes: Last status saw uncommitted changes
        children: Child names in declared order
        config_file: Config file supplying this node's children, if any
        repos_dir: Directory name under which this node's children live
        declared_in: Config file declaring this node (None for the root)
        children_loaded: Whether config-supplied children have been spliced in
    """

    name: str
    path: str
    kind: NodeKind
    repository: str = ""
    is_lazy: bool = False
    is_cloned: bool = False
    has_changes: bool = False
    children: list[str] = field(default_factory=_no_children)
    config_file: Path | None = None
    repos_dir: str = DEFAULT_REPOS_DIR
    declared_in: Path | None = None
    children_loaded: bool = False

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    @property
    def is_repository(self) -> bool:
        return self.kind is NodeKind.REPO

    @property
    def needs_clone(self) -> bool:
        return self.is_repository and not self.is_cloned

    def copy(self) -> NodeInfo:
        """Snapshot that shares nothing mutable with this record."""
        return replace(self, children=list(self.children))


@dataclass(frozen=True, slots=True)
class TreeView:
    """Immutable snapshot of a subtree, for rendering and counting."""

    node: NodeInfo
    children: tuple[TreeView, ...] = ()

    def walk(self) -> Iterator[TreeView]:
        """Yield this view and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True, slots=True)
class TreeState:
    """Navigation state persisted between invocations."""

    current_path: str = ROOT_PATH
    previous_path: str | None = None


# -----------------------------------------------------------------------------
# Path helpers
# -----------------------------------------------------------------------------


def join_path(parent: str, name: str) -> str:
    return f"/{name}" if parent == ROOT_PATH else f"{parent}/{name}"


def parent_path(path: str) -> str:
    if path == ROOT_PATH:
        return ROOT_PATH
    head = path.rsplit("/", 1)[0]
    return head or ROOT_PATH


def split_path(path: str) -> list[str]:
    """Names along a canonical path; empty for the root."""
    return [part for part in path.split("/") if part]


def repo_name_from_url(url: str) -> str:
    """Derive a node name from a clone URL.

    ``https://github.com/org/api.git`` and ``git@github.com:org/api.git``
    both give ``api``.
    """
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    tail = tail.rsplit(":", 1)[-1]
    return tail.removesuffix(".git")


def validate_node_name(name: str) -> str | None:
    """Return why ``name`` cannot be used as a node name, or None if it can."""
    if not name or not name.strip():
        return "name is empty"
    if name in {".", "..", "~"}:
        return f"'{name}' is reserved for navigation"
    if "/" in name or "\\" in name:
        return f"'{name}' must not contain path separators"
    return None
