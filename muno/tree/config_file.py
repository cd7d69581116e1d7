"""Tree config files (YAML).

A tree config describes one level of the workspace:

    workspace:
      name: platform
      repos_dir: repos
    nodes:
      - name: backend
        url: https://github.com/org/backend.git
        fetch: lazy
      - name: team
        file: teams/team.yaml

``file`` paths are relative to the directory of the config declaring them.
``config`` is accepted as an alias of ``file`` and ``lazy: true`` as an
alias of ``fetch: lazy``; saving always writes the canonical keys.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

import yaml

from muno.core.result import Err, Ok, Result
from muno.core.settings import DEFAULT_REPOS_DIR, FetchMode
from muno.core.structured import StrDict, as_str_dict, get_bool, get_list, get_str, get_table
from muno.core.workspace import find_config_file
from muno.platform.files import atomic_write_text

from .errors import ConfigInvalid, PersistFailed
from .models import NodeDefinition, WorkspaceTree, validate_node_name

__all__ = [
    "ConfigProvider",
    "YamlConfigProvider",
    "parse_tree",
    "tree_to_dict",
]

_FETCH_MODES: frozenset[str] = frozenset({"eager", "lazy", "auto"})


class ConfigProvider(Protocol):
    """Reads and writes tree configs on behalf of the tree engine."""

    def load(self, path: Path) -> Result[WorkspaceTree, ConfigInvalid]: ...

    def save(self, path: Path, tree: WorkspaceTree) -> Result[None, PersistFailed]: ...

    def find_config(self, directory: Path) -> Path | None: ...


def _parse_node(raw: object, index: int) -> NodeDefinition | str:
    table = as_str_dict(raw)
    if table is None:
        return f"nodes[{index}] must be a mapping"

    name = get_str(table, "name")
    if name is None:
        return f"nodes[{index}] has no name"
    problem = validate_node_name(name)
    if problem:
        return f"nodes[{index}]: {problem}"

    url = get_str(table, "url")
    file = get_str(table, "file") or get_str(table, "config")
    if url and file:
        return f"node '{name}' sets both url and file"

    fetch = get_str(table, "fetch")
    if fetch is None:
        fetch = "lazy" if get_bool(table, "lazy") else "eager"
    if fetch not in _FETCH_MODES:
        return f"node '{name}' has unknown fetch mode '{fetch}'"

    return NodeDefinition(name=name, url=url, file=file, fetch=fetch)  # type: ignore[arg-type]


def parse_tree(data: StrDict, *, default_name: str) -> WorkspaceTree | str:
    """Build a WorkspaceTree from a parsed document.

    Returns:
        The tree, or a string describing the first validation problem.
    """
    workspace: StrDict = get_table(data, "workspace") or {}
    repos_dir = get_str(workspace, "repos_dir") or DEFAULT_REPOS_DIR
    if Path(repos_dir).is_absolute() or ".." in Path(repos_dir).parts:
        return f"repos_dir '{repos_dir}' must be a relative path inside the node"

    raw_nodes = data.get("nodes")
    nodes_list = get_list(data, "nodes")
    if raw_nodes is not None and nodes_list is None:
        return "nodes must be a list"

    nodes: list[NodeDefinition] = []
    seen: set[str] = set()
    for index, raw in enumerate(nodes_list or []):
        parsed = _parse_node(raw, index)
        if isinstance(parsed, str):
            return parsed
        if parsed.name in seen:
            return f"duplicate node name '{parsed.name}'"
        seen.add(parsed.name)
        nodes.append(parsed)

    return WorkspaceTree(
        name=get_str(workspace, "name") or default_name,
        repos_dir=repos_dir,
        nodes=tuple(nodes),
        root_repo=get_str(workspace, "root_repo"),
    )


def tree_to_dict(tree: WorkspaceTree) -> StrDict:
    """Canonical document form of a tree, keys in authoring order."""
    workspace: StrDict = {"name": tree.name, "repos_dir": tree.repos_dir}
    if tree.root_repo:
        workspace["root_repo"] = tree.root_repo

    nodes: list[StrDict] = []
    for node in tree.nodes:
        entry: StrDict = {"name": node.name}
        if node.url:
            entry["url"] = node.url
        if node.file:
            entry["file"] = node.file
        fetch: FetchMode = node.fetch
        if fetch != "eager":
            entry["fetch"] = fetch
        nodes.append(entry)

    return {"workspace": workspace, "nodes": nodes}


class YamlConfigProvider:
    """ConfigProvider backed by PyYAML.

    Saves are serialized through one lock so concurrent traversal workers
    never interleave writes to the same file.
    """

    def __init__(self) -> None:
        self._write_lock = threading.Lock()

    def load(self, path: Path) -> Result[WorkspaceTree, ConfigInvalid]:
        try:
            with path.open("r", encoding="utf-8") as f:
                raw: object = yaml.safe_load(f)
        except FileNotFoundError:
            return Err(ConfigInvalid(path, "file not found"))
        except OSError as e:
            return Err(ConfigInvalid(path, f"cannot read: {e}"))
        except yaml.YAMLError as e:
            return Err(ConfigInvalid(path, f"invalid YAML: {e}"))

        data = as_str_dict(raw if raw is not None else {})
        if data is None:
            return Err(ConfigInvalid(path, "document root must be a mapping"))

        parsed = parse_tree(data, default_name=path.parent.name)
        if isinstance(parsed, str):
            return Err(ConfigInvalid(path, parsed))
        return Ok(parsed)

    def save(self, path: Path, tree: WorkspaceTree) -> Result[None, PersistFailed]:
        text = yaml.safe_dump(tree_to_dict(tree), sort_keys=False, default_flow_style=False)
        with self._write_lock:
            try:
                atomic_write_text(path, text)
            except OSError as e:
                return Err(PersistFailed(path, str(e)))
        return Ok(None)

    def find_config(self, directory: Path) -> Path | None:
        return find_config_file(directory)
