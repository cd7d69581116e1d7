"""Config-reference loading.

Children come from tree config files in two ways:

- a config-reference node names its file explicitly (``file:``), resolved
  relative to the directory of the config that declares the node;
- any other node whose directory already exists on disk may contain a tree
  config of its own (a cloned meta-repository, for instance), which is
  discovered and spliced in.

Loading is lazy. Children are read only when something needs to look below
a node: the resolver descending a path, the executor recursing, or an
explicit :meth:`ConfigReferenceLoader.load_all` pass.
"""

from __future__ import annotations

from pathlib import Path

from muno.core.result import Err, Ok, Result
from muno.git.repository import Repository

from .config_file import ConfigProvider
from .errors import ConfigCycle, PersistFailed, TreeError
from .layout import physical_path
from .models import ROOT_PATH, NodeInfo, NodeKind, join_path, split_path
from .store import TreeStore

__all__ = ["ConfigReferenceLoader"]


class ConfigReferenceLoader:
    """Splices referenced and discovered tree configs into a TreeStore."""

    def __init__(self, store: TreeStore, provider: ConfigProvider, root_dir: Path) -> None:
        self._store = store
        self._provider = provider
        self._root_dir = root_dir

    def load_root(self, config_file: Path) -> Result[NodeInfo, TreeError]:
        """Install the workspace's root config, replacing any loaded tree."""
        loaded = self._provider.load(config_file)
        if isinstance(loaded, Err):
            return loaded
        self._store.load(loaded.value, config_file)
        self.refresh_children(ROOT_PATH)
        return self._store.get_node(ROOT_PATH)

    def ensure_children(self, path: str) -> Result[NodeInfo, TreeError]:
        """Load the children of ``path`` if they can be known now.

        A repository that is not on disk yet is returned unchanged with
        ``children_loaded`` still False; its children become knowable once
        it is cloned.
        """
        found = self._store.get_node(path)
        if isinstance(found, Err):
            return found
        node = found.value
        if node.children_loaded:
            return Ok(node)

        if node.kind is NodeKind.CONFIG_REF and node.config_file is not None:
            return self._splice(node, node.config_file, create_dir=True)

        located = physical_path(self._store, self._root_dir, path)
        if isinstance(located, Err):
            return located
        if not located.value.is_dir():
            return Ok(node)

        discovered = self._provider.find_config(located.value)
        if discovered is None:
            return self._store.update_node(path, children_loaded=True)
        return self._splice(node, discovered, create_dir=False)

    def load_all(self, path: str = ROOT_PATH) -> list[tuple[str, TreeError]]:
        """Load every config reachable below ``path`` without cloning anything.

        Returns:
            (path, error) for each node whose children could not be loaded.
        """
        errors: list[tuple[str, TreeError]] = []
        pending = [path]
        while pending:
            current = pending.pop()
            loaded = self.ensure_children(current)
            if isinstance(loaded, Err):
                errors.append((current, loaded.error))
                continue
            pending.extend(join_path(current, name) for name in reversed(loaded.value.children))
        return errors

    def refresh_children(self, path: str) -> None:
        """Re-check the disk for each child of ``path`` and update ``is_cloned``."""
        children = self._store.list_children(path)
        if isinstance(children, Err):
            return
        for child in children.value:
            located = physical_path(self._store, self._root_dir, child.path)
            if isinstance(located, Err):
                continue
            if child.is_repository:
                present = Repository(located.value).exists()
            else:
                present = located.value.is_dir()
            if present != child.is_cloned:
                self._store.update_node(child.path, is_cloned=present)

    def save_owning_config(self, path: str) -> Result[None, PersistFailed]:
        """Write back the config file that declares the node at ``path``."""
        found = self._store.get_node(path)
        if isinstance(found, Err) or found.value.declared_in is None:
            return Ok(None)
        config_file = found.value.declared_in
        document = self._store.config_document(config_file)
        if document is None:
            return Ok(None)
        return self._provider.save(config_file, document)

    # -------------------------------------------------------------------------

    def _splice(
        self, node: NodeInfo, config_file: Path, *, create_dir: bool
    ) -> Result[NodeInfo, TreeError]:
        cycle = self._find_cycle(node, config_file)
        if cycle is not None:
            return Err(cycle)

        loaded = self._provider.load(config_file)
        if isinstance(loaded, Err):
            return loaded

        if create_dir:
            located = physical_path(self._store, self._root_dir, node.path)
            if isinstance(located, Err):
                return located
            try:
                located.value.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return Err(PersistFailed(located.value, f"cannot create directory: {e}"))

        spliced = self._store.load_children(node.path, loaded.value, config_file)
        if isinstance(spliced, Err):
            return spliced
        if create_dir:
            self._store.update_node(node.path, is_cloned=True)
        self.refresh_children(node.path)
        return self._store.get_node(node.path)

    def _find_cycle(self, node: NodeInfo, config_file: Path) -> ConfigCycle | None:
        """Return a cycle if ``config_file`` is already loaded above ``node``."""
        ancestors = [ROOT_PATH]
        for name in split_path(node.path)[:-1]:
            ancestors.append(join_path(ancestors[-1], name))

        chain: list[Path] = []
        for ancestor_path in ancestors:
            ancestor = self._store.get_node(ancestor_path)
            if isinstance(ancestor, Ok) and ancestor.value.children_loaded:
                if ancestor.value.config_file is not None:
                    chain.append(ancestor.value.config_file)

        target = _canonical(config_file)
        canonical_chain = [_canonical(p) for p in chain]
        if target not in canonical_chain:
            return None
        start = canonical_chain.index(target)
        return ConfigCycle(chain=(*chain[start:], config_file))


def _canonical(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path.absolute()
