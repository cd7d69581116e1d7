from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from muno.core.result import Err, Ok, Result
from muno.core.settings import FetchMode, Settings
from muno.core.workspace import Workspace, find_config_file
from muno.git.provider import GitProvider, SubprocessGitProvider
from muno.output.console import ConsoleProtocol
from muno.output.errors import describe_tree_error
from muno.platform.files import ensure_gitignore_entries
from muno.tree.config_file import ConfigProvider, YamlConfigProvider
from muno.tree.errors import (
    GitActionFailed,
    NodeConflict,
    NotInitialized,
    PersistFailed,
    PhysicalMissing,
    TreeError,
)
from muno.tree.executor import Operation, TraversalOptions, TraversalReport, TreeExecutor
from muno.tree.layout import physical_path
from muno.tree.loader import ConfigReferenceLoader
from muno.tree.models import (
    ROOT_PATH,
    NodeDefinition,
    NodeInfo,
    TreeView,
    WorkspaceTree,
    join_path,
    repo_name_from_url,
    validate_node_name,
)
from muno.tree.resolver import PathResolver, Resolved
from muno.tree.store import TreeStore, node_from_definition

__all__ = ["RepositoryDetails", "WorkspaceManager", "init_workspace"]

_DEFAULT_CONFIG_NAME = "muno.yaml"


@dataclass(frozen=True, slots=True)
class RepositoryDetails:
    """Checked-out branch and remotes of a cloned repository."""

    branch: str
    remotes: dict[str, str]


def init_workspace(
    root: Path,
    *,
    name: str | None,
    settings: Settings,
    provider: ConfigProvider | None = None,
) -> Result[Path, TreeError]:
    """Create a new workspace at ``root``.

    Writes the root tree config, creates the repos and state directories, and
    when ``root`` is a git repository adds both to its .gitignore.
    """
    existing = find_config_file(root)
    if existing is not None:
        return Err(NodeConflict(ROOT_PATH, f"workspace already initialized ({existing})"))

    provider = provider or YamlConfigProvider()
    repos_dir = settings.defaults.repos_dir
    config_file = root / _DEFAULT_CONFIG_NAME
    saved = provider.save(config_file, WorkspaceTree(name=name or root.name, repos_dir=repos_dir))
    if isinstance(saved, Err):
        return saved

    try:
        (root / repos_dir).mkdir(parents=True, exist_ok=True)
        (root / ".muno").mkdir(exist_ok=True)
        if (root / ".git").exists():
            ensure_gitignore_entries(root, [".muno/", f"{repos_dir}/"])
    except OSError as e:
        return Err(PersistFailed(root, str(e)))
    return Ok(config_file)


class WorkspaceManager:
    """Entry point for every workspace operation.

    Wires the tree store, loader, resolver and executor for one workspace.
    Operations take the caller's working directory (``cwd``) so the logical
    position can be synced from it; when the cwd is outside the workspace
    the persisted navigation state is used instead.
    """

    def __init__(
        self,
        workspace: Workspace,
        *,
        console: ConsoleProtocol,
        settings: Settings | None = None,
        git: GitProvider | None = None,
        provider: ConfigProvider | None = None,
    ) -> None:
        self._workspace = workspace
        self._settings = settings or Settings()
        self._console = console
        self._git = git or SubprocessGitProvider(self._settings.git)
        self._provider = provider or YamlConfigProvider()

        root = workspace.root
        self.store = TreeStore(state_path=workspace.state_path)
        self.loader = ConfigReferenceLoader(self.store, self._provider, root)
        self.resolver = PathResolver(self.store, self.loader, self._git, root, console)
        self.executor = TreeExecutor(self.store, self.resolver, self.loader, self._git, console)

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    def load(self) -> Result[NodeInfo, TreeError]:
        """Read the root config and navigation state."""
        loaded = self.loader.load_root(self._workspace.config_path)
        if isinstance(loaded, Err):
            return loaded
        self.store.load_state()
        return loaded

    # -------------------------------------------------------------------------
    # Position
    # -------------------------------------------------------------------------

    def position(self, cwd: Path | None = None) -> Result[str, TreeError]:
        """Current logical position, synced from ``cwd`` when it is inside the workspace."""
        if not self.store.is_loaded:
            return Err(NotInitialized(self._workspace.root))
        if cwd is None:
            return Ok(self.store.get_path())

        try:
            inside = cwd.resolve().is_relative_to(self._workspace.root.resolve())
        except OSError:
            inside = False
        if not inside:
            return Ok(self.store.get_path())

        mapped = self.resolver.logical_path_for(cwd)
        if isinstance(mapped, Ok):
            self.store.set_path(mapped.value)
        return mapped

    def resolve(
        self, target: str, *, ensure: bool = False, cwd: Path | None = None
    ) -> Result[Resolved, TreeError]:
        current = self.position(cwd)
        if isinstance(current, Err):
            return current
        return self.resolver.resolve(target, ensure=ensure, current=current.value)

    def locate(
        self, target: str, *, ensure: bool = False, cwd: Path | None = None
    ) -> Result[NodeInfo, TreeError]:
        """Node addressed by ``target``, without requiring its directory to exist."""
        current = self.position(cwd)
        if isinstance(current, Err):
            return current
        return self.resolver.locate(target, ensure=ensure, current=current.value)

    def use(
        self, target: str, *, ensure: bool = False, cwd: Path | None = None
    ) -> Result[Resolved, TreeError]:
        """Navigate to ``target`` and persist it; ``-`` returns to the previous node."""
        if target == "-" and self.store.is_loaded:
            target = self.store.get_state().previous_path or ROOT_PATH

        resolved = self.resolve(target, ensure=ensure, cwd=cwd)
        if isinstance(resolved, Err):
            return resolved
        navigated = self.store.navigate(resolved.value.node.path)
        if isinstance(navigated, Err):
            return navigated
        saved = self.store.save_state()
        if isinstance(saved, Err):
            return saved
        return resolved

    # -------------------------------------------------------------------------
    # Reading the tree
    # -------------------------------------------------------------------------

    def view(
        self, target: str = ".", *, recursive: bool = True, cwd: Path | None = None
    ) -> Result[TreeView, TreeError]:
        """Snapshot of the subtree at ``target``.

        With ``recursive`` every config reachable below the node is spliced in
        first (nothing is cloned); otherwise only its immediate children are
        loaded.
        """
        located = self.locate(target, cwd=cwd)
        if isinstance(located, Err):
            return located
        path = located.value.path

        if recursive:
            for failed, error in self.loader.load_all(path):
                self._console.warning(f"{failed}: children not loaded ({describe_tree_error(error)})")
        else:
            expanded = self.loader.ensure_children(path)
            if isinstance(expanded, Err):
                return expanded
        return self.store.get_tree(path)

    # -------------------------------------------------------------------------
    # Recursive operations
    # -------------------------------------------------------------------------

    def run(
        self,
        operation: Operation,
        target: str = ".",
        *,
        options: TraversalOptions | None = None,
        cwd: Path | None = None,
    ) -> Result[TraversalReport, TreeError]:
        current = self.position(cwd)
        if isinstance(current, Err):
            return current
        options = options or TraversalOptions(max_workers=self._settings.executor.max_workers)
        return self.executor.run(operation, target, options=options, current=current.value)

    def describe(self, path: str) -> Result[RepositoryDetails | None, TreeError]:
        """Branch and remotes of the repository at ``path``.

        None for groups, config references and repositories not on disk.
        """
        found = self.store.get_node(path)
        if isinstance(found, Err):
            return found
        node = found.value
        if not node.is_repository or not node.is_cloned:
            return Ok(None)

        located = physical_path(self.store, self._workspace.root, path)
        if isinstance(located, Err):
            return located
        branch = self._git.current_branch(located.value)
        if isinstance(branch, Err):
            return Err(GitActionFailed(path, "status", branch.error.message))
        remotes = self._git.get_remotes(located.value)
        if isinstance(remotes, Err):
            return Err(GitActionFailed(path, "status", remotes.error.message))
        return Ok(RepositoryDetails(branch=branch.value, remotes=remotes.value))

    # -------------------------------------------------------------------------
    # Editing the tree
    # -------------------------------------------------------------------------

    def add(
        self,
        url: str,
        *,
        name: str | None = None,
        fetch: FetchMode | None = None,
        parent: str = ".",
        cwd: Path | None = None,
    ) -> Result[NodeInfo, TreeError]:
        """Declare a repository under ``parent`` and save the owning config.

        Eager repositories are cloned straight away; if that clone fails the
        node is not added.
        """
        current = self.position(cwd)
        if isinstance(current, Err):
            return current
        located = self.resolver.locate(parent, current=current.value)
        if isinstance(located, Err):
            return located
        expanded = self.loader.ensure_children(located.value.path)
        if isinstance(expanded, Err):
            return expanded
        owner = expanded.value

        node_name = name or repo_name_from_url(url)
        problem = validate_node_name(node_name)
        child_path = join_path(owner.path, node_name)
        if problem:
            return Err(NodeConflict(child_path, problem))
        if node_name in owner.children:
            return Err(NodeConflict(child_path, "a node with this name already exists"))

        config_file = self._children_config(owner)
        if isinstance(config_file, Err):
            return config_file
        document = self.store.config_document(config_file.value) or WorkspaceTree(
            name=owner.name or self._workspace.root.name, repos_dir=owner.repos_dir
        )
        definition = NodeDefinition(
            name=node_name, url=url, fetch=fetch or self._settings.defaults.fetch
        )
        updated = document.with_node(definition)

        with self.store.lock:
            if owner.config_file != config_file.value:
                self.store.update_node(
                    owner.path,
                    config_file=config_file.value,
                    repos_dir=document.repos_dir,
                    children_loaded=True,
                )
            record = node_from_definition(
                definition,
                parent=owner.path,
                declared_in=config_file.value,
                repos_dir=document.repos_dir,
            )
            added = self.store.add_node(owner.path, record)
            if isinstance(added, Err):
                return added
            self.store.set_config_document(config_file.value, updated)

        if not definition.is_lazy:
            cloned = self.resolver.materialize(child_path)
            if isinstance(cloned, Err):
                self.store.remove_node(child_path)
                self.store.set_config_document(config_file.value, document)
                return cloned

        saved = self._provider.save(config_file.value, updated)
        if isinstance(saved, Err):
            return saved
        return self.store.get_node(child_path)

    def remove(
        self,
        name: str,
        *,
        parent: str = ".",
        delete_files: bool = True,
        cwd: Path | None = None,
    ) -> Result[NodeInfo, TreeError]:
        """Remove the child ``name`` of ``parent``, its directory and its config entry."""
        current = self.position(cwd)
        if isinstance(current, Err):
            return current
        located = self.resolver.locate(f"{parent.rstrip('/')}/{name}", current=current.value)
        if isinstance(located, Err):
            return located
        node = located.value
        if node.path == ROOT_PATH:
            return Err(NodeConflict(ROOT_PATH, "the root cannot be removed"))

        directory = physical_path(self.store, self._workspace.root, node.path)
        if isinstance(directory, Err):
            return directory

        if node.declared_in is not None:
            document = self.store.config_document(node.declared_in)
            if document is not None and document.find(node.name) is not None:
                trimmed = document.without_node(node.name)
                saved = self._provider.save(node.declared_in, trimmed)
                if isinstance(saved, Err):
                    return saved
                self.store.set_config_document(node.declared_in, trimmed)

        if delete_files and directory.value.exists():
            try:
                shutil.rmtree(directory.value)
            except OSError as e:
                return Err(PersistFailed(directory.value, f"could not delete: {e}"))

        removed = self.store.remove_node(node.path)
        if isinstance(removed, Err):
            return removed
        saved_state = self.store.save_state()
        if isinstance(saved_state, Err):
            self._console.warning(f"navigation state not saved: {saved_state.error.message}")
        return removed

    def _children_config(self, owner: NodeInfo) -> Result[Path, TreeError]:
        """Config file that holds (or will hold) the children of ``owner``."""
        if owner.config_file is not None:
            return Ok(owner.config_file)
        located = physical_path(self.store, self._workspace.root, owner.path)
        if isinstance(located, Err):
            return located
        if not located.value.is_dir():
            return Err(PhysicalMissing(owner.path, located.value, lazy=owner.is_lazy))
        return Ok(located.value / _DEFAULT_CONFIG_NAME)
