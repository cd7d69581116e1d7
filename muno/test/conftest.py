"""Shared fixtures: an in-memory git double and a tree-engine builder."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest

from muno.core.result import Err, Ok, Result
from muno.core.workspace import WORKSPACE_ENV_VAR
from muno.git.repository import (
    GitCommitResult,
    GitError,
    GitPullResult,
    GitPushResult,
    GitStatus,
    StatusEntry,
)
from muno.output.console import MockConsole
from muno.tree.config_file import ConfigProvider, YamlConfigProvider
from muno.tree.errors import PersistFailed
from muno.tree.executor import TreeExecutor
from muno.tree.loader import ConfigReferenceLoader
from muno.tree.models import WorkspaceTree
from muno.tree.resolver import PathResolver
from muno.tree.store import TreeStore


class FakeGit:
    """GitProvider that touches only the filesystem.

    A clone creates ``dest/.git`` plus any files seeded for the URL (a
    ``muno.yaml`` for a meta-repository, say). Failures are keyed by action
    and by repository directory name, or by URL for clones.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path]] = []
        self.seeds: dict[str, dict[str, str]] = {}
        self.failures: dict[tuple[str, str], str] = {}
        self.dirty: set[str] = set()
        self.hooks: dict[tuple[str, str], Callable[[], None]] = {}
        self._lock = threading.Lock()

    def fail(self, action: str, key: str, message: str = "simulated failure") -> None:
        self.failures[(action, key)] = message

    def seed(self, url: str, files: dict[str, str]) -> None:
        self.seeds[url] = files

    def on(self, action: str, key: str, hook: Callable[[], None]) -> None:
        """Run ``hook`` when ``action`` reaches the repository directory ``key``."""
        self.hooks[(action, key)] = hook

    def paths(self, action: str) -> list[Path]:
        return [path for name, path in self.calls if name == action]

    def names(self, action: str) -> list[str]:
        return [path.name for path in self.paths(action)]

    def _record(self, action: str, path: Path) -> str | None:
        with self._lock:
            self.calls.append((action, path))
        hook = self.hooks.get((action, path.name))
        if hook is not None:
            hook()
        return self.failures.get((action, path.name))

    def clone(self, url: str, dest: Path) -> Result[None, GitError]:
        failure = self._record("clone", dest) or self.failures.get(("clone", url))
        if failure:
            return Err(GitError("clone", failure, 128))
        (dest / ".git").mkdir(parents=True, exist_ok=True)
        for relative, content in self.seeds.get(url, {}).items():
            target = dest / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return Ok(None)

    def pull(self, path: Path, *, force: bool = False) -> Result[GitPullResult, GitError]:
        failure = self._record("pull", path)
        if failure:
            return Err(GitError("pull --ff-only", failure))
        return Ok(GitPullResult("Already up to date.", forced=force))

    def push(self, path: Path) -> Result[GitPushResult, GitError]:
        failure = self._record("push", path)
        if failure:
            return Err(GitError("push", failure))
        return Ok(GitPushResult(""))

    def status(self, path: Path) -> Result[GitStatus, GitError]:
        failure = self._record("status", path)
        if failure:
            return Err(GitError("status", failure))
        entries = (StatusEntry(" M", "file.txt"),) if path.name in self.dirty else ()
        return Ok(GitStatus(branch="main", upstream="origin/main", entries=entries))

    def commit(self, path: Path, message: str) -> Result[GitCommitResult, GitError]:
        failure = self._record("commit", path)
        if failure:
            return Err(GitError("commit", failure))
        if path.name not in self.dirty:
            return Ok(GitCommitResult(committed=False))
        self.dirty.discard(path.name)
        return Ok(GitCommitResult(committed=True, output=message))

    def get_remotes(self, path: Path) -> Result[dict[str, str], GitError]:
        failure = self._record("remotes", path)
        if failure:
            return Err(GitError("remote -v", failure))
        return Ok({"origin": f"https://example.com/{path.name}.git"})

    def current_branch(self, path: Path) -> Result[str, GitError]:
        failure = self._record("branch", path)
        if failure:
            return Err(GitError("rev-parse", failure))
        return Ok("main")


class ReadOnlyConfigProvider(YamlConfigProvider):
    """Loads tree configs normally; every save fails."""

    def __init__(self) -> None:
        super().__init__()
        self.attempts: list[Path] = []

    def save(self, path: Path, tree: WorkspaceTree) -> Result[None, PersistFailed]:
        self.attempts.append(path)
        return Err(PersistFailed(path, "read-only file system"))


@dataclass
class Engine:
    """A loaded tree engine over a workspace directory."""

    root: Path
    store: TreeStore
    loader: ConfigReferenceLoader
    resolver: PathResolver
    executor: TreeExecutor
    git: FakeGit
    console: MockConsole


@pytest.fixture(autouse=True)
def _isolated_workspace_env(monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def read_only_provider() -> ReadOnlyConfigProvider:
    return ReadOnlyConfigProvider()


@pytest.fixture
def write_config() -> Callable[[Path, str], Path]:
    """Write a YAML tree config, creating parent directories."""

    def write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return write


@pytest.fixture
def make_repo() -> Callable[[Path], Path]:
    """Create a directory that looks like a git working copy."""

    def make(path: Path) -> Path:
        (path / ".git").mkdir(parents=True, exist_ok=True)
        return path

    return make


@pytest.fixture
def build_engine(fake_git: FakeGit) -> Callable[..., Engine]:
    """Wire and load the tree engine for the workspace at ``root``.

    An optional second argument replaces the YAML config provider.
    """

    def build(root: Path, provider: ConfigProvider | None = None) -> Engine:
        console = MockConsole()
        store = TreeStore(state_path=root / ".muno" / "state.json")
        loader = ConfigReferenceLoader(store, provider or YamlConfigProvider(), root)
        resolver = PathResolver(store, loader, fake_git, root, console)
        executor = TreeExecutor(store, resolver, loader, fake_git, console)
        loaded = loader.load_root(root / "muno.yaml")
        assert isinstance(loaded, Ok), loaded
        return Engine(root, store, loader, resolver, executor, fake_git, console)

    return build
