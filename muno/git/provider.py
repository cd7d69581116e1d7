"""Git provider interface consumed by the tree engine.

The resolver and executor never shell out themselves; they call a
``GitProvider``. Production code uses ``SubprocessGitProvider``; tests pass
fakes that record calls and return canned results.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from muno.core.result import Result
from muno.core.settings import GitSettings

from .repository import (
    GitCommitResult,
    GitError,
    GitPullResult,
    GitPushResult,
    GitStatus,
    Repository,
    clone_repository,
)

__all__ = ["GitProvider", "SubprocessGitProvider"]


class GitProvider(Protocol):
    """Git operations needed to materialize and maintain tree nodes."""

    def clone(self, url: str, dest: Path) -> Result[None, GitError]: ...

    def pull(self, path: Path, *, force: bool = False) -> Result[GitPullResult, GitError]: ...

    def push(self, path: Path) -> Result[GitPushResult, GitError]: ...

    def status(self, path: Path) -> Result[GitStatus, GitError]: ...

    def commit(self, path: Path, message: str) -> Result[GitCommitResult, GitError]: ...

    def get_remotes(self, path: Path) -> Result[dict[str, str], GitError]: ...

    def current_branch(self, path: Path) -> Result[str, GitError]: ...


class SubprocessGitProvider:
    """GitProvider backed by the git CLI."""

    def __init__(self, settings: GitSettings | None = None) -> None:
        self._settings = settings or GitSettings()

    def _repo(self, path: Path) -> Repository:
        return Repository(
            path,
            timeout=self._settings.timeout,
            network_timeout=self._settings.network_timeout,
        )

    def clone(self, url: str, dest: Path) -> Result[None, GitError]:
        return clone_repository(url, dest, timeout=self._settings.network_timeout)

    def pull(self, path: Path, *, force: bool = False) -> Result[GitPullResult, GitError]:
        return self._repo(path).pull(force=force)

    def push(self, path: Path) -> Result[GitPushResult, GitError]:
        return self._repo(path).push()

    def status(self, path: Path) -> Result[GitStatus, GitError]:
        return self._repo(path).status()

    def commit(self, path: Path, message: str) -> Result[GitCommitResult, GitError]:
        return self._repo(path).commit_all(message)

    def get_remotes(self, path: Path) -> Result[dict[str, str], GitError]:
        return self._repo(path).remotes()

    def current_branch(self, path: Path) -> Result[str, GitError]:
        return self._repo(path).current_branch()
