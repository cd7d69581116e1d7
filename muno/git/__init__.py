"""Git adapters.

- Repository: commands against a single working copy
- GitProvider: the interface the tree engine depends on
- SubprocessGitProvider: GitProvider backed by the git CLI
"""

from muno.git.provider import GitProvider, SubprocessGitProvider
from muno.git.repository import (
    GitCommitResult,
    GitError,
    GitPullResult,
    GitPushResult,
    GitStatus,
    Repository,
    StatusEntry,
    clone_repository,
)

__all__ = [
    # Provider
    "GitProvider",
    "SubprocessGitProvider",
    # Repository
    "GitCommitResult",
    "GitError",
    "GitPullResult",
    "GitPushResult",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "clone_repository",
]
