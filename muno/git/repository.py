"""Git repository abstraction.

``Repository`` wraps the git CLI for a single working copy. Every command
runs as ``git -C <path> ...`` through ``muno.platform.process.run`` and
returns a Result; nothing here raises for an ordinary git failure.

Usage:
    repo = Repository(Path("/ws/repos/backend"))

    match repo.status():
        case Ok(status):
            print(f"{status.branch}: {'clean' if status.is_clean else 'dirty'}")
        case Err(e):
            print(f"status failed: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from muno.core.result import Err, Ok, Result
from muno.core.settings import GIT_NETWORK_TIMEOUT_SECONDS, GIT_TIMEOUT_SECONDS
from muno.platform.process import ProcessError
from muno.platform.process import run as run_process

__all__ = [
    "GitCommitResult",
    "GitError",
    "GitPullResult",
    "GitPushResult",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "clone_repository",
]

_NETWORK_COMMANDS = frozenset({"clone", "fetch", "pull", "push"})


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "pull --ff-only")
        message: Last meaningful line of git's output
        returncode: Process return code (-1 if git never ran to completion)
    """

    command: str
    message: str
    returncode: int = 1

    @classmethod
    def from_process(cls, command: str, error: ProcessError) -> GitError:
        return cls(command=command, message=error.detail, returncode=error.returncode)


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """One line of ``git status --porcelain=v1``.

    Attributes:
        xy: Two-character status code (e.g. "M ", " M", "??")
        path: File path relative to the repository root
    """

    xy: str
    path: str

    @property
    def is_staged(self) -> bool:
        return self.xy != "??" and self.xy[0] != " "

    @property
    def is_unstaged(self) -> bool:
        return self.xy != "??" and self.xy[1] != " "

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed working tree status.

    Attributes:
        branch: Current branch name ("" when git printed no branch line)
        upstream: Upstream ref such as "origin/main", or None
        ahead: Commits ahead of upstream
        behind: Commits behind upstream
        entries: Staged, unstaged and untracked entries
    """

    branch: str
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def staged_count(self) -> int:
        return sum(1 for e in self.entries if e.is_staged)

    @property
    def modified_count(self) -> int:
        """Entries with unstaged modifications to tracked files."""
        return sum(1 for e in self.entries if e.is_unstaged)

    @property
    def untracked_count(self) -> int:
        return sum(1 for e in self.entries if e.is_untracked)

    def summary(self) -> str:
        """One-line description: ``branch=main (1 untracked, 2 modified)``."""
        text = f"branch={self.branch or '?'}"
        if self.ahead or self.behind:
            text += f" [ahead {self.ahead}, behind {self.behind}]"
        if self.is_clean:
            return f"{text} (clean)"

        details: list[str] = []
        if self.untracked_count:
            details.append(f"{self.untracked_count} untracked")
        if self.modified_count:
            details.append(f"{self.modified_count} modified")
        if self.staged_count:
            details.append(f"{self.staged_count} staged")
        return f"{text} ({', '.join(details)})"


@dataclass(frozen=True, slots=True)
class GitPullResult:
    """Outcome of a successful pull."""

    output: str
    forced: bool = False

    @property
    def updated(self) -> bool:
        """False when git reported nothing to pull."""
        lowered = self.output.lower()
        return not ("already up to date" in lowered or "already up-to-date" in lowered)


@dataclass(frozen=True, slots=True)
class GitPushResult:
    """Outcome of a successful push."""

    output: str


@dataclass(frozen=True, slots=True)
class GitCommitResult:
    """Outcome of a commit attempt; ``committed`` is False for a clean tree."""

    committed: bool
    output: str = ""


def clone_repository(
    url: str,
    dest: Path,
    *,
    timeout: float = GIT_NETWORK_TIMEOUT_SECONDS,
) -> Result[None, GitError]:
    """Clone ``url`` into ``dest``.

    Parent directories are created first. ``dest`` itself must not exist or
    must be empty, as git requires.
    """
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(GitError(command="clone", message=f"cannot create {dest.parent}: {e}"))

    result = run_process(["git", "clone", url, str(dest)], cwd=dest.parent, timeout=timeout)
    if isinstance(result, Err):
        return Err(GitError.from_process("clone", result.error))
    return Ok(None)


class Repository:
    """Operations on one git working copy.

    Attributes:
        path: Path to the repository root
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = GIT_TIMEOUT_SECONDS,
        network_timeout: float = GIT_NETWORK_TIMEOUT_SECONDS,
    ) -> None:
        self.path = path
        self._timeout = timeout
        self._network_timeout = network_timeout

    def exists(self) -> bool:
        """True if ``path`` looks like a working copy (.git dir or gitfile)."""
        return (self.path / ".git").exists()

    def status(self) -> Result[GitStatus, GitError]:
        """Run ``git status --porcelain=v1 -b`` and parse it."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        if isinstance(result, Err):
            return Err(GitError.from_process("status", result.error))
        return Ok(parse_status(result.value))

    def current_branch(self) -> Result[str, GitError]:
        """Current branch name; "HEAD" when detached."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        if isinstance(result, Err):
            return Err(GitError.from_process("rev-parse", result.error))
        return Ok(result.value.strip())

    def remotes(self) -> Result[dict[str, str], GitError]:
        """Map remote name to fetch URL, from ``git remote -v``."""
        result = self._run(["remote", "-v"])
        if isinstance(result, Err):
            return Err(GitError.from_process("remote -v", result.error))
        return Ok(parse_remotes(result.value))

    def pull(self, *, force: bool = False) -> Result[GitPullResult, GitError]:
        """Fast-forward pull, or fetch and hard-reset to upstream when ``force``.

        A forced pull discards local commits and working tree changes.
        """
        if not force:
            result = self._run(["pull", "--ff-only"])
            if isinstance(result, Err):
                return Err(GitError.from_process("pull --ff-only", result.error))
            return Ok(GitPullResult(output=result.value.strip()))

        fetched = self._run(["fetch"])
        if isinstance(fetched, Err):
            return Err(GitError.from_process("fetch", fetched.error))
        reset = self._run(["reset", "--hard", "@{upstream}"])
        if isinstance(reset, Err):
            return Err(GitError.from_process("reset --hard @{upstream}", reset.error))
        return Ok(GitPullResult(output=reset.value.strip(), forced=True))

    def push(self) -> Result[GitPushResult, GitError]:
        result = self._run(["push"])
        if isinstance(result, Err):
            return Err(GitError.from_process("push", result.error))
        return Ok(GitPushResult(output=result.value.strip()))

    def commit_all(self, message: str) -> Result[GitCommitResult, GitError]:
        """Stage everything and commit. A clean tree is not an error."""
        status = self.status()
        if isinstance(status, Err):
            return status
        if status.value.is_clean:
            return Ok(GitCommitResult(committed=False))

        added = self._run(["add", "-A"])
        if isinstance(added, Err):
            return Err(GitError.from_process("add -A", added.error))
        committed = self._run(["commit", "-m", message])
        if isinstance(committed, Err):
            return Err(GitError.from_process("commit", committed.error))
        return Ok(GitCommitResult(committed=True, output=committed.value.strip()))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        timeout = self._network_timeout if args[0] in _NETWORK_COMMANDS else self._timeout
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

_AHEAD_RE = re.compile(r"ahead\s+(\d+)")
_BEHIND_RE = re.compile(r"behind\s+(\d+)")


def parse_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 -b`` output."""
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if not lines or not lines[0].startswith("##"):
        return GitStatus(branch="", entries=_parse_entries(lines))

    head = lines[0][2:].strip()
    bracket = ""
    if " [" in head:
        head, bracket = head.split(" [", 1)

    upstream: str | None = None
    branch = head.strip()
    if "..." in branch:
        branch, upstream = (part.strip() for part in branch.split("...", 1))
    if branch.startswith("No commits yet on "):
        branch = branch.removeprefix("No commits yet on ")

    ahead_match = _AHEAD_RE.search(bracket)
    behind_match = _BEHIND_RE.search(bracket)
    return GitStatus(
        branch=branch,
        upstream=upstream,
        ahead=int(ahead_match.group(1)) if ahead_match else 0,
        behind=int(behind_match.group(1)) if behind_match else 0,
        entries=_parse_entries(lines[1:]),
    )


def _parse_entries(lines: list[str]) -> tuple[StatusEntry, ...]:
    entries: list[StatusEntry] = []
    for line in lines:
        if len(line) < 4:
            continue
        entries.append(StatusEntry(xy=line[:2], path=line[3:]))
    return tuple(entries)


def parse_remotes(output: str) -> dict[str, str]:
    """Parse ``git remote -v`` output, keeping the fetch URL of each remote."""
    remotes: dict[str, str] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name, url = parts[0], parts[1]
        kind = parts[2] if len(parts) > 2 else "(fetch)"
        if kind == "(fetch)" or name not in remotes:
            remotes[name] = url
    return remotes
