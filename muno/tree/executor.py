"""Recursive git operations over a subtree.

The executor walks a subtree depth-first, pre-order, and applies one git
action per cloned repository. Failures are recorded per node and the walk
goes on: a failed pull on one repository never stops its siblings (or its
own children) from being visited. Only problems that make the walk
impossible, such as an unknown starting address, are returned as errors.

Per node:

- lazy and not cloned: skipped with its subtree, unless ``include_lazy``
  (or the operation is ``clone``), in which case it is cloned first;
- eager and not cloned: cloned, since eager nodes belong on disk;
- cloned repository: the git action runs, even when the node has children;
- then the node's children are loaded and visited in declared order.

With ``max_workers > 1`` sibling subtrees run on a thread pool. A child is
only scheduled once its parent has finished, so clones and config
discovery always commit before anything below them starts.
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from muno.core.result import Err, Ok, Result
from muno.output.console import ConsoleProtocol, Style
from muno.output.errors import describe_tree_error

from .errors import GitActionFailed, TreeError
from .layout import physical_path
from .loader import ConfigReferenceLoader
from .models import NodeInfo, join_path
from .resolver import PathResolver
from .store import TreeStore

if TYPE_CHECKING:
    from muno.git.provider import GitProvider

__all__ = [
    "NodeOutcome",
    "Operation",
    "TraversalOptions",
    "TraversalReport",
    "TreeExecutor",
]

Operation = Literal["pull", "push", "status", "commit", "clone"]


@dataclass(frozen=True, slots=True)
class TraversalOptions:
    """How a recursive operation walks the tree.

    Attributes:
        recursive: Visit the whole subtree. When False only the start node
            is visited, or its immediate children if it is not a repository.
        include_lazy: Clone lazy repositories instead of skipping them.
        force: For pull, discard local state and reset to upstream.
        message: Commit message (commit only).
        max_workers: Thread pool size for sibling subtrees; 1 is sequential.
        cancel: Checked between nodes; once set no further node starts.
    """

    recursive: bool = True
    include_lazy: bool = False
    force: bool = False
    message: str | None = None
    max_workers: int = 1
    cancel: threading.Event | None = None


@dataclass(frozen=True, slots=True)
class NodeOutcome:
    """What happened at one node."""

    path: str
    order: tuple[int, ...]
    cloned: bool = False
    detail: str = ""
    error: TreeError | None = None
    skipped: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.skipped is None


def _no_outcomes() -> list[NodeOutcome]:
    return []


@dataclass
class TraversalReport:
    """Accumulated result of a recursive operation."""

    operation: Operation
    start: str
    outcomes: list[NodeOutcome] = field(default_factory=_no_outcomes)
    cancelled: bool = False

    @property
    def errors(self) -> list[tuple[str, TreeError]]:
        return [(o.path, o.error) for o in self.outcomes if o.error is not None]

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.error is not None)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped is not None)

    @property
    def cloned(self) -> list[str]:
        return [o.path for o in self.outcomes if o.cloned]

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.cancelled

    def outcome(self, path: str) -> NodeOutcome | None:
        for o in self.outcomes:
            if o.path == path:
                return o
        return None


class TreeExecutor:
    """Runs pull/push/status/commit/clone over subtrees of a TreeStore."""

    def __init__(
        self,
        store: TreeStore,
        resolver: PathResolver,
        loader: ConfigReferenceLoader,
        git: GitProvider,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._loader = loader
        self._git = git
        self._console = console

    def run(
        self,
        operation: Operation,
        target: str = ".",
        *,
        options: TraversalOptions | None = None,
        current: str | None = None,
    ) -> Result[TraversalReport, TreeError]:
        """Apply ``operation`` from the node addressed by ``target``.

        Returns:
            Err only when the start address cannot be resolved (or the tree
            is not loaded). Every per-node failure is inside the report.
        """
        options = options or TraversalOptions()
        start = self._resolver.locate(target, ensure=options.include_lazy, current=current)
        if isinstance(start, Err):
            return start

        visitor = _Visitor(self, operation, options, start.value.path)
        if options.max_workers > 1 and options.recursive:
            visitor.run_parallel()
        else:
            visitor.walk(start.value.path, (), 0)

        visitor.report.outcomes.sort(key=lambda o: o.order)
        return Ok(visitor.report)


class _Visitor:
    """State of one traversal: options, report and the report lock."""

    def __init__(
        self,
        executor: TreeExecutor,
        operation: Operation,
        options: TraversalOptions,
        start: str,
    ) -> None:
        self._store = executor._store
        self._resolver = executor._resolver
        self._loader = executor._loader
        self._git = executor._git
        self._console = executor._console
        self._operation = operation
        self._options = options
        self._lock = threading.Lock()
        self.report = TraversalReport(operation=operation, start=start)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def walk(self, path: str, order: tuple[int, ...], depth: int) -> None:
        children = self.visit(path, order, depth)
        for index, child in enumerate(children):
            if self._cancelled():
                return
            self.walk(child, (*order, index), depth + 1)

    def run_parallel(self) -> None:
        with ThreadPoolExecutor(
            max_workers=self._options.max_workers, thread_name_prefix="muno"
        ) as pool:
            pending: dict[Future[list[str]], tuple[tuple[int, ...], int]] = {
                pool.submit(self.visit, self.report.start, (), 0): ((), 0)
            }
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    order, depth = pending.pop(future)
                    for index, child in enumerate(future.result()):
                        if self._cancelled():
                            break
                        child_order = (*order, index)
                        child_future = pool.submit(self.visit, child, child_order, depth + 1)
                        pending[child_future] = (child_order, depth + 1)

    def _cancelled(self) -> bool:
        cancel = self._options.cancel
        if cancel is not None and cancel.is_set():
            self.report.cancelled = True
            return True
        return False

    # -------------------------------------------------------------------------
    # One node
    # -------------------------------------------------------------------------

    def visit(self, path: str, order: tuple[int, ...], depth: int) -> list[str]:
        """Process one node and return the children to visit next."""
        if self._cancelled():
            return []

        found = self._store.get_node(path)
        if isinstance(found, Err):
            self._record(NodeOutcome(path, order, error=found.error))
            return []
        node = found.value

        cloned = False
        if node.needs_clone:
            wants_lazy = self._options.include_lazy or self._operation == "clone"
            if node.is_lazy and not wants_lazy:
                self._record(NodeOutcome(path, order, skipped="lazy, not cloned"))
                return []
            materialized = self._resolver.materialize(path)
            if isinstance(materialized, Err):
                self._record(NodeOutcome(path, order, error=materialized.error))
                return []
            node = materialized.value
            cloned = True

        if self._operation == "clone":
            if cloned:
                self._record(NodeOutcome(path, order, cloned=True))
        elif node.is_repository and node.is_cloned:
            self._record(self._act(node, order, cloned))

        if not self._descends(node, depth):
            return []

        expanded = self._loader.ensure_children(path)
        if isinstance(expanded, Err):
            self._record(NodeOutcome(path, order, error=expanded.error))
            return []
        return [join_path(path, name) for name in expanded.value.children]

    def _descends(self, node: NodeInfo, depth: int) -> bool:
        if self._options.recursive:
            return True
        return depth == 0 and not node.is_repository

    def _act(self, node: NodeInfo, order: tuple[int, ...], cloned: bool) -> NodeOutcome:
        located = physical_path(self._store, self._resolver.root_dir, node.path)
        if isinstance(located, Err):
            return NodeOutcome(node.path, order, cloned=cloned, error=located.error)
        directory: Path = located.value
        git = self._git

        match self._operation:
            case "pull":
                pulled = git.pull(directory, force=self._options.force)
                if isinstance(pulled, Err):
                    return self._failed(node, order, cloned, "pull", pulled.error.message)
                detail = "updated" if pulled.value.updated else "up to date"
                return NodeOutcome(node.path, order, cloned=cloned, detail=detail)
            case "push":
                pushed = git.push(directory)
                if isinstance(pushed, Err):
                    return self._failed(node, order, cloned, "push", pushed.error.message)
                return NodeOutcome(node.path, order, cloned=cloned, detail="pushed")
            case "status":
                status = git.status(directory)
                if isinstance(status, Err):
                    return self._failed(node, order, cloned, "status", status.error.message)
                self._store.update_node(node.path, has_changes=not status.value.is_clean)
                return NodeOutcome(node.path, order, cloned=cloned, detail=status.value.summary())
            case "commit":
                committed = git.commit(directory, self._options.message or "")
                if isinstance(committed, Err):
                    return self._failed(node, order, cloned, "commit", committed.error.message)
                if not committed.value.committed:
                    return NodeOutcome(node.path, order, cloned=cloned, skipped="nothing to commit")
                self._store.update_node(node.path, has_changes=False)
                return NodeOutcome(node.path, order, cloned=cloned, detail="committed")

    def _failed(
        self,
        node: NodeInfo,
        order: tuple[int, ...],
        cloned: bool,
        action: Literal["pull", "push", "status", "commit"],
        message: str,
    ) -> NodeOutcome:
        error = GitActionFailed(node.path, action, message)
        return NodeOutcome(node.path, order, cloned=cloned, error=error)

    def _record(self, outcome: NodeOutcome) -> None:
        with self._lock:
            self.report.outcomes.append(outcome)
            self._echo(outcome)

    def _echo(self, outcome: NodeOutcome) -> None:
        console = self._console
        if outcome.cloned:
            console.success(f"cloned {outcome.path}")
        if outcome.error is not None:
            console.warning(describe_tree_error(outcome.error))
        elif outcome.skipped is not None:
            console.print(f"{outcome.path}: {outcome.skipped}", Style.DIM)
        elif outcome.detail:
            if self._operation == "status":
                console.print(f"{outcome.path}: {outcome.detail}")
            else:
                console.success(f"{outcome.path}: {outcome.detail}")
