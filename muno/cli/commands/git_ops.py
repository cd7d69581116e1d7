"""Recursive git commands: clone, pull, push, status, commit.

Each walks the subtree at a tree path. Per-node failures are printed as
warnings and counted in the summary; the exit code stays 0 unless --strict
is given. Only an unresolvable start path is fatal.

Ctrl-C stops the walk at the next node boundary; the partial summary is
still printed and the exit code is 130.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

import typer

from muno.cli.commands._helpers import unwrap_or_exit
from muno.cli.context import CLIContext, build_context
from muno.core.errors import ErrorCode
from muno.output.console import ConsoleProtocol, Style
from muno.tree.executor import Operation, TraversalOptions, TraversalReport

_STRICT_HELP = "Exit non-zero when any node fails"
_RECURSIVE_HELP = "Walk the whole subtree (default: the node, or its immediate children)"


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event, console: ConsoleProtocol) -> Iterator[None]:
    """Turn Ctrl-C into ``cancel.set()`` while a traversal runs.

    The walk then stops at the next node boundary and still returns its
    report. A second Ctrl-C raises KeyboardInterrupt as usual. Signal
    handlers can only be installed from the main thread; elsewhere nothing
    changes.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handle(signum: int, frame: FrameType | None) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()
        console.warning("interrupted, stopping after the repositories in progress")

    previous = signal.signal(signal.SIGINT, handle)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


def _execute(
    ctx: CLIContext,
    operation: Operation,
    target: str,
    *,
    recursive: bool,
    include_lazy: bool = False,
    force: bool = False,
    message: str | None = None,
    parallel: int | None = None,
) -> TraversalReport:
    cancel = threading.Event()
    options = TraversalOptions(
        recursive=recursive,
        include_lazy=include_lazy,
        force=force,
        message=message,
        max_workers=parallel or ctx.settings.executor.max_workers,
        cancel=cancel,
    )
    try:
        with _cancel_on_interrupt(cancel, ctx.console):
            result = ctx.manager.run(operation, target, options=options, cwd=Path.cwd())
    except KeyboardInterrupt:
        ctx.console.warning("aborted")
        raise typer.Exit(code=130) from None
    return unwrap_or_exit(result, ctx)


def _summarize(ctx: CLIContext, report: TraversalReport, *, strict: bool) -> None:
    console = ctx.console
    console.newline()
    if not report.outcomes:
        console.print("nothing to do", Style.DIM)
    console.print(f"Results: {report.succeeded} succeeded, {report.failed} failed", Style.BOLD)
    if report.skipped:
        console.print(f"{report.skipped} skipped", Style.DIM)
    if report.cancelled:
        console.warning("cancelled before every node was visited")
        raise typer.Exit(code=130)
    if strict and not report.ok:
        raise typer.Exit(code=int(ErrorCode.GIT_ERROR))


def clone(
    target: str = typer.Argument(".", help="Tree path to start from"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help=_RECURSIVE_HELP),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Worker threads"),
    strict: bool = typer.Option(False, "--strict", help=_STRICT_HELP),
) -> None:
    """Clone lazy and missing repositories."""
    ctx = build_context()
    report = _execute(ctx, "clone", target, recursive=recursive, parallel=parallel)
    _summarize(ctx, report, strict=strict)
    if not report.cloned and not report.failed:
        ctx.console.print("all repositories already cloned", Style.DIM)


def pull(
    target: str = typer.Argument(".", help="Tree path to start from"),
    all_nodes: bool = typer.Option(False, "--all", help="Pull the whole workspace"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help=_RECURSIVE_HELP),
    include_lazy: bool = typer.Option(
        False, "--include-lazy", help="Clone lazy repositories instead of skipping them"
    ),
    force: bool = typer.Option(
        False, "--force", help="Discard local changes and reset to upstream"
    ),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Worker threads"),
    strict: bool = typer.Option(False, "--strict", help=_STRICT_HELP),
) -> None:
    """Pull repositories."""
    ctx = build_context()
    if all_nodes:
        target, recursive = "/", True
    report = _execute(
        ctx,
        "pull",
        target,
        recursive=recursive,
        include_lazy=include_lazy,
        force=force,
        parallel=parallel,
    )
    _summarize(ctx, report, strict=strict)
    if report.failed and not force:
        ctx.console.print("tip: use --force to reset diverged repositories", Style.DIM)


def push(
    target: str = typer.Argument(".", help="Tree path to start from"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help=_RECURSIVE_HELP),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Worker threads"),
    strict: bool = typer.Option(False, "--strict", help=_STRICT_HELP),
) -> None:
    """Push repositories."""
    ctx = build_context()
    report = _execute(ctx, "push", target, recursive=recursive, parallel=parallel)
    _summarize(ctx, report, strict=strict)


def status(
    target: str = typer.Argument(".", help="Tree path to start from"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help=_RECURSIVE_HELP),
    strict: bool = typer.Option(False, "--strict", help=_STRICT_HELP),
) -> None:
    """Show the git status of repositories."""
    ctx = build_context()
    report = _execute(ctx, "status", target, recursive=recursive)
    _summarize(ctx, report, strict=strict)


def commit(
    target: str = typer.Argument(".", help="Tree path to start from"),
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help=_RECURSIVE_HELP),
    strict: bool = typer.Option(False, "--strict", help=_STRICT_HELP),
) -> None:
    """Stage every change and commit."""
    ctx = build_context()
    if not message.strip():
        ctx.console.error("commit message is empty")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    report = _execute(ctx, "commit", target, recursive=recursive, message=message)
    _summarize(ctx, report, strict=strict)
