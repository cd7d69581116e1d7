"""Tests for the CLI commands, called directly with an injected context."""

from __future__ import annotations

import signal
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import typer
import yaml

import muno.cli.commands.edit as edit_cmd
import muno.cli.commands.git_ops as git_cmd
import muno.cli.commands.navigate as nav_cmd
import muno.cli.commands.view as view_cmd
from muno.cli.commands.init_cmd import init
from muno.cli.context import CLIContext
from muno.core.errors import ErrorCode
from muno.core.result import Ok
from muno.core.settings import Settings
from muno.core.workspace import Workspace
from muno.output.console import MockConsole
from muno.services.manager import WorkspaceManager, init_workspace

if TYPE_CHECKING:
    from muno.test.conftest import FakeGit


@pytest.fixture
def ctx(tmp_path: Path, fake_git: FakeGit, monkeypatch: pytest.MonkeyPatch) -> CLIContext:
    """Initialized workspace at tmp_path, wired into every command module."""
    assert isinstance(init_workspace(tmp_path, name="demo", settings=Settings()), Ok)
    workspace = Workspace(root=tmp_path, config_path=tmp_path / "muno.yaml")
    console = MockConsole()
    manager = WorkspaceManager(workspace, console=console, git=fake_git)
    assert isinstance(manager.load(), Ok)
    context = CLIContext(workspace=workspace, settings=Settings(), console=console, manager=manager)

    for module in (edit_cmd, git_cmd, nav_cmd, view_cmd):
        monkeypatch.setattr(module, "build_context", lambda **_: context)
    monkeypatch.chdir(tmp_path)
    return context


def _console(ctx: CLIContext) -> MockConsole:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console


def _add(url: str, *, lazy: bool = False, to: str = ".") -> None:
    edit_cmd.add(url, name=None, lazy=lazy, fetch=None, to=to)


class TestInit:
    def test_creates_workspace(self, tmp_path: Path) -> None:
        init(name="demo", path=tmp_path)

        assert (tmp_path / "muno.yaml").is_file()
        assert (tmp_path / "repos").is_dir()

    def test_twice_is_a_user_error(self, tmp_path: Path) -> None:
        init(name="demo", path=tmp_path)

        with pytest.raises(typer.Exit) as exc:
            init(name="demo", path=tmp_path)

        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(typer.Exit) as exc:
            init(name=None, path=tmp_path / "nope")
        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


class TestAddRemove:
    def test_add_eager(self, ctx: CLIContext, tmp_path: Path, fake_git: FakeGit) -> None:
        _add("https://example.com/api.git")

        assert _console(ctx).find("added /api (cloned)")
        assert fake_git.names("clone") == ["api"]

    def test_add_lazy(self, ctx: CLIContext, tmp_path: Path, fake_git: FakeGit) -> None:
        _add("https://example.com/web.git", lazy=True)

        assert _console(ctx).find("added /web (lazy)")
        assert _console(ctx).find("muno clone /web")
        assert fake_git.calls == []
        config = yaml.safe_load((tmp_path / "muno.yaml").read_text(encoding="utf-8"))
        assert config["nodes"] == [{"name": "web", "url": "https://example.com/web.git", "fetch": "lazy"}]

    def test_lazy_conflicts_with_fetch(self, ctx: CLIContext) -> None:
        with pytest.raises(typer.Exit) as exc:
            edit_cmd.add("https://example.com/web.git", name=None, lazy=True, fetch=edit_cmd.FetchOption.eager, to=".")
        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    def test_add_duplicate(self, ctx: CLIContext) -> None:
        _add("https://example.com/web.git", lazy=True)

        with pytest.raises(typer.Exit) as exc:
            _add("https://example.com/web.git", lazy=True)

        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
        assert _console(ctx).has_error()

    def test_add_clone_failure(self, ctx: CLIContext, fake_git: FakeGit) -> None:
        fake_git.fail("clone", "api")

        with pytest.raises(typer.Exit) as exc:
            _add("https://example.com/api.git")

        assert exc.value.exit_code == int(ErrorCode.GIT_ERROR)

    def test_remove(self, ctx: CLIContext, tmp_path: Path) -> None:
        _add("https://example.com/api.git")

        edit_cmd.remove("api", yes=True, keep_files=False)

        assert _console(ctx).find("removed /api")
        assert not (tmp_path / "repos" / "api").exists()


class TestNavigation:
    def test_path_prints_directory(
        self, ctx: CLIContext, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _add("https://example.com/api.git")

        nav_cmd.path("api", ensure=False, relative=False)

        assert capsys.readouterr().out.strip() == str((tmp_path / "repos" / "api").resolve())

    def test_path_relative(self, ctx: CLIContext, capsys: pytest.CaptureFixture[str]) -> None:
        _add("https://example.com/web.git", lazy=True)

        nav_cmd.path("web", ensure=False, relative=True)

        assert capsys.readouterr().out.strip() == "/web"

    def test_path_to_lazy_node_without_ensure(self, ctx: CLIContext) -> None:
        _add("https://example.com/web.git", lazy=True)

        with pytest.raises(typer.Exit) as exc:
            nav_cmd.path("web", ensure=False, relative=False)

        assert exc.value.exit_code == int(ErrorCode.IO_ERROR)

    def test_unknown_path(self, ctx: CLIContext) -> None:
        with pytest.raises(typer.Exit) as exc:
            nav_cmd.path("ghost", ensure=False, relative=True)
        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    def test_use_clones_and_prints_directory(
        self, ctx: CLIContext, tmp_path: Path, fake_git: FakeGit, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _add("https://example.com/web.git", lazy=True)

        nav_cmd.use("web", ensure=True)

        assert capsys.readouterr().out.strip() == str((tmp_path / "repos" / "web").resolve())
        assert fake_git.names("clone") == ["web"]
        assert _console(ctx).find("now at /web")

    def test_current_follows_cwd(
        self, ctx: CLIContext, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _add("https://example.com/api.git")
        capsys.readouterr()

        monkeypatch.chdir(tmp_path / "repos" / "api")
        nav_cmd.current()

        assert capsys.readouterr().out.strip() == "/api"
        assert _console(ctx).find("branch: main")
        assert _console(ctx).find("origin: https://example.com/api.git")

    def test_current_at_a_group_has_no_details(self, ctx: CLIContext, capsys: pytest.CaptureFixture[str]) -> None:
        nav_cmd.current()

        assert capsys.readouterr().out.strip() == "/"
        assert not _console(ctx).find("branch:")


class TestViews:
    def test_list_empty(self, ctx: CLIContext) -> None:
        view_cmd.list_nodes(".", recursive=False)
        assert _console(ctx).find("No repositories at this level")

    def test_list_children(self, ctx: CLIContext) -> None:
        _add("https://example.com/web.git", lazy=True)

        view_cmd.list_nodes(".", recursive=False)

        assert _console(ctx).find("💤 web (lazy - not cloned)")

    def test_tree(self, ctx: CLIContext) -> None:
        _add("https://example.com/api.git")
        _add("https://example.com/web.git", lazy=True)

        view_cmd.tree(".", depth=0)

        messages = _console(ctx).messages
        assert "🌳 Repository Tree" in messages
        assert "├── api [📦 ✅]" in messages
        assert "└── web [📦 💤 lazy - not cloned]" in messages
        assert "📊 Summary: 3 total • 2 cloned • 1 lazy" in messages


class TestGitCommands:
    def test_status_on_empty_workspace(self, ctx: CLIContext) -> None:
        git_cmd.status(".", recursive=True, strict=False)

        assert _console(ctx).find("nothing to do")
        assert _console(ctx).find("Results: 0 succeeded, 0 failed")

    def test_pull_failure_exits_zero_without_strict(self, ctx: CLIContext, fake_git: FakeGit) -> None:
        _add("https://example.com/api.git")
        fake_git.fail("pull", "api")

        git_cmd.pull(".", all_nodes=False, recursive=True, include_lazy=False, force=False, parallel=None, strict=False)

        assert _console(ctx).find("Results: 0 succeeded, 1 failed")
        assert _console(ctx).find("--force")

    def test_pull_failure_with_strict(self, ctx: CLIContext, fake_git: FakeGit) -> None:
        _add("https://example.com/api.git")
        fake_git.fail("pull", "api")

        with pytest.raises(typer.Exit) as exc:
            git_cmd.pull(".", all_nodes=False, recursive=True, include_lazy=False, force=False, parallel=None, strict=True)

        assert exc.value.exit_code == int(ErrorCode.GIT_ERROR)

    def test_clone_lazy(self, ctx: CLIContext, fake_git: FakeGit) -> None:
        _add("https://example.com/web.git", lazy=True)

        git_cmd.clone(".", recursive=True, parallel=None, strict=False)

        assert fake_git.names("clone") == ["web"]
        assert _console(ctx).find("Results: 1 succeeded, 0 failed")

    def test_clone_when_nothing_missing(self, ctx: CLIContext) -> None:
        git_cmd.clone(".", recursive=True, parallel=None, strict=False)
        assert _console(ctx).find("all repositories already cloned")

    def test_commit_requires_message(self, ctx: CLIContext) -> None:
        with pytest.raises(typer.Exit) as exc:
            git_cmd.commit(".", message="  ", recursive=True, strict=False)
        assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    def test_interrupt_stops_walk_and_prints_summary(self, ctx: CLIContext, fake_git: FakeGit) -> None:
        _add("https://example.com/api.git")
        _add("https://example.com/web.git")
        fake_git.on("pull", "api", lambda: signal.raise_signal(signal.SIGINT))
        handler = signal.getsignal(signal.SIGINT)

        with pytest.raises(typer.Exit) as exc:
            git_cmd.pull(".", all_nodes=False, recursive=True, include_lazy=False, force=False, parallel=1, strict=False)

        assert exc.value.exit_code == 130
        assert fake_git.names("pull") == ["api"]
        assert _console(ctx).find("Results: 1 succeeded, 0 failed")
        assert _console(ctx).find("cancelled before every node was visited")
        assert signal.getsignal(signal.SIGINT) is handler
