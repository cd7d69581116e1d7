"""Tests for muno.core.workspace module."""

from __future__ import annotations

from pathlib import Path

import pytest

from muno.core.result import Err, Ok
from muno.core.workspace import (
    WORKSPACE_ENV_VAR,
    Workspace,
    detect_workspace,
    detect_workspace_info,
    find_config_file,
    find_workspace_upward,
    is_workspace_root,
)


@pytest.fixture(autouse=True)
def _no_workspace_env(monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create a minimal workspace in a temp directory."""
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "muno.yaml").write_text("workspace:\n  name: ws\nnodes: []\n")
    return ws


class TestWorkspace:
    """Test Workspace dataclass."""

    def test_paths(self, temp_workspace: Path) -> None:
        ws = Workspace(root=temp_workspace, config_path=temp_workspace / "muno.yaml")
        assert ws.state_dir == temp_workspace / ".muno"
        assert ws.state_path == temp_workspace / ".muno" / "state.json"
        assert ws.settings_path == temp_workspace / ".muno" / "config.toml"
        assert str(ws) == str(temp_workspace)

    def test_exists(self, temp_workspace: Path, tmp_path: Path) -> None:
        assert Workspace(temp_workspace, temp_workspace / "muno.yaml").exists() is True
        assert Workspace(tmp_path, tmp_path / "muno.yaml").exists() is False


class TestConfigFile:
    """Test tree config discovery in one directory."""

    def test_primary_name(self, temp_workspace: Path) -> None:
        assert find_config_file(temp_workspace) == temp_workspace / "muno.yaml"

    @pytest.mark.parametrize("name", [".muno.yaml", "muno.yml", ".muno.yml"])
    def test_alternative_names(self, tmp_path: Path, name: str) -> None:
        (tmp_path / name).write_text("nodes: []\n")
        assert find_config_file(tmp_path) == tmp_path / name
        assert is_workspace_root(tmp_path) is True

    def test_no_config(self, tmp_path: Path) -> None:
        assert find_config_file(tmp_path) is None
        assert is_workspace_root(tmp_path) is False


class TestFindWorkspaceUpward:
    def test_from_nested_dir(self, temp_workspace: Path) -> None:
        nested = temp_workspace / "repos" / "a" / "b"
        nested.mkdir(parents=True)
        assert find_workspace_upward(nested) == temp_workspace

    def test_highest_config_wins(self, temp_workspace: Path) -> None:
        """A cloned meta-repo with its own muno.yaml does not shadow the root."""
        inner = temp_workspace / "repos" / "platform"
        inner.mkdir(parents=True)
        (inner / "muno.yaml").write_text("nodes: []\n")
        assert find_workspace_upward(inner) == temp_workspace

    def test_not_found(self, tmp_path: Path) -> None:
        assert find_workspace_upward(tmp_path) is None


class TestDetectWorkspace:
    def test_from_start_dir(self, temp_workspace: Path) -> None:
        result = detect_workspace_info(start_dir=temp_workspace)

        assert isinstance(result, Ok)
        assert result.value.workspace.root == temp_workspace.resolve()
        assert result.value.workspace.config_path.name == "muno.yaml"
        assert result.value.source == "cwd"

    def test_from_env(
        self, temp_workspace: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(temp_workspace))

        result = detect_workspace_info(start_dir=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.workspace.root == temp_workspace.resolve()
        assert result.value.source == "env"

    def test_invalid_env_is_an_error(
        self, temp_workspace: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(tmp_path / "nowhere"))

        result = detect_workspace(start_dir=temp_workspace)

        assert isinstance(result, Err)
        assert WORKSPACE_ENV_VAR in result.error.message

    def test_not_found(self, tmp_path: Path) -> None:
        result = detect_workspace(start_dir=tmp_path)

        assert isinstance(result, Err)
        assert "no muno.yaml" in result.error.message
        assert result.error.searched_from == tmp_path.resolve()
        assert result.error.hint is not None
