"""Tests for git/provider.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from muno.core.result import Ok
from muno.core.settings import GitSettings
from muno.git.provider import GitProvider, SubprocessGitProvider


def _completed(stdout: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["git"], returncode=0, stdout=stdout, stderr="")


class TestSubprocessGitProvider:
    """The provider forwards to Repository with the configured timeouts."""

    def test_satisfies_protocol(self) -> None:
        provider: GitProvider = SubprocessGitProvider()
        assert provider is not None

    @patch("subprocess.run")
    def test_status_uses_local_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = _completed("## main\n")
        provider = SubprocessGitProvider(GitSettings(timeout=7, network_timeout=70))

        result = provider.status(tmp_path)

        assert isinstance(result, Ok)
        assert mock_run.call_args.kwargs["timeout"] == 7

    @patch("subprocess.run")
    def test_clone_uses_network_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = _completed()
        provider = SubprocessGitProvider(GitSettings(timeout=7, network_timeout=70))

        provider.clone("https://x/api.git", tmp_path / "api")

        assert mock_run.call_args.kwargs["timeout"] == 70

    @patch("subprocess.run")
    def test_pull_force_is_forwarded(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = _completed()

        result = SubprocessGitProvider().pull(tmp_path, force=True)

        assert isinstance(result, Ok)
        assert result.value.forced is True

    @patch("subprocess.run")
    def test_commit_and_branch(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = _completed("## main\n")
        provider = SubprocessGitProvider()

        committed = provider.commit(tmp_path, "msg")
        assert isinstance(committed, Ok)
        assert committed.value.committed is False

        mock_run.return_value = _completed("main\n")
        assert provider.current_branch(tmp_path) == Ok("main")

    @patch("subprocess.run")
    def test_get_remotes(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = _completed("origin\thttps://x/a.git (fetch)\n")
        assert SubprocessGitProvider().get_remotes(tmp_path) == Ok({"origin": "https://x/a.git"})
