"""Typed tool settings.

Settings live in ``.muno/config.toml`` under the workspace root and are
optional; every field has a default. They tune how muno behaves (timeouts,
parallelism, defaults for new trees), never what the tree contains. The tree
itself is described by the YAML configs in ``muno.tree.config_file``.

Example:

    [defaults]
    repos_dir = "repos"
    fetch = "lazy"

    [git]
    timeout = 30
    network_timeout = 300
    default_remote = "origin"

    [executor]
    max_workers = 4
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_int, get_str, get_table

__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_REMOTE",
    "DEFAULT_REPOS_DIR",
    "DefaultsSettings",
    "ExecutorSettings",
    "FetchMode",
    "GitSettings",
    "Settings",
    "SettingsError",
    "load_settings",
    "load_settings_or_default",
]

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

DEFAULT_REPOS_DIR = "repos"
DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "main"
GIT_TIMEOUT_SECONDS = 30.0
GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

FetchMode = Literal["eager", "lazy", "auto"]
_FETCH_MODES: tuple[FetchMode, ...] = ("eager", "lazy", "auto")


@dataclass(frozen=True, slots=True)
class SettingsError:
    """Error when the settings file cannot be read or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DefaultsSettings:
    """Defaults applied when creating trees and adding nodes."""

    repos_dir: str = DEFAULT_REPOS_DIR
    fetch: FetchMode = "eager"


@dataclass(frozen=True, slots=True)
class GitSettings:
    """Git invocation settings."""

    timeout: float = GIT_TIMEOUT_SECONDS
    network_timeout: float = GIT_NETWORK_TIMEOUT_SECONDS
    default_remote: str = DEFAULT_REMOTE
    default_branch: str = DEFAULT_BRANCH


@dataclass(frozen=True, slots=True)
class ExecutorSettings:
    """Recursive operation settings.

    ``max_workers`` of 1 keeps traversal strictly sequential.
    """

    max_workers: int = 1


@dataclass(frozen=True, slots=True)
class Settings:
    """Main settings container."""

    defaults: DefaultsSettings = field(default_factory=DefaultsSettings)
    git: GitSettings = field(default_factory=GitSettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Settings:
        """Create Settings from a mapping (parsed TOML).

        Raises:
            ValueError: If a value is present but out of range.
        """
        defaults: StrDict = get_table(data, "defaults") or {}
        git: StrDict = get_table(data, "git") or {}
        executor: StrDict = get_table(data, "executor") or {}

        fetch = get_str(defaults, "fetch") or "eager"
        if fetch not in _FETCH_MODES:
            raise ValueError(f"defaults.fetch must be one of {', '.join(_FETCH_MODES)}")

        max_workers = get_int(executor, "max_workers")
        if max_workers is None:
            max_workers = 1
        if max_workers < 1:
            raise ValueError("executor.max_workers must be >= 1")

        return cls(
            defaults=DefaultsSettings(
                repos_dir=get_str(defaults, "repos_dir") or DEFAULT_REPOS_DIR,
                fetch=fetch,  # type: ignore[arg-type]
            ),
            git=GitSettings(
                timeout=get_float(git, "timeout") or GIT_TIMEOUT_SECONDS,
                network_timeout=get_float(git, "network_timeout") or GIT_NETWORK_TIMEOUT_SECONDS,
                default_remote=get_str(git, "default_remote") or DEFAULT_REMOTE,
                default_branch=get_str(git, "default_branch") or DEFAULT_BRANCH,
            ),
            executor=ExecutorSettings(max_workers=max_workers),
        )


def _parse_toml(path: Path) -> Result[StrDict, SettingsError]:
    """Parse a TOML file, mapping read and syntax errors to SettingsError."""
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(SettingsError(f"Settings file not found: {path}", path=path))
    except PermissionError:
        return Err(SettingsError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(SettingsError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(SettingsError(f"Error reading settings: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(SettingsError("Settings root must be a TOML table", path=path))
    return Ok(data)


def load_settings(path: Path) -> Result[Settings, SettingsError]:
    """Load settings from a TOML file.

    Args:
        path: Path to config.toml

    Returns:
        Ok(Settings) on success, Err(SettingsError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Settings.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(SettingsError(f"Invalid settings: {e}", path=path))


def load_settings_or_default(path: Path) -> Settings:
    """Load settings, falling back to defaults when the file is absent or invalid."""
    result = load_settings(path)
    if isinstance(result, Ok):
        return result.value
    return Settings()
