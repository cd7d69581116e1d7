from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

GitAction = Literal["pull", "push", "status", "commit"]


@dataclass(frozen=True, slots=True)
class NotInitialized:
    workspace: Path | None = None


@dataclass(frozen=True, slots=True)
class PathNotFound:
    path: str
    segment: str
    parent: str


@dataclass(frozen=True, slots=True)
class PhysicalMissing:
    path: str
    physical: Path
    lazy: bool = False


@dataclass(frozen=True, slots=True)
class ConfigCycle:
    chain: tuple[Path, ...]


@dataclass(frozen=True, slots=True)
class ConfigInvalid:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class CloneFailed:
    path: str
    url: str
    message: str


@dataclass(frozen=True, slots=True)
class GitActionFailed:
    path: str
    action: GitAction
    message: str


@dataclass(frozen=True, slots=True)
class PersistFailed:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class NodeConflict:
    path: str
    reason: str


TreeError = (
    NotInitialized
    | PathNotFound
    | PhysicalMissing
    | ConfigCycle
    | ConfigInvalid
    | CloneFailed
    | GitActionFailed
    | PersistFailed
    | NodeConflict
)
