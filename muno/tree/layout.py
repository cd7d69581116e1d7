"""Logical path -> physical directory mapping.

A node lives at ``physical(parent) / parent.repos_dir / name``; the root
lives at the workspace root. ``repos_dir`` is per node, so a subtree loaded
from another config file can use its own directory name.
"""

from __future__ import annotations

from pathlib import Path

from muno.core.result import Err, Ok, Result

from .errors import NotInitialized, PathNotFound
from .models import ROOT_PATH, join_path, split_path
from .store import TreeStore

__all__ = ["physical_path"]


def physical_path(
    store: TreeStore, root_dir: Path, path: str
) -> Result[Path, NotInitialized | PathNotFound]:
    """Directory where the node at ``path`` is (or would be) materialized."""
    with store.lock:
        current = root_dir
        walked = ROOT_PATH
        for name in split_path(path):
            parent = store.get_node(walked)
            if isinstance(parent, Err):
                return parent
            walked = join_path(walked, name)
            current = current / parent.value.repos_dir / name

        found = store.get_node(walked)
        if isinstance(found, Err):
            return found
        return Ok(current)
