"""Application services for the muno CLI.

Services coordinate the tree engine (tree/) with infrastructure (git/,
platform/) and are what CLI commands call into.
"""

from muno.services.manager import WorkspaceManager, init_workspace

__all__ = [
    "WorkspaceManager",
    "init_workspace",
]
