"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "ensure_gitignore_entries"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write ``content`` to ``path`` so readers never observe a partial file.

    The text goes to a sibling temp file which is fsynced and then renamed
    over the target. The temp file is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def ensure_gitignore_entries(root: Path, entries: list[str]) -> list[str]:
    """Append missing ``entries`` to ``root/.gitignore``.

    Returns:
        The entries that were added (empty when all were present).
    """
    gitignore = root / ".gitignore"
    existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
    present = {line.strip() for line in existing.splitlines()}

    missing = [e for e in entries if e not in present and e.rstrip("/") not in present]
    if not missing:
        return []

    content = existing
    if content and not content.endswith("\n"):
        content += "\n"
    content += "\n".join(missing) + "\n"
    atomic_write_text(gitignore, content)
    return missing
