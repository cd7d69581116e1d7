"""Text rendering of tree snapshots.

Renderers take a ``TreeView`` and return lines; the CLI decides where they
go. Status icons:

    💤 lazy, not cloned     ⏳ not cloned
    ✅ cloned              📝 cloned with uncommitted changes
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import NodeInfo, NodeKind, TreeView

__all__ = [
    "MAX_LISTED_URLS",
    "TreeCounts",
    "count_nodes",
    "render_children",
    "render_tree",
    "status_icon",
]

MAX_LISTED_URLS = 5


@dataclass(frozen=True, slots=True)
class TreeCounts:
    total: int
    cloned: int
    lazy: int

    def summary(self) -> str:
        return f"📊 Summary: {self.total} total • {self.cloned} cloned • {self.lazy} lazy"


def status_icon(node: NodeInfo) -> tuple[str, str]:
    """Icon and label for a node's lifecycle state."""
    if node.is_lazy and not node.is_cloned:
        return "💤", "lazy - not cloned"
    if not node.is_cloned:
        return "⏳", "not cloned"
    if node.has_changes:
        return "📝", "modified"
    return "✅", "cloned"


def count_nodes(view: TreeView) -> TreeCounts:
    """Count every node under ``view`` (itself included)."""
    total = cloned = lazy = 0
    for item in view.walk():
        total += 1
        if item.node.is_cloned:
            cloned += 1
        if item.node.is_lazy and not item.node.is_cloned:
            lazy += 1
    return TreeCounts(total=total, cloned=cloned, lazy=lazy)


def render_children(view: TreeView) -> list[str]:
    """Immediate children of ``view``, with URLs for the first few."""
    lines = [f"📂 Current: {view.node.path}", "─" * 17]
    if not view.children:
        lines.append("  📭 No repositories at this level")
        lines.append("")
        lines.append("  💡 Tip: Use 'muno add <repo-url>' to add repositories")
        return lines

    lines.append(f"  Found {len(view.children)} nodes:")
    lines.append("")
    for index, child in enumerate(view.children):
        icon, label = status_icon(child.node)
        lines.append(f"  {icon} {child.node.name} ({label})")
        if child.node.repository and index < MAX_LISTED_URLS:
            lines.append(f"     └─ {child.node.repository}")

    hidden = len(view.children) - MAX_LISTED_URLS
    if hidden > 0:
        lines.append("")
        lines.append(f"  ... and {hidden} more")
    return lines


def _tags(view: TreeView) -> str:
    node = view.node
    tags: list[str] = []
    if view.children:
        match node.kind:
            case NodeKind.CONFIG_REF:
                tags.append("📄 config")
            case NodeKind.REPO:
                tags.append("📁 git parent")
            case NodeKind.GROUP:
                tags.append("📂 parent")
        tags.append(f"{len(view.children)} children")
    else:
        if node.repository:
            tags.append("📦")
        icon, label = status_icon(node)
        tags.append(icon if label == "cloned" else f"{icon} {label}")
        if node.has_changes and label != "modified":
            tags.append("📝 modified")
    return f" [{' '.join(tags)}]"


def render_tree(view: TreeView, *, max_depth: int = 0) -> list[str]:
    """Draw ``view`` with box connectors, followed by a summary line.

    Args:
        view: Subtree to draw.
        max_depth: Levels below ``view`` to draw; 0 draws everything.
    """
    title = view.node.name or view.node.path
    lines = ["🌳 Repository Tree", "─" * 17, title + _tags(view)]

    def draw(item: TreeView, prefix: str, depth: int) -> None:
        if max_depth and depth > max_depth:
            return
        for index, child in enumerate(item.children):
            last = index == len(item.children) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{child.node.name}{_tags(child)}")
            draw(child, prefix + ("    " if last else "│   "), depth + 1)

    draw(view, "", 1)
    lines.append("")
    lines.append(count_nodes(view).summary())
    return lines
