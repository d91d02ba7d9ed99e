"""README export tree maintenance."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

from .logging import get_logger
from .manifest import export_path
from .models import GeneratedModule

MARKER_START = "<!-- exports:start -->"
MARKER_END = "<!-- exports:end -->"

logger = get_logger("readme")


def _insert(tree: Dict[str, dict], segments: List[str]) -> None:
    node = tree
    for segment in segments:
        node = node.setdefault(segment, {})


def _render(node: Dict[str, dict], prefix: str, lines: List[str]) -> None:
    entries = sorted(node.items())
    for index, (name, child) in enumerate(entries):
        is_last = index == len(entries) - 1
        connector = "└── " if is_last else "├── "
        lines.append(f"{prefix}{connector}{name}{'/' if child else ''}")
        if child:
            _render(child, prefix + ("    " if is_last else "│   "), lines)


def build_export_tree(modules: Iterable[GeneratedModule], root_label: str) -> str:
    """Render export paths as a directory tree rooted at ``root_label``."""
    tree: Dict[str, dict] = {}
    for module in modules:
        _insert(tree, export_path(module).split("/"))

    lines = [root_label]
    _render(tree, "", lines)
    return "\n".join(lines)


def replace_tree_block(markdown: str, tree: str) -> str | None:
    """Swap the managed export block; ``None`` when markers are missing."""
    start = markdown.find(MARKER_START)
    end = markdown.find(MARKER_END, start + len(MARKER_START)) if start != -1 else -1
    if start == -1 or end == -1:
        return None
    replacement = f"{MARKER_START}\n```\n{tree}\n```\n{MARKER_END}"
    return markdown[:start] + replacement + markdown[end + len(MARKER_END):]


def update_readme_tree(
    modules: Iterable[GeneratedModule],
    readme_path: str | Path,
    root_label: str,
) -> bool:
    """Rewrite the README export tree in place. Returns True when updated."""
    path = Path(readme_path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.warning("Could not read %s, skipping tree update", path)
        return False

    updated = replace_tree_block(content, build_export_tree(modules, root_label))
    if updated is None:
        logger.warning("Missing export markers in %s, skipping tree update", path.name)
        return False

    path.write_text(updated, encoding="utf-8")
    return True


__all__ = [
    "MARKER_END",
    "MARKER_START",
    "build_export_tree",
    "replace_tree_block",
    "update_readme_tree",
]
