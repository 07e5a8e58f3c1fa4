from __future__ import annotations

"""
Store Tree Renderer.

Converts a StoreIndex into visual ASCII lines (├──, └──) and into a
nested plain-data structure suitable for JSON output.
"""

from typing import Any, Dict, List

from gpgstore.domain.constants import INDEX_PATH_SEP
from gpgstore.domain.store_models import StoreIndex

DIR_SUFFIX = INDEX_PATH_SEP

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def render_index_tree(index: StoreIndex, root_label: str = "") -> List[str]:
    """
    Render the store as an ASCII tree.

    Entries are listed before subdirectories at every level, each group
    in scan order. Directories carry a trailing '/'.

    Args:
        index: Store index to render.
        root_label: First line of the output (defaults to the root path).

    Returns:
        List[str]: Visual lines of the tree.
    """
    lines: List[str] = [root_label or index.root_path]
    _render_level(index, "", lines, prefix="")
    return lines


def index_to_dict(index: StoreIndex) -> Dict[str, Any]:
    """
    Convert the index into JSON-serializable plain data.

    Returns:
        Dict[str, Any]: Root path, flat lookup tables and diagnostics.
    """
    return {
        "root_path": index.root_path,
        "root_entries": list(index.root_entries),
        "directories": list(index.directories),
        "contents_by_path": {k: list(v) for k, v in index.contents_by_path.items()},
        "subdirs_by_path": {k: list(v) for k, v in index.subdirs_by_path.items()},
        "path_by_entry_name": dict(index.path_by_entry_name),
        "warnings": [{"rel_path": w.rel_path, "error": w.error} for w in index.warnings],
        "collisions": [
            {"name": c.name, "kept_path": c.kept_path, "shadowed_path": c.shadowed_path}
            for c in index.collisions
        ],
    }

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _render_level(index: StoreIndex, rel_path: str, lines: List[str], prefix: str) -> None:
    if rel_path:
        entries = list(index.contents_by_path.get(rel_path, ()))
        subdirs = list(index.subdirs_by_path.get(rel_path, ()))
    else:
        entries = list(index.root_entries)
        subdirs = list(index.directories)

    nodes = [(name, False) for name in entries] + [(name, True) for name in subdirs]
    total = len(nodes)

    for i, (name, is_dir) in enumerate(nodes):
        is_last = (i == total - 1)
        connector = "└── " if is_last else "├── "

        if not is_dir:
            lines.append(f"{prefix}{connector}{name}")
            continue

        lines.append(f"{prefix}{connector}{name}{DIR_SUFFIX}")
        child_rel = f"{rel_path}{INDEX_PATH_SEP}{name}" if rel_path else name
        _render_level(
            index, child_rel, lines,
            prefix=prefix + ("    " if is_last else "│   "),
        )
