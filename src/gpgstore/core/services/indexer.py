from __future__ import annotations

"""
Password Store Indexing Service.

Walks a store root depth-first in name order and builds the immutable
StoreIndex: entries (files with the reserved extension, shown without
it) and the directories that transitively contain at least one entry.
Empty subtrees are pruned post-order, unreadable subtrees are skipped
with a warning, and only an unreadable root aborts the scan.
"""

import logging
import os
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple

from gpgstore.domain.constants import INDEX_PATH_SEP, STORE_EXTENSION
from gpgstore.domain.errors import RootUnreadableError
from gpgstore.domain.store_models import NameCollision, ScanWarning, StoreIndex

logger = logging.getLogger(__name__)


# ==============================================================================
# PUBLIC API
# ==============================================================================

def build_index(root_path: str) -> StoreIndex:
    """
    Scan a password store and return a fresh index snapshot.

    Root-level entries are registered before any directory is visited.
    Within a directory, its own entries are registered before its
    subdirectories are scanned, so when two entries share a display name
    the later one in that order wins the lookup slot (and the clash is
    recorded in StoreIndex.collisions).

    Args:
        root_path: Store root directory.

    Returns:
        StoreIndex: The immutable index.

    Raises:
        RootUnreadableError: If the root directory cannot be listed.
    """
    root_abs = os.path.abspath(root_path)
    logger.debug(f"Scanning password store at: {root_abs}")

    try:
        top_level = _list_dir(root_abs)
    except OSError as e:
        logger.error(f"Password store root unreadable '{root_abs}': {e}")
        raise RootUnreadableError(root_abs, str(e)) from e

    builder = _IndexBuilder(root_abs)
    root_entries: List[str] = []
    directories: List[str] = []

    for entry in top_level:
        if _is_dir(entry):
            continue
        name = _entry_name(entry.name)
        if name:
            root_entries.append(name)
            builder.register(name, entry.path)

    for entry in top_level:
        if _is_dir(entry) and builder.scan_directory(entry.path, entry.name):
            directories.append(entry.name)

    index = builder.freeze(root_entries, directories)
    logger.info(
        f"Indexed {index.entry_count} entries in {len(index.contents_by_path)} directories "
        f"({len(index.warnings)} skipped, {len(index.collisions)} name collisions)"
    )
    return index


def find_entry_path(root_path: str, entry_name: str) -> str:
    """
    Search the store for an entry by display name without an index.

    Traverses depth-first in name order and returns the first match.
    Unreadable directories are silently passed over.

    Args:
        root_path: Directory to search from.
        entry_name: Display name (without extension).

    Returns:
        str: Absolute path of the first matching file, or "" if none.
    """
    try:
        children = _list_dir(root_path)
    except OSError:
        return ""

    for entry in children:
        if _is_dir(entry):
            found = find_entry_path(entry.path, entry_name)
            if found:
                return os.path.abspath(found)
        elif _entry_name(entry.name) == entry_name:
            return os.path.abspath(entry.path)
    return ""


def resolve_entry(index: StoreIndex, entry_name: str) -> str:
    """
    Resolve a bare display name or a root-relative entry path to a file.

    Order: the lookup table, then 'dir/sub/name' relative paths, then a
    fresh filesystem search for the bare name (covers a stale index).

    Args:
        index: Current store index.
        entry_name: Display name or '/'-separated relative entry path.

    Returns:
        str: Absolute file path, or "" if the entry cannot be found.
    """
    name = (entry_name or "").strip().strip(INDEX_PATH_SEP)
    if not name:
        return ""

    if name in index.path_by_entry_name:
        return index.path_by_entry_name[name]

    if INDEX_PATH_SEP in name:
        candidate = index.entry_file_path(name)
        if candidate and os.path.isfile(candidate) and _is_within_root(index.root_path, candidate):
            return candidate
        name = name.rsplit(INDEX_PATH_SEP, 1)[1]

    found = find_entry_path(index.root_path, name)
    if found:
        logger.debug(f"Entry '{name}' resolved by filesystem fallback: {found}")
    return found


def search_entries(index: StoreIndex, query: str) -> List[str]:
    """
    Case-insensitive substring search over root-relative entry paths.

    Args:
        index: Current store index.
        query: Raw user query. Blank queries match nothing.

    Returns:
        List[str]: Matching relative paths without extension, sorted.
    """
    q = (query or "").strip().lower()
    if not q:
        return []
    return sorted(p for p in index.relative_entry_paths() if q in p.lower())


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

class _IndexBuilder:
    """Mutable accumulator used during a single scan, frozen at the end."""

    def __init__(self, root_path: str) -> None:
        self.root_path = root_path
        self.contents: Dict[str, Tuple[str, ...]] = {}
        self.subdirs: Dict[str, Tuple[str, ...]] = {}
        self.paths: Dict[str, str] = {}
        self.warnings: List[ScanWarning] = []
        self.collisions: List[NameCollision] = []

    def register(self, name: str, file_path: str) -> None:
        file_path = os.path.abspath(file_path)
        previous = self.paths.get(name)
        if previous is not None and previous != file_path:
            logger.warning(
                f"Duplicate entry name '{name}': '{file_path}' shadows '{previous}'"
            )
            self.collisions.append(
                NameCollision(name=name, kept_path=file_path, shadowed_path=previous)
            )
        self.paths[name] = file_path

    def scan_directory(self, dir_path: str, rel_path: str) -> bool:
        """
        Index one directory and its descendants.

        Returns:
            bool: True if the directory (transitively) holds an entry.
        """
        try:
            children = _list_dir(dir_path)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory '{rel_path}': {e}")
            self.warnings.append(ScanWarning(rel_path=rel_path, error=str(e)))
            return False

        entries: List[str] = []
        for child in children:
            if _is_dir(child):
                continue
            name = _entry_name(child.name)
            if name:
                entries.append(name)
                self.register(name, child.path)

        subdirs: List[str] = []
        for child in children:
            if not _is_dir(child):
                continue
            child_rel = f"{rel_path}{INDEX_PATH_SEP}{child.name}"
            if self.scan_directory(child.path, child_rel):
                subdirs.append(child.name)

        if not entries and not subdirs:
            return False

        self.contents[rel_path] = tuple(entries)
        self.subdirs[rel_path] = tuple(subdirs)
        return True

    def freeze(self, root_entries: List[str], directories: List[str]) -> StoreIndex:
        return StoreIndex(
            root_path=self.root_path,
            root_entries=tuple(root_entries),
            directories=tuple(directories),
            contents_by_path=MappingProxyType(dict(self.contents)),
            subdirs_by_path=MappingProxyType(dict(self.subdirs)),
            path_by_entry_name=MappingProxyType(dict(self.paths)),
            warnings=tuple(self.warnings),
            collisions=tuple(self.collisions),
        )


def _list_dir(path: str) -> List[os.DirEntry]:
    """List a directory sorted by name, independent of filesystem order."""
    with os.scandir(path) as it:
        return sorted(it, key=lambda e: e.name)


def _is_within_root(root_path: str, path: str) -> bool:
    root = os.path.realpath(root_path)
    return os.path.commonpath([root, os.path.realpath(path)]) == root


def _is_dir(entry: os.DirEntry) -> bool:
    """Directory test that does not follow symlinks, avoiding link cycles."""
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def _entry_name(file_name: str) -> Optional[str]:
    """Strip the reserved extension; None if the name does not end with it exactly."""
    if not file_name.endswith(STORE_EXTENSION):
        return None
    name = file_name[: -len(STORE_EXTENSION)]
    return name or None
