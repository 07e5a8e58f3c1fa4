from __future__ import annotations

"""
Password Store Index Data Models.

Provides the immutable snapshot produced by a store scan: the ordered
tree of directories and entries plus the flat lookup tables used to
resolve an entry name to its encrypted file.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Tuple

from gpgstore.domain.constants import INDEX_PATH_SEP, STORE_EXTENSION

# -----------------------------------------------------------------------------
# DIAGNOSTIC RECORDS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ScanWarning:
    """
    Non-fatal failure while scanning one subtree of the store.

    Attributes:
        rel_path: Directory path relative to the store root.
        error: Descriptive OS error message.
    """
    rel_path: str
    error: str


@dataclass(frozen=True)
class NameCollision:
    """
    Two entries in different directories share the same display name.

    Attributes:
        name: The ambiguous display name.
        kept_path: Absolute path the lookup table resolves to.
        shadowed_path: Absolute path that was overwritten.
    """
    name: str
    kept_path: str
    shadowed_path: str

# -----------------------------------------------------------------------------
# INDEX SNAPSHOT
# -----------------------------------------------------------------------------

def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class StoreIndex:
    """
    Immutable snapshot of a password store.

    A refresh discards the instance and builds a new one; nothing is
    updated in place.

    Attributes:
        root_path: Absolute path of the scanned store root.
        root_entries: Entry names directly under the root.
        directories: Top-level directories holding at least one entry.
        contents_by_path: Relative directory path -> entry names inside it.
        subdirs_by_path: Relative directory path -> qualifying subdirectories.
        path_by_entry_name: Display name -> absolute encrypted file path.
        warnings: Subtrees skipped because they could not be read.
        collisions: Display names that resolved to more than one file.
    """
    root_path: str
    root_entries: Tuple[str, ...] = ()
    directories: Tuple[str, ...] = ()
    contents_by_path: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty_mapping)
    subdirs_by_path: Mapping[str, Tuple[str, ...]] = field(default_factory=_empty_mapping)
    path_by_entry_name: Mapping[str, str] = field(default_factory=_empty_mapping)
    warnings: Tuple[ScanWarning, ...] = ()
    collisions: Tuple[NameCollision, ...] = ()

    @property
    def entry_count(self) -> int:
        """Number of distinct display names in the lookup table."""
        return len(self.path_by_entry_name)

    def is_directory(self, rel_path: str) -> bool:
        """Return True if rel_path names an indexed directory."""
        return rel_path in self.contents_by_path

    def children(self, rel_path: str) -> List[str]:
        """
        List the children of a directory node for tree rendering.

        Entries come first, then subdirectories, each in scan order.
        An empty rel_path addresses the store root.
        """
        if not rel_path:
            return list(self.root_entries) + list(self.directories)
        entries = self.contents_by_path.get(rel_path, ())
        subdirs = self.subdirs_by_path.get(rel_path, ())
        return list(entries) + list(subdirs)

    def relative_entry_paths(self) -> List[str]:
        """
        Return every indexed entry as a root-relative path without extension.

        Paths use '/' regardless of host conventions, e.g. 'Finance/bank'.
        """
        paths: List[str] = list(self.root_entries)
        for rel_dir, entries in self.contents_by_path.items():
            paths.extend(f"{rel_dir}{INDEX_PATH_SEP}{name}" for name in entries)
        return paths

    def entry_file_path(self, rel_entry_path: str) -> str:
        """
        Compose the absolute file path of a root-relative entry path.

        Returns an empty string for blank paths and for paths carrying '.'
        or '..' segments, which could otherwise point outside the root.
        """
        parts = [p for p in rel_entry_path.split(INDEX_PATH_SEP) if p]
        if not parts or any(p in (".", "..") for p in parts):
            return ""
        return os.path.join(self.root_path, *parts) + STORE_EXTENSION
