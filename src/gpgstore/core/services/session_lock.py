from __future__ import annotations

"""
Single-Session-Per-Path Registry.

Advisory, in-process guard ensuring that at most one entry workflow is
editing a given encrypted file at a time. It does not coordinate with
other processes.
"""

import logging
import os
import threading
from typing import Set

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Thread-safe set of target paths with an active edit session."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: Set[str] = set()

    @staticmethod
    def _key(path: str) -> str:
        return os.path.normcase(os.path.realpath(path))

    def acquire(self, path: str) -> bool:
        """
        Claim the path for a new session.

        Returns:
            bool: False if another session already holds it.
        """
        key = self._key(path)
        with self._lock:
            if key in self._active:
                logger.warning(f"Edit session already active for '{path}'")
                return False
            self._active.add(key)
            return True

    def release(self, path: str) -> None:
        with self._lock:
            self._active.discard(self._key(path))

    def is_active(self, path: str) -> bool:
        with self._lock:
            return self._key(path) in self._active


# Shared by every workflow that is not handed an explicit registry
default_registry = SessionRegistry()
