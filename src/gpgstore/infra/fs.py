from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides cross-platform path resolution and the scoped scratch-file
primitives used while re-encrypting an edited entry. Acts as an
abstraction over the 'os' and 'tempfile' modules to ensure uniform
behavior across Windows and Unix-like systems.
"""

import logging
import os
import tempfile
from typing import Optional

from gpgstore.domain.constants import DEFAULT_STORE_DIR_NAME, SCRATCH_FILE_PREFIX

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

APP_DIR_NAME = "GpgStore"
UNIX_APP_DIR_NAME = ".gpgstore"

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Resolve the standard OS-specific directory for persistent application data.

    Automatically creates the hierarchy if it does not exist.
    Standards:
    - Windows: %LOCALAPPDATA%/GpgStore
    - Linux/Mac: ~/.gpgstore

    Returns:
        str: Absolute path to the application data directory.
    """
    path: str = ""

    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            path = os.path.join(base, APP_DIR_NAME)

    if not path:
        path = os.path.join(os.path.expanduser("~"), UNIX_APP_DIR_NAME)

    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        logger.warning(f"Unable to create data directory '{path}': {e}")

    return os.path.abspath(path)


def default_store_path() -> str:
    """Return the conventional password store location (~/.password-store)."""
    return os.path.join(os.path.expanduser("~"), DEFAULT_STORE_DIR_NAME)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is blank.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)

# -----------------------------------------------------------------------------
# SCRATCH FILE API
# -----------------------------------------------------------------------------

def write_scratch_file(text: str, directory: Optional[str] = None) -> str:
    """
    Write plaintext into a fresh private temporary file.

    The file is created with owner-only permissions. If writing fails the
    partially written file is removed before the error propagates.

    Args:
        text: Content to persist for the duration of one encrypt call.
        directory: Optional parent directory (defaults to the system temp dir).

    Returns:
        str: Absolute path of the scratch file.

    Raises:
        OSError: If the file cannot be created or written.
    """
    fd, path = tempfile.mkstemp(prefix=SCRATCH_FILE_PREFIX, dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError:
        remove_file_quietly(path)
        raise
    return path


def remove_file_quietly(path: str) -> bool:
    """
    Delete a file if it exists.

    Args:
        path: File to remove. Empty strings are ignored.

    Returns:
        bool: True if no file remains at path afterwards.
    """
    if not path:
        return True
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove temporary file '{path}': {e}")
        return False
    return True
