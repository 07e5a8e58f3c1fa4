from __future__ import annotations

"""
Domain Constants.

Centralizes the conventions of the password store layout and of the
external gpg tool output that the indexer and the entry workflow rely on.
"""

from typing import Tuple

CURRENT_CONFIG_VERSION = "1.0.0"

# -----------------------------------------------------------------------------
# STORE LAYOUT
# -----------------------------------------------------------------------------

# Reserved suffix marking a file as an encrypted entry (exact-suffix match)
STORE_EXTENSION = ".gpg"
DEFAULT_STORE_DIR_NAME = ".password-store"

# Relative paths inside the index are always joined with this separator
INDEX_PATH_SEP = "/"

# -----------------------------------------------------------------------------
# EXTERNAL TOOLING
# -----------------------------------------------------------------------------

GPG_BINARY = "gpg"
GIT_BINARY = "git"

# Lines of decrypted output that are tool chatter rather than entry content
GPG_STATUS_PREFIX = "gpg:"
GPG_INFO_SUBSTRINGS: Tuple[str, ...] = ("encrypted with", "created")

# Recipient detection inside `--list-packets` output
RECIPIENT_FIELD_LABEL = "keyid"
KEY_ID_LENGTH = 16

SCRATCH_FILE_PREFIX = "gpg_edit_"
PARTIAL_OUTPUT_SUFFIX = ".partial"

COMMIT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
