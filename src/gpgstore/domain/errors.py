from __future__ import annotations

"""
Error Taxonomy.

Exceptions are reserved for conditions the caller cannot recover from
through the normal workflow protocol. Expected workflow failures are
reported as result objects tagged with an ErrorKind instead.
"""

from enum import Enum


class ErrorKind(Enum):
    """Terminal failure categories of an entry workflow session."""
    DECRYPT_FAILED = "DecryptFailed"
    RECIPIENT_REQUIRED = "RecipientRequired"
    ENCRYPT_FAILED = "EncryptFailed"
    TEMP_FILE_ERROR = "TempFileError"
    SESSION_BUSY = "SessionBusy"


class GpgStoreError(Exception):
    """Base class for all errors raised by the package."""


class RootUnreadableError(GpgStoreError):
    """The store root could not be listed; no index is produced."""

    def __init__(self, root_path: str, reason: str) -> None:
        super().__init__(f"Cannot read password store root '{root_path}': {reason}")
        self.root_path = root_path
        self.reason = reason


class WorkflowStateError(GpgStoreError):
    """A workflow operation was invoked in a phase that does not accept it."""
