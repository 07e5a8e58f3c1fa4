from __future__ import annotations

"""
Entry Workflow Domain Data Models.

Defines the session state of one decrypt-edit-reencrypt cycle and the
result objects handed back to the interface layer after each step.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gpgstore.domain.errors import ErrorKind

# -----------------------------------------------------------------------------
# SESSION STATE
# -----------------------------------------------------------------------------

class WorkflowPhase(Enum):
    """States of the entry workflow state machine."""
    DECRYPTING = "Decrypting"
    AWAITING_PASSPHRASE = "AwaitingPassphrase"
    EDITING = "Editing"
    RESOLVING_RECIPIENT = "ResolvingRecipient"
    ENCRYPTING = "Encrypting"
    DONE = "Done"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowPhase.DONE, WorkflowPhase.FAILED)


@dataclass
class WorkflowSession:
    """
    In-memory state of a single edit action. Never persisted.

    Attributes:
        target_path: Absolute path of the encrypted entry.
        phase: Current state machine phase.
        passphrase: Secret for the in-flight decrypt attempt only.
        scratch_file_path: Plaintext scratch file, present only while saving.
        attempts: Decrypt attempts made so far (at most two).
        recipient: Key id or email the entry is re-encrypted for.
    """
    target_path: str
    phase: WorkflowPhase = WorkflowPhase.DECRYPTING
    passphrase: Optional[str] = None
    scratch_file_path: str = ""
    attempts: int = 0
    recipient: str = ""

    def __repr__(self) -> str:
        # Keep the passphrase out of tracebacks and debug logs
        return (
            f"WorkflowSession(target_path={self.target_path!r}, phase={self.phase.name}, "
            f"attempts={self.attempts}, scratch_file_path={self.scratch_file_path!r})"
        )

# -----------------------------------------------------------------------------
# STEP RESULTS
# -----------------------------------------------------------------------------

class ResultStatus(Enum):
    SUCCESS = "success"
    NEEDS_PASSPHRASE = "needs-passphrase"
    NEEDS_RECIPIENT = "needs-recipient"
    FAILED = "failed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class WorkflowResult:
    """
    Outcome of one workflow step.

    Attributes:
        status: What the caller has to do next, if anything.
        phase: Phase the session is in after the step.
        plaintext: Filtered decrypted text (decrypt success only).
        default_recipient: Pre-fill hint when a recipient is needed.
        error_kind: Failure category when status is FAILED.
        diagnostic: Verbatim tool output or error text for display.
    """
    status: ResultStatus
    phase: WorkflowPhase
    plaintext: str = ""
    default_recipient: str = ""
    error_kind: Optional[ErrorKind] = None
    diagnostic: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    def __repr__(self) -> str:
        return (
            f"WorkflowResult(status={self.status.name}, phase={self.phase.name}, "
            f"error_kind={self.error_kind}, plaintext=<{len(self.plaintext)} chars>)"
        )

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_plaintext_result(plaintext: str) -> WorkflowResult:
    """Decryption succeeded; the session is ready for editing."""
    return WorkflowResult(
        status=ResultStatus.SUCCESS,
        phase=WorkflowPhase.EDITING,
        plaintext=plaintext,
    )


def create_saved_result() -> WorkflowResult:
    """Re-encryption succeeded; the target file was replaced."""
    return WorkflowResult(status=ResultStatus.SUCCESS, phase=WorkflowPhase.DONE)


def create_needs_passphrase_result(diagnostic: str = "") -> WorkflowResult:
    """Agent-backed decryption failed; a passphrase is required for the retry."""
    return WorkflowResult(
        status=ResultStatus.NEEDS_PASSPHRASE,
        phase=WorkflowPhase.AWAITING_PASSPHRASE,
        diagnostic=diagnostic,
    )


def create_needs_recipient_result(default_recipient: str) -> WorkflowResult:
    """The original recipient could not be detected; the caller must supply one."""
    return WorkflowResult(
        status=ResultStatus.NEEDS_RECIPIENT,
        phase=WorkflowPhase.RESOLVING_RECIPIENT,
        default_recipient=default_recipient,
    )


def create_failure_result(kind: ErrorKind, diagnostic: str) -> WorkflowResult:
    """
    Terminal failure of the session.

    Args:
        kind: Failure category.
        diagnostic: Text to display verbatim to the user.

    Returns:
        WorkflowResult: An immutable failed result.
    """
    return WorkflowResult(
        status=ResultStatus.FAILED,
        phase=WorkflowPhase.FAILED,
        error_kind=kind,
        diagnostic=diagnostic,
    )


def create_abandoned_result() -> WorkflowResult:
    """The caller declined to continue; nothing was modified."""
    return WorkflowResult(status=ResultStatus.ABANDONED, phase=WorkflowPhase.DONE)
