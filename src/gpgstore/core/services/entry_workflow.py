from __future__ import annotations

"""
Entry Edit Workflow Service.

Drives one decrypt -> edit -> re-encrypt cycle for a single encrypted
entry through the external gpg tool. The caller owns all prompting: each
step returns a WorkflowResult telling it whether to show plaintext, ask
for a passphrase, ask for a recipient, or report a failure.

State transitions:

    DECRYPTING --ok--> EDITING --save--> RESOLVING_RECIPIENT --> ENCRYPTING --> DONE
        |                                       |                    |
        +--fail--> AWAITING_PASSPHRASE          +--blank--> FAILED   +--fail--> FAILED
                        |--ok--> EDITING
                        +--fail--> FAILED

At most two decrypt attempts are made: agent-backed first, then once
with the supplied passphrase.
"""

import logging
import os
import shutil
import tempfile
from typing import Iterable, Optional

from gpgstore.core.processing.gpg_output import filter_decrypted_output, parse_recipient_keyid
from gpgstore.core.services.session_lock import SessionRegistry, default_registry
from gpgstore.domain.constants import PARTIAL_OUTPUT_SUFFIX
from gpgstore.domain.errors import ErrorKind, WorkflowStateError
from gpgstore.domain.workflow_models import (
    WorkflowPhase,
    WorkflowResult,
    WorkflowSession,
    create_abandoned_result,
    create_failure_result,
    create_needs_passphrase_result,
    create_needs_recipient_result,
    create_plaintext_result,
    create_saved_result,
)
from gpgstore.infra.fs import remove_file_quietly, write_scratch_file
from gpgstore.infra.gpg import GpgRunner, decrypt_args, encrypt_args, list_packets_args

logger = logging.getLogger(__name__)


class EntryWorkflow:
    """
    State machine for editing one encrypted entry.

    Usable as a context manager; leaving the block abandons any
    unfinished session, which removes a pending scratch file and releases
    the per-path session claim.
    """

    def __init__(
            self,
            target_path: str,
            *,
            default_recipient: str = "",
            runner: Optional[GpgRunner] = None,
            registry: Optional[SessionRegistry] = None,
            scratch_dir: Optional[str] = None,
            identity_markers: Iterable[str] = (),
    ) -> None:
        """
        Args:
            target_path: Encrypted entry to edit.
            default_recipient: Pre-fill hint offered when detection fails.
            runner: gpg executor (defaults to the 'gpg' binary).
            registry: Per-path session guard (defaults to the process-wide one).
            scratch_dir: Directory for the plaintext scratch file.
            identity_markers: Extra substrings stripped from decrypted output.
        """
        self._session = WorkflowSession(target_path=os.path.abspath(target_path))
        self._default_recipient = (default_recipient or "").strip()
        self._runner = runner or GpgRunner()
        self._registry = registry or default_registry
        self._scratch_dir = scratch_dir
        self._identity_markers = tuple(identity_markers)
        self._holds_claim = False

    def __enter__(self) -> EntryWorkflow:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.phase.is_terminal:
            self.abandon()

    # --------------------------------------------------------------------------
    # STATE ACCESSORS
    # --------------------------------------------------------------------------

    @property
    def session(self) -> WorkflowSession:
        return self._session

    @property
    def phase(self) -> WorkflowPhase:
        return self._session.phase

    @property
    def target_path(self) -> str:
        return self._session.target_path

    # --------------------------------------------------------------------------
    # DECRYPT PROTOCOL
    # --------------------------------------------------------------------------

    def decrypt(self) -> WorkflowResult:
        """
        First, agent-backed decrypt attempt (no passphrase).

        Returns:
            WorkflowResult: plaintext on success, a passphrase request on
                            failure, or SessionBusy if the entry is already
                            being edited.
        """
        self._require(WorkflowPhase.DECRYPTING, "decrypt")

        if not self._holds_claim:
            if not self._registry.acquire(self.target_path):
                self._session.phase = WorkflowPhase.FAILED
                return create_failure_result(
                    ErrorKind.SESSION_BUSY,
                    f"An edit session is already active for '{self.target_path}'.",
                )
            self._holds_claim = True

        return self._attempt_decrypt(None)

    def provide_passphrase(self, passphrase: Optional[str]) -> WorkflowResult:
        """
        The single retry, with a caller-collected passphrase.

        An empty or None passphrase means the caller declined; the session
        is abandoned.
        """
        self._require(WorkflowPhase.AWAITING_PASSPHRASE, "provide a passphrase")
        if not passphrase:
            return self.abandon()
        return self._attempt_decrypt(passphrase)

    def _attempt_decrypt(self, passphrase: Optional[str]) -> WorkflowResult:
        s = self._session
        s.attempts += 1
        s.passphrase = passphrase
        try:
            out = self._runner.run(decrypt_args(s.target_path, passphrase))
        finally:
            s.passphrase = None

        if out.ok:
            self._transition(WorkflowPhase.EDITING)
            return create_plaintext_result(
                filter_decrypted_output(out.output, self._identity_markers)
            )

        if passphrase is None:
            logger.info(f"Agent decrypt failed for '{s.target_path}'; passphrase required")
            self._transition(WorkflowPhase.AWAITING_PASSPHRASE)
            return create_needs_passphrase_result(out.output)

        return self._fail(ErrorKind.DECRYPT_FAILED, f"Failed to decrypt file:\n{out.output}")

    # --------------------------------------------------------------------------
    # SAVE PROTOCOL
    # --------------------------------------------------------------------------

    def save(self, edited_text: str) -> WorkflowResult:
        """
        Persist edited plaintext by re-encrypting the entry.

        Writes the scratch file, then inspects the original packets for the
        recipient key id. If found, encryption runs immediately; otherwise
        the caller is asked for a recipient.
        """
        self._require(WorkflowPhase.EDITING, "save")
        s = self._session
        self._transition(WorkflowPhase.RESOLVING_RECIPIENT)

        try:
            s.scratch_file_path = write_scratch_file(edited_text, self._scratch_dir)
        except OSError as e:
            return self._fail(ErrorKind.TEMP_FILE_ERROR, f"Failed to create temporary file: {e}")

        listing = self._runner.run(list_packets_args(s.target_path))
        if not listing.ok:
            logger.debug(f"Packet listing exited with {listing.returncode}; parsing partial output")
        recipient = parse_recipient_keyid(listing.output)

        if not recipient:
            logger.info(f"No recipient detected for '{s.target_path}'")
            return create_needs_recipient_result(self._default_recipient)

        logger.debug(f"Detected recipient key id {recipient}")
        return self._encrypt(recipient)

    def provide_recipient(self, recipient: Optional[str]) -> WorkflowResult:
        """
        Supply the recipient after automatic detection failed.

        A blank recipient fails the session with RecipientRequired; the
        target file is not touched.
        """
        self._require(WorkflowPhase.RESOLVING_RECIPIENT, "provide a recipient")
        r = (recipient or "").strip()
        if not r:
            return self._fail(ErrorKind.RECIPIENT_REQUIRED, "Recipient cannot be empty.")
        return self._encrypt(r)

    def _encrypt(self, recipient: str) -> WorkflowResult:
        s = self._session
        s.recipient = recipient
        self._transition(WorkflowPhase.ENCRYPTING)

        partial = ""
        try:
            try:
                partial = _reserve_partial_path(s.target_path)
            except OSError as e:
                return self._fail(
                    ErrorKind.TEMP_FILE_ERROR, f"Failed to create temporary output file: {e}"
                )

            out = self._runner.run(encrypt_args(recipient, partial, s.scratch_file_path))
            if not out.ok:
                return self._fail(ErrorKind.ENCRYPT_FAILED, f"Failed to encrypt file:\n{out.output}")

            try:
                _replace_preserving_mode(partial, s.target_path)
            except OSError as e:
                return self._fail(ErrorKind.ENCRYPT_FAILED, f"Failed to replace '{s.target_path}': {e}")
            partial = ""

            logger.info(f"Saved '{s.target_path}'")
            self._finish(WorkflowPhase.DONE)
            return create_saved_result()
        finally:
            self._discard_scratch()
            if partial:
                remove_file_quietly(partial)

    # --------------------------------------------------------------------------
    # CANCELLATION
    # --------------------------------------------------------------------------

    def discard(self) -> WorkflowResult:
        """Close the editor without saving."""
        self._require(WorkflowPhase.EDITING, "discard")
        return self.abandon()

    def abandon(self) -> WorkflowResult:
        """
        End the session without further action from any non-terminal phase.

        Removes a pending scratch file and releases the session claim.
        Calling it on a finished session changes nothing.
        """
        if self.phase.is_terminal:
            return create_abandoned_result()
        logger.debug(f"Session for '{self.target_path}' abandoned in {self.phase.value}")
        self._discard_scratch()
        self._finish(WorkflowPhase.DONE)
        return create_abandoned_result()

    # --------------------------------------------------------------------------
    # INTERNAL HELPERS
    # --------------------------------------------------------------------------

    def _require(self, expected: WorkflowPhase, operation: str) -> None:
        if self.phase is not expected:
            raise WorkflowStateError(
                f"Cannot {operation} while the session is {self.phase.value}"
            )

    def _transition(self, phase: WorkflowPhase) -> None:
        logger.debug(f"{os.path.basename(self.target_path)}: {self.phase.value} -> {phase.value}")
        self._session.phase = phase

    def _finish(self, phase: WorkflowPhase) -> None:
        self._transition(phase)
        if self._holds_claim:
            self._registry.release(self.target_path)
            self._holds_claim = False

    def _fail(self, kind: ErrorKind, diagnostic: str) -> WorkflowResult:
        logger.error(f"{kind.value}: {self.target_path}")
        self._discard_scratch()
        self._finish(WorkflowPhase.FAILED)
        return create_failure_result(kind, diagnostic)

    def _discard_scratch(self) -> None:
        s = self._session
        if s.scratch_file_path and remove_file_quietly(s.scratch_file_path):
            s.scratch_file_path = ""


def _reserve_partial_path(target_path: str) -> str:
    """Create an empty sibling file for gpg to write the new ciphertext into."""
    directory, name = os.path.split(target_path)
    fd, path = tempfile.mkstemp(
        prefix=f".{name}.", suffix=PARTIAL_OUTPUT_SUFFIX, dir=directory or None
    )
    os.close(fd)
    return path


def _replace_preserving_mode(source: str, target: str) -> None:
    """Atomically move source over target, keeping the target's permission bits."""
    if os.path.exists(target):
        try:
            shutil.copymode(target, source)
        except OSError as e:
            logger.debug(f"Could not copy permissions from '{target}': {e}")
    os.replace(source, target)
