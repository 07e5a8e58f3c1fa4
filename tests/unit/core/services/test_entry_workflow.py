from __future__ import annotations

"""
Unit tests for the Entry Workflow state machine.

Verifies:
1. The decrypt protocol (agent first, one passphrase retry at most).
2. Output filtering of decrypted text.
3. Recipient resolution (detected, supplied, blank).
4. Atomic replacement of the target and scratch-file cleanup on every path.
5. Abandonment, phase guards and the single-session-per-path rule.

gpg is replaced by the scripted FakeGpgRunner from conftest.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gpgstore.core.services.entry_workflow import EntryWorkflow
from gpgstore.core.services.session_lock import SessionRegistry
from gpgstore.domain.errors import ErrorKind, WorkflowStateError
from gpgstore.domain.workflow_models import ResultStatus, WorkflowPhase
from gpgstore.infra.gpg import GpgOutput

ORIGINAL_CIPHER = b"original-cipher-bytes\x00\x01"
DECRYPTED = (
    "gpg: encrypted with 2048-bit RSA key, ID 0123456789ABCDEF, created 2020-01-01\n"
    "      \"Jane Doe <jane@example.org>\"\n"
    "s3cr3t\n"
    "user: jane"
)

OK_DECRYPT = GpgOutput(0, DECRYPTED)
BAD_DECRYPT = GpgOutput(2, "gpg: decryption failed: No secret key")
BAD_PASSPHRASE = GpgOutput(2, "gpg: decryption failed: Bad passphrase")


@pytest.fixture
def target(tmp_path: Path) -> Path:
    store = tmp_path / "store"
    store.mkdir()
    t = store / "mail.gpg"
    t.write_bytes(ORIGINAL_CIPHER)
    return t


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


def _workflow(target, runner, scratch_dir, registry, **kwargs) -> EntryWorkflow:
    return EntryWorkflow(
        str(target),
        runner=runner,
        registry=registry,
        scratch_dir=str(scratch_dir),
        **kwargs,
    )


def _leftovers(directory: Path):
    return sorted(p.name for p in directory.iterdir())


# -----------------------------------------------------------------------------
# Decrypt Protocol
# -----------------------------------------------------------------------------

def test_agent_decrypt_success_skips_passphrase(target, scratch_dir, registry, fake_gpg_cls) -> None:
    """TC-01: A successful first attempt never asks for a passphrase."""
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT])
    wf = _workflow(target, runner, scratch_dir, registry)

    result = wf.decrypt()

    assert result.ok
    assert result.status is ResultStatus.SUCCESS
    assert wf.phase is WorkflowPhase.EDITING
    assert wf.session.attempts == 1
    assert runner.calls == [["--batch", "--decrypt", str(target)]]


def test_passphrase_retry_reaches_editing_with_filtered_text(
        target, scratch_dir, registry, fake_gpg_cls
) -> None:
    """TC-02: Agent failure then passphrase success yields filtered content."""
    runner = fake_gpg_cls(decrypt_outputs=[BAD_DECRYPT, OK_DECRYPT])
    wf = _workflow(
        target, runner, scratch_dir, registry, identity_markers=["<jane@example.org>"]
    )

    first = wf.decrypt()
    assert first.status is ResultStatus.NEEDS_PASSPHRASE
    assert wf.phase is WorkflowPhase.AWAITING_PASSPHRASE
    assert "No secret key" in first.diagnostic

    second = wf.provide_passphrase("hunter2")

    assert second.ok
    assert wf.phase is WorkflowPhase.EDITING
    assert second.plaintext == "s3cr3t\nuser: jane"
    assert not any(line.startswith("gpg:") for line in second.plaintext.split("\n"))
    assert runner.calls[1] == ["--batch", "--passphrase", "hunter2", "--decrypt", str(target)]


def test_passphrase_is_not_retained_after_attempt(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[BAD_DECRYPT, OK_DECRYPT])
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    wf.provide_passphrase("hunter2")

    assert wf.session.passphrase is None
    assert "hunter2" not in repr(wf.session)


def test_second_failure_is_terminal(target, scratch_dir, registry, fake_gpg_cls) -> None:
    """TC-03: Two failures end in DecryptFailed with no third attempt."""
    runner = fake_gpg_cls(decrypt_outputs=[BAD_DECRYPT, BAD_PASSPHRASE])
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    result = wf.provide_passphrase("wrong")

    assert result.status is ResultStatus.FAILED
    assert result.error_kind is ErrorKind.DECRYPT_FAILED
    assert "Bad passphrase" in result.diagnostic
    assert wf.phase is WorkflowPhase.FAILED
    assert len(runner.commands("--decrypt")) == 2

    with pytest.raises(WorkflowStateError):
        wf.provide_passphrase("again")


def test_declining_passphrase_abandons(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[BAD_DECRYPT])
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    result = wf.provide_passphrase("")

    assert result.status is ResultStatus.ABANDONED
    assert wf.phase is WorkflowPhase.DONE
    assert len(runner.commands("--decrypt")) == 1
    assert not registry.is_active(str(target))


# -----------------------------------------------------------------------------
# Save Protocol
# -----------------------------------------------------------------------------

def test_save_with_detected_recipient_replaces_target(
        target, scratch_dir, registry, fake_gpg_cls, listing_with_keyid
) -> None:
    """TC-04: Successful encrypt replaces the target and removes the scratch file."""
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=listing_with_keyid)
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    result = wf.save("new secret\n")

    assert result.ok
    assert wf.phase is WorkflowPhase.DONE
    assert target.read_text(encoding="utf-8") == "new-cipher"
    assert runner.recipient_of_last_encrypt() == "0123456789ABCDEF"
    assert runner.scratch_contents == ["new secret\n"]
    assert _leftovers(scratch_dir) == []
    assert _leftovers(target.parent) == ["mail.gpg"]
    assert not registry.is_active(str(target))


def test_encrypt_writes_to_sibling_then_moves(
        target, scratch_dir, registry, fake_gpg_cls, listing_with_keyid
) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=listing_with_keyid)
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    wf.save("x")

    enc = runner.commands("--encrypt")[0]
    output = enc[enc.index("--output") + 1]
    assert os.path.dirname(output) == str(target.parent)
    assert output != str(target)
    assert not os.path.exists(output)


def test_failed_encrypt_leaves_target_untouched(
        target, scratch_dir, registry, fake_gpg_cls, listing_with_keyid
) -> None:
    """TC-05: Encrypt failure keeps the target byte-identical and cleans up."""
    runner = fake_gpg_cls(
        decrypt_outputs=[OK_DECRYPT], listing=listing_with_keyid, encrypt_ok=False
    )
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    result = wf.save("new secret")

    assert result.status is ResultStatus.FAILED
    assert result.error_kind is ErrorKind.ENCRYPT_FAILED
    assert "No public key" in result.diagnostic
    assert wf.phase is WorkflowPhase.FAILED
    assert target.read_bytes() == ORIGINAL_CIPHER
    assert _leftovers(scratch_dir) == []
    assert _leftovers(target.parent) == ["mail.gpg"]


def test_undetected_recipient_asks_with_default(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=GpgOutput(0, ":literal data packet:"))
    wf = _workflow(target, runner, scratch_dir, registry, default_recipient=" jane@example.org ")

    wf.decrypt()
    result = wf.save("new")

    assert result.status is ResultStatus.NEEDS_RECIPIENT
    assert result.default_recipient == "jane@example.org"
    assert wf.phase is WorkflowPhase.RESOLVING_RECIPIENT
    assert runner.commands("--encrypt") == []

    saved = wf.provide_recipient("jane@example.org")

    assert saved.ok
    assert runner.recipient_of_last_encrypt() == "jane@example.org"
    assert _leftovers(scratch_dir) == []


def test_failed_listing_is_treated_as_undetected(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=GpgOutput(2, "gpg: no valid OpenPGP data"))
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()

    assert wf.save("new").status is ResultStatus.NEEDS_RECIPIENT


def test_blank_recipient_fails_without_touching_target(
        target, scratch_dir, registry, fake_gpg_cls
) -> None:
    """TC-06: Blank recipient yields RecipientRequired and leaves nothing behind."""
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=GpgOutput(0, ""))
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    wf.save("new secret")
    result = wf.provide_recipient("   ")

    assert result.status is ResultStatus.FAILED
    assert result.error_kind is ErrorKind.RECIPIENT_REQUIRED
    assert target.read_bytes() == ORIGINAL_CIPHER
    assert _leftovers(scratch_dir) == []
    assert runner.commands("--encrypt") == []


def test_scratch_write_failure_is_temp_file_error(
        target, scratch_dir, registry, fake_gpg_cls, listing_with_keyid
) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=listing_with_keyid)
    wf = _workflow(target, runner, scratch_dir, registry)
    wf.decrypt()

    with patch(
            "gpgstore.core.services.entry_workflow.write_scratch_file",
            side_effect=OSError("disk full"),
    ):
        result = wf.save("new")

    assert result.error_kind is ErrorKind.TEMP_FILE_ERROR
    assert "disk full" in result.diagnostic
    assert runner.commands("--list-packets") == []
    assert runner.commands("--encrypt") == []
    assert target.read_bytes() == ORIGINAL_CIPHER


def test_replace_preserves_permission_bits(
        target, scratch_dir, registry, fake_gpg_cls, listing_with_keyid
) -> None:
    if os.name == "nt":
        pytest.skip("POSIX permission bits")
    os.chmod(str(target), 0o640)
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=listing_with_keyid)
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    wf.save("new")

    assert (os.stat(str(target)).st_mode & 0o777) == 0o640

# -----------------------------------------------------------------------------
# Cancellation & Guards
# -----------------------------------------------------------------------------

def test_discard_after_decrypt_is_abandonment(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT])
    wf = _workflow(target, runner, scratch_dir, registry)

    wf.decrypt()
    result = wf.discard()

    assert result.status is ResultStatus.ABANDONED
    assert wf.phase is WorkflowPhase.DONE
    assert target.read_bytes() == ORIGINAL_CIPHER


def test_context_manager_abandons_pending_recipient(
        target, scratch_dir, registry, fake_gpg_cls
) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT], listing=GpgOutput(0, ""))

    with _workflow(target, runner, scratch_dir, registry) as wf:
        wf.decrypt()
        wf.save("pending")
        assert len(_leftovers(scratch_dir)) == 1
        assert registry.is_active(str(target))

    assert wf.phase is WorkflowPhase.DONE
    assert _leftovers(scratch_dir) == []
    assert not registry.is_active(str(target))


def test_abandon_on_finished_session_is_noop(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[BAD_DECRYPT, BAD_PASSPHRASE])
    wf = _workflow(target, runner, scratch_dir, registry)
    wf.decrypt()
    wf.provide_passphrase("wrong")

    result = wf.abandon()

    assert result.status is ResultStatus.ABANDONED
    assert wf.phase is WorkflowPhase.FAILED


def test_operations_out_of_phase_raise(target, scratch_dir, registry, fake_gpg_cls) -> None:
    runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT])
    wf = _workflow(target, runner, scratch_dir, registry)

    with pytest.raises(WorkflowStateError):
        wf.save("too early")
    with pytest.raises(WorkflowStateError):
        wf.provide_recipient("x")

    wf.decrypt()
    with pytest.raises(WorkflowStateError):
        wf.decrypt()
    with pytest.raises(WorkflowStateError):
        wf.provide_passphrase("x")


def test_second_session_on_same_path_is_busy(target, scratch_dir, registry, fake_gpg_cls) -> None:
    """TC-07: Only one active session per target path."""
    first = _workflow(target, fake_gpg_cls(decrypt_outputs=[OK_DECRYPT]), scratch_dir, registry)
    second_runner = fake_gpg_cls(decrypt_outputs=[OK_DECRYPT])
    second = _workflow(target, second_runner, scratch_dir, registry)

    first.decrypt()
    busy = second.decrypt()

    assert busy.error_kind is ErrorKind.SESSION_BUSY
    assert second.phase is WorkflowPhase.FAILED
    assert second_runner.calls == []

    first.discard()
    third = _workflow(target, fake_gpg_cls(decrypt_outputs=[OK_DECRYPT]), scratch_dir, registry)
    assert third.decrypt().ok


def test_busy_session_does_not_release_the_holder(target, scratch_dir, registry, fake_gpg_cls) -> None:
    first = _workflow(target, fake_gpg_cls(decrypt_outputs=[OK_DECRYPT]), scratch_dir, registry)
    first.decrypt()

    with _workflow(target, fake_gpg_cls(), scratch_dir, registry) as second:
        second.decrypt()

    assert registry.is_active(str(target))
