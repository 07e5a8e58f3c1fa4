from __future__ import annotations

"""
Store Version-Control Synchronization.

Optional git command sequences run inside the store root: a manual
commit of local changes, and a full fetch/pull/commit/push sync. Each
sequence stops at the first failing step; retrying is left to the user.
"""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from gpgstore.domain.constants import COMMIT_TIMESTAMP_FORMAT, GIT_BINARY

logger = logging.getLogger(__name__)

# (returncode, combined output) of one git invocation
CommandRunner = Callable[[Sequence[str], str], Tuple[int, str]]

# -----------------------------------------------------------------------------
# DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of a git command sequence.

    Attributes:
        ok: Whether every step succeeded.
        committed: Whether a commit was created.
        failed_step: Human-readable name of the failing step, if any.
        diagnostic: Output of the failing command.
        message: Summary suitable for a notification.
    """
    ok: bool
    committed: bool = False
    failed_step: str = ""
    diagnostic: str = ""
    message: str = ""

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def run_git(args: Sequence[str], cwd: str) -> Tuple[int, str]:
    """
    Run one git command in cwd and capture its combined output.

    Returns:
        Tuple[int, str]: Exit status (-1 if git could not start) and output.
    """
    try:
        proc = subprocess.run(
            [GIT_BINARY, *args],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        return -1, f"Unable to launch git: {e}"
    return proc.returncode, proc.stdout.decode("utf-8", errors="replace")


def commit_changes(
        root_path: str,
        runner: Optional[CommandRunner] = None,
        now: Optional[datetime] = None,
) -> SyncResult:
    """
    Stage and commit all local changes in the store.

    Args:
        root_path: Store root (a git work tree).
        runner: Command executor, defaults to run_git.
        now: Timestamp used in the commit message.

    Returns:
        SyncResult: ok with committed=False when there was nothing to commit.
    """
    seq = _Sequence(root_path, runner or run_git)

    if not seq.has_changes():
        return SyncResult(ok=True, message="No changes to commit.")

    stamp = (now or datetime.now()).strftime(COMMIT_TIMESTAMP_FORMAT)
    failure = seq.run_steps([
        ("git add", ["add", "."]),
        ("git commit", ["commit", "-m", f"Manual commit: {stamp}"]),
    ])
    if failure:
        return failure
    return SyncResult(ok=True, committed=True, message="Changes committed successfully.")


def sync_store(
        root_path: str,
        runner: Optional[CommandRunner] = None,
        now: Optional[datetime] = None,
) -> SyncResult:
    """
    Synchronize the store with its remote.

    Sequence: detect local changes, fetch, pull --rebase, commit local
    changes (if any) as an auto-commit, push.
    """
    seq = _Sequence(root_path, runner or run_git)
    has_changes = seq.has_changes()

    steps: List[Tuple[str, List[str]]] = [
        ("git fetch", ["fetch", "--all"]),
        ("git pull", ["pull", "--rebase"]),
    ]
    if has_changes:
        stamp = (now or datetime.now()).strftime(COMMIT_TIMESTAMP_FORMAT)
        steps += [
            ("git add", ["add", "."]),
            ("git commit", ["commit", "-m", f"Auto-commit: {stamp}"]),
        ]
    steps.append(("git push", ["push"]))

    failure = seq.run_steps(steps)
    if failure:
        return failure

    if has_changes:
        message = "Successfully committed and pushed changes to remote repository."
    else:
        message = "Successfully synchronized with remote repository (no local changes)."
    return SyncResult(ok=True, committed=has_changes, message=message)

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

class _Sequence:
    """Runs git steps in order against one work tree."""

    def __init__(self, cwd: str, runner: CommandRunner) -> None:
        self.cwd = cwd
        self.runner = runner

    def has_changes(self) -> bool:
        # A failing status is treated as "nothing to commit"
        code, output = self.runner(["status", "--porcelain"], self.cwd)
        return code == 0 and bool(output.strip())

    def run_steps(self, steps: Sequence[Tuple[str, List[str]]]) -> Optional[SyncResult]:
        for label, args in steps:
            logger.debug(f"Running {label} in {self.cwd}")
            code, output = self.runner(args, self.cwd)
            if code != 0:
                logger.error(f"{label} failed with status {code}")
                return SyncResult(
                    ok=False,
                    failed_step=label,
                    diagnostic=output,
                    message=f"{label} failed.",
                )
        return None
