from __future__ import annotations

"""
External GPG Tool Adapter.

Builds the batch-mode command lines of the gpg protocol and executes
them as blocking subprocesses. Stdout and stderr are captured together
because gpg interleaves status chatter with payload and the combined
text is what the user needs to see when something goes wrong.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from gpgstore.domain.constants import GPG_BINARY

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GpgOutput:
    """
    Captured result of one gpg invocation.

    Attributes:
        returncode: Process exit status (-1 if the process never started).
        output: Combined stdout and stderr, decoded as UTF-8.
    """
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

# -----------------------------------------------------------------------------
# COMMAND BUILDERS
# -----------------------------------------------------------------------------

def decrypt_args(path: str, passphrase: Optional[str] = None) -> List[str]:
    """Arguments for a batch decrypt, agent-backed when no passphrase is given."""
    if passphrase:
        return ["--batch", "--passphrase", passphrase, "--decrypt", path]
    return ["--batch", "--decrypt", path]


def list_packets_args(path: str) -> List[str]:
    """Arguments for a non-decrypting packet listing of an encrypted file."""
    return ["--batch", "--list-packets", path]


def encrypt_args(recipient: str, output_path: str, source_path: str) -> List[str]:
    """Arguments for encrypting source_path to recipient into output_path."""
    return [
        "--batch", "--yes",
        "--recipient", recipient,
        "--output", output_path,
        "--encrypt", source_path,
    ]

# -----------------------------------------------------------------------------
# SUBPROCESS RUNNER
# -----------------------------------------------------------------------------

class GpgRunner:
    """
    Executes gpg in batch mode.

    Calls block until the tool exits; no timeout is imposed.
    """

    def __init__(self, binary: str = GPG_BINARY) -> None:
        self.binary = binary or GPG_BINARY

    def run(self, args: Sequence[str]) -> GpgOutput:
        """
        Run gpg with the given arguments.

        Args:
            args: Command line arguments following the binary name.

        Returns:
            GpgOutput: Exit status and combined output. A binary that cannot
                       be launched is reported as a failed output, not raised.
        """
        cmd = [self.binary, *args]
        logger.debug(f"Invoking {self.binary} {_redact(args)}")
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except OSError as e:
            logger.error(f"Unable to launch '{self.binary}': {e}")
            return GpgOutput(returncode=-1, output=f"Unable to launch '{self.binary}': {e}")

        output = proc.stdout.decode("utf-8", errors="replace") if proc.stdout else ""
        if proc.returncode != 0:
            logger.debug(f"{self.binary} exited with status {proc.returncode}")
        return GpgOutput(returncode=proc.returncode, output=output)


def _redact(args: Sequence[str]) -> str:
    """Render arguments for logging with any passphrase masked."""
    shown: List[str] = []
    hide_next = False
    for a in args:
        if hide_next:
            shown.append("******")
            hide_next = False
            continue
        shown.append(a)
        if a == "--passphrase":
            hide_next = True
    return " ".join(shown)
