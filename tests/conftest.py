from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A builder for on-disk password store trees.
3. A scripted stand-in for the gpg runner used by workflow tests.
"""

import os
import sys
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from gpgstore.infra.gpg import GpgOutput  # noqa: E402


# -----------------------------------------------------------------------------
# Store Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def make_store(tmp_path: Path) -> Callable[[Iterable[str]], Path]:
    """
    Return a factory that materializes a store from relative paths.

    Paths ending in '/' become empty directories; everything else becomes
    a file whose content is 'cipher:<relative path>'.
    """
    def _make(rel_paths: Iterable[str], root_name: str = "store") -> Path:
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for rel in rel_paths:
            target = root / rel
            if rel.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(f"cipher:{rel}", encoding="utf-8")
        return root

    return _make


# -----------------------------------------------------------------------------
# GPG Runner Fakes
# -----------------------------------------------------------------------------
class FakeGpgRunner:
    """
    Scripted gpg runner.

    Decrypt calls pop responses from `decrypt_outputs` in order. The packet
    listing always returns `listing`. Encrypt calls write `ciphertext` into
    the requested output file when `encrypt_ok` is True.
    """

    def __init__(
            self,
            decrypt_outputs: Sequence[GpgOutput] = (),
            listing: GpgOutput = GpgOutput(0, ""),
            encrypt_ok: bool = True,
            ciphertext: str = "new-cipher",
            encrypt_output: str = "",
    ) -> None:
        self.decrypt_outputs: List[GpgOutput] = list(decrypt_outputs)
        self.listing = listing
        self.encrypt_ok = encrypt_ok
        self.ciphertext = ciphertext
        self.encrypt_output = encrypt_output
        self.calls: List[List[str]] = []
        self.scratch_contents: List[str] = []

    def run(self, args: Sequence[str]) -> GpgOutput:
        args = list(args)
        self.calls.append(args)

        if "--decrypt" in args:
            return self.decrypt_outputs.pop(0)

        if "--list-packets" in args:
            return self.listing

        if "--encrypt" in args:
            source = args[args.index("--encrypt") + 1]
            with open(source, "r", encoding="utf-8") as f:
                self.scratch_contents.append(f.read())
            if not self.encrypt_ok:
                return GpgOutput(2, self.encrypt_output or "gpg: encryption failed: No public key")
            output = args[args.index("--output") + 1]
            with open(output, "w", encoding="utf-8") as f:
                f.write(self.ciphertext)
            return GpgOutput(0, self.encrypt_output)

        raise AssertionError(f"Unexpected gpg call: {args}")

    def commands(self, flag: str) -> List[List[str]]:
        return [c for c in self.calls if flag in c]

    def recipient_of_last_encrypt(self) -> Optional[str]:
        enc = self.commands("--encrypt")
        if not enc:
            return None
        last = enc[-1]
        return last[last.index("--recipient") + 1]


@pytest.fixture
def fake_gpg_cls():
    """Expose the FakeGpgRunner class to tests that build their own instances."""
    return FakeGpgRunner


LISTING_WITH_KEYID = (
    "gpg: encrypted with 2048-bit RSA key, ID 0123456789ABCDEF, created 2020-01-01\n"
    ":pubkey enc packet: version 3, algo 1, keyid 0123456789ABCDEF\n"
    "\tdata: [2047 bits]\n"
)


@pytest.fixture
def listing_with_keyid() -> GpgOutput:
    return GpgOutput(0, LISTING_WITH_KEYID)
