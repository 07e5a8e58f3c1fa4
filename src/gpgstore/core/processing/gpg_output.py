from __future__ import annotations

"""
GPG Output Processing.

Text-level helpers over raw gpg output: stripping status chatter from
decrypted content and extracting the recipient key id from a packet
listing. Both operate on substrings and prefixes only. The filter is
presentation cleanup and must not be relied on to remove anything
sensitive.
"""

from typing import Iterable, List

from gpgstore.domain.constants import (
    GPG_INFO_SUBSTRINGS,
    GPG_STATUS_PREFIX,
    KEY_ID_LENGTH,
    RECIPIENT_FIELD_LABEL,
)


def filter_decrypted_output(text: str, identity_markers: Iterable[str] = ()) -> str:
    """
    Drop tool status lines from decrypted output.

    A line is dropped when it starts with the gpg status prefix, or
    contains one of the known informational substrings, or contains any
    of the configured identity markers (e.g. '<user@example.org>').

    Args:
        text: Combined gpg output.
        identity_markers: Extra substrings identifying key owner lines.

    Returns:
        str: Remaining lines joined with '\\n'.
    """
    markers = [m for m in identity_markers if m]
    kept: List[str] = []
    for line in text.split("\n"):
        if line.startswith(GPG_STATUS_PREFIX):
            continue
        if any(s in line for s in GPG_INFO_SUBSTRINGS):
            continue
        if any(m in line for m in markers):
            continue
        kept.append(line)
    return "\n".join(kept)


def parse_recipient_keyid(listing: str) -> str:
    """
    Extract the recipient key id from `gpg --list-packets` output.

    Scans for the first line carrying the key id label and takes the
    first KEY_ID_LENGTH characters following it. The token is not checked
    against any keyring.

    Args:
        listing: Plain-text packet listing.

    Returns:
        str: The key id, or an empty string if none was found.
    """
    for line in listing.split("\n"):
        if RECIPIENT_FIELD_LABEL not in line:
            continue
        tail = line.split(RECIPIENT_FIELD_LABEL, 1)[1].strip()
        if len(tail) >= KEY_ID_LENGTH:
            return tail[:KEY_ID_LENGTH]
    return ""
