from __future__ import annotations

"""
Logging Configuration for the Password Store Tools.

Holds the immutable settings the logging bootstrap consumes, where the
diagnostic log lives inside the user data directory, and the two
profiles the command line switches between: quiet (warnings on stderr
only) and debug (everything, mirrored to a rotating file).
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from gpgstore.infra.fs import get_user_data_dir

DEFAULT_LOG_FILE_NAME: str = "gpgstore.log"
LOG_DIR_NAME: str = "logs"

QUIET_LEVEL: str = "WARNING"
DEBUG_LEVEL: str = "DEBUG"

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_default_log_path(file_name: str = DEFAULT_LOG_FILE_NAME) -> str:
    """Resolve the diagnostic log path within the user data directory."""
    return os.path.join(get_user_data_dir(), LOG_DIR_NAME, file_name)


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings for one process.

    Console output goes to stderr so that decrypted plaintext on stdout
    is never interleaved with diagnostics. Records never carry secrets;
    the workflow logs paths and outcomes only.

    Attributes:
        level: Minimum severity name, resolved through _LEVEL_MAP.
        console: Write records to stderr.
        log_file: Rotating log file path, or None for no file.
        max_bytes: Size at which the log file rolls over.
        backup_count: Rolled-over files kept next to the active one.
        console_fmt: Format for stderr records.
        file_fmt: Format for file records.
        datefmt: Timestamp format for file records.
    """
    level: str = QUIET_LEVEL
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 2

    console_fmt: str = "gpgstore: %(levelname)s: %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def for_cli(cls, debug: bool, log_file: Optional[str] = None) -> LoggingConfig:
        """
        Build the profile used by the command line front end.

        Args:
            debug: Capture DEBUG records and mirror them to a file.
            log_file: File used in debug mode. Defaults to the data dir log.

        Returns:
            LoggingConfig: Quiet console-only settings, or debug settings.
        """
        if not debug:
            return cls(level=QUIET_LEVEL, console=True, log_file=None)
        return cls(
            level=DEBUG_LEVEL,
            console=True,
            log_file=log_file or get_default_log_path(),
        )
