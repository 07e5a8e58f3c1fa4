from __future__ import annotations

from .config import LoggingConfig, get_default_log_path
from .core import (
    _QUEUE_LISTENER_ATTR,
    configure_logging,
    get_logger,
    shutdown_logging,
)
from .handlers import _HANDLER_TAG_ATTR

__all__ = [
    "LoggingConfig",
    "configure_logging",
    "get_logger",
    "get_default_log_path",
    "shutdown_logging",
]
