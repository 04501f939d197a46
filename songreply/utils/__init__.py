"""Shared utilities for SongReply."""

from .logging_config import (
    SongReplyLogger,
    setup_logging,
    get_logger,
    log_performance,
    log_error,
    set_request_context,
)

__all__ = [
    "SongReplyLogger",
    "setup_logging",
    "get_logger",
    "log_performance",
    "log_error",
    "set_request_context",
]
