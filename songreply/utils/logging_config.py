"""
SongReply Logging Configuration

structlog on top of stdlib logging for the matching engine:
- JSON lines to rotating files (all events, and errors only)
- Human-readable console output for development
- Request-scoped fields through contextvars
- Helpers for timing and fatal matching errors
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Driver and client libraries that are chatty at INFO
QUIET_LOGGERS = (
    "asyncio",
    "aiohttp",
    "asyncpg",
    "sqlalchemy.engine",
    "sentence_transformers",
    "urllib3",
)


class SongReplyLogger:
    """
    Process-wide logging setup.

    Call through `setup_logging()` once at startup; components then use
    `structlog.get_logger(__name__)` and bind their own fields.
    """

    def __init__(
        self,
        log_dir: Optional[str] = "logs",
        log_level: str = "INFO",
        enable_console: bool = True,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
    ):
        """
        Args:
            log_dir: Directory for log files; None logs to the console only
            log_level: Root log level name
            enable_console: Attach a console handler
            max_file_size: Bytes per file before rotation
            backup_count: Rotated files to keep
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_level = getattr(logging, log_level.upper())
        self.enable_console = enable_console
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._configure()

    def _configure(self):
        root = logging.getLogger()
        root.handlers.clear()

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        for handler in self._build_handlers():
            root.addHandler(handler)
        root.setLevel(self.log_level)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []

        if self.log_dir is not None:
            json_formatter = structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
            for filename, level in (("songreply.log", self.log_level), ("errors.log", logging.ERROR)):
                handler = logging.handlers.RotatingFileHandler(
                    filename=self.log_dir / filename,
                    maxBytes=self.max_file_size,
                    backupCount=self.backup_count,
                    encoding="utf-8",
                )
                handler.setLevel(level)
                handler.setFormatter(json_formatter)
                handlers.append(handler)

        if self.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(self.log_level)
            console.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.dev.ConsoleRenderer(colors=True),
                )
            )
            handlers.append(console)

        return handlers

    def get_logger(self, name: str) -> structlog.BoundLogger:
        return structlog.get_logger(name)

    def set_request_context(self, request_id: str, user_id: Optional[str] = None):
        """Replace the request-scoped fields for the current task."""
        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            user_id=user_id,
            started_at=datetime.now(timezone.utc).isoformat(),
        )

    def log_performance(self, operation: str, duration: float, **kwargs):
        self.get_logger("performance").info(
            "performance_metric",
            operation=operation,
            duration_ms=int(duration * 1000),
            **kwargs
        )

    def log_error(self, error: Exception, context: Dict[str, Any], **kwargs):
        self.get_logger("errors").error(
            "error_occurred",
            error_type=type(error).__name__,
            error_message=str(error),
            context=context,
            **kwargs
        )


_logger_instance: Optional[SongReplyLogger] = None


def setup_logging(
    log_dir: Optional[str] = "logs",
    log_level: str = "INFO",
    enable_console: bool = True,
    **kwargs
) -> SongReplyLogger:
    """
    Configure logging for the process.

    Args:
        log_dir: Directory for log files (None for console only)
        log_level: Root log level name
        enable_console: Attach a console handler
        **kwargs: Passed through to SongReplyLogger

    Returns:
        The configured SongReplyLogger
    """
    global _logger_instance
    _logger_instance = SongReplyLogger(
        log_dir=log_dir,
        log_level=log_level,
        enable_console=enable_console,
        **kwargs
    )
    return _logger_instance


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Raises:
        RuntimeError: If setup_logging() has not been called
    """
    if _logger_instance is None:
        raise RuntimeError("Logging not setup. Call setup_logging() first.")
    return _logger_instance.get_logger(name)


# The module-level helpers are no-ops until setup_logging() runs, so library
# code can call them unconditionally.

def log_performance(operation: str, duration: float, **kwargs):
    if _logger_instance:
        _logger_instance.log_performance(operation, duration, **kwargs)


def log_error(error: Exception, context: Dict[str, Any], **kwargs):
    if _logger_instance:
        _logger_instance.log_error(error, context, **kwargs)


def set_request_context(request_id: str, user_id: Optional[str] = None):
    if _logger_instance:
        _logger_instance.set_request_context(request_id, user_id)
