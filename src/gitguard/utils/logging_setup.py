"""
Logging configuration for gitguard.

Provides environment-aware logging that:
- Writes to stderr so command output on stdout stays clean
- Outputs JSON lines in containers or when GITGUARD_LOG_FORMAT=json
- Provides human-readable output for local use
- Supports an optional rotating log file
- Includes custom TRACE level for detailed debugging
"""

import sys
import logging
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Any

# Define TRACE level (lower number = more detailed)
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

HUMAN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, message, args, **kwargs)


def add_trace_to_logger():
    """Ensure trace method is available on all logger instances"""
    if not hasattr(logging.Logger, 'trace'):
        logging.Logger.trace = trace


class JsonFormatter(logging.Formatter):
    """JSON line formatter for container and machine-readable logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'component': record.name,
            'message': record.getMessage(),
            'pid': os.getpid(),
        }

        if hasattr(record, 'context'):
            log_data.update(record.context)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def _in_container() -> bool:
    return (
        os.path.exists('/.dockerenv') or
        os.environ.get('DOCKER_CONTAINER', '').lower() == 'true'
    )


def resolve_level(log_level: Optional[str] = None) -> int:
    """Resolve a level name (argument, GITGUARD_LOG_LEVEL, LOG_LEVEL) to a number"""
    level_str = log_level or os.environ.get('GITGUARD_LOG_LEVEL') or os.environ.get('LOG_LEVEL', 'INFO')
    if level_str.upper() == 'TRACE':
        return TRACE_LEVEL
    return getattr(logging, level_str.upper(), logging.INFO)


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    quiet_libraries: bool = True,
) -> None:
    """
    Configure logging based on environment.

    Args:
        log_level: Override log level (defaults to GITGUARD_LOG_LEVEL, LOG_LEVEL or INFO)
        log_file: Optional path to a rotating log file
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        quiet_libraries: Suppress verbose third-party library logs
    """
    add_trace_to_logger()
    level = resolve_level(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers = []

    use_json = (
        os.environ.get('GITGUARD_LOG_FORMAT', '').lower() == 'json' or _in_container()
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(HUMAN_FORMAT))
    root_logger.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(HUMAN_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)

    if quiet_libraries:
        # watchdog logs every inotify event at DEBUG
        for lib in ('watchdog', 'asyncio'):
            logging.getLogger(lib).setLevel(logging.WARNING)

    logging.getLogger('gitguard').debug(
        f"Logging configured - Level: {logging.getLevelName(level)}, JSON: {use_json}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    add_trace_to_logger()
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any
) -> None:
    """
    Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (e.g., logging.INFO)
        message: Log message
        **context: Additional fields to include in structured logs
    """
    extra = {'context': context} if context else {}
    logger.log(level, message, extra=extra)
