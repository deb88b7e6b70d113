"""
Structured JSON Logging Configuration

Provides centralized logging configuration with:
- JSON formatted output for machine parsing
- Accessory ID tracking via contextvars
- File rotation (7 files, 100MB max)
- Configurable log levels via environment
"""
import logging
import logging.handlers
import os
import contextvars
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from pythonjsonlogger import jsonlogger

from evehistory.core.config import settings

# Context variable for accessory ID propagation
accessory_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'accessory_id', default=None
)

# Log directory configuration
LOG_DIR = os.path.join(os.getcwd(), 'data', 'logs')


class AccessoryIdFilter(logging.Filter):
    """
    Logging filter that adds accessory_id to all log records.

    Uses contextvars to access the accessory whose characteristic callback
    is currently running, so every log line of one Eve exchange correlates.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.accessory_id = accessory_id_var.get() or "-"
        return True


class SanitizingFilter(logging.Filter):
    """
    Filter that sanitizes log messages to prevent log injection attacks.

    Removes characters that could be used to forge log entries.
    """

    DANGEROUS_PATTERNS = [
        (r'\r\n', ' '),
        (r'\n', ' '),
        (r'\r', ' '),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.DANGEROUS_PATTERNS:
                record.msg = re.sub(pattern, replacement, record.msg)

        if record.args and isinstance(record.args, tuple):
            sanitized_args = []
            for arg in record.args:
                if isinstance(arg, str):
                    sanitized = arg
                    for pattern, replacement in self.DANGEROUS_PATTERNS:
                        sanitized = re.sub(pattern, replacement, sanitized)
                    sanitized_args.append(sanitized)
                else:
                    sanitized_args.append(arg)
            record.args = tuple(sanitized_args)

        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON formatter that adds standard fields to all log entries.

    Output format:
    {
        "timestamp": "2026-03-02T10:30:00.000000+00:00",
        "level": "DEBUG",
        "message": "Eve history request for entry 42",
        "module": "eve_session",
        "accessory_id": "Living Room Thermostat",
        "logger": "evehistory.services.eve_session",
        ...extra fields...
    }
    """

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()

        log_record['level'] = record.levelname
        log_record['module'] = record.module
        log_record['logger'] = record.name
        log_record['accessory_id'] = getattr(record, 'accessory_id', '-')

        if record.funcName:
            log_record['function'] = record.funcName
        if record.lineno:
            log_record['line'] = record.lineno

        if 'message' not in log_record:
            log_record['message'] = record.getMessage()


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """
    Configure application-wide logging with JSON format and rotation.

    Args:
        log_level: Override log level (default from settings.LOG_LEVEL)
        log_dir: Override log directory (default: settings.LOG_DIR or ./data/logs)

    Returns:
        Root logger configured for the application
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = log_dir or settings.LOG_DIR or LOG_DIR

    os.makedirs(directory, exist_ok=True)

    json_formatter = CustomJsonFormatter(
        '%(timestamp)s %(level)s %(name)s %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(json_formatter)
    console_handler.addFilter(AccessoryIdFilter())
    console_handler.addFilter(SanitizingFilter())
    root_logger.addHandler(console_handler)

    # Max 100MB per file
    log_file = os.path.join(directory, 'history.log')
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=100 * 1024 * 1024,
        backupCount=7,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(json_formatter)
    file_handler.addFilter(AccessoryIdFilter())
    file_handler.addFilter(SanitizingFilter())
    root_logger.addHandler(file_handler)

    error_log_file = os.path.join(directory, 'error.log')
    error_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=50 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)
    error_handler.addFilter(AccessoryIdFilter())
    error_handler.addFilter(SanitizingFilter())
    root_logger.addHandler(error_handler)

    # HAP-python logs every characteristic write at debug
    logging.getLogger('pyhap').setLevel(logging.WARNING)
    logging.getLogger('zeroconf').setLevel(logging.WARNING)

    return root_logger


def set_accessory_id(accessory_id: str) -> contextvars.Token:
    """
    Set the accessory ID for the current context.

    Returns:
        Token that can be used to reset the context
    """
    return accessory_id_var.set(accessory_id)


def get_accessory_id() -> Optional[str]:
    """Get the current accessory ID from context, or None if not set."""
    return accessory_id_var.get()


def clear_accessory_id(token: contextvars.Token) -> None:
    """Clear the accessory ID context using the token from set_accessory_id."""
    accessory_id_var.reset(token)


@contextmanager
def accessory_context(accessory_id: str) -> Iterator[None]:
    """
    Tag all log records emitted inside the block with an accessory ID.

    Usage:
        with accessory_context("Kitchen Leak Sensor"):
            logger.debug("Eve history status requested")
    """
    token = set_accessory_id(accessory_id)
    try:
        yield
    finally:
        clear_accessory_id(token)
