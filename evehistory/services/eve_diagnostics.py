"""
Eve protocol diagnostics

Keeps the most recent Eve history protocol log records in a thread-safe
circular buffer, so an operator can see what the Eve app asked for and what
was sent back without raising the global log level.
"""
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from evehistory.core.logging_config import get_accessory_id
from evehistory.schemas.eve_diagnostics import EveDiagnosticEntry, EveReaderClock


# Default maximum number of log entries to retain
DEFAULT_DIAGNOSTIC_LOG_SIZE = 100

# Loggers whose records are captured
EVE_LOGGERS = [
    "evehistory.services.homekit_history",
    "evehistory.services.history_store",
    "evehistory.services.eve_session",
    "evehistory.services.eve_profiles",
]


class EveDiagnosticHandler(logging.Handler):
    """
    Logging handler that captures Eve history logs into a circular buffer.

    Attributes:
        max_entries: Maximum number of log entries to retain
        _buffer: Circular buffer of captured entries
        _lock: Lock around buffer operations
    """

    LEVEL_MAP = {
        logging.DEBUG: "debug",
        logging.INFO: "info",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    DETAIL_ATTRIBUTES = ["evetype", "entry", "count", "command", "storage_key", "reason", "entries"]

    def __init__(self, max_entries: int = DEFAULT_DIAGNOSTIC_LOG_SIZE):
        super().__init__()
        self.max_entries = max_entries
        self._buffer: Deque[EveDiagnosticEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._warnings: List[str] = []
        self._errors: List[str] = []
        self._reader_clock: Optional[EveReaderClock] = None

    def emit(self, record: logging.LogRecord) -> None:
        if not record.name.startswith("evehistory.services"):
            return

        try:
            category = getattr(record, "diagnostic_category", None)
            if not category:
                category = self._infer_category(record.getMessage())

            accessory_id = get_accessory_id()
            details = {}
            if accessory_id:
                details["accessory_id"] = accessory_id
            for attr in self.DETAIL_ATTRIBUTES:
                if hasattr(record, attr):
                    details[attr] = getattr(record, attr)

            entry = EveDiagnosticEntry(
                timestamp=datetime.fromtimestamp(record.created),
                level=self.LEVEL_MAP.get(record.levelno, "info"),
                category=category,
                message=record.getMessage(),
                details=details if details else None,
            )

            with self._lock:
                self._buffer.append(entry)

                if record.levelno == logging.WARNING:
                    self._warnings.append(record.getMessage())
                    if len(self._warnings) > 10:
                        self._warnings.pop(0)
                elif record.levelno >= logging.ERROR:
                    self._errors.append(record.getMessage())
                    if len(self._errors) > 10:
                        self._errors.pop(0)

                reader_time = getattr(record, "reader_time", None)
                if category == "settime" and reader_time is not None:
                    self._reader_clock = EveReaderClock(
                        accessory_id=accessory_id or "-",
                        reader_time=datetime.fromtimestamp(reader_time),
                        received_at=datetime.fromtimestamp(record.created),
                    )

        except Exception:
            self.handleError(record)

    def _infer_category(self, message: str) -> str:
        """Category from the message text, for records logged without one."""
        message_lower = message.lower()

        if "status" in message_lower:
            return "status"
        elif "request" in message_lower:
            return "request"
        elif "entries" in message_lower or "entry" in message_lower:
            return "entries"
        elif "clock" in message_lower or "time" in message_lower:
            return "settime"
        elif any(kw in message_lower for kw in ["command", "configuration", "setting"]):
            return "config"

        return "lifecycle"

    def get_recent_logs(self, limit: Optional[int] = None) -> List[EveDiagnosticEntry]:
        """
        Get recent log entries (newest first).

        Args:
            limit: Maximum number of entries to return (None for all)
        """
        with self._lock:
            entries = list(self._buffer)

        entries.reverse()

        if limit:
            return entries[:limit]
        return entries

    def get_warnings(self) -> List[str]:
        with self._lock:
            return list(self._warnings)

    def get_errors(self) -> List[str]:
        with self._lock:
            return list(self._errors)

    def get_reader_clock(self) -> Optional[EveReaderClock]:
        """Last clock value the Eve app wrote to any accessory."""
        with self._lock:
            return self._reader_clock

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()
            self._warnings.clear()
            self._errors.clear()
            self._reader_clock = None


_diagnostic_handler: Optional[EveDiagnosticHandler] = None


def get_diagnostic_handler(max_entries: int = DEFAULT_DIAGNOSTIC_LOG_SIZE) -> EveDiagnosticHandler:
    """
    Get or create the global diagnostic handler, attached to the Eve loggers.

    Args:
        max_entries: Maximum log entries to retain (used on creation only)
    """
    global _diagnostic_handler
    if _diagnostic_handler is None:
        _diagnostic_handler = EveDiagnosticHandler(max_entries=max_entries)
        for logger_name in EVE_LOGGERS:
            logging.getLogger(logger_name).addHandler(_diagnostic_handler)

    return _diagnostic_handler


def initialize_diagnostic_handler(max_entries: int = DEFAULT_DIAGNOSTIC_LOG_SIZE) -> EveDiagnosticHandler:
    """
    Initialize the diagnostic handler and make sure every Eve logger feeds it.

    Should be called during application startup.
    """
    handler = get_diagnostic_handler(max_entries)

    for logger_name in EVE_LOGGERS:
        logger = logging.getLogger(logger_name)
        if handler not in logger.handlers:
            logger.addHandler(handler)

    return handler


def shutdown_diagnostic_handler() -> None:
    """Remove the diagnostic handler from the Eve loggers and clear its data."""
    global _diagnostic_handler
    if _diagnostic_handler is not None:
        for logger_name in EVE_LOGGERS:
            logger = logging.getLogger(logger_name)
            if _diagnostic_handler in logger.handlers:
                logger.removeHandler(_diagnostic_handler)

        _diagnostic_handler.clear()
        _diagnostic_handler = None
