"""
Key/value storage for persisted history documents

The history store only needs two synchronous operations: get a document by
key (None when absent) and replace it. Writes are durable once `set` returns.
"""
import copy
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from evehistory.core.database import get_db_session
from evehistory.models.history_record import HistoryRecord

logger = logging.getLogger(__name__)


class HistoryStorage(Protocol):
    """Storage backend used by HistoryStore."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemoryHistoryStorage:
    """In-process storage, values are deep copied on the way in and out."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._values.get(key))

    def set(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)

    def keys(self):
        return list(self._values)


class DatabaseHistoryStorage:
    """
    SQLAlchemy backed storage, one `history_records` row per key.

    Args:
        session_factory: Callable returning a new Session; defaults to
            evehistory.core.database.SessionLocal
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[Any]:
        with get_db_session(self._session_factory) as db:
            record = db.get(HistoryRecord, key)
            return copy.deepcopy(record.payload) if record is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            with get_db_session(self._session_factory) as db:
                record = db.get(HistoryRecord, key)
                if record is None:
                    db.add(HistoryRecord(storage_key=key, payload=copy.deepcopy(value)))
                else:
                    record.payload = copy.deepcopy(value)
                db.commit()
        except Exception:
            logger.error(f"Failed to persist history document {key}", exc_info=True)
            raise
