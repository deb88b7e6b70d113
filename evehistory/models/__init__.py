"""SQLAlchemy ORM models"""
from evehistory.models.history_record import HistoryRecord

__all__ = [
    "HistoryRecord",
]
