"""
History record model for durable key/value storage

Each accessory keeps one persisted history document
({reset, rollover, next, types, data}) under its storage key.
"""
from sqlalchemy import Column, String, DateTime, JSON
from evehistory.core.database import Base
from datetime import datetime, timezone


class HistoryRecord(Base):
    """
    Persisted history document of one accessory.

    Attributes:
        storage_key: Key the history store reads and writes (e.g. History.<accessory>.json)
        payload: The whole persisted history document as JSON
        created_at: Record creation timestamp
        updated_at: Last write timestamp
    """

    __tablename__ = "history_records"

    storage_key = Column(String(255), primary_key=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self):
        return f"<HistoryRecord(storage_key={self.storage_key!r})>"
