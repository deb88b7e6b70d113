"""
Eve protocol diagnostics Pydantic schemas

Defines the entries captured from the Eve history protocol loggers.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class EveDiagnosticEntry(BaseModel):
    """
    A single diagnostic log entry for Eve history operations.

    Categories:
    - lifecycle: Linking accessories, history resets and rollovers
    - status: History status reads
    - request: History read requests from the Eve app
    - entries: History entries streamed to the Eve app
    - settime: Clock values written by the Eve app
    - config: Configuration reads and commands
    """
    timestamp: datetime = Field(..., description="When the event occurred")
    level: str = Field(
        ...,
        description="Log level: debug, info, warning, error",
        pattern="^(debug|info|warning|error)$"
    )
    category: str = Field(
        ...,
        description="Event category: lifecycle, status, request, entries, settime, config",
        pattern="^(lifecycle|status|request|entries|settime|config)$"
    )
    message: str = Field(..., description="Human-readable log message")
    details: Optional[dict] = Field(
        None,
        description="Additional structured data (accessory_id, evetype, entry, etc.)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2026-03-02T10:30:00Z",
                "level": "debug",
                "category": "request",
                "message": "Eve history request for entry 42",
                "details": {"accessory_id": "Front Door", "evetype": "door", "entry": 42}
            }
        }
    )


class EveReaderClock(BaseModel):
    """Clock the Eve app sent through the set-time characteristic."""
    accessory_id: str = Field(..., description="Accessory that received the value")
    reader_time: datetime = Field(..., description="Clock value sent by the Eve app")
    received_at: datetime = Field(..., description="When the value was received")
