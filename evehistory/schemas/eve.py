"""
Eve history Pydantic schemas

Defines the persisted history document, weekly schedule programs and the
per-profile settings an accessory keeps for the Eve app (thermostat, irrigation,
smoke, motion and water guard). Settings are owned by the accessory's
HomeKitHistory object and handed to the protocol adapter explicitly.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def local_utc_offset() -> int:
    """Seconds east of UTC for the host's local timezone right now."""
    offset = datetime.now().astimezone().utcoffset()
    return int(offset.total_seconds()) if offset else 0


class TypeIndexEntry(BaseModel):
    """Latest entry position for one (type, sub) pair."""
    type: str = Field(..., description="History type identifier (usually a HAP service UUID)")
    sub: Union[int, str, None] = Field(0, description="Subtype within the type")
    last_entry: int = Field(..., ge=0, alias="lastEntry", description="Index into data of the newest entry")

    model_config = ConfigDict(populate_by_name=True)


class PersistedHistory(BaseModel):
    """
    History document as written to storage.

    Loaded data that does not validate against this model is discarded and
    the history is reset.
    """
    reset: float = Field(..., description="Unix time the history was last cleared")
    rollover: float = Field(0, description="Unix time the ring buffer last wrapped, 0 if never")
    next: int = Field(0, ge=0, description="Insertion cursor")
    types: List[TypeIndexEntry] = Field(default_factory=list)
    data: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator('data', mode='after')
    @classmethod
    def validate_entries(cls, v: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Every entry needs numeric time and a type."""
        for entry in v:
            if not isinstance(entry.get("time"), (int, float)) or "type" not in entry:
                raise ValueError("history entry without time or type")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reset": 1760000000,
                "rollover": 0,
                "next": 1,
                "types": [{"type": "00000085-0000-1000-8000-0026BB765291", "sub": 0, "lastEntry": 0}],
                "data": [{"time": 1760000100, "type": "00000085-0000-1000-8000-0026BB765291",
                          "sub": 0, "status": 1}],
            }
        }
    )


class ScheduleWindow(BaseModel):
    """
    One active period in a day.

    Thermostat windows carry eco/comfort temperatures. Irrigation windows may
    start at sunrise or sunset, then `offset` holds the signed shift in seconds
    and `start` the literal event name.
    """
    start: Union[int, Literal["sunrise", "sunset"]] = Field(
        ..., description="Seconds from midnight, or sunrise/sunset"
    )
    duration: int = Field(..., description="Length of the window in seconds")
    offset: int = Field(0, description="Start in seconds, signed shift for solar windows")
    ecotemp: Optional[float] = Field(None, description="Thermostat eco temperature")
    comforttemp: Optional[float] = Field(None, description="Thermostat comfort temperature")


class EveProgram(BaseModel):
    """A weekly program: a numbered set of windows active on some weekdays."""
    id: int = Field(..., ge=0)
    days: List[str] = Field(default_factory=list, description="Weekday names: mon..sun")
    schedule: List[ScheduleWindow] = Field(default_factory=list)

    @field_validator('days', mode='before')
    @classmethod
    def coerce_single_day(cls, v: Any) -> Any:
        """Accept a single day name."""
        if isinstance(v, str):
            return [v]
        return v


class ThermoSettings(BaseModel):
    """Eve Thermo configuration kept by a thermostat accessory."""
    firmware: int = 1251
    attached: bool = False
    tempoffset: float = -2.5
    enableschedule: bool = False
    pause: bool = False
    vacation: bool = False
    vacationtemp: Optional[float] = None
    programs: List[EveProgram] = Field(default_factory=list)


class AquaSettings(BaseModel):
    """Eve Aqua configuration kept by an irrigation or valve accessory."""
    firmware: int = 1208
    flowrate: float = 18.0  # L/min
    latitude: float = 0.0
    longitude: float = 0.0
    utcoffset: int = Field(default_factory=local_utc_offset)
    enableschedule: bool = False
    pause: float = 0  # days, 0 when not paused
    programs: List[EveProgram] = Field(default_factory=list)
    timestamp: Optional[int] = None
    childlock: bool = False
    dst: Optional[str] = None  # raw daylight saving command, passed back untouched


class SmokeSettings(BaseModel):
    """Eve Smoke configuration and self-test state."""
    firmware: int = 1208
    lastalarmtest: int = 0
    alarmtest: bool = False
    heatstatus: int = 0
    statusled: bool = False
    smoketestpassed: bool = True
    heattestpassed: bool = True
    hushedstate: bool = False


class MotionSettings(BaseModel):
    """Eve Motion sensitivity and retrigger duration."""
    duration: int = 5
    sensitivity: Literal[0, 4, 7] = 0  # high, medium, low


class WaterGuardSettings(BaseModel):
    """Eve Water Guard configuration."""
    firmware: int = 2866
    lastalarmtest: int = 0
    muted: bool = False


class EnergyReadings(BaseModel):
    """Electrical readings supplied by the outlet's get_command hook."""
    volts: float = 0.0
    amps: float = 0.0
    watts: float = 0.0
