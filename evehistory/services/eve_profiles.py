"""
Eve profiles: the per-device-kind half of the Eve history protocol

Each Eve product (Door, Motion, Thermo, Aqua, Room, Room 2, Weather, Energy,
Smoke, MotionBlinds, Water Guard) differs in four ways:

- the field signature advertised in the history status blob,
- the payload appended to every streamed history record,
- the characteristics added to the linked HAP service and the blobs their
  getters return (firmware, configuration, schedules),
- the configuration commands the Eve app writes back.

EVE_PROFILES maps an evetype to an EveProfile holding exactly those pieces;
SERVICE_EVETYPES picks the evetype from the HAP service being linked.
Handlers receive an EveContext carrying the settings owned by the accessory,
mutate them in place and return the changed values for the caller's sink.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Type

from pydantic import BaseModel

from evehistory.core.metrics import record_eve_unknown_command
from evehistory.schemas.eve import (
    AquaSettings,
    EnergyReadings,
    MotionSettings,
    SmokeSettings,
    ThermoSettings,
    WaterGuardSettings,
)
from evehistory.services.eve_characteristics import find_characteristic
from evehistory.services.eve_codec import (
    EPOCH_OFFSET,
    decode_eve_data,
    encode_eve_data,
    hex_byte,
    hex_to_number,
    number_to_hex,
)
from evehistory.services.eve_schedule import (
    apply_day_bitmask,
    decode_aqua_days,
    decode_aqua_programs,
    decode_thermo_schedule,
    decode_thermo_temperature,
    encode_aqua_days,
    encode_aqua_programs,
    encode_thermo_schedule,
    encode_thermo_temperatures,
)
from evehistory.services.eve_session import EveHistoryStream, EveHomeSession
from evehistory.services.history_store import HistoryStore

logger = logging.getLogger(__name__)

# HAP LeakDetected values
LEAK_NOT_DETECTED = 0
LEAK_DETECTED = 1

# HAP SmokeDetected value when smoke is present
SMOKE_DETECTED = 1


@dataclass
class EveContext:
    """
    Everything a profile handler may use during one protocol exchange.

    Attributes:
        service: The linked HAP service
        session: Session of the linked service
        store: History of the accessory
        stream: Streaming session (last event time, reference time)
        settings: Profile settings owned by the accessory, None for profiles without any
        clock: Returns the current unix time
        schedule_reset: Runs a callback once after the leak test duration
    """
    service: Any
    session: EveHomeSession
    store: HistoryStore
    stream: EveHistoryStream
    settings: Optional[BaseModel]
    clock: Callable[[], int]
    schedule_reset: Callable[[Callable[[], None]], None]


Getter = Callable[[EveContext], Any]
Setter = Callable[[EveContext, Any], Dict[str, Any]]


@dataclass(frozen=True)
class EveProfile:
    """
    Strategy for one Eve product.

    Attributes:
        evetype: Profile name
        fields: Field signature codes for the status blob
        format_entry: Hex payload of one history record after the common header
        characteristics: Characteristics added to the linked service
        settings_model: Pydantic model of the profile's settings, if any
        getters: Characteristic name -> value builder
        setters: Characteristic name -> command handler
        refresh: Characteristics whose values update_eve_home pushes again
    """
    evetype: str
    fields: Tuple[str, ...]
    format_entry: Callable[[Dict[str, Any]], str]
    characteristics: Tuple[str, ...] = ()
    settings_model: Optional[Type[BaseModel]] = None
    getters: Mapping[str, Getter] = field(default_factory=dict)
    setters: Mapping[str, Setter] = field(default_factory=dict)
    refresh: Tuple[str, ...] = ()


# ============================================================================
# Shared helpers
# ============================================================================


def _value(entry: Dict[str, Any], key: str, default: float = 0) -> float:
    value = entry.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return default


def _number(data: str, default: float = 0, precision: Optional[int] = None) -> float:
    value = hex_to_number(data, precision)
    return default if value is None else value


def _flag(value: bool) -> str:
    return "01" if value else "00"


def _firmware_blob(prefix: str, firmware: int) -> str:
    return encode_eve_data(prefix + number_to_hex(firmware, 4) + "be")


def iter_eve_commands(data: str) -> Iterator[Tuple[str, str]]:
    """
    Split a configuration stream into (command, payload) pairs.

    Every command is one byte, followed by a payload length byte and the
    payload. A truncated trailing command ends the stream.
    """
    index = 0
    while index + 4 <= len(data):
        command = data[index:index + 2]
        length = hex_byte(data, index + 2)
        if length is None:
            logger.debug(f"Malformed Eve command {command} in configuration stream")
            return
        payload = data[index + 4:index + 4 + length * 2]
        if len(payload) != length * 2:
            logger.debug(f"Truncated Eve command {command} in configuration stream")
            return
        yield command, payload
        index += 4 + length * 2


def _unknown_command(ctx: EveContext, command: str, data: str) -> None:
    record_eve_unknown_command(ctx.session.evetype)
    logger.debug(
        f"Unknown Eve {ctx.session.evetype} command {command} with data {data}",
        extra={"diagnostic_category": "config", "evetype": ctx.session.evetype, "command": command}
    )


def _decode_value(ctx: EveContext, value: Any) -> str:
    data = decode_eve_data(value)
    if data is None:
        logger.debug(
            f"Ignoring undecodable Eve {ctx.session.evetype} configuration value",
            extra={"diagnostic_category": "config", "evetype": ctx.session.evetype}
        )
        return ""
    return data


def _set_linked(ctx: EveContext, name: str, value: Any) -> None:
    char = find_characteristic(ctx.service, name)
    if char is not None:
        char.set_value(value)


def _linked_value(ctx: EveContext, name: str, default: Any = None) -> Any:
    char = find_characteristic(ctx.service, name)
    return char.value if char is not None else default


# ============================================================================
# Door / contact / motion
# ============================================================================


def format_contact_entry(entry: Dict[str, Any]) -> str:
    return "01" + number_to_hex(_value(entry, "status"), 2)


def format_door_entry(entry: Dict[str, Any]) -> str:
    # Eve reports contact (1) for a closed door
    return "01" + number_to_hex(0 if entry.get("status") == 1 else 1, 2)


def format_motion_entry(entry: Dict[str, Any]) -> str:
    return "02" + number_to_hex(_value(entry, "status"), 2)


def get_times_opened(ctx: EveContext) -> int:
    return ctx.store.entry_count(ctx.session.type, ctx.session.sub, {"status": 1})


def get_last_activation(ctx: EveContext) -> int:
    return max(ctx.stream.last_event_time(), 0)


def get_motion_sensitivity(ctx: EveContext) -> int:
    return ctx.settings.sensitivity


def set_motion_sensitivity(ctx: EveContext, value: Any) -> Dict[str, Any]:
    if value not in (0, 4, 7):
        logger.debug(f"Ignoring Eve motion sensitivity {value}")
        return {}
    ctx.settings.sensitivity = value
    return {"sensitivity": value}


def get_motion_duration(ctx: EveContext) -> int:
    return ctx.settings.duration


def set_motion_duration(ctx: EveContext, value: Any) -> Dict[str, Any]:
    ctx.settings.duration = int(value)
    return {"duration": ctx.settings.duration}


# ============================================================================
# Climate sensors
# ============================================================================


def format_room_entry(entry: Dict[str, Any]) -> str:
    ppm = entry.get("ppm")
    return (
        "0f"
        + number_to_hex(_value(entry, "temperature") * 100, 4)
        + number_to_hex(_value(entry, "humidity") * 100, 4)
        + number_to_hex(_value(entry, "ppm") * 10 if isinstance(ppm, (int, float)) else 10, 4)
        + number_to_hex(0, 6)
    )


def format_room2_entry(entry: Dict[str, Any]) -> str:
    return (
        "7f"
        + number_to_hex(_value(entry, "temperature") * 100, 4)
        + number_to_hex(_value(entry, "humidity") * 100, 4)
        + number_to_hex(_value(entry, "voc"), 4)
        + number_to_hex(0, 2)
        + number_to_hex(100, 2)  # battery %
        + number_to_hex(4771, 4)  # battery mV
        + number_to_hex(1, 2)
    )


def format_weather_entry(entry: Dict[str, Any]) -> str:
    pressure = entry.get("pressure")
    return (
        "07"
        + number_to_hex(_value(entry, "temperature") * 100, 4)
        + number_to_hex(_value(entry, "humidity") * 100, 4)
        + number_to_hex(_value(entry, "pressure") * 10 if isinstance(pressure, (int, float)) else 10, 4)
    )


# ============================================================================
# Thermo
# ============================================================================


def format_thermo_entry(entry: Dict[str, Any]) -> str:
    target = entry.get("target")
    heating_target = 0
    if isinstance(target, dict) and target.get("high"):
        # Heating limit, cooling only and off report 0
        heating_target = target["high"]

    status = entry.get("status")
    valve = 100 if status == 2 else 50 if status == 3 else 0
    return (
        "3f"
        + number_to_hex(_value(entry, "temperature") * 100, 4)
        + number_to_hex(_value(entry, "humidity") * 100, 4)
        + number_to_hex(heating_target * 100, 4)
        + number_to_hex(valve, 2)
        + number_to_hex(0, 2)  # thermo target
        + number_to_hex(0, 2)  # window open
    )


def get_thermo_firmware(ctx: EveContext) -> str:
    return _firmware_blob("2c", ctx.settings.firmware)


def get_thermo_program_data(ctx: EveContext) -> str:
    settings: ThermoSettings = ctx.settings
    if settings.vacation and settings.vacationtemp is not None:
        vacation = "01" + number_to_hex(round(settings.vacationtemp * 2), 2)
    else:
        vacation = "00ff"

    value = (
        "12" + number_to_hex(round(settings.tempoffset * 10), 2)
        + "13" + _flag(settings.enableschedule)
        + "14" + ("c0" if settings.attached else "c7")
        + "19" + vacation
        + "f40000" + encode_thermo_temperatures(settings.programs)
        + "fa" + encode_thermo_schedule(settings.programs)
    )
    return encode_eve_data(value)


# Payload bytes of each thermo program command, which carry no length byte
THERMO_COMMAND_SIZES = {
    "00": 0, "06": 0, "7f": 0, "10": 0,
    "11": 5, "12": 1, "13": 1, "14": 1, "18": 1, "19": 2,
    "f4": 3, "fc": 5, "fa": 56, "1a": 8, "f2": 1, "f6": 3, "ff": 2,
}


def set_thermo_program_command(ctx: EveContext, value: Any) -> Dict[str, Any]:
    """Decode a thermo program command stream (fixed width commands)."""
    settings: ThermoSettings = ctx.settings
    data = _decode_value(ctx, value)
    processed: Dict[str, Any] = {}
    eco = comfort = None

    index = 0
    while index + 2 <= len(data):
        command = data[index:index + 2]
        size = THERMO_COMMAND_SIZES.get(command)
        if size is None:
            # Unknown width, the rest of the stream can't be aligned
            _unknown_command(ctx, command, data[index + 2:])
            break
        payload = data[index + 2:index + 2 + size * 2]
        index += 2 + size * 2
        if len(payload) != size * 2:
            logger.debug(f"Truncated Eve thermo command {command}")
            break

        if command == "12":
            settings.tempoffset = _number(payload) / 10
            processed["tempoffset"] = settings.tempoffset
        elif command == "13":
            settings.enableschedule = payload == "01"
            processed["enableschedule"] = settings.enableschedule
        elif command == "18":
            settings.pause = payload == "20"
            processed["pause"] = settings.pause
        elif command == "19":
            settings.vacation = payload[0:2] == "01"
            settings.vacationtemp = hex_byte(payload, 2) * 0.5 if settings.vacation else None
            processed["vacation"] = {"status": settings.vacation, "temp": settings.vacationtemp}
        elif command == "f4":
            eco = decode_thermo_temperature(payload, 2)
            comfort = decode_thermo_temperature(payload, 4)
            processed["scheduleTemps"] = {"eco": eco, "comfort": comfort}
        elif command == "fa":
            settings.programs = decode_thermo_schedule(payload, eco, comfort)
            processed["programs"] = [program.model_dump() for program in settings.programs]

    return processed


# ============================================================================
# Aqua
# ============================================================================


def format_aqua_entry(entry: Dict[str, Any]) -> str:
    closed = entry.get("status") == 0
    value = (
        number_to_hex(0b111 if closed else 0b101, 2)
        + number_to_hex(_value(entry, "status"), 2)
    )
    if closed:
        # Water used in ml, only reported when the valve closes
        value += number_to_hex(int(_value(entry, "water") * 1000), 16)
    return value + number_to_hex(3120, 4)  # battery mV


def get_aqua_configuration(ctx: EveContext) -> str:
    settings: AquaSettings = ctx.settings
    history = ctx.store.get_history(ctx.session.type, ctx.session.sub)
    total_water = sum(_value(entry, "water") for entry in history if entry.get("status") == 0)
    last_time = history[-1]["time"] if history else 0

    pause = ""
    if settings.pause != 0:
        pause = "4b04" + number_to_hex(int((settings.pause - 1) * 1440), 8)

    value = (
        "0002 2300 0302 " + number_to_hex(settings.firmware, 4)
        + " d004 " + number_to_hex(last_time, 8)
        + " 9b04 " + number_to_hex(ctx.clock(), 8)
        + " 2f0e " + number_to_hex(int(total_water * 1000), 20)
        + " 2e02 " + number_to_hex(int(settings.flowrate * 1000 / 60), 4)
        + " 441105 "
        + number_to_hex(0b10111 if settings.enableschedule else 0b10110, 8)
        + number_to_hex(settings.utcoffset // 60, 8)
        + number_to_hex(settings.latitude, 8, 5)
        + number_to_hex(settings.longitude, 8, 5)
        + " " + pause
        + " " + encode_aqua_programs(settings.programs)
        + " " + encode_aqua_days(settings.programs)
        + " 0000000000000000 1e02 2300 0c"
    )
    return encode_eve_data(value)


def set_aqua_configuration(ctx: EveContext, value: Any) -> Dict[str, Any]:
    settings: AquaSettings = ctx.settings
    processed: Dict[str, Any] = {}
    programs = None

    for command, data in iter_eve_commands(_decode_value(ctx, value)):
        if command == "2e":
            settings.flowrate = round(_number(data) * 60 / 1000, 1)
            processed["flowrate"] = settings.flowrate
        elif command == "2f":
            settings.timestamp = EPOCH_OFFSET + int(_number(data))
            processed["timestamp"] = settings.timestamp
        elif command == "44":
            sub_command = int(_number(data[2:6]))
            settings.enableschedule = bool(sub_command & 0x01)
            processed["enabled"] = settings.enableschedule
            if sub_command & 0x10:
                settings.utcoffset = int(_number(data[10:18], settings.utcoffset // 60)) * 60
            if sub_command & 0x04:
                settings.latitude = _number(data[18:26], settings.latitude, 5)
                settings.longitude = _number(data[26:34], settings.longitude, 5)
            if not sub_command & 0x02:
                processed["utcoffset"] = settings.utcoffset
                processed["latitude"] = settings.latitude
                processed["longitude"] = settings.longitude
        elif command == "45":
            programs = decode_aqua_programs(data)
            settings.programs = programs
            processed["programs"] = [program.model_dump() for program in programs]
        elif command == "46":
            mask = decode_aqua_days(data)
            if mask is not None:
                settings.programs = apply_day_bitmask(
                    programs if programs is not None else settings.programs, mask
                )
                processed["programs"] = [program.model_dump() for program in settings.programs]
        elif command == "47":
            # Daylight saving rules, kept verbatim
            settings.dst = command + number_to_hex(len(data) // 2, 2) + data
        elif command == "4b":
            settings.pause = _number(data[0:8]) / 1440 + 1
            processed["pause"] = settings.pause
        elif command == "b1":
            settings.childlock = bool(_linked_value(ctx, "LockPhysicalControls", 0))
            processed["childlock"] = settings.childlock
        else:
            _unknown_command(ctx, command, data)

    return processed


# ============================================================================
# Energy
# ============================================================================


def format_energy_entry(entry: Dict[str, Any]) -> str:
    return "03" + number_to_hex(_value(entry, "watts") * 10, 4) + number_to_hex(_value(entry, "status"), 2)


def get_energy_voltage(ctx: EveContext) -> float:
    return float(ctx.settings.volts)


def get_energy_current(ctx: EveContext) -> float:
    return float(ctx.settings.amps)


def get_energy_wattage(ctx: EveContext) -> float:
    return float(ctx.settings.watts)


# ============================================================================
# Smoke
# ============================================================================


def get_smoke_configuration(ctx: EveContext) -> str:
    settings: SmokeSettings = ctx.settings
    value = (
        "0002 1800 0302 " + number_to_hex(settings.firmware, 4)
        + " 9b04 " + number_to_hex(ctx.clock(), 8)
        + " 8608 " + number_to_hex(settings.lastalarmtest, 8)
        + " 1e02 1800 0c"
    )
    return encode_eve_data(value)


def get_smoke_device_status(ctx: EveContext) -> int:
    settings: SmokeSettings = ctx.settings
    status = 0
    if _linked_value(ctx, "SmokeDetected", 0) == SMOKE_DETECTED:
        status |= 1 << 0
    if settings.heatstatus != 0:
        status |= 1 << 1
    if settings.alarmtest:
        status |= 1 << 2
    if not settings.smoketestpassed:
        status |= (1 << 5) | (1 << 9)
    if not settings.heattestpassed:
        status |= 1 << 6
    if settings.statusled:
        status |= 1 << 15
    if settings.hushedstate:
        status |= 1 << 25
    return status


def set_smoke_configuration(ctx: EveContext, value: Any) -> Dict[str, Any]:
    settings: SmokeSettings = ctx.settings
    processed: Dict[str, Any] = {}

    for command, data in iter_eve_commands(_decode_value(ctx, value)):
        if command != "40":
            _unknown_command(ctx, command, data)
            continue
        sub_command = hex_byte(data, 0)
        if sub_command == 0x02:
            settings.alarmtest = data == "0201"
            processed["alarmtest"] = settings.alarmtest
        elif sub_command == 0x05:
            settings.statusled = data == "0501"
            processed["statusled"] = settings.statusled
        else:
            _unknown_command(ctx, command, data)

    return processed


# ============================================================================
# Blinds
# ============================================================================


def get_blind_configuration(ctx: EveContext) -> str:
    value = (
        "0002 5500 0302 " + number_to_hex(2979, 4)
        + " 9b04 " + number_to_hex(ctx.clock(), 8)
        + " 1e02 5500 0c"
    )
    return encode_eve_data(value)


def set_blind_configuration(ctx: EveContext, value: Any) -> Dict[str, Any]:
    processed: Dict[str, Any] = {}

    for command, data in iter_eve_commands(_decode_value(ctx, value)):
        if command in ("00", "f0", "f1"):
            continue
        if command == "f3" and data in ("015802", "025802"):
            step = 1 if data == "015802" else -1
            position = _linked_value(ctx, "CurrentPosition", 0) + step
            position = min(max(position, 0), 100)
            _set_linked(ctx, "CurrentPosition", position)
            _set_linked(ctx, "TargetPosition", position)
            processed["position"] = position
            continue
        _unknown_command(ctx, command, data)

    return processed


# ============================================================================
# Water guard
# ============================================================================


def get_waterguard_configuration(ctx: EveContext) -> str:
    settings: WaterGuardSettings = ctx.settings
    value = (
        "0002 5b00 0302 " + number_to_hex(settings.firmware, 4)
        + " 9b04 " + number_to_hex(ctx.clock(), 8)
        + " 8608 " + number_to_hex(settings.lastalarmtest, 8)
        + " 4e01 " + _flag(settings.muted)
        + " 1e02 5b00 0c"
    )
    return encode_eve_data(value)


def set_waterguard_configuration(ctx: EveContext, value: Any) -> Dict[str, Any]:
    settings: WaterGuardSettings = ctx.settings
    processed: Dict[str, Any] = {}

    for command, data in iter_eve_commands(_decode_value(ctx, value)):
        if command == "4d":
            continue
        if command == "4e" and data == "03":
            _set_linked(ctx, "LeakDetected", LEAK_DETECTED)
            settings.lastalarmtest = ctx.clock()
            processed["lastalarmtest"] = settings.lastalarmtest
            ctx.schedule_reset(lambda: _set_linked(ctx, "LeakDetected", LEAK_NOT_DETECTED))
            logger.info(
                "Simulated Eve Water Guard leak test started",
                extra={"diagnostic_category": "config", "evetype": ctx.session.evetype}
            )
        elif command == "4e" and data in ("00", "01"):
            settings.muted = data == "01"
            processed["muted"] = settings.muted
        else:
            _unknown_command(ctx, command, data)

    return processed


def format_empty_entry(entry: Dict[str, Any]) -> str:
    """Record payload for profiles whose history layout is unknown."""
    return ""


# ============================================================================
# Strategy table
# ============================================================================

_DOOR_CHARACTERISTICS = ("EveLastActivation", "EveOpenDuration", "EveClosedDuration", "EveTimesOpened")
_DOOR_GETTERS = {"EveTimesOpened": get_times_opened, "EveLastActivation": get_last_activation}

EVE_PROFILES: Dict[str, EveProfile] = {
    "door": EveProfile(
        evetype="door",
        fields=("0601",),
        format_entry=format_door_entry,
        characteristics=_DOOR_CHARACTERISTICS,
        getters=_DOOR_GETTERS,
    ),
    "contact": EveProfile(
        evetype="contact",
        fields=("0601",),
        format_entry=format_contact_entry,
        characteristics=_DOOR_CHARACTERISTICS,
        getters=_DOOR_GETTERS,
    ),
    "motion": EveProfile(
        evetype="motion",
        fields=("1301", "1c01"),
        format_entry=format_motion_entry,
        characteristics=("EveSensitivity", "EveDuration", "EveLastActivation"),
        settings_model=MotionSettings,
        getters={
            "EveSensitivity": get_motion_sensitivity,
            "EveDuration": get_motion_duration,
            "EveLastActivation": get_last_activation,
        },
        setters={"EveSensitivity": set_motion_sensitivity, "EveDuration": set_motion_duration},
    ),
    "thermo": EveProfile(
        evetype="thermo",
        fields=("0102", "0202", "1102", "1001", "1201", "1d01"),
        format_entry=format_thermo_entry,
        characteristics=("EveValvePosition", "EveFirmware", "EveProgramData", "EveProgramCommand",
                         "StatusActive", "CurrentTemperature", "TemperatureDisplayUnits",
                         "LockPhysicalControls"),
        settings_model=ThermoSettings,
        getters={"EveFirmware": get_thermo_firmware, "EveProgramData": get_thermo_program_data},
        setters={"EveProgramCommand": set_thermo_program_command},
        refresh=("EveProgramData",),
    ),
    "aqua": EveProfile(
        evetype="aqua",
        fields=("1f01", "2a08", "2302"),
        format_entry=format_aqua_entry,
        characteristics=("EveGetConfiguration", "EveSetConfiguration", "LockPhysicalControls"),
        settings_model=AquaSettings,
        getters={"EveGetConfiguration": get_aqua_configuration},
        setters={"EveSetConfiguration": set_aqua_configuration},
        refresh=("EveGetConfiguration",),
    ),
    "room": EveProfile(
        evetype="room",
        fields=("0102", "0202", "0402", "0f03"),
        format_entry=format_room_entry,
        characteristics=("EveFirmware", "TemperatureDisplayUnits"),
        getters={"EveFirmware": lambda ctx: _firmware_blob("02", 1151)},
    ),
    "room2": EveProfile(
        evetype="room2",
        fields=("0102", "0202", "2202", "2901", "2501", "2302", "2801"),
        format_entry=format_room2_entry,
        characteristics=("EveFirmware", "VOCDensity"),
        getters={"EveFirmware": lambda ctx: _firmware_blob("27", 1416)},
    ),
    "weather": EveProfile(
        evetype="weather",
        fields=("0102", "0202", "0302"),
        format_entry=format_weather_entry,
        characteristics=("EveFirmware",),
        getters={"EveFirmware": lambda ctx: _firmware_blob("01", 809)},
    ),
    "energy": EveProfile(
        evetype="energy",
        fields=("0702", "0e01"),
        format_entry=format_energy_entry,
        characteristics=("EveFirmware", "EveElectricalVoltage", "EveElectricalCurrent",
                         "EveElectricalWattage", "EveTotalConsumption"),
        settings_model=EnergyReadings,
        getters={
            "EveFirmware": lambda ctx: _firmware_blob("29", 807),
            "EveElectricalVoltage": get_energy_voltage,
            "EveElectricalCurrent": get_energy_current,
            "EveElectricalWattage": get_energy_wattage,
        },
        refresh=("EveElectricalWattage", "EveElectricalVoltage", "EveElectricalCurrent"),
    ),
    "smoke": EveProfile(
        evetype="smoke",
        fields=("1601", "1b02", "0f03", "2302"),
        format_entry=format_empty_entry,
        characteristics=("EveGetConfiguration", "EveSetConfiguration", "EveDeviceStatus"),
        settings_model=SmokeSettings,
        getters={"EveGetConfiguration": get_smoke_configuration, "EveDeviceStatus": get_smoke_device_status},
        setters={"EveSetConfiguration": set_smoke_configuration},
        refresh=("EveDeviceStatus", "EveGetConfiguration"),
    ),
    "blind": EveProfile(
        evetype="blind",
        fields=("1702", "1802", "1901"),
        format_entry=format_empty_entry,
        characteristics=("EveGetConfiguration", "EveSetConfiguration"),
        getters={"EveGetConfiguration": get_blind_configuration},
        setters={"EveSetConfiguration": set_blind_configuration},
    ),
    "waterguard": EveProfile(
        evetype="waterguard",
        fields=(),  # history signature not known
        format_entry=format_empty_entry,
        characteristics=("EveGetConfiguration", "EveSetConfiguration", "StatusFault"),
        settings_model=WaterGuardSettings,
        getters={"EveGetConfiguration": get_waterguard_configuration},
        setters={"EveSetConfiguration": set_waterguard_configuration},
    ),
}

# HAP service display name -> evetype
SERVICE_EVETYPES: Dict[str, str] = {
    "ContactSensor": "contact",
    "Door": "door",
    "Window": "door",
    "GarageDoorOpener": "door",
    "WindowCovering": "blind",
    "Thermostat": "thermo",
    "HeaterCooler": "thermo",
    "EveAirPressureSensor": "weather",
    "AirQualitySensor": "room2",
    "TemperatureSensor": "room",
    "MotionSensor": "motion",
    "SmokeSensor": "smoke",
    "Valve": "aqua",
    "IrrigationSystem": "aqua",
    "Outlet": "energy",
    "LeakSensor": "waterguard",
}


def profile_for_service(service: Any) -> Optional[EveProfile]:
    """Eve profile matching a HAP service, None when Eve has no such product."""
    evetype = SERVICE_EVETYPES.get(getattr(service, "display_name", None))
    return EVE_PROFILES.get(evetype) if evetype else None
