"""
Weekly schedule codecs for Eve Thermo and Eve Aqua

Thermo schedules are seven day blocks of four (start, end) byte slots counted
in 10 minute ticks, 0xff marks an unused slot. Aqua schedules are lists of
programs whose windows are 16-bit little-endian slot values: the low 5 bits
select the kind of time, bit 5 picks sunrise over sunset and bit 6 marks a
negative solar offset. Which program runs on which weekday is a separate
bitmask of 3-bit program ids, Monday in the lowest bits.
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from evehistory.schemas.eve import EveProgram, ScheduleWindow
from evehistory.services.eve_codec import hex_byte, hex_to_number, number_to_hex

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Thermo
THERMO_TICK_SECONDS = 600
THERMO_SLOTS_PER_DAY = 4
THERMO_EMPTY_DAY = "ffffffffffffffff"
THERMO_UNSET_TEMP = 0x80

# Aqua slot kinds (low 5 bits)
AQUA_ABSOLUTE_START = 0x05
AQUA_ABSOLUTE_END = 0x01
AQUA_SOLAR_START = 0x07
AQUA_SOLAR_END = 0x03
AQUA_SUNRISE_BIT = 0x20
AQUA_NEGATIVE_BIT = 0x40
AQUA_EMPTY_SCHEDULE = "0800"
AQUA_DAY_BITS = 3


# ============================================================================
# Thermo
# ============================================================================


def encode_thermo_temperatures(programs: Iterable[EveProgram]) -> str:
    """
    Eco and comfort temperature bytes (half degree units).

    Eco is the lowest and comfort the highest temperature found in any
    window, both 0 without programs.
    """
    temps = []
    for program in programs:
        for window in program.schedule:
            temps.extend(t for t in (window.ecotemp, window.comforttemp) if t is not None)

    eco = min(temps) if temps else 0
    comfort = max(temps) if temps else 0
    return number_to_hex(round(eco * 2), 2) + number_to_hex(round(comfort * 2), 2)


def encode_thermo_schedule(programs: Iterable[EveProgram]) -> str:
    """Seven 8-byte day blocks, Monday first, unused slots left at 0xff."""
    days = {day: THERMO_EMPTY_DAY for day in DAYS_OF_WEEK}

    for program in programs:
        slots = ""
        for window in program.schedule[:THERMO_SLOTS_PER_DAY]:
            if not isinstance(window.start, int):
                continue
            slots += number_to_hex(round(window.start / THERMO_TICK_SECONDS), 2)
            slots += number_to_hex(round((window.start + window.duration) / THERMO_TICK_SECONDS), 2)

        for day in program.days:
            if day in days:
                days[day] = slots + THERMO_EMPTY_DAY[len(slots):]

    return "".join(days[day] for day in DAYS_OF_WEEK)


def decode_thermo_schedule(
    data: str,
    ecotemp: Optional[float] = None,
    comforttemp: Optional[float] = None,
) -> List[EveProgram]:
    """
    Decode the seven day blocks of a thermostat schedule.

    Returns one program per weekday, numbered 1..7, windows carrying the
    eco/comfort temperatures received alongside the schedule.
    """
    programs = []
    for day_index, day in enumerate(DAYS_OF_WEEK):
        windows = []
        for slot in range(THERMO_SLOTS_PER_DAY):
            offset = (day_index * THERMO_SLOTS_PER_DAY + slot) * 4
            start = hex_byte(data, offset)
            end = hex_byte(data, offset + 2)
            if start is None or end is None or start == 0xff or end == 0xff:
                continue
            windows.append(ScheduleWindow(
                start=start * THERMO_TICK_SECONDS,
                duration=(end - start) * THERMO_TICK_SECONDS,
                offset=start * THERMO_TICK_SECONDS,
                ecotemp=ecotemp,
                comforttemp=comforttemp,
            ))
        programs.append(EveProgram(id=len(programs) + 1, days=[day], schedule=windows))
    return programs


def decode_thermo_temperature(data: str, offset: int) -> Optional[float]:
    """Half degree temperature byte, None when unset."""
    value = hex_byte(data, offset)
    if value is None or value == THERMO_UNSET_TEMP:
        return None
    return value * 0.5


# ============================================================================
# Aqua windows
# ============================================================================


def _solar_slot(offset_seconds: int, kind: int, sunrise: bool) -> int:
    value = (abs(offset_seconds) // 60) << 7
    value += kind
    if sunrise:
        value |= AQUA_SUNRISE_BIT
    if offset_seconds < 0:
        value |= AQUA_NEGATIVE_BIT
    return value


def encode_aqua_window(window: ScheduleWindow) -> str:
    """
    Encode one irrigation window as start and end slot values (4 bytes).

    Absolute windows store minutes from midnight shifted by 5. Solar windows
    store the signed minutes from sunrise/sunset shifted by 7, the end slot
    being the signed offset of the window end.
    """
    if isinstance(window.start, int):
        start = ((window.start // 60) << 5) + AQUA_ABSOLUTE_START
        end = (((window.start + window.duration) // 60) << 5) + AQUA_ABSOLUTE_END
    else:
        sunrise = window.start == "sunrise"
        start = _solar_slot(window.offset, AQUA_SOLAR_START, sunrise)
        end = _solar_slot(window.offset + window.duration, AQUA_SOLAR_END, sunrise)
    return number_to_hex(start, 4) + number_to_hex(end, 4)


def _decode_slot(value: int) -> Tuple[Optional[str], int]:
    """Return (solar event or None, signed offset seconds) of a slot value."""
    kind = value & 0x1f
    if kind in (AQUA_ABSOLUTE_START, AQUA_ABSOLUTE_END):
        return None, (value >> 5) * 60
    event = "sunrise" if value & AQUA_SUNRISE_BIT else "sunset"
    offset = (value >> 7) * 60
    if value & AQUA_NEGATIVE_BIT:
        offset = -offset
    return event, offset


def decode_aqua_window(data: str) -> Optional[ScheduleWindow]:
    """Decode a 4 byte irrigation window, None when malformed."""
    if len(data) != 8:
        return None
    start = hex_to_number(data[0:4])
    end = hex_to_number(data[4:8])
    if start is None or end is None:
        return None
    start &= 0xffff
    end &= 0xffff

    if (start & 0x1f) not in (AQUA_ABSOLUTE_START, AQUA_SOLAR_START) or \
            (end & 0x1f) not in (AQUA_ABSOLUTE_END, AQUA_SOLAR_END):
        logger.debug(f"Unknown Eve Aqua schedule slot kinds {start:#06x}/{end:#06x}")
        return None

    event, start_offset = _decode_slot(start)
    _, end_offset = _decode_slot(end)
    return ScheduleWindow(
        start=event or start_offset,
        duration=end_offset - start_offset,
        offset=start_offset,
    )


# ============================================================================
# Aqua programs and active days
# ============================================================================


def encode_aqua_programs(programs: List[EveProgram]) -> str:
    """
    Build the irrigation program list command (45).

    An empty schedule is always sent first; each program is a header byte,
    the window count and the windows.
    """
    encoded = ""
    for program in programs:
        windows = "".join(encode_aqua_window(window) for window in program.schedule)
        count = len(program.schedule)
        encoded += number_to_hex(10 if count < 2 else 11, 2) + number_to_hex(count, 2) + windows

    body = "05" + number_to_hex(len(programs) + 1, 2) + "000000" + AQUA_EMPTY_SCHEDULE + encoded
    return "45" + number_to_hex(len(body) // 2, 2) + body


def decode_aqua_programs(data: str) -> List[EveProgram]:
    """Parse the payload of an irrigation program list command (45)."""
    programs = []
    # Skip sub command, program count, padding and the leading empty schedule
    index = 14
    while index + 4 <= len(data):
        count = hex_byte(data, index + 2)
        if count is None:
            break
        schedule = data[index + 4:index + 4 + count * 8]
        index += 4 + count * 8

        windows = []
        for pos in range(0, len(schedule), 8):
            window = decode_aqua_window(schedule[pos:pos + 8])
            if window is not None:
                windows.append(window)
        if windows:
            programs.append(EveProgram(id=len(programs) + 1, days=[], schedule=windows))
    return programs


def encode_day_bitmask(programs: Iterable[EveProgram]) -> int:
    """Pack program ids per weekday into 3-bit fields, Monday lowest."""
    mask = 0
    for program in programs:
        for day in program.days:
            if day in DAYS_OF_WEEK:
                mask |= (program.id & 0x7) << (DAYS_OF_WEEK.index(day) * AQUA_DAY_BITS)
    return mask


def decode_day_bitmask(mask: int) -> Dict[str, int]:
    """Program id assigned to each weekday (0 = none)."""
    return {
        day: (mask >> (index * AQUA_DAY_BITS)) & 0x7
        for index, day in enumerate(DAYS_OF_WEEK)
    }


def apply_day_bitmask(programs: List[EveProgram], mask: int) -> List[EveProgram]:
    """Set the active days of each program from a weekday bitmask."""
    assigned = decode_day_bitmask(mask)
    for program in programs:
        program.days = [day for day in DAYS_OF_WEEK if assigned[day] == program.id]
    return programs


def encode_aqua_days(programs: List[EveProgram]) -> str:
    """Build the active days command (46)."""
    mask = encode_day_bitmask(programs)
    body = "05" + "000000" + number_to_hex((mask << 4) + 0x0f, 6)
    body = body.ljust(18 if mask == 0 else 168, "0")
    return "46" + number_to_hex(len(body) // 2, 2) + body


def decode_aqua_days(data: str) -> Optional[int]:
    """Weekday bitmask from the payload of an active days command (46)."""
    value = hex_to_number(data[8:14])
    if value is None:
        return None
    return (value & 0xffffff) >> 4
