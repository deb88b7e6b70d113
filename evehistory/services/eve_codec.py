"""
Eve wire codec

The Eve app exchanges history and configuration as base64 encoded byte
strings. Internally every blob is built and parsed as a lower-case hex
string, numbers are little-endian: signed integers of up to 48 bits or
IEEE-754 float32 values, written into an 8 byte scratch buffer and cut to
the requested width.

Malformed input never raises: every function returns None instead.
"""
import base64
import binascii
import re
import struct
from typing import Optional, Union

# Seconds between the unix epoch and 2001-01-01T00:00:00Z (Eve time base)
EPOCH_OFFSET = 978307200

_NON_HEX = re.compile(r"[^a-fA-F0-9]")
_INT48_MIN = -(1 << 47)
_INT48_MAX = (1 << 47) - 1

Number = Union[int, float]


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def encode_eve_data(data: str) -> Optional[str]:
    """
    Convert a hex string to the base64 form sent to the Eve app.

    Any non-hex characters (spaces used to lay out templates) are stripped
    first. A trailing odd nibble is dropped.
    """
    if not isinstance(data, str):
        return None
    hex_text = _NON_HEX.sub("", data)
    if len(hex_text) % 2:
        hex_text = hex_text[:-1]
    return base64.b64encode(bytes.fromhex(hex_text)).decode("ascii")


def decode_eve_data(data: str) -> Optional[str]:
    """Convert a base64 value written by the Eve app to a lower-case hex string."""
    if not isinstance(data, str):
        return None
    try:
        return base64.b64decode(data, validate=False).hex()
    except (binascii.Error, ValueError):
        return None


def number_to_hex(value: Number, width: int, precision: Optional[int] = None) -> Optional[str]:
    """
    Encode a number as a little-endian hex string of exactly `width` characters.

    Integers (precision None) are written as 48-bit signed values, non-integral
    values are rounded first. With a precision the value is written as float32.
    The 8 byte buffer is right padded with '0' and truncated to `width`, so
    high-order bytes beyond the width are silently dropped.

    Examples:
        number_to_hex(1234, 4) == "d204"
        number_to_hex(-1, 2) == "ff"
    """
    if not _is_number(value) or not isinstance(width, int) or width < 0 or width % 2:
        return None

    if precision is None:
        try:
            integer = int(round(value))
        except (OverflowError, ValueError):
            return None
        if integer < _INT48_MIN or integer > _INT48_MAX:
            return None
        buffer = integer.to_bytes(6, "little", signed=True) + b"\x00\x00"
    else:
        try:
            buffer = struct.pack("<f", float(value)) + b"\x00" * 4
        except OverflowError:
            return None

    return buffer.hex().ljust(width, "0")[:width]


def hex_to_number(data: str, precision: Optional[int] = None) -> Optional[Number]:
    """
    Decode a little-endian hex string.

    Without a precision the bytes are read as one signed integer. With a
    precision the first four bytes are read as float32, rounded to `precision`
    decimal places when it is positive and returned unrounded when it is 0.
    """
    if not isinstance(data, str) or not data:
        return None
    try:
        buffer = bytes.fromhex(data)
    except ValueError:
        return None

    if precision is None:
        return int.from_bytes(buffer, "little", signed=True)

    if len(buffer) < 4:
        return None
    number = struct.unpack("<f", buffer[:4])[0]
    if precision > 0:
        return round(number, precision)
    return number


def hex_byte(data: str, offset: int) -> Optional[int]:
    """Unsigned value of the byte at hex character `offset`, None past the end."""
    chunk = data[offset:offset + 2]
    if len(chunk) != 2:
        return None
    try:
        return int(chunk, 16)
    except ValueError:
        return None
