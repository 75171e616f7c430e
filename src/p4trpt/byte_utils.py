"""
Byte and bit extraction primitives for Telemetry Report decoding.

Every header decoder is built from these functions only, so the offsets
in the header classes are the single description of the wire layout.
All reads are bounds-checked: a short buffer raises TruncatedBuffer, it
never yields a zero.
"""
import ipaddress
from typing import Union

from .exceptions import MalformedAddressLiteral, TruncatedBuffer

MAC_LEN = 6
_HEX_DIGITS = set("0123456789abcdefABCDEF")

InetAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _check_bounds(buffer, start: int, length: int, what: str = "field") -> None:
    if start < 0 or length < 0:
        raise ValueError(f"Invalid range start={start} length={length}")
    if start + length > len(buffer):
        raise TruncatedBuffer(what, start, length, max(len(buffer) - start, 0))


def slice_bytes(buffer, start: int, length: int) -> bytes:
    """Return a copy of buffer[start:start+length]."""
    _check_bounds(buffer, start, length)
    return bytes(buffer[start:start + length])


def unsigned_be(buffer, start: int, count: int) -> int:
    """Big-endian unsigned integer of count bytes (1-8)."""
    if not 1 <= count <= 8:
        raise ValueError(f"count must be between 1 and 8, got {count}")
    _check_bounds(buffer, start, count)
    return int.from_bytes(buffer[start:start + count], "big", signed=False)


def nibble(byte: int, high: bool) -> int:
    """Top (high=True) or bottom four bits of a byte."""
    if high:
        return (byte & 0xF0) >> 4
    return byte & 0x0F


def bit(byte: int, position: int) -> int:
    """Bit at position 0 (MSB) through 7 (LSB)."""
    if not 0 <= position <= 7:
        raise ValueError(f"bit position must be 0-7, got {position}")
    return (byte >> (7 - position)) & 0x01


def bit_field(buffer, start: int, bit_offset: int, width: int) -> int:
    """
    Unsigned field of `width` bits beginning `bit_offset` bits (MSB first)
    into the byte at `start`. The field may span several bytes.
    """
    first = start + bit_offset // 8
    skip = bit_offset % 8
    nbytes = (skip + width + 7) // 8
    _check_bounds(buffer, first, nbytes)
    value = int.from_bytes(buffer[first:first + nbytes], "big", signed=False)
    shift = nbytes * 8 - skip - width
    return (value >> shift) & ((1 << width) - 1)


def bit_string(buffer, start: int, count: int) -> str:
    """Render count bytes as a string of '0'/'1' characters, MSB first."""
    _check_bounds(buffer, start, count)
    return "".join(format(b, "08b") for b in buffer[start:start + count])


def mac_string(buffer, start: int) -> str:
    """Six bytes as lower-case colon-separated hex."""
    _check_bounds(buffer, start, MAC_LEN, "mac")
    return ":".join(f"{b:02x}" for b in buffer[start:start + MAC_LEN])


def parse_mac(value: str) -> bytes:
    """Parse 'xx:xx:xx:xx:xx:xx' (or '-' separated) into six bytes."""
    if not isinstance(value, str):
        raise MalformedAddressLiteral("MAC", value)
    sep = "-" if "-" in value else ":"
    tokens = value.split(sep)
    if len(tokens) != MAC_LEN:
        raise MalformedAddressLiteral("MAC", value)
    for token in tokens:
        if len(token) != 2 or not set(token) <= _HEX_DIGITS:
            raise MalformedAddressLiteral("MAC", value)
    return bytes(int(token, 16) for token in tokens)


def inet_address(buffer, version: int, start: int) -> InetAddress:
    """Read a 4-byte (version 4) or 16-byte address at start."""
    if version == 4:
        return ipaddress.IPv4Address(slice_bytes(buffer, start, 4))
    return ipaddress.IPv6Address(slice_bytes(buffer, start, 16))


def parse_inet_address(value) -> InetAddress:
    """Accept an address object, or parse a v4/v6 literal."""
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    if not isinstance(value, str):
        raise MalformedAddressLiteral("IP", value)
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise MalformedAddressLiteral("IP", value) from None


def write_bytes(buffer: bytearray, start: int, data: bytes) -> None:
    """Overwrite len(data) bytes in place; the buffer never changes size."""
    _check_bounds(buffer, start, len(data))
    buffer[start:start + len(data)] = data


def write_unsigned_be(buffer: bytearray, start: int, count: int, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected an integer, got {value!r}")
    if value < 0 or value >= 1 << (count * 8):
        raise ValueError(f"{value} does not fit in {count} byte(s)")
    write_bytes(buffer, start, value.to_bytes(count, "big"))
