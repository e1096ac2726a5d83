"""Decoding of binary-marshaled Go ``time.Time`` values.

Layout (big-endian)::

    version:u8  seconds:i64  nanoseconds:i32  offset_minutes:i16  [offset_seconds:u8]

Seconds count from 0001-01-01 UTC. The zone offset is
``offset_minutes * 60 + offset_seconds``; exactly -60 seconds means UTC.
Version 1 is 15 bytes; version 2 adds the offset-seconds byte.
"""

import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from .errors import DecodeError

TIME_V1 = struct.Struct(">Bqih")
TIME_V1_LENGTH = TIME_V1.size
TIME_V2_LENGTH = TIME_V1.size + 1

UTC_OFFSET_MARKER = -60

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class DecodedTime:
    """Three renderings of one decoded instant."""

    formatted: str
    unix_seconds: int
    iso8601: str


def _zone(offset: int) -> tzinfo:
    if offset == UTC_OFFSET_MARKER:
        return timezone.utc
    try:
        return timezone(timedelta(seconds=offset))
    except ValueError as e:
        raise DecodeError(f"zone offset out of range: {offset}s") from e


def _offset_text(offset: timedelta, separator: str) -> str:
    seconds = int(offset.total_seconds())
    sign = "-" if seconds < 0 else "+"
    hours, minutes = divmod(abs(seconds) // 60, 60)
    return f"{sign}{hours:02d}{separator}{minutes:02d}"


def decode_time(data: bytes) -> DecodedTime:
    """Decode a marshaled time value.

    Raises:
        DecodeError: On an unknown version, a wrong length, an
            out-of-range nanosecond field or an unrepresentable instant.
    """
    if not data:
        raise DecodeError("no data")
    version = data[0]
    if version == 1:
        expected = TIME_V1_LENGTH
    elif version == 2:
        expected = TIME_V2_LENGTH
    else:
        raise DecodeError(f"unsupported time encoding version {version}")
    if len(data) != expected:
        raise DecodeError(f"invalid length {len(data)} for version {version}, expected {expected}")

    _, seconds, nanos, offset_minutes = TIME_V1.unpack_from(data)
    zone_offset = offset_minutes * 60
    if version == 2:
        zone_offset += data[TIME_V1_LENGTH]
    if not 0 <= nanos < 1_000_000_000:
        raise DecodeError(f"nanoseconds out of range: {nanos}")

    zone = _zone(zone_offset)
    try:
        instant = (ZERO_TIME + timedelta(seconds=seconds)).astimezone(zone)
    except OverflowError as e:
        raise DecodeError(f"instant out of range: {seconds}s since year 1") from e

    offset = instant.utcoffset() or timedelta(0)
    if zone_offset == UTC_OFFSET_MARKER:
        zone_name, iso_zone = "UTC", "Z"
    else:
        zone_name = _offset_text(offset, "")
        iso_zone = "Z" if not offset else _offset_text(offset, ":")

    clock = f"{instant.hour:02d}:{instant.minute:02d}:{instant.second:02d}"
    day = f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
    return DecodedTime(
        formatted=f"{day} {clock} {zone_name}",
        unix_seconds=(instant - UNIX_EPOCH) // timedelta(seconds=1),
        iso8601=f"{day}T{clock}{iso_zone}",
    )
