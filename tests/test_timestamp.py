"""Tests for marshaled timestamp decoding."""

import struct

import pytest

from boltview.errors import DecodeError
from boltview.timestamp import decode_time

UNIX_TO_YEAR_ONE = 62135596800


def encode(unix: int, nanos: int = 0, offset_minutes: int = -1, version: int = 1, offset_seconds: int = 0) -> bytes:
    data = struct.pack(">Bqih", version, unix + UNIX_TO_YEAR_ONE, nanos, offset_minutes)
    if version == 2:
        data += bytes([offset_seconds])
    return data


class TestDecodeTime:
    def test_epoch_zero(self):
        decoded = decode_time(encode(0))
        assert decoded.unix_seconds == 0
        assert decoded.formatted == "1970-01-01 00:00:00 UTC"
        assert decoded.iso8601 == "1970-01-01T00:00:00Z"

    def test_known_instant(self):
        decoded = decode_time(encode(1704164645, nanos=123456789))
        assert decoded.unix_seconds == 1704164645
        assert decoded.iso8601 == "2024-01-02T03:04:05Z"

    def test_positive_offset(self):
        decoded = decode_time(encode(0, offset_minutes=480))
        assert decoded.unix_seconds == 0
        assert decoded.formatted == "1970-01-01 08:00:00 +0800"
        assert decoded.iso8601 == "1970-01-01T08:00:00+08:00"

    def test_negative_offset(self):
        decoded = decode_time(encode(0, offset_minutes=-330))
        assert decoded.formatted == "1969-12-31 18:30:00 -0530"
        assert decoded.iso8601 == "1969-12-31T18:30:00-05:30"

    def test_zero_offset_fixed_zone(self):
        decoded = decode_time(encode(0, offset_minutes=0))
        assert decoded.formatted == "1970-01-01 00:00:00 +0000"
        assert decoded.iso8601 == "1970-01-01T00:00:00Z"

    def test_version_two(self):
        decoded = decode_time(encode(60, version=2, offset_minutes=-1))
        assert decoded.unix_seconds == 60
        assert decoded.iso8601 == "1970-01-01T00:01:00Z"

    def test_version_two_seconds_break_the_utc_marker(self):
        decoded = decode_time(encode(0, version=2, offset_minutes=-1, offset_seconds=5))
        assert decoded.unix_seconds == 0
        assert decoded.formatted == "1969-12-31 23:59:05 -0000"
        assert decoded.iso8601 == "1969-12-31T23:59:05-00:00"

    def test_version_two_seconds_complete_the_utc_marker(self):
        decoded = decode_time(encode(0, version=2, offset_minutes=-2, offset_seconds=60))
        assert decoded.formatted == "1970-01-01 00:00:00 UTC"

    def test_fields_agree(self):
        decoded = decode_time(encode(1000000000, offset_minutes=120))
        assert decoded.unix_seconds == 1000000000
        assert decoded.iso8601.startswith(decoded.formatted[:10])


class TestDecodeTimeErrors:
    def test_empty(self):
        with pytest.raises(DecodeError, match="no data"):
            decode_time(b"")

    def test_wrong_length(self):
        with pytest.raises(DecodeError, match="invalid length"):
            decode_time(encode(0)[:-1])
        with pytest.raises(DecodeError, match="invalid length"):
            decode_time(encode(0) + b"\x00")

    def test_unknown_version(self):
        with pytest.raises(DecodeError, match="unsupported"):
            decode_time(b"\x07" + encode(0)[1:])

    def test_nanoseconds_out_of_range(self):
        with pytest.raises(DecodeError, match="nanoseconds"):
            decode_time(encode(0, nanos=1_000_000_000))

    def test_instant_out_of_range(self):
        data = struct.pack(">Bqih", 1, 2**62, 0, -1)
        with pytest.raises(DecodeError, match="out of range"):
            decode_time(data)

    def test_text_value_is_not_a_time(self):
        with pytest.raises(DecodeError):
            decode_time(b"2024-01-02T03:04:05Z")

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_time(b"\x01")
