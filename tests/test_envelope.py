"""Tests for typed-payload envelope decoding."""

import pytest

from boltview.envelope import decode_envelope, read_varint
from boltview.errors import DecodeError

TYPE_URL = b"types.containerd.io/opencontainers/runtime-spec/1/Spec"


def varint(value: int) -> bytes:
    out = b""
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out += bytes([byte | 0x80])
        else:
            return out + bytes([byte])


def field(number: int, payload: bytes, wire_type: int = 2) -> bytes:
    return varint(number << 3 | wire_type) + varint(len(payload)) + payload


class TestVarint:
    def test_single_byte(self):
        assert read_varint(b"\x05", 0) == (5, 1)

    def test_multi_byte(self):
        assert read_varint(varint(300), 0) == (300, 2)

    def test_truncated(self):
        with pytest.raises(DecodeError, match="truncated varint"):
            read_varint(b"\x80\x80", 0)

    def test_too_long(self):
        with pytest.raises(DecodeError, match="too long"):
            read_varint(b"\xff" * 11, 0)


class TestDecodeEnvelope:
    def test_type_and_payload(self):
        env = decode_envelope(field(1, TYPE_URL) + field(2, b'{"ociVersion":"1.1.0"}'))
        assert env.type_url == TYPE_URL.decode()
        assert env.payload == b'{"ociVersion":"1.1.0"}'
        assert env.payload_size == 22

    def test_missing_payload_is_empty(self):
        env = decode_envelope(field(1, TYPE_URL))
        assert env.payload == b""
        assert env.payload_size == 0

    def test_binary_payload(self):
        payload = bytes(range(256))
        env = decode_envelope(field(1, TYPE_URL) + field(2, payload))
        assert env.payload == payload

    def test_field_order_does_not_matter(self):
        env = decode_envelope(field(2, b"data") + field(1, TYPE_URL))
        assert env.type_url == TYPE_URL.decode()
        assert env.payload == b"data"

    def test_unknown_fields_are_skipped(self):
        data = (
            field(1, TYPE_URL)
            + varint(3 << 3 | 0) + varint(150)
            + varint(4 << 3 | 5) + b"\x00\x00\x00\x00"
            + varint(5 << 3 | 1) + b"\x00" * 8
            + field(6, b"ignored")
            + field(2, b"data")
        )
        env = decode_envelope(data)
        assert env.payload == b"data"


class TestDecodeEnvelopeErrors:
    def test_empty_input(self):
        with pytest.raises(DecodeError, match="missing type URL"):
            decode_envelope(b"")

    def test_truncated_length_prefix(self):
        with pytest.raises(DecodeError, match="truncated varint"):
            decode_envelope(b"\x0a\x80")

    def test_declared_length_past_end(self):
        data = varint(1 << 3 | 2) + varint(100) + b"short"
        with pytest.raises(DecodeError, match="exceeds remaining"):
            decode_envelope(data)

    def test_oversized_declared_length(self):
        data = varint(1 << 3 | 2) + varint(2**63) + b"x"
        with pytest.raises(DecodeError, match="exceeds remaining"):
            decode_envelope(data)

    def test_trailing_partial_field(self):
        data = field(1, TYPE_URL) + field(2, b"data")[:-1]
        with pytest.raises(DecodeError):
            decode_envelope(data)

    def test_wrong_wire_type_for_type_url(self):
        with pytest.raises(DecodeError, match="wire type"):
            decode_envelope(varint(1 << 3 | 0) + varint(7))

    def test_group_wire_type(self):
        with pytest.raises(DecodeError, match="unsupported wire type 3"):
            decode_envelope(field(1, TYPE_URL) + varint(9 << 3 | 3))

    def test_field_zero(self):
        with pytest.raises(DecodeError, match="field number 0"):
            decode_envelope(b"\x02\x00")

    def test_type_url_not_utf8(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            decode_envelope(field(1, b"\xff\xfe"))

    def test_plain_text_is_rejected(self):
        with pytest.raises(DecodeError):
            decode_envelope(b"hello world")
