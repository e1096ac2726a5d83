"""Decoding of typed-payload envelopes (protobuf ``Any`` wire layout).

An envelope is a protobuf message with field 1 holding the type URL and
field 2 the opaque payload, both length-delimited. Decoding fails closed:
truncated varints, lengths past the end of input, wrong wire types for
the known fields, group fields and a missing type URL are all errors.
"""

from dataclasses import dataclass

from .errors import DecodeError

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_BYTES = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_FIXED32 = 5

FIELD_TYPE_URL = 1
FIELD_VALUE = 2

MAX_VARINT_BYTES = 10


@dataclass(frozen=True)
class Envelope:
    """A decoded envelope."""

    type_url: str
    payload: bytes

    @property
    def payload_size(self) -> int:
        return len(self.payload)


def read_varint(data: bytes, pos: int) -> tuple[int, int]:
    """Read an unsigned base-128 varint at ``pos``; return (value, next_pos)."""
    result = 0
    for i in range(MAX_VARINT_BYTES):
        if pos >= len(data):
            raise DecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            if result >= 1 << 64:
                raise DecodeError("varint overflows 64 bits")
            return result, pos
    raise DecodeError("varint too long")


def _read_bytes(data: bytes, pos: int) -> tuple[bytes, int]:
    length, pos = read_varint(data, pos)
    if length > len(data) - pos:
        raise DecodeError(f"declared length {length} exceeds remaining {len(data) - pos} bytes")
    return data[pos:pos + length], pos + length


def _skip(data: bytes, pos: int, wire_type: int) -> int:
    if wire_type == WIRE_VARINT:
        _, pos = read_varint(data, pos)
        return pos
    if wire_type == WIRE_BYTES:
        _, pos = _read_bytes(data, pos)
        return pos
    width = {WIRE_FIXED64: 8, WIRE_FIXED32: 4}.get(wire_type)
    if width is None:
        raise DecodeError(f"unsupported wire type {wire_type}")
    if pos + width > len(data):
        raise DecodeError("truncated fixed-width field")
    return pos + width


def decode_envelope(data: bytes) -> Envelope:
    """Decode an envelope into its type URL and payload bytes.

    Unknown fields are skipped. A repeated known field keeps its last
    occurrence.

    Raises:
        DecodeError: On any malformed or truncated input.
    """
    type_url: bytes | None = None
    payload = b""
    pos = 0
    while pos < len(data):
        tag, pos = read_varint(data, pos)
        field, wire_type = tag >> 3, tag & 0x07
        if field == 0:
            raise DecodeError("invalid field number 0")
        if field in (FIELD_TYPE_URL, FIELD_VALUE):
            if wire_type != WIRE_BYTES:
                raise DecodeError(f"field {field} has wire type {wire_type}, expected {WIRE_BYTES}")
            value, pos = _read_bytes(data, pos)
            if field == FIELD_TYPE_URL:
                type_url = value
            else:
                payload = value
        else:
            pos = _skip(data, pos, wire_type)

    if not type_url:
        raise DecodeError("missing type URL")
    try:
        text = type_url.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("type URL is not valid UTF-8") from e
    return Envelope(type_url=text, payload=payload)
