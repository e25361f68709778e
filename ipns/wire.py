"""
Protobuf wire-format helpers.

A minimal encoder/decoder for the subset of the protobuf binary format used by
the IPNS envelope and libp2p key messages: unsigned varints and
length-delimited byte fields. Unknown fields of any non-group wire type are
skipped by iter_fields.
"""

from typing import Iterator, Tuple, Union

from .errors import StructuralDecodeError

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_FIXED32 = 5

MAX_UINT64 = (1 << 64) - 1
MAX_VARINT_LEN = 10

FieldValue = Union[int, bytes]


# -----------------------------------------------------------------------------
# Unsigned varints (LEB128-style)
# -----------------------------------------------------------------------------

def write_uvarint(value: int) -> bytes:
    """Encode a non-negative integer below 2**64 as an unsigned varint."""
    if value < 0:
        raise ValueError("uvarint cannot encode negative values")
    if value > MAX_UINT64:
        raise ValueError("uvarint cannot encode values above 2**64 - 1")
    out = bytearray()
    v = int(value)
    while True:
        to_write = v & 0x7F
        v >>= 7
        if v:
            out.append(to_write | 0x80)
        else:
            out.append(to_write)
            break
    return bytes(out)


def read_uvarint(buf: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a uvarint from buf starting at offset -> (value, new_offset)."""
    result = 0
    shift = 0
    i = offset
    while i < len(buf):
        b = buf[i]
        result |= (b & 0x7F) << shift
        i += 1
        if not (b & 0x80):
            if result > MAX_UINT64:
                raise StructuralDecodeError("varint overflows uint64")
            return result, i
        shift += 7
        if i - offset >= MAX_VARINT_LEN:
            raise StructuralDecodeError("varint too long")
    raise StructuralDecodeError("buffer ended before varint completed")


# -----------------------------------------------------------------------------
# Fields
# -----------------------------------------------------------------------------

def _tag(field_number: int, wire_type: int) -> bytes:
    return write_uvarint((field_number << 3) | wire_type)


def encode_varint_field(field_number: int, value: int) -> bytes:
    return _tag(field_number, WIRE_VARINT) + write_uvarint(value)


def encode_bytes_field(field_number: int, data: bytes) -> bytes:
    return _tag(field_number, WIRE_LEN) + write_uvarint(len(data)) + bytes(data)


def iter_fields(buf: bytes) -> Iterator[Tuple[int, int, FieldValue]]:
    """
    Walk a serialized message, yielding (field_number, wire_type, value).

    Varint values are yielded as int, length-delimited values as bytes and
    fixed-width values as little-endian ints.

    Raises:
        StructuralDecodeError: on truncated input, invalid tags or group fields
    """
    buf = bytes(buf)
    offset = 0
    end = len(buf)
    while offset < end:
        key, offset = read_uvarint(buf, offset)
        field_number = key >> 3
        wire_type = key & 0x07
        if field_number == 0:
            raise StructuralDecodeError("invalid field number 0")

        if wire_type == WIRE_VARINT:
            value, offset = read_uvarint(buf, offset)
            yield field_number, wire_type, value
        elif wire_type == WIRE_LEN:
            length, offset = read_uvarint(buf, offset)
            if offset + length > end:
                raise StructuralDecodeError(
                    f"field {field_number} length {length} exceeds remaining buffer"
                )
            yield field_number, wire_type, buf[offset:offset + length]
            offset += length
        elif wire_type in (WIRE_FIXED64, WIRE_FIXED32):
            size = 8 if wire_type == WIRE_FIXED64 else 4
            if offset + size > end:
                raise StructuralDecodeError(f"field {field_number} truncated")
            yield field_number, wire_type, int.from_bytes(buf[offset:offset + size], "little")
            offset += size
        else:
            raise StructuralDecodeError(f"unsupported wire type {wire_type} for field {field_number}")
