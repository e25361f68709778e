"""
IPNS Canonical Record Data

The five semantic fields of a record (Value, Validity, ValidityType, Sequence,
TTL) encoded as a deterministic CBOR map. These bytes are embedded in the
record's data field and are exactly what the V2 signature covers, so two
independent encoders must produce identical output for identical fields.
"""

import io
from dataclasses import dataclass
from enum import IntEnum

import cbor2

from .errors import StructuralDecodeError, UnsupportedValidityType

MAX_UINT64 = (1 << 64) - 1


class ValidityType(IntEnum):
    """How the validity field is interpreted. EOL: valid until the deadline."""
    EOL = 0


@dataclass(frozen=True)
class IPNSRecordData:
    """Decoded canonical record data."""
    value: bytes
    validity: bytes
    validity_type: ValidityType
    sequence: int
    ttl: int


def create_cbor_data(
    value: bytes,
    validity: bytes,
    validity_type: ValidityType,
    sequence: int,
    ttl: int
) -> bytes:
    """
    Encode the canonical record data.

    Map keys are emitted in canonical CBOR order, so the output depends only
    on the field values.
    """
    data = {
        "Value": bytes(value),
        "Validity": bytes(validity),
        "ValidityType": int(validity_type),
        "Sequence": int(sequence),
        "TTL": int(ttl),
    }
    return cbor2.dumps(data, canonical=True)


def _require_bytes(data: dict, key: str) -> bytes:
    if key not in data:
        raise StructuralDecodeError(f"record data is missing {key}")
    value = data[key]
    if not isinstance(value, (bytes, bytearray)):
        raise StructuralDecodeError(f"record data {key} must be bytes, got {type(value).__name__}")
    return bytes(value)


def _require_uint64(data: dict, key: str) -> int:
    if key not in data:
        raise StructuralDecodeError(f"record data is missing {key}")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise StructuralDecodeError(f"record data {key} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT64:
        raise StructuralDecodeError(f"record data {key} out of uint64 range")
    return value


def parse_cbor_data(buf: bytes) -> IPNSRecordData:
    """
    Decode canonical record data.

    Raises:
        StructuralDecodeError: malformed CBOR, trailing bytes, missing keys
            or wrongly typed values
        UnsupportedValidityType: a ValidityType other than EOL
    """
    buf = bytes(buf)
    stream = io.BytesIO(buf)
    try:
        data = cbor2.CBORDecoder(stream).decode()
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError) as err:
        raise StructuralDecodeError(f"record data is not valid CBOR: {err}") from err

    if stream.tell() != len(buf):
        raise StructuralDecodeError("trailing bytes after record data")
    if not isinstance(data, dict):
        raise StructuralDecodeError("record data must be a CBOR map")

    value = _require_bytes(data, "Value")
    validity = _require_bytes(data, "Validity")
    validity_type = _require_uint64(data, "ValidityType")
    sequence = _require_uint64(data, "Sequence")
    ttl = _require_uint64(data, "TTL")

    try:
        validity_type = ValidityType(validity_type)
    except ValueError:
        raise UnsupportedValidityType(f"unrecognized validity type {validity_type}") from None

    return IPNSRecordData(
        value=value,
        validity=validity,
        validity_type=validity_type,
        sequence=sequence,
        ttl=ttl,
    )
