"""
IPNS Record and Envelope Codec

The record is a single immutable structure holding every envelope field. The
legacy V1 signature is optional, the V2 signature and the canonical data blob
are what modern validators rely on, and the remaining plain-text fields are
duplicates of the blob kept for legacy readers.

Envelope (protobuf ``IpnsEntry``):

    1 value         bytes
    2 signatureV1   bytes
    3 validityType  enum
    4 validity      bytes
    5 sequence      uint64
    6 ttl           uint64
    7 pubKey        bytes
    8 signatureV2   bytes
    9 data          bytes

Every field is optional on the wire. A field that is None is omitted when
marshaling and comes back as None when unmarshaling.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .cbor_data import IPNSRecordData, ValidityType, parse_cbor_data
from .errors import StructuralDecodeError
from .timestamps import ns_to_datetime, parse_rfc3339_ns
from .wire import WIRE_LEN, WIRE_VARINT, encode_bytes_field, encode_varint_field, iter_fields

FIELD_VALUE = 1
FIELD_SIGNATURE_V1 = 2
FIELD_VALIDITY_TYPE = 3
FIELD_VALIDITY = 4
FIELD_SEQUENCE = 5
FIELD_TTL = 6
FIELD_PUB_KEY = 7
FIELD_SIGNATURE_V2 = 8
FIELD_DATA = 9

_BYTES_FIELDS = {
    FIELD_VALUE: "value",
    FIELD_SIGNATURE_V1: "signature_v1",
    FIELD_VALIDITY: "validity",
    FIELD_PUB_KEY: "pub_key",
    FIELD_SIGNATURE_V2: "signature_v2",
    FIELD_DATA: "data",
}

_VARINT_FIELDS = {
    FIELD_VALIDITY_TYPE: "validity_type",
    FIELD_SEQUENCE: "sequence",
    FIELD_TTL: "ttl",
}


@dataclass(frozen=True)
class IPNSRecord:
    """A signed IPNS record."""
    value: Optional[bytes] = None
    signature_v1: Optional[bytes] = None
    validity_type: Optional[Union[ValidityType, int]] = None
    validity: Optional[bytes] = None
    sequence: Optional[int] = None
    ttl: Optional[int] = None
    pub_key: Optional[bytes] = None
    signature_v2: Optional[bytes] = None
    data: Optional[bytes] = None

    @property
    def value_path(self) -> str:
        """The plain-text value as a string."""
        return (self.value or b"").decode("utf-8")

    @property
    def has_v1_signature(self) -> bool:
        return self.signature_v1 is not None

    def parsed_data(self) -> IPNSRecordData:
        """Decode the embedded canonical data."""
        if self.data is None:
            raise StructuralDecodeError("record data is missing")
        return parse_cbor_data(self.data)

    def expires_at(self) -> datetime:
        """Deadline from the canonical data, as a UTC datetime."""
        return ns_to_datetime(parse_rfc3339_ns(self.parsed_data().validity))


def marshal(record: IPNSRecord) -> bytes:
    """Serialize a record to its protobuf envelope, in field-number order."""
    out = bytearray()
    if record.value is not None:
        out += encode_bytes_field(FIELD_VALUE, record.value)
    if record.signature_v1 is not None:
        out += encode_bytes_field(FIELD_SIGNATURE_V1, record.signature_v1)
    if record.validity_type is not None:
        out += encode_varint_field(FIELD_VALIDITY_TYPE, int(record.validity_type))
    if record.validity is not None:
        out += encode_bytes_field(FIELD_VALIDITY, record.validity)
    if record.sequence is not None:
        out += encode_varint_field(FIELD_SEQUENCE, record.sequence)
    if record.ttl is not None:
        out += encode_varint_field(FIELD_TTL, record.ttl)
    if record.pub_key is not None:
        out += encode_bytes_field(FIELD_PUB_KEY, record.pub_key)
    if record.signature_v2 is not None:
        out += encode_bytes_field(FIELD_SIGNATURE_V2, record.signature_v2)
    if record.data is not None:
        out += encode_bytes_field(FIELD_DATA, record.data)
    return bytes(out)


def _coerce_validity_type(value: int) -> Union[ValidityType, int]:
    try:
        return ValidityType(value)
    except ValueError:
        return value


def unmarshal(buf: bytes) -> IPNSRecord:
    """
    Parse a protobuf envelope into a record.

    This is purely structural: no signature or consistency checks happen
    here. Unknown fields are ignored; repeated occurrences of a known field
    keep the last value.

    Raises:
        StructuralDecodeError: on truncated or malformed input
    """
    fields = {}
    for field_number, wire_type, value in iter_fields(buf):
        if field_number in _BYTES_FIELDS:
            if wire_type != WIRE_LEN:
                raise StructuralDecodeError(
                    f"field {_BYTES_FIELDS[field_number]} has wire type {wire_type}, expected bytes"
                )
            fields[_BYTES_FIELDS[field_number]] = value
        elif field_number in _VARINT_FIELDS:
            if wire_type != WIRE_VARINT:
                raise StructuralDecodeError(
                    f"field {_VARINT_FIELDS[field_number]} has wire type {wire_type}, expected varint"
                )
            fields[_VARINT_FIELDS[field_number]] = value

    if "validity_type" in fields:
        fields["validity_type"] = _coerce_validity_type(fields["validity_type"])

    return IPNSRecord(**fields)
