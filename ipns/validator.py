"""
IPNS Record Validation

Consumer-side checks, in order:

1. Structural decode of the envelope (size limit, protobuf)
2. V2 signature and data must be present
3. V2 signature must verify over the canonical data
4. Plain-text duplicates must agree with the canonical data
5. Validity type must be EOL
6. Deadline must not have passed

The legacy V1 signature is never consulted: a record is accepted on the
strength of its V2 signature alone, and rejected without one.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from . import config
from .cbor_data import IPNSRecordData, ValidityType, parse_cbor_data
from .errors import (
    FieldMismatch,
    InvalidSignatureV2,
    IPNSError,
    MissingCurrentSignature,
    RecordExpired,
    RecordTooLarge,
    StructuralDecodeError,
    UnsupportedValidityType,
)
from .keys import PublicKey
from .record import IPNSRecord, unmarshal
from .resolver import extract_public_key
from .routing import peer_id_from_routing_key
from .signing import verify_current
from .timestamps import datetime_to_ns, now_ns, parse_rfc3339_ns

logger = logging.getLogger(__name__)


def _check_size(buf: bytes) -> None:
    limit = config.max_record_size()
    if len(buf) > limit:
        raise RecordTooLarge(f"record of {len(buf)} bytes exceeds limit of {limit} bytes")


def validate_cbor_data_matches_pb_data(record: IPNSRecord) -> IPNSRecordData:
    """
    Decode the canonical data and require every plain-text field to match it.

    Absent plain-text fields compare as their protobuf defaults (empty bytes,
    0, EOL).

    Returns:
        The decoded canonical data

    Raises:
        StructuralDecodeError: data missing or malformed
        UnsupportedValidityType: data carries an unknown validity type
        FieldMismatch: a plain-text field disagrees with the data
    """
    data = record.parsed_data()

    if data.value != (record.value or b""):
        raise FieldMismatch('Field "value" did not match between protobuf and CBOR')
    if data.validity != (record.validity or b""):
        raise FieldMismatch('Field "validity" did not match between protobuf and CBOR')

    validity_type = ValidityType.EOL if record.validity_type is None else record.validity_type
    if int(data.validity_type) != int(validity_type):
        raise FieldMismatch('Field "validityType" did not match between protobuf and CBOR')
    if data.sequence != (record.sequence or 0):
        raise FieldMismatch('Field "sequence" did not match between protobuf and CBOR')
    if data.ttl != (record.ttl or 0):
        raise FieldMismatch('Field "ttl" did not match between protobuf and CBOR')

    return data


def validate_record(
    public_key: PublicKey,
    record: IPNSRecord,
    *,
    verification_time: Optional[datetime] = None
) -> IPNSRecordData:
    """
    Validate an already decoded record against public_key.

    Returns:
        The decoded canonical data of the accepted record
    """
    if record.signature_v2 is None:
        raise MissingCurrentSignature()
    if record.data is None:
        raise StructuralDecodeError("missing data")

    if not verify_current(public_key, record):
        raise InvalidSignatureV2()

    data = validate_cbor_data_matches_pb_data(record)

    if data.validity_type != ValidityType.EOL:
        raise UnsupportedValidityType(f"unrecognized validity type {data.validity_type}")

    deadline_ns = parse_rfc3339_ns(data.validity)
    current_ns = now_ns() if verification_time is None else datetime_to_ns(verification_time)
    if deadline_ns < current_ns:
        raise RecordExpired()

    return data


def validate(
    public_key: PublicKey,
    buf: bytes,
    *,
    verification_time: Optional[datetime] = None
) -> None:
    """
    Validate a marshaled record against the given public key.

    Args:
        public_key: Key that must have produced the V2 signature
        buf: Marshaled record
        verification_time: Time to check the deadline against (default: now)

    Raises:
        IPNSError: the specific subclass names the failed check
    """
    try:
        _check_size(buf)
        record = unmarshal(buf)
        validate_record(public_key, record, verification_time=verification_time)
    except IPNSError as err:
        logger.debug(
            "record rejected: %s (%s)", err.message, err.code.value,
            extra={"extra_fields": {"error_code": err.code.value}}
        )
        raise


def ipns_validator(
    key: bytes,
    marshaled_data: bytes,
    *,
    verification_time: Optional[datetime] = None
) -> None:
    """
    Validate a record found under a routing key.

    The verifying key is resolved from the record's embedded key or from the
    peer id in the routing key.

    Args:
        key: Routing key, b"/ipns/" + peer id bytes
        marshaled_data: Marshaled record

    Raises:
        IPNSError: the specific subclass names the failed check
    """
    try:
        _check_size(marshaled_data)
        peer_id = peer_id_from_routing_key(key)
        record = unmarshal(marshaled_data)
        public_key = extract_public_key(peer_id, record)
        validate_record(public_key, record, verification_time=verification_time)
    except IPNSError as err:
        logger.debug(
            "record rejected: %s (%s)", err.message, err.code.value,
            extra={"extra_fields": {"error_code": err.code.value}}
        )
        raise


async def validate_async(*args, **kwargs) -> None:
    """validate() in a worker thread."""
    await asyncio.to_thread(validate, *args, **kwargs)


async def ipns_validator_async(*args, **kwargs) -> None:
    """ipns_validator() in a worker thread."""
    await asyncio.to_thread(ipns_validator, *args, **kwargs)
