"""
IPNS Record Signing

Two signature schemes over two different payloads:

- V1 (legacy): value || validity || validity type name. Only emitted for
  compatibility with readers that predate the canonical data blob.
- V2 (current): b"ipns-signature:" || CBOR data. Required by every modern
  validator.

The signing primitive only ever sees the payload bytes built here.
"""

import logging
from typing import Union

from .cbor_data import ValidityType
from .errors import SignatureCreationFailed
from .keys import PrivateKey, PublicKey
from .record import IPNSRecord

logger = logging.getLogger(__name__)

SIGNATURE_V2_PREFIX = b"ipns-signature:"


def _validity_type_name(validity_type: Union[ValidityType, int]) -> bytes:
    try:
        return ValidityType(validity_type).name.encode("ascii")
    except ValueError:
        return str(int(validity_type)).encode("ascii")


def ipns_record_data_for_v1_sig(
    value: bytes,
    validity_type: Union[ValidityType, int],
    validity: bytes
) -> bytes:
    """Payload covered by the legacy V1 signature."""
    return bytes(value) + bytes(validity) + _validity_type_name(validity_type)


def ipns_record_data_for_v2_sig(data: bytes) -> bytes:
    """Payload covered by the V2 signature."""
    return SIGNATURE_V2_PREFIX + bytes(data)


def sign_legacy(
    private_key: PrivateKey,
    value: bytes,
    validity_type: Union[ValidityType, int],
    validity: bytes
) -> bytes:
    """
    Produce the legacy V1 signature.

    Raises:
        SignatureCreationFailed: if the signing primitive fails
    """
    try:
        return private_key.sign(ipns_record_data_for_v1_sig(value, validity_type, validity))
    except Exception as err:
        logger.error("record signature creation failed: %s", err)
        raise SignatureCreationFailed() from err


def sign_current(private_key: PrivateKey, data: bytes) -> bytes:
    """
    Produce the V2 signature over the encoded canonical data.

    Raises:
        SignatureCreationFailed: if the signing primitive fails
    """
    try:
        return private_key.sign(ipns_record_data_for_v2_sig(data))
    except Exception as err:
        logger.error("record signature creation failed: %s", err)
        raise SignatureCreationFailed() from err


def verify_legacy(public_key: PublicKey, record: IPNSRecord) -> bool:
    """Check the V1 signature against the record's plain-text fields."""
    if record.signature_v1 is None or record.value is None or record.validity is None:
        return False
    validity_type = ValidityType.EOL if record.validity_type is None else record.validity_type
    payload = ipns_record_data_for_v1_sig(record.value, validity_type, record.validity)
    return public_key.verify(payload, record.signature_v1)


def verify_current(public_key: PublicKey, record: IPNSRecord) -> bool:
    """Check the V2 signature against the record's canonical data."""
    if record.signature_v2 is None or record.data is None:
        return False
    return public_key.verify(ipns_record_data_for_v2_sig(record.data), record.signature_v2)
