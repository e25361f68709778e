"""
IPNS Record Reference Implementation

Version: 1.0.0
License: Apache 2.0

Signed, versioned records binding a peer id to a content path, with an
expiration deadline and a sequence number.

Records carry two signatures:
- V2 (required): over b"ipns-signature:" + the canonical CBOR data
- V1 (optional, legacy): over value + validity + validity type, emitted only
  in compatibility mode so older readers keep working

Usage:
    from ipns import (
        Ed25519PrivateKey,
        PeerId,
        create,
        marshal,
        ipns_validator,
        peer_id_to_routing_key,
    )

    peer_id = PeerId.from_private_key(Ed25519PrivateKey.generate())

    # Valid for one hour, sequence 1
    record = create(peer_id, "/ipfs/bafy...", 1, 60 * 60 * 1000)
    buf = marshal(record)

    # Any reader can validate with only the routing key and the bytes
    ipns_validator(peer_id_to_routing_key(peer_id), buf)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    ErrorCode,
    IPNSError,
    MissingPrivateKey,
    SignatureCreationFailed,
    StructuralDecodeError,
    MissingCurrentSignature,
    InvalidSignatureV2,
    FieldMismatch,
    UnsupportedValidityType,
    RecordExpired,
    PublicKeyMismatch,
    PublicKeyNotFound,
    InvalidValue,
    RecordTooLarge,
    InvalidRoutingKey,
)

# Keys and identifiers
from .keys import (
    KeyType,
    PublicKey,
    PrivateKey,
    Ed25519PublicKey,
    Ed25519PrivateKey,
    RsaPublicKey,
    RsaPrivateKey,
    unmarshal_public_key,
    unmarshal_private_key,
)
from .identity import CID, PeerId

# Canonical data
from .cbor_data import (
    ValidityType,
    IPNSRecordData,
    create_cbor_data,
    parse_cbor_data,
)

# Record and codec
from .record import IPNSRecord, marshal, unmarshal

# Signing
from .signing import (
    ipns_record_data_for_v1_sig,
    ipns_record_data_for_v2_sig,
    sign_legacy,
    sign_current,
    verify_legacy,
    verify_current,
)

# Key resolution
from .resolver import extract_public_key

# Building
from .builder import (
    create,
    create_with_expiration,
    create_async,
    create_with_expiration_async,
    normalize_value,
)

# Validation
from .validator import (
    validate,
    validate_record,
    validate_async,
    ipns_validator,
    ipns_validator_async,
)

# Keys for routing and storage
from .routing import (
    NAMESPACE,
    NAMESPACE_LENGTH,
    get_local_key,
    peer_id_to_routing_key,
    peer_id_from_routing_key,
)


__all__ = [
    # Version
    "__version__",

    # Errors
    "ErrorCode",
    "IPNSError",
    "MissingPrivateKey",
    "SignatureCreationFailed",
    "StructuralDecodeError",
    "MissingCurrentSignature",
    "InvalidSignatureV2",
    "FieldMismatch",
    "UnsupportedValidityType",
    "RecordExpired",
    "PublicKeyMismatch",
    "PublicKeyNotFound",
    "InvalidValue",
    "RecordTooLarge",
    "InvalidRoutingKey",

    # Keys and identifiers
    "KeyType",
    "PublicKey",
    "PrivateKey",
    "Ed25519PublicKey",
    "Ed25519PrivateKey",
    "RsaPublicKey",
    "RsaPrivateKey",
    "unmarshal_public_key",
    "unmarshal_private_key",
    "CID",
    "PeerId",

    # Canonical data
    "ValidityType",
    "IPNSRecordData",
    "create_cbor_data",
    "parse_cbor_data",

    # Record
    "IPNSRecord",
    "marshal",
    "unmarshal",

    # Signing
    "ipns_record_data_for_v1_sig",
    "ipns_record_data_for_v2_sig",
    "sign_legacy",
    "sign_current",
    "verify_legacy",
    "verify_current",

    # Resolution
    "extract_public_key",

    # Building
    "create",
    "create_with_expiration",
    "create_async",
    "create_with_expiration_async",
    "normalize_value",

    # Validation
    "validate",
    "validate_record",
    "validate_async",
    "ipns_validator",
    "ipns_validator_async",

    # Routing
    "NAMESPACE",
    "NAMESPACE_LENGTH",
    "get_local_key",
    "peer_id_to_routing_key",
    "peer_id_from_routing_key",
]
