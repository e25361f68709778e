"""
IPNS Record Errors

Every failure raised while building, decoding or validating a record is an
IPNSError subclass carrying a stable ErrorCode, so callers can branch on the
kind of failure without parsing messages.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Stable error codes for record failures."""
    MISSING_PRIVATE_KEY = "ERR_MISSING_PRIVATE_KEY"
    SIGNATURE_CREATION_FAILED = "ERR_SIGNATURE_CREATION"
    STRUCTURAL_DECODE = "ERR_INVALID_RECORD_DATA"
    MISSING_CURRENT_SIGNATURE = "ERR_MISSING_SIGNATURE_V2"
    INVALID_SIGNATURE_V2 = "ERR_SIGNATURE_VERIFICATION"
    FIELD_MISMATCH = "ERR_FIELD_MISMATCH"
    UNSUPPORTED_VALIDITY_TYPE = "ERR_UNRECOGNIZED_VALIDITY"
    RECORD_EXPIRED = "ERR_IPNS_EXPIRED_RECORD"
    PUBLIC_KEY_MISMATCH = "ERR_INVALID_EMBEDDED_KEY"
    PUBLIC_KEY_NOT_FOUND = "ERR_UNDEFINED_PARAMETER"
    INVALID_VALUE = "ERR_INVALID_VALUE"
    RECORD_TOO_LARGE = "ERR_RECORD_TOO_LARGE"
    INVALID_ROUTING_KEY = "ERR_INVALID_ROUTING_KEY"


class IPNSError(Exception):
    """Base class for all record errors."""

    code: ErrorCode = ErrorCode.STRUCTURAL_DECODE
    default_message = "IPNS record error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class MissingPrivateKey(IPNSError):
    code = ErrorCode.MISSING_PRIVATE_KEY
    default_message = "Missing private key"


class SignatureCreationFailed(IPNSError):
    code = ErrorCode.SIGNATURE_CREATION_FAILED
    default_message = "record signature creation failed"


class StructuralDecodeError(IPNSError):
    """Malformed envelope, canonical blob, key or timestamp."""
    code = ErrorCode.STRUCTURAL_DECODE
    default_message = "invalid record data"


class MissingCurrentSignature(IPNSError):
    code = ErrorCode.MISSING_CURRENT_SIGNATURE
    default_message = "missing signatureV2"


class InvalidSignatureV2(IPNSError):
    code = ErrorCode.INVALID_SIGNATURE_V2
    default_message = "record signature verification failed"


class FieldMismatch(IPNSError):
    code = ErrorCode.FIELD_MISMATCH
    default_message = "record fields do not match the signed data"


class UnsupportedValidityType(IPNSError):
    code = ErrorCode.UNSUPPORTED_VALIDITY_TYPE
    default_message = "unrecognized validity type"


class RecordExpired(IPNSError):
    code = ErrorCode.RECORD_EXPIRED
    default_message = "record has expired"


class PublicKeyMismatch(IPNSError):
    code = ErrorCode.PUBLIC_KEY_MISMATCH
    default_message = "Embedded public key did not match PeerID"


class PublicKeyNotFound(IPNSError):
    code = ErrorCode.PUBLIC_KEY_NOT_FOUND
    default_message = "no public key is available"


class InvalidValue(IPNSError):
    code = ErrorCode.INVALID_VALUE
    default_message = "Value must be a valid content path starting with /"


class RecordTooLarge(IPNSError):
    code = ErrorCode.RECORD_TOO_LARGE
    default_message = "record too large"


class InvalidRoutingKey(IPNSError):
    code = ErrorCode.INVALID_ROUTING_KEY
    default_message = "routing key is not a valid IPNS key"
