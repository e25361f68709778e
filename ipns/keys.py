"""
IPNS Signing Keys

libp2p-style public and private keys. Keys travel as a small protobuf message
``{Type = 1 (enum), Data = 2 (bytes)}``; that marshaled form is what peer ids
are derived from and what records embed in their pubKey field.

Ed25519 uses PyNaCl. RSA (RSASSA-PKCS1-v1_5 over SHA-256) uses cryptography.
"""

from abc import ABC, abstractmethod
from enum import IntEnum

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from .errors import StructuralDecodeError
from .wire import WIRE_LEN, WIRE_VARINT, encode_bytes_field, encode_varint_field, iter_fields


class KeyType(IntEnum):
    """libp2p key types."""
    RSA = 0
    Ed25519 = 1
    Secp256k1 = 2
    ECDSA = 3


def _marshal_key(key_type: KeyType, data: bytes) -> bytes:
    return encode_varint_field(1, int(key_type)) + encode_bytes_field(2, data)


def _unmarshal_key(buf: bytes):
    key_type = None
    data = None
    for field_number, wire_type, value in iter_fields(buf):
        if field_number == 1 and wire_type == WIRE_VARINT:
            key_type = value
        elif field_number == 2 and wire_type == WIRE_LEN:
            data = value
        else:
            raise StructuralDecodeError(f"unexpected field {field_number} in key message")
    if key_type is None or data is None:
        raise StructuralDecodeError("key message is missing Type or Data")
    try:
        return KeyType(key_type), data
    except ValueError:
        raise StructuralDecodeError(f"unknown key type {key_type}") from None


class PublicKey(ABC):
    """A key able to verify record signatures."""

    key_type: KeyType

    @property
    @abstractmethod
    def raw(self) -> bytes:
        """Key material carried in the Data field."""

    @abstractmethod
    def verify(self, data: bytes, signature: bytes) -> bool:
        """Return True when signature is valid for data; never raises."""

    def marshal(self) -> bytes:
        return _marshal_key(self.key_type, self.raw)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.marshal() == other.marshal()

    def __hash__(self) -> int:
        return hash(self.marshal())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.raw.hex()[:16]}...)"


class PrivateKey(ABC):
    """A key able to sign records."""

    key_type: KeyType

    @property
    @abstractmethod
    def raw(self) -> bytes:
        """Key material carried in the Data field."""

    @property
    @abstractmethod
    def public_key(self) -> PublicKey:
        """Matching public key."""

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Sign data, raising on failure."""

    def marshal(self) -> bytes:
        return _marshal_key(self.key_type, self.raw)


# ============================================================
# Ed25519
# ============================================================

class Ed25519PublicKey(PublicKey):
    key_type = KeyType.Ed25519

    def __init__(self, key_bytes: bytes):
        if len(key_bytes) != 32:
            raise StructuralDecodeError(f"Ed25519 public key must be 32 bytes, got {len(key_bytes)}")
        self._key = VerifyKey(bytes(key_bytes))

    @property
    def raw(self) -> bytes:
        return bytes(self._key)

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._key.verify(data, signature)
            return True
        except (CryptoError, ValueError, TypeError):
            return False


class Ed25519PrivateKey(PrivateKey):
    """Ed25519 private key; marshaled Data is seed || public key (64 bytes)."""

    key_type = KeyType.Ed25519

    def __init__(self, signing_key: SigningKey):
        self._key = signing_key
        self._public = Ed25519PublicKey(bytes(signing_key.verify_key))

    @classmethod
    def generate(cls) -> "Ed25519PrivateKey":
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Ed25519PrivateKey":
        return cls(SigningKey(bytes(seed)))

    @property
    def raw(self) -> bytes:
        return bytes(self._key) + self._public.raw

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._public

    def sign(self, data: bytes) -> bytes:
        return self._key.sign(data).signature


# ============================================================
# RSA
# ============================================================

class RsaPublicKey(PublicKey):
    """RSA public key; marshaled Data is DER SubjectPublicKeyInfo."""

    key_type = KeyType.RSA

    def __init__(self, key: rsa.RSAPublicKey):
        self._key = key

    @classmethod
    def from_der(cls, der: bytes) -> "RsaPublicKey":
        try:
            key = serialization.load_der_public_key(bytes(der))
        except (ValueError, UnsupportedAlgorithm) as err:
            raise StructuralDecodeError("invalid RSA public key") from err
        if not isinstance(key, rsa.RSAPublicKey):
            raise StructuralDecodeError("key data is not an RSA public key")
        return cls(key)

    @property
    def raw(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        )

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
            return True
        except (InvalidSignature, ValueError, TypeError):
            return False


class RsaPrivateKey(PrivateKey):
    """RSA private key; marshaled Data is DER PKCS#1."""

    key_type = KeyType.RSA

    def __init__(self, key: rsa.RSAPrivateKey):
        self._key = key
        self._public = RsaPublicKey(key.public_key())

    @classmethod
    def generate(cls, bits: int = 2048) -> "RsaPrivateKey":
        return cls(rsa.generate_private_key(public_exponent=65537, key_size=bits))

    @classmethod
    def from_der(cls, der: bytes) -> "RsaPrivateKey":
        try:
            key = serialization.load_der_private_key(bytes(der), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            raise StructuralDecodeError("invalid RSA private key") from err
        if not isinstance(key, rsa.RSAPrivateKey):
            raise StructuralDecodeError("key data is not an RSA private key")
        return cls(key)

    @property
    def raw(self) -> bytes:
        return self._key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption()
        )

    @property
    def public_key(self) -> RsaPublicKey:
        return self._public

    def sign(self, data: bytes) -> bytes:
        return self._key.sign(data, padding.PKCS1v15(), hashes.SHA256())


# ============================================================
# Protobuf (un)marshaling
# ============================================================

def unmarshal_public_key(buf: bytes) -> PublicKey:
    """
    Decode a protobuf-encoded public key.

    Raises:
        StructuralDecodeError: if the message is malformed or the key type
            is not supported
    """
    key_type, data = _unmarshal_key(buf)
    if key_type == KeyType.Ed25519:
        return Ed25519PublicKey(data)
    if key_type == KeyType.RSA:
        return RsaPublicKey.from_der(data)
    raise StructuralDecodeError(f"unsupported key type {key_type.name}")


def unmarshal_private_key(buf: bytes) -> PrivateKey:
    """
    Decode a protobuf-encoded private key.

    Raises:
        StructuralDecodeError: if the message is malformed or the key type
            is not supported
    """
    key_type, data = _unmarshal_key(buf)
    if key_type == KeyType.Ed25519:
        if len(data) not in (32, 64):
            raise StructuralDecodeError(f"Ed25519 private key must be 32 or 64 bytes, got {len(data)}")
        key = Ed25519PrivateKey.from_seed(data[:32])
        if len(data) == 64 and data[32:] != key.public_key.raw:
            raise StructuralDecodeError("Ed25519 private key does not match its public half")
        return key
    if key_type == KeyType.RSA:
        return RsaPrivateKey.from_der(data)
    raise StructuralDecodeError(f"unsupported key type {key_type.name}")
