"""
Identifiers: multihashes, content identifiers (CIDs) and peer ids.

Records are keyed by a peer id (the multihash of a marshaled public key) and
usually point at a CID. Only the small part of the multiformats family that
IPNS needs is implemented here: identity and sha2-256 multihashes, CID v0/v1
in base58btc, base32 and base36, and peer ids in their legacy base58 and CIDv1
libp2p-key forms.
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import StructuralDecodeError
from .keys import PrivateKey, PublicKey, unmarshal_public_key
from .wire import read_uvarint, write_uvarint

# Multihash codes
IDENTITY = 0x00
SHA2_256 = 0x12

# Multicodecs
RAW = 0x55
DAG_PB = 0x70
DAG_CBOR = 0x71
LIBP2P_KEY = 0x72

# Keys whose marshaled form is at most this long are inlined into the peer id
MAX_INLINE_KEY_LENGTH = 42

B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {c: i for i, c in enumerate(B58_ALPHABET)}


# -----------------------------------------------------------------------------
# Bases
# -----------------------------------------------------------------------------

def b58_encode(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    encoded = ""
    while value > 0:
        value, mod = divmod(value, 58)
        encoded = B58_ALPHABET[mod] + encoded
    # Leading zero bytes become "1" characters
    padding = 0
    for byte in data:
        if byte == 0:
            padding += 1
        else:
            break
    return "1" * padding + encoded


def b58_decode(text: str) -> bytes:
    value = 0
    for char in text:
        if char not in _B58_INDEX:
            raise ValueError(f"invalid base58 character {char!r}")
        value = value * 58 + _B58_INDEX[char]
    padding = len(text) - len(text.lstrip("1"))
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    return b"\x00" * padding + body


B36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def b36_encode(data: bytes) -> str:
    """Multibase base36, lower case; leading zero bytes become "0"."""
    value = int.from_bytes(data, "big")
    encoded = ""
    while value > 0:
        value, mod = divmod(value, 36)
        encoded = B36_ALPHABET[mod] + encoded
    padding = len(data) - len(data.lstrip(b"\x00"))
    return "0" * padding + encoded


def b36_decode(text: str) -> bytes:
    value = 0
    for char in text.lower():
        index = B36_ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"invalid base36 character {char!r}")
        value = value * 36 + index
    padding = len(text) - len(text.lstrip("0"))
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    return b"\x00" * padding + body


def b32_encode(data: bytes) -> str:
    """RFC4648 base32, lower case, no padding."""
    return base64.b32encode(data).decode("ascii").lower().rstrip("=")


def b32_decode(text: str) -> bytes:
    padded = text.upper() + "=" * (-len(text) % 8)
    try:
        return base64.b32decode(padded)
    except (ValueError, TypeError) as err:
        raise ValueError(f"invalid base32 string {text!r}") from err


# -----------------------------------------------------------------------------
# Multihash
# -----------------------------------------------------------------------------

def encode_multihash(code: int, digest: bytes) -> bytes:
    return write_uvarint(code) + write_uvarint(len(digest)) + bytes(digest)


def decode_multihash(buf: bytes) -> Tuple[int, bytes]:
    """Split a multihash into (code, digest), requiring an exact length."""
    try:
        code, offset = read_uvarint(buf, 0)
        length, offset = read_uvarint(buf, offset)
    except StructuralDecodeError as err:
        raise ValueError(f"invalid multihash: {err}") from err
    digest = bytes(buf[offset:])
    if len(digest) != length:
        raise ValueError(f"multihash length mismatch: declared {length}, got {len(digest)}")
    return code, digest


# -----------------------------------------------------------------------------
# CID
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class CID:
    """A content identifier."""
    version: int
    codec: int
    multihash: bytes

    def __post_init__(self):
        if self.version not in (0, 1):
            raise ValueError(f"unsupported CID version {self.version}")
        if self.version == 0 and self.codec != DAG_PB:
            raise ValueError("CIDv0 must use the dag-pb codec")
        decode_multihash(self.multihash)

    @classmethod
    def decode(cls, buf: bytes) -> "CID":
        """Decode the binary form of a CID."""
        buf = bytes(buf)
        if len(buf) == 34 and buf[0] == SHA2_256 and buf[1] == 32:
            return cls(0, DAG_PB, buf)
        try:
            version, offset = read_uvarint(buf, 0)
            codec, offset = read_uvarint(buf, offset)
        except StructuralDecodeError as err:
            raise ValueError(f"invalid CID bytes: {err}") from err
        return cls(version, codec, buf[offset:])

    @classmethod
    def parse(cls, text: str) -> "CID":
        """Parse a CID string (base58btc CIDv0, or multibase-prefixed CIDv1)."""
        if len(text) == 46 and text.startswith("Qm"):
            return cls.decode(b58_decode(text))
        if not text:
            raise ValueError("empty CID string")
        prefix, body = text[0], text[1:]
        if prefix in ("b", "B"):
            raw = b32_decode(body)
        elif prefix == "z":
            raw = b58_decode(body)
        elif prefix in ("k", "K"):
            raw = b36_decode(body)
        else:
            raise ValueError(f"unsupported multibase prefix {prefix!r}")
        cid = cls.decode(raw)
        if cid.version != 1:
            raise ValueError("multibase-encoded CID must be version 1")
        return cid

    def to_bytes(self) -> bytes:
        if self.version == 0:
            return self.multihash
        return write_uvarint(self.version) + write_uvarint(self.codec) + self.multihash

    def to_base36(self) -> str:
        """Multibase base36 form, as IPNS names are usually printed."""
        return "k" + b36_encode(self.to_v1().to_bytes())

    def to_v1(self) -> "CID":
        if self.version == 1:
            return self
        return CID(1, self.codec, self.multihash)

    def __str__(self) -> str:
        if self.version == 0:
            return b58_encode(self.multihash)
        return "b" + b32_encode(self.to_bytes())


# -----------------------------------------------------------------------------
# PeerId
# -----------------------------------------------------------------------------

class PeerId:
    """
    A peer identifier: the multihash of a marshaled public key.

    Small keys (Ed25519) are inlined with the identity hash, which makes the
    peer id self-describing. Larger keys (RSA) are hashed with sha2-256, so
    the public key must travel separately.

    A PeerId may additionally hold the public key and, for the local node,
    the private key used to sign records.
    """

    def __init__(
        self,
        multihash: bytes,
        public_key: Optional[PublicKey] = None,
        private_key: Optional[PrivateKey] = None
    ):
        code, digest = decode_multihash(multihash)
        if code not in (IDENTITY, SHA2_256):
            raise ValueError(f"unsupported peer id multihash code 0x{code:x}")
        self._multihash = bytes(multihash)
        self._code = code
        self._digest = digest

        if public_key is None and code == IDENTITY:
            try:
                public_key = unmarshal_public_key(digest)
            except StructuralDecodeError as err:
                raise ValueError(f"identity peer id does not embed a valid key: {err}") from err
        self._public_key = public_key
        self._private_key = private_key

    @classmethod
    def from_public_key(cls, public_key: PublicKey) -> "PeerId":
        marshaled = public_key.marshal()
        if len(marshaled) <= MAX_INLINE_KEY_LENGTH:
            multihash = encode_multihash(IDENTITY, marshaled)
        else:
            multihash = encode_multihash(SHA2_256, hashlib.sha256(marshaled).digest())
        return cls(multihash, public_key=public_key)

    @classmethod
    def from_private_key(cls, private_key: PrivateKey) -> "PeerId":
        peer_id = cls.from_public_key(private_key.public_key)
        peer_id._private_key = private_key
        return peer_id

    @classmethod
    def from_bytes(cls, buf: bytes) -> "PeerId":
        return cls(bytes(buf))

    @classmethod
    def parse(cls, text: str) -> "PeerId":
        """Parse a base58 peer id or a CIDv1 with the libp2p-key codec."""
        if text.startswith(("1", "Q")):
            return cls(b58_decode(text))
        cid = CID.parse(text)
        if cid.codec != LIBP2P_KEY:
            raise ValueError(f"CID codec 0x{cid.codec:x} is not libp2p-key")
        return cls(cid.multihash)

    @property
    def public_key(self) -> Optional[PublicKey]:
        return self._public_key

    @property
    def private_key(self) -> Optional[PrivateKey]:
        return self._private_key

    @property
    def is_self_describing(self) -> bool:
        """True when the key is recoverable from the peer id bytes alone."""
        return self._code == IDENTITY

    def embedded_public_key(self) -> Optional[PublicKey]:
        """Public key decoded from the identifier bytes, if it inlines one."""
        if self._code != IDENTITY:
            return None
        return unmarshal_public_key(self._digest)

    def to_bytes(self) -> bytes:
        return self._multihash

    def to_cid(self) -> CID:
        return CID(1, LIBP2P_KEY, self._multihash)

    def __str__(self) -> str:
        return b58_encode(self._multihash)

    def __repr__(self) -> str:
        return f"PeerId({self})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PeerId):
            return NotImplemented
        return self._multihash == other._multihash

    def __hash__(self) -> int:
        return hash(self._multihash)
