"""
IPNS Record Builder

Turns caller intent (target value, sequence, expiration, compatibility mode)
into a fully signed, immutable record.

The passed value can be a CID, a PeerId or a string path:

* CIDs are converted to v1 and stored as ``/ipfs/<cid>``
* PeerIds create recursive records, stored as ``/ipns/<cidv1 libp2p-key>``
* String paths are stored as-is but must start with ``/``; a bare CID string
  is treated like a CID
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Union

from . import config
from .cbor_data import MAX_UINT64, ValidityType, create_cbor_data
from .errors import InvalidValue, MissingPrivateKey, StructuralDecodeError
from .identity import CID, IDENTITY, PeerId, decode_multihash
from .record import IPNSRecord
from .signing import sign_current, sign_legacy
from .timestamps import NS_PER_MILLISECOND, datetime_to_ns, format_rfc3339_ns, now_ns, parse_rfc3339_ns

logger = logging.getLogger(__name__)

RecordValue = Union[CID, PeerId, str, bytes]


def normalize_value(value: Optional[RecordValue]) -> str:
    """
    Normalize a record value to a path starting with ``/``.

    Raises:
        InvalidValue: if the value is neither a CID, a PeerId nor a path
    """
    if isinstance(value, CID):
        return f"/ipfs/{value.to_v1()}"
    if isinstance(value, PeerId):
        return f"/ipns/{value.to_cid()}"

    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        if text is not None and text.startswith("/"):
            value = text
        else:
            try:
                return f"/ipfs/{CID.decode(raw).to_v1()}"
            except ValueError:
                raise InvalidValue() from None

    if isinstance(value, str):
        string = value.strip()
        if string.startswith("/") and len(string) > 1:
            return string
        try:
            return f"/ipfs/{CID.parse(string).to_v1()}"
        except ValueError:
            pass

    raise InvalidValue()


def _check_uint64(name: str, value: int) -> int:
    value = int(value)
    if value < 0 or value > MAX_UINT64:
        raise InvalidValue(f"{name} must be an unsigned 64-bit integer, got {value}")
    return value


def create(
    peer_id: PeerId,
    value: RecordValue,
    seq: int,
    lifetime_ms: int,
    *,
    v1_compatible: Optional[bool] = None,
    lifetime_ns: Optional[int] = None
) -> IPNSRecord:
    """
    Create a record valid for lifetime_ms milliseconds from now.

    Args:
        peer_id: Identifier holding the private key used for signing
        value: Content to point at (CID, PeerId or path)
        seq: Sequence number of this version of the record
        lifetime_ms: Validity period in milliseconds
        v1_compatible: Also emit the legacy V1 signature
            (default: IPNS_V1_COMPATIBLE, true unless configured otherwise)
        lifetime_ns: Advisory TTL in nanoseconds (default: IPNS_DEFAULT_TTL_NS)

    Returns:
        The signed record
    """
    expiration_ns = now_ns() + int(lifetime_ms) * NS_PER_MILLISECOND
    return _create(peer_id, value, seq, ValidityType.EOL, expiration_ns, lifetime_ns, v1_compatible)


def create_with_expiration(
    peer_id: PeerId,
    value: RecordValue,
    seq: int,
    expiration: Union[str, datetime],
    *,
    v1_compatible: Optional[bool] = None,
    lifetime_ns: Optional[int] = None
) -> IPNSRecord:
    """
    Same as create(), but with an absolute deadline.

    Args:
        expiration: RFC3339 timestamp (nanosecond precision allowed) or a
            timezone-aware datetime

    Raises:
        InvalidValue: if expiration cannot be parsed
    """
    if isinstance(expiration, datetime):
        try:
            expiration_ns = datetime_to_ns(expiration)
        except ValueError as err:
            raise InvalidValue(str(err)) from err
    else:
        try:
            expiration_ns = parse_rfc3339_ns(expiration)
        except StructuralDecodeError as err:
            raise InvalidValue(f"invalid expiration: {err.message}") from err
    return _create(peer_id, value, seq, ValidityType.EOL, expiration_ns, lifetime_ns, v1_compatible)


def _create(
    peer_id: PeerId,
    value: RecordValue,
    seq: int,
    validity_type: ValidityType,
    expiration_ns: int,
    ttl: Optional[int],
    v1_compatible: Optional[bool]
) -> IPNSRecord:
    seq = _check_uint64("sequence", seq)
    ttl = _check_uint64("ttl", config.default_ttl_ns() if ttl is None else ttl)
    if v1_compatible is None:
        v1_compatible = config.is_v1_compatible_default()

    encoded_value = normalize_value(value).encode("utf-8")
    try:
        validity = format_rfc3339_ns(expiration_ns).encode("ascii")
    except OverflowError as err:
        raise InvalidValue(f"expiration out of range: {err}") from err

    private_key = peer_id.private_key
    if private_key is None:
        raise MissingPrivateKey()

    data = create_cbor_data(encoded_value, validity, validity_type, seq, ttl)
    signature_v2 = sign_current(private_key, data)

    # Keys that cannot be recovered from the peer id travel with the record
    pub_key = None
    marshaled_key = (peer_id.public_key or private_key.public_key).marshal()
    code, digest = decode_multihash(peer_id.to_bytes())
    if code != IDENTITY or digest != marshaled_key:
        pub_key = marshaled_key

    signature_v1 = None
    if v1_compatible:
        signature_v1 = sign_legacy(private_key, encoded_value, validity_type, validity)

    logger.debug(
        "created record for %s seq=%d validity=%s v1=%s embedded_key=%s",
        peer_id, seq, validity.decode("ascii"), v1_compatible, pub_key is not None,
        extra={"extra_fields": {"peer_id": str(peer_id), "sequence": seq}}
    )

    return IPNSRecord(
        value=encoded_value,
        signature_v1=signature_v1,
        validity_type=validity_type,
        validity=validity,
        sequence=seq,
        ttl=ttl,
        pub_key=pub_key,
        signature_v2=signature_v2,
        data=data,
    )


async def create_async(*args, **kwargs) -> IPNSRecord:
    """create() in a worker thread."""
    return await asyncio.to_thread(create, *args, **kwargs)


async def create_with_expiration_async(*args, **kwargs) -> IPNSRecord:
    """create_with_expiration() in a worker thread."""
    return await asyncio.to_thread(create_with_expiration, *args, **kwargs)
