"""
Public key resolution for record validation.

Decides which key must have signed a record: the key embedded in the record
when there is one (it must hash to the peer id), otherwise the key inlined in
the peer id itself.
"""

import hashlib
import logging

from .errors import PublicKeyMismatch, PublicKeyNotFound
from .identity import IDENTITY, SHA2_256, PeerId, encode_multihash
from .keys import PublicKey, unmarshal_public_key
from .record import IPNSRecord

logger = logging.getLogger(__name__)


def _derives_peer_id(public_key: PublicKey, peer_id: PeerId) -> bool:
    """True when peer_id is the identity or sha2-256 multihash of public_key."""
    marshaled = public_key.marshal()
    return peer_id.to_bytes() in (
        encode_multihash(IDENTITY, marshaled),
        encode_multihash(SHA2_256, hashlib.sha256(marshaled).digest()),
    )


def extract_public_key(peer_id: PeerId, record: IPNSRecord) -> PublicKey:
    """
    Resolve the public key that must validate record.

    Args:
        peer_id: Identifier the record is published under
        record: Decoded record

    Returns:
        The verifying public key

    Raises:
        StructuralDecodeError: the embedded key is malformed
        PublicKeyMismatch: the embedded key does not belong to peer_id
        PublicKeyNotFound: neither the record nor the peer id yields a key
    """
    if record.pub_key is not None:
        public_key = unmarshal_public_key(record.pub_key)
        if not _derives_peer_id(public_key, peer_id):
            logger.debug("embedded public key does not match %s", peer_id)
            raise PublicKeyMismatch()
        return public_key

    public_key = peer_id.embedded_public_key()
    if public_key is not None:
        return public_key

    raise PublicKeyNotFound()
