"""
Routing and storage keys for IPNS records.

Routing keys (used on the DHT) are ``b"/ipns/"`` followed by the raw peer id
bytes. Local storage keys are ``/ipns/`` followed by the upper-case,
unpadded base32 form of the peer id bytes.
"""

import base64

from .errors import InvalidRoutingKey
from .identity import PeerId

NAMESPACE = "/ipns/"
NAMESPACE_BYTES = NAMESPACE.encode("ascii")
NAMESPACE_LENGTH = len(NAMESPACE)


def get_local_key(key: bytes) -> str:
    """Key for storing a record locally: /ipns/<BASE32(key)>."""
    return NAMESPACE + base64.b32encode(bytes(key)).decode("ascii").rstrip("=")


def peer_id_to_routing_key(peer_id: PeerId) -> bytes:
    return NAMESPACE_BYTES + peer_id.to_bytes()


def peer_id_from_routing_key(key: bytes) -> PeerId:
    """
    Recover the peer id from a routing key.

    Raises:
        InvalidRoutingKey: wrong namespace or an invalid peer id multihash
    """
    key = bytes(key)
    if not key.startswith(NAMESPACE_BYTES):
        raise InvalidRoutingKey("routing key does not start with /ipns/")
    try:
        return PeerId.from_bytes(key[NAMESPACE_LENGTH:])
    except ValueError as err:
        raise InvalidRoutingKey(f"invalid peer id in routing key: {err}") from err
