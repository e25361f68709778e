#!/usr/bin/env python3
"""
IPNS Record Example - Publish and Resolve Flow

This example publishes a name for an Ed25519 and an RSA identity, hands the
marshaled bytes to a "remote" validator keyed only by the routing key, and
shows how tampered and expired records are rejected.

Run with: python examples/publish_example.py
"""

import dataclasses
from datetime import datetime, timedelta, timezone

from ipns import (
    Ed25519PrivateKey,
    IPNSError,
    PeerId,
    RsaPrivateKey,
    create,
    get_local_key,
    ipns_validator,
    marshal,
    peer_id_to_routing_key,
    unmarshal,
)
from ipns.logging_config import configure_logging

CONTENT = "/ipfs/bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"
DAY_MS = 24 * 60 * 60 * 1000


def publish(peer_id: PeerId, sequence: int) -> bytes:
    """Build and marshal a record, as a publisher would before a DHT put."""
    record = create(peer_id, CONTENT, sequence, DAY_MS)
    buf = marshal(record)

    print(f"  name:        /ipns/{peer_id.to_cid()}")
    print(f"  local key:   {get_local_key(peer_id.to_bytes())}")
    print(f"  expires:     {record.validity.decode()}")
    print(f"  size:        {len(buf)} bytes")
    print(f"  key inlined: {record.pub_key is None}")
    return buf


def resolve(routing_key: bytes, buf: bytes, label: str, verification_time=None):
    """Validate a record as a DHT node would on receipt."""
    try:
        ipns_validator(routing_key, buf, verification_time=verification_time)
    except IPNSError as err:
        print(f"  ✗ {label}: {err.code.value} ({err.message})")
        return False
    print(f"  ✓ {label}: {unmarshal(buf).value_path}")
    return True


def main():
    configure_logging(level="WARNING")

    print("=" * 60)
    print("1. Ed25519 identity (public key inlined in the peer id)")
    print("=" * 60)
    ed_peer = PeerId.from_private_key(Ed25519PrivateKey.generate())
    ed_buf = publish(ed_peer, 1)
    ed_key = peer_id_to_routing_key(ed_peer)
    resolve(ed_key, ed_buf, "fresh record")

    print()
    print("=" * 60)
    print("2. RSA identity (public key embedded in the record)")
    print("=" * 60)
    rsa_peer = PeerId.from_private_key(RsaPrivateKey.generate())
    rsa_buf = publish(rsa_peer, 1)
    rsa_key = peer_id_to_routing_key(rsa_peer)
    resolve(rsa_key, rsa_buf, "fresh record")

    print()
    print("=" * 60)
    print("3. Rejections")
    print("=" * 60)
    tampered = marshal(dataclasses.replace(unmarshal(ed_buf), value=b"/ipfs/evil"))
    resolve(ed_key, tampered, "rewritten value")

    stripped = marshal(dataclasses.replace(unmarshal(rsa_buf), pub_key=None))
    resolve(rsa_key, stripped, "RSA record without its key")

    resolve(rsa_key, ed_buf, "record under the wrong name")

    later = datetime.now(timezone.utc) + timedelta(days=2)
    resolve(ed_key, ed_buf, "checked two days later", verification_time=later)


if __name__ == "__main__":
    main()
