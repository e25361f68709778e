#!/usr/bin/env python3
"""
IPNS Record Command Line Interface

Usage:
    ipns keygen [--type ed25519|rsa] [--output <file>]
    ipns create --key <file> --value <path> [--sequence N] [--lifetime MS | --expiration RFC3339]
    ipns validate --record <file> (--key <file> | --peer-id <id>)
    ipns inspect --record <file>
"""

import argparse
import base64
import json
import sys

from . import config
from .logging_config import configure_logging


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    """Save JSON to file."""
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def load_peer_id(path: str):
    """Load a key file written by `ipns keygen` as a signing PeerId."""
    from .identity import PeerId
    from .keys import unmarshal_private_key

    key_data = load_json(path)
    private_key = unmarshal_private_key(base64.b64decode(key_data["private_key"]))
    return PeerId.from_private_key(private_key)


def cmd_keygen(args):
    """Generate a signing key and its peer id."""
    from .identity import PeerId
    from .keys import Ed25519PrivateKey, RsaPrivateKey

    if args.type == "rsa":
        private_key = RsaPrivateKey.generate(args.bits)
    else:
        private_key = Ed25519PrivateKey.generate()
    peer_id = PeerId.from_private_key(private_key)

    key_data = {
        "type": private_key.key_type.name,
        "peer_id": str(peer_id),
        "name": str(peer_id.to_cid()),
        "ipns_name": peer_id.to_cid().to_base36(),
        "private_key": base64.b64encode(private_key.marshal()).decode('ascii'),
    }

    if args.output:
        save_json(key_data, args.output)
        print(f"Key saved to: {args.output}")
    else:
        print(json.dumps(key_data, indent=2))

    print(f"\nPeer ID: {peer_id}", file=sys.stderr)
    return 0


def cmd_create(args):
    """Create and sign a record."""
    from .builder import create, create_with_expiration
    from .errors import IPNSError
    from .record import marshal

    peer_id = load_peer_id(args.key)
    v1_compatible = False if args.no_v1 else None

    try:
        if args.expiration:
            record = create_with_expiration(
                peer_id, args.value, args.sequence, args.expiration,
                v1_compatible=v1_compatible, lifetime_ns=args.ttl
            )
        else:
            record = create(
                peer_id, args.value, args.sequence, args.lifetime,
                v1_compatible=v1_compatible, lifetime_ns=args.ttl
            )
    except IPNSError as err:
        print(f"✗ {err.code.value}: {err.message}", file=sys.stderr)
        return 1

    buf = marshal(record)
    if args.output:
        with open(args.output, 'wb') as f:
            f.write(buf)
        print(f"Record saved to: {args.output}")
    else:
        print(base64.b64encode(buf).decode('ascii'))

    print(f"\n✓ {record.value_path} (seq {record.sequence}, expires {record.validity.decode('ascii')})",
          file=sys.stderr)
    return 0


def cmd_validate(args):
    """Validate a record for a peer id."""
    from .errors import IPNSError
    from .identity import PeerId
    from .routing import peer_id_to_routing_key
    from .validator import ipns_validator

    if args.peer_id:
        try:
            peer_id = PeerId.parse(args.peer_id)
        except ValueError as err:
            print(f"✗ INVALID: peer id {args.peer_id!r}: {err}")
            return 1
    else:
        peer_id = load_peer_id(args.key)

    with open(args.record, 'rb') as f:
        buf = f.read()

    try:
        ipns_validator(peer_id_to_routing_key(peer_id), buf)
    except IPNSError as err:
        print(f"✗ INVALID: {err.code.value}: {err.message}")
        return 1

    print(f"✓ VALID for {peer_id}")
    return 0


def cmd_inspect(args):
    """Print the decoded fields of a record."""
    from .errors import IPNSError
    from .record import unmarshal

    with open(args.record, 'rb') as f:
        buf = f.read()

    try:
        record = unmarshal(buf)
    except IPNSError as err:
        print(f"✗ {err.code.value}: {err.message}", file=sys.stderr)
        return 1

    def b64(value):
        return None if value is None else base64.b64encode(value).decode('ascii')

    fields = {
        "value": None if record.value is None else record.value.decode('utf-8', 'replace'),
        "validity_type": None if record.validity_type is None else int(record.validity_type),
        "validity": None if record.validity is None else record.validity.decode('ascii', 'replace'),
        "sequence": record.sequence,
        "ttl": record.ttl,
        "signature_v1": b64(record.signature_v1),
        "signature_v2": b64(record.signature_v2),
        "pub_key": b64(record.pub_key),
        "data": b64(record.data),
    }
    print(json.dumps(fields, indent=2))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="ipns",
        description="Create, validate and inspect IPNS records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ipns keygen -o key.json
  ipns create -k key.json -V /ipfs/bafy... -s 1 -o record.bin
  ipns validate -k key.json -r record.bin
  ipns inspect -r record.bin
        """
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    parser.add_argument("--log-json", action="store_true", default=config.LOG_JSON,
                        help="Emit structured JSON logs")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate a signing key")
    keygen_parser.add_argument("-t", "--type", choices=["ed25519", "rsa"], default="ed25519",
                               help="Key type")
    keygen_parser.add_argument("-b", "--bits", type=int, default=2048, help="RSA key size")
    keygen_parser.add_argument("-o", "--output", help="Output file for the key")

    # create
    create_parser = subparsers.add_parser("create", help="Create a signed record")
    create_parser.add_argument("-k", "--key", required=True, help="Key file from keygen")
    create_parser.add_argument("-V", "--value", required=True, help="Path or CID to point at")
    create_parser.add_argument("-s", "--sequence", type=int, default=0, help="Sequence number")
    create_parser.add_argument("-l", "--lifetime", type=int, default=24 * 60 * 60 * 1000,
                               help="Lifetime in milliseconds")
    create_parser.add_argument("-e", "--expiration", help="Absolute RFC3339 expiration")
    create_parser.add_argument("--ttl", type=int, help="TTL in nanoseconds")
    create_parser.add_argument("--no-v1", action="store_true", help="Omit the legacy V1 signature")
    create_parser.add_argument("-o", "--output", help="Output file for the marshaled record")

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate a record")
    validate_parser.add_argument("-r", "--record", required=True, help="Marshaled record file")
    who = validate_parser.add_mutually_exclusive_group(required=True)
    who.add_argument("-k", "--key", help="Key file from keygen")
    who.add_argument("-p", "--peer-id", help="Peer id the record is published under")

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="Decode a record")
    inspect_parser.add_argument("-r", "--record", required=True, help="Marshaled record file")

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_format=args.log_json)

    if args.command == "keygen":
        return cmd_keygen(args)
    elif args.command == "create":
        return cmd_create(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "inspect":
        return cmd_inspect(args)
    else:
        parser.print_help()
        return 2


if __name__ == "__main__":
    sys.exit(main())
