"""
Record builder tests: value normalization, signatures, key embedding and
configuration defaults.
"""

import asyncio
import hashlib
import os
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from ipns import (
    CID,
    Ed25519PrivateKey,
    ErrorCode,
    InvalidValue,
    MissingPrivateKey,
    PeerId,
    RsaPrivateKey,
    SignatureCreationFailed,
    ValidityType,
    create,
    create_async,
    create_with_expiration,
    create_with_expiration_async,
    ipns_record_data_for_v1_sig,
    ipns_record_data_for_v2_sig,
    normalize_value,
    parse_cbor_data,
    verify_current,
    verify_legacy,
)
from ipns.identity import SHA2_256, encode_multihash
from ipns.timestamps import datetime_to_ns, parse_rfc3339_ns

EMPTY_DIR_V0 = "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn"
EMPTY_DIR_V1 = "bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"
VALUE = f"/ipfs/{EMPTY_DIR_V1}"
HOUR_MS = 60 * 60 * 1000


class TestNormalizeValue(unittest.TestCase):

    def test_path_kept(self):
        self.assertEqual(normalize_value("/ipfs/abc/readme.md"), "/ipfs/abc/readme.md")
        self.assertEqual(normalize_value("  /dns/example.com "), "/dns/example.com")
        self.assertEqual(normalize_value(b"/ipfs/abc"), "/ipfs/abc")

    def test_cid_object_converted_to_v1(self):
        self.assertEqual(normalize_value(CID.parse(EMPTY_DIR_V0)), VALUE)

    def test_cid_string_converted_to_v1(self):
        self.assertEqual(normalize_value(EMPTY_DIR_V0), VALUE)
        self.assertEqual(normalize_value(EMPTY_DIR_V1), VALUE)

    def test_cid_bytes(self):
        self.assertEqual(normalize_value(CID.parse(EMPTY_DIR_V1).to_bytes()), VALUE)

    def test_peer_id_becomes_recursive(self):
        peer_id = PeerId.from_private_key(Ed25519PrivateKey.from_seed(b"\x05" * 32))
        value = normalize_value(peer_id)
        self.assertEqual(value, f"/ipns/{peer_id.to_cid()}")
        self.assertTrue(value.startswith("/ipns/bafzaa"))

    def test_invalid_values(self):
        for bad in (None, "", "/", "ipfs/abc", "not a cid", b"\xff\xfe", 42):
            with self.subTest(value=bad):
                with self.assertRaises(InvalidValue) as ctx:
                    normalize_value(bad)
                self.assertEqual(ctx.exception.code, ErrorCode.INVALID_VALUE)


class TestCreate(unittest.TestCase):

    def setUp(self):
        self.key = Ed25519PrivateKey.from_seed(b"\x06" * 32)
        self.peer_id = PeerId.from_private_key(self.key)

    def test_example_record(self):
        """/ipfs/bafy..., sequence 1, one hour."""
        before = datetime.now(timezone.utc)
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        data = parse_cbor_data(record.data)

        self.assertEqual(data.value, VALUE.encode("utf-8"))
        self.assertEqual(data.sequence, 1)
        self.assertEqual(data.validity_type, ValidityType.EOL)

        deadline = parse_rfc3339_ns(data.validity)
        expected = datetime_to_ns(before + timedelta(hours=1))
        self.assertLess(abs(deadline - expected), 60 * 10**9)

    def test_plain_fields_duplicate_data(self):
        record = create(self.peer_id, VALUE, 9, HOUR_MS, lifetime_ns=5)
        data = parse_cbor_data(record.data)

        self.assertEqual(record.value, data.value)
        self.assertEqual(record.validity, data.validity)
        self.assertEqual(record.validity_type, data.validity_type)
        self.assertEqual(record.sequence, data.sequence)
        self.assertEqual(record.ttl, data.ttl)

    def test_validity_has_nanosecond_precision(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertRegex(record.validity.decode(), r"^\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{9}Z$")

    def test_default_ttl_is_one_hour(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertEqual(record.ttl, 3_600_000_000_000)

    def test_ttl_independent_of_deadline(self):
        short = create(self.peer_id, VALUE, 1, 1000, lifetime_ns=10**15)
        self.assertEqual(short.ttl, 10**15)
        self.assertEqual(parse_cbor_data(short.data).ttl, 10**15)

    def test_v1_compatible_by_default(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        public_key = self.key.public_key

        self.assertIsNotNone(record.signature_v1)
        self.assertIsNotNone(record.signature_v2)
        self.assertTrue(verify_current(public_key, record))
        self.assertTrue(verify_legacy(public_key, record))

    def test_legacy_framing(self):
        """A legacy-only checker verifies value || validity || "EOL"."""
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        payload = record.value + record.validity + b"EOL"

        self.assertEqual(ipns_record_data_for_v1_sig(record.value, ValidityType.EOL, record.validity), payload)
        self.assertTrue(self.key.public_key.verify(payload, record.signature_v1))

    def test_v2_payload_prefix(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        payload = b"ipns-signature:" + record.data

        self.assertEqual(ipns_record_data_for_v2_sig(record.data), payload)
        self.assertTrue(self.key.public_key.verify(payload, record.signature_v2))
        self.assertFalse(self.key.public_key.verify(record.data, record.signature_v2))

    def test_v2_only(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS, v1_compatible=False)
        self.assertIsNone(record.signature_v1)
        self.assertTrue(verify_current(self.key.public_key, record))
        self.assertFalse(verify_legacy(self.key.public_key, record))

    def test_self_describing_peer_id_does_not_embed_key(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertIsNone(record.pub_key)

    def test_hashed_ed25519_peer_id_embeds_key(self):
        marshaled = self.key.public_key.marshal()
        peer_id = PeerId(
            encode_multihash(SHA2_256, hashlib.sha256(marshaled).digest()),
            public_key=self.key.public_key,
            private_key=self.key,
        )
        record = create(peer_id, VALUE, 1, HOUR_MS)
        self.assertEqual(record.pub_key, marshaled)

    def test_missing_private_key(self):
        peer_id = PeerId.from_bytes(self.peer_id.to_bytes())
        with self.assertRaises(MissingPrivateKey) as ctx:
            create(peer_id, VALUE, 1, HOUR_MS)
        self.assertEqual(ctx.exception.code, ErrorCode.MISSING_PRIVATE_KEY)

    def test_invalid_value_rejected_before_signing(self):
        with self.assertRaises(InvalidValue):
            create(self.peer_id, "relative/path", 1, HOUR_MS)

    def test_sequence_range(self):
        create(self.peer_id, VALUE, 2**64 - 1, HOUR_MS)
        for bad in (-1, 2**64):
            with self.subTest(seq=bad):
                with self.assertRaises(InvalidValue):
                    create(self.peer_id, VALUE, bad, HOUR_MS)

    def test_deadline_out_of_range(self):
        for lifetime_ms in (10**16, -10**16):
            with self.subTest(lifetime_ms=lifetime_ms):
                with self.assertRaises(InvalidValue) as ctx:
                    create(self.peer_id, VALUE, 1, lifetime_ms)
                self.assertIsInstance(ctx.exception.__cause__, OverflowError)

    def test_creation_logged_with_fields(self):
        with self.assertLogs("ipns.builder", level="DEBUG") as logs:
            create(self.peer_id, VALUE, 5, HOUR_MS)
        self.assertEqual(
            logs.records[-1].extra_fields,
            {"peer_id": str(self.peer_id), "sequence": 5}
        )

    def test_signing_failure_wrapped(self):
        with mock.patch.object(Ed25519PrivateKey, "sign", side_effect=RuntimeError("hsm offline")):
            with self.assertRaises(SignatureCreationFailed) as ctx:
                create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_legacy_signing_failure_is_fatal(self):
        real_sign = Ed25519PrivateKey.sign

        def fail_on_legacy(key, data):
            if data.startswith(b"ipns-signature:"):
                return real_sign(key, data)
            raise RuntimeError("legacy signer broken")

        with mock.patch.object(Ed25519PrivateKey, "sign", fail_on_legacy):
            with self.assertRaises(SignatureCreationFailed):
                create(self.peer_id, VALUE, 1, HOUR_MS)
            record = create(self.peer_id, VALUE, 1, HOUR_MS, v1_compatible=False)
        self.assertIsNone(record.signature_v1)

    def test_configured_default_compatibility(self):
        with mock.patch.dict(os.environ, {"IPNS_V1_COMPATIBLE": "false"}):
            record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertIsNone(record.signature_v1)

    def test_configured_default_ttl(self):
        with mock.patch.dict(os.environ, {"IPNS_DEFAULT_TTL_NS": "42"}):
            record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertEqual(record.ttl, 42)


class TestCreateWithExpiration(unittest.TestCase):

    def setUp(self):
        self.peer_id = PeerId.from_private_key(Ed25519PrivateKey.from_seed(b"\x07" * 32))

    def test_nanoseconds_preserved(self):
        record = create_with_expiration(self.peer_id, VALUE, 1, "2033-05-18T03:33:20.123456789Z")
        self.assertEqual(record.validity, b"2033-05-18T03:33:20.123456789Z")
        self.assertEqual(parse_cbor_data(record.data).validity, record.validity)

    def test_normalized_to_utc(self):
        record = create_with_expiration(self.peer_id, VALUE, 1, "2033-05-18T05:33:20+02:00")
        self.assertEqual(record.validity, b"2033-05-18T03:33:20.000000000Z")

    def test_datetime_accepted(self):
        expiration = datetime(2033, 5, 18, 3, 33, 20, 500000, tzinfo=timezone.utc)
        record = create_with_expiration(self.peer_id, VALUE, 1, expiration)
        self.assertEqual(record.validity, b"2033-05-18T03:33:20.500000000Z")

    def test_invalid_expiration(self):
        for bad in ("next week", datetime(2033, 5, 18)):
            with self.subTest(expiration=bad):
                with self.assertRaises(InvalidValue):
                    create_with_expiration(self.peer_id, VALUE, 1, bad)


class TestRsaCreate(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.key = RsaPrivateKey.generate(2048)
        cls.peer_id = PeerId.from_private_key(cls.key)

    def test_embeds_public_key(self):
        record = create(self.peer_id, VALUE, 1, HOUR_MS)
        self.assertEqual(record.pub_key, self.key.public_key.marshal())
        self.assertTrue(verify_current(self.key.public_key, record))
        self.assertTrue(verify_legacy(self.key.public_key, record))


class TestAsync(unittest.TestCase):

    def test_create_in_worker_thread(self):
        peer_id = PeerId.from_private_key(Ed25519PrivateKey.generate())

        async def build():
            return await asyncio.gather(
                create_async(peer_id, VALUE, 1, HOUR_MS),
                create_with_expiration_async(peer_id, VALUE, 2, "2033-05-18T03:33:20Z", v1_compatible=False),
            )

        first, second = asyncio.run(build())
        self.assertEqual(first.sequence, 1)
        self.assertEqual(second.sequence, 2)
        self.assertIsNone(second.signature_v1)


if __name__ == "__main__":
    unittest.main()
