"""
Envelope marshal / unmarshal tests.

Decoding is purely structural: it never checks signatures and it must keep
absent optional fields absent.
"""

import dataclasses
import unittest

from ipns import (
    Ed25519PrivateKey,
    IPNSRecord,
    PeerId,
    StructuralDecodeError,
    ValidityType,
    create,
    marshal,
    unmarshal,
)
from ipns.wire import encode_bytes_field, encode_varint_field

VALUE = "/ipfs/bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"


class TestRoundTrip(unittest.TestCase):

    def setUp(self):
        self.peer_id = PeerId.from_private_key(Ed25519PrivateKey.from_seed(b"\x03" * 32))

    def test_full_record(self):
        record = create(self.peer_id, VALUE, 5, 60_000)
        self.assertEqual(unmarshal(marshal(record)), record)

    def test_v2_only_record_keeps_v1_absent(self):
        record = create(self.peer_id, VALUE, 5, 60_000, v1_compatible=False)
        decoded = unmarshal(marshal(record))

        self.assertIsNone(decoded.signature_v1)
        self.assertIsNone(decoded.pub_key)
        self.assertEqual(decoded, record)

    def test_empty_record(self):
        self.assertEqual(marshal(IPNSRecord()), b"")
        self.assertEqual(unmarshal(b""), IPNSRecord())

    def test_present_but_empty_is_not_absent(self):
        record = IPNSRecord(value=b"", signature_v1=b"", ttl=0, sequence=0)
        decoded = unmarshal(marshal(record))

        self.assertEqual(decoded.value, b"")
        self.assertEqual(decoded.signature_v1, b"")
        self.assertEqual(decoded.ttl, 0)
        self.assertEqual(decoded.sequence, 0)
        self.assertIsNone(decoded.pub_key)
        self.assertIsNone(decoded.validity_type)

    def test_field_order(self):
        record = IPNSRecord(data=b"d", value=b"/v", sequence=1)
        self.assertEqual(
            marshal(record),
            encode_bytes_field(1, b"/v") + encode_varint_field(5, 1) + encode_bytes_field(9, b"d")
        )

    def test_validity_type_decoding(self):
        self.assertIs(unmarshal(encode_varint_field(3, 0)).validity_type, ValidityType.EOL)
        unknown = unmarshal(encode_varint_field(3, 4)).validity_type
        self.assertEqual(unknown, 4)
        self.assertNotIsInstance(unknown, ValidityType)

    def test_records_are_immutable(self):
        record = create(self.peer_id, VALUE, 1, 60_000)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            record.sequence = 2


class TestMalformedInput(unittest.TestCase):

    def setUp(self):
        peer_id = PeerId.from_private_key(Ed25519PrivateKey.from_seed(b"\x04" * 32))
        self.buf = marshal(create(peer_id, VALUE, 1, 60_000))

    def test_truncated(self):
        for cut in (1, 10, len(self.buf) - 1):
            with self.subTest(cut=cut):
                with self.assertRaises(StructuralDecodeError):
                    unmarshal(self.buf[:cut])

    def test_wrong_wire_type_for_bytes_field(self):
        with self.assertRaises(StructuralDecodeError):
            unmarshal(encode_varint_field(1, 7))

    def test_wrong_wire_type_for_varint_field(self):
        with self.assertRaises(StructuralDecodeError):
            unmarshal(encode_bytes_field(5, b"\x01"))

    def test_unknown_fields_skipped(self):
        buf = self.buf + encode_bytes_field(15, b"future") + encode_varint_field(16, 3)
        self.assertEqual(unmarshal(buf), unmarshal(self.buf))

    def test_last_occurrence_wins(self):
        buf = encode_varint_field(5, 1) + encode_varint_field(5, 9)
        self.assertEqual(unmarshal(buf).sequence, 9)

    def test_sequence_overflow(self):
        with self.assertRaises(StructuralDecodeError):
            unmarshal(b"\x28" + b"\xff" * 10 + b"\x01")


class TestAccessors(unittest.TestCase):

    def test_value_path_and_data(self):
        peer_id = PeerId.from_private_key(Ed25519PrivateKey.generate())
        record = create(peer_id, VALUE, 3, 60_000)

        self.assertEqual(record.value_path, VALUE)
        self.assertEqual(record.parsed_data().sequence, 3)
        self.assertIsNotNone(record.expires_at().tzinfo)
        self.assertTrue(record.has_v1_signature)

    def test_parsed_data_requires_data(self):
        with self.assertRaises(StructuralDecodeError):
            IPNSRecord(value=b"/x").parsed_data()


if __name__ == "__main__":
    unittest.main()
