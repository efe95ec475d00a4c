"""
Tests for the DER tag/length/value reader.
"""
import unittest

from certinspector.asn1.der import TagClass, parse_tlv, parse_tlv_sequence
from certinspector.common.errors import MalformedDER

from cert_factory import der_int, seq, tlv


class TestParseTLV(unittest.TestCase):
    """Structure and bounds checking of parse_tlv."""

    def test_primitive_short_form(self):
        node = parse_tlv(b"\x02\x01\x05")
        self.assertEqual(node.tag_class, TagClass.UNIVERSAL)
        self.assertFalse(node.constructed)
        self.assertEqual(node.tag_number, 2)
        self.assertEqual(node.payload, b"\x05")
        self.assertEqual(node.header_length, 2)
        self.assertEqual(node.children, ())

    def test_long_form_length(self):
        payload = b"\xab" * 300
        node = parse_tlv(tlv(0x04, payload))
        self.assertEqual(node.length, 300)
        self.assertEqual(node.header_length, 4)
        self.assertEqual(node.payload, payload)

    def test_nested_children_and_offsets(self):
        data = seq(der_int(1), seq(der_int(2), der_int(3)))
        root = parse_tlv(data)
        self.assertTrue(root.constructed)
        self.assertEqual(len(root.children), 2)
        inner = root.children[1]
        self.assertEqual([c.payload for c in inner.children], [b"\x02", b"\x03"])
        self.assertEqual(root.children[0].offset, 2)
        self.assertEqual(inner.offset, 5)
        self.assertEqual(inner.children[1].offset, 10)

    def test_context_and_private_classes(self):
        node = parse_tlv(b"\xa3\x03\x02\x01\x00")
        self.assertEqual(node.tag_class, TagClass.CONTEXT)
        self.assertTrue(node.is_context(3))
        node = parse_tlv(b"\xc1\x00")
        self.assertEqual(node.tag_class, TagClass.PRIVATE)

    def test_high_tag_number(self):
        node = parse_tlv(b"\x9f\x81\x00\x01\xff")
        self.assertEqual(node.tag_class, TagClass.CONTEXT)
        self.assertEqual(node.tag_number, 128)
        self.assertEqual(node.payload, b"\xff")

    def test_truncated_high_tag_number(self):
        with self.assertRaises(MalformedDER):
            parse_tlv(b"\x1f\x81")

    def test_declared_length_exceeds_buffer(self):
        with self.assertRaises(MalformedDER) as ctx:
            parse_tlv(b"\x04\x05abc")
        self.assertEqual(ctx.exception.offset, 0)
        self.assertIn("exceeds", ctx.exception.reason)

    def test_every_overlong_length_is_rejected(self):
        body = b"abcdef"
        for declared in range(len(body) + 1, 0x80):
            with self.assertRaises(MalformedDER):
                parse_tlv(bytes([0x04, declared]) + body)
        for declared in (0x100, 0xFFFF, 0xFFFFFF, 0xFFFFFFFF):
            encoded = declared.to_bytes((declared.bit_length() + 7) // 8, "big")
            with self.assertRaises(MalformedDER):
                parse_tlv(bytes([0x04, 0x80 | len(encoded)]) + encoded + body)

    def test_child_length_exceeding_parent_is_rejected(self):
        # Outer SEQUENCE is consistent, but its child claims more than the parent holds.
        data = b"\x30\x04\x04\x05ab" + b"cdef"
        with self.assertRaises(MalformedDER):
            parse_tlv(data)

    def test_indefinite_length_is_rejected(self):
        with self.assertRaises(MalformedDER) as ctx:
            parse_tlv(b"\x30\x80\x02\x01\x00\x00\x00")
        self.assertIn("indefinite", ctx.exception.reason)

    def test_more_than_four_length_octets_is_rejected(self):
        with self.assertRaises(MalformedDER):
            parse_tlv(b"\x04\x85\x00\x00\x00\x00\x01a")

    def test_truncated_length_octets(self):
        with self.assertRaises(MalformedDER):
            parse_tlv(b"\x04\x82\x01")

    def test_missing_length(self):
        with self.assertRaises(MalformedDER):
            parse_tlv(b"\x04")

    def test_trailing_bytes(self):
        with self.assertRaises(MalformedDER) as ctx:
            parse_tlv(b"\x05\x00\x00")
        self.assertEqual(ctx.exception.offset, 2)

    def test_empty_buffer(self):
        with self.assertRaises(MalformedDER):
            parse_tlv(b"")

    def test_nesting_limit(self):
        data = der_int(0)
        for _ in range(10):
            data = seq(data)
        self.assertEqual(parse_tlv(data, max_depth=10).tag_number, 16)
        with self.assertRaises(MalformedDER):
            parse_tlv(data, max_depth=5)

    def test_base_offset_is_reported(self):
        with self.assertRaises(MalformedDER) as ctx:
            parse_tlv(b"\x04\x09", base_offset=100)
        self.assertEqual(ctx.exception.offset, 100)

    def test_truncated_inputs_never_crash(self):
        data = seq(der_int(123456789), seq(tlv(0x04, b"x" * 200), der_int(-5)))
        for cut in range(len(data)):
            with self.assertRaises(MalformedDER):
                parse_tlv(data[:cut])


class TestParseTLVSequence(unittest.TestCase):

    def test_concatenated_elements(self):
        nodes = parse_tlv_sequence(der_int(1) + der_int(2) + b"\x05\x00")
        self.assertEqual([n.tag_number for n in nodes], [2, 2, 5])

    def test_empty(self):
        self.assertEqual(parse_tlv_sequence(b""), [])


if __name__ == '__main__':
    unittest.main()
