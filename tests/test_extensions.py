"""
Tests for extension body decoders, classification and fingerprints.
"""
import hashlib
import unittest
from datetime import timedelta

from certinspector.asn1 import oids
from certinspector.asn1.der import parse_tlv
from certinspector.common.errors import MalformedDER
from certinspector.x509 import classifier
from certinspector.x509.extensions import (
    decode_authority_key_identifier,
    decode_basic_constraints,
    decode_extension_value,
    decode_general_name,
)
from certinspector.x509.fingerprint import sha1_fingerprint, sha256_fingerprint
from certinspector.x509.models import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    DistinguishedName,
    Extension,
    GeneralName,
    RawExtension,
)

from cert_factory import CN, NOW, O, der_bool, der_int, der_name, der_oid, seq, tlv


class TestGeneralName(unittest.TestCase):

    def decode(self, data):
        return decode_general_name(parse_tlv(data))

    def test_string_forms(self):
        self.assertEqual(self.decode(tlv(0x81, b"a@b.test")), GeneralName("email", "a@b.test"))
        self.assertEqual(self.decode(tlv(0x82, b"b.test")), GeneralName("DNS", "b.test"))
        self.assertEqual(self.decode(tlv(0x86, b"ldap://b.test")), GeneralName("URI", "ldap://b.test"))

    def test_ip_addresses(self):
        self.assertEqual(self.decode(tlv(0x87, bytes([127, 0, 0, 1]))).value, "127.0.0.1")
        self.assertEqual(self.decode(tlv(0x87, b"\x00" * 15 + b"\x01")).value, "::1")
        self.assertEqual(
            self.decode(tlv(0x87, bytes([10, 0, 0, 0, 255, 0, 0, 0]))).value,
            "10.0.0.0/255.0.0.0",
        )
        with self.assertRaises(MalformedDER):
            self.decode(tlv(0x87, b"\x01\x02\x03"))

    def test_directory_name(self):
        name = self.decode(tlv(0xA4, der_name(((O, "Org"), (CN, "dir")))))
        self.assertEqual(name, GeneralName("DirName", "O=Org, CN=dir"))

    def test_other_name(self):
        name = self.decode(tlv(0xA0, der_oid("1.3.6.1.4.1.311.20.2.3") + tlv(0xA0, tlv(0x0C, b"u@x"))))
        self.assertEqual(name, GeneralName("othername", "1.3.6.1.4.1.311.20.2.3"))

    def test_non_ascii_dns_name(self):
        with self.assertRaises(MalformedDER):
            self.decode(tlv(0x82, "bücher.test".encode("utf-8")))

    def test_not_context_tagged(self):
        with self.assertRaises(MalformedDER):
            self.decode(tlv(0x16, b"b.test"))


class TestExtensionBodies(unittest.TestCase):

    def test_basic_constraints(self):
        node = parse_tlv(seq(der_bool(True), der_int(3)))
        self.assertEqual(decode_basic_constraints(node), BasicConstraints(ca=True, path_length=3))

    def test_negative_path_length(self):
        with self.assertRaises(MalformedDER):
            decode_basic_constraints(parse_tlv(seq(der_bool(True), der_int(-1))))

    def test_authority_key_identifier(self):
        node = parse_tlv(seq(tlv(0x80, b"\x01\x02"), tlv(0x82, b"\x05")))
        self.assertEqual(decode_authority_key_identifier(node), AuthorityKeyIdentifier("01:02"))
        self.assertEqual(
            decode_authority_key_identifier(parse_tlv(seq(tlv(0x82, b"\x05")))),
            AuthorityKeyIdentifier(None),
        )

    def test_empty_extended_key_usage(self):
        with self.assertRaises(MalformedDER):
            decode_extension_value(oids.EXTENDED_KEY_USAGE, seq(), 0, 32)

    def test_error_offsets_are_absolute(self):
        with self.assertRaises(MalformedDER) as ctx:
            decode_extension_value(oids.SUBJECT_ALT_NAME, b"\x30\x05\x82\x01", 500, 32)
        self.assertEqual(ctx.exception.offset, 500)


class TestClassifier(unittest.TestCase):

    def test_is_ca_uses_decoded_basic_constraints(self):
        self.assertFalse(classifier.is_ca(()))
        raw = Extension(oids.BASIC_CONSTRAINTS, True, RawExtension(b"\x30\x03\x01\x01\xff"))
        self.assertFalse(classifier.is_ca((raw,)))
        ca = Extension(oids.BASIC_CONSTRAINTS, True, BasicConstraints(ca=True))
        self.assertTrue(classifier.is_ca((raw, ca)))

    def test_is_self_signed_is_order_sensitive(self):
        a = DistinguishedName.from_pairs(((O, "Org"), (CN, "x")))
        b = DistinguishedName.from_pairs(((CN, "x"), (O, "Org")))
        self.assertTrue(classifier.is_self_signed(a, a))
        self.assertFalse(classifier.is_self_signed(a, b))

    def test_expiration_status(self):
        self.assertEqual(classifier.expiration_status(NOW + timedelta(days=10, hours=5), NOW), (False, 10))
        self.assertEqual(classifier.expiration_status(NOW + timedelta(hours=5), NOW), (False, 0))
        self.assertEqual(classifier.expiration_status(NOW, NOW), (False, 0))
        self.assertEqual(classifier.expiration_status(NOW - timedelta(seconds=1), NOW), (True, None))


class TestFingerprint(unittest.TestCase):

    def test_matches_hashlib(self):
        data = b"\x30\x03\x02\x01\x00"
        self.assertEqual(sha1_fingerprint(data).replace(":", "").lower(), hashlib.sha1(data).hexdigest())
        self.assertEqual(sha256_fingerprint(data).replace(":", "").lower(), hashlib.sha256(data).hexdigest())

    def test_format(self):
        value = sha256_fingerprint(b"")
        self.assertEqual(len(value), 95)
        self.assertEqual(value, value.upper())


if __name__ == '__main__':
    unittest.main()
