"""
Tests for the JSON export/import of inspected certificates.
"""
import ipaddress
import json
import unittest
from datetime import timedelta

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID
from pydantic import ValidationError

from certinspector.common.protocol import CertificateDocument, ExtensionDocument
from certinspector.inspector import export_as_json, import_from_json, parse_certificate, parse_certificate_der
from certinspector.x509.models import Extension, RawExtension

from cert_factory import (
    NOW,
    build_certificate,
    build_raw_certificate,
    ca_extensions,
    der_extension,
    get_key,
    make_name,
    to_pem,
)


class TestExportAsJSON(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cert = build_certificate(
            subject=make_name("json.test"),
            key_kind="p256",
            extensions=ca_extensions(path_length=0) + [
                (x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), False),
                (x509.SubjectAlternativeName([
                    x509.DNSName("json.test"),
                    x509.IPAddress(ipaddress.ip_address("192.0.2.7")),
                ]), False),
                (x509.SubjectKeyIdentifier.from_public_key(get_key("p256").public_key()), False),
            ],
        )
        cls.info = parse_certificate(to_pem(cert), now=NOW)
        cls.text = export_as_json(cls.info)
        cls.document = json.loads(cls.text)

    def test_field_names(self):
        for key in (
            "version", "serialNumber", "subject", "issuer", "validFrom", "validTo",
            "isExpired", "daysUntilExpiration", "publicKeyAlgorithm", "publicKeySize",
            "signatureAlgorithm", "subjectAlternativeNames", "keyUsage", "extendedKeyUsage",
            "isCA", "isSelfSigned", "sha1Fingerprint", "sha256Fingerprint",
        ):
            self.assertIn(key, self.document)
        self.assertNotIn("is_ca", self.document)

    def test_values(self):
        doc = self.document
        self.assertEqual(doc["version"], 3)
        self.assertEqual(doc["publicKeyAlgorithm"], "EC")
        self.assertEqual(doc["publicKeySize"], 256)
        self.assertEqual(doc["publicKeyCurve"], "prime256v1")
        self.assertTrue(doc["isCA"])
        self.assertTrue(doc["isSelfSigned"])
        self.assertFalse(doc["isExpired"])
        self.assertEqual(doc["daysUntilExpiration"], 365)
        self.assertEqual(doc["extendedKeyUsage"], ["TLS Web Server Authentication"])
        self.assertEqual(doc["subjectAlternativeNames"], [
            {"type": "DNS", "value": "json.test"},
            {"type": "IP Address", "value": "192.0.2.7"},
        ])
        self.assertEqual(doc["subject"][-1], {"type": "CN", "oid": "2.5.4.3", "value": "json.test"})
        self.assertEqual(doc["sha256Fingerprint"], self.info.sha256_fingerprint)

    def test_dates_are_iso_8601(self):
        self.assertTrue(self.document["validFrom"].startswith("2025-12-31T12:00:00"))
        self.assertTrue(self.document["validTo"].startswith("2027-01-01T12:00:00"))

    def test_extensions_are_listed(self):
        kinds = [(e["name"], e["kind"], e["critical"]) for e in self.document["extensions"]]
        self.assertEqual(kinds, [
            ("basicConstraints", "basicConstraints", True),
            ("keyUsage", "keyUsage", True),
            ("extKeyUsage", "extendedKeyUsage", False),
            ("subjectAltName", "subjectAltName", False),
            ("subjectKeyIdentifier", "subjectKeyIdentifier", False),
        ])
        self.assertEqual(self.document["extensions"][0]["pathLength"], 0)

    def test_round_trip(self):
        self.assertEqual(import_from_json(self.text), self.info)

    def test_deterministic(self):
        self.assertEqual(export_as_json(self.info), self.text)


class TestImportFromJSON(unittest.TestCase):

    def test_raw_extension_and_warnings_round_trip(self):
        info = parse_certificate_der(build_raw_certificate(
            serial=b"\xff\x01",
            extensions=[der_extension("1.2.3.4.5", b"\x04\x02hi", critical=True)],
        ), now=NOW)
        self.assertTrue(info.warnings)
        restored = import_from_json(export_as_json(info))
        self.assertEqual(restored, info)
        self.assertEqual(restored.extensions[0].value, RawExtension(b"\x04\x02hi"))

    def test_expired_round_trip(self):
        cert = build_certificate(not_before=NOW - timedelta(days=30), not_after=NOW - timedelta(days=1))
        info = parse_certificate(to_pem(cert), now=NOW)
        restored = import_from_json(export_as_json(info))
        self.assertTrue(restored.is_expired)
        self.assertIsNone(restored.days_until_expiration)
        self.assertIsNone(json.loads(export_as_json(info))["daysUntilExpiration"])

    def test_invalid_document(self):
        with self.assertRaises(ValidationError):
            import_from_json('{"version": 3}')
        with self.assertRaises(ValidationError):
            import_from_json("not json")

    def test_populate_by_field_name(self):
        doc = CertificateDocument.model_validate_json(export_as_json(
            parse_certificate_der(build_raw_certificate(), now=NOW)
        ))
        self.assertEqual(doc.serial_number, "01:02:03")
        self.assertFalse(doc.is_ca)


class TestExtensionDocument(unittest.TestCase):

    def test_raw_value_is_hex(self):
        doc = ExtensionDocument.from_extension(Extension("1.2.3", False, RawExtension(b"\x01\xab")))
        self.assertEqual(doc.kind, "raw")
        self.assertEqual(doc.value, "01ab")
        self.assertEqual(doc.name, "Unknown(1.2.3)")
        self.assertEqual(doc.to_extension().value, RawExtension(b"\x01\xab"))


if __name__ == '__main__':
    unittest.main()
