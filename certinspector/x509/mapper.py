"""Maps a DER TLV tree onto the X.509 Certificate / TBSCertificate grammar.

    Certificate  ::=  SEQUENCE  {
        tbsCertificate       TBSCertificate,
        signatureAlgorithm   AlgorithmIdentifier,
        signatureValue       BIT STRING  }

    TBSCertificate  ::=  SEQUENCE  {
        version         [0]  EXPLICIT Version DEFAULT v1,
        serialNumber         CertificateSerialNumber,
        signature            AlgorithmIdentifier,
        issuer               Name,
        validity             Validity,
        subject              Name,
        subjectPublicKeyInfo SubjectPublicKeyInfo,
        issuerUniqueID  [1]  IMPLICIT UniqueIdentifier OPTIONAL,
        subjectUniqueID [2]  IMPLICIT UniqueIdentifier OPTIONAL,
        extensions      [3]  EXPLICIT Extensions OPTIONAL  }

Grammar violations raise MalformedDER. Problems inside an extension body or
inside the subject public key are recorded as warnings and parsing goes on.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from certinspector.asn1 import der, oids
from certinspector.asn1.decoders import (
    decode_bit_string,
    decode_boolean,
    decode_integer,
    decode_name,
    decode_octet_string,
    decode_oid,
    decode_time,
    expect_universal,
    hex_colon,
    integer_bytes,
    unsigned_bit_length,
)
from certinspector.asn1.der import TLV, parse_tlv
from certinspector.common.errors import MalformedDER, UnsupportedVersion
from certinspector.x509 import extensions as ext_decoders
from certinspector.x509.models import (
    DistinguishedName,
    Extension,
    PublicKeyInfo,
    RawExtension,
    Validity,
)


logger = logging.getLogger(__name__)

MAX_SERIAL_OCTETS = 20


@dataclass(frozen=True)
class MappedCertificate:
    """Grammar-level content of a certificate, before classification."""

    version: int
    serial_number: str
    signature_algorithm: str
    issuer: DistinguishedName
    validity: Validity
    subject: DistinguishedName
    public_key: PublicKeyInfo
    extensions: Tuple[Extension, ...]
    warnings: Tuple[str, ...]


class _Fields:
    """Cursor over the children of a constructed node."""

    def __init__(self, node: TLV, what: str):
        self.node = node
        self.what = what
        self.children = node.children
        self.index = 0

    def peek(self) -> Optional[TLV]:
        if self.index < len(self.children):
            return self.children[self.index]
        return None

    def take(self, field_name: str) -> TLV:
        child = self.peek()
        if child is None:
            end = self.node.offset + len(self.node.encoded)
            raise MalformedDER(end, f"{self.what} is truncated: missing {field_name}")
        self.index += 1
        return child

    def finish(self):
        extra = self.peek()
        if extra is not None:
            raise MalformedDER(extra.offset, f"unexpected {extra.describe()} in {self.what}")


def _algorithm_identifier(node: TLV, what: str) -> Tuple[str, Optional[TLV]]:
    expect_universal(node, der.SEQUENCE, f"{what} AlgorithmIdentifier", constructed=True)
    fields = _Fields(node, f"{what} AlgorithmIdentifier")
    oid = decode_oid(fields.take("algorithm"))
    params = fields.peek()
    if params is not None:
        fields.take("parameters")
    fields.finish()
    return oid, params


def _version(fields: _Fields) -> int:
    first = fields.peek()
    if first is None or not first.is_context(0):
        return 1
    fields.take("version")
    if not first.constructed or len(first.children) != 1:
        raise MalformedDER(first.offset, "version must be an EXPLICIT [0] INTEGER")
    raw = decode_integer(first.children[0])
    if raw not in (0, 1, 2):
        raise UnsupportedVersion(raw + 1)
    return raw + 1


def _validity(node: TLV) -> Validity:
    expect_universal(node, der.SEQUENCE, "Validity SEQUENCE", constructed=True)
    fields = _Fields(node, "Validity")
    not_before = decode_time(fields.take("notBefore"))
    not_after = decode_time(fields.take("notAfter"))
    fields.finish()
    return Validity(not_before=not_before, not_after=not_after)


def _rsa_modulus_bits(key_bits, key_offset: int, max_depth: int) -> int:
    """RSAPublicKey ::= SEQUENCE { modulus INTEGER, publicExponent INTEGER }"""
    if key_bits.unused_bits:
        raise MalformedDER(key_offset, "RSA key BIT STRING has unused bits")
    key = parse_tlv(key_bits.data, base_offset=key_offset + 1, max_depth=max_depth)
    expect_universal(key, der.SEQUENCE, "RSAPublicKey SEQUENCE", constructed=True)
    fields = _Fields(key, "RSAPublicKey")
    modulus = integer_bytes(fields.take("modulus"))
    decode_integer(fields.take("publicExponent"))
    fields.finish()
    return unsigned_bit_length(modulus)


def _public_key(node: TLV, warnings: List[str], max_depth: int) -> PublicKeyInfo:
    expect_universal(node, der.SEQUENCE, "SubjectPublicKeyInfo SEQUENCE", constructed=True)
    fields = _Fields(node, "SubjectPublicKeyInfo")
    oid, params = _algorithm_identifier(fields.take("algorithm"), "subjectPublicKey")
    key_node = fields.take("subjectPublicKey")
    key_bits = decode_bit_string(key_node)
    fields.finish()

    algorithm = oids.KEY_ALGORITHMS.get(oid) or oids.unknown(oid)

    if oid in (oids.RSA_ENCRYPTION, oids.RSASSA_PSS):
        try:
            size = _rsa_modulus_bits(key_bits, key_node.payload_offset, max_depth)
        except MalformedDER as e:
            logger.warning("Could not read RSA public key: %s", e)
            warnings.append(f"RSA public key could not be decoded: {e}")
            size = None
        return PublicKeyInfo(algorithm=algorithm, algorithm_oid=oid, key_size_bits=size)

    if oid == oids.EC_PUBLIC_KEY:
        if params is None or not params.is_universal(der.OBJECT_IDENTIFIER):
            warnings.append("EC public key does not use a named curve")
            return PublicKeyInfo(algorithm=algorithm, algorithm_oid=oid)
        curve_oid = decode_oid(params)
        curve = oids.NAMED_CURVES.get(curve_oid)
        if curve is None:
            warnings.append(f"EC public key uses unrecognized curve {curve_oid}")
            return PublicKeyInfo(
                algorithm=algorithm, algorithm_oid=oid, curve_name=oids.unknown(curve_oid)
            )
        return PublicKeyInfo(
            algorithm=algorithm, algorithm_oid=oid, key_size_bits=curve[1], curve_name=curve[0]
        )

    if oid in oids.FIXED_KEY_SIZES:
        return PublicKeyInfo(
            algorithm=algorithm, algorithm_oid=oid, key_size_bits=oids.FIXED_KEY_SIZES[oid]
        )

    if algorithm == "DSA" and params is not None and params.children:
        # Dss-Parms ::= SEQUENCE { p, q, g }; size is that of p.
        try:
            size = unsigned_bit_length(integer_bytes(params.children[0]))
        except MalformedDER as e:
            warnings.append(f"DSA parameters could not be decoded: {e}")
            size = None
        return PublicKeyInfo(algorithm=algorithm, algorithm_oid=oid, key_size_bits=size)

    return PublicKeyInfo(algorithm=algorithm, algorithm_oid=oid)


def _extension(node: TLV, warnings: List[str], max_depth: int) -> Extension:
    """Extension ::= SEQUENCE { extnID, critical BOOLEAN DEFAULT FALSE, extnValue OCTET STRING }"""
    expect_universal(node, der.SEQUENCE, "Extension SEQUENCE", constructed=True)
    fields = _Fields(node, "Extension")
    oid = decode_oid(fields.take("extnID"))
    critical = False
    nxt = fields.peek()
    if nxt is not None and nxt.is_universal(der.BOOLEAN):
        critical = decode_boolean(fields.take("critical"))
    value_node = fields.take("extnValue")
    content = decode_octet_string(value_node)
    fields.finish()

    name = oids.extension_name(oid)
    if not ext_decoders.is_known(oid):
        if critical:
            warnings.append(f"unrecognized critical extension {name}")
        return Extension(oid=oid, critical=critical, value=RawExtension(content))

    try:
        value = ext_decoders.decode_extension_value(
            oid, content, value_node.payload_offset, max_depth
        )
    except MalformedDER as e:
        logger.warning("Keeping %s extension as raw bytes: %s", name, e)
        warnings.append(f"{name} extension could not be decoded: {e}")
        value = RawExtension(content)
    return Extension(oid=oid, critical=critical, value=value)


def _extensions(node: TLV, warnings: List[str], max_depth: int) -> Tuple[Extension, ...]:
    if not node.constructed or len(node.children) != 1:
        raise MalformedDER(node.offset, "extensions must be an EXPLICIT [3] SEQUENCE")
    sequence = expect_universal(
        node.children[0], der.SEQUENCE, "Extensions SEQUENCE", constructed=True
    )
    result = []
    seen = set()
    for child in sequence.children:
        extension = _extension(child, warnings, max_depth)
        if extension.oid in seen:
            warnings.append(f"duplicate {extension.name} extension")
        seen.add(extension.oid)
        result.append(extension)
    return tuple(result)


def map_certificate(root: TLV, max_depth: int = der.DEFAULT_MAX_DEPTH) -> MappedCertificate:
    """
    Apply the X.509 grammar to a parsed TLV tree.

    Args:
        root: TLV tree of the whole certificate
        max_depth: Nesting limit used when re-parsing nested DER

    Returns:
        Mapped certificate fields plus non-fatal warnings

    Raises:
        MalformedDER: If a mandatory field is missing or mistyped
        UnsupportedVersion: If the version is not v1, v2 or v3
    """
    warnings: List[str] = []

    expect_universal(root, der.SEQUENCE, "Certificate SEQUENCE", constructed=True)
    cert = _Fields(root, "Certificate")
    tbs_node = cert.take("tbsCertificate")
    outer_sig_oid, _ = _algorithm_identifier(cert.take("signatureAlgorithm"), "signatureAlgorithm")
    decode_bit_string(cert.take("signatureValue"))
    cert.finish()

    expect_universal(tbs_node, der.SEQUENCE, "TBSCertificate SEQUENCE", constructed=True)
    tbs = _Fields(tbs_node, "TBSCertificate")

    version = _version(tbs)

    serial = integer_bytes(tbs.take("serialNumber"))
    if len(serial) > MAX_SERIAL_OCTETS:
        warnings.append(f"serial number is {len(serial)} octets (RFC 5280 allows {MAX_SERIAL_OCTETS})")
    if serial[0] & 0x80:
        warnings.append("serial number is negative")

    inner_sig_oid, _ = _algorithm_identifier(tbs.take("signature"), "signature")
    if inner_sig_oid != outer_sig_oid:
        warnings.append(
            "signature algorithm mismatch: TBSCertificate says "
            f"{oids.signature_algorithm_name(inner_sig_oid)}, certificate says "
            f"{oids.signature_algorithm_name(outer_sig_oid)}"
        )

    issuer = DistinguishedName.from_pairs(decode_name(tbs.take("issuer")))
    validity = _validity(tbs.take("validity"))
    subject = DistinguishedName.from_pairs(decode_name(tbs.take("subject")))
    public_key = _public_key(tbs.take("subjectPublicKeyInfo"), warnings, max_depth)

    extensions: Tuple[Extension, ...] = ()
    last_tag = 0
    while tbs.peek() is not None:
        node = tbs.peek()
        if node.tag_class != der.TagClass.CONTEXT or node.tag_number not in (1, 2, 3) \
                or node.tag_number <= last_tag:
            raise MalformedDER(node.offset, f"unexpected {node.describe()} in TBSCertificate")
        tbs.take("optional field")
        last_tag = node.tag_number
        if node.tag_number == 3:
            extensions = _extensions(node, warnings, max_depth)
            if version != 3:
                warnings.append(f"extensions present in a version {version} certificate")
        elif version == 1:
            warnings.append("unique identifier present in a version 1 certificate")

    logger.debug(
        "Mapped v%d certificate with %d extensions and %d warnings",
        version, len(extensions), len(warnings),
    )
    return MappedCertificate(
        version=version,
        serial_number=hex_colon(serial),
        signature_algorithm=oids.signature_algorithm_name(outer_sig_oid),
        issuer=issuer,
        validity=validity,
        subject=subject,
        public_key=public_key,
        extensions=extensions,
        warnings=tuple(warnings),
    )
