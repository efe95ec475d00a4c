"""Decoders for the X.509 v3 extension bodies the inspector understands.

Each decoder receives the content of the extnValue OCTET STRING. Any
MalformedDER raised here is absorbed by the mapper, which keeps the
extension as RawExtension instead.
"""

import ipaddress
import logging
from typing import Callable, Dict

from certinspector.asn1 import der, oids
from certinspector.asn1.decoders import (
    decode_bit_string,
    decode_boolean,
    decode_integer,
    decode_name,
    decode_octet_string,
    decode_oid,
    expect_universal,
    hex_colon,
    oid_from_bytes,
)
from certinspector.asn1.der import TLV, parse_tlv
from certinspector.common.errors import MalformedDER
from certinspector.x509.models import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    DistinguishedName,
    ExtendedKeyUsage,
    ExtensionValue,
    GeneralName,
    KeyUsage,
    SubjectAlternativeName,
    SubjectKeyIdentifier,
)


logger = logging.getLogger(__name__)

# RFC 5280 section 4.2.1.3, bit 0 first
KEY_USAGE_NAMES = (
    "Digital Signature",
    "Content Commitment",
    "Key Encipherment",
    "Data Encipherment",
    "Key Agreement",
    "Certificate Sign",
    "CRL Sign",
    "Encipher Only",
    "Decipher Only",
)


def decode_basic_constraints(node: TLV) -> BasicConstraints:
    expect_universal(node, der.SEQUENCE, "BasicConstraints SEQUENCE", constructed=True)
    ca = False
    path_length = None
    for child in node.children:
        if child.is_universal(der.BOOLEAN):
            ca = decode_boolean(child)
        elif child.is_universal(der.INTEGER):
            path_length = decode_integer(child)
            if path_length < 0:
                raise MalformedDER(child.offset, "negative pathLenConstraint")
        else:
            raise MalformedDER(child.offset, f"unexpected {child.describe()} in BasicConstraints")
    return BasicConstraints(ca=ca, path_length=path_length)


def decode_key_usage(node: TLV) -> KeyUsage:
    bits = decode_bit_string(node)
    usages = tuple(
        name for index, name in enumerate(KEY_USAGE_NAMES) if bits.is_set(index)
    )
    return KeyUsage(usages=usages)


def decode_extended_key_usage(node: TLV) -> ExtendedKeyUsage:
    expect_universal(node, der.SEQUENCE, "ExtKeyUsageSyntax SEQUENCE", constructed=True)
    if not node.children:
        raise MalformedDER(node.offset, "empty ExtKeyUsageSyntax")
    return ExtendedKeyUsage(
        purposes=tuple(oids.key_purpose_name(decode_oid(child)) for child in node.children)
    )


def _ascii(node: TLV) -> str:
    try:
        return node.payload.decode("ascii")
    except UnicodeDecodeError:
        raise MalformedDER(node.offset, "GeneralName string is not ASCII")


def _ip_address(node: TLV) -> str:
    data = node.payload
    if len(data) == 4:
        return str(ipaddress.IPv4Address(data))
    if len(data) == 16:
        return str(ipaddress.IPv6Address(data))
    # Address/mask pairs only occur in name constraints, but render them anyway.
    if len(data) == 8:
        return f"{ipaddress.IPv4Address(data[:4])}/{ipaddress.IPv4Address(data[4:])}"
    if len(data) == 32:
        return f"{ipaddress.IPv6Address(data[:16])}/{ipaddress.IPv6Address(data[16:])}"
    raise MalformedDER(node.offset, f"iPAddress of {len(data)} bytes")


def decode_general_name(node: TLV) -> GeneralName:
    """Decode one GeneralName CHOICE alternative (RFC 5280 section 4.2.1.6)."""
    if node.tag_class != der.TagClass.CONTEXT:
        raise MalformedDER(node.offset, f"expected GeneralName, found {node.describe()}")

    tag = node.tag_number
    if tag == 0:
        if not node.children:
            raise MalformedDER(node.offset, "empty otherName")
        return GeneralName("othername", decode_oid(node.children[0]))
    if tag == 1:
        return GeneralName("email", _ascii(node))
    if tag == 2:
        return GeneralName("DNS", _ascii(node))
    if tag == 3:
        return GeneralName("X400Name", node.payload.hex())
    if tag == 4:
        # directoryName is EXPLICIT: the Name SEQUENCE sits inside the [4] wrapper.
        if len(node.children) != 1:
            raise MalformedDER(node.offset, "directoryName must wrap exactly one Name")
        name = DistinguishedName.from_pairs(decode_name(node.children[0]))
        return GeneralName("DirName", str(name))
    if tag == 5:
        return GeneralName("EdiPartyName", node.payload.hex())
    if tag == 6:
        return GeneralName("URI", _ascii(node))
    if tag == 7:
        return GeneralName("IP Address", _ip_address(node))
    if tag == 8:
        return GeneralName("Registered ID", oid_from_bytes(node.payload, node.payload_offset))
    raise MalformedDER(node.offset, f"unknown GeneralName tag [{tag}]")


def decode_subject_alt_name(node: TLV) -> SubjectAlternativeName:
    expect_universal(node, der.SEQUENCE, "GeneralNames SEQUENCE", constructed=True)
    return SubjectAlternativeName(
        names=tuple(decode_general_name(child) for child in node.children)
    )


def decode_subject_key_identifier(node: TLV) -> SubjectKeyIdentifier:
    return SubjectKeyIdentifier(key_identifier=hex_colon(decode_octet_string(node)))


def decode_authority_key_identifier(node: TLV) -> AuthorityKeyIdentifier:
    expect_universal(node, der.SEQUENCE, "AuthorityKeyIdentifier SEQUENCE", constructed=True)
    for child in node.children:
        if child.is_context(0) and not child.constructed:
            return AuthorityKeyIdentifier(key_identifier=hex_colon(child.payload))
    return AuthorityKeyIdentifier()


DECODERS: Dict[str, Callable[[TLV], ExtensionValue]] = {
    oids.BASIC_CONSTRAINTS: decode_basic_constraints,
    oids.KEY_USAGE: decode_key_usage,
    oids.EXTENDED_KEY_USAGE: decode_extended_key_usage,
    oids.SUBJECT_ALT_NAME: decode_subject_alt_name,
    oids.SUBJECT_KEY_IDENTIFIER: decode_subject_key_identifier,
    oids.AUTHORITY_KEY_IDENTIFIER: decode_authority_key_identifier,
}


def is_known(oid: str) -> bool:
    return oid in DECODERS


def decode_extension_value(oid: str, content: bytes, base_offset: int, max_depth: int) -> ExtensionValue:
    """
    Re-parse an extnValue body and decode it.

    Args:
        oid: Extension OID (must be one of DECODERS)
        content: Bytes inside the extnValue OCTET STRING
        base_offset: Offset of content within the certificate
        max_depth: Nesting limit for the TLV reader

    Raises:
        MalformedDER: If the body does not match the extension's syntax
    """
    node = parse_tlv(content, base_offset=base_offset, max_depth=max_depth)
    logger.debug("Decoding %s extension", oids.extension_name(oid))
    return DECODERS[oid](node)
