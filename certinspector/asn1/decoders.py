"""Primitive DER value decoders.

Each decoder takes a TLV node, checks its tag, and turns its payload into a
Python value. Malformed payloads raise MalformedDER pointing at the node.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Tuple

from certinspector.asn1 import der
from certinspector.asn1.der import TLV
from certinspector.common.errors import MalformedDER


def expect_universal(node: TLV, tag_number: int, what: str, constructed: bool = False) -> TLV:
    """Raise MalformedDER unless node is the given universal type."""
    if not node.is_universal(tag_number) or node.constructed != constructed:
        raise MalformedDER(node.offset, f"expected {what}, found {node.describe()}")
    return node


def decode_boolean(node: TLV) -> bool:
    expect_universal(node, der.BOOLEAN, "BOOLEAN")
    if node.length != 1:
        raise MalformedDER(node.offset, "BOOLEAN must be exactly one byte")
    return node.payload[0] != 0


def decode_null(node: TLV) -> None:
    expect_universal(node, der.NULL, "NULL")
    if node.length:
        raise MalformedDER(node.offset, "NULL must be empty")


def integer_bytes(node: TLV) -> bytes:
    """Raw big-endian two's complement content of an INTEGER."""
    expect_universal(node, der.INTEGER, "INTEGER")
    if not node.length:
        raise MalformedDER(node.offset, "INTEGER has no content")
    return node.payload


def decode_integer(node: TLV) -> int:
    return int.from_bytes(integer_bytes(node), "big", signed=True)


def unsigned_bit_length(content: bytes) -> int:
    """
    Bit length of an unsigned big-endian magnitude.

    A single leading 0x00 sign guard is stripped before measuring.
    """
    if len(content) > 1 and content[0] == 0:
        content = content[1:]
    return int.from_bytes(content, "big").bit_length()


def hex_colon(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in data)


@dataclass(frozen=True)
class BitString:
    """BIT STRING content: data bytes plus the unused-bit count of the last byte."""

    unused_bits: int
    data: bytes

    @property
    def bit_length(self) -> int:
        return len(self.data) * 8 - self.unused_bits

    def is_set(self, index: int) -> bool:
        """Named-bit test; bit 0 is the most significant bit of the first byte."""
        if index < 0 or index >= self.bit_length:
            return False
        return bool(self.data[index // 8] & (0x80 >> (index % 8)))

    def set_bits(self) -> Tuple[int, ...]:
        return tuple(i for i in range(self.bit_length) if self.is_set(i))


def decode_bit_string(node: TLV) -> BitString:
    expect_universal(node, der.BIT_STRING, "BIT STRING")
    payload = node.payload
    if not payload:
        raise MalformedDER(node.offset, "BIT STRING has no unused-bits octet")
    unused = payload[0]
    if unused > 7:
        raise MalformedDER(node.payload_offset, f"BIT STRING declares {unused} unused bits")
    if unused and len(payload) == 1:
        raise MalformedDER(node.payload_offset, "empty BIT STRING cannot have unused bits")
    return BitString(unused_bits=unused, data=payload[1:])


def decode_octet_string(node: TLV) -> bytes:
    expect_universal(node, der.OCTET_STRING, "OCTET STRING")
    return node.payload


def decode_oid(node: TLV) -> str:
    expect_universal(node, der.OBJECT_IDENTIFIER, "OBJECT IDENTIFIER")
    return oid_from_bytes(node.payload, node.payload_offset)


def oid_from_bytes(payload: bytes, offset: int = 0) -> str:
    """
    Decode OBJECT IDENTIFIER content octets into dotted-decimal form.

    The first sub-identifier packs the first two arcs as 40 * X + Y.
    """
    if not payload:
        raise MalformedDER(offset, "OBJECT IDENTIFIER has no content")
    if payload[-1] & 0x80:
        raise MalformedDER(offset + len(payload) - 1, "truncated OBJECT IDENTIFIER")

    subidentifiers = []
    value = 0
    fresh = True
    for index, octet in enumerate(payload):
        if fresh and octet == 0x80:
            raise MalformedDER(offset + index, "non-minimal OBJECT IDENTIFIER arc")
        value = (value << 7) | (octet & 0x7F)
        fresh = not octet & 0x80
        if fresh:
            subidentifiers.append(value)
            value = 0

    first = subidentifiers[0]
    if first < 80:
        arcs = [first // 40, first % 40]
    else:
        arcs = [2, first - 80]
    arcs.extend(subidentifiers[1:])
    return ".".join(str(arc) for arc in arcs)


_UTC_TIME = re.compile(r"^(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})?(Z|[+-]\d{4})$")
_GENERALIZED_TIME = re.compile(
    r"^(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})?(?:[.,](\d+))?(Z|[+-]\d{4})?$"
)


def _zone(suffix: str) -> timezone:
    if not suffix or suffix == "Z":
        return timezone.utc
    sign = 1 if suffix[0] == "+" else -1
    return timezone(sign * timedelta(hours=int(suffix[1:3]), minutes=int(suffix[3:5])))


def decode_time(node: TLV) -> datetime:
    """
    Decode UTCTime or GeneralizedTime into an aware UTC datetime.

    UTCTime years below 50 are 20xx, the rest 19xx.
    """
    if node.is_universal(der.UTC_TIME) and not node.constructed:
        pattern, kind = _UTC_TIME, "UTCTime"
    elif node.is_universal(der.GENERALIZED_TIME) and not node.constructed:
        pattern, kind = _GENERALIZED_TIME, "GeneralizedTime"
    else:
        raise MalformedDER(node.offset, f"expected UTCTime or GeneralizedTime, found {node.describe()}")

    try:
        text = node.payload.decode("ascii")
    except UnicodeDecodeError:
        raise MalformedDER(node.offset, f"{kind} is not ASCII")

    match = pattern.match(text)
    if not match:
        raise MalformedDER(node.offset, f"malformed {kind} {text!r}")

    if kind == "UTCTime":
        yy, month, day, hour, minute, second, zone = match.groups()
        year = int(yy)
        year += 2000 if year < 50 else 1900
        microsecond = 0
    else:
        year_text, month, day, hour, minute, second, fraction, zone = match.groups()
        year = int(year_text)
        microsecond = int((fraction or "0")[:6].ljust(6, "0"))

    try:
        moment = datetime(
            year, int(month), int(day), int(hour), int(minute), int(second or 0),
            microsecond, tzinfo=_zone(zone),
        )
        # Shifting to UTC can leave datetime's range at year 1 or 9999.
        return moment.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise MalformedDER(node.offset, f"invalid {kind} {text!r}: {e}")


_STRING_CODECS = {
    der.UTF8_STRING: "utf-8",
    der.NUMERIC_STRING: "ascii",
    der.PRINTABLE_STRING: "ascii",
    der.TELETEX_STRING: "latin-1",
    der.IA5_STRING: "ascii",
    der.VISIBLE_STRING: "ascii",
    der.UNIVERSAL_STRING: "utf-32-be",
    der.BMP_STRING: "utf-16-be",
}


def decode_string(node: TLV) -> str:
    """
    Decode any of the ASN.1 character string types.

    Values that are not a known string type, or that do not decode, are
    rendered as '#' followed by the hex of the whole encoding (RFC 4514).
    """
    codec = None
    if node.tag_class == der.TagClass.UNIVERSAL and not node.constructed:
        codec = _STRING_CODECS.get(node.tag_number)
    if codec is not None:
        try:
            return node.payload.decode(codec)
        except UnicodeDecodeError:
            pass
    return "#" + node.encoded.hex()


def decode_name(node: TLV) -> Tuple[Tuple[str, str], ...]:
    """
    Decode a Name (SEQUENCE OF SET OF AttributeTypeAndValue).

    Returns:
        (oid, value) pairs in the order they appear in the DER
    """
    expect_universal(node, der.SEQUENCE, "Name SEQUENCE", constructed=True)
    attributes = []
    for rdn in node.children:
        expect_universal(rdn, der.SET, "RelativeDistinguishedName SET", constructed=True)
        if not rdn.children:
            raise MalformedDER(rdn.offset, "empty RelativeDistinguishedName")
        for atv in rdn.children:
            expect_universal(atv, der.SEQUENCE, "AttributeTypeAndValue", constructed=True)
            if len(atv.children) != 2:
                raise MalformedDER(atv.offset, "AttributeTypeAndValue must have a type and a value")
            oid = decode_oid(atv.children[0])
            attributes.append((oid, decode_string(atv.children[1])))
    return tuple(attributes)
