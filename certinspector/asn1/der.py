"""Bounds-checked DER tag/length/value reader.

The reader knows nothing about X.509. It turns a byte buffer into a tree of
TLV nodes; every node keeps its own copy of the bytes it covers and the
absolute offset where it starts, so error messages can point into the
original certificate even for structures re-parsed out of a BIT STRING.

Every length and tag read is checked against the end of the enclosing
value before any byte is touched.
"""

import enum
from dataclasses import dataclass
from typing import List, Tuple

from certinspector.common.errors import MalformedDER


DEFAULT_MAX_DEPTH = 32

# More length octets than this could not describe a certificate anyway.
MAX_LENGTH_OCTETS = 4
MAX_TAG_OCTETS = 4


class TagClass(enum.IntEnum):
    UNIVERSAL = 0
    APPLICATION = 1
    CONTEXT = 2
    PRIVATE = 3


# Universal tag numbers used by X.509
BOOLEAN = 1
INTEGER = 2
BIT_STRING = 3
OCTET_STRING = 4
NULL = 5
OBJECT_IDENTIFIER = 6
UTF8_STRING = 12
SEQUENCE = 16
SET = 17
NUMERIC_STRING = 18
PRINTABLE_STRING = 19
TELETEX_STRING = 20
IA5_STRING = 22
UTC_TIME = 23
GENERALIZED_TIME = 24
VISIBLE_STRING = 26
UNIVERSAL_STRING = 28
BMP_STRING = 30


@dataclass(frozen=True)
class TLV:
    """One decoded tag/length/value node."""

    tag_class: TagClass
    constructed: bool
    tag_number: int
    offset: int
    header_length: int
    encoded: bytes
    children: Tuple["TLV", ...] = ()

    @property
    def payload(self) -> bytes:
        return self.encoded[self.header_length:]

    @property
    def length(self) -> int:
        return len(self.encoded) - self.header_length

    @property
    def payload_offset(self) -> int:
        return self.offset + self.header_length

    def is_universal(self, tag_number: int) -> bool:
        return self.tag_class == TagClass.UNIVERSAL and self.tag_number == tag_number

    def is_context(self, tag_number: int) -> bool:
        return self.tag_class == TagClass.CONTEXT and self.tag_number == tag_number

    def describe(self) -> str:
        kind = "constructed" if self.constructed else "primitive"
        return f"[{self.tag_class.name} {self.tag_number}] ({kind}, {self.length} bytes)"


def _read_tag(data: bytes, pos: int, end: int, base_offset: int) -> Tuple[TagClass, bool, int, int]:
    first = data[pos]
    tag_class = TagClass(first >> 6)
    constructed = bool(first & 0x20)
    tag_number = first & 0x1F
    pos += 1

    if tag_number == 0x1F:
        # High tag number form: base-128, high bit means "more octets follow".
        tag_number = 0
        for count in range(MAX_TAG_OCTETS + 1):
            if pos >= end:
                raise MalformedDER(base_offset + pos, "truncated high tag number")
            if count == MAX_TAG_OCTETS:
                raise MalformedDER(base_offset + pos, "tag number too large")
            octet = data[pos]
            if count == 0 and octet == 0x80:
                raise MalformedDER(base_offset + pos, "non-minimal tag number encoding")
            tag_number = (tag_number << 7) | (octet & 0x7F)
            pos += 1
            if not octet & 0x80:
                break

    return tag_class, constructed, tag_number, pos


def _read_length(data: bytes, pos: int, end: int, base_offset: int) -> Tuple[int, int]:
    if pos >= end:
        raise MalformedDER(base_offset + pos, "missing length")
    first = data[pos]
    pos += 1

    if first < 0x80:
        return first, pos
    if first == 0x80:
        raise MalformedDER(base_offset + pos - 1, "indefinite length is not allowed in DER")
    if first == 0xFF:
        raise MalformedDER(base_offset + pos - 1, "reserved length octet 0xFF")

    count = first & 0x7F
    if count > MAX_LENGTH_OCTETS:
        raise MalformedDER(
            base_offset + pos - 1,
            f"length uses {count} octets (at most {MAX_LENGTH_OCTETS} accepted)",
        )
    if count > end - pos:
        raise MalformedDER(base_offset + pos, "truncated length")

    length = int.from_bytes(data[pos:pos + count], "big")
    return length, pos + count


def _read_node(data: bytes, pos: int, end: int, depth: int, max_depth: int,
               base_offset: int) -> Tuple[TLV, int]:
    if depth > max_depth:
        raise MalformedDER(base_offset + pos, f"nesting deeper than {max_depth} levels")

    start = pos
    tag_class, constructed, tag_number, pos = _read_tag(data, pos, end, base_offset)
    length, pos = _read_length(data, pos, end, base_offset)

    remaining = end - pos
    if length > remaining:
        raise MalformedDER(
            base_offset + start,
            f"declared length {length} exceeds the {remaining} bytes remaining",
        )

    header_length = pos - start
    value_end = pos + length
    children: Tuple[TLV, ...] = ()
    if constructed:
        children = tuple(_read_nodes(data, pos, value_end, depth + 1, max_depth, base_offset))

    node = TLV(
        tag_class=tag_class,
        constructed=constructed,
        tag_number=tag_number,
        offset=base_offset + start,
        header_length=header_length,
        encoded=bytes(data[start:value_end]),
        children=children,
    )
    return node, value_end


def _read_nodes(data: bytes, pos: int, end: int, depth: int, max_depth: int,
                base_offset: int) -> List[TLV]:
    nodes = []
    while pos < end:
        node, pos = _read_node(data, pos, end, depth, max_depth, base_offset)
        nodes.append(node)
    return nodes


def parse_tlv(data: bytes, *, base_offset: int = 0, max_depth: int = DEFAULT_MAX_DEPTH) -> TLV:
    """
    Parse exactly one DER element that spans the whole buffer.

    Args:
        data: DER bytes
        base_offset: Offset of data[0] within the enclosing certificate,
            used only for error reporting
        max_depth: Maximum nesting of constructed values

    Returns:
        Root TLV node with its children parsed recursively

    Raises:
        MalformedDER: On any bounds violation, illegal length form, or
            trailing bytes after the element
    """
    data = bytes(data)
    if not data:
        raise MalformedDER(base_offset, "no data")

    node, end = _read_node(data, 0, len(data), 0, max_depth, base_offset)
    if end != len(data):
        raise MalformedDER(base_offset + end, f"{len(data) - end} trailing bytes after element")
    return node


def parse_tlv_sequence(data: bytes, *, base_offset: int = 0,
                       max_depth: int = DEFAULT_MAX_DEPTH) -> List[TLV]:
    """Parse a run of concatenated DER elements filling the whole buffer."""
    data = bytes(data)
    return _read_nodes(data, 0, len(data), 0, max_depth, base_offset)
