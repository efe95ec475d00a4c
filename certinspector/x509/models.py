"""Immutable values describing a parsed certificate."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union

from certinspector.asn1 import oids


COMMON_NAME = "2.5.4.3"

# Display order used by DistinguishedName.format()
_FORMAT_ORDER = ("CN", "OU", "O", "L", "ST", "C")


@dataclass(frozen=True)
class NameAttribute:
    oid: str
    value: str

    @property
    def name(self) -> str:
        return oids.attribute_name(self.oid)

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


@dataclass(frozen=True)
class DistinguishedName:
    """Ordered attribute list of a subject or issuer name."""

    attributes: Tuple[NameAttribute, ...] = ()

    @classmethod
    def from_pairs(cls, pairs) -> "DistinguishedName":
        return cls(tuple(NameAttribute(oid, value) for oid, value in pairs))

    def __iter__(self):
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)

    def get(self, key: str) -> Optional[str]:
        """First value whose short name or dotted OID equals key."""
        for attr in self.attributes:
            if attr.oid == key or attr.name == key:
                return attr.value
        return None

    @property
    def common_name(self) -> Optional[str]:
        return self.get(COMMON_NAME)

    def format(self) -> str:
        """'CN=..., OU=..., O=..., L=..., ST=..., C=...' followed by any other attributes."""
        ordered = []
        for key in _FORMAT_ORDER:
            ordered.extend(attr for attr in self.attributes if attr.name == key)
        ordered.extend(attr for attr in self.attributes if attr.name not in _FORMAT_ORDER)
        return ", ".join(str(attr) for attr in ordered)

    def __str__(self) -> str:
        return ", ".join(str(attr) for attr in self.attributes)


@dataclass(frozen=True)
class Validity:
    not_before: datetime
    not_after: datetime


@dataclass(frozen=True)
class PublicKeyInfo:
    """
    Subject public key summary.

    algorithm is "RSA", "EC", another registered key algorithm name, or
    "Unknown(<oid>)". key_size_bits is None when it cannot be determined.
    """

    algorithm: str
    algorithm_oid: str
    key_size_bits: Optional[int] = None
    curve_name: Optional[str] = None


@dataclass(frozen=True)
class GeneralName:
    """One entry of a SubjectAlternativeName (type label and printable value)."""

    type: str
    value: str

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


@dataclass(frozen=True)
class BasicConstraints:
    ca: bool = False
    path_length: Optional[int] = None


@dataclass(frozen=True)
class KeyUsage:
    usages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtendedKeyUsage:
    purposes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SubjectAlternativeName:
    names: Tuple[GeneralName, ...] = ()


@dataclass(frozen=True)
class SubjectKeyIdentifier:
    key_identifier: str


@dataclass(frozen=True)
class AuthorityKeyIdentifier:
    key_identifier: Optional[str] = None


@dataclass(frozen=True)
class RawExtension:
    """Extension body kept as bytes because it is unknown or did not decode."""

    data: bytes


ExtensionValue = Union[
    BasicConstraints,
    KeyUsage,
    ExtendedKeyUsage,
    SubjectAlternativeName,
    SubjectKeyIdentifier,
    AuthorityKeyIdentifier,
    RawExtension,
]


@dataclass(frozen=True)
class Extension:
    oid: str
    critical: bool
    value: ExtensionValue

    @property
    def name(self) -> str:
        return oids.extension_name(self.oid)


@dataclass(frozen=True)
class CertificateInfo:
    """Everything the inspector reports about one certificate."""

    version: int
    serial_number: str
    subject: DistinguishedName
    issuer: DistinguishedName
    validity: Validity
    public_key: PublicKeyInfo
    signature_algorithm: str
    subject_alternative_names: Tuple[GeneralName, ...]
    key_usage: Tuple[str, ...]
    extended_key_usage: Tuple[str, ...]
    is_ca: bool
    is_self_signed: bool
    sha1_fingerprint: str
    sha256_fingerprint: str
    is_expired: bool
    days_until_expiration: Optional[int]
    extensions: Tuple[Extension, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def valid_from(self) -> datetime:
        return self.validity.not_before

    @property
    def valid_to(self) -> datetime:
        return self.validity.not_after

    @property
    def public_key_algorithm(self) -> str:
        return self.public_key.algorithm

    @property
    def public_key_size(self) -> Optional[int]:
        return self.public_key.key_size_bits

    @property
    def subject_common_name(self) -> Optional[str]:
        return self.subject.common_name

    @property
    def issuer_common_name(self) -> Optional[str]:
        return self.issuer.common_name

    @property
    def formatted_subject(self) -> str:
        return self.subject.format()

    @property
    def formatted_issuer(self) -> str:
        return self.issuer.format()

    def get_extension(self, oid: str) -> Optional[Extension]:
        for ext in self.extensions:
            if ext.oid == oid:
                return ext
        return None
