"""Pydantic models: the JSON document produced for an inspected certificate."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from certinspector.asn1 import oids
from certinspector.x509.models import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    CertificateInfo,
    DistinguishedName,
    ExtendedKeyUsage,
    Extension,
    GeneralName,
    KeyUsage,
    NameAttribute,
    PublicKeyInfo,
    RawExtension,
    SubjectAlternativeName,
    SubjectKeyIdentifier,
    Validity,
)


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NameAttributeDocument(_Document):
    """One subject/issuer attribute, e.g. {"type": "CN", "oid": "2.5.4.3", "value": "example.com"}."""
    type: str
    oid: str
    value: str


class GeneralNameDocument(_Document):
    """One subject alternative name, e.g. {"type": "DNS", "value": "www.example.com"}."""
    type: str
    value: str


ExtensionKind = Literal[
    "basicConstraints",
    "keyUsage",
    "extendedKeyUsage",
    "subjectAltName",
    "subjectKeyIdentifier",
    "authorityKeyIdentifier",
    "raw",
]


class ExtensionDocument(_Document):
    """An extension; which optional fields are set depends on kind."""
    oid: str
    name: str
    critical: bool = False
    kind: ExtensionKind
    ca: Optional[bool] = None
    path_length: Optional[int] = None
    usages: Optional[List[str]] = None
    names: Optional[List[GeneralNameDocument]] = None
    key_identifier: Optional[str] = None
    value: Optional[str] = None  # hex of the extnValue content for kind "raw"

    @classmethod
    def from_extension(cls, ext: Extension) -> "ExtensionDocument":
        doc = cls(oid=ext.oid, name=ext.name, critical=ext.critical, kind="raw")
        value = ext.value
        if isinstance(value, BasicConstraints):
            return doc.model_copy(update={
                "kind": "basicConstraints", "ca": value.ca, "path_length": value.path_length,
            })
        if isinstance(value, KeyUsage):
            return doc.model_copy(update={"kind": "keyUsage", "usages": list(value.usages)})
        if isinstance(value, ExtendedKeyUsage):
            return doc.model_copy(update={"kind": "extendedKeyUsage", "usages": list(value.purposes)})
        if isinstance(value, SubjectAlternativeName):
            names = [GeneralNameDocument(type=n.type, value=n.value) for n in value.names]
            return doc.model_copy(update={"kind": "subjectAltName", "names": names})
        if isinstance(value, SubjectKeyIdentifier):
            return doc.model_copy(update={
                "kind": "subjectKeyIdentifier", "key_identifier": value.key_identifier,
            })
        if isinstance(value, AuthorityKeyIdentifier):
            return doc.model_copy(update={
                "kind": "authorityKeyIdentifier", "key_identifier": value.key_identifier,
            })
        return doc.model_copy(update={"value": value.data.hex()})

    def to_extension(self) -> Extension:
        if self.kind == "basicConstraints":
            value = BasicConstraints(ca=bool(self.ca), path_length=self.path_length)
        elif self.kind == "keyUsage":
            value = KeyUsage(usages=tuple(self.usages or ()))
        elif self.kind == "extendedKeyUsage":
            value = ExtendedKeyUsage(purposes=tuple(self.usages or ()))
        elif self.kind == "subjectAltName":
            value = SubjectAlternativeName(
                names=tuple(GeneralName(n.type, n.value) for n in self.names or ())
            )
        elif self.kind == "subjectKeyIdentifier":
            value = SubjectKeyIdentifier(key_identifier=self.key_identifier or "")
        elif self.kind == "authorityKeyIdentifier":
            value = AuthorityKeyIdentifier(key_identifier=self.key_identifier)
        else:
            value = RawExtension(bytes.fromhex(self.value or ""))
        return Extension(oid=self.oid, critical=self.critical, value=value)


def _name_document(name: DistinguishedName) -> List[NameAttributeDocument]:
    return [NameAttributeDocument(type=a.name, oid=a.oid, value=a.value) for a in name]


def _name(documents: List[NameAttributeDocument]) -> DistinguishedName:
    return DistinguishedName(tuple(NameAttribute(d.oid, d.value) for d in documents))


class CertificateDocument(_Document):
    """
    Stable JSON shape of CertificateInfo.

    Format: { "version", "serialNumber", "subject", "issuer", "validFrom",
              "validTo", "isExpired", "daysUntilExpiration", "publicKeyAlgorithm",
              "publicKeySize", "signatureAlgorithm", "subjectAlternativeNames",
              "keyUsage", "extendedKeyUsage", "isCA", "isSelfSigned",
              "sha1Fingerprint", "sha256Fingerprint", ... }
    """
    version: int
    serial_number: str
    subject: List[NameAttributeDocument]
    issuer: List[NameAttributeDocument]
    valid_from: datetime
    valid_to: datetime
    is_expired: bool
    days_until_expiration: Optional[int] = None
    public_key_algorithm: str
    public_key_size: Optional[int] = None
    public_key_curve: Optional[str] = None
    public_key_algorithm_oid: str = ""
    signature_algorithm: str
    subject_alternative_names: List[GeneralNameDocument] = []
    key_usage: List[str] = []
    extended_key_usage: List[str] = []
    is_ca: bool = Field(alias="isCA")
    is_self_signed: bool
    sha1_fingerprint: str = Field(alias="sha1Fingerprint")
    sha256_fingerprint: str = Field(alias="sha256Fingerprint")
    extensions: List[ExtensionDocument] = []
    warnings: List[str] = []

    @classmethod
    def from_info(cls, info: CertificateInfo) -> "CertificateDocument":
        return cls(
            version=info.version,
            serial_number=info.serial_number,
            subject=_name_document(info.subject),
            issuer=_name_document(info.issuer),
            valid_from=info.valid_from,
            valid_to=info.valid_to,
            is_expired=info.is_expired,
            days_until_expiration=info.days_until_expiration,
            public_key_algorithm=info.public_key.algorithm,
            public_key_size=info.public_key.key_size_bits,
            public_key_curve=info.public_key.curve_name,
            public_key_algorithm_oid=info.public_key.algorithm_oid,
            signature_algorithm=info.signature_algorithm,
            subject_alternative_names=[
                GeneralNameDocument(type=n.type, value=n.value)
                for n in info.subject_alternative_names
            ],
            key_usage=list(info.key_usage),
            extended_key_usage=list(info.extended_key_usage),
            is_ca=info.is_ca,
            is_self_signed=info.is_self_signed,
            sha1_fingerprint=info.sha1_fingerprint,
            sha256_fingerprint=info.sha256_fingerprint,
            extensions=[ExtensionDocument.from_extension(e) for e in info.extensions],
            warnings=list(info.warnings),
        )

    def to_info(self) -> CertificateInfo:
        algorithm_oid = self.public_key_algorithm_oid
        if not algorithm_oid:
            algorithm_oid = next(
                (oid for oid, name in oids.KEY_ALGORITHMS.items() if name == self.public_key_algorithm),
                "",
            )
        return CertificateInfo(
            version=self.version,
            serial_number=self.serial_number,
            subject=_name(self.subject),
            issuer=_name(self.issuer),
            validity=Validity(not_before=self.valid_from, not_after=self.valid_to),
            public_key=PublicKeyInfo(
                algorithm=self.public_key_algorithm,
                algorithm_oid=algorithm_oid,
                key_size_bits=self.public_key_size,
                curve_name=self.public_key_curve,
            ),
            signature_algorithm=self.signature_algorithm,
            subject_alternative_names=tuple(
                GeneralName(n.type, n.value) for n in self.subject_alternative_names
            ),
            key_usage=tuple(self.key_usage),
            extended_key_usage=tuple(self.extended_key_usage),
            is_ca=self.is_ca,
            is_self_signed=self.is_self_signed,
            sha1_fingerprint=self.sha1_fingerprint,
            sha256_fingerprint=self.sha256_fingerprint,
            is_expired=self.is_expired,
            days_until_expiration=self.days_until_expiration,
            extensions=tuple(e.to_extension() for e in self.extensions),
            warnings=tuple(self.warnings),
        )
