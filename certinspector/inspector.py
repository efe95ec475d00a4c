"""Certificate inspection entry points."""

import logging
from datetime import datetime, timezone
from typing import Optional

from certinspector.asn1.der import parse_tlv
from certinspector.common.config import DEFAULT_SETTINGS, InspectorSettings
from certinspector.common.errors import EmptyInput, MalformedDER
from certinspector.common.protocol import CertificateDocument
from certinspector.x509 import classifier
from certinspector.x509.fingerprint import sha1_fingerprint, sha256_fingerprint
from certinspector.x509.mapper import map_certificate
from certinspector.x509.models import (
    CertificateInfo,
    ExtendedKeyUsage,
    KeyUsage,
    SubjectAlternativeName,
)
from certinspector.x509.pem import decode_pem


logger = logging.getLogger(__name__)


def _first(extensions, kind):
    for ext in extensions:
        if isinstance(ext.value, kind):
            return ext.value
    return None


def parse_certificate_der(
    cert_der: bytes,
    now: Optional[datetime] = None,
    settings: Optional[InspectorSettings] = None,
) -> CertificateInfo:
    """
    Inspect a DER-encoded X.509 certificate.

    Args:
        cert_der: Certificate bytes in DER format
        now: Instant used for expiry checks (defaults to the current UTC time)
        settings: Parsing limits

    Returns:
        Certificate information

    Raises:
        EmptyInput: If cert_der is empty
        MalformedDER: If the bytes are not a well-formed certificate
        UnsupportedVersion: If the certificate version is not 1, 2 or 3
    """
    settings = settings or DEFAULT_SETTINGS
    cert_der = bytes(cert_der)
    if not cert_der:
        raise EmptyInput()
    if len(cert_der) > settings.max_certificate_size:
        raise MalformedDER(
            0, f"certificate is {len(cert_der)} bytes (limit {settings.max_certificate_size})"
        )

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    root = parse_tlv(cert_der, max_depth=settings.max_nesting_depth)
    mapped = map_certificate(root, max_depth=settings.max_nesting_depth)

    san = _first(mapped.extensions, SubjectAlternativeName)
    key_usage = _first(mapped.extensions, KeyUsage)
    extended_key_usage = _first(mapped.extensions, ExtendedKeyUsage)
    is_expired, days_left = classifier.expiration_status(mapped.validity.not_after, now)

    info = CertificateInfo(
        version=mapped.version,
        serial_number=mapped.serial_number,
        subject=mapped.subject,
        issuer=mapped.issuer,
        validity=mapped.validity,
        public_key=mapped.public_key,
        signature_algorithm=mapped.signature_algorithm,
        subject_alternative_names=san.names if san else (),
        key_usage=key_usage.usages if key_usage else (),
        extended_key_usage=extended_key_usage.purposes if extended_key_usage else (),
        is_ca=classifier.is_ca(mapped.extensions),
        is_self_signed=classifier.is_self_signed(mapped.subject, mapped.issuer),
        sha1_fingerprint=sha1_fingerprint(cert_der),
        sha256_fingerprint=sha256_fingerprint(cert_der),
        is_expired=is_expired,
        days_until_expiration=days_left,
        extensions=mapped.extensions,
        warnings=mapped.warnings,
    )
    logger.debug("Parsed certificate %s (serial %s)", info.formatted_subject, info.serial_number)
    return info


def parse_certificate(
    text: str,
    now: Optional[datetime] = None,
    settings: Optional[InspectorSettings] = None,
) -> CertificateInfo:
    """
    Inspect a certificate given as PEM or bare base64 DER text.

    Raises:
        EmptyInput: If the text is blank
        NoCertificateFound: If the text holds neither PEM markers nor base64
        InvalidPEM: If PEM framing is broken
        InvalidBase64: If the body does not decode
        MalformedDER: If the decoded bytes are not a well-formed certificate
        UnsupportedVersion: If the certificate version is not 1, 2 or 3
    """
    return parse_certificate_der(decode_pem(text), now=now, settings=settings)


def export_as_json(info: CertificateInfo) -> str:
    """Serialize certificate information to the stable JSON document."""
    return CertificateDocument.from_info(info).model_dump_json(by_alias=True, indent=2)


def import_from_json(text: str) -> CertificateInfo:
    """
    Rebuild certificate information from export_as_json output.

    Raises:
        pydantic.ValidationError: If the text is not a valid document
    """
    return CertificateDocument.model_validate_json(text).to_info()
