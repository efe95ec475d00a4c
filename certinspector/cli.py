"""Inspect X.509 certificates - alternative to openssl x509 -text -noout."""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from certinspector.common.config import InspectorSettings
from certinspector.common.errors import CertificateError
from certinspector.inspector import export_as_json, parse_certificate, parse_certificate_der
from certinspector.x509.models import (
    AuthorityKeyIdentifier,
    BasicConstraints,
    CertificateInfo,
    RawExtension,
    SubjectKeyIdentifier,
)


def read_input(source: str) -> bytes:
    """Read certificate bytes from a file path, or stdin for '-'."""
    if source == "-":
        return sys.stdin.buffer.read()
    with open(Path(source), "rb") as f:
        return f.read()


def load_certificate(data: bytes, settings: InspectorSettings) -> CertificateInfo:
    """Parse text input as PEM/base64, anything else as binary DER."""
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError:
        return parse_certificate_der(data, settings=settings)
    return parse_certificate(text, settings=settings)


def format_certificate(info: CertificateInfo) -> str:
    """Render certificate details as an openssl-style text report."""
    lines = [
        "Certificate:",
        "    Data:",
        f"        Version: {info.version} (0x{info.version - 1:x})",
        "        Serial Number:",
        f"            {info.serial_number}",
        f"    Signature Algorithm: {info.signature_algorithm}",
        f"        Issuer: {info.issuer}",
        "        Validity",
        f"            Not Before: {info.valid_from.isoformat()}",
        f"            Not After : {info.valid_to.isoformat()}",
        f"        Subject: {info.subject}",
        "        Subject Public Key Info:",
        f"            Public Key Algorithm: {info.public_key_algorithm}",
    ]
    if info.public_key.curve_name:
        lines.append(f"            Curve: {info.public_key.curve_name}")
    if info.public_key_size is not None:
        lines.append(f"            Key Size: {info.public_key_size} bits")

    if info.extensions:
        lines.append("        X509v3 extensions:")
        for ext in info.extensions:
            critical = " critical" if ext.critical else ""
            lines.append(f"            {ext.name}:{critical}")
            value = ext.value
            if isinstance(value, BasicConstraints):
                detail = f"CA:{str(value.ca).upper()}"
                if value.path_length is not None:
                    detail += f", pathlen:{value.path_length}"
            elif isinstance(value, (SubjectKeyIdentifier, AuthorityKeyIdentifier)):
                detail = value.key_identifier or ""
            elif isinstance(value, RawExtension):
                detail = value.data[:32].hex(" ") + ("..." if len(value.data) > 32 else "")
            else:
                detail = None
            if detail is not None:
                lines.append(f"                {detail}")

    if info.subject_alternative_names:
        lines.append("    Subject Alternative Names:")
        lines.extend(f"        {name}" for name in info.subject_alternative_names)
    if info.key_usage:
        lines.append(f"    Key Usage: {', '.join(info.key_usage)}")
    if info.extended_key_usage:
        lines.append(f"    Extended Key Usage: {', '.join(info.extended_key_usage)}")

    lines.append("=" * 80)
    lines.append("Additional Information:")
    lines.append(f"  - Is CA: {info.is_ca}")
    lines.append(f"  - Is Self-Signed: {info.is_self_signed}")
    if info.subject_common_name:
        lines.append(f"  - Common Name (CN): {info.subject_common_name}")
    if info.is_expired:
        lines.append("  - Expired: yes")
    else:
        lines.append(f"  - Expires in: {info.days_until_expiration} days")
    lines.append(f"  - SHA-1 Fingerprint: {info.sha1_fingerprint}")
    lines.append(f"  - SHA-256 Fingerprint: {info.sha256_fingerprint}")
    for warning in info.warnings:
        lines.append(f"  - Warning: {warning}")
    lines.append("=" * 80)
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Inspect X.509 certificate")
    parser.add_argument(
        "cert_path",
        type=str,
        nargs="?",
        default="-",
        help="Path to certificate file (PEM, base64 or DER); '-' reads stdin"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the certificate as a JSON document"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args(argv)

    try:
        settings = InspectorSettings.from_env()
    except ValidationError as e:
        print(f"ERROR: Invalid CERTINSPECTOR_* setting: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cert_path != "-" and not Path(args.cert_path).exists():
        print(f"ERROR: Certificate file not found: {args.cert_path}", file=sys.stderr)
        return 1

    try:
        info = load_certificate(read_input(args.cert_path), settings)
    except CertificateError as e:
        print(f"ERROR: Failed to load certificate: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(export_as_json(info))
    else:
        print(format_certificate(info))
    return 0


if __name__ == "__main__":
    sys.exit(main())
