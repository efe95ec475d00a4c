"""SHA-1 / SHA-256 certificate fingerprints over the full DER encoding."""

from cryptography.hazmat.primitives import hashes

from certinspector.asn1.decoders import hex_colon


def digest(algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    h = hashes.Hash(algorithm)
    h.update(data)
    return h.finalize()


def sha1_fingerprint(cert_der: bytes) -> str:
    """
    Compute SHA-1 fingerprint of certificate.

    Args:
        cert_der: Complete certificate in DER format

    Returns:
        Colon-separated upper-case hex, 59 characters
    """
    return hex_colon(digest(hashes.SHA1(), cert_der))


def sha256_fingerprint(cert_der: bytes) -> str:
    """
    Compute SHA-256 fingerprint of certificate.

    Args:
        cert_der: Complete certificate in DER format

    Returns:
        Colon-separated upper-case hex, 95 characters
    """
    return hex_colon(digest(hashes.SHA256(), cert_der))
