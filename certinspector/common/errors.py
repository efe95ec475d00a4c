"""Typed failures raised by the certificate inspector."""


class CertificateError(Exception):
    """Base exception for certificate inspection errors."""
    pass


class NoCertificateFound(CertificateError):
    """The input does not contain anything that looks like a certificate."""

    def __init__(self, message: str = "No certificate found in the provided input."):
        super().__init__(message)


class EmptyInput(NoCertificateFound):
    """The input is empty or whitespace only."""

    def __init__(self, message: str = "No certificate found: the input is empty."):
        super().__init__(message)


class InvalidPEM(CertificateError):
    """PEM framing is broken (missing END marker, empty body)."""

    def __init__(self, message: str = (
        "Invalid PEM format. Expected certificate to be enclosed in "
        "BEGIN/END CERTIFICATE markers."
    )):
        super().__init__(message)


class InvalidBase64(CertificateError):
    """The certificate body could not be base64-decoded."""

    def __init__(self, detail: str = ""):
        message = "Failed to decode certificate: the body is not valid base64."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedDER(CertificateError):
    """
    The binary structure is not a valid DER-encoded certificate.

    Attributes:
        offset: Byte offset into the certificate DER where the problem was found
        reason: Short description of the problem
    """

    def __init__(self, offset: int, reason: str):
        self.offset = offset
        self.reason = reason
        super().__init__(f"Malformed DER at offset {offset}: {reason}")


class UnsupportedVersion(CertificateError):
    """The certificate declares a version other than v1, v2 or v3."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(
            f"Unsupported certificate version: {version} (expected 1, 2 or 3)"
        )
