"""PEM / bare base64 unwrapping."""

import base64
import binascii
import logging
import re

from certinspector.common.errors import EmptyInput, InvalidBase64, InvalidPEM, NoCertificateFound


logger = logging.getLogger(__name__)

_LABEL = r"(?:TRUSTED |X509 )?CERTIFICATE"
_BEGIN = re.compile(r"-----BEGIN " + _LABEL + r"-----")
_PEM_BLOCK = re.compile(
    r"-----BEGIN (" + _LABEL + r")-----(.*?)-----END \1-----",
    re.DOTALL,
)
_WHITESPACE = re.compile(r"\s+")
_BASE64_CHARS = re.compile(r"^[A-Za-z0-9+/=_-]*$")


def b64d(text: str, url_safe: bool = False) -> bytes:
    """
    Strictly decode base64 text, ignoring embedded whitespace.

    Args:
        text: Base64 text
        url_safe: Also accept the URL-safe alphabet ('-' and '_')

    Raises:
        InvalidBase64: If the text is not valid base64
    """
    cleaned = _WHITESPACE.sub("", text)
    if url_safe:
        cleaned = cleaned.replace("-", "+").replace("_", "/")
    try:
        data = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64(str(e))
    if not data:
        raise InvalidBase64("decoded to zero bytes")
    return data


def decode_pem(text: str) -> bytes:
    """
    Extract certificate DER bytes from PEM or bare base64 text.

    Args:
        text: Pasted or loaded certificate text

    Returns:
        DER bytes of the first certificate found

    Raises:
        EmptyInput: If the text is blank
        NoCertificateFound: If there are no PEM markers and the text is not base64
        InvalidPEM: If a BEGIN CERTIFICATE marker has no matching END marker
        InvalidBase64: If the body does not decode
    """
    trimmed = text.strip()
    if not trimmed:
        raise EmptyInput()

    if _BEGIN.search(trimmed):
        match = _PEM_BLOCK.search(trimmed)
        if not match:
            raise InvalidPEM()
        body = match.group(2)
        # RFC 1421 style headers (Proc-Type etc.) sit before a blank line.
        if ":" in body:
            parts = re.split(r"\r?\n\s*\r?\n", body.strip(), maxsplit=1)
            if len(parts) == 2 and ":" in parts[0]:
                body = parts[1]
        if not body.strip():
            raise InvalidPEM("Invalid PEM format: the certificate block is empty.")
        if len(_PEM_BLOCK.findall(trimmed)) > 1:
            logger.debug("Several PEM blocks found; using the first one")
        return b64d(body)

    if "-----BEGIN" in trimmed:
        raise NoCertificateFound("The PEM block does not contain a certificate.")

    cleaned = _WHITESPACE.sub("", trimmed)
    if not _BASE64_CHARS.match(cleaned):
        raise NoCertificateFound()
    logger.debug("No PEM markers; decoding input as bare base64 DER")
    # Bare pasted DER sometimes arrives in the URL-safe alphabet; PEM bodies never do.
    return b64d(cleaned, url_safe=True)
