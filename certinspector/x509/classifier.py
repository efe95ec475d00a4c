"""CA / self-signed / expiry classification of mapped certificate fields."""

from datetime import datetime
from typing import Iterable, Optional, Tuple

from certinspector.x509.models import BasicConstraints, DistinguishedName, Extension


def is_ca(extensions: Iterable[Extension]) -> bool:
    """True only when a decoded BasicConstraints extension says cA=TRUE."""
    for ext in extensions:
        if isinstance(ext.value, BasicConstraints):
            return ext.value.ca
    return False


def is_self_signed(subject: DistinguishedName, issuer: DistinguishedName) -> bool:
    """
    Check if certificate is self-signed.

    Compares subject and issuer attribute by attribute, in order. This is a
    structural check only; the signature is not verified.
    """
    return subject == issuer


def expiration_status(not_after: datetime, now: datetime) -> Tuple[bool, Optional[int]]:
    """
    Compare notAfter with now.

    Returns:
        (is_expired, days_until_expiration); the day count is None once expired
    """
    if not_after < now:
        return True, None
    return False, (not_after - now).days
