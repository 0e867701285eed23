"""
Password hashing.

New hashes use salted, iterated PBKDF2-SHA256. Accounts created before the
switch carry an unsalted hex SHA-256 digest; those still verify, are marked
deprecated, and are re-hashed on the next successful login through
``verify_and_update``.
"""

import re
from typing import Optional, Tuple

from passlib.context import CryptContext

from brandmind.platform.errors import ValidationError

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "hex_sha256"],
    deprecated=["hex_sha256"],
)

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, digest: str) -> bool:
    """Check a password against a stored digest. Unknown formats never match."""
    try:
        return pwd_context.verify(password, digest)
    except (ValueError, TypeError):
        return False


def verify_and_update(password: str, digest: str) -> Tuple[bool, Optional[str]]:
    """
    Verify a password and return a replacement hash when the stored one
    uses a deprecated scheme.

    Returns:
        (matched, new_hash). new_hash is None unless the caller should
        persist an upgraded digest.
    """
    try:
        return pwd_context.verify_and_update(password, digest)
    except (ValueError, TypeError):
        return False, None


def validate_password_strength(password: str) -> None:
    """
    Enforce the password policy.

    Raises:
        ValidationError: code ``weak_password`` naming the first unmet rule
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    elif not re.search(r"[A-Z]", password):
        message = "Password must contain an upper-case letter"
    elif not re.search(r"[a-z]", password):
        message = "Password must contain a lower-case letter"
    elif not re.search(r"[0-9]", password):
        message = "Password must contain a digit"
    else:
        return
    raise ValidationError(message, code="weak_password")
