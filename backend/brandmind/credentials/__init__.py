"""
Credential utilities: password hashing, random keys, HMAC signing and
at-rest encryption of upstream credentials.
"""

from brandmind.credentials.encryption import CredentialCipher, CredentialEncryptionError
from brandmind.credentials.keys import (
    generate_api_key,
    generate_refresh_token,
    key_prefix,
    parse_refresh_token,
    random_key,
)
from brandmind.credentials.passwords import (
    hash_password,
    validate_password_strength,
    verify_and_update,
    verify_password,
)
from brandmind.credentials.signing import constant_time_equals, sign

__all__ = [
    "CredentialCipher",
    "CredentialEncryptionError",
    "constant_time_equals",
    "generate_api_key",
    "generate_refresh_token",
    "hash_password",
    "key_prefix",
    "parse_refresh_token",
    "random_key",
    "sign",
    "validate_password_strength",
    "verify_and_update",
    "verify_password",
]
