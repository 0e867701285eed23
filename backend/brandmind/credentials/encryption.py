"""
Credential encryption utilities.

Per-user upstream completion API keys are stored encrypted with Fernet.
The key comes from ``Settings.encryption_key``; without one, storing or
reading a per-user credential fails with CredentialEncryptionError and the
service falls back to the master credential.

SECURITY REQUIREMENTS:
- Plaintext credentials are never logged
- Only ciphertext is persisted
- Error messages never include plaintext or ciphertext
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class CredentialEncryptionError(Exception):
    """Raised when credential encryption/decryption fails."""

    def __init__(self, message: str, operation: str = "unknown"):
        self.operation = operation
        super().__init__(message)


class CredentialCipher:
    """Fernet wrapper bound to one configured key."""

    def __init__(self, key: Optional[str]):
        self._fernet: Optional[Fernet] = None
        if key:
            try:
                self._fernet = Fernet(key.encode("utf-8"))
            except (ValueError, TypeError) as e:
                raise CredentialEncryptionError(
                    "ENCRYPTION_KEY is not a valid Fernet key", operation="configure"
                ) from e

    @property
    def is_configured(self) -> bool:
        return self._fernet is not None

    def _require(self, operation: str) -> Fernet:
        if self._fernet is None:
            raise CredentialEncryptionError("Encryption key is not configured", operation=operation)
        return self._fernet

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a credential for storage.

        Raises:
            CredentialEncryptionError: If no key is configured
            ValueError: If plaintext is empty
        """
        if not plaintext:
            raise ValueError("Cannot encrypt empty credential")
        return self._require("encrypt").encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored credential.

        Raises:
            CredentialEncryptionError: If no key is configured or the
                ciphertext was produced under a different key
        """
        fernet = self._require("decrypt")
        try:
            return fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            logger.error("Credential decryption failed", extra={"operation": "decrypt"})
            raise CredentialEncryptionError("Failed to decrypt credential", operation="decrypt") from e
