"""
Key-value backed refresh token store.

Key schema:
- refresh_token:{user_id} -> HMAC fingerprint of the live refresh token

Exactly one refresh token is live per user. Issuing a new one overwrites
the stored fingerprint, which invalidates the previous token without an
explicit revoke. The raw token is returned to the client once and never
persisted.
"""

import logging
from typing import Optional

from brandmind.credentials.keys import generate_refresh_token, parse_refresh_token
from brandmind.credentials.signing import constant_time_equals, sign
from brandmind.services.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)


def refresh_token_key(user_id: int) -> str:
    return f"refresh_token:{user_id}"


class RefreshTokenStore:
    """Issues, verifies and revokes opaque refresh tokens."""

    def __init__(self, kv: KeyValueStore, secret: str, ttl_seconds: int):
        self._kv = kv
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def _fingerprint(self, token: str) -> str:
        return sign(token, self._secret)

    async def issue(self, user_id: int) -> str:
        """Create a new refresh token for ``user_id``, replacing any previous one."""
        token = generate_refresh_token(user_id)
        await self._kv.put(refresh_token_key(user_id), self._fingerprint(token), self.ttl_seconds)
        logger.info("Issued refresh token", extra={"user_id": user_id, "ttl_seconds": self.ttl_seconds})
        return token

    async def verify(self, token: str) -> Optional[int]:
        """
        Return the owning user id if ``token`` is the live refresh token.

        A well-formed token that does not match the stored fingerprint
        (superseded, revoked or expired) is rejected.
        """
        user_id = parse_refresh_token(token)
        if user_id is None:
            return None

        stored = await self._kv.get(refresh_token_key(user_id))
        if not stored or not constant_time_equals(stored, self._fingerprint(token)):
            logger.info("Refresh token rejected", extra={"user_id": user_id})
            return None
        return user_id

    async def revoke(self, user_id: int) -> None:
        await self._kv.delete(refresh_token_key(user_id))
        logger.info("Revoked refresh token", extra={"user_id": user_id})
