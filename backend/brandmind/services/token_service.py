"""
Access token issuance and verification.

Access tokens are HS256 JWTs carrying ``user_id``, ``email``, ``role``,
``plan``, ``iat`` and ``exp``. They are stateless: validity is decided by
signature and expiry only, never by a revocation list. Refresh tokens are
opaque and handled by RefreshTokenStore.

Verification states:
- not three dot-separated segments      -> rejected
- signature mismatch                    -> rejected
- undecodable payload or missing exp    -> rejected
- now >= exp                            -> rejected
- otherwise                             -> claims returned
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import jwt

from brandmind.config.settings import Settings
from brandmind.entitlements.models import Plan, Role
from brandmind.services.token_store import RefreshTokenStore

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = TOKEN_TYPE

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


class TokenService:
    """
    Issues and verifies access tokens.

    The signing secret and lifetimes come from the injected Settings; the
    clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        settings: Settings,
        refresh_store: Optional[RefreshTokenStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self.ttl_seconds = settings.access_token_ttl_seconds
        self.refresh_store = refresh_store
        self._clock = clock

    def issue(self, claims: dict[str, Any]) -> str:
        """
        Sign ``claims`` into an access token.

        ``iat`` and ``exp`` are always set here and override any values in
        ``claims``.
        """
        now = int(self._clock())
        payload = dict(claims)
        payload["iat"] = now
        payload["exp"] = now + self.ttl_seconds
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> Optional[dict[str, Any]]:
        """
        Return the claims of a valid token, or None.

        Never raises for malformed input.
        """
        if not isinstance(token, str) or token.count(".") != 2:
            return None

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "iat"],
                },
            )
        except (jwt.InvalidTokenError, ValueError, TypeError):
            return None

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            return None
        if self._clock() >= exp:
            logger.debug("Access token expired", extra={"user_id": claims.get("user_id")})
            return None
        return claims

    async def issue_for_user(self, user, plan: Optional[Plan]) -> TokenPair:
        """
        Issue an access token and a fresh refresh token for ``user``.

        Users without an active subscription get ``plan`` = ``free`` in the
        token. The claim is informational; gates consult the stored
        subscription.
        """
        if self.refresh_store is None:
            raise RuntimeError("TokenService was created without a refresh token store")

        role = user.role.value if isinstance(user.role, Role) else str(user.role)
        access_token = self.issue(
            {
                "user_id": user.id,
                "email": user.email,
                "role": role,
                "plan": (plan or Plan.FREE).value,
            }
        )
        refresh_token = await self.refresh_store.issue(user.id)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.ttl_seconds,
        )
