"""
Authentication stage of the request pipeline.

Accepts either credential:
- ``Authorization: Bearer <access token>``
- ``X-API-Key: <api key>``

The bearer header wins when both are present. On success the resolved
user and entitlement are attached to the request as a RequestContext.

Error codes (all 401):
- missing_token    no credential supplied
- invalid_token    bearer token failed signature/expiry/format checks
- invalid_api_key  API key unknown or owner inactive
- user_not_found   token valid but user missing or inactive
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.api.dependencies.services import get_token_service
from brandmind.credentials.keys import key_prefix
from brandmind.database.session import get_db_session
from brandmind.entitlements.service import EntitlementService
from brandmind.platform.errors import AppError, AuthenticationError
from brandmind.platform.request_context import (
    AUTH_METHOD_API_KEY,
    AUTH_METHOD_BEARER,
    RequestContext,
    set_request_context,
)
from brandmind.services.account_service import get_user_by_api_key, get_user_by_id
from brandmind.services.token_service import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


async def _authenticate(
    request: Request,
    session: AsyncSession,
    token_service: TokenService,
) -> RequestContext:
    authorization = request.headers.get("Authorization", "")
    api_key = request.headers.get("X-API-Key")
    claims: dict = {}

    if authorization.startswith(BEARER_PREFIX):
        claims = token_service.verify(authorization[len(BEARER_PREFIX):].strip())
        if claims is None:
            raise AuthenticationError("Invalid or expired token", code="invalid_token")

        user_id = claims.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise AuthenticationError("Invalid or expired token", code="invalid_token")

        user = await get_user_by_id(session, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive", code="user_not_found")
        method = AUTH_METHOD_BEARER

    elif api_key:
        user = await get_user_by_api_key(session, api_key)
        if user is None or not user.is_active:
            logger.info("API key rejected", extra={"api_key_prefix": key_prefix(api_key)})
            raise AuthenticationError("Invalid API key", code="invalid_api_key")
        method = AUTH_METHOD_API_KEY

    else:
        raise AuthenticationError("Authentication token is required", code="missing_token")

    # EntitlementEvaluationError propagates as a 500 entitlement_eval_failed
    entitlement = await EntitlementService(session).resolve(user)

    context = RequestContext(
        user=user,
        entitlement=entitlement,
        auth_method=method,
        token_claims=claims,
    )
    set_request_context(request, context)
    return context


async def require_auth(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    token_service: TokenService = Depends(get_token_service),
) -> RequestContext:
    """Authenticate the request or fail with 401."""
    return await _authenticate(request, session, token_service)


async def optional_auth(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    token_service: TokenService = Depends(get_token_service),
) -> Optional[RequestContext]:
    """
    Attach a context when the request carries valid credentials; never fails.

    Unexpected failures are logged and leave the request anonymous.
    """
    if not request.headers.get("Authorization") and not request.headers.get("X-API-Key"):
        return None
    try:
        return await _authenticate(request, session, token_service)
    except AppError as e:
        logger.debug("Optional authentication skipped", extra={"error_code": e.code})
        return None
    except Exception:
        logger.warning("Optional authentication failed unexpectedly", exc_info=True)
        return None
