"""
Role, plan and feature gates.

Each factory returns a FastAPI dependency that reads the RequestContext
attached by ``require_auth`` and raises a 403 envelope on denial:
- require_role     -> forbidden
- require_plan     -> no_subscription | upgrade_required (+ required_plan)
- require_feature  -> no_subscription | feature_not_available (+ current_plan)

Gates fail closed: without a context they raise 401, never allow.
"""

import logging
from typing import Callable

from fastapi import Request

from brandmind.entitlements.models import Plan, Role
from brandmind.entitlements.policy import (
    REASON_NO_SUBSCRIPTION,
    authorize_feature,
    authorize_plan,
    authorize_role,
)
from brandmind.platform.errors import PermissionDeniedError
from brandmind.platform.request_context import RequestContext, get_request_context

logger = logging.getLogger(__name__)

NO_SUBSCRIPTION_MESSAGE = "An active subscription is required to use this feature"


def require_role(*roles: Role | str) -> Callable:
    """
    Gate on the caller's role.

    Raises:
        ValueError: At construction time if a role name is unknown
    """
    required = tuple(r if isinstance(r, Role) else Role.parse(r) for r in roles)

    async def _check(request: Request) -> RequestContext:
        context = get_request_context(request)
        result = authorize_role(context.role, required)
        if not result.allowed:
            logger.warning(
                "Role check denied",
                extra={
                    "user_id": context.user_id,
                    "role": context.role.value,
                    "required_roles": [r.value for r in required],
                    "path": request.url.path,
                },
            )
            raise PermissionDeniedError(
                "You do not have permission to access this resource",
                code="forbidden",
            )
        return context

    return _check


def require_plan(*plans: Plan | str) -> Callable:
    """
    Gate on the caller's subscription tier.

    The lowest ranked plan in ``plans`` is the bar. Unknown plan names are
    accepted here and can never be satisfied.
    """
    required = tuple(p.value if isinstance(p, Plan) else str(p) for p in plans)

    async def _check(request: Request) -> RequestContext:
        context = get_request_context(request)
        result = authorize_plan(context.plan, required)
        if result.allowed:
            return context

        if result.reason == REASON_NO_SUBSCRIPTION:
            raise PermissionDeniedError(NO_SUBSCRIPTION_MESSAGE, code="no_subscription")

        raise PermissionDeniedError(
            f"This feature requires the {' or '.join(required)} plan or higher",
            code="upgrade_required",
            details={"required_plan": list(required)},
        )

    return _check


def require_feature(feature: str) -> Callable:
    """Gate on membership of ``feature`` in the subscription's feature set."""

    async def _check(request: Request) -> RequestContext:
        context = get_request_context(request)
        entitlement = context.entitlement
        result = authorize_feature(
            entitlement.features if entitlement.has_subscription else None,
            feature,
            current_plan=entitlement.plan,
        )
        if result.allowed:
            return context

        if result.reason == REASON_NO_SUBSCRIPTION:
            raise PermissionDeniedError(NO_SUBSCRIPTION_MESSAGE, code="no_subscription")

        logger.info(
            "Feature not available on plan",
            extra={"user_id": context.user_id, "feature": feature, "plan": entitlement.plan.value},
        )
        raise PermissionDeniedError(
            f'Feature "{feature}" is not available on your current plan',
            code="feature_not_available",
            details={"current_plan": entitlement.plan.value},
        )

    return _check
