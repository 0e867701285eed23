"""
Per-request identity and entitlement context.

Attached to ``request.state.context`` by the authentication dependency and
read by every later gate (role, plan, feature, rate limit) and by route
handlers. Downstream code never re-derives identity from headers.

SECURITY: role and plan come from the database at authentication time,
never from token claims or request bodies.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Request

from brandmind.entitlements.models import Entitlement, Plan, Role
from brandmind.models.user import User
from brandmind.platform.errors import AuthenticationError

AUTH_METHOD_BEARER = "bearer"
AUTH_METHOD_API_KEY = "api_key"


@dataclass
class RequestContext:
    user: User
    entitlement: Entitlement
    auth_method: str
    token_claims: dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> Role:
        return self.entitlement.role

    @property
    def plan(self) -> Optional[Plan]:
        return self.entitlement.plan


def set_request_context(request: Request, context: RequestContext) -> None:
    request.state.context = context


def get_optional_request_context(request: Request) -> Optional[RequestContext]:
    return getattr(request.state, "context", None)


def get_request_context(request: Request) -> RequestContext:
    """
    Return the context attached by authentication.

    Raises:
        AuthenticationError: If no authentication stage ran before this one
    """
    context = get_optional_request_context(request)
    if context is None:
        raise AuthenticationError("Authentication required", code="unauthorized")
    return context
