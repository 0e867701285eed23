"""
Admin API endpoints for account activation and management.

SECURITY:
- Every endpoint requires authentication plus the admin role
  (superadmin passes as well)
- Every mutation writes an admin_actions audit row in the same transaction

Endpoints:
- GET  /api/admin/dashboard                        - Counts and recent users
- GET  /api/admin/users                            - Paginated user list
- GET  /api/admin/users/{id}                       - User detail
- POST /api/admin/users/{id}/activate              - Activate on a plan
- POST /api/admin/users/{id}/deactivate            - Deactivate
- PUT  /api/admin/users/{id}/completion-key        - Store upstream key
- POST /api/admin/users/{id}/regenerate-api-key    - Rotate API key
- PUT  /api/admin/users/{id}/subscription          - Change plan in place
- GET  /api/admin/actions                          - Admin action log
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.api.dependencies.auth import require_auth
from brandmind.api.dependencies.entitlements import require_role
from brandmind.api.dependencies.pipeline import guard
from brandmind.api.dependencies.services import get_cipher
from brandmind.api.schemas.admin import (
    ActivateUserRequest,
    CompletionKeyRequest,
    DeactivateUserRequest,
    UpdateSubscriptionRequest,
)
from brandmind.api.schemas.common import success
from brandmind.credentials.encryption import CredentialCipher
from brandmind.database.session import get_db_session
from brandmind.entitlements.catalog import get_plan_definition
from brandmind.entitlements.models import Role
from brandmind.platform.request_context import RequestContext
from brandmind.services.admin_service import AdminService, parse_plan

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=guard(require_auth, require_role(Role.ADMIN, Role.SUPERADMIN)),
)


def get_admin_service(
    context: RequestContext = Depends(require_auth),
    session: AsyncSession = Depends(get_db_session),
    cipher: CredentialCipher = Depends(get_cipher),
) -> AdminService:
    return AdminService(session, admin_id=context.user_id, cipher=cipher)


def _iso(value):
    return value.isoformat() if value else None


@router.get("/dashboard")
async def dashboard(admin: AdminService = Depends(get_admin_service)):
    return success(await admin.dashboard())


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Literal["active", "inactive", "all"] = Query("all"),
    search: Optional[str] = Query(None, max_length=255),
    admin: AdminService = Depends(get_admin_service),
):
    return success(await admin.list_users(page=page, limit=limit, status=status, search=search))


@router.get("/users/{user_id}")
async def user_detail(user_id: int, admin: AdminService = Depends(get_admin_service)):
    return success(await admin.user_detail(user_id))


@router.post("/users/{user_id}/activate")
async def activate_user(
    user_id: int,
    body: ActivateUserRequest,
    admin: AdminService = Depends(get_admin_service),
):
    plan = parse_plan(body.plan)
    subscription = await admin.activate_user(
        user_id,
        plan=plan,
        duration_days=body.duration_days,
        completion_api_key=body.completion_api_key,
        notes=body.notes,
    )
    definition = get_plan_definition(plan)
    return success(
        {
            "user_id": user_id,
            "plan": plan.value,
            "start_date": _iso(subscription.start_date),
            "end_date": _iso(subscription.end_date),
            "features": list(definition.features),
            "limits": definition.limits.to_dict(),
        },
        message="User activated",
    )


@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    body: Optional[DeactivateUserRequest] = None,
    admin: AdminService = Depends(get_admin_service),
):
    await admin.deactivate_user(user_id, reason=body.reason if body else None)
    return success(message="User deactivated")


@router.put("/users/{user_id}/completion-key")
async def set_completion_key(
    user_id: int,
    body: CompletionKeyRequest,
    admin: AdminService = Depends(get_admin_service),
):
    await admin.set_completion_key(user_id, body.api_key)
    return success(message="Completion API key updated")


@router.post("/users/{user_id}/regenerate-api-key")
async def regenerate_api_key(user_id: int, admin: AdminService = Depends(get_admin_service)):
    api_key = await admin.regenerate_api_key(user_id)
    return success({"api_key": api_key}, message="New API key generated")


@router.put("/users/{user_id}/subscription")
async def update_subscription(
    user_id: int,
    body: UpdateSubscriptionRequest,
    admin: AdminService = Depends(get_admin_service),
):
    plan = parse_plan(body.plan)
    subscription = await admin.update_subscription(
        user_id,
        plan=plan,
        duration_days=body.duration_days,
        notes=body.notes,
    )
    return success(
        {
            "plan": plan.value,
            "end_date": _iso(subscription.end_date),
            "features": list(subscription.features or []),
            "limits": dict(subscription.limits or {}),
        },
        message="Subscription updated",
    )


@router.get("/actions")
async def list_actions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    admin: AdminService = Depends(get_admin_service),
):
    return success(await admin.list_actions(page=page, limit=limit))
