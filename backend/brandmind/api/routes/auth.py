"""
Account API endpoints.

Endpoints:
- POST /api/auth/register            - Create an inactive account
- POST /api/auth/login               - Exchange email/password for tokens
- POST /api/auth/refresh             - Rotate access and refresh tokens
- POST /api/auth/logout              - Revoke the refresh token
- GET  /api/auth/me                  - Profile and active subscription
- PUT  /api/auth/change-password     - Change own password
- POST /api/auth/regenerate-api-key  - Rotate own API key
"""

import logging

from fastapi import APIRouter, Depends, status

from brandmind.api.dependencies.auth import require_auth
from brandmind.api.dependencies.services import get_account_service
from brandmind.api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
)
from brandmind.api.schemas.common import success
from brandmind.platform.request_context import RequestContext
from brandmind.services.account_service import AccountService, serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.register(
        email=body.email,
        password=body.password,
        name=body.name,
        phone=body.phone,
        telegram_username=body.telegram_username,
    )
    return success(
        {
            "user_id": user.id,
            "email": user.email,
            "name": user.name,
            "telegram_username": user.telegram_username,
            "status": "pending_activation",
        },
        message="Registration successful. Your account will be usable once an administrator activates it.",
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
):
    user, subscription, tokens = await accounts.login(body.email, body.password)
    return success(
        {
            "user": serialize_user(user),
            "subscription": subscription.to_summary() if subscription else None,
            "tokens": tokens.to_dict(),
            "api_key": user.api_key,
        },
        message="Login successful",
    )


@router.post("/refresh")
async def refresh(
    body: RefreshRequest,
    accounts: AccountService = Depends(get_account_service),
):
    tokens = await accounts.refresh(body.refresh_token)
    return success(tokens.to_dict())


@router.post("/logout")
async def logout(
    context: RequestContext = Depends(require_auth),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.logout(context.user_id)
    return success(message="Logged out")


@router.get("/me")
async def me(
    context: RequestContext = Depends(require_auth),
    accounts: AccountService = Depends(get_account_service),
):
    return success(await accounts.profile(context.user))


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    context: RequestContext = Depends(require_auth),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.change_password(context.user, body.current_password, body.new_password)
    return success(message="Password changed")


@router.post("/regenerate-api-key")
async def regenerate_api_key(
    context: RequestContext = Depends(require_auth),
    accounts: AccountService = Depends(get_account_service),
):
    api_key = await accounts.regenerate_api_key(context.user)
    return success({"api_key": api_key}, message="New API key generated")
