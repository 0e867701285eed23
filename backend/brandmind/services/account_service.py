"""
Account lifecycle for end users.

Handles registration, login, token refresh, logout, password changes and
API key rotation. New accounts start inactive with an inactive free
subscription; an administrator must activate them before login succeeds.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.credentials.keys import generate_api_key, key_prefix
from brandmind.credentials.passwords import (
    hash_password,
    validate_password_strength,
    verify_and_update,
)
from brandmind.entitlements.catalog import get_plan_definition
from brandmind.entitlements.models import Plan, Role, SubscriptionStatus
from brandmind.entitlements.service import EntitlementService
from brandmind.models.subscription import Subscription
from brandmind.models.user import User
from brandmind.platform.errors import (
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
)
from brandmind.services.token_service import TokenPair, TokenService

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "telegram_username": user.telegram_username,
    }


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(User.email == normalize_email(email))
    return (await session.execute(stmt)).scalars().first()


async def get_user_by_api_key(session: AsyncSession, api_key: str) -> Optional[User]:
    stmt = select(User).where(User.api_key == api_key)
    return (await session.execute(stmt)).scalars().first()


class AccountService:
    """Operations a user performs on their own account."""

    def __init__(self, session: AsyncSession, token_service: TokenService):
        self.session = session
        self.token_service = token_service
        self.entitlements = EntitlementService(session)

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        telegram_username: Optional[str] = None,
    ) -> User:
        """
        Create an inactive user with an inactive free subscription.

        Raises:
            ValidationError: code ``weak_password``
            ConflictError: code ``email_exists``
        """
        validate_password_strength(password)
        email = normalize_email(email)

        if await get_user_by_email(self.session, email) is not None:
            raise ConflictError("Email is already registered", code="email_exists")

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            phone=phone,
            telegram_username=telegram_username,
            role=Role.USER,
            is_active=False,
            is_verified=False,
            api_key=generate_api_key(),
        )
        self.session.add(user)

        try:
            await self.session.flush()
            free = get_plan_definition(Plan.FREE)
            self.session.add(
                Subscription(
                    user_id=user.id,
                    plan=Plan.FREE,
                    status=SubscriptionStatus.INACTIVE,
                    features=list(free.features),
                    limits=free.limits.to_dict(),
                    price=free.price,
                )
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Email is already registered", code="email_exists")

        logger.info("User registered", extra={"user_id": user.id})
        return user

    async def login(self, email: str, password: str) -> tuple[User, Optional[Subscription], TokenPair]:
        """
        Authenticate by email and password.

        Raises:
            AuthenticationError: code ``invalid_credentials``
            PermissionDeniedError: code ``account_inactive``
        """
        user = await get_user_by_email(self.session, email)
        if user is None:
            raise AuthenticationError("Invalid email or password", code="invalid_credentials")

        matched, new_hash = verify_and_update(password, user.password_hash)
        if not matched:
            logger.info("Login failed", extra={"user_id": user.id})
            raise AuthenticationError("Invalid email or password", code="invalid_credentials")

        if not user.is_active:
            raise PermissionDeniedError(
                "Account is not active; contact support to activate it",
                code="account_inactive",
                details={"telegram_activation": True},
            )

        if new_hash:
            user.password_hash = new_hash
            logger.info("Upgraded legacy password hash", extra={"user_id": user.id})

        subscription = await self.entitlements.get_active_subscription(user.id)
        user.last_login = datetime.now(timezone.utc)
        await self.session.commit()

        tokens = await self.token_service.issue_for_user(user, subscription.plan if subscription else None)
        logger.info("User logged in", extra={"user_id": user.id})
        return user, subscription, tokens

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate both tokens.

        Raises:
            AuthenticationError: ``invalid_token`` or ``user_not_found``
        """
        user_id = await self.token_service.refresh_store.verify(refresh_token)
        if user_id is None:
            raise AuthenticationError("Invalid refresh token", code="invalid_token")

        user = await get_user_by_id(self.session, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive", code="user_not_found")

        subscription = await self.entitlements.get_active_subscription(user.id)
        return await self.token_service.issue_for_user(user, subscription.plan if subscription else None)

    async def logout(self, user_id: int) -> None:
        await self.token_service.refresh_store.revoke(user_id)

    async def profile(self, user: User) -> dict:
        subscription = await self.entitlements.get_active_subscription(user.id)
        return {
            **serialize_user(user),
            "phone": user.phone,
            "is_active": user.is_active,
            "is_verified": user.is_verified,
            "api_key": user.api_key,
            "has_completion_key": user.has_completion_key,
            "subscription": subscription.to_summary() if subscription else None,
            "created_at": user.created_at.isoformat() if user.created_at else None,
            "last_login": user.last_login.isoformat() if user.last_login else None,
        }

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Raises:
            ValidationError: code ``weak_password``
            AuthenticationError: code ``invalid_password``
        """
        validate_password_strength(new_password)

        matched, _ = verify_and_update(current_password, user.password_hash)
        if not matched:
            raise AuthenticationError("Current password is incorrect", code="invalid_password")

        user.password_hash = hash_password(new_password)
        await self.session.commit()
        logger.info("Password changed", extra={"user_id": user.id})

    async def regenerate_api_key(self, user: User) -> str:
        user.api_key = generate_api_key()
        await self.session.commit()
        logger.info(
            "API key regenerated",
            extra={"user_id": user.id, "api_key_prefix": key_prefix(user.api_key)},
        )
        return user.api_key
