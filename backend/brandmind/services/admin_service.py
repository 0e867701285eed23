"""
Administrative account management.

Activation, deactivation, plan changes and credential rotation performed
by an administrator on another user's account. Each mutation:
- runs in a single transaction together with its AdminAction audit row
- mutates the user's existing subscription in place (no duplicate rows)
- converges to the same end state when repeated with the same input

Read views (dashboard, user list, user detail, action log) are plain
queries with no side effects.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from brandmind.credentials.encryption import CredentialCipher, CredentialEncryptionError
from brandmind.credentials.keys import generate_api_key, key_prefix
from brandmind.entitlements.catalog import get_plan_definition
from brandmind.entitlements.models import ActivationMethod, Plan, SubscriptionStatus
from brandmind.entitlements.service import EntitlementService
from brandmind.models.admin_action import AdminAction, AdminActionType
from brandmind.models.subscription import Subscription
from brandmind.models.usage_log import UsageLog
from brandmind.models.user import User
from brandmind.platform.audit import record_admin_action, serialize_admin_action
from brandmind.platform.errors import NotFoundError, ServiceUnavailableError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DURATION_DAYS = 30
MAX_PAGE_SIZE = 100


def parse_plan(name: str) -> Plan:
    """
    Raises:
        ValidationError: code ``invalid_plan``
    """
    try:
        return Plan.parse(name)
    except ValueError:
        raise ValidationError(f"Invalid plan: {name}", code="invalid_plan") from None


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class AdminService:
    """Operations an administrator performs on user accounts."""

    def __init__(self, session: AsyncSession, admin_id: int, cipher: CredentialCipher):
        self.session = session
        self.admin_id = admin_id
        self.cipher = cipher
        self.entitlements = EntitlementService(session)

    async def _get_user(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", str(user_id), code="user_not_found")
        return user

    def _encrypt_completion_key(self, api_key: str) -> str:
        try:
            return self.cipher.encrypt(api_key)
        except CredentialEncryptionError as e:
            logger.error("Cannot store completion key", extra={"operation": e.operation})
            raise ServiceUnavailableError(
                "Credential encryption is not configured",
                code="encryption_not_configured",
            ) from e

    def _apply_plan(
        self,
        subscription: Subscription,
        plan: Plan,
        duration_days: int,
        notes: Optional[str],
        now: datetime,
    ) -> None:
        definition = get_plan_definition(plan)
        subscription.plan = plan
        subscription.features = list(definition.features)
        subscription.limits = definition.limits.to_dict()
        subscription.price = definition.price
        subscription.start_date = now
        subscription.end_date = now + timedelta(days=duration_days)
        subscription.notes = notes

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def activate_user(
        self,
        user_id: int,
        plan: Plan = Plan.FREE,
        duration_days: int = DEFAULT_DURATION_DAYS,
        completion_api_key: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        """
        Activate ``user_id`` on ``plan`` for ``duration_days``.

        The user's latest subscription is updated in place; one is created
        only when the user has none. User, subscription and audit row are
        committed together.

        Raises:
            NotFoundError: code ``user_not_found``
            ServiceUnavailableError: a completion key was given but
                encryption is not configured
        """
        user = await self._get_user(user_id)
        encrypted_key = self._encrypt_completion_key(completion_api_key) if completion_api_key else None
        now = datetime.now(timezone.utc)

        user.is_active = True
        user.is_verified = True
        if encrypted_key:
            user.completion_api_key_encrypted = encrypted_key

        subscription = await self.entitlements.get_latest_subscription(user_id)
        if subscription is None:
            subscription = Subscription(user_id=user_id)
            self.session.add(subscription)

        self._apply_plan(subscription, plan, duration_days, notes or "Activated via admin panel", now)
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.activated_by = self.admin_id
        subscription.activation_method = ActivationMethod.MANUAL

        record_admin_action(
            self.session,
            self.admin_id,
            AdminActionType.ACTIVATE_USER,
            user_id,
            {
                "plan": plan.value,
                "duration_days": duration_days,
                "has_completion_key": bool(completion_api_key),
            },
        )
        await self.session.commit()

        logger.info(
            "User activated",
            extra={"user_id": user_id, "admin_id": self.admin_id, "plan": plan.value},
        )
        return subscription

    async def deactivate_user(self, user_id: int, reason: Optional[str] = None) -> None:
        """Mark the user and all of their subscriptions inactive."""
        user = await self._get_user(user_id)
        user.is_active = False

        subscriptions = (
            await self.session.execute(select(Subscription).where(Subscription.user_id == user_id))
        ).scalars().all()
        for subscription in subscriptions:
            subscription.status = SubscriptionStatus.INACTIVE

        record_admin_action(
            self.session,
            self.admin_id,
            AdminActionType.DEACTIVATE_USER,
            user_id,
            {"reason": reason},
        )
        await self.session.commit()
        logger.info("User deactivated", extra={"user_id": user_id, "admin_id": self.admin_id})

    async def set_completion_key(self, user_id: int, api_key: str) -> None:
        user = await self._get_user(user_id)
        user.completion_api_key_encrypted = self._encrypt_completion_key(api_key)

        record_admin_action(
            self.session,
            self.admin_id,
            AdminActionType.UPDATE_COMPLETION_KEY,
            user_id,
            {"key_prefix": key_prefix(api_key, visible=10)},
        )
        await self.session.commit()

    async def regenerate_api_key(self, user_id: int) -> str:
        user = await self._get_user(user_id)
        user.api_key = generate_api_key()

        record_admin_action(
            self.session,
            self.admin_id,
            AdminActionType.REGENERATE_API_KEY,
            user_id,
            {"new_key_prefix": key_prefix(user.api_key, visible=15)},
        )
        await self.session.commit()
        return user.api_key

    async def update_subscription(
        self,
        user_id: int,
        plan: Plan,
        duration_days: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        """
        Change the plan of the user's existing subscription in place.

        The subscription status is left unchanged.

        Raises:
            NotFoundError: ``user_not_found`` or ``subscription_not_found``
        """
        await self._get_user(user_id)
        subscription = await self.entitlements.get_latest_subscription(user_id)
        if subscription is None:
            raise NotFoundError("Subscription", code="subscription_not_found")

        self._apply_plan(
            subscription,
            plan,
            duration_days or DEFAULT_DURATION_DAYS,
            notes,
            datetime.now(timezone.utc),
        )
        record_admin_action(
            self.session,
            self.admin_id,
            AdminActionType.CHANGE_SUBSCRIPTION_PLAN,
            user_id,
            {"new_plan": plan.value, "duration_days": duration_days},
        )
        await self.session.commit()
        return subscription

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    async def _count(self, stmt) -> int:
        return int((await self.session.execute(stmt)).scalar_one())

    async def dashboard(self) -> dict:
        total_users = await self._count(select(func.count(User.id)))
        active_users = await self._count(select(func.count(User.id)).where(User.is_active.is_(True)))
        total_subscriptions = await self._count(select(func.count(Subscription.id)))
        active_subscriptions = await self._count(
            select(func.count(Subscription.id)).where(Subscription.status == SubscriptionStatus.ACTIVE)
        )

        plan_rows = (
            await self.session.execute(
                select(Subscription.plan, func.count(Subscription.id))
                .where(Subscription.status == SubscriptionStatus.ACTIVE)
                .group_by(Subscription.plan)
            )
        ).all()

        recent = (
            await self.session.execute(
                select(User).order_by(User.created_at.desc(), User.id.desc()).limit(10)
            )
        ).scalars().all()

        return {
            "stats": {
                "total_users": total_users,
                "active_users": active_users,
                "pending_users": total_users - active_users,
                "total_subscriptions": total_subscriptions,
                "active_subscriptions": active_subscriptions,
            },
            "plan_distribution": [{"plan": plan.value, "count": count} for plan, count in plan_rows],
            "recent_users": [
                {
                    "id": u.id,
                    "email": u.email,
                    "name": u.name,
                    "telegram_username": u.telegram_username,
                    "is_active": u.is_active,
                    "created_at": _iso(u.created_at),
                }
                for u in recent
            ],
        }

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        status: str = "all",
        search: Optional[str] = None,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        filters = []
        if status == "active":
            filters.append(User.is_active.is_(True))
        elif status == "inactive":
            filters.append(User.is_active.is_(False))
        if search:
            term = f"%{search}%"
            filters.append(
                or_(User.email.ilike(term), User.name.ilike(term), User.telegram_username.ilike(term))
            )

        total = await self._count(select(func.count(User.id)).where(*filters))
        users = (
            await self.session.execute(
                select(User)
                .where(*filters)
                .order_by(User.created_at.desc(), User.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).scalars().all()

        active_by_user: dict[int, Subscription] = {}
        if users:
            rows = (
                await self.session.execute(
                    select(Subscription)
                    .where(
                        Subscription.user_id.in_([u.id for u in users]),
                        Subscription.status == SubscriptionStatus.ACTIVE,
                    )
                    .order_by(Subscription.created_at.desc(), Subscription.id.desc())
                )
            ).scalars().all()
            for subscription in rows:
                active_by_user.setdefault(subscription.user_id, subscription)

        items = []
        for u in users:
            subscription = active_by_user.get(u.id)
            items.append(
                {
                    "id": u.id,
                    "email": u.email,
                    "name": u.name,
                    "telegram_username": u.telegram_username,
                    "role": u.role.value,
                    "is_active": u.is_active,
                    "plan": subscription.plan.value if subscription else None,
                    "subscription_status": subscription.status.value if subscription else None,
                    "subscription_end_date": _iso(subscription.end_date) if subscription else None,
                    "created_at": _iso(u.created_at),
                    "last_login": _iso(u.last_login),
                }
            )

        return {"users": items, "pagination": _pagination(page, limit, total)}

    async def user_detail(self, user_id: int) -> dict:
        user = await self._get_user(user_id)
        subscription = await self.entitlements.get_latest_subscription(user_id)

        usage_rows = (
            await self.session.execute(
                select(
                    UsageLog.feature,
                    func.count(UsageLog.id),
                    func.coalesce(func.sum(UsageLog.api_calls), 0),
                    func.coalesce(func.sum(UsageLog.tokens_used), 0),
                )
                .where(UsageLog.user_id == user_id)
                .group_by(UsageLog.feature)
            )
        ).all()

        actions = (
            await self.session.execute(
                select(AdminAction)
                .where(AdminAction.target_user_id == user_id)
                .order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
                .limit(10)
            )
        ).scalars().all()

        subscription_view = None
        if subscription is not None:
            subscription_view = {
                "id": subscription.id,
                **subscription.to_summary(),
                "notes": subscription.notes,
                "activation_method": (
                    subscription.activation_method.value if subscription.activation_method else None
                ),
            }

        return {
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "phone": user.phone,
                "telegram_username": user.telegram_username,
                "role": user.role.value,
                "is_active": user.is_active,
                "is_verified": user.is_verified,
                "has_completion_key": user.has_completion_key,
                "created_at": _iso(user.created_at),
                "last_login": _iso(user.last_login),
            },
            "subscription": subscription_view,
            "usage_stats": [
                {"feature": feature, "count": count, "total_calls": int(calls), "total_tokens": int(tokens)}
                for feature, count, calls, tokens in usage_rows
            ],
            "admin_actions": [serialize_admin_action(a) for a in actions],
        }

    async def list_actions(self, page: int = 1, limit: int = 50) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        admin_user = aliased(User)
        target_user = aliased(User)
        rows = (
            await self.session.execute(
                select(AdminAction, admin_user.name, target_user.name)
                .outerjoin(admin_user, AdminAction.admin_id == admin_user.id)
                .outerjoin(target_user, AdminAction.target_user_id == target_user.id)
                .order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).all()
        total = await self._count(select(func.count(AdminAction.id)))

        return {
            "actions": [
                serialize_admin_action(action, admin_name, target_name)
                for action, admin_name, target_name in rows
            ],
            "pagination": _pagination(page, limit, total),
        }
