"""
Entitlement resolution: user -> active subscription -> Entitlement.

Fails closed: any unexpected error while loading the subscription raises
EntitlementEvaluationError and the calling gate denies the request.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.entitlements.errors import EntitlementEvaluationError
from brandmind.entitlements.models import Entitlement, SubscriptionStatus
from brandmind.models.base import as_utc
from brandmind.models.subscription import Subscription
from brandmind.models.user import User

logger = logging.getLogger(__name__)


class EntitlementService:
    """Loads subscriptions and turns them into Entitlement values."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_subscription(
        self,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """
        Return the user's active subscription, or None.

        The most recently created row with status=active wins. If that row's
        end_date has passed the user has no active subscription; older rows
        are not consulted.
        """
        stmt = (
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
            )
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        subscription = (await self.session.execute(stmt)).scalars().first()
        if subscription is None:
            return None

        now = now or datetime.now(timezone.utc)
        end_date = as_utc(subscription.end_date)
        if end_date is not None and end_date <= now:
            logger.info(
                "Active subscription past its end date",
                extra={"user_id": user_id, "subscription_id": subscription.id},
            )
            return None
        return subscription

    async def get_latest_subscription(self, user_id: int) -> Optional[Subscription]:
        """Most recently created subscription regardless of status."""
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def resolve(self, user: User, now: Optional[datetime] = None) -> Entitlement:
        """
        Resolve the entitlement of ``user``.

        Raises:
            EntitlementEvaluationError: If the subscription could not be loaded
        """
        try:
            subscription = await self.get_active_subscription(user.id, now=now)
        except Exception as e:
            logger.exception("Entitlement evaluation failed", extra={"user_id": user.id})
            raise EntitlementEvaluationError(user.id, "Failed to load subscription", cause=e) from e

        if subscription is None:
            return Entitlement(user_id=user.id, role=user.role, plan=None)

        return Entitlement(
            user_id=user.id,
            role=user.role,
            plan=subscription.plan,
            features=frozenset(subscription.features or ()),
            limits=subscription.quota,
            subscription_id=subscription.id,
        )
