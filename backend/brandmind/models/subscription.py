"""
Subscription model.

Lifecycle:
1. Registration creates a free subscription with status=inactive
2. An admin activation sets status=active, stamps activated_by and
   activation_method, and opens the start/end validity window
3. Later admin plan changes mutate the same row in place
4. Deactivation sets status=inactive

A user's active subscription is the most recently created row with
status=active whose end_date has not passed.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)

from brandmind.db_base import Base
from brandmind.entitlements.models import (
    ActivationMethod,
    BillingCycle,
    Plan,
    SubscriptionLimits,
    SubscriptionStatus,
)
from brandmind.models.base import TimestampMixin


def _enum(enum_cls):
    return SAEnum(
        enum_cls,
        native_enum=False,
        values_callable=lambda e: [m.value for m in e],
        length=32,
    )


class Subscription(Base, TimestampMixin):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    plan = Column(_enum(Plan), nullable=False, default=Plan.FREE)
    status = Column(_enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.INACTIVE)
    features = Column(JSON, nullable=False, default=list, comment="Capability tags")
    limits = Column(JSON, nullable=False, default=dict, comment="Quota bundle, -1 = unlimited")
    price = Column(Numeric(10, 2), nullable=False, default=0)
    billing_cycle = Column(_enum(BillingCycle), nullable=False, default=BillingCycle.MONTHLY)

    activated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    activation_method = Column(_enum(ActivationMethod), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_subscriptions_user_status", "user_id", "status"),
    )

    @property
    def quota(self) -> SubscriptionLimits:
        return SubscriptionLimits.from_dict(self.limits or {})

    def to_summary(self) -> dict:
        """Client-facing view used by login and profile responses."""
        return {
            "plan": self.plan.value,
            "status": self.status.value,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "features": list(self.features or []),
            "limits": dict(self.limits or {}),
        }

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, user_id={self.user_id}, plan={self.plan}, status={self.status})>"
