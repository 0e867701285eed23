"""
Closed vocabularies for identity and entitlement.

Roles, plans and subscription states are enumerations rather than raw
strings. External input (request bodies, stored rows) is converted at the
boundary; an unknown name fails there instead of silently defaulting.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

UNLIMITED = -1


class Role(str, enum.Enum):
    """Account roles, least to most privileged."""
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, name: str) -> "Role":
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ValueError(f"Unknown role: {name!r}") from None


class Plan(str, enum.Enum):
    """Subscription tiers."""
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        return PLAN_RANKS[self]

    @classmethod
    def parse(cls, name: str) -> "Plan":
        """
        Convert an external plan name to a Plan.

        Raises:
            ValueError: If the name is not a known plan
        """
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ValueError(f"Unknown plan: {name!r}") from None


PLAN_RANKS: dict[Plan, int] = {
    Plan.FREE: 1,
    Plan.BASIC: 2,
    Plan.PRO: 3,
    Plan.ENTERPRISE: 4,
}

# Rank given to unrecognised required plans; no caller can reach it
UNKNOWN_PLAN_RANK = 99


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ActivationMethod(str, enum.Enum):
    MANUAL = "manual"
    TELEGRAM = "telegram"
    PAYMENT = "payment"


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class SubscriptionLimits:
    """Numeric quota bundle. UNLIMITED (-1) lifts a quota."""

    max_posts: int = 10
    max_accounts: int = 1
    api_calls_per_day: int = 50
    ai_generations_per_day: int = 10
    storage_mb: int = 100

    @classmethod
    def from_dict(cls, data: dict) -> "SubscriptionLimits":
        known = {k: int(v) for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> dict:
        return {
            "max_posts": self.max_posts,
            "max_accounts": self.max_accounts,
            "api_calls_per_day": self.api_calls_per_day,
            "ai_generations_per_day": self.ai_generations_per_day,
            "storage_mb": self.storage_mb,
        }


@dataclass(frozen=True)
class Entitlement:
    """
    Resolved permissions of one user for one request.

    plan is None when the user has no active subscription; features and
    limits are then empty and the free-tier defaults respectively.
    """

    user_id: int
    role: Role
    plan: Optional[Plan]
    features: frozenset[str] = field(default_factory=frozenset)
    limits: Optional[SubscriptionLimits] = None
    subscription_id: Optional[int] = None

    @property
    def has_subscription(self) -> bool:
        return self.plan is not None

    def has_feature(self, feature: str) -> bool:
        return feature in self.features
