"""
Plan catalog.

Feature sets, quotas and prices for every plan. Activations and plan
changes copy the catalog entry onto the subscription row, so later catalog
edits do not alter existing subscriptions.
"""

from dataclasses import dataclass
from decimal import Decimal

from brandmind.entitlements.models import UNLIMITED, Plan, SubscriptionLimits


@dataclass(frozen=True)
class PlanDefinition:
    plan: Plan
    features: tuple[str, ...]
    limits: SubscriptionLimits
    price: Decimal


_FREE_FEATURES = ("content_generation", "ai_chat")
_PRO_FEATURES = (
    "content_generation",
    "ai_chat",
    "social_scheduling",
    "analytics",
    "smart_replies",
    "ad_generator",
    "trend_scanner",
    "pdf_reports",
)

PLAN_CATALOG: dict[Plan, PlanDefinition] = {
    Plan.FREE: PlanDefinition(
        plan=Plan.FREE,
        features=_FREE_FEATURES,
        limits=SubscriptionLimits(
            max_posts=10,
            max_accounts=1,
            api_calls_per_day=50,
            ai_generations_per_day=10,
            storage_mb=100,
        ),
        price=Decimal("0"),
    ),
    Plan.BASIC: PlanDefinition(
        plan=Plan.BASIC,
        features=_FREE_FEATURES + ("social_scheduling", "basic_analytics"),
        limits=SubscriptionLimits(
            max_posts=50,
            max_accounts=3,
            api_calls_per_day=200,
            ai_generations_per_day=50,
            storage_mb=500,
        ),
        price=Decimal("299"),
    ),
    Plan.PRO: PlanDefinition(
        plan=Plan.PRO,
        features=_PRO_FEATURES,
        limits=SubscriptionLimits(
            max_posts=500,
            max_accounts=10,
            api_calls_per_day=1000,
            ai_generations_per_day=200,
            storage_mb=2000,
        ),
        price=Decimal("599"),
    ),
    Plan.ENTERPRISE: PlanDefinition(
        plan=Plan.ENTERPRISE,
        features=_PRO_FEATURES + (
            "white_label",
            "api_access",
            "priority_support",
            "custom_ai_models",
        ),
        limits=SubscriptionLimits(
            max_posts=UNLIMITED,
            max_accounts=UNLIMITED,
            api_calls_per_day=10000,
            ai_generations_per_day=UNLIMITED,
            storage_mb=10000,
        ),
        price=Decimal("1499"),
    ),
}


def get_plan_definition(plan: Plan | str) -> PlanDefinition:
    """
    Look up a plan in the catalog.

    Raises:
        ValueError: If ``plan`` is a string that names no known plan
    """
    if not isinstance(plan, Plan):
        plan = Plan.parse(plan)
    return PLAN_CATALOG[plan]
