"""
Entitlement evaluation: roles, plan tiers and feature flags.

The database-backed resolver lives in ``brandmind.entitlements.service``
and is imported from there directly.
"""

from brandmind.entitlements.catalog import PLAN_CATALOG, PlanDefinition, get_plan_definition
from brandmind.entitlements.errors import EntitlementEvaluationError
from brandmind.entitlements.models import (
    UNLIMITED,
    ActivationMethod,
    BillingCycle,
    Entitlement,
    Plan,
    Role,
    SubscriptionLimits,
    SubscriptionStatus,
)
from brandmind.entitlements.policy import (
    FeatureCheckResult,
    PlanCheckResult,
    RoleCheckResult,
    authorize_feature,
    authorize_plan,
    authorize_role,
    plan_rank,
)

__all__ = [
    "ActivationMethod",
    "BillingCycle",
    "Entitlement",
    "EntitlementEvaluationError",
    "FeatureCheckResult",
    "PLAN_CATALOG",
    "Plan",
    "PlanCheckResult",
    "PlanDefinition",
    "Role",
    "RoleCheckResult",
    "SubscriptionLimits",
    "SubscriptionStatus",
    "UNLIMITED",
    "authorize_feature",
    "authorize_plan",
    "authorize_role",
    "get_plan_definition",
    "plan_rank",
]
