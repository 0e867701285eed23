"""
Entitlement policy evaluation.

Pure functions deciding role, plan and feature access. They take already
resolved values (never a request or a session) and return a result object
describing the decision; translating a denial into an HTTP error is the
caller's job.

Role and entitlement checks are independent: passing a role gate says
nothing about plan or feature gates, and a caller without an active
subscription fails every plan and feature gate.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from brandmind.entitlements.models import (
    PLAN_RANKS,
    UNKNOWN_PLAN_RANK,
    Plan,
    Role,
)

logger = logging.getLogger(__name__)

REASON_FORBIDDEN = "forbidden"
REASON_NO_SUBSCRIPTION = "no_subscription"
REASON_UPGRADE_REQUIRED = "upgrade_required"
REASON_FEATURE_NOT_AVAILABLE = "feature_not_available"


@dataclass(frozen=True)
class RoleCheckResult:
    allowed: bool
    role: Role
    required_roles: tuple[Role, ...]
    reason: Optional[str] = None


@dataclass(frozen=True)
class PlanCheckResult:
    """Result of a plan tier check."""
    allowed: bool
    current_plan: Optional[Plan]
    required_plans: tuple[str, ...]
    reason: Optional[str] = None


@dataclass(frozen=True)
class FeatureCheckResult:
    """Result of a feature membership check."""
    allowed: bool
    feature: str
    current_plan: Optional[Plan]
    reason: Optional[str] = None


def authorize_role(role: Role, required_roles: Iterable[Role]) -> RoleCheckResult:
    """
    Decide whether ``role`` satisfies a route's role requirement.

    - superadmin passes every check
    - admin passes when the requirement names admin or user
    - any other role passes only when it is named literally
    """
    required = tuple(required_roles)

    if role == Role.SUPERADMIN:
        allowed = True
    elif role == Role.ADMIN and (Role.ADMIN in required or Role.USER in required):
        allowed = True
    else:
        allowed = role in required

    return RoleCheckResult(
        allowed=allowed,
        role=role,
        required_roles=required,
        reason=None if allowed else REASON_FORBIDDEN,
    )


def plan_rank(name: Plan | str) -> int:
    """Rank of a plan name; unrecognised names get UNKNOWN_PLAN_RANK."""
    if isinstance(name, Plan):
        return PLAN_RANKS[name]
    try:
        return PLAN_RANKS[Plan.parse(name)]
    except ValueError:
        return UNKNOWN_PLAN_RANK


def authorize_plan(
    current_plan: Optional[Plan],
    required_plans: Iterable[Plan | str],
) -> PlanCheckResult:
    """
    Decide whether ``current_plan`` meets the lowest of ``required_plans``.

    Args:
        current_plan: Plan of the caller's active subscription, or None
        required_plans: Acceptable plans; the lowest ranked one is the bar

    Returns:
        PlanCheckResult. A missing subscription is reported as
        ``no_subscription``, a tier below the bar as ``upgrade_required``.
    """
    required = tuple(p.value if isinstance(p, Plan) else str(p) for p in required_plans)

    if current_plan is None:
        return PlanCheckResult(
            allowed=False,
            current_plan=None,
            required_plans=required,
            reason=REASON_NO_SUBSCRIPTION,
        )

    if not required:
        return PlanCheckResult(allowed=True, current_plan=current_plan, required_plans=required)

    minimum_rank = min(plan_rank(p) for p in required)
    allowed = current_plan.rank >= minimum_rank

    if not allowed:
        logger.debug(
            "Plan requirement not met",
            extra={"current_plan": current_plan.value, "required_plans": required},
        )

    return PlanCheckResult(
        allowed=allowed,
        current_plan=current_plan,
        required_plans=required,
        reason=None if allowed else REASON_UPGRADE_REQUIRED,
    )


def authorize_feature(
    features: Optional[Iterable[str]],
    feature: str,
    current_plan: Optional[Plan] = None,
) -> FeatureCheckResult:
    """
    Decide whether ``feature`` is in the subscription's feature set.

    ``features`` is None when the caller has no active subscription.
    """
    if features is None:
        return FeatureCheckResult(
            allowed=False,
            feature=feature,
            current_plan=None,
            reason=REASON_NO_SUBSCRIPTION,
        )

    allowed = feature in set(features)
    return FeatureCheckResult(
        allowed=allowed,
        feature=feature,
        current_plan=current_plan,
        reason=None if allowed else REASON_FEATURE_NOT_AVAILABLE,
    )
