"""FastAPI dependencies forming the authorization pipeline."""

from brandmind.api.dependencies.pipeline import (
    guard,
    optional_auth,
    rate_limit,
    require_auth,
    require_feature,
    require_plan,
    require_role,
)

__all__ = [
    "guard",
    "optional_auth",
    "rate_limit",
    "require_auth",
    "require_feature",
    "require_plan",
    "require_role",
]
