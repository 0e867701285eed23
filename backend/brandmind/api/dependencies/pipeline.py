"""
Request pipeline composition.

``guard`` turns an ordered list of stages into the ``dependencies=[...]``
list of a route or router. FastAPI runs them in the given order and stops
at the first one that raises. The composer does not reorder stages or
insert missing ones; authentication must come first for the later gates
to find a context.

Usage:
    @router.post(
        "/generate/ad",
        dependencies=guard(require_auth, require_feature("ad_generator"), rate_limit()),
    )
"""

from typing import Callable

from fastapi import Depends
from fastapi.params import Depends as DependsParam

from brandmind.api.dependencies.auth import optional_auth, require_auth
from brandmind.api.dependencies.entitlements import require_feature, require_plan, require_role
from brandmind.middleware.rate_limit import rate_limit


def guard(*stages: Callable) -> list[DependsParam]:
    return [Depends(stage) for stage in stages]


__all__ = [
    "guard",
    "optional_auth",
    "rate_limit",
    "require_auth",
    "require_feature",
    "require_plan",
    "require_role",
]
