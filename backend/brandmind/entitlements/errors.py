"""
Entitlement errors.

EntitlementEvaluationError is an AppError, so a failed evaluation renders
through the shared error envelope as a 500 ``entitlement_eval_failed``.
"""

from typing import Optional

from fastapi import status

from brandmind.platform.errors import AppError


class EntitlementEvaluationError(AppError):
    """
    Raised when entitlement evaluation fails (fail-closed).

    Gates treat this as a denial; the request never proceeds on a partial
    entitlement.
    """

    def __init__(
        self,
        user_id: int,
        detail: str,
        cause: Optional[Exception] = None,
    ):
        self.user_id = user_id
        self.detail = detail
        self.cause = cause
        super().__init__(
            code="entitlement_eval_failed",
            message="Could not evaluate entitlements",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

