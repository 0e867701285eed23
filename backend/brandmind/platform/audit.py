"""
Admin action audit trail.

Every administrative mutation writes one AdminAction row in the same
transaction as the change it describes, so the trail and the change commit
or roll back together. Rows are append-only.

Credential values never appear in details; only prefixes do.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.models.admin_action import AdminAction, AdminActionType

logger = logging.getLogger(__name__)


def record_admin_action(
    session: AsyncSession,
    admin_id: int,
    action_type: AdminActionType,
    target_user_id: Optional[int],
    details: Optional[dict[str, Any]] = None,
) -> AdminAction:
    """Stage an AdminAction row on ``session``. The caller commits."""
    action = AdminAction(
        admin_id=admin_id,
        action_type=action_type,
        target_user_id=target_user_id,
        details=details or {},
    )
    session.add(action)
    logger.info(
        "Admin action recorded",
        extra={
            "admin_id": admin_id,
            "action_type": action_type.value,
            "target_user_id": target_user_id,
        },
    )
    return action


def serialize_admin_action(
    action: AdminAction,
    admin_name: Optional[str] = None,
    target_user_name: Optional[str] = None,
) -> dict:
    return {
        "id": action.id,
        "admin_id": action.admin_id,
        "admin_name": admin_name,
        "action_type": action.action_type.value,
        "target_user_id": action.target_user_id,
        "target_user_name": target_user_name,
        "details": action.details or {},
        "created_at": action.created_at.isoformat() if action.created_at else None,
    }
