"""
AdminAction model.

Append-only log of administrative mutations. Rows are never updated or
deleted by the application; every admin route that changes a user or a
subscription writes exactly one row.
"""

import enum

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer, JSON

from brandmind.db_base import Base
from brandmind.models.base import utcnow


class AdminActionType(str, enum.Enum):
    """Kinds of administrative mutation."""
    ACTIVATE_USER = "activate_user"
    DEACTIVATE_USER = "deactivate_user"
    UPDATE_COMPLETION_KEY = "update_completion_key"
    REGENERATE_API_KEY = "regenerate_api_key"
    CHANGE_SUBSCRIPTION_PLAN = "change_subscription_plan"


class AdminAction(Base):
    __tablename__ = "admin_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Administrator who performed the action",
    )
    action_type = Column(
        SAEnum(
            AdminActionType,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
            length=64,
        ),
        nullable=False,
    )
    target_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<AdminAction(id={self.id}, action_type={self.action_type}, target_user_id={self.target_user_id})>"
