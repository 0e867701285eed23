"""Per-generation usage records written by the content routes."""

from sqlalchemy import Column, ForeignKey, Integer, String

from brandmind.db_base import Base
from brandmind.models.base import TimestampMixin


class UsageLog(Base, TimestampMixin):
    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    feature = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    api_calls = Column(Integer, nullable=False, default=1)
    tokens_used = Column(Integer, nullable=False, default=0)
