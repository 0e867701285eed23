"""
Saved content posts.

Generated social posts are stored here when the caller asks to keep them
as drafts. Rows are private to their owner.
"""

import enum

from sqlalchemy import Boolean, Column, Enum as SAEnum, ForeignKey, Index, Integer, JSON, String, Text

from brandmind.db_base import Base
from brandmind.models.base import TimestampMixin, as_utc


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


class ContentPost(Base, TimestampMixin):
    __tablename__ = "content_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    business_name = Column(String(255), nullable=True)
    topic = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    content_type = Column(String(32), nullable=False, default="text")
    hashtags = Column(JSON, nullable=False, default=list)
    target_platforms = Column(JSON, nullable=False, default=list)
    status = Column(
        SAEnum(PostStatus, native_enum=False, values_callable=lambda e: [m.value for m in e], length=32),
        nullable=False,
        default=PostStatus.DRAFT,
    )
    ai_generated = Column(Boolean, nullable=False, default=True)
    ai_model = Column(String(128), nullable=True)
    tone = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_content_posts_user_status", "user_id", "status"),
    )

    def to_dict(self) -> dict:
        created_at = as_utc(self.created_at)
        updated_at = as_utc(self.updated_at)
        return {
            "id": self.id,
            "business_name": self.business_name,
            "topic": self.topic,
            "content": self.content,
            "content_type": self.content_type,
            "hashtags": list(self.hashtags or []),
            "target_platforms": list(self.target_platforms or []),
            "status": self.status.value,
            "ai_generated": self.ai_generated,
            "ai_model": self.ai_model,
            "tone": self.tone,
            "created_at": created_at.isoformat() if created_at else None,
            "updated_at": updated_at.isoformat() if updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<ContentPost(id={self.id}, user_id={self.user_id}, status={self.status})>"
