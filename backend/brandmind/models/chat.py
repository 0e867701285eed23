"""
Chat conversation history.

A conversation belongs to one user and holds an ordered list of messages.
Deleting a conversation only clears ``is_active``; its messages stay in
place and the conversation disappears from every read view.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from brandmind.db_base import Base
from brandmind.models.base import TimestampMixin, as_utc, utcnow


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


class ChatConversation(Base, TimestampMixin):
    __tablename__ = "chat_conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, comment="First user message, truncated")
    is_active = Column(Boolean, nullable=False, default=True, comment="False once soft-deleted")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<ChatConversation(id={self.id}, user_id={self.user_id}, is_active={self.is_active})>"


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        Integer,
        ForeignKey("chat_conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(String(16), nullable=False, comment="user or assistant")
    content = Column(Text, nullable=False)
    tokens_used = Column(Integer, nullable=False, default=0)
    model = Column(String(128), nullable=True, comment="Upstream model, assistant messages only")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_chat_messages_conversation_created", "conversation_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "tokens_used": self.tokens_used,
            "model": self.model,
            "created_at": _iso(self.created_at),
        }
