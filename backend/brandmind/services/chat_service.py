"""
Persistent chat conversations with the marketing assistant.

A message without ``conversation_id`` opens a new conversation titled
after the message. A message with one continues that conversation, which
must belong to the caller and must not be deleted; otherwise the request
fails with 404 ``conversation_not_found``. The last HISTORY_WINDOW
messages are sent upstream as context.

Nothing is stored when the upstream call fails.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.models.base import as_utc, utcnow
from brandmind.models.chat import ChatConversation, ChatMessage
from brandmind.models.user import User
from brandmind.platform.errors import NotFoundError
from brandmind.services.content_service import ContentService

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 20
TITLE_LENGTH = 50


def conversation_title(message: str) -> str:
    message = message.strip()
    if len(message) > TITLE_LENGTH:
        return message[:TITLE_LENGTH] + "..."
    return message


class ChatService:
    """Stores conversations and relays messages through ContentService.chat."""

    def __init__(self, session: AsyncSession, content: ContentService):
        self.session = session
        self.content = content

    async def get_conversation(self, user_id: int, conversation_id: int) -> ChatConversation:
        """
        Raises:
            NotFoundError: code ``conversation_not_found`` when the
                conversation is missing, deleted or owned by someone else
        """
        conversation = (
            await self.session.execute(
                select(ChatConversation).where(
                    ChatConversation.id == conversation_id,
                    ChatConversation.user_id == user_id,
                    ChatConversation.is_active.is_(True),
                )
            )
        ).scalar_one_or_none()
        if conversation is None:
            raise NotFoundError("Conversation", str(conversation_id), code="conversation_not_found")
        return conversation

    async def _messages(self, conversation_id: int, limit: Optional[int] = None) -> list[ChatMessage]:
        query = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = (await self.session.execute(query)).scalars().all()
        return list(reversed(rows))

    async def send_message(self, user: User, message: str, conversation_id: Optional[int] = None) -> dict:
        conversation = None
        history: list[dict[str, str]] = []
        if conversation_id is not None:
            conversation = await self.get_conversation(user.id, conversation_id)
            history = [
                {"role": m.role, "content": m.content}
                for m in await self._messages(conversation.id, limit=HISTORY_WINDOW)
            ]

        reply = await self.content.chat(user, message, history)

        if conversation is None:
            conversation = ChatConversation(user_id=user.id, title=conversation_title(message))
            self.session.add(conversation)
            await self.session.flush()
        else:
            conversation.updated_at = utcnow()

        self.session.add_all(
            [
                ChatMessage(conversation_id=conversation.id, role="user", content=message, tokens_used=0),
                ChatMessage(
                    conversation_id=conversation.id,
                    role="assistant",
                    content=reply["response"],
                    tokens_used=reply["tokens_used"],
                    model=reply["model"],
                ),
            ]
        )
        await self.session.commit()

        logger.info(
            "Chat message stored",
            extra={"user_id": user.id, "conversation_id": conversation.id},
        )
        return {
            "conversation_id": conversation.id,
            "title": conversation.title,
            "message": {
                "role": "assistant",
                "content": reply["response"],
                "tokens_used": reply["tokens_used"],
                "model": reply["model"],
            },
        }

    async def list_conversations(self, user_id: int) -> list[dict]:
        """Active conversations, most recently used first."""
        last_message_at = func.max(ChatMessage.created_at)
        rows = (
            await self.session.execute(
                select(ChatConversation, func.count(ChatMessage.id), last_message_at)
                .outerjoin(ChatMessage, ChatMessage.conversation_id == ChatConversation.id)
                .where(ChatConversation.user_id == user_id, ChatConversation.is_active.is_(True))
                .group_by(ChatConversation.id)
                .order_by(ChatConversation.updated_at.desc(), ChatConversation.id.desc())
            )
        ).all()
        conversations = []
        for conversation, message_count, last_at in rows:
            item = conversation.to_dict()
            last_at = as_utc(last_at)
            item["message_count"] = message_count
            item["last_message_at"] = last_at.isoformat() if last_at else None
            conversations.append(item)
        return conversations

    async def get_messages(self, user_id: int, conversation_id: int) -> dict:
        conversation = await self.get_conversation(user_id, conversation_id)
        messages = await self._messages(conversation.id)
        return {
            "conversation": conversation.to_dict(),
            "messages": [m.to_dict() for m in messages],
        }

    async def delete_conversation(self, user_id: int, conversation_id: int) -> None:
        """Soft delete: the conversation and its messages stay stored but hidden."""
        conversation = await self.get_conversation(user_id, conversation_id)
        conversation.is_active = False
        await self.session.commit()
        logger.info(
            "Chat conversation deleted",
            extra={"user_id": user_id, "conversation_id": conversation_id},
        )
