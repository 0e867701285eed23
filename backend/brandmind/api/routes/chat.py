"""
Conversation endpoints for the marketing assistant.

Every route requires authentication and the ``ai_chat`` feature; sending a
message also counts against the daily rate limit. Conversations are
private: another user's conversation id answers 404
``conversation_not_found``.

Endpoints:
- POST   /api/chat/message                      - Send, optionally continuing a conversation
- GET    /api/chat/conversations                - Active conversations
- GET    /api/chat/conversations/{id}/messages  - Conversation transcript
- DELETE /api/chat/conversations/{id}           - Soft delete
"""

import logging

from fastapi import APIRouter, Depends

from brandmind.api.dependencies.auth import require_auth
from brandmind.api.dependencies.entitlements import require_feature
from brandmind.api.dependencies.pipeline import guard
from brandmind.api.dependencies.services import get_chat_service
from brandmind.api.schemas.common import success
from brandmind.api.schemas.content import ConversationMessageRequest
from brandmind.middleware.rate_limit import rate_limit
from brandmind.platform.request_context import RequestContext
from brandmind.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"],
    dependencies=guard(require_auth, require_feature("ai_chat")),
)


@router.post("/message", dependencies=guard(rate_limit()))
async def send_message(
    body: ConversationMessageRequest,
    context: RequestContext = Depends(require_auth),
    chat: ChatService = Depends(get_chat_service),
):
    return success(await chat.send_message(context.user, body.message, body.conversation_id))


@router.get("/conversations")
async def list_conversations(
    context: RequestContext = Depends(require_auth),
    chat: ChatService = Depends(get_chat_service),
):
    return success(await chat.list_conversations(context.user_id))


@router.get("/conversations/{conversation_id}/messages")
async def conversation_messages(
    conversation_id: int,
    context: RequestContext = Depends(require_auth),
    chat: ChatService = Depends(get_chat_service),
):
    return success(await chat.get_messages(context.user_id, conversation_id))


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: int,
    context: RequestContext = Depends(require_auth),
    chat: ChatService = Depends(get_chat_service),
):
    await chat.delete_conversation(context.user_id, conversation_id)
    return success(message="Conversation deleted")
