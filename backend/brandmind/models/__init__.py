"""ORM models. Importing this package registers every table on Base.metadata."""

from brandmind.models.admin_action import AdminAction, AdminActionType
from brandmind.models.chat import ChatConversation, ChatMessage
from brandmind.models.content_post import ContentPost, PostStatus
from brandmind.models.subscription import Subscription
from brandmind.models.usage_log import UsageLog
from brandmind.models.user import User

__all__ = [
    "AdminAction",
    "AdminActionType",
    "ChatConversation",
    "ChatMessage",
    "ContentPost",
    "PostStatus",
    "Subscription",
    "UsageLog",
    "User",
]
