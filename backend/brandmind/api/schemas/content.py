"""Request models for the content generation endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class GeneratePostRequest(BaseModel):
    business_name: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1, description="instagram, facebook, twitter, tiktok, linkedin")
    tone: Optional[str] = None
    save_as_draft: bool = False


class GenerateAdRequest(BaseModel):
    business_name: str = Field(..., min_length=1)
    product_service: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    goal: str = Field(..., min_length=1)


class ContentIdeasRequest(BaseModel):
    business_type: str = Field(..., min_length=1)
    count: int = Field(10, ge=1, le=30)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: list[ChatMessage] = Field(default_factory=list, max_length=20)


class ConversationMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_id: Optional[int] = Field(None, ge=1)
