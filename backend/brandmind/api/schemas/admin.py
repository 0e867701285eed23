"""
Request models for the admin endpoints.

Plan names stay plain strings here and are converted at the route so an
unknown name yields ``invalid_plan`` rather than a generic validation error.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ActivateUserRequest(BaseModel):
    plan: str = Field("free", description="free, basic, pro or enterprise")
    duration_days: int = Field(30, ge=1, le=3650)
    completion_api_key: Optional[str] = Field(None, description="Per-user upstream completion key")
    notes: Optional[str] = None


class DeactivateUserRequest(BaseModel):
    reason: Optional[str] = None


class CompletionKeyRequest(BaseModel):
    api_key: str = Field(..., min_length=1)


class UpdateSubscriptionRequest(BaseModel):
    plan: str
    duration_days: Optional[int] = Field(None, ge=1, le=3650)
    notes: Optional[str] = None
