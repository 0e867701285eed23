"""
Content generation endpoints.

Pipeline per route: authentication -> feature gate -> daily rate limit.

Endpoints:
- POST /api/content/generate/post  (content_generation)
- POST /api/content/generate/ad    (ad_generator)
- POST /api/content/ideas          (content_generation)
- POST /api/content/chat           (ai_chat)

Saved posts (authentication only, scoped to the caller):
- GET    /api/content/posts
- DELETE /api/content/posts/{id}
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query

from brandmind.api.dependencies.auth import require_auth
from brandmind.api.dependencies.entitlements import require_feature
from brandmind.api.dependencies.pipeline import guard
from brandmind.api.dependencies.services import get_content_service, get_post_service
from brandmind.api.schemas.common import success
from brandmind.api.schemas.content import (
    ChatRequest,
    ContentIdeasRequest,
    GenerateAdRequest,
    GeneratePostRequest,
)
from brandmind.middleware.rate_limit import rate_limit
from brandmind.models.content_post import PostStatus
from brandmind.platform.request_context import RequestContext
from brandmind.services.content_service import ContentService
from brandmind.services.post_service import PostService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post(
    "/generate/post",
    dependencies=guard(require_auth, require_feature("content_generation"), rate_limit()),
)
async def generate_post(
    body: GeneratePostRequest,
    context: RequestContext = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    result = await content.generate_post(
        context.user,
        business_name=body.business_name,
        business_type=body.business_type,
        topic=body.topic,
        platform=body.platform,
        tone=body.tone,
        save_as_draft=body.save_as_draft,
    )
    return success(result)


@router.post(
    "/generate/ad",
    dependencies=guard(require_auth, require_feature("ad_generator"), rate_limit()),
)
async def generate_ad(
    body: GenerateAdRequest,
    context: RequestContext = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    result = await content.generate_ad(
        context.user,
        business_name=body.business_name,
        product_service=body.product_service,
        target_audience=body.target_audience,
        goal=body.goal,
    )
    return success(result)


@router.post(
    "/ideas",
    dependencies=guard(require_auth, require_feature("content_generation"), rate_limit()),
)
async def content_ideas(
    body: ContentIdeasRequest,
    context: RequestContext = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    ideas = await content.generate_ideas(context.user, body.business_type, body.count)
    return success({"ideas": ideas, "count": len(ideas)})


@router.post(
    "/chat",
    dependencies=guard(require_auth, require_feature("ai_chat"), rate_limit()),
)
async def chat(
    body: ChatRequest,
    context: RequestContext = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    history = [m.model_dump() for m in body.history]
    return success(await content.chat(context.user, body.message, history))


@router.get("/posts", dependencies=guard(require_auth))
async def list_posts(
    status: Literal["all", "draft", "scheduled", "published", "failed"] = Query("all"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    context: RequestContext = Depends(require_auth),
    posts: PostService = Depends(get_post_service),
):
    post_status = None if status == "all" else PostStatus(status)
    return success(await posts.list_posts(context.user_id, status=post_status, limit=limit, offset=offset))


@router.delete("/posts/{post_id}", dependencies=guard(require_auth))
async def delete_post(
    post_id: int,
    context: RequestContext = Depends(require_auth),
    posts: PostService = Depends(get_post_service),
):
    await posts.delete_post(context.user_id, post_id)
    return success(message="Post deleted")
