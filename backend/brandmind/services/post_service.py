"""Saved content posts: owner-scoped listing and deletion."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.models.content_post import ContentPost, PostStatus
from brandmind.platform.errors import NotFoundError

logger = logging.getLogger(__name__)


class PostService:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_posts(
        self,
        user_id: int,
        status: Optional[PostStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        query = select(ContentPost).where(ContentPost.user_id == user_id)
        if status is not None:
            query = query.where(ContentPost.status == status)
        query = query.order_by(ContentPost.created_at.desc(), ContentPost.id.desc()).limit(limit).offset(offset)
        posts = (await self.session.execute(query)).scalars().all()
        return [p.to_dict() for p in posts]

    async def delete_post(self, user_id: int, post_id: int) -> None:
        """
        Raises:
            NotFoundError: code ``post_not_found`` when the post is missing
                or owned by someone else
        """
        post = (
            await self.session.execute(
                select(ContentPost).where(ContentPost.id == post_id, ContentPost.user_id == user_id)
            )
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post", str(post_id), code="post_not_found")
        await self.session.delete(post)
        await self.session.commit()
        logger.info("Content post deleted", extra={"user_id": user_id, "post_id": post_id})
