"""
Marketing content generation through the upstream completion API.

Every successful generation appends a usage_logs row with the upstream
token count. The upstream credential is the user's own key when one is
stored, otherwise the process-wide master key; with neither the request
fails with 503 ``no_api_key``.
"""

import logging
import re
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.config.settings import Settings
from brandmind.credentials.encryption import CredentialCipher, CredentialEncryptionError
from brandmind.models.content_post import ContentPost, PostStatus
from brandmind.models.usage_log import UsageLog
from brandmind.models.user import User
from brandmind.platform.errors import ServiceUnavailableError, UpstreamError
from brandmind.services.completion_client import (
    CompletionClient,
    CompletionResult,
    UpstreamCompletionError,
)

logger = logging.getLogger(__name__)

PLATFORM_GUIDELINES = {
    "instagram": "Visually engaging copy, 5-10 hashtags, end with a call to interact.",
    "facebook": "Longer, story-driven copy with a question that invites comments.",
    "twitter": "Short and punchy (under 280 characters), 1-2 hashtags.",
    "tiktok": "Playful, youthful tone built around a trend or challenge.",
    "linkedin": "Professional tone with figures or industry insight.",
}

_CONTENT_RE = re.compile(r"Content:\s*(.+?)(?=Hashtags:|$)", re.S | re.I)
_HASHTAGS_RE = re.compile(r"Hashtags:\s*(.+?)$", re.S | re.I)
_HEADLINE_RE = re.compile(r"Headline:\s*(.+?)$", re.M | re.I)
_BODY_RE = re.compile(r"Body:\s*(.+?)(?=Call to action:|$)", re.S | re.I)
_CTA_RE = re.compile(r"Call to action:\s*(.+?)$", re.S | re.I)
_IDEA_BULLET_RE = re.compile(r"^[\d\-\.\)\*\s]+")


def parse_post(text: str, business_type: str) -> tuple[str, list[str]]:
    """Split a generated post into body and hashtags."""
    content_match = _CONTENT_RE.search(text)
    hashtags_match = _HASHTAGS_RE.search(text)

    content = content_match.group(1).strip() if content_match else text.strip()
    hashtags_text = hashtags_match.group(1) if hashtags_match else ""
    hashtags = [tag.lstrip("#") for tag in re.split(r"[\s,]+", hashtags_text) if tag.startswith("#")]
    return content, hashtags or ["marketing", business_type]


def parse_ad(text: str) -> dict[str, str]:
    headline = _HEADLINE_RE.search(text)
    body = _BODY_RE.search(text)
    cta = _CTA_RE.search(text)
    return {
        "headline": headline.group(1).strip() if headline else "Ad headline",
        "body": body.group(1).strip() if body else text.strip(),
        "cta": cta.group(1).strip() if cta else "Order now",
    }


def parse_ideas(text: str, count: int) -> list[str]:
    ideas = []
    for line in text.splitlines():
        idea = _IDEA_BULLET_RE.sub("", line).strip()
        if idea:
            ideas.append(idea)
    return ideas[:count]


class ContentService:
    """Builds prompts, calls the completion API and records usage."""

    def __init__(
        self,
        session: AsyncSession,
        client: CompletionClient,
        settings: Settings,
        cipher: CredentialCipher,
    ):
        self.session = session
        self.client = client
        self.settings = settings
        self.cipher = cipher

    def resolve_api_key(self, user: User) -> str:
        """
        Pick the upstream credential for ``user``.

        Raises:
            ServiceUnavailableError: code ``no_api_key`` when neither a user
                key nor a master key is available
        """
        if user.completion_api_key_encrypted:
            try:
                return self.cipher.decrypt(user.completion_api_key_encrypted)
            except CredentialEncryptionError:
                logger.warning(
                    "Stored completion key unusable; falling back to master key",
                    extra={"user_id": user.id},
                    exc_info=True,
                )
        if self.settings.master_completion_api_key:
            return self.settings.master_completion_api_key
        raise ServiceUnavailableError("No completion API key is available", code="no_api_key")

    async def _complete(
        self,
        user: User,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        api_key = self.resolve_api_key(user)
        try:
            return await self.client.complete(
                api_key,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except UpstreamCompletionError as e:
            raise UpstreamError(
                "Content generation failed",
                details={"upstream_status": e.status_code},
            ) from e

    async def _log_usage(self, user_id: int, feature: str, action: str, tokens_used: int) -> None:
        self.session.add(
            UsageLog(
                user_id=user_id,
                feature=feature,
                action=action,
                api_calls=1,
                tokens_used=tokens_used,
            )
        )
        await self.session.commit()

    async def generate_post(
        self,
        user: User,
        business_name: str,
        business_type: str,
        topic: str,
        platform: str,
        tone: Optional[str] = None,
        save_as_draft: bool = False,
    ) -> dict:
        """
        Generate a social post. With ``save_as_draft`` the post is stored as
        a draft in the same transaction as the usage row and its id returned.
        """
        tone = tone or "friendly"
        guidelines = PLATFORM_GUIDELINES.get(platform.lower(), "General social media copy.")
        system_prompt = (
            f"You are an expert content writer for {platform}.\n"
            f"Guidelines: {guidelines}\n"
            f"Tone: {tone}\n"
            f"Business type: {business_type}\n"
            f"Business name: {business_name}"
        )
        user_prompt = (
            f"Write an engaging post about: {topic}\n\n"
            "Reply format:\n"
            "Content: [the post]\n"
            "Hashtags: [#tag1 #tag2 #tag3]"
        )
        result = await self._complete(
            user,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=800,
            temperature=0.8,
        )
        content, hashtags = parse_post(result.text, business_type)

        post_id = None
        if save_as_draft:
            post = ContentPost(
                user_id=user.id,
                business_name=business_name,
                topic=topic,
                content=content,
                hashtags=hashtags,
                target_platforms=[platform],
                status=PostStatus.DRAFT,
                ai_model=result.model,
                tone=tone,
            )
            self.session.add(post)
            await self.session.flush()
            post_id = post.id

        await self._log_usage(user.id, "content_generation", "social_post_generated", result.tokens_used)
        return {
            "post_id": post_id,
            "content": content,
            "hashtags": hashtags,
            "platform": platform,
            "business_name": business_name,
        }

    async def generate_ad(
        self,
        user: User,
        business_name: str,
        product_service: str,
        target_audience: str,
        goal: str,
    ) -> dict:
        system_prompt = (
            "You are an expert advertising copywriter. "
            "You write ad copy that converts."
        )
        user_prompt = (
            "Write a professional ad:\n"
            f"- Business: {business_name}\n"
            f"- Product/service: {product_service}\n"
            f"- Target audience: {target_audience}\n"
            f"- Goal: {goal}\n\n"
            "Reply format:\n"
            "Headline: [short catchy headline]\n"
            "Body: [main ad text]\n"
            "Call to action: [strong CTA]"
        )
        result = await self._complete(
            user,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=600,
            temperature=0.7,
        )
        await self._log_usage(user.id, "ad_generator", "ad_copy_generated", result.tokens_used)
        return parse_ad(result.text)

    async def generate_ideas(self, user: User, business_type: str, count: int = 10) -> list[str]:
        user_prompt = (
            f"Suggest {count} creative content ideas for a {business_type} business.\n"
            "One idea per line, without numbers or bullets."
        )
        result = await self._complete(
            user,
            [
                {"role": "system", "content": "You generate creative digital marketing content ideas."},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=1000,
            temperature=0.9,
        )
        await self._log_usage(user.id, "content_generation", "ideas_generated", result.tokens_used)
        return parse_ideas(result.text, count)

    async def chat(
        self,
        user: User,
        message: str,
        history: Optional[list[dict[str, str]]] = None,
    ) -> dict:
        system_prompt = (
            "You are BrandMind AI, a marketing assistant that helps businesses "
            "run their digital marketing. Give practical, professional advice."
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": message})

        result = await self._complete(user, messages, max_tokens=1500, temperature=0.7)
        await self._log_usage(user.id, "ai_chat", "message_sent", result.tokens_used)
        return {"response": result.text, "tokens_used": result.tokens_used, "model": result.model}
