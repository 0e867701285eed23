"""
Per-user daily rate limiting backed by the key-value store.

Each user gets a daily request budget taken from the active subscription's
``api_calls_per_day`` limit (the configured default when the user has no
subscription or the limit is unset). A limit of -1 means unlimited.

Algorithm:
1. Build key ``ratelimit:{user_id}:{YYYY-MM-DD}`` from the UTC date
2. Read the current count (absent -> 0)
3. If count >= limit -> denied, reset at the next UTC midnight
4. Otherwise atomically increment, (re)setting a 24 hour TTL, and allow

Steps 2 and 4 are separate round trips, so concurrent requests can push
the count past the limit by the number of requests in flight. Increments
are never lost.

Store failures fail open: the request is allowed and a warning is logged.
Every other gate in the pipeline fails closed.

Usage (FastAPI dependency injection):
    @router.post("/generate/post", dependencies=guard(require_auth, rate_limit()))
    async def generate_post(...):
        ...
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Request, Response

from brandmind.entitlements.models import UNLIMITED
from brandmind.platform.errors import RateLimitError
from brandmind.platform.request_context import get_request_context
from brandmind.services.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)

COUNTER_TTL_SECONDS = 86400


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_reset(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def next_utc_midnight(now: datetime) -> datetime:
    today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return today + timedelta(days=1)


def rate_limit_key(user_id: int, now: datetime) -> str:
    return f"ratelimit:{user_id}:{now.astimezone(timezone.utc).strftime('%Y-%m-%d')}"


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    Attributes:
        allowed:   Whether the request is allowed.
        limit:     Daily budget, -1 when unlimited.
        remaining: Requests left today, -1 when unlimited.
        reset_at:  Next UTC midnight.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": format_reset(self.reset_at),
        }


class DailyRateLimiter:
    """Fixed daily window counter keyed by user and UTC date."""

    def __init__(
        self,
        kv: KeyValueStore,
        clock: Callable[[], datetime] = _utcnow,
        default_limit: int = 50,
    ):
        self._kv = kv
        self._clock = clock
        self.default_limit = default_limit

    def effective_limit(self, configured: Optional[int]) -> int:
        """Subscription limit, or the default when missing or zero."""
        return configured if configured else self.default_limit

    async def check_and_increment(self, user_id: int, daily_limit: int) -> RateLimitResult:
        now = self._clock()
        reset_at = next_utc_midnight(now)

        if daily_limit == UNLIMITED:
            return RateLimitResult(allowed=True, limit=UNLIMITED, remaining=UNLIMITED, reset_at=reset_at)

        key = rate_limit_key(user_id, now)
        try:
            raw = await self._kv.get(key)
            count = int(raw) if raw else 0

            if count >= daily_limit:
                logger.info(
                    "Daily rate limit exceeded",
                    extra={"user_id": user_id, "limit": daily_limit, "count": count},
                )
                return RateLimitResult(allowed=False, limit=daily_limit, remaining=0, reset_at=reset_at)

            new_count = await self._kv.incr(key, COUNTER_TTL_SECONDS)
        except Exception:
            logger.warning(
                "Rate limit store unavailable - allowing request (fail-open)",
                extra={"user_id": user_id, "limit": daily_limit},
                exc_info=True,
            )
            return RateLimitResult(allowed=True, limit=daily_limit, remaining=daily_limit, reset_at=reset_at)

        return RateLimitResult(
            allowed=True,
            limit=daily_limit,
            remaining=max(daily_limit - new_count, 0),
            reset_at=reset_at,
        )


def rate_limit() -> Callable:
    """
    Create a FastAPI dependency enforcing the caller's daily budget.

    Must run after authentication. On success the X-RateLimit-* headers
    are added to the response; on denial a 429 ``rate_limit_exceeded``
    envelope carries the limit and reset time.
    """

    async def _dependency(request: Request, response: Response) -> Optional[RateLimitResult]:
        settings = request.app.state.settings
        if not settings.rate_limit_enabled:
            return None

        context = get_request_context(request)
        limiter: DailyRateLimiter = request.app.state.rate_limiter

        limits = context.entitlement.limits
        configured = limits.api_calls_per_day if (context.entitlement.has_subscription and limits) else None
        result = await limiter.check_and_increment(context.user_id, limiter.effective_limit(configured))

        if not result.allowed:
            raise RateLimitError(
                "Daily request limit exceeded",
                limit=result.limit,
                reset_at=format_reset(result.reset_at),
            )

        for name, value in result.headers().items():
            response.headers[name] = value
        return result

    return _dependency
