"""
Client for the upstream chat completion API (Perplexity-compatible).

One httpx.AsyncClient is shared for the lifetime of the application; the
API key is supplied per call because every user may bring their own.

Failures raise UpstreamCompletionError:
- non-2xx response        -> status_code set, body truncated to 500 chars
- transport error/timeout -> status_code None
- malformed response body -> status_code set, body truncated
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from brandmind.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.7
TOP_P = 0.9


class UpstreamCompletionError(Exception):
    """Error from the upstream completion API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class CompletionResult:
    text: str
    tokens_used: int
    model: str


class CompletionClient:
    """Sends chat messages upstream and returns the generated text."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.completion_api_url
        self.model = settings.completion_model
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.completion_timeout_seconds)

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def complete(
        self,
        api_key: str,
        messages: list[dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> CompletionResult:
        """
        Run one chat completion.

        Args:
            api_key: Upstream credential for this call
            messages: Ordered role-tagged messages (system/user/assistant)
            max_tokens: Generation budget
            temperature: Sampling temperature

        Raises:
            UpstreamCompletionError: On any upstream or transport failure
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": TOP_P,
            "stream": False,
        }

        try:
            response = await self._client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            logger.error(
                "Completion API HTTP error",
                extra={"status_code": e.response.status_code, "model": self.model},
            )
            raise UpstreamCompletionError(
                f"Completion API error: {e.response.status_code}",
                status_code=e.response.status_code,
                body=body,
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "Completion API request error",
                extra={"error_type": type(e).__name__, "model": self.model},
            )
            raise UpstreamCompletionError(f"Request failed: {type(e).__name__}") from e

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamCompletionError(
                "Malformed completion response",
                status_code=response.status_code,
                body=response.text[:500],
            ) from e

        usage = data.get("usage") or {}
        return CompletionResult(
            text=text,
            tokens_used=int(usage.get("total_tokens") or 0),
            model=data.get("model") or self.model,
        )
