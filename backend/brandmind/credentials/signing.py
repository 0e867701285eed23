"""HMAC signing primitives shared by token handling."""

import base64
import hashlib
import hmac


def b64url_encode(raw: bytes) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def sign(data: str, secret: str) -> str:
    """HMAC-SHA256 of ``data`` under ``secret``, URL-safe base64 encoded."""
    digest = hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return b64url_encode(digest)


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
