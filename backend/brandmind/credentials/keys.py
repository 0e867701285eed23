"""
Random credential generation.

Every key class has its own literal prefix so a leaked string can be
identified at a glance:
- ``bm_live_``          long-lived API keys (24 random bytes)
- ``rt_{user_id}_``     refresh tokens (32 random bytes)
"""

import re
import secrets
from typing import Optional

API_KEY_PREFIX = "bm_live_"
API_KEY_BYTES = 24
REFRESH_TOKEN_BYTES = 32

_REFRESH_TOKEN_RE = re.compile(r"^rt_(\d+)_([0-9a-f]{64})$")


def random_key(prefix: str, nbytes: int) -> str:
    return f"{prefix}{secrets.token_hex(nbytes)}"


def generate_api_key() -> str:
    return random_key(API_KEY_PREFIX, API_KEY_BYTES)


def generate_refresh_token(user_id: int) -> str:
    return random_key(f"rt_{user_id}_", REFRESH_TOKEN_BYTES)


def parse_refresh_token(token: str) -> Optional[int]:
    """Return the user id embedded in a well-formed refresh token, else None."""
    match = _REFRESH_TOKEN_RE.match(token or "")
    if match is None:
        return None
    return int(match.group(1))


def key_prefix(key: Optional[str], visible: int = 12) -> str:
    """Loggable prefix of a credential."""
    if not key:
        return ""
    return key[:visible] + "..."
