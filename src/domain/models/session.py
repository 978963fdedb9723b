"""Refresh-token session domain model.

Invariants:
- The plaintext refresh token is never persisted, only its SHA-256 digest.
- A session is valid iff revoked_at is None and now < expires_at.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime

REFRESH_COOKIE_NAME = "userbase_refresh"
DEFAULT_SESSION_TTL_DAYS = 30


def hash_refresh_token(token: str) -> str:
    """Return the hex SHA-256 digest used as the session lookup key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Session:
    """An authenticated session for one user.

    Attributes:
        id: Store-assigned identifier.
        user_id: Owning user.
        refresh_token_hash: SHA-256 hex of the refresh token.
        expires_at: Hard expiry.
        revoked_at: When the session was signed out, if ever.
        created_at: When the session was issued.
        user_agent: Client user agent recorded at issue time.
    """

    id: str
    user_id: str
    refresh_token_hash: str
    expires_at: datetime
    revoked_at: datetime | None = None
    created_at: datetime | None = None
    user_agent: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
