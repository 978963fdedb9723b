"""Session Manager.

Maps an opaque refresh token (carried in the ``userbase_refresh`` cookie) to
a user id. Tokens are random UUID4 strings; only their SHA-256 digest is
persisted, so a store leak does not expose live tokens.

Resolution outcomes:
- no token, or no active row for its hash -> UnauthorizedError
- row present but expired -> SessionExpiredError (distinct 401)
- otherwise the owning user id

Reads never mutate the session row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.userbase import SessionExpiredError, UnauthorizedError
from src.domain.models.session import DEFAULT_SESSION_TTL_DAYS, hash_refresh_token

logger = get_logger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """A freshly issued session. ``refresh_token`` is shown to the client once."""

    user_id: str
    refresh_token: str
    expires_at: datetime


@dataclass(frozen=True)
class ResolvedSession:
    """The user behind a valid refresh token."""

    user_id: str
    expires_at: datetime


class SessionService:
    """Issues, resolves and revokes refresh-token sessions."""

    def __init__(
        self,
        store: IdentityStoreProtocol,
        time_authority: TimeAuthorityProtocol,
        session_ttl_days: int = DEFAULT_SESSION_TTL_DAYS,
    ) -> None:
        self._store = store
        self._time = time_authority
        self._ttl = timedelta(days=session_ttl_days)

    async def resolve_session(self, refresh_token: str | None) -> ResolvedSession:
        """Resolve a refresh token to its session.

        Args:
            refresh_token: Raw cookie value, possibly missing.

        Returns:
            ResolvedSession for the owning user.

        Raises:
            UnauthorizedError: Missing token or no active session for it.
            SessionExpiredError: Session exists but has expired.
            PersistenceError: Store lookup failed.
        """
        if not refresh_token:
            raise UnauthorizedError()

        session = await self._store.get_active_session_by_hash(
            hash_refresh_token(refresh_token)
        )
        if session is None:
            raise UnauthorizedError()

        if session.is_expired(self._time.utcnow()):
            logger.info("session_expired", session_id=session.id, user_id=session.user_id)
            raise SessionExpiredError()

        return ResolvedSession(user_id=session.user_id, expires_at=session.expires_at)

    async def resolve_user_id(self, refresh_token: str | None) -> str:
        """Shorthand for resolve_session(...).user_id."""
        return (await self.resolve_session(refresh_token)).user_id

    async def issue_session(
        self, user_id: str, user_agent: str | None = None
    ) -> IssuedSession:
        """Issue a new session for a user.

        The returned token is the only copy of the plaintext; the store
        receives its hash.
        """
        refresh_token = str(uuid4())
        now = self._time.utcnow()
        expires_at = now + self._ttl

        session = await self._store.create_session(
            user_id=user_id,
            token_hash=hash_refresh_token(refresh_token),
            created_at=now,
            expires_at=expires_at,
            user_agent=user_agent,
        )
        logger.info("session_issued", session_id=session.id, user_id=user_id)
        return IssuedSession(
            user_id=user_id, refresh_token=refresh_token, expires_at=expires_at
        )

    async def revoke_session(self, refresh_token: str | None) -> bool:
        """Sign out: stamp revoked_at on the session for this token.

        Returns:
            True if an active session was revoked. Revoking an unknown or
            already-revoked token returns False.
        """
        if not refresh_token:
            return False
        revoked = await self._store.revoke_session(
            hash_refresh_token(refresh_token), self._time.utcnow()
        )
        if revoked:
            logger.info("session_revoked")
        return revoked
