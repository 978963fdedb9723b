"""Identity Store port.

Typed CRUD over every table this subsystem touches: identities, sessions,
identity challenges, soft votes and soft posts. It is the only seam through
which services reach the persistence collaborator.

Store contract:
- Exact-match filtering and ``in`` filtering on indexed columns
- Unique constraints on (identity type, identifier), session token hash and
  pending soft vote idempotency key
- Single-row atomic insert/update/delete, no cross-table transactions
- Failures surface as PersistenceError; a unique-constraint violation
  carries code ``23505``
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, Sequence

from src.domain.models.challenge import IdentityChallenge
from src.domain.models.identity import Identity
from src.domain.models.session import Session
from src.domain.models.soft_post import SoftPost
from src.domain.models.soft_vote import SoftVote


class UserRowTable(str, Enum):
    """Tables whose per-user row counts are reported by merge preview."""

    IDENTITIES = "identities"
    AUTH_METHODS = "auth_methods"
    SESSIONS = "sessions"
    SOFT_POSTS = "soft_posts"
    SOFT_VOTES = "soft_votes"


class IdentityStoreProtocol(Protocol):
    """Protocol for Identity Store adapters."""

    # Sessions

    async def get_active_session_by_hash(self, token_hash: str) -> Session | None:
        """Return the non-revoked session with this token hash, if any."""
        ...

    async def create_session(
        self,
        user_id: str,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
        user_agent: str | None = None,
    ) -> Session:
        """Insert a new session row."""
        ...

    async def revoke_session(self, token_hash: str, revoked_at: datetime) -> bool:
        """Stamp revoked_at on the active session with this hash.

        Returns:
            True if a row was revoked, False if none was active.
        """
        ...

    # Identity challenges

    async def create_challenge(
        self,
        user_id: str,
        identity_type: str,
        identifier: str,
        nonce: str,
        message: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> IdentityChallenge:
        """Insert a new identity challenge."""
        ...

    async def get_latest_open_challenge(
        self, user_id: str, identity_type: str, identifier: str
    ) -> IdentityChallenge | None:
        """Return the newest unconsumed challenge for this claim."""
        ...

    async def consume_challenge(self, challenge_id: str, consumed_at: datetime) -> bool:
        """Mark a challenge consumed if it was not already.

        Returns:
            True if this call consumed it, False if it was already used.
        """
        ...

    # Identities

    async def find_identity(self, identity_type: str, identifier: str) -> Identity | None:
        """Look up an identity by its unique (type, identifier) pair."""
        ...

    async def get_identity(self, identity_id: str) -> Identity | None:
        """Look up an identity by id."""
        ...

    async def list_identities(self, user_id: str) -> list[Identity]:
        """List a user's identities, newest first."""
        ...

    async def has_identity_of_type(self, user_id: str, identity_type: str) -> bool:
        """Check whether the user already owns an identity of this type."""
        ...

    async def create_identity(
        self,
        user_id: str,
        identity_type: str,
        identifier: str,
        is_primary: bool,
        verified_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> Identity:
        """Insert an identity; raises PersistenceError(code='23505') if taken."""
        ...

    async def touch_identity_verified(self, identity_id: str, verified_at: datetime) -> None:
        """Refresh verified_at on an existing identity."""
        ...

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity row."""
        ...

    # Counts

    async def count_user_rows(self, table: UserRowTable, user_id: str) -> int:
        """Exact row count for a user in one table, without fetching rows."""
        ...

    # Soft votes

    async def find_soft_votes(
        self, user_id: str, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftVote]:
        """Return the user's soft votes with author and permlink in the sets."""
        ...

    async def get_soft_vote_by_key(self, idempotency_key: str) -> SoftVote | None:
        """Look up a soft vote by its idempotency key."""
        ...

    async def insert_soft_vote(
        self,
        user_id: str,
        author: str,
        permlink: str,
        weight: int,
        idempotency_key: str,
        created_at: datetime,
    ) -> SoftVote:
        """Insert a queued soft vote; raises PersistenceError(code='23505') on key clash."""
        ...

    async def update_soft_vote_intent(
        self, vote: SoftVote, weight: int, updated_at: datetime
    ) -> SoftVote | None:
        """Compare-and-set a pending intent to a new weight.

        Applies only while the row still has the status and claim it had
        when read. The row goes back to queued with its claim and error
        cleared. Returns the updated row, or None if it changed meanwhile.
        """
        ...

    async def list_claimable_soft_votes(
        self,
        limit: int,
        lease_expired_before: datetime,
        created_at_or_before: datetime | None = None,
    ) -> list[SoftVote]:
        """List claim candidates ordered by created_at ascending.

        Candidates are queued or failed rows, plus processing rows whose
        claim was taken before ``lease_expired_before``.
        """
        ...

    async def claim_soft_vote(
        self, vote: SoftVote, worker_id: str, claimed_at: datetime
    ) -> SoftVote | None:
        """Compare-and-set a candidate into processing for this worker.

        The update only applies while the row still has the status and
        claim it had when listed. Returns the claimed row, or None if another
        worker got there first.
        """
        ...

    async def mark_soft_vote_broadcasted(
        self, vote_id: str, worker_id: str, broadcasted_at: datetime
    ) -> bool:
        """Settle a processing row held by this worker as broadcasted.

        Settling releases the idempotency key so the user's next vote on the
        same post can be queued as a new intent.
        """
        ...

    async def mark_soft_vote_failed(
        self, vote_id: str, worker_id: str, error: str, failed_at: datetime
    ) -> bool:
        """Settle a processing row held by this worker as failed."""
        ...

    async def delete_failed_soft_votes(self, created_before: datetime) -> int:
        """Delete failed rows created strictly before the cutoff.

        Returns:
            Number of rows deleted.
        """
        ...

    # Soft posts

    async def find_soft_posts_by_author(
        self, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        """Soft posts whose author and permlink are in the given sets."""
        ...

    async def find_soft_posts_by_safe_user(
        self, safe_users: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        """Soft posts whose safe_user alias and permlink are in the given sets."""
        ...
