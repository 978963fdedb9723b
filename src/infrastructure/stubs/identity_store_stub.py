"""Identity store stub for development and testing.

In-memory implementation of IdentityStoreProtocol with the same contract as
the Supabase adapter: unique (type, identifier), unique session hash, unique
pending soft vote idempotency key (violations raise PersistenceError code
``23505``), and compare-and-set soft vote claims and settles that follow the
soft vote state machine.

Developer Golden Rules:
1. MATCH THE ADAPTER - Same uniqueness and CAS rules as production
2. FAIL ON DEMAND - Inject PersistenceError per operation to test error paths
3. TEST ISOLATION - Reset state between tests
"""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Sequence
from uuid import uuid4

from src.application.ports.identity_store import IdentityStoreProtocol, UserRowTable
from src.domain.errors.userbase import PersistenceError
from src.domain.models.challenge import IdentityChallenge
from src.domain.models.identity import Identity
from src.domain.models.session import Session
from src.domain.models.soft_post import SoftPost, SoftPostAuthor
from src.domain.models.soft_vote import (
    CLAIMABLE_STATUSES,
    SoftVote,
    SoftVoteStatus,
    can_transition,
)

UNIQUE_VIOLATION = "23505"
_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class IdentityStoreStub(IdentityStoreProtocol):
    """In-memory identity store for testing.

    Usage:
        store = IdentityStoreStub()

        # Seed rows
        store.add_identity(user_id="u1", identity_type="hive", identifier="xvlad")
        store.add_soft_vote(user_id="u1", author="a", permlink="p", weight=10000)

        # Make one operation fail
        store.fail_operation("find_soft_posts_by_safe_user")

        # Inspect writes
        assert store.writes == []
    """

    def __init__(self) -> None:
        """Initialize empty store."""
        self._identities: dict[str, Identity] = {}
        self._sessions: dict[str, Session] = {}
        self._challenges: dict[str, IdentityChallenge] = {}
        self._soft_votes: dict[str, SoftVote] = {}
        self._soft_posts: list[tuple[str, SoftPost]] = []
        self._auth_methods: dict[str, int] = defaultdict(int)
        self._failures: dict[str, PersistenceError] = {}
        self.writes: list[str] = []

    def _check(self, operation: str) -> None:
        error = self._failures.get(operation)
        if error is not None:
            raise error

    def _write(self, operation: str) -> None:
        self._check(operation)
        self.writes.append(operation)

    # Sessions

    async def get_active_session_by_hash(self, token_hash: str) -> Session | None:
        self._check("get_active_session_by_hash")
        for session in self._sessions.values():
            if session.refresh_token_hash == token_hash and session.revoked_at is None:
                return session
        return None

    async def create_session(
        self,
        user_id: str,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
        user_agent: str | None = None,
    ) -> Session:
        self._write("create_session")
        if any(s.refresh_token_hash == token_hash for s in self._sessions.values()):
            raise PersistenceError("duplicate session", code=UNIQUE_VIOLATION)
        session = Session(
            id=_new_id(),
            user_id=user_id,
            refresh_token_hash=token_hash,
            expires_at=expires_at,
            created_at=created_at,
            user_agent=user_agent,
        )
        self._sessions[session.id] = session
        return session

    async def revoke_session(self, token_hash: str, revoked_at: datetime) -> bool:
        self._write("revoke_session")
        for session in list(self._sessions.values()):
            if session.refresh_token_hash == token_hash and session.revoked_at is None:
                self._sessions[session.id] = dataclasses.replace(
                    session, revoked_at=revoked_at
                )
                return True
        return False

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
        self._write("create_challenge")
        challenge = IdentityChallenge(
            id=_new_id(),
            user_id=user_id,
            type=identity_type,
            identifier=identifier,
            nonce=nonce,
            message=message,
            created_at=created_at,
            expires_at=expires_at,
        )
        self._challenges[challenge.id] = challenge
        return challenge

    async def get_latest_open_challenge(
        self, user_id: str, identity_type: str, identifier: str
    ) -> IdentityChallenge | None:
        self._check("get_latest_open_challenge")
        candidates = [
            c
            for c in self._challenges.values()
            if c.user_id == user_id
            and c.type == identity_type
            and c.identifier == identifier
            and c.consumed_at is None
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.created_at)

    async def consume_challenge(self, challenge_id: str, consumed_at: datetime) -> bool:
        self._write("consume_challenge")
        challenge = self._challenges.get(challenge_id)
        if challenge is None or challenge.consumed_at is not None:
            return False
        self._challenges[challenge_id] = dataclasses.replace(
            challenge, consumed_at=consumed_at
        )
        return True

    # Identities

    async def find_identity(self, identity_type: str, identifier: str) -> Identity | None:
        self._check("find_identity")
        for identity in self._identities.values():
            if identity.type == identity_type and identity.identifier == identifier:
                return identity
        return None

    async def get_identity(self, identity_id: str) -> Identity | None:
        self._check("get_identity")
        return self._identities.get(identity_id)

    async def list_identities(self, user_id: str) -> list[Identity]:
        self._check("list_identities")
        owned = [i for i in self._identities.values() if i.user_id == user_id]
        return sorted(owned, key=lambda i: i.created_at or _EPOCH, reverse=True)

    async def has_identity_of_type(self, user_id: str, identity_type: str) -> bool:
        self._check("has_identity_of_type")
        return any(
            i.user_id == user_id and i.type == identity_type
            for i in self._identities.values()
        )

    async def create_identity(
        self,
        user_id: str,
        identity_type: str,
        identifier: str,
        is_primary: bool,
        verified_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> Identity:
        self._write("create_identity")
        if any(
            i.type == identity_type and i.identifier == identifier
            for i in self._identities.values()
        ):
            raise PersistenceError("duplicate identity", code=UNIQUE_VIOLATION)
        identity = Identity(
            id=_new_id(),
            user_id=user_id,
            type=identity_type,
            identifier=identifier,
            is_primary=is_primary,
            verified_at=verified_at,
            metadata=metadata or {},
            created_at=verified_at,
        )
        self._identities[identity.id] = identity
        return identity

    async def touch_identity_verified(self, identity_id: str, verified_at: datetime) -> None:
        self._write("touch_identity_verified")
        identity = self._identities.get(identity_id)
        if identity is not None:
            self._identities[identity_id] = dataclasses.replace(
                identity, verified_at=verified_at
            )

    async def delete_identity(self, identity_id: str) -> None:
        self._write("delete_identity")
        self._identities.pop(identity_id, None)

    # Counts

    async def count_user_rows(self, table: UserRowTable, user_id: str) -> int:
        self._check("count_user_rows")
        if table == UserRowTable.IDENTITIES:
            return sum(1 for i in self._identities.values() if i.user_id == user_id)
        if table == UserRowTable.AUTH_METHODS:
            return self._auth_methods.get(user_id, 0)
        if table == UserRowTable.SESSIONS:
            return sum(1 for s in self._sessions.values() if s.user_id == user_id)
        if table == UserRowTable.SOFT_POSTS:
            return sum(1 for owner, _ in self._soft_posts if owner == user_id)
        return sum(1 for v in self._soft_votes.values() if v.user_id == user_id)

    # Soft votes

    async def find_soft_votes(
        self, user_id: str, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftVote]:
        self._check("find_soft_votes")
        return [
            v
            for v in self._soft_votes.values()
            if v.user_id == user_id and v.author in authors and v.permlink in permlinks
        ]

    async def get_soft_vote_by_key(self, idempotency_key: str) -> SoftVote | None:
        self._check("get_soft_vote_by_key")
        for vote in self._soft_votes.values():
            if vote.idempotency_key == idempotency_key:
                return vote
        return None

    async def insert_soft_vote(
        self,
        user_id: str,
        author: str,
        permlink: str,
        weight: int,
        idempotency_key: str,
        created_at: datetime,
    ) -> SoftVote:
        self._write("insert_soft_vote")
        if any(v.idempotency_key == idempotency_key for v in self._soft_votes.values()):
            raise PersistenceError("duplicate soft vote", code=UNIQUE_VIOLATION)
        vote = SoftVote(
            id=_new_id(),
            user_id=user_id,
            author=author,
            permlink=permlink,
            weight=weight,
            status=SoftVoteStatus.QUEUED,
            created_at=created_at,
            updated_at=created_at,
            idempotency_key=idempotency_key,
        )
        self._soft_votes[vote.id] = vote
        return vote

    async def update_soft_vote_intent(
        self, vote: SoftVote, weight: int, updated_at: datetime
    ) -> SoftVote | None:
        self._write("update_soft_vote_intent")
        current = self._soft_votes.get(vote.id)
        if (
            current is None
            or current.status != vote.status
            or current.claimed_by != vote.claimed_by
            or not can_transition(current.status, SoftVoteStatus.QUEUED)
        ):
            return None
        updated = dataclasses.replace(
            current,
            weight=weight,
            status=SoftVoteStatus.QUEUED,
            error=None,
            claimed_by=None,
            claimed_at=None,
            updated_at=updated_at,
        )
        self._soft_votes[vote.id] = updated
        return updated

    async def list_claimable_soft_votes(
        self,
        limit: int,
        lease_expired_before: datetime,
        created_at_or_before: datetime | None = None,
    ) -> list[SoftVote]:
        self._check("list_claimable_soft_votes")
        candidates = []
        for vote in self._soft_votes.values():
            claimable = vote.status in CLAIMABLE_STATUSES or (
                vote.status == SoftVoteStatus.PROCESSING
                and vote.claimed_at is not None
                and vote.claimed_at < lease_expired_before
            )
            if not claimable:
                continue
            if created_at_or_before is not None and vote.created_at > created_at_or_before:
                continue
            candidates.append(vote)
        candidates.sort(key=lambda v: v.created_at)
        return candidates[:limit]

    async def claim_soft_vote(
        self, vote: SoftVote, worker_id: str, claimed_at: datetime
    ) -> SoftVote | None:
        self._write("claim_soft_vote")
        current = self._soft_votes.get(vote.id)
        if (
            current is None
            or current.status != vote.status
            or current.claimed_by != vote.claimed_by
            or not can_transition(current.status, SoftVoteStatus.PROCESSING)
        ):
            return None
        claimed = dataclasses.replace(
            current,
            status=SoftVoteStatus.PROCESSING,
            claimed_by=worker_id,
            claimed_at=claimed_at,
            updated_at=claimed_at,
        )
        self._soft_votes[vote.id] = claimed
        return claimed

    async def mark_soft_vote_broadcasted(
        self, vote_id: str, worker_id: str, broadcasted_at: datetime
    ) -> bool:
        self._write("mark_soft_vote_broadcasted")
        return self._settle(
            vote_id,
            worker_id,
            status=SoftVoteStatus.BROADCASTED,
            error=None,
            idempotency_key=None,
            broadcasted_at=broadcasted_at,
            updated_at=broadcasted_at,
        )

    async def mark_soft_vote_failed(
        self, vote_id: str, worker_id: str, error: str, failed_at: datetime
    ) -> bool:
        self._write("mark_soft_vote_failed")
        return self._settle(
            vote_id,
            worker_id,
            status=SoftVoteStatus.FAILED,
            error=error,
            updated_at=failed_at,
        )

    def _settle(
        self, vote_id: str, worker_id: str, status: SoftVoteStatus, **changes: Any
    ) -> bool:
        current = self._soft_votes.get(vote_id)
        if (
            current is None
            or current.status != SoftVoteStatus.PROCESSING
            or current.claimed_by != worker_id
            or not can_transition(current.status, status)
        ):
            return False
        self._soft_votes[vote_id] = dataclasses.replace(
            current, status=status, claimed_by=None, claimed_at=None, **changes
        )
        return True

    async def delete_failed_soft_votes(self, created_before: datetime) -> int:
        self._write("delete_failed_soft_votes")
        doomed = [
            v.id
            for v in self._soft_votes.values()
            if v.status == SoftVoteStatus.FAILED and v.created_at < created_before
        ]
        for vote_id in doomed:
            del self._soft_votes[vote_id]
        return len(doomed)

    # Soft posts

    async def find_soft_posts_by_author(
        self, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        self._check("find_soft_posts_by_author")
        return [
            post
            for _, post in self._soft_posts
            if post.author in authors and post.permlink in permlinks
        ]

    async def find_soft_posts_by_safe_user(
        self, safe_users: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        self._check("find_soft_posts_by_safe_user")
        return [
            post
            for _, post in self._soft_posts
            if post.safe_user in safe_users and post.permlink in permlinks
        ]

    # ========================================
    # Test helper methods
    # ========================================

    def add_identity(
        self,
        user_id: str,
        identity_type: str,
        identifier: str,
        is_primary: bool = True,
        created_at: datetime | None = None,
    ) -> Identity:
        """Seed an identity row without going through a write operation."""
        identity = Identity(
            id=_new_id(),
            user_id=user_id,
            type=identity_type,
            identifier=identifier,
            is_primary=is_primary,
            verified_at=created_at or _EPOCH,
            created_at=created_at or _EPOCH,
        )
        self._identities[identity.id] = identity
        return identity

    def add_session(
        self,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        revoked_at: datetime | None = None,
    ) -> Session:
        session = Session(
            id=_new_id(),
            user_id=user_id,
            refresh_token_hash=token_hash,
            expires_at=expires_at,
            revoked_at=revoked_at,
            created_at=_EPOCH,
        )
        self._sessions[session.id] = session
        return session

    def add_challenge(self, challenge: IdentityChallenge) -> None:
        self._challenges[challenge.id] = challenge

    def add_auth_method(self, user_id: str) -> None:
        self._auth_methods[user_id] += 1

    def add_soft_vote(
        self,
        user_id: str,
        author: str,
        permlink: str,
        weight: Any = 10000,
        status: SoftVoteStatus = SoftVoteStatus.QUEUED,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        claimed_by: str | None = None,
        claimed_at: datetime | None = None,
        idempotency_key: str | None = None,
    ) -> SoftVote:
        """Seed a soft vote row; raw weight is stored as given."""
        created = created_at or _EPOCH
        vote = SoftVote(
            id=_new_id(),
            user_id=user_id,
            author=author,
            permlink=permlink,
            weight=weight,
            status=status,
            created_at=created,
            updated_at=updated_at or created,
            idempotency_key=idempotency_key,
            claimed_by=claimed_by,
            claimed_at=claimed_at,
        )
        self._soft_votes[vote.id] = vote
        return vote

    def add_soft_post(
        self,
        user_id: str,
        author: str,
        permlink: str,
        safe_user: str | None = None,
        post_type: str | None = "post",
        display_name: str | None = None,
        handle: str | None = None,
    ) -> SoftPost:
        post = SoftPost(
            author=author,
            permlink=permlink,
            type=post_type,
            metadata={},
            safe_user=safe_user,
            user=SoftPostAuthor(id=user_id, display_name=display_name, handle=handle),
        )
        self._soft_posts.append((user_id, post))
        return post

    def get_soft_vote(self, vote_id: str) -> SoftVote | None:
        return self._soft_votes.get(vote_id)

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    @property
    def soft_votes(self) -> list[SoftVote]:
        return list(self._soft_votes.values())

    @property
    def challenges(self) -> list[IdentityChallenge]:
        return list(self._challenges.values())

    def fail_operation(self, operation: str, error: PersistenceError | None = None) -> None:
        """Make every call to ``operation`` raise until cleared.

        Args:
            operation: Method name, e.g. ``"find_soft_posts_by_safe_user"``.
            error: Error to raise; defaults to a generic PersistenceError.
        """
        self._failures[operation] = error or PersistenceError(
            f"{operation} failed", details="injected failure"
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset(self) -> None:
        """Reset all state for test isolation."""
        self._identities.clear()
        self._sessions.clear()
        self._challenges.clear()
        self._soft_votes.clear()
        self._soft_posts.clear()
        self._auth_methods.clear()
        self._failures.clear()
        self.writes.clear()
