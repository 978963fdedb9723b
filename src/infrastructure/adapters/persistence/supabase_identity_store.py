"""Supabase (PostgREST) adapter for the Identity Store port.

Tables:
- userbase_identities: identities, identifier in handle/address/external_id
- userbase_sessions: refresh-token sessions (hash only)
- userbase_identity_challenges: link challenges
- userbase_soft_votes: soft vote outbox
- userbase_soft_posts: soft post annotations, joined to userbase_users
- userbase_auth_methods: counted for merge previews only

Every PostgREST or transport failure is raised as PersistenceError with the
store's error code preserved, so callers can tell a unique violation
(``23505``) from other failures.

Soft vote claims and weight changes are compare-and-set updates filtered on
the status and claimed_by the row had when it was read: if anything changed
either, the update matches no row. Broadcasting releases the idempotency
key (set to null), so the unique index only covers pending intents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

import httpx
from postgrest.exceptions import APIError
from structlog import get_logger
from supabase import Client, create_client

from src.application.ports.identity_store import UserRowTable
from src.config.userbase_config import SupabaseConfig
from src.domain.errors.userbase import PersistenceError
from src.domain.models.challenge import IdentityChallenge
from src.domain.models.identity import Identity, get_identity_kind
from src.domain.models.session import Session
from src.domain.models.soft_post import SoftPost, SoftPostAuthor
from src.domain.models.soft_vote import (
    CLAIMABLE_STATUSES,
    SoftVote,
    SoftVoteStatus,
    can_transition,
)
from src.domain.models.timestamps import isoformat_z, parse_timestamp

logger = get_logger(__name__)

IDENTITIES_TABLE = "userbase_identities"
SESSIONS_TABLE = "userbase_sessions"
CHALLENGES_TABLE = "userbase_identity_challenges"
SOFT_VOTES_TABLE = "userbase_soft_votes"
SOFT_POSTS_TABLE = "userbase_soft_posts"

USER_ROW_TABLES: dict[UserRowTable, str] = {
    UserRowTable.IDENTITIES: IDENTITIES_TABLE,
    UserRowTable.AUTH_METHODS: "userbase_auth_methods",
    UserRowTable.SESSIONS: SESSIONS_TABLE,
    UserRowTable.SOFT_POSTS: SOFT_POSTS_TABLE,
    UserRowTable.SOFT_VOTES: SOFT_VOTES_TABLE,
}

SOFT_POST_COLUMNS = (
    "author, permlink, type, metadata, user_id, safe_user, "
    "userbase_users(display_name, handle, avatar_url)"
)

MAX_ERROR_LENGTH = 1000

CLAIMABLE_STATUS_FILTER = ",".join(
    sorted(status.value for status in CLAIMABLE_STATUSES)
)


def _identity_from_row(row: dict[str, Any]) -> Identity:
    kind = get_identity_kind(row["type"])
    return Identity(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        type=kind.name,
        identifier=row.get(kind.store_field) or "",
        is_primary=bool(row.get("is_primary")),
        verified_at=parse_timestamp(row.get("verified_at")),
        metadata=row.get("metadata") or {},
        created_at=parse_timestamp(row.get("created_at")),
    )


def _session_from_row(row: dict[str, Any]) -> Session:
    return Session(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        refresh_token_hash=row.get("refresh_token_hash", ""),
        expires_at=parse_timestamp(row["expires_at"]),  # type: ignore[arg-type]
        revoked_at=parse_timestamp(row.get("revoked_at")),
        created_at=parse_timestamp(row.get("created_at")),
        user_agent=row.get("user_agent"),
    )


def _challenge_from_row(row: dict[str, Any]) -> IdentityChallenge:
    return IdentityChallenge(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        type=row["type"],
        identifier=row["identifier"],
        nonce=row["nonce"],
        message=row["message"],
        created_at=parse_timestamp(row["created_at"]),  # type: ignore[arg-type]
        expires_at=parse_timestamp(row["expires_at"]),  # type: ignore[arg-type]
        consumed_at=parse_timestamp(row.get("consumed_at")),
    )


def _soft_vote_from_row(row: dict[str, Any]) -> SoftVote:
    created_at = parse_timestamp(row.get("created_at"))
    updated_at = parse_timestamp(row.get("updated_at")) or created_at
    return SoftVote(
        id=str(row["id"]),
        user_id=str(row.get("user_id", "")),
        author=row.get("author") or "",
        permlink=row.get("permlink") or "",
        weight=row.get("weight"),
        status=SoftVoteStatus(row["status"]),
        created_at=created_at,  # type: ignore[arg-type]
        updated_at=updated_at,  # type: ignore[arg-type]
        idempotency_key=row.get("idempotency_key"),
        error=row.get("error"),
        claimed_by=row.get("claimed_by"),
        claimed_at=parse_timestamp(row.get("claimed_at")),
        broadcasted_at=parse_timestamp(row.get("broadcasted_at")),
    )


def _soft_post_from_row(row: dict[str, Any]) -> SoftPost:
    profile = row.get("userbase_users") or {}
    return SoftPost(
        author=row["author"],
        permlink=row["permlink"],
        type=row.get("type"),
        metadata=row.get("metadata") or {},
        safe_user=row.get("safe_user"),
        user=SoftPostAuthor(
            id=str(row.get("user_id", "")),
            display_name=profile.get("display_name") or None,
            handle=profile.get("handle") or None,
            avatar_url=profile.get("avatar_url") or None,
        ),
    )


class SupabaseIdentityStore:
    """Identity Store backed by Supabase PostgREST."""

    def __init__(self, client: Client) -> None:
        """Initialize with a configured Supabase client.

        Args:
            client: Service-role Supabase client.
        """
        self._client = client

    @classmethod
    def from_config(cls, config: SupabaseConfig) -> "SupabaseIdentityStore":
        return cls(create_client(config.url, config.service_key))

    def _execute(self, query: Any, operation: str) -> Any:
        """Run a query builder, translating failures to PersistenceError."""
        try:
            return query.execute()
        except APIError as exc:
            logger.error(
                "identity_store_query_failed",
                operation=operation,
                code=exc.code,
                error=exc.message,
            )
            raise PersistenceError(
                f"Identity store {operation} failed",
                details=exc.message,
                code=exc.code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "identity_store_unreachable", operation=operation, error=str(exc)
            )
            raise PersistenceError(
                f"Identity store {operation} failed", details=str(exc)
            ) from exc

    def _table(self, name: str) -> Any:
        return self._client.table(name)

    # Sessions

    async def get_active_session_by_hash(self, token_hash: str) -> Session | None:
        response = self._execute(
            self._table(SESSIONS_TABLE)
            .select("id, user_id, refresh_token_hash, expires_at, revoked_at, created_at, user_agent")
            .eq("refresh_token_hash", token_hash)
            .is_("revoked_at", "null")
            .limit(1),
            "session lookup",
        )
        rows = response.data or []
        return _session_from_row(rows[0]) if rows else None

    async def create_session(
        self,
        user_id: str,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
        user_agent: str | None = None,
    ) -> Session:
        response = self._execute(
            self._table(SESSIONS_TABLE).insert(
                {
                    "user_id": user_id,
                    "refresh_token_hash": token_hash,
                    "created_at": isoformat_z(created_at),
                    "expires_at": isoformat_z(expires_at),
                    "user_agent": user_agent,
                }
            ),
            "session insert",
        )
        return _session_from_row(response.data[0])

    async def revoke_session(self, token_hash: str, revoked_at: datetime) -> bool:
        response = self._execute(
            self._table(SESSIONS_TABLE)
            .update({"revoked_at": isoformat_z(revoked_at)})
            .eq("refresh_token_hash", token_hash)
            .is_("revoked_at", "null"),
            "session revoke",
        )
        return bool(response.data)

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
        response = self._execute(
            self._table(CHALLENGES_TABLE).insert(
                {
                    "user_id": user_id,
                    "type": identity_type,
                    "identifier": identifier,
                    "nonce": nonce,
                    "message": message,
                    "created_at": isoformat_z(created_at),
                    "expires_at": isoformat_z(expires_at),
                }
            ),
            "challenge insert",
        )
        return _challenge_from_row(response.data[0])

    async def get_latest_open_challenge(
        self, user_id: str, identity_type: str, identifier: str
    ) -> IdentityChallenge | None:
        response = self._execute(
            self._table(CHALLENGES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("type", identity_type)
            .eq("identifier", identifier)
            .is_("consumed_at", "null")
            .order("created_at", desc=True)
            .limit(1),
            "challenge lookup",
        )
        rows = response.data or []
        return _challenge_from_row(rows[0]) if rows else None

    async def consume_challenge(self, challenge_id: str, consumed_at: datetime) -> bool:
        response = self._execute(
            self._table(CHALLENGES_TABLE)
            .update({"consumed_at": isoformat_z(consumed_at)})
            .eq("id", challenge_id)
            .is_("consumed_at", "null"),
            "challenge consume",
        )
        return bool(response.data)

    # Identities

    async def find_identity(self, identity_type: str, identifier: str) -> Identity | None:
        kind = get_identity_kind(identity_type)
        response = self._execute(
            self._table(IDENTITIES_TABLE)
            .select("*")
            .eq("type", kind.name)
            .eq(kind.store_field, identifier)
            .limit(1),
            "identity lookup",
        )
        rows = response.data or []
        return _identity_from_row(rows[0]) if rows else None

    async def get_identity(self, identity_id: str) -> Identity | None:
        response = self._execute(
            self._table(IDENTITIES_TABLE).select("*").eq("id", identity_id).limit(1),
            "identity lookup",
        )
        rows = response.data or []
        return _identity_from_row(rows[0]) if rows else None

    async def list_identities(self, user_id: str) -> list[Identity]:
        response = self._execute(
            self._table(IDENTITIES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True),
            "identity list",
        )
        return [_identity_from_row(row) for row in response.data or []]

    async def has_identity_of_type(self, user_id: str, identity_type: str) -> bool:
        response = self._execute(
            self._table(IDENTITIES_TABLE)
            .select("id")
            .eq("user_id", user_id)
            .eq("type", identity_type)
            .limit(1),
            "identity lookup",
        )
        return bool(response.data)

    async def create_identity(
        self,
        user_id: str,
        identity_type: str,
        identifier: str,
        is_primary: bool,
        verified_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> Identity:
        kind = get_identity_kind(identity_type)
        response = self._execute(
            self._table(IDENTITIES_TABLE).insert(
                {
                    "user_id": user_id,
                    "type": kind.name,
                    kind.store_field: identifier,
                    "is_primary": is_primary,
                    "verified_at": isoformat_z(verified_at),
                    "metadata": metadata or {},
                }
            ),
            "identity insert",
        )
        return _identity_from_row(response.data[0])

    async def touch_identity_verified(self, identity_id: str, verified_at: datetime) -> None:
        self._execute(
            self._table(IDENTITIES_TABLE)
            .update({"verified_at": isoformat_z(verified_at)})
            .eq("id", identity_id),
            "identity update",
        )

    async def delete_identity(self, identity_id: str) -> None:
        self._execute(
            self._table(IDENTITIES_TABLE).delete().eq("id", identity_id),
            "identity delete",
        )

    # Counts

    async def count_user_rows(self, table: UserRowTable, user_id: str) -> int:
        response = self._execute(
            self._table(USER_ROW_TABLES[table])
            .select("id", count="exact", head=True)
            .eq("user_id", user_id),
            f"{table.value} count",
        )
        return response.count or 0

    # Soft votes

    async def find_soft_votes(
        self, user_id: str, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftVote]:
        response = self._execute(
            self._table(SOFT_VOTES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .in_("author", list(authors))
            .in_("permlink", list(permlinks)),
            "soft vote lookup",
        )
        return [_soft_vote_from_row(row) for row in response.data or []]

    async def get_soft_vote_by_key(self, idempotency_key: str) -> SoftVote | None:
        response = self._execute(
            self._table(SOFT_VOTES_TABLE)
            .select("*")
            .eq("idempotency_key", idempotency_key)
            .limit(1),
            "soft vote lookup",
        )
        rows = response.data or []
        return _soft_vote_from_row(rows[0]) if rows else None

    async def insert_soft_vote(
        self,
        user_id: str,
        author: str,
        permlink: str,
        weight: int,
        idempotency_key: str,
        created_at: datetime,
    ) -> SoftVote:
        timestamp = isoformat_z(created_at)
        response = self._execute(
            self._table(SOFT_VOTES_TABLE).insert(
                {
                    "user_id": user_id,
                    "author": author,
                    "permlink": permlink,
                    "weight": weight,
                    "status": SoftVoteStatus.QUEUED.value,
                    "idempotency_key": idempotency_key,
                    "created_at": timestamp,
                    "updated_at": timestamp,
                }
            ),
            "soft vote insert",
        )
        return _soft_vote_from_row(response.data[0])

    async def update_soft_vote_intent(
        self, vote: SoftVote, weight: int, updated_at: datetime
    ) -> SoftVote | None:
        if not can_transition(vote.status, SoftVoteStatus.QUEUED):
            return None
        query = self._match_snapshot(
            self._table(SOFT_VOTES_TABLE).update(
                {
                    "weight": weight,
                    "status": SoftVoteStatus.QUEUED.value,
                    "error": None,
                    "claimed_by": None,
                    "claimed_at": None,
                    "updated_at": isoformat_z(updated_at),
                }
            ),
            vote,
        )
        response = self._execute(query, "soft vote update")
        rows = response.data or []
        return _soft_vote_from_row(rows[0]) if rows else None

    def _match_snapshot(self, query: Any, vote: SoftVote) -> Any:
        """Filter an update to the row only while it is as ``vote`` saw it."""
        query = query.eq("id", vote.id).eq("status", vote.status.value)
        if vote.claimed_by is None:
            return query.is_("claimed_by", "null")
        return query.eq("claimed_by", vote.claimed_by)

    async def list_claimable_soft_votes(
        self,
        limit: int,
        lease_expired_before: datetime,
        created_at_or_before: datetime | None = None,
    ) -> list[SoftVote]:
        lease_cutoff = isoformat_z(lease_expired_before)
        query = (
            self._table(SOFT_VOTES_TABLE)
            .select("*")
            .or_(
                f"status.in.({CLAIMABLE_STATUS_FILTER}),"
                f'and(status.eq.processing,claimed_at.lt."{lease_cutoff}")'
            )
        )
        if created_at_or_before is not None:
            query = query.lte("created_at", isoformat_z(created_at_or_before))
        response = self._execute(
            query.order("created_at").limit(limit), "soft vote claim listing"
        )
        return [_soft_vote_from_row(row) for row in response.data or []]

    async def claim_soft_vote(
        self, vote: SoftVote, worker_id: str, claimed_at: datetime
    ) -> SoftVote | None:
        if not can_transition(vote.status, SoftVoteStatus.PROCESSING):
            return None
        timestamp = isoformat_z(claimed_at)
        query = self._match_snapshot(
            self._table(SOFT_VOTES_TABLE).update(
                {
                    "status": SoftVoteStatus.PROCESSING.value,
                    "claimed_by": worker_id,
                    "claimed_at": timestamp,
                    "updated_at": timestamp,
                }
            ),
            vote,
        )
        response = self._execute(query, "soft vote claim")
        rows = response.data or []
        return _soft_vote_from_row(rows[0]) if rows else None

    async def mark_soft_vote_broadcasted(
        self, vote_id: str, worker_id: str, broadcasted_at: datetime
    ) -> bool:
        timestamp = isoformat_z(broadcasted_at)
        return self._settle(
            vote_id,
            worker_id,
            {
                "status": SoftVoteStatus.BROADCASTED.value,
                "error": None,
                "idempotency_key": None,
                "broadcasted_at": timestamp,
                "updated_at": timestamp,
            },
        )

    async def mark_soft_vote_failed(
        self, vote_id: str, worker_id: str, error: str, failed_at: datetime
    ) -> bool:
        return self._settle(
            vote_id,
            worker_id,
            {
                "status": SoftVoteStatus.FAILED.value,
                "error": error[:MAX_ERROR_LENGTH],
                "updated_at": isoformat_z(failed_at),
            },
        )

    def _settle(self, vote_id: str, worker_id: str, update: dict[str, Any]) -> bool:
        response = self._execute(
            self._table(SOFT_VOTES_TABLE)
            .update({**update, "claimed_by": None, "claimed_at": None})
            .eq("id", vote_id)
            .eq("status", SoftVoteStatus.PROCESSING.value)
            .eq("claimed_by", worker_id),
            "soft vote settle",
        )
        return bool(response.data)

    async def delete_failed_soft_votes(self, created_before: datetime) -> int:
        response = self._execute(
            self._table(SOFT_VOTES_TABLE)
            .delete()
            .eq("status", SoftVoteStatus.FAILED.value)
            .lt("created_at", isoformat_z(created_before)),
            "soft vote cleanup",
        )
        return len(response.data or [])

    # Soft posts

    async def find_soft_posts_by_author(
        self, authors: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        response = self._execute(
            self._table(SOFT_POSTS_TABLE)
            .select(SOFT_POST_COLUMNS)
            .in_("author", list(authors))
            .in_("permlink", list(permlinks)),
            "soft post lookup",
        )
        return [_soft_post_from_row(row) for row in response.data or []]

    async def find_soft_posts_by_safe_user(
        self, safe_users: Sequence[str], permlinks: Sequence[str]
    ) -> list[SoftPost]:
        response = self._execute(
            self._table(SOFT_POSTS_TABLE)
            .select(SOFT_POST_COLUMNS)
            .in_("safe_user", list(safe_users))
            .in_("permlink", list(permlinks)),
            "soft post alias lookup",
        )
        return [_soft_post_from_row(row) for row in response.data or []]
