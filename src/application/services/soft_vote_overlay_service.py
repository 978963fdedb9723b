"""Soft vote overlay and outbox writer.

The overlay answers "what vote intents does this user have on these posts"
so the UI can show a vote before the Ledger confirms it. The writer side
records intents in the soft vote outbox, one pending intent per user and
post.
"""

from __future__ import annotations

from typing import Any

from structlog import get_logger

from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.userbase import PersistenceError, ValidationError
from src.domain.models.post_key import clean_post_keys
from src.domain.models.soft_vote import (
    SoftVote,
    coerce_vote_weight,
    soft_vote_idempotency_key,
)

logger = get_logger(__name__)

MAX_ENQUEUE_ATTEMPTS = 3


class SoftVoteOverlayService:
    """Reads the caller's vote overlay and enqueues new vote intents."""

    def __init__(
        self,
        store: IdentityStoreProtocol,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._store = store
        self._time = time_authority

    async def get_vote_overlays(
        self, caller_user_id: str, posts: Any
    ) -> list[dict[str, Any]]:
        """Batched overlay lookup for the caller's own soft votes.

        The store query filters by author set and permlink set separately,
        so rows for cross-product pairs that were never requested are
        discarded here. When several intents exist for one post, the most
        recently updated one wins.

        Args:
            caller_user_id: Authenticated caller; other users' rows never leak.
            posts: Raw ``posts`` list from the request body.

        Returns:
            Overlay items in request order.
        """
        keys = clean_post_keys(posts)
        if not keys:
            return []

        authors = sorted({key.author for key in keys})
        permlinks = sorted({key.permlink for key in keys})
        requested = {key.key for key in keys}

        rows = await self._store.find_soft_votes(caller_user_id, authors, permlinks)

        latest: dict[str, SoftVote] = {}
        for row in rows:
            key = f"{row.author}/{row.permlink}"
            if key not in requested:
                continue
            current = latest.get(key)
            if current is None or row.updated_at > current.updated_at:
                latest[key] = row

        return [latest[key.key].to_overlay() for key in keys if key.key in latest]

    async def enqueue_vote(
        self,
        user_id: str,
        author: Any,
        permlink: Any,
        weight: Any,
    ) -> SoftVote:
        """Record a vote intent in the outbox.

        The outbox holds at most one pending intent per (user, post):

        - no pending intent: insert a queued row
        - pending intent with the same weight: returned unchanged
        - pending intent with another weight: rewritten to the new weight and
          put back to queued

        Broadcasted rows no longer hold the key, so voting again on a post
        whose earlier vote already reached the Ledger queues a fresh intent.

        Raises:
            ValidationError: Missing target or weight outside [-10000, 10000].
            PersistenceError: Store failure, or the intent kept changing
                under concurrent writers.
        """
        if not isinstance(author, str) or not author.strip():
            raise ValidationError("Missing vote target")
        if not isinstance(permlink, str) or not permlink.strip():
            raise ValidationError("Missing vote target")
        try:
            vote_weight = coerce_vote_weight(weight)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        author = author.strip()
        permlink = permlink.strip()
        key = soft_vote_idempotency_key(user_id, author, permlink)
        log = logger.bind(user_id=user_id, author=author, permlink=permlink)

        for _ in range(MAX_ENQUEUE_ATTEMPTS):
            existing = await self._store.get_soft_vote_by_key(key)
            if existing is None:
                vote = await self._insert(user_id, author, permlink, vote_weight, key)
                if vote is not None:
                    log.info("soft_vote_enqueued", soft_vote_id=vote.id)
                    return vote
                continue

            if not existing.is_terminal and _same_weight(existing.weight, vote_weight):
                log.debug("soft_vote_enqueue_duplicate", soft_vote_id=existing.id)
                return existing

            updated = await self._store.update_soft_vote_intent(
                existing, vote_weight, self._time.utcnow()
            )
            if updated is not None:
                log.info(
                    "soft_vote_intent_updated",
                    soft_vote_id=updated.id,
                    previous_status=existing.status.value,
                )
                return updated

        log.warning("soft_vote_enqueue_contended", attempts=MAX_ENQUEUE_ATTEMPTS)
        raise PersistenceError("Failed to queue soft vote", details="intent kept changing")

    async def _insert(
        self, user_id: str, author: str, permlink: str, weight: int, key: str
    ) -> SoftVote | None:
        """Insert a new intent; None if a concurrent enqueue took the key."""
        try:
            return await self._store.insert_soft_vote(
                user_id=user_id,
                author=author,
                permlink=permlink,
                weight=weight,
                idempotency_key=key,
                created_at=self._time.utcnow(),
            )
        except PersistenceError as exc:
            if not exc.is_unique_violation:
                raise
            return None


def _same_weight(stored: Any, weight: int) -> bool:
    try:
        return coerce_vote_weight(stored) == weight
    except ValueError:
        return False
