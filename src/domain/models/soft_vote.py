"""Soft vote outbox model and state machine.

A soft vote records a user's vote intent before it is broadcast to the
Ledger. Rows move through:

    queued ──claim──> processing ──success──> broadcasted (terminal)
    failed ──claim──> processing ──error────> failed
    processing (lease expired) ──claim──> processing
    queued | failed | processing ──new weight──> queued
    failed (older than cleanup horizon) ──cleanup──> deleted

Only the worker holding the claim may settle a processing row, and no
transition ever leaves broadcasted. Changing the weight of a pending intent
drops any claim, so a worker still broadcasting the old weight loses its
settle and the new weight goes out on the next run.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.domain.models.timestamps import isoformat_z

MIN_VOTE_WEIGHT = -10000
MAX_VOTE_WEIGHT = 10000


class SoftVoteStatus(str, Enum):
    """Lifecycle states of a soft vote."""

    QUEUED = "queued"
    PROCESSING = "processing"
    BROADCASTED = "broadcasted"
    FAILED = "failed"


CLAIMABLE_STATUSES: frozenset[SoftVoteStatus] = frozenset(
    {SoftVoteStatus.QUEUED, SoftVoteStatus.FAILED}
)

ALLOWED_TRANSITIONS: dict[SoftVoteStatus, frozenset[SoftVoteStatus]] = {
    SoftVoteStatus.QUEUED: frozenset(
        {SoftVoteStatus.PROCESSING, SoftVoteStatus.QUEUED}
    ),
    SoftVoteStatus.FAILED: frozenset(
        {SoftVoteStatus.PROCESSING, SoftVoteStatus.QUEUED}
    ),
    SoftVoteStatus.PROCESSING: frozenset(
        {
            SoftVoteStatus.QUEUED,
            SoftVoteStatus.PROCESSING,
            SoftVoteStatus.BROADCASTED,
            SoftVoteStatus.FAILED,
        }
    ),
    SoftVoteStatus.BROADCASTED: frozenset(),
}


def can_transition(current: SoftVoteStatus, target: SoftVoteStatus) -> bool:
    """Check whether the state machine allows ``current -> target``."""
    return target in ALLOWED_TRANSITIONS[current]


def coerce_vote_weight(value: Any) -> int:
    """Validate a vote weight and return it as an int.

    Raises:
        ValueError: If the weight is not a finite integral number within
            [-10000, 10000].
    """
    if isinstance(value, bool):
        raise ValueError("Invalid vote weight")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("Invalid vote weight") from None
    if not math.isfinite(number) or number != int(number):
        raise ValueError("Invalid vote weight")
    if number < MIN_VOTE_WEIGHT or number > MAX_VOTE_WEIGHT:
        raise ValueError("Invalid vote weight")
    return int(number)


def soft_vote_idempotency_key(user_id: str, author: str, permlink: str) -> str:
    """Derive the outbox key of a user's pending intent on one post.

    A user has at most one pending intent per post; a new weight rewrites it.
    The store releases the key once the row is broadcasted, so the next vote
    on the same post starts a fresh intent.
    """
    raw = f"{user_id}:{author}/{permlink}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SoftVote:
    """A vote intent waiting for, or settled by, a Ledger broadcast.

    Attributes:
        id: Store-assigned identifier.
        user_id: User who voted.
        author: Target post author.
        permlink: Target post permlink.
        weight: Raw stored weight; validated again before broadcast.
        status: Current lifecycle state.
        created_at: When the intent was recorded.
        updated_at: Last state change.
        idempotency_key: Outbox key while the intent is pending; released
            once broadcasted.
        error: Last broadcast error, if failed.
        claimed_by: Worker id holding the claim while processing.
        claimed_at: When the current claim was taken.
        broadcasted_at: When the broadcast succeeded.
    """

    id: str
    user_id: str
    author: str
    permlink: str
    weight: Any
    status: SoftVoteStatus
    created_at: datetime
    updated_at: datetime
    idempotency_key: str | None = None
    error: str | None = None
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    broadcasted_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status == SoftVoteStatus.BROADCASTED

    def to_overlay(self) -> dict[str, Any]:
        """Serialize the caller-visible overlay fields."""
        return {
            "author": self.author,
            "permlink": self.permlink,
            "weight": self.weight,
            "status": self.status.value,
            "updated_at": isoformat_z(self.updated_at),
        }
