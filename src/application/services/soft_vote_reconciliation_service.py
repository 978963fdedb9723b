"""Soft vote reconciliation worker.

Drains the soft vote outbox into the Ledger using the single system
broadcaster identity. One run:

1. Lists up to ``limit`` candidates (queued, failed, or processing with an
   expired lease), oldest first
2. Claims each candidate by compare-and-set immediately before
   broadcasting it, so a claim is never older than one broadcast; a
   failure on one row never stops the rest
3. Settles each row as broadcasted or failed (only the claiming run may
   settle), alerting on failure
4. Dead-letters failed rows older than ``cleanup_days``

Overlapping runs are safe: a row claimed by one run is invisible to
another until its lease expires.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import uuid4

from structlog import get_logger

from src.application.ports.alert_delivery import AlertDeliveryProtocol
from src.application.ports.identity_store import IdentityStoreProtocol
from src.application.ports.ledger import LedgerBroadcasterProtocol, VoteOperation
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.userbase import ConfigError, PersistenceError
from src.domain.models.soft_vote import SoftVote, coerce_vote_weight

logger = get_logger(__name__)

DEFAULT_RETRY_LIMIT = 25
MAX_RETRY_LIMIT = 100
DEFAULT_CLEANUP_DAYS = 30
DEFAULT_LEASE_SECONDS = 300
MAX_AGE_MINUTES_CAP = 60 * 24 * 3650
MAX_CLEANUP_DAYS = 3650
RETRY_FAILED_ALERT_TYPE = "userbase_soft_vote_retry_failed"


def _as_number(value: Any) -> float:
    """Loose numeric coercion for request fields; unparseable input is NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _number_or(value: Any, default: float) -> float:
    """Coerce ``value``; zero, NaN and missing fall back to ``default``."""
    number = _as_number(value)
    if math.isnan(number) or number == 0:
        return default
    return number


@dataclass(frozen=True)
class RetryOptions:
    """Coerced run parameters.

    Attributes:
        limit: Rows to claim, 1..100.
        max_age_minutes: Only claim rows at least this old; 0 disables.
        cleanup_days: Dead-letter horizon; a negative value disables cleanup.
    """

    limit: int = DEFAULT_RETRY_LIMIT
    max_age_minutes: float = 0
    cleanup_days: float = DEFAULT_CLEANUP_DAYS

    @classmethod
    def from_raw(
        cls,
        limit: Any = None,
        max_age_minutes: Any = None,
        cleanup_days: Any = None,
    ) -> "RetryOptions":
        """Coerce loosely-typed request values.

        Non-numeric or zero ``limit`` becomes 25, then it is clamped to
        [1, 100]. Non-numeric ``max_age_minutes`` becomes 0. Non-numeric or
        zero ``cleanup_days`` becomes 30. Both horizons are capped at ten
        years so the cutoffs stay representable as datetimes.
        """
        raw_limit = _number_or(limit, DEFAULT_RETRY_LIMIT)
        if math.isinf(raw_limit):
            raw_limit = MAX_RETRY_LIMIT if raw_limit > 0 else 1
        return cls(
            limit=min(max(int(raw_limit), 1), MAX_RETRY_LIMIT),
            max_age_minutes=min(_number_or(max_age_minutes, 0), MAX_AGE_MINUTES_CAP),
            cleanup_days=min(
                _number_or(cleanup_days, DEFAULT_CLEANUP_DAYS), MAX_CLEANUP_DAYS
            ),
        )


@dataclass(frozen=True)
class RetryReport:
    """Outcome counts of one reconciliation run."""

    attempted: int
    success: int
    failed: int
    cleaned: int

    def to_dict(self) -> dict[str, int]:
        return {
            "attempted": self.attempted,
            "success": self.success,
            "failed": self.failed,
            "cleaned": self.cleaned,
        }


class SoftVoteReconciliationService:
    """Claims, broadcasts and settles queued soft votes."""

    def __init__(
        self,
        store: IdentityStoreProtocol,
        time_authority: TimeAuthorityProtocol,
        broadcaster: LedgerBroadcasterProtocol | None = None,
        alerts: AlertDeliveryProtocol | None = None,
        lease_seconds: int = DEFAULT_LEASE_SECONDS,
        worker_prefix: str = "soft-vote-retry",
    ) -> None:
        """Initialize the reconciliation worker.

        Args:
            store: Identity Store adapter.
            time_authority: Clock for claims, age filters and cleanup cutoffs.
            broadcaster: System broadcaster. Runs fail with ConfigError
                without one.
            alerts: Optional alert sink for failed rows.
            lease_seconds: How long a claim blocks other runs.
            worker_prefix: Prefix of the per-run worker id stored in claimed_by.
        """
        self._store = store
        self._time = time_authority
        self._broadcaster = broadcaster
        self._alerts = alerts
        self._lease = timedelta(seconds=lease_seconds)
        self._worker_prefix = worker_prefix

    async def run(self, options: RetryOptions | None = None) -> RetryReport:
        """Execute one reconciliation batch.

        Raises:
            ConfigError: No system broadcaster configured.
            PersistenceError: Candidate rows could not be listed.
        """
        broadcaster = self._broadcaster
        if broadcaster is None:
            raise ConfigError("Default Hive posting account not configured")

        options = options or RetryOptions()
        worker_id = f"{self._worker_prefix}-{uuid4().hex[:12]}"
        log = logger.bind(worker_id=worker_id, limit=options.limit)

        candidates = await self._list_candidates(options)
        log.info("soft_vote_retry_listed", candidates=len(candidates))

        attempted = 0
        success = 0
        failed = 0
        for candidate in candidates:
            vote = await self._claim(candidate, worker_id)
            if vote is None:
                continue
            attempted += 1
            if await self._process(vote, worker_id, broadcaster):
                success += 1
            else:
                failed += 1

        cleaned = await self._cleanup(options.cleanup_days)

        report = RetryReport(
            attempted=attempted, success=success, failed=failed, cleaned=cleaned
        )
        log.info("soft_vote_retry_completed", **report.to_dict())
        return report

    async def _list_candidates(self, options: RetryOptions) -> list[SoftVote]:
        now = self._time.utcnow()
        created_cutoff = None
        if options.max_age_minutes > 0:
            created_cutoff = now - timedelta(minutes=options.max_age_minutes)

        try:
            return await self._store.list_claimable_soft_votes(
                limit=options.limit,
                lease_expired_before=now - self._lease,
                created_at_or_before=created_cutoff,
            )
        except PersistenceError as exc:
            logger.error("soft_vote_retry_fetch_failed", error=exc.message)
            raise PersistenceError(
                "Failed to fetch soft votes", details=exc.details or exc.message
            ) from exc

    async def _claim(self, candidate: SoftVote, worker_id: str) -> SoftVote | None:
        """Take the lease on one candidate right before it is broadcast.

        The compare-and-set fails if another run claimed or settled the row
        since it was listed.
        """
        try:
            vote = await self._store.claim_soft_vote(
                candidate, worker_id, self._time.utcnow()
            )
        except PersistenceError as exc:
            logger.error(
                "soft_vote_claim_failed", soft_vote_id=candidate.id, error=exc.message
            )
            return None
        if vote is None:
            logger.debug("soft_vote_claim_lost", soft_vote_id=candidate.id)
        return vote

    async def _process(
        self,
        vote: SoftVote,
        worker_id: str,
        broadcaster: LedgerBroadcasterProtocol,
    ) -> bool:
        """Broadcast one claimed row and settle it. Returns True on success."""
        log = logger.bind(
            soft_vote_id=vote.id, author=vote.author, permlink=vote.permlink
        )
        try:
            if not vote.author or not vote.permlink:
                raise ValueError("Missing vote target")
            weight = coerce_vote_weight(vote.weight)
            await broadcaster.broadcast_vote(
                VoteOperation(
                    voter=broadcaster.account,
                    author=vote.author,
                    permlink=vote.permlink,
                    weight=weight,
                )
            )
        except Exception as exc:
            error = str(exc) or "Retry failed"
            log.warning("soft_vote_broadcast_failed", error=error)
            await self._settle_failed(vote, worker_id, error)
            await self._alert(vote, error)
            return False

        try:
            settled = await self._store.mark_soft_vote_broadcasted(
                vote.id, worker_id, self._time.utcnow()
            )
        except PersistenceError as exc:
            log.error("soft_vote_mark_broadcasted_error", error=exc.message)
            return True
        if not settled:
            log.warning("soft_vote_settle_lost_claim", status="broadcasted")
        log.info("soft_vote_broadcasted")
        return True

    async def _settle_failed(self, vote: SoftVote, worker_id: str, error: str) -> None:
        try:
            settled = await self._store.mark_soft_vote_failed(
                vote.id, worker_id, error, self._time.utcnow()
            )
        except PersistenceError as exc:
            logger.error(
                "soft_vote_mark_failed_error", soft_vote_id=vote.id, error=exc.message
            )
            return
        if not settled:
            logger.warning(
                "soft_vote_settle_lost_claim", soft_vote_id=vote.id, status="failed"
            )

    async def _alert(self, vote: SoftVote, error: str) -> None:
        if self._alerts is None:
            return
        payload = {
            "type": RETRY_FAILED_ALERT_TYPE,
            "soft_vote_id": vote.id,
            "author": vote.author,
            "permlink": vote.permlink,
            "error": error,
        }
        try:
            await self._alerts.send_alert(payload)
        except Exception as exc:
            logger.warning("soft_vote_alert_failed", soft_vote_id=vote.id, error=str(exc))

    async def _cleanup(self, cleanup_days: float) -> int:
        if cleanup_days <= 0:
            return 0
        cutoff = self._time.utcnow() - timedelta(days=cleanup_days)
        try:
            cleaned = await self._store.delete_failed_soft_votes(cutoff)
        except PersistenceError as exc:
            logger.error("soft_vote_cleanup_failed", error=exc.message)
            return 0
        if cleaned:
            logger.info("soft_vote_cleanup_completed", cleaned=cleaned)
        return cleaned
