"""Unit tests for the soft vote reconciliation worker."""

from datetime import timedelta

import pytest

from src.application.services.soft_vote_overlay_service import SoftVoteOverlayService
from src.application.services.soft_vote_reconciliation_service import (
    MAX_AGE_MINUTES_CAP,
    MAX_CLEANUP_DAYS,
    RETRY_FAILED_ALERT_TYPE,
    RetryOptions,
    SoftVoteReconciliationService,
)
from src.application.ports.ledger import VoteOperation
from src.domain.errors.userbase import ConfigError, LedgerError, PersistenceError
from src.domain.models.soft_vote import SoftVoteStatus
from src.infrastructure.stubs import LedgerBroadcasterStub


@pytest.fixture
def service(
    identity_store, fake_time_authority, ledger_broadcaster, alert_delivery
) -> SoftVoteReconciliationService:
    return SoftVoteReconciliationService(
        store=identity_store,
        time_authority=fake_time_authority,
        broadcaster=ledger_broadcaster,
        alerts=alert_delivery,
        lease_seconds=300,
    )


def _ago(fake_time_authority, **delta):
    return fake_time_authority.utcnow() - timedelta(**delta)


class SlowFirstBroadcaster(LedgerBroadcasterStub):
    """Runs ``on_first`` while the first broadcast is still in flight."""

    def __init__(self, on_first) -> None:
        super().__init__(account="skatehive")
        self._on_first = on_first

    async def broadcast_vote(self, operation: VoteOperation) -> str | None:
        tx = await super().broadcast_vote(operation)
        hook, self._on_first = self._on_first, None
        if hook is not None:
            await hook()
        return tx


class TestRetryOptions:
    def test_defaults(self) -> None:
        options = RetryOptions.from_raw()

        assert options == RetryOptions(limit=25, max_age_minutes=0, cleanup_days=30)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, 25),
            ("abc", 25),
            (0, 25),
            ("", 25),
            ("10", 10),
            (500, 100),
            (-5, 1),
            (7.9, 7),
        ],
    )
    def test_limit_coercion(self, raw, expected) -> None:
        assert RetryOptions.from_raw(limit=raw).limit == expected

    def test_negative_cleanup_is_kept(self) -> None:
        assert RetryOptions.from_raw(cleanup_days=-1).cleanup_days == -1

    def test_unparseable_max_age_disables_filter(self) -> None:
        assert RetryOptions.from_raw(max_age_minutes="soon").max_age_minutes == 0

    def test_huge_horizons_are_capped(self) -> None:
        options = RetryOptions.from_raw(max_age_minutes=1e12, cleanup_days=800000)

        assert options.max_age_minutes == MAX_AGE_MINUTES_CAP
        assert options.cleanup_days == MAX_CLEANUP_DAYS

    def test_infinite_horizons_are_capped(self) -> None:
        options = RetryOptions.from_raw(max_age_minutes="Infinity", cleanup_days="inf")

        assert options.max_age_minutes == MAX_AGE_MINUTES_CAP
        assert options.cleanup_days == MAX_CLEANUP_DAYS

    @pytest.mark.asyncio
    async def test_run_with_huge_horizons(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        identity_store.add_soft_vote(
            "u1", "alice", "p1", created_at=_ago(fake_time_authority, minutes=1)
        )

        report = await service.run(
            RetryOptions.from_raw(max_age_minutes=10**9, cleanup_days=800000)
        )

        assert report.to_dict() == {"attempted": 0, "success": 0, "failed": 0, "cleaned": 0}


class TestRun:
    @pytest.mark.asyncio
    async def test_batch_with_one_bad_row(
        self,
        service,
        identity_store,
        fake_time_authority,
        ledger_broadcaster,
        alert_delivery,
    ) -> None:
        identity_store.add_soft_vote(
            "u1", "alice", "p1", created_at=_ago(fake_time_authority, minutes=30)
        )
        bad = identity_store.add_soft_vote(
            "u1", "bob", "", created_at=_ago(fake_time_authority, minutes=20)
        )
        identity_store.add_soft_vote(
            "u2", "carol", "p3", weight=-500, created_at=_ago(fake_time_authority, minutes=10)
        )

        report = await service.run(RetryOptions())

        assert report.to_dict() == {"attempted": 3, "success": 2, "failed": 1, "cleaned": 0}
        assert [(op.author, op.weight) for op in ledger_broadcaster.broadcasts] == [
            ("alice", 10000),
            ("carol", -500),
        ]
        assert all(op.voter == "skatehive" for op in ledger_broadcaster.broadcasts)
        assert alert_delivery.alerts == [
            {
                "type": RETRY_FAILED_ALERT_TYPE,
                "soft_vote_id": bad.id,
                "author": "bob",
                "permlink": "",
                "error": "Missing vote target",
            }
        ]
        failed_row = identity_store.get_soft_vote(bad.id)
        assert failed_row.status == SoftVoteStatus.FAILED
        assert failed_row.error == "Missing vote target"
        assert failed_row.claimed_by is None

    @pytest.mark.asyncio
    async def test_settled_rows_release_claim(self, service, identity_store) -> None:
        vote = identity_store.add_soft_vote("u1", "alice", "p1")

        await service.run()

        row = identity_store.get_soft_vote(vote.id)
        assert row.status == SoftVoteStatus.BROADCASTED
        assert row.claimed_by is None
        assert row.broadcasted_at is not None

    @pytest.mark.asyncio
    async def test_broadcast_error_message_is_recorded(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        vote = identity_store.add_soft_vote(
            "u1", "alice", "p1", created_at=_ago(fake_time_authority, minutes=1)
        )
        ledger_broadcaster.fail_for("alice", "p1", LedgerError("RC exhausted"))

        report = await service.run()

        assert report.failed == 1
        assert identity_store.get_soft_vote(vote.id).error == "RC exhausted"

    @pytest.mark.asyncio
    async def test_empty_error_message_gets_placeholder(
        self, service, identity_store, fake_time_authority, ledger_broadcaster, alert_delivery
    ) -> None:
        vote = identity_store.add_soft_vote(
            "u1", "alice", "p1", created_at=_ago(fake_time_authority, minutes=1)
        )
        ledger_broadcaster.fail_for("alice", "p1", RuntimeError())

        await service.run()

        assert identity_store.get_soft_vote(vote.id).error == "Retry failed"
        assert alert_delivery.alerts[0]["error"] == "Retry failed"

    @pytest.mark.asyncio
    async def test_out_of_range_stored_weight_fails_row(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        vote = identity_store.add_soft_vote(
            "u1", "alice", "p1", weight=20000, created_at=_ago(fake_time_authority, minutes=1)
        )

        report = await service.run()

        assert report.failed == 1
        assert ledger_broadcaster.broadcasts == []
        assert identity_store.get_soft_vote(vote.id).error == "Invalid vote weight"

    @pytest.mark.asyncio
    async def test_limit_takes_oldest_first(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        for minutes, permlink in ((5, "newest"), (50, "oldest"), (20, "middle")):
            identity_store.add_soft_vote(
                "u1", "alice", permlink, created_at=_ago(fake_time_authority, minutes=minutes)
            )

        report = await service.run(RetryOptions(limit=2))

        assert report.attempted == 2
        assert [op.permlink for op in ledger_broadcaster.broadcasts] == ["oldest", "middle"]

    @pytest.mark.asyncio
    async def test_max_age_skips_recent_rows(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        identity_store.add_soft_vote(
            "u1", "alice", "fresh", created_at=_ago(fake_time_authority, minutes=5)
        )
        identity_store.add_soft_vote(
            "u1", "alice", "stale", created_at=_ago(fake_time_authority, minutes=60)
        )

        report = await service.run(RetryOptions(max_age_minutes=30))

        assert report.attempted == 1
        assert [op.permlink for op in ledger_broadcaster.broadcasts] == ["stale"]

    @pytest.mark.asyncio
    async def test_broadcasted_rows_are_never_touched(
        self, service, identity_store, ledger_broadcaster
    ) -> None:
        vote = identity_store.add_soft_vote(
            "u1", "alice", "p1", status=SoftVoteStatus.BROADCASTED
        )

        report = await service.run()

        assert report.attempted == 0
        assert ledger_broadcaster.broadcasts == []
        assert identity_store.get_soft_vote(vote.id) == vote

    @pytest.mark.asyncio
    async def test_failed_rows_are_retried(self, service, identity_store) -> None:
        vote = identity_store.add_soft_vote(
            "u1", "alice", "p1", status=SoftVoteStatus.FAILED
        )

        report = await service.run()

        assert report.success == 1
        assert identity_store.get_soft_vote(vote.id).status == SoftVoteStatus.BROADCASTED


class TestClaims:
    @pytest.mark.asyncio
    async def test_row_under_live_lease_is_skipped(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        identity_store.add_soft_vote(
            "u1",
            "alice",
            "p1",
            status=SoftVoteStatus.PROCESSING,
            claimed_by="soft-vote-retry-other",
            claimed_at=_ago(fake_time_authority, minutes=1),
        )

        report = await service.run()

        assert report.attempted == 0
        assert ledger_broadcaster.broadcasts == []

    @pytest.mark.asyncio
    async def test_row_with_expired_lease_is_reclaimed(
        self, service, identity_store, fake_time_authority
    ) -> None:
        vote = identity_store.add_soft_vote(
            "u1",
            "alice",
            "p1",
            status=SoftVoteStatus.PROCESSING,
            claimed_by="soft-vote-retry-crashed",
            claimed_at=_ago(fake_time_authority, minutes=10),
        )

        report = await service.run()

        assert report.success == 1
        assert identity_store.get_soft_vote(vote.id).status == SoftVoteStatus.BROADCASTED

    @pytest.mark.asyncio
    async def test_claim_lost_to_concurrent_run(
        self, service, identity_store, ledger_broadcaster
    ) -> None:
        identity_store.add_soft_vote("u1", "alice", "p1")
        original_claim = identity_store.claim_soft_vote

        async def concurrent_claim(vote, worker_id, claimed_at):
            await original_claim(vote, "soft-vote-retry-other", claimed_at)
            return await original_claim(vote, worker_id, claimed_at)

        identity_store.claim_soft_vote = concurrent_claim

        report = await service.run()

        assert report.attempted == 0
        assert ledger_broadcaster.broadcasts == []

    @pytest.mark.asyncio
    async def test_overlapping_runs_broadcast_once(
        self, service, identity_store, fake_time_authority, ledger_broadcaster, alert_delivery
    ) -> None:
        identity_store.add_soft_vote("u1", "alice", "p1")
        other = SoftVoteReconciliationService(
            store=identity_store,
            time_authority=fake_time_authority,
            broadcaster=ledger_broadcaster,
            alerts=alert_delivery,
        )

        first = await service.run()
        second = await other.run()

        assert first.attempted + second.attempted == 1
        assert len(ledger_broadcaster.broadcasts) == 1


    @pytest.mark.asyncio
    async def test_rows_are_claimed_just_before_broadcast(
        self, identity_store, fake_time_authority, alert_delivery
    ) -> None:
        for index in range(3):
            identity_store.add_soft_vote(
                "u1",
                "alice",
                f"p{index}",
                created_at=_ago(fake_time_authority, minutes=10 - index),
            )
        second_reports = []

        async def second_run_after_lease() -> None:
            fake_time_authority.advance(seconds=400)
            second_reports.append(await second.run())

        broadcaster = SlowFirstBroadcaster(second_run_after_lease)
        first = SoftVoteReconciliationService(
            store=identity_store,
            time_authority=fake_time_authority,
            broadcaster=broadcaster,
            alerts=alert_delivery,
            lease_seconds=300,
        )
        second = SoftVoteReconciliationService(
            store=identity_store,
            time_authority=fake_time_authority,
            broadcaster=broadcaster,
            alerts=alert_delivery,
            lease_seconds=300,
        )

        report = await first.run()

        permlinks = [op.permlink for op in broadcaster.broadcasts]
        assert permlinks.count("p1") == 1
        assert permlinks.count("p2") == 1
        assert report.attempted == 1
        assert second_reports[0].attempted == 3
        assert all(
            row.status == SoftVoteStatus.BROADCASTED for row in identity_store.soft_votes
        )

    @pytest.mark.asyncio
    async def test_vote_changed_back_reaches_ledger(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        overlay = SoftVoteOverlayService(
            store=identity_store, time_authority=fake_time_authority
        )

        for weight in (10000, 5000, 10000):
            await overlay.enqueue_vote("u1", "alice", "p1", weight)
            fake_time_authority.advance(seconds=1)
            report = await service.run()
            fake_time_authority.advance(seconds=1)
            assert report.success == 1

        assert [op.weight for op in ledger_broadcaster.broadcasts] == [10000, 5000, 10000]
        [item] = await overlay.get_vote_overlays(
            "u1", [{"author": "alice", "permlink": "p1"}]
        )
        assert item["weight"] == 10000
        assert item["status"] == "broadcasted"

    @pytest.mark.asyncio
    async def test_weight_change_during_broadcast_is_sent_next_run(
        self, identity_store, fake_time_authority, alert_delivery
    ) -> None:
        overlay = SoftVoteOverlayService(
            store=identity_store, time_authority=fake_time_authority
        )
        await overlay.enqueue_vote("u1", "alice", "p1", 10000)

        async def change_mind() -> None:
            await overlay.enqueue_vote("u1", "alice", "p1", -10000)

        broadcaster = SlowFirstBroadcaster(change_mind)
        service = SoftVoteReconciliationService(
            store=identity_store,
            time_authority=fake_time_authority,
            broadcaster=broadcaster,
            alerts=alert_delivery,
        )

        await service.run()
        [pending] = identity_store.soft_votes
        assert pending.status == SoftVoteStatus.QUEUED
        assert pending.weight == -10000

        await service.run()

        assert [op.weight for op in broadcaster.broadcasts] == [10000, -10000]
        assert identity_store.soft_votes[0].status == SoftVoteStatus.BROADCASTED


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cutoff_is_strict(
        self, service, identity_store, fake_time_authority, ledger_broadcaster
    ) -> None:
        at_cutoff = identity_store.add_soft_vote(
            "u1", "alice", "edge", status=SoftVoteStatus.FAILED,
            created_at=_ago(fake_time_authority, days=30),
        )
        older = identity_store.add_soft_vote(
            "u1", "alice", "old", status=SoftVoteStatus.FAILED,
            created_at=_ago(fake_time_authority, days=30, seconds=1),
        )
        ledger_broadcaster.fail_for("alice", "edge")
        ledger_broadcaster.fail_for("alice", "old")

        report = await service.run(RetryOptions(cleanup_days=30))

        assert report.cleaned == 1
        assert identity_store.get_soft_vote(at_cutoff.id) is not None
        assert identity_store.get_soft_vote(older.id) is None

    @pytest.mark.asyncio
    async def test_negative_days_disable_cleanup(
        self, service, identity_store, ledger_broadcaster
    ) -> None:
        identity_store.add_soft_vote("u1", "alice", "old", status=SoftVoteStatus.FAILED)
        ledger_broadcaster.fail_for("alice", "old")

        report = await service.run(RetryOptions(cleanup_days=-1))

        assert report.cleaned == 0
        assert "delete_failed_soft_votes" not in identity_store.writes

    @pytest.mark.asyncio
    async def test_cleanup_failure_reports_zero(self, service, identity_store) -> None:
        identity_store.fail_operation("delete_failed_soft_votes")

        report = await service.run()

        assert report.cleaned == 0


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_broadcaster(self, identity_store, fake_time_authority) -> None:
        service = SoftVoteReconciliationService(
            store=identity_store, time_authority=fake_time_authority
        )

        with pytest.raises(ConfigError):
            await service.run()

    @pytest.mark.asyncio
    async def test_listing_failure(self, service, identity_store) -> None:
        identity_store.fail_operation("list_claimable_soft_votes")

        with pytest.raises(PersistenceError, match="Failed to fetch soft votes"):
            await service.run()

    @pytest.mark.asyncio
    async def test_alert_failure_does_not_stop_batch(
        self, service, identity_store, fake_time_authority, ledger_broadcaster, alert_delivery
    ) -> None:
        recent = _ago(fake_time_authority, minutes=1)
        identity_store.add_soft_vote("u1", "alice", "bad", created_at=recent)
        identity_store.add_soft_vote("u1", "alice", "good", created_at=recent)
        ledger_broadcaster.fail_for("alice", "bad")
        alert_delivery.set_error(RuntimeError("webhook down"))

        report = await service.run()

        assert report.to_dict() == {"attempted": 2, "success": 1, "failed": 1, "cleaned": 0}

    @pytest.mark.asyncio
    async def test_mark_broadcasted_error_still_counts_success(
        self, service, identity_store
    ) -> None:
        identity_store.add_soft_vote("u1", "alice", "p1")
        identity_store.fail_operation("mark_soft_vote_broadcasted")

        report = await service.run()

        assert report.success == 1
