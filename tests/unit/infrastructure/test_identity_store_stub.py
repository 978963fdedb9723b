"""Unit tests for IdentityStoreStub uniqueness and claim rules."""

from datetime import datetime, timedelta, timezone

import pytest

from src.domain.errors.userbase import PersistenceError
from src.domain.models.soft_vote import SoftVoteStatus
from src.infrastructure.stubs.identity_store_stub import IdentityStoreStub

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> IdentityStoreStub:
    return IdentityStoreStub()


class TestUniqueness:
    @pytest.mark.asyncio
    async def test_duplicate_identity(self, store) -> None:
        await store.create_identity("u1", "hive", "xvlad", True, NOW)

        with pytest.raises(PersistenceError) as exc_info:
            await store.create_identity("u2", "hive", "xvlad", True, NOW)

        assert exc_info.value.is_unique_violation

    @pytest.mark.asyncio
    async def test_duplicate_idempotency_key(self, store) -> None:
        await store.insert_soft_vote("u1", "a", "p", 100, "key-1", NOW)

        with pytest.raises(PersistenceError) as exc_info:
            await store.insert_soft_vote("u1", "a", "p", 100, "key-1", NOW)

        assert exc_info.value.code == "23505"


class TestClaims:
    @pytest.mark.asyncio
    async def test_only_one_claim_wins(self, store) -> None:
        vote = store.add_soft_vote("u1", "a", "p")

        first = await store.claim_soft_vote(vote, "worker-1", NOW)
        second = await store.claim_soft_vote(vote, "worker-2", NOW)

        assert first.claimed_by == "worker-1"
        assert first.status == SoftVoteStatus.PROCESSING
        assert second is None

    @pytest.mark.asyncio
    async def test_only_claimant_settles(self, store) -> None:
        vote = store.add_soft_vote("u1", "a", "p")
        await store.claim_soft_vote(vote, "worker-1", NOW)

        assert await store.mark_soft_vote_failed(vote.id, "worker-2", "x", NOW) is False
        assert await store.mark_soft_vote_broadcasted(vote.id, "worker-1", NOW) is True
        assert await store.mark_soft_vote_failed(vote.id, "worker-1", "x", NOW) is False
        assert store.get_soft_vote(vote.id).status == SoftVoteStatus.BROADCASTED

    @pytest.mark.asyncio
    async def test_claimable_listing(self, store) -> None:
        store.add_soft_vote("u1", "a", "queued")
        store.add_soft_vote("u1", "a", "failed", status=SoftVoteStatus.FAILED)
        store.add_soft_vote("u1", "a", "done", status=SoftVoteStatus.BROADCASTED)
        store.add_soft_vote(
            "u1", "a", "live", status=SoftVoteStatus.PROCESSING,
            claimed_by="w", claimed_at=NOW,
        )
        store.add_soft_vote(
            "u1", "a", "stale", status=SoftVoteStatus.PROCESSING,
            claimed_by="w", claimed_at=NOW - timedelta(hours=1),
        )

        rows = await store.list_claimable_soft_votes(
            limit=10, lease_expired_before=NOW - timedelta(minutes=5)
        )

        assert sorted(r.permlink for r in rows) == ["failed", "queued", "stale"]


class TestFailureInjection:
    @pytest.mark.asyncio
    async def test_failed_write_is_not_recorded(self, store) -> None:
        store.fail_operation("revoke_session")

        with pytest.raises(PersistenceError):
            await store.revoke_session("hash", NOW)

        assert store.writes == []
        store.clear_failures()
        assert await store.revoke_session("hash", NOW) is False
        assert store.writes == ["revoke_session"]
