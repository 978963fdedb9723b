"""Route tests for the userbase API, wired to in-memory stubs."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies.userbase import reset_userbase_services
from src.api.main import app
from src.bootstrap.userbase import (
    reset_userbase_adapters,
    set_alert_delivery,
    set_identity_store,
    set_ledger_broadcaster,
    set_ledger_reader,
    set_signature_verifier,
    set_time_authority,
    set_userbase_config,
)
from src.config.userbase_config import TEST_USERBASE_CONFIG, UserbaseConfig
from src.domain.models.identity import EVM, HIVE
from src.domain.models.session import REFRESH_COOKIE_NAME, hash_refresh_token
from src.domain.models.soft_vote import SoftVoteStatus

REFRESH_TOKEN = "refresh-token-u1"
SIGNATURE = "20" + "cd" * 64


@pytest.fixture
def wired(
    identity_store,
    ledger_reader,
    ledger_broadcaster,
    alert_delivery,
    signature_verifier,
    fake_time_authority,
):
    set_userbase_config(TEST_USERBASE_CONFIG)
    set_identity_store(identity_store)
    set_ledger_reader(ledger_reader)
    set_ledger_broadcaster(ledger_broadcaster)
    set_signature_verifier(signature_verifier)
    set_alert_delivery(alert_delivery)
    set_time_authority(fake_time_authority)
    reset_userbase_services()
    yield
    reset_userbase_services()
    reset_userbase_adapters()


@pytest.fixture
def client(wired) -> TestClient:
    return TestClient(app)


@pytest.fixture
def signed_in(client, identity_store, fake_time_authority) -> TestClient:
    identity_store.add_session(
        "u1",
        hash_refresh_token(REFRESH_TOKEN),
        expires_at=fake_time_authority.utcnow() + timedelta(days=1),
    )
    client.cookies.set(REFRESH_COOKIE_NAME, REFRESH_TOKEN)
    return client


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_correlation_id_is_echoed(self, client) -> None:
        response = client.get("/health", headers={"X-Correlation-ID": "req-1"})

        assert response.headers["X-Correlation-ID"] == "req-1"


class TestSession:
    def test_without_cookie(self, client) -> None:
        response = client.get("/auth/session")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_expired(self, client, identity_store, fake_time_authority) -> None:
        identity_store.add_session(
            "u1",
            hash_refresh_token(REFRESH_TOKEN),
            expires_at=fake_time_authority.utcnow() - timedelta(seconds=1),
        )
        client.cookies.set(REFRESH_COOKIE_NAME, REFRESH_TOKEN)

        response = client.get("/auth/session")

        assert response.status_code == 401
        assert response.json() == {"error": "Session expired"}

    def test_active(self, signed_in) -> None:
        response = signed_in.get("/auth/session")

        assert response.status_code == 200
        assert response.json() == {
            "user_id": "u1",
            "expires_at": "2026-03-02T12:00:00.000Z",
        }

    def test_sign_out_revokes_and_clears_cookie(self, signed_in, identity_store) -> None:
        response = signed_in.delete("/auth/session")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert f"{REFRESH_COOKIE_NAME}=" in response.headers["set-cookie"]
        assert identity_store.sessions[0].revoked_at is not None

    def test_sign_out_without_session(self, client) -> None:
        response = client.delete("/auth/session")

        assert response.status_code == 200

    def test_missing_store_config(self, wired) -> None:
        reset_userbase_adapters()
        set_userbase_config(UserbaseConfig())

        response = TestClient(app).get("/auth/session")

        assert response.status_code == 500
        assert response.json()["error"] == "Missing Supabase configuration"


class TestIdentities:
    def test_challenge_for_unknown_account(self, signed_in, identity_store) -> None:
        response = signed_in.post(
            "/identities/hive/challenge", json={"handle": "zz_not_real"}
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Hive account not found"}
        assert identity_store.writes == []

    def test_challenge_requires_session(self, client) -> None:
        response = client.post("/identities/hive/challenge", json={"handle": "xvlad"})

        assert response.status_code == 401

    def test_invalid_json_body(self, signed_in) -> None:
        response = signed_in.post(
            "/identities/hive/challenge",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    def test_link_list_and_unlink(self, signed_in, ledger_reader, signature_verifier) -> None:
        ledger_reader.add_account("xvlad")
        challenge = signed_in.post(
            "/identities/hive/challenge", json={"handle": "xvlad"}
        ).json()
        assert "Nonce:" in challenge["message"]
        signature_verifier.accept(HIVE, "xvlad", SIGNATURE)

        linked = signed_in.post(
            "/identities/hive/verify", json={"handle": "xvlad", "signature": SIGNATURE}
        )
        assert linked.status_code == 200
        identity = linked.json()["identity"]
        assert identity["type"] == "hive"
        assert identity["is_primary"] is True

        listed = signed_in.get("/identities").json()["identities"]
        assert [i["id"] for i in listed] == [identity["id"]]

        removed = signed_in.request("DELETE", "/identities", json={"id": identity["id"]})
        assert removed.json() == {"success": True}
        assert signed_in.get("/identities").json() == {"identities": []}

    def test_bad_signature(self, signed_in, ledger_reader) -> None:
        ledger_reader.add_account("xvlad")
        signed_in.post("/identities/hive/challenge", json={"handle": "xvlad"})

        response = signed_in.post(
            "/identities/hive/verify", json={"handle": "xvlad", "signature": SIGNATURE}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}

    def test_evm_challenge_and_verify(self, signed_in, signature_verifier) -> None:
        address = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
        challenge = signed_in.post(
            "/identities/evm/challenge",
            json={"address": "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"},
        )
        assert challenge.status_code == 200
        assert f"Address: {address}" in challenge.json()["message"]
        signature_verifier.accept(EVM, address, "0xsig")

        linked = signed_in.post(
            "/identities/evm/verify", json={"address": address, "signature": "0xsig"}
        )

        assert linked.status_code == 200
        assert linked.json()["identity"]["identifier"] == address
        assert linked.json()["identity"]["type"] == "evm"

    def test_evm_challenge_rejects_bad_address(self, signed_in) -> None:
        response = signed_in.post("/identities/evm/challenge", json={"address": "0x12"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid address"}

    def test_farcaster_then_evm_via_farcaster(self, signed_in) -> None:
        created = signed_in.post(
            "/identities",
            json={"type": "farcaster", "external_id": 1234, "handle": "xvlad"},
        )
        assert created.status_code == 200
        assert created.json()["identity"]["identifier"] == "1234"
        assert created.json()["identity"]["metadata"] == {"handle": "xvlad"}

        linked = signed_in.post(
            "/identities/evm/verify-farcaster",
            json={"address": "0x" + "1" * 40, "farcaster_fid": 1234},
        )

        assert linked.status_code == 200
        assert linked.json()["identity"]["metadata"] == {
            "verified_via": "farcaster",
            "farcaster_fid": "1234",
        }

    def test_evm_via_unlinked_farcaster_is_forbidden(self, signed_in) -> None:
        response = signed_in.post(
            "/identities/evm/verify-farcaster",
            json={"address": "0x" + "1" * 40, "farcaster_fid": 1234},
        )

        assert response.status_code == 403
        assert response.json() == {"error": "You must link your Farcaster account first"}

    def test_create_identity_rejects_other_types(self, signed_in) -> None:
        response = signed_in.post("/identities", json={"type": "hive", "external_id": "1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported identity type"}

    def test_farcaster_fid_owned_elsewhere_conflicts(self, signed_in, identity_store) -> None:
        identity_store.add_identity("u2", "farcaster", "1234")

        response = signed_in.post(
            "/identities", json={"type": "farcaster", "external_id": "1234"}
        )

        assert response.status_code == 409


class TestMergePreview:
    def test_conflict_reports_counts(self, signed_in, identity_store) -> None:
        identity_store.add_identity("u2", "farcaster", "4242")
        identity_store.add_soft_vote("u2", "alice", "p1")

        response = signed_in.post(
            "/merge/preview", json={"type": "farcaster", "identifier": "4242"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "exists": True,
            "same_user": False,
            "source_user_id": "u2",
            "counts": {
                "identities": 1,
                "auth_methods": 0,
                "sessions": 0,
                "soft_posts": 0,
                "soft_votes": 1,
            },
        }

    def test_unowned_identity_has_single_key(self, signed_in) -> None:
        response = signed_in.post(
            "/merge/preview", json={"type": "hive", "identifier": "xvlad"}
        )

        assert response.json() == {"exists": False}

    def test_unsupported_type(self, signed_in) -> None:
        response = signed_in.post("/merge/preview", json={"type": "email", "identifier": "x"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported identity type"}


class TestSoftVotes:
    def test_overlay(self, signed_in, identity_store) -> None:
        identity_store.add_soft_vote("u1", "alice", "p1", weight=5000)

        response = signed_in.post(
            "/soft-votes", json={"posts": [{"author": "alice", "permlink": "p1"}]}
        )

        assert response.status_code == 200
        items = response.json()["items"]
        assert [(i["author"], i["weight"], i["status"]) for i in items] == [
            ("alice", 5000, "queued")
        ]

    def test_overlay_requires_session(self, client) -> None:
        response = client.post("/soft-votes", json={"posts": []})

        assert response.status_code == 401

    def test_queue_is_idempotent(self, signed_in, identity_store) -> None:
        body = {"author": "alice", "permlink": "p1", "weight": 10000}

        first = signed_in.post("/soft-votes/queue", json=body).json()["soft_vote"]
        second = signed_in.post("/soft-votes/queue", json=body).json()["soft_vote"]

        assert first["id"] == second["id"]
        assert first["status"] == "queued"
        assert len(identity_store.soft_votes) == 1

    def test_queue_rejects_bad_weight(self, signed_in) -> None:
        response = signed_in.post(
            "/soft-votes/queue", json={"author": "alice", "permlink": "p1", "weight": 20000}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid vote weight"}

    def test_retry_without_body(self, client, identity_store, ledger_broadcaster) -> None:
        vote = identity_store.add_soft_vote("u1", "alice", "p1")

        response = client.post("/soft-votes/retry")

        assert response.status_code == 200
        assert response.json()["attempted"] == 1
        assert identity_store.get_soft_vote(vote.id).status == SoftVoteStatus.BROADCASTED

    def test_retry_token_guard(self, client) -> None:
        set_userbase_config(UserbaseConfig(internal_token="cron-secret"))

        rejected = client.post("/soft-votes/retry", json={"limit": 5})
        wrong = client.post(
            "/soft-votes/retry", json={}, headers={"x-userbase-token": "guess"}
        )
        accepted = client.post(
            "/soft-votes/retry", json={}, headers={"x-userbase-token": "cron-secret"}
        )

        assert rejected.status_code == 401
        assert wrong.status_code == 401
        assert accepted.status_code == 200
        assert accepted.json() == {"attempted": 0, "success": 0, "failed": 0, "cleaned": 0}

    def test_retry_without_broadcaster(self, client) -> None:
        set_ledger_broadcaster(None)
        reset_userbase_services()

        response = client.post("/soft-votes/retry", json={})

        assert response.status_code == 500
        assert response.json() == {"error": "Default Hive posting account not configured"}


class TestSoftPosts:
    def test_public_lookup(self, client, identity_store) -> None:
        identity_store.add_soft_post("u9", "skatehive", "p1", handle="rider")

        response = client.post(
            "/soft-posts", json={"posts": [{"author": "skatehive", "permlink": "p1"}]}
        )

        assert response.status_code == 200
        items = response.json()["items"]
        assert items[0]["user"] == {
            "id": "u9",
            "display_name": None,
            "handle": "rider",
            "avatar_url": None,
        }

    def test_store_failure(self, client, identity_store) -> None:
        identity_store.fail_operation("find_soft_posts_by_author")

        response = client.post(
            "/soft-posts", json={"posts": [{"author": "skatehive", "permlink": "p1"}]}
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch soft posts"
