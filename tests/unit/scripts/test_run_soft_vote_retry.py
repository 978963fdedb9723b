"""Tests for the soft vote retry cron script."""

from __future__ import annotations

import json

import pytest

from scripts import run_soft_vote_retry
from src.bootstrap.userbase import (
    reset_userbase_adapters,
    set_alert_delivery,
    set_identity_store,
    set_ledger_broadcaster,
    set_time_authority,
    set_userbase_config,
)
from src.config.userbase_config import TEST_USERBASE_CONFIG


@pytest.fixture(autouse=True)
def wired(identity_store, ledger_broadcaster, alert_delivery, fake_time_authority, monkeypatch):
    monkeypatch.setattr(run_soft_vote_retry, "load_dotenv", lambda: None)
    set_userbase_config(TEST_USERBASE_CONFIG)
    set_identity_store(identity_store)
    set_ledger_broadcaster(ledger_broadcaster)
    set_alert_delivery(alert_delivery)
    set_time_authority(fake_time_authority)
    yield
    reset_userbase_adapters()


def test_parse_args_defaults() -> None:
    args = run_soft_vote_retry.parse_args([])

    assert args.limit == 25
    assert args.max_age_minutes == 0
    assert args.cleanup_days == 30


def test_runs_one_batch(identity_store, ledger_broadcaster, capsys) -> None:
    identity_store.add_soft_vote("u1", "alice", "p1")

    exit_code = run_soft_vote_retry.main(["--limit", "5", "--cleanup-days", "-1"])

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert report == {"attempted": 1, "success": 1, "failed": 0, "cleaned": 0}
    assert len(ledger_broadcaster.broadcasts) == 1


def test_missing_broadcaster_exits_nonzero(capsys) -> None:
    set_ledger_broadcaster(None)

    exit_code = run_soft_vote_retry.main([])

    assert exit_code == 1
    assert "Default Hive posting account not configured" in capsys.readouterr().err
