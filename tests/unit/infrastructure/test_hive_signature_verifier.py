"""Unit tests for the Hive posting-key signature verifier.

Key recovery is patched out; these tests cover signature parsing and the
posting authority check against the Ledger.
"""

import pytest

from src.domain.errors.userbase import (
    LedgerError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from src.domain.models.identity import EVM, HIVE
from src.infrastructure.adapters.ledger import hive_signature_verifier
from src.infrastructure.adapters.ledger.hive_signature_verifier import HiveSignatureVerifier

SIGNATURE = "1f" + "ab" * 64
POSTING_KEY = "STM6LLegbAgLAy28EHrffBVuANFWcFgmqRMW13wBmTExqFE9SCkg4"


@pytest.fixture
def verifier(ledger_reader, monkeypatch) -> HiveSignatureVerifier:
    monkeypatch.setattr(
        hive_signature_verifier, "_recover_public_key", lambda message, sig: POSTING_KEY
    )
    return HiveSignatureVerifier(ledger_reader)


@pytest.mark.asyncio
async def test_accepts_listed_posting_key(verifier, ledger_reader) -> None:
    ledger_reader.add_account("xvlad", posting_keys=[POSTING_KEY])

    assert await verifier.verify(HIVE, "xvlad", "challenge", SIGNATURE) is True


@pytest.mark.asyncio
async def test_accepts_0x_prefix(verifier, ledger_reader) -> None:
    ledger_reader.add_account("xvlad", posting_keys=[POSTING_KEY])

    assert await verifier.verify(HIVE, "xvlad", "challenge", "0x" + SIGNATURE) is True


@pytest.mark.asyncio
async def test_rejects_unlisted_key(verifier, ledger_reader) -> None:
    ledger_reader.add_account("xvlad", posting_keys=["STMsomeoneelse"])

    assert await verifier.verify(HIVE, "xvlad", "challenge", SIGNATURE) is False


@pytest.mark.asyncio
async def test_other_kinds_are_not_verified(verifier, ledger_reader) -> None:
    assert await verifier.verify(EVM, "0xabc", "challenge", SIGNATURE) is False
    assert ledger_reader.lookups == []


@pytest.mark.asyncio
@pytest.mark.parametrize("signature", ["zz", "abcd", "1f" + "ab" * 70])
async def test_malformed_signature(verifier, signature) -> None:
    with pytest.raises(ValidationError, match="Invalid signature format"):
        await verifier.verify(HIVE, "xvlad", "challenge", signature)


@pytest.mark.asyncio
async def test_unrecoverable_signature_is_rejected(ledger_reader, monkeypatch) -> None:
    def broken(message, sig):
        raise ValueError("bad recovery id")

    monkeypatch.setattr(hive_signature_verifier, "_recover_public_key", broken)
    verifier = HiveSignatureVerifier(ledger_reader)

    assert await verifier.verify(HIVE, "xvlad", "challenge", SIGNATURE) is False


@pytest.mark.asyncio
async def test_missing_account(verifier) -> None:
    with pytest.raises(NotFoundError):
        await verifier.verify(HIVE, "ghost", "challenge", SIGNATURE)


@pytest.mark.asyncio
async def test_ledger_outage(verifier, ledger_reader) -> None:
    ledger_reader.set_error(LedgerError("Node error: 503", status=503))

    with pytest.raises(UpstreamError):
        await verifier.verify(HIVE, "xvlad", "challenge", SIGNATURE)
